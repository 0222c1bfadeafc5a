from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

from queryexpansion.config import ExpansionConfig
from queryexpansion.errors import ExpansionCancelled, ExpansionError
from queryexpansion.feedback.documents import FeedbackDocumentSet
from queryexpansion.feedback.rm3 import ExpandedQuery, RelevanceModelBuilder
from queryexpansion.index.analysis import Analyzer
from queryexpansion.index.statistics import TermStatisticsProvider
from queryexpansion.query_model import QueryModel

logger = logging.getLogger(__name__)


@dataclass
class QueryExpansion:
    """Outcome for one query id; ``line`` is None when the query failed."""

    qid: str
    line: Optional[str]
    expansion: Optional[ExpandedQuery] = None
    error: Optional[Exception] = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.line is not None


class ExpansionService:
    """
    Expands a batch of topics against an existing run.

    Queries are independent: each one is expanded on a worker of a bounded
    thread pool and only reads the shared statistics provider. Results come
    back in topic order, whatever the completion order.
    """

    def __init__(
        self,
        stats: TermStatisticsProvider,
        analyzer: Analyzer,
        config: Optional[ExpansionConfig] = None,
    ) -> None:
        self.stats = stats
        self.analyzer = analyzer
        self.config = (config or ExpansionConfig()).validate()

    @property
    def threads(self) -> int:
        return self.config.threads or os.cpu_count() or 1

    # ------------------------- single query -------------------------

    def expand_query(
        self,
        qid: str,
        text: str,
        ranked: Optional[Sequence[Tuple[str, float]]],
        builder: Optional[RelevanceModelBuilder] = None,
    ) -> QueryExpansion:
        cfg = self.config
        builder = builder or RelevanceModelBuilder.from_config(self.stats, cfg)
        t_start = time.perf_counter()
        try:
            original = QueryModel.from_terms(self.analyzer.analyze(text))
            feedback = FeedbackDocumentSet.from_ranked_list(qid, ranked, cfg.fb_docs)
            expanded = builder.build_expanded_query(
                original, feedback, cfg.fb_terms, cfg.original_query_weight
            )
            if expanded.skipped:
                logger.warning(
                    "Query %s: skipped %d feedback document(s): %s",
                    qid,
                    len(expanded.skipped),
                    ", ".join(e.doc_id for e in expanded.skipped),
                )
            if expanded.no_feedback is not None:
                logger.warning("%s; emitting the original query", expanded.no_feedback)
            line = expanded.query.to_line(qid, cfg.precision)
        except ExpansionError as exc:
            logger.error("Query %s: expansion failed: %s", qid, exc)
            return QueryExpansion(qid, None, error=exc, elapsed_ms=_elapsed_ms(t_start))
        except Exception as exc:
            logger.exception("Query %s: unexpected error during expansion", qid)
            return QueryExpansion(qid, None, error=exc, elapsed_ms=_elapsed_ms(t_start))
        return QueryExpansion(qid, line, expansion=expanded, elapsed_ms=_elapsed_ms(t_start))

    # ------------------------- batch -------------------------

    def expand_all(
        self,
        topics: Mapping[str, Mapping[str, str]],
        run: Mapping[str, Sequence[Tuple[str, float]]],
        cancel_event: Optional[threading.Event] = None,
    ) -> List[QueryExpansion]:
        """Expand every topic; raises ExpansionCancelled if ``cancel_event`` gets set."""
        field = self.config.topic_field
        ordered: List[Tuple[str, str]] = []
        for qid, fields in topics.items():
            qid = str(qid)
            text = fields.get(field)
            if text is None:
                logger.warning("Topic %s has no '%s' field; expanding from feedback only", qid, field)
                text = ""
            ordered.append((qid, text))

        cancel = cancel_event or threading.Event()
        results: List[Optional[QueryExpansion]] = [None] * len(ordered)

        builder = RelevanceModelBuilder.from_config(self.stats, self.config)
        with ThreadPoolExecutor(max_workers=self.threads, thread_name_prefix="expand") as pool:

            def task(position: int, qid: str, text: str) -> None:
                if cancel.is_set():
                    return
                results[position] = self.expand_query(qid, text, run.get(qid), builder)

            futures = [pool.submit(task, i, qid, text) for i, (qid, text) in enumerate(ordered)]
            for future in futures:
                future.result()
                if cancel.is_set():
                    for pending in futures:
                        pending.cancel()
                    break

        if cancel.is_set():
            done = sum(r is not None for r in results)
            raise ExpansionCancelled(
                f"batch cancelled after {done}/{len(ordered)} queries; results discarded"
            )

        expansions = [r for r in results if r is not None]
        logger.info(
            "Expanded %d queries: %d with feedback, %d unexpanded, %d failed",
            len(expansions),
            sum(1 for r in expansions if r.ok and r.expansion.expanded),
            sum(1 for r in expansions if r.ok and not r.expansion.expanded),
            sum(1 for r in expansions if not r.ok),
        )
        return expansions


def _elapsed_ms(t_start: float) -> float:
    return (time.perf_counter() - t_start) * 1000.0


def write_expansions(expansions: Sequence[QueryExpansion], path: str | Path) -> int:
    """Write one line per successful expansion, in the given order. Returns lines written."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    with open(out_path, "w", encoding="utf-8", newline="\n") as out:
        for item in expansions:
            if item.line is None:
                continue
            out.write(item.line + "\n")
            written += 1
    return written

