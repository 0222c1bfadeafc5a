from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Sequence, Tuple

from queryexpansion.config import DOC_WEIGHTINGS


@dataclass(frozen=True)
class FeedbackDocumentSet:
    """Top-k (doc_id, score) pairs of one query, in run order."""

    qid: str
    documents: Tuple[Tuple[str, float], ...] = field(default_factory=tuple)

    @classmethod
    def from_ranked_list(
        cls, qid: str, ranked: Iterable[Tuple[str, float]] | None, fb_docs: int
    ) -> "FeedbackDocumentSet":
        """Keep the first ``fb_docs`` entries; the run's order is not changed."""
        if not ranked or fb_docs <= 0:
            return cls(qid)
        docs: List[Tuple[str, float]] = []
        for doc_id, score in ranked:
            if len(docs) >= fb_docs:
                break
            docs.append((str(doc_id), float(score)))
        return cls(qid, tuple(docs))

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self) -> Iterator[Tuple[str, float]]:
        return iter(self.documents)

    @property
    def doc_ids(self) -> List[str]:
        return [doc_id for doc_id, _ in self.documents]


def document_weights(scores: Sequence[float], policy: str = "uniform") -> List[float]:
    """Per-document weights w(d) summing to 1.

    - "uniform": 1/n for every document
    - "score": retrieval scores normalized by their sum; when a score is not
      strictly positive (log-likelihood scores) they are exp-normalized
    """
    n = len(scores)
    if n == 0:
        return []
    if policy == "uniform":
        return [1.0 / n] * n
    if policy != "score":
        raise ValueError(f"Unknown doc weighting '{policy}'. Choose one of {DOC_WEIGHTINGS}")

    if all(s > 0 for s in scores):
        total = math.fsum(scores)
        return [s / total for s in scores]
    top = max(scores)
    exps = [math.exp(s - top) for s in scores]
    total = math.fsum(exps)
    return [e / total for e in exps]
