"""RM3 relevance model construction and interpolation.

For one query the builder:

1. estimates a Dirichlet-smoothed language model for each feedback document,
2. sums ``w(d) * P(t|d)`` over the documents in which ``t`` occurs,
3. keeps the ``fb_terms`` heaviest terms (ties broken by the term string) and
   renormalizes them into the relevance model,
4. interpolates the relevance model with the normalized original query and
   renormalizes the result.

Documents the statistics provider cannot resolve are skipped and reported on
the returned :class:`ExpandedQuery`. When no feedback document is usable the
normalized original query is returned with a :class:`NoFeedbackAvailable`
diagnostic.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from queryexpansion.config import ExpansionConfig
from queryexpansion.errors import MissingDocumentError, NoFeedbackAvailable, UnknownTermError
from queryexpansion.feedback.documents import FeedbackDocumentSet, document_weights
from queryexpansion.feedback.language_model import DocumentLanguageModel
from queryexpansion.index.statistics import TermStatisticsProvider
from queryexpansion.query_model import QueryModel

logger = logging.getLogger(__name__)

_ALNUM = re.compile(r"^[a-z0-9]+$")

# Term filter bounds (same as Anserini's RM3 reranker)
MIN_TERM_LENGTH = 2
MAX_TERM_LENGTH = 20
MAX_DF_RATIO = 0.1


@dataclass
class ExpandedQuery:
    qid: str
    query: QueryModel
    relevance_model: QueryModel = field(default_factory=QueryModel)
    original: QueryModel = field(default_factory=QueryModel)
    feedback_docs: int = 0
    skipped: List[MissingDocumentError] = field(default_factory=list)
    no_feedback: Optional[NoFeedbackAvailable] = None

    @property
    def expanded(self) -> bool:
        return self.no_feedback is None


class RelevanceModelBuilder:
    """Builds expanded queries against a shared, read-only statistics provider."""

    def __init__(
        self,
        stats: TermStatisticsProvider,
        mu: float = 1000.0,
        doc_weighting: str = "uniform",
        filter_terms: bool = False,
        doc_timeout: Optional[float] = None,
    ) -> None:
        self.stats = stats
        self.mu = float(mu)
        self.doc_weighting = doc_weighting
        self.filter_terms = filter_terms
        self.doc_timeout = doc_timeout

    @classmethod
    def from_config(
        cls,
        stats: TermStatisticsProvider,
        config: ExpansionConfig,
    ) -> "RelevanceModelBuilder":
        return cls(
            stats,
            mu=config.mu,
            doc_weighting=config.doc_weighting,
            filter_terms=config.filter_terms,
            doc_timeout=config.doc_timeout,
        )

    # ------------------------- public API -------------------------

    def build_expanded_query(
        self,
        original: QueryModel,
        feedback: FeedbackDocumentSet,
        fb_terms: int,
        original_query_weight: float,
    ) -> ExpandedQuery:
        original_model = original.normalized()
        result = ExpandedQuery(qid=feedback.qid, query=original_model, original=original_model)

        models: List[DocumentLanguageModel] = []
        scores: List[float] = []
        for doc_id, score in feedback:
            try:
                models.append(self._document_model(doc_id))
            except MissingDocumentError as exc:
                logger.debug("Query %s: skipping feedback document: %s", feedback.qid, exc)
                result.skipped.append(exc)
                continue
            scores.append(score)
        result.feedback_docs = len(models)

        relevance = self.relevance_model(models, scores, fb_terms)
        if not relevance:
            reason = "empty feedback set" if not len(feedback) else "no usable feedback documents"
            result.no_feedback = NoFeedbackAvailable(feedback.qid, reason)
            return result

        result.relevance_model = relevance
        result.query = original_model.interpolate(relevance, original_query_weight).normalized()
        return result

    def relevance_model(
        self,
        models: List[DocumentLanguageModel],
        scores: List[float],
        fb_terms: int,
    ) -> QueryModel:
        """Aggregate, truncate to ``fb_terms`` and renormalize."""
        weights = document_weights(scores, self.doc_weighting)
        aggregated: Dict[str, float] = {}
        for model, weight in zip(models, weights):
            for term, prob in model.probabilities.items():
                aggregated[term] = aggregated.get(term, 0.0) + weight * prob

        if self.filter_terms:
            aggregated = {t: w for t, w in aggregated.items() if self._keep_term(t)}

        return QueryModel(aggregated).truncated(fb_terms).normalized()

    # ------------------------- helpers -------------------------

    def _document_model(self, doc_id: str) -> DocumentLanguageModel:
        if self.doc_timeout is None:
            return DocumentLanguageModel.from_statistics(doc_id, self.stats, self.mu)
        # one daemon thread per lookup; an overrunning lookup finishes in the background
        outcome: Dict[str, Any] = {}

        def lookup() -> None:
            try:
                outcome["model"] = DocumentLanguageModel.from_statistics(doc_id, self.stats, self.mu)
            except Exception as exc:
                outcome["error"] = exc

        worker = threading.Thread(target=lookup, name=f"doc-lookup-{doc_id}", daemon=True)
        worker.start()
        worker.join(self.doc_timeout)
        if worker.is_alive():
            raise MissingDocumentError(doc_id, f"lookup timed out after {self.doc_timeout}s")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["model"]

    def _keep_term(self, term: str) -> bool:
        if not MIN_TERM_LENGTH <= len(term) <= MAX_TERM_LENGTH:
            return False
        if not _ALNUM.match(term):
            return False
        num_docs = self.stats.num_documents()
        if num_docs <= 0:
            return True
        try:
            df = self.stats.document_frequency(term)
        except UnknownTermError:
            return False
        return df / num_docs <= MAX_DF_RATIO
