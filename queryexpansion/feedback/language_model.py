from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict

from queryexpansion.errors import UnknownTermError
from queryexpansion.index.statistics import TermStatisticsProvider, collection_probability

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentLanguageModel:
    """
    Dirichlet-smoothed term distribution of one document:

        P(t|d) = (tf(t,d) + mu * P_c(t)) / (|d| + mu)

    ``probabilities`` covers the document's observed terms; the rest of the
    probability mass (``unseen_mass``) belongs to terms the document lacks.
    """

    doc_id: str
    length: int
    mu: float
    probabilities: Dict[str, float]
    background: Dict[str, float]

    @classmethod
    def from_statistics(
        cls, doc_id: str, stats: TermStatisticsProvider, mu: float
    ) -> "DocumentLanguageModel":
        """Raises MissingDocumentError when ``doc_id`` is not in the index."""
        vector = stats.document_vector(doc_id)
        length = sum(tf for tf in vector.values() if tf > 0)
        denominator = length + mu

        probabilities: Dict[str, float] = {}
        background: Dict[str, float] = {}
        for term, tf in vector.items():
            if tf <= 0:
                continue
            try:
                p_c = collection_probability(stats, term)
            except UnknownTermError:
                logger.debug("Term '%s' of document '%s' has no collection statistics", term, doc_id)
                p_c = 0.0
            background[term] = p_c
            probabilities[term] = (tf + mu * p_c) / denominator
        return cls(doc_id, length, mu, probabilities, background)

    def __len__(self) -> int:
        return len(self.probabilities)

    def probability(self, term: str, background: float = 0.0) -> float:
        """Smoothed P(t|d); ``background`` is P_c(t) for terms the document lacks."""
        if term in self.probabilities:
            return self.probabilities[term]
        return self.mu * background / (self.length + self.mu)

    @property
    def unseen_mass(self) -> float:
        return self.mu * (1.0 - math.fsum(self.background.values())) / (self.length + self.mu)
