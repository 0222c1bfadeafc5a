from __future__ import annotations

from typing import Optional


class ExpansionError(Exception):
    """Base class for every error raised while expanding queries."""


class MissingDocumentError(ExpansionError):
    """Raised when a feedback document cannot be resolved by the statistics provider."""

    def __init__(self, doc_id: str, reason: str = "not found in index") -> None:
        super().__init__(f"document '{doc_id}': {reason}")
        self.doc_id = doc_id
        self.reason = reason


class UnknownTermError(ExpansionError):
    """Raised when a term does not occur anywhere in the collection."""

    def __init__(self, term: str) -> None:
        super().__init__(f"term '{term}' is unknown to the collection")
        self.term = term


class NoFeedbackAvailable(ExpansionError):
    """Diagnostic attached to a query that could not be expanded."""

    def __init__(self, qid: Optional[str] = None, reason: str = "no usable feedback documents") -> None:
        label = f"query '{qid}'" if qid is not None else "query"
        super().__init__(f"{label}: {reason}")
        self.qid = qid
        self.reason = reason


class InvalidConfiguration(ExpansionError, ValueError):
    """Raised before any work starts when the expansion parameters are unusable."""


class SerializationError(ExpansionError):
    """Raised when a weight cannot be written (NaN or infinite)."""

    def __init__(self, qid: str, term: str, weight: float) -> None:
        super().__init__(f"query '{qid}': term '{term}' has unrepresentable weight {weight!r}")
        self.qid = qid
        self.term = term
        self.weight = weight


class ExpansionCancelled(ExpansionError):
    """Raised when a batch is cancelled; partial results are discarded."""
