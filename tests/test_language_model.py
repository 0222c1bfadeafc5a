from __future__ import annotations

import math

import pytest

from queryexpansion.errors import MissingDocumentError
from queryexpansion.feedback.language_model import DocumentLanguageModel
from queryexpansion.index.statistics import InMemoryStatistics


def test_dirichlet_probabilities(fox_stats: InMemoryStatistics) -> None:
    model = DocumentLanguageModel.from_statistics("D1", fox_stats, mu=1000.0)
    assert set(model.probabilities) == {"the", "quick", "brown", "fox", "jumps"}
    # brown: tf=1, cf=2, |C|=10, |d|=5
    assert model.probabilities["brown"] == pytest.approx((1 + 1000 * 0.2) / 1005)
    assert model.probabilities["fox"] == pytest.approx((1 + 1000 * 0.1) / 1005)


def test_observed_plus_unseen_mass_is_one(fox_stats: InMemoryStatistics) -> None:
    for doc_id in ("D1", "D2"):
        model = DocumentLanguageModel.from_statistics(doc_id, fox_stats, mu=10.0)
        total = math.fsum(model.probabilities.values()) + model.unseen_mass
        assert total == pytest.approx(1.0, abs=1e-9)


def test_unseen_term_gets_smoothed_background(fox_stats: InMemoryStatistics) -> None:
    model = DocumentLanguageModel.from_statistics("D1", fox_stats, mu=1000.0)
    assert model.probability("bear", background=0.1) == pytest.approx(1000 * 0.1 / 1005)


def test_zero_length_document_is_pure_background() -> None:
    stats = InMemoryStatistics({"empty": [], "full": ["a", "b", "b", "c"]})
    model = DocumentLanguageModel.from_statistics("empty", stats, mu=1000.0)
    assert len(model) == 0
    assert model.probability("b", background=0.5) == pytest.approx(0.5)


def test_missing_document_raises(fox_stats: InMemoryStatistics) -> None:
    with pytest.raises(MissingDocumentError) as excinfo:
        DocumentLanguageModel.from_statistics("D404", fox_stats, mu=1000.0)
    assert excinfo.value.doc_id == "D404"


def test_each_document_vector_is_fetched_once(fox_stats: InMemoryStatistics) -> None:
    class CountingStatistics:
        def __init__(self, inner: InMemoryStatistics) -> None:
            self.inner = inner
            self.vector_calls = 0

        def document_vector(self, doc_id: str):
            self.vector_calls += 1
            return self.inner.document_vector(doc_id)

        def document_length(self, doc_id: str) -> int:
            raise AssertionError("length must come from the fetched vector")

        def __getattr__(self, name):
            return getattr(self.inner, name)

    stats = CountingStatistics(fox_stats)
    model = DocumentLanguageModel.from_statistics("D1", stats, mu=1000.0)
    assert model.length == 5
    assert stats.vector_calls == 1
