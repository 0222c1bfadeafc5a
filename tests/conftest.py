from __future__ import annotations

import pytest

from queryexpansion.index.analysis import RegexAnalyzer
from queryexpansion.index.statistics import InMemoryStatistics

FOX_DOCS = {
    "D1": "the quick brown fox jumps",
    "D2": "brown bear in the woods",
}


@pytest.fixture
def analyzer() -> RegexAnalyzer:
    return RegexAnalyzer()


@pytest.fixture
def fox_stats(analyzer: RegexAnalyzer) -> InMemoryStatistics:
    return InMemoryStatistics.from_texts(FOX_DOCS, analyzer)
