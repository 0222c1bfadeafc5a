from __future__ import annotations

import re
from typing import Any, Iterable, List, Optional, Protocol, Tuple

ANALYZERS: Tuple[str, ...] = ("lucene", "regex")

_NON_WORD = re.compile(r"[^\w]+|_+")


class Analyzer(Protocol):
    def analyze(self, text: str) -> List[str]: ...


class RegexAnalyzer:
    """Lowercases, splits on non-word characters and drops stopwords."""

    def __init__(self, stopwords: Optional[Iterable[str]] = None, min_token_length: int = 1) -> None:
        self.stopwords = frozenset(w.lower() for w in (stopwords or ()))
        self.min_token_length = max(1, int(min_token_length))

    def analyze(self, text: str) -> List[str]:
        if not text:
            return []
        tokens = _NON_WORD.sub(" ", text.lower()).split()
        return [
            t for t in tokens
            if len(t) >= self.min_token_length and t not in self.stopwords
        ]


class LuceneAnalyzer:
    """Pyserini's Lucene analyzer; non-stemming unless told otherwise."""

    def __init__(
        self,
        language: str = "en",
        stemming: bool = False,
        stemmer: str = "porter",
        stopwords: bool = True,
    ) -> None:
        from pyserini.analysis import Analyzer as PyseriniAnalyzer
        from pyserini.analysis import get_lucene_analyzer

        self._analyzer = PyseriniAnalyzer(
            get_lucene_analyzer(
                language=language,
                stemming=stemming,
                stemmer=stemmer,
                stopwords=stopwords,
            )
        )

    def analyze(self, text: str) -> List[str]:
        if not text:
            return []
        return list(self._analyzer.analyze(text))


def build_analyzer(kind: str = "lucene", **options: Any) -> Analyzer:
    """Return an analyzer by name ("lucene" or "regex")."""
    name = kind.lower()
    if name == "lucene":
        return LuceneAnalyzer(**options)
    if name == "regex":
        return RegexAnalyzer(**options)
    raise ValueError(f"Unknown analyzer '{kind}'. Choose one of {ANALYZERS}")
