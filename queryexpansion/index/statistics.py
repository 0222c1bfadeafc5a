from __future__ import annotations

import json
import logging
from collections import Counter
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Protocol, Sequence, Tuple

from queryexpansion.errors import MissingDocumentError, UnknownTermError

logger = logging.getLogger(__name__)


class TermStatisticsProvider(Protocol):
    """Read-only term statistics of an indexed collection.

    Implementations must be safe to read from several threads at once.
    Unknown documents raise :class:`MissingDocumentError`, unknown terms raise
    :class:`UnknownTermError`; a known term absent from a known document has
    frequency 0.
    """

    def term_frequency_in_document(self, term: str, doc_id: str) -> int: ...

    def document_length(self, doc_id: str) -> int: ...

    def document_vector(self, doc_id: str) -> Mapping[str, int]: ...

    def collection_frequency(self, term: str) -> int: ...

    def document_frequency(self, term: str) -> int: ...

    def total_collection_terms(self) -> int: ...

    def num_documents(self) -> int: ...


# ---------------------------------------------------------------------
# In-memory provider
# ---------------------------------------------------------------------

class InMemoryStatistics:
    """Statistics computed from already tokenized documents.

    Everything is built in the constructor and never mutated afterwards.
    """

    def __init__(self, documents: Mapping[str, Sequence[str]]) -> None:
        self._vectors: Dict[str, Dict[str, int]] = {}
        self._lengths: Dict[str, int] = {}
        cf: Counter[str] = Counter()
        df: Counter[str] = Counter()
        for doc_id, tokens in documents.items():
            vector = Counter(t for t in tokens if t)
            self._vectors[str(doc_id)] = dict(vector)
            self._lengths[str(doc_id)] = sum(vector.values())
            cf.update(vector)
            df.update(vector.keys())
        self._cf: Dict[str, int] = dict(cf)
        self._df: Dict[str, int] = dict(df)
        self._total_terms = sum(self._lengths.values())

    @classmethod
    def from_texts(cls, texts: Mapping[str, str], analyzer) -> "InMemoryStatistics":
        return cls({doc_id: analyzer.analyze(text) for doc_id, text in texts.items()})

    @classmethod
    def from_jsonl(cls, path: str | Path, analyzer, id_field: str = "id", text_field: str = "contents") -> "InMemoryStatistics":
        """Load a Pyserini ``JsonCollection``-style corpus (one JSON object per line)."""
        texts: Dict[str, str] = {}
        with open(path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                record = json.loads(line)
                doc_id = record.get(id_field, record.get("_id"))
                if doc_id is None:
                    raise ValueError(f"{path}:{line_no}: missing '{id_field}' field")
                text = record.get(text_field)
                if text is None:
                    # BEIR corpus layout
                    text = " ".join(p for p in (record.get("title"), record.get("text")) if p)
                texts[str(doc_id)] = text
        logger.info("Loaded %d documents from %s", len(texts), path)
        return cls.from_texts(texts, analyzer)

    def _vector(self, doc_id: str) -> Dict[str, int]:
        try:
            return self._vectors[doc_id]
        except KeyError:
            raise MissingDocumentError(doc_id) from None

    def term_frequency_in_document(self, term: str, doc_id: str) -> int:
        return self._vector(doc_id).get(term, 0)

    def document_length(self, doc_id: str) -> int:
        self._vector(doc_id)
        return self._lengths[doc_id]

    def document_vector(self, doc_id: str) -> Mapping[str, int]:
        return dict(self._vector(doc_id))

    def collection_frequency(self, term: str) -> int:
        try:
            return self._cf[term]
        except KeyError:
            raise UnknownTermError(term) from None

    def document_frequency(self, term: str) -> int:
        try:
            return self._df[term]
        except KeyError:
            raise UnknownTermError(term) from None

    def total_collection_terms(self) -> int:
        return self._total_terms

    def num_documents(self) -> int:
        return len(self._vectors)


# ---------------------------------------------------------------------
# Lucene provider (Pyserini)
# ---------------------------------------------------------------------

class LuceneStatistics:
    """
    Thin wrapper around Pyserini's LuceneIndexReader to:
    - open a local index directory or a prebuilt index
    - expose the statistics needed by the relevance model

    The index must have been built with ``--storeDocvectors``.
    """

    def __init__(self, reader: Any) -> None:
        self._reader = reader
        stats = reader.stats()
        self._total_terms = int(stats["total_terms"])
        self._documents = int(stats["documents"])

    @classmethod
    def from_index_dir(cls, index_dir: str) -> "LuceneStatistics":
        from pyserini.index.lucene import LuceneIndexReader

        if not Path(index_dir).is_dir():
            raise ValueError(f"Index directory does not exist: {index_dir}")
        return cls(LuceneIndexReader(index_dir))

    @classmethod
    def from_prebuilt_index(cls, name: str) -> "LuceneStatistics":
        from pyserini.index.lucene import LuceneIndexReader

        return cls(LuceneIndexReader.from_prebuilt_index(name))

    def close(self) -> None:
        self._reader.reader.close()

    def document_vector(self, doc_id: str) -> Mapping[str, int]:
        try:
            vector = self._reader.get_document_vector(doc_id)
        except Exception as exc:
            # pyserini surfaces Lucene failures as ValueError or as a jnius JavaException
            raise MissingDocumentError(doc_id, f"{type(exc).__name__}: {exc}") from exc
        if vector is None:
            raise MissingDocumentError(doc_id)
        return vector

    def term_frequency_in_document(self, term: str, doc_id: str) -> int:
        return int(self.document_vector(doc_id).get(term, 0))

    def document_length(self, doc_id: str) -> int:
        return int(sum(self.document_vector(doc_id).values()))

    def _term_counts(self, term: str) -> Tuple[int, int]:
        # analyzer=None: terms coming from document vectors are already analyzed
        df, cf = self._reader.get_term_counts(term, analyzer=None)
        if cf == 0:
            raise UnknownTermError(term)
        return int(df), int(cf)

    def collection_frequency(self, term: str) -> int:
        return self._term_counts(term)[1]

    def document_frequency(self, term: str) -> int:
        return self._term_counts(term)[0]

    def total_collection_terms(self) -> int:
        return self._total_terms

    def num_documents(self) -> int:
        return self._documents


# ---------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------

STATISTICS_BACKENDS: Tuple[str, ...] = ("lucene", "prebuilt", "jsonl")


@contextmanager
def open_statistics(
    backend: str,
    location: str,
    analyzer=None,
    **options: Any,
) -> Iterator[TermStatisticsProvider]:
    """Open a statistics provider for the duration of a batch.

    Args:
        backend: "lucene" (index directory), "prebuilt" (Pyserini prebuilt
                 index name) or "jsonl" (corpus file analyzed in memory)
        location: index directory, prebuilt index name or corpus path
        analyzer: analyzer used to tokenize a jsonl corpus

    The Lucene reader is closed when the block exits, whatever happens in it.
    """
    kind = backend.lower()
    if kind == "lucene":
        provider = LuceneStatistics.from_index_dir(location)
    elif kind == "prebuilt":
        provider = LuceneStatistics.from_prebuilt_index(location)
    elif kind == "jsonl":
        if analyzer is None:
            raise ValueError("the jsonl statistics backend needs an analyzer")
        provider = InMemoryStatistics.from_jsonl(location, analyzer, **options)
    else:
        raise ValueError(f"Unknown statistics backend '{backend}'. Choose one of {STATISTICS_BACKENDS}")

    logger.info(
        "Opened %s statistics from %s: %d documents, %d terms",
        kind,
        location,
        provider.num_documents(),
        provider.total_collection_terms(),
    )
    try:
        yield provider
    finally:
        closer = getattr(provider, "close", None)
        if closer is not None:
            closer()
            logger.info("Closed %s statistics", kind)


def collection_probability(stats: TermStatisticsProvider, term: str) -> float:
    """P_c(t) = cf(t) / |C|."""
    total = stats.total_collection_terms()
    if total <= 0:
        return 0.0
    return stats.collection_frequency(term) / total

