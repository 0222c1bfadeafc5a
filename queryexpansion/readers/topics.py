"""Topic readers.

Every reader turns one source (a file path, a topic-set name or a BEIR
dataset ID) into ``{qid: {field: text}}``. Readers are selected by name from
:data:`TOPIC_READERS`; :func:`read_topics` merges several sources and orders
the result by query id.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, OrderedDict, Tuple, Union
from collections import OrderedDict as _OrderedDict

logger = logging.getLogger(__name__)

Topics = Dict[str, Dict[str, str]]

_TREC_TAG = re.compile(r"<(num|title|desc|narr)>", re.IGNORECASE)
_TREC_PREFIX = {
    "num": re.compile(r"^\s*Number:\s*", re.IGNORECASE),
    "title": re.compile(r"^\s*Topic:\s*", re.IGNORECASE),
    "desc": re.compile(r"^\s*Description:\s*", re.IGNORECASE),
    "narr": re.compile(r"^\s*Narrative:\s*", re.IGNORECASE),
}
_TREC_FIELDS = {"title": "title", "desc": "description", "narr": "narrative"}


def _readable_file(source: str) -> Path:
    path = Path(source)
    if not path.is_file():
        raise ValueError(f"Topics file : {path} does not exist or is not a (readable) file.")
    return path


def _clean(text: str) -> str:
    text = re.sub(r"</\w+>", " ", text)
    return " ".join(text.split())


# ---------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------

def read_trec_topics(source: str) -> Topics:
    """Classic TREC ``<top> <num> <title> <desc> <narr> </top>`` topics."""
    content = _readable_file(source).read_text(encoding="utf-8", errors="replace")
    topics: Topics = {}
    for block in re.split(r"<top>", content, flags=re.IGNORECASE)[1:]:
        block = re.split(r"</top>", block, flags=re.IGNORECASE)[0]
        parts = _TREC_TAG.split(block)
        # parts = [prefix, tag, text, tag, text, ...]
        fields: Dict[str, str] = {}
        for tag, text in zip(parts[1::2], parts[2::2]):
            tag = tag.lower()
            prefix = _TREC_PREFIX.get(tag)
            if prefix is not None:
                text = prefix.sub("", text)
            fields[tag] = _clean(text)
        qid = fields.pop("num", "")
        if not qid:
            raise ValueError(f"{source}: topic without <num> field")
        topics[qid] = {_TREC_FIELDS[tag]: text for tag, text in fields.items()}
    return topics


def read_tsv_topics(source: str) -> Topics:
    """``qid<TAB>text`` per line (MS MARCO style)."""
    topics: Topics = {}
    with open(_readable_file(source), "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.rstrip("\r\n")
            if not line.strip():
                continue
            qid, sep, text = line.partition("\t")
            if not sep:
                raise ValueError(f"{source}:{line_no}: expected 'qid<TAB>text'")
            topics[qid.strip()] = {"title": text.strip()}
    return topics


def read_jsonl_topics(source: str) -> Topics:
    """BEIR ``queries.jsonl``: ``{"_id": ..., "text": ...}`` per line."""
    topics: Topics = {}
    with open(_readable_file(source), "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            record = json.loads(line)
            qid = record.get("_id", record.get("id"))
            if qid is None:
                raise ValueError(f"{source}:{line_no}: missing '_id' field")
            topics[str(qid)] = {"title": str(record.get("text", record.get("title", "")))}
    return topics


def read_beir_topics(source: str) -> Topics:
    """``source`` is a BEIR dataset ID, optionally suffixed with ``:split``."""
    from queryexpansion.data import load_beir_topics

    dataset, _, split = source.partition(":")
    return dict(load_beir_topics(dataset, split=split or "test"))


def read_pyserini_topics(source: str) -> Topics:
    """``source`` is the name of a topic set bundled with Pyserini (e.g. ``robust04``)."""
    from pyserini.search import get_topics

    raw = get_topics(source)
    if not raw:
        raise ValueError(f"Unknown Pyserini topic set: {source}")
    return {str(qid): {str(k): str(v) for k, v in fields.items()} for qid, fields in raw.items()}


TOPIC_READERS: Mapping[str, Callable[[str], Topics]] = {
    "trec": read_trec_topics,
    "tsv": read_tsv_topics,
    "jsonl": read_jsonl_topics,
    "beir": read_beir_topics,
    "pyserini": read_pyserini_topics,
}


# ---------------------------------------------------------------------
# Merging / ordering
# ---------------------------------------------------------------------

def qid_sort_key(qid: str) -> Tuple[int, Union[int, str]]:
    """Numeric ids first, in numeric order, then the others lexicographically."""
    return (0, int(qid)) if qid.isdigit() else (1, qid)


def read_topics(reader: str, sources: Union[str, Iterable[str]]) -> OrderedDict[str, Dict[str, str]]:
    """Read and merge topics from one or more sources with the named reader."""
    try:
        read = TOPIC_READERS[reader.lower()]
    except KeyError:
        raise ValueError(
            f"Unable to load topic reader: {reader}. Choose one of {sorted(TOPIC_READERS)}"
        ) from None

    if isinstance(sources, str):
        sources = [sources]
    merged: Topics = {}
    source_list: List[str] = list(sources)
    if not source_list:
        raise ValueError("No topic source given")
    for source in source_list:
        topics = read(str(source))
        logger.info("Read %d topics from %s (%s)", len(topics), source, reader)
        merged.update(topics)

    return _OrderedDict(sorted(merged.items(), key=lambda kv: qid_sort_key(kv[0])))
