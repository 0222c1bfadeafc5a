"""Turn the sections of a YAML run config into expansion collaborators."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, OrderedDict

from queryexpansion.config import cfg_get
from queryexpansion.index.analysis import Analyzer, build_analyzer
from queryexpansion.index.statistics import TermStatisticsProvider, open_statistics
from queryexpansion.readers.runs import RankedList, read_trec_run
from queryexpansion.readers.topics import read_topics


def analyzer_from_config(cfg: Mapping[str, Any]) -> Analyzer:
    section = dict(cfg_get(cfg, "analyzer", default={}) or {})
    kind = str(section.pop("kind", "lucene"))
    return build_analyzer(kind, **section)


def topics_from_config(cfg: Mapping[str, Any]) -> OrderedDict[str, Dict[str, str]]:
    section = cfg_get(cfg, "topics", default=None)
    if not section:
        raise ValueError("config has no 'topics' section")
    reader = str(cfg_get(section, "reader", default="trec"))
    sources = cfg_get(section, "paths", "path", "name", "dataset", default=None)
    if sources is None:
        raise ValueError("topics section needs 'paths', 'name' or 'dataset'")
    if isinstance(sources, (list, tuple)):
        sources = [str(s) for s in sources]
    return read_topics(reader, sources)


def run_from_config(cfg: Mapping[str, Any]) -> Dict[str, RankedList]:
    section = cfg_get(cfg, "run", default=None)
    path = cfg_get(section, "path", default=None) if isinstance(section, Mapping) else section
    if not path:
        raise ValueError("config has no 'run.path'")
    return read_trec_run(str(path))


@contextmanager
def statistics_from_config(cfg: Mapping[str, Any], analyzer: Analyzer) -> Iterator[TermStatisticsProvider]:
    section = cfg_get(cfg, "index", default=None)
    if not section:
        raise ValueError("config has no 'index' section")
    backend = str(cfg_get(section, "backend", default="lucene"))
    location = cfg_get(section, "path", "name", "prebuilt_index", default=None)
    if not location:
        raise ValueError("index section needs 'path' (or 'name' for a prebuilt index)")
    options: Dict[str, Any] = {}
    for key in ("id_field", "text_field"):
        if key in section:
            options[key] = section[key]
    with open_statistics(backend, str(location), analyzer=analyzer, **options) as stats:
        yield stats


def grid_values(section: Mapping[str, Any], key: str, default: Any) -> List[Any]:
    value = cfg_get(section, key, default=default)
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def format_duration(seconds: float) -> str:
    seconds = int(round(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
