from __future__ import annotations

import json
from pathlib import Path

import pytest

from queryexpansion.index.analysis import RegexAnalyzer
from queryexpansion.runtime import (
    analyzer_from_config,
    format_duration,
    grid_values,
    run_from_config,
    statistics_from_config,
    topics_from_config,
)


def test_format_duration() -> None:
    assert format_duration(0) == "00:00:00"
    assert format_duration(3725.4) == "01:02:05"


def test_grid_values() -> None:
    assert grid_values({"fb_terms": [5, 10]}, "fb_terms", 10) == [5, 10]
    assert grid_values({"fb_terms": 7}, "fb_terms", 10) == [7]
    assert grid_values({}, "fb_terms", 10) == [10]


def test_analyzer_from_config() -> None:
    analyzer = analyzer_from_config({"analyzer": {"kind": "regex", "stopwords": ["the"]}})
    assert isinstance(analyzer, RegexAnalyzer)
    assert analyzer.analyze("the fox") == ["fox"]


def test_topics_and_run_from_config(tmp_path: Path) -> None:
    topics = tmp_path / "q.tsv"
    topics.write_text("2\tbear\n1\tfox\n", encoding="utf-8")
    run = tmp_path / "run.txt"
    run.write_text("1 Q0 D1 1 2.5 bm25\n", encoding="utf-8")
    cfg = {"topics": {"reader": "tsv", "paths": [str(topics)]}, "run": {"path": str(run)}}
    assert list(topics_from_config(cfg)) == ["1", "2"]
    assert run_from_config(cfg) == {"1": [("D1", 2.5)]}
    assert run_from_config({"run": str(run)}) == {"1": [("D1", 2.5)]}


def test_missing_sections_raise() -> None:
    with pytest.raises(ValueError):
        topics_from_config({})
    with pytest.raises(ValueError):
        topics_from_config({"topics": {"reader": "trec"}})
    with pytest.raises(ValueError):
        run_from_config({})


def test_statistics_from_config_jsonl(tmp_path: Path) -> None:
    corpus = tmp_path / "corpus.jsonl"
    corpus.write_text(json.dumps({"docid": "D1", "body": "brown fox"}) + "\n", encoding="utf-8")
    cfg = {"index": {"backend": "jsonl", "path": str(corpus), "id_field": "docid", "text_field": "body"}}
    with statistics_from_config(cfg, RegexAnalyzer()) as stats:
        assert stats.document_vector("D1") == {"brown": 1, "fox": 1}
    with pytest.raises(ValueError):
        with statistics_from_config({}, RegexAnalyzer()):
            pass
