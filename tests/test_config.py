from __future__ import annotations

from pathlib import Path

import pytest

from queryexpansion.config import ExpansionConfig, cfg_get, load_yaml_config
from queryexpansion.errors import InvalidConfiguration


def test_defaults() -> None:
    config = ExpansionConfig()
    assert (config.fb_docs, config.fb_terms, config.original_query_weight) == (10, 10, 0.5)
    assert config.mu == 1000.0
    assert config.precision == 4


def test_from_mapping_accepts_anserini_spellings() -> None:
    config = ExpansionConfig.from_mapping(
        {"fbDocs": 5, "fbTerms": "20", "originalQueryWeight": 0.7, "topicfield": "description"}
    )
    assert config.fb_docs == 5
    assert config.fb_terms == 20
    assert config.original_query_weight == pytest.approx(0.7)
    assert config.topic_field == "description"


def test_from_mapping_none_values() -> None:
    config = ExpansionConfig.from_mapping({"threads": "null", "doc_timeout": None, "DOC_WEIGHTING": "Score"})
    assert config.threads is None
    assert config.doc_timeout is None
    assert config.doc_weighting == "score"


@pytest.mark.parametrize(
    "section",
    [
        {"fb_docs": 0},
        {"fb_terms": -3},
        {"original_query_weight": 1.5},
        {"mu": 0},
        {"precision": -1},
        {"doc_weighting": "rank"},
        {"threads": 0},
        {"doc_timeout": -1},
        {"fb_docs": "many"},
    ],
)
def test_from_mapping_rejects_invalid_values(section) -> None:
    with pytest.raises(InvalidConfiguration):
        ExpansionConfig.from_mapping(section)


def test_invalid_configuration_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        ExpansionConfig(original_query_weight=-0.1)


def test_with_overrides_ignores_none() -> None:
    config = ExpansionConfig(fb_docs=3).with_overrides(fb_docs=None, fb_terms=7)
    assert (config.fb_docs, config.fb_terms) == (3, 7)
    with pytest.raises(InvalidConfiguration):
        config.with_overrides(fb_terms=0)


def test_load_yaml_config(tmp_path: Path) -> None:
    path = tmp_path / "cfg.yaml"
    path.write_text("rm3:\n  fbDocs: 4\nruntag: test\n", encoding="utf-8")
    cfg = load_yaml_config(path)
    assert cfg["runtag"] == "test"
    assert ExpansionConfig.from_mapping(cfg["rm3"]).fb_docs == 4


def test_load_yaml_config_empty_and_scalar(tmp_path: Path) -> None:
    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    assert load_yaml_config(empty) == {}
    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(InvalidConfiguration):
        load_yaml_config(scalar)


def test_cfg_get_prefers_exact_key_then_case_variants() -> None:
    cfg = {"mu": 1, "THREADS": 4}
    assert cfg_get(cfg, "mu") == 1
    assert cfg_get(cfg, "threads") == 4
    assert cfg_get(cfg, "missing", "other", default="x") == "x"


@pytest.mark.parametrize(
    "raw, expected",
    [(True, True), ("false", False), ("No", False), ("yes", True), ("0", False), (1, True)],
)
def test_filter_terms_parses_booleans(raw, expected) -> None:
    assert ExpansionConfig.from_mapping({"filter_terms": raw}).filter_terms is expected


def test_filter_terms_rejects_non_booleans() -> None:
    with pytest.raises(InvalidConfiguration):
        ExpansionConfig.from_mapping({"filter_terms": "sometimes"})
    with pytest.raises(InvalidConfiguration):
        ExpansionConfig(filter_terms="false")
