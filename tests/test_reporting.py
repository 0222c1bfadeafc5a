from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from queryexpansion.config import ExpansionConfig  # noqa: E402
from queryexpansion.expansion import ExpansionService  # noqa: E402
from queryexpansion.reporting import log_row, pivot_grid, plot_heatmap, summarize_expansions  # noqa: E402

TOPICS = {"1": {"title": "brown fox"}, "2": {"title": "bear"}}
RUN = {"1": [("D1", 1.0), ("D404", 0.5)]}


def summary_for(fox_stats, analyzer, **params):
    config = ExpansionConfig(fb_docs=2, threads=1, **params)
    return summarize_expansions(ExpansionService(fox_stats, analyzer, config).expand_all(TOPICS, RUN))


def grid_frame() -> pd.DataFrame:
    rows = []
    for fb_terms in (20, 10):
        for w in (0.3, 0.5):
            rows.append(
                {
                    "fb_docs": 10,
                    "fb_terms": fb_terms,
                    "original_query_weight": w,
                    "avg_original_mass": w,
                    "avg_new_terms": fb_terms / 2,
                }
            )
    return pd.DataFrame(rows)


def test_summarize_expansions_counts(fox_stats, analyzer) -> None:
    summary = summary_for(fox_stats, analyzer, fb_terms=2)
    assert summary["n_queries"] == 2
    assert summary["n_expanded"] == 1
    assert summary["n_unexpanded"] == 1
    assert summary["n_failed"] == 0
    assert summary["expanded_ratio"] == pytest.approx(0.5)
    assert summary["skipped_docs"] == 1


def test_grid_metrics_follow_the_parameters(fox_stats, analyzer) -> None:
    # D1 relevance model top-2 is brown, the; brown overlaps the original query
    narrow = summary_for(fox_stats, analyzer, fb_terms=2, original_query_weight=0.5)
    wide = summary_for(fox_stats, analyzer, fb_terms=5, original_query_weight=0.5)
    heavy = summary_for(fox_stats, analyzer, fb_terms=2, original_query_weight=0.9)
    assert narrow["avg_new_terms"] == 1
    assert wide["avg_new_terms"] == 3
    assert narrow["avg_original_mass"] < heavy["avg_original_mass"] <= 1.0
    assert narrow["avg_original_mass"] > 0.5


def test_pivot_grid_axes_are_sorted() -> None:
    mat = pivot_grid(grid_frame(), "avg_new_terms", [20, 10], [0.5, 0.3])
    assert list(mat.columns) == [10, 20]
    assert list(mat.index) == [0.3, 0.5]
    assert mat.loc[0.5, 20] == pytest.approx(10.0)


def test_plot_heatmap_writes_file(tmp_path: Path) -> None:
    out = tmp_path / "plots" / "avg_original_mass.png"
    plot_heatmap(grid_frame(), "avg_original_mass", [10, 20], [0.3, 0.5], out, title="mass")
    assert out.is_file()


def test_log_row(capsys) -> None:
    log_row(10, 20, 0.5, 1.0, 18.0, 0.6123, 2.5)
    out = capsys.readouterr().out
    assert "fb_terms=20" in out
    assert "original_mass=0.6123" in out
