from __future__ import annotations
from pathlib import Path
from typing import Dict, Sequence
import math
import pandas as pd
import numpy as np
import matplotlib.pyplot as plt

# Metrics that change with fb_terms and original_query_weight
GRID_METRICS = ("avg_new_terms", "avg_original_mass")


def summarize_expansions(expansions: Sequence) -> Dict[str, float]:
    """
    Batch statistics of a list of QueryExpansion results.

    avg_new_terms and avg_original_mass are averaged over expanded queries:
    the number of terms feedback added, and the weight left on the terms of
    the original query.
    """
    succeeded = [e for e in expansions if e.ok]
    expanded = [e.expansion for e in succeeded if e.expansion.expanded]
    n = max(1, len(succeeded))
    n_exp = max(1, len(expanded))
    return {
        "n_queries": len(expansions),
        "n_expanded": len(expanded),
        "n_unexpanded": len(succeeded) - len(expanded),
        "n_failed": len(expansions) - len(succeeded),
        "expanded_ratio": len(expanded) / max(1, len(expansions)),
        "avg_terms": sum(len(e.expansion.query) for e in succeeded) / n,
        "avg_feedback_docs": sum(e.expansion.feedback_docs for e in succeeded) / n,
        "skipped_docs": sum(len(e.expansion.skipped) for e in succeeded),
        "avg_new_terms": sum(
            sum(1 for t in x.query if t not in x.original) for x in expanded
        ) / n_exp,
        "avg_original_mass": math.fsum(
            math.fsum(w for t, w in x.query.items() if t in x.original) for x in expanded
        ) / n_exp,
    }


def log_row(
    fb_docs: int,
    fb_terms: int,
    original_query_weight: float,
    expanded_ratio: float,
    avg_new_terms: float,
    avg_original_mass: float,
    avg_latency_ms: float,
) -> None:
    print(
        f"[fb_docs={fb_docs}, fb_terms={fb_terms}, w={original_query_weight}] "
        f"expanded={expanded_ratio:.2%} | "
        f"new_terms={avg_new_terms:.2f} | "
        f"original_mass={avg_original_mass:.4f} | "
        f"avg_latency={avg_latency_ms:.3f} ms"
    )


def pivot_grid(df: pd.DataFrame, metric: str, fb_terms_axis, weight_axis) -> pd.DataFrame:
    terms_sorted = sorted(set(fb_terms_axis))
    weights_sorted = sorted(set(weight_axis))
    mat = (
        df.pivot_table(
            index="original_query_weight",
            columns="fb_terms",
            values=metric,
            aggfunc="mean",
        )
        .reindex(index=weights_sorted)
        .reindex(columns=terms_sorted)
    )
    return mat


def plot_heatmap(
    df: pd.DataFrame,
    metric: str,
    fb_terms_axis,
    weight_axis,
    out_path: Path,
    title: str | None = None,
) -> None:
    mat_df = pivot_grid(df, metric, fb_terms_axis, weight_axis)
    mat = mat_df.values
    terms_tick = list(mat_df.columns)
    weight_tick = list(mat_df.index)

    plt.figure(figsize=(6, 5))
    im = plt.imshow(mat, aspect="auto", origin="lower")
    plt.xticks(
        ticks=np.arange(len(terms_tick)),
        labels=[str(x) for x in terms_tick],
        rotation=45,
        ha="right",
    )
    plt.yticks(ticks=np.arange(len(weight_tick)), labels=[str(x) for x in weight_tick])
    plt.xlabel("fb_terms")
    plt.ylabel("original_query_weight")
    plt.title(title or f"Heatmap {metric}")
    plt.colorbar(im, label=metric)
    plt.tight_layout()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out_path, dpi=200)
    plt.close()
