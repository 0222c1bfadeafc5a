from __future__ import annotations

import argparse
import itertools
import logging
import time
from pathlib import Path
from typing import Dict

import pandas as pd
import numpy as np

from beir import LoggingHandler
from queryexpansion.config import ExpansionConfig, cfg_get, load_yaml_config
from queryexpansion.errors import InvalidConfiguration
from queryexpansion.expansion import ExpansionService, write_expansions
from queryexpansion.reporting import GRID_METRICS, log_row, plot_heatmap, summarize_expansions
from queryexpansion.runtime import (
    analyzer_from_config,
    format_duration,
    grid_values,
    run_from_config,
    statistics_from_config,
    topics_from_config,
)


# ===================================================================
# CLI
# ===================================================================
def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description="RM3 expansion grid over fb_docs, fb_terms and original_query_weight."
    )
    ap.add_argument(
        "--config",
        type=str,
        required=False,
        help="Path to YAML config (e.g., configs/rm3_grid.yaml)",
    )
    return ap.parse_args()


def main() -> None:

    # ===================================================================
    # Get config file with cli
    # ===================================================================
    args = parse_args()
    if not args.config:
        print("Please provide a config via --config <path-to-yaml>.")
        print("Example: python run_rm3_grid.py --config configs/rm3_grid.yaml")
        raise SystemExit(2)

    cfg_path = Path(args.config)
    if not cfg_path.exists():
        print(f"Config file not found: {cfg_path}")
        raise SystemExit(1)

    logging.basicConfig(
        format="%(asctime)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=logging.INFO,
        handlers=[LoggingHandler()],
    )
    start = time.perf_counter()

    # ===================================================================
    # Load config / parameters
    # ===================================================================
    cfg = load_yaml_config(cfg_path)

    search = cfg_get(cfg, "search", default={}) or {}
    fb_docs_vals = grid_values(search, "fb_docs", 10)
    fb_terms_vals = grid_values(search, "fb_terms", 10)
    weight_vals = grid_values(search, "original_query_weight", 0.5)

    # Validate every combination before any work starts
    try:
        base = ExpansionConfig.from_mapping(cfg_get(cfg, "rm3", default={}))
        topic_field = cfg_get(cfg_get(cfg, "topics", default={}) or {}, "field", default=None)
        base = base.with_overrides(topic_field=topic_field)
        grid = [
            base.with_overrides(
                fb_docs=int(d), fb_terms=int(t), original_query_weight=float(w)
            )
            for d, t, w in itertools.product(fb_docs_vals, fb_terms_vals, weight_vals)
        ]
    except (InvalidConfiguration, TypeError, ValueError) as exc:
        print(f"Invalid configuration: {exc}")
        raise SystemExit(2)

    name: str = str(cfg_get(cfg, "name", "runtag", default="rm3"))
    out_dir = Path(cfg_get(cfg, "out_dir", "output", default="runs/rm3_grid"))
    out_csv = Path(cfg_get(cfg, "summary_csv", default=str(out_dir / f"{name}_grid.csv")))

    plots_cfg = cfg_get(cfg, "plots", default={}) or {}
    make_plots: bool = bool(plots_cfg.get("enabled", True))
    fig_dir = Path(plots_cfg.get("out_dir", "figures"))

    # ===================================================================
    # Load topics / run
    # ===================================================================
    print("[INFO] Loading topics and run…")
    topics = topics_from_config(cfg)
    run = run_from_config(cfg)
    print(f"[OK] Loaded. n_topics={len(topics)} n_run_queries={len(run)}")

    # ===================================================================
    # Grid over fb_docs, fb_terms and original_query_weight
    # ===================================================================
    all_rows: list[Dict[str, float]] = []
    analyzer = analyzer_from_config(cfg)

    with statistics_from_config(cfg, analyzer) as stats:
        for rm3 in grid:
            service = ExpansionService(stats, analyzer, rm3)

            expansions = service.expand_all(topics, run)

            out_path = out_dir / (
                f"{name}.fbd{rm3.fb_docs}.fbt{rm3.fb_terms}.oqw{rm3.original_query_weight}.txt"
            )
            write_expansions(expansions, out_path)

            summary = summarize_expansions(expansions)
            avg_latency_ms = np.mean([e.elapsed_ms for e in expansions]) if expansions else 0.0

            row = {
                "fb_docs": int(rm3.fb_docs),
                "fb_terms": int(rm3.fb_terms),
                "original_query_weight": float(rm3.original_query_weight),
                **summary,
                "avg_latency_ms": float(avg_latency_ms),
                "output": str(out_path),
            }
            all_rows.append(row)

            log_row(
                fb_docs=rm3.fb_docs,
                fb_terms=rm3.fb_terms,
                original_query_weight=rm3.original_query_weight,
                expanded_ratio=row["expanded_ratio"],
                avg_new_terms=row["avg_new_terms"],
                avg_original_mass=row["avg_original_mass"],
                avg_latency_ms=row["avg_latency_ms"],
            )

    # ===================================================================
    # Save results
    # ===================================================================
    df = pd.DataFrame(all_rows)

    if not df.empty:
        df = df.sort_values(
            ["fb_docs", "fb_terms", "original_query_weight"], kind="stable"
        ).reset_index(drop=True)

    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out_csv, index=False)

    # ===================================================================
    # Generate plots (one fb_terms x original_query_weight grid per fb_docs)
    # ===================================================================
    if make_plots and len(df) > 0:
        for fb_docs, part in df.groupby("fb_docs"):
            for m in GRID_METRICS:
                plot_heatmap(
                    part,
                    m,
                    [int(t) for t in fb_terms_vals],
                    [float(w) for w in weight_vals],
                    fig_dir / f"heatmap_{name}_fbd{fb_docs}_{m}.png",
                    title=f"{m} (fb_docs={fb_docs})",
                )

    print(f"\nSaved CSV to: {out_csv}")
    if make_plots:
        print(f"Figures saved to: {fig_dir.resolve()}")
    logging.info(f"Total run time: {format_duration(time.perf_counter() - start)}")


if __name__ == "__main__":
    main()
