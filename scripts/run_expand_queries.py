from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path

from beir import LoggingHandler
from queryexpansion.config import ExpansionConfig, cfg_get, load_yaml_config
from queryexpansion.errors import InvalidConfiguration
from queryexpansion.expansion import ExpansionService, write_expansions
from queryexpansion.reporting import summarize_expansions
from queryexpansion.runtime import (
    analyzer_from_config,
    format_duration,
    run_from_config,
    statistics_from_config,
    topics_from_config,
)


# ===================================================================
# CLI
# ===================================================================
def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description="RM3 query expansion of a topic set from an existing run (config-driven)."
    )
    ap.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to YAML config (e.g., configs/expand_robust04.yaml)",
    )
    return ap.parse_args()


# ===================================================================
# Utils
# ===================================================================
def setup_logging():
    logging.basicConfig(
        format="%(asctime)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=logging.INFO,
        handlers=[LoggingHandler()],
    )


# ===================================================================
# Main
# ===================================================================
def main() -> None:
    args = parse_args()
    setup_logging()

    cfg_path = Path(args.config)
    if not cfg_path.exists():
        print(f"Config file not found: {cfg_path}")
        raise SystemExit(1)

    start = time.perf_counter()
    cfg = load_yaml_config(cfg_path)

    # -------------------------------------------------------------------
    # Parameters (validated before anything is read)
    # -------------------------------------------------------------------
    try:
        rm3 = ExpansionConfig.from_mapping(cfg_get(cfg, "rm3", default={}))
        topic_field = cfg_get(cfg_get(cfg, "topics", default={}) or {}, "field", default=None)
        rm3 = rm3.with_overrides(topic_field=topic_field)
    except InvalidConfiguration as exc:
        print(f"Invalid configuration: {exc}")
        raise SystemExit(2)

    OUTPUT = Path(cfg_get(cfg, "output", default="runs/expanded_topics.txt"))
    RUNTAG: str = str(cfg_get(cfg, "runtag", default="prfbench"))
    logging.info(f"runtag: {RUNTAG}")
    logging.info(f"rm3: {rm3.to_dict()}")

    # -------------------------------------------------------------------
    # Topics + run
    # -------------------------------------------------------------------
    topics = topics_from_config(cfg)
    run = run_from_config(cfg)
    missing = [qid for qid in topics if qid not in run]
    logging.info(
        f"Loaded |topics|={len(topics)} |run queries|={len(run)} |topics without run|={len(missing)}"
    )

    # -------------------------------------------------------------------
    # Expansion
    # -------------------------------------------------------------------
    analyzer = analyzer_from_config(cfg)
    with statistics_from_config(cfg, analyzer) as stats:
        service = ExpansionService(stats, analyzer, rm3)
        t0 = time.perf_counter()
        expansions = service.expand_all(topics, run)
        t1 = time.perf_counter()

    written = write_expansions(expansions, OUTPUT)

    # -------------------------------------------------------------------
    # Console summary
    # -------------------------------------------------------------------
    summary = summarize_expansions(expansions)
    nq = max(1, len(expansions))
    avg_ms = (t1 - t0) / nq * 1000.0
    print(
        f"[fb_docs={rm3.fb_docs}, fb_terms={rm3.fb_terms}, w={rm3.original_query_weight}] "
        f"expanded={summary['n_expanded']} | unexpanded={summary['n_unexpanded']} | "
        f"failed={summary['n_failed']} | avg_terms={summary['avg_terms']:.2f} | "
        f"avg_time={avg_ms:.3f} ms/query"
    )
    print(f"\nSaved {written} expanded queries to: {OUTPUT}")
    logging.info(f"Total run time: {format_duration(time.perf_counter() - start)}")


if __name__ == "__main__":
    main()
