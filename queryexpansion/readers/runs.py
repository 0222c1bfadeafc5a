from __future__ import annotations

import logging
from collections import OrderedDict
from pathlib import Path
from typing import List, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

TREC_RUN_COLUMNS = ["qid", "q0", "docid", "rank", "score", "tag"]

RankedList = List[Tuple[str, float]]


def read_trec_run(path: str | Path) -> "OrderedDict[str, RankedList]":
    """
    Read a TREC run file (``qid Q0 docid rank score tag``).

    Returns:
        OrderedDict[qid] -> [(docid, score), ...] in the order of the file;
        queries appear in order of first occurrence.
    """
    run_path = Path(path)
    if not run_path.is_file():
        raise ValueError(f"Run file does not exist or is not a file: {run_path}")

    try:
        df = pd.read_csv(
            run_path,
            sep=r"\s+",
            header=None,
            names=TREC_RUN_COLUMNS,
            usecols=["qid", "docid", "score"],
            dtype={"qid": str, "docid": str, "score": float},
            engine="python",
        )
    except pd.errors.EmptyDataError:
        logger.warning("Run file %s is empty", run_path)
        return OrderedDict()

    if df["score"].isna().any():
        bad = int(df["score"].isna().idxmax()) + 1
        raise ValueError(f"{run_path}: line {bad} has no score column")

    run: "OrderedDict[str, RankedList]" = OrderedDict()
    for qid, docid, score in df.itertuples(index=False, name=None):
        run.setdefault(qid, []).append((docid, float(score)))
    logger.info("Loaded run %s: %d queries, %d entries", run_path, len(run), len(df))
    return run
