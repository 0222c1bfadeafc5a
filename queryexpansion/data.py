from __future__ import annotations
from pathlib import Path
from typing import Dict, Optional, OrderedDict
from collections import OrderedDict as _OrderedDict
from beir import util
from beir.datasets.data_loader import GenericDataLoader


def load_beir_topics(
    dataset: str,
    split: str = "test",
    cache_dir: Optional[str] = None,
) -> OrderedDict[str, Dict[str, str]]:
    """
    Download (if needed) a BEIR dataset and return its queries as topics.

    Args:
        dataset: BEIR dataset ID (e.g., "scidocs", "scifact",
                 "trec-covid", ...)
        split:   One of "train" | "dev" | "test" (depending on dataset
                 availability)
        cache_dir: Local directory to cache the downloaded/unzipped data
                   (default: ./datasets)

    Returns:
        topics: OrderedDict[qid] -> {"title": query text}, ordered by qid
    """
    url = f"https://public.ukp.informatik.tu-darmstadt.de/thakur/BEIR/datasets/{dataset}.zip"
    cache_root = Path(cache_dir) if cache_dir else Path("datasets")
    cache_root.mkdir(parents=True, exist_ok=True)

    data_dir = util.download_and_unzip(url, str(cache_root))
    _corpus, queries, _qrels = GenericDataLoader(data_folder=data_dir).load(
        split=split
    )

    return _OrderedDict(
        (str(qid), {"title": text})
        for qid, text in sorted(queries.items(), key=lambda kv: kv[0])
    )
