from __future__ import annotations

import json
from pathlib import Path

import pytest

from queryexpansion.readers.runs import read_trec_run
from queryexpansion.readers.topics import qid_sort_key, read_topics

TREC_TOPICS = """\
<top>
<num> Number: 302
<title> Poliomyelitis and Post-Polio

<desc> Description:
Is the disease of Poliomyelitis (polio) under control in the world?

<narr> Narrative:
Relevant documents should contain data or outbreaks of the polio disease.
</top>

<top>
<num> Number: 301
<title> International Organized Crime
<desc> Description:
Identify organizations that participate in international criminal activity.
</top>
"""


@pytest.fixture
def trec_file(tmp_path: Path) -> Path:
    path = tmp_path / "topics.robust04.txt"
    path.write_text(TREC_TOPICS, encoding="utf-8")
    return path


def test_trec_topics_fields(trec_file: Path) -> None:
    topics = read_topics("trec", str(trec_file))
    assert list(topics) == ["301", "302"]
    assert topics["302"]["title"] == "Poliomyelitis and Post-Polio"
    assert topics["302"]["description"].startswith("Is the disease")
    assert topics["302"]["narrative"].endswith("polio disease.")
    assert "narrative" not in topics["301"]


def test_tsv_topics_are_merged_and_sorted(tmp_path: Path) -> None:
    first = tmp_path / "a.tsv"
    first.write_text("10\tten\nabc\tletters\n", encoding="utf-8")
    second = tmp_path / "b.tsv"
    second.write_text("9\tnine\n\n", encoding="utf-8")
    topics = read_topics("TSV", [str(first), str(second)])
    assert list(topics) == ["9", "10", "abc"]
    assert topics["10"] == {"title": "ten"}


def test_tsv_line_without_tab_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bad.tsv"
    path.write_text("1 no tab here\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_topics("tsv", str(path))


def test_jsonl_topics(tmp_path: Path) -> None:
    path = tmp_path / "queries.jsonl"
    rows = [{"_id": "q2", "text": "bear habitat"}, {"_id": "q1", "text": "brown fox"}]
    path.write_text("\n".join(json.dumps(r) for r in rows) + "\n", encoding="utf-8")
    topics = read_topics("jsonl", str(path))
    assert list(topics) == ["q1", "q2"]
    assert topics["q2"]["title"] == "bear habitat"


def test_unknown_reader() -> None:
    with pytest.raises(ValueError, match="Unable to load topic reader"):
        read_topics("xml", "whatever")


def test_missing_topics_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="does not exist"):
        read_topics("trec", str(tmp_path / "nope.txt"))


def test_qid_sort_key_orders_numbers_numerically() -> None:
    assert sorted(["100", "b", "20", "a", "3"], key=qid_sort_key) == ["3", "20", "100", "a", "b"]


def test_read_trec_run_keeps_file_order(tmp_path: Path) -> None:
    path = tmp_path / "run.bm25.txt"
    path.write_text(
        "2 Q0 D9 1 14.2 bm25\n"
        "1 Q0 D1 1 12.5 bm25\n"
        "1 Q0 D2 2 11.0 bm25\n"
        "2 Q0 D1 2 3 bm25\n",
        encoding="utf-8",
    )
    run = read_trec_run(path)
    assert list(run) == ["2", "1"]
    assert run["1"] == [("D1", 12.5), ("D2", 11.0)]
    assert run["2"][1] == ("D1", 3.0)


def test_read_trec_run_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "empty.txt"
    path.write_text("", encoding="utf-8")
    assert read_trec_run(path) == {}


def test_read_trec_run_without_score(tmp_path: Path) -> None:
    path = tmp_path / "short.txt"
    path.write_text("1 Q0 D1 1 2.0 tag\n1 Q0 D2 2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="line 2"):
        read_trec_run(path)


def test_read_trec_run_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        read_trec_run(tmp_path / "missing.txt")
