import csv

import pytest

from metrics import _list_stat, append_summary_csv, collect_run_metrics, quick_qc, summary_row
from simulator import MemorySystem


@pytest.fixture
def fragmented(system):
    system.allocate(200)
    system.allocate(150)
    system.deallocate(1)
    system.access(0)
    system.access(0)
    return system


def _read(path):
    with open(path, newline="", encoding="utf-8") as f:
        r = csv.DictReader(f)
        return list(r.fieldnames), list(r)


def test_collect_reference_scenario(fragmented):
    row = collect_run_metrics(fragmented)

    assert row["strategy"] == "first_fit"
    assert row["capacity"] == 1024
    assert (row["alloc_attempts"], row["alloc_successes"], row["alloc_failures"]) == (2, 2, 0)
    assert row["allocated_bytes"] == 150
    assert row["free_bytes"] == 874
    assert row["largest_free_block"] == 674
    assert (row["segments"], row["free_segments"], row["allocated_segments"]) == (3, 2, 1)
    assert row["free_seg_min"] == 200.0
    assert row["free_seg_max"] == 674.0
    assert row["utilization"] == pytest.approx(14.648438)
    assert row["external_frag"] == pytest.approx(22.883295)
    assert row["internal_frag"] == 0.0
    assert (row["l1_total"], row["l1_hits"]) == (2, 1)
    assert row["l2_total"] == 1
    assert row["combined_hit_ratio"] == pytest.approx(50.0)

    assert quick_qc(row, fragmented) == []


def test_collect_without_cache_or_accesses():
    sim = MemorySystem()
    sim.init_pool(64)
    row = collect_run_metrics(sim)
    assert row["l1_total"] == 0
    assert row["l2_hit_ratio"] == 0.0
    assert row["combined_hit_ratio"] == ""
    assert quick_qc(row, sim) == []


def test_quick_qc_flags_bad_rows():
    row = {
        "capacity": 100, "allocated_bytes": 60, "free_bytes": 50,
        "alloc_attempts": 3, "alloc_successes": 1, "alloc_failures": 1,
        "utilization": 120.0,
        "l1_total": 4, "l1_hit_ratio": 50.0, "l1_miss_ratio": 40.0,
    }
    warns = quick_qc(row)
    assert len(warns) == 4
    assert any(w.startswith("utilization=") for w in warns)
    assert any("capacity=100" in w for w in warns)
    assert "alloc_successes+alloc_failures != alloc_attempts" in warns
    assert any(w.startswith("l1 hit+miss") for w in warns)


def test_quick_qc_reports_layout_problems(fragmented):
    fragmented.pool.segments[0].size = 10
    row = collect_run_metrics(fragmented)
    warns = quick_qc(row, fragmented)
    assert any(w.startswith("layout:") for w in warns)


def test_summary_row_meta_wins(fragmented):
    row = summary_row(fragmented, {"strategy": "custom", "note": "x"})
    assert row["strategy"] == "custom"
    assert row["note"] == "x"


def test_append_summary_csv(tmp_path, fragmented):
    path = tmp_path / "out" / "summary.csv"
    append_summary_csv(str(path), fragmented, {"seed": 1})
    append_summary_csv(str(path), fragmented, {"seed": 2})

    header, rows = _read(path)
    assert header == sorted(header)
    assert len(rows) == 2
    assert [r["seed"] for r in rows] == ["1", "2"]


def test_append_summary_csv_extends_header(tmp_path, fragmented):
    path = tmp_path / "summary.csv"
    append_summary_csv(str(path), fragmented, {"seed": 1})
    append_summary_csv(str(path), fragmented, {"seed": 2, "note": "phase2"})

    header, rows = _read(path)
    assert header[-1] == "note"
    assert rows[0]["note"] == ""
    assert rows[1]["note"] == "phase2"
    assert rows[0]["seed"] == "1"


def test_list_stat():
    assert _list_stat([]) == {"min": 0.0, "max": 0.0, "avg": 0.0, "std": 0.0}
    s = _list_stat([2.0, 4.0])
    assert (s["min"], s["max"], s["avg"], s["std"]) == (2.0, 4.0, 3.0, 1.0)
