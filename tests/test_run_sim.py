import csv
import os

from run_sim import _resolve_path, main
from simulator import TRACE_FIELDS


def test_resolve_path(tmp_path):
    assert _resolve_path(None, "out") is None
    assert _resolve_path("s.csv", "out") == os.path.join("out", "s.csv")
    abs_path = str(tmp_path / "s.csv")
    assert _resolve_path(abs_path, "out") == abs_path


def test_batch_run_writes_summary_and_trace(tmp_path, capsys):
    main([
        "--ops", "200",
        "--strategy", "best_fit",
        "--out_dir", str(tmp_path),
        "--out_csv", "summary.csv",
        "--trace_csv", "trace.csv",
        "--note", "smoke",
    ])

    with open(tmp_path / "summary.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 1
    assert rows[0]["strategy"] == "best_fit"
    assert rows[0]["run_id"] == "smoke"

    with open(tmp_path / "trace.csv", newline="", encoding="utf-8") as f:
        trace = list(csv.reader(f))
    assert trace[0] == list(TRACE_FIELDS)
    assert len(trace) == 201

    out = capsys.readouterr().out
    assert "[QC] OK" in out
    assert "[RUN DONE]" in out


def test_batch_run_without_csv_prints_summary(tmp_path, capsys):
    main(["--ops", "100", "--out_dir", str(tmp_path), "--cache_profile", "tiny", "--qc", "off"])
    out = capsys.readouterr().out
    assert "[RUN DONE] strategy=first_fit util=" in out
    assert "[QC]" not in out


def test_script_mode(tmp_path, capsys):
    script = tmp_path / "demo.txt"
    script.write_text(
        "# demo\n"
        "init 1024\n"
        "\n"
        "alloc 200\n"
        "access 0x40\n"
        "exit\n"
        "alloc 300\n",
        encoding="utf-8",
    )
    main(["--script", str(script)])
    out = capsys.readouterr().out

    assert "Default cache hierarchy loaded." in out
    assert "memsim> init 1024" in out
    assert "Memory allocated: PID=1 at address=0x0 (size=200)" in out
    assert "0x40: MISS" in out
    assert "Goodbye!" in out
    assert "memsim> alloc 300" not in out
    assert "# demo" not in out
