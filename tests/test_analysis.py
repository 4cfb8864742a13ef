import math

import pandas as pd
import pytest

import analyze_results
import summarize
from analyze_results import apply_filters, pareto_front


def _frame() -> pd.DataFrame:
    return pd.DataFrame({
        "strategy": ["first_fit", "first_fit", "first_fit", "best_fit"],
        "ops": [1000, 1000, 2000, 1000],
        "capacity": [1024, 1024, 1024, 4096],
        "alloc_ratio": [0.6, 0.6, 0.7, 0.6],
        "utilization": [10.0, 20.0, 30.0, 50.0],
        "external_frag": [5.0, 15.0, 25.0, 10.0],
        "success_rate": [90.0, 95.0, 100.0, 99.0],
        "largest_free_block": [100, 200, 300, 400],
        "l1_hit_ratio": [40.0, 50.0, 60.0, 70.0],
        "l2_hit_ratio": [10.0, 20.0, 30.0, 40.0],
        "combined_hit_ratio": [None, None, None, None],
    })


# ------------------------------------------------------------
# summarize.py
# ------------------------------------------------------------

def test_summarize_by_strategy():
    out = summarize.summarize_by_strategy(_frame())
    assert list(out["strategy"]) == ["best_fit", "first_fit"]

    ff = out[out["strategy"] == "first_fit"].iloc[0]
    assert ff["runs"] == 3
    assert ff["util_med"] == 20.0
    assert ff["util_p25"] == 15.0
    assert ff["util_p75"] == 25.0
    assert ff["ext_frag_med"] == 15.0
    # 값이 전부 비어 있는 지표는 컬럼 자체가 없다
    assert "combined_hit_med" not in out.columns


def test_summarize_requires_strategy_column():
    with pytest.raises(ValueError):
        summarize.summarize_by_strategy(pd.DataFrame({"utilization": [1.0]}))


def test_summarize_main_writes_next_to_input(tmp_path, capsys):
    path = tmp_path / "summary.csv"
    _frame().to_csv(path, index=False)
    summarize.main([str(path)])

    out = pd.read_csv(tmp_path / "summary_by_strategy.csv")
    assert len(out) == 2
    assert "first_fit" in capsys.readouterr().out


# ------------------------------------------------------------
# analyze_results.py
# ------------------------------------------------------------

def test_pareto_front():
    df = pd.DataFrame({
        "external_frag": [10.0, 20.0, 15.0, 5.0, math.nan],
        "utilization": [50.0, 60.0, 40.0, 30.0, 99.0],
        "tag": ["a", "b", "c", "d", "nan"],
    })
    front = pareto_front(df)
    assert list(front["tag"]) == ["d", "a", "b"]


def test_pareto_front_missing_columns():
    df = pd.DataFrame({"utilization": [1.0]})
    assert pareto_front(df).empty


def test_apply_filters():
    df = _frame()
    assert len(apply_filters(df, strategy="first_fit")) == 3
    assert len(apply_filters(df, filter_ops=1000)) == 3
    assert len(apply_filters(df, filter_capacity=4096)) == 1
    assert len(apply_filters(df, filter_alloc_ratio=0.6)) == 3
    assert len(apply_filters(df, strategy="first_fit", max_ext_frag=15.0)) == 2
    # 없는 컬럼 조건은 무시
    assert len(apply_filters(df[["strategy"]], filter_ops=5)) == 4


def test_analyze_main_merges_and_plots(tmp_path, capsys):
    base = tmp_path / "results"
    (base / "a").mkdir(parents=True)
    (base / "b").mkdir()
    df = _frame()
    df.iloc[:2].to_csv(base / "a" / "summary.csv", index=False)
    df.iloc[2:].to_csv(base / "b" / "summary.csv", index=False)

    merged = tmp_path / "merged.csv"
    pareto = tmp_path / "pareto.csv"
    plots = tmp_path / "plots"
    analyze_results.main([
        "--base", str(base), "--merge-subdirs",
        "--out_csv", str(merged), "--pareto_csv", str(pareto), "--plots_dir", str(plots),
    ])

    all_rows = pd.read_csv(merged)
    assert len(all_rows) == 4
    assert all_rows["__source__"].nunique() == 2
    assert len(pd.read_csv(pareto)) >= 1
    for name in ("util_by_strategy.png", "ext_frag_by_strategy.png", "pareto.png",
                 "frag_vs_alloc_ratio.png", "cache_hits.png"):
        assert (plots / name).exists()
    assert "rows: view=4 / total=4" in capsys.readouterr().out


def test_analyze_main_without_csvs(tmp_path, capsys):
    analyze_results.main(["--base", str(tmp_path)])
    assert "합칠 CSV가 없습니다" in capsys.readouterr().out


def test_analyze_main_missing_base(tmp_path):
    with pytest.raises(FileNotFoundError):
        analyze_results.main(["--base", str(tmp_path / "nope")])
