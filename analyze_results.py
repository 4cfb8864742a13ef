from __future__ import annotations

"""
analyze_results.py

메모리 시뮬레이터의 실험 결과(summary.csv)를 수집/병합하고,
기본적인 분석 플롯과 Pareto front를 생성하는 후처리(analysis) 엔트리포인트입니다.

이 스크립트의 목적
------------------
1) 결과 수집(Collection)
   - 여러 실험 폴더에 흩어진 summary.csv를 찾아 한 번에 병합합니다.
2) 출처 추적(Provenance)
   - 병합한 각 row에 "__source__" 컬럼을 추가합니다.
3) 빠른 검증/요약
   - 정책별 utilization / external fragmentation 분포, cache hit ratio 산점도
   - utilization(클수록 좋음) vs external_frag(작을수록 좋음) Pareto front

입력/출력 계약(Contract)
-----------------------
Input:
- base_dir 아래의 summary.csv (또는 --filename)
Output (옵션):
- --out_csv: 병합된 전체 결과 CSV
- --pareto_csv: Pareto front CSV
- --plots_dir: 기본 플롯(PNG)
- 콘솔: 필터 적용 후 미리보기(상위 N행)

주의
----
- 숫자 컬럼은 pd.to_numeric(errors="coerce")로 안전 변환합니다.
- matplotlib은 헤드리스 환경에서도 저장되도록 Agg 백엔드를 사용합니다.
"""

import os
import sys
import argparse
import glob
from typing import List, Optional

import numpy as np
import pandas as pd

import matplotlib
matplotlib.use("Agg")  # GUI 없이 파일 저장만 수행
import matplotlib.pyplot as plt


NUMERIC_COLS = [
    "ops", "seed", "capacity", "alloc_ratio", "access_ratio", "hot_ratio",
    "success_rate", "utilization", "external_frag", "largest_free_block",
    "segments", "free_segments", "l1_hit_ratio", "l2_hit_ratio", "combined_hit_ratio",
]


# ------------------------------------------------------------
# 1) 결과 파일 수집 / 로딩
# ------------------------------------------------------------

def _find_summary_csvs(base_dir: str, merge_subdirs: bool, filename: str = "summary.csv") -> List[str]:
    """
    base_dir에서 summary.csv(또는 filename) 경로를 수집합니다.

    - merge_subdirs=True면 **/filename 재귀 탐색
    - base_dir이 없으면 FileNotFoundError
    """
    base_dir = os.path.abspath(base_dir)
    if not os.path.isdir(base_dir):
        raise FileNotFoundError(f"[analyze_results] base 디렉토리가 존재하지 않습니다: {base_dir}")

    if merge_subdirs:
        paths = glob.glob(os.path.join(base_dir, "**", filename), recursive=True)
    else:
        p = os.path.join(base_dir, filename)
        paths = [p] if os.path.exists(p) else []

    return sorted(paths)


def _read_csvs(paths: List[str]) -> pd.DataFrame:
    """
    여러 summary.csv를 읽어 컬럼 union으로 병합합니다.

    - 각 행에 "__source__" 추가
    - 읽기 실패한 파일은 경고 후 스킵, 전부 실패하면 RuntimeError
    """
    frames = []
    for p in paths:
        try:
            df = pd.read_csv(p)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            print(f"[WARN] CSV 읽기 실패: {p}: {e}", file=sys.stderr)
            continue
        df["__source__"] = p
        frames.append(df)

    if not frames:
        raise RuntimeError("[analyze_results] 읽을 수 있는 summary CSV가 없습니다.")

    all_cols = sorted(set().union(*[set(f.columns) for f in frames]))
    frames = [f.reindex(columns=all_cols) for f in frames]
    return pd.concat(frames, ignore_index=True)


# ------------------------------------------------------------
# 2) 데이터 안전 처리 / 필터
# ------------------------------------------------------------

def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _ensure_out_dir(file_path: str) -> None:
    os.makedirs(os.path.dirname(file_path) or ".", exist_ok=True)


def _to_num(s: pd.Series) -> pd.Series:
    return pd.to_numeric(s, errors="coerce")


def _coerce_numeric_cols(df: pd.DataFrame, cols: List[str]) -> pd.DataFrame:
    """존재하는 숫자 후보 컬럼을 숫자형으로 변환한 복사본."""
    out = df.copy()
    for c in cols:
        if c in out.columns:
            out[c] = _to_num(out[c])
    return out


def apply_filters(
    df: pd.DataFrame,
    strategy: Optional[str] = None,
    filter_ops: Optional[int] = None,
    filter_capacity: Optional[int] = None,
    filter_alloc_ratio: Optional[float] = None,
    max_ext_frag: Optional[float] = None,
) -> pd.DataFrame:
    """
    결과 탐색용 필터. 컬럼이 없으면 해당 조건은 무시합니다.

    ratio 비교는 np.isclose를 씁니다(CSV 왕복 시 미세 오차).
    """
    out = df.copy()

    if strategy is not None and "strategy" in out.columns:
        out = out[out["strategy"] == strategy]

    if filter_ops is not None and "ops" in out.columns:
        out = out[_to_num(out["ops"]) == float(filter_ops)]

    if filter_capacity is not None and "capacity" in out.columns:
        out = out[_to_num(out["capacity"]) == float(filter_capacity)]

    if filter_alloc_ratio is not None and "alloc_ratio" in out.columns:
        out = out[np.isclose(_to_num(out["alloc_ratio"]), float(filter_alloc_ratio))]

    if max_ext_frag is not None and "external_frag" in out.columns:
        out = out[_to_num(out["external_frag"]) <= float(max_ext_frag)]

    return out


# ------------------------------------------------------------
# 3) Pareto front
# ------------------------------------------------------------

def pareto_front(df: pd.DataFrame, x_col: str = "external_frag", y_col: str = "utilization") -> pd.DataFrame:
    """
    (x: 작을수록 좋음, y: 클수록 좋음) 기준의 비지배 집합만 남긴다.

    기본값: external_frag는 낮게, utilization은 높게.
    x/y 중 하나라도 NaN인 행은 제외한다.
    """
    if df.empty or x_col not in df.columns or y_col not in df.columns:
        return df.iloc[0:0].copy()

    sub = df.copy()
    sub[x_col] = _to_num(sub[x_col])
    sub[y_col] = _to_num(sub[y_col])
    sub = sub.dropna(subset=[x_col, y_col])
    if sub.empty:
        return sub

    pts = sub[[x_col, y_col]].to_numpy()
    is_dom = np.zeros(len(sub), dtype=bool)
    for i, (x_i, y_i) in enumerate(pts):
        better_or_equal = (pts[:, 0] <= x_i) & (pts[:, 1] >= y_i)
        strictly_better = (pts[:, 0] < x_i) | (pts[:, 1] > y_i)
        is_dom[i] = np.any(better_or_equal & strictly_better)

    out = sub[~is_dom].copy()
    return out.sort_values([x_col, y_col], kind="mergesort")


# ------------------------------------------------------------
# 4) 플롯 생성
# ------------------------------------------------------------

def _boxplot_by_strategy(df: pd.DataFrame, col: str, title: str, out_path: str) -> None:
    _ensure_out_dir(out_path)
    if not {"strategy", col}.issubset(df.columns):
        print(f"[plot] skip: missing columns(strategy, {col})")
        return

    order = sorted(df["strategy"].dropna().unique())
    data = [_to_num(df.loc[df["strategy"] == s, col]).dropna() for s in order]
    if not order:
        print(f"[plot] skip: no rows for {col}")
        return

    plt.figure()
    plt.boxplot(data, showmeans=True)
    plt.xticks(range(1, len(order) + 1), order)
    plt.title(title)
    plt.ylabel(col)
    plt.grid(True, linestyle=":", alpha=0.5)
    plt.tight_layout()
    plt.savefig(out_path)
    plt.close()


def plot_utilization_by_strategy(df: pd.DataFrame, out_path: str) -> None:
    """정책별 utilization 분포(박스플롯)."""
    _boxplot_by_strategy(df, "utilization", "Utilization by Strategy", out_path)


def plot_ext_frag_by_strategy(df: pd.DataFrame, out_path: str) -> None:
    """정책별 external fragmentation 분포(박스플롯)."""
    _boxplot_by_strategy(df, "external_frag", "External Fragmentation by Strategy", out_path)


def plot_frag_vs_alloc_ratio(df: pd.DataFrame, out_path: str) -> None:
    """
    alloc_ratio 대비 external_frag 산점도.

    - alloc 비율이 높을수록 풀이 차서 구멍이 잘게 쪼개지는지 확인(QC 및 탐색).
    """
    _ensure_out_dir(out_path)
    if not {"alloc_ratio", "external_frag"}.issubset(df.columns):
        print("[plot] skip: missing columns(alloc_ratio, external_frag)")
        return

    plt.figure()
    plt.scatter(_to_num(df["alloc_ratio"]), _to_num(df["external_frag"]), s=12, alpha=0.6)
    plt.xlabel("alloc_ratio")
    plt.ylabel("external_frag (%)")
    plt.title("External Fragmentation vs Alloc Ratio")
    plt.grid(True, linestyle=":", alpha=0.5)
    plt.tight_layout()
    plt.savefig(out_path)
    plt.close()


def plot_cache_hits(df: pd.DataFrame, out_path: str) -> None:
    """L1 hit ratio vs L2 hit ratio 산점도."""
    _ensure_out_dir(out_path)
    if not {"l1_hit_ratio", "l2_hit_ratio"}.issubset(df.columns):
        print("[plot] skip: missing columns(l1_hit_ratio, l2_hit_ratio)")
        return

    plt.figure()
    plt.scatter(_to_num(df["l1_hit_ratio"]), _to_num(df["l2_hit_ratio"]), s=12, alpha=0.6)
    plt.xlabel("L1 hit ratio (%)")
    plt.ylabel("L2 hit ratio (%)")
    plt.title("Cache Hit Ratios")
    plt.grid(True, linestyle=":", alpha=0.5)
    plt.tight_layout()
    plt.savefig(out_path)
    plt.close()


def plot_pareto(df: pd.DataFrame, front: pd.DataFrame, out_path: str) -> None:
    """전체 점 + Pareto front(선)."""
    _ensure_out_dir(out_path)
    if not {"external_frag", "utilization"}.issubset(df.columns):
        print("[plot] skip: missing columns(external_frag, utilization)")
        return

    plt.figure()
    plt.scatter(_to_num(df["external_frag"]), _to_num(df["utilization"]), s=12, alpha=0.4, label="runs")
    if not front.empty:
        plt.plot(front["external_frag"], front["utilization"], marker="o", color="C3", label="pareto")
    plt.xlabel("external_frag (%)")
    plt.ylabel("utilization (%)")
    plt.title("Utilization vs External Fragmentation")
    plt.legend()
    plt.grid(True, linestyle=":", alpha=0.5)
    plt.tight_layout()
    plt.savefig(out_path)
    plt.close()


# ------------------------------------------------------------
# 5) 엔트리포인트
# ------------------------------------------------------------

def main(argv=None) -> None:
    """
    Flow
    ----
    1) base 디렉토리에서 summary.csv 수집
    2) 병합 + 숫자 컬럼 안전 변환
    3) 필터 적용(df_view)
    4) (옵션) 병합 CSV / Pareto CSV 저장
    5) (옵션) 플롯 저장
    6) 콘솔 미리보기
    """
    ap = argparse.ArgumentParser(description="Analyze allocator/cache results (merge/plots/pareto)")
    ap.add_argument("--base", type=str, required=True, help="기준 디렉토리")
    ap.add_argument("--merge-subdirs", action="store_true", help="하위 폴더의 summary.csv까지 병합")
    ap.add_argument("--filename", type=str, default="summary.csv", help="요약 파일명(기본 summary.csv)")
    ap.add_argument("--out_csv", type=str, default=None, help="병합 결과 CSV 저장 경로")
    ap.add_argument("--pareto_csv", type=str, default=None, help="Pareto front CSV 저장 경로")
    ap.add_argument("--plots_dir", type=str, default=None, help="플롯 저장 디렉토리")
    ap.add_argument("--preview", type=int, default=20, help="콘솔 미리보기 행 수")

    ap.add_argument("--strategy", type=str, default=None, help="특정 strategy만 보기 (예: best_fit)")
    ap.add_argument("--filter_ops", type=int, default=None)
    ap.add_argument("--filter_capacity", type=int, default=None)
    ap.add_argument("--filter_alloc_ratio", type=float, default=None)
    ap.add_argument("--max_ext_frag", type=float, default=None)

    args = ap.parse_args(argv)

    csvs = _find_summary_csvs(args.base, args.merge_subdirs, filename=args.filename)
    if not csvs:
        print("[analyze_results] 합칠 CSV가 없습니다.")
        return

    df = _coerce_numeric_cols(_read_csvs(csvs), NUMERIC_COLS)

    df_view = apply_filters(
        df,
        strategy=args.strategy,
        filter_ops=args.filter_ops,
        filter_capacity=args.filter_capacity,
        filter_alloc_ratio=args.filter_alloc_ratio,
        max_ext_frag=args.max_ext_frag,
    )

    print(f"[analyze_results] rows: view={len(df_view)} / total={len(df)}")
    if len(df_view) == 0:
        print("[analyze_results] (WARN) 필터 결과가 비었습니다. 조건을 완화해보세요.")

    if args.out_csv:
        _ensure_out_dir(args.out_csv)
        df.to_csv(args.out_csv, index=False)
        print(f"[analyze_results] merged CSV saved: {args.out_csv}  (rows={len(df)})")

    front = pareto_front(df_view)
    if args.pareto_csv:
        _ensure_out_dir(args.pareto_csv)
        front.to_csv(args.pareto_csv, index=False)
        print(f"[analyze_results] pareto CSV saved: {args.pareto_csv}  (rows={len(front)})")

    if args.plots_dir:
        _ensure_dir(args.plots_dir)

        plot_utilization_by_strategy(df_view, os.path.join(args.plots_dir, "util_by_strategy.png"))
        plot_ext_frag_by_strategy(df_view, os.path.join(args.plots_dir, "ext_frag_by_strategy.png"))
        plot_pareto(df_view, front, os.path.join(args.plots_dir, "pareto.png"))

        plot_frag_vs_alloc_ratio(df, os.path.join(args.plots_dir, "frag_vs_alloc_ratio.png"))
        plot_cache_hits(df, os.path.join(args.plots_dir, "cache_hits.png"))

        print(f"[analyze_results] plots saved to: {args.plots_dir}")

    preview_cols = [c for c in [
        "strategy", "ops", "capacity", "alloc_ratio", "seed",
        "success_rate", "utilization", "external_frag", "largest_free_block",
        "l1_hit_ratio", "l2_hit_ratio", "combined_hit_ratio", "__source__",
    ] if c in df_view.columns]

    n = max(int(args.preview), 0)
    if n > 0:
        print(df_view[preview_cols].head(n).to_string(index=False))


if __name__ == "__main__":
    main()
