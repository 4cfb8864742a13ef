"""
summarize.py

실험 결과(summary.csv)를 배치 정책(strategy)별로 한 장 요약하는 미니 스크립트.

왜 존재하나?
------------
run_sim.py / experiments.py는 실행을 돌리면서 summary.csv에 계속 append 한다.
실험이 쌓이면 seed가 여러 개라 분포를 보기 어렵고, 정책 간 비교도 한 눈에 안 들어온다.

그래서 이 스크립트는 summary.csv를 읽고, 정책별로 핵심 지표의
중앙값(median)과 사분위수(25%, 75%)를 뽑아 대표값 + 퍼짐을 빠르게 확인하게 한다.

사용법
------
    python summarize.py                              # results/exp/summary.csv
    python summarize.py results/run/summary.csv

출력
----
- 입력 파일과 같은 폴더의 summary_by_strategy.csv
- 콘솔에 DataFrame 그대로 print
"""

from __future__ import annotations

import os
import sys

import pandas as pd


DEFAULT_PATH = "results/exp/summary.csv"

# (출력 prefix, 원본 컬럼)
METRICS = [
    ("util", "utilization"),
    ("ext_frag", "external_frag"),
    ("success", "success_rate"),
    ("largest_free", "largest_free_block"),
    ("combined_hit", "combined_hit_ratio"),
]


def agg_block(group: pd.DataFrame) -> dict:
    """
    strategy 그룹(여러 seed 실행)을 받아 중앙값 + 사분위수를 반환한다.

    평균 대신 중앙값을 쓰는 이유: 한 번 튀는 실행(outlier)에 덜 흔들린다.
    컬럼이 없는 지표는 건너뛴다.
    """
    out = {"runs": len(group)}
    for name, col in METRICS:
        if col not in group:
            continue
        s = pd.to_numeric(group[col], errors="coerce").dropna()
        if s.empty:
            continue
        out[f"{name}_med"] = s.median()
        out[f"{name}_p25"] = s.quantile(0.25)
        out[f"{name}_p75"] = s.quantile(0.75)
    return out


def summarize_by_strategy(df: pd.DataFrame) -> pd.DataFrame:
    if "strategy" not in df.columns:
        raise ValueError("summary CSV에 strategy 컬럼이 없습니다")

    rows = []
    for strategy, group in df.groupby("strategy", sort=True):
        rows.append({"strategy": strategy, **agg_block(group)})
    return pd.DataFrame(rows)


def main(argv=None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    path = argv[0] if argv else DEFAULT_PATH

    df = pd.read_csv(path)
    out = summarize_by_strategy(df)

    out_path = os.path.join(os.path.dirname(path) or ".", "summary_by_strategy.csv")
    out.to_csv(out_path, index=False)

    print(out)


if __name__ == "__main__":
    main()
