from __future__ import annotations

"""
experiments.py

실험 실행(Experiment Runner) 스크립트입니다.

이 스크립트는 `run_sim.py`의 단일 실행 기능을 확장하여,
- 여러 배치 정책/파라미터 조합(grid),
- 여러 시나리오(YAML),
- 여러 seed 반복(repeat)
을 한 번에 돌리고, 결과를 summary.csv로 누적 저장하는 역할을 합니다.

입력/출력 계약(Contract)
-----------------------
Input:
- 세션/워크로드 생성에 필요한 파라미터들
- (옵션) --grid: "k=v1,v2; k2=v3,v4" 형태의 간단 그리드 명세
- (옵션) --scenarios: YAML 파일(여러 실험 사양 리스트 또는 {scenarios: [...]})

Output:
- results 디렉토리 생성(--out_dir)
- summary.csv에 결과 append(--out_csv)
- 콘솔에 실행별 요약(탭 구분) 출력

예시
----
    python experiments.py --grid "strategy=first_fit,best_fit,worst_fit; alloc_ratio=0.5,0.7" --repeat 3

가정/주의
---------
- YAML 로딩은 PyYAML이 필요합니다.
- 같은 seed는 같은 워크로드를 만듭니다. 정책 비교는 seed를 고정하고 strategy만 바꾸는 것이 기본입니다.
"""

import os
import argparse
from datetime import datetime
from typing import Any, Dict, List, Optional

from config import SimConfig
from metrics import append_summary_csv, quick_qc, summary_row
from placement import STRATEGY_NAMES
from simulator import MemorySystem
from workload import make_workload


# ------------------------------------------------------------
# 유틸
# ------------------------------------------------------------

def _ensure_dir(p: str) -> None:
    os.makedirs(p, exist_ok=True)


def _quick_qc(row: Dict[str, Any], sim: Any = None) -> bool:
    """
    결과 row에 대한 간단 QC. True면 통과(경고 없음).
    """
    warn = quick_qc(row, sim)
    if warn:
        print("[QC] WARN:", " | ".join(warn))
        return False

    print("[QC] OK  :", f"strategy={row.get('strategy')} seed={row.get('seed')} "
                        f"util={row.get('utilization')}")
    return True


# ------------------------------------------------------------
# 단일 실행(One run)
# ------------------------------------------------------------

def run_once(args: argparse.Namespace, out_dir: str, out_csv: Optional[str]) -> tuple[Dict[str, Any], bool]:
    """
    단일 실험을 1회 실행하고 결과 row를 반환합니다.

    Flow
    ----
    1) SimConfig 구성 + prepare
    2) MemorySystem 생성
    3) 워크로드 생성 + sim.run(workload)
    4) meta 구성 + summary.csv append(옵션)
    5) summary_row 생성 + QC

    Returns
    -------
    (row, ok)
    """
    cfg = SimConfig(
        pool_capacity=args.capacity,
        strategy=args.strategy,
        l1_capacity=args.l1_capacity,
        l1_block_size=args.l1_block,
        l2_capacity=args.l2_capacity,
        l2_block_size=args.l2_block,
        cache_profile=getattr(args, "cache_profile", "custom"),
        rng_seed=args.seed,
    )
    sim = MemorySystem.from_config(cfg)

    wl = make_workload(
        n_ops=args.ops,
        capacity=cfg.pool_capacity,
        rng_seed=args.seed,
        alloc_ratio=args.alloc_ratio,
        access_ratio=args.access_ratio,
        min_size=args.min_size,
        max_size=args.max_size,
        address_space=getattr(args, "address_space", None),
        hot_ratio=args.hot_ratio,
        hot_weight=args.hot_weight,
    )
    sim.run(wl)

    meta: Dict[str, Any] = {
        "run_id": getattr(args, "note", None) or f"{cfg.strategy}_{args.seed}",
        "ops": args.ops,
        "seed": args.seed,
        "alloc_ratio": args.alloc_ratio,
        "access_ratio": args.access_ratio,
        "min_size": args.min_size,
        "max_size": args.max_size if args.max_size is not None else "",
        "hot_ratio": args.hot_ratio,
        "hot_weight": args.hot_weight,
        "l1_capacity": cfg.l1_capacity,
        "l1_block": cfg.l1_block_size,
        "l2_capacity": cfg.l2_capacity,
        "l2_block": cfg.l2_block_size,
        "cache_profile": cfg.cache_profile,
        "ts": datetime.now().isoformat(timespec="seconds"),
    }

    if out_csv:
        append_summary_csv(out_csv, sim, meta)

    row = summary_row(sim, meta)
    ok = True
    if getattr(args, "qc", "warn") != "off":
        ok = _quick_qc(row, sim)
    return row, ok


# ------------------------------------------------------------
# Grid 빌더 / 값 파싱
# ------------------------------------------------------------

def _parse_csv_list(s: str) -> List[str]:
    """'a,b,c' -> ['a','b','c'] (빈 토큰 제거)"""
    return [x for x in (s or "").split(",") if x != ""]


def _coerce_value(x: str) -> Any:
    """
    그리드/YAML 문자열 값을 적절한 타입으로 캐스팅합니다.

    - "none"/"null" -> None
    - "true"/"false" -> bool
    - 숫자 형태 -> int 또는 float
    - 그 외 -> 원문 문자열
    """
    if x.lower() in ("none", "null"):
        return None
    if x.lower() in ("true", "false"):
        return x.lower() == "true"
    try:
        if "." in x:
            return float(x)
        return int(x)
    except ValueError:
        return x


def build_grid(args: argparse.Namespace) -> List[Dict[str, Any]]:
    """
    --grid 옵션을 파싱하여 매개변수 데카르트 곱 실험 목록을 생성합니다.

    예: --grid "strategy=first_fit,best_fit; capacity=1024,4096"
        => 4개 조합. 앞쪽 키가 바깥 루프입니다.
    """
    items: List[List[tuple[str, Any]]] = []
    if not args.grid:
        return [vars(args).copy()]

    for pair in args.grid.split(";"):
        pair = pair.strip()
        if not pair:
            continue
        if "=" not in pair:
            raise ValueError(f"grid 항목 형식 오류: {pair!r} (k=v1,v2)")
        k, v = pair.split("=", 1)
        vals = _parse_csv_list(v)
        items.append([(k.strip(), _coerce_value(x.strip())) for x in vals])

    grids: List[Dict[str, Any]] = []

    def _dfs(i: int, acc: Dict[str, Any]) -> None:
        if i == len(items):
            d = vars(args).copy()
            d.update(acc)
            grids.append(d)
            return
        for k, v in items[i]:
            acc[k] = v
            _dfs(i + 1, acc)
            acc.pop(k, None)

    _dfs(0, {})
    return grids


# ------------------------------------------------------------
# YAML 시나리오 로더
# ------------------------------------------------------------

def load_scenarios(path: str) -> List[Dict[str, Any]]:
    """
    YAML 시나리오 파일을 로드합니다.

    지원 형식
    --------
    1) 리스트: [ {scenario1}, {scenario2}, ... ]
    2) dict + scenarios 키: { scenarios: [ ... ] }
    """
    import yaml

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if isinstance(data, dict) and "scenarios" in data:
        return list(data["scenarios"])
    if isinstance(data, list):
        return data

    raise RuntimeError("시나리오 파일 형식이 잘못되었습니다 (list 또는 {scenarios: [...]})")


def expand_runs(confs: List[Dict[str, Any]], default_repeat: int) -> List[Dict[str, Any]]:
    """
    conf마다 repeat 횟수만큼 seed를 base_seed부터 +1씩 늘린 복사본을 만든다.
    """
    out: List[Dict[str, Any]] = []
    for conf in confs:
        rep = int(conf.get("repeat", default_repeat) or 1)
        base_seed = int(conf.get("seed", 42))
        for r in range(rep):
            c = conf.copy()
            c["seed"] = base_seed + r
            out.append(c)
    return out


# ------------------------------------------------------------
# CLI 엔트리포인트
# ------------------------------------------------------------

SUMMARY_COLS = [
    "strategy", "ops", "seed", "success_rate", "utilization", "external_frag",
    "largest_free_block", "segments", "l1_hit_ratio", "l2_hit_ratio", "combined_hit_ratio",
]


def main(argv=None) -> None:
    """
    실행 모드
    --------
    1) YAML 모드: --scenarios <path>
    2) Grid/단일 모드: --grid ... 또는 단일 args

    - --repeat N이면 seed를 +1씩 늘려 N번 반복
    - --qc strict면 QC 경고 시 SystemExit(2)
    """
    ap = argparse.ArgumentParser(description="Experiments runner (grid/YAML/multiseed)")

    # 공통 파라미터(기본값은 run_sim.py와 맞춤)
    ap.add_argument("--capacity", type=int, default=1024)
    ap.add_argument("--strategy", type=str, default="first_fit", choices=STRATEGY_NAMES)
    ap.add_argument("--l1_capacity", type=int, default=1024)
    ap.add_argument("--l1_block", type=int, default=32)
    ap.add_argument("--l2_capacity", type=int, default=8192)
    ap.add_argument("--l2_block", type=int, default=64)
    ap.add_argument("--cache_profile", type=str, default="custom")

    ap.add_argument("--ops", type=int, default=5000)
    ap.add_argument("--alloc_ratio", type=float, default=0.6)
    ap.add_argument("--access_ratio", type=float, default=0.3)
    ap.add_argument("--min_size", type=int, default=8)
    ap.add_argument("--max_size", type=int, default=None)
    ap.add_argument("--address_space", type=int, default=None)
    ap.add_argument("--hot_ratio", type=float, default=0.2)
    ap.add_argument("--hot_weight", type=float, default=0.8)
    ap.add_argument("--seed", type=int, default=42)

    # Sweep 옵션
    ap.add_argument("--grid", type=str, default=None, help="키=값1,값2; 키2=... 형식")
    ap.add_argument("--repeat", type=int, default=1, help="시드 반복 횟수(시작 시드부터 +1 증가)")
    ap.add_argument("--scenarios", type=str, default=None, help="YAML 파일 경로(여러 실험 사양)")

    # 출력
    ap.add_argument("--out_dir", type=str, default="results/exp")
    ap.add_argument("--out_csv", type=str, default="results/exp/summary.csv")
    ap.add_argument("--note", type=str, default="")
    ap.add_argument(
        "--qc", type=str, default="warn", choices=["off", "warn", "strict"],
        help="off=미실행, warn=경고만 출력, strict=경고 시 종료",
    )

    args = ap.parse_args(argv)

    _ensure_dir(args.out_dir)
    out_csv = args.out_csv

    if args.scenarios:
        confs = []
        for sc in load_scenarios(args.scenarios):
            d = vars(args).copy()
            d.update(sc)
            d["note"] = sc.get("note", args.note)
            confs.append(d)
    else:
        confs = build_grid(args)

    runs: List[Dict[str, Any]] = []
    for conf in expand_runs(confs, args.repeat):
        ns = argparse.Namespace(**conf)
        row, ok = run_once(ns, args.out_dir, out_csv)
        runs.append(row)

        if args.qc == "strict" and not ok:
            print("[QC] strict 모드: 실험을 중단합니다.")
            raise SystemExit(2)

    # 콘솔 요약 출력(탭 구분)
    if runs:
        print("\t".join(SUMMARY_COLS))
        for r in runs:
            print("\t".join("" if r.get(c) is None else str(r.get(c)) for c in SUMMARY_COLS))


if __name__ == "__main__":
    main()
