from __future__ import annotations

"""
run_sim.py

메모리 시뮬레이터 실행기(Entry Point).

이 파일의 역할
--------------
사용자가 원하는 건 결국 두 가지 중 하나다.

A) 배치 실행(batch)
   1) 이 조건(풀 크기, 배치 정책, cache geometry, 워크로드)으로 한 번 돌려보고
   2) 결과를 summary CSV로 남기고
   3) 필요하면 per-op trace도 저장해서 재현 가능하게 만들기

B) 대화형 실행(interactive / script)
   - `memsim> ` 프롬프트에서 init/alloc/free/access ... 명령을 직접 치거나
   - 명령이 한 줄씩 적힌 파일(--script)을 그대로 재생

재현성 관점
-----------
- 실험 입력값(ops, alloc_ratio, seed, strategy, cache geometry ...)을 CLI 인자로 고정하면
  같은 커맨드 = 같은 실험 조건이 된다.
- summary CSV에 그 인자(meta)가 함께 저장되므로 CSV만 봐도 조건이 복원된다.

실행 예시
---------
    python run_sim.py --strategy best_fit --ops 5000 --out_csv summary.csv --trace_csv trace.csv
    python run_sim.py --interactive
    python run_sim.py --script demo.txt

주의
----
- out_csv를 results/run/summary.csv처럼 주면서 out_dir도 results/run으로 주면
  _resolve_path가 out_dir을 다시 붙인다. out_csv는 파일명만 주는 것을 권장(또는 절대경로).
"""

import argparse
import csv
import os
import sys
from datetime import datetime

from commands import CommandProcessor
from config import SimConfig
from metrics import append_summary_csv, quick_qc, summary_row
from placement import STRATEGY_NAMES
from simulator import TRACE_FIELDS, MemorySystem
from workload import make_workload


BANNER = (
    "==========================================================\n"
    "        Memory Management & Cache Simulator\n"
    "\n"
    "  - Dynamic Memory Allocation (First/Best/Worst Fit)\n"
    "  - Multi-level Cache Simulation (L1/L2)\n"
    "==========================================================\n"
)


# ============================================================
# Helpers
# ============================================================

def _resolve_path(path: str | None, out_dir: str) -> str | None:
    """
    출력 경로 해석기.

    - path가 None이면 None
    - 절대경로면 그대로
    - 상대경로면 os.path.join(out_dir, path)
    """
    if path is None:
        return None
    return path if os.path.isabs(path) else os.path.join(out_dir, path)


def _quick_qc(row: dict, sim=None) -> bool:
    """
    결과 요약 row 무결성 점검 + 콘솔 출력.

    문제가 없으면 True, 경고가 있으면 False (strict 모드에서는 중단 트리거).
    """
    warn = quick_qc(row, sim)
    g = row.get

    if warn:
        print("[QC] WARN:", " | ".join(warn))
        return False

    print("[QC] OK  :", f"strategy={g('strategy')} seed={g('seed')} "
                        f"util={g('utilization')} ext_frag={g('external_frag')}")
    return True


def _write_trace_csv(path: str, sim: MemorySystem) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(list(TRACE_FIELDS))
        for i in range(len(sim.trace["step"])):
            w.writerow([sim.trace[k][i] for k in TRACE_FIELDS])


def _build_config(args) -> SimConfig:
    return SimConfig(
        pool_capacity=args.capacity,
        strategy=args.strategy,
        l1_capacity=args.l1_capacity,
        l1_block_size=args.l1_block,
        l2_capacity=args.l2_capacity,
        l2_block_size=args.l2_block,
        cache_profile=args.cache_profile,
        rng_seed=args.seed,
    )


# ============================================================
# Interactive / script
# ============================================================

def run_console(cfg: SimConfig, script: str | None = None) -> None:
    """
    command layer로 세션을 돌린다.

    - 풀은 초기화하지 않은 상태로 시작(사용자가 init 명령을 친다)
    - cache는 cfg geometry로 미리 로딩
    - script가 있으면 파일의 각 줄을 echo 후 실행, exit를 만나면 멈춘다
    """
    cfg.prepare()

    system = MemorySystem(cfg.strategy)
    proc = CommandProcessor(system)

    print(BANNER)
    err = proc.init_cache(cfg.l1_capacity, cfg.l1_block_size, cfg.l2_capacity, cfg.l2_block_size)
    if err is not None:
        print(f"Error initializing cache hierarchy: {err.message}", file=sys.stderr)
    else:
        print("Default cache hierarchy loaded.")
        print("Ready for memory management simulation.\n")

    if script is None:
        proc.run_interactive_session()
        return

    with open(script, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            print(f"memsim> {line}")
            if not proc.process_single_command(line):
                break


# ============================================================
# Main
# ============================================================

def main(argv=None):
    ap = argparse.ArgumentParser(
        description="Memory allocator + cache simulator: reproducible experiment entry point"
    )

    # --------------------------------------------------------
    # 모드
    # --------------------------------------------------------
    ap.add_argument("--interactive", action="store_true", help="memsim> 프롬프트로 대화형 실행")
    ap.add_argument("--script", type=str, default=None, help="명령 파일을 한 줄씩 실행")

    # --------------------------------------------------------
    # 풀 / cache 파라미터
    # --------------------------------------------------------
    ap.add_argument("--capacity", type=int, default=1024, help="풀 크기(bytes)")
    ap.add_argument("--strategy", type=str, default="first_fit", choices=STRATEGY_NAMES, help="배치 정책")
    ap.add_argument("--l1_capacity", type=int, default=1024)
    ap.add_argument("--l1_block", type=int, default=32)
    ap.add_argument("--l2_capacity", type=int, default=8192)
    ap.add_argument("--l2_block", type=int, default=64)
    ap.add_argument(
        "--cache_profile", type=str, default="custom",
        help="default|tiny|large 프리셋(custom이면 위 geometry 그대로)"
    )

    # --------------------------------------------------------
    # 워크로드
    # --------------------------------------------------------
    ap.add_argument("--ops", type=int, default=5000, help="op 개수")
    ap.add_argument("--alloc_ratio", type=float, default=0.6, help="alloc/(alloc+free) 비율 (0~1)")
    ap.add_argument("--access_ratio", type=float, default=0.3, help="cache access 비율 (0~1)")
    ap.add_argument("--min_size", type=int, default=8, help="최소 요청 크기")
    ap.add_argument("--max_size", type=int, default=None, help="최대 요청 크기(기본 capacity//8)")
    ap.add_argument("--address_space", type=int, default=None, help="access 주소 범위(기본 capacity)")
    ap.add_argument("--hot_ratio", type=float, default=0.2, help="hot 주소 영역 비율 (0~1)")
    ap.add_argument("--hot_weight", type=float, default=0.8, help="hot 영역을 고를 확률 (0~1)")
    ap.add_argument("--seed", type=int, default=42, help="랜덤 시드")

    # --------------------------------------------------------
    # 실행/출력
    # --------------------------------------------------------
    ap.add_argument("--out_dir", type=str, default="results/run", help="결과/로그를 저장할 디렉토리")
    ap.add_argument("--out_csv", type=str, default=None, help="요약 CSV append 경로 (권장: summary.csv)")
    ap.add_argument("--trace_csv", type=str, default=None, help="옵션: per-op trace CSV")
    ap.add_argument("--note", type=str, default="", help="메모/주석")
    ap.add_argument(
        "--qc", type=str, default="warn", choices=["off", "warn", "strict"],
        help="off=미실행, warn=경고만 출력, strict=경고 시 비정상 종료"
    )

    args = ap.parse_args(argv)

    cfg = _build_config(args)

    if args.interactive or args.script:
        run_console(cfg, args.script)
        return

    # ---- 출력 디렉토리 ----
    out_dir = args.out_dir
    os.makedirs(out_dir, exist_ok=True)

    out_csv_path = _resolve_path(args.out_csv, out_dir) if args.out_csv else None
    trace_csv_path = _resolve_path(args.trace_csv, out_dir) if args.trace_csv else None

    # --------------------------------------------------------
    # Session + workload
    # --------------------------------------------------------
    sim = MemorySystem.from_config(cfg, enable_trace=bool(trace_csv_path))

    wl = make_workload(
        n_ops=args.ops,
        capacity=cfg.pool_capacity,
        rng_seed=args.seed,
        alloc_ratio=args.alloc_ratio,
        access_ratio=args.access_ratio,
        min_size=args.min_size,
        max_size=args.max_size,
        address_space=args.address_space,
        hot_ratio=args.hot_ratio,
        hot_weight=args.hot_weight,
    )

    sim.run(wl)

    meta = {
        "run_id": args.note or f"{cfg.strategy}_{args.seed}",
        "ops": args.ops,
        "alloc_ratio": args.alloc_ratio,
        "access_ratio": args.access_ratio,
        "min_size": args.min_size,
        "max_size": args.max_size if args.max_size is not None else "",
        "hot_ratio": args.hot_ratio,
        "hot_weight": args.hot_weight,
        "seed": args.seed,
        "l1_capacity": cfg.l1_capacity,
        "l1_block": cfg.l1_block_size,
        "l2_capacity": cfg.l2_capacity,
        "l2_block": cfg.l2_block_size,
        "cache_profile": cfg.cache_profile,
        "note": args.note,
        "ts": datetime.now().isoformat(timespec="seconds"),
    }

    # QC는 저장될 행을 대상으로 수행
    row = summary_row(sim, meta)
    if args.qc != "off":
        ok = _quick_qc(row, sim)
        if args.qc == "strict" and not ok:
            raise SystemExit(2)

    if out_csv_path:
        append_summary_csv(out_csv_path, sim, meta)
        print(f"[RUN DONE] 결과 CSV append → {out_csv_path}")
    else:
        print(
            f"[RUN DONE] strategy={row['strategy']} util={row['utilization']:.2f}% "
            f"ext_frag={row['external_frag']:.2f}% success={row['success_rate']:.2f}%"
        )

    if trace_csv_path and sim.trace:
        _write_trace_csv(trace_csv_path, sim)
        print(f"[RUN DONE] trace CSV → {trace_csv_path}")


if __name__ == "__main__":
    main()
