from __future__ import annotations

"""
metrics.py

MemorySystem 실행 결과를 숫자(메트릭)로 뽑아내고, summary.csv로 저장하는 모듈입니다.

1) 메트릭 추출(Collect)
   - 풀(SegmentList)과 cache hierarchy에서 한 run의 핵심 수치를 평평한 dict로 뽑습니다.
2) 요약 기록(Log)
   - 실험 1회(run)마다 한 행(row)을 summary.csv에 append 방식으로 누적 기록합니다.
3) 재현성(Reproducibility)
   - meta(실험 파라미터/정책/seed 등)를 row에 합쳐 저장하여
     "이 결과가 어떤 조건에서 나왔는지" CSV만 봐도 추적 가능하게 합니다.
4) 간단 QC
   - quick_qc(row, sim)가 비율 범위/보존 법칙/레이아웃 무결성을 점검합니다.

입력/출력 계약(Contract)
-----------------------
- collect_run_metrics(sim) -> Dict[str, Any]
- append_summary_csv(path, sim, meta)
- summary_row(sim, meta) -> Dict[str, Any]
- quick_qc(row, sim=None) -> List[str]  (경고 문구 목록, 비면 OK)

주의
----
- cache가 초기화되지 않은 세션이면 cache 관련 값은 0, combined_hit_ratio는 빈 값("")입니다.
- combined_hit_ratio는 L2 hit도 L1.total로 나누는 보고용 값입니다.
  그래서 l1_hit_ratio와 합산 관계를 기대하면 안 됩니다.
"""

from typing import Any, Dict, List, Optional
import csv
import math
import os


# ------------------------------------------------------------
# 내부 유틸
# ------------------------------------------------------------

def _get(obj: Any, names: List[str], default: Any = None) -> Any:
    """
    여러 후보 속성명 중, 실제로 존재하는 첫 번째 값을 반환합니다.

    - "a.b" 형태(중첩 경로)를 지원합니다.
    - 예: _get(sim, ["caches.l1.metrics"], None)
    """
    for name in names:
        cur = obj
        ok = True
        for part in name.split("."):
            if cur is None or not hasattr(cur, part):
                ok = False
                break
            cur = getattr(cur, part)
        if ok and cur is not None:
            return cur
    return default


def _list_stat(xs: List[float]) -> Dict[str, float]:
    """
    리스트 통계(min/max/avg/std). std는 모집단 기준(분모=n).
    """
    if not xs:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "std": 0.0}

    n = len(xs)
    mn = min(xs)
    mx = max(xs)
    avg = sum(xs) / n
    var = sum((x - avg) ** 2 for x in xs) / n
    return {"min": mn, "max": mx, "avg": avg, "std": math.sqrt(var)}


def _level_metrics(prefix: str, level: Any) -> Dict[str, Any]:
    m = getattr(level, "metrics", None)
    if m is None:
        return {
            f"{prefix}_total": 0, f"{prefix}_hits": 0, f"{prefix}_misses": 0,
            f"{prefix}_hit_ratio": 0.0, f"{prefix}_miss_ratio": 0.0,
        }
    return {
        f"{prefix}_total": int(m.total),
        f"{prefix}_hits": int(m.hits),
        f"{prefix}_misses": int(m.misses),
        f"{prefix}_hit_ratio": round(m.hit_ratio, 6),
        f"{prefix}_miss_ratio": round(m.miss_ratio, 6),
    }


# ------------------------------------------------------------
# 메트릭 수집
# ------------------------------------------------------------

def collect_run_metrics(sim: Any) -> Dict[str, Any]:
    """
    세션 1회 실행(run)의 핵심 메트릭을 추출합니다.

    반환 메트릭(주요)
    -----------------
    - strategy, capacity
    - alloc_attempts/successes/failures, success_rate
    - frees, free_failures, skipped_frees
    - allocated_bytes, free_bytes, largest_free_block
    - segments, free_segments, allocated_segments
    - free_seg_min/max/avg/std
    - utilization, external_frag, internal_frag
    - l1_*/l2_* (total/hits/misses/hit_ratio/miss_ratio), combined_hit_ratio
    """
    pool = getattr(sim, "pool", sim)

    rep = pool.analysis()
    stats = pool.stats
    free_sizes = [float(x) for x in pool.free_segment_sizes]
    seg_stat = _list_stat(free_sizes)

    strategy = getattr(pool, "strategy", None)
    strategy_name = getattr(strategy, "value", strategy)

    n_segments = len(pool.segments)
    n_free = len(free_sizes)

    row: Dict[str, Any] = {
        "strategy": strategy_name,
        "capacity": int(rep.capacity),

        "alloc_attempts": int(stats.attempts),
        "alloc_successes": int(stats.successes),
        "alloc_failures": int(stats.failures),
        "success_rate": round(stats.success_rate, 6),

        "frees": int(_get(sim, ["frees"], 0)),
        "free_failures": int(_get(sim, ["free_failures"], 0)),
        "skipped_frees": int(_get(sim, ["skipped_frees"], 0)),

        "allocated_bytes": int(rep.total_allocated),
        "free_bytes": int(rep.total_free),
        "largest_free_block": int(rep.largest_free_block),

        "segments": n_segments,
        "free_segments": n_free,
        "allocated_segments": n_segments - n_free,

        "free_seg_min": seg_stat["min"],
        "free_seg_max": seg_stat["max"],
        "free_seg_avg": round(seg_stat["avg"], 6),
        "free_seg_std": round(seg_stat["std"], 6),

        "utilization": round(rep.utilization, 6),
        "external_frag": round(rep.external_fragmentation, 6),
        "internal_frag": round(rep.internal_fragmentation, 6),
    }

    caches = getattr(sim, "caches", None)
    row.update(_level_metrics("l1", _get(caches, ["l1"], None)))
    row.update(_level_metrics("l2", _get(caches, ["l2"], None)))

    combined = caches.combined_hit_ratio() if caches is not None else None
    row["combined_hit_ratio"] = round(combined, 6) if combined is not None else ""

    return row


# ------------------------------------------------------------
# 요약 CSV 저장
# ------------------------------------------------------------

def append_summary_csv(path: str, sim: Any, meta: Optional[Dict[str, Any]] = None) -> None:
    """
    summary.csv에 "한 run의 결과"를 1행 append합니다.

    동작 규칙
    --------
    - 파일이 없으면: row.keys()를 알파벳 정렬한 헤더로 새로 만든다.
    - 파일이 있으면: 기존 헤더 순서를 유지한다.
      새 컬럼이 생기면 헤더 뒤에 붙이고, 기존 행은 빈 값으로 채워 파일을 다시 쓴다.

    meta 병합 규칙
    -------------
    - row = metrics + meta (같은 키면 meta 우선)
    """
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

    row = summary_row(sim, meta)

    if not os.path.exists(path):
        fieldnames = sorted(row.keys())
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=fieldnames)
            w.writeheader()
            w.writerow(row)
        return

    with open(path, "r", newline="", encoding="utf-8") as f:
        r = csv.DictReader(f)
        header = list(r.fieldnames or [])
        old_rows = list(r)

    new_cols = [k for k in row.keys() if k not in header]
    if not new_cols:
        with open(path, "a", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=header)
            w.writerow(row)
        return

    fieldnames = header + new_cols
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames, restval="")
        w.writeheader()
        for old in old_rows:
            w.writerow(old)
        w.writerow(row)


def summary_row(sim: Any, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    sim + meta를 합쳐 summary.csv 1행과 같은 형태의 dict를 반환합니다.
    (experiments.py 콘솔 출력/QC용)
    """
    row = collect_run_metrics(sim)
    if meta:
        row.update(meta)
    return row


# ------------------------------------------------------------
# QC
# ------------------------------------------------------------

_EPS = 1e-6


def quick_qc(row: Dict[str, Any], sim: Any = None) -> List[str]:
    """
    결과 행 sanity check. 문제 문구 목록을 반환합니다(비어 있으면 OK).

    검사 항목
    --------
    - success_rate, utilization, external_frag, hit/miss ratio가 [0, 100]
    - allocated_bytes + free_bytes == capacity
    - alloc_successes + alloc_failures == alloc_attempts
    - 레벨별 total > 0이면 hit_ratio + miss_ratio == 100
    - sim이 주어지면 segment 레이아웃 무결성(check_invariants)
    """
    warns: List[str] = []

    def _f(k: str) -> float:
        v = row.get(k, 0)
        if v in ("", None):
            return 0.0
        return float(v)

    for k in ("success_rate", "utilization", "external_frag",
              "l1_hit_ratio", "l1_miss_ratio", "l2_hit_ratio", "l2_miss_ratio"):
        v = _f(k)
        if v < -_EPS or v > 100.0 + _EPS:
            warns.append(f"{k}={v} (범위 [0,100] 벗어남)")

    if int(_f("allocated_bytes") + _f("free_bytes")) != int(_f("capacity")):
        warns.append(
            f"allocated_bytes+free_bytes={int(_f('allocated_bytes') + _f('free_bytes'))}"
            f" != capacity={int(_f('capacity'))}"
        )

    if int(_f("alloc_successes") + _f("alloc_failures")) != int(_f("alloc_attempts")):
        warns.append("alloc_successes+alloc_failures != alloc_attempts")

    for lv in ("l1", "l2"):
        if _f(f"{lv}_total") > 0:
            s = _f(f"{lv}_hit_ratio") + _f(f"{lv}_miss_ratio")
            if abs(s - 100.0) > 1e-3:
                warns.append(f"{lv} hit+miss={s:.4f} != 100")

    if sim is not None:
        pool = getattr(sim, "pool", sim)
        for p in pool.check_invariants():
            warns.append(f"layout: {p}")

    return warns
