"""
simulator.py

MemorySystem (Session/Orchestrator)

이 모듈은 allocator 모델(SegmentList)과 cache 모델(CacheHierarchy)을 한 세션으로 묶고,
워크로드(workload)를 일관된 규칙으로 실행하며 필요하면 per-op trace를 남긴다.

이 프로젝트에서의 위치
----------------------
- models.py: Segment/SegmentList 같은 풀 상태와 split/coalesce 동작
- placement.py: 어느 free segment를 고를지(정책)
- cache.py: L1/L2 direct-mapped cache와 FIFO eviction
- workload.py: alloc/free/access 입력 시퀀스
- metrics.py: 실행이 끝난 후 결과를 요약하는 집계기
- commands.py: 텍스트 명령 -> MemorySystem 호출
- simulator.py: 위 것들을 연결하는 세션 객체

핵심 계약(Contract)
-------------------
- MemorySystem은 풀 하나와 cache hierarchy 하나를 독점 소유한다.
  모듈 전역 상태는 없고, command layer는 세션을 명시적으로 넘겨받는다.
- 모든 연산은 동기적이며 원자적이다. 실패한 연산은 상태를 바꾸지 않는다.
- 실패는 errors.py의 enum 값으로 돌려준다(예외 아님).

- run(workload):
  workload 항목은 아래 세 가지 튜플이다.
    ("alloc", size)
    ("free", handle)    handle = 앞선 alloc op의 순번(0부터)
    ("access", address)
  세션은 handle -> pid 매핑을 유지한다. 할당이 실패한 handle의 free는 건너뛰고 집계한다.

- enable_trace=True 이면 실행 과정이 sim.trace에 "평평한 리스트"로 기록된다
  (run_sim.py가 CSV로 저장하기 쉬운 구조).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from cache import CacheHierarchy, HierarchyResult
from errors import AllocError, CacheError, ConfigError, FreeError
from models import AllocResult, FragmentationReport, Segment, SegmentList
from placement import Strategy


TRACE_FIELDS = (
    "step", "op", "arg", "ok",
    "total_free", "largest_free", "segments",
    "l1_hits", "l2_hits",
)


class MemorySystem:
    """
    풀 + cache hierarchy 세션.

    생성 직후: 풀은 미초기화(capacity 0), cache도 미초기화.
    from_config(cfg)를 쓰면 cfg 값으로 둘 다 초기화된 세션을 얻는다.
    """

    def __init__(self, strategy: Union[Strategy, str] = Strategy.FIRST_FIT, **kwargs):
        self.pool = SegmentList(strategy)
        self.caches = CacheHierarchy()

        self.enable_trace: bool = bool(kwargs.pop("enable_trace", False))
        self.trace: Dict[str, List[Any]] = {}
        if self.enable_trace:
            self.trace = {k: [] for k in TRACE_FIELDS}

        # run() 집계
        self.ops: int = 0
        self.frees: int = 0
        self.free_failures: int = 0
        self.skipped_frees: int = 0
        self._handles: Dict[int, Optional[int]] = {}
        self._next_handle: int = 0

        self.cfg = None

    @classmethod
    def from_config(cls, cfg, **kwargs) -> "MemorySystem":
        """
        SimConfig(또는 같은 필드를 가진 객체)로 세션을 만든다.

        cfg.prepare()가 있으면 먼저 호출한다(profile 적용 + validate).
        cache geometry가 잘못되면 RuntimeError.
        """
        if hasattr(cfg, "prepare"):
            cfg.prepare()

        sim = cls(getattr(cfg, "strategy", Strategy.FIRST_FIT), **kwargs)
        sim.cfg = cfg
        sim.init_pool(int(cfg.pool_capacity))

        err = sim.init_cache(
            int(cfg.l1_capacity), int(cfg.l1_block_size),
            int(cfg.l2_capacity), int(cfg.l2_block_size),
        )
        if err is not None:
            raise RuntimeError(f"cache 초기화 실패: {err.message}")
        return sim

    # ========================================================
    # Allocator operations
    # ========================================================

    def init_pool(self, capacity: int) -> None:
        self.pool.initialize(capacity)
        self._handles = {}
        self._next_handle = 0

    def set_strategy(self, strategy: Union[Strategy, str]) -> None:
        self.pool.set_strategy(strategy)

    @property
    def strategy(self) -> Strategy:
        return self.pool.strategy

    def allocate(self, size: int) -> Union[AllocResult, AllocError]:
        return self.pool.allocate(size)

    def deallocate(self, pid: int) -> Optional[FreeError]:
        return self.pool.deallocate(pid)

    def layout(self) -> List[Segment]:
        return self.pool.layout()

    def analysis(self) -> FragmentationReport:
        return self.pool.analysis()

    def reset_pool(self) -> None:
        self.pool.reset()
        self._handles = {}
        self._next_handle = 0

    # ========================================================
    # Cache operations
    # ========================================================

    def init_cache(self, l1_capacity: int, l1_block: int,
                   l2_capacity: int, l2_block: int) -> Optional[ConfigError]:
        return self.caches.initialize(l1_capacity, l1_block, l2_capacity, l2_block)

    def access(self, address: int) -> Union[HierarchyResult, CacheError]:
        return self.caches.access(address)

    def flush_cache(self) -> Optional[CacheError]:
        return self.caches.flush_all()

    def reset_cache_stats(self) -> Optional[CacheError]:
        return self.caches.reset_statistics()

    def combined_hit_ratio(self) -> Optional[float]:
        return self.caches.combined_hit_ratio()

    # ========================================================
    # Workload execution
    # ========================================================

    def _run_op(self, kind: str, arg: int) -> bool:
        if kind == "alloc":
            handle = self._next_handle
            self._next_handle += 1
            res = self.pool.allocate(arg)
            if isinstance(res, AllocError):
                self._handles[handle] = None
                return False
            self._handles[handle] = res.pid
            return True

        if kind == "free":
            pid = self._handles.get(arg)
            if pid is None:
                self.skipped_frees += 1
                return False
            err = self.pool.deallocate(pid)
            if err is not None:
                self.free_failures += 1
                return False
            self._handles[arg] = None
            self.frees += 1
            return True

        if kind == "access":
            res = self.caches.access(arg)
            return not isinstance(res, CacheError)

        raise ValueError(f"알 수 없는 op: {kind!r}")

    def run(self, workload: List[Tuple[str, int]]) -> None:
        """
        workload를 순서대로 실행한다.

        - 풀이 초기화되지 않았으면 alloc은 모두 NO_FIT으로 실패한다.
        - cache가 초기화되지 않았으면 access는 실패로 기록만 된다.
        - enable_trace면 op마다 한 행씩 trace에 쌓는다.
        """
        for op in workload:
            kind, arg = op[0], int(op[1])
            ok = self._run_op(kind, arg)
            self.ops += 1

            if self.enable_trace and self.trace:
                l1, l2 = self.caches.l1, self.caches.l2
                self.trace["step"].append(self.ops)
                self.trace["op"].append(kind)
                self.trace["arg"].append(arg)
                self.trace["ok"].append(int(ok))
                self.trace["total_free"].append(self.pool.total_free)
                self.trace["largest_free"].append(self.pool.largest_free_block)
                self.trace["segments"].append(len(self.pool.segments))
                self.trace["l1_hits"].append(l1.metrics.hits if l1 else 0)
                self.trace["l2_hits"].append(l2.metrics.hits if l2 else 0)

    def live_handles(self) -> List[int]:
        return [h for h, pid in self._handles.items() if pid is not None]
