from __future__ import annotations

"""
models.py

이 파일은 고정 크기 메모리 풀(byte-addressable pool)을 위한 allocator 모델을 정의합니다.

핵심 목표
---------
1) 최소한의 동적 할당 규칙을 재현
   - 풀은 주소 오름차순의 연속된 segment 리스트로 표현됩니다.
   - allocate는 배치 정책(placement.py)이 고른 free segment를 정확한 크기로 split 합니다.
   - deallocate는 segment를 free로 돌리고 인접 free segment를 coalesce 합니다.

2) 분석이 가능하도록 상태/카운터를 제공
   - AllocationStats: 할당 시도/성공/실패(해제는 집계하지 않음)
   - analysis(): 사용률, 외부 단편화, 최대 free block 등

3) 무결성
   - 모든 연산 후 segment 리스트는
     (a) base_address 오름차순, (b) 서로 연속, (c) [0, capacity) 전체를 덮고,
     (d) 인접한 두 free segment가 없어야 합니다.
   - check_invariants()가 이 조건을 검사합니다(테스트/QC용).
   - 실패한 allocate는 segment 리스트를 전혀 건드리지 않습니다.

용어
----
- Segment: 연속 주소 범위. free이거나 pid 하나가 소유
- pid: allocate 성공 시 발급되는 id. 1부터 단조 증가, 재사용하지 않음
- split: 선택된 free segment를 요청 크기로 줄이고 나머지를 새 free segment로 만드는 것
- coalesce: 인접 free segment를 하나로 합치는 것

주의(이 모델의 단순화)
----------------------
- 정렬(alignment), 헤더/메타데이터 공간은 없습니다. 그래서 internal fragmentation은 항상 0입니다.
- paging/virtual memory, 동시성은 다루지 않습니다.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Union

from errors import AllocError, FreeError
from placement import Strategy, get_placement_policy, parse_strategy


# ============================================================
# Basic types
# ============================================================

@dataclass
class Segment:
    """
    연속 주소 범위 하나.

    - pid가 None이면 free, 아니면 해당 pid가 소유한 allocated segment입니다.
    """
    base_address: int
    size: int
    pid: Optional[int] = None

    @property
    def is_free(self) -> bool:
        return self.pid is None

    @property
    def end_address(self) -> int:
        """마지막 바이트 주소(포함)."""
        return self.base_address + self.size - 1


@dataclass
class AllocationStats:
    """풀 수명 동안의 할당 카운터. initialize/reset에서만 초기화됩니다."""
    attempts: int = 0
    successes: int = 0
    failures: int = 0

    @property
    def success_rate(self) -> float:
        if self.attempts == 0:
            return 0.0
        return 100.0 * self.successes / self.attempts


@dataclass(frozen=True)
class AllocResult:
    """allocate 성공 결과: 발급된 pid와 segment 시작 주소."""
    pid: int
    address: int


@dataclass(frozen=True)
class FragmentationReport:
    """analysis() 결과 스냅샷."""
    capacity: int
    total_allocated: int
    total_free: int
    largest_free_block: int
    utilization: float
    external_fragmentation: float
    internal_fragmentation: float = 0.0


# ============================================================
# Segment list allocator
# ============================================================

class SegmentList:
    """
    Segment-list allocator.

    제공 API(핵심)
    ------------
    - initialize(capacity): 풀 전체를 free segment 하나로 만든다
    - set_strategy(strategy): 배치 정책 변경(상태 변화 없음)
    - allocate(size) -> AllocResult | AllocError
    - deallocate(pid) -> None | FreeError
    - layout(), analysis(), reset()

    생성 직후에는 초기화되지 않은 상태(capacity 0, segment 없음)입니다.
    """

    def __init__(self, strategy: Union[Strategy, str] = Strategy.FIRST_FIT):
        self.capacity = 0
        self.segments: List[Segment] = []
        self.next_pid = 1
        self.stats = AllocationStats()
        self.strategy = parse_strategy(strategy)

    # -------------------------
    # Lifecycle
    # -------------------------

    def initialize(self, capacity: int) -> None:
        """
        풀 초기화. 기존 segment/pid/통계는 모두 버립니다.

        - capacity == 0은 빈 풀로 허용합니다(segment 없음).
          0을 거부하는 것은 command layer / SimConfig.validate()의 몫입니다.
        """
        capacity = int(capacity)
        if capacity < 0:
            raise ValueError("capacity 는 음수일 수 없습니다")

        self.capacity = capacity
        self.segments = [Segment(0, capacity)] if capacity > 0 else []
        self.next_pid = 1
        self.stats = AllocationStats()

    def reset(self) -> None:
        """초기화되지 않은 상태로 복귀(정책도 first fit으로)."""
        self.capacity = 0
        self.segments = []
        self.next_pid = 1
        self.stats = AllocationStats()
        self.strategy = Strategy.FIRST_FIT

    def set_strategy(self, strategy: Union[Strategy, str]) -> None:
        self.strategy = parse_strategy(strategy)

    # -------------------------
    # Allocation
    # -------------------------

    def allocate(self, size: int) -> Union[AllocResult, AllocError]:
        """
        size 바이트 할당.

        흐름
        ----
        1) attempts += 1 (호출마다 정확히 한 번)
        2) size == 0이면 ZERO_SIZE 실패(스캔 없음)
        3) 배치 정책으로 후보 segment 선택, 없으면 NO_FIT 실패
        4) 필요하면 split, pid 발급, successes += 1

        실패 시 segment 리스트는 바뀌지 않습니다.
        """
        self.stats.attempts += 1

        size = int(size)
        if size <= 0:
            self.stats.failures += 1
            return AllocError.ZERO_SIZE

        policy = get_placement_policy(self.strategy)
        idx = policy(self.segments, size)
        if idx is None:
            self.stats.failures += 1
            return AllocError.NO_FIT

        seg = self.segments[idx]
        address = seg.base_address
        self._split(idx, size)

        pid = self.next_pid
        self.next_pid += 1
        seg.pid = pid

        self.stats.successes += 1
        return AllocResult(pid=pid, address=address)

    def _split(self, idx: int, size: int) -> None:
        """segment를 size로 줄이고 나머지를 바로 뒤에 free segment로 삽입."""
        seg = self.segments[idx]
        if seg.size <= size:
            return
        remainder = Segment(seg.base_address + size, seg.size - size)
        seg.size = size
        self.segments.insert(idx + 1, remainder)

    # -------------------------
    # Deallocation
    # -------------------------

    def deallocate(self, pid: int) -> Optional[FreeError]:
        """
        pid가 소유한 segment를 free로 돌리고 coalesce.

        - 통계(AllocationStats)는 성공/실패 모두 건드리지 않습니다.
        - 성공이면 None, 없으면 FreeError.NOT_FOUND.
        """
        for seg in self.segments:
            if not seg.is_free and seg.pid == pid:
                seg.pid = None
                self._coalesce()
                return None
        return FreeError.NOT_FOUND

    def _coalesce(self) -> None:
        """
        왼쪽부터 인접 free 쌍을 합칩니다.

        병합 후에는 같은 위치를 다시 검사하므로 3개 이상 연속된 free도 한 번에 접힙니다.
        """
        i = 0
        while i < len(self.segments) - 1:
            cur, nxt = self.segments[i], self.segments[i + 1]
            if cur.is_free and nxt.is_free:
                cur.size += nxt.size
                del self.segments[i + 1]
                continue
            i += 1

    # -------------------------
    # Read-only views
    # -------------------------

    def layout(self) -> List[Segment]:
        """segment 복사본 리스트(주소 오름차순)."""
        return [replace(s) for s in self.segments]

    @property
    def total_free(self) -> int:
        return sum(s.size for s in self.segments if s.is_free)

    @property
    def total_allocated(self) -> int:
        return sum(s.size for s in self.segments if not s.is_free)

    @property
    def largest_free_block(self) -> int:
        return max((s.size for s in self.segments if s.is_free), default=0)

    @property
    def free_segment_sizes(self) -> List[int]:
        return [s.size for s in self.segments if s.is_free]

    @property
    def live_pids(self) -> List[int]:
        return [s.pid for s in self.segments if not s.is_free]

    def analysis(self) -> FragmentationReport:
        """
        단편화 분석.

        계산식
        ------
        - utilization          = 100 * total_allocated / capacity   (capacity 0이면 0)
        - external_fragmentation = 100 * (total_free - largest_free) / total_free  (free 0이면 0)
        - internal_fragmentation = 0 (split이 항상 정확한 크기를 만들기 때문)
        """
        allocated = self.total_allocated
        free = self.total_free
        largest = self.largest_free_block

        utilization = (100.0 * allocated / self.capacity) if self.capacity > 0 else 0.0
        external = (100.0 * (free - largest) / free) if free > 0 else 0.0

        return FragmentationReport(
            capacity=self.capacity,
            total_allocated=allocated,
            total_free=free,
            largest_free_block=largest,
            utilization=utilization,
            external_fragmentation=external,
        )

    def check_invariants(self) -> List[str]:
        """
        segment 리스트 무결성 검사. 문제 목록을 돌려주고, 비어 있으면 정상입니다.

        - 첫 segment는 0에서 시작
        - 각 segment는 size > 0, 다음 segment와 연속
        - 마지막 segment는 capacity에서 끝남
        - 인접 free 쌍이 없음
        - 같은 pid가 두 번 나오지 않음
        """
        problems: List[str] = []
        expected = 0
        seen_pids = set()

        for i, seg in enumerate(self.segments):
            if seg.size <= 0:
                problems.append(f"segment[{i}] size={seg.size} (<=0)")
            if seg.base_address != expected:
                problems.append(f"segment[{i}] base={seg.base_address} != {expected}")
            expected = seg.base_address + seg.size

            if i > 0 and seg.is_free and self.segments[i - 1].is_free:
                problems.append(f"segment[{i - 1}], segment[{i}] 둘 다 free")

            if not seg.is_free:
                if seg.pid in seen_pids:
                    problems.append(f"pid {seg.pid} 중복")
                seen_pids.add(seg.pid)

        if expected != self.capacity:
            problems.append(f"coverage end={expected} != capacity={self.capacity}")

        return problems
