"""
workload.py

이 프로젝트에서 어떤 순서로 alloc/free/access를 날렸는가를 생성하는 모듈.

핵심 역할
---------
allocator 시뮬레이션은 결국 워크로드(workload)에 의해 행동이 결정된다.
- 같은 배치 정책이라도, 요청 크기 분포가 달라지면 split/coalesce 패턴과 단편화가 달라지고,
- alloc/free 비율이 달라지면 풀의 점유율(utilization)이 달라지며,
- access 주소가 hot 영역에 몰리면 cache hit ratio가 달라진다.

따라서 workload.py는 실험 재현성의 출발점이다.
- 입력 파라미터(n_ops, alloc_ratio, access_ratio, size 범위, hot 옵션, seed)가 같으면
  항상 동일한 워크로드를 생성한다.

반환 형식(Contract)
-------------------
    [("alloc", size) | ("free", handle) | ("access", address), ...]

- handle은 "이 워크로드 안에서 몇 번째 alloc op인지"(0부터)다.
  pid는 실행 시점에 정해지므로 워크로드는 pid를 모른다.
  MemorySystem.run()이 handle -> pid 매핑을 관리한다.
- free는 아직 free되지 않은 handle에서만 뽑는다(같은 handle을 두 번 free하지 않음).
  단, 그 alloc이 실행 시점에 실패했다면 MemorySystem이 해당 free를 건너뛴다.

모델링 의도 / 단순화
-------------------
- 요청 크기는 [min_size, max_size] 균등 분포.
- access 주소는 hot/cold로 단순 분리:
    address < hot_cut  => hot
    그 외              => cold
  (hot_cut = int(address_space * hot_ratio))
  hot_weight 확률로 hot 영역에서 뽑는다.

성능(생성기 내부 최적화)
-----------------------
free 대상 선택이 느리면 experiments.py의 반복 실행 전체가 느려진다.
live handle 집합은 add/remove/choice가 평균 O(1)인 _IndexList로 관리한다.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple
import random


# ------------------------------------------------------------
# 내부 유틸: 인덱스드 리스트 (O(1) add/remove/choice)
# ------------------------------------------------------------

class _IndexList:
    """
    "집합처럼" 쓰는 컨테이너.

    - _arr: 값들을 담는 리스트
    - _pos: 값 -> _arr 인덱스 매핑
    - remove 시 제거 대상 자리에 마지막 원소를 swap하여 O(1) 유지
    """

    def __init__(self):
        self._arr: List[int] = []
        self._pos: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._arr)

    def add(self, x: int) -> None:
        if x in self._pos:
            return
        self._pos[x] = len(self._arr)
        self._arr.append(x)

    def remove(self, x: int) -> None:
        i = self._pos.pop(x, None)
        if i is None:
            return
        last = self._arr.pop()
        if i < len(self._arr):
            self._arr[i] = last
            self._pos[last] = i

    def choice(self, rng: random.Random) -> int:
        if not self._arr:
            raise IndexError("empty _IndexList")
        return self._arr[rng.randrange(len(self._arr))]

    def to_list(self) -> List[int]:
        return list(self._arr)


Op = Tuple[str, int]
Workload = List[Op]


# ------------------------------------------------------------
# 메인 워크로드
# ------------------------------------------------------------

def make_workload(
    n_ops: int,
    capacity: int,
    rng_seed: int = 42,
    alloc_ratio: float = 0.6,
    access_ratio: float = 0.3,
    min_size: int = 8,
    max_size: Optional[int] = None,
    address_space: Optional[int] = None,
    hot_ratio: float = 0.2,
    hot_weight: float = 0.8,
) -> Workload:
    """
    워크로드 생성기.

    Parameters
    ----------
    n_ops:
        총 op 개수
    capacity:
        풀 크기. max_size/address_space 기본값 계산에 쓴다.
    rng_seed:
        재현성을 위한 시드. 동일 시드면 동일 workload가 생성된다.
    alloc_ratio:
        (0~1) access가 아닌 op 중 alloc 비율. 나머지는 free.
        live handle이 없으면 free 대신 alloc으로 fallback.
    access_ratio:
        (0~1) 각 op가 cache access일 확률.
    min_size, max_size:
        alloc 요청 크기 범위(포함). max_size 기본값은 capacity // 8.
    address_space:
        access 주소 범위 [0, address_space). 기본값은 capacity.
    hot_ratio, hot_weight:
        hot 영역 크기 비율과 hot 영역을 고를 확률.
    """
    rng = random.Random(rng_seed)

    # ---- 파라미터 클램프 ----
    alloc_ratio = max(0.0, min(float(alloc_ratio), 1.0))
    access_ratio = max(0.0, min(float(access_ratio), 1.0))
    hot_ratio = max(0.0, min(float(hot_ratio), 1.0))
    hot_weight = max(0.0, min(float(hot_weight), 1.0))

    min_size = max(1, int(min_size))
    if max_size is None:
        max_size = max(min_size, int(capacity) // 8)
    max_size = max(min_size, int(max_size))

    if address_space is None:
        address_space = int(capacity)
    address_space = max(1, int(address_space))
    hot_cut = max(1, int(address_space * hot_ratio))

    live = _IndexList()
    next_handle = 0
    ops: Workload = []

    def _pick_address() -> int:
        if hot_cut >= address_space or rng.random() < hot_weight:
            return rng.randrange(hot_cut)
        return rng.randrange(hot_cut, address_space)

    for _ in range(int(n_ops)):
        if rng.random() < access_ratio:
            ops.append(("access", _pick_address()))
            continue

        do_alloc = len(live) == 0 or rng.random() < alloc_ratio
        if do_alloc:
            ops.append(("alloc", rng.randint(min_size, max_size)))
            live.add(next_handle)
            next_handle += 1
        else:
            h = live.choice(rng)
            live.remove(h)
            ops.append(("free", h))

    return ops


# ------------------------------------------------------------
# 멀티 페이즈
# ------------------------------------------------------------

def make_phased_workload(phases, capacity: int, base_seed: int = 42) -> Workload:
    """
    여러 phase를 이어 붙인 워크로드 생성기.

    phases 형식 예:
      [
        {"n_ops":..., "alloc_ratio":..., "access_ratio":..., "min_size":..., "max_size":...,
         "hot_ratio":..., "hot_weight":..., "seed":...},
        ...
      ]

    - 각 phase의 handle은 0부터 시작하므로, 앞 phase들의 alloc 개수만큼 밀어서 이어 붙인다.
    - phase 사이에 live handle은 이어지지 않는다(각 phase는 자기 alloc만 free).
    """
    out: Workload = []
    offset = 0

    for i, p in enumerate(phases):
        chunk = make_workload(
            n_ops=p["n_ops"],
            capacity=capacity,
            rng_seed=p.get("seed", base_seed + i),
            alloc_ratio=p.get("alloc_ratio", 0.6),
            access_ratio=p.get("access_ratio", 0.3),
            min_size=p.get("min_size", 8),
            max_size=p.get("max_size"),
            address_space=p.get("address_space"),
            hot_ratio=p.get("hot_ratio", 0.2),
            hot_weight=p.get("hot_weight", 0.8),
        )

        allocs = 0
        for kind, arg in chunk:
            if kind == "free":
                out.append(("free", arg + offset))
            else:
                out.append((kind, arg))
                if kind == "alloc":
                    allocs += 1
        offset += allocs

    return out


def make_churn_phases(capacity: int, base_seed: int = 500) -> list:
    """
    단순한 fill -> churn 반복 시나리오.

    - fill 구간: alloc 위주로 풀을 채운다
    - churn 구간: alloc/free가 섞여 구멍이 생기고 다시 메워지는 패턴을 흉내낸다
    """
    fill = max(1, capacity // 32)
    churn = max(1, capacity // 64)

    phases = [{
        "n_ops": fill,
        "alloc_ratio": 0.95,
        "access_ratio": 0.1,
        "seed": base_seed,
    }]

    for i in range(3):
        phases.append({
            "n_ops": churn,
            "alloc_ratio": 0.4,
            "access_ratio": 0.3,
            "min_size": 4,
            "seed": base_seed + i + 1,
        })
        phases.append({
            "n_ops": churn,
            "alloc_ratio": 0.7,
            "access_ratio": 0.5,
            "hot_weight": 0.95,
            "seed": base_seed + i + 10,
        })

    return phases


# ------------------------------------------------------------
# 보조 유틸
# ------------------------------------------------------------

def op_counts(seq: Workload) -> Dict[str, int]:
    # 생성된 시퀀스의 op 종류별 개수.
    c = {"alloc": 0, "free": 0, "access": 0}
    for kind, _ in seq:
        c[kind] = c.get(kind, 0) + 1
    return c
