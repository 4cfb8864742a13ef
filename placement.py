from __future__ import annotations

"""
placement.py

Placement strategy(배치 정책) 모음입니다.

이 프로젝트에서 배치 정책은 아래 형태의 함수로 정의됩니다.

    policy(segments, size) -> segment_index | None

- segments: SegmentList 내부의 Segment 리스트(주소 오름차순)
- size: 요청 바이트 수(> 0)
- segment_index: 요청을 담을 free segment의 인덱스
- None: 조건을 만족하는 free segment가 없음(NO_FIT)

이 파일의 목적
--------------
1) 정책 구현의 분리
   - split/coalesce 같은 상태 전이(models.py)와 어느 segment를 고를지를 분리합니다.
2) 비교 실험의 단순화
   - first_fit / best_fit / worst_fit을 동일 인터페이스로 제공해
     experiments.py에서 이름만 바꿔 돌릴 수 있게 합니다.

Tie-break 규칙(관찰 가능한 계약)
-------------------------------
- 모든 정책은 주소 순서로 한 번 선형 스캔합니다.
- best_fit은 strict `<`, worst_fit은 strict `>` 비교를 쓰므로
  크기가 같은 후보가 여럿이면 항상 가장 낮은 주소가 이깁니다.
- 인덱스 구조(정렬 리스트, heap 등)로 바꾸면 tie-break가 달라질 수 있으니 선형 스캔을 유지하세요.
"""

from enum import Enum
from typing import Callable, List, Optional, Sequence


class Strategy(Enum):
    FIRST_FIT = "first_fit"
    BEST_FIT = "best_fit"
    WORST_FIT = "worst_fit"

    @property
    def label(self) -> str:
        return {
            Strategy.FIRST_FIT: "First Fit",
            Strategy.BEST_FIT: "Best Fit",
            Strategy.WORST_FIT: "Worst Fit",
        }[self]


PlacementPolicy = Callable[[Sequence, int], Optional[int]]


# ------------------------------------------------------------
# 공통 헬퍼
# ------------------------------------------------------------

def _fits(seg, size: int) -> bool:
    """free 상태이고 요청 크기 이상이면 후보."""
    return seg.is_free and seg.size >= size


# ------------------------------------------------------------
# 정책들
# ------------------------------------------------------------

def first_fit(segments, size):
    """가장 낮은 주소의 후보 segment."""
    for i, seg in enumerate(segments):
        if _fits(seg, size):
            return i
    return None


def best_fit(segments, size):
    """
    Best Fit: 후보 중 크기가 가장 작은 segment.

    - 요청에 딱 맞는 segment를 고르면 split 후 남는 조각이 작아져
      큰 free 영역을 보존하는 경향이 있습니다.
    - 대신 아주 작은 remainder 조각이 쌓여 external fragmentation이 늘 수 있습니다.
    """
    best_idx, best_size = None, None
    for i, seg in enumerate(segments):
        if not _fits(seg, size):
            continue
        if best_size is None or seg.size < best_size:
            best_idx, best_size = i, seg.size
    return best_idx


def worst_fit(segments, size):
    """
    Worst Fit: 후보 중 크기가 가장 큰 segment.

    - split 후 남는 remainder가 크게 유지되어 다음 요청도 받을 여지가 큽니다.
    - 큰 요청이 나중에 들어오면 오히려 실패하기 쉬운 정책입니다.
    """
    worst_idx, worst_size = None, 0
    for i, seg in enumerate(segments):
        if not _fits(seg, size):
            continue
        if seg.size > worst_size:
            worst_idx, worst_size = i, seg.size
    return worst_idx


# ------------------------------------------------------------
# 정책 팩토리(이름 -> 함수)
# ------------------------------------------------------------

_ALIASES = {
    "first_fit": Strategy.FIRST_FIT,
    "first": Strategy.FIRST_FIT,
    "ff": Strategy.FIRST_FIT,
    "best_fit": Strategy.BEST_FIT,
    "best": Strategy.BEST_FIT,
    "bf": Strategy.BEST_FIT,
    "worst_fit": Strategy.WORST_FIT,
    "worst": Strategy.WORST_FIT,
    "wf": Strategy.WORST_FIT,
}

_POLICIES = {
    Strategy.FIRST_FIT: first_fit,
    Strategy.BEST_FIT: best_fit,
    Strategy.WORST_FIT: worst_fit,
}

STRATEGY_NAMES: List[str] = [s.value for s in Strategy]


def parse_strategy(name) -> Strategy:
    """
    문자열(또는 Strategy)을 Strategy로 변환합니다.

    - CLI 별칭(first/ff, best/bf, worst/wf)을 모두 허용합니다.
    - 모르는 이름이면 ValueError.
    """
    if isinstance(name, Strategy):
        return name
    key = (name or "").strip().lower()
    if key not in _ALIASES:
        raise ValueError(f"지원하지 않는 배치 정책: {name}")
    return _ALIASES[key]


def get_placement_policy(name) -> PlacementPolicy:
    """이름 또는 Strategy로 정책 함수를 얻습니다."""
    return _POLICIES[parse_strategy(name)]
