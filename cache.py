"""
cache.py

2단계(L1, L2) direct-mapped cache 모델입니다.

구성
----
- CacheBlock   : {valid, tag}
- CacheMetrics : 레벨별 total/hits/misses
- CacheLevel   : block 배열 + FIFO queue(레벨 전체에 하나) + metrics
- CacheHierarchy: [L1, L2] 순서의 레벨 묶음

주소 매핑(레벨 공통)
-------------------
    index = (address // block_size) % number_of_blocks
    tag   = address // (block_size * number_of_blocks)

FIFO eviction(관찰 가능한 동작 그대로 유지)
------------------------------------------
- miss가 난 슬롯(blocks[index])이 이미 valid면, FIFO queue의 front를 꺼내
  "그 인덱스의" block을 invalidate 합니다. front 인덱스는 index와 다를 수 있습니다.
- 그 다음 blocks[index]를 새 tag로 덮어쓰고 index를 queue 뒤에 넣습니다.
- queue에는 같은 인덱스가 여러 번 들어갈 수 있습니다.

flush는 block/queue만 비우고 metrics는 유지합니다. metrics 초기화는 레벨 재생성으로만 합니다.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, Optional, Tuple, Union

from errors import CacheError, ConfigError


class AccessResult(Enum):
    HIT = "hit"
    MISS = "miss"


class HierarchyResult(Enum):
    L1_HIT = "L1 HIT"
    L2_HIT = "L2 HIT"
    MISS = "MISS"


@dataclass
class CacheBlock:
    valid: bool = False
    tag: int = 0

    def invalidate(self) -> None:
        self.valid = False
        self.tag = 0


@dataclass
class CacheMetrics:
    total: int = 0
    hits: int = 0
    misses: int = 0

    @property
    def hit_ratio(self) -> float:
        return (100.0 * self.hits / self.total) if self.total > 0 else 0.0

    @property
    def miss_ratio(self) -> float:
        return (100.0 * self.misses / self.total) if self.total > 0 else 0.0


# ============================================================
# Cache level
# ============================================================

class CacheLevel:
    """
    direct-mapped cache 한 레벨.

    생성은 create()로 합니다(geometry 검증 후 CacheLevel 또는 ConfigError).
    """

    def __init__(self, capacity_bytes: int, block_size_bytes: int):
        self.capacity_bytes = int(capacity_bytes)
        self.block_size_bytes = int(block_size_bytes)
        self.number_of_blocks = self.capacity_bytes // self.block_size_bytes

        self.blocks: List[CacheBlock] = [CacheBlock() for _ in range(self.number_of_blocks)]
        self.fifo: Deque[int] = deque()
        self.metrics = CacheMetrics()

        # 마지막 access에서 FIFO로 invalidate된 block 인덱스(없으면 None)
        self.last_victim: Optional[int] = None

    @classmethod
    def create(cls, capacity_bytes: int, block_size_bytes: int) -> Union["CacheLevel", ConfigError]:
        if block_size_bytes == 0:
            return ConfigError.ZERO_BLOCK_SIZE
        if capacity_bytes // block_size_bytes < 1:
            return ConfigError.TOO_SMALL
        return cls(capacity_bytes, block_size_bytes)

    def locate(self, address: int) -> Tuple[int, int]:
        """address -> (index, tag)"""
        block_addr = address // self.block_size_bytes
        index = block_addr % self.number_of_blocks
        tag = address // (self.block_size_bytes * self.number_of_blocks)
        return index, tag

    def access(self, address: int) -> AccessResult:
        self.metrics.total += 1
        self.last_victim = None

        index, tag = self.locate(address)
        block = self.blocks[index]

        if block.valid and block.tag == tag:
            self.metrics.hits += 1
            return AccessResult.HIT

        self.metrics.misses += 1

        if block.valid and self.fifo:
            victim = self.fifo.popleft()
            self.blocks[victim].invalidate()
            self.last_victim = victim

        block.valid = True
        block.tag = tag
        self.fifo.append(index)
        return AccessResult.MISS

    def flush(self) -> None:
        for b in self.blocks:
            b.invalidate()
        self.fifo.clear()
        self.last_victim = None

    @property
    def valid_blocks(self) -> int:
        return sum(1 for b in self.blocks if b.valid)

    def geometry(self) -> Tuple[int, int]:
        return self.capacity_bytes, self.block_size_bytes


# ============================================================
# Hierarchy
# ============================================================

class CacheHierarchy:
    """
    L1 -> L2 순서로 조회하는 2단계 cache.

    - L1 hit이면 L2는 건드리지 않습니다.
    - L1 miss면 L1에 fill 한 뒤 L2를 조회합니다(L2도 miss면 L2에 fill).
    - initialize 실패 시 이전 레벨까지 모두 버리고 미초기화 상태가 됩니다.
    """

    def __init__(self):
        self.levels: List[CacheLevel] = []

    @property
    def is_initialized(self) -> bool:
        return len(self.levels) == 2

    @property
    def l1(self) -> Optional[CacheLevel]:
        return self.levels[0] if self.is_initialized else None

    @property
    def l2(self) -> Optional[CacheLevel]:
        return self.levels[1] if self.is_initialized else None

    def initialize(self, l1_capacity: int, l1_block: int,
                   l2_capacity: int, l2_block: int) -> Optional[ConfigError]:
        self.levels = []

        built: List[CacheLevel] = []
        for cap, blk in ((l1_capacity, l1_block), (l2_capacity, l2_block)):
            level = CacheLevel.create(cap, blk)
            if isinstance(level, ConfigError):
                return level
            built.append(level)

        self.levels = built
        return None

    def config(self) -> Optional[Tuple[int, int, int, int]]:
        """(l1_cap, l1_blk, l2_cap, l2_blk), 미초기화면 None."""
        if not self.is_initialized:
            return None
        return self.levels[0].geometry() + self.levels[1].geometry()

    def access(self, address: int) -> Union[HierarchyResult, CacheError]:
        if not self.is_initialized:
            return CacheError.NOT_INITIALIZED

        if self.levels[0].access(address) is AccessResult.HIT:
            return HierarchyResult.L1_HIT
        if self.levels[1].access(address) is AccessResult.HIT:
            return HierarchyResult.L2_HIT
        return HierarchyResult.MISS

    def flush_all(self) -> Optional[CacheError]:
        if not self.is_initialized:
            return CacheError.NOT_INITIALIZED
        for level in self.levels:
            level.flush()
        return None

    def reset_statistics(self) -> Optional[CacheError]:
        """현재 geometry로 레벨을 다시 만든다(metrics, block, queue 모두 초기화)."""
        cfg = self.config()
        if cfg is None:
            return CacheError.NOT_INITIALIZED
        return self.initialize(*cfg)

    def combined_hit_ratio(self) -> Optional[float]:
        """
        100*L1.hits/L1.total + 100*L2.hits/L1.total (L2.total > 0일 때만 두 번째 항).

        L1.total == 0이면 None(보고하지 않음).
        """
        if not self.is_initialized:
            return None
        m1, m2 = self.levels[0].metrics, self.levels[1].metrics
        if m1.total == 0:
            return None
        ratio = 100.0 * m1.hits / m1.total
        if m2.total > 0:
            ratio += 100.0 * m2.hits / m1.total
        return ratio
