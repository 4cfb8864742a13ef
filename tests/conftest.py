from __future__ import annotations

import pytest

from cache import CacheHierarchy
from models import SegmentList
from simulator import MemorySystem


@pytest.fixture
def pool() -> SegmentList:
    p = SegmentList()
    p.initialize(1024)
    return p


@pytest.fixture
def hierarchy() -> CacheHierarchy:
    h = CacheHierarchy()
    assert h.initialize(1024, 32, 8192, 64) is None
    return h


@pytest.fixture
def system() -> MemorySystem:
    sim = MemorySystem()
    sim.init_pool(1024)
    assert sim.init_cache(1024, 32, 8192, 64) is None
    return sim
