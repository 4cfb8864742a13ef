import pytest

from cache import AccessResult, CacheHierarchy, CacheLevel, HierarchyResult
from errors import CacheError, ConfigError


def test_create_validates_geometry():
    assert CacheLevel.create(1024, 0) is ConfigError.ZERO_BLOCK_SIZE
    assert CacheLevel.create(16, 32) is ConfigError.TOO_SMALL
    level = CacheLevel.create(1024, 32)
    assert isinstance(level, CacheLevel)
    assert level.number_of_blocks == 32
    assert level.valid_blocks == 0
    assert len(level.fifo) == 0


def test_capacity_not_multiple_of_block_rounds_down():
    level = CacheLevel.create(100, 32)
    assert level.number_of_blocks == 3


def test_locate():
    level = CacheLevel.create(1024, 32)
    assert level.locate(0) == (0, 0)
    assert level.locate(33) == (1, 0)
    assert level.locate(1024) == (0, 1)
    assert level.locate(2048 + 64) == (2, 2)


def test_miss_then_hit():
    level = CacheLevel.create(1024, 32)
    assert level.access(0) is AccessResult.MISS
    assert level.access(31) is AccessResult.HIT
    m = level.metrics
    assert (m.total, m.hits, m.misses) == (2, 1, 1)
    assert m.hit_ratio == 50.0
    assert m.hit_ratio + m.miss_ratio == 100.0


def test_cold_miss_into_invalid_slot_does_not_evict():
    level = CacheLevel.create(1024, 32)
    level.access(32)
    level.access(0)
    assert level.last_victim is None
    assert level.valid_blocks == 2
    assert list(level.fifo) == [1, 0]


def test_fifo_front_evicted_even_when_it_is_another_slot():
    level = CacheLevel.create(1024, 32)
    level.access(32)    # index 1
    level.access(0)     # index 0
    assert level.access(1024) is AccessResult.MISS  # index 0, tag 1

    # queue front was index 1, so block 1 is invalidated instead of block 0's old line
    assert level.last_victim == 1
    assert not level.blocks[1].valid
    assert level.blocks[0].valid and level.blocks[0].tag == 1
    assert list(level.fifo) == [0, 0]

    assert level.access(32) is AccessResult.MISS


def test_flush_keeps_metrics():
    level = CacheLevel.create(1024, 32)
    level.access(0)
    level.access(0)
    level.flush()
    assert level.valid_blocks == 0
    assert len(level.fifo) == 0
    assert level.access(0) is AccessResult.MISS
    assert level.metrics.total == 3

    level.flush()
    level.flush()
    assert level.valid_blocks == 0


def test_ratios_zero_without_accesses():
    level = CacheLevel.create(64, 32)
    assert level.metrics.hit_ratio == 0.0
    assert level.metrics.miss_ratio == 0.0


# ------------------------------------------------------------
# Hierarchy
# ------------------------------------------------------------

def test_uninitialized_hierarchy():
    h = CacheHierarchy()
    assert not h.is_initialized
    assert h.access(0) is CacheError.NOT_INITIALIZED
    assert h.flush_all() is CacheError.NOT_INITIALIZED
    assert h.reset_statistics() is CacheError.NOT_INITIALIZED
    assert h.combined_hit_ratio() is None
    assert h.config() is None


def test_cold_warm_conflict_sequence(hierarchy):
    assert hierarchy.access(0) is HierarchyResult.MISS
    assert hierarchy.access(0) is HierarchyResult.L1_HIT
    assert hierarchy.access(1024) is HierarchyResult.MISS
    assert hierarchy.access(0) is HierarchyResult.L2_HIT

    m1, m2 = hierarchy.l1.metrics, hierarchy.l2.metrics
    assert (m1.total, m1.hits) == (4, 1)
    assert (m2.total, m2.hits) == (3, 1)
    assert hierarchy.combined_hit_ratio() == pytest.approx(50.0)


def test_l1_hit_leaves_l2_untouched(hierarchy):
    hierarchy.access(0)
    hierarchy.access(0)
    hierarchy.access(4)
    assert hierarchy.l2.metrics.total == 1


def test_combined_ratio_none_before_any_access(hierarchy):
    assert hierarchy.combined_hit_ratio() is None


@pytest.mark.parametrize("geometry,err", [
    ((1024, 0, 8192, 64), ConfigError.ZERO_BLOCK_SIZE),
    ((16, 32, 8192, 64), ConfigError.TOO_SMALL),
    ((1024, 32, 32, 64), ConfigError.TOO_SMALL),
    ((1024, 32, 8192, 0), ConfigError.ZERO_BLOCK_SIZE),
])
def test_failed_initialize_discards_previous_levels(hierarchy, geometry, err):
    assert hierarchy.initialize(*geometry) is err
    assert not hierarchy.is_initialized
    assert hierarchy.l1 is None and hierarchy.l2 is None
    assert hierarchy.access(0) is CacheError.NOT_INITIALIZED


def test_flush_all_keeps_metrics(hierarchy):
    hierarchy.access(0)
    hierarchy.access(0)
    assert hierarchy.flush_all() is None
    assert hierarchy.l1.valid_blocks == 0
    assert hierarchy.l2.valid_blocks == 0
    assert hierarchy.l1.metrics.total == 2
    assert hierarchy.access(0) is HierarchyResult.MISS


def test_reset_statistics_rebuilds_same_geometry(hierarchy):
    hierarchy.access(0)
    hierarchy.access(64)
    assert hierarchy.reset_statistics() is None
    assert hierarchy.config() == (1024, 32, 8192, 64)
    assert hierarchy.l1.metrics.total == 0
    assert hierarchy.l2.metrics.total == 0
    assert hierarchy.l1.valid_blocks == 0
