import pytest

from cache import HierarchyResult
from config import SimConfig
from errors import AllocError, CacheError, FreeError
from simulator import TRACE_FIELDS, MemorySystem
from workload import make_workload


def test_fresh_session_is_uninitialized():
    sim = MemorySystem()
    assert sim.layout() == []
    assert sim.allocate(10) is AllocError.NO_FIT
    assert sim.access(0) is CacheError.NOT_INITIALIZED
    assert sim.flush_cache() is CacheError.NOT_INITIALIZED
    assert sim.reset_cache_stats() is CacheError.NOT_INITIALIZED


def test_session_operations(system):
    system.set_strategy("best_fit")
    res = system.allocate(100)
    assert (res.pid, res.address) == (1, 0)
    assert system.deallocate(1) is None
    assert system.deallocate(1) is FreeError.NOT_FOUND
    assert system.access(0) is HierarchyResult.MISS
    assert system.access(0) is HierarchyResult.L1_HIT
    assert system.combined_hit_ratio() == pytest.approx(50.0)
    assert system.flush_cache() is None
    assert system.reset_cache_stats() is None
    assert system.combined_hit_ratio() is None

    system.reset_pool()
    assert system.layout() == []
    assert system.strategy.value == "first_fit"


def test_from_config_builds_pool_and_cache():
    cfg = SimConfig(pool_capacity=2048, strategy="wf", cache_profile="tiny")
    sim = MemorySystem.from_config(cfg)
    assert sim.pool.capacity == 2048
    assert sim.strategy.value == "worst_fit"
    assert sim.caches.config() == (128, 16, 512, 32)
    assert sim.cfg is cfg


def test_from_config_rejects_bad_config():
    with pytest.raises(ValueError):
        MemorySystem.from_config(SimConfig(pool_capacity=0))


def test_run_maps_handles_to_pids(system):
    system.run([
        ("alloc", 200),
        ("alloc", 150),
        ("free", 0),
        ("access", 0),
        ("free", 0),     # already freed
        ("free", 5),     # never allocated
    ])
    assert [s.pid for s in system.layout()] == [None, 2, None]
    assert system.frees == 1
    assert system.skipped_frees == 2
    assert system.free_failures == 0
    assert system.ops == 6
    assert system.live_handles() == [1]
    assert system.caches.l1.metrics.total == 1


def test_run_skips_free_of_failed_alloc(system):
    system.run([("alloc", 5000), ("free", 0), ("alloc", 10), ("free", 1)])
    assert system.pool.stats.failures == 1
    assert system.skipped_frees == 1
    assert system.frees == 1
    assert system.layout()[0].is_free


def test_run_counts_free_failures(system):
    system.run([("alloc", 10)])
    assert system.deallocate(1) is None
    system.run([("free", 0)])
    assert system.free_failures == 1
    assert system.frees == 0


def test_run_unknown_op(system):
    with pytest.raises(ValueError):
        system.run([("resize", 10)])


def test_trace_has_one_row_per_op():
    sim = MemorySystem(enable_trace=True)
    sim.init_pool(1024)
    sim.init_cache(1024, 32, 8192, 64)
    sim.run([("alloc", 100), ("access", 0), ("access", 0), ("free", 0)])

    assert set(sim.trace) == set(TRACE_FIELDS)
    assert all(len(sim.trace[k]) == 4 for k in TRACE_FIELDS)
    assert sim.trace["step"] == [1, 2, 3, 4]
    assert sim.trace["op"] == ["alloc", "access", "access", "free"]
    assert sim.trace["ok"] == [1, 1, 1, 1]
    assert sim.trace["total_free"] == [924, 924, 924, 1024]
    assert sim.trace["segments"] == [2, 2, 2, 1]
    assert sim.trace["l1_hits"] == [0, 0, 1, 1]


def test_trace_disabled_by_default(system):
    system.run([("alloc", 1)])
    assert system.trace == {}


def test_random_workload_keeps_layout_invariant(system):
    wl = make_workload(n_ops=2000, capacity=1024, rng_seed=7, max_size=96)
    for i in range(0, len(wl), 100):
        system.run(wl[i:i + 100])
        assert system.pool.check_invariants() == []
    stats = system.pool.stats
    assert stats.successes + stats.failures == stats.attempts
