from workload import _IndexList, make_churn_phases, make_phased_workload, make_workload, op_counts


def _check_handles(ops):
    """free는 이미 나온 alloc handle만, 한 번씩만 가리켜야 한다."""
    allocs = 0
    freed = set()
    for kind, arg in ops:
        if kind == "alloc":
            allocs += 1
        elif kind == "free":
            assert 0 <= arg < allocs
            assert arg not in freed
            freed.add(arg)


def test_same_seed_same_workload():
    a = make_workload(500, 4096, rng_seed=3)
    b = make_workload(500, 4096, rng_seed=3)
    c = make_workload(500, 4096, rng_seed=4)
    assert a == b
    assert a != c


def test_counts_and_ranges():
    ops = make_workload(1000, 2048, rng_seed=1, min_size=16, max_size=64, address_space=512)
    counts = op_counts(ops)
    assert sum(counts.values()) == 1000
    assert counts["access"] > 0 and counts["alloc"] > 0
    for kind, arg in ops:
        if kind == "alloc":
            assert 16 <= arg <= 64
        elif kind == "access":
            assert 0 <= arg < 512
    _check_handles(ops)


def test_default_size_range_follows_capacity():
    ops = make_workload(300, 800, rng_seed=9, access_ratio=0.0)
    sizes = [arg for kind, arg in ops if kind == "alloc"]
    assert sizes and max(sizes) <= 100
    assert min(sizes) >= 8


def test_first_non_access_op_is_alloc():
    ops = make_workload(50, 1024, rng_seed=0, alloc_ratio=0.0, access_ratio=0.0)
    assert ops[0] == ("alloc", ops[0][1])
    # alloc_ratio=0이면 alloc -> free가 번갈아 나온다
    assert [k for k, _ in ops[:4]] == ["alloc", "free", "alloc", "free"]
    _check_handles(ops)


def test_access_only_workload():
    ops = make_workload(100, 1024, access_ratio=1.0, hot_ratio=1.0)
    assert op_counts(ops) == {"alloc": 0, "free": 0, "access": 100}


def test_phased_workload_renumbers_handles():
    phases = [
        {"n_ops": 200, "alloc_ratio": 0.7, "seed": 1},
        {"n_ops": 200, "alloc_ratio": 0.3, "seed": 2},
    ]
    ops = make_phased_workload(phases, capacity=2048)
    assert len(ops) == 400
    _check_handles(ops)

    first = make_workload(200, 2048, rng_seed=1, alloc_ratio=0.7)
    assert ops[:200] == first


def test_churn_phases_shape():
    phases = make_churn_phases(4096)
    assert len(phases) == 7
    assert phases[0]["n_ops"] == 128
    assert all(p["n_ops"] == 64 for p in phases[1:])
    ops = make_phased_workload(phases, capacity=4096)
    assert len(ops) == 128 + 6 * 64
    _check_handles(ops)


def test_index_list():
    s = _IndexList()
    for x in (1, 2, 3, 3):
        s.add(x)
    assert len(s) == 3
    s.remove(1)
    s.remove(42)
    assert sorted(s.to_list()) == [2, 3]
