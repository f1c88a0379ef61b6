from netkit.rng import get_random_engine


def test_draws_are_in_range():
    engine = get_random_engine()
    draws = [engine.getrandbits(32) for _ in range(1000)]
    assert all(0 <= x < 2**32 for x in draws)
    assert len(set(draws)) > 900


def test_engine_is_reproducible_from_state():
    engine = get_random_engine()
    state = engine.getstate()
    first = [engine.randint(0, 2**32 - 1) for _ in range(16)]
    engine.setstate(state)
    assert [engine.randint(0, 2**32 - 1) for _ in range(16)] == first


def test_engines_are_seeded_independently():
    a = get_random_engine()
    b = get_random_engine()
    seq_a = [a.getrandbits(64) for _ in range(8)]
    seq_b = [b.getrandbits(64) for _ in range(8)]
    assert len(set(seq_a) | set(seq_b)) == 16