import pytest

from gemini_guard.comparison import CandidateCache

pytestmark = pytest.mark.unit


class CountingLoader:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return [{"id": self.calls}]


def test_first_get_loads(fake_clock):
    cache = CandidateCache(300, clock=fake_clock)
    loader = CountingLoader()

    assert cache.get(loader) == ({"id": 1},)
    assert loader.calls == 1
    assert cache.loaded_at == fake_clock()


def test_fresh_corpus_is_reused(fake_clock):
    cache = CandidateCache(300, clock=fake_clock)
    loader = CountingLoader()
    cache.get(loader)

    fake_clock.advance(299)

    assert cache.get(loader) == ({"id": 1},)
    assert loader.calls == 1


def test_expired_corpus_is_reloaded(fake_clock):
    cache = CandidateCache(300, clock=fake_clock)
    loader = CountingLoader()
    cache.get(loader)

    fake_clock.advance(300)

    assert cache.get(loader) == ({"id": 2},)
    assert loader.calls == 2


def test_invalidate_forces_reload(fake_clock):
    cache = CandidateCache(300, clock=fake_clock)
    loader = CountingLoader()
    cache.get(loader)

    cache.invalidate()

    assert cache.is_fresh() is False
    assert cache.get(loader) == ({"id": 2},)


def test_zero_ttl_always_reloads(fake_clock):
    cache = CandidateCache(0, clock=fake_clock)
    loader = CountingLoader()

    cache.get(loader)
    cache.get(loader)

    assert loader.calls == 2


def test_empty_corpus_is_cached(fake_clock):
    cache = CandidateCache(300, clock=fake_clock)
    calls = []

    def loader():
        calls.append(1)
        return []

    assert cache.get(loader) == ()
    assert cache.get(loader) == ()
    assert len(calls) == 1


def test_loader_errors_propagate_and_leave_cache_empty(fake_clock):
    cache = CandidateCache(300, clock=fake_clock)

    def broken():
        raise ConnectionError("database down")

    with pytest.raises(ConnectionError):
        cache.get(broken)
    assert cache.is_fresh() is False


def test_negative_ttl_is_rejected():
    with pytest.raises(ValueError, match="must not be negative"):
        CandidateCache(-1)


def test_instances_do_not_share_state(fake_clock):
    first = CandidateCache(300, clock=fake_clock)
    second = CandidateCache(300, clock=fake_clock)
    first.get(CountingLoader())

    assert first.is_fresh() is True
    assert second.is_fresh() is False
