import threading

import pytest

from market.api.query import QueryClient, QueryClientPool


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def counter(value="data"):
    calls = []

    def fn():
        calls.append(1)
        return value

    return fn, calls


class TestFreshness:
    def test_fresh_data_is_served_from_cache(self):
        clock = FakeClock()
        qc = QueryClient(stale_time=300, retry=0, clock=clock)
        fn, calls = counter()
        qc.fetch_query("/api/categories", fn)
        clock.now += 299
        assert qc.fetch_query("/api/categories", fn) == "data"
        assert len(calls) == 1

    def test_stale_data_is_refetched(self):
        clock = FakeClock()
        qc = QueryClient(stale_time=300, retry=0, clock=clock)
        fn, calls = counter()
        qc.fetch_query("/api/categories", fn)
        clock.now += 300
        assert qc.is_stale("/api/categories")
        qc.fetch_query("/api/categories", fn)
        assert len(calls) == 2

    def test_str_and_tuple_keys_are_the_same(self):
        qc = QueryClient(retry=0)
        qc.set_query_data("/api/user", {"id": 1})
        assert qc.get_query_data(("/api/user",)) == {"id": 1}
        assert not qc.is_stale(("/api/user",))


class TestRetry:
    def test_single_retry_then_success(self):
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("temporary")
            return "ok"

        qc = QueryClient(retry=1)
        assert qc.fetch_query("k", flaky) == "ok"
        assert len(attempts) == 2

    def test_error_after_retries_is_raised_and_not_cached(self):
        attempts = []

        def broken():
            attempts.append(1)
            raise RuntimeError("down")

        qc = QueryClient(retry=1)
        with pytest.raises(RuntimeError):
            qc.fetch_query("k", broken)
        assert len(attempts) == 2
        assert qc.get_query_data("k") is None
        assert qc.is_stale("k")


def test_invalidate_by_prefix():
    qc = QueryClient(retry=0)
    qc.set_query_data(("/api/listings", "page=1"), [1])
    qc.set_query_data(("/api/listings", "page=2"), [2])
    qc.set_query_data("/api/categories", [3])

    qc.invalidate_queries("/api/listings")

    assert qc.get_query_data(("/api/listings", "page=1")) is None
    assert qc.get_query_data(("/api/listings", "page=2")) is None
    assert qc.get_query_data("/api/categories") == [3]


def test_concurrent_fetches_share_one_request():
    qc = QueryClient(retry=0)
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow():
        calls.append(1)
        started.set()
        release.wait(timeout=5)
        return "shared"

    results = []
    first = threading.Thread(target=lambda: results.append(qc.fetch_query("k", slow)))
    first.start()
    started.wait(timeout=5)
    second = threading.Thread(target=lambda: results.append(qc.fetch_query("k", slow)))
    second.start()
    release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert results == ["shared", "shared"]
    assert len(calls) == 1


class TestPool:
    def test_same_visitor_gets_same_client(self):
        pool = QueryClientPool()
        assert pool.get("a") is pool.get("a")
        assert pool.get("a") is not pool.get("b")

    def test_least_recently_used_client_is_evicted(self):
        pool = QueryClientPool(max_clients=2)
        a = pool.get("a")
        pool.get("b")
        pool.get("a")
        pool.get("c")
        assert pool.get("a") is a
        assert len(pool._clients) == 2
        assert "b" not in pool._clients
