from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Sequence, Tuple, Union

from market.config import settings

logger = logging.getLogger(__name__)

QueryKey = Tuple[Hashable, ...]


def _key(key: Union[str, Sequence[Hashable]]) -> QueryKey:
    if isinstance(key, str):
        return (key,)
    return tuple(key)


@dataclass
class _Entry:
    data: Any
    updated_at: float


class QueryClient:
    """Кэш запросов одного посетителя.

    - свежие данные (моложе stale_time) отдаются без запроса;
    - одинаковые параллельные запросы выполняются один раз;
    - упавший запрос повторяется retry раз.
    """

    def __init__(
        self,
        stale_time: Optional[float] = None,
        retry: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stale_time = settings.query_stale_seconds if stale_time is None else stale_time
        self.retry = settings.query_retry if retry is None else retry
        self._clock = clock
        self._entries: Dict[QueryKey, _Entry] = {}
        self._inflight: Dict[QueryKey, Future] = {}
        self._lock = threading.Lock()

    def _is_fresh(self, entry: _Entry) -> bool:
        return self._clock() - entry.updated_at < self.stale_time

    def is_stale(self, key: Union[str, Sequence[Hashable]]) -> bool:
        with self._lock:
            entry = self._entries.get(_key(key))
            return entry is None or not self._is_fresh(entry)

    def get_query_data(self, key: Union[str, Sequence[Hashable]]) -> Any:
        with self._lock:
            entry = self._entries.get(_key(key))
            return entry.data if entry else None

    def set_query_data(self, key: Union[str, Sequence[Hashable]], data: Any) -> None:
        with self._lock:
            self._entries[_key(key)] = _Entry(data, self._clock())

    def invalidate_queries(self, prefix: Union[str, Sequence[Hashable]]) -> None:
        p = _key(prefix)
        with self._lock:
            for k in [k for k in self._entries if k[: len(p)] == p]:
                del self._entries[k]

    def _run(self, key: QueryKey, fn: Callable[[], Any]) -> Any:
        attempt = 0
        while True:
            try:
                return fn()
            except Exception as e:
                if attempt >= self.retry:
                    raise
                attempt += 1
                logger.warning("Query %r failed (%s), retry %d/%d", key, e, attempt, self.retry)

    def fetch_query(self, key: Union[str, Sequence[Hashable]], fn: Callable[[], Any]) -> Any:
        k = _key(key)
        with self._lock:
            entry = self._entries.get(k)
            if entry is not None and self._is_fresh(entry):
                return entry.data
            future = self._inflight.get(k)
            owner = future is None
            if owner:
                future = Future()
                self._inflight[k] = future

        if not owner:
            return future.result()

        try:
            data = self._run(k, fn)
        except Exception as e:
            with self._lock:
                self._inflight.pop(k, None)
            future.set_exception(e)
            raise

        with self._lock:
            self._entries[k] = _Entry(data, self._clock())
            self._inflight.pop(k, None)
        future.set_result(data)
        return data


class QueryClientPool:
    """По одному QueryClient на посетителя, старые вытесняются (LRU)."""

    def __init__(self, max_clients: int = 1024, factory: Callable[[], QueryClient] = QueryClient) -> None:
        self.max_clients = max_clients
        self._factory = factory
        self._clients: "OrderedDict[str, QueryClient]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, visitor_id: str) -> QueryClient:
        with self._lock:
            client = self._clients.get(visitor_id)
            if client is None:
                client = self._factory()
                self._clients[visitor_id] = client
            self._clients.move_to_end(visitor_id)
            while len(self._clients) > self.max_clients:
                self._clients.popitem(last=False)
            return client
