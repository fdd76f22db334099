from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional
from urllib.parse import urlencode

import httpx
from fastapi import Request

from market.api.client import ON_401_THROW, ApiClient, QueryResult, get_query_fn
from market.api.query import QueryClient, QueryClientPool
from market.constants import API_COOKIES_KEY, SUPPORTED_LANGUAGES
from market.db.sqlite import SqliteStorage
from market.i18n import I18n
from market.services.auth import AuthContext
from market.services.notifications import Notifier
from market.store.cart import CartStore
from market.store.language import LanguageStore
from market.store.storage import Storage, read_json, write_json
from market.web.routing import Principal, resolve_principal

logger = logging.getLogger(__name__)

query_pool = QueryClientPool()


class ClientContext:
    """Всё состояние одного посетителя на время запроса."""

    def __init__(
        self,
        visitor_id: str,
        storage: Storage,
        queries: QueryClient,
        accept_language: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.visitor_id = visitor_id
        self.storage = storage
        self.queries = queries
        self.i18n = I18n(storage, accept_language)
        self.language = LanguageStore(self.i18n, storage)
        self.cart = CartStore(storage)
        self.notifier = Notifier(storage)
        self.api = ApiClient(
            cookies=read_json(storage, API_COOKIES_KEY) or {},
            transport=transport,
            language=self._header_language(),
        )
        self.auth = AuthContext(self.api, queries, self.notifier, self.i18n)

    def _header_language(self) -> str:
        # в заголовок идёт только известный код, сохранённый может быть любым
        language = self.language.language
        return language if language in SUPPORTED_LANGUAGES else self.i18n.fallback

    @property
    def principal(self) -> Principal:
        return resolve_principal(self.auth.user)

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.auth.user

    def t(self, key: str, **values: Any) -> str:
        return self.i18n.t(key, **values)

    def query(self, endpoint: str, params: Optional[Dict[str, Any]] = None, on401: str = ON_401_THROW) -> Any:
        key = (endpoint, urlencode(sorted(params.items()))) if params else (endpoint,)
        return self.queries.fetch_query(key, get_query_fn(self.api, endpoint, on401=on401, params=params))

    def query_result(self, endpoint: str, params: Optional[Dict[str, Any]] = None, on401: str = ON_401_THROW) -> QueryResult:
        # без кэша: нужен явный результат (успех / не вошёл / ошибка)
        return self.api.query(endpoint, on401=on401, params=params)

    def close(self) -> None:
        cookies = self.api.cookies
        if cookies != (read_json(self.storage, API_COOKIES_KEY) or {}):
            write_json(self.storage, API_COOKIES_KEY, cookies)
        self.api.close()


def build_context(
    visitor_id: str,
    accept_language: Optional[str] = None,
    storage: Optional[Storage] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ClientContext:
    ctx = ClientContext(
        visitor_id,
        storage or SqliteStorage(visitor_id),
        query_pool.get(visitor_id),
        accept_language=accept_language,
        transport=transport,
    )
    ctx.auth.load()
    return ctx


def get_context(request: Request) -> Iterator[ClientContext]:
    ctx = build_context(request.state.visitor_id, request.headers.get("accept-language"))
    try:
        yield ctx
    finally:
        ctx.close()
