import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from market.api.query import QueryClient
from market.i18n import I18n
from market.store.storage import MemoryStorage
from market.web.context import ClientContext, get_context
from market.web.main import app

BUYER = {"id": 1, "email": "buyer@example.com", "firstName": "Li", "lastName": "Wei", "role": "USER"}
VENDOR = {"id": 2, "email": "vendor@example.com", "firstName": "Zhang", "lastName": "San", "role": "VENDOR"}
ADMIN = {"id": 3, "email": "admin@example.com", "firstName": "Admin", "lastName": "", "role": "ADMIN"}

LISTING = {
    "id": 7,
    "title": "Audit workpaper template",
    "price": "199.00",
    "type": "DIGITAL",
    "images": ["/uploads/audit.png"],
    "category": {"slug": "audit", "name": "Audit"},
    "comments": [],
}


class FakeApi:
    """Marketplace API stand-in for httpx.MockTransport.

    ``user`` drives GET /api/user (None -> 401). Explicit responses set with
    ``respond`` take priority. Every request is recorded in ``calls``.
    """

    def __init__(self) -> None:
        self.user: Optional[Dict[str, Any]] = None
        self.responses: Dict[Tuple[str, str], Tuple[int, Any]] = {}
        self.calls: List[httpx.Request] = []

    def respond(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        self.responses[(method, path)] = (status, body)

    def requests_to(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.calls if r.method == method and r.url.path == path]

    def body_of(self, request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, request.url.path)
        if key in self.responses:
            status, body = self.responses[key]
            return httpx.Response(status, json=body)
        if key == ("GET", "/api/user"):
            if self.user is None:
                return httpx.Response(401, json={"message": "Unauthorized"})
            return httpx.Response(200, json=self.user)
        if key == ("GET", "/api/user/vendor-profile"):
            return httpx.Response(404, json={"message": "Vendor profile not found"})
        if key == ("GET", "/api/listings/7"):
            return httpx.Response(200, json=LISTING)
        if request.method == "GET":
            return httpx.Response(200, json=[])
        return httpx.Response(404, json={"message": "Not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def queries() -> QueryClient:
    return QueryClient(retry=0)


@pytest.fixture
def i18n_en(storage) -> I18n:
    return I18n(storage, accept_language="en")


@pytest.fixture
def make_context(storage, queries, fake_api):
    def _make(accept_language: Optional[str] = "en") -> ClientContext:
        ctx = ClientContext("visitor", storage, queries, accept_language, transport=fake_api.transport)
        ctx.auth.load()
        return ctx

    return _make


@pytest.fixture
def test_client(make_context):
    def _override(request: Request):
        ctx = make_context(request.headers.get("accept-language") or "en")
        try:
            yield ctx
        finally:
            ctx.close()

    app.dependency_overrides[get_context] = _override
    # без with: startup (init_db) не нужен, хранилище в памяти
    client = TestClient(app, headers={"accept-language": "en"})
    yield client
    app.dependency_overrides.clear()
