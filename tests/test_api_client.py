import json

import httpx
import pytest

from market.api.client import (
    DEFAULT_ERROR_MESSAGE,
    ON_401_RETURN_NULL,
    ON_401_THROW,
    ApiClient,
    ApiError,
    Failure,
    Success,
    Unauthenticated,
    get_query_fn,
)


def make_api(handler, **kwargs) -> ApiClient:
    return ApiClient(base_url="http://api.test", transport=httpx.MockTransport(handler), **kwargs)


class TestRequest:
    def test_returns_parsed_json(self):
        api = make_api(lambda r: httpx.Response(200, json={"id": 1}))
        assert api.request("GET", "/api/listings/1") == {"id": 1}

    def test_sends_json_body_and_params(self):
        seen = {}

        def handler(request):
            seen["body"] = request.content
            seen["query"] = dict(request.url.params)
            seen["type"] = request.headers["content-type"]
            return httpx.Response(201, json={"ok": True})

        api = make_api(handler)
        api.request("POST", "/api/orders", {"totalAmount": 10}, params={"x": "1"})
        assert json.loads(seen["body"]) == {"totalAmount": 10}
        assert seen["query"] == {"x": "1"}
        assert seen["type"] == "application/json"

    def test_error_message_comes_from_payload(self):
        api = make_api(lambda r: httpx.Response(400, json={"message": "Email already exists"}))
        with pytest.raises(ApiError) as exc:
            api.request("POST", "/api/register", {})
        assert exc.value.message == "Email already exists"
        assert exc.value.status == 400

    def test_error_without_payload_uses_default_message(self):
        api = make_api(lambda r: httpx.Response(500, text="<html>oops</html>"))
        with pytest.raises(ApiError) as exc:
            api.request("GET", "/api/listings")
        assert exc.value.message == DEFAULT_ERROR_MESSAGE
        assert exc.value.status == 500

    def test_no_content_returns_none(self):
        api = make_api(lambda r: httpx.Response(204))
        assert api.request("DELETE", "/api/categories/1") is None

    def test_invalid_json_returns_none(self):
        api = make_api(lambda r: httpx.Response(200, text="not json"))
        assert api.request("GET", "/api/listings") is None

    def test_transport_error_becomes_api_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        api = make_api(handler)
        with pytest.raises(ApiError) as exc:
            api.request("GET", "/api/user")
        assert exc.value.status is None

    def test_language_header_is_sent(self):
        seen = {}

        def handler(request):
            seen["lang"] = request.headers.get("accept-language")
            return httpx.Response(200, json=[])

        make_api(handler, language="en").request("GET", "/api/categories")
        assert seen["lang"] == "en"


class TestCookies:
    def test_session_cookie_is_sent(self):
        seen = {}

        def handler(request):
            seen["cookie"] = request.headers.get("cookie")
            return httpx.Response(200, json={})

        make_api(handler, cookies={"connect.sid": "abc"}).request("GET", "/api/user")
        assert "connect.sid=abc" in seen["cookie"]

    def test_set_cookie_is_captured(self):
        api = make_api(lambda r: httpx.Response(200, json={}, headers={"set-cookie": "connect.sid=xyz; Path=/"}))
        api.request("POST", "/api/login", {})
        assert api.cookies == {"connect.sid": "xyz"}


class TestQuery:
    def test_success(self):
        api = make_api(lambda r: httpx.Response(200, json={"id": 1}))
        result = api.query("/api/user")
        assert result == Success({"id": 1})
        assert result.unwrap() == {"id": 1}

    def test_401_with_return_null_policy(self):
        api = make_api(lambda r: httpx.Response(401, json={"message": "Unauthorized"}))
        result = api.query("/api/user", on401=ON_401_RETURN_NULL)
        assert isinstance(result, Unauthenticated)
        assert result.unwrap() is None

    def test_401_with_throw_policy(self):
        api = make_api(lambda r: httpx.Response(401, json={"message": "Unauthorized"}))
        result = api.query("/api/user", on401=ON_401_THROW)
        assert isinstance(result, Failure)
        with pytest.raises(ApiError) as exc:
            result.unwrap()
        assert exc.value.is_unauthorized

    def test_other_errors_fail_under_either_policy(self):
        api = make_api(lambda r: httpx.Response(500, json={"message": "boom"}))
        assert isinstance(api.query("/api/user", on401=ON_401_RETURN_NULL), Failure)

    def test_query_fn_unwraps(self):
        api = make_api(lambda r: httpx.Response(401, json={}))
        assert get_query_fn(api, "/api/user", on401=ON_401_RETURN_NULL)() is None
        with pytest.raises(ApiError):
            get_query_fn(api, "/api/user")()
