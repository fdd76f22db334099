import httpx
import pytest

from conftest import BUYER, VENDOR

from market.api import endpoints
from market.api.client import ApiClient, ApiError
from market.services.auth import AuthContext
from market.services.notifications import Notifier


@pytest.fixture
def auth(fake_api, storage, queries, i18n_en):
    api = ApiClient(base_url="http://api.test", transport=fake_api.transport)
    return AuthContext(api, queries, Notifier(storage), i18n_en)


class TestLoad:
    def test_starts_loading(self, auth):
        assert auth.is_loading is True
        assert auth.user is None

    def test_anonymous_session(self, auth):
        auth.load()
        assert auth.is_loading is False
        assert auth.user is None
        assert auth.error is None

    def test_logged_in_buyer(self, auth, fake_api):
        fake_api.user = BUYER
        auth.load()
        assert auth.user == BUYER
        assert auth.role == "USER"
        assert auth.vendor_profile is None
        assert not fake_api.requests_to("GET", endpoints.VENDOR_PROFILE)

    def test_vendor_profile_is_loaded_for_vendors(self, auth, fake_api):
        fake_api.user = VENDOR
        fake_api.respond("GET", endpoints.VENDOR_PROFILE, body={"id": 11, "companyName": "Acme"})
        auth.load()
        assert auth.vendor_profile == {"id": 11, "companyName": "Acme"}

    def test_server_error_is_recorded(self, auth, fake_api):
        fake_api.respond("GET", endpoints.USER, 500, {"message": "db down"})
        auth.load()
        assert auth.user is None
        assert auth.is_loading is False
        assert auth.error.message == "db down"

    def test_session_is_cached(self, auth, fake_api):
        fake_api.user = BUYER
        auth.load()
        auth.load()
        assert len(fake_api.requests_to("GET", endpoints.USER)) == 1


class TestLogin:
    def test_success_updates_cache_and_notifies(self, auth, fake_api, queries):
        fake_api.respond("POST", "/api/login", body=BUYER)
        user = auth.login({"email": BUYER["email"], "password": "secret1"})

        assert user == BUYER
        assert auth.user == BUYER
        assert queries.get_query_data(endpoints.USER) == BUYER
        toasts = auth.notifier.drain()
        assert [(t.title, t.variant) for t in toasts] == [("Signed in", "default")]

    def test_failure_raises_and_shows_error(self, auth, fake_api):
        fake_api.respond("POST", "/api/login", 401, {"message": "Invalid email or password"})
        with pytest.raises(ApiError):
            auth.login({"email": "x@y.z", "password": "wrong00"})
        toast = auth.notifier.drain()[0]
        assert toast.variant == "destructive"
        assert toast.description == "Invalid email or password"
        assert auth.user is None


def test_register_does_not_send_password_confirmation(auth, fake_api):
    fake_api.respond("POST", "/api/register", 201, BUYER)
    auth.register(
        {"email": BUYER["email"], "password": "secret1", "confirmPassword": "secret1", "firstName": "Li", "lastName": "Wei"}
    )
    sent = fake_api.body_of(fake_api.requests_to("POST", "/api/register")[0])
    assert "confirmPassword" not in sent
    assert sent["password"] == "secret1"
    assert auth.user == BUYER


def test_logout_clears_session(auth, fake_api, queries):
    fake_api.user = BUYER
    auth.load()
    fake_api.respond("POST", "/api/logout", 200, {})

    auth.logout()

    assert auth.user is None
    assert queries.get_query_data(endpoints.USER) is None
    assert auth.notifier.drain()[0].title == "Signed out"


def test_logout_failure_keeps_user(auth, fake_api):
    fake_api.user = BUYER
    auth.load()
    fake_api.respond("POST", "/api/logout", 500, {"message": "nope"})
    with pytest.raises(ApiError):
        auth.logout()
    assert auth.user == BUYER


def test_network_failure_on_load(storage, queries, i18n_en):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    api = ApiClient(base_url="http://api.test", transport=httpx.MockTransport(handler))
    auth = AuthContext(api, queries, Notifier(storage), i18n_en).load()
    assert auth.user is None
    assert auth.error is not None
