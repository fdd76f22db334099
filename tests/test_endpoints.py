import httpx
import pytest

from market.api import endpoints
from market.api.client import ApiClient
from market.services.notifications import Notifier
from market.store.cart import CartItem


@pytest.fixture
def api(fake_api):
    return ApiClient(base_url="http://api.test", transport=fake_api.transport)


def test_statistics_path():
    assert endpoints.statistics_path("orders") == "/api/admin/statistics/orders"
    with pytest.raises(ValueError):
        endpoints.statistics_path("revenue")


def test_confirm_order_only_accepts_final_statuses(api, fake_api):
    with pytest.raises(ValueError):
        endpoints.confirm_order(api, 1, "CANCELLED")
    assert not fake_api.calls

    fake_api.respond("PATCH", "/api/orders/1/confirm", body={"id": 1, "status": "DELIVERED"})
    assert endpoints.confirm_order(api, 1, "DELIVERED")["status"] == "DELIVERED"
    assert fake_api.body_of(fake_api.calls[0]) == {"status": "DELIVERED"}


def test_review_status_is_checked_before_request(api, fake_api):
    with pytest.raises(ValueError):
        endpoints.review_vendor(api, 3, "PENDING")
    assert not fake_api.calls


def test_create_order_payload(api, fake_api):
    fake_api.respond("POST", "/api/orders", 201, {"id": 9})
    items = [CartItem(id=7, title="A", price=10.0, quantity=2), CartItem(id=8, title="B", price=0.0)]
    assert endpoints.create_order(api, items, 20.0, "CNY") == {"id": 9}
    assert fake_api.body_of(fake_api.calls[0]) == {
        "items": [
            {"listingId": 7, "quantity": 2, "unitPrice": 10.0},
            {"listingId": 8, "quantity": 1, "unitPrice": 0.0},
        ],
        "totalAmount": 20.0,
        "currency": "CNY",
    }


def test_delete_category_no_content(fake_api):
    api = ApiClient(base_url="http://api.test", transport=httpx.MockTransport(lambda r: httpx.Response(204)))
    assert endpoints.delete_category(api, 4) is None



def test_vendor_listing_paths(api, fake_api):
    fake_api.respond("POST", "/api/vendors/4/listings", 201, {"id": 8})
    fake_api.respond("PUT", "/api/vendors/4/listings/8", body={"id": 8})
    fake_api.respond("DELETE", "/api/vendors/4/listings/8", 204)

    assert endpoints.create_listing(api, 4, {"title": "Pack"}) == {"id": 8}
    assert endpoints.update_listing(api, 4, 8, {"price": 10}) == {"id": 8}
    assert endpoints.delete_listing(api, 4, 8) is None
    assert [(r.method, r.url.path) for r in fake_api.calls] == [
        ("POST", "/api/vendors/4/listings"),
        ("PUT", "/api/vendors/4/listings/8"),
        ("DELETE", "/api/vendors/4/listings/8"),
    ]


def test_favorites(api, fake_api):
    fake_api.respond("POST", endpoints.FAVORITES, 201, {"listingId": 7})
    fake_api.respond("DELETE", f"{endpoints.FAVORITES}/7", 204)

    endpoints.add_favorite(api, 7)
    endpoints.remove_favorite(api, 7)

    assert fake_api.body_of(fake_api.calls[0]) == {"listingId": 7}
    assert fake_api.calls[1].url.path == "/api/users/favorites/7"


def test_profile_and_password(api, fake_api):
    fake_api.respond("PUT", "/api/users/1", body={"id": 1})
    fake_api.respond("POST", "/api/user/change-password", body={"message": "ok"})

    endpoints.update_profile(api, 1, {"firstName": "Li"})
    endpoints.change_password(api, "secret1", "secret2")

    assert fake_api.calls[0].method == "PUT"
    assert fake_api.body_of(fake_api.calls[1]) == {
        "currentPassword": "secret1",
        "newPassword": "secret2",
        "confirmPassword": "secret2",
    }

def test_toasts_are_shown_once(storage):
    notifier = Notifier(storage)
    notifier.success("Saved")
    notifier.error("Failed", "boom")
    toasts = notifier.drain()
    assert [(t.title, t.description, t.variant) for t in toasts] == [
        ("Saved", "", "default"),
        ("Failed", "boom", "destructive"),
    ]
    assert notifier.drain() == []
