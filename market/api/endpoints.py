from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from market.api.client import ApiClient
from market.constants import (
    ORDER_CONFIRM_STATUSES,
    REVIEW_STATUSES,
    STATISTICS_KINDS,
)
from market.store.cart import CartItem

# ---------------- read endpoints (ключи для QueryClient) ----------------

USER = "/api/user"
VENDOR_PROFILE = "/api/user/vendor-profile"
CATEGORIES = "/api/categories"
LISTINGS = "/api/listings"
LISTINGS_FEATURED = "/api/listings/featured"
VENDORS = "/api/vendors"
ALL_VENDORS = "/api/vendors/all"
ALL_LISTINGS = "/api/listings/all"
USER_ORDERS = "/api/users/orders"
ALL_ORDERS = "/api/orders/all"
ALL_USERS = "/api/users/all"
ADMIN_STATS = "/api/admin/stats"
PENDING_VENDORS = "/api/admin/vendors/pending"
PENDING_LISTINGS = "/api/admin/listings/pending"
PENDING_COMMENTS = "/api/admin/comments/pending"
FAVORITES = "/api/users/favorites"


def listing_path(listing_id: int) -> str:
    return f"/api/listings/{listing_id}"


def order_path(order_id: int) -> str:
    return f"/api/orders/{order_id}"


def vendor_orders_path(vendor_id: int) -> str:
    return f"/api/vendors/{vendor_id}/orders"


def vendor_listings_path(vendor_id: int) -> str:
    return f"/api/vendors/{vendor_id}/listings"


def statistics_path(kind: str) -> str:
    if kind not in STATISTICS_KINDS:
        raise ValueError(f"unknown statistics kind: {kind}")
    return f"/api/admin/statistics/{kind}"


def _check_review_status(status: str) -> None:
    if status not in REVIEW_STATUSES:
        raise ValueError(f"status must be one of {', '.join(REVIEW_STATUSES)}")


# ---------------- orders ----------------

def create_order(api: ApiClient, items: Iterable[CartItem], total: float, currency: str) -> Dict[str, Any]:
    payload = {
        "items": [
            {"listingId": it.id, "quantity": it.quantity, "unitPrice": it.price}
            for it in items
        ],
        "totalAmount": total,
        "currency": currency,
    }
    return api.request("POST", "/api/orders", payload)


def create_payment(api: ApiClient, order_id: int, amount: float, currency: str, method: str) -> Any:
    return api.request(
        "POST",
        "/api/payments",
        {"orderId": order_id, "amount": amount, "currency": currency, "paymentMethod": method},
    )


def confirm_order(api: ApiClient, order_id: int, status: str) -> Dict[str, Any]:
    if status not in ORDER_CONFIRM_STATUSES:
        raise ValueError(f"status must be one of {', '.join(ORDER_CONFIRM_STATUSES)}")
    return api.request("PATCH", f"/api/orders/{order_id}/confirm", {"status": status})


def update_vendor_order(api: ApiClient, vendor_id: int, order_id: int, status: str) -> Any:
    return api.request("PATCH", f"/api/vendors/{vendor_id}/orders/{order_id}", {"status": status})


def update_order_status(api: ApiClient, order_id: int, status: str) -> Any:
    return api.request("PATCH", f"/api/admin/orders/{order_id}", {"status": status})


# ---------------- vendors ----------------

def apply_as_vendor(api: ApiClient, data: Dict[str, Any]) -> Any:
    return api.request("POST", "/api/vendors", data)


def review_vendor(api: ApiClient, vendor_id: int, status: str, reason: Optional[str] = None) -> Any:
    _check_review_status(status)
    return api.request(
        "PATCH",
        f"/api/admin/vendors/{vendor_id}",
        {"verificationStatus": status, "rejectionReason": reason or None},
    )


# ---------------- listings ----------------

def review_listing(api: ApiClient, listing_id: int, status: str, reason: Optional[str] = None) -> Any:
    # модерация товара: APPROVED -> ACTIVE на стороне API
    _check_review_status(status)
    return api.request(
        "PATCH",
        f"/api/admin/listings/{listing_id}",
        {"status": status, "rejectionReason": reason or None},
    )


# новые и изменённые товары уходят на модерацию (PENDING) на стороне API
def create_listing(api: ApiClient, vendor_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
    return api.request("POST", vendor_listings_path(vendor_id), data)


def update_listing(api: ApiClient, vendor_id: int, listing_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
    return api.request("PUT", f"{vendor_listings_path(vendor_id)}/{listing_id}", data)


def delete_listing(api: ApiClient, vendor_id: int, listing_id: int) -> Any:
    return api.request("DELETE", f"{vendor_listings_path(vendor_id)}/{listing_id}")


# ---------------- favorites ----------------

def add_favorite(api: ApiClient, listing_id: int) -> Any:
    return api.request("POST", FAVORITES, {"listingId": listing_id})


def remove_favorite(api: ApiClient, listing_id: int) -> Any:
    return api.request("DELETE", f"{FAVORITES}/{listing_id}")


# ---------------- categories ----------------

def create_category(api: ApiClient, data: Dict[str, Any]) -> Any:
    return api.request("POST", CATEGORIES, data)


def update_category(api: ApiClient, category_id: int, data: Dict[str, Any]) -> Any:
    return api.request("PATCH", f"{CATEGORIES}/{category_id}", data)


def delete_category(api: ApiClient, category_id: int) -> Any:
    return api.request("DELETE", f"{CATEGORIES}/{category_id}")


# ---------------- comments ----------------

def post_comment(api: ApiClient, listing_id: int, content: str, rating: int) -> Any:
    return api.request("POST", f"/api/listings/{listing_id}/comments", {"content": content, "rating": rating})


def review_comment(api: ApiClient, comment_id: int, status: str, reason: Optional[str] = None) -> Any:
    _check_review_status(status)
    return api.request("PATCH", f"/api/admin/comments/{comment_id}", {"status": status, "reason": reason or None})


# ---------------- users ----------------

def update_user(api: ApiClient, user_id: int, data: Dict[str, Any]) -> Any:
    return api.request("PATCH", f"/api/users/{user_id}", data)


def update_profile(api: ApiClient, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
    # свой профиль: PUT, в отличие от админского PATCH
    return api.request("PUT", f"/api/users/{user_id}", data)


def change_password(api: ApiClient, current_password: str, new_password: str) -> Any:
    return api.request(
        "POST",
        "/api/user/change-password",
        {"currentPassword": current_password, "newPassword": new_password, "confirmPassword": new_password},
    )
