from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Union

from fastapi import Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from market.api import endpoints
from market.api.client import ApiError, Failure
from market.config import settings
from market.constants import (
    FILTER_ALL,
    HOME_PATH,
    LISTING_TYPES,
    ORDER_CONFIRM_STATUSES,
    ORDER_SHIPPED,
    ORDER_STATUSES,
    PAYMENT_METHODS,
    POPULAR_TAGS,
    PRICE_SLIDER_MAX,
    PROFILE_PATH,
    ROLE_VENDOR,
    ROLES,
    SORT_KEYS,
    STATISTICS_KINDS,
    SUPPORTED_LANGUAGES,
    USER_STATUSES,
    VENDOR_LISTING_STATUSES,
)
from market.utils.formatters import money, short_date
from market.web.context import ClientContext
from market.web.filters import FilterState, api_params, apply_client_filters, endpoint_for, page_url, total_pages
from market.web.routing import AccessDenied, Decision, Loading, NotFound, Redirect, Render

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["money"] = money
templates.env.filters["short_date"] = short_date
templates.env.globals["page_url"] = page_url


@dataclass
class Page:
    template: str
    data: Dict[str, Any] = field(default_factory=dict)
    status_code: int = 200


PageResult = Union[Page, Response]
PAGES: Dict[str, Callable[..., PageResult]] = {}


def page(name: str):
    def _register(fn: Callable[..., PageResult]) -> Callable[..., PageResult]:
        PAGES[name] = fn
        return fn

    return _register


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def render(request: Request, ctx: ClientContext, result: Page, layout: str = "layout.html") -> HTMLResponse:
    base = {
        "request": request,
        "t": ctx.t,
        "user": ctx.user,
        "vendor_profile": ctx.auth.vendor_profile,
        "layout": layout,
        "cart_count": ctx.cart.get_items_count(),
        "language": ctx.language.language,
        "languages": SUPPORTED_LANGUAGES,
        "current_url": str(request.url.path) + (f"?{request.url.query}" if request.url.query else ""),
        "toasts": ctx.notifier.drain(),
        "errors": {},
        "notices": [],
    }
    base.update(result.data)
    return templates.TemplateResponse(request, result.template, base, status_code=result.status_code)


def respond(request: Request, ctx: ClientContext, decision: Decision) -> Response:
    if isinstance(decision, Loading):
        return render(request, ctx, Page("loading.html"))
    if isinstance(decision, Redirect):
        return redirect(decision.location)
    if isinstance(decision, AccessDenied):
        return render(request, ctx, Page("access_denied.html", status_code=403))
    if isinstance(decision, NotFound):
        return render(request, ctx, Page("not_found.html", status_code=404))

    if not isinstance(decision, Render):
        raise TypeError(f"Unknown navigation decision: {decision!r}")
    handler = PAGES[decision.route.page]
    result = handler(ctx, request, **decision.params)
    if isinstance(result, Response):
        return result
    return render(request, ctx, result, decision.layout)


def _load(ctx: ClientContext, notices: List[str], endpoint: str, params: Optional[Dict[str, Any]] = None, default: Any = None) -> Any:
    """Запрос для страницы: ошибка не роняет страницу, а показывается сообщением."""
    try:
        data = ctx.query(endpoint, params)
    except ApiError as e:
        logger.warning("Query %s failed: %s", endpoint, e.message)
        notices.append(e.message)
        return default
    return default if data is None else data


def _int(raw: str) -> Optional[int]:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def favorite_ids(ctx: ClientContext) -> Set[int]:
    if not ctx.user:
        return set()
    try:
        favorites = ctx.query(endpoints.FAVORITES) or []
    except ApiError as e:
        logger.warning("Favorites query failed: %s", e.message)
        return set()
    return {int(item["id"]) for item in favorites if item.get("id") is not None}


# ---------------- buyer ----------------

@page("home")
def home(ctx: ClientContext, request: Request) -> PageResult:
    notices: List[str] = []
    return Page(
        "home.html",
        {
            "featured": _load(ctx, notices, endpoints.LISTINGS_FEATURED, default=[]),
            "new_arrivals": _load(ctx, notices, endpoints.LISTINGS, {"newArrivals": "true", "limit": "8"}, default=[]),
            "categories": _load(ctx, notices, endpoints.CATEGORIES, default=[]),
            "notices": notices,
        },
    )


@page("auth")
def auth(ctx: ClientContext, request: Request) -> PageResult:
    if ctx.user:
        return redirect(HOME_PATH)
    mode = "register" if request.query_params.get("mode") == "register" else "login"
    return Page("auth.html", {"mode": mode, "values": {}})


def _marketplace_title(ctx: ClientContext, state: FilterState) -> str:
    if state.vendors_page:
        return ctx.t("home.vendors.title")
    if state.featured:
        return ctx.t("home.featured.title")
    if state.new_arrivals:
        return ctx.t("home.newArrivals.title")
    if state.free_only:
        return ctx.t("nav.freeResources")
    if state.vendor:
        return ctx.t("product.vendor")
    if state.category != FILTER_ALL:
        text = ctx.t(f"categories.{state.category}")
        return text if text != f"categories.{state.category}" else ctx.t("nav.marketplace")
    return ctx.t("nav.marketplace")


@page("marketplace")
def marketplace(ctx: ClientContext, request: Request) -> PageResult:
    state = FilterState.from_query(request.query_params)
    per_page = settings.items_per_page
    notices: List[str] = []
    data = _load(ctx, notices, endpoint_for(state), api_params(state, per_page), default=[])
    title = _marketplace_title(ctx, state)

    if state.vendors_page:
        return Page("vendors.html", {"vendors": data, "title": title, "notices": notices})

    return Page(
        "marketplace.html",
        {
            "title": title,
            "state": state,
            "products": apply_client_filters(data, state),
            "total_pages": total_pages(len(data), per_page),
            "categories": _load(ctx, notices, endpoints.CATEGORIES, default=[]),
            "popular_tags": POPULAR_TAGS,
            "sort_keys": SORT_KEYS,
            "price_max": PRICE_SLIDER_MAX,
            "query": request.url.query,
            "notices": notices,
        },
    )


@page("product_detail")
def product_detail(ctx: ClientContext, request: Request, id: str) -> PageResult:
    listing_id = _int(id)
    if listing_id is None:
        return Page("not_found.html", status_code=404)
    try:
        listing = ctx.query(endpoints.listing_path(listing_id))
    except ApiError as e:
        ctx.notifier.error(ctx.t("product.notFound"), e.message)
        return redirect("/marketplace")
    if not listing:
        ctx.notifier.error(ctx.t("product.notFound"))
        return redirect("/marketplace")
    return Page(
        "product_detail.html",
        {
            "product": listing,
            "comments": listing.get("comments") or [],
            "in_cart": ctx.cart.find(listing_id),
            "is_free": float(listing.get("price") or 0) == 0,
            "is_favorite": listing_id in favorite_ids(ctx),
        },
    )


@page("profile")
def profile(ctx: ClientContext, request: Request) -> PageResult:
    notices: List[str] = []
    orders = _load(ctx, notices, endpoints.USER_ORDERS, default=[])
    favorites = _load(ctx, notices, endpoints.FAVORITES, default=[])
    return Page(
        "profile.html",
        {
            "orders": orders,
            "favorites": favorites,
            "values": dict(ctx.user or {}),
            "notices": notices,
        },
    )


@page("cart")
def cart(ctx: ClientContext, request: Request) -> PageResult:
    return Page(
        "cart.html",
        {"items": ctx.cart.items, "total": ctx.cart.get_total(), "count": ctx.cart.get_items_count()},
    )


@page("checkout")
def checkout(ctx: ClientContext, request: Request) -> PageResult:
    subtotal = ctx.cart.get_total()
    tax = 0.0
    return Page(
        "checkout.html",
        {
            "items": ctx.cart.items,
            "subtotal": subtotal,
            "tax": tax,
            "total": subtotal + tax,
            "payment_methods": PAYMENT_METHODS,
        },
    )


@page("order_detail")
def order_detail(ctx: ClientContext, request: Request, id: str) -> PageResult:
    order_id = _int(id)
    result = ctx.query_result(endpoints.order_path(order_id)) if order_id is not None else None
    if result is None or isinstance(result, Failure) or not result.unwrap():
        ctx.notifier.error(ctx.t("common.error"), ctx.t("order.notFound"))
        return redirect(PROFILE_PATH)
    order = result.unwrap()
    return Page(
        "order_detail.html",
        {
            "order": order,
            "can_confirm": order.get("status") == ORDER_SHIPPED,
            "confirm_statuses": ORDER_CONFIRM_STATUSES,
        },
    )


@page("become_vendor")
def become_vendor(ctx: ClientContext, request: Request) -> PageResult:
    if ctx.auth.vendor_profile:
        return redirect("/vendor-dashboard")
    return Page("become_vendor.html", {"values": {}})


def listing_values(listing: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not listing:
        return {"type": "DIGITAL", "status": "PENDING"}
    values = dict(listing)
    category = listing.get("category")
    if isinstance(category, dict):
        values["category"] = category.get("slug") or ""
    values["tags"] = ", ".join(listing.get("tags") or [])
    return values


@page("vendor_dashboard")
def vendor_dashboard(ctx: ClientContext, request: Request) -> PageResult:
    vendor = ctx.auth.vendor_profile
    notices: List[str] = []
    listings: List[Dict[str, Any]] = []
    orders: List[Dict[str, Any]] = []
    if vendor:
        listings = _load(ctx, notices, endpoints.LISTINGS, {"vendorId": str(vendor["id"])}, default=[])
        orders = _load(ctx, notices, endpoints.vendor_orders_path(int(vendor["id"])), default=[])
    # ?edit=<id> открывает форму редактирования товара
    edit_id = _int(request.query_params.get("edit", ""))
    editing = next((item for item in listings if item.get("id") == edit_id), None) if edit_id is not None else None
    return Page(
        "vendor_dashboard.html",
        {
            "vendor": vendor,
            "is_vendor": ctx.auth.role == ROLE_VENDOR,
            "listings": listings,
            "orders": orders,
            "order_statuses": ORDER_STATUSES,
            "listing_types": LISTING_TYPES,
            "listing_statuses": VENDOR_LISTING_STATUSES,
            "editing": editing,
            "values": listing_values(editing),
            "notices": notices,
        },
    )


# ---------------- admin ----------------

@page("admin_home")
def admin_home(ctx: ClientContext, request: Request) -> PageResult:
    notices: List[str] = []
    return Page(
        "admin/home.html",
        {
            "stats": _load(ctx, notices, endpoints.ADMIN_STATS, default={}),
            "pending_vendors": _load(ctx, notices, endpoints.PENDING_VENDORS, default=[]),
            "pending_listings": _load(ctx, notices, endpoints.PENDING_LISTINGS, default=[]),
            "notices": notices,
        },
    )


@page("admin_vendors")
def admin_vendors(ctx: ClientContext, request: Request) -> PageResult:
    notices: List[str] = []
    return Page(
        "admin/vendors.html",
        {
            "pending": _load(ctx, notices, endpoints.PENDING_VENDORS, default=[]),
            "vendors": _load(ctx, notices, endpoints.ALL_VENDORS, default=[]),
            "notices": notices,
        },
    )


@page("admin_products")
def admin_products(ctx: ClientContext, request: Request) -> PageResult:
    notices: List[str] = []
    return Page(
        "admin/products.html",
        {
            "pending": _load(ctx, notices, endpoints.PENDING_LISTINGS, default=[]),
            "listings": _load(ctx, notices, endpoints.ALL_LISTINGS, default=[]),
            "notices": notices,
        },
    )


@page("admin_orders")
def admin_orders(ctx: ClientContext, request: Request) -> PageResult:
    notices: List[str] = []
    orders = _load(ctx, notices, endpoints.ALL_ORDERS, default=[])
    status = request.query_params.get("status") or FILTER_ALL
    if status != FILTER_ALL:
        orders = [o for o in orders if o.get("status") == status]
    return Page(
        "admin/orders.html",
        {"orders": orders, "status": status, "order_statuses": ORDER_STATUSES, "notices": notices},
    )


@page("admin_categories")
def admin_categories(ctx: ClientContext, request: Request) -> PageResult:
    notices: List[str] = []
    categories = _load(ctx, notices, endpoints.CATEGORIES, default=[])
    return Page("admin/categories.html", {"categories": categories, "values": {}, "notices": notices})


@page("admin_comments")
def admin_comments(ctx: ClientContext, request: Request) -> PageResult:
    notices: List[str] = []
    comments = _load(ctx, notices, endpoints.PENDING_COMMENTS, default=[])
    q = (request.query_params.get("q") or "").strip().lower()
    if q:
        comments = [
            c
            for c in comments
            if q in str(c.get("content") or "").lower()
            or q in str((c.get("listing") or {}).get("title") or "").lower()
        ]
    return Page("admin/comments.html", {"comments": comments, "q": q, "notices": notices})


@page("admin_statistics")
def admin_statistics(ctx: ClientContext, request: Request) -> PageResult:
    notices: List[str] = []
    stats = {kind: _load(ctx, notices, endpoints.statistics_path(kind), default=[]) for kind in STATISTICS_KINDS}
    return Page("admin/statistics.html", {"stats": stats, "notices": notices})


@page("admin_users")
def admin_users(ctx: ClientContext, request: Request) -> PageResult:
    notices: List[str] = []
    users = _load(ctx, notices, endpoints.ALL_USERS, default=[])
    return Page(
        "admin/users.html",
        {"users": users, "roles": ROLES, "user_statuses": USER_STATUSES, "notices": notices},
    )
