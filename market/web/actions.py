from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import FileResponse, Response

from market.api import endpoints
from market.api.client import ApiError, Failure
from market.config import settings
from market.constants import (
    ADMIN_HOME_PATH,
    FILTER_ALL,
    HOME_PATH,
    LOGIN_PATH,
    PRICE_SLIDER_MAX,
    PROFILE_PATH,
    ROLE_ADMIN,
    ROLE_VENDOR,
)
from market.services.receipt_pdf import generate_order_receipt_pdf
from market.web.context import ClientContext, get_context
from market.web.filters import update_filters
from market.web.forms import (
    CheckoutForm,
    CommentForm,
    ConfirmOrderForm,
    ListingForm,
    LoginForm,
    OrderStatusForm,
    PasswordForm,
    ProfileForm,
    RegisterForm,
    VendorForm,
    validate_form,
)
from market.web.pages import PAGES, Page, favorite_ids, redirect, render, respond
from market.web.routing import Render, Route, guard

router = APIRouter()


def safe_next(url: Optional[str], default: str = HOME_PATH) -> str:
    # только локальные пути
    if url and url.startswith("/") and not url.startswith("//"):
        return url
    return default


def require(request: Request, ctx: ClientContext, roles: Sequence[str] = ()) -> Optional[Response]:
    """Та же проверка, что и у защищённых страниц; None = можно продолжать."""
    decision = guard(Route(request.url.path, "", protected=True, roles=tuple(roles)), ctx.auth)
    if isinstance(decision, Render):
        return None
    return respond(request, ctx, decision)


def join_errors(errors: Dict[str, str]) -> str:
    return "; ".join(f"{k}: {v}" for k, v in errors.items())


def rerender(request: Request, ctx: ClientContext, name: str, **data: Any) -> Response:
    """Страница снова, но с ошибками формы и статусом 400."""
    result = PAGES[name](ctx, request)
    if not isinstance(result, Page):
        return result
    result.data.update(data)
    result.status_code = 400
    return render(request, ctx, result)


# ---------------- language ----------------

@router.post("/language")
def change_language(
    code: str = Form(...),
    next: str = Form(HOME_PATH),
    ctx: ClientContext = Depends(get_context),
):
    ctx.language.set_language(code.strip())
    return redirect(safe_next(next))


# ---------------- auth ----------------

@router.post("/auth/login")
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    form, errors = validate_form(LoginForm, {"email": email, "password": password}, ctx.i18n)
    if errors:
        return render(
            request,
            ctx,
            Page("auth.html", {"mode": "login", "errors": errors, "values": {"email": email}}, status_code=400),
        )
    try:
        user = ctx.auth.login(form.model_dump())
    except ApiError:
        return redirect(LOGIN_PATH)
    # администратор сразу попадает в админку
    if (user or {}).get("role") == ROLE_ADMIN:
        return redirect(ADMIN_HOME_PATH)
    return redirect(HOME_PATH)


@router.post("/auth/register")
def register(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    confirmPassword: str = Form(""),
    firstName: str = Form(""),
    lastName: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    data = {
        "email": email,
        "password": password,
        "confirmPassword": confirmPassword,
        "firstName": firstName,
        "lastName": lastName,
        "language": ctx.language.language,
    }
    form, errors = validate_form(RegisterForm, data, ctx.i18n)
    if errors:
        values = {"email": email, "firstName": firstName, "lastName": lastName}
        return render(
            request,
            ctx,
            Page("auth.html", {"mode": "register", "errors": errors, "values": values}, status_code=400),
        )
    try:
        ctx.auth.register(form.model_dump(by_alias=True))
    except ApiError:
        return redirect(f"{LOGIN_PATH}?mode=register")
    return redirect(HOME_PATH)


@router.post("/auth/logout")
def logout(ctx: ClientContext = Depends(get_context)):
    try:
        ctx.auth.logout()
    except ApiError:
        pass  # тост уже показан
    return redirect(HOME_PATH)


# ---------------- cart ----------------

@router.post("/cart/add")
def cart_add(
    product_id: int = Form(...),
    quantity: int = Form(1),
    next: str = Form("/cart"),
    ctx: ClientContext = Depends(get_context),
):
    try:
        listing = ctx.query(endpoints.listing_path(product_id))
    except ApiError as e:
        ctx.notifier.error(ctx.t("cart.addFailed"), e.message)
        return redirect(safe_next(next, "/marketplace"))
    if not listing:
        ctx.notifier.error(ctx.t("cart.addFailed"), ctx.t("product.notFound"))
        return redirect("/marketplace")

    ctx.cart.add_item(listing, quantity)
    ctx.notifier.success(ctx.t("cart.added"), str(listing.get("title") or ""))
    return redirect(safe_next(next, "/cart"))


@router.post("/cart/update")
def cart_update(
    product_id: int = Form(...),
    quantity: int = Form(...),
    ctx: ClientContext = Depends(get_context),
):
    ctx.cart.update_quantity(product_id, quantity)
    return redirect("/cart")


@router.post("/cart/remove")
def cart_remove(product_id: int = Form(...), ctx: ClientContext = Depends(get_context)):
    ctx.cart.remove_item(product_id)
    return redirect("/cart")


@router.post("/cart/clear")
def cart_clear(ctx: ClientContext = Depends(get_context)):
    ctx.cart.clear_cart()
    return redirect("/cart")


# ---------------- checkout / orders ----------------

@router.post("/checkout")
def checkout_submit(
    request: Request,
    paymentMethod: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx)
    if blocked:
        return blocked
    if not ctx.cart.items:
        return redirect("/cart")

    form, errors = validate_form(CheckoutForm, {"paymentMethod": paymentMethod}, ctx.i18n)
    if errors:
        ctx.notifier.error(ctx.t("checkout.orderFailed"), join_errors(errors))
        return redirect("/checkout")

    total = ctx.cart.get_total()
    currency = settings.currency
    try:
        order = endpoints.create_order(ctx.api, ctx.cart.items, total, currency)
        endpoints.create_payment(ctx.api, int(order["id"]), total, currency, form.payment_method)
    except ApiError as e:
        ctx.notifier.error(ctx.t("checkout.orderFailed"), e.message or ctx.t("checkout.orderError"))
        return redirect("/checkout")

    ctx.cart.clear_cart()
    ctx.queries.invalidate_queries(endpoints.USER_ORDERS)
    ctx.notifier.success(ctx.t("checkout.orderSuccess"), ctx.t("checkout.orderConfirmed"))
    return redirect(PROFILE_PATH)


@router.post("/orders/{order_id}/confirm")
def order_confirm(
    request: Request,
    order_id: int,
    status: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx)
    if blocked:
        return blocked

    form, errors = validate_form(ConfirmOrderForm, {"status": status}, ctx.i18n)
    if errors:
        ctx.notifier.error(ctx.t("order.confirmFailed"), join_errors(errors))
        return redirect(f"/orders/{order_id}")
    try:
        endpoints.confirm_order(ctx.api, order_id, form.status)
    except ApiError as e:
        ctx.notifier.error(ctx.t("order.confirmFailed"), e.message)
        return redirect(f"/orders/{order_id}")

    ctx.queries.invalidate_queries(endpoints.order_path(order_id))
    ctx.queries.invalidate_queries(endpoints.USER_ORDERS)
    ctx.notifier.success(ctx.t("order.confirmed"))
    return redirect(f"/orders/{order_id}")


@router.get("/orders/{order_id}/receipt.pdf")
def order_receipt(request: Request, order_id: int, ctx: ClientContext = Depends(get_context)):
    blocked = require(request, ctx)
    if blocked:
        return blocked

    result = ctx.query_result(endpoints.order_path(order_id))
    if isinstance(result, Failure) or not result.unwrap():
        ctx.notifier.error(ctx.t("common.error"), ctx.t("order.notFound"))
        return redirect(PROFILE_PATH)

    path = generate_order_receipt_pdf(result.unwrap())
    return FileResponse(path, filename=Path(path).name, media_type="application/pdf")


# ---------------- marketplace filters ----------------

@router.post("/marketplace/filter")
def marketplace_filter(
    kind: str = Form("filters"),
    query: str = Form(""),
    search: str = Form(""),
    sort: str = Form(""),
    category: str = Form(FILTER_ALL),
    minPrice: Optional[float] = Form(None),
    maxPrice: Optional[float] = Form(None),
    tags: List[str] = Form([]),
    freeOnly: Optional[str] = Form(None),
):
    changes: Dict[str, Any]
    if kind == "search":
        changes = {"search": search.strip()}
    elif kind == "sort":
        changes = {"sort": sort}
    elif kind == "category":
        changes = {"category": category}
    elif kind == "reset":
        changes = {"category": FILTER_ALL, "minPrice": None, "maxPrice": None, "tags": None, "freeOnly": None}
    else:
        # границы ползунка = "без ограничения"
        changes = {
            "category": category,
            "minPrice": minPrice if minPrice and minPrice > 0 else None,
            "maxPrice": maxPrice if maxPrice is not None and maxPrice < PRICE_SLIDER_MAX else None,
            "tags": tags or None,
            "freeOnly": bool(freeOnly),
        }
    qs = update_filters(query, changes)
    return redirect("/marketplace" + (f"?{qs}" if qs else ""))


# ---------------- reviews ----------------

@router.post("/product/{listing_id}/comments")
def product_comment(
    request: Request,
    listing_id: int,
    content: str = Form(""),
    rating: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx)
    if blocked:
        return blocked

    form, errors = validate_form(CommentForm, {"content": content, "rating": rating}, ctx.i18n)
    if errors:
        ctx.notifier.error(ctx.t("product.reviewFailed"), join_errors(errors))
        return redirect(f"/product/{listing_id}")
    try:
        endpoints.post_comment(ctx.api, listing_id, form.content, form.rating)
    except ApiError as e:
        ctx.notifier.error(ctx.t("product.reviewFailed"), e.message)
        return redirect(f"/product/{listing_id}")

    ctx.queries.invalidate_queries(endpoints.listing_path(listing_id))
    ctx.notifier.success(ctx.t("product.reviewSubmitted"), ctx.t("product.reviewPending"))
    return redirect(f"/product/{listing_id}")


# ---------------- vendor ----------------

@router.post("/vendor/apply")
def vendor_apply(
    request: Request,
    companyName: str = Form(""),
    businessNumber: str = Form(""),
    description: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx)
    if blocked:
        return blocked

    values = {"companyName": companyName, "businessNumber": businessNumber, "description": description}
    form, errors = validate_form(VendorForm, values, ctx.i18n)
    if errors:
        return render(request, ctx, Page("become_vendor.html", {"errors": errors, "values": values}, status_code=400))
    try:
        endpoints.apply_as_vendor(ctx.api, form.model_dump(by_alias=True))
    except ApiError as e:
        ctx.notifier.error(ctx.t("vendor.applyFailed"), e.message)
        return redirect("/become-vendor")

    ctx.queries.invalidate_queries(endpoints.USER)
    ctx.queries.invalidate_queries(endpoints.VENDOR_PROFILE)
    ctx.notifier.success(ctx.t("vendor.applied"), ctx.t("vendor.pendingReview"))
    return redirect(PROFILE_PATH)


@router.post("/vendor/orders/{order_id}")
def vendor_order_status(
    request: Request,
    order_id: int,
    status: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx, (ROLE_VENDOR,))
    if blocked:
        return blocked
    vendor = ctx.auth.vendor_profile
    if not vendor:
        return redirect("/become-vendor")

    form, errors = validate_form(OrderStatusForm, {"status": status}, ctx.i18n)
    if errors:
        ctx.notifier.error(ctx.t("order.updateFailed"), join_errors(errors))
        return redirect("/vendor-dashboard")
    try:
        endpoints.update_vendor_order(ctx.api, int(vendor["id"]), order_id, form.status)
    except ApiError as e:
        ctx.notifier.error(ctx.t("order.updateFailed"), e.message)
        return redirect("/vendor-dashboard")

    ctx.queries.invalidate_queries(endpoints.vendor_orders_path(int(vendor["id"])))
    ctx.notifier.success(ctx.t("order.updated"))
    return redirect("/vendor-dashboard")


# ---------------- vendor listings ----------------

def _vendor_id(ctx: ClientContext) -> Optional[int]:
    vendor = ctx.auth.vendor_profile
    return int(vendor["id"]) if vendor else None


@router.post("/vendor/listings")
def vendor_listing_create(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    price: str = Form(""),
    type: str = Form("DIGITAL"),
    category: str = Form(""),
    tags: str = Form(""),
    status: str = Form("PENDING"),
    downloadUrl: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx, (ROLE_VENDOR,))
    if blocked:
        return blocked
    vendor_id = _vendor_id(ctx)
    if vendor_id is None:
        return redirect("/become-vendor")

    values = {
        "title": title,
        "description": description,
        "price": price,
        "type": type,
        "category": category,
        "tags": tags,
        "status": status,
        "downloadUrl": downloadUrl,
    }
    form, errors = validate_form(ListingForm, values, ctx.i18n)
    if errors:
        return rerender(request, ctx, "vendor_dashboard", errors=errors, values=values)
    try:
        endpoints.create_listing(ctx.api, vendor_id, form.model_dump(by_alias=True))
    except ApiError as e:
        ctx.notifier.error(ctx.t("vendor.listingFailed"), e.message)
        return redirect("/vendor-dashboard")

    ctx.queries.invalidate_queries(endpoints.LISTINGS)
    ctx.notifier.success(ctx.t("vendor.listingCreated"), form.title)
    return redirect("/vendor-dashboard")


@router.post("/vendor/listings/{listing_id}")
def vendor_listing_update(
    request: Request,
    listing_id: int,
    title: str = Form(""),
    description: str = Form(""),
    price: str = Form(""),
    type: str = Form("DIGITAL"),
    category: str = Form(""),
    tags: str = Form(""),
    status: str = Form("PENDING"),
    downloadUrl: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx, (ROLE_VENDOR,))
    if blocked:
        return blocked
    vendor_id = _vendor_id(ctx)
    if vendor_id is None:
        return redirect("/become-vendor")

    values = {
        "id": listing_id,
        "title": title,
        "description": description,
        "price": price,
        "type": type,
        "category": category,
        "tags": tags,
        "status": status,
        "downloadUrl": downloadUrl,
    }
    form, errors = validate_form(ListingForm, values, ctx.i18n)
    if errors:
        return rerender(request, ctx, "vendor_dashboard", errors=errors, values=values, editing=values)
    try:
        endpoints.update_listing(ctx.api, vendor_id, listing_id, form.model_dump(by_alias=True))
    except ApiError as e:
        ctx.notifier.error(ctx.t("vendor.listingFailed"), e.message)
        return redirect(f"/vendor-dashboard?edit={listing_id}")

    ctx.queries.invalidate_queries(endpoints.LISTINGS)
    ctx.queries.invalidate_queries(endpoints.listing_path(listing_id))
    ctx.notifier.success(ctx.t("vendor.listingUpdated"), form.title)
    return redirect("/vendor-dashboard")


@router.post("/vendor/listings/{listing_id}/delete")
def vendor_listing_delete(request: Request, listing_id: int, ctx: ClientContext = Depends(get_context)):
    blocked = require(request, ctx, (ROLE_VENDOR,))
    if blocked:
        return blocked
    vendor_id = _vendor_id(ctx)
    if vendor_id is None:
        return redirect("/become-vendor")
    try:
        endpoints.delete_listing(ctx.api, vendor_id, listing_id)
    except ApiError as e:
        ctx.notifier.error(ctx.t("vendor.listingFailed"), e.message)
        return redirect("/vendor-dashboard")

    ctx.queries.invalidate_queries(endpoints.LISTINGS)
    ctx.queries.invalidate_queries(endpoints.listing_path(listing_id))
    ctx.queries.invalidate_queries(endpoints.FAVORITES)
    ctx.notifier.success(ctx.t("vendor.listingDeleted"))
    return redirect("/vendor-dashboard")


# ---------------- favorites ----------------

@router.post("/favorites/{listing_id}")
def favorite_toggle(
    request: Request,
    listing_id: int,
    next: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx)
    if blocked:
        return blocked

    saved = listing_id in favorite_ids(ctx)
    try:
        if saved:
            endpoints.remove_favorite(ctx.api, listing_id)
        else:
            endpoints.add_favorite(ctx.api, listing_id)
    except ApiError as e:
        ctx.notifier.error(ctx.t("favorites.error"), e.message)
        return redirect(safe_next(next, f"/product/{listing_id}"))

    ctx.queries.invalidate_queries(endpoints.FAVORITES)
    ctx.queries.invalidate_queries(endpoints.listing_path(listing_id))
    ctx.notifier.success(ctx.t("favorites.removed") if saved else ctx.t("favorites.added"))
    return redirect(safe_next(next, f"/product/{listing_id}"))


# ---------------- profile ----------------

@router.post("/profile")
def profile_update(
    request: Request,
    firstName: str = Form(""),
    lastName: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    language: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx)
    if blocked:
        return blocked

    values = {"firstName": firstName, "lastName": lastName, "email": email, "phone": phone, "language": language}
    form, errors = validate_form(ProfileForm, values, ctx.i18n)
    if errors:
        return rerender(request, ctx, "profile", errors=errors, values=values)
    try:
        endpoints.update_profile(ctx.api, int(ctx.user["id"]), form.model_dump(by_alias=True, exclude_none=True))
    except ApiError as e:
        ctx.notifier.error(ctx.t("profile.updateFailed"), e.message)
        return redirect(PROFILE_PATH)

    ctx.queries.invalidate_queries(endpoints.USER)
    if form.language:
        ctx.language.set_language(form.language)
    ctx.notifier.success(ctx.t("profile.updated"))
    return redirect(PROFILE_PATH)


@router.post("/profile/password")
def profile_password(
    request: Request,
    currentPassword: str = Form(""),
    newPassword: str = Form(""),
    confirmPassword: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx)
    if blocked:
        return blocked

    data = {"currentPassword": currentPassword, "newPassword": newPassword, "confirmPassword": confirmPassword}
    form, errors = validate_form(PasswordForm, data, ctx.i18n)
    if errors:
        return rerender(request, ctx, "profile", password_errors=errors)
    try:
        endpoints.change_password(ctx.api, form.current_password, form.new_password)
    except ApiError as e:
        ctx.notifier.error(ctx.t("profile.passwordFailed"), e.message)
        return redirect(PROFILE_PATH)

    ctx.notifier.success(ctx.t("profile.passwordChanged"))
    return redirect(PROFILE_PATH)
