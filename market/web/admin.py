from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends, Form, Request

from market.api import endpoints
from market.api.client import ApiError
from market.constants import ROLE_ADMIN
from market.web.actions import join_errors, require
from market.web.context import ClientContext, get_context
from market.web.forms import CategoryForm, OrderStatusForm, ReviewForm, UserUpdateForm, validate_form
from market.web.pages import PAGES, Page, redirect, render
from market.web.routing import ADMIN_TREE

router = APIRouter(prefix="/admin")


def _mutate(ctx: ClientContext, back: str, call: Callable[[], object], *invalidate: str) -> object:
    """Общий хвост для действий админки: вызов API, сброс кэша, тост, редирект."""
    try:
        call()
    except ApiError as e:
        ctx.notifier.error(ctx.t("admin.actionFailed"), e.message)
        return redirect(back)
    for key in invalidate:
        ctx.queries.invalidate_queries(key)
    ctx.notifier.success(ctx.t("admin.actionDone"))
    return redirect(back)


# ---------------- vendors / listings / comments ----------------

@router.post("/vendors/{vendor_id}/review")
def review_vendor(
    request: Request,
    vendor_id: int,
    status: str = Form(""),
    reason: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx, (ROLE_ADMIN,))
    if blocked:
        return blocked
    form, errors = validate_form(ReviewForm, {"status": status, "reason": reason}, ctx.i18n)
    if errors:
        ctx.notifier.error(ctx.t("admin.actionFailed"), join_errors(errors))
        return redirect("/admin/vendors")
    return _mutate(
        ctx,
        "/admin/vendors",
        lambda: endpoints.review_vendor(ctx.api, vendor_id, form.status, form.reason),
        endpoints.PENDING_VENDORS,
        endpoints.ALL_VENDORS,
        endpoints.VENDORS,
    )


@router.post("/products/{listing_id}/review")
def review_listing(
    request: Request,
    listing_id: int,
    status: str = Form(""),
    reason: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx, (ROLE_ADMIN,))
    if blocked:
        return blocked
    form, errors = validate_form(ReviewForm, {"status": status, "reason": reason}, ctx.i18n)
    if errors:
        ctx.notifier.error(ctx.t("admin.actionFailed"), join_errors(errors))
        return redirect("/admin/products")
    return _mutate(
        ctx,
        "/admin/products",
        lambda: endpoints.review_listing(ctx.api, listing_id, form.status, form.reason),
        endpoints.PENDING_LISTINGS,
        endpoints.ALL_LISTINGS,
        endpoints.LISTINGS,
    )


@router.post("/comments/{comment_id}/review")
def review_comment(
    request: Request,
    comment_id: int,
    status: str = Form(""),
    reason: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx, (ROLE_ADMIN,))
    if blocked:
        return blocked
    form, errors = validate_form(ReviewForm, {"status": status, "reason": reason}, ctx.i18n)
    if errors:
        ctx.notifier.error(ctx.t("admin.reviewError"), join_errors(errors))
        return redirect("/admin/comments")
    try:
        endpoints.review_comment(ctx.api, comment_id, form.status, form.reason)
    except ApiError as e:
        ctx.notifier.error(ctx.t("admin.reviewError"), e.message)
        return redirect("/admin/comments")
    ctx.queries.invalidate_queries(endpoints.PENDING_COMMENTS)
    approved = form.status == "APPROVED"
    ctx.notifier.success(
        ctx.t("admin.commentReviewed"),
        ctx.t("admin.commentApproved") if approved else ctx.t("admin.commentRejected"),
    )
    return redirect("/admin/comments")


# ---------------- orders ----------------

@router.post("/orders/{order_id}/status")
def order_status(
    request: Request,
    order_id: int,
    status: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx, (ROLE_ADMIN,))
    if blocked:
        return blocked
    form, errors = validate_form(OrderStatusForm, {"status": status}, ctx.i18n)
    if errors:
        ctx.notifier.error(ctx.t("admin.actionFailed"), join_errors(errors))
        return redirect("/admin/orders")
    return _mutate(
        ctx,
        "/admin/orders",
        lambda: endpoints.update_order_status(ctx.api, order_id, form.status),
        endpoints.ALL_ORDERS,
        endpoints.order_path(order_id),
    )


# ---------------- categories ----------------

def _categories_with_errors(request: Request, ctx: ClientContext, errors, values):
    result = PAGES["admin_categories"](ctx, request)
    result.data.update({"errors": errors, "values": values})
    result.status_code = 400
    return render(request, ctx, result, ADMIN_TREE.layout)


@router.post("/categories")
def category_create(
    request: Request,
    name: str = Form(""),
    slug: str = Form(""),
    description: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx, (ROLE_ADMIN,))
    if blocked:
        return blocked
    values = {"name": name, "slug": slug, "description": description}
    form, errors = validate_form(CategoryForm, values, ctx.i18n)
    if errors:
        return _categories_with_errors(request, ctx, errors, values)
    return _mutate(
        ctx,
        "/admin/categories",
        lambda: endpoints.create_category(ctx.api, form.model_dump()),
        endpoints.CATEGORIES,
    )


@router.post("/categories/{category_id}")
def category_update(
    request: Request,
    category_id: int,
    name: str = Form(""),
    slug: str = Form(""),
    description: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx, (ROLE_ADMIN,))
    if blocked:
        return blocked
    values = {"name": name, "slug": slug, "description": description}
    form, errors = validate_form(CategoryForm, values, ctx.i18n)
    if errors:
        return _categories_with_errors(request, ctx, errors, values)
    return _mutate(
        ctx,
        "/admin/categories",
        lambda: endpoints.update_category(ctx.api, category_id, form.model_dump()),
        endpoints.CATEGORIES,
    )


@router.post("/categories/{category_id}/delete")
def category_delete(request: Request, category_id: int, ctx: ClientContext = Depends(get_context)):
    blocked = require(request, ctx, (ROLE_ADMIN,))
    if blocked:
        return blocked
    return _mutate(
        ctx,
        "/admin/categories",
        lambda: endpoints.delete_category(ctx.api, category_id),
        endpoints.CATEGORIES,
    )


# ---------------- users ----------------

@router.post("/users/{user_id}")
def user_update(
    request: Request,
    user_id: int,
    status: str = Form(""),
    role: str = Form(""),
    ctx: ClientContext = Depends(get_context),
):
    blocked = require(request, ctx, (ROLE_ADMIN,))
    if blocked:
        return blocked
    form, errors = validate_form(UserUpdateForm, {"status": status, "role": role}, ctx.i18n)
    if errors:
        ctx.notifier.error(ctx.t("admin.actionFailed"), join_errors(errors))
        return redirect("/admin/users")
    data = form.model_dump(exclude_none=True)
    if not data:
        return redirect("/admin/users")
    return _mutate(
        ctx,
        "/admin/users",
        lambda: endpoints.update_user(ctx.api, user_id, data),
        endpoints.ALL_USERS,
    )
