# выбор маршрутов по роли пользователя
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Pattern, Protocol, Tuple, Union

from market.constants import (
    ADMIN_HOME_PATH,
    ADMIN_PREFIX,
    LOGIN_PATH,
    ROLE_ADMIN,
    ROLE_USER,
    ROLE_VENDOR,
)


class AuthState(Protocol):
    user: Optional[Dict[str, Any]]
    is_loading: bool


# ---------------- principal ----------------

@dataclass(frozen=True)
class Anonymous:
    role: ClassVar[Optional[str]] = None
    user: None = None


@dataclass(frozen=True)
class Buyer:
    role: ClassVar[str] = ROLE_USER
    user: Dict[str, Any] = field(compare=False, hash=False)


@dataclass(frozen=True)
class Vendor:
    role: ClassVar[str] = ROLE_VENDOR
    user: Dict[str, Any] = field(compare=False, hash=False)


@dataclass(frozen=True)
class Admin:
    role: ClassVar[str] = ROLE_ADMIN
    user: Dict[str, Any] = field(compare=False, hash=False)


Principal = Union[Anonymous, Buyer, Vendor, Admin]


def resolve_principal(user: Optional[Dict[str, Any]]) -> Principal:
    if not user:
        return Anonymous()
    role = user.get("role")
    if role == ROLE_ADMIN:
        return Admin(user)
    if role == ROLE_VENDOR:
        return Vendor(user)
    # всё остальное — обычный покупатель
    return Buyer(user)


# ---------------- routes ----------------

def _compile(path: str) -> Pattern[str]:
    pattern = re.sub(r"\{(\w+)\}", r"(?P<\1>[^/]+)", path)
    return re.compile(f"^{pattern}/?$" if path != "/" else "^/$")


@dataclass(frozen=True)
class Route:
    path: str
    page: str
    protected: bool = False
    roles: Tuple[str, ...] = ()

    def match(self, location: str) -> Optional[Dict[str, str]]:
        m = _compile(self.path).match(location)
        return m.groupdict() if m else None


@dataclass(frozen=True)
class RouteTree:
    name: str
    layout: str
    routes: Tuple[Route, ...]


BUYER_TREE = RouteTree(
    name="buyer",
    layout="layout.html",
    routes=(
        Route("/", "home"),
        Route(LOGIN_PATH, "auth"),
        Route("/marketplace", "marketplace"),
        Route("/product/{id}", "product_detail"),
        Route("/profile", "profile", protected=True),
        Route("/cart", "cart", protected=True),
        Route("/checkout", "checkout", protected=True),
        Route("/orders/{id}", "order_detail", protected=True),
        Route("/become-vendor", "become_vendor", protected=True),
        Route("/vendor-dashboard", "vendor_dashboard", protected=True, roles=(ROLE_VENDOR,)),
        Route("/admin-dashboard", "admin_home", protected=True, roles=(ROLE_ADMIN,)),
    ),
)

ADMIN_TREE = RouteTree(
    name="admin",
    layout="admin_layout.html",
    routes=(
        Route(ADMIN_HOME_PATH, "admin_home", protected=True, roles=(ROLE_ADMIN,)),
        Route("/admin/vendors", "admin_vendors", protected=True, roles=(ROLE_ADMIN,)),
        Route("/admin/products", "admin_products", protected=True, roles=(ROLE_ADMIN,)),
        Route("/admin/orders", "admin_orders", protected=True, roles=(ROLE_ADMIN,)),
        Route("/admin/categories", "admin_categories", protected=True, roles=(ROLE_ADMIN,)),
        Route("/admin/comments", "admin_comments", protected=True, roles=(ROLE_ADMIN,)),
        Route("/admin/statistics", "admin_statistics", protected=True, roles=(ROLE_ADMIN,)),
        Route("/admin/users", "admin_users", protected=True, roles=(ROLE_ADMIN,)),
    ),
)


def route_tree_for(principal: Principal) -> RouteTree:
    return ADMIN_TREE if isinstance(principal, Admin) else BUYER_TREE


def is_admin_location(location: str) -> bool:
    return location == ADMIN_PREFIX or location.startswith(ADMIN_PREFIX + "/")


# ---------------- decisions ----------------

@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Redirect:
    location: str


@dataclass(frozen=True)
class AccessDenied:
    pass


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Render:
    route: Route
    params: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    layout: str = BUYER_TREE.layout


Decision = Union[Loading, Redirect, AccessDenied, NotFound, Render]


def guard(
    route: Route,
    auth: AuthState,
    params: Optional[Dict[str, str]] = None,
    layout: str = BUYER_TREE.layout,
) -> Decision:
    if not route.protected and not route.roles:
        return Render(route, params or {}, layout)
    if auth.is_loading:
        return Loading()
    if not auth.user:
        return Redirect(LOGIN_PATH)
    if route.roles:
        role = auth.user.get("role")
        # администратор проходит любую проверку роли
        if role not in route.roles and role != ROLE_ADMIN:
            return AccessDenied()
    return Render(route, params or {}, layout)


def select_router(auth: AuthState, location: str) -> Decision:
    if auth.is_loading:
        return Loading()

    principal = resolve_principal(auth.user)
    if isinstance(principal, Admin) and not is_admin_location(location):
        return Redirect(ADMIN_HOME_PATH)

    tree = route_tree_for(principal)
    for route in tree.routes:
        params = route.match(location)
        if params is not None:
            return guard(route, auth, params, tree.layout)
    return NotFound()
