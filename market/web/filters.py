from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import parse_qsl, urlencode

from market.api import endpoints
from market.constants import (
    FILTER_ALL,
    SORT_KEYS,
    SORT_NEWEST,
    SORT_PRICE_HIGH_LOW,
    SORT_PRICE_LOW_HIGH,
    SORT_RATING,
)


def _flag(params: Mapping[str, str], key: str) -> bool:
    return params.get(key) == "true"


def _price(raw: Optional[str]) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _page(raw: Optional[str]) -> int:
    try:
        return max(1, int(raw or 1))
    except ValueError:
        return 1


@dataclass(frozen=True)
class FilterState:
    search: str = ""
    category: str = FILTER_ALL
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    free_only: bool = False
    tags: Tuple[str, ...] = ()
    sort: str = SORT_NEWEST
    page: int = 1
    featured: bool = False
    new_arrivals: bool = False
    vendor: Optional[str] = None
    vendors_page: bool = False

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "FilterState":
        sort = params.get("sort") or SORT_NEWEST
        tags = tuple(t for t in (params.get("tags") or "").split(",") if t)
        return cls(
            search=params.get("search") or "",
            category=params.get("category") or FILTER_ALL,
            min_price=_price(params.get("minPrice")),
            max_price=_price(params.get("maxPrice")),
            free_only=_flag(params, "freeOnly"),
            tags=tags,
            sort=sort if sort in SORT_KEYS else SORT_NEWEST,
            page=_page(params.get("page")),
            featured=_flag(params, "featured"),
            new_arrivals=_flag(params, "newArrivals"),
            vendor=params.get("vendor") or None,
            vendors_page=_flag(params, "vendors"),
        )


def is_cleared(value: Any) -> bool:
    """Значение-"сброс": параметр удаляется из URL."""
    return value is None or value is False or value == "" or value == FILTER_ALL


def _to_param(value: Any) -> str:
    if value is True:
        return "true"
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(str(v) for v in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def update_filters(query: str, changes: Mapping[str, Any]) -> str:
    """Новая строка запроса после изменения фильтров.

    Страница всегда сбрасывается на первую.
    """
    params: Dict[str, str] = {}
    for k, v in parse_qsl(query, keep_blank_values=True):
        params.setdefault(k, v)
    params.pop("page", None)

    for key, value in changes.items():
        if isinstance(value, (list, tuple, set, frozenset)) and not value:
            value = None
        if is_cleared(value):
            params.pop(key, None)
        else:
            params[key] = _to_param(value)
    return urlencode(params)


def endpoint_for(state: FilterState) -> str:
    if state.vendors_page:
        return endpoints.VENDORS
    if state.featured:
        return endpoints.LISTINGS_FEATURED
    return endpoints.LISTINGS


def api_params(state: FilterState, per_page: int) -> Dict[str, str]:
    # category и freeOnly сервер не получает: они применяются в apply_client_filters
    params: Dict[str, str] = {}
    if state.search:
        params["search"] = state.search
    if state.min_price is not None:
        params["minPrice"] = _to_param(state.min_price)
    if state.max_price is not None:
        params["maxPrice"] = _to_param(state.max_price)
    if state.tags:
        params["tags"] = ",".join(state.tags)
    if state.vendor:
        params["vendorId"] = state.vendor
    if state.new_arrivals and not state.featured and not state.vendors_page:
        params["newArrivals"] = "true"
    params["offset"] = str((state.page - 1) * per_page)
    params["limit"] = str(per_page)
    return params


def _category_of(item: Mapping[str, Any]) -> Optional[str]:
    category = item.get("category")
    if isinstance(category, Mapping):
        return category.get("slug")
    return category


def _sort_key(sort: str):
    if sort == SORT_PRICE_LOW_HIGH:
        return lambda it: float(it.get("price") or 0), False
    if sort == SORT_PRICE_HIGH_LOW:
        return lambda it: float(it.get("price") or 0), True
    if sort == SORT_RATING:
        return lambda it: float(it.get("rating") or 0), True
    return lambda it: str(it.get("createdAt") or ""), True


def apply_client_filters(items: Sequence[Mapping[str, Any]], state: FilterState) -> List[Mapping[str, Any]]:
    result = list(items)
    if state.category != FILTER_ALL:
        result = [it for it in result if _category_of(it) == state.category]
    if state.free_only:
        result = [it for it in result if float(it.get("price") or 0) == 0]
    key, reverse = _sort_key(state.sort)
    return sorted(result, key=key, reverse=reverse)


def total_pages(total_items: int, per_page: int) -> int:
    if per_page <= 0:
        return 0
    return math.ceil(total_items / per_page)


def page_url(query: str, page: int) -> str:
    """Ссылка на страницу выдачи; остальные фильтры сохраняются."""
    params: Dict[str, str] = {}
    for k, v in parse_qsl(query, keep_blank_values=True):
        params.setdefault(k, v)
    if page > 1:
        params["page"] = str(page)
    else:
        params.pop("page", None)
    qs = urlencode(params)
    return "/marketplace" + (f"?{qs}" if qs else "")
