from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from market.api import endpoints
from market.api.client import ON_401_RETURN_NULL, ApiClient, ApiError, get_query_fn
from market.api.query import QueryClient
from market.constants import ROLE_VENDOR
from market.i18n import I18n
from market.services.notifications import Notifier

logger = logging.getLogger(__name__)


class AuthContext:
    """Текущий пользователь посетителя.

    Начальное состояние: is_loading=True, user=None. load() снимает флаг.
    """

    def __init__(self, api: ApiClient, queries: QueryClient, notifier: Notifier, i18n: I18n) -> None:
        self.api = api
        self.queries = queries
        self.notifier = notifier
        self.i18n = i18n
        self.user: Optional[Dict[str, Any]] = None
        self.vendor_profile: Optional[Dict[str, Any]] = None
        self.is_loading = True
        self.error: Optional[ApiError] = None

    @property
    def role(self) -> Optional[str]:
        return self.user.get("role") if self.user else None

    def load(self) -> "AuthContext":
        try:
            user = self.queries.fetch_query(
                endpoints.USER, get_query_fn(self.api, endpoints.USER, on401=ON_401_RETURN_NULL)
            )
        except ApiError as e:
            logger.warning("Session fetch failed: %s", e.message)
            self.error = e
            user = None
        self.user = user or None

        self.vendor_profile = None
        if self.user and self.role == ROLE_VENDOR:
            try:
                self.vendor_profile = self.queries.fetch_query(
                    endpoints.VENDOR_PROFILE,
                    get_query_fn(self.api, endpoints.VENDOR_PROFILE, on401=ON_401_RETURN_NULL),
                )
            except ApiError as e:
                logger.warning("Vendor profile fetch failed: %s", e.message)

        self.is_loading = False
        return self

    def _signed_in(self, user: Dict[str, Any]) -> None:
        # кладём пользователя в кэш сразу, без повторного запроса
        self.queries.set_query_data(endpoints.USER, user)
        self.queries.invalidate_queries(endpoints.VENDOR_PROFILE)
        self.user = user
        self.vendor_profile = None

    def login(self, credentials: Dict[str, Any]) -> Dict[str, Any]:
        t = self.i18n.t
        try:
            user = self.api.request("POST", "/api/login", credentials)
        except ApiError as e:
            self.notifier.error(t("auth.loginFailed"), e.message or t("auth.invalidCredentials"))
            raise
        self._signed_in(user)
        self.notifier.success(t("auth.loginSuccess"), t("auth.welcomeBack"))
        return user

    def register(self, credentials: Dict[str, Any]) -> Dict[str, Any]:
        t = self.i18n.t
        data = {k: v for k, v in credentials.items() if k != "confirmPassword"}
        try:
            user = self.api.request("POST", "/api/register", data)
        except ApiError as e:
            self.notifier.error(t("auth.registerFailed"), e.message or t("auth.registerError"))
            raise
        self._signed_in(user)
        self.notifier.success(t("auth.registerSuccess"), t("auth.accountCreated"))
        return user

    def logout(self) -> None:
        t = self.i18n.t
        try:
            self.api.request("POST", "/api/logout")
        except ApiError as e:
            self.notifier.error(t("auth.logoutFailed"), e.message)
            raise
        self.queries.set_query_data(endpoints.USER, None)
        self.queries.invalidate_queries(endpoints.VENDOR_PROFILE)
        self.user = None
        self.vendor_profile = None
        self.notifier.success(t("auth.logoutSuccess"), t("auth.loggedOut"))
