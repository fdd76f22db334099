# обёртка над HTTP API маркетплейса
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

import httpx

from market.config import settings

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "API request failed"

ON_401_THROW = "throw"
ON_401_RETURN_NULL = "returnNull"


class ApiError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


@dataclass(frozen=True)
class Success:
    data: Any

    def unwrap(self) -> Any:
        return self.data


@dataclass(frozen=True)
class Unauthenticated:
    message: str = ""

    def unwrap(self) -> Any:
        return None


@dataclass(frozen=True)
class Failure:
    error: ApiError

    def unwrap(self) -> Any:
        raise self.error


QueryResult = Union[Success, Unauthenticated, Failure]


def _error_payload(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        cookies: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
        language: Optional[str] = None,
    ) -> None:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if language:
            headers["Accept-Language"] = language
        self._http = httpx.Client(
            base_url=base_url or settings.api_base_url,
            cookies=cookies or {},
            timeout=timeout or settings.request_timeout,
            headers=headers,
            transport=transport,
        )

    @property
    def cookies(self) -> Dict[str, str]:
        return {c.name: c.value for c in self._http.cookies.jar if c.value is not None}

    def close(self) -> None:
        self._http.close()

    def request(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = self._http.request(method, endpoint, json=data, params=params)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, endpoint, e)
            raise ApiError(str(e) or DEFAULT_ERROR_MESSAGE) from e

        if response.is_error:
            payload = _error_payload(response)
            message = payload.get("message") or DEFAULT_ERROR_MESSAGE
            logger.info("%s %s -> %s: %s", method, endpoint, response.status_code, message)
            raise ApiError(str(message), status=response.status_code, payload=payload)

        if response.status_code == 204:
            return None

        try:
            return response.json()
        except ValueError:
            logger.error("Error parsing JSON response from %s %s", method, endpoint)
            return None

    def query(
        self,
        endpoint: str,
        on401: str = ON_401_THROW,
        params: Optional[Dict[str, Any]] = None,
    ) -> QueryResult:
        try:
            return Success(self.request("GET", endpoint, params=params))
        except ApiError as e:
            if e.is_unauthorized and on401 == ON_401_RETURN_NULL:
                return Unauthenticated(e.message)
            return Failure(e)


def get_query_fn(
    api: ApiClient,
    endpoint: str,
    on401: str = ON_401_THROW,
    params: Optional[Dict[str, Any]] = None,
) -> Callable[[], Any]:
    def _fn() -> Any:
        return api.query(endpoint, on401=on401, params=params).unwrap()

    return _fn
