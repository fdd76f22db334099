from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]  # .../workpaper-market
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_float(*keys: str, default: float | None = None) -> float | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return float(v)


def _get_path(*keys: str, default: str) -> str:
    v = _get_env(*keys, default=default)
    return str(v)


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    db_path: str
    export_dir: str
    default_language: str
    query_stale_seconds: float
    query_retry: int
    request_timeout: float
    items_per_page: int
    currency: str
    decimals: int
    visitor_cookie: str
    log_level: str
    host: str
    port: int


def load_settings() -> Settings:
    return Settings(
        api_base_url=_get_env("API_BASE_URL", "MARKET_API_URL", default="http://localhost:5000") or "",
        db_path=_get_path("DB_PATH", "DATABASE_PATH", default=str(ROOT_DIR / "data" / "market.db")),
        export_dir=_get_path("EXPORT_DIR", default=str(ROOT_DIR / "exports")),
        default_language=_get_env("DEFAULT_LANGUAGE", default="zh") or "zh",
        # 0 здесь допустимое значение
        query_stale_seconds=_get_float("QUERY_STALE_SECONDS", default=300.0),
        query_retry=_get_int("QUERY_RETRY", default=1),
        request_timeout=_get_float("REQUEST_TIMEOUT", default=10.0) or 10.0,
        items_per_page=_get_int("ITEMS_PER_PAGE", default=12) or 12,
        currency=_get_env("CURRENCY", default="CNY") or "CNY",
        decimals=_get_int("DECIMALS", default=2),
        visitor_cookie=_get_env("VISITOR_COOKIE", default="market_vid") or "market_vid",
        log_level=(_get_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
        host=_get_env("HOST", default="127.0.0.1") or "127.0.0.1",
        port=_get_int("PORT", default=8000) or 8000,
    )


settings = load_settings()

if not settings.api_base_url.startswith(("http://", "https://")):
    raise RuntimeError("API_BASE_URL must be an http(s) URL. Set API_BASE_URL in .env")
