from typing import Optional

from market.config import settings


def money(v: float, currency: Optional[str] = None) -> str:
    return f"{float(v or 0):.{settings.decimals}f} {currency or settings.currency}"


def short_date(v: Optional[str]) -> str:
    # ISO-строка от API -> "YYYY-MM-DD HH:MM"
    if not v:
        return ""
    return str(v)[:16].replace("T", " ")
