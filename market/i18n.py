from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from market.config import settings
from market.constants import I18N_CACHE_KEY, SUPPORTED_LANGUAGES
from market.store.storage import Storage

logger = logging.getLogger(__name__)

TRANSLATIONS_DIR = Path(__file__).resolve().parent / "translations"

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@lru_cache(maxsize=len(SUPPORTED_LANGUAGES))
def _read_bundle(language: str) -> Dict[str, Any]:
    path = TRANSLATIONS_DIR / f"{language}.json"
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_bundle(language: str) -> Dict[str, Any]:
    # файлы читаются только для известных языков
    if language not in SUPPORTED_LANGUAGES:
        return {}
    return _read_bundle(language)


def _lookup(bundle: Dict[str, Any], key: str) -> Optional[str]:
    node: Any = bundle
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, str) else None


def negotiate(accept_language: Optional[str]) -> Optional[str]:
    """Первый поддерживаемый язык из Accept-Language (с учётом q)."""
    if not accept_language:
        return None
    candidates = []
    for pos, chunk in enumerate(accept_language.split(",")):
        parts = chunk.strip().split(";")
        tag = parts[0].strip().lower()
        if not tag:
            continue
        q = 1.0
        for p in parts[1:]:
            p = p.strip()
            if p.startswith("q="):
                try:
                    q = float(p[2:])
                except ValueError:
                    q = 0.0
        candidates.append((-q, pos, tag))
    for _, _, tag in sorted(candidates):
        base = tag.split("-")[0]
        if base in SUPPORTED_LANGUAGES:
            return base
    return None


class I18n:
    """Переводы для одного посетителя.

    Язык определяется так: сохранённый выбор -> Accept-Language -> fallback.
    """

    def __init__(
        self,
        storage: Storage,
        accept_language: Optional[str] = None,
        fallback: Optional[str] = None,
    ) -> None:
        self._storage = storage
        self.fallback = fallback or settings.default_language
        cached = storage.get_item(I18N_CACHE_KEY)
        self.language = cached or negotiate(accept_language) or self.fallback

    def change_language(self, language: str) -> None:
        self.language = language
        self._storage.set_item(I18N_CACHE_KEY, language)

    def t(self, key: str, **values: Any) -> str:
        text = _lookup(load_bundle(self.language), key)
        if text is None and self.language != self.fallback:
            text = _lookup(load_bundle(self.fallback), key)
        if text is None:
            logger.debug("Missing translation %r for %s", key, self.language)
            return key
        if values:
            text = _PLACEHOLDER.sub(lambda m: str(values.get(m.group(1), m.group(0))), text)
        return text
