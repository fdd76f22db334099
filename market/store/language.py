from __future__ import annotations

from market.constants import LANGUAGE_STORAGE_KEY
from market.i18n import I18n
from market.store.storage import Storage, read_json, write_json


class LanguageStore:
    def __init__(self, i18n: I18n, storage: Storage, key: str = LANGUAGE_STORAGE_KEY) -> None:
        self._i18n = i18n
        self._storage = storage
        self._key = key
        self.language = i18n.language
        raw = read_json(storage, key)
        if isinstance(raw, dict):
            stored = (raw.get("state") or {}).get("language")
            if stored:
                self.language = str(stored)

    def set_language(self, language: str) -> None:
        # сначала переключаем переводы, потом сохраняем выбор
        self._i18n.change_language(language)
        self.language = language
        write_json(self._storage, self._key, {"state": {"language": language}, "version": 0})
