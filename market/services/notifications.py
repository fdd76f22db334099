from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import List

from market.constants import TOASTS_STORAGE_KEY
from market.store.storage import Storage, read_json, write_json


@dataclass(frozen=True)
class Toast:
    title: str
    description: str = ""
    variant: str = "default"  # default / destructive


class Notifier:
    """Короткие уведомления: живут в storage до следующей отрисованной страницы."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def push(self, title: str, description: str = "", variant: str = "default") -> None:
        pending = read_json(self._storage, TOASTS_STORAGE_KEY) or []
        pending.append(asdict(Toast(title, description, variant)))
        write_json(self._storage, TOASTS_STORAGE_KEY, pending)

    def success(self, title: str, description: str = "") -> None:
        self.push(title, description)

    def error(self, title: str, description: str = "") -> None:
        self.push(title, description, variant="destructive")

    def drain(self) -> List[Toast]:
        pending = read_json(self._storage, TOASTS_STORAGE_KEY) or []
        if not pending:
            return []
        self._storage.remove_item(TOASTS_STORAGE_KEY)
        return [Toast(**t) for t in pending if isinstance(t, dict)]
