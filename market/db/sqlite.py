from __future__ import annotations

import os
import sqlite3
from datetime import datetime
from typing import Optional

from market.config import settings


def _connect(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or settings.db_path
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Optional[str] = None) -> None:
    conn = _connect(db_path)
    try:
        with open(os.path.join(os.path.dirname(__file__), "schema.sql"), "r", encoding="utf-8") as f:
            conn.executescript(f.read())
        conn.commit()
    finally:
        conn.close()


def storage_get(scope: str, key: str, db_path: Optional[str] = None) -> Optional[str]:
    conn = _connect(db_path)
    try:
        row = conn.execute(
            "SELECT value FROM storage WHERE scope=? AND key=?",
            (scope, key),
        ).fetchone()
        return str(row["value"]) if row else None
    finally:
        conn.close()


def storage_set(scope: str, key: str, value: str, db_path: Optional[str] = None) -> None:
    updated_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    conn = _connect(db_path)
    try:
        conn.execute(
            "INSERT INTO storage(scope, key, value, updated_at) VALUES(?,?,?,?) "
            "ON CONFLICT(scope, key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
            (scope, key, value, updated_at),
        )
        conn.commit()
    finally:
        conn.close()


def storage_remove(scope: str, key: str, db_path: Optional[str] = None) -> None:
    conn = _connect(db_path)
    try:
        conn.execute("DELETE FROM storage WHERE scope=? AND key=?", (scope, key))
        conn.commit()
    finally:
        conn.close()


class SqliteStorage:
    """Хранилище посетителя: то же, что localStorage браузера, но в SQLite.

    scope = id посетителя (cookie), ключи и значения — строки (JSON).
    """

    def __init__(self, scope: str, db_path: Optional[str] = None) -> None:
        self.scope = scope
        self.db_path = db_path

    def get_item(self, key: str) -> Optional[str]:
        return storage_get(self.scope, key, self.db_path)

    def set_item(self, key: str, value: str) -> None:
        storage_set(self.scope, key, value, self.db_path)

    def remove_item(self, key: str) -> None:
        storage_remove(self.scope, key, self.db_path)
