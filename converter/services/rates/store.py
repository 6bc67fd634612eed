"""Rate table key-value store.

Responsibilities
----------------
- Hold serialized rate tables under ``rates:{BASE}`` keys with an expiry, the
  shape the scheduled fetch job writes (``{"rates": ..., "at": ..., "source": ...}``).
- Treat expired or unreadable entries as absent; staleness is bounded only by TTL.
- Load a seed file for local runs so the page works before any fetch job ran.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from pydantic import ValidationError

from converter.models.constants import rates_key
from converter.models.rates import RateTable

logger = logging.getLogger("converter.rates.store")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    expires_at REAL
)
"""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None: ...


class SqliteKeyValueStore:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.init_schema()

    # ------------------------------------------------------------------
    # Connection helpers
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(SCHEMA_SQL)

    # ------------------------------------------------------------------
    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT value, expires_at FROM kv WHERE key = ?", (key,))
            row = cur.fetchone()
        if not row:
            return None
        if row["expires_at"] is not None and row["expires_at"] <= time.time():
            return None
        return row["value"]

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = time.time() + ttl_seconds if ttl_seconds else None
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO kv (key, value, expires_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value, expires_at=excluded.expires_at",
                (key, value, expires_at),
            )

    def purge_expired(self) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM kv WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (time.time(),),
            )
            return cur.rowcount


class RateStore:
    """Typed view over the key-value store; read-only from the render path."""

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    def get_table(self, base: str) -> Optional[RateTable]:
        base = base.upper()
        raw = self._kv.get(rates_key(base))
        if raw is None:
            logger.warning("no rate table stored for %s", base)
            return None
        try:
            payload = json.loads(raw)
            return RateTable.from_store(base, payload)
        except (ValueError, KeyError, TypeError, ValidationError):
            logger.exception("unreadable rate table for %s", base)
            return None

    def put_table(self, table: RateTable, ttl_seconds: Optional[int] = None) -> None:
        self._kv.put(rates_key(table.base), json.dumps(table.to_store()), ttl_seconds)

    def seed_from_file(self, path: Path, ttl_seconds: Optional[int] = None) -> int:
        """Load ``{"USD": {"rates": ..., "at": ...}, ...}``; returns tables stored."""
        data: Dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
        count = 0
        for base, payload in data.items():
            table = RateTable.from_store(base, payload)
            self.put_table(table, ttl_seconds)
            count += 1
        logger.info("seeded %d rate table(s) from %s", count, path)
        return count
