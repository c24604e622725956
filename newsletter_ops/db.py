from __future__ import annotations

import asyncio
import json
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Any

from newsletter_ops.store import LogEntry, LogLevel


SCHEMA_VERSION = 1


def _utc_ts() -> float:
    return float(time.time())


def _uuid() -> str:
    return str(uuid.uuid4())


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, default=str)


def _json_loads(s: Any) -> Any:
    if s is None:
        return None
    if isinstance(s, (dict, list)):
        return s
    try:
        return json.loads(str(s))
    except Exception:
        return None


def _connect(path: str) -> sqlite3.Connection:
    p = str(path or "").strip()
    if not p:
        raise ValueError("Missing db_path")
    if p != ":memory:":
        Path(p).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(p, timeout=30, isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA busy_timeout = 5000;")
    return conn


def ensure_schema(db_path: str) -> None:
    conn = _connect(db_path)
    try:
        _ensure_schema_conn(conn)
    finally:
        conn.close()


def _ensure_schema_conn(conn: sqlite3.Connection) -> None:
    conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_meta (k TEXT PRIMARY KEY, v TEXT NOT NULL);"
    )
    row = conn.execute("SELECT v FROM schema_meta WHERE k='version'").fetchone()
    cur = int(row["v"]) if row and row["v"] else 0
    if cur >= SCHEMA_VERSION:
        return

    if cur == 0:
        _apply_v1(conn)
        conn.execute("INSERT OR REPLACE INTO schema_meta (k, v) VALUES ('version', ?)", (str(SCHEMA_VERSION),))
        return

    raise RuntimeError(f"Unsupported schema version upgrade path cur={cur} target={SCHEMA_VERSION}")


def _apply_v1(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS app_settings (
          key TEXT PRIMARY KEY,
          value TEXT,
          updated_at_ts REAL NOT NULL
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS system_logs (
          id TEXT PRIMARY KEY,
          level TEXT NOT NULL,
          message TEXT NOT NULL,
          context_json TEXT NOT NULL,
          source TEXT NOT NULL,
          created_at_ts REAL NOT NULL
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_system_logs_created ON system_logs(created_at_ts);")
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS rss_feeds (
          id TEXT PRIMARY KEY,
          name TEXT NOT NULL,
          url TEXT,
          active INTEGER NOT NULL DEFAULT 1,
          processing_errors INTEGER NOT NULL DEFAULT 0
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS newsletter_campaigns (
          id TEXT PRIMARY KEY,
          status TEXT,
          created_at_ts REAL NOT NULL
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_campaigns_created ON newsletter_campaigns(created_at_ts);")


def get_setting(db_path: str, *, key: str) -> str | None:
    conn = _connect(db_path)
    try:
        _ensure_schema_conn(conn)
        row = conn.execute("SELECT value FROM app_settings WHERE key=?", (key,)).fetchone()
        return row["value"] if row else None
    finally:
        conn.close()


def set_setting(db_path: str, *, key: str, value: str | None) -> None:
    conn = _connect(db_path)
    try:
        _ensure_schema_conn(conn)
        conn.execute(
            """
            INSERT INTO app_settings (key, value, updated_at_ts) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at_ts=excluded.updated_at_ts
            """,
            (key, value, _utc_ts()),
        )
    finally:
        conn.close()


def insert_log(db_path: str, *, entry: LogEntry) -> str:
    conn = _connect(db_path)
    try:
        _ensure_schema_conn(conn)
        log_id = _uuid()
        conn.execute(
            """
            INSERT INTO system_logs (id, level, message, context_json, source, created_at_ts)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                log_id,
                LogLevel(entry.level).value,
                str(entry.message),
                _json_dumps(entry.context or {}),
                str(entry.source or "system"),
                float(entry.created_at),
            ),
        )
        return log_id
    finally:
        conn.close()


def list_logs(db_path: str, *, limit: int = 100, source: str | None = None) -> list[dict[str, Any]]:
    conn = _connect(db_path)
    try:
        _ensure_schema_conn(conn)
        if source:
            rows = conn.execute(
                "SELECT * FROM system_logs WHERE source=? ORDER BY created_at_ts DESC LIMIT ?",
                (source, int(limit)),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM system_logs ORDER BY created_at_ts DESC LIMIT ?", (int(limit),)
            ).fetchall()
        out: list[dict[str, Any]] = []
        for r in rows:
            d = dict(r)
            d["context"] = _json_loads(d.pop("context_json", None)) or {}
            out.append(d)
        return out
    finally:
        conn.close()


def ping(db_path: str) -> None:
    conn = _connect(db_path)
    try:
        _ensure_schema_conn(conn)
        conn.execute("SELECT id FROM system_logs LIMIT 1").fetchall()
    finally:
        conn.close()


def add_feed(db_path: str, *, name: str, url: str | None = None, active: bool = True, processing_errors: int = 0) -> str:
    conn = _connect(db_path)
    try:
        _ensure_schema_conn(conn)
        feed_id = _uuid()
        conn.execute(
            "INSERT INTO rss_feeds (id, name, url, active, processing_errors) VALUES (?, ?, ?, ?, ?)",
            (feed_id, name.strip(), url, 1 if active else 0, int(processing_errors)),
        )
        return feed_id
    finally:
        conn.close()


def list_active_feeds(db_path: str) -> list[dict[str, Any]]:
    conn = _connect(db_path)
    try:
        _ensure_schema_conn(conn)
        rows = conn.execute("SELECT * FROM rss_feeds WHERE active=1 ORDER BY name").fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


def add_campaign(db_path: str, *, status: str = "draft", created_at_ts: float | None = None) -> str:
    conn = _connect(db_path)
    try:
        _ensure_schema_conn(conn)
        campaign_id = _uuid()
        conn.execute(
            "INSERT INTO newsletter_campaigns (id, status, created_at_ts) VALUES (?, ?, ?)",
            (campaign_id, status, float(created_at_ts if created_at_ts is not None else _utc_ts())),
        )
        return campaign_id
    finally:
        conn.close()


def count_campaigns_since(db_path: str, *, since_ts: float) -> int:
    conn = _connect(db_path)
    try:
        _ensure_schema_conn(conn)
        row = conn.execute(
            "SELECT COUNT(*) AS n FROM newsletter_campaigns WHERE created_at_ts >= ?", (float(since_ts),)
        ).fetchone()
        return int(row["n"]) if row else 0
    finally:
        conn.close()


class SqliteStore:
    """Async facade over the SQLite helpers; each call runs in a worker thread."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    async def get_setting(self, key: str) -> str | None:
        return await asyncio.to_thread(get_setting, self.db_path, key=key)

    async def insert_log(self, entry: LogEntry) -> None:
        await asyncio.to_thread(insert_log, self.db_path, entry=entry)

    async def ping(self) -> None:
        await asyncio.to_thread(ping, self.db_path)

    async def list_active_feeds(self) -> list[dict[str, Any]]:
        return await asyncio.to_thread(list_active_feeds, self.db_path)

    async def count_campaigns_since(self, since_ts: float) -> int:
        return await asyncio.to_thread(count_campaigns_since, self.db_path, since_ts=since_ts)
