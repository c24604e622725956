"""Store interfaces consumed by the alerting core.

The backing store is an external service; the core only needs the small
read/append contracts below. ``newsletter_ops.db`` provides a SQLite
implementation.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class LogLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True)
class LogEntry:
    level: LogLevel
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    source: str = "system"
    created_at: float = field(default_factory=time.time)


class SettingsStore(Protocol):
    """Key/value application settings (``app_settings``)."""

    async def get_setting(self, key: str) -> str | None:
        ...


class LogStore(Protocol):
    """Append-only structured log (``system_logs``)."""

    async def insert_log(self, entry: LogEntry) -> None:
        ...

    async def ping(self) -> None:
        ...


class FeedSource(Protocol):
    async def list_active_feeds(self) -> list[dict[str, Any]]:
        ...


class CampaignSource(Protocol):
    async def count_campaigns_since(self, since_ts: float) -> int:
        ...
