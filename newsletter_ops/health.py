"""Health monitoring for the newsletter pipeline.

Three independent probes run per check:

- ``database``: log store liveness ping; a failure alerts the component as down.
- ``rss_feeds``: active feeds with too many processing errors; alerts degraded.
- ``recent_processing``: campaigns created in the trailing window; alerts degraded.

A probe that cannot query its subsystem reports through the error handler.
A probe that queries fine but finds an unhealthy condition alerts directly.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

import structlog

from newsletter_ops.config import HealthThresholds
from newsletter_ops.errors import ErrorHandler
from newsletter_ops.notifications.policy import HealthStatus, Severity
from newsletter_ops.notifications.slack import SlackNotifier
from newsletter_ops.store import CampaignSource, FeedSource, LogStore

logger = structlog.get_logger(__name__)

HEALTH_SOURCE = "health_monitor"


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class ProbeResult:
    name: str
    healthy: bool
    detail: str | None = None
    timestamp: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = _iso(self.timestamp)
        return d


@dataclass(frozen=True)
class HealthReport:
    results: list[ProbeResult]
    overall_healthy: bool
    timestamp: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": {r.name: r.to_dict() for r in self.results},
            "overall_healthy": self.overall_healthy,
            "timestamp": _iso(self.timestamp),
        }


class HealthMonitor:
    """Runs the subsystem probes and records an aggregate report."""

    def __init__(
        self,
        *,
        log_store: LogStore,
        feeds: FeedSource,
        campaigns: CampaignSource,
        notifier: SlackNotifier,
        error_handler: ErrorHandler,
        thresholds: HealthThresholds | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.log_store = log_store
        self.feeds = feeds
        self.campaigns = campaigns
        self.notifier = notifier
        self.error_handler = error_handler
        self.thresholds = thresholds or HealthThresholds()
        self.clock = clock

    async def check_database_connection(self) -> ProbeResult:
        try:
            await self.log_store.ping()
        except Exception as e:
            await self.notifier.send_health_check_alert(
                "Database", HealthStatus.DOWN, "Unable to connect to database"
            )
            return ProbeResult("database", False, detail=str(e) or type(e).__name__, timestamp=self.clock())
        return ProbeResult("database", True, timestamp=self.clock())

    async def check_rss_feeds(self) -> ProbeResult:
        limit = int(self.thresholds.feed_error_threshold)
        try:
            feeds = await self.feeds.list_active_feeds()
            errored = [f for f in feeds if int(f.get("processing_errors") or 0) > limit]
        except Exception as e:
            await self.error_handler.handle_error(e, {"source": HEALTH_SOURCE, "operation": "check_rss_feeds"})
            return ProbeResult("rss_feeds", False, detail=str(e) or type(e).__name__, timestamp=self.clock())

        data = {
            "active_feeds": len(feeds),
            "errored_feeds": [str(f.get("name") or f.get("id") or "") for f in errored],
        }
        if len(errored) > int(self.thresholds.max_errored_feeds):
            detail = f"{len(errored)} feeds have multiple processing errors"
            await self.notifier.send_health_check_alert("RSS Feeds", HealthStatus.DEGRADED, detail)
            return ProbeResult("rss_feeds", False, detail=detail, timestamp=self.clock(), data=data)
        return ProbeResult("rss_feeds", True, timestamp=self.clock(), data=data)

    async def check_recent_processing(self) -> ProbeResult:
        hours = int(self.thresholds.freshness_window_hours)
        since = self.clock() - hours * 3600
        try:
            recent = await self.campaigns.count_campaigns_since(since)
        except Exception as e:
            await self.error_handler.handle_error(
                e, {"source": HEALTH_SOURCE, "operation": "check_recent_processing"}
            )
            return ProbeResult(
                "recent_processing", False, detail=str(e) or type(e).__name__, timestamp=self.clock()
            )

        if recent == 0:
            await self.notifier.send_health_check_alert(
                "RSS Processing", HealthStatus.DEGRADED, f"No campaigns created in the last {hours} hours"
            )
            return ProbeResult("recent_processing", False, detail="No recent campaigns", timestamp=self.clock())
        return ProbeResult(
            "recent_processing", True, timestamp=self.clock(), data={"recent_campaigns": int(recent)}
        )

    def _probes(self) -> list[tuple[str, Callable[[], Any]]]:
        return [
            ("database", self.check_database_connection),
            ("rss_feeds", self.check_rss_feeds),
            ("recent_processing", self.check_recent_processing),
        ]

    async def run_full_health_check(self) -> HealthReport:
        probes = self._probes()
        outcomes = await asyncio.gather(*(fn() for _, fn in probes), return_exceptions=True)

        results: list[ProbeResult] = []
        for (name, _), outcome in zip(probes, outcomes):
            if isinstance(outcome, ProbeResult):
                results.append(outcome)
                continue
            logger.error("Health probe crashed", probe=name, error=repr(outcome))
            results.append(ProbeResult(name, False, detail=f"probe crashed: {outcome!r}", timestamp=self.clock()))

        report = HealthReport(
            results=results,
            overall_healthy=all(r.healthy for r in results),
            timestamp=self.clock(),
        )

        await self.error_handler.log_info("Health check completed", report.to_dict(), HEALTH_SOURCE)

        if not report.overall_healthy:
            await self.notifier.send_system_alert(
                "System health check failed - some components are not healthy", Severity.WARN
            )

        logger.info("Health check completed", overall_healthy=report.overall_healthy)
        return report
