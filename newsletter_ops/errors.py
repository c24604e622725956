"""Error and event logging with escalation of critical errors to Slack."""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from typing import Any, Iterable, Protocol

import structlog

from newsletter_ops.notifications.messages import build_critical_error_message
from newsletter_ops.notifications.policy import NotificationCategory, Severity
from newsletter_ops.notifications.slack import SlackNotifier
from newsletter_ops.store import LogEntry, LogLevel, LogStore

logger = structlog.get_logger(__name__)

CRITICAL_SOURCES: frozenset[str] = frozenset({"rss_processor", "mailerlite_service", "auth_system"})
CRITICAL_KEYWORDS: tuple[str, ...] = (
    "failed to process",
    "authentication failed",
    "database error",
    "api timeout",
)


class CriticalErrorRule(Protocol):
    def matches(self, source: str, message: str) -> bool:
        ...


@dataclass(frozen=True)
class CriticalSourceRule:
    sources: frozenset[str] = CRITICAL_SOURCES

    def matches(self, source: str, message: str) -> bool:
        return source in self.sources


@dataclass(frozen=True)
class CriticalKeywordRule:
    keywords: tuple[str, ...] = CRITICAL_KEYWORDS

    def matches(self, source: str, message: str) -> bool:
        lowered = (message or "").lower()
        return any(k in lowered for k in self.keywords)


DEFAULT_RULES: tuple[CriticalErrorRule, ...] = (CriticalSourceRule(), CriticalKeywordRule())


def is_critical(source: str, message: str, rules: Iterable[CriticalErrorRule] = DEFAULT_RULES) -> bool:
    return any(rule.matches(source, message) for rule in rules)


def _describe_error(error: BaseException | Any) -> tuple[str, str | None]:
    if isinstance(error, BaseException):
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return str(error) or type(error).__name__, stack
    return "Unknown error", None


class ErrorHandler:
    """Writes structured log entries and escalates critical errors."""

    def __init__(
        self,
        log_store: LogStore,
        notifier: SlackNotifier,
        *,
        rules: Iterable[CriticalErrorRule] = DEFAULT_RULES,
    ):
        self.log_store = log_store
        self.notifier = notifier
        self.rules = tuple(rules)

    def is_critical(self, source: str, message: str) -> bool:
        return is_critical(source, message, self.rules)

    async def _write(self, level: LogLevel, message: str, context: dict[str, Any], source: str) -> None:
        entry = LogEntry(level=level, message=message, context=context, source=source)
        try:
            await self.log_store.insert_log(entry)
        except Exception as e:
            # Last-resort sink: the log store itself is unavailable.
            logger.error(
                "Failed to write system log",
                log_level=level.value,
                log_message=message,
                source=source,
                error=str(e),
            )

    async def handle_error(self, error: BaseException | Any, context: dict[str, Any] | None = None) -> None:
        """Record an error and alert Slack when it is classified as critical.

        ``context`` should carry ``source`` and may carry ``operation`` plus
        any other identifiers (campaign_id, user_id, ...).
        """
        ctx = dict(context or {})
        source = str(ctx.get("source") or "system")
        message, stack = _describe_error(error)

        await self._write(LogLevel.ERROR, message, {**ctx, "stack": stack}, source)

        if self.is_critical(source, message):
            await self.notifier.send_alert(
                build_critical_error_message(source, message, ctx.get("operation")),
                Severity.ERROR,
                NotificationCategory.SYSTEM_ERRORS,
                context=ctx,
            )

        logger.error("Error handled", source=source, operation=ctx.get("operation"), error=message)

    async def log_info(self, message: str, context: dict[str, Any] | None = None, source: str = "system") -> None:
        await self._write(LogLevel.INFO, message, dict(context or {}), source)

    async def log_warning(self, message: str, context: dict[str, Any] | None = None, source: str = "system") -> None:
        await self._write(LogLevel.WARN, message, dict(context or {}), source)
        # Warnings always page; there is no suppression path here.
        await self.notifier.send_alert(
            f"Warning: {message}", Severity.WARN, NotificationCategory.SYSTEM_ERRORS, context=context
        )
