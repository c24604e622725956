from __future__ import annotations

import argparse
import asyncio
import json
import os

import httpx
import structlog

from newsletter_ops.config import OpsConfig, load_config
from newsletter_ops.db import ensure_schema
from newsletter_ops.logging_setup import configure_logging
from newsletter_ops.notifications.policy import NotificationCategory, Severity
from newsletter_ops.service import build_services

logger = structlog.get_logger(__name__)


async def _run_health_check(config: OpsConfig) -> int:
    async with httpx.AsyncClient() as client:
        services = build_services(config, http_client=client)
        report = await services.health_monitor.run_full_health_check()
    print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    return 0 if report.overall_healthy else 1


async def _run_notify(config: OpsConfig, text: str, severity: str, category: str | None) -> int:
    async with httpx.AsyncClient() as client:
        services = build_services(config, http_client=client)
        ok = await services.notifier.send_alert(text, Severity(severity), category)
    return 0 if ok else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Newsletter operations alerting and health monitoring")
    parser.add_argument("--config", default=None, help="Path to YAML config (default: $OPS_CONFIG or config/ops.yaml)")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL"),
        help="Logging level (INFO, WARNING, ...)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("health-check", help="Run all health probes once and print the report")

    notify = sub.add_parser("notify", help="Send an alert to the Slack webhook")
    notify.add_argument("text")
    notify.add_argument("--severity", choices=[s.value for s in Severity], default=Severity.INFO.value)
    notify.add_argument("--category", choices=[c.value for c in NotificationCategory], default=None)

    sub.add_parser("init-db", help="Create the SQLite schema")

    args = parser.parse_args(argv)
    config = load_config(args.config)
    configure_logging(args.log_level or config.log_level)

    if args.command == "init-db":
        ensure_schema(config.db_path)
        logger.info("Database schema ready", db_path=config.db_path)
        return 0
    if args.command == "health-check":
        return asyncio.run(_run_health_check(config))
    if args.command == "notify":
        return asyncio.run(_run_notify(config, args.text, args.severity, args.category))
    parser.error(f"unknown command {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
