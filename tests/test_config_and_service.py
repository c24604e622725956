from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from newsletter_ops import db
from newsletter_ops.cli import main
from newsletter_ops.config import ConfigError, load_config
from newsletter_ops.service import build_services


def test_repo_config_loads() -> None:
    config_path = Path(__file__).resolve().parents[1] / "config" / "ops.yaml"
    config = load_config(str(config_path))
    assert config.health.feed_error_threshold == 5
    assert config.health.max_errored_feeds == 5
    assert config.health.freshness_window_hours == 24
    assert config.notification_timeout_seconds > 0


def test_env_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "ops.yaml"
    p.write_text("slack_webhook_url: https://file.test\nhealth:\n  max_errored_feeds: 9\n", encoding="utf-8")
    monkeypatch.setenv("SLACK_WEBHOOK_URL", "https://env.test")
    monkeypatch.setenv("OPS_NOTIFICATION_TIMEOUT", "2.5")

    config = load_config(str(p))

    assert config.slack_webhook_url == "https://env.test"
    assert config.notification_timeout_seconds == 2.5
    assert config.health.max_errored_feeds == 9


def test_missing_file_uses_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)
    config = load_config(str(tmp_path / "absent.yaml"))
    assert config.slack_webhook_url == ""
    assert config.pricing.featured == 15.0


def test_non_mapping_yaml_is_rejected(tmp_path: Path) -> None:
    p = tmp_path / "ops.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(p))


@pytest.mark.asyncio
async def test_services_share_one_notifier_and_resolver(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)
    cfg_path = tmp_path / "ops.yaml"
    cfg_path.write_text(
        f"db_path: {tmp_path / 'ops.db'}\nslack_webhook_url: https://hooks.slack.test/x\n", encoding="utf-8"
    )
    config = load_config(str(cfg_path))

    posted: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        posted.append(json.loads(request.content))
        return httpx.Response(200, text="ok")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), trust_env=False) as client:
        services = build_services(config, http_client=client)
        assert services.error_handler.notifier is services.notifier
        assert services.health_monitor.notifier is services.notifier
        assert services.notifier.resolver is services.resolver

        report = await services.health_monitor.run_full_health_check()

    # Empty database: no campaigns in the window.
    assert report.overall_healthy is False
    texts = [p["text"] for p in posted]
    assert texts == [
        "⚠️ Health Check: RSS Processing is degraded - No campaigns created in the last 24 hours",
        "⚠️ System Alert: System health check failed - some components are not healthy",
    ]
    messages = [r["message"] for r in db.list_logs(config.db_path, limit=10)]
    assert "Health check completed" in messages
    assert messages.count("Slack notification sent") == 2


def test_cli_init_db_and_health_check(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)
    db_path = tmp_path / "ops.db"
    cfg_path = tmp_path / "ops.yaml"
    cfg_path.write_text(f"db_path: {db_path}\n", encoding="utf-8")

    assert main(["--config", str(cfg_path), "init-db"]) == 0
    db.add_campaign(str(db_path))

    assert main(["--config", str(cfg_path), "health-check"]) == 0
    out = capsys.readouterr().out
    report = json.loads(out[out.index("{"):])
    assert report["overall_healthy"] is True
    assert set(report["results"]) == {"database", "rss_feeds", "recent_processing"}
