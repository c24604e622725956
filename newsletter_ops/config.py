"""Configuration management for the operations alerting subsystem."""

import os
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


class ConfigError(ValueError):
    """Raised when the YAML config file is not a mapping."""


class HealthThresholds(BaseModel):
    """Thresholds used by the health monitor probes."""
    feed_error_threshold: int = Field(default=5, description="A feed is errored above this many processing errors")
    max_errored_feeds: int = Field(default=5, description="Feed probe is degraded above this many errored feeds")
    freshness_window_hours: int = Field(default=24, description="Trailing window for recent campaign activity")


class PricingDefaults(BaseModel):
    """Fallback listing prices when the settings store has none."""
    paid_placement: float = Field(default=5.0, description="Price of a paid placement listing")
    featured: float = Field(default=15.0, description="Price of a featured listing")


class OpsConfig(BaseModel):
    """Main configuration for the alerting subsystem."""

    # Environment settings
    environment: str = Field(default="production", description="Deployment environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Storage
    db_path: str = Field(default="data/newsletter-ops.db", description="SQLite database backing settings and logs")

    # Notification settings
    slack_webhook_url: str = Field(default="", description="Fallback Slack incoming webhook URL")
    notification_timeout_seconds: float = Field(default=5.0, description="Webhook delivery timeout in seconds")
    public_url: str = Field(
        default="https://st-cloud-scoop.vercel.app", description="Base URL used for review links in messages"
    )

    health: HealthThresholds = Field(default_factory=HealthThresholds)
    pricing: PricingDefaults = Field(default_factory=PricingDefaults)


def load_config(config_path: Optional[str] = None) -> OpsConfig:
    """Load configuration from file and environment variables."""
    if config_path is None:
        config_path = os.getenv("OPS_CONFIG", "config/ops.yaml")

    config_data: dict[str, Any] = {}

    # Load from file if exists
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
        if not isinstance(config_data, dict):
            raise ConfigError(f"Config YAML must be a mapping: {config_path}")

    # Override with environment variables
    env_overrides = {
        "environment": os.getenv("OPS_ENV"),
        "log_level": os.getenv("LOG_LEVEL"),
        "db_path": os.getenv("OPS_DB_PATH"),
        "slack_webhook_url": os.getenv("SLACK_WEBHOOK_URL"),
        "notification_timeout_seconds": os.getenv("OPS_NOTIFICATION_TIMEOUT"),
        "public_url": os.getenv("NEXT_PUBLIC_URL"),
    }

    for key, value in env_overrides.items():
        if value is not None:
            if key == "notification_timeout_seconds":
                value = float(value)
            config_data[key] = value

    return OpsConfig(**config_data)


def get_config() -> OpsConfig:
    """Get the configuration for the current process."""
    return load_config()
