"""Operational alerting and health monitoring for the newsletter platform."""

__version__ = "0.1.0"
