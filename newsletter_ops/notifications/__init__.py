"""Notification policy and Slack delivery."""

from .messages import EventSubmission
from .policy import AlertPolicy, HealthStatus, NotificationCategory, Severity
from .slack import SlackNotifier

__all__ = [
    "AlertPolicy",
    "EventSubmission",
    "HealthStatus",
    "NotificationCategory",
    "Severity",
    "SlackNotifier",
]
