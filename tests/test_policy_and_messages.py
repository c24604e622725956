from __future__ import annotations

import pytest

from newsletter_ops.notifications.messages import (
    EventSubmission,
    build_critical_error_message,
    build_email_campaign_message,
    build_event_submission_message,
    build_health_check_message,
    build_rss_processing_message,
    submission_total,
)
from newsletter_ops.notifications.policy import AlertPolicy, HealthStatus, Severity


def test_decorate_prefixes_severity_glyph() -> None:
    assert AlertPolicy.decorate("x", Severity.INFO) == "ℹ️ x"
    assert AlertPolicy.decorate("x", "warn") == "⚠️ x"
    assert AlertPolicy.decorate("x", Severity.ERROR) == "🚨 x"


def test_health_status_maps_to_severity() -> None:
    assert AlertPolicy.severity_for_status(HealthStatus.HEALTHY) is Severity.INFO
    assert AlertPolicy.severity_for_status("degraded") is Severity.WARN
    assert AlertPolicy.severity_for_status(HealthStatus.DOWN) is Severity.ERROR


def test_unknown_severity_is_rejected() -> None:
    with pytest.raises(ValueError):
        AlertPolicy.decorate("x", "critical")


def test_message_templates() -> None:
    assert build_rss_processing_message(True) == "RSS processing completed successfully"
    assert build_rss_processing_message(True, "c1") == "RSS processing completed successfully for campaign c1"
    assert build_rss_processing_message(False, error="boom") == "RSS processing failed: boom"
    assert build_email_campaign_message("review", True, "c1") == "Review campaign sent successfully for campaign c1"
    assert build_email_campaign_message("final", False, "c1", "bounced") == "Final campaign failed for campaign c1: bounced"
    assert build_health_check_message("Database", "down") == "Health Check: Database is down"
    assert (
        build_health_check_message("RSS Feeds", HealthStatus.DEGRADED, "6 feeds")
        == "Health Check: RSS Feeds is degraded - 6 feeds"
    )
    assert build_critical_error_message("rss_processor", "boom") == "Critical error in rss_processor: boom"
    assert (
        build_critical_error_message("auth_system", "boom", "login")
        == "Critical error in auth_system during login: boom"
    )


def test_submission_total_paid_placement_wins_over_featured() -> None:
    items = [
        EventSubmission(title="a", paid_placement=True, featured=True),
        EventSubmission(title="b", featured=True),
        EventSubmission(title="c"),
    ]
    assert submission_total(items, paid_placement_price=5, featured_price=15) == 20.0


def test_event_submission_message_multiple_paid() -> None:
    items = [
        EventSubmission.from_dict(
            {
                "title": "Jazz Night",
                "submitter_name": "Sam",
                "submitter_email": "sam@example.com",
                "submitter_phone": "555-0100",
                "featured": True,
            }
        ),
        EventSubmission.from_dict({"title": "Farmers Market"}),
    ]
    msg = build_event_submission_message(
        items, public_url="https://example.test/", paid_placement_price=5, featured_price=15
    )
    lines = msg.split("\n")
    assert lines[0] == "🎉 New Event Submissions!"
    assert "Submitted by: Sam" in lines
    assert "Phone: 555-0100" in lines
    assert "Total Amount: $15.00" in lines
    assert "Events (2):" in lines
    assert "  • Jazz Night\n  • Farmers Market" in msg
    assert lines[-1] == "Review: https://example.test/dashboard/events/review"
    assert "" not in lines


def test_event_submission_message_free_single_without_phone() -> None:
    msg = build_event_submission_message(
        [EventSubmission(title="Book Club", submitter_name="Alex", submitter_email="a@example.com")],
        public_url="https://example.test",
        paid_placement_price=5,
        featured_price=15,
    )
    assert msg.startswith("🎉 New Event Submission!")
    assert "Total Amount: Free Listing" in msg
    assert "Event (1):" in msg
    assert "Phone:" not in msg


def test_event_submission_message_requires_events() -> None:
    with pytest.raises(ValueError):
        build_event_submission_message([], public_url="", paid_placement_price=5, featured_price=15)
