from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from newsletter_ops.notifications.policy import HealthStatus


PAID_PLACEMENT_PRICE_KEY = "paidPlacementPrice"
FEATURED_EVENT_PRICE_KEY = "featuredEventPrice"


@dataclass(frozen=True)
class EventSubmission:
    title: str
    submitter_name: str = ""
    submitter_email: str = ""
    submitter_phone: str | None = None
    paid_placement: bool = False
    featured: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventSubmission":
        return cls(
            title=str(data.get("title") or "").strip(),
            submitter_name=str(data.get("submitter_name") or "").strip(),
            submitter_email=str(data.get("submitter_email") or "").strip(),
            submitter_phone=(str(data["submitter_phone"]).strip() or None) if data.get("submitter_phone") else None,
            paid_placement=bool(data.get("paid_placement")),
            featured=bool(data.get("featured")),
        )


def _review_url(public_url: str) -> str:
    base = (public_url or "").rstrip("/")
    return f"{base}/dashboard/events/review"


def submission_total(submissions: Iterable[EventSubmission], *, paid_placement_price: float, featured_price: float) -> float:
    total = 0.0
    for s in submissions:
        # Paid placement wins when both flags are set.
        if s.paid_placement:
            total += float(paid_placement_price)
        elif s.featured:
            total += float(featured_price)
    return total


def build_event_submission_message(
    submissions: list[EventSubmission],
    *,
    public_url: str,
    paid_placement_price: float,
    featured_price: float,
) -> str:
    if not submissions:
        raise ValueError("No events provided")

    plural = "s" if len(submissions) > 1 else ""
    submitter = submissions[0]
    total = submission_total(
        submissions, paid_placement_price=paid_placement_price, featured_price=featured_price
    )
    titles = "\n  • ".join(s.title for s in submissions)

    lines = [
        f"🎉 New Event Submission{plural}!",
        f"Submitted by: {submitter.submitter_name}",
        f"Email: {submitter.submitter_email}",
    ]
    if submitter.submitter_phone:
        lines.append(f"Phone: {submitter.submitter_phone}")
    lines.extend(
        [
            f"Total Amount: {f'${total:.2f}' if total > 0 else 'Free Listing'}",
            f"Event{plural} ({len(submissions)}):",
            f"  • {titles}",
            f"Review: {_review_url(public_url)}",
        ]
    )
    return "\n".join(lines)


def build_rss_processing_message(success: bool, campaign_id: str | None = None, error: str | None = None) -> str:
    if success:
        suffix = f" for campaign {campaign_id}" if campaign_id else ""
        return f"RSS processing completed successfully{suffix}"
    return f"RSS processing failed: {error}"


def build_email_campaign_message(kind: str, success: bool, campaign_id: str, error: str | None = None) -> str:
    action = "Review campaign" if kind == "review" else "Final campaign"
    if success:
        return f"{action} sent successfully for campaign {campaign_id}"
    return f"{action} failed for campaign {campaign_id}: {error}"


def build_health_check_message(component: str, status: HealthStatus | str, details: str | None = None) -> str:
    s = HealthStatus(status).value
    return f"Health Check: {component} is {s}{f' - {details}' if details else ''}"


def build_critical_error_message(source: str, message: str, operation: str | None = None) -> str:
    during = f" during {operation}" if operation else ""
    return f"Critical error in {source}{during}: {message}"
