# This project was developed with assistance from AI tools.
"""Turnaround deadlines for certificate packages.

Rush packages are due a fixed number of business days after submission,
standard packages a fixed number of calendar days after. Applications that
are not finished and within the urgent window of (or past) their deadline
are flagged urgent for the dashboard.
"""

from datetime import UTC, datetime, timedelta

from resale_db.enums import PackageType

from ..core.config import settings
from ..schemas.snapshot import ApplicationSnapshot
from ..schemas.workflow import WorkflowStep


def _ensure_tz(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware (UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def add_business_days(start: datetime, business_days: int) -> datetime:
    """Advance ``start`` by whole business days, skipping Saturdays and Sundays."""
    current = start
    added = 0
    while added < business_days:
        current += timedelta(days=1)
        if current.weekday() < 5:
            added += 1
    return current


def compute_deadline(snapshot: ApplicationSnapshot) -> datetime | None:
    """Deadline for the package, or None for applications never submitted."""
    if snapshot.submitted_at is None:
        return None
    submitted = _ensure_tz(snapshot.submitted_at)
    if snapshot.package_type == PackageType.RUSH.value:
        return add_business_days(submitted, settings.RUSH_BUSINESS_DAYS)
    return submitted + timedelta(days=settings.STANDARD_CALENDAR_DAYS)


def is_urgent(
    snapshot: ApplicationSnapshot,
    step: WorkflowStep,
    *,
    now: datetime,
) -> bool:
    """True for unfinished submitted applications inside the urgent window or overdue."""
    # Completed and rejected applications both carry a terminal step
    if step.is_terminal:
        return False
    deadline = compute_deadline(snapshot)
    if deadline is None:
        return False
    hours_remaining = (deadline - _ensure_tz(now)).total_seconds() / 3600
    return hours_remaining < settings.URGENT_WINDOW_HOURS
