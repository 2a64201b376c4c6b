# This project was developed with assistance from AI tools.
"""Workflow status aggregation service.

Runs the full derivation pipeline for one application: snapshot, variant,
task states, property group rollup, current step, action gate, deadline.
In-flight PDF/email operations are overlaid as transient task states for
display only; the step is always derived from stored state.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.snapshot import ApplicationSnapshot
from ..schemas.workflow import (
    GroupProgress,
    TaskStatus,
    Variant,
    WorkflowStatusResponse,
)
from ..services.aggregator import aggregate_progress
from ..services.application import fetch_application
from ..services.deadline import compute_deadline, is_urgent
from ..services.gate import EMAIL, PDF, InFlight, gate_actions
from ..services.snapshot import build_snapshot
from ..services.tasks import resolve_task_statuses, with_transient
from ..services.variant import resolve_variant
from ..services.workflow import resolve_workflow_step, workflow_bucket

logger = logging.getLogger(__name__)


def _overlay_group_progress(progress: GroupProgress, in_flight: InFlight) -> GroupProgress:
    groups = []
    for group in progress.groups:
        updates = {}
        if (PDF, group.group_id) in in_flight:
            updates["pdf"] = TaskStatus.GENERATING
        if (EMAIL, group.group_id) in in_flight:
            updates["email"] = TaskStatus.SENDING
        groups.append(group.model_copy(update=updates) if updates else group)
    return progress.model_copy(update={"groups": groups})


def summarize_workflow(
    snapshot: ApplicationSnapshot,
    *,
    in_flight: InFlight = frozenset(),
    now: datetime | None = None,
) -> WorkflowStatusResponse:
    """Derive the complete workflow status of a normalized application.

    Args:
        snapshot: Normalized application.
        in_flight: ``(kind, property_group_id)`` keys of operations currently
            running for this application.
        now: Override current time (for testing).
    """
    if now is None:
        now = datetime.now(UTC)

    resolution = resolve_variant(snapshot)
    tasks = resolve_task_statuses(snapshot, resolution)

    progress = None
    if resolution.variant == Variant.MULTI_COMMUNITY:
        progress = aggregate_progress(snapshot, resolution, tasks)

    step = resolve_workflow_step(snapshot, resolution, tasks, progress)
    actions = gate_actions(snapshot, resolution, tasks, in_flight=in_flight)

    displayed_tasks = with_transient(
        tasks,
        generating=(PDF, None) in in_flight,
        sending=(EMAIL, None) in in_flight,
    )
    if progress is not None and in_flight:
        progress = _overlay_group_progress(progress, in_flight)

    return WorkflowStatusResponse(
        application_id=snapshot.id,
        variant=resolution.variant,
        classification_error=resolution.classification_error,
        step=step,
        bucket=workflow_bucket(step),
        tasks=displayed_tasks,
        actions=actions,
        progress=progress,
        deadline=compute_deadline(snapshot),
        is_urgent=is_urgent(snapshot, step, now=now),
    )


async def get_workflow_status(
    session: AsyncSession,
    application_id: int,
    *,
    coordinator=None,
    now: datetime | None = None,
) -> WorkflowStatusResponse | None:
    """Load an application and derive its workflow status.

    Returns None if the application is not found.
    """
    app = await fetch_application(session, application_id)
    if app is None:
        return None

    in_flight = coordinator.in_flight_for(application_id) if coordinator is not None else frozenset()
    return summarize_workflow(build_snapshot(app), in_flight=in_flight, now=now)
