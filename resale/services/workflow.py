# This project was developed with assistance from AI tools.
"""Workflow step resolution.

Reduces task states to the single "current step" shown for an application.
Each variant has its own ladder; the resolver reports the lowest-numbered
unmet condition on that ladder, so adding completions never moves the step
backwards.
"""

from resale_db.enums import ApplicationStatus, FormStatus

from ..schemas.snapshot import ApplicationSnapshot
from ..schemas.workflow import (
    GroupProgress,
    TaskStatus,
    TaskStatuses,
    Variant,
    VariantResolution,
    WorkflowBucket,
    WorkflowStep,
)
from .aggregator import aggregate_progress

# Step number -> label, per variant
LADDERS: dict[Variant, dict[int, str]] = {
    Variant.STANDARD: {
        1: "Forms Required",
        2: "Forms In Progress",
        3: "Generate PDF",
        4: "Send Email",
        5: "Completed",
    },
    Variant.SETTLEMENT: {
        1: "Form Required",
        2: "Generate PDF",
        3: "Send Email",
        4: "Completed",
    },
    Variant.MULTI_COMMUNITY: {
        1: "Forms Required",
        2: "Forms In Progress",
        3: "Generate PDF",
        4: "Send Email",
        5: "Completed",
    },
    Variant.LENDER_QUESTIONNAIRE: {
        1: "Awaiting Upload",
        2: "Upload Completed Form",
        3: "Send Email",
        4: "Completed",
    },
}

REJECTED_STEP = 0
REJECTED_LABEL = "Rejected"
SETTLEMENT_IN_PROGRESS_LABEL = "Form In Progress"

_UNTOUCHED = {TaskStatus(s.value) for s in FormStatus.untouched()}


def _step(variant: Variant, number: int, label: str | None = None) -> WorkflowStep:
    ladder = LADDERS[variant]
    return WorkflowStep(
        step=number,
        label=label or ladder[number],
        variant=variant,
        is_terminal=number == max(ladder),
    )


def resolve_standard_step(tasks: TaskStatuses) -> WorkflowStep:
    v = Variant.STANDARD
    if tasks.inspection in _UNTOUCHED and tasks.resale in _UNTOUCHED:
        return _step(v, 1)
    if tasks.inspection != TaskStatus.COMPLETED or tasks.resale != TaskStatus.COMPLETED:
        return _step(v, 2)
    # A stale PDF (update_needed) sits on step 3 until regenerated
    if tasks.pdf != TaskStatus.COMPLETED:
        return _step(v, 3)
    if tasks.email != TaskStatus.COMPLETED:
        return _step(v, 4)
    return _step(v, 5)


def resolve_settlement_step(tasks: TaskStatuses) -> WorkflowStep:
    v = Variant.SETTLEMENT
    if tasks.settlement != TaskStatus.COMPLETED:
        if tasks.settlement == TaskStatus.IN_PROGRESS:
            return _step(v, 1, SETTLEMENT_IN_PROGRESS_LABEL)
        return _step(v, 1)
    if tasks.pdf != TaskStatus.COMPLETED:
        return _step(v, 2)
    if tasks.email != TaskStatus.COMPLETED:
        return _step(v, 3)
    return _step(v, 4)


def resolve_lender_questionnaire_step(snapshot: ApplicationSnapshot, tasks: TaskStatuses) -> WorkflowStep:
    v = Variant.LENDER_QUESTIONNAIRE
    if not snapshot.lender_questionnaire_file_path:
        return _step(v, 1)
    if tasks.upload != TaskStatus.COMPLETED:
        return _step(v, 2)
    if tasks.email != TaskStatus.COMPLETED:
        return _step(v, 3)
    return _step(v, 4)


def resolve_multi_community_step(progress: GroupProgress) -> WorkflowStep:
    """Resolve the multi-community ladder from the group counters (first match wins)."""
    v = Variant.MULTI_COMMUNITY
    total = progress.total_properties
    if total == 0:
        return _step(v, 1)
    if progress.completed_properties == total:
        return _step(v, 5)
    if progress.emails_sent > 0:
        return _step(v, 4)
    # Every PDF is out and only emails remain
    if progress.pdfs_generated == total:
        return _step(v, 4)
    if progress.pdfs_generated > 0:
        return _step(v, 3)
    # No PDFs yet: forms in progress and untouched forms both report step 2
    return _step(v, 2)


def resolve_workflow_step(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
    tasks: TaskStatuses,
    progress: GroupProgress | None = None,
) -> WorkflowStep:
    """Pick the current step on the variant's ladder.

    ``tasks`` must be the stored task states, not the transient
    generating/sending overlay.
    """
    variant = resolution.variant
    if snapshot.status == ApplicationStatus.REJECTED.value:
        return WorkflowStep(step=REJECTED_STEP, label=REJECTED_LABEL, variant=variant, is_terminal=True)

    if variant == Variant.LENDER_QUESTIONNAIRE:
        return resolve_lender_questionnaire_step(snapshot, tasks)
    if variant == Variant.MULTI_COMMUNITY:
        if progress is None:
            progress = aggregate_progress(snapshot, resolution, tasks)
        return resolve_multi_community_step(progress)
    if variant == Variant.SETTLEMENT:
        return resolve_settlement_step(tasks)
    return resolve_standard_step(tasks)


def workflow_bucket(step: WorkflowStep) -> WorkflowBucket:
    """Coarse dashboard grouping of a step."""
    if step.step == REJECTED_STEP:
        return WorkflowBucket.REJECTED
    if step.is_terminal:
        return WorkflowBucket.COMPLETED
    if step.step == 1:
        return WorkflowBucket.NOT_STARTED
    return WorkflowBucket.IN_PROGRESS
