# This project was developed with assistance from AI tools.
"""Multi-community property group rollup.

Computes per-group progress (forms, PDF, email) and the application-level
counters the multi-community ladder is resolved from. Also owns the
property group status state machine.
"""

import logging

from resale_db.enums import FormStatus, FormType, PropertyGroupStatus

from ..schemas.snapshot import ApplicationSnapshot, PropertyGroupSnapshot
from ..schemas.workflow import (
    GroupProgress,
    PropertyGroupProgress,
    TaskStatus,
    TaskStatuses,
    VariantResolution,
)
from .tasks import group_email_status, group_pdf_status

logger = logging.getLogger(__name__)


class InvalidTransitionError(ValueError):
    """Raised when a status transition is not allowed."""

    pass


def validate_group_transition(
    current: PropertyGroupStatus,
    new: PropertyGroupStatus,
) -> None:
    """Raise InvalidTransitionError unless ``current -> new`` is allowed."""
    allowed = PropertyGroupStatus.valid_transitions().get(current, frozenset())
    if new not in allowed:
        raise InvalidTransitionError(
            f"Cannot transition property group from '{current.value}' to '{new.value}'. "
            f"Allowed: {sorted(s.value for s in allowed) if allowed else 'none (terminal status)'}."
        )


def group_forms_completed(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
    group: PropertyGroupSnapshot,
    inspection: TaskStatus | None,
) -> bool:
    """Whether a group's required forms are done.

    The inspection form exists only at application level, so it gates the
    primary group alone.
    """
    if resolution.is_settlement:
        form = snapshot.form_for_group(FormType.SETTLEMENT_FORM, group.id)
        return form is not None and form.status == FormStatus.COMPLETED

    resale_done = group.status == PropertyGroupStatus.COMPLETED
    if group.is_primary:
        return inspection == TaskStatus.COMPLETED and resale_done
    return resale_done


def group_forms_in_progress(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
    group: PropertyGroupSnapshot,
    inspection: TaskStatus | None,
) -> bool:
    if resolution.is_settlement:
        form = snapshot.form_for_group(FormType.SETTLEMENT_FORM, group.id)
        return form is not None and form.status == FormStatus.IN_PROGRESS

    if group.status == PropertyGroupStatus.IN_PROGRESS:
        return True
    return group.is_primary and inspection == TaskStatus.IN_PROGRESS


def _group_progress(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
    group: PropertyGroupSnapshot,
    inspection: TaskStatus | None,
) -> PropertyGroupProgress:
    forms_completed = group_forms_completed(snapshot, resolution, group, inspection)
    pdf = group_pdf_status(snapshot, resolution, group)
    email = group_email_status(group)
    pdf_generated = forms_completed and pdf != TaskStatus.NOT_STARTED
    return PropertyGroupProgress(
        group_id=group.id,
        property_name=group.property_name,
        property_location=group.property_location,
        is_primary=group.is_primary,
        status=group.status,
        forms_completed=forms_completed,
        forms_in_progress=group_forms_in_progress(snapshot, resolution, group, inspection),
        pdf_generated=pdf_generated,
        email_sent=pdf_generated and email == TaskStatus.COMPLETED,
        pdf=pdf,
        email=email,
    )


def aggregate_progress(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
    tasks: TaskStatuses,
) -> GroupProgress:
    """Roll up every property group, primary first, then by property name."""
    groups = [
        _group_progress(snapshot, resolution, group, tasks.inspection)
        for group in snapshot.sorted_property_groups
    ]

    primaries = sum(1 for g in groups if g.is_primary)
    if groups and primaries != 1:
        logger.warning(
            "Application %s has %d primary property groups (expected 1)",
            snapshot.id,
            primaries,
        )

    return GroupProgress(
        total_properties=len(groups),
        completed_properties=sum(1 for g in groups if g.email_sent),
        pdfs_generated=sum(1 for g in groups if g.pdf_generated),
        emails_sent=sum(1 for g in groups if g.email_sent),
        forms_in_progress=sum(1 for g in groups if g.forms_in_progress),
        groups=groups,
    )
