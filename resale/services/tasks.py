# This project was developed with assistance from AI tools.
"""Task status resolution.

Pure functions mapping an ``ApplicationSnapshot`` onto per-task states
(inspection, resale, settlement, pdf, email; download/upload for lender
questionnaires). Missing rows resolve to ``not_started``; missing or
unparsable timestamps make staleness checks report "not stale".
"""

from datetime import datetime

from resale_db.enums import FormStatus, FormType

from ..schemas.snapshot import ApplicationSnapshot, FormSnapshot, PropertyGroupSnapshot
from ..schemas.workflow import TaskStatus, TaskStatuses, Variant, VariantResolution

_COMPLETED = "completed"
_STANDARD_FORMS = frozenset({FormType.INSPECTION_FORM, FormType.RESALE_CERTIFICATE})


def is_stale(changed_at: datetime | None, generated_at: datetime | None) -> bool:
    """True only when both timestamps exist and the change is strictly later."""
    if changed_at is None or generated_at is None:
        return False
    return changed_at > generated_at


def form_task_status(form: FormSnapshot | None) -> TaskStatus:
    if form is None:
        return TaskStatus.NOT_STARTED
    return TaskStatus(form.status.value)


def email_task_status(snapshot: ApplicationSnapshot) -> TaskStatus:
    if snapshot.has_approval_notification or snapshot.email_completed_at is not None:
        return TaskStatus.COMPLETED
    return TaskStatus.NOT_STARTED


def _latest(*values: datetime | None) -> datetime | None:
    present = [v for v in values if v is not None]
    return max(present) if present else None


def standard_pdf_status(snapshot: ApplicationSnapshot) -> TaskStatus:
    """PDF state for standard applications.

    The forms' change time is the later of ``forms_updated_at`` (falling
    back to the application's ``updated_at``) and the newest edit of an
    application-level inspection or resale form. Any write that touches
    ``updated_at`` after generation therefore reads as "update needed" when
    ``forms_updated_at`` is unset.
    """
    if not snapshot.pdf_url or snapshot.pdf_completed_at is None:
        return TaskStatus.NOT_STARTED
    forms_changed_at = _latest(
        snapshot.forms_updated_at or snapshot.updated_at,
        *(
            f.updated_at
            for f in snapshot.forms
            if f.form_type in _STANDARD_FORMS and f.property_group_id is None
        ),
    )
    if is_stale(forms_changed_at, snapshot.pdf_generated_at):
        return TaskStatus.UPDATE_NEEDED
    return TaskStatus.COMPLETED


def settlement_form_status(snapshot: ApplicationSnapshot) -> TaskStatus:
    form = snapshot.form_for_group(FormType.SETTLEMENT_FORM, None)
    if form is not None and form.status == FormStatus.COMPLETED:
        return TaskStatus.COMPLETED
    if form is not None and form.status == FormStatus.IN_PROGRESS:
        return TaskStatus.IN_PROGRESS
    # Manual completion via the task override only stamps the application
    if snapshot.settlement_form_completed_at is not None:
        return TaskStatus.COMPLETED
    return TaskStatus.NOT_STARTED


def settlement_pdf_status(snapshot: ApplicationSnapshot) -> TaskStatus:
    """PDF state for single-property settlement applications.

    Only the settlement form's ``updated_at`` counts for staleness. With no
    settlement form row to compare against, an existing PDF is completed.
    """
    if not snapshot.pdf_url or snapshot.pdf_generated_at is None:
        return TaskStatus.NOT_STARTED
    form = snapshot.form_for_group(FormType.SETTLEMENT_FORM, None)
    if form is None:
        return TaskStatus.COMPLETED
    if is_stale(form.updated_at, snapshot.pdf_generated_at):
        return TaskStatus.UPDATE_NEEDED
    return TaskStatus.COMPLETED


def group_pdf_status(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
    group: PropertyGroupSnapshot,
) -> TaskStatus:
    if not (group.pdf_url or group.pdf_status == _COMPLETED):
        return TaskStatus.NOT_STARTED
    if resolution.is_settlement:
        form = snapshot.form_for_group(FormType.SETTLEMENT_FORM, group.id)
        if form is not None and is_stale(form.updated_at, group.pdf_completed_at):
            return TaskStatus.UPDATE_NEEDED
    return TaskStatus.COMPLETED


def group_email_status(group: PropertyGroupSnapshot) -> TaskStatus:
    if group.email_status == _COMPLETED or group.email_completed_at is not None:
        return TaskStatus.COMPLETED
    return TaskStatus.NOT_STARTED


def resolve_task_statuses(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
) -> TaskStatuses:
    """Derive the task set for the application's variant."""
    if resolution.variant == Variant.LENDER_QUESTIONNAIRE:
        has_result_file = bool(
            snapshot.lender_questionnaire_completed_file_path
            or snapshot.lender_questionnaire_edited_file_path
        )
        return TaskStatuses(
            download=TaskStatus.COMPLETED
            if snapshot.lender_questionnaire_downloaded_at
            else TaskStatus.NOT_STARTED,
            upload=TaskStatus.COMPLETED if has_result_file else TaskStatus.NOT_STARTED,
            email=email_task_status(snapshot),
        )

    if resolution.is_settlement:
        return TaskStatuses(
            settlement=settlement_form_status(snapshot),
            pdf=settlement_pdf_status(snapshot),
            email=email_task_status(snapshot),
        )

    return TaskStatuses(
        inspection=form_task_status(snapshot.form(FormType.INSPECTION_FORM)),
        resale=form_task_status(snapshot.form(FormType.RESALE_CERTIFICATE)),
        pdf=standard_pdf_status(snapshot),
        email=email_task_status(snapshot),
    )


def with_transient(tasks: TaskStatuses, *, generating: bool = False, sending: bool = False) -> TaskStatuses:
    """Overlay request-scoped generating/sending states for display."""
    updates = {}
    if generating and tasks.pdf is not None:
        updates["pdf"] = TaskStatus.GENERATING
    if sending and tasks.email is not None:
        updates["email"] = TaskStatus.SENDING
    return tasks.model_copy(update=updates) if updates else tasks
