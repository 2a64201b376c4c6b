# This project was developed with assistance from AI tools.
"""Action gating.

Decides which user-triggerable actions (generate PDF, send email, mark a
task complete) are permitted for the current task states, and why not when
they are not. Every disabled reason is a module-level constant so the same
state always renders the same message.
"""

from resale_db.enums import FormStatus, FormType, PropertyGroupStatus

from ..schemas.snapshot import ApplicationSnapshot, PropertyGroupSnapshot
from ..schemas.workflow import (
    ActionDecision,
    ActionGate,
    PropertyActionGate,
    TaskStatus,
    TaskStatuses,
    Variant,
    VariantResolution,
)
from .tasks import group_pdf_status

PDF = "pdf"
EMAIL = "email"

REASON_FORMS_REQUIRED = "Both forms must be completed first"
REASON_SETTLEMENT_FORM_REQUIRED = "Settlement form must be completed first"
REASON_INSPECTION_REQUIRED = "Inspection form must be completed first"
REASON_PROPERTY_FORMS_REQUIRED = "Property forms must be completed first"
REASON_PDF_REQUIRED = "PDF must be generated first"
REASON_PDF_STALE = "PDF needs to be regenerated after form updates"
REASON_UPLOAD_REQUIRED = "Completed questionnaire must be uploaded first"
REASON_NOT_IN_WORKFLOW = "Not part of the lender questionnaire workflow"
REASON_PER_PROPERTY = "Use the per-property actions for multi-community applications"
REASON_ALREADY_COMPLETE = "Task already marked complete"
REASON_GENERATING = "PDF generation already in progress"
REASON_SENDING = "Email send already in progress"

LABEL_GENERATE = "Generate PDF"
LABEL_REGENERATE = "Regenerate PDF"
LABEL_SEND = "Send Email"
LABEL_MARK_COMPLETE = "Mark Complete"

# Manually completable task -> application column stamped by the override
COMPLETION_FIELDS: dict[str, str] = {
    "inspection_form": "inspection_form_completed_at",
    "resale_certificate": "resale_certificate_completed_at",
    "settlement_form": "settlement_form_completed_at",
    "pdf": "pdf_completed_at",
    "email": "email_completed_at",
}

_STANDARD_MANUAL_TASKS = ("inspection_form", "resale_certificate", "pdf", "email")
_SETTLEMENT_MANUAL_TASKS = ("settlement_form", "pdf", "email")
_LENDER_MANUAL_TASKS = ("email",)

InFlight = frozenset[tuple[str, int | None]]


def _allow(label: str) -> ActionDecision:
    return ActionDecision(permitted=True, label=label)


def _deny(label: str, reason: str) -> ActionDecision:
    return ActionDecision(permitted=False, label=label, reason=reason)


def manual_tasks_for(resolution: VariantResolution) -> tuple[str, ...]:
    if resolution.variant == Variant.LENDER_QUESTIONNAIRE:
        return _LENDER_MANUAL_TASKS
    if resolution.is_settlement:
        return _SETTLEMENT_MANUAL_TASKS
    return _STANDARD_MANUAL_TASKS


def _pdf_label(pdf: TaskStatus | None) -> str:
    if pdf in (TaskStatus.COMPLETED, TaskStatus.UPDATE_NEEDED):
        return LABEL_REGENERATE
    return LABEL_GENERATE


def _required_forms_reason(resolution: VariantResolution, tasks: TaskStatuses) -> str | None:
    """None when every required form task is completed, else the blocking reason."""
    if resolution.is_settlement:
        if tasks.settlement != TaskStatus.COMPLETED:
            return REASON_SETTLEMENT_FORM_REQUIRED
        return None
    # Both forms at once: one completed form never enables generation
    if tasks.inspection != TaskStatus.COMPLETED or tasks.resale != TaskStatus.COMPLETED:
        return REASON_FORMS_REQUIRED
    return None


def gate_generate_pdf(
    resolution: VariantResolution,
    tasks: TaskStatuses,
    in_flight: InFlight = frozenset(),
) -> ActionDecision:
    label = _pdf_label(tasks.pdf)
    if resolution.variant == Variant.LENDER_QUESTIONNAIRE:
        return _deny(LABEL_GENERATE, REASON_NOT_IN_WORKFLOW)
    if resolution.variant == Variant.MULTI_COMMUNITY:
        return _deny(label, REASON_PER_PROPERTY)
    if (PDF, None) in in_flight:
        return _deny(label, REASON_GENERATING)
    reason = _required_forms_reason(resolution, tasks)
    if reason:
        return _deny(label, reason)
    return _allow(label)


def gate_send_email(
    resolution: VariantResolution,
    tasks: TaskStatuses,
    in_flight: InFlight = frozenset(),
) -> ActionDecision:
    if resolution.variant == Variant.MULTI_COMMUNITY:
        return _deny(LABEL_SEND, REASON_PER_PROPERTY)
    if (EMAIL, None) in in_flight:
        return _deny(LABEL_SEND, REASON_SENDING)
    if resolution.variant == Variant.LENDER_QUESTIONNAIRE:
        if tasks.upload != TaskStatus.COMPLETED:
            return _deny(LABEL_SEND, REASON_UPLOAD_REQUIRED)
        return _allow(LABEL_SEND)
    if tasks.pdf == TaskStatus.COMPLETED:
        return _allow(LABEL_SEND)
    if tasks.pdf == TaskStatus.UPDATE_NEEDED:
        return _deny(LABEL_SEND, REASON_PDF_STALE)
    return _deny(LABEL_SEND, REASON_PDF_REQUIRED)


def gate_mark_complete(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
) -> dict[str, ActionDecision]:
    """One-way override: offered only while the completion timestamp is absent."""
    decisions = {}
    for task_name in manual_tasks_for(resolution):
        if getattr(snapshot, COMPLETION_FIELDS[task_name]) is None:
            decisions[task_name] = _allow(LABEL_MARK_COMPLETE)
        else:
            decisions[task_name] = _deny(LABEL_MARK_COMPLETE, REASON_ALREADY_COMPLETE)
    return decisions


def gate_property_generate_pdf(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
    tasks: TaskStatuses,
    group: PropertyGroupSnapshot,
    in_flight: InFlight = frozenset(),
) -> ActionDecision:
    label = _pdf_label(group_pdf_status(snapshot, resolution, group))
    if (PDF, group.id) in in_flight:
        return _deny(label, REASON_GENERATING)

    if resolution.is_settlement:
        form = snapshot.form_for_group(FormType.SETTLEMENT_FORM, group.id)
        if form is None or form.status != FormStatus.COMPLETED:
            return _deny(label, REASON_SETTLEMENT_FORM_REQUIRED)
        return _allow(label)

    if group.is_primary and tasks.inspection != TaskStatus.COMPLETED:
        return _deny(label, REASON_INSPECTION_REQUIRED)
    if group.status != PropertyGroupStatus.COMPLETED:
        return _deny(label, REASON_PROPERTY_FORMS_REQUIRED)
    return _allow(label)


def gate_property_send_email(
    group: PropertyGroupSnapshot,
    in_flight: InFlight = frozenset(),
) -> ActionDecision:
    if (EMAIL, group.id) in in_flight:
        return _deny(LABEL_SEND, REASON_SENDING)
    if group.pdf_status == TaskStatus.COMPLETED.value or group.pdf_url:
        return _allow(LABEL_SEND)
    return _deny(LABEL_SEND, REASON_PDF_REQUIRED)


def gate_property_actions(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
    tasks: TaskStatuses,
    group: PropertyGroupSnapshot,
    in_flight: InFlight = frozenset(),
) -> PropertyActionGate:
    return PropertyActionGate(
        group_id=group.id,
        generate_pdf=gate_property_generate_pdf(snapshot, resolution, tasks, group, in_flight),
        send_email=gate_property_send_email(group, in_flight),
    )


def gate_actions(
    snapshot: ApplicationSnapshot,
    resolution: VariantResolution,
    tasks: TaskStatuses,
    *,
    in_flight: InFlight = frozenset(),
) -> ActionGate:
    """Gate every action for an application (and each property group when multi-community)."""
    property_gates = []
    if resolution.variant == Variant.MULTI_COMMUNITY:
        property_gates = [
            gate_property_actions(snapshot, resolution, tasks, group, in_flight)
            for group in snapshot.sorted_property_groups
        ]

    return ActionGate(
        generate_pdf=gate_generate_pdf(resolution, tasks, in_flight),
        send_email=gate_send_email(resolution, tasks, in_flight),
        mark_complete=gate_mark_complete(snapshot, resolution),
        property_groups=property_gates,
    )
