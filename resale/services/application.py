# This project was developed with assistance from AI tools.
"""Application loading and workflow persistence.

Loads applications with every association the workflow engine reads, and
owns the writes that move tasks forward: manual task completion, form
status updates, and property group status changes. Completion is one-way;
nothing here clears a completion timestamp.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from resale_db import Application, ApplicationPropertyGroup, PropertyOwnerForm
from resale_db.enums import FormStatus, FormType, PropertyGroupStatus

from ..services.aggregator import InvalidTransitionError, validate_group_transition
from ..services.gate import COMPLETION_FIELDS, REASON_ALREADY_COMPLETE, manual_tasks_for
from ..services.snapshot import build_snapshot
from ..services.variant import resolve_variant

logger = logging.getLogger(__name__)


class InvalidTaskError(ValueError):
    """Raised when a task name is not a manually completable task."""

    pass


class ActionNotAllowedError(ValueError):
    """Raised when the action gate does not permit the requested action."""

    pass


# Form-backed tasks also move their form row to completed
_FORM_TASKS: dict[str, FormType] = {
    "inspection_form": FormType.INSPECTION_FORM,
    "resale_certificate": FormType.RESALE_CERTIFICATE,
    "settlement_form": FormType.SETTLEMENT_FORM,
}

# Application column stamped when an application-level form is completed
_FORM_COMPLETION_FIELDS: dict[FormType, str] = {
    FormType.INSPECTION_FORM: "inspection_form_completed_at",
    FormType.RESALE_CERTIFICATE: "resale_certificate_completed_at",
    FormType.SETTLEMENT_FORM: "settlement_form_completed_at",
}

_LOAD_OPTIONS = (
    selectinload(Application.forms),
    selectinload(Application.notifications),
    selectinload(Application.property_groups),
    selectinload(Application.hoa_property),
)


async def fetch_application(
    session: AsyncSession,
    application_id: int,
) -> Application | None:
    """Return an application with forms, notifications, groups and property loaded."""
    stmt = select(Application).options(*_LOAD_OPTIONS).where(Application.id == application_id)
    result = await session.execute(stmt)
    return result.unique().scalar_one_or_none()


async def list_applications(
    session: AsyncSession,
    *,
    offset: int = 0,
    limit: int = 20,
    application_type: str | None = None,
) -> tuple[list[Application], int]:
    """Return a page of applications (newest submissions first) and the total count."""
    count_stmt = select(func.count(Application.id))
    stmt = (
        select(Application)
        .options(*_LOAD_OPTIONS)
        .order_by(Application.submitted_at.desc().nulls_last(), Application.id.desc())
        .offset(offset)
        .limit(limit)
    )
    if application_type is not None:
        count_stmt = count_stmt.where(Application.application_type == application_type)
        stmt = stmt.where(Application.application_type == application_type)

    total = (await session.execute(count_stmt)).scalar() or 0
    result = await session.execute(stmt)
    return result.unique().scalars().all(), total


def _find_form(
    app: Application,
    form_type: FormType,
    property_group_id: int | None = None,
) -> PropertyOwnerForm | None:
    for form in app.forms:
        if form.form_type == form_type and form.property_group_id == property_group_id:
            return form
    return None


def _complete_form(
    app: Application,
    form_type: FormType,
    now: datetime,
    property_group_id: int | None = None,
) -> PropertyOwnerForm:
    """Move the matching form row to completed, creating it if the form was never opened."""
    form = _find_form(app, form_type, property_group_id)
    if form is None:
        form = PropertyOwnerForm(
            form_type=form_type,
            property_group_id=property_group_id,
            status=FormStatus.NOT_STARTED,
        )
        app.forms.append(form)
    form.status = FormStatus.COMPLETED
    form.completed_at = form.completed_at or now
    form.updated_at = now
    app.forms_updated_at = now
    return form


async def mark_task_complete(
    session: AsyncSession,
    application_id: int,
    task_name: str,
    property_group_id: int | None = None,
    *,
    now: datetime | None = None,
) -> Application | None:
    """Manually mark a workflow task complete.

    Returns None if the application (or the given property group) is not
    found. Raises InvalidTaskError for an unknown task name or a task the
    application's workflow variant does not have, and ActionNotAllowedError
    if the task was already completed.
    """
    if task_name not in COMPLETION_FIELDS:
        raise InvalidTaskError(
            f"Unknown task '{task_name}'. Allowed: {sorted(COMPLETION_FIELDS)}."
        )
    if property_group_id is not None and task_name != "settlement_form":
        raise InvalidTaskError(f"Task '{task_name}' cannot be completed per property group.")

    if now is None:
        now = datetime.now(UTC)

    app = await fetch_application(session, application_id)
    if app is None:
        return None

    allowed = manual_tasks_for(resolve_variant(build_snapshot(app)))
    if task_name not in allowed:
        raise InvalidTaskError(
            f"Task '{task_name}' is not part of this application's workflow. Allowed: {list(allowed)}."
        )

    if property_group_id is not None:
        group = next((g for g in app.property_groups if g.id == property_group_id), None)
        if group is None:
            return None
        existing = _find_form(app, FormType.SETTLEMENT_FORM, property_group_id)
        if existing is not None and existing.status == FormStatus.COMPLETED:
            raise ActionNotAllowedError(REASON_ALREADY_COMPLETE)
        _complete_form(app, FormType.SETTLEMENT_FORM, now, property_group_id)
    else:
        field = COMPLETION_FIELDS[task_name]
        if getattr(app, field) is not None:
            raise ActionNotAllowedError(REASON_ALREADY_COMPLETE)
        setattr(app, field, now)
        if task_name in _FORM_TASKS:
            _complete_form(app, _FORM_TASKS[task_name], now)

    await session.commit()
    logger.info(
        "Task %s marked complete for application %s (group=%s)",
        task_name,
        application_id,
        property_group_id,
    )
    return await fetch_application(session, application_id)


def get_form(app: Application, form_id: int) -> PropertyOwnerForm | None:
    for form in app.forms:
        if form.id == form_id:
            return form
    return None


async def update_form_status(
    session: AsyncSession,
    app: Application,
    form: PropertyOwnerForm,
    status: FormStatus,
    *,
    now: datetime | None = None,
) -> PropertyOwnerForm:
    """Move a form forward through its lifecycle.

    Re-saving a form at its current status is allowed and counts as an edit,
    so a PDF generated earlier reads as needing regeneration. Raises
    InvalidTransitionError for a backward move.
    """
    current = FormStatus(form.status)
    if status.rank() < current.rank():
        raise InvalidTransitionError(
            f"Cannot move form from '{current.value}' back to '{status.value}'."
        )

    if now is None:
        now = datetime.now(UTC)

    form.status = status
    form.updated_at = now
    app.forms_updated_at = now
    if status == FormStatus.COMPLETED:
        form.completed_at = form.completed_at or now
        field = _FORM_COMPLETION_FIELDS.get(FormType(form.form_type))
        if form.property_group_id is None and field and getattr(app, field) is None:
            setattr(app, field, now)

    await session.commit()
    return form


async def update_property_group(
    session: AsyncSession,
    application_id: int,
    group_id: int,
    *,
    status: PropertyGroupStatus,
) -> ApplicationPropertyGroup | None:
    """Transition a property group with validation.

    Returns None if the group does not belong to the application.
    Raises InvalidTransitionError if the transition is not allowed.
    """
    stmt = select(ApplicationPropertyGroup).where(
        ApplicationPropertyGroup.id == group_id,
        ApplicationPropertyGroup.application_id == application_id,
    )
    group = (await session.execute(stmt)).scalar_one_or_none()
    if group is None:
        return None

    current = PropertyGroupStatus(group.status or PropertyGroupStatus.PENDING)
    validate_group_transition(current, status)

    group.status = status
    await session.commit()
    return group
