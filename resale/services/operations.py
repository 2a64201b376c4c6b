# This project was developed with assistance from AI tools.
"""PDF generation and approval email operations.

Each operation re-checks the action gate against freshly loaded state,
claims its key on the coordinator so at most one runs per application (or
property group), calls the collaborator, and only after it succeeds writes
the completion fields in a single commit. A failed application-level call
writes nothing, so retrying cannot leave a task half-completed. A failed
per-property call records ``failed`` on that property's PDF or email status
in its own commit and re-raises; the property status is left unchanged.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from resale_db import Application, Notification
from resale_db.enums import NotificationType

from ..services.application import ActionNotAllowedError, fetch_application
from ..services.collaborators import CollaboratorError, EmailSender, PdfGenerator
from ..services.gate import (
    EMAIL,
    PDF,
    gate_generate_pdf,
    gate_property_generate_pdf,
    gate_property_send_email,
    gate_send_email,
)
from ..services.snapshot import build_snapshot
from ..services.tasks import resolve_task_statuses
from ..services.variant import resolve_variant

logger = logging.getLogger(__name__)

_COMPLETED = "completed"
_FAILED = "failed"


class OperationInProgressError(RuntimeError):
    """Raised when the same operation is already running for the same target."""

    pass


class OperationCoordinator:
    """Tracks in-flight operations keyed by ``(kind, application_id, property_group_id)``."""

    def __init__(self):
        self._in_flight: set[tuple[str, int, int | None]] = set()

    @asynccontextmanager
    async def claim(
        self,
        kind: str,
        application_id: int,
        property_group_id: int | None = None,
    ) -> AsyncIterator[None]:
        key = (kind, application_id, property_group_id)
        # No await between the check and the add: atomic on the event loop
        if key in self._in_flight:
            raise OperationInProgressError(
                f"{kind} operation already in progress for application {application_id}"
                + (f" property group {property_group_id}" if property_group_id is not None else "")
            )
        self._in_flight.add(key)
        try:
            yield
        finally:
            self._in_flight.discard(key)

    def in_flight_for(self, application_id: int) -> frozenset[tuple[str, int | None]]:
        """``(kind, property_group_id)`` keys currently running for an application."""
        return frozenset(
            (kind, group_id)
            for kind, app_id, group_id in self._in_flight
            if app_id == application_id
        )


_coordinator = OperationCoordinator()


def get_coordinator() -> OperationCoordinator:
    return _coordinator


def _find_group(app: Application, property_group_id: int):
    return next((g for g in app.property_groups if g.id == property_group_id), None)


async def _record_group_failure(
    session: AsyncSession,
    app: Application,
    property_group_id: int,
    field: str,
) -> None:
    group_row = _find_group(app, property_group_id)
    setattr(group_row, field, _FAILED)
    await session.commit()
    logger.warning(
        "Recorded %s=%s for application %s property group %s",
        field,
        _FAILED,
        app.id,
        property_group_id,
    )


async def generate_pdf(
    session: AsyncSession,
    application_id: int,
    *,
    pdf_generator: PdfGenerator,
    coordinator: OperationCoordinator,
    property_group_id: int | None = None,
    now: datetime | None = None,
) -> Application | None:
    """Generate (or regenerate) the certificate PDF.

    Returns None if the application or property group is not found.
    Raises ActionNotAllowedError when the gate refuses,
    OperationInProgressError for a duplicate request, and CollaboratorError
    when rendering fails.
    """
    app = await fetch_application(session, application_id)
    if app is None:
        return None

    snapshot = build_snapshot(app)
    resolution = resolve_variant(snapshot)
    tasks = resolve_task_statuses(snapshot, resolution)

    if property_group_id is None:
        decision = gate_generate_pdf(resolution, tasks)
    else:
        group = snapshot.property_group(property_group_id)
        if group is None:
            return None
        decision = gate_property_generate_pdf(snapshot, resolution, tasks, group)
    if not decision.permitted:
        raise ActionNotAllowedError(decision.reason)

    async with coordinator.claim(PDF, application_id, property_group_id):
        try:
            pdf_url = await pdf_generator.generate(snapshot, property_group_id)
        except CollaboratorError:
            if property_group_id is not None:
                await _record_group_failure(session, app, property_group_id, "pdf_status")
            raise

        if now is None:
            now = datetime.now(UTC)
        if property_group_id is None:
            app.pdf_url = pdf_url
            app.pdf_generated_at = now
            app.pdf_completed_at = now
            # Pin both staleness baselines to the generation time
            app.updated_at = now
            if app.forms_updated_at is None:
                app.forms_updated_at = now
        else:
            group_row = _find_group(app, property_group_id)
            group_row.pdf_url = pdf_url
            group_row.pdf_status = _COMPLETED
            group_row.pdf_completed_at = now
        await session.commit()

    logger.info(
        "Generated PDF for application %s (group=%s)",
        application_id,
        property_group_id,
    )
    return await fetch_application(session, application_id)


async def send_approval_email(
    session: AsyncSession,
    application_id: int,
    *,
    email_sender: EmailSender,
    coordinator: OperationCoordinator,
    property_group_id: int | None = None,
    now: datetime | None = None,
) -> Application | None:
    """Send the approval email and record it.

    Same contract as ``generate_pdf``. At application level success records
    an ``application_approved`` notification and ``email_completed_at``.
    """
    app = await fetch_application(session, application_id)
    if app is None:
        return None

    snapshot = build_snapshot(app)
    resolution = resolve_variant(snapshot)
    tasks = resolve_task_statuses(snapshot, resolution)

    if property_group_id is None:
        decision = gate_send_email(resolution, tasks)
    else:
        group = snapshot.property_group(property_group_id)
        if group is None:
            return None
        decision = gate_property_send_email(group)
    if not decision.permitted:
        raise ActionNotAllowedError(decision.reason)

    async with coordinator.claim(EMAIL, application_id, property_group_id):
        try:
            await email_sender.send_approval(snapshot, property_group_id)
        except CollaboratorError:
            if property_group_id is not None:
                await _record_group_failure(session, app, property_group_id, "email_status")
            raise

        if now is None:
            now = datetime.now(UTC)
        if property_group_id is None:
            app.email_completed_at = now
            app.notifications.append(
                Notification(
                    notification_type=NotificationType.APPLICATION_APPROVED,
                    sent_at=now,
                )
            )
        else:
            group_row = _find_group(app, property_group_id)
            group_row.email_status = _COMPLETED
            group_row.email_completed_at = now
        await session.commit()

    logger.info(
        "Sent approval email for application %s (group=%s)",
        application_id,
        property_group_id,
    )
    return await fetch_application(session, application_id)
