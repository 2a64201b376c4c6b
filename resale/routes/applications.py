# This project was developed with assistance from AI tools.
"""Application workflow routes: dashboard list, workflow status, task actions."""

from collections.abc import Awaitable
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from resale_db import Application, get_db

from ..schemas import Pagination
from ..schemas.application import (
    ApplicationListResponse,
    ApplicationSummary,
    CompleteTaskRequest,
    FormResponse,
    FormStatusUpdate,
    PropertyGroupResponse,
    PropertyGroupUpdate,
)
from ..schemas.workflow import WorkflowBucket, WorkflowStatusResponse
from ..services import application as app_service
from ..services.application import (
    ActionNotAllowedError,
    InvalidTaskError,
    InvalidTransitionError,
)
from ..services.collaborators import (
    CollaboratorError,
    EmailSender,
    PdfGenerator,
    get_email_sender,
    get_pdf_generator,
)
from ..services.operations import (
    OperationCoordinator,
    OperationInProgressError,
    generate_pdf,
    get_coordinator,
    send_approval_email,
)
from ..services.snapshot import build_snapshot
from ..services.status import get_workflow_status, summarize_workflow

router = APIRouter()

_NOT_FOUND = "Application not found"


def _build_summary(app: Application, now: datetime) -> ApplicationSummary:
    snapshot = build_snapshot(app)
    workflow = summarize_workflow(snapshot, now=now)
    return ApplicationSummary(
        id=snapshot.id,
        application_type=snapshot.application_type,
        submitter_type=snapshot.submitter_type,
        status=snapshot.status,
        package_type=snapshot.package_type,
        property_address=snapshot.property_address,
        property_name=snapshot.property_name,
        submitted_at=snapshot.submitted_at,
        variant=workflow.variant,
        classification_error=workflow.classification_error,
        step=workflow.step,
        bucket=workflow.bucket,
        deadline=workflow.deadline,
        is_urgent=workflow.is_urgent,
    )


def _workflow_response(app: Application, coordinator: OperationCoordinator) -> WorkflowStatusResponse:
    return summarize_workflow(build_snapshot(app), in_flight=coordinator.in_flight_for(app.id))


async def _run_operation(operation: Awaitable[Application | None]) -> Application:
    """Await a PDF/email operation, mapping its failures to HTTP errors."""
    try:
        app = await operation
    except ActionNotAllowedError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except OperationInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except CollaboratorError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    if app is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return app


@router.get("/", response_model=ApplicationListResponse)
async def list_applications(
    session: AsyncSession = Depends(get_db),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    application_type: str | None = None,
    bucket: WorkflowBucket | None = None,
    urgent: bool | None = None,
) -> ApplicationListResponse:
    """List applications with their current workflow step.

    ``bucket`` and ``urgent`` are derived values, so they filter the fetched
    page rather than the query; pagination totals count the unfiltered rows.
    """
    applications, total = await app_service.list_applications(
        session,
        offset=offset,
        limit=limit,
        application_type=application_type,
    )

    now = datetime.now(UTC)
    items = [_build_summary(app, now) for app in applications]
    if bucket is not None:
        items = [item for item in items if item.bucket == bucket]
    if urgent is not None:
        items = [item for item in items if item.is_urgent == urgent]

    return ApplicationListResponse(
        data=items,
        pagination=Pagination(
            total=total,
            offset=offset,
            limit=limit,
            has_more=(offset + limit < total),
        ),
    )


@router.get("/{application_id}/workflow", response_model=WorkflowStatusResponse)
async def get_workflow(
    application_id: int,
    session: AsyncSession = Depends(get_db),
    coordinator: OperationCoordinator = Depends(get_coordinator),
) -> WorkflowStatusResponse:
    """Get the derived workflow status, task states and permitted actions."""
    result = await get_workflow_status(session, application_id, coordinator=coordinator)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return result


@router.post("/{application_id}/tasks/{task_name}/complete", response_model=WorkflowStatusResponse)
async def complete_task(
    application_id: int,
    task_name: str,
    body: CompleteTaskRequest | None = None,
    session: AsyncSession = Depends(get_db),
    coordinator: OperationCoordinator = Depends(get_coordinator),
) -> WorkflowStatusResponse:
    """Manually mark a task complete. One-way: completed tasks cannot be re-opened."""
    property_group_id = body.property_group_id if body else None
    try:
        app = await app_service.mark_task_complete(
            session,
            application_id,
            task_name,
            property_group_id,
        )
    except InvalidTaskError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except ActionNotAllowedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if app is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return _workflow_response(app, coordinator)


@router.patch("/{application_id}/forms/{form_id}", response_model=FormResponse)
async def update_form(
    application_id: int,
    form_id: int,
    body: FormStatusUpdate,
    session: AsyncSession = Depends(get_db),
) -> FormResponse:
    """Move a form forward (not_started -> in_progress -> completed)."""
    app = await app_service.fetch_application(session, application_id)
    form = app_service.get_form(app, form_id) if app is not None else None
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    try:
        form = await app_service.update_form_status(session, app, form, body.status)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return FormResponse(
        id=form.id,
        application_id=form.application_id,
        property_group_id=form.property_group_id,
        form_type=form.form_type,
        status=form.status,
        completed_at=form.completed_at,
        updated_at=form.updated_at,
    )


@router.post("/{application_id}/pdf", response_model=WorkflowStatusResponse)
async def generate_application_pdf(
    application_id: int,
    session: AsyncSession = Depends(get_db),
    pdf_generator: PdfGenerator = Depends(get_pdf_generator),
    coordinator: OperationCoordinator = Depends(get_coordinator),
) -> WorkflowStatusResponse:
    """Generate or regenerate the application's certificate PDF."""
    app = await _run_operation(
        generate_pdf(
            session,
            application_id,
            pdf_generator=pdf_generator,
            coordinator=coordinator,
        )
    )
    return _workflow_response(app, coordinator)


@router.post("/{application_id}/email", response_model=WorkflowStatusResponse)
async def send_application_email(
    application_id: int,
    session: AsyncSession = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
    coordinator: OperationCoordinator = Depends(get_coordinator),
) -> WorkflowStatusResponse:
    """Send the approval email for the application."""
    app = await _run_operation(
        send_approval_email(
            session,
            application_id,
            email_sender=email_sender,
            coordinator=coordinator,
        )
    )
    return _workflow_response(app, coordinator)


@router.post("/{application_id}/property-groups/{group_id}/pdf", response_model=WorkflowStatusResponse)
async def generate_property_pdf(
    application_id: int,
    group_id: int,
    session: AsyncSession = Depends(get_db),
    pdf_generator: PdfGenerator = Depends(get_pdf_generator),
    coordinator: OperationCoordinator = Depends(get_coordinator),
) -> WorkflowStatusResponse:
    """Generate the certificate PDF for one property of a multi-community application."""
    app = await _run_operation(
        generate_pdf(
            session,
            application_id,
            pdf_generator=pdf_generator,
            coordinator=coordinator,
            property_group_id=group_id,
        )
    )
    return _workflow_response(app, coordinator)


@router.post("/{application_id}/property-groups/{group_id}/email", response_model=WorkflowStatusResponse)
async def send_property_email(
    application_id: int,
    group_id: int,
    session: AsyncSession = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
    coordinator: OperationCoordinator = Depends(get_coordinator),
) -> WorkflowStatusResponse:
    """Send the approval email for one property of a multi-community application."""
    app = await _run_operation(
        send_approval_email(
            session,
            application_id,
            email_sender=email_sender,
            coordinator=coordinator,
            property_group_id=group_id,
        )
    )
    return _workflow_response(app, coordinator)


@router.patch("/{application_id}/property-groups/{group_id}", response_model=PropertyGroupResponse)
async def update_property_group(
    application_id: int,
    group_id: int,
    body: PropertyGroupUpdate,
    session: AsyncSession = Depends(get_db),
) -> PropertyGroupResponse:
    """Transition a property group through pending -> in_progress -> completed/failed."""
    try:
        group = await app_service.update_property_group(
            session,
            application_id,
            group_id,
            status=body.status,
        )
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property group not found")
    return PropertyGroupResponse(
        id=group.id,
        application_id=group.application_id,
        property_name=group.property_name,
        is_primary=group.is_primary,
        status=group.status,
    )
