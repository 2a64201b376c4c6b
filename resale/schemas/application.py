# This project was developed with assistance from AI tools.
"""Application request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from resale_db.enums import FormStatus, FormType, PropertyGroupStatus

from . import Pagination
from .workflow import Variant, WorkflowBucket, WorkflowStep


class ApplicationSummary(BaseModel):
    """One row of the application dashboard."""

    id: int
    application_type: str | None = None
    submitter_type: str | None = None
    status: str | None = None
    package_type: str
    property_address: str | None = None
    property_name: str | None = None
    submitted_at: datetime | None = None
    variant: Variant
    classification_error: str | None = None
    step: WorkflowStep
    bucket: WorkflowBucket
    deadline: datetime | None = None
    is_urgent: bool = False


class ApplicationListResponse(BaseModel):
    data: list[ApplicationSummary]
    pagination: Pagination


class CompleteTaskRequest(BaseModel):
    """Body for manually completing a task; the group id targets a per-property settlement form."""

    property_group_id: int | None = Field(default=None, ge=1)


class FormStatusUpdate(BaseModel):
    status: FormStatus


class FormResponse(BaseModel):
    id: int
    application_id: int
    property_group_id: int | None = None
    form_type: FormType
    status: FormStatus
    completed_at: datetime | None = None
    updated_at: datetime | None = None


class PropertyGroupUpdate(BaseModel):
    status: PropertyGroupStatus


class PropertyGroupResponse(BaseModel):
    id: int
    application_id: int
    property_name: str | None = None
    is_primary: bool = False
    status: PropertyGroupStatus
