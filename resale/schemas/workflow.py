# This project was developed with assistance from AI tools.
"""Workflow engine schemas: variants, task statuses, steps, and action gates."""

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from resale_db.enums import PropertyGroupStatus


class Variant(str, enum.Enum):
    """Which ladder an application is tracked against."""

    STANDARD = "standard"
    SETTLEMENT = "settlement"
    MULTI_COMMUNITY = "multi_community"
    LENDER_QUESTIONNAIRE = "lender_questionnaire"


class TaskStatus(str, enum.Enum):
    NOT_CREATED = "not_created"
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    UPDATE_NEEDED = "update_needed"
    # Transient, request-scoped only; never derived from storage.
    GENERATING = "generating"
    SENDING = "sending"


class WorkflowBucket(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class VariantResolution(BaseModel):
    """Result of classifying an application once, threaded through every resolver."""

    model_config = ConfigDict(frozen=True)

    variant: Variant
    is_settlement: bool = False
    classification_error: str | None = None


class TaskStatuses(BaseModel):
    """Per-task states for one application. Tasks outside the variant stay None."""

    model_config = ConfigDict(frozen=True)

    inspection: TaskStatus | None = None
    resale: TaskStatus | None = None
    settlement: TaskStatus | None = None
    download: TaskStatus | None = None
    upload: TaskStatus | None = None
    pdf: TaskStatus | None = None
    email: TaskStatus | None = None


class WorkflowStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: int
    label: str
    variant: Variant
    is_terminal: bool = False


class PropertyGroupProgress(BaseModel):
    """Rollup of one property group inside a multi-community application."""

    model_config = ConfigDict(frozen=True)

    group_id: int
    property_name: str | None = None
    property_location: str | None = None
    is_primary: bool
    status: PropertyGroupStatus
    forms_completed: bool
    forms_in_progress: bool
    pdf_generated: bool
    email_sent: bool
    pdf: TaskStatus
    email: TaskStatus


class GroupProgress(BaseModel):
    """Application-level counters over all property groups."""

    model_config = ConfigDict(frozen=True)

    total_properties: int
    completed_properties: int
    pdfs_generated: int
    emails_sent: int
    forms_in_progress: int
    groups: list[PropertyGroupProgress] = Field(default_factory=list)


class ActionDecision(BaseModel):
    """Whether a user-triggerable action is permitted right now, and why not."""

    model_config = ConfigDict(frozen=True)

    permitted: bool
    label: str
    reason: str | None = None


class PropertyActionGate(BaseModel):
    model_config = ConfigDict(frozen=True)

    group_id: int
    generate_pdf: ActionDecision
    send_email: ActionDecision


class ActionGate(BaseModel):
    model_config = ConfigDict(frozen=True)

    generate_pdf: ActionDecision
    send_email: ActionDecision
    mark_complete: dict[str, ActionDecision] = Field(default_factory=dict)
    property_groups: list[PropertyActionGate] = Field(default_factory=list)


class WorkflowStatusResponse(BaseModel):
    """Aggregated workflow status for one application."""

    application_id: int
    variant: Variant
    classification_error: str | None = None
    step: WorkflowStep
    bucket: WorkflowBucket
    tasks: TaskStatuses
    actions: ActionGate
    progress: GroupProgress | None = None
    deadline: datetime | None = None
    is_urgent: bool = False
