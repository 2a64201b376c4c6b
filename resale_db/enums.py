# This project was developed with assistance from AI tools.
"""
Domain enums for the HOA resale certificate lifecycle.

Shared domain types used by both SQLAlchemy models (resale_db package)
and Pydantic schemas (resale package).
"""

import enum


class ApplicationType(str, enum.Enum):
    STANDARD = "standard"
    SINGLE_PROPERTY = "single_property"
    SETTLEMENT_VA = "settlement_va"
    SETTLEMENT_NC = "settlement_nc"
    MULTI_COMMUNITY = "multi_community"
    LENDER_QUESTIONNAIRE = "lender_questionnaire"
    PUBLIC_OFFERING = "public_offering"

    @property
    def is_settlement(self) -> bool:
        return self.value.startswith("settlement")


class SubmitterType(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"
    REALTOR = "realtor"
    BUILDER = "builder"
    ADMIN = "admin"
    SETTLEMENT = "settlement"
    LENDER_QUESTIONNAIRE = "lender_questionnaire"


class ApplicationStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PackageType(str, enum.Enum):
    STANDARD = "standard"
    RUSH = "rush"


class FormType(str, enum.Enum):
    INSPECTION_FORM = "inspection_form"
    RESALE_CERTIFICATE = "resale_certificate"
    SETTLEMENT_FORM = "settlement_form"


class FormStatus(str, enum.Enum):
    NOT_CREATED = "not_created"
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    def rank(self) -> int:
        """Position in the forward-only form lifecycle."""
        return _FORM_STATUS_ORDER.index(self)

    @classmethod
    def untouched(cls) -> frozenset["FormStatus"]:
        """Statuses meaning nobody has started filling the form."""
        return frozenset({cls.NOT_CREATED, cls.NOT_STARTED})


_FORM_STATUS_ORDER = [
    FormStatus.NOT_CREATED,
    FormStatus.NOT_STARTED,
    FormStatus.IN_PROGRESS,
    FormStatus.COMPLETED,
]


class NotificationType(str, enum.Enum):
    APPLICATION_SUBMITTED = "application_submitted"
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    DOCUMENT_EXPIRING = "document_expiring"


class PropertyGroupStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def terminal_statuses(cls) -> frozenset["PropertyGroupStatus"]:
        """Statuses a property group never leaves."""
        return frozenset({cls.COMPLETED, cls.FAILED})

    @classmethod
    def valid_transitions(cls) -> dict["PropertyGroupStatus", frozenset["PropertyGroupStatus"]]:
        """Allowed property group transitions. ``failed`` is reachable from any non-terminal state."""
        return {
            cls.PENDING: frozenset({cls.IN_PROGRESS, cls.FAILED}),
            cls.IN_PROGRESS: frozenset({cls.COMPLETED, cls.FAILED}),
            cls.COMPLETED: frozenset(),
            cls.FAILED: frozenset(),
        }
