# This project was developed with assistance from AI tools.
"""Immutable, fully-defaulted views of an application and its related rows.

Built once per request by ``services.snapshot.build_snapshot`` so the
workflow resolvers can assume total inputs: every collection is a tuple,
every status is a known enum member, every timestamp is UTC-aware or None.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from resale_db.enums import FormStatus, FormType, NotificationType, PropertyGroupStatus


class FormSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int | None = None
    form_type: FormType
    status: FormStatus = FormStatus.NOT_STARTED
    property_group_id: int | None = None
    completed_at: datetime | None = None
    updated_at: datetime | None = None
    form_data: dict | None = None


class NotificationSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    notification_type: str
    sent_at: datetime | None = None


class PropertyGroupSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    property_name: str | None = None
    property_location: str | None = None
    is_primary: bool = False
    status: PropertyGroupStatus = PropertyGroupStatus.PENDING
    pdf_status: str | None = None
    pdf_url: str | None = None
    pdf_completed_at: datetime | None = None
    email_status: str | None = None
    email_completed_at: datetime | None = None
    form_data: dict | None = None


class ApplicationSnapshot(BaseModel):
    """Everything the workflow engine reads about one application."""

    model_config = ConfigDict(frozen=True)

    id: int
    application_type: str | None = None
    submitter_type: str | None = None
    status: str | None = None
    package_type: str = "standard"
    property_address: str | None = None
    property_name: str | None = None
    is_multi_community: bool = False

    created_at: datetime | None = None
    updated_at: datetime | None = None
    submitted_at: datetime | None = None
    forms_updated_at: datetime | None = None

    inspection_form_completed_at: datetime | None = None
    resale_certificate_completed_at: datetime | None = None
    settlement_form_completed_at: datetime | None = None

    pdf_url: str | None = None
    pdf_generated_at: datetime | None = None
    pdf_completed_at: datetime | None = None
    email_completed_at: datetime | None = None

    lender_questionnaire_file_path: str | None = None
    lender_questionnaire_downloaded_at: datetime | None = None
    lender_questionnaire_completed_file_path: str | None = None
    lender_questionnaire_edited_file_path: str | None = None

    forms: tuple[FormSnapshot, ...] = ()
    notifications: tuple[NotificationSnapshot, ...] = ()
    property_groups: tuple[PropertyGroupSnapshot, ...] = ()

    def form(self, form_type: FormType) -> FormSnapshot | None:
        """First form of this type, preferring the application-level row."""
        matches = [f for f in self.forms if f.form_type == form_type]
        for f in matches:
            if f.property_group_id is None:
                return f
        return matches[0] if matches else None

    def form_for_group(self, form_type: FormType, property_group_id: int | None) -> FormSnapshot | None:
        """Form of this type bound to exactly this property group (None = application level)."""
        for f in self.forms:
            if f.form_type == form_type and f.property_group_id == property_group_id:
                return f
        return None

    @property
    def has_approval_notification(self) -> bool:
        return any(
            n.notification_type == NotificationType.APPLICATION_APPROVED.value
            for n in self.notifications
        )

    @property
    def sorted_property_groups(self) -> tuple[PropertyGroupSnapshot, ...]:
        """Primary group first, remaining groups by property name."""
        return tuple(
            sorted(
                self.property_groups,
                key=lambda g: (not g.is_primary, (g.property_name or "").lower(), g.id),
            )
        )

    def property_group(self, group_id: int) -> PropertyGroupSnapshot | None:
        for g in self.property_groups:
            if g.id == group_id:
                return g
        return None
