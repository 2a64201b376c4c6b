# This project was developed with assistance from AI tools.
"""Application snapshot normalization.

Single pass that turns a loaded ORM ``Application`` (with forms,
notifications, property groups and property) into an immutable
``ApplicationSnapshot``. Missing associations become empty tuples,
unparsable timestamps become None, unknown statuses fall back to their
"not started" member. Nothing here raises on bad data.
"""

import enum
import logging
from datetime import UTC, date, datetime, time

from resale_db.enums import FormStatus, FormType, PropertyGroupStatus

from ..schemas.snapshot import (
    ApplicationSnapshot,
    FormSnapshot,
    NotificationSnapshot,
    PropertyGroupSnapshot,
)

logger = logging.getLogger(__name__)

# Formats tried after ISO-8601 parsing fails
_TIMESTAMP_FORMATS = [
    "%Y-%m-%d %H:%M:%S",  # 2024-01-02 10:30:00
    "%Y-%m-%dT%H:%M:%S.%f%z",  # 2024-01-02T10:30:00.123+0000
    "%m/%d/%Y %H:%M",  # 01/02/2024 10:30
    "%m/%d/%Y",  # 01/02/2024
    "%B %d, %Y",  # January 2, 2024
]

_APPLICATION_TIMESTAMPS = (
    "created_at",
    "updated_at",
    "submitted_at",
    "forms_updated_at",
    "inspection_form_completed_at",
    "resale_certificate_completed_at",
    "settlement_form_completed_at",
    "pdf_generated_at",
    "pdf_completed_at",
    "email_completed_at",
    "lender_questionnaire_downloaded_at",
)

_APPLICATION_STRINGS = (
    "pdf_url",
    "property_address",
    "lender_questionnaire_file_path",
    "lender_questionnaire_completed_file_path",
    "lender_questionnaire_edited_file_path",
)


def _ensure_tz(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware (UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def coerce_timestamp(value) -> datetime | None:
    """Coerce a stored timestamp into an aware datetime, or None if unusable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _ensure_tz(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        try:
            return _ensure_tz(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
        for fmt in _TIMESTAMP_FORMATS:
            try:
                return _ensure_tz(datetime.strptime(text, fmt))
            except ValueError:
                continue
    logger.warning("Could not parse timestamp %r, treating as missing", value)
    return None


def _enum_value(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return value.value
    return str(value)


def _coerce_enum(enum_cls, value, default):
    raw = _enum_value(value)
    if raw is None:
        return default
    try:
        return enum_cls(raw)
    except ValueError:
        logger.warning("Unknown %s %r, using %s", enum_cls.__name__, raw, default.value)
        return default


def _optional_str(value) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _form_data(value) -> dict | None:
    """JSON form payloads are objects; anything else is treated as absent."""
    return dict(value) if isinstance(value, dict) else None


def _snapshot_form(form) -> FormSnapshot | None:
    raw_type = _enum_value(getattr(form, "form_type", None))
    try:
        form_type = FormType(raw_type)
    except ValueError:
        logger.warning("Skipping form %s with unknown form_type %r", getattr(form, "id", None), raw_type)
        return None
    return FormSnapshot(
        id=getattr(form, "id", None),
        form_type=form_type,
        status=_coerce_enum(FormStatus, getattr(form, "status", None), FormStatus.NOT_STARTED),
        property_group_id=getattr(form, "property_group_id", None),
        completed_at=coerce_timestamp(getattr(form, "completed_at", None)),
        updated_at=coerce_timestamp(getattr(form, "updated_at", None)),
        form_data=_form_data(getattr(form, "form_data", None)),
    )


def _snapshot_notification(notification) -> NotificationSnapshot:
    return NotificationSnapshot(
        notification_type=_enum_value(getattr(notification, "notification_type", None)) or "",
        sent_at=coerce_timestamp(getattr(notification, "sent_at", None)),
    )


def _snapshot_group(group) -> PropertyGroupSnapshot:
    return PropertyGroupSnapshot(
        id=group.id,
        property_name=_optional_str(getattr(group, "property_name", None)),
        property_location=_optional_str(getattr(group, "property_location", None)),
        is_primary=bool(getattr(group, "is_primary", False)),
        status=_coerce_enum(
            PropertyGroupStatus, getattr(group, "status", None), PropertyGroupStatus.PENDING
        ),
        pdf_status=_enum_value(getattr(group, "pdf_status", None)),
        pdf_url=_optional_str(getattr(group, "pdf_url", None)),
        pdf_completed_at=coerce_timestamp(getattr(group, "pdf_completed_at", None)),
        email_status=_enum_value(getattr(group, "email_status", None)),
        email_completed_at=coerce_timestamp(getattr(group, "email_completed_at", None)),
        form_data=_form_data(getattr(group, "form_data", None)),
    )


def build_snapshot(application) -> ApplicationSnapshot:
    """Normalize a loaded application into an ``ApplicationSnapshot``."""
    hoa_property = getattr(application, "hoa_property", None)

    forms = tuple(
        f for f in (_snapshot_form(form) for form in getattr(application, "forms", None) or []) if f
    )
    notifications = tuple(
        _snapshot_notification(n) for n in getattr(application, "notifications", None) or []
    )
    groups = tuple(_snapshot_group(g) for g in getattr(application, "property_groups", None) or [])

    fields = {name: coerce_timestamp(getattr(application, name, None)) for name in _APPLICATION_TIMESTAMPS}
    fields.update(
        {name: _optional_str(getattr(application, name, None)) for name in _APPLICATION_STRINGS}
    )

    return ApplicationSnapshot(
        id=application.id,
        application_type=_enum_value(getattr(application, "application_type", None)),
        submitter_type=_enum_value(getattr(application, "submitter_type", None)),
        status=_enum_value(getattr(application, "status", None)),
        package_type=_enum_value(getattr(application, "package_type", None)) or "standard",
        property_name=_optional_str(getattr(hoa_property, "name", None)) if hoa_property else None,
        is_multi_community=bool(getattr(hoa_property, "is_multi_community", False))
        if hoa_property
        else False,
        forms=forms,
        notifications=notifications,
        property_groups=groups,
        **fields,
    )
