# This project was developed with assistance from AI tools.
"""Tests for action gating."""

from datetime import timedelta

import pytest

from resale.schemas.workflow import TaskStatus, TaskStatuses, Variant, VariantResolution
from resale.services.gate import (
    EMAIL,
    PDF,
    REASON_ALREADY_COMPLETE,
    REASON_FORMS_REQUIRED,
    REASON_GENERATING,
    REASON_INSPECTION_REQUIRED,
    REASON_PDF_REQUIRED,
    REASON_PDF_STALE,
    REASON_PER_PROPERTY,
    REASON_PROPERTY_FORMS_REQUIRED,
    REASON_SENDING,
    REASON_SETTLEMENT_FORM_REQUIRED,
    REASON_UPLOAD_REQUIRED,
    gate_actions,
    gate_generate_pdf,
    gate_send_email,
)
from resale.services.tasks import resolve_task_statuses
from resale.services.variant import resolve_variant
from tests.factories import (
    T0,
    make_mock_form,
    make_mock_group,
    make_mock_property,
    make_snapshot,
)

PDF_URL = "https://files.example.com/100/certificate.pdf"

STANDARD = VariantResolution(variant=Variant.STANDARD)
SETTLEMENT = VariantResolution(variant=Variant.SETTLEMENT, is_settlement=True)

_FORM_STATES = [
    TaskStatus.NOT_CREATED,
    TaskStatus.NOT_STARTED,
    TaskStatus.IN_PROGRESS,
    TaskStatus.COMPLETED,
]


def _gate(in_flight=frozenset(), **kwargs):
    snapshot = make_snapshot(**kwargs)
    resolution = resolve_variant(snapshot)
    tasks = resolve_task_statuses(snapshot, resolution)
    return gate_actions(snapshot, resolution, tasks, in_flight=in_flight)


# ---------------------------------------------------------------------------
# Generate PDF
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("inspection", _FORM_STATES)
@pytest.mark.parametrize("resale", _FORM_STATES)
def test_generate_requires_both_forms(inspection, resale):
    """No partial enable: one completed form is never enough."""
    decision = gate_generate_pdf(STANDARD, TaskStatuses(inspection=inspection, resale=resale))
    both = inspection == TaskStatus.COMPLETED and resale == TaskStatus.COMPLETED
    assert decision.permitted is both
    assert decision.reason == (None if both else REASON_FORMS_REQUIRED)


def test_generate_label_switches_to_regenerate():
    tasks = TaskStatuses(
        inspection=TaskStatus.COMPLETED,
        resale=TaskStatus.COMPLETED,
        pdf=TaskStatus.UPDATE_NEEDED,
    )
    decision = gate_generate_pdf(STANDARD, tasks)
    assert decision.permitted is True
    assert decision.label == "Regenerate PDF"
    assert gate_generate_pdf(STANDARD, tasks.model_copy(update={"pdf": TaskStatus.NOT_STARTED})).label == (
        "Generate PDF"
    )


def test_settlement_generate_requires_settlement_form():
    decision = gate_generate_pdf(SETTLEMENT, TaskStatuses(settlement=TaskStatus.IN_PROGRESS))
    assert decision.permitted is False
    assert decision.reason == REASON_SETTLEMENT_FORM_REQUIRED
    assert gate_generate_pdf(SETTLEMENT, TaskStatuses(settlement=TaskStatus.COMPLETED)).permitted is True


def test_generate_disabled_while_in_flight():
    tasks = TaskStatuses(inspection=TaskStatus.COMPLETED, resale=TaskStatus.COMPLETED)
    decision = gate_generate_pdf(STANDARD, tasks, frozenset({(PDF, None)}))
    assert decision.permitted is False
    assert decision.reason == REASON_GENERATING


# ---------------------------------------------------------------------------
# Send email
# ---------------------------------------------------------------------------


def test_send_email_requires_pdf():
    decision = gate_send_email(STANDARD, TaskStatuses(pdf=TaskStatus.NOT_STARTED))
    assert decision.permitted is False
    assert decision.reason == REASON_PDF_REQUIRED


def test_send_email_blocked_by_stale_pdf():
    decision = gate_send_email(STANDARD, TaskStatuses(pdf=TaskStatus.UPDATE_NEEDED))
    assert decision.permitted is False
    assert decision.reason == REASON_PDF_STALE


def test_send_email_permitted_with_completed_pdf():
    assert gate_send_email(STANDARD, TaskStatuses(pdf=TaskStatus.COMPLETED)).permitted is True


def test_send_email_disabled_while_sending():
    decision = gate_send_email(STANDARD, TaskStatuses(pdf=TaskStatus.COMPLETED), frozenset({(EMAIL, None)}))
    assert decision.reason == REASON_SENDING


def test_lender_questionnaire_email_needs_upload():
    lq = VariantResolution(variant=Variant.LENDER_QUESTIONNAIRE)
    decision = gate_send_email(lq, TaskStatuses(upload=TaskStatus.NOT_STARTED))
    assert decision.reason == REASON_UPLOAD_REQUIRED
    assert gate_send_email(lq, TaskStatuses(upload=TaskStatus.COMPLETED)).permitted is True
    assert gate_generate_pdf(lq, TaskStatuses()).permitted is False


# ---------------------------------------------------------------------------
# Mark complete
# ---------------------------------------------------------------------------


def test_mark_complete_standard_tasks():
    actions = _gate(inspection_form_completed_at=T0)
    assert set(actions.mark_complete) == {"inspection_form", "resale_certificate", "pdf", "email"}
    assert actions.mark_complete["inspection_form"].permitted is False
    assert actions.mark_complete["inspection_form"].reason == REASON_ALREADY_COMPLETE
    assert actions.mark_complete["resale_certificate"].permitted is True


def test_mark_complete_settlement_tasks():
    actions = _gate(application_type="settlement_va")
    assert set(actions.mark_complete) == {"settlement_form", "pdf", "email"}


def test_reasons_are_deterministic():
    kwargs = dict(forms=[make_mock_form(form_type="inspection_form", status="completed")])
    assert _gate(**kwargs) == _gate(**kwargs)


# ---------------------------------------------------------------------------
# Multi-community
# ---------------------------------------------------------------------------


def _multi(**kwargs):
    kwargs.setdefault("hoa_property", make_mock_property(is_multi_community=True))
    return _gate(**kwargs)


def test_application_actions_point_to_properties():
    actions = _multi(property_groups=[make_mock_group(id=1, is_primary=True), make_mock_group(id=2)])
    assert actions.generate_pdf.reason == REASON_PER_PROPERTY
    assert actions.send_email.reason == REASON_PER_PROPERTY
    assert [g.group_id for g in actions.property_groups] == [1, 2]


def test_primary_property_requires_inspection_form():
    actions = _multi(
        forms=[make_mock_form(form_type="inspection_form", status="in_progress")],
        property_groups=[
            make_mock_group(id=1, is_primary=True, status="completed"),
            make_mock_group(id=2, status="completed"),
        ],
    )
    primary, secondary = actions.property_groups
    assert primary.generate_pdf.reason == REASON_INSPECTION_REQUIRED
    assert secondary.generate_pdf.permitted is True


def test_secondary_property_requires_group_completion():
    actions = _multi(
        forms=[make_mock_form(form_type="inspection_form", status="completed")],
        property_groups=[
            make_mock_group(id=1, is_primary=True, status="completed"),
            make_mock_group(id=2, status="in_progress"),
        ],
    )
    primary, secondary = actions.property_groups
    assert primary.generate_pdf.permitted is True
    assert secondary.generate_pdf.reason == REASON_PROPERTY_FORMS_REQUIRED


def test_property_email_requires_group_pdf():
    actions = _multi(
        property_groups=[
            make_mock_group(id=1, is_primary=True, pdf_url=PDF_URL),
            make_mock_group(id=2, pdf_status="completed"),
            make_mock_group(id=3),
        ],
    )
    assert [g.send_email.permitted for g in actions.property_groups] == [True, True, False]
    assert actions.property_groups[2].send_email.reason == REASON_PDF_REQUIRED


def test_property_in_flight_only_affects_that_group():
    actions = _multi(
        forms=[make_mock_form(form_type="inspection_form", status="completed")],
        property_groups=[
            make_mock_group(id=1, is_primary=True, status="completed"),
            make_mock_group(id=2, status="completed"),
        ],
        in_flight=frozenset({(PDF, 2)}),
    )
    primary, secondary = actions.property_groups
    assert primary.generate_pdf.permitted is True
    assert secondary.generate_pdf.reason == REASON_GENERATING


def test_settlement_property_uses_group_settlement_form():
    actions = _multi(
        application_type="settlement_va",
        property_groups=[make_mock_group(id=1, is_primary=True), make_mock_group(id=2)],
        forms=[
            make_mock_form(
                id=5,
                form_type="settlement_form",
                status="completed",
                property_group_id=2,
                updated_at=T0 - timedelta(days=1),
            )
        ],
    )
    first, second = actions.property_groups
    assert first.generate_pdf.reason == REASON_SETTLEMENT_FORM_REQUIRED
    assert second.generate_pdf.permitted is True
