# This project was developed with assistance from AI tools.
"""Tests for application workflow REST endpoints."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from resale.services.aggregator import InvalidTransitionError
from resale.services.collaborators import CollaboratorError
from resale.services.gate import REASON_FORMS_REQUIRED
from resale.services.operations import OperationInProgressError
from tests.factories import (
    T0,
    completed_standard_forms,
    make_mock_application,
    make_mock_form,
    make_mock_group,
    make_mock_property,
)

PDF_URL = "https://files.example.com/100/certificate.pdf"


def _patch_service_fetch(app):
    return patch("resale.services.application.fetch_application", new=AsyncMock(return_value=app))


def _patch_operation_fetch(app):
    return patch("resale.services.operations.fetch_application", new=AsyncMock(return_value=app))


def _patch_status_fetch(app):
    return patch("resale.services.status.fetch_application", new=AsyncMock(return_value=app))


# ---------------------------------------------------------------------------
# GET /api/applications/
# ---------------------------------------------------------------------------


@pytest.fixture()
def _mock_listing():
    """Patch list_applications with one application per bucket."""
    applications = [
        make_mock_application(id=1),
        make_mock_application(id=2, forms=completed_standard_forms()),
        make_mock_application(
            id=3,
            forms=completed_standard_forms(),
            pdf_url=PDF_URL,
            pdf_generated_at=T0,
            pdf_completed_at=T0,
            email_completed_at=T0,
        ),
        make_mock_application(
            id=4,
            package_type="rush",
            submitted_at=datetime.now(UTC) - timedelta(days=30),
        ),
    ]
    with patch("resale.services.application.list_applications", new_callable=AsyncMock) as mock:
        mock.return_value = (applications, 12)
        yield mock


@pytest.mark.usefixtures("_mock_listing")
class TestListApplications:
    """GET /api/applications/"""

    def test_returns_summaries(self, client):
        resp = client.get("/api/applications/")
        assert resp.status_code == 200
        body = resp.json()
        assert [item["id"] for item in body["data"]] == [1, 2, 3, 4]
        assert body["data"][1]["step"]["label"] == "Generate PDF"
        assert body["data"][2]["bucket"] == "completed"
        assert body["data"][0]["property_name"] == "Lakeside HOA"

    def test_pagination_counts_unfiltered_rows(self, client):
        resp = client.get("/api/applications/?limit=4")
        body = resp.json()
        assert body["pagination"]["total"] == 12
        assert body["pagination"]["has_more"] is True

    def test_filter_by_bucket(self, client):
        resp = client.get("/api/applications/?bucket=completed")
        assert [item["id"] for item in resp.json()["data"]] == [3]

    def test_filter_by_urgency(self, client):
        resp = client.get("/api/applications/?urgent=true")
        assert [item["id"] for item in resp.json()["data"]] == [4]

    def test_invalid_limit(self, client):
        resp = client.get("/api/applications/?limit=0")
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# GET /api/applications/{id}/workflow
# ---------------------------------------------------------------------------


class TestGetWorkflow:
    def test_returns_status(self, client):
        app = make_mock_application(forms=completed_standard_forms())
        with _patch_status_fetch(app):
            resp = client.get("/api/applications/100/workflow")
        assert resp.status_code == 200
        body = resp.json()
        assert body["variant"] == "standard"
        assert body["step"] == {"step": 3, "label": "Generate PDF", "variant": "standard", "is_terminal": False}
        assert body["actions"]["generate_pdf"]["permitted"] is True
        assert body["actions"]["send_email"]["reason"] == "PDF must be generated first"

    def test_not_found_is_problem_details(self, client):
        with _patch_status_fetch(None):
            resp = client.get("/api/applications/999/workflow", headers={"X-Request-ID": "req-1"})
        assert resp.status_code == 404
        body = resp.json()
        assert body["status"] == 404
        assert body["title"] == "Not Found"
        assert body["detail"] == "Application not found"
        assert body["request_id"] == "req-1"
        assert body["instance"] == "/api/applications/999/workflow"

    def test_multi_community_lists_property_gates(self, client):
        app = make_mock_application(
            hoa_property=make_mock_property(is_multi_community=True),
            property_groups=[make_mock_group(id=1, is_primary=True), make_mock_group(id=2)],
        )
        with _patch_status_fetch(app):
            body = client.get("/api/applications/100/workflow").json()
        assert body["variant"] == "multi_community"
        assert body["progress"]["total_properties"] == 2
        assert [g["group_id"] for g in body["actions"]["property_groups"]] == [1, 2]


# ---------------------------------------------------------------------------
# POST /api/applications/{id}/tasks/{task}/complete
# ---------------------------------------------------------------------------


class TestCompleteTask:
    def test_marks_task_complete(self, client, mock_session):
        app = make_mock_application()
        with _patch_service_fetch(app):
            resp = client.post("/api/applications/100/tasks/email/complete")
        assert resp.status_code == 200
        assert resp.json()["tasks"]["email"] == "completed"
        mock_session.commit.assert_awaited_once()

    def test_unknown_task(self, client):
        resp = client.post("/api/applications/100/tasks/notarize/complete")
        assert resp.status_code == 422

    def test_already_complete(self, client):
        app = make_mock_application(email_completed_at=T0)
        with _patch_service_fetch(app):
            resp = client.post("/api/applications/100/tasks/email/complete")
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Task already marked complete"

    def test_not_found(self, client):
        with _patch_service_fetch(None):
            resp = client.post("/api/applications/999/tasks/email/complete")
        assert resp.status_code == 404

    def test_rejects_invalid_group_id(self, client):
        resp = client.post(
            "/api/applications/100/tasks/settlement_form/complete",
            json={"property_group_id": 0},
        )
        assert resp.status_code == 422
        assert resp.json()["title"] == "Unprocessable Entity"


# ---------------------------------------------------------------------------
# PATCH /api/applications/{id}/forms/{form_id}
# ---------------------------------------------------------------------------


class TestUpdateForm:
    def test_moves_form_forward(self, client):
        form = make_mock_form(id=1, status="in_progress")
        app = make_mock_application(forms=[form])
        with _patch_service_fetch(app):
            resp = client.patch("/api/applications/100/forms/1", json={"status": "completed"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "completed"
        assert body["form_type"] == "inspection_form"
        assert body["completed_at"] is not None

    def test_backward_move(self, client):
        form = make_mock_form(id=1, status="completed")
        with _patch_service_fetch(make_mock_application(forms=[form])):
            resp = client.patch("/api/applications/100/forms/1", json={"status": "not_started"})
        assert resp.status_code == 422

    def test_form_not_found(self, client):
        with _patch_service_fetch(make_mock_application()):
            resp = client.patch("/api/applications/100/forms/7", json={"status": "completed"})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Form not found"

    def test_invalid_status(self, client):
        resp = client.patch("/api/applications/100/forms/1", json={"status": "approved"})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# PDF and email operations
# ---------------------------------------------------------------------------


class TestOperations:
    def test_generate_pdf(self, client, pdf_generator):
        app = make_mock_application(forms=completed_standard_forms())
        with _patch_operation_fetch(app):
            resp = client.post("/api/applications/100/pdf")
        assert resp.status_code == 200
        body = resp.json()
        assert body["tasks"]["pdf"] == "completed"
        assert body["step"]["label"] == "Send Email"
        pdf_generator.generate.assert_awaited_once()

    def test_generate_pdf_gate_refusal(self, client):
        with _patch_operation_fetch(make_mock_application()):
            resp = client.post("/api/applications/100/pdf")
        assert resp.status_code == 422
        assert resp.json()["detail"] == REASON_FORMS_REQUIRED

    def test_generate_pdf_collaborator_failure(self, client, pdf_generator, mock_session):
        pdf_generator.generate.side_effect = CollaboratorError("PDF service unavailable")
        with _patch_operation_fetch(make_mock_application(forms=completed_standard_forms())):
            resp = client.post("/api/applications/100/pdf")
        assert resp.status_code == 502
        assert resp.json()["title"] == "Bad Gateway"
        mock_session.commit.assert_not_awaited()

    def test_generate_pdf_in_progress(self, client):
        with patch(
            "resale.routes.applications.generate_pdf",
            new=AsyncMock(side_effect=OperationInProgressError("pdf operation already in progress")),
        ):
            resp = client.post("/api/applications/100/pdf")
        assert resp.status_code == 409

    def test_generate_pdf_not_found(self, client):
        with _patch_operation_fetch(None):
            resp = client.post("/api/applications/999/pdf")
        assert resp.status_code == 404

    def test_send_email(self, client, email_sender):
        app = make_mock_application(
            forms=completed_standard_forms(),
            pdf_url=PDF_URL,
            pdf_generated_at=T0,
            pdf_completed_at=T0,
            forms_updated_at=T0,
        )
        with _patch_operation_fetch(app):
            resp = client.post("/api/applications/100/email")
        assert resp.status_code == 200
        body = resp.json()
        assert body["step"]["label"] == "Completed"
        assert body["bucket"] == "completed"
        email_sender.send_approval.assert_awaited_once()

    def test_property_group_pdf(self, client):
        app = make_mock_application(
            hoa_property=make_mock_property(is_multi_community=True),
            forms=[make_mock_form(form_type="inspection_form", status="completed")],
            property_groups=[
                make_mock_group(id=1, is_primary=True, status="completed"),
                make_mock_group(id=2),
            ],
        )
        with _patch_operation_fetch(app):
            resp = client.post("/api/applications/100/property-groups/1/pdf")
        assert resp.status_code == 200
        body = resp.json()
        assert body["progress"]["pdfs_generated"] == 1
        assert body["step"]["step"] == 3

    def test_property_group_email_requires_pdf(self, client):
        app = make_mock_application(
            hoa_property=make_mock_property(is_multi_community=True),
            property_groups=[make_mock_group(id=1, is_primary=True), make_mock_group(id=2)],
        )
        with _patch_operation_fetch(app):
            resp = client.post("/api/applications/100/property-groups/2/email")
        assert resp.status_code == 422
        assert resp.json()["detail"] == "PDF must be generated first"


# ---------------------------------------------------------------------------
# PATCH /api/applications/{id}/property-groups/{group_id}
# ---------------------------------------------------------------------------


class TestUpdatePropertyGroup:
    def test_transition(self, client):
        group = make_mock_group(id=2, status="in_progress")
        with patch("resale.services.application.update_property_group", new=AsyncMock(return_value=group)):
            resp = client.patch("/api/applications/100/property-groups/2", json={"status": "completed"})
        assert resp.status_code == 200
        assert resp.json()["id"] == 2

    def test_invalid_transition(self, client):
        with patch(
            "resale.services.application.update_property_group",
            new=AsyncMock(side_effect=InvalidTransitionError("Cannot transition from 'completed' to 'pending'")),
        ):
            resp = client.patch("/api/applications/100/property-groups/2", json={"status": "pending"})
        assert resp.status_code == 422

    def test_not_found(self, client):
        with patch("resale.services.application.update_property_group", new=AsyncMock(return_value=None)):
            resp = client.patch("/api/applications/100/property-groups/9", json={"status": "failed"})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Property group not found"
