# This project was developed with assistance from AI tools.
"""Shared fixtures: a TestClient with the database, collaborators and coordinator overridden."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from resale.main import app
from resale.services.collaborators import get_email_sender, get_pdf_generator
from resale.services.operations import OperationCoordinator, get_coordinator
from resale_db import get_db

PDF_URL = "https://files.example.com/100/certificate.pdf"


@pytest.fixture()
def mock_session():
    return AsyncMock()


@pytest.fixture()
def pdf_generator():
    generator = MagicMock()
    generator.generate = AsyncMock(return_value=PDF_URL)
    return generator


@pytest.fixture()
def email_sender():
    sender = MagicMock()
    sender.send_approval = AsyncMock(return_value=None)
    return sender


@pytest.fixture()
def coordinator():
    return OperationCoordinator()


@pytest.fixture()
def client(mock_session, pdf_generator, email_sender, coordinator):
    """TestClient without lifespan (no storage or HTTP collaborators are created)."""

    async def _get_db():
        yield mock_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_pdf_generator] = lambda: pdf_generator
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    yield TestClient(app)
    app.dependency_overrides.clear()
