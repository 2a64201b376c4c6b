# This project was developed with assistance from AI tools.
"""External collaborators: PDF rendering and approval email delivery.

The workflow only needs two capabilities, expressed as protocols so tests
and alternative transports can stand in. The default adapters call HTTP
services with ``httpx`` and keep rendered PDFs in the certificate store. Every
transport failure surfaces as ``CollaboratorError``.
"""

import logging
from datetime import UTC, datetime
from typing import Protocol

import httpx
from botocore.exceptions import BotoCoreError, ClientError

from resale_db.enums import FormType, NotificationType

from ..core.config import Settings
from ..schemas.snapshot import ApplicationSnapshot, PropertyGroupSnapshot
from .storage import CertificateStore
from .variant import is_settlement_application

logger = logging.getLogger(__name__)


class CollaboratorError(RuntimeError):
    """Raised when PDF generation or email delivery fails."""

    pass


class PdfGenerator(Protocol):
    async def generate(self, snapshot: ApplicationSnapshot, property_group_id: int | None) -> str:
        """Render the certificate and return the URL it can be fetched from."""
        ...


class EmailSender(Protocol):
    async def send_approval(self, snapshot: ApplicationSnapshot, property_group_id: int | None) -> None:
        """Deliver the approval email with the certificate attached or linked."""
        ...


def _form_data_for(
    snapshot: ApplicationSnapshot,
    group: PropertyGroupSnapshot | None,
) -> dict[str, dict | None]:
    """Certificate content keyed by form type.

    Settlement applications render from the settlement form (the group's own
    form per property). Otherwise the application renders its inspection and
    resale forms; a property renders its group data, plus the inspection
    form when it is the primary property.
    """
    if is_settlement_application(snapshot):
        form = snapshot.form_for_group(FormType.SETTLEMENT_FORM, group.id if group else None)
        return {FormType.SETTLEMENT_FORM.value: form.form_data if form else None}

    inspection = snapshot.form_for_group(FormType.INSPECTION_FORM, None)
    inspection_data = inspection.form_data if inspection else None
    if group is None:
        resale = snapshot.form_for_group(FormType.RESALE_CERTIFICATE, None)
        return {
            FormType.INSPECTION_FORM.value: inspection_data,
            FormType.RESALE_CERTIFICATE.value: resale.form_data if resale else None,
        }

    data: dict[str, dict | None] = {FormType.RESALE_CERTIFICATE.value: group.form_data}
    if group.is_primary:
        data[FormType.INSPECTION_FORM.value] = inspection_data
    return data


def _render_payload(snapshot: ApplicationSnapshot, property_group_id: int | None) -> dict:
    payload: dict[str, object] = {
        "application_id": snapshot.id,
        "application_type": snapshot.application_type,
        "property_address": snapshot.property_address,
        "property_name": snapshot.property_name,
        "property_group_id": property_group_id,
    }
    group = snapshot.property_group(property_group_id) if property_group_id is not None else None
    if group is not None:
        payload["property_name"] = group.property_name
        payload["property_location"] = group.property_location
    payload["form_data"] = _form_data_for(snapshot, group)
    return payload


class HttpPdfGenerator:
    """Renders through the PDF service, then stores the bytes and returns a presigned URL."""

    def __init__(self, url: str, store: CertificateStore, *, timeout: float = 60.0):
        self._url = url
        self._store = store
        self._timeout = timeout

    async def generate(self, snapshot: ApplicationSnapshot, property_group_id: int | None) -> str:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, json=_render_payload(snapshot, property_group_id))
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "PDF render failed for application %s (group=%s)",
                snapshot.id,
                property_group_id,
                exc_info=True,
            )
            raise CollaboratorError(f"PDF generation failed: {exc}") from exc

        try:
            return await self._store.store_certificate(
                response.content, snapshot.id, property_group_id, datetime.now(UTC)
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error(
                "Failed to store PDF for application %s (group=%s)",
                snapshot.id,
                property_group_id,
                exc_info=True,
            )
            raise CollaboratorError(f"PDF storage failed: {exc}") from exc


class HttpEmailSender:
    def __init__(self, url: str, *, timeout: float = 30.0):
        self._url = url
        self._timeout = timeout

    async def send_approval(self, snapshot: ApplicationSnapshot, property_group_id: int | None) -> None:
        payload = {
            **_render_payload(snapshot, property_group_id),
            "notification_type": NotificationType.APPLICATION_APPROVED.value,
        }
        if property_group_id is None:
            payload["pdf_url"] = snapshot.pdf_url
        else:
            group = snapshot.property_group(property_group_id)
            payload["pdf_url"] = group.pdf_url if group else None

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "Approval email failed for application %s (group=%s)",
                snapshot.id,
                property_group_id,
                exc_info=True,
            )
            raise CollaboratorError(f"Email delivery failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Module-level singletons
# ---------------------------------------------------------------------------

_pdf_generator: PdfGenerator | None = None
_email_sender: EmailSender | None = None


def init_collaborators(cfg: Settings, store: CertificateStore) -> None:
    """Initialise the default HTTP adapters (called once from app lifespan)."""
    global _pdf_generator, _email_sender  # noqa: PLW0603
    _pdf_generator = HttpPdfGenerator(
        cfg.PDF_SERVICE_URL,
        store,
        timeout=cfg.PDF_SERVICE_TIMEOUT,
    )
    _email_sender = HttpEmailSender(cfg.EMAIL_SERVICE_URL, timeout=cfg.EMAIL_SERVICE_TIMEOUT)
    logger.info("Collaborators initialised (pdf=%s, email=%s)", cfg.PDF_SERVICE_URL, cfg.EMAIL_SERVICE_URL)


def get_pdf_generator() -> PdfGenerator:
    if _pdf_generator is None:
        raise RuntimeError("PDF generator not initialised -- call init_collaborators() first")
    return _pdf_generator


def get_email_sender() -> EmailSender:
    if _email_sender is None:
        raise RuntimeError("Email sender not initialised -- call init_collaborators() first")
    return _email_sender
