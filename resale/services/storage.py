# This project was developed with assistance from AI tools.
"""Certificate PDF store backed by an S3-compatible bucket.

Rendered certificates are written once under a timestamped key and never
overwritten, so a regenerated PDF leaves the previous one reachable. The
URL saved on the application is a presigned GET link to that object.
"""

import asyncio
import logging
from datetime import datetime
from functools import partial

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from ..core.config import Settings

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"

# head_bucket reports a missing bucket with a bare status code
_MISSING_BUCKET_CODES = frozenset({"404", "NoSuchBucket", "NotFound"})


def certificate_filename(application_id: int, property_group_id: int | None) -> str:
    """Download name offered to whoever opens the certificate link."""
    if property_group_id is None:
        return f"resale-certificate-{application_id}.pdf"
    return f"resale-certificate-{application_id}-property-{property_group_id}.pdf"


def certificate_key(
    application_id: int,
    property_group_id: int | None,
    generated_at: datetime,
) -> str:
    """Object key for one rendering of a certificate.

    ``{application_id}/certificate-{stamp}.pdf`` at application level and
    ``{application_id}/groups/{group_id}/certificate-{stamp}.pdf`` per
    property, where ``stamp`` is the generation time in UTC seconds.
    """
    stamp = int(generated_at.timestamp())
    if property_group_id is None:
        return f"{application_id}/certificate-{stamp}.pdf"
    return f"{application_id}/groups/{property_group_id}/certificate-{stamp}.pdf"


class CertificateStore:
    """Writes certificate PDFs and hands out presigned links to them.

    boto3 is synchronous, so every client call runs in the default executor.
    """

    def __init__(self, client, bucket: str, *, url_expires_in: int = 3600):
        self._client = client
        self._bucket = bucket
        self._url_expires_in = url_expires_in

    @classmethod
    def from_settings(cls, cfg: Settings) -> "CertificateStore":
        client = boto3.client(
            "s3",
            endpoint_url=cfg.S3_ENDPOINT,
            aws_access_key_id=cfg.S3_ACCESS_KEY,
            aws_secret_access_key=cfg.S3_SECRET_KEY,
            region_name=cfg.S3_REGION,
            config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
        )
        store = cls(client, cfg.S3_BUCKET, url_expires_in=cfg.PDF_URL_EXPIRES_IN)
        store.ensure_bucket()
        return store

    def ensure_bucket(self) -> None:
        """Create the certificate bucket when it is missing; other errors propagate."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") not in _MISSING_BUCKET_CODES:
                raise
            logger.info("Creating certificate bucket %s", self._bucket)
            self._client.create_bucket(Bucket=self._bucket)

    async def _run(self, method, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(method, **kwargs))

    async def store_certificate(
        self,
        pdf: bytes,
        application_id: int,
        property_group_id: int | None,
        generated_at: datetime,
    ) -> str:
        """Upload a rendered certificate and return a presigned link to it.

        Raises botocore's ``ClientError`` / ``BotoCoreError`` on failure.
        """
        key = certificate_key(application_id, property_group_id, generated_at)
        metadata = {"application-id": str(application_id)}
        if property_group_id is not None:
            metadata["property-group-id"] = str(property_group_id)

        await self._run(
            self._client.put_object,
            Bucket=self._bucket,
            Key=key,
            Body=pdf,
            ContentType=PDF_CONTENT_TYPE,
            ContentDisposition=(
                f'inline; filename="{certificate_filename(application_id, property_group_id)}"'
            ),
            Metadata=metadata,
        )
        url: str = await self._run(
            self._client.generate_presigned_url,
            ClientMethod="get_object",
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=self._url_expires_in,
        )
        logger.info("Stored certificate %s (%d bytes)", key, len(pdf))
        return url

