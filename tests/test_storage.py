# This project was developed with assistance from AI tools.
"""Tests for the certificate PDF store."""

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from resale.core.config import Settings
from resale.services.storage import (
    PDF_CONTENT_TYPE,
    CertificateStore,
    certificate_filename,
    certificate_key,
)

GENERATED_AT = datetime.fromtimestamp(1700000000, tz=UTC)
PRESIGNED_URL = "https://s3.local/certificates/100/certificate-1700000000.pdf?X-Amz-Signature=abc"


def _client_error(code, operation="HeadBucket"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture()
def s3_client():
    client = MagicMock()
    client.generate_presigned_url.return_value = PRESIGNED_URL
    return client


def test_certificate_keys():
    assert certificate_key(100, None, GENERATED_AT) == "100/certificate-1700000000.pdf"
    assert certificate_key(100, 3, GENERATED_AT) == "100/groups/3/certificate-1700000000.pdf"


def test_certificate_filenames():
    assert certificate_filename(100, None) == "resale-certificate-100.pdf"
    assert certificate_filename(100, 3) == "resale-certificate-100-property-3.pdf"


class TestStoreCertificate:
    @pytest.mark.asyncio
    async def test_application_certificate(self, s3_client):
        store = CertificateStore(s3_client, "certificates", url_expires_in=600)
        url = await store.store_certificate(b"%PDF-1.7", 100, None, GENERATED_AT)

        assert url == PRESIGNED_URL
        put = s3_client.put_object.call_args.kwargs
        assert put["Bucket"] == "certificates"
        assert put["Key"] == "100/certificate-1700000000.pdf"
        assert put["Body"] == b"%PDF-1.7"
        assert put["ContentType"] == PDF_CONTENT_TYPE
        assert put["ContentDisposition"] == 'inline; filename="resale-certificate-100.pdf"'
        assert put["Metadata"] == {"application-id": "100"}
        s3_client.generate_presigned_url.assert_called_once_with(
            ClientMethod="get_object",
            Params={"Bucket": "certificates", "Key": "100/certificate-1700000000.pdf"},
            ExpiresIn=600,
        )

    @pytest.mark.asyncio
    async def test_property_certificate(self, s3_client):
        store = CertificateStore(s3_client, "certificates")
        await store.store_certificate(b"%PDF-1.7", 100, 3, GENERATED_AT)

        put = s3_client.put_object.call_args.kwargs
        assert put["Key"] == "100/groups/3/certificate-1700000000.pdf"
        assert put["Metadata"] == {"application-id": "100", "property-group-id": "3"}

    @pytest.mark.asyncio
    async def test_upload_failure_skips_presigning(self, s3_client):
        s3_client.put_object.side_effect = _client_error("500", "PutObject")
        store = CertificateStore(s3_client, "certificates")
        with pytest.raises(ClientError):
            await store.store_certificate(b"%PDF-1.7", 100, None, GENERATED_AT)
        s3_client.generate_presigned_url.assert_not_called()


class TestEnsureBucket:
    def test_existing_bucket_left_alone(self, s3_client):
        CertificateStore(s3_client, "certificates").ensure_bucket()
        s3_client.create_bucket.assert_not_called()

    def test_missing_bucket_created(self, s3_client):
        s3_client.head_bucket.side_effect = _client_error("404")
        CertificateStore(s3_client, "certificates").ensure_bucket()
        s3_client.create_bucket.assert_called_once_with(Bucket="certificates")

    def test_access_denied_propagates(self, s3_client):
        s3_client.head_bucket.side_effect = _client_error("403")
        with pytest.raises(ClientError):
            CertificateStore(s3_client, "certificates").ensure_bucket()
        s3_client.create_bucket.assert_not_called()


def test_from_settings(s3_client):
    cfg = Settings(S3_BUCKET="resale-pdfs", S3_ENDPOINT="http://minio:9000", PDF_URL_EXPIRES_IN=900)
    with patch("resale.services.storage.boto3.client", return_value=s3_client) as mock_client:
        store = CertificateStore.from_settings(cfg)

    assert mock_client.call_args.args == ("s3",)
    assert mock_client.call_args.kwargs["endpoint_url"] == "http://minio:9000"
    s3_client.head_bucket.assert_called_once_with(Bucket="resale-pdfs")
    assert store._bucket == "resale-pdfs"
    assert store._url_expires_in == 900
