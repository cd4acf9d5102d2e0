from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from docvault.config import AwsSettings
from docvault.services.errors import ErrorKind, StorageError
from docvault.services.storage import (
    S3ObjectStore,
    UnconfiguredObjectStore,
    build_object_store,
)


def test_put_encrypts_and_keeps_content_type(object_store, mock_s3) -> None:
    object_store.put("acme-01/1_report.pdf", b"%PDF-1.7\n...", "application/pdf")

    head = mock_s3.head_object(Bucket=object_store.bucket, Key="acme-01/1_report.pdf")
    assert head["ServerSideEncryption"] == "AES256"
    assert head["ContentType"] == "application/pdf"
    body = mock_s3.get_object(Bucket=object_store.bucket, Key="acme-01/1_report.pdf")["Body"].read()
    assert body == b"%PDF-1.7\n..."


def test_exists_reports_presence(object_store) -> None:
    assert object_store.exists("acme-01/1_missing.pdf") is False
    object_store.put("acme-01/1_present.pdf", b"data", "application/pdf")
    assert object_store.exists("acme-01/1_present.pdf") is True


def test_read_capability_is_signed_and_expires(object_store) -> None:
    object_store.put("acme-01/1700000000000_report.pdf", b"data", "application/pdf")

    url = object_store.issue_read_capability("acme-01/1700000000000_report.pdf", 300)

    assert object_store.bucket in url
    assert "1700000000000_report.pdf" in url
    assert "X-Amz-Expires=300" in url
    assert "X-Amz-Signature=" in url


def test_read_capability_for_missing_object_is_an_error(object_store) -> None:
    with pytest.raises(StorageError) as excinfo:
        object_store.issue_read_capability("acme-01/nothing-here.pdf", 300)
    assert excinfo.value.kind is ErrorKind.RESOURCE_NOT_FOUND


def test_delete_removes_object_and_tolerates_missing_keys(object_store) -> None:
    object_store.put("acme-01/1_report.pdf", b"data", "application/pdf")
    object_store.delete("acme-01/1_report.pdf")
    assert object_store.exists("acme-01/1_report.pdf") is False

    object_store.delete("acme-01/1_report.pdf")


def test_put_into_missing_bucket_is_wrapped(mock_s3) -> None:
    store = S3ObjectStore(bucket="no-such-bucket", access_key_id="testing", secret_access_key="testing")
    with pytest.raises(StorageError) as excinfo:
        store.put("acme-01/1_report.pdf", b"data", "application/pdf")
    assert excinfo.value.kind is ErrorKind.STORAGE_OPERATION_FAILED
    assert isinstance(excinfo.value.__cause__, ClientError)


class _ForbiddenClient:
    def head_object(self, **kwargs):
        raise ClientError({"Error": {"Code": "403", "Message": "Forbidden"}}, "HeadObject")


def test_exists_propagates_errors_other_than_not_found() -> None:
    store = S3ObjectStore(bucket="locked", client=_ForbiddenClient())
    with pytest.raises(StorageError) as excinfo:
        store.exists("acme-01/1_report.pdf")
    assert excinfo.value.kind is ErrorKind.STORAGE_OPERATION_FAILED


def test_unconfigured_store_fails_every_mutation_the_same_way() -> None:
    store = UnconfiguredObjectStore()
    assert store.is_configured is False
    assert store.bucket is None
    assert store.exists("acme-01/1_report.pdf") is False

    messages = []
    for call in (
        lambda: store.put("k", b"", "application/pdf"),
        lambda: store.issue_read_capability("k", 300),
        lambda: store.delete("k"),
    ):
        with pytest.raises(StorageError) as excinfo:
            call()
        assert excinfo.value.kind is ErrorKind.STORAGE_NOT_CONFIGURED
        messages.append(excinfo.value.message)
    assert len(set(messages)) == 1


def test_build_object_store_without_credentials_is_unconfigured() -> None:
    assert isinstance(build_object_store(AwsSettings()), UnconfiguredObjectStore)
    assert isinstance(build_object_store(AwsSettings(s3_bucket="docs")), UnconfiguredObjectStore)


def test_build_object_store_with_credentials(mock_s3) -> None:
    store = build_object_store(
        AwsSettings(s3_bucket="test-docvault-bucket", access_key_id="testing", secret_access_key="testing")
    )
    assert isinstance(store, S3ObjectStore)
    assert store.is_configured is True
    assert store.bucket == "test-docvault-bucket"
