from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from ..config import AwsSettings
from .aws import boto3_client
from .errors import ErrorKind, StorageError

logger = logging.getLogger(__name__)

SERVER_SIDE_ENCRYPTION = "AES256"

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class ObjectStore(Protocol):
    """Key/value blob storage used for document bytes."""

    @property
    def bucket(self) -> Optional[str]: ...

    @property
    def is_configured(self) -> bool: ...

    def put(self, key: str, data: bytes, content_type: str) -> None: ...

    def issue_read_capability(self, key: str, ttl_seconds: int) -> str: ...

    def delete(self, key: str) -> None: ...

    def exists(self, key: str) -> bool: ...


def _is_not_found(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


class S3ObjectStore:
    """S3-compatible store. Every object is written with server-side encryption."""

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self._bucket = bucket
        self.region = region
        self._client = client or boto3_client(
            "s3",
            AwsSettings(
                access_key_id=access_key_id,
                secret_access_key=secret_access_key,
                region=region,
                s3_bucket=bucket,
                s3_endpoint_url=endpoint_url,
            ),
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def is_configured(self) -> bool:
        return True

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ServerSideEncryption=SERVER_SIDE_ENCRYPTION,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("s3_put_failed bucket=%s key=%s error=%s", self._bucket, key, exc)
            raise StorageError(ErrorKind.STORAGE_OPERATION_FAILED, f"Failed to upload file to storage: {exc}") from exc

    def issue_read_capability(self, key: str, ttl_seconds: int) -> str:
        if not self.exists(key):
            raise StorageError(ErrorKind.RESOURCE_NOT_FOUND, f"Stored object not found: {key}")
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=int(ttl_seconds),
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(
                ErrorKind.STORAGE_OPERATION_FAILED, f"Failed to generate signed URL: {exc}"
            ) from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(ErrorKind.STORAGE_OPERATION_FAILED, f"Failed to delete stored object: {exc}") from exc

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self._bucket, Key=key)
            return True
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            raise StorageError(ErrorKind.STORAGE_OPERATION_FAILED, f"Failed to check stored object: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(ErrorKind.STORAGE_OPERATION_FAILED, f"Failed to check stored object: {exc}") from exc


class UnconfiguredObjectStore:
    """Stand-in used when no bucket or credentials are available.

    Reads report nothing stored; every other operation fails the same way.
    """

    _MESSAGE = "Object storage is not configured. Set S3_BUCKET, AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY."

    @property
    def bucket(self) -> None:
        return None

    @property
    def is_configured(self) -> bool:
        return False

    def _fail(self) -> StorageError:
        return StorageError(ErrorKind.STORAGE_NOT_CONFIGURED, self._MESSAGE)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        raise self._fail()

    def issue_read_capability(self, key: str, ttl_seconds: int) -> str:
        raise self._fail()

    def delete(self, key: str) -> None:
        raise self._fail()

    def exists(self, key: str) -> bool:
        return False


def build_object_store(aws: AwsSettings) -> ObjectStore:
    if not aws.is_configured:
        logger.warning("Object storage credentials not configured; storage operations will fail")
        return UnconfiguredObjectStore()
    return S3ObjectStore(
        bucket=aws.s3_bucket,  # type: ignore[arg-type]
        region=aws.region,
        access_key_id=aws.access_key_id,
        secret_access_key=aws.secret_access_key,
        endpoint_url=aws.s3_endpoint_url,
    )
