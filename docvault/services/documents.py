from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Document
from .errors import DocumentError, ErrorKind, StorageError
from .metrics import record_delete, record_orphaned_object, record_upload
from .storage import ObjectStore
from .validation import extract_extension, validate_file

logger = logging.getLogger(__name__)

DOWNLOAD_URL_TTL_SECONDS = 300
DEFAULT_PAGE_SIZE = 10

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_TENANT_ID_PATTERN = re.compile(r"[A-Za-z0-9._-]+")


@dataclass(frozen=True)
class IncomingFile:
    name: str
    mime_type: str
    size: int
    content: bytes


@dataclass(frozen=True)
class DateRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class DocumentFilters:
    file_type: Optional[str] = None
    date_range: Optional[DateRange] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


def sanitize_file_name(file_name: str) -> str:
    return _UNSAFE_KEY_CHARS.sub("_", file_name)


def generate_storage_key(tenant_id: str, file_name: str, timestamp_ms: Optional[int] = None) -> str:
    """Build ``{tenant_id}/{unix_ms}_{sanitized_name}``.

    Two uploads of the same name for the same tenant within one millisecond
    produce the same key; nothing beyond the timestamp separates them.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{tenant_id}/{timestamp_ms}_{sanitize_file_name(file_name)}"


def _check_tenant_id(tenant_id: str) -> None:
    if not _TENANT_ID_PATTERN.fullmatch(tenant_id) or set(tenant_id) == {"."}:
        raise ValueError(f"Invalid tenant id: {tenant_id!r}")


def _not_found() -> DocumentError:
    return DocumentError(ErrorKind.RESOURCE_NOT_FOUND, "Document not found")


class DocumentService:
    """Keeps document bytes in the object store and their rows in ``documents`` together.

    The object is always written before the row, so a failure can leave at
    most an orphaned object (cleaned up on a best-effort basis) and never a
    row pointing at nothing.
    """

    def __init__(self, db: Session, storage: ObjectStore, clock: Callable[[], float] = time.time) -> None:
        self.db = db
        self.storage = storage
        self._clock = clock

    def generate_storage_key(self, tenant_id: str, file_name: str) -> str:
        return generate_storage_key(tenant_id, file_name, int(self._clock() * 1000))

    # --- Uploads ---------------------------------------------------------
    def upload(self, file: Optional[IncomingFile], tenant_id: str, actor_id: str) -> Document:
        return self._store(file, tenant_id, actor_id)

    def upload_on_behalf(self, file: Optional[IncomingFile], target_tenant_id: str, admin_actor_id: str) -> Document:
        """Upload into another tenant's space; the admin is recorded as uploader.

        Whether the caller really is an admin is decided before this is called.
        """
        document = self._store(file, target_tenant_id, admin_actor_id)
        logger.info(
            "document_uploaded_on_behalf document_id=%s tenant_id=%s admin_id=%s",
            document.id,
            target_tenant_id,
            admin_actor_id,
        )
        return document

    def _store(self, file: Optional[IncomingFile], tenant_id: str, actor_id: str) -> Document:
        if not file or not tenant_id or not actor_id:
            raise ValueError("Missing required parameters: file, tenant_id, or actor_id")
        _check_tenant_id(tenant_id)

        result = validate_file(file.name, file.mime_type, file.size)
        if not result.valid:
            record_upload("rejected")
            logger.info("document_upload_rejected tenant_id=%s reason=%s", tenant_id, result.error.value)
            raise DocumentError(result.error, result.message)

        storage_key = self.generate_storage_key(tenant_id, file.name)

        try:
            self.storage.put(storage_key, file.content, file.mime_type)
        except StorageError:
            record_upload("storage_failed")
            raise

        document = Document(
            tenant_id=tenant_id,
            file_name=file.name,
            file_type=extract_extension(file.name),
            storage_key=storage_key,
            storage_bucket=self.storage.bucket,
            uploaded_by=actor_id,
            metadata_json={
                "fileSize": file.size,
                "mimeType": file.mime_type,
                "originalName": file.name,
            },
        )
        try:
            self.db.add(document)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self._discard_uploaded_object(storage_key)
            record_upload("metadata_failed")
            raise DocumentError(
                ErrorKind.METADATA_OPERATION_FAILED, f"Failed to create document record: {exc}"
            ) from exc

        self.db.refresh(document)
        record_upload("stored")
        logger.info(
            "document_uploaded document_id=%s tenant_id=%s storage_key=%s uploaded_by=%s bytes=%s",
            document.id,
            tenant_id,
            storage_key,
            actor_id,
            file.size,
        )
        return document

    def _discard_uploaded_object(self, storage_key: str) -> None:
        try:
            self.storage.delete(storage_key)
        except Exception:
            record_orphaned_object("upload")
            logger.error("orphaned_object storage_key=%s reason=upload_cleanup_failed", storage_key, exc_info=True)
            return
        logger.warning("upload_rolled_back storage_key=%s", storage_key)

    # --- Reads -----------------------------------------------------------
    def _load(self, document_id: uuid.UUID | str) -> Document:
        if not document_id:
            raise ValueError("Document ID is required")
        try:
            document_uuid = document_id if isinstance(document_id, uuid.UUID) else uuid.UUID(str(document_id))
        except ValueError as exc:
            raise _not_found() from exc

        try:
            document = self.db.query(Document).filter(Document.id == document_uuid).one_or_none()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise DocumentError(ErrorKind.METADATA_OPERATION_FAILED, f"Failed to load document: {exc}") from exc
        if document is None:
            raise _not_found()
        return document

    def get(self, document_id: uuid.UUID | str) -> Document:
        return self._load(document_id)

    def get_download_url(self, document_id: uuid.UUID | str) -> str:
        document = self._load(document_id)
        url = self.storage.issue_read_capability(document.storage_key, DOWNLOAD_URL_TTL_SECONDS)
        logger.info("download_url_issued document_id=%s ttl=%s", document.id, DOWNLOAD_URL_TTL_SECONDS)
        return url

    def list(self, tenant_id: str, filters: Optional[DocumentFilters] = None) -> List[Document]:
        """Documents of one tenant, newest first. All supplied filters must match."""
        if not tenant_id:
            raise ValueError("Tenant ID is required")
        filters = filters or DocumentFilters()
        if filters.limit is not None and filters.limit < 1:
            raise ValueError("limit must be a positive integer")
        if filters.offset is not None and filters.offset < 0:
            raise ValueError("offset must not be negative")

        limit = filters.limit
        if filters.offset:
            limit = limit or DEFAULT_PAGE_SIZE

        try:
            query = self.db.query(Document).filter(Document.tenant_id == tenant_id)
            if filters.file_type:
                query = query.filter(Document.file_type == filters.file_type.lower())
            if filters.date_range:
                if filters.date_range.start:
                    query = query.filter(Document.uploaded_at >= filters.date_range.start)
                if filters.date_range.end:
                    query = query.filter(Document.uploaded_at <= filters.date_range.end)
            query = query.order_by(Document.uploaded_at.desc())
            if filters.offset:
                query = query.offset(filters.offset)
            if limit is not None:
                query = query.limit(limit)
            return query.all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise DocumentError(ErrorKind.METADATA_OPERATION_FAILED, f"Failed to list documents: {exc}") from exc

    # --- Deletion --------------------------------------------------------
    def delete(self, document_id: uuid.UUID | str) -> None:
        """Remove the object and the row. The row is authoritative for existence."""
        document = self._load(document_id)
        doc_id = document.id
        storage_key = document.storage_key

        try:
            self.storage.delete(storage_key)
        except Exception:
            record_orphaned_object("delete")
            logger.warning(
                "document_object_delete_failed document_id=%s storage_key=%s",
                doc_id,
                storage_key,
                exc_info=True,
            )

        try:
            self.db.delete(document)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            record_delete("metadata_failed")
            raise DocumentError(
                ErrorKind.METADATA_OPERATION_FAILED, f"Failed to delete document record: {exc}"
            ) from exc

        record_delete("deleted")
        logger.info("document_deleted document_id=%s storage_key=%s", doc_id, storage_key)
