from __future__ import annotations

import io
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from ..dependencies.context import CallerContext, require_caller
from ..dependencies.db import get_db
from ..dependencies.documents import get_document_service
from ..models import Client, Document
from ..services.documents import (
    DOWNLOAD_URL_TTL_SECONDS,
    DateRange,
    DocumentFilters,
    DocumentService,
    IncomingFile,
)
from ..services.errors import DocumentError, ErrorKind
from ..services.metrics import record_upload
from ..services.validation import MAX_FILE_SIZE, invalid_type_message, validate_file_type

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents")

READ_CHUNK_BYTES = 1024 * 1024


def _serialize_document(document: Document) -> Dict[str, Any]:
    return {
        "id": str(document.id),
        "client_id": document.tenant_id,
        "file_name": document.file_name,
        "file_type": document.file_type,
        "storage_key": document.storage_key,
        "storage_bucket": document.storage_bucket,
        "uploaded_by": document.uploaded_by,
        "metadata": document.metadata_json or {},
        "uploaded_at": document.uploaded_at.isoformat() if document.uploaded_at else None,
        "download_path": f"/documents/{document.id}/download",
    }


def _resolve_tenant(caller: CallerContext, client_id: Optional[str]) -> str:
    requested = (client_id or "").strip() or None
    if requested is None or requested == caller.tenant_id:
        if caller.tenant_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="client_id is required")
        return caller.tenant_id
    if not caller.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return requested


def _visible_document(service: DocumentService, doc_id: str, caller: CallerContext) -> Document:
    try:
        document = service.get(doc_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if not caller.can_see(document.tenant_id):
        raise DocumentError(ErrorKind.RESOURCE_NOT_FOUND, "Document not found")
    return document


def _read_upload(file: UploadFile) -> IncomingFile:
    buffer = io.BytesIO()
    total_bytes = 0
    try:
        while True:
            chunk = file.file.read(READ_CHUNK_BYTES)
            if not chunk:
                break
            total_bytes += len(chunk)
            if total_bytes > MAX_FILE_SIZE:
                # the declared size alone is enough for the validator to reject
                break
            buffer.write(chunk)
    finally:
        file.file.close()

    return IncomingFile(
        name=file.filename or "",
        mime_type=file.content_type or "application/octet-stream",
        size=total_bytes,
        content=buffer.getvalue(),
    )


@router.get("")
def list_documents(
    client_id: Optional[str] = Query(default=None),
    file_type: Optional[str] = Query(default=None),
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    offset: Optional[int] = Query(default=None, ge=0),
    caller: CallerContext = Depends(require_caller),
    service: DocumentService = Depends(get_document_service),
):
    tenant_id = _resolve_tenant(caller, client_id)
    date_range = DateRange(start=start, end=end) if (start or end) else None
    filters = DocumentFilters(file_type=file_type, date_range=date_range, limit=limit, offset=offset)

    documents = service.list(tenant_id, filters)
    return {
        "items": [_serialize_document(document) for document in documents],
        "pagination": {"limit": limit, "offset": offset or 0, "count": len(documents)},
    }


@router.post("/upload", status_code=status.HTTP_201_CREATED)
def upload_document(
    file: UploadFile = File(...),
    client_id: Optional[str] = Form(default=None),
    caller: CallerContext = Depends(require_caller),
    service: DocumentService = Depends(get_document_service),
    db: Session = Depends(get_db),
):
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filename required")

    tenant_id = _resolve_tenant(caller, client_id)
    on_behalf = tenant_id != caller.tenant_id
    if on_behalf and db.query(Client.id).filter(Client.id == tenant_id).one_or_none() is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    # refuse a disallowed name/type pair before the body is read
    if not validate_file_type(file.filename, file.content_type):
        record_upload("rejected")
        raise DocumentError(ErrorKind.VALIDATION_INVALID_FILE_TYPE, invalid_type_message())

    incoming = _read_upload(file)
    try:
        if on_behalf:
            document = service.upload_on_behalf(incoming, tenant_id, caller.actor_id)
        else:
            document = service.upload(incoming, tenant_id, caller.actor_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return _serialize_document(document)


@router.get("/{doc_id}")
def get_document(
    doc_id: str,
    caller: CallerContext = Depends(require_caller),
    service: DocumentService = Depends(get_document_service),
):
    return _serialize_document(_visible_document(service, doc_id, caller))


@router.get("/{doc_id}/download")
def download_document(
    doc_id: str,
    caller: CallerContext = Depends(require_caller),
    service: DocumentService = Depends(get_document_service),
):
    document = _visible_document(service, doc_id, caller)
    url = service.get_download_url(document.id)
    return {"url": url, "expires_in": DOWNLOAD_URL_TTL_SECONDS}


@router.delete("/{doc_id}")
def delete_document(
    doc_id: str,
    caller: CallerContext = Depends(require_caller),
    service: DocumentService = Depends(get_document_service),
):
    document = _visible_document(service, doc_id, caller)
    service.delete(document.id)
    logger.info("document_removed document_id=%s actor_id=%s", doc_id, caller.actor_id)
    return {"message": "Document deleted successfully"}
