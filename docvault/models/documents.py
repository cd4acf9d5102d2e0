from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_tenant_uploaded_at", "tenant_id", "uploaded_at"),
        CheckConstraint("storage_key LIKE tenant_id || '/%'", name="ck_documents_storage_key_tenant_prefix"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    file_name = Column(String, nullable=False)  # verbatim, display only
    file_type = Column(String, nullable=False)
    storage_key = Column(String, nullable=False, unique=True)
    storage_bucket = Column(String, nullable=False)
    uploaded_by = Column(String, nullable=False)
    # "metadata" is reserved on declarative classes
    metadata_json = Column(
        "metadata",
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
        server_default=text("'{}'"),
    )
    uploaded_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    @property
    def file_size(self) -> int | None:
        return (self.metadata_json or {}).get("fileSize")

    @property
    def mime_type(self) -> str | None:
        return (self.metadata_json or {}).get("mimeType")
