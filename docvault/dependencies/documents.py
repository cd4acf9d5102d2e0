from __future__ import annotations

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from ..config import settings
from ..db.session import scope_session
from ..services.documents import DocumentService
from ..services.storage import ObjectStore, build_object_store
from .context import CallerContext, require_caller
from .db import get_db


@lru_cache(maxsize=1)
def get_object_store() -> ObjectStore:
    return build_object_store(settings.aws)


def get_document_service(
    caller: CallerContext = Depends(require_caller),
    db: Session = Depends(get_db),
    storage: ObjectStore = Depends(get_object_store),
) -> DocumentService:
    scope_session(db, caller.tenant_id, is_admin=caller.is_admin)
    return DocumentService(db, storage)
