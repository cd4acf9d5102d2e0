from __future__ import annotations

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from ..config import settings

TENANT_SCOPE_KEY = "tenant_scope"

engine = create_engine(settings.database_url, pool_pre_ping=True)
session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
SessionLocal = scoped_session(session_factory)


def scope_session(db: Session, tenant_id: str | None, is_admin: bool = False) -> None:
    """Record the caller's visibility on the session.

    The value is applied to every transaction the session opens, which is what
    the row-level security policy on ``documents`` reads.
    """
    db.info[TENANT_SCOPE_KEY] = (tenant_id, is_admin)


def unscope_session(db: Session) -> None:
    db.info.pop(TENANT_SCOPE_KEY, None)


def _apply_tenant_scope(session: Session, transaction, connection) -> None:
    scope = session.info.get(TENANT_SCOPE_KEY)
    if scope is None or connection.dialect.name != "postgresql":
        return
    tenant_id, is_admin = scope
    # set_config(..., true) is transaction-local, so pooled connections never leak a scope
    connection.execute(
        text(
            "SELECT set_config('app.current_tenant_id', :tenant_id, true), "
            "set_config('app.is_admin', :is_admin, true)"
        ),
        {"tenant_id": tenant_id or "", "is_admin": "true" if is_admin else "false"},
    )


def install_tenant_scope(factory: sessionmaker) -> None:
    if not event.contains(factory, "after_begin", _apply_tenant_scope):
        event.listen(factory, "after_begin", _apply_tenant_scope)


install_tenant_scope(session_factory)
