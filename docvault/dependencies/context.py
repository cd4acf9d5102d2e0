from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, Request, status

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class CallerContext:
    actor_id: str
    tenant_id: Optional[str]
    is_admin: bool

    def can_see(self, tenant_id: str) -> bool:
        return self.is_admin or tenant_id == self.tenant_id


def require_caller(
    request: Request,
    x_actor_id: Optional[str] = Header(default=None),
    x_tenant_id: Optional[str] = Header(default=None),
    x_actor_role: Optional[str] = Header(default=None),
) -> CallerContext:
    """Identity resolved upstream by the gateway and forwarded as headers."""
    actor_id = (x_actor_id or "").strip()
    if not actor_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    tenant_id = (x_tenant_id or "").strip() or None
    is_admin = (x_actor_role or "").strip().lower() == ADMIN_ROLE
    if tenant_id is None and not is_admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated as a client")

    request.state.actor_id = actor_id
    request.state.tenant_id = tenant_id
    return CallerContext(actor_id=actor_id, tenant_id=tenant_id, is_admin=is_admin)
