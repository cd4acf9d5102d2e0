from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from .base import Base


class Client(Base):
    """Tenant directory row. Owned by the client-management side of the app."""

    __tablename__ = "clients"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    company_name = Column(String, nullable=False)
    contact_email = Column(String, nullable=True)
    user_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
