from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from ..db.session import session_factory, unscope_session


def get_db() -> Iterator[Session]:
    # one session per request; worker threads are reused across requests
    db = session_factory()
    try:
        yield db
    finally:
        unscope_session(db)
        db.close()
