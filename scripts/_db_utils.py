from __future__ import annotations

import os
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

DEFAULT_DB_URL = "sqlite:///coaching.db"


def resolve_db_url(db_url: str | None = None) -> str:
    return (db_url or os.environ.get("DATABASE_URL") or DEFAULT_DB_URL).strip()


@contextmanager
def script_session(db_url: str | None = None):
    """Session for CLI scripts (no Flask app); commits on success."""
    engine = create_engine(resolve_db_url(db_url), future=True, pool_pre_ping=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
