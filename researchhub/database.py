# SPDX-License-Identifier: Apache-2.0
"""DB connection and session management."""
from __future__ import annotations

from contextlib import contextmanager

from sqlmodel import Session, SQLModel, create_engine

from researchhub.config import DATABASE_URL
from researchhub.models import (  # noqa: F401 – register all models with SQLModel.metadata
    Application,
    AuditLog,
    Profile,
    SessionResponse,
    Study,
    StudyBlock,
    StudySession,
)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)


def get_session():
    """Yield a DB session (for FastAPI Depends)."""
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope():
    """Context manager for use outside request handlers."""
    with Session(engine) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


def create_db_and_tables():
    """Create all tables and indexes."""
    SQLModel.metadata.create_all(engine)
