# SPDX-License-Identifier: Apache-2.0
"""Study session and recorded block responses."""
import uuid
from datetime import datetime

from sqlalchemy import Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel

from researchhub.models.base import utcnow

_ACTIVE = "status = 'active'"


class StudySession(SQLModel, table=True):
    __tablename__ = "sessions"
    __table_args__ = (
        Index(
            "uq_sessions_active_per_application",
            "application_id",
            unique=True,
            sqlite_where=text(_ACTIVE),
            postgresql_where=text(_ACTIVE),
        ),
    )
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    application_id: uuid.UUID = Field(foreign_key="applications.id", index=True)
    study_id: uuid.UUID = Field(foreign_key="studies.id", index=True)
    participant_id: str = Field(index=True)
    status: str = "active"
    current_block_index: int = 0
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None


class SessionResponse(SQLModel, table=True):
    __tablename__ = "session_responses"
    __table_args__ = (UniqueConstraint("session_id", "position", name="uq_session_responses_position"),)
    id: int | None = Field(default=None, primary_key=True)
    session_id: uuid.UUID = Field(foreign_key="sessions.id", index=True)
    position: int
    block_id: str
    answer: str = "null"
    recorded_at: datetime = Field(default_factory=utcnow)
