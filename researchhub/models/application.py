# SPDX-License-Identifier: Apache-2.0
"""Participant application model."""
import uuid
from datetime import datetime

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from researchhub.models.base import utcnow

_OPEN = "status != 'rejected'"


class Application(SQLModel, table=True):
    __tablename__ = "applications"
    # one submitted-or-accepted application per participant and study; rejected rows stay for audit
    __table_args__ = (
        Index(
            "uq_applications_open_per_participant",
            "study_id",
            "participant_id",
            unique=True,
            sqlite_where=text(_OPEN),
            postgresql_where=text(_OPEN),
        ),
    )
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    study_id: uuid.UUID = Field(foreign_key="studies.id", index=True)
    participant_id: str = Field(index=True)
    status: str = "submitted"
    responses: str = "{}"
    notes: str = ""
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
