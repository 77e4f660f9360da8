# SPDX-License-Identifier: Apache-2.0
"""Study and StudyBlock models."""
import uuid
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from researchhub.models.base import utcnow


class Study(SQLModel, table=True):
    __tablename__ = "studies"
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str
    description: str = ""
    owner_id: str = Field(index=True)
    status: str = "draft"
    is_public: bool = False
    max_participants: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class StudyBlock(SQLModel, table=True):
    __tablename__ = "study_blocks"
    __table_args__ = (
        UniqueConstraint("study_id", "position", name="uq_study_blocks_position"),
        UniqueConstraint("study_id", "block_key", name="uq_study_blocks_key"),
    )
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    study_id: uuid.UUID = Field(foreign_key="studies.id", index=True)
    position: int
    block_key: str
    block_type: str
    title: str = ""
    settings: str = "{}"
    is_terminal: bool = False
