# SPDX-License-Identifier: Apache-2.0
"""Audit log model."""
import uuid
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from researchhub.config import INITIAL_HASH
from researchhub.models.base import utcnow


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_log"
    # one successor per entry; a second writer holding a stale predecessor fails on insert
    __table_args__ = (UniqueConstraint("study_id", "previous_hash", name="uq_audit_log_chain_link"),)
    id: int | None = Field(default=None, primary_key=True)
    study_id: uuid.UUID | None = Field(default=None, foreign_key="studies.id", index=True)
    action_type: str = ""
    actor_id: str = ""
    details: str = "{}"
    previous_hash: str = INITIAL_HASH
    entry_hash: str = ""
    created_at: datetime = Field(default_factory=utcnow)
