# SPDX-License-Identifier: Apache-2.0
"""User profile model (stored role)."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from researchhub.models.base import utcnow


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"
    user_id: str = Field(primary_key=True)
    email: str = ""
    role: str = "participant"
    updated_at: datetime = Field(default_factory=utcnow)
