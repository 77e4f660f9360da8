# SPDX-License-Identifier: Apache-2.0
"""Pydantic request schemas and the response envelope."""
import uuid
from typing import Any, Literal

from pydantic import BaseModel, Field as PydanticField

from researchhub.core.lifecycle import ReviewDecision, StudyStatus


def ok(data: Any = None) -> dict:
    """Success envelope: {success, data}."""
    return {"success": True, "data": data}


class BlockDef(BaseModel):
    block_key: str = PydanticField(..., min_length=1, max_length=100)
    block_type: str = PydanticField(..., min_length=1, max_length=50)
    title: str = PydanticField("", max_length=200)
    settings: dict = {}
    is_terminal: bool | None = None


class StudyCreate(BaseModel):
    title: str = PydanticField(..., min_length=1, max_length=200)
    description: str = PydanticField("", max_length=5000)
    is_public: bool = False
    max_participants: int = PydanticField(0, ge=0)
    blocks: list[BlockDef] = []


class StudyUpdate(BaseModel):
    title: str | None = PydanticField(None, min_length=1, max_length=200)
    description: str | None = PydanticField(None, max_length=5000)
    is_public: bool | None = None
    max_participants: int | None = PydanticField(None, ge=0)


class StudyStatusChange(BaseModel):
    status: StudyStatus


class BlocksReplace(BaseModel):
    blocks: list[BlockDef]


class ApplicationSubmit(BaseModel):
    study_id: uuid.UUID
    responses: dict = {}


class ApplicationReview(BaseModel):
    decision: ReviewDecision
    notes: str = PydanticField("", max_length=2000)


class SessionStart(BaseModel):
    application_id: uuid.UUID


class AnswerSubmit(BaseModel):
    block_id: str = PydanticField(..., min_length=1, max_length=100)
    answer: Any = None
    expected_block_index: int | None = PydanticField(None, ge=0)
    is_last_block: bool = False


class ProfileUpsert(BaseModel):
    email: str = PydanticField("", max_length=254)
    role: Literal["participant", "researcher", "admin"]
