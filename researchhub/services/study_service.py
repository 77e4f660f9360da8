# SPDX-License-Identifier: Apache-2.0
"""Study registry: study metadata, status transitions and the ordered block sequence."""
from __future__ import annotations

import json
import logging
import uuid

from sqlalchemy import and_, delete, func, or_
from sqlmodel import Session, select

from researchhub.config import settings
from researchhub.core.exceptions import AuthorizationError, NotFoundError, StateError, ValidationError
from researchhub.core.identity import Caller
from researchhub.core.lifecycle import (
    STUDY_TRANSITIONS,
    ApplicationStatus,
    StudyStatus,
    validate_transition,
)
from researchhub.core.security import sanitize_text
from researchhub.models import Application, Study, StudyBlock
from researchhub.models.base import utcnow
from researchhub.schemas import BlockDef, StudyCreate, StudyUpdate
from researchhub.services.access_service import can_view_study, is_admin, require_reviewer, require_role
from researchhub.services.audit_service import write_audit_log

logger = logging.getLogger("researchhub")


def study_to_dict(study: Study, accepted_count: int | None = None) -> dict:
    out = {
        "id": str(study.id),
        "title": study.title,
        "description": study.description,
        "owner_id": study.owner_id,
        "status": study.status,
        "is_public": study.is_public,
        "max_participants": study.max_participants,
        "created_at": study.created_at.isoformat(),
        "updated_at": study.updated_at.isoformat(),
    }
    if accepted_count is not None:
        out["accepted_count"] = accepted_count
    return out


def block_to_dict(block: StudyBlock) -> dict:
    try:
        block_settings = json.loads(block.settings or "{}")
    except (json.JSONDecodeError, TypeError):
        block_settings = {}
    return {
        "block_key": block.block_key,
        "block_type": block.block_type,
        "position": block.position,
        "title": block.title,
        "settings": block_settings,
        "is_terminal": block.is_terminal,
    }


def validate_blocks(blocks: list[BlockDef], closing_type: str | None = None) -> list[dict]:
    """Normalize a block sequence: unique keys, at most one terminal block and only in last place.

    ``is_terminal`` defaults to whether the block is of the closing type.
    """
    closing = closing_type or settings.closing_block_type
    seen: set[str] = set()
    normalized: list[dict] = []
    for position, b in enumerate(blocks):
        key = b.block_key.strip()
        if not key:
            raise ValidationError(f"Block {position} has an empty key")
        if key in seen:
            raise ValidationError(f"Duplicate block key '{key}'")
        seen.add(key)
        terminal = b.is_terminal if b.is_terminal is not None else b.block_type == closing
        normalized.append({
            "position": position,
            "block_key": key,
            "block_type": b.block_type,
            "title": sanitize_text(b.title, max_len=200),
            "settings": json.dumps(b.settings or {}, sort_keys=True),
            "is_terminal": terminal,
        })
    terminal_positions = [n["position"] for n in normalized if n["is_terminal"]]
    if len(terminal_positions) > 1:
        raise ValidationError("Only one block can end the study")
    if terminal_positions and terminal_positions[0] != len(normalized) - 1:
        raise ValidationError("The closing block must be the last block")
    return normalized


def _add_blocks(session: Session, study_id: uuid.UUID, normalized: list[dict]) -> None:
    for n in normalized:
        session.add(StudyBlock(study_id=study_id, **n))


def get_study(session: Session, study_id: uuid.UUID) -> Study:
    study = session.get(Study, study_id)
    if not study:
        raise NotFoundError("Study not found")
    return study


def get_visible_study(session: Session, caller: Caller, study_id: uuid.UUID) -> Study:
    study = get_study(session, study_id)
    if not can_view_study(session, caller, study):
        raise AuthorizationError("This study is not available to you")
    return study


def create_study(session: Session, caller: Caller, body: StudyCreate) -> Study:
    """Create a draft study owned by the caller, with its block sequence."""
    require_role(session, caller, ("researcher", "admin"))
    normalized = validate_blocks(body.blocks)
    study = Study(
        title=sanitize_text(body.title, max_len=200),
        description=sanitize_text(body.description, max_len=5000),
        owner_id=caller.user_id,
        status=StudyStatus.DRAFT.value,
        is_public=body.is_public,
        max_participants=body.max_participants,
    )
    if not study.title:
        raise ValidationError("Title must not be empty")
    session.add(study)
    session.flush()
    _add_blocks(session, study.id, normalized)
    write_audit_log(
        session, study.id, "study_created", caller.user_id,
        {"title": study.title, "block_count": len(normalized), "is_public": study.is_public},
    )
    session.commit()
    session.refresh(study)
    logger.info("Study %s created by %s", study.id, caller.user_id)
    return study


def update_study(session: Session, caller: Caller, study_id: uuid.UUID, body: StudyUpdate) -> Study:
    study = get_study(session, study_id)
    require_reviewer(session, caller, study)
    if study.status == StudyStatus.CLOSED.value:
        raise StateError("Closed studies cannot be changed")
    changes = body.model_dump(exclude_none=True)
    if "title" in changes:
        changes["title"] = sanitize_text(changes["title"], max_len=200)
        if not changes["title"]:
            raise ValidationError("Title must not be empty")
    if "description" in changes:
        changes["description"] = sanitize_text(changes["description"], max_len=5000)
    for field, value in changes.items():
        setattr(study, field, value)
    study.updated_at = utcnow()
    session.add(study)
    write_audit_log(session, study.id, "study_updated", caller.user_id, {"fields": sorted(changes)})
    session.commit()
    session.refresh(study)
    return study


def transition_study(session: Session, caller: Caller, study_id: uuid.UUID, new_status: StudyStatus) -> Study:
    """draft -> active, draft -> closed, active -> closed. Activation needs a title and at least one block."""
    study = get_study(session, study_id)
    require_reviewer(session, caller, study)
    validate_transition(STUDY_TRANSITIONS, study.status, new_status, "study")
    if new_status == StudyStatus.ACTIVE and not study.title.strip():
        raise ValidationError("Give the study a title before activating it")
    if new_status == StudyStatus.ACTIVE and not list_blocks(session, study.id):
        raise ValidationError("Add at least one block before activating the study")
    previous = study.status
    study.status = new_status.value
    study.updated_at = utcnow()
    session.add(study)
    write_audit_log(session, study.id, "study_status_changed", caller.user_id, {"from": previous, "to": study.status})
    session.commit()
    session.refresh(study)
    logger.info("Study %s moved %s -> %s by %s", study.id, previous, study.status, caller.user_id)
    return study


def replace_blocks(session: Session, caller: Caller, study_id: uuid.UUID, blocks: list[BlockDef]) -> list[StudyBlock]:
    """Swap the whole block sequence. Only drafts: running sessions index into it."""
    study = get_study(session, study_id)
    require_reviewer(session, caller, study)
    if study.status != StudyStatus.DRAFT.value:
        raise StateError("Blocks can only be edited while the study is a draft")
    normalized = validate_blocks(blocks)
    session.execute(delete(StudyBlock).where(StudyBlock.study_id == study.id))
    _add_blocks(session, study.id, normalized)
    study.updated_at = utcnow()
    session.add(study)
    write_audit_log(session, study.id, "blocks_replaced", caller.user_id, {"block_count": len(normalized)})
    session.commit()
    return list_blocks(session, study.id)


def list_blocks(session: Session, study_id: uuid.UUID) -> list[StudyBlock]:
    return list(session.exec(select(StudyBlock).where(StudyBlock.study_id == study_id).order_by(StudyBlock.position)))


def list_studies(session: Session, caller: Caller, mine: bool = False) -> list[Study]:
    """Studies the caller can see: public active ones plus their own; admins see everything."""
    stmt = select(Study)
    if mine:
        stmt = stmt.where(Study.owner_id == caller.user_id)
    elif not is_admin(session, caller):
        stmt = stmt.where(
            or_(
                and_(Study.status == StudyStatus.ACTIVE.value, Study.is_public == True),  # noqa: E712
                Study.owner_id == caller.user_id,
            )
        )
    return list(session.exec(stmt.order_by(Study.created_at.desc())))


def accepted_counts(session: Session, study_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
    """Accepted applications per study. Capacity is reported, not enforced."""
    if not study_ids:
        return {}
    rows = session.exec(
        select(Application.study_id, func.count(Application.id))
        .where(Application.study_id.in_(study_ids), Application.status == ApplicationStatus.ACCEPTED.value)
        .group_by(Application.study_id)
    ).all()
    return {r[0]: r[1] for r in rows}
