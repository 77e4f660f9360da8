# SPDX-License-Identifier: Apache-2.0
"""Session lifecycle: a participant's run through a study's ordered blocks.

(none) -> active -> completed. Answers must arrive in block order; every write
is a conditional update on the index the caller read, so two racing answers
cannot both land on the same block.
"""
from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from researchhub.config import settings
from researchhub.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from researchhub.core.identity import Caller
from researchhub.core.lifecycle import (
    SESSION_TRANSITIONS,
    ApplicationStatus,
    SessionStatus,
    is_complete,
    validate_transition,
)
from researchhub.models import SessionResponse, StudySession
from researchhub.models.base import utcnow
from researchhub.services.access_service import can_review, require_reviewer
from researchhub.services.application_service import get_application
from researchhub.services.audit_service import write_audit_log
from researchhub.services.study_service import get_study, list_blocks

logger = logging.getLogger("researchhub")


def response_to_dict(r: SessionResponse) -> dict:
    return {
        "position": r.position,
        "block_id": r.block_id,
        "answer": json.loads(r.answer) if r.answer else None,
        "timestamp": r.recorded_at.isoformat(),
    }


def session_to_dict(s: StudySession, responses: list[SessionResponse] | None = None, total_blocks: int | None = None) -> dict:
    out = {
        "id": str(s.id),
        "application_id": str(s.application_id),
        "study_id": str(s.study_id),
        "participant_id": s.participant_id,
        "status": s.status,
        "current_block_index": s.current_block_index,
        "started_at": s.started_at.isoformat(),
        "completed_at": s.completed_at.isoformat() if s.completed_at else None,
    }
    if total_blocks is not None:
        out["total_blocks"] = total_blocks
    if responses is not None:
        out["responses"] = [response_to_dict(r) for r in responses]
    return out


def get_session(session: Session, session_id: uuid.UUID) -> StudySession:
    s = session.get(StudySession, session_id)
    if not s:
        raise NotFoundError("Session not found")
    return s


def get_session_for(session: Session, caller: Caller, session_id: uuid.UUID) -> StudySession:
    """Visible to the participant, the study owner and admins."""
    s = get_session(session, session_id)
    if s.participant_id == caller.user_id:
        return s
    if not can_review(session, caller, get_study(session, s.study_id)):
        raise AuthorizationError("You cannot view this session")
    return s


def _own_session(session: Session, caller: Caller, session_id: uuid.UUID) -> StudySession:
    s = get_session(session, session_id)
    if s.participant_id != caller.user_id:
        raise AuthorizationError("Only the participant can work on this session")
    return s


def start(session: Session, caller: Caller, application_id: uuid.UUID) -> StudySession:
    app = get_application(session, application_id)
    if app.participant_id != caller.user_id:
        raise AuthorizationError("This application belongs to another participant")
    if app.status != ApplicationStatus.ACCEPTED.value:
        raise StateError(f"Application is {app.status}; only accepted applications can start a session")
    s = StudySession(
        application_id=app.id,
        study_id=app.study_id,
        participant_id=app.participant_id,
        status=SessionStatus.ACTIVE.value,
        current_block_index=0,
    )
    session.add(s)
    try:
        session.flush()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError("A session for this application is already in progress") from e
    write_audit_log(session, app.study_id, "session_started", caller.user_id, {"session_id": str(s.id)})
    session.commit()
    session.refresh(s)
    logger.info("Session %s started for application %s", s.id, app.id)
    return s


def record_answer(
    session: Session,
    caller: Caller,
    session_id: uuid.UUID,
    block_id: str,
    answer: Any,
    expected_block_index: int | None = None,
    is_last_block: bool = False,
) -> tuple[StudySession, bool]:
    """Append the answer for the current block and advance.

    Returns the session and whether the answered block ends the study.
    Out-of-order block ids fail with ValidationError and leave the index untouched.
    """
    s = _own_session(session, caller, session_id)
    if s.status != SessionStatus.ACTIVE.value:
        raise StateError("Session is already completed")
    index = s.current_block_index
    if expected_block_index is not None and expected_block_index != index:
        raise ConflictError("Session has moved on; reload and retry")
    blocks = list_blocks(session, s.study_id)
    if index >= len(blocks):
        raise StateError("All blocks have already been answered")
    block = blocks[index]
    if block.block_key != block_id:
        raise ValidationError(f"Expected an answer for block '{block.block_key}'")
    answer_json = json.dumps(answer, default=str)
    if len(answer_json.encode("utf-8")) > settings.max_response_bytes:
        raise ValidationError("Answer is too large")

    result = session.execute(
        update(StudySession)
        .where(
            StudySession.id == s.id,
            StudySession.status == SessionStatus.ACTIVE.value,
            StudySession.current_block_index == index,
        )
        .values(current_block_index=index + 1)
    )
    if result.rowcount != 1:
        session.rollback()
        raise ConflictError("Session has moved on; reload and retry")
    session.add(SessionResponse(session_id=s.id, position=index, block_id=block.block_key, answer=answer_json))
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError("Session has moved on; reload and retry") from e
    session.refresh(s)
    done = is_complete(block.block_type, is_last_block or block.is_terminal, block.block_key)
    logger.debug("Session %s answered %s (%d/%d)", s.id, block.block_key, index + 1, len(blocks))
    return s, done


def complete(session: Session, caller: Caller, session_id: uuid.UUID) -> StudySession:
    s = _own_session(session, caller, session_id)
    validate_transition(SESSION_TRANSITIONS, s.status, SessionStatus.COMPLETED, "session")
    result = session.execute(
        update(StudySession)
        .where(StudySession.id == s.id, StudySession.status == SessionStatus.ACTIVE.value)
        .values(status=SessionStatus.COMPLETED.value, completed_at=utcnow())
    )
    if result.rowcount != 1:
        session.rollback()
        raise StateError("Session is already completed")
    write_audit_log(
        session, s.study_id, "session_completed", caller.user_id,
        {"session_id": str(s.id), "answered_blocks": s.current_block_index},
    )
    session.commit()
    session.refresh(s)
    logger.info("Session %s completed", s.id)
    return s


def list_responses(session: Session, session_id: uuid.UUID) -> list[SessionResponse]:
    stmt = select(SessionResponse).where(SessionResponse.session_id == session_id).order_by(SessionResponse.position)
    return list(session.exec(stmt))


def replay(session: Session, caller: Caller, session_id: uuid.UUID) -> list[SessionResponse]:
    """Recorded answers in the order they were accepted."""
    s = get_session_for(session, caller, session_id)
    return list_responses(session, s.id)


def responses_by_session(session: Session, session_ids: list[uuid.UUID]) -> dict[uuid.UUID, list[SessionResponse]]:
    if not session_ids:
        return {}
    stmt = (
        select(SessionResponse)
        .where(SessionResponse.session_id.in_(session_ids))
        .order_by(SessionResponse.session_id, SessionResponse.position)
    )
    grouped: dict[uuid.UUID, list[SessionResponse]] = {sid: [] for sid in session_ids}
    for r in session.exec(stmt):
        grouped[r.session_id].append(r)
    return grouped


def list_for_study(
    session: Session,
    caller: Caller,
    study_id: uuid.UUID,
    status: SessionStatus | None = None,
) -> list[StudySession]:
    """Sessions of one study, for its owner or an admin. Optional status filter."""
    study = get_study(session, study_id)
    require_reviewer(session, caller, study)
    stmt = select(StudySession).where(StudySession.study_id == study.id)
    if status is not None:
        stmt = stmt.where(StudySession.status == status.value)
    return list(session.exec(stmt.order_by(StudySession.started_at.asc())))


def list_for_participant(
    session: Session,
    participant_id: str,
    status: SessionStatus | None = None,
) -> list[StudySession]:
    """A participant's own sessions, newest first; the way back into an active one."""
    stmt = select(StudySession).where(StudySession.participant_id == participant_id)
    if status is not None:
        stmt = stmt.where(StudySession.status == status.value)
    return list(session.exec(stmt.order_by(StudySession.started_at.desc())))
