# SPDX-License-Identifier: Apache-2.0
"""Session endpoints: start, get, answer, replay, complete."""
import uuid

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from researchhub.core.identity import Caller, get_caller
from researchhub.core.lifecycle import SessionStatus
from researchhub.core.security import rate_limit
from researchhub.database import get_session
from researchhub.schemas import AnswerSubmit, SessionStart, ok
from researchhub.services import session_service
from researchhub.services.study_service import list_blocks

router = APIRouter(tags=["sessions"])


@router.post("", status_code=201)
@rate_limit()
def sessions_start(
    request: Request,
    body: SessionStart,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    s = session_service.start(session, caller, body.application_id)
    return ok(session_service.session_to_dict(s, total_blocks=len(list_blocks(session, s.study_id))))


@router.get("/mine")
def sessions_mine(
    status: SessionStatus | None = None,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """The caller's sessions, newest first. ``status=active`` finds the one to resume."""
    sessions = session_service.list_for_participant(session, caller.user_id, status)
    return ok([session_service.session_to_dict(s) for s in sessions])


@router.get("/{session_id}")
def sessions_get(session_id: uuid.UUID, caller: Caller = Depends(get_caller), session: Session = Depends(get_session)):
    s = session_service.get_session_for(session, caller, session_id)
    return ok(session_service.session_to_dict(
        s,
        responses=session_service.list_responses(session, s.id),
        total_blocks=len(list_blocks(session, s.study_id)),
    ))


@router.post("/{session_id}/answers")
@rate_limit()
def sessions_answer(
    request: Request,
    session_id: uuid.UUID,
    body: AnswerSubmit,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Record the answer for the current block. ``is_complete`` tells the client to call /complete."""
    s, done = session_service.record_answer(
        session,
        caller,
        session_id,
        body.block_id,
        body.answer,
        expected_block_index=body.expected_block_index,
        is_last_block=body.is_last_block,
    )
    data = session_service.session_to_dict(s, total_blocks=len(list_blocks(session, s.study_id)))
    data["is_complete"] = done
    return ok(data)


@router.get("/{session_id}/responses")
def sessions_responses(session_id: uuid.UUID, caller: Caller = Depends(get_caller), session: Session = Depends(get_session)):
    return ok([session_service.response_to_dict(r) for r in session_service.replay(session, caller, session_id)])


@router.post("/{session_id}/complete")
def sessions_complete(session_id: uuid.UUID, caller: Caller = Depends(get_caller), session: Session = Depends(get_session)):
    s = session_service.complete(session, caller, session_id)
    return ok(session_service.session_to_dict(s))
