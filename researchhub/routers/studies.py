# SPDX-License-Identifier: Apache-2.0
"""Study endpoints: list, get, create, update, status, blocks, applications per study, audit trail."""
import json
import uuid

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from researchhub.core.identity import Caller, get_caller
from researchhub.core.lifecycle import ApplicationStatus, SessionStatus
from researchhub.core.security import rate_limit
from researchhub.database import get_session
from researchhub.schemas import BlocksReplace, StudyCreate, StudyStatusChange, StudyUpdate, ok
from researchhub.services import application_service, session_service, study_service
from researchhub.services.access_service import require_reviewer
from researchhub.services.audit_service import list_audit_trail, verify_audit_chain

router = APIRouter(tags=["studies"])


def _study_out(session: Session, study) -> dict:
    counts = study_service.accepted_counts(session, [study.id])
    return study_service.study_to_dict(study, counts.get(study.id, 0))


@router.get("")
def studies_list(
    mine: bool = False,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Studies visible to the caller; ``mine=true`` restricts to studies they own."""
    studies = study_service.list_studies(session, caller, mine=mine)
    counts = study_service.accepted_counts(session, [s.id for s in studies])
    return ok([study_service.study_to_dict(s, counts.get(s.id, 0)) for s in studies])


@router.post("", status_code=201)
@rate_limit()
def studies_create(
    request: Request,
    body: StudyCreate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    study = study_service.create_study(session, caller, body)
    data = _study_out(session, study)
    data["blocks"] = [study_service.block_to_dict(b) for b in study_service.list_blocks(session, study.id)]
    return ok(data)


@router.get("/{study_id}")
def studies_get(study_id: uuid.UUID, caller: Caller = Depends(get_caller), session: Session = Depends(get_session)):
    study = study_service.get_visible_study(session, caller, study_id)
    data = _study_out(session, study)
    data["blocks"] = [study_service.block_to_dict(b) for b in study_service.list_blocks(session, study.id)]
    return ok(data)


@router.patch("/{study_id}")
def studies_update(
    study_id: uuid.UUID,
    body: StudyUpdate,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    study = study_service.update_study(session, caller, study_id, body)
    return ok(_study_out(session, study))


@router.post("/{study_id}/status")
def studies_status(
    study_id: uuid.UUID,
    body: StudyStatusChange,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    study = study_service.transition_study(session, caller, study_id, body.status)
    return ok(_study_out(session, study))


@router.get("/{study_id}/blocks")
def studies_blocks(study_id: uuid.UUID, caller: Caller = Depends(get_caller), session: Session = Depends(get_session)):
    study = study_service.get_visible_study(session, caller, study_id)
    return ok([study_service.block_to_dict(b) for b in study_service.list_blocks(session, study.id)])


@router.put("/{study_id}/blocks")
def studies_blocks_replace(
    study_id: uuid.UUID,
    body: BlocksReplace,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    blocks = study_service.replace_blocks(session, caller, study_id, body.blocks)
    return ok([study_service.block_to_dict(b) for b in blocks])


@router.get("/{study_id}/applications")
def studies_applications(
    study_id: uuid.UUID,
    status: ApplicationStatus | None = None,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Applications of one study, for its owner or an admin. Optional status filter."""
    apps = application_service.list_for_study(session, caller, study_id, status)
    return ok([application_service.application_to_dict(a) for a in apps])


@router.get("/{study_id}/sessions")
def studies_sessions(
    study_id: uuid.UUID,
    status: SessionStatus | None = None,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Sessions of one study with their recorded answers and a completion summary."""
    sessions = session_service.list_for_study(session, caller, study_id, status)
    responses = session_service.responses_by_session(session, [s.id for s in sessions])
    total_blocks = len(study_service.list_blocks(session, study_id))
    return ok({
        "sessions": [
            session_service.session_to_dict(s, responses=responses[s.id], total_blocks=total_blocks)
            for s in sessions
        ],
        "summary": {
            "total": len(sessions),
            "active": sum(1 for s in sessions if s.status == SessionStatus.ACTIVE.value),
            "completed": sum(1 for s in sessions if s.status == SessionStatus.COMPLETED.value),
        },
    })


@router.get("/{study_id}/audit_trail")
def studies_audit_trail(study_id: uuid.UUID, caller: Caller = Depends(get_caller), session: Session = Depends(get_session)):
    """Chained audit entries of a study and whether the chain verifies."""
    study = study_service.get_study(session, study_id)
    require_reviewer(session, caller, study)
    entries = list_audit_trail(session, study.id)
    return ok({
        "entries": [
            {
                "action_type": e.action_type,
                "actor_id": e.actor_id,
                "details": json.loads(e.details or "{}"),
                "previous_hash": e.previous_hash,
                "entry_hash": e.entry_hash,
                "created_at": e.created_at.isoformat(),
            }
            for e in entries
        ],
        "verification": verify_audit_chain(entries),
    })
