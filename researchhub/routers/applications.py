# SPDX-License-Identifier: Apache-2.0
"""Application endpoints: submit, list own, get, review."""
import uuid

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from researchhub.core.identity import Caller, get_caller
from researchhub.core.security import rate_limit
from researchhub.database import get_session
from researchhub.schemas import ApplicationReview, ApplicationSubmit, ok
from researchhub.services import application_service

router = APIRouter(tags=["applications"])


@router.post("", status_code=201)
@rate_limit()
def applications_submit(
    request: Request,
    body: ApplicationSubmit,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    app = application_service.submit(session, caller, body.study_id, body.responses)
    return ok(application_service.application_to_dict(app))


@router.get("/mine")
def applications_mine(caller: Caller = Depends(get_caller), session: Session = Depends(get_session)):
    apps = application_service.list_for_participant(session, caller.user_id)
    return ok([application_service.application_to_dict(a) for a in apps])


@router.get("/{application_id}")
def applications_get(
    application_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    app = application_service.get_application_for(session, caller, application_id)
    return ok(application_service.application_to_dict(app))


@router.post("/{application_id}/review")
@rate_limit()
def applications_review(
    request: Request,
    application_id: uuid.UUID,
    body: ApplicationReview,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """Accept or reject. Only the study owner or an admin; only once."""
    app = application_service.review(session, caller, application_id, body.decision, body.notes)
    return ok(application_service.application_to_dict(app))
