# SPDX-License-Identifier: Apache-2.0
"""Application lifecycle: submit, review, listings.

submitted -> accepted | rejected, both terminal. Uniqueness of open applications
is left to the partial unique index on ``applications``; a lost race surfaces
as an IntegrityError and becomes ConflictError.
"""
from __future__ import annotations

import json
import logging
import uuid

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
    APPLICATION_TRANSITIONS,
    ApplicationStatus,
    ReviewDecision,
    StudyStatus,
    validate_transition,
)
from researchhub.core.security import sanitize_text
from researchhub.models import Application
from researchhub.models.base import utcnow
from researchhub.services.access_service import can_review, require_reviewer, require_role
from researchhub.services.audit_service import write_audit_log
from researchhub.services.study_service import get_study

logger = logging.getLogger("researchhub")


def application_to_dict(app: Application) -> dict:
    try:
        responses = json.loads(app.responses or "{}")
    except (json.JSONDecodeError, TypeError):
        responses = {}
    return {
        "id": str(app.id),
        "study_id": str(app.study_id),
        "participant_id": app.participant_id,
        "status": app.status,
        "responses": responses,
        "notes": app.notes,
        "reviewed_by": app.reviewed_by,
        "reviewed_at": app.reviewed_at.isoformat() if app.reviewed_at else None,
        "created_at": app.created_at.isoformat(),
    }


def get_application(session: Session, application_id: uuid.UUID) -> Application:
    app = session.get(Application, application_id)
    if not app:
        raise NotFoundError("Application not found")
    return app


def get_application_for(session: Session, caller: Caller, application_id: uuid.UUID) -> Application:
    """Visible to the applicant, the study owner and admins."""
    app = get_application(session, application_id)
    if app.participant_id == caller.user_id:
        return app
    if not can_review(session, caller, get_study(session, app.study_id)):
        raise AuthorizationError("You cannot view this application")
    return app


def submit(session: Session, caller: Caller, study_id: uuid.UUID, responses: dict) -> Application:
    require_role(session, caller, ("participant",))
    study = get_study(session, study_id)
    if study.status != StudyStatus.ACTIVE.value or not study.is_public:
        raise ValidationError("This study is not open for applications")
    responses_json = json.dumps(responses or {}, sort_keys=True, default=str)
    if len(responses_json.encode("utf-8")) > settings.max_response_bytes:
        raise ValidationError("Application responses are too large")
    app = Application(
        study_id=study.id,
        participant_id=caller.user_id,
        status=ApplicationStatus.SUBMITTED.value,
        responses=responses_json,
    )
    session.add(app)
    try:
        session.flush()
    except IntegrityError as e:
        session.rollback()
        logger.warning("Duplicate application by %s for study %s", caller.user_id, study_id)
        raise ConflictError("You already have an open application for this study") from e
    write_audit_log(session, study.id, "application_submitted", caller.user_id, {"application_id": str(app.id)})
    session.commit()
    session.refresh(app)
    logger.info("Application %s submitted for study %s", app.id, study.id)
    return app


def review(
    session: Session,
    caller: Caller,
    application_id: uuid.UUID,
    decision: ReviewDecision,
    notes: str = "",
) -> Application:
    """Accept or reject a submitted application. A second review always fails with StateError."""
    app = get_application(session, application_id)
    study = get_study(session, app.study_id)
    require_reviewer(session, caller, study)
    target = decision.target_status
    validate_transition(APPLICATION_TRANSITIONS, app.status, target, "application")
    result = session.execute(
        update(Application)
        .where(Application.id == app.id, Application.status == ApplicationStatus.SUBMITTED.value)
        .values(
            status=target.value,
            reviewed_by=caller.user_id,
            reviewed_at=utcnow(),
            notes=sanitize_text(notes),
        )
    )
    if result.rowcount != 1:
        session.rollback()
        raise StateError("Application has already been reviewed")
    write_audit_log(
        session, study.id, "application_reviewed", caller.user_id,
        {"application_id": str(app.id), "decision": decision.value},
    )
    session.commit()
    session.refresh(app)
    logger.info("Application %s %s by %s", app.id, app.status, caller.user_id)
    return app


def list_for_participant(session: Session, participant_id: str) -> list[Application]:
    stmt = (
        select(Application)
        .where(Application.participant_id == participant_id)
        .order_by(Application.created_at.desc())
    )
    return list(session.exec(stmt))


def list_for_study(
    session: Session,
    caller: Caller,
    study_id: uuid.UUID,
    status: ApplicationStatus | None = None,
) -> list[Application]:
    """Same ownership rule as review."""
    study = get_study(session, study_id)
    require_reviewer(session, caller, study)
    stmt = select(Application).where(Application.study_id == study.id)
    if status is not None:
        stmt = stmt.where(Application.status == status.value)
    return list(session.exec(stmt.order_by(Application.created_at.asc())))
