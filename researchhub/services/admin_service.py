# SPDX-License-Identifier: Apache-2.0
"""Admin dashboard aggregates."""
from __future__ import annotations

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from researchhub.models import Application, Profile, Study, StudySession


def _count_by_status(session: Session, model: type[SQLModel]) -> dict[str, int]:
    rows = session.exec(select(model.status, func.count()).group_by(model.status)).all()
    return {status: count for status, count in rows}


def overview(session: Session) -> dict:
    """Row counts grouped by status for studies, applications and sessions, plus users by role."""
    roles = session.exec(select(Profile.role, func.count()).group_by(Profile.role)).all()
    return {
        "studies": _count_by_status(session, Study),
        "applications": _count_by_status(session, Application),
        "sessions": _count_by_status(session, StudySession),
        "profiles": {role: count for role, count in roles},
    }
