# SPDX-License-Identifier: Apache-2.0
"""Access control guard: one role resolver plus ownership checks used by every lifecycle."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlmodel import Session

from researchhub.config import ROLES, settings
from researchhub.core.exceptions import AuthorizationError
from researchhub.core.identity import Caller
from researchhub.core.lifecycle import StudyStatus
from researchhub.models import Profile, Study

logger = logging.getLogger("researchhub")


def _known(role: str | None) -> str | None:
    return role if role in ROLES else None


def resolve_role(session: Session, caller: Caller, role_source: str | None = None) -> str | None:
    """The single source of truth for a caller's role.

    ``profile``: stored profile wins, token claim only when no profile exists.
    ``token``: token claim wins, profile only when the token carries none.
    ``parity``: when both exist they must agree.
    Returns None when neither source names a known role.
    """
    source = role_source or settings.role_source
    profile = session.get(Profile, caller.user_id)
    profile_role = _known(profile.role) if profile else None
    token_role = _known(caller.token_role)
    if source == "token":
        return token_role or profile_role
    if source == "parity":
        if profile_role and token_role and profile_role != token_role:
            logger.warning(
                "Role mismatch for %s: profile=%s token=%s", caller.user_id, profile_role, token_role
            )
            raise AuthorizationError("Role could not be established")
        return profile_role or token_role
    return profile_role or token_role


def require_role(
    session: Session,
    caller: Caller,
    allowed_roles: Iterable[str],
    role_source: str | None = None,
) -> str:
    role = resolve_role(session, caller, role_source)
    if role not in set(allowed_roles):
        raise AuthorizationError("Your role does not allow this action")
    return role


def is_admin(session: Session, caller: Caller, role_source: str | None = None) -> bool:
    return resolve_role(session, caller, role_source) == "admin"


def can_review(session: Session, caller: Caller, study: Study, role_source: str | None = None) -> bool:
    """Admins, or the researcher who owns the study."""
    role = resolve_role(session, caller, role_source)
    if role == "admin":
        return True
    return role == "researcher" and study.owner_id == caller.user_id


def can_view_study(session: Session, caller: Caller, study: Study, role_source: str | None = None) -> bool:
    if study.status == StudyStatus.ACTIVE.value and study.is_public:
        return True
    if study.owner_id == caller.user_id:
        return True
    return is_admin(session, caller, role_source)


def require_reviewer(session: Session, caller: Caller, study: Study) -> None:
    if not can_review(session, caller, study):
        raise AuthorizationError("Only the study owner or an admin may do this")
