# SPDX-License-Identifier: Apache-2.0
"""Profile endpoints: who am I, admin role assignment."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from researchhub.core.identity import Caller, get_caller
from researchhub.database import get_session
from researchhub.models import Profile
from researchhub.models.base import utcnow
from researchhub.schemas import ProfileUpsert, ok
from researchhub.services.access_service import require_role, resolve_role

router = APIRouter(tags=["profiles"])


@router.get("/me")
def profiles_me(caller: Caller = Depends(get_caller), session: Session = Depends(get_session)):
    """Identity as the guard sees it: token claim, stored role, and the role that counts."""
    profile = session.get(Profile, caller.user_id)
    return ok({
        "user_id": caller.user_id,
        "email": caller.email or (profile.email if profile else ""),
        "token_role": caller.token_role,
        "profile_role": profile.role if profile else None,
        "role": resolve_role(session, caller),
    })


@router.put("/{user_id}")
def profiles_upsert(
    user_id: str,
    body: ProfileUpsert,
    caller: Caller = Depends(get_caller),
    session: Session = Depends(get_session),
):
    require_role(session, caller, ("admin",))
    profile = session.get(Profile, user_id) or Profile(user_id=user_id)
    profile.email = body.email or profile.email
    profile.role = body.role
    profile.updated_at = utcnow()
    session.add(profile)
    session.commit()
    session.refresh(profile)
    return ok({"user_id": profile.user_id, "email": profile.email, "role": profile.role})
