# SPDX-License-Identifier: Apache-2.0
"""Admin dashboard endpoints."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from researchhub.core.identity import Caller, get_caller
from researchhub.database import get_session
from researchhub.schemas import ok
from researchhub.services.access_service import require_role
from researchhub.services.admin_service import overview

router = APIRouter(tags=["admin"])


@router.get("/overview")
def admin_overview(caller: Caller = Depends(get_caller), session: Session = Depends(get_session)):
    require_role(session, caller, ("admin",))
    return ok(overview(session))
