# SPDX-License-Identifier: Apache-2.0
"""Health and version endpoints."""
import sys

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlmodel import Session

from researchhub import __version__
from researchhub.database import get_session

router = APIRouter(tags=["system"])


@router.get("/health")
def health():
    """Liveness."""
    return {"status": "ok"}


@router.get("/ready")
def ready(session: Session = Depends(get_session)):
    """Readiness: the database answers."""
    session.execute(text("SELECT 1"))
    return {"status": "ok"}


@router.get("/version")
def version():
    import fastapi

    return {
        "version": __version__,
        "fastapi_version": getattr(fastapi, "__version__", "unknown"),
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    }
