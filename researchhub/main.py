# SPDX-License-Identifier: Apache-2.0
"""FastAPI app factory. Thin layer: security middleware + routers only."""
import logging

from fastapi import FastAPI

from researchhub import __version__
from researchhub.config import settings
from researchhub.core.security import add_security_middleware, get_limiter
from researchhub.database import create_db_and_tables
from researchhub.routers import admin, applications, profiles, sessions, studies, system


def create_app() -> FastAPI:
    logging.getLogger("researchhub").setLevel(settings.log_level.upper())
    app = FastAPI(title="ResearchHub API", version=__version__)
    app.state.limiter = get_limiter()

    add_security_middleware(app)

    @app.on_event("startup")
    def on_startup():
        create_db_and_tables()

    app.include_router(studies.router, prefix="/studies")
    app.include_router(applications.router, prefix="/applications")
    app.include_router(sessions.router, prefix="/sessions")
    app.include_router(profiles.router, prefix="/profiles")
    app.include_router(admin.router, prefix="/admin")
    app.include_router(system.router, prefix="/system")

    return app


app = create_app()
