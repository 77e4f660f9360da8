# SPDX-License-Identifier: Apache-2.0
"""SQLModel table definitions."""
from researchhub.models.application import Application
from researchhub.models.audit import AuditLog
from researchhub.models.profile import Profile
from researchhub.models.session import SessionResponse, StudySession
from researchhub.models.study import Study, StudyBlock

__all__ = [
    "Application",
    "AuditLog",
    "Profile",
    "SessionResponse",
    "Study",
    "StudyBlock",
    "StudySession",
]
