# SPDX-License-Identifier: Apache-2.0
"""Status values and allowed transitions for studies, applications and sessions."""
from __future__ import annotations

from enum import Enum

from researchhub.config import settings
from researchhub.core.exceptions import StateError


class StudyStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


class ApplicationStatus(str, Enum):
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class ReviewDecision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"

    @property
    def target_status(self) -> ApplicationStatus:
        return ApplicationStatus.ACCEPTED if self is ReviewDecision.ACCEPT else ApplicationStatus.REJECTED


# current status -> statuses reachable from it; missing or empty means terminal
STUDY_TRANSITIONS: dict[str, set[str]] = {
    StudyStatus.DRAFT.value: {StudyStatus.ACTIVE.value, StudyStatus.CLOSED.value},
    StudyStatus.ACTIVE.value: {StudyStatus.CLOSED.value},
    StudyStatus.CLOSED.value: set(),
}

APPLICATION_TRANSITIONS: dict[str, set[str]] = {
    ApplicationStatus.SUBMITTED.value: {ApplicationStatus.ACCEPTED.value, ApplicationStatus.REJECTED.value},
    ApplicationStatus.ACCEPTED.value: set(),
    ApplicationStatus.REJECTED.value: set(),
}

SESSION_TRANSITIONS: dict[str, set[str]] = {
    SessionStatus.ACTIVE.value: {SessionStatus.COMPLETED.value},
    SessionStatus.COMPLETED.value: set(),
}


def _value(status: str | Enum) -> str:
    return status.value if isinstance(status, Enum) else status


def can_transition(table: dict[str, set[str]], current: str | Enum, target: str | Enum) -> bool:
    """Check whether a transition from current to target is listed in table."""
    return _value(target) in table.get(_value(current), set())


def validate_transition(table: dict[str, set[str]], current: str | Enum, target: str | Enum, entity: str) -> None:
    """Raise StateError if the transition is not allowed."""
    if not can_transition(table, current, target):
        raise StateError(f"Cannot move {entity} from {_value(current)} to {_value(target)}")


def is_complete(
    block_type: str | None,
    is_last_block: bool,
    block_id: str | None,
    closing_type: str | None = None,
) -> bool:
    """True when the answered block ends the study.

    Any of: the block is of the closing type, the caller flagged it as the last
    block, or its id contains the closing type (ids like ``block_7_thank_you``).
    """
    sentinel = closing_type or settings.closing_block_type
    if block_type == sentinel:
        return True
    if is_last_block:
        return True
    return bool(block_id) and sentinel in block_id
