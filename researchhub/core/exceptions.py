# SPDX-License-Identifier: Apache-2.0
"""Custom exception classes.

Each kind maps to one stable HTTP status and a machine-readable ``kind`` the UI
branches on. Messages are user-facing and never carry persistence details.
"""
from __future__ import annotations


class ResearchHubError(Exception):
    """Base exception for ResearchHub."""

    kind = "error"
    status_code = 500


class ValidationError(ResearchHubError):
    """Malformed or ineligible input (e.g. applying to a study that is not visible)."""

    kind = "validation_error"
    status_code = 400


class AuthenticationError(ResearchHubError):
    """Missing, expired or invalid bearer credential."""

    kind = "authentication_error"
    status_code = 401


class AuthorizationError(ResearchHubError):
    """Caller lacks the role or ownership required."""

    kind = "authorization_error"
    status_code = 403


class NotFoundError(ResearchHubError):
    """Resource not found."""

    kind = "not_found"
    status_code = 404


class ConflictError(ResearchHubError):
    """Uniqueness violation or lost race (duplicate application, duplicate active session)."""

    kind = "conflict_error"
    status_code = 409


class StateError(ResearchHubError):
    """Operation not valid for the current lifecycle state."""

    kind = "state_error"
    status_code = 409
