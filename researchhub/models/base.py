# SPDX-License-Identifier: Apache-2.0
"""Shared column defaults."""
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
