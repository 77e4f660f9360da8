# SPDX-License-Identifier: Apache-2.0
"""Append-only audit trail with chained hashes."""
from __future__ import annotations

import json
import uuid
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from researchhub.config import INITIAL_HASH
from researchhub.core.exceptions import ConflictError
from researchhub.core.security import sha3_256_hex
from researchhub.models import AuditLog
from researchhub.models.base import utcnow


def _ts(dt: datetime) -> str:
    # naive form so the hash survives databases that drop tzinfo on read
    return dt.replace(tzinfo=None).isoformat(timespec="microseconds")


def _entry_hash(action_type: str, actor_id: str, details_json: str, ts_str: str, previous_hash: str) -> str:
    return sha3_256_hex(f"{action_type}{actor_id}{details_json}{ts_str}{previous_hash}")


def _last_entry(session: Session, study_id: uuid.UUID | None) -> AuditLog | None:
    if study_id is None:
        return None
    stmt = select(AuditLog).where(AuditLog.study_id == study_id).order_by(AuditLog.id.desc()).limit(1)
    return session.exec(stmt).first()


def write_audit_log(
    session: Session,
    study_id: uuid.UUID | None,
    action_type: str,
    actor_id: str,
    details: dict,
) -> AuditLog:
    """Append-only Audit Log: previous_hash chain per study, entry_hash = SHA3-256(...).

    Does not commit; the entry lands in the same transaction as the change it records.
    The entry is flushed here so that a concurrent writer that linked to the same
    predecessor first turns into ConflictError and the whole transaction rolls back.
    """
    last = _last_entry(session, study_id)
    previous_hash = last.entry_hash if last else INITIAL_HASH
    now = utcnow()
    details_json = json.dumps(details, sort_keys=True, default=str)
    entry = AuditLog(
        study_id=study_id,
        action_type=action_type,
        actor_id=actor_id,
        details=details_json,
        previous_hash=previous_hash,
        entry_hash=_entry_hash(action_type, actor_id, details_json, _ts(now), previous_hash),
        created_at=now,
    )
    session.add(entry)
    try:
        session.flush()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError("The study changed concurrently; retry the request") from e
    return entry


def list_audit_trail(session: Session, study_id: uuid.UUID) -> list[AuditLog]:
    return list(session.exec(select(AuditLog).where(AuditLog.study_id == study_id).order_by(AuditLog.id.asc())))


def verify_audit_chain(entries: list[AuditLog]) -> dict:
    """Recompute every entry hash and check each links to its predecessor."""
    previous_hash = INITIAL_HASH
    for i, entry in enumerate(entries):
        expected = _entry_hash(entry.action_type, entry.actor_id, entry.details, _ts(entry.created_at), entry.previous_hash)
        if entry.previous_hash != previous_hash or entry.entry_hash != expected:
            return {"verified": False, "entries": len(entries), "broken_at": i}
        previous_hash = entry.entry_hash
    return {"verified": True, "entries": len(entries), "broken_at": None}
