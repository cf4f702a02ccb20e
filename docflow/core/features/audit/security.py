# (c) Copyright Datacraft, 2026
"""Cryptographic verification for immutable audit logs."""
import hashlib
import json
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.core.utils.tz import ensure_aware

from .db.orm import AuditLog

logger = logging.getLogger(__name__)


def calculate_audit_hash(entry: AuditLog, previous_hash: Optional[str]) -> str:
    """
    Calculate the SHA-256 hash of an audit log entry.

    Timestamps are normalised to UTC and metadata is serialised as sorted
    JSON, so the hash is stable across a database round trip.
    """
    timestamp = ensure_aware(entry.timestamp)
    extra = json.dumps(entry.extra, sort_keys=True, default=str) if entry.extra else ''
    data = (
        f"{entry.sequence}"
        f"{timestamp.isoformat() if timestamp else ''}"
        f"{entry.entity_type or ''}"
        f"{str(entry.entity_id) if entry.entity_id else ''}"
        f"{entry.action or ''}"
        f"{str(entry.actor_id) if entry.actor_id else ''}"
        f"{entry.details or ''}"
        f"{extra}"
        f"{previous_hash or ''}"
    )

    return hashlib.sha256(data.encode()).hexdigest()


async def verify_audit_chain(
    session: AsyncSession,
    tenant_id: UUID,
) -> tuple[bool, Optional[str]]:
    """
    Verify the integrity of one tenant's audit log chain.
    Returns (success, error_message).
    """
    stmt = (
        select(AuditLog)
        .where(AuditLog.tenant_id == tenant_id)
        .order_by(AuditLog.sequence.asc())
    )
    result = await session.execute(stmt)
    entries = result.scalars().all()

    expected_previous_hash = None

    for entry in entries:
        if entry.previous_hash != expected_previous_hash:
            msg = f"Audit chain broken at entry {entry.id}: expected previous_hash {expected_previous_hash}, got {entry.previous_hash}"
            logger.error(msg)
            return False, msg

        if calculate_audit_hash(entry, entry.previous_hash) != entry.hash:
            msg = f"Audit entry {entry.id} was modified: stored hash does not match its content"
            logger.error(msg)
            return False, msg

        expected_previous_hash = entry.hash

    return True, None
