# (c) Copyright Datacraft, 2026
"""Audit sink used by every workflow operation."""
import logging
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from docflow.core.db.unit_of_work import UnitOfWork
from docflow.core.features.workflows.errors import AuditChainConflictError
from docflow.core.utils.tz import Clock, SystemClock

from .db.orm import AuditChainHead, AuditLog
from .security import calculate_audit_hash

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
	async def record(
		self,
		uow: UnitOfWork,
		*,
		tenant_id: UUID,
		actor_id: UUID | None,
		entity_type: str,
		entity_id: UUID | None,
		action: str,
		details: str,
		metadata: dict[str, Any] | None = None,
	) -> None:
		...


class SqlAuditSink:
	"""
	Appends hash-chained entries to ``dms_audit_log`` in the caller's
	transaction.

	Appends for one tenant are serialised on its chain head row. A
	collision on the sequence number still surfaces as a retryable
	``AuditChainConflictError`` instead of forking the chain.
	"""

	def __init__(self, clock: Clock | None = None):
		self.clock = clock or SystemClock()

	async def record(
		self,
		uow: UnitOfWork,
		*,
		tenant_id: UUID,
		actor_id: UUID | None,
		entity_type: str,
		entity_id: UUID | None,
		action: str,
		details: str,
		metadata: dict[str, Any] | None = None,
	) -> None:
		head = (
			await uow.session.execute(
				select(AuditChainHead)
				.where(AuditChainHead.tenant_id == tenant_id)
				.with_for_update()
			)
		).scalar_one_or_none()
		if head is None:
			head = AuditChainHead(tenant_id=tenant_id, sequence=0, hash=None)
			uow.session.add(head)
		sequence, previous_hash = head.sequence + 1, head.hash

		entry = AuditLog(
			tenant_id=tenant_id,
			sequence=sequence,
			actor_id=actor_id,
			entity_type=entity_type,
			entity_id=entity_id,
			action=action,
			details=details,
			extra=metadata,
			timestamp=self.clock.now(),
			previous_hash=previous_hash,
		)
		entry.hash = calculate_audit_hash(entry, previous_hash)
		uow.session.add(entry)
		head.sequence = sequence
		head.hash = entry.hash

		try:
			await uow.session.flush()
		except IntegrityError as e:
			logger.info(f"Audit sequence {sequence} for tenant {tenant_id} lost to a concurrent append")
			raise AuditChainConflictError(tenant_id, sequence) from e
		logger.debug(f"Audit {action} on {entity_type} {entity_id} (seq {sequence})")
