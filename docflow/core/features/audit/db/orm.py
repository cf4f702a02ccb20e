# (c) Copyright Datacraft, 2026
"""Hash-chained audit log ORM model."""
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from uuid_extensions import uuid7

from docflow.core.db.base import Base
from docflow.core.utils.tz import utc_now


class AuditLog(Base):
	"""
	Immutable audit entry.

	Entries of one tenant form a chain: each row stores the hash of its
	predecessor (by ``sequence``) so tampering breaks the link.
	"""
	__tablename__ = "dms_audit_log"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
	sequence: Mapped[int] = mapped_column(Integer, nullable=False)

	actor_id: Mapped[UUID | None] = mapped_column()
	entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
	entity_id: Mapped[UUID | None] = mapped_column(index=True)
	action: Mapped[str] = mapped_column(String(100), nullable=False)
	details: Mapped[str | None] = mapped_column(Text)
	# "metadata" is reserved on declarative classes
	extra: Mapped[dict[str, Any] | None] = mapped_column("metadata")

	timestamp: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)
	hash: Mapped[str] = mapped_column(String(64), nullable=False)
	previous_hash: Mapped[str | None] = mapped_column(String(64))

	def __repr__(self) -> str:
		return f"AuditLog({self.action=}, {self.entity_id=}, {self.sequence=})"

	__table_args__ = (
		UniqueConstraint("tenant_id", "sequence", name="uq_dms_audit_log_sequence"),
	)


class AuditChainHead(Base):
	"""Last sequence and hash of one tenant's chain, locked by every append."""
	__tablename__ = "dms_audit_chain_heads"

	tenant_id: Mapped[UUID] = mapped_column(primary_key=True)
	sequence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
	hash: Mapped[str | None] = mapped_column(String(64))
