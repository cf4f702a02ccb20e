# (c) Copyright Datacraft, 2026
"""Review cycle and workflow history ORM models."""
from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from uuid_extensions import uuid7

from docflow.core.db.base import Base
from docflow.core.utils.tz import utc_now


class ReviewStatus(str, Enum):
	PENDING = "PENDING"
	APPROVED = "APPROVED"
	REJECTED = "REJECTED"
	CANCELLED = "CANCELLED"


class ReviewDecision(str, Enum):
	APPROVE = "APPROVE"
	REJECT = "REJECT"


class DocumentReview(Base):
	"""One reviewer's assignment within one review cycle."""
	__tablename__ = "dms_document_reviews"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
	document_id: Mapped[UUID] = mapped_column(
		ForeignKey("dms_documents.id", ondelete="RESTRICT"), nullable=False
	)
	reviewer_id: Mapped[UUID] = mapped_column(nullable=False)
	cycle_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
	# Advisory grouping only; all stages resolve in parallel
	stage_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

	status: Mapped[str] = mapped_column(
		String(20), default=ReviewStatus.PENDING.value, nullable=False
	)
	reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
	comment: Mapped[str | None] = mapped_column(Text)

	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)

	def __repr__(self) -> str:
		return f"DocumentReview({self.document_id=}, {self.reviewer_id=}, {self.status=})"

	__table_args__ = (
		Index("idx_dms_reviews_pending", "document_id", "status"),
		Index("idx_dms_reviews_reviewer", "reviewer_id", "status"),
	)


class WorkflowHistory(Base):
	"""Append-only record of one status transition."""
	__tablename__ = "dms_workflow_history"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False)
	document_id: Mapped[UUID] = mapped_column(
		ForeignKey("dms_documents.id", ondelete="RESTRICT"), nullable=False
	)
	from_status: Mapped[str] = mapped_column(String(20), nullable=False)
	to_status: Mapped[str] = mapped_column(String(20), nullable=False)
	actor_id: Mapped[UUID] = mapped_column(nullable=False)
	comment: Mapped[str | None] = mapped_column(Text)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)

	__table_args__ = (
		Index("idx_dms_workflow_history_document", "tenant_id", "document_id"),
	)
