# (c) Copyright Datacraft, 2026
"""Review and workflow history database API."""

import uuid
from datetime import datetime

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .orm import DocumentReview, ReviewStatus, WorkflowHistory


async def record_history(
	session: AsyncSession,
	tenant_id: uuid.UUID,
	document_id: uuid.UUID,
	from_status: str,
	to_status: str,
	actor_id: uuid.UUID,
	comment: str | None,
	now: datetime,
) -> WorkflowHistory:
	entry = WorkflowHistory(
		tenant_id=tenant_id,
		document_id=document_id,
		from_status=from_status,
		to_status=to_status,
		actor_id=actor_id,
		comment=comment,
		created_at=now,
	)
	session.add(entry)
	await session.flush()
	return entry


async def list_history(
	session: AsyncSession,
	tenant_id: uuid.UUID,
	document_ids: list[uuid.UUID],
) -> list[WorkflowHistory]:
	"""History of the given documents, newest first."""
	if not document_ids:
		return []
	stmt = (
		select(WorkflowHistory)
		.where(
			and_(
				WorkflowHistory.tenant_id == tenant_id,
				WorkflowHistory.document_id.in_(document_ids),
			)
		)
		.order_by(WorkflowHistory.created_at.desc(), WorkflowHistory.id.desc())
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def latest_cycle_number(
	session: AsyncSession,
	document_id: uuid.UUID,
) -> int:
	stmt = select(func.max(DocumentReview.cycle_number)).where(
		DocumentReview.document_id == document_id
	)
	result = await session.execute(stmt)
	return result.scalar_one_or_none() or 0


async def list_cycle_reviews(
	session: AsyncSession,
	document_id: uuid.UUID,
	cycle_number: int,
) -> list[DocumentReview]:
	stmt = (
		select(DocumentReview)
		.where(
			and_(
				DocumentReview.document_id == document_id,
				DocumentReview.cycle_number == cycle_number,
			)
		)
		.order_by(DocumentReview.stage_number, DocumentReview.created_at)
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def list_reviews(
	session: AsyncSession,
	tenant_id: uuid.UUID,
	document_ids: list[uuid.UUID],
) -> list[DocumentReview]:
	if not document_ids:
		return []
	stmt = (
		select(DocumentReview)
		.where(
			and_(
				DocumentReview.tenant_id == tenant_id,
				DocumentReview.document_id.in_(document_ids),
			)
		)
		.order_by(
			DocumentReview.cycle_number.desc(),
			DocumentReview.stage_number,
			DocumentReview.created_at,
		)
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def get_pending_review(
	session: AsyncSession,
	document_id: uuid.UUID,
	reviewer_id: uuid.UUID,
) -> DocumentReview | None:
	stmt = (
		select(DocumentReview)
		.where(
			and_(
				DocumentReview.document_id == document_id,
				DocumentReview.reviewer_id == reviewer_id,
				DocumentReview.status == ReviewStatus.PENDING.value,
			)
		)
		.order_by(DocumentReview.stage_number)
		.limit(1)
		.with_for_update()
	)
	result = await session.execute(stmt)
	return result.scalar_one_or_none()


async def count_pending(
	session: AsyncSession,
	document_id: uuid.UUID,
) -> int:
	stmt = select(func.count()).select_from(DocumentReview).where(
		and_(
			DocumentReview.document_id == document_id,
			DocumentReview.status == ReviewStatus.PENDING.value,
		)
	)
	result = await session.execute(stmt)
	return result.scalar_one()


async def cancel_pending(
	session: AsyncSession,
	document_id: uuid.UUID,
	now: datetime,
	exclude_id: uuid.UUID | None = None,
) -> int:
	"""Cancel every PENDING review of a document; returns how many moved."""
	conditions = [
		DocumentReview.document_id == document_id,
		DocumentReview.status == ReviewStatus.PENDING.value,
	]
	if exclude_id is not None:
		conditions.append(DocumentReview.id != exclude_id)
	stmt = (
		update(DocumentReview)
		.where(and_(*conditions))
		.values(status=ReviewStatus.CANCELLED.value, reviewed_at=now)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount


async def decide_review(
	session: AsyncSession,
	review_id: uuid.UUID,
	status: ReviewStatus,
	comment: str | None,
	now: datetime,
) -> int:
	"""Record a decision on a review that is still PENDING."""
	stmt = (
		update(DocumentReview)
		.where(
			and_(
				DocumentReview.id == review_id,
				DocumentReview.status == ReviewStatus.PENDING.value,
			)
		)
		.values(status=status.value, comment=comment, reviewed_at=now)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount
