# (c) Copyright Datacraft, 2026
"""Documents database API."""

import uuid
from datetime import datetime

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .orm import (
	Document,
	DocumentAcknowledgement,
	DocumentComment,
	DocumentSequence,
	DocumentStatus,
	DocumentVersion,
	DocumentVersionAttachment,
)


async def get_document(
	session: AsyncSession,
	document_id: uuid.UUID,
	tenant_id: uuid.UUID,
	for_update: bool = False,
) -> Document | None:
	"""Get document by ID within a tenant, optionally locking the row."""
	stmt = select(Document).where(
		and_(
			Document.id == document_id,
			Document.tenant_id == tenant_id,
		)
	)
	if for_update:
		stmt = stmt.with_for_update()
	stmt = stmt.execution_options(populate_existing=True)
	result = await session.execute(stmt)
	return result.scalar_one_or_none()


async def get_document_status(
	session: AsyncSession,
	document_id: uuid.UUID,
	tenant_id: uuid.UUID,
) -> str | None:
	stmt = select(Document.status).where(
		and_(
			Document.id == document_id,
			Document.tenant_id == tenant_id,
		)
	)
	result = await session.execute(stmt)
	return result.scalar_one_or_none()


async def compare_and_set_status(
	session: AsyncSession,
	document_id: uuid.UUID,
	tenant_id: uuid.UUID,
	expected: DocumentStatus,
	new_status: DocumentStatus,
	actor_id: uuid.UUID,
	now: datetime,
	**values,
) -> int:
	"""
	Move a document to ``new_status`` only if it is still ``expected``.

	Returns the number of rows changed; zero means another writer got there
	first.
	"""
	stmt = (
		update(Document)
		.where(
			and_(
				Document.id == document_id,
				Document.tenant_id == tenant_id,
				Document.status == expected.value,
			)
		)
		.values(
			status=new_status.value,
			updated_by=actor_id,
			updated_at=now,
			**values,
		)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount


async def link_successor(
	session: AsyncSession,
	document_id: uuid.UUID,
	tenant_id: uuid.UUID,
	successor_id: uuid.UUID,
	actor_id: uuid.UUID,
	now: datetime,
) -> int:
	"""Point an APPROVED document at its successor unless one is already set."""
	stmt = (
		update(Document)
		.where(
			and_(
				Document.id == document_id,
				Document.tenant_id == tenant_id,
				Document.status == DocumentStatus.APPROVED.value,
				Document.superseded_by_id.is_(None),
			)
		)
		.values(
			superseded_by_id=successor_id,
			updated_by=actor_id,
			updated_at=now,
		)
		.execution_options(synchronize_session=False)
	)
	result = await session.execute(stmt)
	return result.rowcount


async def get_version(
	session: AsyncSession,
	version_id: uuid.UUID,
	tenant_id: uuid.UUID,
) -> DocumentVersion | None:
	stmt = select(DocumentVersion).where(
		and_(
			DocumentVersion.id == version_id,
			DocumentVersion.tenant_id == tenant_id,
		)
	)
	result = await session.execute(stmt)
	return result.scalar_one_or_none()


async def freeze_version(
	session: AsyncSession,
	version_id: uuid.UUID,
	tenant_id: uuid.UUID,
) -> None:
	stmt = (
		update(DocumentVersion)
		.where(
			and_(
				DocumentVersion.id == version_id,
				DocumentVersion.tenant_id == tenant_id,
			)
		)
		.values(is_frozen=True)
		.execution_options(synchronize_session=False)
	)
	await session.execute(stmt)


async def set_version_storage_key(
	session: AsyncSession,
	version_id: uuid.UUID,
	storage_key: str,
) -> None:
	stmt = (
		update(DocumentVersion)
		.where(DocumentVersion.id == version_id)
		.values(storage_key=storage_key)
		.execution_options(synchronize_session=False)
	)
	await session.execute(stmt)


async def latest_version_number(
	session: AsyncSession,
	document_id: uuid.UUID,
) -> int:
	"""Highest version number of a document, 0 when it has none."""
	stmt = select(func.max(DocumentVersion.version_number)).where(
		DocumentVersion.document_id == document_id
	)
	result = await session.execute(stmt)
	return result.scalar_one_or_none() or 0


async def list_versions(
	session: AsyncSession,
	document_ids: list[uuid.UUID],
	tenant_id: uuid.UUID,
) -> list[DocumentVersion]:
	if not document_ids:
		return []
	stmt = (
		select(DocumentVersion)
		.where(
			and_(
				DocumentVersion.document_id.in_(document_ids),
				DocumentVersion.tenant_id == tenant_id,
			)
		)
		.order_by(DocumentVersion.created_at.desc(), DocumentVersion.version_number.desc())
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def list_attachments(
	session: AsyncSession,
	version_id: uuid.UUID,
) -> list[DocumentVersionAttachment]:
	stmt = (
		select(DocumentVersionAttachment)
		.where(DocumentVersionAttachment.version_id == version_id)
		.order_by(DocumentVersionAttachment.created_at)
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def next_document_number(
	session: AsyncSession,
	tenant_id: uuid.UUID,
	year: int,
	prefix: str = "DOC",
) -> str:
	"""Allocate the next number of the tenant's yearly sequence."""
	stmt = (
		select(DocumentSequence)
		.where(
			and_(
				DocumentSequence.tenant_id == tenant_id,
				DocumentSequence.year == year,
			)
		)
		.with_for_update()
	)
	result = await session.execute(stmt)
	sequence = result.scalar_one_or_none()

	if sequence is None:
		sequence = DocumentSequence(tenant_id=tenant_id, year=year, current=1)
		session.add(sequence)
	else:
		sequence.current += 1
	await session.flush()

	return f"{prefix}-{year}-{sequence.current:05d}"


async def add_acknowledgement(
	session: AsyncSession,
	tenant_id: uuid.UUID,
	document_id: uuid.UUID,
	version_id: uuid.UUID,
	user_id: uuid.UUID,
	now: datetime,
) -> DocumentAcknowledgement:
	"""Insert an acknowledgement; a repeat for the same version raises IntegrityError."""
	acknowledgement = DocumentAcknowledgement(
		tenant_id=tenant_id,
		document_id=document_id,
		version_id=version_id,
		user_id=user_id,
		acknowledged_at=now,
	)
	session.add(acknowledgement)
	await session.flush()
	return acknowledgement


async def list_acknowledgements(
	session: AsyncSession,
	document_id: uuid.UUID,
	tenant_id: uuid.UUID,
	user_id: uuid.UUID | None = None,
) -> list[DocumentAcknowledgement]:
	"""Acknowledgements of a document, most recent first."""
	stmt = select(DocumentAcknowledgement).where(
		and_(
			DocumentAcknowledgement.document_id == document_id,
			DocumentAcknowledgement.tenant_id == tenant_id,
		)
	)
	if user_id is not None:
		stmt = stmt.where(DocumentAcknowledgement.user_id == user_id)
	stmt = stmt.order_by(
		DocumentAcknowledgement.acknowledged_at.desc(), DocumentAcknowledgement.id.desc()
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def add_comment(
	session: AsyncSession,
	tenant_id: uuid.UUID,
	document_id: uuid.UUID,
	user_id: uuid.UUID,
	content: str,
	now: datetime,
) -> DocumentComment:
	comment = DocumentComment(
		tenant_id=tenant_id,
		document_id=document_id,
		user_id=user_id,
		content=content,
		created_at=now,
	)
	session.add(comment)
	await session.flush()
	return comment


async def list_comments(
	session: AsyncSession,
	document_id: uuid.UUID,
	tenant_id: uuid.UUID,
) -> list[DocumentComment]:
	"""Comments of a document in the order they were written."""
	stmt = (
		select(DocumentComment)
		.where(
			and_(
				DocumentComment.document_id == document_id,
				DocumentComment.tenant_id == tenant_id,
			)
		)
		.order_by(DocumentComment.created_at, DocumentComment.id)
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())
