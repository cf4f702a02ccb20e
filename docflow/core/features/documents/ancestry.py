# (c) Copyright Datacraft, 2026
"""Walks a document's lineage back through its predecessors."""
import logging
from typing import Protocol
from uuid import UUID

from sqlalchemy import and_, select

from docflow.core.db.unit_of_work import UnitOfWork

from .db.orm import Document

logger = logging.getLogger(__name__)


class AncestorResolver(Protocol):
	async def ancestor_ids(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
	) -> list[UUID]:
		"""Ids from ``document_id`` back to the lineage root, newest first."""
		...


class LineageAncestorResolver:
	"""Follows ``supersedes_id`` links, stopping on a repeated id."""

	async def ancestor_ids(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
	) -> list[UUID]:
		ids: list[UUID] = []
		seen: set[UUID] = set()
		current: UUID | None = document_id

		while current is not None:
			if current in seen:
				logger.warning(f"Lineage cycle detected at document {current}")
				break
			stmt = select(Document.supersedes_id).where(
				and_(
					Document.id == current,
					Document.tenant_id == tenant_id,
				)
			)
			row = (await uow.session.execute(stmt)).first()
			if row is None:
				break
			seen.add(current)
			ids.append(current)
			current = row[0]

		return ids
