# (c) Copyright Datacraft, 2026
"""
Explicit transactional context for workflow operations.

Callers open the unit of work; workflow services only ever receive an
already-open one and never begin, commit or roll back on their own.

Example:
	async with unit_of_work(session, timeout=settings.transaction_timeout_seconds) as uow:
		document = await orchestrator.transition(uow, document_id, tenant_id, "submit", actor)
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UnitOfWork:
	"""Handle on one open database transaction."""
	session: AsyncSession


@asynccontextmanager
async def unit_of_work(
	session: AsyncSession,
	timeout: float | None = None,
) -> AsyncIterator[UnitOfWork]:
	"""
	Run the enclosed block as one transaction.

	Commits when the block exits normally. Any exception, including the
	timeout firing, rolls back every statement issued inside the block.
	"""
	try:
		async with asyncio.timeout(timeout):
			async with session.begin():
				yield UnitOfWork(session)
	except TimeoutError:
		logger.error(f"Transaction exceeded {timeout}s and was rolled back")
		raise
