# (c) Copyright Datacraft, 2026
"""
Folder permission resolution.

A folder ACL, when one exists for any of the actor's roles, replaces the
actor's global permission codes for documents in that folder. Without an
ACL the global codes apply unchanged.
"""
import logging
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from docflow.core.db.unit_of_work import UnitOfWork

from .codes import READ_LEVEL_CODES, REVIEW_LEVEL_CODES, WRITE_LEVEL_CODES
from .db import api as access_api
from .db.orm import FolderPermissionLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Actor:
	"""Authenticated caller, already scoped to one tenant."""
	id: UUID
	tenant_id: UUID
	permissions: frozenset[str] = field(default_factory=frozenset)

	def has_permission(self, code: str | None) -> bool:
		if code is None:
			return True
		return str(code) in self.permissions


class PermissionStore(Protocol):
	async def role_ids(self, uow: UnitOfWork, actor: Actor) -> list[UUID]:
		...

	async def folder_levels(
		self,
		uow: UnitOfWork,
		tenant_id: UUID,
		folder_id: UUID,
		role_ids: list[UUID],
	) -> set[FolderPermissionLevel]:
		...


class SqlPermissionStore:
	"""Reads role membership and folder ACLs in the caller's transaction."""

	async def role_ids(self, uow: UnitOfWork, actor: Actor) -> list[UUID]:
		return await access_api.get_user_role_ids(uow.session, actor.id, actor.tenant_id)

	async def folder_levels(
		self,
		uow: UnitOfWork,
		tenant_id: UUID,
		folder_id: UUID,
		role_ids: list[UUID],
	) -> set[FolderPermissionLevel]:
		return await access_api.get_folder_levels(uow.session, tenant_id, folder_id, role_ids)


_LEVEL_CODES = {
	FolderPermissionLevel.WRITE: WRITE_LEVEL_CODES,
	FolderPermissionLevel.REVIEW: REVIEW_LEVEL_CODES,
	FolderPermissionLevel.READ: READ_LEVEL_CODES,
}


class FolderPermissionResolver:
	def __init__(self, store: PermissionStore | None = None):
		self.store = store or SqlPermissionStore()

	async def _folder_levels(
		self,
		uow: UnitOfWork,
		actor: Actor,
		folder_id: UUID | None,
	) -> set[FolderPermissionLevel]:
		if folder_id is None:
			return set()
		role_ids = await self.store.role_ids(uow, actor)
		if not role_ids:
			return set()
		return await self.store.folder_levels(uow, actor.tenant_id, folder_id, role_ids)

	async def resolve_access(
		self,
		uow: UnitOfWork,
		actor: Actor,
		folder_id: UUID | None,
		required_level: FolderPermissionLevel,
		fallback_permission: str | None = None,
	) -> bool:
		"""
		Decide whether ``actor`` holds ``required_level`` on the folder.

		Falls back to the global ``fallback_permission`` code when no ACL
		row exists for the actor's roles; a missing fallback code grants.
		"""
		levels = await self._folder_levels(uow, actor, folder_id)
		if levels:
			granted = any(level.satisfies(required_level) for level in levels)
			logger.debug(
				f"Folder ACL for actor {actor.id} on {folder_id}: "
				f"{sorted(level.value for level in levels)} vs {required_level.value} -> {granted}"
			)
			return granted

		return actor.has_permission(fallback_permission)

	async def effective_permission_set(
		self,
		uow: UnitOfWork,
		actor: Actor,
		folder_id: UUID | None,
	) -> frozenset[str]:
		"""Permission codes in force for ``actor`` on documents in the folder."""
		levels = await self._folder_levels(uow, actor, folder_id)
		if not levels:
			return frozenset(actor.permissions)

		highest = max(levels, key=lambda level: level.rank)
		return _LEVEL_CODES[highest]
