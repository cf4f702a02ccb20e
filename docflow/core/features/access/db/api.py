# (c) Copyright Datacraft, 2026
"""Folder ACL database API."""

import uuid

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .orm import FolderPermission, FolderPermissionLevel, UserRole


async def get_user_role_ids(
	session: AsyncSession,
	user_id: uuid.UUID,
	tenant_id: uuid.UUID,
) -> list[uuid.UUID]:
	stmt = select(UserRole.role_id).where(
		and_(
			UserRole.user_id == user_id,
			UserRole.tenant_id == tenant_id,
		)
	)
	result = await session.execute(stmt)
	return list(result.scalars().all())


async def get_folder_levels(
	session: AsyncSession,
	tenant_id: uuid.UUID,
	folder_id: uuid.UUID,
	role_ids: list[uuid.UUID],
) -> set[FolderPermissionLevel]:
	"""Distinct ACL levels granted to any of the roles on the folder."""
	if not role_ids:
		return set()
	stmt = select(FolderPermission.permission).where(
		and_(
			FolderPermission.tenant_id == tenant_id,
			FolderPermission.folder_id == folder_id,
			FolderPermission.role_id.in_(role_ids),
		)
	)
	result = await session.execute(stmt)
	return {FolderPermissionLevel(value) for value in result.scalars().all()}


async def grant_folder_permission(
	session: AsyncSession,
	tenant_id: uuid.UUID,
	folder_id: uuid.UUID,
	role_id: uuid.UUID,
	level: FolderPermissionLevel,
) -> FolderPermission:
	permission = FolderPermission(
		tenant_id=tenant_id,
		folder_id=folder_id,
		role_id=role_id,
		permission=level.value,
	)
	session.add(permission)
	await session.flush()
	return permission
