# (c) Copyright Datacraft, 2026
"""Role membership and folder ACL ORM models."""
from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from uuid_extensions import uuid7

from docflow.core.db.base import Base
from docflow.core.utils.tz import utc_now


class FolderPermissionLevel(str, Enum):
	"""Folder ACL levels, WRITE > REVIEW > READ."""
	READ = "READ"
	REVIEW = "REVIEW"
	WRITE = "WRITE"

	@property
	def rank(self) -> int:
		return _LEVEL_RANK[self]

	def satisfies(self, required: "FolderPermissionLevel") -> bool:
		return self.rank >= required.rank


_LEVEL_RANK = {
	FolderPermissionLevel.READ: 1,
	FolderPermissionLevel.REVIEW: 2,
	FolderPermissionLevel.WRITE: 3,
}


class Role(Base):
	__tablename__ = "dms_roles"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
	name: Mapped[str] = mapped_column(String(100), nullable=False)

	__table_args__ = (
		UniqueConstraint("tenant_id", "name", name="uq_dms_roles_name"),
	)


class UserRole(Base):
	__tablename__ = "dms_user_roles"

	user_id: Mapped[UUID] = mapped_column(primary_key=True)
	role_id: Mapped[UUID] = mapped_column(
		ForeignKey("dms_roles.id", ondelete="CASCADE"), primary_key=True
	)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)


class FolderPermission(Base):
	"""Grants a role a permission level on one folder."""
	__tablename__ = "dms_folder_permissions"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False)
	folder_id: Mapped[UUID] = mapped_column(nullable=False)
	role_id: Mapped[UUID] = mapped_column(
		ForeignKey("dms_roles.id", ondelete="CASCADE"), nullable=False
	)
	permission: Mapped[str] = mapped_column(String(10), nullable=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)

	def __repr__(self) -> str:
		return f"FolderPermission({self.folder_id=}, {self.role_id=}, {self.permission=})"

	__table_args__ = (
		UniqueConstraint("folder_id", "role_id", "permission", name="uq_dms_folder_permissions"),
		Index("idx_dms_folder_permissions_lookup", "tenant_id", "folder_id"),
	)
