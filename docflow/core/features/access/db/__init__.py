# (c) Copyright Datacraft, 2026
from .orm import FolderPermission, FolderPermissionLevel, Role, UserRole

__all__ = [
	"FolderPermission",
	"FolderPermissionLevel",
	"Role",
	"UserRole",
]
