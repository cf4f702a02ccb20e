# (c) Copyright Datacraft, 2026
"""Folder-scoped access control layered over global permissions."""
from .codes import PermissionCode
from .db.orm import FolderPermissionLevel
from .resolver import Actor, FolderPermissionResolver, PermissionStore, SqlPermissionStore

__all__ = [
	"Actor",
	"FolderPermissionLevel",
	"FolderPermissionResolver",
	"PermissionCode",
	"PermissionStore",
	"SqlPermissionStore",
]
