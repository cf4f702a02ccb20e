# (c) Copyright Datacraft, 2026
from .orm import AuditChainHead, AuditLog

__all__ = ["AuditChainHead", "AuditLog"]
