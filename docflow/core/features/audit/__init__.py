# (c) Copyright Datacraft, 2026
from .sink import AuditSink, SqlAuditSink

__all__ = ["AuditSink", "SqlAuditSink"]
