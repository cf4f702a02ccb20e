# (c) Copyright Datacraft, 2026
"""Central ORM model exports."""
from .features.documents.db.orm import (
	Document,
	DocumentAcknowledgement,
	DocumentComment,
	DocumentSequence,
	DocumentVersion,
	DocumentVersionAttachment,
)
from .features.access.db.orm import FolderPermission, Role, UserRole
from .features.workflows.db.orm import DocumentReview, WorkflowHistory
from .features.audit.db.orm import AuditChainHead, AuditLog

__all__ = [
	'Document',
	'DocumentAcknowledgement',
	'DocumentComment',
	'DocumentSequence',
	'DocumentVersion',
	'DocumentVersionAttachment',
	'FolderPermission',
	'Role',
	'UserRole',
	'DocumentReview',
	'WorkflowHistory',
	'AuditChainHead',
	'AuditLog',
]
