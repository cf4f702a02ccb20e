# (c) Copyright Datacraft, 2026
"""Workflow engine exceptions."""
from uuid import UUID


class WorkflowError(Exception):
	"""Base exception for document workflow operations."""


class DocumentNotFoundError(WorkflowError):
	def __init__(self, document_id: UUID, tenant_id: UUID | None = None):
		self.document_id = document_id
		self.tenant_id = tenant_id
		super().__init__(f"Document {document_id} not found")


class InvalidWorkflowActionError(WorkflowError):
	def __init__(self, action: str):
		self.action = action
		super().__init__(f"Invalid workflow action: {action}")


class InvalidTransitionError(WorkflowError):
	def __init__(self, action: str, current: str, expected: str):
		self.action = action
		self.current = current
		self.expected = expected
		super().__init__(
			f"Cannot perform '{action}' on document in status {current}. "
			f"Expected: {expected}"
		)


class UnauthorizedWorkflowActionError(WorkflowError):
	def __init__(self, permission: str, action: str | None = None):
		self.permission = permission
		self.action = action
		super().__init__(f"Missing permission: {permission}")


class StateMismatchError(WorkflowError):
	"""A concurrent writer changed the document first. Safe to retry."""
	retryable = True

	def __init__(self, document_id: UUID, expected: str, actual: str | None):
		self.document_id = document_id
		self.expected = expected
		self.actual = actual
		super().__init__(
			f"Document {document_id} state changed concurrently: "
			f"expected {expected}, found {actual}"
		)


class AuditChainConflictError(StateMismatchError):
	"""Another transaction appended to the tenant's audit chain first."""

	def __init__(self, tenant_id: UUID, sequence: int):
		self.tenant_id = tenant_id
		self.sequence = sequence
		self.document_id = None
		self.expected = f"audit sequence {sequence}"
		self.actual = None
		WorkflowError.__init__(
			self,
			f"Audit sequence {sequence} of tenant {tenant_id} was taken concurrently",
		)


class DomainViolationError(WorkflowError):
	def __init__(self, message: str, code: str | None = None):
		self.code = code
		super().__init__(message)


class VersionConflictError(WorkflowError):
	def __init__(self, document_id: UUID, version_number: int):
		self.document_id = document_id
		self.version_number = version_number
		super().__init__(
			f"Version {version_number} of document {document_id} already exists"
		)


class WorkflowInternalError(WorkflowError):
	"""Integrity failure the caller cannot fix by changing the request."""
