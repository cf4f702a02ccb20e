# (c) Copyright Datacraft, 2026
"""
Reader engagement with a document: acknowledgements and comments.

Readers acknowledge the current version of an APPROVED document, once
per version. Comments belong to the drafting and review phase and are
closed once a document is APPROVED or OBSOLETE.
"""
import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from docflow.core.db.unit_of_work import UnitOfWork
from docflow.core.features.access.codes import PermissionCode
from docflow.core.features.access.db.orm import FolderPermissionLevel
from docflow.core.features.access.resolver import Actor, FolderPermissionResolver
from docflow.core.features.audit.sink import AuditSink
from docflow.core.features.workflows.errors import (
	DocumentNotFoundError,
	DomainViolationError,
	UnauthorizedWorkflowActionError,
)
from docflow.core.utils.tz import Clock, SystemClock

from .db import api as documents_api
from .db.orm import (
	Document,
	DocumentAcknowledgement,
	DocumentComment,
	DocumentStatus,
)

logger = logging.getLogger(__name__)

ALREADY_ACKNOWLEDGED = "DOCUMENT_ALREADY_ACKNOWLEDGED"

CLOSED_FOR_COMMENTS = (DocumentStatus.APPROVED.value, DocumentStatus.OBSOLETE.value)


class DocumentEngagement:
	def __init__(
		self,
		resolver: FolderPermissionResolver,
		audit: AuditSink,
		clock: Clock | None = None,
	):
		self.resolver = resolver
		self.audit = audit
		self.clock = clock or SystemClock()

	async def _readable(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		action: str,
	) -> Document:
		document = await documents_api.get_document(uow.session, document_id, tenant_id)
		if document is None:
			raise DocumentNotFoundError(document_id, tenant_id)

		allowed = await self.resolver.resolve_access(
			uow,
			actor,
			document.folder_id,
			FolderPermissionLevel.READ,
			PermissionCode.DOCUMENT_READ.value,
		)
		if not allowed:
			raise UnauthorizedWorkflowActionError(PermissionCode.DOCUMENT_READ.value, action)
		return document

	async def acknowledge(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
	) -> DocumentAcknowledgement:
		"""Record that ``actor`` has read the current version of an APPROVED document."""
		document = await self._readable(uow, document_id, tenant_id, actor, "acknowledge")

		if document.status != DocumentStatus.APPROVED.value:
			raise DomainViolationError("Cannot acknowledge a document that is not APPROVED.")
		if document.current_version_id is None:
			raise DomainViolationError("Document has no current version.")

		version_id = document.current_version_id
		try:
			acknowledgement = await documents_api.add_acknowledgement(
				uow.session, tenant_id, document_id, version_id, actor.id, self.clock.now()
			)
		except IntegrityError as e:
			raise DomainViolationError(
				f"Version {version_id} has already been acknowledged.",
				code=ALREADY_ACKNOWLEDGED,
			) from e

		await self.audit.record(
			uow,
			tenant_id=tenant_id,
			actor_id=actor.id,
			entity_type="DOCUMENT",
			entity_id=document_id,
			action="DMS.ACKNOWLEDGED",
			details=f"Document acknowledged (Version: {version_id}).",
		)
		logger.info(f"User {actor.id} acknowledged version {version_id} of {document_id}")
		return acknowledgement

	async def list_acknowledgements(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		mine: bool = False,
	) -> list[DocumentAcknowledgement]:
		"""Acknowledgements of the document, most recent first; only the actor's with ``mine``."""
		await self._readable(uow, document_id, tenant_id, actor, "list acknowledgements")
		return await documents_api.list_acknowledgements(
			uow.session, document_id, tenant_id, actor.id if mine else None
		)

	async def add_comment(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		content: str,
	) -> DocumentComment:
		if not content or not content.strip():
			raise DomainViolationError("Comment content cannot be empty.")

		document = await self._readable(uow, document_id, tenant_id, actor, "comment")
		if document.status in CLOSED_FOR_COMMENTS:
			raise DomainViolationError("Cannot comment on APPROVED or OBSOLETE documents.")

		comment = await documents_api.add_comment(
			uow.session, tenant_id, document_id, actor.id, content, self.clock.now()
		)
		await self.audit.record(
			uow,
			tenant_id=tenant_id,
			actor_id=actor.id,
			entity_type="DOCUMENT",
			entity_id=document_id,
			action="DMS.COMMENT_ADDED",
			details="Added a comment to document.",
			metadata={"commentId": str(comment.id)},
		)
		return comment

	async def list_comments(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
	) -> list[DocumentComment]:
		"""Comments of the document, oldest first."""
		await self._readable(uow, document_id, tenant_id, actor, "list comments")
		return await documents_api.list_comments(uow.session, document_id, tenant_id)
