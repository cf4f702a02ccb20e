# (c) Copyright Datacraft, 2026
"""
Revision lineage.

Revising an APPROVED document creates a new DRAFT document that
supersedes it. The chain stays linear: a document has at most one
predecessor and one successor. The predecessor keeps its APPROVED status
until the successor is approved, at which point it is retired by
``cascade_obsolescence``.
"""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from docflow.core.db.unit_of_work import UnitOfWork
from docflow.core.features.access.codes import PermissionCode
from docflow.core.features.access.db.orm import FolderPermissionLevel
from docflow.core.features.access.resolver import Actor, FolderPermissionResolver
from docflow.core.features.audit.sink import AuditSink
from docflow.core.features.documents.db import api as documents_api
from docflow.core.features.documents.db.orm import (
	ContentMode,
	Document,
	DocumentStatus,
	DocumentVersion,
	DocumentVersionAttachment,
)
from docflow.core.utils.tz import Clock, SystemClock

from .db import api as workflows_api
from .errors import (
	DocumentNotFoundError,
	DomainViolationError,
	StateMismatchError,
	UnauthorizedWorkflowActionError,
)

logger = logging.getLogger(__name__)

ALREADY_SUPERSEDED = "DOCUMENT_ALREADY_SUPERSEDED"


async def cascade_obsolescence(
	uow: UnitOfWork,
	audit: AuditSink,
	successor: Document,
	actor_id: UUID,
	now: datetime,
) -> bool:
	"""
	Retire the predecessor of a freshly approved successor.

	Only applies while the predecessor is still APPROVED. If it has already
	moved on (obsoleted by hand, or retired by a concurrent approval) this
	is a no-op and returns False.
	"""
	predecessor_id = successor.supersedes_id
	if predecessor_id is None:
		return False

	changed = await documents_api.compare_and_set_status(
		uow.session,
		predecessor_id,
		successor.tenant_id,
		DocumentStatus.APPROVED,
		DocumentStatus.OBSOLETE,
		actor_id,
		now,
	)
	if changed == 0:
		logger.info(
			f"Skipping cascade: predecessor {predecessor_id} of {successor.id} is no longer APPROVED"
		)
		return False

	await workflows_api.record_history(
		uow.session,
		successor.tenant_id,
		predecessor_id,
		DocumentStatus.APPROVED.value,
		DocumentStatus.OBSOLETE.value,
		actor_id,
		f"Superseded by {successor.document_number or successor.id}",
		now,
	)
	await audit.record(
		uow,
		tenant_id=successor.tenant_id,
		actor_id=actor_id,
		entity_type="DOCUMENT",
		entity_id=predecessor_id,
		action="DMS.AUTO_OBSOLETED",
		details=(
			f"Document automatically obsoleted by approval of revision "
			f"{successor.document_number or successor.id}."
		),
		metadata={
			"supersededById": str(successor.id),
			"documentNumber": successor.document_number,
		},
	)
	logger.info(f"Predecessor {predecessor_id} obsoleted by approval of {successor.id}")
	return True


class RevisionLineageManager:
	def __init__(
		self,
		resolver: FolderPermissionResolver,
		audit: AuditSink,
		clock: Clock | None = None,
		number_prefix: str = "DOC",
	):
		self.resolver = resolver
		self.audit = audit
		self.clock = clock or SystemClock()
		self.number_prefix = number_prefix

	async def revise(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
	) -> Document:
		"""Create the DRAFT successor of an APPROVED document."""
		source = await documents_api.get_document(
			uow.session, document_id, tenant_id, for_update=True
		)
		if source is None:
			raise DocumentNotFoundError(document_id, tenant_id)

		label = source.document_number or source.id
		if source.status != DocumentStatus.APPROVED.value:
			raise DomainViolationError(
				f"Cannot revise document {label}. Only APPROVED documents can be revised. "
				f"Current status: {source.status}"
			)
		if source.superseded_by_id is not None:
			raise DomainViolationError(
				f"Cannot revise document {label}. It has already been superseded.",
				code=ALREADY_SUPERSEDED,
			)

		allowed = await self.resolver.resolve_access(
			uow,
			actor,
			source.folder_id,
			FolderPermissionLevel.WRITE,
			PermissionCode.DOCUMENT_CREATE.value,
		)
		if not allowed:
			raise UnauthorizedWorkflowActionError(PermissionCode.DOCUMENT_CREATE.value, "revise")

		now = self.clock.now()
		try:
			number = await documents_api.next_document_number(
				uow.session, tenant_id, now.year, self.number_prefix
			)
		except IntegrityError as e:
			# first number of the year allocated by a concurrent revision
			logger.info(f"Document number sequence {now.year} for tenant {tenant_id} created concurrently")
			raise StateMismatchError(source.id, "unrevised", "numbering in progress") from e

		successor = Document(
			tenant_id=tenant_id,
			document_number=number,
			title=source.title,
			description=source.description,
			type_id=source.type_id,
			folder_id=source.folder_id,
			status=DocumentStatus.DRAFT.value,
			supersedes_id=source.id,
			created_by=actor.id,
			updated_by=actor.id,
			created_at=now,
			updated_at=now,
		)
		uow.session.add(successor)
		try:
			await uow.session.flush()
		except IntegrityError as e:
			raise StateMismatchError(source.id, "unrevised", "revised") from e

		versions_cloned, attachments_cloned = await self._clone_current_version(
			uow, source, successor, actor, now
		)

		linked = await documents_api.link_successor(
			uow.session, source.id, tenant_id, successor.id, actor.id, now
		)
		if linked == 0:
			actual = await documents_api.get_document_status(uow.session, source.id, tenant_id)
			raise StateMismatchError(source.id, DocumentStatus.APPROVED.value, actual)

		await self.audit.record(
			uow,
			tenant_id=tenant_id,
			actor_id=actor.id,
			entity_type="DOCUMENT",
			entity_id=successor.id,
			action="DMS.REVISION_CREATED",
			details=f"Created revision {successor.document_number} superseding {label}",
			metadata={
				"originalDocumentId": str(source.id),
				"newDocumentId": str(successor.id),
				"mapping": f"{label} -> {successor.document_number}",
				"versionsCloned": versions_cloned,
				"attachmentsCloned": attachments_cloned,
			},
		)
		logger.info(f"Document {source.id} revised as {successor.id} ({successor.document_number})")

		await uow.session.refresh(source)
		await uow.session.refresh(successor)
		return successor

	async def _clone_current_version(
		self,
		uow: UnitOfWork,
		source: Document,
		successor: Document,
		actor: Actor,
		now: datetime,
	) -> tuple[int, int]:
		if source.current_version_id is None:
			return 0, 0
		original = await documents_api.get_version(
			uow.session, source.current_version_id, source.tenant_id
		)
		if original is None:
			return 0, 0

		# A STRUCTURED snapshot belongs to the approved original; the
		# successor gets its own on approval
		storage_key = None if original.content_mode == ContentMode.STRUCTURED.value else original.storage_key
		clone = DocumentVersion(
			tenant_id=successor.tenant_id,
			document_id=successor.id,
			version_number=1,
			is_frozen=False,
			content_mode=original.content_mode,
			file_name=original.file_name,
			file_size=original.file_size,
			mime_type=original.mime_type,
			storage_key=storage_key,
			content_json=original.content_json,
			created_by=actor.id,
			created_at=now,
		)
		uow.session.add(clone)
		await uow.session.flush()

		attachments = await documents_api.list_attachments(uow.session, original.id)
		for attachment in attachments:
			uow.session.add(
				DocumentVersionAttachment(
					tenant_id=successor.tenant_id,
					version_id=clone.id,
					file_name=attachment.file_name,
					mime_type=attachment.mime_type,
					file_size=attachment.file_size,
					storage_key=attachment.storage_key,
					created_by=actor.id,
					created_at=now,
				)
			)

		successor.current_version_id = clone.id
		await uow.session.flush()
		return 1, len(attachments)
