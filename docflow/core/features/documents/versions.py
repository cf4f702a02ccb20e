# (c) Copyright Datacraft, 2026
"""
Content versions of a document.

A document collects versions while it is DRAFT or REJECTED. Submitting
freezes the current version; to change content afterwards the document
has to come back to an editable status and get a new version.
"""
import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from docflow.core.db.unit_of_work import UnitOfWork
from docflow.core.features.access.resolver import Actor
from docflow.core.features.audit.sink import AuditSink
from docflow.core.features.workflows.errors import (
	DocumentNotFoundError,
	DomainViolationError,
	VersionConflictError,
)
from docflow.core.features.workflows.transitions import EffectiveStatus, derive_effective_status
from docflow.core.utils.tz import Clock, SystemClock

from .ancestry import AncestorResolver
from .db import api as documents_api
from .db.orm import (
	ContentMode,
	DocumentStatus,
	DocumentVersion,
	DocumentVersionAttachment,
)

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = (DocumentStatus.DRAFT.value, DocumentStatus.REJECTED.value)


class VersionHistory:
	def __init__(
		self,
		audit: AuditSink,
		ancestors: AncestorResolver,
		clock: Clock | None = None,
	):
		self.audit = audit
		self.ancestors = ancestors
		self.clock = clock or SystemClock()

	async def create_version(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		content_mode: ContentMode = ContentMode.FILE,
		*,
		file_name: str | None = None,
		file_size: int | None = None,
		mime_type: str | None = None,
		storage_key: str | None = None,
		content_json: dict[str, Any] | None = None,
	) -> DocumentVersion:
		"""Add the next version and make it the document's current one."""
		document = await documents_api.get_document(
			uow.session, document_id, tenant_id, for_update=True
		)
		if document is None:
			raise DocumentNotFoundError(document_id, tenant_id)

		now = self.clock.now()
		effective = derive_effective_status(
			document.status, document.expiry_date, document.effective_date, now
		)
		if effective is EffectiveStatus.EXPIRED:
			raise DomainViolationError("Cannot add a version to an EXPIRED document.")
		if document.status not in EDITABLE_STATUSES:
			raise DomainViolationError(
				f"Versions can only be added in DRAFT or REJECTED states. Current: {document.status}"
			)

		if content_mode is ContentMode.FILE:
			if not file_name or not storage_key:
				raise DomainViolationError("FILE versions need a file name and a storage key.")
			content_json = None
		else:
			if content_json is None:
				raise DomainViolationError("STRUCTURED versions need a content payload.")
			file_name = file_size = mime_type = storage_key = None

		version_number = await documents_api.latest_version_number(uow.session, document_id) + 1
		version = DocumentVersion(
			tenant_id=tenant_id,
			document_id=document_id,
			version_number=version_number,
			is_frozen=False,
			content_mode=content_mode.value,
			file_name=file_name,
			file_size=file_size,
			mime_type=mime_type,
			storage_key=storage_key,
			content_json=content_json,
			created_by=actor.id,
			created_at=now,
		)
		uow.session.add(version)
		try:
			await uow.session.flush()
		except IntegrityError as e:
			raise VersionConflictError(document_id, version_number) from e

		document.current_version_id = version.id
		document.updated_by = actor.id
		document.updated_at = now
		await uow.session.flush()

		await self.audit.record(
			uow,
			tenant_id=tenant_id,
			actor_id=actor.id,
			entity_type="VERSION",
			entity_id=version.id,
			action="DMS.VERSION_CREATE",
			details=(
				f"Created version {version_number} for document {document_id} "
				f"({content_mode.value} mode)."
			),
			metadata={
				"versionNumber": version_number,
				"documentId": str(document_id),
				"title": document.title,
				"contentMode": content_mode.value,
			},
		)
		logger.info(f"Document {document_id} now at version {version_number}")
		return version

	async def add_attachment(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		version_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		file_name: str,
		storage_key: str,
		mime_type: str | None = None,
		file_size: int | None = None,
	) -> DocumentVersionAttachment:
		document = await documents_api.get_document(
			uow.session, document_id, tenant_id, for_update=True
		)
		if document is None:
			raise DocumentNotFoundError(document_id, tenant_id)

		version = await documents_api.get_version(uow.session, version_id, tenant_id)
		if version is None or version.document_id != document_id:
			raise DomainViolationError(f"Version {version_id} does not belong to document {document_id}.")

		if document.status != DocumentStatus.DRAFT.value:
			raise DomainViolationError(
				f"Attachments can only be added in DRAFT status. Current: {document.status}"
			)
		if version.is_frozen:
			raise DomainViolationError("This version is frozen. No modifications allowed.")

		attachment = DocumentVersionAttachment(
			tenant_id=tenant_id,
			version_id=version_id,
			file_name=file_name,
			mime_type=mime_type,
			file_size=file_size,
			storage_key=storage_key,
			created_by=actor.id,
			created_at=self.clock.now(),
		)
		uow.session.add(attachment)
		await uow.session.flush()

		await self.audit.record(
			uow,
			tenant_id=tenant_id,
			actor_id=actor.id,
			entity_type="DOCUMENT",
			entity_id=document_id,
			action="DMS.ATTACHMENT_ADDED",
			details=f"Added attachment '{file_name}' to version {version_id}.",
			metadata={"attachmentId": str(attachment.id), "versionId": str(version_id)},
		)
		return attachment

	async def list_versions(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
	) -> list[DocumentVersion]:
		"""Versions of the document and all its predecessors, newest first."""
		document_ids = await self.ancestors.ancestor_ids(uow, document_id, tenant_id)
		if not document_ids:
			raise DocumentNotFoundError(document_id, tenant_id)
		versions = await documents_api.list_versions(uow.session, document_ids, tenant_id)
		# lineage position first; timestamps of a clone and its source can tie
		position = {doc_id: index for index, doc_id in enumerate(document_ids)}
		return sorted(
			versions,
			key=lambda version: (position[version.document_id], -version.version_number),
		)
