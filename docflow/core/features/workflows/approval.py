# (c) Copyright Datacraft, 2026
"""Side effects of a document becoming APPROVED."""
import logging
from uuid import UUID

from docflow.core.db.unit_of_work import UnitOfWork
from docflow.core.features.audit.sink import AuditSink
from docflow.core.features.documents.db import api as documents_api
from docflow.core.features.documents.db.orm import ContentMode, Document, DocumentStatus
from docflow.core.services.snapshot import SnapshotRenderer
from docflow.core.utils.tz import Clock, SystemClock

from .errors import StateMismatchError, WorkflowInternalError

logger = logging.getLogger(__name__)


class ApprovalFinalizer:
	"""
	Flips a document to APPROVED exactly once.

	STRUCTURED content is rendered to an immutable snapshot first; the
	snapshot key is stored on the version. Renderer errors abort the
	approval.
	"""

	def __init__(
		self,
		audit: AuditSink,
		renderer: SnapshotRenderer,
		clock: Clock | None = None,
	):
		self.audit = audit
		self.renderer = renderer
		self.clock = clock or SystemClock()

	async def finalize(
		self,
		uow: UnitOfWork,
		document: Document,
		actor_id: UUID,
		expected_status: DocumentStatus = DocumentStatus.SUBMITTED,
	) -> str | None:
		"""Approve ``document``; returns the snapshot key when one was rendered."""
		version = None
		if document.current_version_id is not None:
			version = await documents_api.get_version(
				uow.session, document.current_version_id, document.tenant_id
			)
		if version is None:
			raise WorkflowInternalError(
				f"Fatal: Document {document.id} has no current version during approval."
			)

		snapshot_key = None
		if version.content_mode == ContentMode.STRUCTURED.value:
			if version.content_json is None:
				raise WorkflowInternalError(
					f"Fatal: STRUCTURED document {document.id} has no content payload."
				)
			try:
				snapshot_key = await self.renderer.render(
					document.tenant_id, document.id, version.id, version.content_json
				)
			except Exception:
				logger.exception(f"Snapshot rendering failed for document {document.id}")
				raise
			await documents_api.set_version_storage_key(uow.session, version.id, snapshot_key)

		changed = await documents_api.compare_and_set_status(
			uow.session,
			document.id,
			document.tenant_id,
			expected_status,
			DocumentStatus.APPROVED,
			actor_id,
			self.clock.now(),
		)
		if changed == 0:
			actual = await documents_api.get_document_status(
				uow.session, document.id, document.tenant_id
			)
			raise StateMismatchError(document.id, expected_status.value, actual)

		details = f"Document APPROVED. Content Mode: {version.content_mode}."
		if snapshot_key is not None:
			details += " Generated PDF snapshot."
		await self.audit.record(
			uow,
			tenant_id=document.tenant_id,
			actor_id=actor_id,
			entity_type="DOCUMENT",
			entity_id=document.id,
			action="DMS.DOCUMENT_APPROVED",
			details=details,
			metadata={
				"versionId": str(version.id),
				"contentMode": version.content_mode,
				"snapshotKey": snapshot_key,
			},
		)
		logger.info(f"Document {document.id} approved by {actor_id}")
		return snapshot_key
