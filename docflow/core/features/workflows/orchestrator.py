# (c) Copyright Datacraft, 2026
"""
Top-level entry point of the document workflow engine.

Every operation runs inside the caller's unit of work; nothing here
begins or commits a transaction. Any exception leaves the caller to roll
back the whole attempt.
"""
import logging
from uuid import UUID

from docflow.core.config.settings import Settings, get_settings
from docflow.core.db.unit_of_work import UnitOfWork
from docflow.core.features.access.codes import PermissionCode
from docflow.core.features.access.db.orm import FolderPermissionLevel
from docflow.core.features.access.resolver import (
	Actor,
	FolderPermissionResolver,
	PermissionStore,
)
from docflow.core.features.audit.sink import AuditSink, SqlAuditSink
from docflow.core.features.documents.ancestry import AncestorResolver, LineageAncestorResolver
from docflow.core.features.documents.db import api as documents_api
from docflow.core.features.documents.db.orm import (
	Document,
	DocumentAcknowledgement,
	DocumentComment,
	DocumentVersion,
)
from docflow.core.features.documents.engagement import DocumentEngagement
from docflow.core.features.documents.versions import VersionHistory
from docflow.core.services.snapshot import PdfSnapshotRenderer, SnapshotRenderer
from docflow.core.utils.tz import Clock, SystemClock

from .approval import ApprovalFinalizer
from .db import api as workflows_api
from .db.orm import DocumentReview, ReviewDecision, WorkflowHistory
from .errors import (
	DocumentNotFoundError,
	DomainViolationError,
	StateMismatchError,
	UnauthorizedWorkflowActionError,
)
from .lineage import ALREADY_SUPERSEDED, RevisionLineageManager, cascade_obsolescence
from .reviews import ReviewCycleManager, ReviewerAssignment, ReviewOutcome
from .transitions import (
	EffectiveStatus,
	Transition,
	WorkflowAction,
	derive_effective_status,
	ensure_transition_allowed,
	get_transition,
)

logger = logging.getLogger(__name__)


class WorkflowOrchestrator:
	def __init__(
		self,
		resolver: FolderPermissionResolver,
		reviews: ReviewCycleManager,
		finalizer: ApprovalFinalizer,
		lineage: RevisionLineageManager,
		versions: VersionHistory,
		engagement: DocumentEngagement,
		audit: AuditSink,
		ancestors: AncestorResolver,
		clock: Clock | None = None,
	):
		self.resolver = resolver
		self.reviews = reviews
		self.finalizer = finalizer
		self.lineage = lineage
		self.versions = versions
		self.engagement = engagement
		self.audit = audit
		self.ancestors = ancestors
		self.clock = clock or SystemClock()

	@classmethod
	def create(
		cls,
		renderer: SnapshotRenderer,
		audit: AuditSink | None = None,
		permission_store: PermissionStore | None = None,
		ancestors: AncestorResolver | None = None,
		clock: Clock | None = None,
		number_prefix: str = "DOC",
	) -> "WorkflowOrchestrator":
		"""Wire the engine components around the given collaborators."""
		clock = clock or SystemClock()
		audit = audit or SqlAuditSink(clock)
		ancestors = ancestors or LineageAncestorResolver()
		resolver = FolderPermissionResolver(permission_store)
		finalizer = ApprovalFinalizer(audit, renderer, clock)
		return cls(
			resolver=resolver,
			reviews=ReviewCycleManager(finalizer, audit, ancestors, clock),
			finalizer=finalizer,
			lineage=RevisionLineageManager(resolver, audit, clock, number_prefix),
			versions=VersionHistory(audit, ancestors, clock),
			engagement=DocumentEngagement(resolver, audit, clock),
			audit=audit,
			ancestors=ancestors,
			clock=clock,
		)

	async def _load(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		for_update: bool = False,
	) -> Document:
		document = await documents_api.get_document(
			uow.session, document_id, tenant_id, for_update=for_update
		)
		if document is None:
			raise DocumentNotFoundError(document_id, tenant_id)
		return document

	async def _authorize(
		self,
		uow: UnitOfWork,
		document: Document,
		transition: Transition,
		actor: Actor,
	) -> None:
		if transition.action is WorkflowAction.WITHDRAW:
			if actor.id == document.created_by:
				return
			allowed = await self.resolver.resolve_access(
				uow,
				actor,
				document.folder_id,
				FolderPermissionLevel.WRITE,
				PermissionCode.DOCUMENT_WITHDRAW.value,
			)
		else:
			allowed = await self.resolver.resolve_access(
				uow,
				actor,
				document.folder_id,
				transition.folder_level,
				transition.permission,
			)
		if not allowed:
			logger.info(f"Actor {actor.id} denied '{transition.action.value}' on {document.id}")
			raise UnauthorizedWorkflowActionError(transition.permission, transition.action.value)

	async def transition(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		action: str | WorkflowAction,
		actor: Actor,
		comment: str | None = None,
	) -> Document:
		"""
		Apply one workflow action to a document.

		Review-mode documents and ``withdraw`` are handed to the review
		cycle manager; every other action is a compare-and-set status
		update followed by one history row and one audit entry.
		"""
		transition = get_transition(action)
		document = await self._load(uow, document_id, tenant_id, for_update=True)

		await self._authorize(uow, document, transition, actor)

		now = self.clock.now()
		effective = derive_effective_status(
			document.status, document.expiry_date, document.effective_date, now
		)
		if effective is EffectiveStatus.EXPIRED:
			raise DomainViolationError("Document is EXPIRED. No further actions allowed.")

		ensure_transition_allowed(transition, document.status)

		if transition.action is WorkflowAction.REJECT and not (comment and comment.strip()):
			raise DomainViolationError("A comment is required when rejecting a document.")

		if transition.action is WorkflowAction.OBSOLETE and document.superseded_by_id is not None:
			raise DomainViolationError(
				"Document has already been superseded; it is obsoleted when its revision is approved.",
				code=ALREADY_SUPERSEDED,
			)

		if transition.action is WorkflowAction.WITHDRAW or (
			document.review_mode and transition.action is not WorkflowAction.OBSOLETE
		):
			return await self._delegate(uow, document, transition, actor, comment)

		if transition.action is WorkflowAction.APPROVE:
			await self.finalizer.finalize(uow, document, actor.id, transition.from_status)
		else:
			changed = await documents_api.compare_and_set_status(
				uow.session,
				document.id,
				tenant_id,
				transition.from_status,
				transition.to_status,
				actor.id,
				now,
			)
			if changed == 0:
				actual = await documents_api.get_document_status(uow.session, document.id, tenant_id)
				raise StateMismatchError(document.id, transition.from_status.value, actual)

		if transition.action is WorkflowAction.SUBMIT and document.current_version_id is not None:
			await documents_api.freeze_version(uow.session, document.current_version_id, tenant_id)

		if transition.action is WorkflowAction.APPROVE:
			await cascade_obsolescence(uow, self.audit, document, actor.id, now)

		await workflows_api.record_history(
			uow.session,
			tenant_id,
			document.id,
			transition.from_status.value,
			transition.to_status.value,
			actor.id,
			comment,
			now,
		)
		await self.audit.record(
			uow,
			tenant_id=tenant_id,
			actor_id=actor.id,
			entity_type="DOCUMENT",
			entity_id=document.id,
			action=f"DMS.{transition.action.value.upper()}",
			details=(
				f"Action '{transition.action.value}' completed. "
				f"Status: {transition.from_status.value} -> {transition.to_status.value}. "
				f"Comment: {comment or 'N/A'}"
			),
			metadata={
				"fromStatus": transition.from_status.value,
				"toStatus": transition.to_status.value,
				"comment": comment,
				"workflowAction": transition.action.value,
			},
		)
		logger.info(
			f"Document {document.id}: {transition.action.value} "
			f"{transition.from_status.value} -> {transition.to_status.value} by {actor.id}"
		)

		await uow.session.refresh(document)
		return document

	async def _delegate(
		self,
		uow: UnitOfWork,
		document: Document,
		transition: Transition,
		actor: Actor,
		comment: str | None,
	) -> Document:
		action = transition.action
		logger.debug(f"Delegating '{action.value}' on {document.id} to the review cycle")

		if action is WorkflowAction.WITHDRAW:
			return await self.reviews.withdraw(uow, document.id, document.tenant_id, actor, comment)
		if action is WorkflowAction.SUBMIT:
			return await self.reviews.restart(uow, document.id, document.tenant_id, actor)
		if action is WorkflowAction.REVISE:
			return await self.reviews.reopen(uow, document.id, document.tenant_id, actor, comment)

		decision = ReviewDecision.APPROVE if action is WorkflowAction.APPROVE else ReviewDecision.REJECT
		await self.reviews.decide(
			uow, document.id, document.tenant_id, actor.id, decision, comment
		)
		await uow.session.refresh(document)
		return document

	async def start_review(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		reviewers: list[ReviewerAssignment],
	) -> Document:
		document = await self._load(uow, document_id, tenant_id)
		await self._authorize(uow, document, get_transition(WorkflowAction.SUBMIT), actor)
		return await self.reviews.start(uow, document_id, tenant_id, actor, reviewers)

	async def decide_review(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		reviewer_id: UUID,
		decision: ReviewDecision,
		comment: str | None = None,
	) -> ReviewOutcome:
		return await self.reviews.decide(
			uow, document_id, tenant_id, reviewer_id, decision, comment
		)

	async def revise_document(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
	) -> Document:
		return await self.lineage.revise(uow, document_id, tenant_id, actor)

	async def resolve_access(
		self,
		uow: UnitOfWork,
		actor: Actor,
		folder_id: UUID | None,
		level: FolderPermissionLevel,
		fallback_permission: str | None = None,
	) -> bool:
		return await self.resolver.resolve_access(uow, actor, folder_id, level, fallback_permission)

	async def effective_permission_set(
		self,
		uow: UnitOfWork,
		actor: Actor,
		folder_id: UUID | None,
	) -> frozenset[str]:
		return await self.resolver.effective_permission_set(uow, actor, folder_id)

	async def list_reviews(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
	) -> list[DocumentReview]:
		await self._load(uow, document_id, tenant_id)
		return await self.reviews.list_reviews(uow, document_id, tenant_id)

	async def review_history(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
	) -> list[DocumentReview]:
		return await self.reviews.review_history(uow, document_id, tenant_id)

	async def list_versions(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
	) -> list[DocumentVersion]:
		return await self.versions.list_versions(uow, document_id, tenant_id)

	async def acknowledge(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
	) -> DocumentAcknowledgement:
		return await self.engagement.acknowledge(uow, document_id, tenant_id, actor)

	async def list_acknowledgements(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		mine: bool = False,
	) -> list[DocumentAcknowledgement]:
		return await self.engagement.list_acknowledgements(uow, document_id, tenant_id, actor, mine)

	async def add_comment(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		content: str,
	) -> DocumentComment:
		return await self.engagement.add_comment(uow, document_id, tenant_id, actor, content)

	async def list_comments(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
	) -> list[DocumentComment]:
		return await self.engagement.list_comments(uow, document_id, tenant_id, actor)

	async def workflow_history(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
	) -> list[WorkflowHistory]:
		"""Status history of the document and all its predecessors, newest first."""
		document_ids = await self.ancestors.ancestor_ids(uow, document_id, tenant_id)
		if not document_ids:
			raise DocumentNotFoundError(document_id, tenant_id)
		return await workflows_api.list_history(uow.session, tenant_id, document_ids)


def build_orchestrator(settings: Settings | None = None) -> WorkflowOrchestrator:
	"""Production wiring: SQL-backed stores and the PDF snapshot renderer."""
	settings = settings or get_settings()
	return WorkflowOrchestrator.create(
		renderer=PdfSnapshotRenderer(settings.media_root),
		number_prefix=settings.document_number_prefix,
	)
