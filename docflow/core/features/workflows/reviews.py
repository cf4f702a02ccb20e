# (c) Copyright Datacraft, 2026
"""
Multi-reviewer approval cycles.

A review cycle lives entirely inside the top-level SUBMITTED status. One
PENDING review row is created per assigned reviewer; the cycle resolves
when no PENDING rows remain. A single rejection resolves it at once and
cancels the rest. Stage numbers are kept for ordering only: every stage
is open for decisions from the start.
"""
import logging
from dataclasses import dataclass
from uuid import UUID

from docflow.core.db.unit_of_work import UnitOfWork
from docflow.core.features.access.resolver import Actor
from docflow.core.features.audit.sink import AuditSink
from docflow.core.features.documents.ancestry import AncestorResolver
from docflow.core.features.documents.db import api as documents_api
from docflow.core.features.documents.db.orm import Document, DocumentStatus
from docflow.core.utils.tz import Clock, SystemClock

from .approval import ApprovalFinalizer
from .db import api as workflows_api
from .db.orm import DocumentReview, ReviewDecision, ReviewStatus
from .errors import (
	DocumentNotFoundError,
	DomainViolationError,
	InvalidTransitionError,
	StateMismatchError,
)
from .lineage import cascade_obsolescence

logger = logging.getLogger(__name__)

STARTABLE_STATUSES = (DocumentStatus.DRAFT, DocumentStatus.REJECTED)


@dataclass(frozen=True, slots=True)
class ReviewerAssignment:
	user_id: UUID
	stage: int = 1


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
	status: str
	pending_count: int | None = None


class ReviewCycleManager:
	def __init__(
		self,
		finalizer: ApprovalFinalizer,
		audit: AuditSink,
		ancestors: AncestorResolver,
		clock: Clock | None = None,
	):
		self.finalizer = finalizer
		self.audit = audit
		self.ancestors = ancestors
		self.clock = clock or SystemClock()

	async def _load(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
	) -> Document:
		document = await documents_api.get_document(
			uow.session, document_id, tenant_id, for_update=True
		)
		if document is None:
			raise DocumentNotFoundError(document_id, tenant_id)
		return document

	async def _move(
		self,
		uow: UnitOfWork,
		document: Document,
		expected: DocumentStatus,
		target: DocumentStatus,
		actor_id: UUID,
		comment: str | None,
		**values,
	) -> None:
		now = self.clock.now()
		changed = await documents_api.compare_and_set_status(
			uow.session,
			document.id,
			document.tenant_id,
			expected,
			target,
			actor_id,
			now,
			**values,
		)
		if changed == 0:
			actual = await documents_api.get_document_status(
				uow.session, document.id, document.tenant_id
			)
			raise StateMismatchError(document.id, expected.value, actual)
		await workflows_api.record_history(
			uow.session,
			document.tenant_id,
			document.id,
			expected.value,
			target.value,
			actor_id,
			comment,
			now,
		)

	async def start(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		reviewers: list[ReviewerAssignment],
	) -> Document:
		"""Open a new review cycle and submit the document."""
		if not reviewers:
			raise DomainViolationError("At least one reviewer is required to start a review process.")
		user_ids = [reviewer.user_id for reviewer in reviewers]
		if len(set(user_ids)) != len(user_ids):
			raise DomainViolationError("A reviewer can only be assigned once per review cycle.")

		document = await self._load(uow, document_id, tenant_id)
		current = DocumentStatus(document.status)
		if current not in STARTABLE_STATUSES:
			raise InvalidTransitionError(
				"submit",
				document.status,
				" or ".join(status.value for status in STARTABLE_STATUSES),
			)

		cycle = await workflows_api.latest_cycle_number(uow.session, document_id) + 1
		now = self.clock.now()
		for reviewer in reviewers:
			uow.session.add(
				DocumentReview(
					tenant_id=tenant_id,
					document_id=document_id,
					reviewer_id=reviewer.user_id,
					stage_number=reviewer.stage,
					cycle_number=cycle,
					status=ReviewStatus.PENDING.value,
					created_at=now,
				)
			)
		await uow.session.flush()

		await self._move(
			uow,
			document,
			current,
			DocumentStatus.SUBMITTED,
			actor.id,
			f"Review started with {len(reviewers)} reviewers.",
			review_mode=True,
		)
		if document.current_version_id is not None:
			await documents_api.freeze_version(uow.session, document.current_version_id, tenant_id)

		await self.audit.record(
			uow,
			tenant_id=tenant_id,
			actor_id=actor.id,
			entity_type="DOCUMENT",
			entity_id=document_id,
			action="DMS.REVIEW_STARTED",
			details=f"Review started with {len(reviewers)} reviewers.",
			metadata={
				"reviewCount": len(reviewers),
				"cycle": cycle,
				"reviewers": [
					{"userId": str(reviewer.user_id), "stage": reviewer.stage}
					for reviewer in reviewers
				],
			},
		)
		logger.info(f"Review cycle {cycle} started on {document_id} with {len(reviewers)} reviewers")

		await uow.session.refresh(document)
		return document

	async def decide(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		reviewer_id: UUID,
		decision: ReviewDecision,
		comment: str | None = None,
	) -> ReviewOutcome:
		"""Record one reviewer's decision and resolve the cycle if it is done."""
		decision = ReviewDecision(decision)
		document = await self._load(uow, document_id, tenant_id)
		if document.status != DocumentStatus.SUBMITTED.value:
			raise InvalidTransitionError(
				decision.value.lower(), document.status, DocumentStatus.SUBMITTED.value
			)

		review = await workflows_api.get_pending_review(uow.session, document_id, reviewer_id)
		if review is None:
			raise DomainViolationError("No pending review found for this reviewer.")

		now = self.clock.now()
		review_status = (
			ReviewStatus.APPROVED if decision is ReviewDecision.APPROVE else ReviewStatus.REJECTED
		)
		changed = await workflows_api.decide_review(
			uow.session, review.id, review_status, comment, now
		)
		if changed == 0:
			raise StateMismatchError(document_id, ReviewStatus.PENDING.value, None)

		if decision is ReviewDecision.REJECT:
			cancelled = await workflows_api.cancel_pending(
				uow.session, document_id, now, exclude_id=review.id
			)
			await self._move(
				uow,
				document,
				DocumentStatus.SUBMITTED,
				DocumentStatus.REJECTED,
				reviewer_id,
				comment,
			)
			await self.audit.record(
				uow,
				tenant_id=tenant_id,
				actor_id=reviewer_id,
				entity_type="DOCUMENT",
				entity_id=document_id,
				action="DMS.REVIEW_REJECTED",
				details=f"Reviewer {reviewer_id} rejected the document.",
				metadata={"comment": comment, "cancelledReviews": cancelled},
			)
			logger.info(f"Document {document_id} rejected in review by {reviewer_id}")
			return ReviewOutcome(status=DocumentStatus.REJECTED.value)

		pending = await workflows_api.count_pending(uow.session, document_id)
		if pending > 0:
			await self.audit.record(
				uow,
				tenant_id=tenant_id,
				actor_id=reviewer_id,
				entity_type="DOCUMENT",
				entity_id=document_id,
				action="DMS.REVIEW_APPROVED",
				details=f"Reviewer {reviewer_id} approved. {pending} reviews remaining.",
				metadata={"comment": comment, "pendingReviews": pending},
			)
			return ReviewOutcome(status="IN_PROGRESS", pending_count=pending)

		await self.finalizer.finalize(uow, document, reviewer_id, DocumentStatus.SUBMITTED)
		await workflows_api.record_history(
			uow.session,
			tenant_id,
			document_id,
			DocumentStatus.SUBMITTED.value,
			DocumentStatus.APPROVED.value,
			reviewer_id,
			comment,
			now,
		)
		await cascade_obsolescence(uow, self.audit, document, reviewer_id, now)
		logger.info(f"Review cycle on {document_id} completed; document approved")
		return ReviewOutcome(status=DocumentStatus.APPROVED.value, pending_count=0)

	async def withdraw(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		comment: str | None = None,
	) -> Document:
		"""Pull a SUBMITTED document back to DRAFT, cancelling open reviews."""
		document = await self._load(uow, document_id, tenant_id)
		if document.status != DocumentStatus.SUBMITTED.value:
			raise InvalidTransitionError(
				"withdraw", document.status, DocumentStatus.SUBMITTED.value
			)

		cancelled = await workflows_api.cancel_pending(uow.session, document_id, self.clock.now())
		await self._move(
			uow,
			document,
			DocumentStatus.SUBMITTED,
			DocumentStatus.DRAFT,
			actor.id,
			comment,
		)
		await self.audit.record(
			uow,
			tenant_id=tenant_id,
			actor_id=actor.id,
			entity_type="DOCUMENT",
			entity_id=document_id,
			action="DMS.REVIEW_WITHDRAWN",
			details="Document withdrawn from review.",
			metadata={"cancelledReviews": cancelled, "comment": comment},
		)
		logger.info(f"Document {document_id} withdrawn by {actor.id} ({cancelled} reviews cancelled)")

		await uow.session.refresh(document)
		return document

	async def reopen(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
		comment: str | None = None,
	) -> Document:
		"""Return a rejected document to DRAFT for rework."""
		document = await self._load(uow, document_id, tenant_id)
		if document.status != DocumentStatus.REJECTED.value:
			raise InvalidTransitionError(
				"revise", document.status, DocumentStatus.REJECTED.value
			)

		await self._move(
			uow,
			document,
			DocumentStatus.REJECTED,
			DocumentStatus.DRAFT,
			actor.id,
			comment,
		)
		await self.audit.record(
			uow,
			tenant_id=tenant_id,
			actor_id=actor.id,
			entity_type="DOCUMENT",
			entity_id=document_id,
			action="DMS.REVIEW_REOPENED",
			details=f"Document reopened for rework. Comment: {comment or 'N/A'}",
			metadata={"comment": comment},
		)

		await uow.session.refresh(document)
		return document

	async def restart(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
		actor: Actor,
	) -> Document:
		"""Resubmit a document to the reviewers of its previous cycle."""
		cycle = await workflows_api.latest_cycle_number(uow.session, document_id)
		previous = await workflows_api.list_cycle_reviews(uow.session, document_id, cycle)
		if not previous:
			raise DomainViolationError("No previous review cycle to restart.")
		reviewers = [
			ReviewerAssignment(user_id=review.reviewer_id, stage=review.stage_number)
			for review in previous
		]
		return await self.start(uow, document_id, tenant_id, actor, reviewers)

	async def list_reviews(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
	) -> list[DocumentReview]:
		"""Reviews of one document, latest cycle first, then by stage."""
		return await workflows_api.list_reviews(uow.session, tenant_id, [document_id])

	async def review_history(
		self,
		uow: UnitOfWork,
		document_id: UUID,
		tenant_id: UUID,
	) -> list[DocumentReview]:
		"""Reviews of the document and every predecessor in its lineage."""
		document_ids = await self.ancestors.ancestor_ids(uow, document_id, tenant_id)
		if not document_ids:
			raise DocumentNotFoundError(document_id, tenant_id)
		reviews = await workflows_api.list_reviews(uow.session, tenant_id, document_ids)
		position = {doc_id: index for index, doc_id in enumerate(document_ids)}
		return sorted(reviews, key=lambda review: position[review.document_id])
