# (c) Copyright Datacraft, 2026
"""Document workflow API endpoints."""
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from docflow.core.config import get_settings
from docflow.core.db.engine import get_db
from docflow.core.db.unit_of_work import unit_of_work
from docflow.core.features.access.resolver import Actor
from docflow.core.features.documents.engagement import ALREADY_ACKNOWLEDGED
from docflow.core.utils.tz import utc_now

from . import schema
from .errors import (
	DocumentNotFoundError,
	DomainViolationError,
	InvalidTransitionError,
	InvalidWorkflowActionError,
	StateMismatchError,
	UnauthorizedWorkflowActionError,
	VersionConflictError,
	WorkflowError,
	WorkflowInternalError,
)
from .lineage import ALREADY_SUPERSEDED
from .orchestrator import WorkflowOrchestrator, build_orchestrator
from .reviews import ReviewerAssignment
from .transitions import derive_effective_status

router = APIRouter(tags=["document-workflow"])

logger = logging.getLogger(__name__)

_orchestrator: WorkflowOrchestrator | None = None


def get_orchestrator() -> WorkflowOrchestrator:
	global _orchestrator
	if _orchestrator is None:
		_orchestrator = build_orchestrator()
	return _orchestrator


def _split_header(value: str | None) -> list[str]:
	if not value:
		return []
	return [item.strip() for item in value.split(",") if item.strip()]


def get_actor(request: Request) -> Actor:
	"""Build the actor from the headers set by the authenticating proxy."""
	settings = get_settings()
	user = request.headers.get(settings.remote_user_header)
	tenant = request.headers.get(settings.remote_tenant_header)
	if not user or not tenant:
		raise HTTPException(
			status_code=status.HTTP_401_UNAUTHORIZED,
			detail="Missing remote user or tenant header",
		)
	try:
		user_id, tenant_id = UUID(user), UUID(tenant)
	except ValueError:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail="Remote user and tenant headers must be UUIDs",
		)
	return Actor(
		id=user_id,
		tenant_id=tenant_id,
		permissions=frozenset(_split_header(request.headers.get(settings.remote_permissions_header))),
	)


CurrentActor = Annotated[Actor, Depends(get_actor)]
Orchestrator = Annotated[WorkflowOrchestrator, Depends(get_orchestrator)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


def to_http_error(e: WorkflowError) -> HTTPException:
	"""Map a workflow error to the HTTP response the client sees."""
	if isinstance(e, DocumentNotFoundError):
		return HTTPException(status_code=404, detail=str(e))
	if isinstance(e, InvalidWorkflowActionError):
		return HTTPException(status_code=400, detail=str(e))
	if isinstance(e, UnauthorizedWorkflowActionError):
		return HTTPException(status_code=403, detail=str(e))
	if isinstance(e, StateMismatchError):
		return HTTPException(
			status_code=409,
			detail={"message": str(e), "code": "STATE_MISMATCH", "retry": True},
		)
	if isinstance(e, (InvalidTransitionError, VersionConflictError)):
		return HTTPException(status_code=409, detail=str(e))
	if isinstance(e, DomainViolationError):
		if e.code in (ALREADY_SUPERSEDED, ALREADY_ACKNOWLEDGED):
			return HTTPException(status_code=409, detail={"message": str(e), "code": e.code})
		return HTTPException(status_code=422, detail=str(e))
	if isinstance(e, WorkflowInternalError):
		logger.error(f"Workflow integrity failure: {e}")
		return HTTPException(status_code=500, detail="Internal workflow error")
	return HTTPException(status_code=400, detail=str(e))


def _document_info(document) -> schema.DocumentInfo:
	info = schema.DocumentInfo.model_validate(document)
	info.effective_status = derive_effective_status(
		document.status,
		document.expiry_date,
		document.effective_date,
		utc_now(),
	).value
	return info


@router.post("/documents/{document_id}/transitions")
async def transition_document(
	document_id: UUID,
	request: schema.TransitionRequest,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
) -> schema.DocumentInfo:
	"""Apply a workflow action (submit, approve, reject, revise, obsolete, withdraw)."""
	timeout = get_settings().transaction_timeout_seconds
	try:
		async with unit_of_work(db_session, timeout) as uow:
			document = await orchestrator.transition(
				uow,
				document_id,
				actor.tenant_id,
				request.action,
				actor,
				request.comment,
			)
	except WorkflowError as e:
		raise to_http_error(e) from e
	except TimeoutError:
		raise HTTPException(status_code=504, detail="Transaction timed out")

	return _document_info(document)


@router.post("/documents/{document_id}/reviews", status_code=201)
async def start_review(
	document_id: UUID,
	request: schema.StartReviewRequest,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
) -> schema.DocumentInfo:
	"""Start a review cycle with the given reviewers."""
	reviewers = [
		ReviewerAssignment(user_id=item.user_id, stage=item.stage)
		for item in request.reviewers
	]
	timeout = get_settings().transaction_timeout_seconds
	try:
		async with unit_of_work(db_session, timeout) as uow:
			document = await orchestrator.start_review(
				uow, document_id, actor.tenant_id, actor, reviewers
			)
	except WorkflowError as e:
		raise to_http_error(e) from e
	except TimeoutError:
		raise HTTPException(status_code=504, detail="Transaction timed out")

	return _document_info(document)


@router.post("/documents/{document_id}/reviews/decision")
async def decide_review(
	document_id: UUID,
	request: schema.ReviewDecisionRequest,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
) -> schema.ReviewOutcomeInfo:
	"""Record the calling reviewer's decision."""
	timeout = get_settings().transaction_timeout_seconds
	try:
		async with unit_of_work(db_session, timeout) as uow:
			outcome = await orchestrator.decide_review(
				uow,
				document_id,
				actor.tenant_id,
				actor.id,
				request.decision,
				request.comment,
			)
	except WorkflowError as e:
		raise to_http_error(e) from e
	except TimeoutError:
		raise HTTPException(status_code=504, detail="Transaction timed out")

	return schema.ReviewOutcomeInfo(status=outcome.status, pending_count=outcome.pending_count)


@router.get("/documents/{document_id}/reviews")
async def list_reviews(
	document_id: UUID,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
	lineage: bool = False,
) -> list[schema.ReviewInfo]:
	"""Reviews of the document, or of its whole lineage with ``lineage=true``."""
	try:
		async with unit_of_work(db_session) as uow:
			if lineage:
				reviews = await orchestrator.review_history(uow, document_id, actor.tenant_id)
			else:
				reviews = await orchestrator.list_reviews(uow, document_id, actor.tenant_id)
	except WorkflowError as e:
		raise to_http_error(e) from e

	return [schema.ReviewInfo.model_validate(review) for review in reviews]


@router.post("/documents/{document_id}/revise", status_code=201)
async def revise_document(
	document_id: UUID,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
) -> schema.DocumentInfo:
	"""Create the DRAFT revision of an APPROVED document."""
	timeout = get_settings().transaction_timeout_seconds
	try:
		async with unit_of_work(db_session, timeout) as uow:
			document = await orchestrator.revise_document(
				uow, document_id, actor.tenant_id, actor
			)
	except WorkflowError as e:
		raise to_http_error(e) from e
	except TimeoutError:
		raise HTTPException(status_code=504, detail="Transaction timed out")

	return _document_info(document)


@router.get("/documents/{document_id}/history")
async def document_history(
	document_id: UUID,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
) -> list[schema.HistoryEntryInfo]:
	"""Status history across the document's lineage, newest first."""
	try:
		async with unit_of_work(db_session) as uow:
			entries = await orchestrator.workflow_history(uow, document_id, actor.tenant_id)
	except WorkflowError as e:
		raise to_http_error(e) from e

	return [schema.HistoryEntryInfo.model_validate(entry) for entry in entries]


@router.get("/documents/{document_id}/versions")
async def document_versions(
	document_id: UUID,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
) -> list[schema.VersionInfo]:
	"""Versions across the document's lineage, newest first."""
	try:
		async with unit_of_work(db_session) as uow:
			versions = await orchestrator.list_versions(uow, document_id, actor.tenant_id)
	except WorkflowError as e:
		raise to_http_error(e) from e

	return [schema.VersionInfo.model_validate(version) for version in versions]


@router.post("/documents/{document_id}/acknowledgements", status_code=201)
async def acknowledge_document(
	document_id: UUID,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
) -> schema.AcknowledgementInfo:
	"""Acknowledge the current version of an APPROVED document."""
	timeout = get_settings().transaction_timeout_seconds
	try:
		async with unit_of_work(db_session, timeout) as uow:
			acknowledgement = await orchestrator.acknowledge(
				uow, document_id, actor.tenant_id, actor
			)
	except WorkflowError as e:
		raise to_http_error(e) from e
	except TimeoutError:
		raise HTTPException(status_code=504, detail="Transaction timed out")

	return schema.AcknowledgementInfo.model_validate(acknowledgement)


@router.get("/documents/{document_id}/acknowledgements")
async def list_acknowledgements(
	document_id: UUID,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
	mine: bool = False,
) -> list[schema.AcknowledgementInfo]:
	"""Acknowledgements of the document, or only the caller's with ``mine=true``."""
	try:
		async with unit_of_work(db_session) as uow:
			acknowledgements = await orchestrator.list_acknowledgements(
				uow, document_id, actor.tenant_id, actor, mine
			)
	except WorkflowError as e:
		raise to_http_error(e) from e

	return [schema.AcknowledgementInfo.model_validate(item) for item in acknowledgements]


@router.post("/documents/{document_id}/comments", status_code=201)
async def add_comment(
	document_id: UUID,
	request: schema.CommentRequest,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
) -> schema.CommentInfo:
	timeout = get_settings().transaction_timeout_seconds
	try:
		async with unit_of_work(db_session, timeout) as uow:
			comment = await orchestrator.add_comment(
				uow, document_id, actor.tenant_id, actor, request.content
			)
	except WorkflowError as e:
		raise to_http_error(e) from e
	except TimeoutError:
		raise HTTPException(status_code=504, detail="Transaction timed out")

	return schema.CommentInfo.model_validate(comment)


@router.get("/documents/{document_id}/comments")
async def list_comments(
	document_id: UUID,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
) -> list[schema.CommentInfo]:
	"""Comments of the document, oldest first."""
	try:
		async with unit_of_work(db_session) as uow:
			comments = await orchestrator.list_comments(uow, document_id, actor.tenant_id, actor)
	except WorkflowError as e:
		raise to_http_error(e) from e

	return [schema.CommentInfo.model_validate(comment) for comment in comments]


@router.get("/folders/{folder_id}/effective-permissions")
async def effective_permissions(
	folder_id: UUID,
	actor: CurrentActor,
	orchestrator: Orchestrator,
	db_session: DbSession,
) -> schema.EffectivePermissions:
	"""Permission codes in force for the caller on documents in the folder."""
	async with unit_of_work(db_session) as uow:
		codes = await orchestrator.effective_permission_set(uow, actor, folder_id)

	return schema.EffectivePermissions(folder_id=folder_id, permissions=sorted(codes))
