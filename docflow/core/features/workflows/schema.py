# (c) Copyright Datacraft, 2026
"""Document workflow Pydantic schemas."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .db.orm import ReviewDecision


class TransitionRequest(BaseModel):
	"""Apply one workflow action to a document."""
	action: str
	comment: str | None = None


class ReviewerAssignmentIn(BaseModel):
	user_id: UUID
	stage: int = Field(default=1, ge=1)


class StartReviewRequest(BaseModel):
	reviewers: list[ReviewerAssignmentIn]


class ReviewDecisionRequest(BaseModel):
	decision: ReviewDecision
	comment: str | None = None


class ReviewOutcomeInfo(BaseModel):
	status: str
	pending_count: int | None = None


class DocumentInfo(BaseModel):
	"""Document as seen by workflow callers."""
	id: UUID
	tenant_id: UUID
	document_number: str | None = None
	title: str
	status: str
	effective_status: str | None = None
	folder_id: UUID | None = None
	review_mode: bool = False
	current_version_id: UUID | None = None
	supersedes_id: UUID | None = None
	superseded_by_id: UUID | None = None
	effective_date: datetime | None = None
	expiry_date: datetime | None = None
	created_by: UUID
	updated_by: UUID | None = None
	updated_at: datetime | None = None

	model_config = ConfigDict(from_attributes=True)


class ReviewInfo(BaseModel):
	id: UUID
	document_id: UUID
	reviewer_id: UUID
	cycle_number: int
	stage_number: int
	status: str
	reviewed_at: datetime | None = None
	comment: str | None = None

	model_config = ConfigDict(from_attributes=True)


class HistoryEntryInfo(BaseModel):
	id: UUID
	document_id: UUID
	from_status: str
	to_status: str
	actor_id: UUID
	comment: str | None = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class VersionInfo(BaseModel):
	id: UUID
	document_id: UUID
	version_number: int
	is_frozen: bool
	content_mode: str
	file_name: str | None = None
	mime_type: str | None = None
	storage_key: str | None = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class EffectivePermissions(BaseModel):
	folder_id: UUID
	permissions: list[str]


class AcknowledgementInfo(BaseModel):
	id: UUID
	document_id: UUID
	version_id: UUID
	user_id: UUID
	acknowledged_at: datetime

	model_config = ConfigDict(from_attributes=True)


class CommentRequest(BaseModel):
	content: str


class CommentInfo(BaseModel):
	id: UUID
	document_id: UUID
	user_id: UUID
	content: str
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)
