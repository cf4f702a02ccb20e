# (c) Copyright Datacraft, 2026
"""Document, version and lineage ORM models."""
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import (
	Boolean,
	DateTime,
	ForeignKey,
	Index,
	Integer,
	String,
	Text,
	UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from uuid_extensions import uuid7

from docflow.core.db.base import Base
from docflow.core.utils.tz import utc_now


class DocumentStatus(str, Enum):
	DRAFT = "DRAFT"
	SUBMITTED = "SUBMITTED"
	APPROVED = "APPROVED"
	REJECTED = "REJECTED"
	OBSOLETE = "OBSOLETE"


class ContentMode(str, Enum):
	FILE = "FILE"
	STRUCTURED = "STRUCTURED"


class Document(Base):
	"""A node in a lineage chain of successive revisions."""
	__tablename__ = "dms_documents"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)

	document_number: Mapped[str | None] = mapped_column(String(32))
	title: Mapped[str] = mapped_column(String(255), nullable=False)
	description: Mapped[str | None] = mapped_column(Text)
	type_id: Mapped[UUID | None] = mapped_column()
	folder_id: Mapped[UUID | None] = mapped_column(index=True)

	status: Mapped[str] = mapped_column(
		String(20), default=DocumentStatus.DRAFT.value, nullable=False
	)
	# Set once the first review cycle starts; from then on status moves
	# through the review cycle manager
	review_mode: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

	current_version_id: Mapped[UUID | None] = mapped_column()

	# Lineage
	supersedes_id: Mapped[UUID | None] = mapped_column(
		ForeignKey("dms_documents.id", ondelete="RESTRICT"), unique=True
	)
	superseded_by_id: Mapped[UUID | None] = mapped_column(
		ForeignKey("dms_documents.id", ondelete="RESTRICT"), unique=True
	)

	# Validity window, only used to derive the effective status
	effective_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
	expiry_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

	created_by: Mapped[UUID] = mapped_column(nullable=False)
	updated_by: Mapped[UUID | None] = mapped_column()
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)
	updated_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)

	def __repr__(self) -> str:
		return f"Document({self.id=}, {self.document_number=}, {self.status=})"

	__table_args__ = (
		UniqueConstraint("tenant_id", "document_number", name="uq_dms_documents_number"),
		Index("idx_dms_documents_tenant_status", "tenant_id", "status"),
	)


class DocumentVersion(Base):
	"""One content snapshot owned by exactly one document."""
	__tablename__ = "dms_document_versions"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
	document_id: Mapped[UUID] = mapped_column(
		ForeignKey("dms_documents.id", ondelete="RESTRICT"), nullable=False, index=True
	)
	version_number: Mapped[int] = mapped_column(Integer, nullable=False)
	is_frozen: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

	content_mode: Mapped[str] = mapped_column(
		String(20), default=ContentMode.FILE.value, nullable=False
	)
	# FILE mode
	file_name: Mapped[str | None] = mapped_column(String(500))
	file_size: Mapped[int | None] = mapped_column(Integer)
	mime_type: Mapped[str | None] = mapped_column(String(100))
	# Blob key for FILE mode, rendered snapshot key for STRUCTURED mode
	storage_key: Mapped[str | None] = mapped_column(String(1024))
	# STRUCTURED mode
	content_json: Mapped[dict[str, Any] | None] = mapped_column()

	created_by: Mapped[UUID | None] = mapped_column()
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)

	def __repr__(self) -> str:
		return f"DocumentVersion({self.document_id=}, {self.version_number=}, {self.is_frozen=})"

	__table_args__ = (
		UniqueConstraint("document_id", "version_number", name="uq_dms_versions_number"),
	)


class DocumentVersionAttachment(Base):
	"""Supporting file attached to a document version."""
	__tablename__ = "dms_version_attachments"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
	version_id: Mapped[UUID] = mapped_column(
		ForeignKey("dms_document_versions.id", ondelete="RESTRICT"), nullable=False, index=True
	)
	file_name: Mapped[str] = mapped_column(String(500), nullable=False)
	mime_type: Mapped[str | None] = mapped_column(String(100))
	file_size: Mapped[int | None] = mapped_column(Integer)
	storage_key: Mapped[str] = mapped_column(String(1024), nullable=False)

	created_by: Mapped[UUID | None] = mapped_column()
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)


class DocumentSequence(Base):
	"""Per tenant and year counter behind document numbers."""
	__tablename__ = "dms_document_sequences"

	tenant_id: Mapped[UUID] = mapped_column(primary_key=True)
	year: Mapped[int] = mapped_column(Integer, primary_key=True)
	current: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class DocumentAcknowledgement(Base):
	"""A user's confirmation of having read one approved version."""
	__tablename__ = "dms_document_acknowledgements"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
	document_id: Mapped[UUID] = mapped_column(
		ForeignKey("dms_documents.id", ondelete="RESTRICT"), nullable=False, index=True
	)
	version_id: Mapped[UUID] = mapped_column(
		ForeignKey("dms_document_versions.id", ondelete="RESTRICT"), nullable=False
	)
	user_id: Mapped[UUID] = mapped_column(nullable=False)
	acknowledged_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)

	__table_args__ = (
		UniqueConstraint(
			"document_id", "version_id", "user_id", name="uq_dms_acknowledgements_user"
		),
	)


class DocumentComment(Base):
	__tablename__ = "dms_document_comments"

	id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid7)
	tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
	document_id: Mapped[UUID] = mapped_column(
		ForeignKey("dms_documents.id", ondelete="RESTRICT"), nullable=False, index=True
	)
	user_id: Mapped[UUID] = mapped_column(nullable=False)
	content: Mapped[str] = mapped_column(Text, nullable=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)

	def __repr__(self) -> str:
		return f"DocumentComment({self.document_id=}, {self.user_id=})"
