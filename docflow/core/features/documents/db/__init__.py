# (c) Copyright Datacraft, 2026
"""Documents database models and operations."""

from .orm import (
	ContentMode,
	Document,
	DocumentAcknowledgement,
	DocumentComment,
	DocumentSequence,
	DocumentStatus,
	DocumentVersion,
	DocumentVersionAttachment,
)

__all__ = [
	"ContentMode",
	"Document",
	"DocumentAcknowledgement",
	"DocumentComment",
	"DocumentSequence",
	"DocumentStatus",
	"DocumentVersion",
	"DocumentVersionAttachment",
]
