# (c) Copyright Datacraft, 2026
from .orm import (
	DocumentReview,
	ReviewDecision,
	ReviewStatus,
	WorkflowHistory,
)

__all__ = [
	"DocumentReview",
	"ReviewDecision",
	"ReviewStatus",
	"WorkflowHistory",
]
