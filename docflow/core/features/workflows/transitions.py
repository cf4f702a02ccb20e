# (c) Copyright Datacraft, 2026
"""
Document state transition table.

The five table actions are the only ways a document status may change
outside of a review cycle. ``withdraw`` is derived: it pulls a submitted
document back to draft and is authorised by ownership rather than by a
permission code.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from docflow.core.features.access.codes import PermissionCode
from docflow.core.features.access.db.orm import FolderPermissionLevel
from docflow.core.features.documents.db.orm import DocumentStatus
from docflow.core.utils.tz import ensure_aware

from .errors import InvalidTransitionError, InvalidWorkflowActionError


class WorkflowAction(str, Enum):
	SUBMIT = "submit"
	APPROVE = "approve"
	REJECT = "reject"
	REVISE = "revise"
	OBSOLETE = "obsolete"
	WITHDRAW = "withdraw"


class EffectiveStatus(str, Enum):
	"""Persisted statuses plus the two derived from the validity window."""
	DRAFT = "DRAFT"
	SUBMITTED = "SUBMITTED"
	APPROVED = "APPROVED"
	REJECTED = "REJECTED"
	OBSOLETE = "OBSOLETE"
	EXPIRED = "EXPIRED"
	PENDING_EFFECTIVE = "PENDING_EFFECTIVE"


@dataclass(frozen=True, slots=True)
class Transition:
	action: WorkflowAction
	from_status: DocumentStatus
	to_status: DocumentStatus
	permission: str
	folder_level: FolderPermissionLevel


TRANSITION_MATRIX: dict[WorkflowAction, Transition] = {
	WorkflowAction.SUBMIT: Transition(
		WorkflowAction.SUBMIT,
		DocumentStatus.DRAFT,
		DocumentStatus.SUBMITTED,
		PermissionCode.DOCUMENT_SUBMIT.value,
		FolderPermissionLevel.WRITE,
	),
	WorkflowAction.APPROVE: Transition(
		WorkflowAction.APPROVE,
		DocumentStatus.SUBMITTED,
		DocumentStatus.APPROVED,
		PermissionCode.DOCUMENT_APPROVE.value,
		FolderPermissionLevel.REVIEW,
	),
	WorkflowAction.REJECT: Transition(
		WorkflowAction.REJECT,
		DocumentStatus.SUBMITTED,
		DocumentStatus.REJECTED,
		PermissionCode.DOCUMENT_REJECT.value,
		FolderPermissionLevel.REVIEW,
	),
	WorkflowAction.REVISE: Transition(
		WorkflowAction.REVISE,
		DocumentStatus.REJECTED,
		DocumentStatus.DRAFT,
		PermissionCode.DOCUMENT_EDIT.value,
		FolderPermissionLevel.WRITE,
	),
	WorkflowAction.OBSOLETE: Transition(
		WorkflowAction.OBSOLETE,
		DocumentStatus.APPROVED,
		DocumentStatus.OBSOLETE,
		PermissionCode.DOCUMENT_OBSOLETE.value,
		FolderPermissionLevel.WRITE,
	),
}

WITHDRAW_TRANSITION = Transition(
	WorkflowAction.WITHDRAW,
	DocumentStatus.SUBMITTED,
	DocumentStatus.DRAFT,
	PermissionCode.DOCUMENT_WITHDRAW.value,
	FolderPermissionLevel.WRITE,
)

ALLOWED_TRANSITIONS: dict[DocumentStatus, tuple[WorkflowAction, ...]] = {
	DocumentStatus.DRAFT: (WorkflowAction.SUBMIT,),
	DocumentStatus.SUBMITTED: (WorkflowAction.APPROVE, WorkflowAction.REJECT),
	DocumentStatus.REJECTED: (WorkflowAction.REVISE,),
	DocumentStatus.APPROVED: (WorkflowAction.OBSOLETE,),
	DocumentStatus.OBSOLETE: (),
}


def parse_action(action: str | WorkflowAction) -> WorkflowAction:
	try:
		return WorkflowAction(action)
	except ValueError:
		raise InvalidWorkflowActionError(str(action)) from None


def get_transition(action: str | WorkflowAction) -> Transition:
	"""Look up the transition row for an action, withdraw included."""
	workflow_action = parse_action(action)
	if workflow_action is WorkflowAction.WITHDRAW:
		return WITHDRAW_TRANSITION
	return TRANSITION_MATRIX[workflow_action]


def ensure_transition_allowed(transition: Transition, current: str) -> None:
	if current != transition.from_status.value:
		raise InvalidTransitionError(
			transition.action.value,
			current,
			transition.from_status.value,
		)


def derive_effective_status(
	status: str,
	expiry_date: datetime | None,
	effective_date: datetime | None,
	now: datetime,
) -> EffectiveStatus:
	"""
	Status as seen by readers at ``now``.

	Only an APPROVED document is affected by its validity window: past the
	expiry date it reads as EXPIRED, before the effective date it reads as
	PENDING_EFFECTIVE. Expiry wins when both apply.
	"""
	if status == DocumentStatus.APPROVED.value:
		now = ensure_aware(now)
		expiry_date = ensure_aware(expiry_date)
		effective_date = ensure_aware(effective_date)
		if expiry_date is not None and expiry_date < now:
			return EffectiveStatus.EXPIRED
		if effective_date is not None and effective_date > now:
			return EffectiveStatus.PENDING_EFFECTIVE
	return EffectiveStatus(status)
