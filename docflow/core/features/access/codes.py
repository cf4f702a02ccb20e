# (c) Copyright Datacraft, 2026
"""Global permission codes carried by an actor."""
from enum import Enum


class PermissionCode(str, Enum):
	DOCUMENT_CREATE = "DMS_DOCUMENT_CREATE"
	DOCUMENT_READ = "DMS_DOCUMENT_READ"
	DOCUMENT_EDIT = "DMS_DOCUMENT_EDIT"
	DOCUMENT_DELETE = "DMS_DOCUMENT_DELETE"
	DOCUMENT_SUBMIT = "DMS_DOCUMENT_SUBMIT"
	DOCUMENT_ARCHIVE = "DMS_DOCUMENT_ARCHIVE"
	DOCUMENT_OBSOLETE = "DMS_DOCUMENT_OBSOLETE"
	DOCUMENT_REVIEW = "DMS_DOCUMENT_REVIEW"
	DOCUMENT_APPROVE = "DMS_DOCUMENT_APPROVE"
	DOCUMENT_REJECT = "DMS_DOCUMENT_REJECT"
	DOCUMENT_WITHDRAW = "DMS_DOCUMENT_WITHDRAW"
	FOLDER_EDIT = "DMS_FOLDER_EDIT"


WRITE_LEVEL_CODES = frozenset(
	code.value
	for code in (
		PermissionCode.DOCUMENT_CREATE,
		PermissionCode.DOCUMENT_READ,
		PermissionCode.DOCUMENT_EDIT,
		PermissionCode.DOCUMENT_DELETE,
		PermissionCode.DOCUMENT_SUBMIT,
		PermissionCode.DOCUMENT_ARCHIVE,
		PermissionCode.DOCUMENT_OBSOLETE,
		PermissionCode.FOLDER_EDIT,
		PermissionCode.DOCUMENT_APPROVE,
		PermissionCode.DOCUMENT_REJECT,
		PermissionCode.DOCUMENT_WITHDRAW,
	)
)

REVIEW_LEVEL_CODES = frozenset(
	code.value
	for code in (
		PermissionCode.DOCUMENT_READ,
		PermissionCode.DOCUMENT_REVIEW,
		PermissionCode.DOCUMENT_APPROVE,
		PermissionCode.DOCUMENT_REJECT,
	)
)

READ_LEVEL_CODES = frozenset({PermissionCode.DOCUMENT_READ.value})
