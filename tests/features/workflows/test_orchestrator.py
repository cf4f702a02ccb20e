# (c) Copyright Datacraft, 2026
"""Tests for the workflow orchestrator transition pipeline."""
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from docflow.core.features.access.codes import PermissionCode
from docflow.core.features.access.db.orm import FolderPermissionLevel
from docflow.core.features.documents.db.orm import ContentMode, DocumentStatus
from docflow.core.features.workflows.errors import (
    DocumentNotFoundError,
    DomainViolationError,
    InvalidTransitionError,
    InvalidWorkflowActionError,
    StateMismatchError,
    UnauthorizedWorkflowActionError,
    WorkflowInternalError,
)
from docflow.core.features.workflows.lineage import ALREADY_SUPERSEDED
from docflow.core.features.workflows.reviews import ReviewerAssignment

from conftest import START


@pytest.mark.asyncio
async def test_submit_freezes_version_and_records_once(orchestrator, open_uow, make_document, fetch, admin, tenant_id):
    doc_id = await make_document()

    async with open_uow() as uow:
        document = await orchestrator.transition(uow, doc_id, tenant_id, "submit", admin)

    assert document.status == DocumentStatus.SUBMITTED.value
    version = await fetch.version(document.current_version_id)
    assert version.is_frozen is True

    history = await fetch.history(doc_id)
    assert [(h.from_status, h.to_status) for h in history] == [("DRAFT", "SUBMITTED")]
    audit = await fetch.audit("DMS.SUBMIT")
    assert len(audit) == 1
    assert audit[0].details == "Action 'submit' completed. Status: DRAFT -> SUBMITTED. Comment: N/A"


@pytest.mark.asyncio
async def test_unknown_action(orchestrator, open_uow, make_document, fetch, admin, tenant_id):
    doc_id = await make_document()

    with pytest.raises(InvalidWorkflowActionError):
        async with open_uow() as uow:
            await orchestrator.transition(uow, doc_id, tenant_id, "publish", admin)

    assert await fetch.history(doc_id) == []


@pytest.mark.asyncio
async def test_other_tenant_cannot_see_document(orchestrator, open_uow, make_document, admin):
    doc_id = await make_document()

    with pytest.raises(DocumentNotFoundError):
        async with open_uow() as uow:
            await orchestrator.transition(uow, doc_id, uuid.uuid4(), "submit", admin)


@pytest.mark.asyncio
async def test_wrong_from_status_leaves_no_trace(orchestrator, open_uow, make_document, fetch, admin, tenant_id):
    doc_id = await make_document(status=DocumentStatus.DRAFT)

    with pytest.raises(InvalidTransitionError):
        async with open_uow() as uow:
            await orchestrator.transition(uow, doc_id, tenant_id, "approve", admin)

    assert (await fetch.document(doc_id)).status == "DRAFT"
    assert await fetch.history(doc_id) == []
    assert await fetch.audit() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("comment", [None, "", "   "])
async def test_reject_needs_comment(orchestrator, open_uow, make_document, admin, tenant_id, comment):
    doc_id = await make_document(status=DocumentStatus.SUBMITTED)

    with pytest.raises(DomainViolationError):
        async with open_uow() as uow:
            await orchestrator.transition(uow, doc_id, tenant_id, "reject", admin, comment)


@pytest.mark.asyncio
async def test_reject_then_revise_back_to_draft(orchestrator, open_uow, make_document, fetch, admin, tenant_id):
    doc_id = await make_document(status=DocumentStatus.SUBMITTED)

    async with open_uow() as uow:
        document = await orchestrator.transition(
            uow, doc_id, tenant_id, "reject", admin, "Section 4 is missing"
        )
    assert document.status == "REJECTED"

    async with open_uow() as uow:
        document = await orchestrator.transition(uow, doc_id, tenant_id, "revise", admin)
    assert document.status == "DRAFT"

    history = await fetch.history(doc_id)
    assert [(h.from_status, h.to_status, h.comment) for h in history] == [
        ("SUBMITTED", "REJECTED", "Section 4 is missing"),
        ("REJECTED", "DRAFT", None),
    ]


@pytest.mark.asyncio
async def test_obsolete_expired_document_fails(orchestrator, open_uow, make_document, fetch, admin, tenant_id):
    doc_id = await make_document(
        status=DocumentStatus.APPROVED,
        expiry_date=START - timedelta(days=1),
    )

    with pytest.raises(DomainViolationError, match="EXPIRED"):
        async with open_uow() as uow:
            await orchestrator.transition(uow, doc_id, tenant_id, "obsolete", admin)

    assert (await fetch.document(doc_id)).status == "APPROVED"


@pytest.mark.asyncio
async def test_obsolete_approved_document(orchestrator, open_uow, make_document, fetch, admin, tenant_id):
    doc_id = await make_document(status=DocumentStatus.APPROVED)

    async with open_uow() as uow:
        document = await orchestrator.transition(uow, doc_id, tenant_id, "obsolete", admin)

    assert document.status == "OBSOLETE"
    assert len(await fetch.history(doc_id)) == 1
    assert len(await fetch.audit("DMS.OBSOLETE")) == 1


@pytest.mark.asyncio
async def test_pending_effective_document_can_still_move(orchestrator, open_uow, make_document, admin, tenant_id):
    doc_id = await make_document(
        status=DocumentStatus.APPROVED,
        effective_date=START + timedelta(days=7),
    )

    async with open_uow() as uow:
        document = await orchestrator.transition(uow, doc_id, tenant_id, "obsolete", admin)

    assert document.status == "OBSOLETE"


@pytest.mark.asyncio
async def test_superseded_document_cannot_be_obsoleted(orchestrator, open_uow, make_document, admin, tenant_id):
    old_id = await make_document(status=DocumentStatus.APPROVED)
    await make_document(status=DocumentStatus.DRAFT, supersedes_id=old_id)

    with pytest.raises(DomainViolationError) as exc:
        async with open_uow() as uow:
            await orchestrator.transition(uow, old_id, tenant_id, "obsolete", admin)

    assert exc.value.code == ALREADY_SUPERSEDED


@pytest.mark.asyncio
async def test_direct_approve_without_reviews(orchestrator, open_uow, make_document, fetch, renderer, admin, tenant_id):
    doc_id = await make_document(status=DocumentStatus.SUBMITTED)

    async with open_uow() as uow:
        document = await orchestrator.transition(uow, doc_id, tenant_id, "approve", admin)

    assert document.status == "APPROVED"
    assert document.updated_by == admin.id
    renderer.render.assert_not_awaited()
    assert len(await fetch.history(doc_id)) == 1
    approved = await fetch.audit("DMS.DOCUMENT_APPROVED")
    assert len(approved) == 1
    assert "Content Mode: FILE" in approved[0].details
    assert len(await fetch.audit("DMS.APPROVE")) == 1


@pytest.mark.asyncio
async def test_approve_structured_renders_snapshot(orchestrator, open_uow, make_document, fetch, renderer, admin, tenant_id):
    payload = {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Scope"}]}]}
    doc_id = await make_document(
        status=DocumentStatus.SUBMITTED,
        content_mode=ContentMode.STRUCTURED,
        content_json=payload,
    )

    async with open_uow() as uow:
        document = await orchestrator.transition(uow, doc_id, tenant_id, "approve", admin)

    renderer.render.assert_awaited_once_with(tenant_id, doc_id, document.current_version_id, payload)
    version = await fetch.version(document.current_version_id)
    assert version.storage_key == "snapshots/rendered.pdf"
    approved = await fetch.audit("DMS.DOCUMENT_APPROVED")
    assert "Generated PDF snapshot." in approved[0].details


@pytest.mark.asyncio
async def test_structured_without_payload_is_fatal(orchestrator, open_uow, make_document, fetch, admin, tenant_id):
    doc_id = await make_document(
        status=DocumentStatus.SUBMITTED,
        content_mode=ContentMode.STRUCTURED,
        content_json=None,
    )

    with pytest.raises(WorkflowInternalError):
        async with open_uow() as uow:
            await orchestrator.transition(uow, doc_id, tenant_id, "approve", admin)

    assert (await fetch.document(doc_id)).status == "SUBMITTED"


@pytest.mark.asyncio
async def test_missing_current_version_is_fatal(orchestrator, open_uow, make_document, admin, tenant_id):
    doc_id = await make_document(status=DocumentStatus.SUBMITTED, with_version=False)

    with pytest.raises(WorkflowInternalError):
        async with open_uow() as uow:
            await orchestrator.transition(uow, doc_id, tenant_id, "approve", admin)


@pytest.mark.asyncio
async def test_renderer_failure_aborts_approval(orchestrator, open_uow, make_document, fetch, renderer, admin, tenant_id):
    renderer.render.side_effect = RuntimeError("renderer offline")
    doc_id = await make_document(
        status=DocumentStatus.SUBMITTED,
        content_mode=ContentMode.STRUCTURED,
        content_json={"type": "doc", "content": []},
    )

    with pytest.raises(RuntimeError):
        async with open_uow() as uow:
            await orchestrator.transition(uow, doc_id, tenant_id, "approve", admin)

    assert (await fetch.document(doc_id)).status == "SUBMITTED"
    assert await fetch.history(doc_id) == []
    assert await fetch.audit() == []


@pytest.mark.asyncio
async def test_lost_race_raises_state_mismatch(orchestrator, open_uow, make_document, fetch, admin, tenant_id, monkeypatch):
    doc_id = await make_document()
    monkeypatch.setattr(
        "docflow.core.features.documents.db.api.compare_and_set_status",
        AsyncMock(return_value=0),
    )

    with pytest.raises(StateMismatchError) as exc:
        async with open_uow() as uow:
            await orchestrator.transition(uow, doc_id, tenant_id, "submit", admin)

    assert exc.value.retryable is True
    assert exc.value.expected == "DRAFT"
    assert await fetch.history(doc_id) == []
    assert await fetch.audit() == []


class TestAuthorization:

    @pytest.mark.asyncio
    async def test_missing_global_permission(self, orchestrator, open_uow, make_document, make_actor, tenant_id):
        doc_id = await make_document()
        actor = make_actor(PermissionCode.DOCUMENT_READ.value)

        with pytest.raises(UnauthorizedWorkflowActionError) as exc:
            async with open_uow() as uow:
                await orchestrator.transition(uow, doc_id, tenant_id, "submit", actor)

        assert exc.value.permission == "DMS_DOCUMENT_SUBMIT"

    @pytest.mark.asyncio
    async def test_folder_review_level_grants_approve(self, orchestrator, open_uow, make_document, make_actor, grant, tenant_id):
        folder_id = uuid.uuid4()
        doc_id = await make_document(status=DocumentStatus.SUBMITTED, folder_id=folder_id)
        reviewer = make_actor()
        await grant(reviewer, folder_id, FolderPermissionLevel.REVIEW)

        async with open_uow() as uow:
            document = await orchestrator.transition(uow, doc_id, tenant_id, "approve", reviewer)

        assert document.status == "APPROVED"

    @pytest.mark.asyncio
    async def test_folder_acl_overrides_global_codes(self, orchestrator, open_uow, make_document, make_actor, grant, tenant_id):
        folder_id = uuid.uuid4()
        doc_id = await make_document(status=DocumentStatus.SUBMITTED, folder_id=folder_id)
        reader = make_actor(PermissionCode.DOCUMENT_APPROVE.value)
        await grant(reader, folder_id, FolderPermissionLevel.READ)

        with pytest.raises(UnauthorizedWorkflowActionError):
            async with open_uow() as uow:
                await orchestrator.transition(uow, doc_id, tenant_id, "approve", reader)

    @pytest.mark.asyncio
    async def test_creator_may_withdraw_without_permissions(self, orchestrator, open_uow, make_document, make_actor, fetch, tenant_id):
        creator = make_actor()
        doc_id = await make_document(status=DocumentStatus.SUBMITTED, created_by=creator.id)

        async with open_uow() as uow:
            document = await orchestrator.transition(uow, doc_id, tenant_id, "withdraw", creator)

        assert document.status == "DRAFT"
        assert len(await fetch.audit("DMS.REVIEW_WITHDRAWN")) == 1
        assert [(h.from_status, h.to_status) for h in await fetch.history(doc_id)] == [
            ("SUBMITTED", "DRAFT")
        ]

    @pytest.mark.asyncio
    async def test_stranger_cannot_withdraw(self, orchestrator, open_uow, make_document, make_actor, tenant_id):
        doc_id = await make_document(status=DocumentStatus.SUBMITTED)
        stranger = make_actor(PermissionCode.DOCUMENT_READ.value)

        with pytest.raises(UnauthorizedWorkflowActionError):
            async with open_uow() as uow:
                await orchestrator.transition(uow, doc_id, tenant_id, "withdraw", stranger)

    @pytest.mark.asyncio
    async def test_folder_writer_may_withdraw(self, orchestrator, open_uow, make_document, make_actor, grant, tenant_id):
        folder_id = uuid.uuid4()
        doc_id = await make_document(status=DocumentStatus.SUBMITTED, folder_id=folder_id)
        editor = make_actor()
        await grant(editor, folder_id, FolderPermissionLevel.WRITE)

        async with open_uow() as uow:
            document = await orchestrator.transition(uow, doc_id, tenant_id, "withdraw", editor)

        assert document.status == "DRAFT"


class TestCascade:

    @pytest.mark.asyncio
    async def test_approving_revision_obsoletes_predecessor(self, orchestrator, open_uow, make_document, fetch, admin, tenant_id):
        old_id = await make_document(status=DocumentStatus.APPROVED, document_number="DOC-2026-00001")
        new_id = await make_document(
            status=DocumentStatus.SUBMITTED,
            supersedes_id=old_id,
            document_number="DOC-2026-00002",
        )

        async with open_uow() as uow:
            document = await orchestrator.transition(uow, new_id, tenant_id, "approve", admin)

        assert document.status == "APPROVED"
        assert (await fetch.document(old_id)).status == "OBSOLETE"
        cascades = await fetch.audit("DMS.AUTO_OBSOLETED")
        assert len(cascades) == 1
        assert cascades[0].entity_id == old_id
        assert cascades[0].extra["supersededById"] == str(new_id)
        # the approval itself still records exactly one history row
        assert len(await fetch.history(new_id)) == 1

    @pytest.mark.asyncio
    async def test_cascade_is_skipped_when_predecessor_moved(self, orchestrator, open_uow, make_document, fetch, admin, tenant_id):
        old_id = await make_document(status=DocumentStatus.OBSOLETE)
        new_id = await make_document(status=DocumentStatus.SUBMITTED, supersedes_id=old_id)

        async with open_uow() as uow:
            document = await orchestrator.transition(uow, new_id, tenant_id, "approve", admin)

        assert document.status == "APPROVED"
        assert (await fetch.document(old_id)).status == "OBSOLETE"
        assert await fetch.audit("DMS.AUTO_OBSOLETED") == []


class TestReviewModeDelegation:

    @pytest.mark.asyncio
    async def test_approve_goes_through_review_cycle(self, orchestrator, open_uow, make_document, make_actor, fetch, admin, tenant_id):
        doc_id = await make_document()
        first = make_actor(PermissionCode.DOCUMENT_APPROVE.value)
        second = make_actor(PermissionCode.DOCUMENT_APPROVE.value)

        async with open_uow() as uow:
            await orchestrator.start_review(
                uow, doc_id, tenant_id, admin,
                [ReviewerAssignment(first.id, 1), ReviewerAssignment(second.id, 2)],
            )

        async with open_uow() as uow:
            document = await orchestrator.transition(uow, doc_id, tenant_id, "approve", first)
        assert document.status == "SUBMITTED"
        assert document.review_mode is True

        async with open_uow() as uow:
            document = await orchestrator.transition(uow, doc_id, tenant_id, "approve", second)
        assert document.status == "APPROVED"

    @pytest.mark.asyncio
    async def test_non_reviewer_cannot_decide(self, orchestrator, open_uow, make_document, make_actor, admin, tenant_id):
        doc_id = await make_document()
        reviewer = make_actor()

        async with open_uow() as uow:
            await orchestrator.start_review(uow, doc_id, tenant_id, admin, [ReviewerAssignment(reviewer.id)])

        with pytest.raises(DomainViolationError):
            async with open_uow() as uow:
                await orchestrator.transition(uow, doc_id, tenant_id, "approve", admin)

    @pytest.mark.asyncio
    async def test_resubmit_restarts_with_previous_reviewers(self, orchestrator, open_uow, make_document, make_actor, admin, tenant_id):
        doc_id = await make_document()
        reviewer = make_actor()

        async with open_uow() as uow:
            await orchestrator.start_review(uow, doc_id, tenant_id, admin, [ReviewerAssignment(reviewer.id, 2)])
        async with open_uow() as uow:
            await orchestrator.transition(uow, doc_id, tenant_id, "withdraw", admin)
        async with open_uow() as uow:
            document = await orchestrator.transition(uow, doc_id, tenant_id, "submit", admin)

        assert document.status == "SUBMITTED"
        async with open_uow() as uow:
            reviews = await orchestrator.list_reviews(uow, doc_id, tenant_id)
        latest = [r for r in reviews if r.cycle_number == 2]
        assert [(r.reviewer_id, r.stage_number, r.status) for r in latest] == [
            (reviewer.id, 2, "PENDING")
        ]
        assert {r.status for r in reviews if r.cycle_number == 1} == {"CANCELLED"}

    @pytest.mark.asyncio
    async def test_obsolete_is_never_delegated(self, orchestrator, open_uow, make_document, admin, tenant_id):
        doc_id = await make_document(status=DocumentStatus.APPROVED, review_mode=True)

        async with open_uow() as uow:
            document = await orchestrator.transition(uow, doc_id, tenant_id, "obsolete", admin)

        assert document.status == "OBSOLETE"


@pytest.mark.asyncio
async def test_history_spans_lineage(orchestrator, open_uow, make_document, admin, tenant_id):
    doc_id = await make_document(status=DocumentStatus.SUBMITTED)
    async with open_uow() as uow:
        await orchestrator.transition(uow, doc_id, tenant_id, "approve", admin)
    async with open_uow() as uow:
        revision = await orchestrator.revise_document(uow, doc_id, tenant_id, admin)
    async with open_uow() as uow:
        await orchestrator.transition(uow, revision.id, tenant_id, "submit", admin)

    async with open_uow() as uow:
        history = await orchestrator.workflow_history(uow, revision.id, tenant_id)

    assert [(h.document_id, h.to_status) for h in history] == [
        (revision.id, "SUBMITTED"),
        (doc_id, "APPROVED"),
    ]
