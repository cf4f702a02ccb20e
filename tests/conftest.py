# (c) Copyright Datacraft, 2026
"""Shared fixtures: in-memory database, deterministic clock and data builders."""
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from docflow.core import orm  # noqa: F401  registers every table on Base
from docflow.core.db.base import Base
from docflow.core.db.unit_of_work import unit_of_work
from docflow.core.features.access.codes import PermissionCode
from docflow.core.features.access.db import api as access_api
from docflow.core.features.access.db.orm import Role, UserRole
from docflow.core.features.access.resolver import Actor
from docflow.core.features.audit.db.orm import AuditLog
from docflow.core.features.documents.db.orm import (
    ContentMode,
    Document,
    DocumentStatus,
    DocumentVersion,
)
from docflow.core.features.workflows.db.orm import WorkflowHistory
from docflow.core.features.workflows.orchestrator import WorkflowOrchestrator

START = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class TickingClock:
    """Advances one second per reading so orderings are deterministic."""

    def __init__(self, start: datetime = START + timedelta(minutes=1)):
        self.current = start

    def now(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def tenant_id():
    return uuid.uuid4()


@pytest.fixture
def admin(tenant_id):
    return Actor(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        permissions=frozenset(code.value for code in PermissionCode),
    )


@pytest.fixture
def make_actor(tenant_id):
    def _make(*codes: str) -> Actor:
        return Actor(id=uuid.uuid4(), tenant_id=tenant_id, permissions=frozenset(codes))
    return _make


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def open_uow(session_factory):
    """Open a fresh session and one transaction around it."""
    @asynccontextmanager
    async def _open():
        async with session_factory() as session:
            async with unit_of_work(session, timeout=10) as uow:
                yield uow
    return _open


@pytest.fixture
def renderer():
    renderer = MagicMock()
    renderer.render = AsyncMock(return_value="snapshots/rendered.pdf")
    return renderer


@pytest.fixture
def orchestrator(renderer, clock):
    return WorkflowOrchestrator.create(renderer=renderer, clock=clock)


@pytest.fixture
def make_document(open_uow, tenant_id, admin):
    """Insert a document with one current version and return its id."""
    async def _make(
        status: DocumentStatus = DocumentStatus.DRAFT,
        created_by: uuid.UUID | None = None,
        folder_id: uuid.UUID | None = None,
        content_mode: ContentMode = ContentMode.FILE,
        content_json: dict | None = None,
        with_version: bool = True,
        frozen: bool = False,
        review_mode: bool = False,
        expiry_date: datetime | None = None,
        effective_date: datetime | None = None,
        supersedes_id: uuid.UUID | None = None,
        document_number: str | None = None,
        title: str = "Quality Manual",
    ) -> uuid.UUID:
        async with open_uow() as uow:
            document = Document(
                tenant_id=tenant_id,
                document_number=document_number or f"DOC-2026-{uuid.uuid4().hex[:5]}",
                title=title,
                description="Controlled document",
                status=status.value,
                folder_id=folder_id,
                review_mode=review_mode,
                expiry_date=expiry_date,
                effective_date=effective_date,
                supersedes_id=supersedes_id,
                created_by=created_by or admin.id,
                created_at=START,
                updated_at=START,
            )
            uow.session.add(document)
            await uow.session.flush()

            if with_version:
                version = DocumentVersion(
                    tenant_id=tenant_id,
                    document_id=document.id,
                    version_number=1,
                    is_frozen=frozen,
                    content_mode=content_mode.value,
                    file_name="manual.pdf" if content_mode is ContentMode.FILE else None,
                    file_size=1024 if content_mode is ContentMode.FILE else None,
                    mime_type="application/pdf" if content_mode is ContentMode.FILE else None,
                    storage_key="blobs/manual.pdf" if content_mode is ContentMode.FILE else None,
                    content_json=content_json,
                    created_by=admin.id,
                    created_at=START,
                )
                uow.session.add(version)
                await uow.session.flush()
                document.current_version_id = version.id

            if supersedes_id is not None:
                predecessor = await uow.session.get(Document, supersedes_id)
                predecessor.superseded_by_id = document.id

            await uow.session.flush()
            return document.id
    return _make


@pytest.fixture
def grant(open_uow, tenant_id):
    """Give ``actor`` a folder ACL level through a fresh role."""
    async def _grant(actor: Actor, folder_id: uuid.UUID, level) -> None:
        async with open_uow() as uow:
            role = Role(tenant_id=tenant_id, name=f"role-{uuid.uuid4().hex[:8]}")
            uow.session.add(role)
            await uow.session.flush()
            uow.session.add(UserRole(user_id=actor.id, role_id=role.id, tenant_id=tenant_id))
            await access_api.grant_folder_permission(uow.session, tenant_id, folder_id, role.id, level)
    return _grant


@pytest.fixture
def fetch(open_uow):
    """Read helpers that run in their own transaction."""
    class Fetch:
        async def document(self, document_id):
            async with open_uow() as uow:
                return await uow.session.get(Document, document_id)

        async def version(self, version_id):
            async with open_uow() as uow:
                return await uow.session.get(DocumentVersion, version_id)

        async def history(self, document_id):
            async with open_uow() as uow:
                stmt = (
                    select(WorkflowHistory)
                    .where(WorkflowHistory.document_id == document_id)
                    .order_by(WorkflowHistory.created_at)
                )
                return list((await uow.session.execute(stmt)).scalars().all())

        async def audit(self, action: str | None = None):
            async with open_uow() as uow:
                stmt = select(AuditLog).order_by(AuditLog.sequence)
                if action is not None:
                    stmt = stmt.where(AuditLog.action == action)
                return list((await uow.session.execute(stmt)).scalars().all())

        async def count_documents(self):
            async with open_uow() as uow:
                return len((await uow.session.execute(select(Document.id))).all())

    return Fetch()
