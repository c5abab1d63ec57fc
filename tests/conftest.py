"""Shared pytest fixtures for the ISMS Workbench test suite.

Provides:
- db_engine: in-memory SQLite async engine with all tables, foreign keys on
- db_session: SAVEPOINT-isolated async session (app commits don't leak)
- evidence_store: filesystem store rooted in tmp_path
- client: AsyncClient with dependency overrides for DB-backed testing
- user_id / project / boundary / control: minimal parent rows
"""

from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from isms.api.dependencies import get_evidence_store
from isms.db.session import Base, get_async_session
import isms.db.tables  # noqa: F401 - registers the ORM models on Base.metadata
from isms.db.tables import BoundaryRow, ControlRow, ProjectRow
from isms.models.common import new_uuid7
from isms.repositories.boundaries import BoundaryRepository
from isms.repositories.projects import ProjectRepository
from isms.repositories.soa import ControlRepository
from isms.storage.evidence_store import EvidenceStore

@pytest.fixture(scope="session")
def anyio_backend():
    """Run anyio-marked tests on asyncio only (aiosqlite/asyncpg are asyncio-based)."""
    return "asyncio"


USER_ID = UUID("01900000-0000-7000-8000-000000000001")
OTHER_USER_ID = UUID("01900000-0000-7000-8000-000000000002")


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with all tables.

    pysqlite's own transaction handling breaks SAVEPOINT; the connect/begin
    hooks hand it back to SQLAlchemy.
    """
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )

    @event.listens_for(eng.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(eng.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Provide a SAVEPOINT-isolated session.

    The outer transaction is never committed; it rolls back at teardown.
    Session commits and rollbacks only touch the savepoint the session
    opens inside it.
    """
    async with db_engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(
            bind=conn,
            expire_on_commit=False,
            join_transaction_mode="create_savepoint",
        )

        yield session

        await session.close()
        await trans.rollback()


@pytest.fixture
def evidence_store(tmp_path) -> EvidenceStore:
    return EvidenceStore(str(tmp_path / "evidence"), secret="test-secret", ttl_seconds=300)


@pytest.fixture
async def client(db_session, evidence_store):
    """AsyncClient with the session and evidence store overridden.

    ASGITransport does not run the lifespan, so nothing on app.state is set.
    """
    from isms.api.main import app

    async def _override_session():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_async_session] = _override_session
    app.dependency_overrides[get_evidence_store] = lambda: evidence_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-User-Id": str(USER_ID)},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def user_id() -> UUID:
    return USER_ID


@pytest.fixture
def other_user_id() -> UUID:
    return OTHER_USER_ID


@pytest.fixture
async def project(db_session) -> ProjectRow:
    return await ProjectRepository(db_session).create(
        project_id=new_uuid7(), user_id=USER_ID, name="ISO 27001 Readiness",
    )


@pytest.fixture
async def boundary(db_session, project) -> BoundaryRow:
    return await BoundaryRepository(db_session).create(
        boundary_id=new_uuid7(), project_id=project.id, user_id=USER_ID,
        name="Finance", type="Department",
    )


@pytest.fixture
async def control(db_session) -> ControlRow:
    return await ControlRepository(db_session).create(
        control_id=new_uuid7(), reference="A.5.1",
        description="Policies for information security",
        domain="Organizational controls",
    )
