"""Shared fixtures: one app per session, a throwaway SQLite incident store."""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from safereport.app import app as application
from safereport.infra.db import Base, get_session_factory
from safereport.infra.storage import LocalEvidenceStorage, get_evidence_storage


@pytest.fixture(scope="session")
def app() -> FastAPI:
    # The module-level app: HTTP metrics live in the process-wide registry.
    return application


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'incidents.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def evidence_storage(tmp_path: Path) -> LocalEvidenceStorage:
    return LocalEvidenceStorage(
        root=tmp_path / "evidence",
        public_base_url="/evidence",
        max_size_bytes=1024,
        allowed_mime_types=["image/jpeg", "image/png", "image/gif", "video/mp4"],
    )


@pytest.fixture
def wired_app(
    app: FastAPI,
    session_factory: async_sessionmaker[AsyncSession],
    evidence_storage: LocalEvidenceStorage,
) -> Generator[FastAPI, None, None]:
    """The app with its lifespan resources replaced by test doubles."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_evidence_storage] = lambda: evidence_storage
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(wired_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=wired_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
