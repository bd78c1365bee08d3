import os

# Configure test environment before the application is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["RATE_LIMIT_MAX_REQUESTS"] = "100000"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mindspace.core.database import Base, async_session_factory, engine
from mindspace.main import app

VALID_POST = {
    "title": "Feeling overwhelmed with finals",
    "content": "Exams start next week and I cannot focus on anything at all.",
    "author": "Jane",
    "category": "Academic Stress",
    "isAnonymous": False,
}


@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_engine):
    async with async_session_factory() as db:
        yield db


@pytest_asyncio.fixture
async def client(db_engine):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def post_payload():
    return dict(VALID_POST)


@pytest_asyncio.fixture
async def make_post(client):
    """Create a post through the API and return its JSON."""

    async def _make_post(**overrides):
        payload = {**VALID_POST, **overrides}
        res = await client.post("/api/forum/posts", json=payload)
        assert res.status_code == 201, res.text
        return res.json()

    return _make_post


@pytest_asyncio.fixture
async def make_comment(client):
    """Create a comment through the API and return its JSON."""

    async def _make_comment(post_id, **overrides):
        payload = {
            "content": "You are not alone in this.",
            "author": "Sam",
            "postId": post_id,
            "isAnonymous": False,
            **overrides,
        }
        res = await client.post("/api/forum/comments", json=payload)
        assert res.status_code == 201, res.text
        return res.json()

    return _make_comment
