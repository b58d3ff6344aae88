"""Pytest configuration and fixtures."""

import os
import sys
import tempfile
from pathlib import Path

# Point the app at a throwaway database and bucket before anything imports settings
_tmp_dir = Path(tempfile.mkdtemp(prefix="intake-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp_dir / 'test.db'}"
os.environ["BUCKET_DIR"] = str(_tmp_dir / "bucket")
os.environ["DEMO_SUBMIT_DELAY"] = "0"
os.environ["DEMO_UPLOAD_DELAY"] = "0"
os.environ["UPLOAD_ERROR_DISMISS_SECONDS"] = "0"
os.environ["EMAIL_PROVIDER"] = "null"
os.environ["STAFF_NOTIFICATION_EMAIL"] = "staff@example.com"

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.core.database import Base, engine  # noqa: E402
from app.services.notifications import NullEmailProvider, get_email_provider  # noqa: E402
from main import app  # noqa: E402


@pytest_asyncio.fixture
async def db_tables():
    """Fresh tables for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def email_provider():
    """Captures outgoing emails instead of sending them."""
    provider = NullEmailProvider()
    app.dependency_overrides[get_email_provider] = lambda: provider
    yield provider
    app.dependency_overrides.pop(get_email_provider, None)


@pytest_asyncio.fixture
async def client(db_tables, email_provider):
    """HTTP client talking to the app in-process."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


@pytest_asyncio.fixture
async def intake_link(client):
    """A fresh, unused intake link as returned by the API."""
    response = await client.post(
        "/api/intake-links",
        json={"email": "ana@example.com", "prefillFirstName": "Ana", "prefillLastName": "Diaz", "createdBy": "preparer-1"},
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def bucket_dir():
    return Path(os.environ["BUCKET_DIR"])
