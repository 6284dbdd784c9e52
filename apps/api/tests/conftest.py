import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="studyhub-tests-")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TEST_ROOT, "uploads"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TEST_ROOT, 'app.db')}")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config import settings
from database import Base, get_db
from main import app
from routers import rate_limit
from services.session_token import create_identity_token

ADMIN_EXTERNAL_ID = "admin-external-id"


def bearer(external_id: str, email: str = None, name: str = None) -> dict:
    token = create_identity_token(external_id, email=email, name=name)["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def reset_local_rate_limit_counters():
    """Keep in-memory rate-limit state isolated between tests."""
    previous = getattr(app.state, "disable_rate_limits", False)
    app.state.disable_rate_limits = True
    rate_limit._local_counters.clear()
    yield
    rate_limit._local_counters.clear()
    app.state.disable_rate_limits = previous


@pytest.fixture(autouse=True)
def admin_identity(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EXTERNAL_IDS", [ADMIN_EXTERNAL_ID])
    return ADMIN_EXTERNAL_ID


@pytest.fixture
def auth_headers():
    """Factory for identity-provider Bearer headers."""
    return bearer


@pytest.fixture
def admin_headers():
    return bearer(ADMIN_EXTERNAL_ID, email="admin@example.com", name="Admin")


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "studyhub.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker
    await engine.dispose()


@pytest_asyncio.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.pop(get_db, None)
