"""
Pytest configuration and fixtures.
"""

from datetime import date, timedelta
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.database import Base, get_db
from app.core.security import get_password_hash
from app.main import app
from app.models.client import Client
from app.models.user import User


# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep generated files in a temp dir and make sure no real SMTP is used."""
    monkeypatch.setattr(settings, "PDF_STORAGE_PATH", str(tmp_path / "pdf"))
    monkeypatch.setattr(settings, "LOGO_STORAGE_PATH", str(tmp_path / "logos"))
    monkeypatch.setattr(settings, "SMTP_USER", None)
    monkeypatch.setattr(settings, "SMTP_PASSWORD", None)
    monkeypatch.setattr(settings, "ENCRYPTION_KEY", "ab" * 32)


@pytest.fixture
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database session override."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user on the free plan."""
    user = User(
        email="test@example.com",
        hashed_password=get_password_hash("testpassword123"),
        full_name="Test User",
        company_name="Test Studio",
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def auth_client(
    client: AsyncClient,
    test_user: User,
) -> AsyncClient:
    """Create authenticated test client."""
    response = await client.post(
        "/api/v1/auth/login",
        json={
            "email": "test@example.com",
            "password": "testpassword123",
        },
    )
    tokens = response.json()

    client.headers["Authorization"] = f"Bearer {tokens['access_token']}"

    return client


@pytest.fixture
async def test_client_record(db_session: AsyncSession, test_user: User) -> Client:
    """A client with an email address, owned by the test user."""
    record = Client(
        owner_id=test_user.id,
        name="Acme Corp",
        email="billing@acme.test",
        company_name="Acme",
    )
    db_session.add(record)
    await db_session.commit()
    await db_session.refresh(record)
    return record


@pytest.fixture
def invoice_payload(test_client_record: Client):
    """Factory for invoice creation bodies."""

    def build(**overrides) -> dict:
        today = date.today()
        payload = {
            "client_id": test_client_record.id,
            "issue_date": today.isoformat(),
            "due_date": (today + timedelta(days=30)).isoformat(),
            "tax_rate": "10",
            "discount_type": "percentage",
            "discount_value": "5",
            "line_items": [
                {"description": "Design work", "quantity": "10", "rate": "25"},
                {"description": "Hosting", "quantity": "1", "rate": "100"},
            ],
        }
        payload.update(overrides)
        return payload

    return build
