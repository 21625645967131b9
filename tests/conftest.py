"""Pytest fixtures for testing."""
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

# Settings are read at import time; point them at a throwaway database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./gateway_test_import.db")
os.environ.setdefault("DEBUG", "false")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import gateway.models  # noqa: F401  registers every table
from gateway.main import app
from gateway.common.database import Base, create_engine_for_url, get_db
from gateway.common.rate_limit import limiter
from gateway.domain.auth_service import AdminRole, hash_password
from gateway.domain.token_service import create_token_info
from gateway.models.admin import AdminUser
from gateway.models.dataset import OpenTicket, Machine
from gateway.models.token import Token
from gateway.usecase.usage_usecase import UsageRecorder


ADMIN_PASSWORD = "correct-horse-battery"


@pytest.fixture(scope="function")
async def test_db(tmp_path):
    """Create a fresh SQLite database file per test and wire the app to it."""
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'gateway.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    original_recorder = app.state.usage_recorder
    app.state.usage_recorder = UsageRecorder(async_session_maker)
    app.state.metadata_cache.invalidate()

    # Disable per-IP rate limiting in tests
    limiter.enabled = False

    yield async_session_maker

    await app.state.usage_recorder.drain()
    app.state.usage_recorder = original_recorder
    app.state.metadata_cache.invalidate()
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
async def client(test_db) -> AsyncGenerator[AsyncClient, None]:
    """Create test client. Requests arrive from 127.0.0.1."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
def drain_usage():
    """Wait for background usage writes to land."""
    async def _drain():
        await app.state.usage_recorder.drain()

    return _drain


@pytest.fixture
async def create_admin(test_db):
    """Factory to create admin accounts."""
    async def _create_admin(
        username: str = "root",
        role: AdminRole = AdminRole.SUPER_ADMIN,
        password: str = ADMIN_PASSWORD,
        is_active: bool = True,
    ) -> AdminUser:
        async with test_db() as session:
            admin = AdminUser(
                username=username,
                email=f"{username}@example.com",
                password_hash=hash_password(password),
                role=role.value,
                is_active=is_active,
            )
            session.add(admin)
            await session.commit()
            return admin

    return _create_admin


@pytest.fixture
async def super_admin(create_admin) -> AdminUser:
    return await create_admin("root", AdminRole.SUPER_ADMIN)


@pytest.fixture
async def admin_headers(client: AsyncClient, super_admin: AdminUser) -> dict[str, str]:
    """X-Session-Token header for a logged in super admin."""
    response = await client.post(
        "/api/v1/admin/auth/login",
        json={"username": super_admin.username, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    client.cookies.clear()
    return {"X-Session-Token": response.json()["data"]["session_token"]}


@pytest.fixture
async def create_api_token(test_db):
    """Factory to create API tokens directly in the store."""
    async def _create_token(
        name: str = "Test Token",
        environment: str = "test",
        **overrides,
    ) -> tuple[str, Token]:
        """Create a token and return (full_token, token_model)."""
        token_info = create_token_info(environment)
        fields = dict(
            name=name,
            environment=environment,
            token_hash=token_info.token_hash,
            token_prefix=token_info.token_prefix,
            token_hint=token_info.token_hint,
            rate_limit_per_minute=0,
            rate_limit_per_hour=0,
            rate_limit_per_day=0,
        )
        fields.update(overrides)
        async with test_db() as session:
            token = Token(**fields)
            session.add(token)
            await session.commit()
            return token_info.full_token, token

    return _create_token


@pytest.fixture
async def super_token(create_api_token) -> tuple[str, Token]:
    return await create_api_token(name="Super", is_super=True)


@pytest.fixture
async def avt_token(create_api_token) -> tuple[str, Token]:
    return await create_api_token(
        name="AVT vendor", vendor_name="AVT", filter_column="flm_name", filter_value="AVT"
    )


@pytest.fixture
async def seed_tickets(test_db):
    """Two tickets: T-AVT serviced by AVT, T-OTHER by OTHER."""
    start = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
    tickets = [
        {
            "terminal_id": "T-AVT",
            "terminal_name": "Avenue Branch",
            "priority": "high",
            "mode": "offline",
            "status": "open",
            "current_problem": "cash out",
            "incident_start_datetime": start,
            "count": 3,
        },
        {
            "terminal_id": "T-OTHER",
            "terminal_name": "Harbor Kiosk",
            "priority": "low",
            "mode": "online",
            "status": "pending",
            "current_problem": "printer",
            "incident_start_datetime": start + timedelta(hours=1),
            "count": 1,
        },
    ]
    machines = [
        {"terminal_id": "T-AVT", "flm_name": "AVT", "flm": "AVT-FLM", "slm": "S1", "net": "N1"},
        {"terminal_id": "T-OTHER", "flm_name": "OTHER", "flm": "OTH-FLM", "slm": "S2", "net": "N2"},
    ]
    async with test_db() as session:
        await session.execute(insert(OpenTicket), tickets)
        await session.execute(insert(Machine), machines)
        await session.commit()
    return tickets
