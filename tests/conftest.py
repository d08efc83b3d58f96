import pytest
from typing import AsyncGenerator, Dict, Any

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from student_registry.config.settings import Settings
from student_registry.db.models import Base
from student_registry.db.session import build_engine
from student_registry.main import create_application

ALLOWED_ORIGIN = "http://localhost:3000"
CLIENT_ADDRESS = ("203.0.113.10", 50000)
OTHER_CLIENT_ADDRESS = ("198.51.100.7", 50001)


@pytest_asyncio.fixture
async def test_engine(test_settings):
    """File-backed SQLite so that concurrent sessions get their own connections."""
    engine = build_engine(test_settings)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'students.db'}",
        DATABASE_TIMEOUT_SECONDS=30,
        ALLOWED_ORIGINS="http://localhost:3000,http://localhost:5175",
        RATE_LIMIT_WINDOW_SECONDS=15 * 60,
        RATE_LIMIT_MAX_REQUESTS=100,
        SEQUENCE_MAX_ATTEMPTS=5,
        TRUST_FORWARDED_FOR=False,
    )


@pytest_asyncio.fixture
async def app(test_settings, test_engine):
    """Application bound to the per-test database, whose tables test_engine created."""
    application = create_application(test_settings)
    yield application
    await application.state.engine.dispose()


def make_client(app, client=CLIENT_ADDRESS, **transport_kwargs) -> AsyncClient:
    transport = ASGITransport(app=app, client=client, **transport_kwargs)
    return AsyncClient(transport=transport, base_url="http://testserver")


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with make_client(app) as http_client:
        yield http_client


# Test data factories
@pytest.fixture
def student_payload() -> Dict[str, Any]:
    return {
        "firstName": "Ana",
        "lastName": "Li",
        "identifyNumber": "X1",
        "universityAdmissionYear": 2024,
        "birthDate": "2002-05-01",
        "birthCity": "Lima",
        "school": "Eng",
        "program": "CS",
        "freshmanOrTransfer": "Freshman",
        "email": "ana@x.com",
    }


@pytest.fixture
def full_student_payload(student_payload) -> Dict[str, Any]:
    return {
        **student_payload,
        "voucher": "V-2024",
        "grant": "Merit",
        "sociality": "Dormitory",
        "learningLanguage": "English",
        "mobilitySemester": "Spring 2026",
        "agent": "Direct",
    }
