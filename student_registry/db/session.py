from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from student_registry.config.settings import Settings, settings


def build_engine(config: Settings = settings) -> AsyncEngine:
    """Create the async engine for the configured record store"""
    url = make_url(str(config.DATABASE_URL))
    timeout = config.DATABASE_TIMEOUT_SECONDS

    if url.get_backend_name() == "sqlite":
        # timeout is the sqlite busy timeout; concurrent writers queue on it
        return create_async_engine(
            url,
            connect_args={"timeout": timeout},
            echo=config.DATABASE_ECHO,
        )

    return create_async_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_timeout=timeout,
        connect_args={"timeout": timeout},
        echo=config.DATABASE_ECHO,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get an async database session from the application's store"""
    session_factory: async_sessionmaker = request.app.state.session_factory
    async with session_factory() as db:
        try:
            yield db
        except Exception:
            await db.rollback()
            raise
