from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from student_registry.config.settings import Settings, settings
from student_registry.db.db import create_tables
from student_registry.db.session import build_engine, build_session_factory
from student_registry.guards import OriginGate, RequestThrottle, build_guard_pipeline
from student_registry.utils.logging import get_logger
from student_registry.routers import students_router, health_router, HEALTH_PATH
from student_registry.utils.errors import setup_error_handlers
from student_registry.middlewares import (
    RequestIDMiddleware,
    DevSecurityMiddleware,
    ProdSecurityMiddleware,
    GuardMiddleware,
)

# Initialize the logger
logger = get_logger()


@asynccontextmanager
async def lifespan(application: FastAPI):
    logger.info("Student Registry is starting up...")
    engine = application.state.engine
    await create_tables(engine)
    yield
    await engine.dispose()
    logger.info("Student Registry is shutting down...")


def create_application(config: Optional[Settings] = None) -> FastAPI:
    """Initialize the FastAPI application with settings and lifespan events."""
    config = config or settings
    application = FastAPI(title=config.NAME, version=config.VERSION, lifespan=lifespan)
    application.state.settings = config

    # Record store for this application instance
    engine = build_engine(config)
    application.state.engine = engine
    application.state.session_factory = build_session_factory(engine)

    # Setup error handlers
    setup_error_handlers(application)

    throttle = RequestThrottle(
        max_requests=config.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
        max_tracked_clients=config.RATE_LIMIT_MAX_TRACKED_CLIENTS,
    )
    application.state.throttle = throttle
    guard_pipeline = build_guard_pipeline(
        OriginGate(config.ALLOWED_ORIGINS),
        throttle,
        throttle_exempt_paths={HEALTH_PATH},
    )

    # Middlewares wrap in reverse order of registration: the request ID is
    # outermost, the guard pipeline sits right in front of the routes.
    application.add_middleware(
        GuardMiddleware,
        pipeline=guard_pipeline,
        trust_forwarded_for=config.TRUST_FORWARDED_FOR,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
    )
    application.add_middleware(
        DevSecurityMiddleware
        if config.ENVIRONMENT == "development"
        else ProdSecurityMiddleware
    )
    application.add_middleware(RequestIDMiddleware)

    # Routers
    application.include_router(students_router, tags=["Students"])
    application.include_router(health_router, tags=["Health"])

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "student_registry.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "development",
        log_config=None,
        log_level=None,
    )
