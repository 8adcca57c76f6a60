"""FastAPI application wiring for the training service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import redis
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.errors import register_error_handlers
from .api.routes import router as api_router
from .clients.identity import IdentityServiceClient
from .config import get_settings
from .domain.service import ProgramService, TrainingService
from .events.publisher import EventPublisher
from .repository import TrainingRepository

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, Redis, identity client) for the app lifecycle."""
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    redis_client = redis.from_url(settings.redis_url)
    identity = IdentityServiceClient(
        settings.user_service_url, timeout=settings.user_service_timeout_seconds
    )
    repository = TrainingRepository(pool)
    app.state.pool = pool
    app.state.training_service = TrainingService(repository)
    app.state.program_service = ProgramService(repository, identity, EventPublisher(redis_client))
    logger.info("%s %s ready", settings.app_name, settings.version)
    try:
        yield
    finally:
        identity.close()
        redis_client.close()
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


register_error_handlers(app)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/metrics", tags=["health"])
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(api_router)


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.http_host, port=settings.http_port)
