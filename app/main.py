# app/main.py
# TutorMatch FastAPI application entry point
#
# Startup:  logging, optional migrations, DB connection check, Redis ping
# Shutdown: Clean connection pool disposal
# Routes:   /health, /api/v1/* (all endpoints via master router)
# Errors:   WorkflowError subclasses → one HTTP status each (core/exceptions.py)

import logging
from contextlib import asynccontextmanager

import redis as redis_lib
from alembic import command
from alembic.config import Config
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

import app.db.base  # noqa: F401
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.dependencies import get_workflow
from app.core.exceptions import WorkflowError
from app.db.session import SessionLocal, check_db_connection, engine
from app.models.workflow_event import WorkflowEvent
from app.services.workflow_service import WorkflowService

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("tutormatch.api")


def run_startup_migrations() -> bool:
    """Run `alembic upgrade head` using the project alembic.ini."""
    try:
        alembic_cfg = Config("alembic.ini")
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations: OK")
        return True
    except Exception as exc:
        logger.warning(f"Database migrations failed -- {exc}")
        return False


def check_redis_connection(timeout: int = 2) -> bool:
    try:
        r = redis_lib.from_url(settings.redis_url, socket_connect_timeout=timeout)
        r.ping()
        r.close()
        return True
    except redis_lib.RedisError:
        return False


# ── Lifespan ──────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.app_version} [{settings.app_env}]")

    if settings.auto_migrate_on_startup:
        run_startup_migrations()

    if check_db_connection():
        logger.info("Database connection: OK")
    else:
        logger.warning("Database connection failed -- check DATABASE_URL")

    # Redis only carries outbox fan-out; the workflow runs without it
    if check_redis_connection():
        logger.info("Redis connection: OK")
    else:
        logger.warning("Redis connection failed -- check REDIS_URL")

    yield  # App runs here

    logger.info("Shutting down -- disposing DB connection pool")
    engine.dispose()


# ── App Instance ──────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "TutorMatch -- matches parents' tuition requirements with tutors, "
        "through demos to regular classes."
    ),
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
)


# ── CORS ──────────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Errors ────────────────────────────────────────────────────────────────────

@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    if exc.status_code >= 409:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


# ── Routes ────────────────────────────────────────────────────────────────────

app.include_router(api_router, prefix="/api/v1")


# ── Health Check ──────────────────────────────────────────────────────────────

def outbox_lag(workflow: WorkflowService) -> dict:
    """
    Events not yet relayed, and events this process could not write at all.
    A growing `undelivered` means the relay job is down; a non-zero
    `parked` means the database rejected outbox writes.
    """
    try:
        with SessionLocal() as db:
            undelivered = db.query(func.count(WorkflowEvent.id)).filter(
                WorkflowEvent.delivered_at.is_(None)
            ).scalar()
    except SQLAlchemyError:
        undelivered = None
    return {"undelivered": undelivered, "parked": workflow.outbox.backlog_size}


@app.get("/health", tags=["Health"], include_in_schema=False)
def health_check(workflow: WorkflowService = Depends(get_workflow)):
    """
    Health check endpoint for load balancers.
    Always 200 while the app runs; dependency and outbox status for observability.
    """
    db_ok = check_db_connection()
    redis_ok = check_redis_connection(timeout=1)

    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.app_env,
            "services": {
                "database": "ok" if db_ok else "unavailable",
                "redis": "ok" if redis_ok else "unavailable",
            },
            "outbox": outbox_lag(workflow) if db_ok else None,
        },
    )


@app.get("/", include_in_schema=False)
def root():
    return JSONResponse(
        content={
            "message": "TutorMatch API",
            "docs": "/api/docs",
            "health": "/health",
        }
    )


# ── Local Server ──────────────────────────────────────────────────────────────

def run() -> None:
    """`tutormatch-api` console script: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
