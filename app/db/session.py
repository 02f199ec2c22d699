# app/db/session.py
# Database session management
#
# Two connection modes:
#   Local dev / tests → DATABASE_URL (SQLite file or Postgres over TCP)
#   Production        → Postgres via DATABASE_URL injected by the platform
#
# FastAPI endpoints get a session via: Depends(get_db)
# Workflow operations open their own unit-of-work sessions from SessionLocal.

from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session

from app.core.config import settings


def _engine_kwargs(database_url: str) -> Dict[str, Any]:
    """
    Pool settings per backend.
    SQLite gets no pool sizing (its default pools reject those arguments)
    and must allow use from the threadpool FastAPI runs sync endpoints on.
    """
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # pool_pre_ping=True  → test connection before each use
    # keep per-instance pool small, instances scale horizontally
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 1800,  # Recycle connections every 30 min
    }


# ── Engine ────────────────────────────────────────────────────────────────────
engine = create_engine(
    settings.database_url,
    echo=settings.debug,  # SQL logging only when debugging
    **_engine_kwargs(settings.database_url),
)


def enable_sqlite_savepoints(bind) -> None:
    """
    pysqlite issues its own BEGIN lazily, which breaks SAVEPOINT.
    Hand transaction control to SQLAlchemy (the recipe from the SQLAlchemy
    SQLite dialect docs) so begin_nested() works in dev and tests.
    """
    @event.listens_for(bind, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(bind, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


if settings.database_url.startswith("sqlite"):
    enable_sqlite_savepoints(engine)

# ── Session Factory ───────────────────────────────────────────────────────────
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Prevents lazy load errors after commit
)


# ── FastAPI Dependency ────────────────────────────────────────────────────────
def get_db() -> Generator[Session, None, None]:
    """
    Dependency injected into every read endpoint that needs DB access.

    Usage:
        @router.get("/example")
        def example(db: Session = Depends(get_db)):
            ...

    Guarantees the session is always closed, even on exceptions.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ── Health Check Helper ───────────────────────────────────────────────────────
def check_db_connection() -> bool:
    """
    Used by /health endpoint to verify DB connectivity.
    Returns True if connected, False otherwise.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
