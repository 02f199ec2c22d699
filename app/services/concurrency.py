# app/services/concurrency.py
# Unit of work + optimistic concurrency guard for workflow operations
#
# Each attempt runs the operation body in a fresh session and commits once,
# so every entity write of a cascade lands together or not at all.
#
# Conflicts:
#   StaleDataError  → another request updated a row we wrote or only read
#                     (store.confirm_reads); retry with fresh state
#   IntegrityError  → lost a race on a unique index; retry, the body's own
#                     checks then raise the domain error (duplicate, conflicting demo)
#   VersionConflict → the client's read is stale; retrying cannot help, surface now
# After max_attempts the caller gets ConcurrentModification.

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.clock import Clock
from app.core.exceptions import ConcurrentModification, VersionConflict
from app.services.store import EntityStore

logger = logging.getLogger("tutormatch.concurrency")

T = TypeVar("T")


@dataclass
class Actor:
    """Who is calling. Supplied by the identity layer and trusted as-is."""
    role: str
    id: Optional[UUID] = None


@dataclass
class PendingEvent:
    entity_type: str
    entity_id: UUID
    requirement_id: Optional[UUID]
    from_status: Optional[str]
    to_status: str
    payload: Dict[str, Any]


@dataclass
class UnitOfWork:
    """State for one attempt of one workflow operation."""
    db: Session
    actor: Actor
    operation: str
    now: datetime
    correlation_id: UUID = field(default_factory=uuid.uuid4)
    events: List[PendingEvent] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.store = EntityStore(self.db)

    def record(
        self,
        entity_type: str,
        entity_id: UUID,
        from_status: Optional[str],
        to_status: str,
        requirement_id: Optional[UUID] = None,
        **payload: Any,
    ) -> None:
        """Queue an outbox event; written only if the unit of work commits."""
        self.events.append(PendingEvent(
            entity_type=entity_type,
            entity_id=entity_id,
            requirement_id=requirement_id,
            from_status=from_status,
            to_status=to_status,
            payload=payload,
        ))


def run_atomic(
    session_factory: Callable[[], Session],
    clock: Clock,
    actor: Actor,
    operation: str,
    work: Callable[[UnitOfWork], T],
    max_attempts: int,
) -> Tuple[T, UnitOfWork]:
    """
    Run `work` until it commits without a conflict.

    Returns the work result and the committed unit of work (for its events).
    Domain errors raised by `work` propagate unchanged after rollback.
    """
    for attempt in range(1, max_attempts + 1):
        db = session_factory()
        uow = UnitOfWork(db=db, actor=actor, operation=operation, now=clock.now())
        try:
            result = work(uow)
            uow.store.confirm_reads()
            db.commit()
            if attempt > 1:
                logger.info(f"{operation} committed on attempt {attempt}")
            return result, uow
        except VersionConflict as exc:
            db.rollback()
            logger.info(f"{operation} rejected stale client version: {exc.details}")
            raise ConcurrentModification(operation, attempt) from exc
        except (StaleDataError, IntegrityError) as exc:
            db.rollback()
            logger.warning(
                f"{operation} conflict on attempt {attempt}/{max_attempts}: "
                f"{type(exc).__name__}"
            )
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    logger.error(f"{operation} gave up after {max_attempts} conflicting attempts")
    raise ConcurrentModification(operation, max_attempts)
