# app/services/outbox.py
# Workflow event outbox: best-effort append + relay to subscribers
#
# append():  called after a workflow operation commits. Writes one
#            WorkflowEvent row per status change in its own session.
#            Failures are logged and parked in an in-process backlog;
#            they never reach the caller of the workflow operation.
# relay_pending(): reads undelivered events and hands each one to every
#            subscriber (in-app notifications, Redis channel). A subscriber
#            failure leaves the event undelivered for the next run.

import json
import logging
import threading
import uuid
from datetime import timezone
from typing import Callable, Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock
from app.models.workflow_event import WorkflowEvent
from app.services.concurrency import UnitOfWork

logger = logging.getLogger("tutormatch.outbox")

Subscriber = Callable[[Session, WorkflowEvent], None]


def _to_rows(uow: UnitOfWork) -> List[WorkflowEvent]:
    return [
        WorkflowEvent(
            id=uuid.uuid4(),
            entity_type=e.entity_type,
            entity_id=e.entity_id,
            requirement_id=e.requirement_id,
            from_status=e.from_status,
            to_status=e.to_status,
            actor_role=uow.actor.role,
            actor_id=uow.actor.id,
            operation=uow.operation,
            correlation_id=uow.correlation_id,
            payload=_jsonable(e.payload),
            occurred_at=uow.now,
        )
        for e in uow.events
    ]


def _jsonable(payload: dict) -> dict:
    """UUIDs, dates and decimals → strings so the JSON column accepts them."""
    return json.loads(json.dumps(payload, default=str))


class OutboxHook:
    """
    Thread-safe event appender. One instance per process.
    """

    def __init__(self, session_factory: Callable[[], Session], attempts: int = 3):
        self._session_factory = session_factory
        self._attempts = attempts
        self._lock = threading.Lock()
        self._backlog: List[List[WorkflowEvent]] = []

    @property
    def backlog_size(self) -> int:
        with self._lock:
            return sum(len(batch) for batch in self._backlog)

    def append(self, uow: UnitOfWork) -> bool:
        """
        Persist the events of a committed unit of work.
        Returns False (and keeps them in the backlog) if every attempt failed.
        """
        if not uow.events:
            return True
        rows = _to_rows(uow)
        if self._write(rows):
            return True
        with self._lock:
            self._backlog.append(rows)
        return False

    def flush_backlog(self) -> int:
        """Retry parked batches. Returns how many events were written."""
        with self._lock:
            pending, self._backlog = self._backlog, []

        written = 0
        still_failing = []
        for rows in pending:
            if self._write(rows):
                written += len(rows)
            else:
                still_failing.append(rows)

        if still_failing:
            with self._lock:
                self._backlog[:0] = still_failing
        return written

    def _write(self, rows: Sequence[WorkflowEvent]) -> bool:
        for attempt in range(1, self._attempts + 1):
            db = self._session_factory()
            try:
                # Fresh copies: a failed attempt leaves rows attached to a dead session
                db.add_all([_copy(r) for r in rows])
                db.commit()
                return True
            except SQLAlchemyError as exc:
                db.rollback()
                logger.warning(
                    f"Outbox write failed (attempt {attempt}/{self._attempts}): {exc}"
                )
            finally:
                db.close()

        logger.error(
            f"Outbox write parked {len(rows)} event(s) for "
            f"{rows[0].operation} correlation={rows[0].correlation_id}"
        )
        return False


def _copy(row: WorkflowEvent) -> WorkflowEvent:
    return WorkflowEvent(
        id=row.id,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        requirement_id=row.requirement_id,
        from_status=row.from_status,
        to_status=row.to_status,
        actor_role=row.actor_role,
        actor_id=row.actor_id,
        operation=row.operation,
        correlation_id=row.correlation_id,
        payload=row.payload,
        occurred_at=row.occurred_at,
    )


# ── Relay ─────────────────────────────────────────────────────────────────────

def relay_pending(
    db: Session,
    subscribers: Iterable[Subscriber],
    limit: int = 100,
    clock: Optional[Clock] = None,
) -> int:
    """
    Deliver undelivered events oldest first.
    Each event is delivered inside a savepoint so a failing subscriber
    rolls back only that event's side effects.
    Returns the number of events delivered.
    """
    clock = clock or SystemClock()
    subscribers = list(subscribers)
    events = db.query(WorkflowEvent).filter(
        WorkflowEvent.delivered_at.is_(None)
    ).order_by(WorkflowEvent.occurred_at, WorkflowEvent.created_at).limit(limit).all()

    delivered = 0
    for event in events:
        event.attempts = (event.attempts or 0) + 1
        try:
            with db.begin_nested():
                for subscriber in subscribers:
                    subscriber(db, event)
        except Exception as exc:
            event.last_error = f"{type(exc).__name__}: {exc}"
            logger.warning(
                f"Outbox relay failed for event {event.id} "
                f"({event.entity_type} → {event.to_status}): {exc}"
            )
            continue
        event.delivered_at = clock.now()
        event.last_error = None
        delivered += 1

    db.commit()
    if events:
        logger.info(f"Outbox relay delivered {delivered}/{len(events)} event(s)")
    return delivered


class RedisPublisher:
    """
    Subscriber that fans events out on a Redis pub/sub channel for the
    e-mail / push collaborators.
    """

    def __init__(self, redis_url: str, channel: str):
        import redis as redis_lib

        self._client = redis_lib.from_url(redis_url, socket_connect_timeout=2)
        self._channel = channel

    def __call__(self, db: Session, event: WorkflowEvent) -> None:
        message = {
            "id": str(event.id),
            "entity_type": event.entity_type,
            "entity_id": str(event.entity_id),
            "requirement_id": str(event.requirement_id) if event.requirement_id else None,
            "from_status": event.from_status,
            "to_status": event.to_status,
            "actor_role": event.actor_role,
            "operation": event.operation,
            "payload": event.payload,
            "occurred_at": event.occurred_at.astimezone(timezone.utc).isoformat()
            if event.occurred_at.tzinfo else event.occurred_at.isoformat(),
        }
        self._client.publish(self._channel, json.dumps(message))

    def close(self) -> None:
        self._client.close()
