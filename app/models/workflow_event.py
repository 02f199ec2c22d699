# app/models/workflow_event.py
# Append-only outbox of workflow state changes
#
# Written after the originating transaction commits (services/outbox.py).
# The relay job (app/jobs/relay_outbox.py) delivers undelivered rows to
# subscribers and stamps delivered_at. Event content is never updated;
# only the delivery bookkeeping columns change.

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, Uuid

from app.db.base_class import Base


class WorkflowEvent(Base):
    __tablename__ = "workflow_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── What changed ──────────────────────────────────────────────────────────
    entity_type = Column(String(30), nullable=False, index=True)   # requirement | association | demo | class
    entity_id = Column(Uuid, nullable=False, index=True)
    requirement_id = Column(Uuid, nullable=True, index=True)       # every entity hangs off one requirement
    from_status = Column(String(30), nullable=True)                # None on create
    to_status = Column(String(30), nullable=False)

    # ── Who / why ─────────────────────────────────────────────────────────────
    actor_role = Column(String(20), nullable=False)
    actor_id = Column(Uuid, nullable=True)
    operation = Column(String(50), nullable=False)                 # workflow operation name
    correlation_id = Column(Uuid, nullable=False, index=True)      # shared by one operation's events
    payload = Column(JSON, nullable=True)                          # parties and details for subscribers

    occurred_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # ── Delivery bookkeeping ──────────────────────────────────────────────────
    delivered_at = Column(DateTime(timezone=True), nullable=True, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return (
            f"<WorkflowEvent {self.entity_type}={self.entity_id} "
            f"{self.from_status}->{self.to_status} by={self.actor_role}>"
        )
