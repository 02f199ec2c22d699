# app/models/demo_session.py
# Trial classes between a requirement's student and one candidate tutor
#
# Status lifecycle: requested → scheduled → completed
#                   requested | scheduled → cancelled
# Reschedules are a side channel on a live demo: reschedule_status='pending'
# holds the proposed slot until the counterpart accepts or rejects it.

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base

ACTIVE_DEMO_STATUSES = ("requested", "scheduled")


class DemoSession(Base):
    """
    A requested or scheduled demo for one (requirement, tutor) pair.

    At most one demo per pair may be active (requested or scheduled); the
    partial unique index uq_demo_active_pair backs that up at the database.
    Completed and cancelled are terminal.
    """
    __tablename__ = "demo_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    requirement_id = Column(
        Uuid,
        ForeignKey("requirements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tutor_id = Column(Uuid, nullable=False, index=True)

    # ── Demo Details ──────────────────────────────────────────────────────────
    subjects = Column(JSON, nullable=False, default=list)
    mode = Column(
        Enum("online", "offline", name="demo_mode_enum"),
        nullable=False,
        default="online",
    )
    join_link = Column(String(512), nullable=True)             # online demos
    location = Column(Text, nullable=True)                     # offline demos

    # ── Slot (wall-clock in settings.timezone) ────────────────────────────────
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    # ── Status ────────────────────────────────────────────────────────────────
    status = Column(
        Enum(
            "requested",  # Parent or tutor asked for a demo
            "scheduled",  # Confirmed slot
            "completed",  # Took place, marked after the slot elapsed
            "cancelled",  # Called off by either side or admin
            name="demo_status_enum",
        ),
        nullable=False,
        index=True,
    )
    requested_by = Column(String(20), nullable=True)           # parent | tutor | admin

    # ── Reschedule Proposal ───────────────────────────────────────────────────
    reschedule_status = Column(
        Enum("none", "pending", name="demo_reschedule_status_enum"),
        nullable=False,
        default="none",
    )
    proposed_date = Column(Date, nullable=True)
    proposed_start_time = Column(Time, nullable=True)
    proposed_end_time = Column(Time, nullable=True)
    reschedule_reason = Column(Text, nullable=True)
    reschedule_requested_by = Column(String(20), nullable=True)

    # ── Paid Demo ─────────────────────────────────────────────────────────────
    is_paid = Column(Boolean, nullable=False, default=False)
    fee = Column(Numeric(10, 2), nullable=True)

    # ── Cancellation ──────────────────────────────────────────────────────────
    cancel_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(20), nullable=True)

    # ── Feedback (parent, after completion) ───────────────────────────────────
    feedback_rating = Column(Integer, nullable=True)           # 1-5
    feedback_comment = Column(Text, nullable=True)
    next_step_decision = Column(String(50), nullable=True)     # start_classes | another_demo | not_interested

    completed_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    requirement = relationship("Requirement", back_populates="demos")

    __table_args__ = (
        Index(
            "uq_demo_active_pair",
            "requirement_id",
            "tutor_id",
            unique=True,
            postgresql_where=status.in_(ACTIVE_DEMO_STATUSES),
            sqlite_where=status.in_(ACTIVE_DEMO_STATUSES),
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_DEMO_STATUSES

    @property
    def feedback_submitted(self) -> bool:
        return self.feedback_rating is not None

    def __repr__(self) -> str:
        return (
            f"<DemoSession requirement={self.requirement_id} tutor={self.tutor_id} "
            f"date={self.date} status={self.status} v{self.version}>"
        )
