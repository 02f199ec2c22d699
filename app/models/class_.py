# app/models/class_.py
# Recurring tutoring engagements started once a requirement finds its tutor

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base


class Class(Base):
    """
    Ongoing tuition between a requirement's student and its assigned tutor.

    Created only for an assigned (requirement, tutor) pair; creating one
    closes the requirement in the same transaction.
    Status moves upcoming → ongoing → past by date, or → cancelled by either side.
    """
    __tablename__ = "classes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    requirement_id = Column(
        Uuid,
        ForeignKey("requirements.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    tutor_id = Column(Uuid, nullable=False, index=True)
    tutor_name = Column(String(255), nullable=True)

    # ── Class Details ──────────────────────────────────────────────────────────
    subject = Column(String(100), nullable=False)
    mode = Column(
        Enum("online", "offline", name="class_mode_enum"),
        nullable=False,
        default="online",
    )

    # ── Schedule ──────────────────────────────────────────────────────────────
    days = Column(JSON, nullable=False, default=list)          # ["mon", "wed", "fri"]
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    next_session = Column(Date, nullable=True)

    # ── Status ────────────────────────────────────────────────────────────────
    status = Column(
        Enum(
            "upcoming",   # start_date not reached
            "ongoing",    # between start_date and end_date
            "past",       # end_date passed
            "cancelled",  # Called off by parent, tutor or admin
            name="class_status_enum",
        ),
        nullable=False,
        default="upcoming",
        index=True,
    )
    cancel_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(20), nullable=True)

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
    requirement = relationship("Requirement", back_populates="classes")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Class subject={self.subject} tutor={self.tutor_id} status={self.status}>"
