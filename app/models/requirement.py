# app/models/requirement.py
# A parent's tuition requirement ("enquiry") and the admin notes kept on it
#
# Flow:
#   1. Parent (or admin on a parent's behalf) posts → status=open
#   2. Admin assigns a tutor                          → status=matched
#   3. Parent closes (found tutor / gave up) or a class is created → status=closed
#   4. Parent may reopen a closed requirement         → status=open
#
# Every write bumps `version` (optimistic concurrency, see services/concurrency.py)

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base


class Requirement(Base):
    """
    A parent's posted tuition need.
    Status lifecycle: open → matched → closed, open → closed, closed → open (reopen)
    Deleted only by the parent, and only while no tutor is assigned.
    """
    __tablename__ = "requirements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    enquiry_code = Column(String(16), unique=True, nullable=False, index=True)
    parent_id = Column(Uuid, nullable=False, index=True)

    # ── Student & Subjects ────────────────────────────────────────────────────
    student_name = Column(String(255), nullable=True)
    subjects = Column(JSON, nullable=False, default=list)        # ["Mathematics", "Physics"]
    grade_level = Column(String(50), nullable=False)
    board = Column(String(50), nullable=True)                    # CBSE | ICSE | State ...

    # ── Teaching Mode & Location ──────────────────────────────────────────────
    teaching_modes = Column(JSON, nullable=False, default=list)  # subset of ["online", "offline"]
    location = Column(JSON, nullable=True)                       # required iff "offline" selected

    # ── Preferences ───────────────────────────────────────────────────────────
    preferred_days = Column(JSON, nullable=True)
    preferred_time_slots = Column(JSON, nullable=True)
    gender_preference = Column(
        Enum("male", "female", "no_preference", name="tutor_gender_preference_enum"),
        nullable=False,
        default="no_preference",
    )
    start_preference = Column(
        Enum("immediately", "within_a_month", "just_exploring", name="start_preference_enum"),
        nullable=False,
        default="immediately",
    )
    additional_notes = Column(Text, nullable=True)
    created_by = Column(
        Enum("parent", "admin", name="requirement_created_by_enum"),
        nullable=False,
        default="parent",
    )

    # ── Status ────────────────────────────────────────────────────────────────
    status = Column(
        Enum(
            "open",     # Accepting tutors
            "matched",  # A tutor association is assigned
            "closed",   # Parent closed it or a class was started
            name="requirement_status_enum",
        ),
        nullable=False,
        default="open",
        index=True,
    )

    # ── Close Outcome ─────────────────────────────────────────────────────────
    found_tutor = Column(Boolean, nullable=True)
    found_tutor_name = Column(String(255), nullable=True)        # Captured when tutor found elsewhere
    close_reason = Column(Text, nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)

    # ── Timestamps ────────────────────────────────────────────────────────────
    posted_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    associations = relationship(
        "TutorAssociation", back_populates="requirement", cascade="all, delete-orphan"
    )
    demos = relationship(
        "DemoSession", back_populates="requirement", cascade="all, delete-orphan"
    )
    classes = relationship("Class", back_populates="requirement")
    notes = relationship(
        "RequirementNote", back_populates="requirement", cascade="all, delete-orphan",
        order_by="RequirementNote.created_at",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<Requirement code={self.enquiry_code} "
            f"parent={self.parent_id} status={self.status} v{self.version}>"
        )


class RequirementNote(Base):
    """
    Free-text note an admin attaches to a requirement while working it.
    Append-only; never edited.
    """
    __tablename__ = "requirement_notes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    requirement_id = Column(
        Uuid,
        ForeignKey("requirements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id = Column(Uuid, nullable=False)
    message = Column(Text, nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    requirement = relationship("Requirement", back_populates="notes")

    def __repr__(self) -> str:
        return f"<RequirementNote requirement={self.requirement_id} author={self.author_id}>"
