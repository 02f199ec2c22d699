# app/models/tutor_association.py
# The matching relationship between one requirement and one candidate tutor
#
# Created by the recommendation feed (recommended) or by the tutor (applied).
# Admin moves it through shortlisted → assigned, or rejects it.
# Tutor may withdraw at any non-terminal point.

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base


class TutorAssociation(Base):
    """
    One row per (requirement, tutor) pair.

    Invariants held by the schema as well as the workflow service:
        - uq_association_pair: one association per pair
        - uq_association_assigned: at most one 'assigned' row per requirement
    Assigning one tutor never rejects the others; that stays an admin action.
    """
    __tablename__ = "tutor_associations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    requirement_id = Column(
        Uuid,
        ForeignKey("requirements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tutor_id = Column(Uuid, nullable=False, index=True)

    # ── Status ────────────────────────────────────────────────────────────────
    status = Column(
        Enum(
            "recommended",  # Surfaced by the recommendation feed
            "applied",      # Tutor applied
            "shortlisted",  # Admin shortlisted
            "assigned",     # Admin assigned → requirement matched
            "rejected",     # Admin rejected
            "withdrawn",    # Tutor withdrew
            name="tutor_association_status_enum",
        ),
        nullable=False,
        index=True,
    )

    # ── Per-transition timestamps ─────────────────────────────────────────────
    recommended_at = Column(DateTime(timezone=True), nullable=True)
    applied_at = Column(DateTime(timezone=True), nullable=True)
    shortlisted_at = Column(DateTime(timezone=True), nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    withdrawn_at = Column(DateTime(timezone=True), nullable=True)

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
    requirement = relationship("Requirement", back_populates="associations")

    __table_args__ = (
        UniqueConstraint("requirement_id", "tutor_id", name="uq_association_pair"),
        Index(
            "uq_association_assigned",
            "requirement_id",
            unique=True,
            postgresql_where=(status == "assigned"),
            sqlite_where=(status == "assigned"),
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    def stamp(self, status: str, at: datetime) -> None:
        """Move to `status` and record when it happened."""
        self.status = status
        setattr(self, f"{status}_at", at)

    def __repr__(self) -> str:
        return (
            f"<TutorAssociation requirement={self.requirement_id} "
            f"tutor={self.tutor_id} status={self.status} v{self.version}>"
        )
