# app/services/store.py
# Versioned entity access for the workflow service
#
# Loads rows by id inside the caller's unit of work and checks the version
# the client last read. The version itself is bumped by SQLAlchemy on every
# UPDATE (version_id_col), and a concurrent writer that got there first makes
# the flush fail with StaleDataError, which services/concurrency.py retries.
#
# Rows loaded by id are also remembered as read. Before commit,
# confirm_reads() re-checks each one with a no-op compare-and-swap
# (UPDATE ... SET version = version WHERE version = <read>), so a precondition
# checked on a row this operation never writes is still guarded: if another
# request changed it in between, the same StaleDataError retry path applies.

from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, inspect, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import NotFound, VersionConflict
from app.models.class_ import Class
from app.models.demo_session import ACTIVE_DEMO_STATUSES, DemoSession
from app.models.requirement import Requirement
from app.models.tutor_association import TutorAssociation


class EntityStore:
    def __init__(self, db: Session):
        self.db = db
        self.read = {}

    # ── Version check ─────────────────────────────────────────────────────────

    @staticmethod
    def check_version(entity_type: str, entity, expected_version: Optional[int]) -> None:
        """Reject a write based on a read older than the stored row."""
        if expected_version is not None and entity.version != expected_version:
            raise VersionConflict(entity_type, entity.id, expected_version, entity.version)

    # ── Requirement ───────────────────────────────────────────────────────────

    def requirement(self, requirement_id: UUID, expected_version: Optional[int] = None) -> Requirement:
        req = self.db.get(Requirement, requirement_id)
        if req is None:
            raise NotFound("requirement", requirement_id)
        self.check_version("requirement", req, expected_version)
        self._remember(req)
        return req

    # ── Tutor Association ─────────────────────────────────────────────────────

    def find_association(self, requirement_id: UUID, tutor_id: UUID) -> Optional[TutorAssociation]:
        assoc = self.db.query(TutorAssociation).filter(
            and_(
                TutorAssociation.requirement_id == requirement_id,
                TutorAssociation.tutor_id == tutor_id,
            )
        ).first()
        if assoc is not None:
            self._remember(assoc)
        return assoc

    def association(
        self,
        requirement_id: UUID,
        tutor_id: UUID,
        expected_version: Optional[int] = None,
    ) -> TutorAssociation:
        assoc = self.find_association(requirement_id, tutor_id)
        if assoc is None:
            raise NotFound("association", f"{requirement_id}/{tutor_id}")
        self.check_version("association", assoc, expected_version)
        return assoc

    def assigned_association(self, requirement_id: UUID) -> Optional[TutorAssociation]:
        return self.db.query(TutorAssociation).filter(
            and_(
                TutorAssociation.requirement_id == requirement_id,
                TutorAssociation.status == "assigned",
            )
        ).first()

    # ── Demo Session ──────────────────────────────────────────────────────────

    def demo(self, demo_id: UUID, expected_version: Optional[int] = None) -> DemoSession:
        demo = self.db.get(DemoSession, demo_id)
        if demo is None:
            raise NotFound("demo", demo_id)
        self.check_version("demo", demo, expected_version)
        self._remember(demo)
        return demo

    def active_demos(self, requirement_id: UUID, tutor_id: Optional[UUID] = None) -> List[DemoSession]:
        query = self.db.query(DemoSession).filter(
            and_(
                DemoSession.requirement_id == requirement_id,
                DemoSession.status.in_(ACTIVE_DEMO_STATUSES),
            )
        )
        if tutor_id is not None:
            query = query.filter(DemoSession.tutor_id == tutor_id)
        return query.order_by(DemoSession.created_at).all()

    # ── Class ─────────────────────────────────────────────────────────────────

    def class_(self, class_id: UUID, expected_version: Optional[int] = None) -> Class:
        cls = self.db.get(Class, class_id)
        if cls is None:
            raise NotFound("class", class_id)
        self.check_version("class", cls, expected_version)
        self._remember(cls)
        return cls

    def classes_for(self, requirement_id: UUID) -> List[Class]:
        return self.db.query(Class).filter(
            Class.requirement_id == requirement_id
        ).order_by(Class.created_at).all()

    def live_classes(self) -> List[Class]:
        """Classes whose status can still move by date."""
        return self.db.query(Class).filter(
            Class.status.in_(("upcoming", "ongoing"))
        ).all()

    # ── Writes ────────────────────────────────────────────────────────────────

    def add(self, entity) -> None:
        self.db.add(entity)

    def delete(self, entity) -> None:
        self.db.delete(entity)

    # ── Read set ──────────────────────────────────────────────────────────────

    def _remember(self, entity) -> None:
        self.read[(type(entity), entity.id)] = entity

    def confirm_reads(self) -> None:
        """
        Flush pending writes, then compare-and-swap every remembered row
        against the version this unit of work holds for it.
        Raises StaleDataError when any of them moved underneath us.
        """
        self.db.flush()
        for (model, entity_id), entity in self.read.items():
            state = inspect(entity)
            if state.was_deleted or state.detached:
                continue
            table = model.__table__
            result = self.db.execute(
                update(table)
                .where(table.c.id == entity_id, table.c.version == entity.version)
                .values(version=table.c.version)
            )
            if result.rowcount != 1:
                raise StaleDataError(
                    f"{table.name} {entity_id} changed after it was read at version {entity.version}"
                )
