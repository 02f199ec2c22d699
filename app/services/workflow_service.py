# app/services/workflow_service.py
# Enquiry → Tutor → Demo → Class matching workflow
#
# One method per business transition. Each method:
#   1. checks the caller's role may use the operation at all (PermissionDenied)
#   2. loads the entities it touches through the EntityStore
#   3. asks services/transitions.py whether each status edge is legal
#   4. mutates in memory and queues outbox events on the unit of work
#   5. commits once through run_atomic() (all-or-nothing, version-checked)
#   6. hands the committed events to the OutboxHook (best-effort)
#
# Cascades:
#   promote_association(assigned) → requirement open → matched
#   close_requirement              → cancels active demos, optionally create_class
#   create_class                   → cancels active demos, requirement → closed
#
# Nothing here auto-rejects tutors that were not picked; admins do that explicitly.

import logging
import secrets
import uuid
from datetime import date, timedelta
from typing import Callable, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock
from app.core.config import settings
from app.core.exceptions import (
    AssociationNotAssigned,
    ConflictingDemo,
    DemoNotYetElapsed,
    DuplicateAssociation,
    InvalidTransition,
    PermissionDenied,
    RequirementClosed,
    RescheduleAlreadyPending,
    TutorAlreadyAssigned,
    ValidationFailed,
)
from app.models.class_ import Class
from app.models.demo_session import DemoSession
from app.models.requirement import Requirement, RequirementNote
from app.models.tutor_association import TutorAssociation
from app.schemas.class_ import WEEKDAYS, ClassCreate, ClassSchedule
from app.schemas.demo import DemoFeedback, DemoRequestCreate, DemoSchedule, DemoSlot
from app.schemas.requirement import CloseOutcome, RequirementCreate, RequirementUpdate
from app.services.concurrency import Actor, UnitOfWork, run_atomic
from app.services.outbox import OutboxHook
from app.services.transitions import (
    ASSOCIATION,
    CLASS,
    DEMO,
    REQUIREMENT,
    ROLES,
    validate_transition,
)

logger = logging.getLogger("tutormatch.workflow")

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CANDIDATE_STATUSES = ("recommended", "applied", "shortlisted", "assigned")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _new_enquiry_code() -> str:
    return "ENQ-" + "".join(secrets.choice(CODE_ALPHABET) for _ in range(6))


def _allow(actor: Actor, operation: str, *roles: str) -> None:
    if actor.role not in roles:
        raise PermissionDenied(actor.role, operation)


def _check_owner(actor: Actor, req: Requirement, operation: str) -> None:
    """Parents act only on their own requirements."""
    if actor.role == "parent" and req.parent_id != actor.id:
        raise PermissionDenied(actor.role, operation)


def _check_tutor(actor: Actor, tutor_id: UUID, operation: str) -> None:
    """Tutors act only on their own associations, demos and classes."""
    if actor.role == "tutor" and tutor_id != actor.id:
        raise PermissionDenied(actor.role, operation)


def _check_location(teaching_modes: Iterable[str], location) -> None:
    if "offline" in teaching_modes and not location:
        raise ValidationFailed("Location is required for offline tuition.")


def _parties(req: Requirement, tutor_id: Optional[UUID] = None, **extra) -> dict:
    """Outbox payload naming who an event concerns."""
    payload = {"parent_id": req.parent_id, "enquiry_code": req.enquiry_code}
    if tutor_id is not None:
        payload["tutor_id"] = tutor_id
    payload.update(extra)
    return payload


def next_session_on(days: List[str], start_date: date, end_date: Optional[date], today: date) -> Optional[date]:
    """First scheduled class day on or after max(today, start_date), within end_date."""
    if not days:
        return None
    weekdays = {WEEKDAYS.index(d) for d in days}
    day = max(today, start_date)
    for _ in range(7):
        if day.weekday() in weekdays:
            break
        day += timedelta(days=1)
    if end_date is not None and day > end_date:
        return None
    return day


def class_status_on(cls: Class, today: date) -> str:
    """Date-driven status for a live class."""
    if today < cls.start_date:
        return "upcoming"
    if cls.end_date is not None and today > cls.end_date:
        return "past"
    return "ongoing"


class WorkflowService:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Optional[Clock] = None,
        outbox: Optional[OutboxHook] = None,
        max_retries: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.outbox = outbox or OutboxHook(session_factory, attempts=settings.outbox_write_attempts)
        retries = settings.workflow_max_retries if max_retries is None else max_retries
        self.max_attempts = retries + 1

    def _run(self, operation: str, actor: Actor, work: Callable[[UnitOfWork], object]):
        if actor.role not in ROLES:
            raise PermissionDenied(actor.role, operation)
        result, uow = run_atomic(
            self.session_factory, self.clock, actor, operation, work, self.max_attempts
        )
        try:
            if self.outbox.backlog_size:
                self.outbox.flush_backlog()
            self.outbox.append(uow)
        except Exception:
            # The mutation is committed; event delivery must never undo or fail it
            logger.exception(f"Outbox append raised for {operation} correlation={uow.correlation_id}")
        logger.info(f"{operation} by {actor.role}:{actor.id} ok ({len(uow.events)} event(s))")
        return result

    # ══ Requirements ══════════════════════════════════════════════════════════

    def post_requirement(self, actor: Actor, data: RequirementCreate) -> Requirement:
        """Parent posts a tuition need (admin may post for a parent). Starts open."""
        _allow(actor, "post_requirement", "parent", "admin")
        if actor.role == "parent":
            parent_id = actor.id
        else:
            parent_id = data.parent_id
            if parent_id is None:
                raise ValidationFailed("parent_id is required when an admin posts a requirement.")
        _check_location(data.teaching_modes, data.location)

        def work(uow: UnitOfWork) -> Requirement:
            req = Requirement(
                id=uuid.uuid4(),
                enquiry_code=_new_enquiry_code(),
                parent_id=parent_id,
                student_name=data.student_name,
                subjects=list(data.subjects),
                grade_level=data.grade_level,
                board=data.board,
                teaching_modes=list(data.teaching_modes),
                location=data.location.model_dump() if "offline" in data.teaching_modes and data.location else None,
                preferred_days=data.preferred_days,
                preferred_time_slots=data.preferred_time_slots,
                gender_preference=data.gender_preference,
                start_preference=data.start_preference,
                additional_notes=data.additional_notes,
                created_by=actor.role,
                status="open",
                posted_at=uow.now,
            )
            uow.store.add(req)
            uow.record(REQUIREMENT, req.id, None, "open", req.id, **_parties(req))
            return req

        return self._run("post_requirement", actor, work)

    def update_requirement(
        self, actor: Actor, requirement_id: UUID, changes: RequirementUpdate
    ) -> Requirement:
        """Edit requirement details while it is open or matched. Status never changes here."""
        _allow(actor, "update_requirement", "parent", "admin")
        fields = changes.model_dump(exclude_unset=True, exclude={"expected_version"})

        def work(uow: UnitOfWork) -> Requirement:
            req = uow.store.requirement(requirement_id, changes.expected_version)
            _check_owner(actor, req, "update_requirement")
            if req.status == "closed":
                raise RequirementClosed(req.id)

            if "subjects" in fields:
                subjects = [s.strip() for s in fields["subjects"] or [] if s and s.strip()]
                if not subjects:
                    raise ValidationFailed("At least one subject is required.")
                fields["subjects"] = subjects
            if "teaching_modes" in fields and not fields["teaching_modes"]:
                raise ValidationFailed("Select at least one teaching mode.")
            modes = fields.get("teaching_modes", req.teaching_modes)
            location = fields.get("location", req.location)
            _check_location(modes, location)
            if "offline" not in modes:
                fields["location"] = None

            for name, value in fields.items():
                setattr(req, name, value)
            uow.record(
                REQUIREMENT, req.id, req.status, req.status, req.id,
                **_parties(req, changed=sorted(fields)),
            )
            return req

        return self._run("update_requirement", actor, work)

    def delete_requirement(
        self, actor: Actor, requirement_id: UUID, expected_version: Optional[int] = None
    ) -> None:
        """Parent deletes their requirement; blocked once a tutor is assigned or classes exist."""
        _allow(actor, "delete_requirement", "parent")

        def work(uow: UnitOfWork) -> None:
            req = uow.store.requirement(requirement_id, expected_version)
            _check_owner(actor, req, "delete_requirement")
            if uow.store.assigned_association(req.id) is not None:
                raise ValidationFailed("A requirement with an assigned tutor cannot be deleted.")
            if uow.store.classes_for(req.id):
                raise ValidationFailed("A requirement with classes cannot be deleted.")
            uow.record(REQUIREMENT, req.id, req.status, "deleted", None, **_parties(req))
            uow.store.delete(req)

        self._run("delete_requirement", actor, work)

    def close_requirement(
        self, actor: Actor, requirement_id: UUID, outcome: CloseOutcome
    ) -> Requirement:
        """
        The whole close dialog as one cascade: cancel active demos, record the
        outcome and, when asked, start classes with the found tutor.
        Closing an already closed requirement is a no-op; it never cascades twice.
        """
        _allow(actor, "close_requirement", "parent", "admin")

        def work(uow: UnitOfWork) -> Requirement:
            req = uow.store.requirement(requirement_id, outcome.expected_version)
            _check_owner(actor, req, "close_requirement")
            if validate_transition(REQUIREMENT, req.status, "closed", actor.role):
                return req

            if outcome.start_classes:
                tutor_id = outcome.tutor_id
                if tutor_id is None:
                    assigned = uow.store.assigned_association(req.id)
                    if assigned is None:
                        raise AssociationNotAssigned(req.id, None)
                    tutor_id = assigned.tutor_id
                self._create_class(
                    uow, req, tutor_id, outcome.schedule, outcome.tutor_name,
                    close_reason=outcome.reason,
                )
            else:
                self._close(
                    uow, req,
                    found_tutor=outcome.found_tutor,
                    tutor_name=outcome.tutor_name if outcome.found_tutor else None,
                    reason=outcome.reason,
                )
            return req

        return self._run("close_requirement", actor, work)

    def reopen_requirement(
        self, actor: Actor, requirement_id: UUID, expected_version: Optional[int] = None
    ) -> Requirement:
        """Closed → open, parent only, and only while none of its classes is ongoing."""

        def work(uow: UnitOfWork) -> Requirement:
            req = uow.store.requirement(requirement_id, expected_version)
            _check_owner(actor, req, "reopen_requirement")
            if validate_transition(REQUIREMENT, req.status, "open", actor.role):
                return req

            today = self.clock.today()
            for cls in uow.store.classes_for(req.id):
                self._advance_class(uow, cls, today, req)
                if cls.status == "ongoing":
                    raise InvalidTransition(REQUIREMENT, req.status, "open", actor.role)

            req.status = "open"
            req.closed_at = None
            req.found_tutor = None
            req.found_tutor_name = None
            req.close_reason = None
            uow.record(REQUIREMENT, req.id, "closed", "open", req.id, **_parties(req))
            return req

        return self._run("reopen_requirement", actor, work)

    def force_requirement_status(
        self,
        actor: Actor,
        requirement_id: UUID,
        target: str,
        remark: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Requirement:
        """Admin override from the manage-enquiry screen. Closing still cascades."""
        _allow(actor, "force_requirement_status", "admin")

        def work(uow: UnitOfWork) -> Requirement:
            req = uow.store.requirement(requirement_id, expected_version)
            if not validate_transition(REQUIREMENT, req.status, target, actor.role):
                if target == "closed":
                    self._close(uow, req, found_tutor=None, tutor_name=None, reason=remark)
                else:
                    previous = req.status
                    req.status = target
                    uow.record(REQUIREMENT, req.id, previous, target, req.id, **_parties(req))
            if remark:
                uow.store.add(RequirementNote(
                    id=uuid.uuid4(), requirement_id=req.id, author_id=actor.id,
                    message=remark, created_at=uow.now,
                ))
            return req

        return self._run("force_requirement_status", actor, work)

    def add_note(self, actor: Actor, requirement_id: UUID, message: str) -> RequirementNote:
        _allow(actor, "add_note", "admin")

        def work(uow: UnitOfWork) -> RequirementNote:
            req = uow.store.requirement(requirement_id)
            note = RequirementNote(
                id=uuid.uuid4(), requirement_id=req.id, author_id=actor.id,
                message=message, created_at=uow.now,
            )
            uow.store.add(note)
            uow.record(REQUIREMENT, req.id, req.status, req.status, req.id, **_parties(req))
            return note

        return self._run("add_note", actor, work)

    def _close(
        self,
        uow: UnitOfWork,
        req: Requirement,
        found_tutor: Optional[bool],
        tutor_name: Optional[str],
        reason: Optional[str],
    ) -> None:
        """Requirement → closed, cancelling every demo still active on it."""
        for demo in uow.store.active_demos(req.id):
            self._cancel_demo(uow, demo, req, "Requirement closed", "system")

        previous = req.status
        validate_transition(REQUIREMENT, previous, "closed", uow.actor.role)
        req.status = "closed"
        req.closed_at = uow.now
        req.found_tutor = found_tutor
        req.found_tutor_name = tutor_name
        req.close_reason = reason
        uow.record(
            REQUIREMENT, req.id, previous, "closed", req.id,
            **_parties(req, found_tutor=found_tutor),
        )

    # ══ Tutor associations ════════════════════════════════════════════════════

    def record_tutor_interest(
        self,
        actor: Actor,
        requirement_id: UUID,
        tutor_id: Optional[UUID],
        kind: str,
    ) -> TutorAssociation:
        """
        A tutor applies (kind='applied') or the recommendation feed / admin
        surfaces one (kind='recommended'). One association per pair, ever.
        """
        if kind == "applied":
            _allow(actor, "apply_to_requirement", "tutor")
            tutor_id = tutor_id or actor.id
            _check_tutor(actor, tutor_id, "apply_to_requirement")
        elif kind == "recommended":
            _allow(actor, "recommend_tutor", "admin", "system")
        else:
            raise ValidationFailed(f"Unknown interest kind '{kind}'.")
        if tutor_id is None:
            raise ValidationFailed("tutor_id is required.")

        def work(uow: UnitOfWork) -> TutorAssociation:
            req = uow.store.requirement(requirement_id)
            if uow.store.find_association(req.id, tutor_id) is not None:
                raise DuplicateAssociation(req.id, tutor_id)
            if req.status == "closed":
                raise RequirementClosed(req.id)

            assoc = TutorAssociation(id=uuid.uuid4(), requirement_id=req.id, tutor_id=tutor_id)
            assoc.stamp(kind, uow.now)
            uow.store.add(assoc)
            uow.record(ASSOCIATION, assoc.id, None, kind, req.id, **_parties(req, tutor_id))
            return assoc

        return self._run("record_tutor_interest", actor, work)

    def promote_association(
        self,
        actor: Actor,
        requirement_id: UUID,
        tutor_id: UUID,
        target: str,
        expected_version: Optional[int] = None,
    ) -> TutorAssociation:
        """Admin shortlists or assigns a tutor. Assigning matches an open requirement."""
        _allow(actor, "promote_association", "admin")
        if target not in ("shortlisted", "assigned"):
            raise ValidationFailed("Promotion target must be 'shortlisted' or 'assigned'.")

        def work(uow: UnitOfWork) -> TutorAssociation:
            req = uow.store.requirement(requirement_id)
            assoc = uow.store.association(requirement_id, tutor_id, expected_version)
            if req.status == "closed" and assoc.status != target:
                raise RequirementClosed(req.id)
            self._move_association(uow, req, assoc, target)
            return assoc

        return self._run("promote_association", actor, work)

    def reject_association(
        self, actor: Actor, requirement_id: UUID, tutor_id: UUID, expected_version: Optional[int] = None
    ) -> TutorAssociation:
        _allow(actor, "reject_association", "admin")
        return self._association_step("reject_association", actor, requirement_id, tutor_id, "rejected", expected_version)

    def withdraw_association(
        self, actor: Actor, requirement_id: UUID, tutor_id: UUID, expected_version: Optional[int] = None
    ) -> TutorAssociation:
        _allow(actor, "withdraw_association", "tutor")
        _check_tutor(actor, tutor_id, "withdraw_association")
        return self._association_step("withdraw_association", actor, requirement_id, tutor_id, "withdrawn", expected_version)

    def confirm_interest(
        self, actor: Actor, requirement_id: UUID, tutor_id: UUID, expected_version: Optional[int] = None
    ) -> TutorAssociation:
        """Tutor takes up a recommendation (recommended → applied)."""
        _allow(actor, "confirm_interest", "tutor")
        _check_tutor(actor, tutor_id, "confirm_interest")
        return self._association_step(
            "confirm_interest", actor, requirement_id, tutor_id, "applied", expected_version,
            require_open=True,
        )

    def _association_step(
        self,
        operation: str,
        actor: Actor,
        requirement_id: UUID,
        tutor_id: UUID,
        target: str,
        expected_version: Optional[int],
        require_open: bool = False,
    ) -> TutorAssociation:
        def work(uow: UnitOfWork) -> TutorAssociation:
            req = uow.store.requirement(requirement_id)
            assoc = uow.store.association(requirement_id, tutor_id, expected_version)
            if require_open and req.status == "closed" and assoc.status != target:
                raise RequirementClosed(req.id)
            self._move_association(uow, req, assoc, target)
            return assoc

        return self._run(operation, actor, work)

    def _move_association(
        self, uow: UnitOfWork, req: Requirement, assoc: TutorAssociation, target: str
    ) -> None:
        if validate_transition(ASSOCIATION, assoc.status, target, uow.actor.role):
            return

        if target == "assigned":
            current = uow.store.assigned_association(req.id)
            if current is not None and current.id != assoc.id:
                raise TutorAlreadyAssigned(req.id, current.tutor_id)

        previous = assoc.status
        assoc.stamp(target, uow.now)
        uow.record(ASSOCIATION, assoc.id, previous, target, req.id, **_parties(req, assoc.tutor_id))

        if target == "assigned" and req.status == "open":
            validate_transition(REQUIREMENT, "open", "matched", uow.actor.role)
            req.status = "matched"
            uow.record(REQUIREMENT, req.id, "open", "matched", req.id, **_parties(req, assoc.tutor_id))

    # ══ Demo sessions ═════════════════════════════════════════════════════════

    def schedule_demo(self, actor: Actor, data: DemoSchedule) -> DemoSession:
        """Admin books a confirmed demo slot for a candidate tutor."""
        _allow(actor, "schedule_demo", "admin")

        def work(uow: UnitOfWork) -> DemoSession:
            req = uow.store.requirement(data.requirement_id)
            self._check_demo_allowed(uow, req, data.tutor_id)
            demo = self._new_demo(
                uow, req, data.tutor_id, data.slot, data.mode, data.subjects, "scheduled",
                join_link=data.join_link,
                location=data.location,
                fee=data.fee,
            )
            return demo

        return self._run("schedule_demo", actor, work)

    def request_demo(self, actor: Actor, data: DemoRequestCreate) -> DemoSession:
        """Parent or tutor asks for a demo; it waits as 'requested' until confirmed."""
        _allow(actor, "request_demo", "parent", "tutor")
        tutor_id = data.tutor_id
        if actor.role == "tutor":
            tutor_id = tutor_id or actor.id
            _check_tutor(actor, tutor_id, "request_demo")
        if tutor_id is None:
            raise ValidationFailed("tutor_id is required.")

        def work(uow: UnitOfWork) -> DemoSession:
            req = uow.store.requirement(data.requirement_id)
            _check_owner(actor, req, "request_demo")
            self._check_demo_allowed(uow, req, tutor_id)
            return self._new_demo(uow, req, tutor_id, data.slot, data.mode, data.subjects, "requested")

        return self._run("request_demo", actor, work)

    def confirm_demo(
        self,
        actor: Actor,
        demo_id: UUID,
        join_link: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> DemoSession:
        """Requested → scheduled, by the tutor or an admin."""
        _allow(actor, "confirm_demo", "tutor", "admin")

        def work(uow: UnitOfWork) -> DemoSession:
            demo = uow.store.demo(demo_id, expected_version)
            _check_tutor(actor, demo.tutor_id, "confirm_demo")
            if demo.status == "scheduled":
                return demo
            validate_transition(DEMO, demo.status, "scheduled", actor.role)
            req = uow.store.requirement(demo.requirement_id)
            demo.status = "scheduled"
            if join_link:
                demo.join_link = join_link
            uow.record(
                DEMO, demo.id, "requested", "scheduled", req.id,
                **_parties(req, demo.tutor_id, date=demo.date, start_time=demo.start_time),
            )
            return demo

        return self._run("confirm_demo", actor, work)

    def request_reschedule(
        self,
        actor: Actor,
        demo_id: UUID,
        slot: DemoSlot,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> DemoSession:
        """
        Propose a new slot. The demo keeps its status and slot until the
        counterpart resolves; only one proposal may be pending at a time.
        """
        _allow(actor, "request_reschedule", "parent", "tutor", "admin")

        def work(uow: UnitOfWork) -> DemoSession:
            demo = uow.store.demo(demo_id, expected_version)
            req = uow.store.requirement(demo.requirement_id)
            self._check_demo_party(actor, req, demo, "request_reschedule")
            if demo.reschedule_status == "pending":
                raise RescheduleAlreadyPending(demo.id)
            if not demo.is_active:
                raise InvalidTransition(DEMO, demo.status, "scheduled", actor.role)
            validate_transition(DEMO, demo.status, demo.status, actor.role)

            demo.reschedule_status = "pending"
            demo.proposed_date = slot.date
            demo.proposed_start_time = slot.start_time
            demo.proposed_end_time = slot.end_time
            demo.reschedule_reason = reason
            demo.reschedule_requested_by = actor.role
            uow.record(
                DEMO, demo.id, demo.status, "reschedule_requested", req.id,
                **_parties(req, demo.tutor_id, date=slot.date, start_time=slot.start_time),
            )
            return demo

        return self._run("request_reschedule", actor, work)

    def resolve_reschedule(
        self,
        actor: Actor,
        demo_id: UUID,
        accept: bool,
        expected_version: Optional[int] = None,
    ) -> DemoSession:
        """Counterpart accepts (slot moves) or rejects (slot stays). Clears the proposal either way."""
        _allow(actor, "resolve_reschedule", "parent", "tutor", "admin")

        def work(uow: UnitOfWork) -> DemoSession:
            demo = uow.store.demo(demo_id, expected_version)
            req = uow.store.requirement(demo.requirement_id)
            self._check_demo_party(actor, req, demo, "resolve_reschedule")
            if demo.reschedule_status != "pending":
                raise ValidationFailed("There is no pending reschedule request for this demo.")
            if actor.role != "admin" and actor.role == demo.reschedule_requested_by:
                raise PermissionDenied(actor.role, "resolve_own_reschedule")
            if not demo.is_active:
                raise InvalidTransition(DEMO, demo.status, "scheduled", actor.role)
            validate_transition(DEMO, demo.status, demo.status, actor.role)

            if accept:
                slot = DemoSlot(
                    date=demo.proposed_date,
                    start_time=demo.proposed_start_time,
                    end_time=demo.proposed_end_time,
                )
                demo.date = slot.date
                demo.start_time = slot.start_time
                demo.end_time = slot.end_time
                demo.duration_minutes = slot.duration_minutes
            self._clear_reschedule(demo)
            uow.record(
                DEMO, demo.id, demo.status,
                "reschedule_accepted" if accept else "reschedule_rejected", req.id,
                **_parties(req, demo.tutor_id, date=demo.date, start_time=demo.start_time),
            )
            return demo

        return self._run("resolve_reschedule", actor, work)

    def complete_demo(
        self, actor: Actor, demo_id: UUID, expected_version: Optional[int] = None
    ) -> DemoSession:
        """Scheduled → completed, only once the slot's end time has passed."""
        _allow(actor, "complete_demo", "parent", "tutor", "admin", "system")

        def work(uow: UnitOfWork) -> DemoSession:
            demo = uow.store.demo(demo_id, expected_version)
            req = uow.store.requirement(demo.requirement_id)
            self._check_demo_party(actor, req, demo, "complete_demo")
            if validate_transition(DEMO, demo.status, "completed", actor.role):
                return demo

            ends_at = self.clock.at(demo.date, demo.end_time)
            if uow.now < ends_at:
                raise DemoNotYetElapsed(demo.id, ends_at)

            previous = demo.status
            demo.status = "completed"
            demo.completed_at = uow.now
            self._clear_reschedule(demo)
            uow.record(DEMO, demo.id, previous, "completed", req.id, **_parties(req, demo.tutor_id))
            return demo

        return self._run("complete_demo", actor, work)

    def cancel_demo(
        self,
        actor: Actor,
        demo_id: UUID,
        reason: str,
        expected_version: Optional[int] = None,
    ) -> DemoSession:
        """Requested or scheduled → cancelled."""
        _allow(actor, "cancel_demo", "parent", "tutor", "admin")

        def work(uow: UnitOfWork) -> DemoSession:
            demo = uow.store.demo(demo_id, expected_version)
            req = uow.store.requirement(demo.requirement_id)
            self._check_demo_party(actor, req, demo, "cancel_demo")
            if validate_transition(DEMO, demo.status, "cancelled", actor.role):
                return demo
            self._cancel_demo(uow, demo, req, reason, actor.role)
            return demo

        return self._run("cancel_demo", actor, work)

    def submit_demo_feedback(self, actor: Actor, demo_id: UUID, feedback: DemoFeedback) -> DemoSession:
        """Parent rates a completed demo. Resubmitting overwrites the earlier feedback."""
        _allow(actor, "submit_demo_feedback", "parent", "admin")

        def work(uow: UnitOfWork) -> DemoSession:
            demo = uow.store.demo(demo_id)
            req = uow.store.requirement(demo.requirement_id)
            _check_owner(actor, req, "submit_demo_feedback")
            if demo.status != "completed":
                raise ValidationFailed("Feedback opens once the demo is completed.")
            demo.feedback_rating = feedback.rating
            demo.feedback_comment = feedback.comment
            demo.next_step_decision = feedback.next_step_decision
            uow.record(
                DEMO, demo.id, "completed", "completed", req.id,
                **_parties(req, demo.tutor_id, rating=feedback.rating),
            )
            return demo

        return self._run("submit_demo_feedback", actor, work)

    def _check_demo_allowed(self, uow: UnitOfWork, req: Requirement, tutor_id: UUID) -> None:
        if req.status == "closed":
            raise RequirementClosed(req.id)
        assoc = uow.store.association(req.id, tutor_id)
        if assoc.status not in CANDIDATE_STATUSES:
            raise ValidationFailed(f"Tutor is no longer a candidate ({assoc.status}).")
        if uow.store.active_demos(req.id, tutor_id):
            raise ConflictingDemo(req.id, tutor_id)

    def _new_demo(
        self,
        uow: UnitOfWork,
        req: Requirement,
        tutor_id: UUID,
        slot: DemoSlot,
        mode: str,
        subjects: Optional[List[str]],
        status: str,
        join_link: Optional[str] = None,
        location: Optional[str] = None,
        fee=None,
    ) -> DemoSession:
        if mode == "offline" and not location and req.location:
            location = req.location.get("address")
        demo = DemoSession(
            id=uuid.uuid4(),
            requirement_id=req.id,
            tutor_id=tutor_id,
            subjects=list(subjects or req.subjects),
            mode=mode,
            join_link=join_link,
            location=location,
            date=slot.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            duration_minutes=slot.duration_minutes,
            status=status,
            requested_by=uow.actor.role,
            reschedule_status="none",
            is_paid=bool(fee),
            fee=fee,
        )
        uow.store.add(demo)
        uow.record(
            DEMO, demo.id, None, status, req.id,
            **_parties(req, tutor_id, date=slot.date, start_time=slot.start_time),
        )
        return demo

    @staticmethod
    def _check_demo_party(actor: Actor, req: Requirement, demo: DemoSession, operation: str) -> None:
        _check_owner(actor, req, operation)
        _check_tutor(actor, demo.tutor_id, operation)

    @staticmethod
    def _clear_reschedule(demo: DemoSession) -> None:
        demo.reschedule_status = "none"
        demo.proposed_date = None
        demo.proposed_start_time = None
        demo.proposed_end_time = None
        demo.reschedule_reason = None
        demo.reschedule_requested_by = None

    def _cancel_demo(
        self, uow: UnitOfWork, demo: DemoSession, req: Requirement, reason: str, role: str
    ) -> None:
        previous = demo.status
        validate_transition(DEMO, previous, "cancelled", role)
        demo.status = "cancelled"
        demo.cancel_reason = reason
        demo.cancelled_by = role
        self._clear_reschedule(demo)
        uow.record(DEMO, demo.id, previous, "cancelled", req.id, **_parties(req, demo.tutor_id))

    # ══ Classes ═══════════════════════════════════════════════════════════════

    def create_class(self, actor: Actor, data: ClassCreate) -> Class:
        """
        Start classes with the assigned tutor. Closes the requirement.
        Replaying for a pair that already has a live class returns that class.
        """
        _allow(actor, "create_class", "parent", "admin")

        def work(uow: UnitOfWork) -> Class:
            req = uow.store.requirement(data.requirement_id, data.expected_version)
            _check_owner(actor, req, "create_class")
            for existing in uow.store.classes_for(req.id):
                if existing.tutor_id == data.tutor_id and existing.status != "cancelled":
                    return existing
            return self._create_class(uow, req, data.tutor_id, data.schedule, data.tutor_name)

        return self._run("create_class", actor, work)

    def _create_class(
        self,
        uow: UnitOfWork,
        req: Requirement,
        tutor_id: UUID,
        schedule: ClassSchedule,
        tutor_name: Optional[str],
        close_reason: Optional[str] = None,
    ) -> Class:
        assoc = uow.store.find_association(req.id, tutor_id)
        if assoc is None or assoc.status != "assigned":
            raise AssociationNotAssigned(req.id, tutor_id)

        today = self.clock.today()
        cls = Class(
            id=uuid.uuid4(),
            requirement_id=req.id,
            tutor_id=tutor_id,
            tutor_name=tutor_name,
            subject=schedule.subject or req.subjects[0],
            mode=schedule.mode,
            days=list(schedule.days),
            start_time=schedule.start_time,
            end_time=schedule.end_time,
            start_date=schedule.start_date,
            end_date=schedule.end_date,
            next_session=next_session_on(schedule.days, schedule.start_date, schedule.end_date, today),
            status="upcoming",
        )
        uow.store.add(cls)
        uow.record(
            CLASS, cls.id, None, "upcoming", req.id,
            **_parties(req, tutor_id, start_date=schedule.start_date),
        )

        if req.status != "closed":
            self._close(uow, req, found_tutor=True, tutor_name=tutor_name, reason=close_reason)
        return cls

    def cancel_class(
        self,
        actor: Actor,
        class_id: UUID,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Class:
        _allow(actor, "cancel_class", "parent", "tutor", "admin")

        def work(uow: UnitOfWork) -> Class:
            cls = uow.store.class_(class_id, expected_version)
            req = uow.store.requirement(cls.requirement_id)
            _check_owner(actor, req, "cancel_class")
            _check_tutor(actor, cls.tutor_id, "cancel_class")
            if validate_transition(CLASS, cls.status, "cancelled", actor.role):
                return cls
            previous = cls.status
            cls.status = "cancelled"
            cls.cancel_reason = reason
            cls.cancelled_by = actor.role
            cls.next_session = None
            uow.record(CLASS, cls.id, previous, "cancelled", req.id, **_parties(req, cls.tutor_id))
            return cls

        return self._run("cancel_class", actor, work)

    def refresh_class_statuses(self, actor: Actor) -> int:
        """Move live classes along upcoming → ongoing → past by today's date."""
        _allow(actor, "refresh_class_statuses", "admin", "system")

        def work(uow: UnitOfWork) -> int:
            today = self.clock.today()
            changed = 0
            for cls in uow.store.live_classes():
                req = uow.store.requirement(cls.requirement_id)
                if self._advance_class(uow, cls, today, req):
                    changed += 1
            return changed

        return self._run("refresh_class_statuses", actor, work)

    def _advance_class(self, uow: UnitOfWork, cls: Class, today: date, req: Requirement) -> bool:
        if cls.status not in ("upcoming", "ongoing"):
            return False
        next_session = next_session_on(cls.days, cls.start_date, cls.end_date, today)
        if cls.next_session != next_session:
            cls.next_session = next_session

        target = class_status_on(cls, today)
        if target == cls.status:
            return False
        # upcoming reaches past only through ongoing, one event per edge
        steps = ["ongoing", "past"] if (cls.status, target) == ("upcoming", "past") else [target]
        for step in steps:
            validate_transition(CLASS, cls.status, step, "system")
            previous = cls.status
            cls.status = step
            uow.record(CLASS, cls.id, previous, step, req.id, **_parties(req, cls.tutor_id))
        return True
