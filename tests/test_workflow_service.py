"""
Workflow service tests: every operation against a real (SQLite) database.

Covers the two end-to-end scenarios (posting to classes, and two tutors
with one active demo per pair) plus the guard rails of each operation.
"""

from datetime import date

import pytest

from app.core.exceptions import (
    AssociationNotAssigned,
    ConflictingDemo,
    DemoNotYetElapsed,
    DuplicateAssociation,
    InvalidTransition,
    NotFound,
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
from app.models.workflow_event import WorkflowEvent
from app.schemas.class_ import ClassCreate
from app.schemas.demo import DemoFeedback, DemoRequestCreate
from app.schemas.requirement import CloseOutcome, LocationDetails, RequirementUpdate
from tests.factories import class_schedule, requirement_data, slot


def _assign(workflow, admin, requirement_id, tutor_id):
    return workflow.promote_association(admin, requirement_id, tutor_id, "assigned")


def _classes(query, requirement_id):
    return query(lambda db: db.query(Class).filter(Class.requirement_id == requirement_id).all())


# =============================================================================
# End-to-end scenarios
# =============================================================================


class TestScenarios:
    def test_posting_to_classes(self, workflow, clock, parent, tutor_a, admin, schedule_for, fetch, query):
        req = workflow.post_requirement(parent, requirement_data())
        assert req.status == "open"
        assert req.version == 1
        assert req.enquiry_code.startswith("ENQ-")

        workflow.record_tutor_interest(tutor_a, req.id, tutor_a.id, "applied")
        shortlisted = workflow.promote_association(admin, req.id, tutor_a.id, "shortlisted")
        assert shortlisted.status == "shortlisted"
        assigned = _assign(workflow, admin, req.id, tutor_a.id)
        assert assigned.status == "assigned"
        assert assigned.applied_at is not None and assigned.assigned_at is not None
        assert fetch(Requirement, req.id).status == "matched"

        demo = schedule_for(req.id, tutor_a.id)
        assert demo.status == "scheduled"
        with pytest.raises(DemoNotYetElapsed):
            workflow.complete_demo(parent, demo.id)

        clock.advance(days=2)
        completed = workflow.complete_demo(parent, demo.id)
        assert completed.status == "completed"
        assert completed.completed_at is not None

        closed = workflow.close_requirement(parent, req.id, CloseOutcome(
            found_tutor=True,
            tutor_name="Tutor A",
            start_classes=True,
            schedule=class_schedule(),
        ))
        assert closed.status == "closed"
        assert closed.found_tutor is True

        classes = _classes(query, req.id)
        assert len(classes) == 1
        assert classes[0].status == "upcoming"
        assert classes[0].tutor_id == tutor_a.id
        assert classes[0].days == ["mon", "wed", "fri"]
        assert classes[0].next_session == date(2026, 10, 26)
        assert classes[0].subject == "Mathematics"

    def test_one_active_demo_per_pair(self, workflow, posted, tutor_b, tutor_c, schedule_for):
        workflow.record_tutor_interest(tutor_b, posted.id, tutor_b.id, "applied")
        workflow.record_tutor_interest(tutor_c, posted.id, tutor_c.id, "applied")

        demo_b = schedule_for(posted.id, tutor_b.id)
        demo_c = schedule_for(posted.id, tutor_c.id)
        assert demo_b.status == demo_c.status == "scheduled"

        with pytest.raises(ConflictingDemo):
            schedule_for(posted.id, tutor_b.id, slot(day=date(2026, 10, 22)))

        workflow.cancel_demo(tutor_b, demo_b.id, "Clash with school exam")
        again = schedule_for(posted.id, tutor_b.id, slot(day=date(2026, 10, 22)))
        assert again.status == "scheduled"


# =============================================================================
# Requirements
# =============================================================================


class TestRequirements:
    def test_tutor_cannot_post(self, workflow, tutor_a):
        with pytest.raises(PermissionDenied):
            workflow.post_requirement(tutor_a, requirement_data())

    def test_admin_posts_for_parent(self, workflow, admin, parent):
        with pytest.raises(ValidationFailed):
            workflow.post_requirement(admin, requirement_data())
        req = workflow.post_requirement(admin, requirement_data(parent_id=parent.id))
        assert req.parent_id == parent.id
        assert req.created_by == "admin"

    def test_offline_location_is_kept(self, workflow, parent):
        req = workflow.post_requirement(parent, requirement_data(
            teaching_modes=["offline", "online"],
            location=LocationDetails(address="12 MG Road", city="Bengaluru"),
        ))
        assert req.teaching_modes == ["offline", "online"]
        assert req.location["address"] == "12 MG Road"

    def test_update_bumps_version(self, workflow, parent, posted):
        updated = workflow.update_requirement(parent, posted.id, RequirementUpdate(
            expected_version=1, board="ICSE", subjects=[" Chemistry "],
        ))
        assert updated.board == "ICSE"
        assert updated.subjects == ["Chemistry"]
        assert updated.version == 2
        assert updated.status == "open"

    def test_update_offline_needs_location(self, workflow, parent, posted):
        with pytest.raises(ValidationFailed):
            workflow.update_requirement(parent, posted.id, RequirementUpdate(teaching_modes=["offline"]))

    def test_update_by_other_parent_denied(self, workflow, other_parent, posted):
        with pytest.raises(PermissionDenied):
            workflow.update_requirement(other_parent, posted.id, RequirementUpdate(board="ICSE"))

    def test_update_closed_rejected(self, workflow, parent, posted):
        workflow.close_requirement(parent, posted.id, CloseOutcome(found_tutor=False))
        with pytest.raises(RequirementClosed):
            workflow.update_requirement(parent, posted.id, RequirementUpdate(board="ICSE"))

    def test_delete_blocked_once_assigned(self, workflow, parent, admin, applied, tutor_a, posted, fetch):
        _assign(workflow, admin, posted.id, tutor_a.id)
        with pytest.raises(ValidationFailed):
            workflow.delete_requirement(parent, posted.id)
        assert fetch(Requirement, posted.id) is not None

    def test_delete_removes_children(self, workflow, parent, applied, posted, fetch):
        workflow.delete_requirement(parent, posted.id)
        assert fetch(Requirement, posted.id) is None
        assert fetch(TutorAssociation, applied.id) is None

    def test_missing_requirement(self, workflow, parent, tutor_a):
        with pytest.raises(NotFound):
            workflow.record_tutor_interest(tutor_a, parent.id, tutor_a.id, "applied")

    def test_admin_force_close_with_remark(self, workflow, admin, posted, query):
        closed = workflow.force_requirement_status(admin, posted.id, "closed", remark="Duplicate enquiry")
        assert closed.status == "closed"
        assert closed.close_reason == "Duplicate enquiry"
        notes = query(lambda db: db.query(RequirementNote).filter(
            RequirementNote.requirement_id == posted.id
        ).all())
        assert [n.message for n in notes] == ["Duplicate enquiry"]

    def test_force_status_is_admin_only(self, workflow, parent, posted):
        with pytest.raises(PermissionDenied):
            workflow.force_requirement_status(parent, posted.id, "closed")

    def test_force_cannot_regress(self, workflow, admin, applied, tutor_a, posted):
        _assign(workflow, admin, posted.id, tutor_a.id)
        with pytest.raises(InvalidTransition):
            workflow.force_requirement_status(admin, posted.id, "open")

    def test_notes_are_admin_only(self, workflow, parent, admin, posted):
        with pytest.raises(PermissionDenied):
            workflow.add_note(parent, posted.id, "Call back tomorrow")
        note = workflow.add_note(admin, posted.id, "Call back tomorrow")
        assert note.author_id == admin.id


# =============================================================================
# Tutor associations
# =============================================================================


class TestAssociations:
    def test_one_association_per_pair(self, workflow, admin, applied, tutor_a, posted):
        with pytest.raises(DuplicateAssociation):
            workflow.record_tutor_interest(tutor_a, posted.id, tutor_a.id, "applied")
        with pytest.raises(DuplicateAssociation):
            workflow.record_tutor_interest(admin, posted.id, tutor_a.id, "recommended")

    def test_closed_requirement_takes_no_interest(self, workflow, parent, posted, tutor_b):
        workflow.close_requirement(parent, posted.id, CloseOutcome(found_tutor=False))
        with pytest.raises(RequirementClosed):
            workflow.record_tutor_interest(tutor_b, posted.id, tutor_b.id, "applied")

    def test_tutor_applies_only_for_self(self, workflow, posted, tutor_a, tutor_b):
        with pytest.raises(PermissionDenied):
            workflow.record_tutor_interest(tutor_a, posted.id, tutor_b.id, "applied")

    def test_parent_cannot_recommend(self, workflow, parent, posted, tutor_a):
        with pytest.raises(PermissionDenied):
            workflow.record_tutor_interest(parent, posted.id, tutor_a.id, "recommended")

    def test_recommendation_then_confirm(self, workflow, system, posted, tutor_b):
        rec = workflow.record_tutor_interest(system, posted.id, tutor_b.id, "recommended")
        assert rec.status == "recommended"
        assert rec.recommended_at is not None
        confirmed = workflow.confirm_interest(tutor_b, posted.id, tutor_b.id)
        assert confirmed.status == "applied"

    def test_only_one_assigned_tutor(self, workflow, admin, applied, posted, tutor_a, tutor_b):
        workflow.record_tutor_interest(tutor_b, posted.id, tutor_b.id, "applied")
        _assign(workflow, admin, posted.id, tutor_a.id)
        with pytest.raises(TutorAlreadyAssigned):
            _assign(workflow, admin, posted.id, tutor_b.id)

    def test_assign_replay_is_noop(self, workflow, admin, applied, posted, tutor_a):
        first = _assign(workflow, admin, posted.id, tutor_a.id)
        again = _assign(workflow, admin, posted.id, tutor_a.id)
        assert again.version == first.version

    def test_unselected_tutors_stay_put(self, workflow, admin, applied, posted, tutor_a, tutor_b, query):
        workflow.record_tutor_interest(tutor_b, posted.id, tutor_b.id, "applied")
        _assign(workflow, admin, posted.id, tutor_a.id)
        statuses = dict(query(lambda db: db.query(
            TutorAssociation.tutor_id, TutorAssociation.status
        ).filter(TutorAssociation.requirement_id == posted.id).all()))
        assert statuses == {tutor_a.id: "assigned", tutor_b.id: "applied"}

    def test_rejected_is_terminal(self, workflow, admin, applied, posted, tutor_a):
        workflow.reject_association(admin, posted.id, tutor_a.id)
        with pytest.raises(InvalidTransition):
            workflow.promote_association(admin, posted.id, tutor_a.id, "shortlisted")

    def test_withdraw_keeps_requirement_matched(self, workflow, admin, applied, posted, tutor_a, fetch):
        _assign(workflow, admin, posted.id, tutor_a.id)
        withdrawn = workflow.withdraw_association(tutor_a, posted.id, tutor_a.id)
        assert withdrawn.status == "withdrawn"
        assert withdrawn.withdrawn_at is not None
        assert fetch(Requirement, posted.id).status == "matched"

    def test_tutor_cannot_promote(self, workflow, applied, posted, tutor_a):
        with pytest.raises(PermissionDenied):
            workflow.promote_association(tutor_a, posted.id, tutor_a.id, "assigned")


# =============================================================================
# Demo sessions
# =============================================================================


class TestDemos:
    def test_requested_then_confirmed(self, workflow, parent, tutor_a, applied, posted):
        demo = workflow.request_demo(parent, DemoRequestCreate(
            requirement_id=posted.id, tutor_id=tutor_a.id, slot=slot(),
        ))
        assert demo.status == "requested"
        assert demo.requested_by == "parent"
        assert demo.subjects == ["Mathematics", "Physics"]
        assert demo.duration_minutes == 60

        with pytest.raises(PermissionDenied):
            workflow.confirm_demo(parent, demo.id)
        confirmed = workflow.confirm_demo(tutor_a, demo.id, join_link="https://meet.example/abc")
        assert confirmed.status == "scheduled"
        assert confirmed.join_link == "https://meet.example/abc"

    def test_demo_needs_live_candidate(self, workflow, admin, applied, posted, tutor_a, tutor_b, schedule_for):
        with pytest.raises(NotFound):
            schedule_for(posted.id, tutor_b.id)
        workflow.withdraw_association(tutor_a, posted.id, tutor_a.id)
        with pytest.raises(ValidationFailed):
            schedule_for(posted.id, tutor_a.id)

    def test_reschedule_accept(self, workflow, parent, tutor_a, applied, posted, schedule_for):
        demo = schedule_for(posted.id, tutor_a.id)
        pending = workflow.request_reschedule(parent, demo.id, slot(day=date(2026, 10, 22)), "Exam day")
        assert pending.status == "scheduled"
        assert pending.reschedule_status == "pending"
        assert pending.date == date(2026, 10, 20)
        assert pending.proposed_date == date(2026, 10, 22)

        with pytest.raises(RescheduleAlreadyPending):
            workflow.request_reschedule(tutor_a, demo.id, slot(day=date(2026, 10, 23)))
        with pytest.raises(PermissionDenied):
            workflow.resolve_reschedule(parent, demo.id, accept=True)

        accepted = workflow.resolve_reschedule(tutor_a, demo.id, accept=True)
        assert accepted.status == "scheduled"
        assert accepted.reschedule_status == "none"
        assert accepted.date == date(2026, 10, 22)
        assert accepted.proposed_date is None

        again = workflow.request_reschedule(parent, demo.id, slot(day=date(2026, 10, 24)))
        assert again.reschedule_status == "pending"
        assert again.proposed_date == date(2026, 10, 24)
        assert again.date == date(2026, 10, 22)

    def test_reschedule_reject_keeps_slot(self, workflow, parent, tutor_a, applied, posted, schedule_for):
        demo = schedule_for(posted.id, tutor_a.id)
        workflow.request_reschedule(tutor_a, demo.id, slot(day=date(2026, 10, 22)))
        rejected = workflow.resolve_reschedule(parent, demo.id, accept=False)
        assert rejected.date == date(2026, 10, 20)
        assert rejected.reschedule_status == "none"

        again = workflow.request_reschedule(tutor_a, demo.id, slot(day=date(2026, 10, 24)))
        assert again.reschedule_status == "pending"

    def test_no_reschedule_after_cancel(self, workflow, tutor_a, applied, posted, schedule_for):
        demo = schedule_for(posted.id, tutor_a.id)
        workflow.cancel_demo(tutor_a, demo.id, "Unwell")
        with pytest.raises(InvalidTransition):
            workflow.request_reschedule(tutor_a, demo.id, slot(day=date(2026, 10, 22)))

    def test_cancel_clears_pending_reschedule(self, workflow, parent, tutor_a, applied, posted, schedule_for):
        demo = schedule_for(posted.id, tutor_a.id)
        workflow.request_reschedule(parent, demo.id, slot(day=date(2026, 10, 22)))
        cancelled = workflow.cancel_demo(parent, demo.id, "Found another tutor")
        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_by == "parent"
        assert cancelled.reschedule_status == "none"

    def test_other_tutor_cannot_cancel(self, workflow, tutor_a, tutor_b, applied, posted, schedule_for):
        demo = schedule_for(posted.id, tutor_a.id)
        with pytest.raises(PermissionDenied):
            workflow.cancel_demo(tutor_b, demo.id, "Not mine")

    def test_completed_demo_is_final(self, workflow, clock, parent, tutor_a, applied, posted, schedule_for):
        demo = schedule_for(posted.id, tutor_a.id)
        clock.advance(days=2)
        workflow.complete_demo(tutor_a, demo.id)
        assert workflow.complete_demo(tutor_a, demo.id).status == "completed"
        with pytest.raises(InvalidTransition):
            workflow.cancel_demo(parent, demo.id, "Too late")

    def test_requested_demo_cannot_complete(self, workflow, clock, parent, tutor_a, applied, posted):
        demo = workflow.request_demo(tutor_a, DemoRequestCreate(requirement_id=posted.id, slot=slot()))
        assert demo.tutor_id == tutor_a.id
        clock.advance(days=2)
        with pytest.raises(InvalidTransition):
            workflow.complete_demo(parent, demo.id)

    def test_feedback_after_completion(self, workflow, clock, parent, tutor_a, applied, posted, schedule_for):
        demo = schedule_for(posted.id, tutor_a.id)
        feedback = DemoFeedback(rating=5, comment="Very patient", next_step_decision="start_classes")
        with pytest.raises(ValidationFailed):
            workflow.submit_demo_feedback(parent, demo.id, feedback)

        clock.advance(days=2)
        workflow.complete_demo(parent, demo.id)
        rated = workflow.submit_demo_feedback(parent, demo.id, feedback)
        assert rated.feedback_submitted
        assert rated.feedback_rating == 5
        assert rated.next_step_decision == "start_classes"


# =============================================================================
# Close, classes, reopen
# =============================================================================


class TestCloseAndClasses:
    def test_close_cancels_active_demos(
        self, workflow, parent, tutor_a, tutor_b, applied, posted, schedule_for, fetch,
    ):
        workflow.record_tutor_interest(tutor_b, posted.id, tutor_b.id, "applied")
        requested = workflow.request_demo(parent, DemoRequestCreate(
            requirement_id=posted.id, tutor_id=tutor_a.id, slot=slot(),
        ))
        scheduled = schedule_for(posted.id, tutor_b.id)

        closed = workflow.close_requirement(parent, posted.id, CloseOutcome(
            found_tutor=True, tutor_name="Someone from the neighbourhood", reason="Found elsewhere",
        ))
        assert closed.status == "closed"
        assert closed.found_tutor_name == "Someone from the neighbourhood"
        for demo_id in (requested.id, scheduled.id):
            demo = fetch(DemoSession, demo_id)
            assert demo.status == "cancelled"
            assert demo.cancelled_by == "system"

    def test_close_twice_is_noop(self, workflow, parent, posted):
        first = workflow.close_requirement(parent, posted.id, CloseOutcome(found_tutor=False))
        second = workflow.close_requirement(parent, posted.id, CloseOutcome(found_tutor=True, tutor_name="X"))
        assert second.version == first.version
        assert second.found_tutor is False

    def test_failed_cascade_changes_nothing(self, workflow, parent, tutor_a, applied, posted, schedule_for, fetch):
        demo = schedule_for(posted.id, tutor_a.id)
        with pytest.raises(AssociationNotAssigned):
            workflow.close_requirement(parent, posted.id, CloseOutcome(
                found_tutor=True, start_classes=True, tutor_id=tutor_a.id, schedule=class_schedule(),
            ))
        assert fetch(Requirement, posted.id).status == "open"
        assert fetch(DemoSession, demo.id).status == "scheduled"

    def test_create_class_requires_assignment(self, workflow, parent, tutor_a, applied, posted):
        with pytest.raises(AssociationNotAssigned):
            workflow.create_class(parent, ClassCreate(
                requirement_id=posted.id, tutor_id=tutor_a.id, schedule=class_schedule(),
            ))

    def test_create_class_closes_and_replays(
        self, workflow, parent, admin, tutor_a, applied, posted, schedule_for, fetch, query,
    ):
        _assign(workflow, admin, posted.id, tutor_a.id)
        demo = schedule_for(posted.id, tutor_a.id)
        request = ClassCreate(requirement_id=posted.id, tutor_id=tutor_a.id, tutor_name="A", schedule=class_schedule())

        cls = workflow.create_class(parent, request)
        assert cls.status == "upcoming"
        assert fetch(Requirement, posted.id).status == "closed"
        assert fetch(DemoSession, demo.id).status == "cancelled"

        replay = workflow.create_class(parent, request)
        assert replay.id == cls.id
        assert len(_classes(query, posted.id)) == 1

    def test_reopen_clears_outcome(self, workflow, parent, posted):
        workflow.close_requirement(parent, posted.id, CloseOutcome(found_tutor=False, reason="On hold"))
        reopened = workflow.reopen_requirement(parent, posted.id)
        assert reopened.status == "open"
        assert reopened.closed_at is None
        assert reopened.close_reason is None

    def test_only_parent_reopens(self, workflow, parent, admin, posted):
        workflow.close_requirement(parent, posted.id, CloseOutcome(found_tutor=False))
        with pytest.raises(InvalidTransition):
            workflow.reopen_requirement(admin, posted.id)

    def test_reopen_blocked_by_ongoing_class(
        self, workflow, clock, parent, admin, system, tutor_a, applied, posted, fetch,
    ):
        _assign(workflow, admin, posted.id, tutor_a.id)
        cls = workflow.create_class(parent, ClassCreate(
            requirement_id=posted.id, tutor_id=tutor_a.id, schedule=class_schedule(),
        ))
        clock.advance(days=8)  # Tuesday 27 Oct
        with pytest.raises(InvalidTransition):
            workflow.reopen_requirement(parent, posted.id)
        assert fetch(Requirement, posted.id).status == "closed"
        assert fetch(Class, cls.id).status == "upcoming"

    def test_class_statuses_follow_dates(self, workflow, clock, parent, admin, system, tutor_a, applied, posted, fetch):
        _assign(workflow, admin, posted.id, tutor_a.id)
        cls = workflow.create_class(parent, ClassCreate(
            requirement_id=posted.id, tutor_id=tutor_a.id,
            schedule=class_schedule(end_date=date(2026, 11, 9)),
        ))
        assert workflow.refresh_class_statuses(system) == 0

        clock.advance(days=8)  # Tuesday 27 Oct
        assert workflow.refresh_class_statuses(system) == 1
        current = fetch(Class, cls.id)
        assert current.status == "ongoing"
        assert current.next_session == date(2026, 10, 28)

        clock.advance(days=14)  # Tuesday 10 Nov
        assert workflow.refresh_class_statuses(admin) == 1
        finished = fetch(Class, cls.id)
        assert finished.status == "past"
        assert finished.next_session is None

        with pytest.raises(InvalidTransition):
            workflow.cancel_class(parent, cls.id)

    def test_finished_class_steps_through_ongoing(
        self, workflow, clock, parent, admin, system, tutor_a, applied, posted, fetch, query,
    ):
        _assign(workflow, admin, posted.id, tutor_a.id)
        cls = workflow.create_class(parent, ClassCreate(
            requirement_id=posted.id, tutor_id=tutor_a.id,
            schedule=class_schedule(end_date=date(2026, 11, 2)),
        ))
        clock.advance(days=30)  # well past the end date
        assert workflow.refresh_class_statuses(system) == 1
        assert fetch(Class, cls.id).status == "past"

        steps = query(lambda db: [
            (e.from_status, e.to_status)
            for e in db.query(WorkflowEvent).filter_by(entity_type="class", entity_id=cls.id)
        ])
        assert len(steps) == 3
        assert set(steps) == {(None, "upcoming"), ("upcoming", "ongoing"), ("ongoing", "past")}

    def test_refresh_is_not_for_parents(self, workflow, parent):
        with pytest.raises(PermissionDenied):
            workflow.refresh_class_statuses(parent)

    def test_cancel_class(self, workflow, parent, admin, tutor_a, tutor_b, applied, posted):
        _assign(workflow, admin, posted.id, tutor_a.id)
        cls = workflow.create_class(parent, ClassCreate(
            requirement_id=posted.id, tutor_id=tutor_a.id, schedule=class_schedule(),
        ))
        with pytest.raises(PermissionDenied):
            workflow.cancel_class(tutor_b, cls.id)
        cancelled = workflow.cancel_class(tutor_a, cls.id, reason="Relocating")
        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_by == "tutor"
        assert cancelled.next_session is None


# =============================================================================
# Outbox events
# =============================================================================


class TestEvents:
    def test_cascade_events_share_correlation(self, workflow, admin, applied, posted, tutor_a, query):
        _assign(workflow, admin, posted.id, tutor_a.id)
        events = query(lambda db: db.query(WorkflowEvent).filter(
            WorkflowEvent.operation == "promote_association"
        ).all())
        moves = sorted((e.entity_type, e.from_status, e.to_status) for e in events)
        assert moves == [("association", "applied", "assigned"), ("requirement", "open", "matched")]
        assert len({e.correlation_id for e in events}) == 1
        assert all(e.actor_role == "admin" and e.actor_id == admin.id for e in events)
        assert all(e.delivered_at is None for e in events)

    def test_failed_operation_emits_nothing(self, workflow, tutor_a, posted, query):
        with pytest.raises(PermissionDenied):
            workflow.promote_association(tutor_a, posted.id, tutor_a.id, "assigned")
        count = query(lambda db: db.query(WorkflowEvent).filter(
            WorkflowEvent.operation == "promote_association"
        ).count())
        assert count == 0
