"""
Outbox tests: best-effort append, the in-process backlog, and relay
delivery to the notification and Redis subscribers.
"""

import json

import pytest
from sqlalchemy.exc import OperationalError

from app.db.session import SessionLocal
from app.jobs.relay_outbox import build_subscribers, relay_once
from app.models.notification import Notification
from app.models.requirement import Requirement
from app.models.workflow_event import WorkflowEvent
from app.schemas.requirement import RequirementUpdate
from app.services.concurrency import UnitOfWork
from app.services.notification_service import notify_parties
from app.services.outbox import OutboxHook, RedisPublisher, relay_pending
from app.services.workflow_service import WorkflowService
from tests.factories import NOW, requirement_data


class FlakySessions:
    """Session factory whose commits fail while `broken` is set."""

    def __init__(self):
        self.broken = True
        self.calls = 0

    def __call__(self):
        self.calls += 1
        db = SessionLocal()
        if self.broken:
            def commit():
                raise OperationalError("INSERT INTO workflow_events", {}, Exception("database is locked"))
            db.commit = commit
        return db


class RecordingRedis:
    def __init__(self):
        self.published = []

    def publish(self, channel, message):
        self.published.append((channel, json.loads(message)))

    def close(self):
        pass


def _events(query, **filters):
    return query(lambda db: db.query(WorkflowEvent).filter_by(**filters).order_by(WorkflowEvent.occurred_at).all())


def _notifications(query, recipient_id=None):
    def run(db):
        q = db.query(Notification)
        if recipient_id is not None:
            q = q.filter(Notification.recipient_id == recipient_id)
        return q.order_by(Notification.created_at).all()
    return query(run)


def _relay(clock, subscribers):
    with SessionLocal() as db:
        return relay_pending(db, subscribers, clock=clock)


def _uow(actor, parent_id):
    db = SessionLocal()
    uow = UnitOfWork(db=db, actor=actor, operation="post_requirement", now=NOW)
    uow.record("requirement", parent_id, None, "open", parent_id, parent_id=parent_id, enquiry_code="ENQ-TEST01")
    db.close()
    return uow


# =============================================================================
# Append
# =============================================================================


class TestAppend:
    def test_committed_operation_writes_events(self, workflow, parent, posted, query):
        events = _events(query, operation="post_requirement")
        assert len(events) == 1
        event = events[0]
        assert (event.entity_type, event.from_status, event.to_status) == ("requirement", None, "open")
        assert event.requirement_id == posted.id
        assert event.payload["parent_id"] == str(parent.id)
        assert event.payload["enquiry_code"] == posted.enquiry_code
        assert event.attempts == 0

    def test_failed_write_is_parked_then_flushed(self, parent, query):
        sessions = FlakySessions()
        hook = OutboxHook(sessions, attempts=2)

        assert hook.append(_uow(parent, parent.id)) is False
        assert sessions.calls == 2
        assert hook.backlog_size == 1
        assert _events(query) == []

        assert hook.flush_backlog() == 0
        assert hook.backlog_size == 1

        sessions.broken = False
        assert hook.flush_backlog() == 1
        assert hook.backlog_size == 0
        assert len(_events(query)) == 1

    def test_empty_unit_of_work_is_a_noop(self, parent):
        sessions = FlakySessions()
        hook = OutboxHook(sessions)
        db = SessionLocal()
        uow = UnitOfWork(db=db, actor=parent, operation="close_requirement", now=NOW)
        db.close()
        assert hook.append(uow) is True
        assert sessions.calls == 0

    def test_outbox_failure_never_fails_the_operation(self, clock, parent, fetch, query):
        sessions = FlakySessions()
        workflow = WorkflowService(SessionLocal, clock=clock, outbox=OutboxHook(sessions, attempts=1))

        req = workflow.post_requirement(parent, requirement_data())
        assert fetch(Requirement, req.id).status == "open"
        assert _events(query) == []
        assert workflow.outbox.backlog_size == 1

        sessions.broken = False
        workflow.update_requirement(parent, req.id, RequirementUpdate(board="ICSE"))
        assert workflow.outbox.backlog_size == 0
        operations = sorted(e.operation for e in _events(query))
        assert operations == ["post_requirement", "update_requirement"]


# =============================================================================
# Relay
# =============================================================================


class TestRelay:
    def test_delivers_notifications_to_the_other_party(self, clock, parent, applied, query):
        assert _relay(clock, [notify_parties]) == 2

        # The parent posted the requirement themselves; only the application is news
        notes = _notifications(query)
        assert len(notes) == 1
        assert notes[0].recipient_id == parent.id
        assert notes[0].notification_type == "association.applied"
        assert notes[0].action_url == f"/parent/my-enquiries/{applied.requirement_id}"
        assert all(e.delivered_at is not None for e in _events(query))

        assert _relay(clock, [notify_parties]) == 0

    def test_demo_scheduled_tells_both_sides(self, clock, parent, tutor_a, applied, posted, schedule_for, query):
        _relay(clock, [notify_parties])
        schedule_for(posted.id, tutor_a.id)
        assert _relay(clock, [notify_parties]) == 1

        scheduled = [n for n in _notifications(query) if n.notification_type == "demo.scheduled"]
        assert {n.recipient_id for n in scheduled} == {parent.id, tutor_a.id}
        assert "2026-10-20" in scheduled[0].body
        assert posted.enquiry_code in scheduled[0].body

    def test_failing_subscriber_leaves_event_pending(self, clock, parent, applied, query):
        def broken(db, event):
            raise RuntimeError("smtp down")

        assert _relay(clock, [notify_parties, broken]) == 0
        events = _events(query)
        assert all(e.delivered_at is None for e in events)
        assert all(e.attempts == 1 for e in events)
        assert all(e.last_error == "RuntimeError: smtp down" for e in events)
        assert _notifications(query) == []

        assert _relay(clock, [notify_parties]) == 2
        events = _events(query)
        assert all(e.attempts == 2 and e.last_error is None for e in events)
        assert len(_notifications(query)) == 1

    def test_notify_parties_is_idempotent(self, parent, applied):
        with SessionLocal() as db:
            event = db.query(WorkflowEvent).filter_by(to_status="applied").one()
            assert len(notify_parties(db, event)) == 1
            assert notify_parties(db, event) == []
            db.commit()

    def test_edits_notify_nobody(self, workflow, admin, parent, posted):
        workflow.update_requirement(admin, posted.id, RequirementUpdate(board="ICSE"))
        with SessionLocal() as db:
            event = db.query(WorkflowEvent).filter_by(operation="update_requirement").one()
            assert event.from_status == event.to_status == "open"
            assert notify_parties(db, event) == []

    def test_relay_once_drains_in_batches(self, workflow, parent, query):
        for _ in range(5):
            workflow.post_requirement(parent, requirement_data())
        assert relay_once([notify_parties], batch_size=2) == 5
        assert all(e.delivered_at is not None for e in _events(query))


# =============================================================================
# Redis fan-out
# =============================================================================


class TestRedisPublisher:
    def test_publishes_event_json(self, clock, monkeypatch, tutor_a, applied):
        publisher = RedisPublisher("redis://127.0.0.1:1/0", "test.workflow-events")
        fake = RecordingRedis()
        monkeypatch.setattr(publisher, "_client", fake)

        assert _relay(clock, [publisher]) == 2
        channels = {channel for channel, _ in fake.published}
        assert channels == {"test.workflow-events"}
        applied_msg = next(m for _, m in fake.published if m["to_status"] == "applied")
        assert applied_msg["entity_type"] == "association"
        assert applied_msg["payload"]["tutor_id"] == str(tutor_a.id)
        assert applied_msg["actor_role"] == "tutor"

    @pytest.mark.parametrize("use_redis,count", [(True, 2), (False, 1)])
    def test_build_subscribers(self, use_redis, count):
        subscribers = build_subscribers(use_redis)
        assert len(subscribers) == count
        assert subscribers[0] is notify_parties
        for subscriber in subscribers:
            if isinstance(subscriber, RedisPublisher):
                subscriber.close()
