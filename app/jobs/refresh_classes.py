# app/jobs/refresh_classes.py
# Daily class status rollover (upcoming → ongoing → past) by the schedule timezone's date
#
# Usage:
#   python -m app.jobs.refresh_classes
#
# Runs as the system actor, so every change lands in the outbox like any other.

import logging

import app.db.base  # noqa: F401
from app.db.session import SessionLocal
from app.services.concurrency import Actor
from app.services.workflow_service import WorkflowService

log = logging.getLogger("tutormatch.refresh_classes")


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    updated = WorkflowService(SessionLocal).refresh_class_statuses(Actor(role="system"))
    log.info(f"Class statuses refreshed: {updated} changed")
    return updated


if __name__ == "__main__":
    main()
