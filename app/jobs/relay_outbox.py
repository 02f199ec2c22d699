# app/jobs/relay_outbox.py
# Delivers workflow events from the outbox table to their subscribers:
#   1. in-app notifications for the parent / tutor concerned
#   2. the Redis pub/sub channel (settings.outbox_channel) for e-mail / push workers
#
# Usage:
#   python -m app.jobs.relay_outbox                  # loop forever, 5s between passes
#   python -m app.jobs.relay_outbox --once           # one pass (cron)
#   python -m app.jobs.relay_outbox --no-redis       # notifications only
#
# Undelivered events are retried on every pass; the API never waits on this job.

import argparse
import logging
import time
from typing import List, Optional

import app.db.base  # noqa: F401
from app.core.config import settings
from app.db.session import SessionLocal
from app.services.notification_service import notify_parties
from app.services.outbox import RedisPublisher, Subscriber, relay_pending

log = logging.getLogger("tutormatch.relay_outbox")


def relay_once(subscribers: List[Subscriber], batch_size: int) -> int:
    """Drain the outbox in batches until a pass delivers nothing."""
    total = 0
    while True:
        db = SessionLocal()
        try:
            delivered = relay_pending(db, subscribers, limit=batch_size)
        finally:
            db.close()
        total += delivered
        if delivered < batch_size:
            return total


def build_subscribers(use_redis: bool) -> List[Subscriber]:
    subscribers: List[Subscriber] = [notify_parties]
    if use_redis:
        subscribers.append(RedisPublisher(settings.redis_url, settings.outbox_channel))
    return subscribers


# ── Entrypoint ────────────────────────────────────────────────────────────────

def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Relay TutorMatch workflow events to subscribers.")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument(
        "--interval",
        type=float,
        default=5.0,
        help="Seconds between passes when looping (default: 5)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.outbox_relay_batch_size,
        dest="batch_size",
        help="Events per relay batch",
    )
    parser.add_argument(
        "--no-redis",
        action="store_true",
        dest="no_redis",
        help="Skip publishing to the Redis channel",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    subscribers = build_subscribers(use_redis=not args.no_redis)
    log.info(f"Relay started (batch={args.batch_size}, redis={'off' if args.no_redis else 'on'})")
    try:
        while True:
            delivered = relay_once(subscribers, args.batch_size)
            if delivered:
                log.info(f"Delivered {delivered} event(s)")
            if args.once:
                break
            time.sleep(args.interval)
    except KeyboardInterrupt:
        log.info("Relay stopped")
    finally:
        for subscriber in subscribers:
            if isinstance(subscriber, RedisPublisher):
                subscriber.close()


if __name__ == "__main__":
    main()
