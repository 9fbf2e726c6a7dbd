"""
One dispatch run: decide what is due, deliver it, clean up.

  1. Load VAPID config (fatal on error, nothing is sent).
  2. Evaluate every subscribed user; a user whose rows cannot be read is
     skipped and counted, the run carries on.
  3. Drop events already recorded in the sent-log for that local date.
  4. Deliver every (event, device) pair on a bounded thread pool.
  5. Batch-delete endpoints the push services reported gone, once each.
  6. Record events that reached at least one device in the sent-log.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

import httpx
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from habitpush.config import settings as default_settings
from habitpush.core.vapid import load_vapid_config
from habitpush.models.notification_log import NotificationLog
from habitpush.services.push_service import (
    DeliveryResult,
    DeliveryStatus,
    PushDeliveryClient,
    SubscriptionTarget,
)
from habitpush.services.scheduler import NotificationEvent, evaluate_user
from habitpush.services.subscription_store import (
    delete_subscriptions_by_endpoint,
    list_subscriber_user_ids,
    list_subscriptions_for_user,
)

logger = logging.getLogger(__name__)

# Errors that mean "this user's rows could not be read", not "the run is broken"
_USER_READ_ERRORS = (SQLAlchemyError, ValueError, TypeError)


@dataclass
class DispatchReport:
    processed: int = 0
    sent: int = 0
    failed: int = 0
    cleaned: int = 0
    skipped_users: int = 0
    suppressed: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class DeliveryJob:
    event: NotificationEvent
    target: SubscriptionTarget


def collect_due_events(db: Session, now: datetime) -> tuple[list[NotificationEvent], int]:
    """Evaluate every subscribed user. Returns (events, skipped user count)."""
    events: list[NotificationEvent] = []
    skipped = 0
    for user_id in list_subscriber_user_ids(db):
        try:
            events.extend(evaluate_user(db, user_id, now))
        except _USER_READ_ERRORS:
            logger.exception("Skipping user %s: notification data could not be read", user_id)
            db.rollback()
            skipped += 1
    return events, skipped


def _log_key(event: NotificationEvent) -> tuple:
    return (event.user_id, event.tag, event.local_date)


def filter_already_sent(db: Session, events: list[NotificationEvent]) -> tuple[list[NotificationEvent], int]:
    """Drop events whose (user, tag, local date) is already in the sent-log."""
    if not events:
        return events, 0
    rows = (
        db.query(NotificationLog.user_id, NotificationLog.tag, NotificationLog.local_date)
        .filter(
            NotificationLog.user_id.in_(sorted({e.user_id for e in events})),
            NotificationLog.local_date.in_(sorted({e.local_date for e in events})),
        )
        .all()
    )
    already_sent = {tuple(row) for row in rows}
    fresh = [e for e in events if _log_key(e) not in already_sent]
    return fresh, len(events) - len(fresh)


def record_sent(db: Session, events: list[NotificationEvent]) -> None:
    """Write sent-log rows. A row written meanwhile by an overlapping run is fine."""
    for event in events:
        db.add(NotificationLog(user_id=event.user_id, tag=event.tag, local_date=event.local_date))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("Sent-log already has %s for user %s on %s", event.tag, event.user_id, event.local_date)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not record %s for user %s in the sent-log", event.tag, event.user_id)


def build_jobs(db: Session, events: list[NotificationEvent], report: DispatchReport) -> list[DeliveryJob]:
    """Pair each event with each of its user's devices. Subscriptions are read once per user."""
    targets: dict[str, list[SubscriptionTarget] | None] = {}
    jobs: list[DeliveryJob] = []
    for event in events:
        if event.user_id not in targets:
            try:
                subs = list_subscriptions_for_user(db, event.user_id)
                targets[event.user_id] = [SubscriptionTarget.from_model(s) for s in subs]
            except SQLAlchemyError:
                logger.exception("Skipping user %s: subscriptions could not be read", event.user_id)
                db.rollback()
                targets[event.user_id] = None
                report.skipped_users += 1
        for target in targets[event.user_id] or []:
            jobs.append(DeliveryJob(event, target))
    return jobs


def deliver_all(
    deliver: Callable[[SubscriptionTarget, NotificationEvent], DeliveryResult],
    jobs: list[DeliveryJob],
    max_workers: int,
) -> list[DeliveryResult]:
    """Run deliveries concurrently. Results come back in job order; no task raises."""

    def run(job: DeliveryJob) -> DeliveryResult:
        try:
            return deliver(job.target, job.event)
        except Exception as exc:
            logger.warning("Delivery task for %s crashed: %s", job.target.endpoint, exc)
            return DeliveryResult(job.target.endpoint, DeliveryStatus.FAILED, error=str(exc))

    if not jobs:
        return []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(jobs))), thread_name_prefix="push") as pool:
        return list(pool.map(run, jobs))


def run_dispatch(
    db: Session,
    settings=default_settings,
    now: datetime | None = None,
    http_client: httpx.Client | None = None,
) -> DispatchReport:
    """Run one scheduling pass and deliver everything that is due."""
    vapid = load_vapid_config(settings)
    now = now or datetime.now(timezone.utc)

    events, skipped = collect_due_events(db, now)
    suppressed = 0
    if settings.PUSH_DEDUP_ENABLED:
        events, suppressed = filter_already_sent(db, events)

    report = DispatchReport(processed=len(events), skipped_users=skipped, suppressed=suppressed)
    jobs = build_jobs(db, events, report)

    with PushDeliveryClient.from_settings(vapid, settings, http_client=http_client) as client:
        results = deliver_all(client.deliver, jobs, settings.PUSH_MAX_WORKERS)

    delivered: dict[tuple, NotificationEvent] = {}
    expired: set[str] = set()
    for job, result in zip(jobs, results):
        if result.status is DeliveryStatus.SENT:
            report.sent += 1
            delivered[_log_key(job.event)] = job.event
        elif result.status is DeliveryStatus.EXPIRED:
            expired.add(result.endpoint)
        else:
            report.failed += 1

    if expired:
        try:
            delete_subscriptions_by_endpoint(db, sorted(expired))
            report.cleaned = len(expired)
            logger.info("Removed %s expired push endpoint(s)", len(expired))
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to remove %s expired push endpoint(s)", len(expired))

    if settings.PUSH_DEDUP_ENABLED and delivered:
        record_sent(db, list(delivered.values()))

    logger.info(
        "Dispatch finished: processed=%s sent=%s failed=%s cleaned=%s skipped_users=%s suppressed=%s",
        report.processed,
        report.sent,
        report.failed,
        report.cleaned,
        report.skipped_users,
        report.suppressed,
    )
    return report
