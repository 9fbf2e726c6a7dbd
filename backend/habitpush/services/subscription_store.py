"""Reads and writes of the ``push_subscriptions`` table."""

import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session

from habitpush.models.push_subscription import PushSubscription

logger = logging.getLogger(__name__)


def list_subscriber_user_ids(db: Session) -> list[str]:
    """Distinct users with at least one subscription."""
    rows = db.query(PushSubscription.user_id).distinct().order_by(PushSubscription.user_id).all()
    return [user_id for (user_id,) in rows]


def list_subscriptions_for_user(db: Session, user_id: str) -> list[PushSubscription]:
    return db.query(PushSubscription).filter(PushSubscription.user_id == user_id).order_by(PushSubscription.id).all()


def delete_subscriptions_by_endpoint(db: Session, endpoints: Iterable[str]) -> int:
    """Remove every subscription on the given endpoints. Already-deleted rows are a no-op."""
    unique = sorted(set(endpoints))
    if not unique:
        return 0
    deleted = (
        db.query(PushSubscription)
        .filter(PushSubscription.endpoint.in_(unique))
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


def upsert_subscription(db: Session, user_id: str, endpoint: str, p256dh: str, auth: str) -> PushSubscription:
    """Create a subscription, or refresh the keys when the browser re-subscribes."""
    existing = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
        .first()
    )
    if existing:
        existing.p256dh = p256dh
        existing.auth = auth
        sub = existing
    else:
        sub = PushSubscription(user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth)
        db.add(sub)
    db.commit()
    db.refresh(sub)
    return sub


def delete_subscription(db: Session, user_id: str, endpoint: str) -> int:
    deleted = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
