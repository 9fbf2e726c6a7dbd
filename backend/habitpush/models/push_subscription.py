from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from habitpush.database import Base


class PushSubscription(Base):
    """One browser/device registration able to receive pushes for a user."""

    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    # Users live in the external auth provider; ids are UUID strings.
    user_id = Column(String(36), nullable=False, index=True)
    endpoint = Column(String(1000), nullable=False)
    p256dh = Column(String(255), nullable=False)  # Client public key (base64url)
    auth = Column(String(255), nullable=False)  # Auth secret (base64url)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (UniqueConstraint("user_id", "endpoint", name="uq_push_subscription_user_endpoint"),)
