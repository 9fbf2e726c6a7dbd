from sqlalchemy import Column, Date, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from habitpush.database import Base


class NotificationLog(Base):
    """Record of a reminder delivered to at least one of the user's devices.

    One row per (user, tag, local date) so a reminder whose match window spans
    several dispatch runs is sent only once.
    """

    __tablename__ = "notification_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    tag = Column(String(100), nullable=False)
    local_date = Column(Date, nullable=False)
    sent_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("user_id", "tag", "local_date", name="uq_notification_log_user_tag_date"),)
