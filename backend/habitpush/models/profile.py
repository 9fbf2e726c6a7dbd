from sqlalchemy import Boolean, Column, Integer, String

from habitpush.database import Base


class Profile(Base):
    """Per-user notification preferences.

    Rows are owned by the app's CRUD layer. Any NULL column (or a missing row)
    falls back to the defaults in ``habitpush.services.scheduler``.
    """

    __tablename__ = "profiles"

    user_id = Column(String(36), primary_key=True)
    notify_briefing = Column(Boolean, nullable=True, default=True)
    notify_habits = Column(Boolean, nullable=True, default=True)
    briefing_hour = Column(Integer, nullable=True, default=21)  # 0-23, local time
    notify_advance_minutes = Column(Integer, nullable=True, default=15)
    timezone = Column(String(64), nullable=True)  # IANA identifier, e.g. "America/Sao_Paulo"
