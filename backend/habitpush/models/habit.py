import uuid

from sqlalchemy import JSON, Boolean, Column, String, Text

from habitpush.database import Base


class Habit(Base):
    __tablename__ = "habits"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    micro_action = Column(Text, nullable=True)
    # "HH:MM" or "HH:MM:SS" in the user's local time. NULL means no reminder.
    preferred_time = Column(String(8), nullable=True)
    # Weekdays the habit runs on, 0 = Sunday ... 6 = Saturday
    days_of_week = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
