from sqlalchemy import Column, Date, Integer, String, UniqueConstraint

from habitpush.database import Base


class EveningBriefing(Base):
    """A completed nightly briefing. Existence alone suppresses the reminder."""

    __tablename__ = "evening_briefings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    briefing_date = Column(Date, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "briefing_date", name="uq_evening_briefing_user_date"),)
