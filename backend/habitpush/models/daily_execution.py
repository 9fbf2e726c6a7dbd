from sqlalchemy import Column, Date, ForeignKey, Integer, String, UniqueConstraint

from habitpush.database import Base

STATUS_PENDING = "pending"
STATUS_EXECUTED = "executed"
STATUS_FAILED = "failed"


class DailyExecution(Base):
    __tablename__ = "daily_executions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    habit_id = Column(String(36), ForeignKey("habits.id", ondelete="CASCADE"), nullable=False)
    execution_date = Column(Date, nullable=False)  # user's local date
    status = Column(String(20), nullable=False, default=STATUS_PENDING)

    __table_args__ = (UniqueConstraint("habit_id", "execution_date", name="uq_daily_execution_habit_date"),)
