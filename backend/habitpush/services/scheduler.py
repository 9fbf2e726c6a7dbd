"""
Reminder scheduling.

Decides, for one user at one instant, which reminders are due. Everything
except ``evaluate_user`` is a pure function of its arguments; the server's
local clock and timezone are never consulted.

The dispatcher runs every few minutes, so reminders match a window rather
than an exact minute:
  - briefing: the first 15 minutes of ``briefing_hour``
  - habit:    ±7 minutes around ``preferred_time - advance_minutes``,
              within the same hour
Suppression rows (a finished briefing, an executed habit) are the only guard
here; a second run inside the same window emits the same events again.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from habitpush.config import settings
from habitpush.models.daily_execution import STATUS_EXECUTED, DailyExecution
from habitpush.models.evening_briefing import EveningBriefing
from habitpush.models.habit import Habit
from habitpush.models.profile import Profile

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
BRIEFING_WINDOW_MINUTES = 15
HABIT_WINDOW_MINUTES = 7

BRIEFING_TAG = "briefing-reminder"
BRIEFING_TITLE = "🌙 Briefing Noturno"
BRIEFING_BODY = "Hora de armar o campo para amanhã. Prepare seu ambiente!"
BRIEFING_URL = "/briefing"
HABIT_URL = "/"


@dataclass(frozen=True)
class NotificationPreferences:
    notify_briefing: bool = True
    notify_habits: bool = True
    briefing_hour: int = 21
    advance_minutes: int = 15
    timezone: str | None = None

    @classmethod
    def from_profile(cls, profile: Profile | None) -> "NotificationPreferences":
        """Preferences for a profile row; missing rows and NULL columns use defaults."""
        defaults = cls()
        if profile is None:
            return defaults

        def pick(value, default):
            return default if value is None else value

        return cls(
            notify_briefing=pick(profile.notify_briefing, defaults.notify_briefing),
            notify_habits=pick(profile.notify_habits, defaults.notify_habits),
            briefing_hour=pick(profile.briefing_hour, defaults.briefing_hour),
            advance_minutes=pick(profile.notify_advance_minutes, defaults.advance_minutes),
            timezone=profile.timezone or None,
        )


@dataclass(frozen=True)
class HabitSlot:
    id: str
    name: str
    preferred_time: str | time | None
    micro_action: str | None = None
    days_of_week: frozenset[int] = field(default_factory=frozenset)
    is_active: bool = True

    @classmethod
    def from_model(cls, habit: Habit) -> "HabitSlot":
        return cls(
            id=habit.id,
            name=habit.name,
            preferred_time=habit.preferred_time,
            micro_action=habit.micro_action,
            days_of_week=frozenset(int(d) for d in (habit.days_of_week or [])),
            is_active=bool(habit.is_active),
        )


@dataclass(frozen=True)
class NotificationEvent:
    user_id: str
    title: str
    body: str
    tag: str
    local_date: date
    url: str = "/"


# ── Time helpers ──────────────────────────────────────────────────────────────


def resolve_timezone(tz_name: str | None, default: str | None = None) -> ZoneInfo:
    """ZoneInfo for ``tz_name``; unknown or empty names fall back to the default zone."""
    if tz_name:
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            logger.warning("Unknown timezone %r, using %s", tz_name, default or settings.DEFAULT_TIMEZONE)
    return ZoneInfo(default or settings.DEFAULT_TIMEZONE)


def to_local_time(instant: datetime, tz_name: str | None, default: str | None = None) -> datetime:
    """Convert an instant to the wall-clock time of ``tz_name``. Naive instants are UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(resolve_timezone(tz_name, default))


def local_weekday(local_now: datetime) -> int:
    """Day of week with 0 = Sunday, matching ``habits.days_of_week``."""
    return local_now.isoweekday() % 7


def parse_preferred_time(value: str | time | None) -> tuple[int, int] | None:
    """Parse "HH:MM" / "HH:MM:SS" into (hour, minute). Returns None when unusable."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value.hour, value.minute
    parts = str(value).strip().split(":")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except (IndexError, ValueError):
        return None
    if not (0 <= hour < 24 and 0 <= minute < 60):
        return None
    return hour, minute


def reminder_clock(hour: int, minute: int, advance_minutes: int) -> tuple[int, int]:
    """Local (hour, minute) that is ``advance_minutes`` before hour:minute, wrapped to one day."""
    total = (hour * 60 + minute - advance_minutes) % MINUTES_PER_DAY
    return divmod(total, 60)


# ── Due checks ────────────────────────────────────────────────────────────────


def is_briefing_due(prefs: NotificationPreferences, local_now: datetime) -> bool:
    return (
        prefs.notify_briefing
        and local_now.hour == prefs.briefing_hour
        and local_now.minute < BRIEFING_WINDOW_MINUTES
    )


def is_habit_reminder_due(reminder: tuple[int, int], local_now: datetime) -> bool:
    reminder_hour, reminder_minute = reminder
    return reminder_hour == local_now.hour and abs(reminder_minute - local_now.minute) <= HABIT_WINDOW_MINUTES


def habit_event(user_id: str, habit: HabitSlot, local_date: date) -> NotificationEvent:
    action = habit.micro_action or habit.name
    return NotificationEvent(
        user_id=user_id,
        title=f"⚡ {habit.name}",
        body=f"Micro-ação: {action}. Apenas 2 minutos!",
        tag=f"habit-{habit.id}",
        local_date=local_date,
        url=HABIT_URL,
    )


def briefing_event(user_id: str, local_date: date) -> NotificationEvent:
    return NotificationEvent(
        user_id=user_id,
        title=BRIEFING_TITLE,
        body=BRIEFING_BODY,
        tag=BRIEFING_TAG,
        local_date=local_date,
        url=BRIEFING_URL,
    )


def plan_notifications(
    user_id: str,
    prefs: NotificationPreferences,
    habits: list[HabitSlot],
    local_now: datetime,
    *,
    briefing_done: bool = False,
    executed_habit_ids: set[str] | frozenset[str] = frozenset(),
) -> list[NotificationEvent]:
    """All reminders due for one user at ``local_now``."""
    today = local_now.date()
    events: list[NotificationEvent] = []

    if is_briefing_due(prefs, local_now) and not briefing_done:
        events.append(briefing_event(user_id, today))

    if not prefs.notify_habits:
        return events

    weekday = local_weekday(local_now)
    for habit in habits:
        if not habit.is_active or weekday not in habit.days_of_week:
            continue
        clock = parse_preferred_time(habit.preferred_time)
        if clock is None:
            if habit.preferred_time:
                logger.warning("Habit %s has unparseable preferred_time %r", habit.id, habit.preferred_time)
            continue
        reminder = reminder_clock(*clock, prefs.advance_minutes)
        if is_habit_reminder_due(reminder, local_now) and habit.id not in executed_habit_ids:
            events.append(habit_event(user_id, habit, today))

    return events


# ── Database-backed evaluation ────────────────────────────────────────────────


def load_preferences(db: Session, user_id: str) -> NotificationPreferences:
    return NotificationPreferences.from_profile(db.get(Profile, user_id))


def evaluate_user(db: Session, user_id: str, now: datetime) -> list[NotificationEvent]:
    """Read one user's preferences, habits and suppression rows and plan their reminders.

    Suppression rows are only queried when a reminder could actually fire.
    """
    prefs = load_preferences(db, user_id)
    local_now = to_local_time(now, prefs.timezone)
    today = local_now.date()

    briefing_done = False
    if is_briefing_due(prefs, local_now):
        briefing_done = (
            db.query(EveningBriefing.id)
            .filter(EveningBriefing.user_id == user_id, EveningBriefing.briefing_date == today)
            .first()
            is not None
        )

    habits: list[HabitSlot] = []
    executed: set[str] = set()
    if prefs.notify_habits:
        rows = db.query(Habit).filter(Habit.user_id == user_id, Habit.is_active == True).all()  # noqa: E712
        habits = [HabitSlot.from_model(h) for h in rows]
        if habits:
            executed = {
                habit_id
                for (habit_id,) in db.query(DailyExecution.habit_id).filter(
                    DailyExecution.user_id == user_id,
                    DailyExecution.execution_date == today,
                    DailyExecution.status == STATUS_EXECUTED,
                )
            }

    return plan_notifications(
        user_id,
        prefs,
        habits,
        local_now,
        briefing_done=briefing_done,
        executed_habit_ids=executed,
    )
