"""
Tests for reminder scheduling.

Covers:
  - local time conversion and timezone fallbacks
  - preferred_time parsing and reminder wrap-around at midnight
  - briefing window (first 15 minutes of briefing_hour) and suppression
  - habit window (±7 minutes, same hour), weekday filter, suppression
  - duplicate emission when evaluated twice inside one window
  - evaluate_user reading profiles, habits and suppression rows from the DB
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from habitpush.models.daily_execution import DailyExecution
from habitpush.models.evening_briefing import EveningBriefing
from habitpush.models.habit import Habit
from habitpush.models.profile import Profile
from habitpush.services.scheduler import (
    BRIEFING_TAG,
    HabitSlot,
    NotificationPreferences,
    evaluate_user,
    local_weekday,
    parse_preferred_time,
    plan_notifications,
    reminder_clock,
    to_local_time,
)

SAO_PAULO = ZoneInfo("America/Sao_Paulo")
EVERY_DAY = frozenset(range(7))
HABIT_A = "0b6f3c1e-5d2a-4f7e-9c41-2a8e6d0f1b11"
HABIT_B = "7d2e9a40-1f3b-4c85-8e6a-93b1c0d4e522"


def sp(hour: int, minute: int, day: int = 11) -> datetime:
    """Wall-clock time in São Paulo on 2026-03-<day> (a Wednesday for day=11)."""
    return datetime(2026, 3, day, hour, minute, tzinfo=SAO_PAULO)


def habit(habit_id=HABIT_A, preferred_time="07:00", days=EVERY_DAY, **kwargs) -> HabitSlot:
    return HabitSlot(
        id=habit_id,
        name=kwargs.pop("name", "Beber água"),
        preferred_time=preferred_time,
        micro_action=kwargs.pop("micro_action", "encher o copo"),
        days_of_week=frozenset(days),
        **kwargs,
    )


def tags(events) -> list[str]:
    return [e.tag for e in events]


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


class TestLocalTime:
    def test_utc_instant_converted_to_user_zone(self):
        instant = datetime(2026, 3, 12, 0, 3, tzinfo=timezone.utc)
        local = to_local_time(instant, "America/Sao_Paulo")
        assert (local.date(), local.hour, local.minute) == (date(2026, 3, 11), 21, 3)

    def test_naive_instant_is_treated_as_utc(self):
        local = to_local_time(datetime(2026, 3, 12, 0, 3), "Asia/Tokyo")
        assert (local.hour, local.minute) == (9, 3)

    def test_missing_timezone_uses_default(self):
        instant = datetime(2026, 3, 12, 0, 3, tzinfo=timezone.utc)
        assert to_local_time(instant, None).hour == 21

    def test_unknown_timezone_falls_back_to_default(self):
        instant = datetime(2026, 3, 12, 0, 3, tzinfo=timezone.utc)
        assert to_local_time(instant, "Mars/Olympus_Mons").hour == 21

    @pytest.mark.parametrize("name", ["America", "Etc"])
    def test_zone_directory_names_fall_back_to_default(self, name):
        instant = datetime(2026, 3, 12, 0, 3, tzinfo=timezone.utc)
        assert to_local_time(instant, name).hour == 21

    def test_explicit_default_zone(self):
        instant = datetime(2026, 3, 12, 0, 3, tzinfo=timezone.utc)
        assert to_local_time(instant, "", default="Europe/Lisbon").hour == 0

    def test_weekday_starts_on_sunday(self):
        assert local_weekday(sp(10, 0, day=1)) == 0  # 2026-03-01 is a Sunday
        assert local_weekday(sp(10, 0, day=7)) == 6
        assert local_weekday(sp(10, 0, day=11)) == 3


class TestPreferredTime:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("07:00", (7, 0)),
            ("07:30:00", (7, 30)),
            ("00:05", (0, 5)),
            (time(6, 15), (6, 15)),
            (None, None),
            ("", None),
            ("25:00", None),
            ("07:61", None),
            ("morning", None),
            ("7", None),
        ],
    )
    def test_parse(self, value, expected):
        assert parse_preferred_time(value) == expected


class TestReminderClock:
    def test_simple_subtraction(self):
        assert reminder_clock(7, 0, 15) == (6, 45)

    def test_wraps_to_previous_day(self):
        assert reminder_clock(0, 5, 15) == (23, 50)

    def test_negative_advance_wraps_forward(self):
        assert reminder_clock(23, 50, -15) == (0, 5)

    def test_advance_longer_than_a_day(self):
        assert reminder_clock(0, 0, 24 * 60 + 30) == (23, 30)

    def test_always_in_range(self):
        for advance in range(-3000, 3000, 7):
            for hour, minute in [(0, 0), (0, 5), (12, 59), (23, 59)]:
                h, m = reminder_clock(hour, minute, advance)
                assert 0 <= h <= 23
                assert 0 <= m <= 59


# ---------------------------------------------------------------------------
# Briefing
# ---------------------------------------------------------------------------


class TestBriefing:
    def test_fires_in_first_fifteen_minutes(self):
        prefs = NotificationPreferences(briefing_hour=21)
        for minute in (0, 3, 14):
            events = plan_notifications("u1", prefs, [], sp(21, minute))
            assert tags(events) == [BRIEFING_TAG]

    @pytest.mark.parametrize("hour, minute", [(21, 15), (21, 30), (20, 59), (22, 0)])
    def test_does_not_fire_outside_window(self, hour, minute):
        prefs = NotificationPreferences(briefing_hour=21)
        assert plan_notifications("u1", prefs, [], sp(hour, minute)) == []

    def test_never_fires_when_disabled(self):
        prefs = NotificationPreferences(notify_briefing=False, briefing_hour=21)
        start = sp(0, 0)
        for step in range(0, 24 * 60, 1):
            local_now = start + timedelta(minutes=step)
            assert BRIEFING_TAG not in tags(plan_notifications("u1", prefs, [], local_now))

    def test_suppressed_when_briefing_done(self):
        prefs = NotificationPreferences(briefing_hour=21)
        assert plan_notifications("u1", prefs, [], sp(21, 3), briefing_done=True) == []

    def test_custom_hour(self):
        prefs = NotificationPreferences(briefing_hour=0)
        assert tags(plan_notifications("u1", prefs, [], sp(0, 10))) == [BRIEFING_TAG]

    def test_scenario_sao_paulo_evening(self):
        """21:03 local, briefing_hour 21, no briefing row → exactly one event."""
        prefs = NotificationPreferences(briefing_hour=21, timezone="America/Sao_Paulo")
        local_now = to_local_time(datetime(2026, 3, 12, 0, 3, tzinfo=timezone.utc), prefs.timezone)
        events = plan_notifications("user-sp", prefs, [], local_now)
        assert len(events) == 1
        event = events[0]
        assert event.user_id == "user-sp"
        assert event.tag == BRIEFING_TAG
        assert event.local_date == date(2026, 3, 11)
        assert event.url == "/briefing"


# ---------------------------------------------------------------------------
# Habits
# ---------------------------------------------------------------------------


class TestHabitReminders:
    prefs = NotificationPreferences(notify_briefing=False, advance_minutes=15)

    @pytest.mark.parametrize("minute", [38, 45, 46, 52])
    def test_fires_within_seven_minutes(self, minute):
        events = plan_notifications("u1", self.prefs, [habit()], sp(6, minute))
        assert tags(events) == [f"habit-{HABIT_A}"]

    @pytest.mark.parametrize("hour, minute", [(6, 37), (6, 53), (7, 0), (7, 10)])
    def test_does_not_fire_outside_window(self, hour, minute):
        assert plan_notifications("u1", self.prefs, [habit()], sp(hour, minute)) == []

    def test_window_does_not_cross_the_hour(self):
        # reminder at 06:58; 07:02 is four minutes later but in another hour
        h = habit(preferred_time="07:13")
        assert tags(plan_notifications("u1", self.prefs, [h], sp(6, 58))) == [f"habit-{HABIT_A}"]
        assert plan_notifications("u1", self.prefs, [h], sp(7, 2)) == []

    def test_wraps_across_midnight(self):
        h = habit(preferred_time="00:05")
        events = plan_notifications("u1", self.prefs, [h], sp(23, 50, day=10))
        assert tags(events) == [f"habit-{HABIT_A}"]
        assert events[0].local_date == date(2026, 3, 10)

    def test_event_text(self):
        events = plan_notifications("u1", self.prefs, [habit(name="Alongar", micro_action="tocar os pés")], sp(6, 45))
        assert events[0].title == "⚡ Alongar"
        assert "tocar os pés" in events[0].body

    def test_missing_micro_action_uses_name(self):
        events = plan_notifications("u1", self.prefs, [habit(name="Ler", micro_action=None)], sp(6, 45))
        assert "Ler" in events[0].body

    def test_habit_without_preferred_time_is_skipped(self):
        assert plan_notifications("u1", self.prefs, [habit(preferred_time=None)], sp(6, 45)) == []

    def test_unparseable_preferred_time_is_skipped(self):
        assert plan_notifications("u1", self.prefs, [habit(preferred_time="soon")], sp(6, 45)) == []

    def test_not_scheduled_today(self):
        # 2026-03-11 is a Wednesday (3)
        h = habit(days={0, 1, 2, 4, 5, 6})
        assert plan_notifications("u1", self.prefs, [h], sp(6, 45)) == []

    def test_inactive_habit(self):
        assert plan_notifications("u1", self.prefs, [habit(is_active=False)], sp(6, 45)) == []

    def test_executed_habit_is_suppressed(self):
        habits = [habit(HABIT_A), habit(HABIT_B)]
        events = plan_notifications("u1", self.prefs, habits, sp(6, 45), executed_habit_ids={HABIT_A})
        assert tags(events) == [f"habit-{HABIT_B}"]

    def test_habits_disabled(self):
        prefs = NotificationPreferences(notify_briefing=False, notify_habits=False)
        assert plan_notifications("u1", prefs, [habit()], sp(6, 45)) == []

    def test_two_runs_in_one_window_both_emit(self):
        """The engine has no memory: the sent-log in dispatch is what stops the repeat."""
        first = plan_notifications("u1", self.prefs, [habit()], sp(6, 43))
        second = plan_notifications("u1", self.prefs, [habit()], sp(6, 48))
        assert tags(first) == tags(second) == [f"habit-{HABIT_A}"]


class TestPreferencesFromProfile:
    def test_missing_profile_uses_defaults(self):
        prefs = NotificationPreferences.from_profile(None)
        assert prefs == NotificationPreferences()
        assert (prefs.briefing_hour, prefs.advance_minutes) == (21, 15)
        assert prefs.notify_briefing and prefs.notify_habits

    def test_null_columns_use_defaults(self):
        prefs = NotificationPreferences.from_profile(Profile(user_id="u1", briefing_hour=None, notify_habits=False))
        assert prefs.briefing_hour == 21
        assert prefs.notify_habits is False
        assert prefs.timezone is None


# ---------------------------------------------------------------------------
# evaluate_user (database)
# ---------------------------------------------------------------------------


class TestEvaluateUser:
    def _habit(self, db, user_id="u1", preferred_time="07:00", days=None):
        row = Habit(
            user_id=user_id,
            name="Meditar",
            micro_action="respirar fundo",
            preferred_time=preferred_time,
            days_of_week=list(range(7)) if days is None else days,
            is_active=True,
        )
        db.add(row)
        db.commit()
        return row

    def test_defaults_without_profile(self, db):
        # 00:03 UTC is 21:03 in the default zone
        events = evaluate_user(db, "u1", datetime(2026, 3, 12, 0, 3, tzinfo=timezone.utc))
        assert tags(events) == [BRIEFING_TAG]

    def test_profile_timezone_is_used(self, db):
        db.add(Profile(user_id="u1", timezone="Asia/Tokyo", briefing_hour=9))
        db.commit()
        events = evaluate_user(db, "u1", datetime(2026, 3, 12, 0, 3, tzinfo=timezone.utc))
        assert tags(events) == [BRIEFING_TAG]

    def test_profile_with_zone_directory_uses_default(self, db):
        db.add(Profile(user_id="u1", timezone="America"))
        db.commit()
        events = evaluate_user(db, "u1", datetime(2026, 3, 12, 0, 3, tzinfo=timezone.utc))
        assert tags(events) == [BRIEFING_TAG]
        assert events[0].local_date == date(2026, 3, 11)

    def test_briefing_row_suppresses(self, db):
        db.add(EveningBriefing(user_id="u1", briefing_date=date(2026, 3, 11)))
        db.commit()
        assert evaluate_user(db, "u1", sp(21, 3)) == []

    def test_briefing_row_for_other_day_does_not_suppress(self, db):
        db.add(EveningBriefing(user_id="u1", briefing_date=date(2026, 3, 10)))
        db.commit()
        assert tags(evaluate_user(db, "u1", sp(21, 3))) == [BRIEFING_TAG]

    def test_habit_due(self, db):
        row = self._habit(db)
        assert tags(evaluate_user(db, "u1", sp(6, 45))) == [f"habit-{row.id}"]

    def test_habit_tag_carries_uuid(self, db):
        row = self._habit(db)
        assert isinstance(row.id, str) and len(row.id) == 36
        events = evaluate_user(db, "u1", sp(6, 45))
        assert events[0].tag == f"habit-{row.id}"

    def test_executed_row_with_uuid_suppresses_only_its_habit(self, db):
        done = self._habit(db)
        open_ = self._habit(db)
        db.add(DailyExecution(user_id="u1", habit_id=done.id, execution_date=date(2026, 3, 11), status="executed"))
        db.commit()
        assert tags(evaluate_user(db, "u1", sp(6, 45))) == [f"habit-{open_.id}"]

    def test_executed_row_suppresses(self, db):
        row = self._habit(db)
        db.add(DailyExecution(user_id="u1", habit_id=row.id, execution_date=date(2026, 3, 11), status="executed"))
        db.commit()
        assert evaluate_user(db, "u1", sp(6, 45)) == []

    def test_pending_row_does_not_suppress(self, db):
        row = self._habit(db)
        db.add(DailyExecution(user_id="u1", habit_id=row.id, execution_date=date(2026, 3, 11), status="pending"))
        db.commit()
        assert tags(evaluate_user(db, "u1", sp(6, 45))) == [f"habit-{row.id}"]

    def test_other_users_habits_ignored(self, db):
        self._habit(db, user_id="someone-else")
        assert evaluate_user(db, "u1", sp(6, 45)) == []

    def test_advance_minutes_from_profile(self, db):
        db.add(Profile(user_id="u1", notify_advance_minutes=30))
        db.commit()
        row = self._habit(db)
        assert evaluate_user(db, "u1", sp(6, 45)) == []
        assert tags(evaluate_user(db, "u1", sp(6, 30))) == [f"habit-{row.id}"]

