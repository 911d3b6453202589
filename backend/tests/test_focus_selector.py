from __future__ import annotations

import sys
from datetime import date, datetime, timedelta
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from db.database import Base  # noqa: E402
from db.models import Habit, HabitLog, User  # noqa: E402
from services.focus_service import compute_habit_stats, load_recent_stats, pick_focus_habit  # noqa: E402

TODAY = date(2024, 3, 13)


def _habit(habit_id: int, created_day: int) -> Habit:
    return Habit(
        id=habit_id,
        user_id=1,
        habit_name=f"Habit {habit_id}",
        goal="Goal",
        frequency="daily",
        difficulty="medium",
        end_date=date(2024, 12, 31),
        created_at=datetime(2024, 3, created_day, 9, 0),
    )


def _logs(habit_id: int, *statuses: str, note: str = "") -> list[HabitLog]:
    return [
        HabitLog(user_id=1, habit_id=habit_id, date=TODAY - timedelta(days=i), status=status, note=note)
        for i, status in enumerate(statuses)
    ]


def test_no_habits_means_no_focus():
    assert pick_focus_habit([]) is None


def test_without_any_logs_newest_habit_wins():
    older, newer = _habit(1, 1), _habit(2, 5)
    stats = [compute_habit_stats(older, []), compute_habit_stats(newer, [])]
    assert pick_focus_habit(stats).habit is newer


def test_lowest_completion_rate_wins():
    a, b = _habit(1, 1), _habit(2, 2)
    logs = _logs(1, "done", "skipped") + _logs(2, "done", "skipped", "skipped", "skipped")
    stats = [compute_habit_stats(a, logs), compute_habit_stats(b, logs)]

    picked = pick_focus_habit(stats)
    assert picked.habit is b
    assert picked.completion_rate == 0.25


def test_equal_rate_breaks_tie_on_more_skips():
    a, b = _habit(1, 5), _habit(2, 1)
    logs = _logs(1, "skipped", "skipped", "skipped") + _logs(2, "skipped", "skipped", "skipped", "skipped", "skipped")
    stats = [compute_habit_stats(a, logs), compute_habit_stats(b, logs)]
    assert pick_focus_habit(stats).habit is b


def test_full_tie_breaks_on_newest():
    a, b = _habit(1, 1), _habit(2, 9)
    logs = _logs(1, "done", "skipped") + _logs(2, "done", "skipped")
    stats = [compute_habit_stats(a, logs), compute_habit_stats(b, logs)]
    assert pick_focus_habit(stats).habit is b


def test_stats_keep_three_most_recent_notes():
    habit = _habit(1, 1)
    logs = [
        HabitLog(habit_id=1, date=TODAY, status="done", note="fresh"),
        HabitLog(habit_id=1, date=TODAY - timedelta(days=1), status="skipped", note=""),
        HabitLog(habit_id=1, date=TODAY - timedelta(days=2), status="done", note="steady"),
        HabitLog(habit_id=1, date=TODAY - timedelta(days=3), status="done", note="slow"),
        HabitLog(habit_id=1, date=TODAY - timedelta(days=4), status="done", note="stale"),
        HabitLog(habit_id=2, date=TODAY, status="done", note="other habit"),
    ]
    stats = compute_habit_stats(habit, logs)

    assert (stats.done, stats.skipped, stats.total) == (4, 1, 5)
    assert stats.recent_notes == ["fresh", "steady", "slow"]


def test_load_recent_stats_uses_seven_day_window():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    user = User(email="focus@example.com", password_hash="hash")
    db.add(user)
    db.commit()
    habit = Habit(user_id=user.id, habit_name="Walk", goal="10k steps", end_date=date(2024, 12, 31))
    db.add(habit)
    db.commit()
    for offset, status in ((0, "done"), (7, "skipped"), (8, "skipped")):
        db.add(HabitLog(user_id=user.id, habit_id=habit.id, date=TODAY - timedelta(days=offset), status=status))
    db.commit()

    [stats] = load_recent_stats(db, user, [habit], TODAY)
    assert (stats.done, stats.skipped, stats.total) == (1, 1, 2)
