from __future__ import annotations

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from db.database import Base  # noqa: E402
from db.models import Habit, HabitLog, User  # noqa: E402
from services.insights_service import NO_TOP_HABIT, get_insights, summarize_logs  # noqa: E402

TODAY = date(2024, 3, 13)


def _log(habit_id: int, days_ago: int, status: str = "done") -> HabitLog:
    return HabitLog(user_id=1, habit_id=habit_id, date=TODAY - timedelta(days=days_ago), status=status)


def test_empty_period_reports_zero_and_no_top_habit():
    summary = summarize_logs([], {})
    assert summary["completion_rate"] == 0
    assert summary["active_days"] == 0
    assert summary["top_habit_name"] == NO_TOP_HABIT
    assert summary["totals"] == {"total": 0, "done": 0, "skipped": 0}


def test_seven_of_ten_done_is_seventy_percent():
    logs = [_log(1, i) for i in range(7)] + [_log(1, i, "skipped") for i in range(7, 10)]
    summary = summarize_logs(logs, {1: "Read"})
    assert summary["completion_rate"] == 70
    assert summary["totals"] == {"total": 10, "done": 7, "skipped": 3}


@pytest.mark.parametrize(
    "done, total, expected",
    [(1, 8, 13), (2, 3, 67), (1, 3, 33), (1, 200, 1), (0, 4, 0), (4, 4, 100)],
)
def test_completion_rate_rounds_halves_up(done, total, expected):
    logs = [_log(1, i) for i in range(done)] + [_log(1, i, "skipped") for i in range(done, total)]
    assert summarize_logs(logs, {1: "Read"})["completion_rate"] == expected


def test_active_days_counts_distinct_dates():
    logs = [_log(1, 0), _log(2, 0, "skipped"), _log(1, 1), _log(2, 3)]
    assert summarize_logs(logs, {1: "Read", 2: "Walk"})["active_days"] == 3


def test_top_habit_counts_done_only_and_first_seen_wins_ties():
    logs = [_log(2, 0), _log(1, 0), _log(1, 1), _log(2, 1), _log(3, 0, "skipped"), _log(3, 1, "skipped")]
    assert summarize_logs(logs, {1: "Read", 2: "Walk", 3: "Swim"})["top_habit_name"] == "Walk"


def test_top_habit_ignores_logs_of_deleted_habits():
    logs = [_log(9, 0), _log(9, 1), _log(1, 0)]
    assert summarize_logs(logs, {1: "Read"})["top_habit_name"] == "Read"


def test_get_insights_window_includes_boundary_day():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    user = User(email="insights@example.com", password_hash="hash")
    db.add(user)
    db.commit()
    habit = Habit(user_id=user.id, habit_name="Read", goal="A book a month", end_date=date(2024, 12, 31))
    db.add(habit)
    db.commit()
    for days_ago in (0, 30, 31):
        db.add(HabitLog(user_id=user.id, habit_id=habit.id, date=TODAY - timedelta(days=days_ago), status="done"))
    db.commit()

    insights = get_insights(db, user, TODAY)
    assert insights["period"] == {"days": 30, "start_date": "2024-02-12"}
    assert insights["totals"]["total"] == 2
    assert insights["top_habit_name"] == "Read"

    insights = get_insights(db, user, TODAY, days="7")
    assert insights["period"]["days"] == 7
    assert insights["completion_rate"] == 100
    assert insights["active_days"] == 1


def test_get_insights_tie_goes_to_habit_logged_first():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    user = User(email="ties@example.com", password_hash="hash")
    db.add(user)
    db.commit()
    alpha = Habit(user_id=user.id, habit_name="Alpha", goal="a", end_date=date(2024, 12, 31))
    beta = Habit(user_id=user.id, habit_name="Beta", goal="b", end_date=date(2024, 12, 31))
    db.add_all([alpha, beta])
    db.commit()
    db.add(HabitLog(user_id=user.id, habit_id=alpha.id, date=date(2024, 3, 1), status="done"))
    db.add(HabitLog(user_id=user.id, habit_id=beta.id, date=date(2024, 3, 2), status="done"))
    db.commit()

    assert get_insights(db, user, TODAY)["top_habit_name"] == "Alpha"
