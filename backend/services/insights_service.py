from __future__ import annotations

import math
from datetime import date
from typing import Iterable

from sqlalchemy.orm import Session

from db.log_store import find_logs
from db.models import Habit, HabitLog, User
from services.habit_service import coerce_days
from utils.datetime_utils import window_start

NO_TOP_HABIT = "none"


def _percent(done: int, total: int) -> int:
    if total <= 0:
        return 0
    # Halves round up, e.g. 1 of 8 -> 13.
    return int(math.floor(done / total * 100 + 0.5))


def summarize_logs(logs: Iterable[HabitLog], habit_names: dict[int, str]) -> dict:
    rows = list(logs)
    total = len(rows)
    done = sum(1 for log in rows if log.status == "done")
    skipped = sum(1 for log in rows if log.status == "skipped")

    done_by_name: dict[str, int] = {}
    for log in rows:
        if log.status != "done":
            continue
        name = habit_names.get(log.habit_id)
        if not name:
            continue
        done_by_name[name] = done_by_name.get(name, 0) + 1

    top_habit_name = NO_TOP_HABIT
    best = 0
    for name, count in done_by_name.items():
        if count > best:
            top_habit_name, best = name, count

    return {
        "completion_rate": _percent(done, total),
        "active_days": len({log.date for log in rows}),
        "top_habit_name": top_habit_name,
        "totals": {"total": total, "done": done, "skipped": skipped},
    }


def get_insights(db: Session, user: User, today: date, days=None) -> dict:
    window = coerce_days(days)
    start = window_start(today, window)
    # Oldest first, so a tie for top habit goes to the habit logged earliest.
    logs = find_logs(db, user.id, since=start, ascending=True)
    habit_names = {
        habit_id: name
        for habit_id, name in db.query(Habit.id, Habit.habit_name).filter(Habit.user_id == user.id).all()
    }
    summary = summarize_logs(logs, habit_names)
    return {"period": {"days": window, "start_date": start.isoformat()}, **summary}
