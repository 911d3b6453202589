from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable

from sqlalchemy.orm import Session

from config import settings
from db.log_store import find_logs
from db.models import Habit, HabitLog, User
from utils.datetime_utils import window_start

MAX_RECENT_NOTES = 3


@dataclass
class HabitStats:
    habit: Habit
    done: int = 0
    skipped: int = 0
    total: int = 0
    completion_rate: float = 0.0
    recent_notes: list[str] = field(default_factory=list)


def compute_habit_stats(habit: Habit, logs: Iterable[HabitLog]) -> HabitStats:
    """Summarize ``logs`` for one habit. Logs are expected newest first."""
    habit_logs = [log for log in logs if log.habit_id == habit.id]
    done = sum(1 for log in habit_logs if log.status == "done")
    skipped = sum(1 for log in habit_logs if log.status == "skipped")
    total = len(habit_logs)
    notes = [log.note for log in habit_logs if log.note][:MAX_RECENT_NOTES]
    return HabitStats(
        habit=habit,
        done=done,
        skipped=skipped,
        total=total,
        completion_rate=(done / total) if total else 0.0,
        recent_notes=notes,
    )


def _created_ts(stats: HabitStats) -> float:
    created = stats.habit.created_at
    return created.timestamp() if isinstance(created, datetime) else 0.0


def pick_focus_habit(stats: list[HabitStats]) -> HabitStats | None:
    """Pick the habit most in need of attention.

    Lowest completion rate wins, then most skips, then newest. With no
    activity on any habit the newest habit is chosen.
    """
    if not stats:
        return None
    if all(s.total == 0 for s in stats):
        return max(stats, key=_created_ts)
    return min(stats, key=lambda s: (s.completion_rate, -s.skipped, -_created_ts(s)))


def load_recent_stats(
    db: Session,
    user: User,
    habits: list[Habit],
    today: date,
    days: int | None = None,
) -> list[HabitStats]:
    window = days or settings.FOCUS_WINDOW_DAYS
    habit_id = habits[0].id if len(habits) == 1 else None
    logs = find_logs(db, user.id, habit_id=habit_id, since=window_start(today, window))
    return [compute_habit_stats(habit, logs) for habit in habits]
