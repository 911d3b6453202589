from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from db.log_store import delete_logs, find_log, find_logs, insert_log_once
from db.models import HABIT_DIFFICULTIES, HABIT_FREQUENCIES, LOG_STATUSES, Habit, HabitLog, User
from services.errors import ConflictError, ForbiddenError, NotFoundError, StorageError, ValidationError
from utils.datetime_utils import normalize_calendar_day, window_start

logger = logging.getLogger(__name__)


def _coerce_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def coerce_days(value: Any, default: int | None = None) -> int:
    """Parse a trailing-window length, falling back to ``default`` for junk or non-positive values."""
    default = default or settings.HISTORY_DEFAULT_DAYS
    try:
        days = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return days if days > 0 else default


def get_owned_habit(db: Session, user: User, habit_id: Any) -> Habit:
    parsed = _coerce_id(habit_id)
    habit = None
    if parsed is not None:
        habit = db.query(Habit).filter(Habit.id == parsed, Habit.user_id == user.id).first()
    if not habit:
        raise NotFoundError("Habit not found")
    return habit


def ensure_habit_active(habit: Habit, day: date) -> None:
    if habit.end_date and day > habit.end_date:
        raise ForbiddenError(f"This habit ended on {habit.end_date.isoformat()}")


def create_habit(
    db: Session,
    user: User,
    *,
    habit_name: str | None,
    goal: str | None,
    end_date: Any,
    today: date,
    frequency: str | None = None,
    difficulty: str | None = None,
) -> Habit:
    name = (habit_name or "").strip()
    goal_text = (goal or "").strip()
    if not name or not goal_text:
        raise ValidationError("habitName and goal are required")
    if end_date is None or (isinstance(end_date, str) and not end_date.strip()):
        raise ValidationError("endDate is required")

    end = normalize_calendar_day(end_date)
    if end is None:
        raise ValidationError("Invalid endDate")
    if end < today:
        raise ValidationError("endDate must be today or later")

    frequency = frequency or "daily"
    difficulty = difficulty or "medium"
    if frequency not in HABIT_FREQUENCIES:
        raise ValidationError(f"frequency must be one of {list(HABIT_FREQUENCIES)}")
    if difficulty not in HABIT_DIFFICULTIES:
        raise ValidationError(f"difficulty must be one of {list(HABIT_DIFFICULTIES)}")

    habit = Habit(
        user_id=user.id,
        habit_name=name,
        goal=goal_text,
        frequency=frequency,
        difficulty=difficulty,
        end_date=end,
        insurance_last_used_at=None,
        insurance_renewed_at=None,
    )
    db.add(habit)
    db.commit()
    db.refresh(habit)
    return habit


def list_habits(db: Session, user: User) -> list[Habit]:
    return (
        db.query(Habit)
        .filter(Habit.user_id == user.id)
        .order_by(Habit.created_at.desc(), Habit.id.desc())
        .all()
    )


def log_completion(
    db: Session,
    user: User,
    *,
    habit_id: Any,
    log_date: Any,
    status: str | None,
    note: str | None = None,
) -> HabitLog:
    if habit_id in (None, "") or log_date in (None, "") or not status:
        raise ValidationError("habitId, date, and status are required")

    habit = get_owned_habit(db, user, habit_id)

    day = normalize_calendar_day(log_date)
    if day is None:
        raise ValidationError("Invalid date")
    if status not in LOG_STATUSES:
        raise ValidationError(f"status must be one of {list(LOG_STATUSES)}")

    already_logged = ConflictError(
        "Already logged for this date",
        code="ALREADY_LOGGED",
        next_available_date=day + timedelta(days=1),
    )
    if find_log(db, user.id, habit.id, day) is not None:
        raise already_logged

    ensure_habit_active(habit, day)

    try:
        log = insert_log_once(db, user.id, habit.id, day, status, note or "")
    except IntegrityError:
        db.rollback()
        raise already_logged
    if log is None:
        db.rollback()
        raise already_logged
    db.commit()
    return log


def get_history(
    db: Session,
    user: User,
    *,
    today: date,
    habit_id: Any = None,
    days: Any = None,
) -> tuple[int, list[HabitLog]]:
    parsed_id = None
    if habit_id not in (None, ""):
        parsed_id = _coerce_id(habit_id)
        if parsed_id is None:
            raise ValidationError("Invalid habitId")
    window = coerce_days(days)
    logs = find_logs(db, user.id, habit_id=parsed_id, since=window_start(today, window))
    return window, logs


def delete_habit(db: Session, user: User, habit_id: Any) -> None:
    habit = get_owned_habit(db, user, habit_id)
    try:
        delete_logs(db, user.id, habit.id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to delete logs for habit {habit.id}: {e}")
        raise StorageError("Server error deleting habit") from e
    db.delete(habit)
    db.commit()


def delete_account_data(db: Session, user: User) -> None:
    """Remove every log and habit owned by ``user``, then the user row."""
    try:
        delete_logs(db, user.id)
        db.query(Habit).filter(Habit.user_id == user.id).delete(synchronize_session=False)
        db.delete(user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to delete account data for user {user.id}: {e}")
        raise StorageError("Server error deleting account") from e
