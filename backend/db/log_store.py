"""Storage primitives for habit logs.

Writes go through ``INSERT ... ON CONFLICT`` on the (user, habit, date) key so
the one-log-per-day rule is enforced by the database rather than by a
read-then-write in application code.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from db.models import HabitLog

LOG_KEY_COLUMNS = ["user_id", "habit_id", "date"]


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite.insert
    if dialect == "postgresql":
        return postgresql.insert
    raise RuntimeError(f"Unsupported database dialect for log upserts: {dialect}")


def find_logs(
    db: Session,
    user_id: int,
    *,
    habit_id: int | None = None,
    since: date | None = None,
    status: str | None = None,
    ascending: bool = False,
) -> list[HabitLog]:
    query = db.query(HabitLog).filter(HabitLog.user_id == user_id)
    if habit_id is not None:
        query = query.filter(HabitLog.habit_id == habit_id)
    if since is not None:
        query = query.filter(HabitLog.date >= since)
    if status is not None:
        query = query.filter(HabitLog.status == status)
    if ascending:
        return query.order_by(HabitLog.date.asc(), HabitLog.id.asc()).all()
    return query.order_by(HabitLog.date.desc(), HabitLog.id.desc()).all()


def find_log(db: Session, user_id: int, habit_id: int, day: date) -> HabitLog | None:
    return (
        db.query(HabitLog)
        .filter(HabitLog.user_id == user_id, HabitLog.habit_id == habit_id, HabitLog.date == day)
        .execution_options(populate_existing=True)
        .first()
    )


def insert_log_once(
    db: Session,
    user_id: int,
    habit_id: int,
    day: date,
    status: str,
    note: str = "",
) -> HabitLog | None:
    """Create the log for ``day`` unless one exists. Returns None when the key was taken."""
    stmt = (
        _insert_for(db)(HabitLog)
        .values(user_id=user_id, habit_id=habit_id, date=day, status=status, note=note)
        .on_conflict_do_nothing(index_elements=LOG_KEY_COLUMNS)
    )
    result = db.execute(stmt)
    if not result.rowcount:
        return None
    return find_log(db, user_id, habit_id, day)


def upsert_log(
    db: Session,
    user_id: int,
    habit_id: int,
    day: date,
    status: str,
    note: str = "",
) -> HabitLog:
    insert = _insert_for(db)
    stmt = (
        insert(HabitLog)
        .values(user_id=user_id, habit_id=habit_id, date=day, status=status, note=note)
        .on_conflict_do_update(
            index_elements=LOG_KEY_COLUMNS,
            set_={"status": status, "note": note},
        )
    )
    db.execute(stmt)
    return find_log(db, user_id, habit_id, day)


def delete_logs(db: Session, user_id: int, habit_id: int | None = None) -> int:
    stmt = delete(HabitLog).where(HabitLog.user_id == user_id)
    if habit_id is not None:
        stmt = stmt.where(HabitLog.habit_id == habit_id)
    result = db.execute(stmt)
    return int(result.rowcount or 0)
