"""Streak insurance: one free completion per habit per month, renewable once.

The monthly state is never stored. It is derived on every call from the two
insurance dates on the habit and today's date, so a new month starts with
insurance available without any background job.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from db.log_store import find_logs, upsert_log
from db.models import Habit, HabitLog, User
from services.errors import ConflictError, ValidationError
from services.habit_service import ensure_habit_active, get_owned_habit
from utils.datetime_utils import first_of_next_month, is_same_month, start_of_week

logger = logging.getLogger(__name__)

INSURANCE_NOTE = "Streak insurance"
RENEWED_INSURANCE_NOTE = "Streak insurance (renewed)"


class InsuranceState(str, enum.Enum):
    UNUSED = "unused"
    USED_THIS_MONTH = "used_this_month"
    RENEWED_THIS_MONTH = "renewed_this_month"


@dataclass
class InsuranceResult:
    log: HabitLog
    habit: Habit


def derive_insurance_state(last_used_at: date | None, renewed_at: date | None, today: date) -> InsuranceState:
    if not is_same_month(last_used_at, today):
        return InsuranceState.UNUSED
    if is_same_month(renewed_at, today):
        return InsuranceState.RENEWED_THIS_MONTH
    return InsuranceState.USED_THIS_MONTH


def habit_insurance_state(habit: Habit, today: date) -> InsuranceState:
    return derive_insurance_state(habit.insurance_last_used_at, habit.insurance_renewed_at, today)


def _ensure_week_not_completed(db: Session, user: User, habit: Habit, today: date) -> None:
    # Weekly habits only: a done log anywhere in the current Monday-based week blocks insurance.
    if habit.frequency != "weekly":
        return
    done_this_week = find_logs(db, user.id, habit_id=habit.id, since=start_of_week(today), status="done")
    if done_this_week:
        raise ConflictError("Habit already completed this week", code="WEEK_ALREADY_COMPLETED")


def use_insurance(db: Session, user: User, habit_id, today: date) -> InsuranceResult:
    habit = get_owned_habit(db, user, habit_id)
    ensure_habit_active(habit, today)

    state = habit_insurance_state(habit, today)
    if state != InsuranceState.UNUSED:
        raise ConflictError(
            "Streak insurance already used this month for this habit",
            code="INSURANCE_USED",
            next_renew_date=first_of_next_month(today),
            can_renew_now=state == InsuranceState.USED_THIS_MONTH,
        )

    _ensure_week_not_completed(db, user, habit, today)

    log = upsert_log(db, user.id, habit.id, today, "done", INSURANCE_NOTE)
    habit.insurance_last_used_at = today
    db.commit()
    db.refresh(habit)
    logger.info("Streak insurance applied for habit %s on %s", habit.id, today.isoformat())
    return InsuranceResult(log=log, habit=habit)


def renew_insurance(db: Session, user: User, habit_id, today: date) -> InsuranceResult:
    habit = get_owned_habit(db, user, habit_id)
    ensure_habit_active(habit, today)

    state = habit_insurance_state(habit, today)
    if state == InsuranceState.UNUSED:
        raise ValidationError("Streak insurance has not been used this month yet")
    if state == InsuranceState.RENEWED_THIS_MONTH:
        raise ConflictError(
            "Streak insurance already renewed this month for this habit",
            code="INSURANCE_RENEWED",
            next_renew_date=first_of_next_month(today),
        )

    # The log written by the first use counts here too, so renewing a weekly
    # habit within the same week as its first use is rejected.
    _ensure_week_not_completed(db, user, habit, today)

    log = upsert_log(db, user.id, habit.id, today, "done", RENEWED_INSURANCE_NOTE)
    habit.insurance_last_used_at = today
    habit.insurance_renewed_at = today
    db.commit()
    db.refresh(habit)
    logger.info("Streak insurance renewed for habit %s on %s", habit.id, today.isoformat())
    return InsuranceResult(log=log, habit=habit)
