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
from db.models import HabitLog, User  # noqa: E402
from services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError  # noqa: E402
from services.habit_service import create_habit, log_completion  # noqa: E402
from services.insurance_service import (  # noqa: E402
    INSURANCE_NOTE,
    RENEWED_INSURANCE_NOTE,
    InsuranceState,
    derive_insurance_state,
    habit_insurance_state,
    renew_insurance,
    use_insurance,
)

WEDNESDAY = date(2024, 3, 13)


def _new_db():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


def _new_user(db, email: str = "insured@example.com") -> User:
    user = User(email=email, password_hash="hash", name="Tester")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _new_habit(db, user, frequency="daily", end_date="2024-12-31"):
    return create_habit(
        db,
        user,
        habit_name="Stretch",
        goal="Touch my toes",
        end_date=end_date,
        today=date(2024, 3, 1),
        frequency=frequency,
    )


def test_derive_state_is_relative_to_today():
    assert derive_insurance_state(None, None, WEDNESDAY) == InsuranceState.UNUSED
    assert derive_insurance_state(date(2024, 3, 2), None, WEDNESDAY) == InsuranceState.USED_THIS_MONTH
    assert derive_insurance_state(date(2024, 3, 2), date(2024, 3, 9), WEDNESDAY) == InsuranceState.RENEWED_THIS_MONTH
    assert derive_insurance_state(date(2024, 3, 2), date(2024, 2, 9), WEDNESDAY) == InsuranceState.USED_THIS_MONTH
    assert derive_insurance_state(date(2023, 3, 2), date(2023, 3, 9), WEDNESDAY) == InsuranceState.UNUSED


def test_state_resets_across_year_boundary():
    assert derive_insurance_state(date(2024, 12, 31), date(2024, 12, 31), date(2024, 12, 31)) == (
        InsuranceState.RENEWED_THIS_MONTH
    )
    assert derive_insurance_state(date(2024, 12, 31), date(2024, 12, 31), date(2025, 1, 1)) == InsuranceState.UNUSED


def test_use_renew_cycle_for_daily_habit():
    db = _new_db()
    user = _new_user(db)
    habit = _new_habit(db, user)

    result = use_insurance(db, user, habit.id, WEDNESDAY)
    assert result.log.status == "done"
    assert result.log.note == INSURANCE_NOTE
    assert result.log.date == WEDNESDAY
    assert result.habit.insurance_last_used_at == WEDNESDAY
    assert habit_insurance_state(result.habit, WEDNESDAY) == InsuranceState.USED_THIS_MONTH

    with pytest.raises(ConflictError) as exc:
        use_insurance(db, user, habit.id, WEDNESDAY + timedelta(days=1))
    assert exc.value.code == "INSURANCE_USED"
    assert exc.value.can_renew_now is True
    assert exc.value.next_renew_date == date(2024, 4, 1)

    renewed = renew_insurance(db, user, habit.id, WEDNESDAY)
    assert renewed.log.note == RENEWED_INSURANCE_NOTE
    assert renewed.habit.insurance_renewed_at == WEDNESDAY
    assert habit_insurance_state(renewed.habit, WEDNESDAY) == InsuranceState.RENEWED_THIS_MONTH
    # Same-day renew overwrote the first insurance log instead of adding one.
    assert db.query(HabitLog).count() == 1

    with pytest.raises(ConflictError) as exc:
        renew_insurance(db, user, habit.id, WEDNESDAY)
    assert exc.value.code == "INSURANCE_RENEWED"
    assert exc.value.to_payload()["nextRenewDate"] == "2024-04-01"

    with pytest.raises(ConflictError) as exc:
        use_insurance(db, user, habit.id, WEDNESDAY)
    assert exc.value.code == "INSURANCE_USED"
    assert exc.value.can_renew_now is False


def test_insurance_is_available_again_next_month():
    db = _new_db()
    user = _new_user(db)
    habit = _new_habit(db, user)
    use_insurance(db, user, habit.id, date(2024, 3, 31))
    renew_insurance(db, user, habit.id, date(2024, 3, 31))

    result = use_insurance(db, user, habit.id, date(2024, 4, 1))
    assert result.habit.insurance_last_used_at == date(2024, 4, 1)
    assert habit_insurance_state(result.habit, date(2024, 4, 1)) == InsuranceState.USED_THIS_MONTH


def test_insurance_overwrites_skipped_log_for_today():
    db = _new_db()
    user = _new_user(db)
    habit = _new_habit(db, user)
    log_completion(db, user, habit_id=habit.id, log_date=WEDNESDAY.isoformat(), status="skipped", note="tired")

    result = use_insurance(db, user, habit.id, WEDNESDAY)

    assert db.query(HabitLog).count() == 1
    assert result.log.status == "done"
    assert result.log.note == INSURANCE_NOTE


def test_weekly_habit_done_this_week_blocks_insurance():
    db = _new_db()
    user = _new_user(db)
    habit = _new_habit(db, user, frequency="weekly")
    log_completion(db, user, habit_id=habit.id, log_date="2024-03-11", status="done")

    with pytest.raises(ConflictError) as exc:
        use_insurance(db, user, habit.id, WEDNESDAY)
    assert exc.value.code == "WEEK_ALREADY_COMPLETED"
    assert habit.insurance_last_used_at is None


def test_weekly_habit_ignores_skips_and_previous_week():
    db = _new_db()
    user = _new_user(db)
    habit = _new_habit(db, user, frequency="weekly")
    log_completion(db, user, habit_id=habit.id, log_date="2024-03-10", status="done")  # previous Sunday
    log_completion(db, user, habit_id=habit.id, log_date="2024-03-12", status="skipped")

    result = use_insurance(db, user, habit.id, WEDNESDAY)
    assert result.log.status == "done"


def test_weekly_renew_in_same_week_as_first_use_conflicts():
    db = _new_db()
    user = _new_user(db)
    habit = _new_habit(db, user, frequency="weekly")
    use_insurance(db, user, habit.id, WEDNESDAY)

    with pytest.raises(ConflictError) as exc:
        renew_insurance(db, user, habit.id, WEDNESDAY + timedelta(days=1))
    assert exc.value.code == "WEEK_ALREADY_COMPLETED"

    result = renew_insurance(db, user, habit.id, date(2024, 3, 18))
    assert result.habit.insurance_renewed_at == date(2024, 3, 18)


def test_renew_without_prior_use_is_rejected():
    db = _new_db()
    user = _new_user(db)
    habit = _new_habit(db, user)

    with pytest.raises(ValidationError):
        renew_insurance(db, user, habit.id, WEDNESDAY)


def test_ended_or_foreign_habit_cannot_be_insured():
    db = _new_db()
    user = _new_user(db)
    other = _new_user(db, "other@example.com")
    habit = _new_habit(db, user, end_date="2024-03-12")

    with pytest.raises(ForbiddenError):
        use_insurance(db, user, habit.id, WEDNESDAY)
    with pytest.raises(ForbiddenError):
        renew_insurance(db, user, habit.id, WEDNESDAY)
    with pytest.raises(NotFoundError):
        use_insurance(db, other, habit.id, date(2024, 3, 5))


def test_monthly_state_is_checked_before_weekly_completion():
    db = _new_db()
    user = _new_user(db)
    habit = _new_habit(db, user, frequency="weekly")
    use_insurance(db, user, habit.id, date(2024, 3, 5))
    log_completion(db, user, habit_id=habit.id, log_date="2024-03-11", status="done")

    with pytest.raises(ConflictError) as exc:
        use_insurance(db, user, habit.id, WEDNESDAY)
    assert exc.value.code == "INSURANCE_USED"
    assert exc.value.can_renew_now is True
