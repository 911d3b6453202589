from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth.utils import get_current_user
from db.database import get_db
from db.models import Habit, HabitLog, User
from services.habit_service import (
    create_habit,
    delete_habit,
    get_history,
    list_habits,
    log_completion,
)
from services.insights_service import get_insights
from services.insurance_service import InsuranceState, habit_insurance_state, renew_insurance, use_insurance
from utils.datetime_utils import SystemClock, get_clock

router = APIRouter(prefix="/habits", tags=["habits"])


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _habit_to_dict(habit: Habit, today: date) -> dict:
    state = habit_insurance_state(habit, today)
    return {
        "id": habit.id,
        "habitName": habit.habit_name,
        "goal": habit.goal,
        "frequency": habit.frequency,
        "difficulty": habit.difficulty,
        "endDate": _iso(habit.end_date),
        "insuranceLastUsedAt": _iso(habit.insurance_last_used_at),
        "insuranceRenewedAt": _iso(habit.insurance_renewed_at),
        "insuranceState": state.value,
        "canRenewNow": state == InsuranceState.USED_THIS_MONTH,
        "createdAt": _iso(habit.created_at),
    }


def _log_to_dict(log: HabitLog, include_habit: bool = False) -> dict:
    payload = {
        "id": log.id,
        "habitId": log.habit_id,
        "date": _iso(log.date),
        "status": log.status,
        "note": log.note or "",
    }
    if include_habit and log.habit is not None:
        payload["habit"] = {
            "id": log.habit.id,
            "habitName": log.habit.habit_name,
            "goal": log.habit.goal,
            "frequency": log.habit.frequency,
            "difficulty": log.habit.difficulty,
        }
    return payload


class HabitCreateRequest(BaseModel):
    habit_name: Optional[str] = Field(default=None, alias="habitName")
    goal: Optional[str] = None
    frequency: Optional[str] = None
    difficulty: Optional[str] = None
    end_date: Optional[str | int | float] = Field(default=None, alias="endDate")

    model_config = {"populate_by_name": True}


class HabitLogRequest(BaseModel):
    habit_id: Optional[str | int] = Field(default=None, alias="habitId")
    date: Optional[str | int | float] = None
    status: Optional[str] = None
    note: Optional[str] = None

    model_config = {"populate_by_name": True}


@router.post("/create", status_code=201)
def create(
    req: HabitCreateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: SystemClock = Depends(get_clock),
):
    today = clock.today()
    habit = create_habit(
        db,
        user,
        habit_name=req.habit_name,
        goal=req.goal,
        frequency=req.frequency,
        difficulty=req.difficulty,
        end_date=req.end_date,
        today=today,
    )
    return {"message": "Habit created", "habit": _habit_to_dict(habit, today)}


@router.get("")
def list_all(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: SystemClock = Depends(get_clock),
):
    today = clock.today()
    return {"habits": [_habit_to_dict(h, today) for h in list_habits(db, user)]}


@router.post("/log", status_code=201)
def log(
    req: HabitLogRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entry = log_completion(
        db,
        user,
        habit_id=req.habit_id,
        log_date=req.date,
        status=req.status,
        note=req.note,
    )
    return {"message": "Habit logged", "log": _log_to_dict(entry)}


@router.get("/history")
def history(
    habit_id: Optional[str] = Query(default=None, alias="habitId"),
    days: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: SystemClock = Depends(get_clock),
):
    window, logs = get_history(db, user, today=clock.today(), habit_id=habit_id, days=days)
    return {"days": window, "logs": [_log_to_dict(entry, include_habit=True) for entry in logs]}


@router.get("/insights")
def insights(
    days: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: SystemClock = Depends(get_clock),
):
    result = get_insights(db, user, clock.today(), days)
    return {
        "period": {"days": result["period"]["days"], "startDate": result["period"]["start_date"]},
        "completionRate": result["completion_rate"],
        "activeDays": result["active_days"],
        "topHabitName": result["top_habit_name"],
        "totals": result["totals"],
    }


@router.delete("/{habit_id}")
def delete(
    habit_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    delete_habit(db, user, habit_id)
    return {"message": "Habit deleted"}


@router.post("/{habit_id}/insurance")
def insurance(
    habit_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: SystemClock = Depends(get_clock),
):
    today = clock.today()
    result = use_insurance(db, user, habit_id, today)
    return {
        "message": "Streak insurance applied",
        "log": _log_to_dict(result.log),
        "habit": _habit_to_dict(result.habit, today),
    }


@router.post("/{habit_id}/insurance/renew")
def insurance_renew(
    habit_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: SystemClock = Depends(get_clock),
):
    today = clock.today()
    result = renew_insurance(db, user, habit_id, today)
    return {
        "message": "Streak insurance renewed",
        "log": _log_to_dict(result.log),
        "habit": _habit_to_dict(result.habit, today),
    }
