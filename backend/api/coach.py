from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ai.generator import CoachGenerator, get_generator
from auth.utils import get_current_user, require_rate_limit
from db.database import get_db
from db.models import User
from services.coach_service import answer_habit_question, get_general_suggestion, get_habit_plan
from services.rate_limit_service import AI_RULE
from utils.datetime_utils import SystemClock, get_clock


def ai_rate_limit(request: Request, user: User = Depends(get_current_user)) -> None:
    require_rate_limit(AI_RULE, request, f"user:{user.id}", user_id=user.id)


router = APIRouter(prefix="/ai", tags=["ai"], dependencies=[Depends(ai_rate_limit)])


class HabitSuggestionRequest(BaseModel):
    habit_id: Optional[str | int] = Field(default=None, alias="habitId")

    model_config = {"populate_by_name": True}


class HabitQuestionRequest(BaseModel):
    habit_id: Optional[str | int] = Field(default=None, alias="habitId")
    question: Optional[str] = None

    model_config = {"populate_by_name": True}


@router.post("/suggestion")
async def suggestion(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: SystemClock = Depends(get_clock),
    generator: CoachGenerator = Depends(get_generator),
):
    return await get_general_suggestion(db, user, clock.today(), generator)


@router.post("/habit-suggestion")
async def habit_suggestion(
    req: HabitSuggestionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: SystemClock = Depends(get_clock),
    generator: CoachGenerator = Depends(get_generator),
):
    return await get_habit_plan(db, user, req.habit_id, clock.today(), generator)


@router.post("/habit-question")
async def habit_question(
    req: HabitQuestionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: SystemClock = Depends(get_clock),
    generator: CoachGenerator = Depends(get_generator),
):
    return await answer_habit_question(db, user, req.habit_id, req.question, clock.today(), generator)
