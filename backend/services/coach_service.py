from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from ai.coach_prompts import (
    FALLBACK_ANSWER,
    NO_HABITS_SUGGESTION,
    build_habit_plan_prompt,
    build_question_prompt,
    build_suggestion_prompt,
    fallback_habit_plan,
    fallback_suggestion,
    persona_system_prompt,
)
from ai.generator import CoachGenerator
from db.models import User
from services.errors import ValidationError
from services.focus_service import load_recent_stats, pick_focus_habit
from services.habit_service import get_owned_habit, list_habits

logger = logging.getLogger(__name__)


async def get_general_suggestion(db: Session, user: User, today: date, generator: CoachGenerator) -> dict:
    focus = None
    try:
        habits = list_habits(db, user)
        if not habits:
            return {"suggestion": NO_HABITS_SUGGESTION, "source": "system"}

        focus = pick_focus_habit(load_recent_stats(db, user, habits, today))
        text = await generator.generate(build_suggestion_prompt(focus), persona_system_prompt(user.coach_persona))
        if text:
            return {"suggestion": text, "source": "ai"}
    except Exception as e:
        logger.warning(f"Suggestion error: {e}")
    return {"suggestion": fallback_suggestion(focus.habit if focus else None), "source": "fallback"}


async def get_habit_plan(
    db: Session,
    user: User,
    habit_id: Any,
    today: date,
    generator: CoachGenerator,
) -> dict:
    if habit_id in (None, ""):
        raise ValidationError("habitId is required")
    habit = get_owned_habit(db, user, habit_id)

    try:
        stats = load_recent_stats(db, user, [habit], today)[0]
        text = await generator.generate(build_habit_plan_prompt(stats), persona_system_prompt(user.coach_persona))
        if text:
            return {"suggestion": text, "source": "ai"}
    except Exception as e:
        logger.warning(f"Habit suggestion error: {e}")
    return {"suggestion": fallback_habit_plan(habit), "source": "fallback"}


async def answer_habit_question(
    db: Session,
    user: User,
    habit_id: Any,
    question: str | None,
    today: date,
    generator: CoachGenerator,
) -> dict:
    question_text = str(question or "").strip()
    if habit_id in (None, "") or not question_text:
        raise ValidationError("habitId and question are required")
    habit = get_owned_habit(db, user, habit_id)

    try:
        stats = load_recent_stats(db, user, [habit], today)[0]
        prompt = build_question_prompt(stats, question_text)
        text = await generator.generate(prompt, persona_system_prompt(user.coach_persona))
        if text:
            return {"answer": text, "source": "ai"}
    except Exception as e:
        logger.warning(f"Habit question error: {e}")
    return {"answer": FALLBACK_ANSWER, "source": "fallback"}
