"""Prompt text for the habit coach and the fallbacks used when generation fails."""

from __future__ import annotations

from db.models import Habit
from services.focus_service import HabitStats

DEFAULT_PERSONA = "calm"

PERSONA_SYSTEM_PROMPTS: dict[str, str] = {
    "calm": (
        "You are a calm, empathetic habit coach. Use a steady, reassuring tone "
        "and simple, actionable steps."
    ),
    "direct": (
        "You are a direct, no-nonsense habit coach. Be concise, practical, and "
        "action-first. Avoid fluff."
    ),
    "motivator": (
        "You are an upbeat, encouraging habit coach. Be supportive and optimistic "
        "while staying specific and practical."
    ),
}

TIME_BY_DIFFICULTY = {
    "easy": "2 minutes",
    "medium": "5 minutes",
    "hard": "10 minutes",
}
DEFAULT_TIME = "5 minutes"

NO_HABITS_SUGGESTION = "Create your first habit to get personalized suggestions!"
FALLBACK_ANSWER = "I could not generate an answer right now. Please try again."

SUGGESTION_TASK = (
    "Task: Give 1 small, realistic action the user can take today for this habit. "
    "Be specific to the habit and goal. Keep it under 80 words. "
    "Avoid generic advice. If there are no recent logs, suggest a starter action."
)

PLAN_TASK = (
    "Task: Provide a daily action plan for today specific to this habit. "
    "Respond in 3 short lines with this exact format:\n"
    "Today: <one concrete action>\n"
    "How: <2-3 short steps>\n"
    "Why: <tie to the goal>\n"
    "Keep the whole response under 90 words and avoid generic advice."
)

QUESTION_TASK = (
    "Answer the question with concise, practical guidance specific to this habit. "
    "Keep it under 120 words. Be supportive, not generic."
)


def persona_system_prompt(persona: str | None) -> str:
    return PERSONA_SYSTEM_PROMPTS.get(persona or DEFAULT_PERSONA, PERSONA_SYSTEM_PROMPTS[DEFAULT_PERSONA])


def _habit_block(heading: str, stats: HabitStats) -> str:
    habit = stats.habit
    lines = [
        f"{heading}:",
        "",
        f"Name: {habit.habit_name}",
        f"Goal: {habit.goal}",
        f"Frequency: {habit.frequency}",
        f"Difficulty: {habit.difficulty}",
        f"Last 7 days: {stats.done} done, {stats.skipped} skipped",
    ]
    if stats.recent_notes:
        lines.append(f"Recent notes: {'; '.join(stats.recent_notes)}")
    return "\n".join(lines) + "\n"


def build_suggestion_prompt(stats: HabitStats) -> str:
    return _habit_block("Focus habit", stats) + "\n" + SUGGESTION_TASK


def build_habit_plan_prompt(stats: HabitStats) -> str:
    return _habit_block("Habit details", stats) + "\n" + PLAN_TASK


def build_question_prompt(stats: HabitStats, question: str) -> str:
    return _habit_block("Habit details", stats) + f"\nUser question: {question}\n\n" + QUESTION_TASK


def _time_for(habit: Habit) -> str:
    return TIME_BY_DIFFICULTY.get(habit.difficulty, DEFAULT_TIME)


def fallback_suggestion(habit: Habit | None) -> str:
    if habit is None:
        return NO_HABITS_SUGGESTION
    return (
        f'Today, do the easiest {_time_for(habit)} version of "{habit.habit_name}" '
        f'to move toward "{habit.goal}".'
    )


def fallback_habit_plan(habit: Habit) -> str:
    return "\n".join(
        [
            f'Today: Do a {_time_for(habit)} starter session of "{habit.habit_name}".',
            "How: Pick the easiest version and stop when the timer ends.",
            f'Why: It builds momentum toward "{habit.goal}".',
        ]
    )
