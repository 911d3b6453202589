from datetime import datetime
from sqlalchemy import (
    Column, Integer, Text, Boolean, ForeignKey, Index,
    Date, DateTime, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from db.database import Base


COACH_PERSONAS = ("calm", "direct", "motivator")
HABIT_FREQUENCIES = ("daily", "weekly")
HABIT_DIFFICULTIES = ("easy", "medium", "hard")
LOG_STATUSES = ("done", "skipped")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, unique=True, nullable=False)  # stored trimmed + lower-cased
    password_hash = Column(Text, nullable=False)
    name = Column(Text, nullable=False, default="")
    coach_persona = Column(Text, nullable=False, default="calm")  # calm | direct | motivator
    reset_code_hash = Column(Text, nullable=True)
    reset_code_expires = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Habit(Base):
    __tablename__ = "habits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    habit_name = Column(Text, nullable=False)
    goal = Column(Text, nullable=False)
    frequency = Column(Text, nullable=False, default="daily")  # daily | weekly
    difficulty = Column(Text, nullable=False, default="medium")  # easy | medium | hard
    end_date = Column(Date, nullable=False)  # inclusive last active day
    insurance_last_used_at = Column(Date, nullable=True)
    insurance_renewed_at = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")


class HabitLog(Base):
    __tablename__ = "habit_logs"
    __table_args__ = (
        UniqueConstraint("user_id", "habit_id", "date", name="uq_habit_logs_user_habit_date"),
        Index("ix_habit_logs_user_date", "user_id", "date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    habit_id = Column(Integer, ForeignKey("habits.id"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(Text, nullable=False)  # done | skipped
    note = Column(Text, nullable=False, default="")

    habit = relationship("Habit")


class RateLimitAuditEvent(Base):
    __tablename__ = "rate_limit_audit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint = Column(Text, nullable=False)
    scope_key = Column(Text, nullable=False)
    blocked = Column(Boolean, nullable=False, default=False)
    retry_after_seconds = Column(Integer, nullable=True)
    user_id = Column(Integer, nullable=True)
    ip_address = Column(Text, nullable=True)
    details_json = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
