from __future__ import annotations

from datetime import date
from typing import Any


class HabitCoachError(Exception):
    """Base for failures that map onto a client-visible HTTP response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(HabitCoachError):
    """Missing or malformed input."""

    status_code = 400


class NotFoundError(HabitCoachError):
    """Entity absent or not owned by the caller."""

    status_code = 404


class ForbiddenError(HabitCoachError):
    """Habit is past its end date."""

    status_code = 403


class ConflictError(HabitCoachError):
    """Duplicate log, or streak insurance already used / renewed this month."""

    status_code = 409

    def __init__(
        self,
        message: str,
        *,
        code: str,
        next_available_date: date | None = None,
        next_renew_date: date | None = None,
        can_renew_now: bool | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.next_available_date = next_available_date
        self.next_renew_date = next_renew_date
        self.can_renew_now = can_renew_now

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.next_available_date is not None:
            payload["nextAvailableDate"] = self.next_available_date.isoformat()
        if self.next_renew_date is not None:
            payload["nextRenewDate"] = self.next_renew_date.isoformat()
        if self.can_renew_now is not None:
            payload["canRenewNow"] = self.can_renew_now
        return payload


class StorageError(HabitCoachError):
    """A multi-step write could not be completed and was rolled back."""

    status_code = 500


class UpstreamError(HabitCoachError):
    """Text generator or email delivery failed. Never returned to clients."""

    status_code = 502
