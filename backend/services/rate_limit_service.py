from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass

from config import settings
from db.database import SessionLocal
from db.models import RateLimitAuditEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    endpoint: str
    limit: int
    window_seconds: int
    message: str = "Too many requests. Slow down."


AUTH_RULE = RateLimitRule(
    endpoint="/api/auth",
    limit=settings.RATE_LIMIT_AUTH_ATTEMPTS,
    window_seconds=settings.RATE_LIMIT_AUTH_WINDOW_SECONDS,
    message="Too many attempts. Try again in 15 minutes.",
)
AI_RULE = RateLimitRule(
    endpoint="/api/ai",
    limit=settings.RATE_LIMIT_AI_REQUESTS,
    window_seconds=settings.RATE_LIMIT_AI_WINDOW_SECONDS,
    message="AI suggestion limit reached. Try again later.",
)
GENERAL_RULE = RateLimitRule(
    endpoint="*",
    limit=settings.RATE_LIMIT_GENERAL_REQUESTS,
    window_seconds=settings.RATE_LIMIT_GENERAL_WINDOW_SECONDS,
)


class InMemoryRateLimiter:
    SWEEP_INTERVAL_SECONDS = 60

    def __init__(self) -> None:
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._windows: dict[str, int] = {}
        self._last_sweep = time.time()
        self._lock = threading.Lock()

    def _sweep(self, now: float) -> None:
        # Drop keys whose newest hit has aged out of their window.
        for key in list(self._hits):
            bucket = self._hits[key]
            if not bucket or bucket[-1] <= now - self._windows.get(key, 0):
                del self._hits[key]
                self._windows.pop(key, None)
        self._last_sweep = now

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def check(self, *, key: str, limit: int, window_seconds: int) -> tuple[bool, int, int]:
        now = time.time()
        window = max(int(window_seconds), 1)
        max_hits = max(int(limit), 1)
        with self._lock:
            if now - self._last_sweep >= self.SWEEP_INTERVAL_SECONDS:
                self._sweep(now)
            self._windows[key] = window
            bucket = self._hits[key]
            cutoff = now - window
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            if len(bucket) >= max_hits:
                retry_after = int(max(bucket[0] + window - now, 1))
                return False, retry_after, 0
            bucket.append(now)
            remaining = max(max_hits - len(bucket), 0)
            return True, 0, remaining

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._windows.clear()


_RATE_LIMITER = InMemoryRateLimiter()


def reset_rate_limits() -> None:
    _RATE_LIMITER.reset()


def _hash_scope(scope_key: str) -> str:
    raw = (scope_key or "").encode("utf-8")
    return hashlib.sha256(raw).hexdigest()[:24]


def record_rate_limit_event(
    *,
    endpoint: str,
    scope_key: str,
    blocked: bool,
    retry_after_seconds: int | None = None,
    user_id: int | None = None,
    ip_address: str | None = None,
    details: dict | None = None,
) -> None:
    db = SessionLocal()
    try:
        db.add(
            RateLimitAuditEvent(
                endpoint=endpoint,
                scope_key=_hash_scope(scope_key),
                blocked=bool(blocked),
                retry_after_seconds=int(retry_after_seconds) if retry_after_seconds else None,
                user_id=user_id,
                ip_address=(ip_address or "").strip()[:128] or None,
                details_json=json.dumps(details or {}, ensure_ascii=True),
            )
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.warning(f"Failed to record rate limit event for {endpoint}: {e}")
    finally:
        db.close()


def enforce_rate_limit(
    *,
    rule: RateLimitRule,
    scope_key: str,
    user_id: int | None = None,
    ip_address: str | None = None,
    details: dict | None = None,
) -> tuple[bool, int]:
    allowed, retry_after, remaining = _RATE_LIMITER.check(
        key=f"{rule.endpoint}:{scope_key}",
        limit=rule.limit,
        window_seconds=rule.window_seconds,
    )
    if not allowed:
        record_rate_limit_event(
            endpoint=rule.endpoint,
            scope_key=scope_key,
            blocked=True,
            retry_after_seconds=retry_after,
            user_id=user_id,
            ip_address=ip_address,
            details={
                **(details or {}),
                "limit": rule.limit,
                "window_seconds": rule.window_seconds,
                "remaining": remaining,
            },
        )
    return allowed, retry_after
