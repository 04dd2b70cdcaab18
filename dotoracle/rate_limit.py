"""Per-caller daily quota for AI interpretations, reset at UTC midnight.

Only successful interpretations count. A slot is reserved atomically before
the call and released again when the call fails.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from dotoracle.storage import KeyValueStore, rate_limit_key
from dotoracle.utils.dates import next_utc_midnight_ms, now_ms


class RateLimitDecision(BaseModel):
    allowed: bool
    remaining: int
    reset_at: int = 0


class RateLimitStatus(BaseModel):
    identity: str
    count: int
    remaining: int
    reset_at: int
    expired: bool


class RateLimiter:
    def __init__(self, store: KeyValueStore, limit: int = 30):
        self.store = store
        self.limit = limit

    def acquire(self, identity: str, now: Optional[int] = None) -> RateLimitDecision:
        """Check the quota and, if there is room, count this request in one step."""
        now = now_ms() if now is None else now
        key = rate_limit_key(identity)
        with self.store.locked(key):
            data = self.store.get(key)
            if not data or now > data["reset_at"]:
                data = {"count": 0, "reset_at": next_utc_midnight_ms(now)}
            if data["count"] >= self.limit:
                return RateLimitDecision(allowed=False, remaining=0, reset_at=data["reset_at"])
            data = {"count": data["count"] + 1, "reset_at": data["reset_at"]}
            self.store.set(key, data)
        return RateLimitDecision(allowed=True, remaining=self.limit - data["count"], reset_at=data["reset_at"])

    def release(self, identity: str, now: Optional[int] = None) -> None:
        """Give back a slot taken by `acquire` for a request that did not complete."""
        now = now_ms() if now is None else now
        key = rate_limit_key(identity)
        with self.store.locked(key):
            data = self.store.get(key)
            if not data or now > data["reset_at"] or data["count"] <= 0:
                return
            self.store.set(key, {"count": data["count"] - 1, "reset_at": data["reset_at"]})

    def status(self, identity: str, now: Optional[int] = None) -> RateLimitStatus:
        now = now_ms() if now is None else now
        data = self.store.get(rate_limit_key(identity))
        if not data:
            return RateLimitStatus(identity=identity, count=0, remaining=self.limit, reset_at=0, expired=True)
        expired = now > data["reset_at"]
        remaining = self.limit if expired else max(0, self.limit - data["count"])
        return RateLimitStatus(identity=identity, count=data["count"], remaining=remaining, reset_at=data["reset_at"], expired=expired)
