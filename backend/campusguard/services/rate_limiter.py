"""
CampusGuard — Sliding-Window Rate Limiter
===========================================

What:  Per-identity, per-action admission control using a sliding window.
How:   Each (action, identity) key owns an ordered deque of request
       timestamps. On each check, timestamps that fell out of the window are
       dropped; if the survivors reach the limit the request is rejected,
       otherwise "now" is appended and the request is admitted.
Who:   Shared by RateLimitMiddleware (action "global") and the per-route
       rate-limit dependencies (invites:create, invites:verify, ...).
When:  Before authentication, so abusive callers are rejected cheaply.

Algorithm: Sliding Window Log
    1. Key = (action, identity)
    2. Drop timestamps <= now - window
    3. count >= limit → reject, reset_in = oldest + window - now
    4. otherwise append now → allow, remaining = limit - count

    A rejected check records nothing, so a caller hammering a closed bucket
    does not push its own reset time further out.

Memory Bound:
    Buckets are kept in an OrderedDict used as an LRU. When the number of
    buckets exceeds `max_buckets`, the least recently used bucket is evicted.
    Every `sweep_every` checks, buckets whose newest timestamp has left the
    window are removed.

Concurrency:
    One threading.Lock guards the whole map; the prune-count-append sequence
    runs under it, so concurrent checks on the same key cannot undercount.
    State is process-local. Multiple workers each enforce their own limit.
"""

import logging
import math
import threading
import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Mapping, Tuple

logger = logging.getLogger(__name__)

# Identity used when no client address can be resolved
LOOPBACK_IDENTITY = "127.0.0.1"

BucketKey = Tuple[str, str]


@dataclass(frozen=True)
class RateLimitDecision:
    """
    Outcome of a single check.

    Attributes:
        allowed:     True if the request was admitted (and recorded)
        remaining:   Requests left in the current window after this one
        reset_in_ms: Milliseconds until the oldest recorded request leaves
                     the window (0 when the bucket is empty)
    """

    allowed: bool
    remaining: int
    reset_in_ms: int

    @property
    def limited(self) -> bool:
        return not self.allowed

    @property
    def retry_after_seconds(self) -> int:
        """Value for the Retry-After header: whole seconds, rounded up, at least 1."""
        return max(1, math.ceil(self.reset_in_ms / 1000))


def resolve_client_identity(headers: Mapping[str, str]) -> str:
    """
    Derive the rate-limit identity for a request.

    Order: left-most X-Forwarded-For entry, then X-Real-IP, then the
    loopback address. Trusts upstream proxies to set these headers.

    Args:
        headers: Case-insensitive header mapping (Starlette's Headers)

    Returns:
        A non-empty identity string. Never raises.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return LOOPBACK_IDENTITY


# Longest User-Agent kept on audit and security records
MAX_USER_AGENT_LENGTH = 512


@dataclass(frozen=True)
class RequestOrigin:
    """Client address and User-Agent, stored on audit and security records."""

    ip_address: str = LOOPBACK_IDENTITY
    user_agent: str = ""

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RequestOrigin":
        return cls(
            ip_address=resolve_client_identity(headers),
            user_agent=(headers.get("user-agent") or "")[:MAX_USER_AGENT_LENGTH],
        )


class SlidingWindowRateLimiter:
    """
    Thread-safe in-memory sliding-window limiter.

    One instance is created by the application factory and stored on
    `app.state.rate_limiter`; route dependencies and the global middleware
    both read it from there. Tests build their own instance with a fake
    clock.

    Args:
        max_buckets:  LRU cap on the number of live (action, identity) keys
        sweep_every:  Run a stale-bucket sweep after this many checks
        clock:        Returns the current time in seconds (monotonic)
    """

    def __init__(
        self,
        max_buckets: int = 10_000,
        sweep_every: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_buckets < 1:
            raise ValueError("max_buckets must be >= 1")
        if sweep_every < 1:
            raise ValueError("sweep_every must be >= 1")
        self.max_buckets = max_buckets
        self.sweep_every = sweep_every
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: "OrderedDict[BucketKey, Deque[float]]" = OrderedDict()
        # Longest window seen per action; the sweep uses it to judge staleness
        self._windows: Dict[str, float] = {}
        self._checks = 0

    # ── Public API ────────────────────────────────────────────────────────

    def check(
        self,
        identity: str,
        action: str,
        limit: int,
        window_seconds: float,
    ) -> RateLimitDecision:
        """
        Admit or reject one request for (action, identity).

        Args:
            identity: Caller identity (usually the client IP)
            action: Logical action name, e.g. "invites:create"
            limit: Maximum admitted requests per window (>= 1)
            window_seconds: Window length in seconds (> 0)

        Returns:
            RateLimitDecision. Rejections are not recorded.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        identity = identity or LOOPBACK_IDENTITY
        key = (action, identity)

        with self._lock:
            now = self._clock()
            window_start = now - window_seconds

            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = deque()
                self._buckets[key] = bucket
            else:
                self._buckets.move_to_end(key)

            while bucket and bucket[0] <= window_start:
                bucket.popleft()

            if len(bucket) >= limit:
                reset_in_ms = max(0, math.ceil((bucket[0] + window_seconds - now) * 1000))
                decision = RateLimitDecision(allowed=False, remaining=0, reset_in_ms=reset_in_ms)
            else:
                bucket.append(now)
                reset_in_ms = max(0, math.ceil((bucket[0] + window_seconds - now) * 1000))
                decision = RateLimitDecision(
                    allowed=True,
                    remaining=limit - len(bucket),
                    reset_in_ms=reset_in_ms,
                )

            if window_seconds > self._windows.get(action, 0):
                self._windows[action] = window_seconds

            self._checks += 1
            self._evict_over_capacity()
            if self._checks % self.sweep_every == 0:
                self._sweep(now)

        if decision.limited:
            logger.warning(
                "Rate limit exceeded: action=%s identity=%s limit=%d window=%ss",
                action,
                identity,
                limit,
                window_seconds,
            )
        return decision

    def reset(self) -> None:
        """Forget every bucket."""
        with self._lock:
            self._buckets.clear()
            self._windows.clear()
            self._checks = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    # ── Internals (caller holds the lock) ─────────────────────────────────

    def _evict_over_capacity(self) -> None:
        evicted = 0
        while len(self._buckets) > self.max_buckets:
            self._buckets.popitem(last=False)
            evicted += 1
        if evicted:
            logger.debug("Evicted %d least recently used rate-limit buckets", evicted)

    def _sweep(self, now: float) -> None:
        stale = [
            key for key, bucket in self._buckets.items()
            if not bucket or bucket[-1] <= now - self._windows.get(key[0], 0)
        ]
        for key in stale:
            del self._buckets[key]
        if stale:
            logger.debug("Swept %d stale rate-limit buckets", len(stale))
