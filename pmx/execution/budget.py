#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Turn and wall-clock limits for a single session."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional


class SessionBudget:
    """Maximum turn count and maximum wall-clock duration.

    The clock starts at ``start()``. Time spent inside ``paused()`` (waiting
    on a human write confirmation) is not charged against ``max_seconds``.
    Both limits are consumed monotonically; once either is reached
    ``exhaustion_reason()`` stays non-None.
    """

    def __init__(
        self,
        max_turns: int,
        max_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_turns < 1:
            raise ValueError(f"max_turns must be at least 1, got {max_turns}")
        if max_seconds <= 0:
            raise ValueError(f"max_seconds must be positive, got {max_seconds}")
        self.max_turns = int(max_turns)
        self.max_seconds = float(max_seconds)
        self._clock = clock
        self._started_at: Optional[float] = None
        self._paused_at: Optional[float] = None
        self._paused_total = 0.0
        self._turns = 0

    def start(self) -> None:
        """Start the wall clock (idempotent)."""
        if self._started_at is None:
            self._started_at = self._clock()

    @property
    def started(self) -> bool:
        return self._started_at is not None

    def record_turn(self) -> int:
        """Charge one reasoning-service round-trip and return the new count."""
        self._turns += 1
        return self._turns

    @property
    def turns_used(self) -> int:
        return self._turns

    @property
    def turns_remaining(self) -> int:
        return max(0, self.max_turns - self._turns)

    def elapsed(self) -> float:
        """Charged seconds since ``start()``, excluding paused time."""
        if self._started_at is None:
            return 0.0
        now = self._paused_at if self._paused_at is not None else self._clock()
        return max(0.0, now - self._started_at - self._paused_total)

    def exhaustion_reason(self) -> Optional[str]:
        """Return a description of the exhausted limit, or None."""
        if self._turns >= self.max_turns:
            return f"turn limit reached ({self._turns}/{self.max_turns} turns)"
        elapsed = self.elapsed()
        if elapsed >= self.max_seconds:
            return f"time limit reached ({elapsed:.1f}s of {self.max_seconds:.0f}s)"
        return None

    @property
    def exhausted(self) -> bool:
        return self.exhaustion_reason() is not None

    @contextmanager
    def paused(self) -> Iterator[None]:
        """Stop charging wall-clock time for the duration of the block."""
        if self._paused_at is not None:
            # Nested pause: the outer block already stopped the clock.
            yield
            return
        self._paused_at = self._clock()
        try:
            yield
        finally:
            self._paused_total += self._clock() - self._paused_at
            self._paused_at = None
