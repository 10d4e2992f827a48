import logging
import threading
import time
from dataclasses import dataclass
from typing import Union

from .types import BudgetConfig


@dataclass
class BudgetState:
    remaining: int
    window_started_at: float = 0.0
    cooldown_until: float = 0.0

    def next_available_at(self, now: float, window_seconds: float) -> float:
        w = self.window_started_at + window_seconds if self.remaining <= 0 else now
        return max(now, self.cooldown_until, w)


class RateBudget:
    """Shared request budget: a fixed number of units per rolling window.

    All outbound requests draw from one counter, whatever resource they hit.
    ``try_acquire`` never blocks; it either takes a unit or reports how long
    the caller would have to wait.
    """

    def __init__(self, config: Union[BudgetConfig, None] = None):
        self.config = config or BudgetConfig()
        self._lock = threading.Lock()
        self._state = BudgetState(
            remaining=self.config.capacity, window_started_at=self._now()
        )
        self._logger = logging.getLogger("ascgate")

    def _now(self) -> float:
        return time.time()

    def _refill_if_needed(self, now: float):
        if now - self._state.window_started_at >= self.config.window_seconds:
            self._state.remaining = self.config.capacity
            self._state.window_started_at = now

    def try_acquire(self) -> float:
        """Consume one unit. Returns 0.0 on success, else the seconds to wait."""
        with self._lock:
            now = self._now()
            self._refill_if_needed(now)
            if now < self._state.cooldown_until:
                return self._state.cooldown_until - now
            if self._state.remaining > 0:
                self._state.remaining -= 1
                return 0.0
            return self._state.next_available_at(now, self.config.window_seconds) - now

    def record_cooldown(self, seconds: float):
        with self._lock:
            until = self._now() + seconds
            if until > self._state.cooldown_until:
                self._state.cooldown_until = until
                self._logger.info(f"server cool-down recorded; next request in {seconds:.0f}s")

    @property
    def remaining(self) -> int:
        with self._lock:
            self._refill_if_needed(self._now())
            return self._state.remaining

    def cooldown_remaining(self) -> float:
        with self._lock:
            return max(0.0, self._state.cooldown_until - self._now())

    def reset(self):
        with self._lock:
            self._state = BudgetState(
                remaining=self.config.capacity, window_started_at=self._now()
            )
