"""
Named-timer metrics used to track request latency.

A registry hands out one Timer per name; each Timer.time() call returns a
context whose stop() records a single observation.
"""

from __future__ import annotations

import threading
import time
from typing import Protocol


class TimerContext:
    """A running measurement. stop() records it once; later calls are no-ops."""

    __slots__ = ("_timer", "_start", "_stopped", "_lock")

    def __init__(self, timer: Timer) -> None:
        self._timer = timer
        self._start = time.perf_counter()
        self._stopped = False
        self._lock = threading.Lock()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> float | None:
        """Stop the measurement and return the elapsed seconds (None if already stopped)."""
        with self._lock:
            if self._stopped:
                return None
            self._stopped = True
        elapsed = time.perf_counter() - self._start
        self._timer.update(elapsed)
        return elapsed

    def __enter__(self) -> TimerContext:
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


class Timer:
    """Thread-safe collection of elapsed-time observations."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._observations: list[float] = []

    def time(self) -> TimerContext:
        return TimerContext(self)

    def update(self, elapsed: float) -> None:
        with self._lock:
            self._observations.append(elapsed)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._observations)

    @property
    def observations(self) -> list[float]:
        with self._lock:
            return list(self._observations)

    def __repr__(self) -> str:
        return f"Timer(name={self.name!r}, count={self.count})"


class MetricsSink(Protocol):
    """Anything that can hand out named timers."""

    def timer(self, name: str) -> Timer: ...


class MetricRegistry:
    """In-memory registry of named timers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._timers: dict[str, Timer] = {}

    def timer(self, name: str) -> Timer:
        with self._lock:
            timer = self._timers.get(name)
            if timer is None:
                timer = self._timers[name] = Timer(name)
            return timer

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._timers)


class _NoopTimer(Timer):
    def update(self, elapsed: float) -> None:
        pass


class NoopMetricRegistry:
    """Registry that discards every observation."""

    def timer(self, name: str) -> Timer:
        return _NoopTimer(name)
