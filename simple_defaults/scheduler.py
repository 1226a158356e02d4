from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


def validate_interval(seconds: float) -> float:
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        raise ValueError(f"synchronize interval must be a number of seconds, got {seconds!r}") from None
    if not value > 0:
        raise ValueError(f"synchronize interval must be positive, got {seconds!r}")
    return value


class FlushScheduler:
    """
    Repeating timer that calls `tick` every `interval` seconds on one
    background worker thread.

    Ticks never overlap: the worker runs them one at a time and run_now()
    shares the same tick lock. Changing the interval re-arms the countdown in
    place; the same worker keeps running, so no timer is ever orphaned.
    """

    def __init__(self, tick: Callable[[], None], interval: float, *, name: str = "simple-defaults-flush"):
        self._tick_fn = tick
        self._interval = validate_interval(interval)
        self._name = name
        self._cond = threading.Condition()
        self._tick_lock = threading.Lock()
        self._generation = 0
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    @property
    def interval(self) -> float:
        with self._cond:
            return self._interval

    @interval.setter
    def interval(self, seconds: float) -> None:
        value = validate_interval(seconds)
        with self._cond:
            self._interval = value
            self._generation += 1
            self._cond.notify_all()
        logger.debug("SCHEDULER: re-armed at %.3fs", value)

    @property
    def running(self) -> bool:
        with self._cond:
            return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._cond:
            if self._thread is not None and self._thread.is_alive():
                return
            stop_event = threading.Event()
            thread = threading.Thread(target=self._run, args=(stop_event,), name=self._name, daemon=True)
            self._stop_event = stop_event
            self._thread = thread
        thread.start()
        logger.debug("SCHEDULER: started (interval=%.3fs)", self.interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._cond:
            thread, stop_event = self._thread, self._stop_event
            self._thread = None
            self._stop_event = None
            if stop_event is not None:
                stop_event.set()
            self._cond.notify_all()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.debug("SCHEDULER: stopped")

    def run_now(self) -> None:
        """Run one tick in the calling thread, serialized with the worker's ticks."""
        self._tick()

    def _wait_for_deadline(self, stop_event: threading.Event) -> bool:
        """Block until the current interval elapses. False means stop."""
        with self._cond:
            while True:
                generation = self._generation
                deadline = time.monotonic() + self._interval
                while not stop_event.is_set() and generation == self._generation:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return True
                    self._cond.wait(remaining)
                if stop_event.is_set():
                    return False
                # interval changed: restart the countdown at the new value

    def _run(self, stop_event: threading.Event) -> None:
        while self._wait_for_deadline(stop_event):
            self._tick()

    def _tick(self) -> None:
        with self._tick_lock:
            try:
                self._tick_fn()
            except Exception:
                logger.exception("SCHEDULER: flush tick failed")
