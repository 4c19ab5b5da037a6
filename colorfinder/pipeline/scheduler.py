"""
Cooperative tick scheduler.

Multi-tick work (provider probing, the one-frame wait in calibration) is
written as generator routines. Each `yield` is a suspension point; the
routine resumes on the next tick. Cancelling a routine closes the generator,
so its `finally` blocks release resources and nothing runs after that.
"""

from __future__ import annotations

from typing import Any, Callable, Generator, List, Optional

from loguru import logger


RoutineBody = Generator[None, None, Any]


class Routine:
    """A running generator routine and its outcome."""

    def __init__(
        self,
        name: str,
        body: RoutineBody,
        on_done: Optional[Callable[[Routine], None]] = None,
    ):
        self.name = name
        self._body = body
        self._on_done = on_done
        self._done = False
        self._cancelled = False
        self.result: Any = None
        self.error: Optional[BaseException] = None

    def step(self) -> bool:
        """
        Advance to the next suspension point.

        Returns:
            True if the routine is still running
        """
        if self._done:
            return False

        try:
            next(self._body)
            return True
        except StopIteration as stop:
            self.result = stop.value
            self._finish()
        except Exception as e:
            logger.error(f"Routine '{self.name}' failed: {e}")
            self.error = e
            self._finish()
        return False

    def cancel(self):
        """Stop the routine at its current suspension point. Idempotent."""
        if self._done:
            return
        self._cancelled = True
        self._done = True
        self._body.close()
        logger.debug(f"Routine '{self.name}' cancelled")

    def _finish(self):
        self._done = True
        if self._on_done is not None:
            self._on_done(self)

    @property
    def done(self) -> bool:
        return self._done

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class TickScheduler:
    """Runs routines one step per tick, in spawn order."""

    def __init__(self):
        self._routines: List[Routine] = []
        self._tick_count = 0

    def spawn(
        self,
        name: str,
        body: RoutineBody,
        on_done: Optional[Callable[[Routine], None]] = None,
    ) -> Routine:
        """
        Start a routine. It runs immediately up to its first suspension point.
        """
        routine = Routine(name, body, on_done)
        if routine.step():
            self._routines.append(routine)
        return routine

    def tick(self):
        """Resume every live routine once."""
        self._tick_count += 1
        for routine in list(self._routines):
            if routine.done:
                continue
            routine.step()
        self._routines = [r for r in self._routines if not r.done]

    def cancel_all(self):
        for routine in self._routines:
            routine.cancel()
        self._routines = []

    @property
    def active(self) -> List[Routine]:
        return [r for r in self._routines if not r.done]

    @property
    def tick_count(self) -> int:
        return self._tick_count
