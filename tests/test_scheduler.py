"""Tests for the cooperative tick scheduler.

Verifies that:
- spawn() runs a routine up to its first yield
- Each tick resumes every live routine once
- Cancelling closes the generator so finally blocks run
- Results and errors are captured and reported through on_done
"""

from colorfinder.pipeline.scheduler import Routine, TickScheduler


def counting_routine(log, steps):
    for i in range(steps):
        log.append(i)
        yield
    return "finished"


class TestSpawn:
    """Routines start synchronously."""

    def test_runs_to_first_yield(self) -> None:
        log = []
        scheduler = TickScheduler()
        routine = scheduler.spawn("count", counting_routine(log, 3))
        assert log == [0]
        assert not routine.done
        assert scheduler.active == [routine]

    def test_routine_without_yield_finishes_in_spawn(self) -> None:
        done = []

        def body():
            return 42
            yield

        scheduler = TickScheduler()
        routine = scheduler.spawn("instant", body(), on_done=done.append)
        assert routine.done
        assert routine.result == 42
        assert done == [routine]
        assert scheduler.active == []


class TestTick:
    """One step per tick."""

    def test_each_tick_advances_once(self) -> None:
        log = []
        scheduler = TickScheduler()
        routine = scheduler.spawn("count", counting_routine(log, 3))
        scheduler.tick()
        assert log == [0, 1]
        scheduler.tick()
        scheduler.tick()
        assert routine.done
        assert routine.result == "finished"
        assert scheduler.active == []
        assert scheduler.tick_count == 3

    def test_error_is_captured(self) -> None:
        done = []

        def body():
            yield
            raise RuntimeError("boom")

        scheduler = TickScheduler()
        routine = scheduler.spawn("failing", body(), on_done=done.append)
        scheduler.tick()
        assert routine.done
        assert isinstance(routine.error, RuntimeError)
        assert done == [routine]

    def test_routine_spawned_during_tick_is_kept(self) -> None:
        log = []
        scheduler = TickScheduler()

        def parent():
            yield
            scheduler.spawn("child", counting_routine(log, 5))

        scheduler.spawn("parent", parent())
        scheduler.tick()
        assert [r.name for r in scheduler.active] == ["child"]


class TestCancel:
    """Cancellation."""

    def test_cancel_runs_finally_and_skips_on_done(self) -> None:
        cleaned = []
        done = []

        def body():
            try:
                while True:
                    yield
            finally:
                cleaned.append(True)

        scheduler = TickScheduler()
        routine = scheduler.spawn("loop", body(), on_done=done.append)
        routine.cancel()
        assert cleaned == [True]
        assert routine.cancelled
        assert routine.done
        assert done == []

    def test_cancel_is_idempotent(self) -> None:
        routine = Routine("noop", counting_routine([], 2))
        routine.step()
        routine.cancel()
        routine.cancel()
        assert routine.step() is False

    def test_cancel_all(self) -> None:
        scheduler = TickScheduler()
        first = scheduler.spawn("a", counting_routine([], 5))
        second = scheduler.spawn("b", counting_routine([], 5))
        scheduler.cancel_all()
        assert first.cancelled and second.cancelled
        assert scheduler.active == []
