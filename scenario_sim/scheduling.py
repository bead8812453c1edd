"""Clock and scheduler abstractions for periodic updates.

The time-based engine never reads the wall clock or starts timers
directly. It asks a :class:`Clock` for the current time and registers its
update with a :class:`Scheduler`. Production code uses
:class:`SystemClock` and :class:`ThreadingScheduler`; tests use
:class:`ManualClock` and :class:`ManualScheduler` to step time explicitly.

Examples:
    Drive a periodic task deterministically::

        from datetime import timedelta

        clock = ManualClock()
        scheduler = ManualScheduler(clock)
        handle = scheduler.every(timedelta(days=30), engine.tick)
        scheduler.advance(timedelta(days=365))  # runs the task 12 times
        handle.cancel()
"""

from datetime import datetime, timedelta, timezone
import itertools
import logging
import threading
from typing import Callable, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware time."""


@runtime_checkable
class ScheduledTask(Protocol):
    """Handle of a periodic registration."""

    @property
    def cancelled(self) -> bool:
        """Whether the task has been cancelled."""

    def cancel(self) -> None:
        """Stop running the task. Cancelling twice is a no-op."""


@runtime_checkable
class Scheduler(Protocol):
    """Runs callables periodically."""

    def every(self, interval: timedelta, task: Callable[[], None]) -> ScheduledTask:
        """Run ``task`` every ``interval`` until the returned handle is cancelled."""


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to.

    Args:
        start: Initial time. Defaults to 2000-01-01 UTC.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2000, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> datetime:
        """Move the clock forward by ``delta`` and return the new time."""
        if delta < timedelta(0):
            raise ValueError(f"Cannot move clock backwards by {delta}")
        self._now += delta
        return self._now

    def set(self, moment: datetime) -> None:
        """Jump to ``moment`` (must not be earlier than the current time)."""
        if moment < self._now:
            raise ValueError(f"Cannot move clock backwards to {moment}")
        self._now = moment


def _validate_interval(interval: timedelta) -> None:
    if interval <= timedelta(0):
        raise ValueError(f"Interval must be positive, got {interval}")


class _ThreadTask:
    """Periodic task running on a daemon thread."""

    def __init__(self, interval: timedelta, task: Callable[[], None]):
        self._interval = interval.total_seconds()
        self._task = task
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="scenario-sim-scheduler", daemon=True)
        self._thread.start()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._task()
            except Exception:  # noqa: BLE001
                logger.exception("Scheduled task raised; continuing")

    def cancel(self) -> None:
        self._stop.set()
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=self._interval + 1.0)


class ThreadingScheduler:
    """Scheduler that runs each task on its own daemon thread.

    The first run happens one interval after registration. An exception
    raised by the task is logged and the schedule continues.
    """

    def every(self, interval: timedelta, task: Callable[[], None]) -> ScheduledTask:
        _validate_interval(interval)
        return _ThreadTask(interval, task)


class _ManualTask:
    def __init__(self, task_id: int, interval: timedelta, task: Callable[[], None], next_run: datetime):
        self.task_id = task_id
        self.interval = interval
        self.task = task
        self.next_run = next_run
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ManualScheduler:
    """Scheduler whose tasks run only when :meth:`advance` moves the clock.

    Args:
        clock: Clock advanced by this scheduler. Task runs see the clock at
            their exact due time.
    """

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self._tasks: List[_ManualTask] = []
        self._ids = itertools.count()

    def every(self, interval: timedelta, task: Callable[[], None]) -> ScheduledTask:
        _validate_interval(interval)
        handle = _ManualTask(next(self._ids), interval, task, self.clock.now() + interval)
        self._tasks.append(handle)
        return handle

    @property
    def active_tasks(self) -> int:
        return sum(1 for t in self._tasks if not t.cancelled)

    def advance(self, delta: timedelta) -> int:
        """Move time forward, running every task that falls due.

        Due tasks run in time order (registration order on ties). A task
        cancelled during the advance does not run again.

        Returns:
            Number of task runs performed.
        """
        end = self.clock.now() + delta
        runs = 0
        while True:
            due = [t for t in self._tasks if not t.cancelled and t.next_run <= end]
            if not due:
                break
            current = min(due, key=lambda t: (t.next_run, t.task_id))
            self.clock.set(current.next_run)
            current.next_run += current.interval
            current.task()
            runs += 1
        self._tasks = [t for t in self._tasks if not t.cancelled]
        self.clock.set(end)
        return runs
