"""Virtual timeline for lesson timers.

A lesson has two timer sources: the repeating countdown tick and the one-shot
task that clears feedback and moves to the next turn. Both live on one
`LessonTimeline` so that a single pause gate holds them together. Time only
moves when the owner calls `advance`, which keeps the engine synchronous and
deterministic under test.
"""

import itertools
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class ScheduledTask:
    """A cancellable callback due at a point on the timeline.

    Attributes:
        name: Label used in logs.
        due: Timeline time at which the task fires next.
        interval: Repeat interval, or None for a one-shot task.
        priority: Tie-breaker for tasks due at the same time; lower fires first.
    """

    def __init__(
        self,
        name: str,
        due: float,
        callback: Callable[[], None],
        interval: Optional[float] = None,
        priority: int = 0,
        seq: int = 0,
    ):
        self.name = name
        self.due = due
        self.callback = callback
        self.interval = interval
        self.priority = priority
        self.seq = seq
        self.cancelled = False
        self.fired = 0

    @property
    def active(self) -> bool:
        return not self.cancelled

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        return (
            f"ScheduledTask(name={self.name!r}, due={self.due}, "
            f"interval={self.interval}, cancelled={self.cancelled})"
        )


class LessonTimeline:
    """Owns the timers of one lesson behind a single pause gate."""

    def __init__(self) -> None:
        self.now = 0.0
        self.paused = False
        self._tasks: List[ScheduledTask] = []
        self._seq = itertools.count()

    def schedule_once(
        self, delay: float, callback: Callable[[], None], name: str = "once", priority: int = 0
    ) -> ScheduledTask:
        """Schedules `callback` to run once, `delay` time units from now."""
        task = ScheduledTask(
            name, self.now + delay, callback, priority=priority, seq=next(self._seq)
        )
        self._tasks.append(task)
        logger.debug("Scheduled %r", task)
        return task

    def schedule_repeating(
        self, interval: float, callback: Callable[[], None], name: str = "repeat", priority: int = 0
    ) -> ScheduledTask:
        """Schedules `callback` every `interval` time units, starting one interval from now."""
        task = ScheduledTask(
            name,
            self.now + interval,
            callback,
            interval=interval,
            priority=priority,
            seq=next(self._seq),
        )
        self._tasks.append(task)
        logger.debug("Scheduled %r", task)
        return task

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def cancel_all(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks = []

    def pending(self) -> List[ScheduledTask]:
        return [task for task in self._tasks if task.active]

    def _next_due(self, until: float) -> Optional[ScheduledTask]:
        due = [task for task in self._tasks if task.active and task.due <= until]
        if not due:
            return None
        return min(due, key=lambda task: (task.due, task.priority, task.seq))

    def advance(self, seconds: float) -> int:
        """Moves time forward and fires every task that falls due, in time order.

        Nothing moves while the timeline is paused. A callback may pause the
        timeline or cancel other tasks; the remaining time is then dropped or
        the cancelled tasks skipped.

        Args:
            seconds: How far to move the timeline.

        Returns:
            The number of callbacks that ran.
        """
        if seconds < 0:
            raise ValueError("Cannot move a timeline backwards")
        if self.paused:
            return 0

        target = self.now + seconds
        fired = 0
        while not self.paused:
            task = self._next_due(target)
            if task is None:
                break
            self.now = task.due
            if task.interval is None:
                task.cancel()
            else:
                task.due += task.interval
            task.fired += 1
            fired += 1
            task.callback()

        if not self.paused:
            self.now = target
        self._tasks = [task for task in self._tasks if task.active]
        return fired
