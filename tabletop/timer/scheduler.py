"""Cancelable one-shot and repeating callbacks on the Qt event loop.

Every task owns a single-shot ``QTimer``; repeating tasks re-arm after
each firing.  Callbacks therefore run on the same thread and loop as the
sequencer heartbeat and can never race with a tick.

Pausing
-------
``pause_all()`` stops every task and adds the time since its last firing
(or since it was scheduled) to the task's ``elapsed``.  ``resume_all()``
re-arms each task for what is left:

- repeating: ``period - (elapsed % period)`` so the phase survives;
- one-shot:  ``max(0, delay - elapsed)``.

``elapsed`` keeps growing across several pause/resume cycles and is only
cleared when a task fires.  ``stop_all()`` forgets everything.
"""

from __future__ import annotations

import logging
import time
from itertools import count
from typing import Callable

from PyQt6.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)

_task_ids = count(1)


class ScheduledTask:
    """Handle returned by :class:`Scheduler`.  Pass it to ``cancel()``."""

    def __init__(
        self,
        scheduler: "Scheduler",
        interval: float,
        callback: Callable[[], None],
        *,
        repeating: bool,
    ) -> None:
        self.id = next(_task_ids)
        self.interval = interval
        self.repeating = repeating
        self.elapsed = 0.0      # seconds banked by earlier pauses
        self.wait = interval    # seconds the timer was last armed for
        self.fired = 0
        self._callback = callback
        self._scheduler = scheduler
        self._armed_at: float | None = None
        self._cancelled = False

        self._qt_timer = QTimer(scheduler)
        self._qt_timer.setSingleShot(True)
        self._qt_timer.timeout.connect(self._fire)

    # ── state ─────────────────────────────────────────────────────────

    @property
    def active(self) -> bool:
        """True while armed (not paused, cancelled or spent)."""
        return not self._cancelled and self._armed_at is not None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def paused(self) -> bool:
        return not self._cancelled and self._armed_at is None

    def __repr__(self) -> str:
        kind = "every" if self.repeating else "after"
        return f"<ScheduledTask #{self.id} {kind} {self.interval}s fired={self.fired}>"

    # ── mechanics (driven by Scheduler) ───────────────────────────────

    def _arm(self, wait: float) -> None:
        self.wait = max(0.0, wait)
        self._armed_at = self._scheduler.now()
        self._qt_timer.start(int(round(self.wait * 1000)))

    def _pause(self) -> None:
        if self._armed_at is None:
            return
        self._qt_timer.stop()
        self.elapsed += self._scheduler.now() - self._armed_at
        self._armed_at = None

    def _resume(self) -> None:
        if self._cancelled or self._armed_at is not None:
            return
        if self.repeating:
            self._arm(self.interval - (self.elapsed % self.interval))
        else:
            self._arm(self.interval - self.elapsed)

    def _cancel(self) -> None:
        self._cancelled = True
        self._armed_at = None
        self._qt_timer.stop()
        self._qt_timer.deleteLater()

    def _fire(self) -> None:
        if self._cancelled:
            return
        self.fired += 1
        self.elapsed = 0.0
        if self.repeating:
            self._arm(self.interval)
        else:
            self._armed_at = None
            self._qt_timer.deleteLater()
            self._scheduler._forget(self)
        self._callback()


class Scheduler(QObject):
    """Issues and tracks :class:`ScheduledTask` handles.

    *clock* returns seconds as a float and defaults to
    ``time.monotonic``; tests pass a fake one.
    """

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(parent)
        self._clock = clock
        self._tasks: dict[int, ScheduledTask] = {}
        self._paused = False

    def now(self) -> float:
        return self._clock()

    @property
    def tasks(self) -> list[ScheduledTask]:
        return list(self._tasks.values())

    @property
    def is_paused(self) -> bool:
        return self._paused

    def __len__(self) -> int:
        return len(self._tasks)

    # ── scheduling ────────────────────────────────────────────────────

    def schedule_once(
        self, delay: float, callback: Callable[[], None]
    ) -> ScheduledTask:
        return self._add(ScheduledTask(self, delay, callback, repeating=False))

    def schedule_repeating(
        self, period: float, callback: Callable[[], None]
    ) -> ScheduledTask:
        if period <= 0:
            raise ValueError("period must be positive")
        return self._add(ScheduledTask(self, period, callback, repeating=True))

    def cancel(self, task: ScheduledTask) -> None:
        if self._tasks.pop(task.id, None) is not None:
            task._cancel()

    # ── pause / resume ────────────────────────────────────────────────

    def pause_all(self) -> None:
        """Stop every task, banking the time since its last firing."""
        self._paused = True
        for task in self._tasks.values():
            task._pause()
        logger.debug("Paused %d scheduled task(s)", len(self._tasks))

    def resume_all(self) -> None:
        """Re-arm every paused task for the rest of its period/delay."""
        self._paused = False
        for task in list(self._tasks.values()):
            task._resume()
        logger.debug("Resumed %d scheduled task(s)", len(self._tasks))

    def stop_all(self) -> None:
        """Cancel everything and drop all elapsed-time bookkeeping."""
        tasks, self._tasks = self._tasks, {}
        for task in tasks.values():
            task._cancel()
        self._paused = False
        if tasks:
            logger.debug("Cancelled %d scheduled task(s)", len(tasks))

    # ── internal ──────────────────────────────────────────────────────

    def _add(self, task: ScheduledTask) -> ScheduledTask:
        self._tasks[task.id] = task
        if self._paused:
            # Scheduled while paused: hold it until resume_all().
            task.wait = task.interval
        else:
            task._arm(task.interval)
        return task

    def _forget(self, task: ScheduledTask) -> None:
        self._tasks.pop(task.id, None)
