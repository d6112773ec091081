"""One running timer list: the owner of sequencer, scheduler and engine.

A ``ListSession`` is created when a list is opened and closed when it is
left.  Everything that touches the list's timers or counters while it
runs goes through it, so the sequencer, the automation engine and user
counter edits share one thread and one event loop.
"""

from __future__ import annotations

import logging
from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal

from .automation.engine import AutomationEngine
from .database.models import Counter
from .database.store import CounterChange, TimerStore
from .settings import Settings
from .timer.scheduler import Scheduler
from .timer.sequencer import SequencerState, TimerSequencer

logger = logging.getLogger(__name__)


class ListSession(QObject):
    """Runs the timers and automations of the list *list_id*.

    Signals
    -------
    counter_changed(change: CounterChange)
        Any counter edit, from the user or from an automation.
    """

    counter_changed = pyqtSignal(object)

    def __init__(
        self,
        list_id: int,
        *,
        store: TimerStore | None = None,
        settings: Settings | None = None,
        player=None,
        notifier=None,
        clock: Callable[[], float] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._list_id = list_id
        self._store = store or TimerStore()
        self._settings = settings or Settings()

        self._store.touch_list(list_id)

        scheduler_kwargs = {"clock": clock} if clock is not None else {}
        self.scheduler = Scheduler(self, **scheduler_kwargs)
        self.sequencer = TimerSequencer(
            self,
            timers=self._store.timers_for_list(list_id),
            autoplay=self._settings.autoplay_enabled,
            tick_interval=self._settings.tick_interval,
            player=player,
            completion_sound=self._settings.completion_sound,
        )
        self.engine = AutomationEngine(
            list_id,
            self.sequencer,
            self.scheduler,
            self._store,
            player=player,
            notifier=notifier,
            parent=self,
        )
        self.engine.counter_changed.connect(self.counter_changed)
        self._closed = False
        logger.info(
            "Opened list %d with %d timer(s)", list_id, len(self.sequencer.timers),
        )

    @property
    def list_id(self) -> int:
        return self._list_id

    @property
    def state(self) -> SequencerState:
        return self.sequencer.state

    # ── timer controls ────────────────────────────────────────────────

    def start(self, from_index: int = 0) -> None:
        self.sequencer.start(from_index)

    def pause(self) -> None:
        self.sequencer.pause()

    def resume(self) -> None:
        self.sequencer.resume()

    def stop(self) -> None:
        self.sequencer.stop()

    def skip(self) -> None:
        self.sequencer.skip_to_next()

    def reload(self) -> None:
        """Pick up timer edits made between runs."""
        self.sequencer.set_timers(self._store.timers_for_list(self._list_id))

    # ── counters ──────────────────────────────────────────────────────

    def counters(self) -> list[Counter]:
        return self._store.counters_for_list(self._list_id)

    def increment_counter(self, counter_id: int) -> CounterChange | None:
        return self._edit_counter(counter_id, Counter.increment)

    def decrement_counter(self, counter_id: int) -> CounterChange | None:
        return self._edit_counter(counter_id, Counter.decrement)

    def reset_counter(self, counter_id: int) -> CounterChange | None:
        return self._edit_counter(counter_id, Counter.reset)

    def reset_all_counters(self) -> list[CounterChange]:
        changes = self._store.reset_counters(self._list_id)
        for change in changes:
            self._report(change)
        return changes

    def _edit_counter(self, counter_id: int, mutate) -> CounterChange | None:
        change = self._store.mutate_counter(counter_id, mutate)
        if change is not None:
            self._report(change)
        return change

    def _report(self, change: CounterChange) -> None:
        if not change.changed:
            return
        self.counter_changed.emit(change)
        self.engine.on_counter_changed(change, change.old_value, change.new_value)

    # ── teardown ──────────────────────────────────────────────────────

    def close(self) -> None:
        """Stop the run and detach the engine.  Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.sequencer.stop()
        self.engine.disconnect_sequencer()
        logger.info("Closed list %d", self._list_id)
