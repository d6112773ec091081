"""Timer sequencer for Tabletop.

States
------
IDLE      No active timer.
RUNNING   Active timer counting down on the heartbeat.
PAUSED    Active timer frozen; index and time remaining are kept.

Transitions
-----------
IDLE → RUNNING                  (start)
RUNNING → PAUSED                (pause)
PAUSED → RUNNING                (resume, or start)
RUNNING → RUNNING               (timer reaches 0 with autoplay, or skip)
RUNNING → IDLE                  (timer reaches 0 on the last timer / no autoplay)
Any → IDLE                      (stop, or skip on the last timer)

Re-entrancy
-----------
Signals are delivered synchronously, and automations reacting to them may
call ``pause()`` or ``skip_to_next()`` from inside a handler.  Every
start bumps ``_run``; after each emission the sequencer checks that the
run and state it was working on are still current before carrying on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

logger = logging.getLogger(__name__)


# ── enums / types ─────────────────────────────────────────────────────────


class SequencerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class TimerDefinition:
    """One countdown as the sequencer sees it; immutable during a run."""

    id: int
    name: str
    duration: float  # seconds, > 0
    order: int = 0


# ── constants ─────────────────────────────────────────────────────────────

TICK_INTERVAL = 0.1  # seconds between heartbeats
COMPLETION_SOUND = "bell"


def format_time(seconds: float) -> str:
    """``MM:SS`` for display; negative values show as ``00:00``."""
    minutes, secs = divmod(int(max(0.0, seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


# ── sequencer ─────────────────────────────────────────────────────────────


class TimerSequencer(QObject):
    """Runs an ordered list of timers one at a time.

    Signals
    -------
    timer_started(timer: TimerDefinition)
    timer_ticked(timer: TimerDefinition, time_remaining: float)
        Emitted on every heartbeat while running.
    timer_ended(timer: TimerDefinition)
        The active timer ran out.
    timer_abandoned(timer: TimerDefinition)
        The active timer was left before it ran out (skip or restart).
    paused() / resumed() / stopped()
    state_changed(new_state: SequencerState)
    sequence_finished()
        The last timer ended and nothing follows.
    """

    timer_started = pyqtSignal(object)
    timer_ticked = pyqtSignal(object, float)
    timer_ended = pyqtSignal(object)
    timer_abandoned = pyqtSignal(object)
    paused = pyqtSignal()
    resumed = pyqtSignal()
    stopped = pyqtSignal()
    state_changed = pyqtSignal(object)
    sequence_finished = pyqtSignal()

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        timers: list[TimerDefinition] | None = None,
        autoplay: bool = True,
        tick_interval: float = TICK_INTERVAL,
        player=None,
        completion_sound: str = COMPLETION_SOUND,
    ) -> None:
        super().__init__(parent)

        # ── configuration ─────────────────────────────────────────────
        self._timers: list[TimerDefinition] = list(timers or [])
        self._autoplay: bool = autoplay
        self._tick_interval: float = tick_interval
        self._player = player
        self._completion_sound = completion_sound

        # ── run state ─────────────────────────────────────────────────
        self._state: SequencerState = SequencerState.IDLE
        self._index: int | None = None
        self._remaining: float = 0.0
        self._run: int = 0
        self._completing: bool = False
        self._skip_requested: bool = False

        # ── heartbeat ─────────────────────────────────────────────────
        self._heartbeat = QTimer(self)
        self._heartbeat.setInterval(int(round(tick_interval * 1000)))
        self._heartbeat.timeout.connect(self._on_heartbeat)

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def state(self) -> SequencerState:
        return self._state

    @property
    def timers(self) -> list[TimerDefinition]:
        return list(self._timers)

    @property
    def current_index(self) -> int | None:
        return self._index

    @property
    def current_timer(self) -> TimerDefinition | None:
        if self._index is None:
            return None
        return self._timers[self._index]

    @property
    def time_remaining(self) -> float:
        """Seconds left on the active timer (0 when idle)."""
        return self._remaining

    @property
    def percent_complete(self) -> float:
        """0.0 → 1.0 progress through the active timer."""
        timer = self.current_timer
        if timer is None or timer.duration <= 0:
            return 0.0
        elapsed = timer.duration - self._remaining
        return max(0.0, min(1.0, elapsed / timer.duration))

    @property
    def run_id(self) -> int:
        """Changes whenever a timer starts or the sequence stops."""
        return self._run

    @property
    def tick_interval(self) -> float:
        return self._tick_interval

    @property
    def autoplay(self) -> bool:
        return self._autoplay

    @autoplay.setter
    def autoplay(self, value: bool) -> None:
        self._autoplay = value

    def set_timers(self, timers: list[TimerDefinition]) -> None:
        """Replace the timer list.  A run in progress is stopped first."""
        if self._state != SequencerState.IDLE:
            self.stop()
        self._timers = list(timers)

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def start(self, from_index: int = 0) -> None:
        """Start the sequence at *from_index*, or resume when paused."""
        if not self._timers:
            return
        if self._state == SequencerState.PAUSED:
            self.resume()
            return
        self._heartbeat.stop()
        self._abandon_current()
        self._index = from_index
        self._start_current()

    def pause(self) -> None:
        if self._state != SequencerState.RUNNING or self._completing:
            return
        self._heartbeat.stop()
        self._set_state(SequencerState.PAUSED)
        logger.info("Paused %s at %.1fs", self.current_timer.name, self._remaining)
        self.paused.emit()

    def resume(self) -> None:
        if self._state != SequencerState.PAUSED:
            return
        run = self._run
        self._set_state(SequencerState.RUNNING)
        logger.info("Resumed %s", self.current_timer.name)
        self.resumed.emit()
        if self._still_running(run):
            self._heartbeat.start()

    def stop(self) -> None:
        """Clear the active timer and go IDLE, from any state."""
        self._heartbeat.stop()
        self._run += 1
        self._index = None
        self._remaining = 0.0
        self._completing = False
        self._skip_requested = False
        self._set_state(SequencerState.IDLE)
        self.stopped.emit()

    def skip_to_next(self) -> None:
        """Start the next timer, or stop when there is none."""
        if self._completing:
            # Asked from a timer_ended handler: let completion advance.
            self._skip_requested = True
            return
        if self._index is None or not self._has_next():
            self.stop()
            return
        self._heartbeat.stop()
        self._abandon_current()
        self._index += 1
        self._start_current()

    def tick(self, delta: float | None = None) -> None:
        """Count the active timer down by *delta* (one heartbeat)."""
        if self._state != SequencerState.RUNNING or self._completing:
            return
        timer = self.current_timer
        run = self._run
        self._remaining -= self._tick_interval if delta is None else delta
        self.timer_ticked.emit(timer, self._remaining)

        if not self._still_running(run):
            return  # paused or skipped from a handler
        if self._remaining <= 0:
            self._complete(timer)

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL
    # ══════════════════════════════════════════════════════════════════

    def _on_heartbeat(self) -> None:
        self.tick(self._tick_interval)

    def _start_current(self) -> None:
        if self._index is None or not 0 <= self._index < len(self._timers):
            self.stop()
            return
        timer = self._timers[self._index]
        self._run += 1
        run = self._run
        self._remaining = timer.duration
        self._set_state(SequencerState.RUNNING)
        logger.info("Started %s (%s)", timer.name, format_time(timer.duration))
        self.timer_started.emit(timer)
        if self._still_running(run):
            self._heartbeat.start()

    def _complete(self, timer: TimerDefinition) -> None:
        self._heartbeat.stop()
        run = self._run
        self._completing = True
        self._skip_requested = False
        logger.info("Ended %s", timer.name)
        try:
            self.timer_ended.emit(timer)
        finally:
            self._completing = False
        if run != self._run:
            return  # stopped from a handler

        if self._player is not None:
            self._player.play(self._completion_sound)

        advance = self._autoplay or self._skip_requested
        self._skip_requested = False
        if advance and self._has_next():
            self._index += 1
            self._start_current()
            return
        exhausted = not self._has_next()
        self.stop()
        if exhausted:
            self.sequence_finished.emit()

    def _abandon_current(self) -> None:
        timer = self.current_timer
        if timer is not None and self._state != SequencerState.IDLE:
            logger.info("Left %s with %.1fs remaining", timer.name, self._remaining)
            self.timer_abandoned.emit(timer)

    def _has_next(self) -> bool:
        return self._index is not None and self._index < len(self._timers) - 1

    def _still_running(self, run: int) -> bool:
        return run == self._run and self._state == SequencerState.RUNNING

    def _set_state(self, new_state: SequencerState) -> None:
        if new_state == self._state:
            return
        self._state = new_state
        self.state_changed.emit(new_state)
