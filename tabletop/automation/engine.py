"""Automation engine: matches timer and counter events against the rules
of one timer list and runs their actions.

Event → trigger
---------------
timer_started    TimerStart (name match), AnyTimerStart run now;
                 TimerTimeElapsed (name match) schedules a one-shot;
                 RepeatingInterval schedules a repeating task.
timer_ticked     TimerTimeRemaining (name match), edge-triggered.
timer_ended      all scheduled tasks and armed flags are dropped, then
                 TimerEnd (name match) and AnyTimerEnd run.
timer_abandoned  tasks and armed flags are dropped; nothing runs.
counter change   CounterReachesValue when the value *becomes* the target.
paused/resumed   scheduled tasks pause and resume with their phase kept.
stopped          everything scheduled is forgotten.

Every action is isolated: a failing action is logged and the remaining
actions and automations still run.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, pyqtSignal

from .rules import (
    AnyTimerEnd,
    AnyTimerStart,
    AutomationRule,
    CounterReachesValue,
    ModifyCounter,
    PauseActiveTimer,
    PlaySound,
    RepeatingInterval,
    ShowNotification,
    SkipToNextTimer,
    TimerEnd,
    TimerStart,
    TimerTimeElapsed,
    TimerTimeRemaining,
)
from ..timer.scheduler import ScheduledTask, Scheduler
from ..timer.sequencer import TimerDefinition, TimerSequencer

logger = logging.getLogger(__name__)

MAX_CASCADE_DEPTH = 16  # nested counter-change → modify-counter rounds


class AutomationEngine(QObject):
    """Evaluates the automations of the list *list_id*.

    The engine connects itself to *sequencer*; the owner only needs to
    report counter edits made outside the engine through
    :meth:`on_counter_changed`.

    Signals
    -------
    counter_changed(change)
        A ``CounterChange`` made by a ModifyCounter action.
    rule_fired(rule: AutomationRule)
        Emitted before a rule's actions run.
    """

    counter_changed = pyqtSignal(object)
    rule_fired = pyqtSignal(object)

    def __init__(
        self,
        list_id: int,
        sequencer: TimerSequencer,
        scheduler: Scheduler,
        store,
        *,
        player=None,
        notifier=None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._list_id = list_id
        self._sequencer = sequencer
        self._scheduler = scheduler
        self._store = store
        self._player = player
        self._notifier = notifier

        self._armed: dict[tuple[int, int], bool] = {}
        self._intervals: dict[tuple[int, int], ScheduledTask] = {}
        self._delayed: dict[tuple[int, int], ScheduledTask] = {}
        self._depth = 0

        sequencer.timer_started.connect(self.on_timer_started)
        sequencer.timer_ticked.connect(self.on_timer_ticked)
        sequencer.timer_ended.connect(self.on_timer_ended)
        sequencer.timer_abandoned.connect(self.on_timer_abandoned)
        sequencer.paused.connect(self.on_pause_requested)
        sequencer.resumed.connect(self.on_resume_requested)
        sequencer.stopped.connect(self.on_stopped)

    @property
    def list_id(self) -> int:
        return self._list_id

    @property
    def armed_keys(self) -> set[tuple[int, int]]:
        """``(automation id, trigger index)`` pairs currently armed."""
        return {key for key, armed in self._armed.items() if armed}

    @property
    def scheduled_tasks(self) -> list[ScheduledTask]:
        return [*self._intervals.values(), *self._delayed.values()]

    def disconnect_sequencer(self) -> None:
        seq = self._sequencer
        seq.timer_started.disconnect(self.on_timer_started)
        seq.timer_ticked.disconnect(self.on_timer_ticked)
        seq.timer_ended.disconnect(self.on_timer_ended)
        seq.timer_abandoned.disconnect(self.on_timer_abandoned)
        seq.paused.disconnect(self.on_pause_requested)
        seq.resumed.disconnect(self.on_resume_requested)
        seq.stopped.disconnect(self.on_stopped)
        self._forget_schedule()

    # ══════════════════════════════════════════════════════════════════
    #  TIMER EVENTS
    # ══════════════════════════════════════════════════════════════════

    def on_timer_started(self, timer: TimerDefinition) -> None:
        run = self._sequencer.run_id
        for rule in self._enabled_rules():
            for index, trigger in enumerate(rule.triggers):
                if self._sequencer.run_id != run:
                    return  # an action moved on to another timer
                key = (rule.id, index)
                if isinstance(trigger, TimerStart):
                    if trigger.timer_name == timer.name:
                        self._run_rule(rule)
                elif isinstance(trigger, AnyTimerStart):
                    self._run_rule(rule)
                elif isinstance(trigger, TimerTimeElapsed):
                    if trigger.timer_name == timer.name:
                        self._schedule_delayed(key, trigger.seconds)
                elif isinstance(trigger, RepeatingInterval):
                    self._schedule_interval(key, trigger.period)

    def on_timer_ticked(self, timer: TimerDefinition, time_remaining: float) -> None:
        run = self._sequencer.run_id
        for rule in self._enabled_rules():
            for index, trigger in enumerate(rule.triggers):
                if self._sequencer.run_id != run:
                    return
                if not isinstance(trigger, TimerTimeRemaining):
                    continue
                if trigger.timer_name != timer.name:
                    continue
                key = (rule.id, index)
                if time_remaining <= trigger.seconds:
                    if not self._armed.get(key):
                        self._armed[key] = True
                        self._run_rule(rule)
                else:
                    self._armed[key] = False

    def on_timer_ended(self, timer: TimerDefinition) -> None:
        self._forget_schedule()
        for rule in self._enabled_rules():
            for trigger in rule.triggers:
                if isinstance(trigger, TimerEnd):
                    if trigger.timer_name == timer.name:
                        self._run_rule(rule)
                elif isinstance(trigger, AnyTimerEnd):
                    self._run_rule(rule)

    def on_timer_abandoned(self, timer: TimerDefinition) -> None:
        logger.debug("Dropping automations scheduled for %s", timer.name)
        self._forget_schedule()

    def on_stopped(self) -> None:
        self._forget_schedule()

    # ══════════════════════════════════════════════════════════════════
    #  PAUSE / RESUME
    # ══════════════════════════════════════════════════════════════════

    def on_pause_requested(self) -> None:
        self._scheduler.pause_all()

    def on_resume_requested(self) -> None:
        self._scheduler.resume_all()
        if self._sequencer.current_timer is None:
            return

        # Re-derive the interval rules: drop tasks whose rule is gone or
        # changed, start rules that were enabled while paused.
        wanted: dict[tuple[int, int], float] = {}
        for rule in self._enabled_rules():
            for index, trigger in enumerate(rule.triggers):
                if isinstance(trigger, RepeatingInterval):
                    wanted[(rule.id, index)] = trigger.period

        for key, task in list(self._intervals.items()):
            if wanted.get(key) != task.interval:
                self._scheduler.cancel(task)
                del self._intervals[key]
        for key, period in wanted.items():
            if key not in self._intervals:
                self._schedule_interval(key, period)

    # ══════════════════════════════════════════════════════════════════
    #  COUNTER EVENTS
    # ══════════════════════════════════════════════════════════════════

    def on_counter_changed(self, counter, old_value: int, new_value: int) -> None:
        """Report a counter edit.  *counter* needs ``name`` and ``list_id``."""
        if counter.list_id != self._list_id or old_value == new_value:
            return
        if self._depth >= MAX_CASCADE_DEPTH:
            logger.warning(
                "Counter %r changed %d levels deep; not evaluating further",
                counter.name, self._depth,
            )
            return
        self._depth += 1
        try:
            for rule in self._enabled_rules():
                for trigger in rule.triggers:
                    if (
                        isinstance(trigger, CounterReachesValue)
                        and trigger.counter_name == counter.name
                        and new_value == trigger.value
                        and old_value != trigger.value
                    ):
                        self._run_rule(rule)
        finally:
            self._depth -= 1

    # ══════════════════════════════════════════════════════════════════
    #  ACTIONS
    # ══════════════════════════════════════════════════════════════════

    def _run_rule(self, rule: AutomationRule) -> None:
        logger.debug("Automation %r fired", rule.name)
        self.rule_fired.emit(rule)
        for action in rule.actions:
            try:
                self._execute(action)
            except Exception:
                logger.exception(
                    "Automation %r: action %r failed", rule.name, action,
                )

    def _execute(self, action) -> None:
        if isinstance(action, PlaySound):
            if self._player is not None:
                self._player.play(action.sound)
        elif isinstance(action, ModifyCounter):
            self._modify_counters(action.counter_name, action.delta)
        elif isinstance(action, ShowNotification):
            if self._notifier is not None:
                self._notifier.show(action.message)
        elif isinstance(action, PauseActiveTimer):
            self._sequencer.pause()
        elif isinstance(action, SkipToNextTimer):
            self._sequencer.skip_to_next()
        else:
            logger.debug("Ignoring unknown action %r", action)

    def _modify_counters(self, name: str, delta: int) -> None:
        changes = self._store.modify_counters(self._list_id, name, delta)
        if not changes:
            logger.debug("No counter named %r in list %d", name, self._list_id)
        for change in changes:
            if not change.changed:
                continue
            self.counter_changed.emit(change)
            self.on_counter_changed(change, change.old_value, change.new_value)

    # ══════════════════════════════════════════════════════════════════
    #  SCHEDULING
    # ══════════════════════════════════════════════════════════════════

    def _schedule_delayed(self, key: tuple[int, int], delay: float) -> None:
        previous = self._delayed.pop(key, None)
        if previous is not None:
            self._scheduler.cancel(previous)

        def fire() -> None:
            self._delayed.pop(key, None)
            self._run_scheduled(key[0])

        self._delayed[key] = self._scheduler.schedule_once(delay, fire)

    def _schedule_interval(self, key: tuple[int, int], period: float) -> None:
        previous = self._intervals.pop(key, None)
        if previous is not None:
            self._scheduler.cancel(previous)
        self._intervals[key] = self._scheduler.schedule_repeating(
            period, lambda: self._run_scheduled(key[0]),
        )

    def _run_scheduled(self, automation_id: int) -> None:
        # Re-read the rule so edits, disables and deletes since
        # scheduling are honoured.
        try:
            rule = self._store.get_automation(automation_id)
        except Exception:
            logger.exception("Could not load automation %d", automation_id)
            return
        if rule is None or not rule.enabled:
            return
        self._run_rule(rule)

    def _forget_schedule(self) -> None:
        self._scheduler.stop_all()
        self._intervals.clear()
        self._delayed.clear()
        self._armed.clear()

    # ══════════════════════════════════════════════════════════════════
    #  RULES
    # ══════════════════════════════════════════════════════════════════

    def _enabled_rules(self) -> list[AutomationRule]:
        try:
            rules = self._store.automations_for_list(self._list_id)
        except Exception:
            logger.exception("Could not load automations for list %d", self._list_id)
            return []
        return [rule for rule in rules if rule.enabled]
