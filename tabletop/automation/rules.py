"""Trigger and action variants for automations.

Triggers
--------
TimerStart(timer_name)                  named timer starts
TimerEnd(timer_name)                    named timer runs out
TimerTimeRemaining(timer_name, seconds) named timer drops to ``seconds`` left
TimerTimeElapsed(timer_name, seconds)   ``seconds`` after named timer starts
RepeatingInterval(period)               every ``period`` seconds while a timer runs
CounterReachesValue(counter_name, value)
AnyTimerStart() / AnyTimerEnd()

Actions
-------
PlaySound(sound), ModifyCounter(counter_name, delta),
ShowNotification(message), PauseActiveTimer(), SkipToNextTimer()

Timers and counters are referred to by *name*.  Names are resolved
against the owning list when the rule is evaluated, so a rule keeps
working when the timer it names is recreated, and silently does nothing
when no timer or counter carries that name any more.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from ..database.models import ActionRecord, TriggerRecord


SOUND_IDS = ("bell", "chime", "alert", "notification", "custom")

SOUND_LABELS: dict[str, str] = {
    "bell": "Bell",
    "chime": "Chime",
    "alert": "Alert",
    "notification": "Notification",
    "custom": "Custom",
}


class InvalidAutomationError(ValueError):
    """Raised when an automation is saved with a missing or bad field."""


# ── triggers ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TimerStart:
    timer_name: str
    kind = "timer_start"


@dataclass(frozen=True)
class TimerEnd:
    timer_name: str
    kind = "timer_end"


@dataclass(frozen=True)
class TimerTimeRemaining:
    timer_name: str
    seconds: float
    kind = "timer_time_remaining"


@dataclass(frozen=True)
class TimerTimeElapsed:
    timer_name: str
    seconds: float
    kind = "timer_time_elapsed"


@dataclass(frozen=True)
class RepeatingInterval:
    period: float
    kind = "repeating_interval"


@dataclass(frozen=True)
class CounterReachesValue:
    counter_name: str
    value: int
    kind = "counter_reaches_value"


@dataclass(frozen=True)
class AnyTimerStart:
    kind = "any_timer_start"


@dataclass(frozen=True)
class AnyTimerEnd:
    kind = "any_timer_end"


Trigger = Union[
    TimerStart, TimerEnd, TimerTimeRemaining, TimerTimeElapsed,
    RepeatingInterval, CounterReachesValue, AnyTimerStart, AnyTimerEnd,
]

TRIGGER_TYPES: tuple[type, ...] = (
    TimerStart, TimerEnd, TimerTimeRemaining, TimerTimeElapsed,
    RepeatingInterval, CounterReachesValue, AnyTimerStart, AnyTimerEnd,
)


# ── actions ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PlaySound:
    sound: str = "bell"
    kind = "play_sound"


@dataclass(frozen=True)
class ModifyCounter:
    counter_name: str
    delta: int = 1
    kind = "modify_counter"


@dataclass(frozen=True)
class ShowNotification:
    message: str
    kind = "show_notification"


@dataclass(frozen=True)
class PauseActiveTimer:
    kind = "pause_timer"


@dataclass(frozen=True)
class SkipToNextTimer:
    kind = "skip_timer"


Action = Union[
    PlaySound, ModifyCounter, ShowNotification, PauseActiveTimer, SkipToNextTimer,
]

ACTION_TYPES: tuple[type, ...] = (
    PlaySound, ModifyCounter, ShowNotification, PauseActiveTimer, SkipToNextTimer,
)


@dataclass(frozen=True)
class AutomationRule:
    """Read-only snapshot of a stored automation."""

    id: int
    name: str
    enabled: bool = True
    order: int = 0
    triggers: tuple = field(default_factory=tuple)
    actions: tuple = field(default_factory=tuple)


# ── kind queries ──────────────────────────────────────────────────────────


_TIMER_TRIGGERS = (TimerStart, TimerEnd, TimerTimeRemaining, TimerTimeElapsed)


# ── validation ────────────────────────────────────────────────────────────


def validate_trigger(trigger: Trigger) -> None:
    if not isinstance(trigger, TRIGGER_TYPES):
        raise InvalidAutomationError(f"not a trigger: {trigger!r}")
    if isinstance(trigger, _TIMER_TRIGGERS) and not trigger.timer_name:
        raise InvalidAutomationError("choose a timer for this trigger")
    if isinstance(trigger, (TimerTimeRemaining, TimerTimeElapsed)) and trigger.seconds < 0:
        raise InvalidAutomationError("seconds must not be negative")
    if isinstance(trigger, RepeatingInterval) and trigger.period <= 0:
        raise InvalidAutomationError("interval must be positive")
    if isinstance(trigger, CounterReachesValue) and not trigger.counter_name:
        raise InvalidAutomationError("choose a counter for this trigger")


def validate_action(action: Action) -> None:
    if not isinstance(action, ACTION_TYPES):
        raise InvalidAutomationError(f"not an action: {action!r}")
    if isinstance(action, ModifyCounter) and not action.counter_name:
        raise InvalidAutomationError("choose a counter for this action")
    if isinstance(action, ShowNotification) and not action.message:
        raise InvalidAutomationError("notification message is empty")
    if isinstance(action, PlaySound) and action.sound not in SOUND_IDS:
        raise InvalidAutomationError(f"unknown sound {action.sound!r}")


def validate_rule(name: str, triggers, actions) -> None:
    """Reject anything the engine could not evaluate."""
    if not name or not name.strip():
        raise InvalidAutomationError("automation needs a name")
    if not triggers:
        raise InvalidAutomationError("automation needs a trigger")
    if not actions:
        raise InvalidAutomationError("automation needs an action")
    for trigger in triggers:
        validate_trigger(trigger)
    for action in actions:
        validate_action(action)


# ── record conversion ─────────────────────────────────────────────────────


def trigger_to_record(trigger: Trigger) -> TriggerRecord:
    record = TriggerRecord(kind=trigger.kind)
    if isinstance(trigger, _TIMER_TRIGGERS):
        record.timer_name = trigger.timer_name
    if isinstance(trigger, (TimerTimeRemaining, TimerTimeElapsed)):
        record.seconds = trigger.seconds
    elif isinstance(trigger, RepeatingInterval):
        record.seconds = trigger.period
    elif isinstance(trigger, CounterReachesValue):
        record.counter_name = trigger.counter_name
        record.counter_value = trigger.value
    return record


def trigger_from_record(record: TriggerRecord) -> Trigger | None:
    """Rebuild a trigger; ``None`` when the row is incomplete or unknown."""
    kind = record.kind
    if kind in ("any_timer_start", "any_timer_end"):
        return AnyTimerStart() if kind == "any_timer_start" else AnyTimerEnd()
    if kind == "repeating_interval":
        if record.seconds is None or record.seconds <= 0:
            return None
        return RepeatingInterval(record.seconds)
    if kind == "counter_reaches_value":
        if not record.counter_name or record.counter_value is None:
            return None
        return CounterReachesValue(record.counter_name, record.counter_value)
    if not record.timer_name:
        return None
    if kind == "timer_start":
        return TimerStart(record.timer_name)
    if kind == "timer_end":
        return TimerEnd(record.timer_name)
    if record.seconds is None:
        return None
    if kind == "timer_time_remaining":
        return TimerTimeRemaining(record.timer_name, record.seconds)
    if kind == "timer_time_elapsed":
        return TimerTimeElapsed(record.timer_name, record.seconds)
    return None


def action_to_record(action: Action) -> ActionRecord:
    record = ActionRecord(kind=action.kind)
    if isinstance(action, PlaySound):
        record.sound = action.sound
    elif isinstance(action, ModifyCounter):
        record.counter_name = action.counter_name
        record.delta = action.delta
    elif isinstance(action, ShowNotification):
        record.message = action.message
    return record


def action_from_record(record: ActionRecord) -> Action | None:
    """Rebuild an action; ``None`` when the row is incomplete or unknown."""
    kind = record.kind
    if kind == "play_sound":
        return PlaySound(record.sound or "bell")
    if kind == "modify_counter":
        if not record.counter_name or record.delta is None:
            return None
        return ModifyCounter(record.counter_name, record.delta)
    if kind == "show_notification":
        return ShowNotification(record.message) if record.message else None
    if kind == "pause_timer":
        return PauseActiveTimer()
    if kind == "skip_timer":
        return SkipToNextTimer()
    return None


# ── descriptions ──────────────────────────────────────────────────────────


def describe_trigger(trigger: Trigger) -> str:
    if isinstance(trigger, TimerStart):
        return f"Timer Starts: {trigger.timer_name}"
    if isinstance(trigger, TimerEnd):
        return f"Timer Ends: {trigger.timer_name}"
    if isinstance(trigger, TimerTimeRemaining):
        return f"{_secs(trigger.seconds)}s Before {trigger.timer_name} Ends"
    if isinstance(trigger, TimerTimeElapsed):
        return f"{_secs(trigger.seconds)}s After {trigger.timer_name} Starts"
    if isinstance(trigger, RepeatingInterval):
        return f"Every {_secs(trigger.period)}s"
    if isinstance(trigger, CounterReachesValue):
        return f"{trigger.counter_name} Reaches {trigger.value}"
    if isinstance(trigger, AnyTimerStart):
        return "Any Timer Starts"
    return "Any Timer Ends"


def describe_action(action: Action) -> str:
    if isinstance(action, PlaySound):
        return f"Play Sound ({SOUND_LABELS.get(action.sound, action.sound)})"
    if isinstance(action, ModifyCounter):
        return f"Modify Counter: {action.counter_name} ({action.delta:+d})"
    if isinstance(action, ShowNotification):
        return f'Show Notification ("{action.message}")'
    if isinstance(action, PauseActiveTimer):
        return "Pause Timer"
    return "Skip to Next Timer"


def describe_rule(rule: AutomationRule) -> str:
    when = ", ".join(describe_trigger(t) for t in rule.triggers) or "Never"
    then = ", ".join(describe_action(a) for a in rule.actions) or "Nothing"
    return f"{when} → {then}"


def _secs(value: float) -> str:
    return f"{value:g}"
