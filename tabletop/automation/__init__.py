"""Automation package."""

from .engine import AutomationEngine, MAX_CASCADE_DEPTH
from .rules import (
    AutomationRule,
    InvalidAutomationError,
    SOUND_IDS,
    TimerStart,
    TimerEnd,
    TimerTimeRemaining,
    TimerTimeElapsed,
    RepeatingInterval,
    CounterReachesValue,
    AnyTimerStart,
    AnyTimerEnd,
    PlaySound,
    ModifyCounter,
    ShowNotification,
    PauseActiveTimer,
    SkipToNextTimer,
    describe_rule,
)

__all__ = [
    "AutomationEngine",
    "MAX_CASCADE_DEPTH",
    "AutomationRule",
    "InvalidAutomationError",
    "SOUND_IDS",
    "TimerStart",
    "TimerEnd",
    "TimerTimeRemaining",
    "TimerTimeElapsed",
    "RepeatingInterval",
    "CounterReachesValue",
    "AnyTimerStart",
    "AnyTimerEnd",
    "PlaySound",
    "ModifyCounter",
    "ShowNotification",
    "PauseActiveTimer",
    "SkipToNextTimer",
    "describe_rule",
]
