"""Timer package."""

from .sequencer import (
    TimerSequencer,
    SequencerState,
    TimerDefinition,
    TICK_INTERVAL,
    COMPLETION_SOUND,
    format_time,
)
from .scheduler import Scheduler, ScheduledTask

__all__ = [
    "TimerSequencer",
    "SequencerState",
    "TimerDefinition",
    "TICK_INTERVAL",
    "COMPLETION_SOUND",
    "format_time",
    "Scheduler",
    "ScheduledTask",
]
