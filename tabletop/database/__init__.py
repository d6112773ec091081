"""Database package."""

from .db import get_session, init_db, configure_engine
from .models import (
    TimerList, TimerItem, Counter, Automation, TriggerRecord, ActionRecord,
)

__all__ = [
    "get_session",
    "init_db",
    "configure_engine",
    "TimerList",
    "TimerItem",
    "Counter",
    "Automation",
    "TriggerRecord",
    "ActionRecord",
]
