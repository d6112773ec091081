"""SQLAlchemy ORM models for Tabletop.

A ``TimerList`` owns its timers, counters and automations; an
``Automation`` owns its trigger and action rows.  Deleting an owner
deletes its children (ORM cascade plus ``ON DELETE CASCADE``).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, ForeignKey
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


class TimerList(Base):
    """A named, ordered set of timers with its counters and automations."""

    __tablename__ = "timer_lists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    color_hex = Column(String(9), nullable=False, default="#007AFF")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_used_at = Column(DateTime, nullable=True)

    timers = relationship(
        "TimerItem", back_populates="timer_list",
        cascade="all, delete-orphan",
        order_by="TimerItem.order",
    )
    counters = relationship(
        "Counter", back_populates="timer_list",
        cascade="all, delete-orphan",
        order_by="Counter.order",
    )
    automations = relationship(
        "Automation", back_populates="timer_list",
        cascade="all, delete-orphan",
        order_by="Automation.order",
    )

    def __repr__(self) -> str:
        return f"<TimerList id={self.id} name={self.name!r}>"


class TimerItem(Base):
    """One countdown in a list.  ``order`` is its sequence position."""

    __tablename__ = "timers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    list_id = Column(
        Integer, ForeignKey("timer_lists.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(120), nullable=False, default="New Timer")
    duration = Column(Float, nullable=False, default=60.0)  # seconds
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    timer_list = relationship("TimerList", back_populates="timers")

    def __repr__(self) -> str:
        return (
            f"<TimerItem id={self.id} name={self.name!r} "
            f"duration={self.duration} order={self.order}>"
        )


class Counter(Base):
    """Bounded integer counter.

    Mutators never notify anyone; whoever calls them is responsible for
    reporting the ``(old, new)`` pair to the automation engine.
    """

    __tablename__ = "counters"

    id = Column(Integer, primary_key=True, autoincrement=True)
    list_id = Column(
        Integer, ForeignKey("timer_lists.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(120), nullable=False)
    value = Column(Integer, nullable=False, default=0)
    initial_value = Column(Integer, nullable=False, default=0)
    min_value = Column(Integer, nullable=True)
    max_value = Column(Integer, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    timer_list = relationship("TimerList", back_populates="counters")

    def __init__(self, **kwargs) -> None:
        min_value = kwargs.get("min_value")
        max_value = kwargs.get("max_value")
        if min_value is not None and max_value is not None and min_value > max_value:
            raise ValueError(
                f"min_value {min_value} is greater than max_value {max_value}"
            )
        initial = _clamp(kwargs.pop("initial_value", 0) or 0, min_value, max_value)
        kwargs.setdefault("value", initial)
        super().__init__(initial_value=initial, **kwargs)

    # ── operations ────────────────────────────────────────────────────

    @property
    def can_increment(self) -> bool:
        return self.max_value is None or self.value < self.max_value

    @property
    def can_decrement(self) -> bool:
        return self.min_value is None or self.value > self.min_value

    def increment(self) -> None:
        if not self.can_increment:
            return
        self.value += 1

    def decrement(self) -> None:
        if not self.can_decrement:
            return
        self.value -= 1

    def reset(self) -> None:
        self.value = self.initial_value

    def apply_delta(self, delta: int) -> None:
        """Add *delta*, clamped into ``[min_value, max_value]``."""
        self.value = _clamp(self.value + delta, self.min_value, self.max_value)

    def __repr__(self) -> str:
        return (
            f"<Counter id={self.id} name={self.name!r} value={self.value} "
            f"range=[{self.min_value}, {self.max_value}]>"
        )


class Automation(Base):
    """A rule: triggers that, when satisfied, run the actions."""

    __tablename__ = "automations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    list_id = Column(
        Integer, ForeignKey("timer_lists.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(120), nullable=False)
    is_enabled = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    timer_list = relationship("TimerList", back_populates="automations")
    triggers = relationship(
        "TriggerRecord", back_populates="automation",
        cascade="all, delete-orphan",
        order_by="TriggerRecord.id",
    )
    actions = relationship(
        "ActionRecord", back_populates="automation",
        cascade="all, delete-orphan",
        order_by="ActionRecord.id",
    )

    def __repr__(self) -> str:
        return (
            f"<Automation id={self.id} name={self.name!r} "
            f"enabled={self.is_enabled}>"
        )


class TriggerRecord(Base):
    """Stored form of a trigger.  Which columns are used depends on ``kind``."""

    __tablename__ = "automation_triggers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    automation_id = Column(
        Integer, ForeignKey("automations.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind = Column(String(32), nullable=False)
    timer_name = Column(String(120), nullable=True)
    seconds = Column(Float, nullable=True)
    counter_name = Column(String(120), nullable=True)
    counter_value = Column(Integer, nullable=True)

    automation = relationship("Automation", back_populates="triggers")

    def __repr__(self) -> str:
        return f"<TriggerRecord id={self.id} kind={self.kind}>"


class ActionRecord(Base):
    """Stored form of an action.  Which columns are used depends on ``kind``."""

    __tablename__ = "automation_actions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    automation_id = Column(
        Integer, ForeignKey("automations.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind = Column(String(32), nullable=False)
    sound = Column(String(32), nullable=True)
    counter_name = Column(String(120), nullable=True)
    delta = Column(Integer, nullable=True)
    message = Column(String(500), nullable=True)

    automation = relationship("Automation", back_populates="actions")

    def __repr__(self) -> str:
        return f"<ActionRecord id={self.id} kind={self.kind}>"


def _clamp(value: int, low: int | None, high: int | None) -> int:
    if low is not None and value < low:
        return low
    if high is not None and value > high:
        return high
    return value
