"""Persistence for timer lists and everything they own.

``TimerStore`` is the only thing the runtime (sequencer session and
automation engine) knows about the database.  Reads hand back plain
snapshots (``TimerDefinition``, ``AutomationRule``) or detached ORM rows;
writes open a short ``get_session()`` each.

Counter writes are best-effort: if the commit fails the new value is
still reported, kept in memory as the counter's current value, and
written again with the next save of that counter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError

from .db import get_session
from .models import Automation, Counter, TimerItem, TimerList
from ..automation.rules import (
    AutomationRule,
    action_from_record,
    action_to_record,
    trigger_from_record,
    trigger_to_record,
    validate_rule,
)
from ..timer.sequencer import TimerDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CounterChange:
    """One counter's value before and after a mutation."""

    counter_id: int
    list_id: int
    name: str
    old_value: int
    new_value: int

    @property
    def changed(self) -> bool:
        return self.old_value != self.new_value


class TimerStore:
    """CRUD over timer lists, timers, counters and automations."""

    def __init__(self):
        # counter id -> value whose save failed; read in place of the row
        self._unsaved: dict[int, int] = {}

    # ══════════════════════════════════════════════════════════════════
    #  LISTS
    # ══════════════════════════════════════════════════════════════════

    def create_list(self, name: str, color_hex: str = "#007AFF") -> TimerList:
        with get_session() as db:
            timer_list = TimerList(name=name, color_hex=color_hex)
            db.add(timer_list)
        return timer_list

    def get_list(self, list_id: int) -> TimerList | None:
        with get_session() as db:
            return db.get(TimerList, list_id)

    def find_list(self, name: str) -> TimerList | None:
        with get_session() as db:
            return db.query(TimerList).filter(TimerList.name == name).first()

    def all_lists(self) -> list[TimerList]:
        """Most recently used first, never-used lists last."""
        with get_session() as db:
            lists = db.query(TimerList).all()
        return sorted(
            lists,
            key=lambda tl: (tl.last_used_at or datetime.min, tl.created_at),
            reverse=True,
        )

    def rename_list(self, list_id: int, name: str) -> None:
        with get_session() as db:
            timer_list = db.get(TimerList, list_id)
            if timer_list is not None:
                timer_list.name = name

    def touch_list(self, list_id: int) -> None:
        """Stamp ``last_used_at``."""
        with get_session() as db:
            timer_list = db.get(TimerList, list_id)
            if timer_list is not None:
                timer_list.last_used_at = datetime.now()

    def delete_list(self, list_id: int) -> None:
        """Delete a list with all its timers, counters and automations."""
        with get_session() as db:
            timer_list = db.get(TimerList, list_id)
            if timer_list is not None:
                db.delete(timer_list)

    # ══════════════════════════════════════════════════════════════════
    #  TIMERS
    # ══════════════════════════════════════════════════════════════════

    def add_timer(
        self, list_id: int, name: str = "New Timer", duration: float = 60.0
    ) -> TimerItem:
        if duration <= 0:
            raise ValueError("timer duration must be positive")
        with get_session() as db:
            order = db.query(TimerItem).filter(TimerItem.list_id == list_id).count()
            item = TimerItem(
                list_id=list_id, name=name or "Timer", duration=duration, order=order,
            )
            db.add(item)
        return item

    def update_timer(
        self,
        timer_id: int,
        *,
        name: str | None = None,
        duration: float | None = None,
    ) -> None:
        if duration is not None and duration <= 0:
            raise ValueError("timer duration must be positive")
        with get_session() as db:
            item = db.get(TimerItem, timer_id)
            if item is None:
                return
            if name is not None:
                item.name = name
            if duration is not None:
                item.duration = duration

    def delete_timer(self, timer_id: int) -> None:
        with get_session() as db:
            item = db.get(TimerItem, timer_id)
            if item is None:
                return
            list_id = item.list_id
            db.delete(item)
            db.flush()
            _renumber(
                db.query(TimerItem)
                .filter(TimerItem.list_id == list_id)
                .order_by(TimerItem.order)
                .all()
            )

    def move_timer(self, timer_id: int, to_index: int) -> None:
        """Move a timer to *to_index* and renumber the list 0..n-1."""
        with get_session() as db:
            item = db.get(TimerItem, timer_id)
            if item is None:
                return
            items = (
                db.query(TimerItem)
                .filter(TimerItem.list_id == item.list_id)
                .order_by(TimerItem.order)
                .all()
            )
            items.remove(item)
            to_index = max(0, min(to_index, len(items)))
            items.insert(to_index, item)
            _renumber(items)

    def timers_for_list(self, list_id: int) -> list[TimerDefinition]:
        with get_session() as db:
            items = (
                db.query(TimerItem)
                .filter(TimerItem.list_id == list_id)
                .order_by(TimerItem.order)
                .all()
            )
            return [
                TimerDefinition(
                    id=item.id, name=item.name,
                    duration=item.duration, order=item.order,
                )
                for item in items
            ]

    # ══════════════════════════════════════════════════════════════════
    #  COUNTERS
    # ══════════════════════════════════════════════════════════════════

    def add_counter(
        self,
        list_id: int,
        name: str,
        initial_value: int = 0,
        min_value: int | None = None,
        max_value: int | None = None,
    ) -> Counter:
        with get_session() as db:
            order = db.query(Counter).filter(Counter.list_id == list_id).count()
            counter = Counter(
                list_id=list_id, name=name, initial_value=initial_value,
                min_value=min_value, max_value=max_value, order=order,
            )
            db.add(counter)
        return counter

    def get_counter(self, counter_id: int) -> Counter | None:
        with get_session() as db:
            counter = db.get(Counter, counter_id)
        if counter is not None:
            self._overlay_unsaved(counter)
        return counter

    def delete_counter(self, counter_id: int) -> None:
        with get_session() as db:
            counter = db.get(Counter, counter_id)
            if counter is not None:
                db.delete(counter)
        self._unsaved.pop(counter_id, None)

    def counters_for_list(self, list_id: int) -> list[Counter]:
        with get_session() as db:
            counters = (
                db.query(Counter)
                .filter(Counter.list_id == list_id)
                .order_by(Counter.order)
                .all()
            )
        for counter in counters:
            self._overlay_unsaved(counter)
        return counters

    def mutate_counter(
        self, counter_id: int, mutate: Callable[[Counter], None]
    ) -> CounterChange | None:
        """Apply *mutate* to one counter and save.  ``None`` if it's gone."""
        def select(db):
            counter = db.get(Counter, counter_id)
            return [counter] if counter is not None else []

        changes = self._mutate_counters(select, mutate)
        return changes[0] if changes else None

    def modify_counters(
        self, list_id: int, name: str, delta: int
    ) -> list[CounterChange]:
        """Add *delta* (clamped) to every counter in the list named *name*."""
        return self._mutate_counters(
            lambda db: (
                db.query(Counter)
                .filter(Counter.list_id == list_id, Counter.name == name)
                .order_by(Counter.order)
                .all()
            ),
            lambda counter: counter.apply_delta(delta),
        )

    def reset_counters(self, list_id: int) -> list[CounterChange]:
        return self._mutate_counters(
            lambda db: (
                db.query(Counter)
                .filter(Counter.list_id == list_id)
                .order_by(Counter.order)
                .all()
            ),
            Counter.reset,
        )

    def _mutate_counters(self, select, mutate) -> list[CounterChange]:
        changes: list[CounterChange] = []
        try:
            with get_session() as db:
                for counter in select(db):
                    # Start from the last reported value so an earlier
                    # failed save is written along with this one.
                    self._overlay_unsaved(counter)
                    old = counter.value
                    mutate(counter)
                    changes.append(CounterChange(
                        counter.id, counter.list_id, counter.name,
                        old, counter.value,
                    ))
        except SQLAlchemyError:
            logger.warning("Could not save counter change", exc_info=True)
            for change in changes:
                self._unsaved[change.counter_id] = change.new_value
        else:
            for change in changes:
                self._unsaved.pop(change.counter_id, None)
        return changes

    def _overlay_unsaved(self, counter: Counter) -> None:
        if counter.id in self._unsaved:
            counter.value = self._unsaved[counter.id]

    # ══════════════════════════════════════════════════════════════════
    #  AUTOMATIONS
    # ══════════════════════════════════════════════════════════════════

    def save_automation(
        self,
        list_id: int,
        name: str,
        triggers: Iterable,
        actions: Iterable,
        *,
        enabled: bool = True,
        automation_id: int | None = None,
    ) -> AutomationRule:
        """Create an automation, or replace an existing one's rules.

        Editing never patches triggers or actions in place: the old rows
        are deleted and new ones written in the same transaction.
        """
        triggers = list(triggers)
        actions = list(actions)
        validate_rule(name, triggers, actions)

        with get_session() as db:
            if automation_id is None:
                order = (
                    db.query(Automation)
                    .filter(Automation.list_id == list_id)
                    .count()
                )
                automation = Automation(list_id=list_id, name=name, order=order)
                db.add(automation)
            else:
                automation = db.get(Automation, automation_id)
                if automation is None or automation.list_id != list_id:
                    raise LookupError(f"no automation {automation_id} in list {list_id}")
                automation.name = name
                automation.triggers.clear()
                automation.actions.clear()
                db.flush()
            automation.is_enabled = enabled
            automation.triggers.extend(trigger_to_record(t) for t in triggers)
            automation.actions.extend(action_to_record(a) for a in actions)
            db.flush()
            return _to_rule(automation)

    def set_automation_enabled(self, automation_id: int, enabled: bool) -> None:
        with get_session() as db:
            automation = db.get(Automation, automation_id)
            if automation is not None:
                automation.is_enabled = enabled

    def delete_automation(self, automation_id: int) -> None:
        with get_session() as db:
            automation = db.get(Automation, automation_id)
            if automation is not None:
                db.delete(automation)

    def get_automation(self, automation_id: int) -> AutomationRule | None:
        with get_session() as db:
            automation = db.get(Automation, automation_id)
            return _to_rule(automation) if automation is not None else None

    def automations_for_list(self, list_id: int) -> list[AutomationRule]:
        with get_session() as db:
            automations = (
                db.query(Automation)
                .filter(Automation.list_id == list_id)
                .order_by(Automation.order, Automation.id)
                .all()
            )
            return [_to_rule(a) for a in automations]


# ── helpers ───────────────────────────────────────────────────────────────


def _renumber(rows) -> None:
    for index, row in enumerate(rows):
        row.order = index


def _to_rule(automation: Automation) -> AutomationRule:
    triggers = (trigger_from_record(r) for r in automation.triggers)
    actions = (action_from_record(r) for r in automation.actions)
    return AutomationRule(
        id=automation.id,
        name=automation.name,
        enabled=automation.is_enabled,
        order=automation.order,
        triggers=tuple(t for t in triggers if t is not None),
        actions=tuple(a for a in actions if a is not None),
    )
