"""Shared pytest fixtures for Tabletop tests."""

import os
import sys
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session as OrmSession

from tabletop.database.db import configure_engine, init_db
from tabletop.database.store import TimerStore
from tabletop.automation.engine import AutomationEngine
from tabletop.timer.scheduler import Scheduler
from tabletop.timer.sequencer import TimerSequencer

from helpers import FakeClock, FakeNotifier, FakePlayer


@pytest.fixture(scope="session")
def qapp():
    """A single QApplication instance shared across the entire test run."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def store():
    return TimerStore()


@pytest.fixture
def fail_next_commit(monkeypatch):
    """Call the returned function to make the next database commit fail."""
    real_commit = OrmSession.commit
    armed = []

    def commit(self):
        if armed:
            armed.pop()
            raise OperationalError(
                "UPDATE counters", {}, Exception("database is locked")
            )
        return real_commit(self)

    monkeypatch.setattr(OrmSession, "commit", commit)
    return lambda: armed.append(True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def scheduler(qapp, clock):
    return Scheduler(clock=clock)


@pytest.fixture
def game(store):
    """A list with three timers A(10s), B(5s), C(5s) and a Score counter."""
    timer_list = store.create_list("Game")
    store.add_timer(timer_list.id, "A", 10)
    store.add_timer(timer_list.id, "B", 5)
    store.add_timer(timer_list.id, "C", 5)
    store.add_counter(timer_list.id, "Score", initial_value=0, min_value=0, max_value=10)
    return timer_list


@pytest.fixture
def sequencer(qapp, store, game, player):
    """Sequencer over the game list, autoplay ON."""
    return TimerSequencer(
        timers=store.timers_for_list(game.id), autoplay=True, player=player,
    )


@pytest.fixture
def engine(sequencer, scheduler, store, game, player, notifier):
    """Engine wired to the game list's sequencer."""
    return AutomationEngine(
        game.id, sequencer, scheduler, store, player=player, notifier=notifier,
    )
