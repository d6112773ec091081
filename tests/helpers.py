"""Shared test helpers for Tabletop."""

from tabletop.timer.sequencer import SequencerState, TimerSequencer


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


class FakePlayer:
    """Records every ``play()`` call instead of making noise."""

    def __init__(self):
        self.played: list[str] = []

    def play(self, name: str) -> None:
        self.played.append(name)

    def count(self, name: str) -> int:
        return self.played.count(name)


class FakeNotifier:
    def __init__(self):
        self.messages: list[str] = []

    def show(self, message: str) -> None:
        self.messages.append(message)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def run_until_idle(sequencer: TimerSequencer, delta: float = 1.0, limit: int = 10_000) -> int:
    """Tick *sequencer* by *delta* until it goes IDLE; returns tick count."""
    ticks = 0
    while sequencer.state != SequencerState.IDLE:
        if sequencer.state == SequencerState.PAUSED:
            raise AssertionError("sequencer paused while running to idle")
        sequencer.tick(delta)
        ticks += 1
        if ticks >= limit:
            raise AssertionError("sequencer never went idle")
    return ticks


def finish_timer(sequencer: TimerSequencer) -> None:
    """Fast-complete the active timer with one oversized tick."""
    sequencer.tick(sequencer.time_remaining + 1)


def fire(task) -> None:
    """Deliver a scheduled task's timeout as the event loop would."""
    task._fire()
