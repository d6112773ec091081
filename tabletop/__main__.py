"""Run Tabletop from the command line: python -m tabletop.

    python -m tabletop demo                 create a sample list
    python -m tabletop lists                show lists and their automations
    python -m tabletop run "Board Game"     run a list until it finishes
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys

from PyQt6.QtCore import QCoreApplication, QTimer

from .automation.rules import (
    AnyTimerEnd,
    CounterReachesValue,
    ModifyCounter,
    PlaySound,
    ShowNotification,
    TimerTimeRemaining,
    describe_rule,
)
from .database.db import init_db
from .database.store import TimerStore
from .notifications import Notifier
from .session import ListSession
from .settings import load_settings
from .timer.sequencer import SequencerState, format_time

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


# ── commands ──────────────────────────────────────────────────────────────


def _cmd_demo(store: TimerStore, args) -> int:
    timer_list = store.create_list(args.name)
    store.add_timer(timer_list.id, "Setup", 10)
    store.add_timer(timer_list.id, "Player Turn", 30)
    store.add_timer(timer_list.id, "Cleanup", 10)
    store.add_counter(timer_list.id, "Round", initial_value=1, min_value=1, max_value=5)
    store.save_automation(
        timer_list.id, "Turn warning",
        [TimerTimeRemaining("Player Turn", 5)], [PlaySound("alert")],
    )
    store.save_automation(
        timer_list.id, "Next round",
        [AnyTimerEnd()], [ModifyCounter("Round", 1)],
    )
    store.save_automation(
        timer_list.id, "Last round",
        [CounterReachesValue("Round", 5)], [ShowNotification("Final round!")],
    )
    print(f"Created list {timer_list.name!r} (id {timer_list.id})")
    return 0


def _cmd_lists(store: TimerStore, args) -> int:
    for timer_list in store.all_lists():
        timers = store.timers_for_list(timer_list.id)
        print(f"{timer_list.name} ({len(timers)} timers)")
        for timer in timers:
            print(f"  {timer.order + 1}. {timer.name} {format_time(timer.duration)}")
        for counter in store.counters_for_list(timer_list.id):
            print(f"  # {counter.name} = {counter.value}")
        for rule in store.automations_for_list(timer_list.id):
            flag = "" if rule.enabled else " (off)"
            print(f"  * {rule.name}{flag}: {describe_rule(rule)}")
    return 0


def _cmd_run(store: TimerStore, args) -> int:
    timer_list = store.find_list(args.name)
    if timer_list is None:
        print(f"No list named {args.name!r}", file=sys.stderr)
        return 1
    if not store.timers_for_list(timer_list.id):
        print(f"List {timer_list.name!r} has no timers", file=sys.stderr)
        return 1

    settings = load_settings()
    if args.no_autoplay:
        settings.autoplay_enabled = False

    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    app.setApplicationName("Tabletop")

    player = None
    if settings.sound_enabled and not args.mute:
        from .audio.sounds import SoundManager
        player = SoundManager(app)
        player.apply_settings(settings)
        if args.verbose_sounds:
            player.played.connect(lambda name: print(f"~ {name}"))

    notifier = Notifier(app, enabled=settings.notifications_enabled)
    notifier.shown.connect(lambda message: print(f"[!] {message}"))

    session = ListSession(
        timer_list.id, store=store, settings=settings,
        player=player, notifier=notifier,
    )
    seq = session.sequencer
    seq.timer_started.connect(
        lambda t: print(f"> {t.name} ({format_time(t.duration)})")
    )
    seq.timer_ended.connect(lambda t: print(f"< {t.name} done"))
    session.counter_changed.connect(
        lambda c: print(f"# {c.name}: {c.old_value} -> {c.new_value}")
    )
    seq.stopped.connect(app.quit)

    # Nobody is at the keyboard to resume, so a pause ends the run unless
    # --resume-after says when to pick it up again.
    def on_paused():
        remaining = format_time(seq.time_remaining)
        if args.resume_after is None:
            print(f"|| paused at {remaining}; ending run")
            session.stop()
        else:
            print(f"|| paused at {remaining}; resuming in {args.resume_after:g}s")
            QTimer.singleShot(int(args.resume_after * 1000), session.resume)

    seq.paused.connect(on_paused)

    # Ctrl+C stops the run cleanly.  Python only sees the signal between
    # event loop iterations, so wake the loop regularly.
    previous_handler = signal.signal(signal.SIGINT, lambda *_: session.stop())
    wake = QTimer(app)
    wake.setInterval(200)
    wake.timeout.connect(lambda: None)
    try:
        session.start(args.start_at)
        status = 0
        if seq.state != SequencerState.IDLE:
            wake.start()
            status = app.exec()
    finally:
        wake.stop()
        signal.signal(signal.SIGINT, previous_handler)
        session.close()
    return status


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="tabletop")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    demo = sub.add_parser("demo", help="create a sample timer list")
    demo.add_argument("--name", default="Board Game")
    demo.set_defaults(func=_cmd_demo)

    lists = sub.add_parser("lists", help="show timer lists")
    lists.set_defaults(func=_cmd_lists)

    run = sub.add_parser("run", help="run a timer list")
    run.add_argument("name")
    run.add_argument("--from", dest="start_at", type=int, default=0)
    run.add_argument("--no-autoplay", action="store_true")
    run.add_argument("--mute", action="store_true")
    run.add_argument(
        "--show-sounds", dest="verbose_sounds", action="store_true",
        help="print the name of every sound played",
    )
    run.add_argument(
        "--resume-after", type=float, default=None, metavar="SECONDS",
        help="resume after an automation pauses the timer (default: end the run)",
    )
    run.set_defaults(func=_cmd_run)

    args = parser.parse_args(argv)
    configure_logging(args.log_level or load_settings().log_level)
    init_db()
    return args.func(TimerStore(), args)


if __name__ == "__main__":
    sys.exit(main())
