#!/usr/bin/env python3
"""
FocusCycle - a local-only Pomodoro-style work/rest cycle timer.

Runs the timer core headless on the Qt event loop and manages the stored
configuration, preferences, history and statistics:
- Focus / break / long break cycle with configurable durations
- Session history and cumulative statistics with a day streak
- JSON backup export and import

Usage:
    pip install -e .
    python main.py run
    python main.py config --focus 50 --break 10
    python main.py export backup.json

License: MIT
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from PySide6.QtCore import QCoreApplication, QTimer

from focuscycle.models import THEMES, format_duration
from focuscycle.storage import Storage
from focuscycle.timer_engine import TimerEngine

logger = logging.getLogger("focuscycle")


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logger


def setup_exception_handling():
    """Log unhandled exceptions before the default hook prints them."""
    def exception_hook(exctype, value, traceback):
        logger.critical("Unhandled exception: %s: %s", exctype.__name__, value)
        sys.__excepthook__(exctype, value, traceback)

    sys.excepthook = exception_hook


def setup_signal_handlers(app: QCoreApplication):
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum, frame):
        print("\nReceived interrupt signal, shutting down...")
        app.quit()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def _on_off(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("on", "true", "yes", "1"):
        return True
    if lowered in ("off", "false", "no", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected on/off, got {value!r}")


# ==================== Commands ====================

def cmd_run(storage: Storage, args: argparse.Namespace) -> int:
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    setup_signal_handlers(app)

    # Python only runs signal handlers between bytecodes, so wake up regularly
    wakeup = QTimer()
    wakeup.start(200)
    wakeup.timeout.connect(lambda: None)

    engine = TimerEngine(storage)
    cycle = engine.config.sessions_until_long_break

    def on_state(state):
        line = (
            f"\r{state.current_phase.label:<12} {state.format_remaining()}  "
            f"{engine.progress():5.1f}%  "
            f"{state.completed_sessions % cycle}/{cycle} until long break"
        )
        print(line, end="", flush=True)

    def on_phase(finished, upcoming):
        print(f"\n{finished.label} finished, now: {upcoming.label}")
        if args.cycles and engine.state.completed_sessions >= args.cycles_target:
            app.quit()
        elif not engine.state.is_running and args.auto_focus:
            engine.start()

    def on_recorded(stats):
        print(
            f"\nSessions completed: {stats.completed_sessions}  "
            f"Focus: {format_duration(stats.total_focus_time)}  "
            f"Streak: {stats.daily_streak}"
        )

    engine.state_changed.connect(on_state)
    engine.phase_changed.connect(on_phase)
    engine.session_recorded.connect(on_recorded)

    args.cycles_target = engine.state.completed_sessions + (args.cycles or 0)
    engine.start()
    try:
        return app.exec()
    finally:
        engine.cleanup()
        print()


def cmd_status(storage: Storage, args: argparse.Namespace) -> int:
    config = storage.get_config()
    stats = storage.get_statistics()
    print(f"Focus:        {config.focus_duration:g} min")
    print(f"Break:        {config.break_duration:g} min")
    print(f"Long break:   {config.long_break_duration:g} min every {config.sessions_until_long_break} sessions")
    print(f"Completed:    {stats.completed_sessions} sessions")
    print(f"Focus time:   {format_duration(stats.total_focus_time)}")
    print(f"Break time:   {format_duration(stats.total_break_time)}")
    print(f"Day streak:   {stats.daily_streak} (last session {stats.last_session_date or 'never'})")
    if not storage.available:
        print("Warning: persistent storage unavailable, showing defaults")
    return 0


def cmd_config(storage: Storage, args: argparse.Namespace) -> int:
    config = storage.get_config()
    changes = {
        "focus_duration": args.focus,
        "break_duration": args.break_,
        "long_break_duration": args.long_break,
        "sessions_until_long_break": args.sessions,
    }
    for attr, value in changes.items():
        if value is not None:
            setattr(config, attr, value)
    if any(value is not None for value in changes.values()):
        storage.set_config(config)
    for key, value in storage.get_config().to_dict().items():
        print(f"{key}: {value}")
    return 0


def cmd_prefs(storage: Storage, args: argparse.Namespace) -> int:
    prefs = storage.get_preferences()
    changes = {
        "theme": args.theme,
        "sound": args.sound,
        "notifications": args.notifications,
        "auto_start_breaks": args.auto_start_breaks,
        "auto_start_pomodoros": args.auto_start_pomodoros,
    }
    for attr, value in changes.items():
        if value is not None:
            setattr(prefs, attr, value)
    if any(value is not None for value in changes.values()):
        storage.set_preferences(prefs)
    for key, value in storage.get_preferences().to_dict().items():
        print(f"{key}: {value}")
    return 0


def cmd_sessions(storage: Storage, args: argparse.Namespace) -> int:
    sessions = storage.get_sessions()
    if args.limit:
        sessions = sessions[-args.limit:]
    for session in sessions:
        print(
            f"{session.start_time}  {session.phase.value:<10} "
            f"{session.duration_minutes:6.1f} min  "
            f"{'completed' if session.completed else 'interrupted'}"
        )
    print(f"{len(sessions)} session(s)")
    return 0


def cmd_export(storage: Storage, args: argparse.Namespace) -> int:
    blob = storage.export_all()
    if args.file == "-":
        print(blob)
    else:
        with open(args.file, "w", encoding="utf-8") as f:
            f.write(blob)
        print(f"Exported to {args.file}")
    return 0


def cmd_import(storage: Storage, args: argparse.Namespace) -> int:
    if args.file == "-":
        blob = sys.stdin.read()
    else:
        try:
            with open(args.file, encoding="utf-8") as f:
                blob = f.read()
        except OSError as e:
            logger.error("Cannot read %s: %s", args.file, e)
            return 1
    if not storage.import_all(blob):
        print("Import failed; stored data left unchanged.")
        return 1
    print("Import complete.")
    return 0


def cmd_clear(storage: Storage, args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to clear without --yes")
        return 1
    storage.clear_all()
    print("All data cleared.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="focuscycle", description="Pomodoro-style focus timer")
    parser.add_argument("--db", help="Database file (default: per-user app data dir)")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.set_defaults(func=cmd_run, cycles=0, auto_focus=False)
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Run the timer in the terminal")
    run.add_argument("--cycles", type=int, default=0, help="Stop after this many focus sessions")
    run.add_argument("--auto-focus", action="store_true", help="Start each focus phase automatically")
    run.set_defaults(func=cmd_run)

    sub.add_parser("status", help="Show config and statistics").set_defaults(func=cmd_status)

    config = sub.add_parser("config", help="Show or change durations")
    config.add_argument("--focus", type=float, help="Focus minutes")
    config.add_argument("--break", dest="break_", type=float, help="Break minutes")
    config.add_argument("--long-break", type=float, help="Long break minutes")
    config.add_argument("--sessions", type=int, help="Focus sessions until a long break")
    config.set_defaults(func=cmd_config)

    prefs = sub.add_parser("prefs", help="Show or change preferences")
    prefs.add_argument("--theme", choices=THEMES)
    prefs.add_argument("--sound", type=_on_off)
    prefs.add_argument("--notifications", type=_on_off)
    prefs.add_argument("--auto-start-breaks", type=_on_off)
    prefs.add_argument("--auto-start-pomodoros", type=_on_off)
    prefs.set_defaults(func=cmd_prefs)

    sessions = sub.add_parser("sessions", help="List recorded sessions")
    sessions.add_argument("--limit", type=int, default=0)
    sessions.set_defaults(func=cmd_sessions)

    export = sub.add_parser("export", help="Write a JSON backup")
    export.add_argument("file", nargs="?", default="-")
    export.set_defaults(func=cmd_export)

    import_ = sub.add_parser("import", help="Restore a JSON backup")
    import_.add_argument("file", nargs="?", default="-")
    import_.set_defaults(func=cmd_import)

    clear = sub.add_parser("clear", help="Delete all stored data")
    clear.add_argument("--yes", action="store_true")
    clear.set_defaults(func=cmd_clear)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for FocusCycle."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(getattr(logging, args.log_level))
    setup_exception_handling()

    storage = Storage(db_path=args.db)
    return args.func(storage, args)


if __name__ == "__main__":
    sys.exit(main())
