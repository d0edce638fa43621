# main.py

import argparse
import logging
from pathlib import Path
import sys
import time
from typing import Optional

from config import Config, load_config
from notifier import send_notification
from storage.json_store import store_for_config
from storage.workspaces import WorkspaceAggregator
from tracker.active_window import FocusWatcher
from tracker.input_tracker import InputActivityTracker
from tracker.project_context import ProjectResolver
from tracker.time_tracker import TICK_INTERVAL, TimeTracker
from tracker.time_utils import format_date, format_detailed_time, format_time, format_time_of_day

logger = logging.getLogger(__name__)


def setup_logging(config: Config, level: int = logging.INFO) -> None:
    """Console in the '[LEVEL] message' shape plus an append-only log file."""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    root.addHandler(console)

    try:
        Path(config.log_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_path, mode="a", encoding="utf-8")
    except OSError as e:
        logger.warning("Log file %s is not writable: %s", config.log_path, e)
        return
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root.addHandler(file_handler)


def make_tracker(config: Config, active_file: Optional[str] = None) -> TimeTracker:
    """Tracker for the first workspace folder, or for active_file when no folder is set."""
    resolver = ProjectResolver(config.workspace_folders, active_file)
    return TimeTracker(config, store_for_config(config), resolver)


# ---------- commands ----------


def cmd_run(config: Config, args) -> int:
    print("=== CodeClock ===")
    print(f"[INFO] Data directory: {config.data_dir}")
    print(f"[INFO] Workspace: {config.workspace_folders[0] if config.workspace_folders else '<none>'}")
    if args.file and not config.workspace_folders:
        print(f"[INFO] Single file: {args.file}")
    print(f"[INFO] Idle threshold: {config.idle_threshold} min")
    print(f"[INFO] Auto-save every {config.save_interval} s")
    print(f"[INFO] Editor apps: {config.editor_apps}")
    print("Press Ctrl+C to stop.\n")

    tracker = make_tracker(config, args.file)
    focus = FocusWatcher(config.editor_apps, tracker.post_signal)
    inputs = InputActivityTracker(tracker.post_signal, lambda: focus.is_focused)

    focus.poll()
    tracker.start()
    inputs.start()

    last_status = None
    try:
        while True:
            try:
                focus.poll()
            except Exception:
                logger.exception("Focus poll failed")

            tracker.tick()

            status = tracker.status_text()
            if status != last_status:
                print(status)
                last_status = status

            time.sleep(TICK_INTERVAL.total_seconds())

    except KeyboardInterrupt:
        print("\n[INFO] Stopping on Ctrl+C...")
    finally:
        inputs.stop()

    try:
        tracker.stop()
    except Exception as e:
        print(f"[ERROR] Failed to save tracking data: {e}")
        if config.notify_on_error:
            send_notification("CodeClock", "Failed to save tracking data.")
        return 1
    finally:
        tracker.dispose()

    print("[INFO] Done.")
    return 0


def cmd_stats(config: Config, args) -> int:
    tracker = make_tracker(config)
    tracker.load()
    stats = tracker.today_statistics()

    print(f"Today ({format_date(stats.period_start)}): {format_detailed_time(stats.total_ms)}, "
          f"{stats.session_count} sessions")
    for project in stats.by_project:
        marker = " *" if project["is_current"] else ""
        print(f"  {project['project_name']:<30} {format_time(project['total_ms'], show_seconds=False)}{marker}")

    aggregated = WorkspaceAggregator(Path(config.data_dir)).get()
    if aggregated.workspace_count:
        print()
        print(f"All workspaces ({aggregated.workspace_count}):")
        print(f"  Today:      {format_detailed_time(aggregated.today_total())}")
        print(f"  This week:  {format_detailed_time(aggregated.week_total())}")
        print(f"  This month: {format_detailed_time(aggregated.month_total())}")
        print(f"  All time:   {format_detailed_time(aggregated.total_time)}")
    return 0


def cmd_today(config: Config, args) -> int:
    tracker = make_tracker(config)
    tracker.load()
    sessions = tracker.todays_sessions()

    if not sessions:
        print("No sessions today.")
        return 0

    for entry in sessions:
        end = "running" if entry.running else format_time_of_day(entry.end_time) if entry.end_time else "?"
        print(f"{format_time_of_day(entry.start_time)} - {end:<8} "
              f"{format_time(entry.total_time, show_seconds=False):>8}  {entry.project_name}")
    return 0


def cmd_log(config: Config, args) -> int:
    tracker = make_tracker(config)
    tracker.load()
    days = tracker.detailed_log()

    if not days:
        print("No tracked time yet.")
        return 0

    for day in days[: args.days]:
        print(f"{format_date(day.day)}  {format_detailed_time(day.total_ms)}")
        for entry in day.entries:
            print(f"  {format_time_of_day(entry.start_time)}  "
                  f"{format_time(entry.total_time, show_seconds=False):>8}  {entry.project_name}")
    return 0


def cmd_export(config: Config, args) -> int:
    tracker = make_tracker(config)
    tracker.load()
    try:
        path = tracker.export(Path(args.path))
    except OSError as e:
        print(f"[ERROR] Failed to export data: {e}")
        return 1
    print(f"Exported to {path}")
    return 0


def cmd_reset(config: Config, args) -> int:
    answer = input("Reset the current session? Its time will be lost. [y/N] ")
    if answer.strip().lower() not in ("y", "yes"):
        print("Cancelled.")
        return 0

    tracker = make_tracker(config)
    tracker.load()
    try:
        removed = tracker.reset()
    except Exception as e:
        print(f"[ERROR] Failed to reset the session: {e}")
        return 1
    print("Session reset." if removed else "No open session.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codeclock", description="Work-time tracker for your editor")
    parser.add_argument("--config", type=Path, default=None, help="path to config.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.set_defaults(file=None)

    sub = parser.add_subparsers(dest="command")
    run_parser = sub.add_parser("run", help="track in the foreground until Ctrl+C")
    run_parser.add_argument("--file", default=None, help="track a single file when no workspace folder is set")
    sub.add_parser("stats", help="today's time per project and cross-workspace totals")
    sub.add_parser("today", help="today's sessions")
    log_parser = sub.add_parser("log", help="detailed log, newest day first")
    log_parser.add_argument("--days", type=int, default=7)
    export_parser = sub.add_parser("export", help="write all data as JSON")
    export_parser.add_argument("path")
    sub.add_parser("reset", help="drop the current session")
    return parser


COMMANDS = {
    "run": cmd_run,
    "stats": cmd_stats,
    "today": cmd_today,
    "log": cmd_log,
    "export": cmd_export,
    "reset": cmd_reset,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config) if args.config else load_config()
    setup_logging(config, logging.DEBUG if args.verbose else logging.INFO)

    command = COMMANDS[args.command or "run"]
    return command(config, args)


if __name__ == "__main__":
    sys.exit(main())
