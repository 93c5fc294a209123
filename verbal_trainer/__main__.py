"""CLI entry point for verbal-trainer.

Usage:
  python -m verbal_trainer serve [--port PORT] [--host HOST]
  python -m verbal_trainer stop
  python -m verbal_trainer restart [--port PORT]
  python -m verbal_trainer status
  python -m verbal_trainer stats [--level LEVEL]
  python -m verbal_trainer profiles
  python -m verbal_trainer review NAME [--level LEVEL] [--type TYPE]
"""
from __future__ import annotations

import asyncio
import os
import signal
import sys
import time
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".verbal_trainer.pid"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765
STOP_WAIT_SECONDS = 5.0


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "stats":
        _stats(args[1:])
    elif command == "profiles":
        _profiles()
    elif command == "review":
        _review(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, restart, status, stats, profiles, review")
        sys.exit(1)


def _option(args: list[str], name: str, default: str) -> str:
    """Value following ``name`` in ``args``; exits if the flag has no value."""
    if name not in args:
        return default
    i = args.index(name)
    if i + 1 >= len(args) or args[i + 1].startswith("--"):
        print(f"{name} needs a value")
        sys.exit(2)
    return args[i + 1]


def _port(args: list[str]) -> int:
    raw = _option(args, "--port", str(DEFAULT_PORT))
    if not raw.isdigit() or not 0 < int(raw) < 65536:
        print(f"Invalid port: {raw}")
        sys.exit(2)
    return int(raw)


# ── Server process ────────────────────────────────────────────────────────

def _server_pid() -> int | None:
    """PID of the running server, clearing a stale PID file."""
    try:
        pid = int(PID_FILE.read_text().strip())
    except (FileNotFoundError, ValueError):
        _remove_pid()
        return None
    if not _alive(pid):
        _remove_pid()
        return None
    return pid


def _alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # owned by another user
        return False
    return True


def _write_pid() -> None:
    PID_FILE.write_text(str(os.getpid()))


def _remove_pid() -> None:
    PID_FILE.unlink(missing_ok=True)


def _stop() -> bool:
    """Send SIGTERM to the server and wait for it to exit."""
    pid = _server_pid()
    if pid is None:
        print("Verbal Trainer is not running.")
        return False
    os.kill(pid, signal.SIGTERM)
    deadline = time.monotonic() + STOP_WAIT_SECONDS
    while _alive(pid) and time.monotonic() < deadline:
        time.sleep(0.1)
    _remove_pid()
    if _alive(pid):
        print(f"Server (PID {pid}) did not exit within {STOP_WAIT_SECONDS:g}s.")
    else:
        print(f"Stopped Verbal Trainer (PID {pid}).")
    return True


def _status():
    pid = _server_pid()
    print("Verbal Trainer is not running." if pid is None else f"Verbal Trainer is running (PID {pid}).")


def _restart(args: list[str]):
    _stop()
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    running = _server_pid()
    if running is not None:
        print(f"Verbal Trainer is already running (PID {running}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    host = _option(args, "--host", DEFAULT_HOST)
    port = _port(args)
    _write_pid()
    print(f"Starting Verbal Trainer on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run("verbal_trainer.app:app", host=host, port=port, timeout_graceful_shutdown=5)
    finally:
        _remove_pid()


def _stats(args: list[str]):
    from verbal_trainer.config import load_settings
    from verbal_trainer.corpus import CorpusLoader, DataUnavailable
    from verbal_trainer.models import ALL, format_level

    settings = load_settings()
    loader = CorpusLoader(
        settings.resolved_source(settings.synonyms_source),
        settings.resolved_source(settings.sentences_source),
    )
    try:
        corpus = asyncio.run(loader.load())
    except DataUnavailable as e:
        print(f"Corpus unavailable: {e}")
        sys.exit(1)

    level = _option(args, "--level", ALL)
    levels = [level] if level != ALL else [*corpus.levels(), ALL]
    for lv in levels:
        counts = corpus.counts(lv)
        print(f"  {format_level(lv):<14} {counts['synonyms']:>5} synonyms  {counts['sentences']:>5} sentences")


def _open_profiles():
    from verbal_trainer.config import load_settings
    from verbal_trainer.db import Database
    from verbal_trainer.profiles import ProfileService

    settings = load_settings()
    db = Database(settings.db_full_path)
    return db, ProfileService(
        db,
        history_limit=settings.quiz_history_limit,
        recent_window=settings.recent_quiz_window,
    )


def _profiles():
    db, service = _open_profiles()
    active = db.get_active_profile_id()
    profiles = service.list_profiles()
    if not profiles:
        print("No profiles yet.")
    for p in profiles:
        marker = "*" if p.id == active else " "
        print(f" {marker} {p.name:<20} {len(p.review_words):>4} to review  {len(p.known_words):>4} known")
    db.close()


def _review(args: list[str]):
    from verbal_trainer.models import ALL

    if not args or args[0].startswith("--"):
        print("Usage: review NAME [--level LEVEL] [--type TYPE]")
        sys.exit(1)
    name = args[0]
    db, service = _open_profiles()
    profile = next((p for p in service.list_profiles() if p.name.lower() == name.lower()), None)
    if profile is None:
        print(f"No profile named {name!r}.")
        db.close()
        sys.exit(1)

    entries = service.review_queue(
        profile.id,
        _option(args, "--level", ALL),
        _option(args, "--type", ALL),
    )
    if not entries:
        print("Nothing to review.")
    for e in entries:
        print(f"  {e.word:<20} {e.question_type:<9} {e.level:<7} missed {e.missed_count}x  "
              f"(last {e.last_missed:%Y-%m-%d})")
    db.close()


if __name__ == "__main__":
    main()
