"""Agent Office CLI — main application entry point."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from agent_office.engine.config import OfficeConfig
from agent_office.engine.environment import get_session_path, read_env
from agent_office.engine.errors import (
    LockHeldError,
    OfficeError,
    PortUnavailableError,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)

LOG_DIR = Path.home() / ".agent_office" / "logs"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"


def _configure_logging(level_name: str, console: bool = True) -> Path:
    """Route the root logger to a rotating file (and stderr unless disabled)."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / "agent-office.log"

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)
    return log_file


def _build_config(args) -> OfficeConfig:
    config = OfficeConfig.from_env()
    config_path = args.config
    if not config_path:
        auto_yaml = Path(args.cwd or Path.cwd()) / ".gemini" / "office.yaml"
        if auto_yaml.exists():
            config_path = str(auto_yaml)
            logger.info("Auto-discovered config: %s", config_path)
    if config_path:
        config = config.merge_yaml(config_path)
    return config.merge({
        "session_file": args.session_file,
        "port": getattr(args, "port", None),
        "host": getattr(args, "host", None),
        "auto_open": False if getattr(args, "no_open", False) else None,
    })


def _project_path(args) -> Path:
    return Path(args.cwd).resolve() if args.cwd else Path.cwd()


# ── start ──

async def _run_start(config: OfficeConfig, project_path: Path) -> int:
    from agent_office.adapters.dashboard import OfficeDashboard

    dashboard = OfficeDashboard(
        config,
        project_path=project_path,
        on_error=lambda exc: logger.warning("Session watcher: %s", exc),
    )
    try:
        port = await dashboard.start_web()
    except LockHeldError as exc:
        if exc.port:
            print(f"Agent Office already running at http://{config.host}:{exc.port}")
        else:
            print(f"Agent Office already running (pid {exc.pid})")
        return 0
    except (SessionNotFoundError, PortUnavailableError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Agent Office running at http://{config.host}:{port}")
    print("Press Ctrl+C to stop.")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows: KeyboardInterrupt ends asyncio.run instead.
            pass
    try:
        await stop_event.wait()
    finally:
        await dashboard.stop()
        logger.info("Agent Office stopped")
    return 0


# ── status ──

def _run_status(config: OfficeConfig, project_path: Path, as_json: bool) -> int:
    from agent_office.adapters.dashboard import lock_path_for
    from agent_office.engine.models import SessionSnapshot
    from agent_office.engine.projection import session_to_projection
    from agent_office.shared.services.instance_lock import InstanceLock

    if config.session_file:
        session_path = Path(config.session_file)
    else:
        env = read_env(project_path)
        if not env.has_active_session:
            return _print_status({"active": False, "reason": "No active session found"}, as_json)
        session_path = get_session_path(env.project_dir, env.active_session_id)

    if not session_path.exists():
        return _print_status(
            {"active": False, "reason": "Session file not found", "path": str(session_path)},
            as_json,
        )

    try:
        snapshot = SessionSnapshot.from_dict(
            json.loads(session_path.read_text(encoding="utf-8"))
        )
    except (OSError, ValueError, TypeError) as exc:
        return _print_status(
            {"active": False, "reason": f"Unreadable session file: {exc}", "path": str(session_path)},
            as_json,
        )

    projection = session_to_projection(snapshot)
    lock = InstanceLock(
        lock_path_for(session_path), stale_seconds=config.lock_stale_seconds
    )
    lock_data = lock.read()
    running = lock_data is not None and not lock.is_stale(lock_data)
    working = sum(1 for a in projection.agents.values() if a.state.value == "working")
    info = {
        "active": True,
        "sessionId": snapshot.session_id,
        "path": str(session_path),
        "activePlan": snapshot.active_plan,
        "agents": len(snapshot.agents),
        "subAgents": len(projection.agents),
        "working": working,
        "completed": sum(1 for a in snapshot.agents if a.status.value == "completed"),
        "failed": sum(1 for a in snapshot.agents if a.status.value == "failed"),
        "dashboard": (
            f"http://{config.host}:{lock_data.port}"
            if running and lock_data.port else None
        ),
    }
    return _print_status(info, as_json)


def _print_status(info: dict, as_json: bool) -> int:
    if as_json:
        print(json.dumps(info, indent=2))
        return 0 if info.get("active") else 1
    if not info.get("active"):
        suffix = f" ({info['path']})" if info.get("path") else ""
        print(f"No active session: {info['reason']}{suffix}")
        return 1
    print(f"Session:    {info['sessionId']}")
    print(f"File:       {info['path']}")
    if info["activePlan"]:
        print(f"Plan:       {info['activePlan']}")
    print(
        f"Agents:     {info['agents']} total, {info['working']} working, "
        f"{info['completed']} completed, {info['failed']} failed"
    )
    print(f"Dashboard:  {info['dashboard'] or 'not running'}")
    return 0


# ── watch ──

async def _run_watch(config: OfficeConfig, project_path: Path, as_json: bool) -> int:
    from agent_office.adapters.dashboard import OfficeDashboard
    from agent_office.adapters.events import event_to_dict

    dashboard = OfficeDashboard(
        config,
        project_path=project_path,
        on_error=lambda exc: print(f"Error: {exc}", file=sys.stderr),
    )

    def _print_event(event) -> None:
        if as_json:
            print(json.dumps(event_to_dict(event)), flush=True)
        else:
            target = f" -> {event.target_agent_id}" if event.target_agent_id else ""
            print(f"[{event.event_type.value}] {event.agent_id}{target}: {event.message}", flush=True)

    dashboard.bus.on_event(_print_event)
    try:
        dashboard.start_watching()
    except SessionNotFoundError:
        return 1

    if not as_json:
        print(f"Watching {dashboard.watcher.session_path} (Ctrl+C to stop)")
    try:
        await asyncio.Event().wait()
    finally:
        await dashboard.stop()
    return 0


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(
        prog="agent-office",
        description="Agent Office — live visualization of a multi-agent session",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file (office: section)",
    )
    parser.add_argument(
        "--session-file", metavar="PATH",
        help="Watch this session file instead of the active one",
    )
    parser.add_argument(
        "--cwd", metavar="DIR",
        help="Project root holding .gemini/.env and plans/ (default: current dir)",
    )
    sub = parser.add_subparsers(dest="command")

    start = sub.add_parser("start", help="Start the web dashboard (default)")
    start.add_argument("--port", type=int, default=None, help="Server port (default: 3847)")
    start.add_argument("--host", default=None, help="Bind address (default: 127.0.0.1)")
    start.add_argument("--no-open", action="store_true", help="Do not open a browser")

    sub.add_parser("tui", help="Open the terminal dashboard")

    status = sub.add_parser("status", help="Print the active session summary")
    status.add_argument("--json", action="store_true", help="Print JSON")

    watch = sub.add_parser("watch", help="Stream session events to stdout")
    watch.add_argument("--json", action="store_true", help="Print one JSON event per line")

    args = parser.parse_args()
    command = args.command or "start"

    config = _build_config(args)
    # The TUI owns the terminal, and status/watch output stays clean.
    _configure_logging(config.log_level, console=command == "start")
    project_path = _project_path(args)
    logger.info(
        "agent-office %s cwd=%s session_file=%s pid=%s",
        command, project_path, config.session_file or "<active>", os.getpid(),
    )

    try:
        if command == "status":
            sys.exit(_run_status(config, project_path, args.json))
        if command == "watch":
            sys.exit(asyncio.run(_run_watch(config, project_path, args.json)))
        if command == "tui":
            from agent_office.tui.app import OfficeApp

            app = OfficeApp(config=config, project_path=project_path)
            app.run()
            sys.exit(app.return_code or 0)
        sys.exit(asyncio.run(_run_start(config, project_path)))
    except KeyboardInterrupt:
        print("\nStopped.")
    except OfficeError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
