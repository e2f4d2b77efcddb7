"""HTTP + WebSocket server for the office dashboard.

Serves the current projection to each new WebSocket client, then pushes
every projection and event the bus publishes to all connected clients.

Wire protocol (JSON text frames):
    server -> client  {"type": "state", "data": <projection>}
                      {"type": "event", "data": <event>}
                      {"type": "pong"}
                      {"type": "replay", "data": [<event>, ...]}
    client -> server  {"type": "ping"}
                      {"type": "replay", "fromTimestamp": <ms>}
"""
from __future__ import annotations

import asyncio
import errno
import json
import logging
import os
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from urllib.parse import unquote

from aiohttp import WSMsgType, web

from agent_office.adapters.event_bus import OfficeEventBus
from agent_office.adapters.events import OfficeEvent, event_to_dict
from agent_office.engine.errors import PortUnavailableError
from agent_office.shared.models.projection import OfficeProjection, serialize_projection
from agent_office.shared.services.editor import open_in_editor

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"
DEFAULT_PORT = 3847
MAX_PORT_ATTEMPTS = 10


def has_parent_segment(raw_path: str) -> bool:
    """True if the request path (before the query) contains a ``..`` segment."""
    path = raw_path.split("?", 1)[0].split("#", 1)[0]
    # Decode twice so %252e%252e is caught as well as %2e%2e.
    decoded = unquote(unquote(path)).replace("\\", "/")
    return ".." in decoded.split("/")


class OfficeWebServer:
    """Dashboard server fanning bus updates out to WebSocket clients."""

    def __init__(
        self,
        bus: OfficeEventBus,
        host: str = "127.0.0.1",
        port: int = DEFAULT_PORT,
        max_port_attempts: int = MAX_PORT_ATTEMPTS,
        static_dir: Path = STATIC_DIR,
    ) -> None:
        self._bus = bus
        self._host = host
        self._port = port
        self._max_port_attempts = max_port_attempts
        self._static_dir = static_dir
        self._clients: set[web.WebSocketResponse] = set()
        self._send_tasks: set[asyncio.Task] = set()
        self._unsubscribers: list[Callable[[], None]] = []
        self._runner: web.AppRunner | None = None
        self._started_at = time.time()
        self._app = web.Application(middlewares=[
            self._request_logging_middleware,
            self._path_guard_middleware,
        ])
        self._setup_routes()

    @property
    def port(self) -> int:
        return self._port

    @property
    def client_count(self) -> int:
        return len(self._clients)

    # ── Middleware ──

    @web.middleware
    async def _request_logging_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        req_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        logger.debug("HTTP %s %s req=%s from=%s", request.method, request.raw_path, req_id, request.remote)
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            logger.info(
                "HTTP %s %s req=%s status=%s duration_ms=%.1f",
                request.method, request.raw_path, req_id, exc.status,
                (time.monotonic() - start) * 1000,
            )
            raise
        except Exception:
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.exception("HTTP %s %s req=%s failed duration_ms=%.1f", request.method, request.raw_path, req_id, elapsed_ms)
            raise
        logger.info(
            "HTTP %s %s req=%s status=%s duration_ms=%.1f",
            request.method, request.raw_path, req_id,
            getattr(response, "status", "?"), (time.monotonic() - start) * 1000,
        )
        return response

    @web.middleware
    async def _path_guard_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        # Wraps every handler, static files included.
        if has_parent_segment(request.raw_path):
            logger.warning("Rejected path traversal attempt: %s from=%s", request.raw_path, request.remote)
            return web.Response(status=403, text="Forbidden")
        return await handler(request)

    # ── Route setup ──

    def _setup_routes(self) -> None:
        r = self._app.router
        r.add_get("/", self._handle_index)
        r.add_get("/index.html", self._handle_index)
        r.add_get("/ws", self._handle_ws)
        r.add_get("/health", self._handle_health)
        r.add_get("/api/state", self._handle_state)
        r.add_get("/api/history", self._handle_history)
        r.add_get("/api/open-doc", self._handle_open_doc)
        if self._static_dir.is_dir():
            r.add_static("/static/", self._static_dir)

    # ── Lifecycle ──

    async def start(self) -> int:
        """Bind the listener and subscribe to the bus. Returns the bound port.

        When the port is taken, tries the next higher one up to
        ``max_port_attempts`` times before raising PortUnavailableError.
        """
        if self._runner is not None:
            return self._port

        runner = web.AppRunner(self._app)
        await runner.setup()
        first_port = port = self._port
        attempts = 0
        while True:
            site = web.TCPSite(runner, self._host, port)
            try:
                await site.start()
                break
            except OSError as exc:
                if exc.errno != errno.EADDRINUSE:
                    await runner.cleanup()
                    raise
                if attempts >= self._max_port_attempts:
                    await runner.cleanup()
                    raise PortUnavailableError(first_port, port) from exc
                attempts += 1
                logger.info("Port %d in use, trying %d", port, port + 1)
                port += 1

        self._runner = runner
        self._port = self._resolve_port(site, runner) or port
        self._unsubscribers = [
            self._bus.on_state_change(self._broadcast_state),
            self._bus.on_event(self._broadcast_event),
        ]
        logger.info("Office server listening on %s:%d pid=%s", self._host, self._port, os.getpid())
        return self._port

    async def stop(self) -> None:
        """Close every socket and the listener. Safe to call repeatedly."""
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        for ws in list(self._clients):
            try:
                await ws.close(code=1001, message=b"Server shutdown")
            except Exception:
                logger.debug("Error closing websocket", exc_info=True)
        self._clients.clear()
        await runner.cleanup()
        logger.info("Office server on port %d stopped", self._port)

    @staticmethod
    def _resolve_port(site, runner) -> int | None:
        sockets = getattr(getattr(site, "_server", None), "sockets", None) or ()
        if sockets:
            return sockets[0].getsockname()[1]
        addresses = getattr(runner, "addresses", None) or ()
        if addresses:
            first = addresses[0]
            if isinstance(first, tuple) and len(first) >= 2:
                return int(first[1])
        return None

    # ── WebSocket fan-out ──

    def _send(self, ws: web.WebSocketResponse, message: str) -> None:
        """Queue *message* on *ws* without waiting for delivery."""
        if ws.closed:
            self._clients.discard(ws)
            return
        try:
            task = asyncio.ensure_future(ws.send_str(message))
        except Exception:
            logger.warning("WebSocket send failed", exc_info=True)
            return
        self._send_tasks.add(task)
        task.add_done_callback(self._on_send_done)

    def _on_send_done(self, task: asyncio.Task) -> None:
        self._send_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("WebSocket send failed: %s", exc)

    def _broadcast(self, message: str) -> None:
        for ws in list(self._clients):
            self._send(ws, message)

    def _broadcast_state(self, state: OfficeProjection) -> None:
        if not self._clients:
            return
        self._broadcast(json.dumps({"type": "state", "data": serialize_projection(state)}))

    def _broadcast_event(self, event: OfficeEvent) -> None:
        if not self._clients:
            return
        self._broadcast(json.dumps({"type": "event", "data": event_to_dict(event)}))

    async def _handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        # Compression would push large frames through an executor and
        # let later frames overtake them.
        ws = web.WebSocketResponse(compress=False, heartbeat=30.0)
        await ws.prepare(request)

        state = serialize_projection(self._bus.get_state())
        self._send(ws, json.dumps({"type": "state", "data": state}))
        self._clients.add(ws)
        logger.info("WebSocket client connected from=%s active_clients=%d", request.remote, len(self._clients))

        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self._handle_client_message(ws, msg.data)
                elif msg.type == WSMsgType.ERROR:
                    logger.debug("WebSocket error: %s", ws.exception())
        finally:
            self._clients.discard(ws)
            logger.info("WebSocket client disconnected from=%s active_clients=%d", request.remote, len(self._clients))
        return ws

    async def _handle_client_message(self, ws: web.WebSocketResponse, raw: str) -> None:
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Ignoring invalid client message: %.80s", raw)
            return
        if not isinstance(msg, dict):
            return

        msg_type = msg.get("type")
        if msg_type == "ping":
            self._send(ws, json.dumps({"type": "pong"}))
        elif msg_type == "replay":
            from_ts = msg.get("fromTimestamp")
            if isinstance(from_ts, bool) or not isinstance(from_ts, (int, float)):
                logger.debug("Ignoring replay without numeric fromTimestamp")
                return
            events = [event_to_dict(e) for e in self._bus.replay(from_ts)]
            self._send(ws, json.dumps({"type": "replay", "data": events}))

    # ── HTTP handlers ──

    async def _handle_index(self, request: web.Request) -> web.StreamResponse:
        probe = web.WebSocketResponse()
        if probe.can_prepare(request).ok:
            return await self._handle_ws(request)
        index = self._static_dir / "index.html"
        if not index.is_file():
            raise web.HTTPNotFound(text="Dashboard assets are missing")
        return web.FileResponse(index, headers={"Cache-Control": "no-cache"})

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "ok",
            "pid": os.getpid(),
            "uptime_seconds": round(max(0.0, time.time() - self._started_at), 3),
            "clients": len(self._clients),
            "session_id": self._bus.get_state().session_id,
        })

    async def _handle_state(self, request: web.Request) -> web.Response:
        return web.json_response(serialize_projection(self._bus.get_state()))

    async def _handle_history(self, request: web.Request) -> web.Response:
        return web.json_response([event_to_dict(e) for e in self._bus.get_history()])

    async def _handle_open_doc(self, request: web.Request) -> web.Response:
        doc_path = request.query.get("path")
        if not doc_path:
            return web.json_response({"success": False, "error": "No path provided"}, status=400)

        state = self._bus.get_state()
        known = {d.path for d in state.documents} | {d.relative_path for d in state.documents}
        if doc_path not in known:
            return web.json_response(
                {"success": False, "error": "Not a document of the active plan"}, status=403,
            )
        document = next(d for d in state.documents if doc_path in (d.path, d.relative_path))
        path = Path(document.path)
        if not path.is_file():
            return web.json_response(
                {"success": False, "error": f"File not found: {doc_path}"}, status=404,
            )
        try:
            open_in_editor(path, state.app_name)
        except OSError as exc:
            logger.warning("Could not open %s in editor: %s", path, exc)
            return web.json_response({"success": False, "error": str(exc)}, status=500)
        return web.json_response({"success": True})
