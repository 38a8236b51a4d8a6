"""WebSocket feed pushing state changes to open dashboard views.

A view connects to ``ws://<host>:<port>/?company=<name>`` (the query string
is optional) and receives every event concerning that company, plus the
unscoped ones. Views may narrow or widen the scope afterwards with
``subscribe``/``unsubscribe`` messages. Recent events are buffered and
replayed to views that connect late.
"""

import asyncio
import contextlib
import json
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from urllib.parse import parse_qs, urlsplit

import structlog
import websockets
from websockets.asyncio.server import Server, ServerConnection

from finantech.config import get_settings
from finantech.events.types import DashboardEvent, EventType

logger = structlog.get_logger(__name__)

@dataclass
class Subscription:
    """Which events one view wants. Empty sets mean no restriction."""

    event_types: set[EventType] = field(default_factory=set)
    companies: set[str] = field(default_factory=set)

    def accepts(self, event: DashboardEvent) -> bool:
        if self.event_types and event.event_type not in self.event_types:
            return False
        # Unscoped events concern every company.
        if self.companies and event.company and event.company not in self.companies:
            return False
        return True

    def add(self, event_types: Iterable[Any] = (), companies: Iterable[Any] = ()) -> None:
        for value in event_types:
            with contextlib.suppress(ValueError):
                self.event_types.add(EventType(value))
        self.companies.update(c for c in companies if isinstance(c, str) and c)

    def remove(self, event_types: Iterable[Any] = (), companies: Iterable[Any] = ()) -> None:
        for value in event_types:
            with contextlib.suppress(ValueError):
                self.event_types.discard(EventType(value))
        for company in companies:
            self.companies.discard(company)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "event_types": sorted(et.value for et in self.event_types),
            "companies": sorted(self.companies),
        }


def subscription_from_path(path: str) -> Subscription:
    """Build the initial subscription from ``?company=...&event_type=...``."""
    query = parse_qs(urlsplit(path).query)
    subscription = Subscription()
    subscription.add(query.get("event_type", []), query.get("company", []))
    return subscription


@dataclass(eq=False)
class DashboardClient:
    """One connected dashboard view."""

    websocket: ServerConnection
    subscription: Subscription = field(default_factory=Subscription)
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def client_id(self) -> str:
        addr = self.websocket.remote_address
        if isinstance(addr, tuple):
            return f"{addr[0]}:{addr[1]}"
        return str(addr or "unknown")

    async def send_json(self, payload: dict[str, Any]) -> None:
        await self.websocket.send(json.dumps(payload, ensure_ascii=False))


class EventPublisher:
    """WebSocket server broadcasting :class:`DashboardEvent` objects.

    Usage:
        publisher = EventPublisher()
        await publisher.start()
        state.add_listener(publisher.publish)
        ...
        await publisher.stop()
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        buffer_size: int = 100,
    ):
        settings = get_settings()
        self._host = host or settings.ws_host
        self._port = port or settings.ws_port
        self._buffer_size = buffer_size

        self._server: Server | None = None
        self._clients: set[DashboardClient] = set()
        self._buffer: deque[DashboardEvent] = deque(maxlen=buffer_size)
        self._pending: set[asyncio.Task[None]] = set()

        self._logger = logger.bind(component="event_publisher")

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def client_count(self) -> int:
        return len(self._clients)

    @property
    def recent_events(self) -> list[DashboardEvent]:
        return list(self._buffer)

    # === Server lifecycle ===

    async def start(self) -> None:
        if self._server is not None:
            self._logger.warning("publisher_already_running")
            return

        self._server = await websockets.serve(
            self._handle_client,
            self._host,
            self._port,
            ping_interval=30,
            ping_timeout=10,
        )
        self._logger.info("publisher_started", address=f"ws://{self._host}:{self._port}")

    async def stop(self) -> None:
        """Close every connection, then the server."""
        if self._server is None:
            return

        self._logger.info("stopping_publisher", client_count=len(self._clients))
        await asyncio.gather(
            *(c.websocket.close(1001, "Server shutting down") for c in list(self._clients)),
            return_exceptions=True,
        )
        self._clients.clear()

        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

        self._server.close()
        await self._server.wait_closed()
        self._server = None
        self._logger.info("publisher_stopped")

    # === Connections ===

    async def _handle_client(self, websocket: ServerConnection) -> None:
        path = websocket.request.path if websocket.request is not None else "/"
        client = DashboardClient(websocket, subscription_from_path(path))
        self._clients.add(client)
        self._logger.info(
            "client_connected", client_id=client.client_id, **client.subscription.to_dict()
        )

        try:
            await self._send_history(client)
            async for message in websocket:
                await self._handle_message(client, message)
        except websockets.ConnectionClosed as e:
            self._logger.info("client_disconnected", client_id=client.client_id, code=e.code)
        finally:
            self._clients.discard(client)

    async def _handle_message(self, client: DashboardClient, message: str | bytes) -> None:
        """Apply one control message.

        ``subscribe``/``unsubscribe`` take optional ``event_types`` and
        ``companies`` lists; ``history`` replays the buffer; ``ping`` answers
        ``pong``.
        """
        try:
            data = json.loads(message)
        except (json.JSONDecodeError, UnicodeDecodeError):
            self._logger.warning("invalid_message", client_id=client.client_id)
            return
        if not isinstance(data, dict):
            self._logger.warning("invalid_message", client_id=client.client_id)
            return

        msg_type = data.get("type")
        if msg_type in ("subscribe", "unsubscribe"):
            change = (
                client.subscription.add
                if msg_type == "subscribe"
                else client.subscription.remove
            )
            change(data.get("event_types") or [], data.get("companies") or [])
            await client.send_json({"type": "subscribed", **client.subscription.to_dict()})
        elif msg_type == "history":
            await self._send_history(client)
        elif msg_type == "ping":
            await client.send_json({"type": "pong"})
        else:
            self._logger.warning(
                "unknown_message_type", client_id=client.client_id, msg_type=msg_type
            )

    async def _send_history(self, client: DashboardClient) -> None:
        events = [e.to_dict() for e in self._buffer if client.subscription.accepts(e)]
        if events:
            await client.send_json({"type": "event_history", "events": events})

    # === Publishing ===

    def publish(self, event: DashboardEvent) -> None:
        """Buffer an event and schedule its broadcast.

        Safe to call from synchronous code: without a running server or
        event loop the event is only buffered.
        """
        self._buffer.append(event)
        if self._server is None or not self._clients:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._broadcast(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _broadcast(self, event: DashboardEvent) -> None:
        recipients = [c for c in list(self._clients) if c.subscription.accepts(event)]
        if not recipients:
            return

        payload = event.to_dict()
        results = await asyncio.gather(
            *(c.send_json(payload) for c in recipients), return_exceptions=True
        )
        for client, result in zip(recipients, results):
            if isinstance(result, websockets.ConnectionClosed):
                self._clients.discard(client)
            elif isinstance(result, Exception):
                self._logger.error("send_error", client_id=client.client_id, error=str(result))

    def get_status(self) -> dict[str, Any]:
        return {
            "is_running": self.is_running,
            "host": self._host,
            "port": self._port,
            "client_count": len(self._clients),
            "buffer_size": len(self._buffer),
            "clients": [
                {
                    "id": c.client_id,
                    "connected_at": c.connected_at.isoformat(),
                    **c.subscription.to_dict(),
                }
                for c in self._clients
            ],
        }


_publisher: EventPublisher | None = None


def get_publisher() -> EventPublisher:
    """Get or create the process-wide publisher."""
    global _publisher
    if _publisher is None:
        _publisher = EventPublisher()
    return _publisher


async def start_publisher() -> EventPublisher:
    publisher = get_publisher()
    await publisher.start()
    return publisher


async def stop_publisher() -> None:
    global _publisher
    if _publisher is not None:
        await _publisher.stop()
        _publisher = None
