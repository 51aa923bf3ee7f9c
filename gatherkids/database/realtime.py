"""
Supabase Realtime change feed (Phoenix channels over one websocket).

One ``RealtimeClient`` per remote adapter owns a single socket, opened lazily
by the first ``subscribe`` and kept alive by a background task that
reconnects with exponential backoff and rejoins every live channel.

Protocol (Phoenix v1 JSON frames ``{topic, event, payload, ref}``):

    -> phx_join          realtime:<table>:<n>  {config: {postgres_changes: [...]}}
    -> heartbeat         phoenix               every REALTIME_HEARTBEAT_SECONDS
    <- postgres_changes  realtime:<table>:<n>  {data: {type, table, record, old_record}}
    -> phx_leave         realtime:<table>:<n>  on unsubscribe

Each subscription has its own topic, so leaving one channel never affects
another subscriber on the same table.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Set, Union
from urllib.parse import urlencode, urlsplit, urlunsplit

import aiohttp

from gatherkids import config
from gatherkids.domain.enums import ChangeType

logger = logging.getLogger(__name__)

PHOENIX_TOPIC = "phoenix"
MAX_BACKOFF_SECONDS = 30.0

_CHANGE_TYPES = {
    "INSERT": ChangeType.INSERT,
    "UPDATE": ChangeType.UPDATE,
    "DELETE": ChangeType.DELETE,
}


def realtime_url(url: str, key: str) -> str:
    """``https://x.supabase.co`` -> ``wss://x.supabase.co/realtime/v1/websocket?...``."""
    parts = urlsplit(url.rstrip("/"))
    scheme = "ws" if parts.scheme == "http" else "wss"
    query = urlencode({"apikey": key, "vsn": "1.0.0"})
    return urlunsplit((scheme, parts.netloc, parts.path + "/realtime/v1/websocket", query, ""))


@dataclass
class Subscription:
    topic: str
    table: str
    callback: Callable[[str, ChangeType, Dict[str, Any]], Any]
    closed: bool = False
    joined: bool = False


class RealtimeClient:
    """Shared websocket multiplexing every table subscription of one adapter.

    ``session_factory`` returns an ``aiohttp.ClientSession``.  With
    ``autoconnect=False`` no socket is opened and frames are fed to
    ``handle_message`` directly.
    """

    def __init__(
        self,
        url: str,
        key: str,
        *,
        heartbeat: Optional[float] = None,
        session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None,
        schema: str = "public",
        autoconnect: bool = True,
    ) -> None:
        self.socket_url = realtime_url(url, key)
        self._key = key
        self.schema = schema
        self.heartbeat = config.REALTIME_HEARTBEAT_SECONDS if heartbeat is None else heartbeat
        self._session_factory = session_factory or aiohttp.ClientSession
        self._subscriptions: Dict[str, Subscription] = {}
        self._counter = itertools.count(1)
        self._refs = itertools.count(1)
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._runner: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Future] = set()
        self._closing = False
        self.autoconnect = autoconnect

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    @property
    def subscriptions(self) -> Dict[str, Subscription]:
        return dict(self._subscriptions)

    async def subscribe(
        self, table: str, callback: Callable[[str, ChangeType, Dict[str, Any]], Any]
    ) -> Callable[[], None]:
        """Register ``callback`` for changes on ``table``; returns the unsubscribe."""
        sub = Subscription(topic=f"realtime:{table}:{next(self._counter)}", table=table, callback=callback)
        self._subscriptions[sub.topic] = sub
        if self._ws is not None and not self._ws.closed:
            await self._join(sub)
        else:
            self._ensure_running()

        def unsubscribe() -> None:
            self._unsubscribe(sub)

        return unsubscribe

    def _unsubscribe(self, sub: Subscription) -> None:
        if sub.closed:
            return
        sub.closed = True
        self._subscriptions.pop(sub.topic, None)
        if not sub.joined or self._ws is None or self._ws.closed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; skipping phx_leave for %s", sub.topic)
            return
        self._track(loop.create_task(self._send(sub.topic, "phx_leave", {})))

    # ------------------------------------------------------------------
    # Socket lifecycle
    # ------------------------------------------------------------------

    def _ensure_running(self) -> None:
        if self._closing or not self.autoconnect:
            return
        if self._runner is None or self._runner.done():
            self._runner = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        delay = 1.0
        while not self._closing:
            try:
                async with self._session_factory() as session:
                    async with session.ws_connect(self.socket_url) as ws:
                        self._ws = ws
                        delay = 1.0
                        logger.info("Realtime socket connected (%d channel(s))", len(self._subscriptions))
                        for sub in list(self._subscriptions.values()):
                            await self._join(sub)
                        beat = asyncio.create_task(self._heartbeat())
                        try:
                            await self._read(ws)
                        finally:
                            beat.cancel()
            except asyncio.CancelledError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                logger.warning("Realtime socket error: %s; reconnecting in %.0fs", exc, delay)
            except Exception:
                logger.exception("Realtime socket loop failed; reconnecting in %.0fs", delay)
            finally:
                self._ws = None
                for sub in self._subscriptions.values():
                    sub.joined = False
            if self._closing:
                break
            await asyncio.sleep(delay)
            delay = min(delay * 2, MAX_BACKOFF_SECONDS)

    async def _read(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                self.handle_message(msg.data)
            elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                break

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat)
            await self._send(PHOENIX_TOPIC, "heartbeat", {})

    async def _send(self, topic: str, event: str, payload: Mapping[str, Any]) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            return
        frame = {"topic": topic, "event": event, "payload": dict(payload), "ref": str(next(self._refs))}
        try:
            await ws.send_str(json.dumps(frame))
        except (aiohttp.ClientError, ConnectionError) as exc:
            logger.warning("Realtime send %s on %s failed: %s", event, topic, exc)

    def join_payload(self, sub: Subscription) -> Dict[str, Any]:
        return {
            "config": {
                "broadcast": {"self": False},
                "presence": {"key": ""},
                "postgres_changes": [{"event": "*", "schema": self.schema, "table": sub.table}],
            },
            "access_token": self._key,
        }

    async def _join(self, sub: Subscription) -> None:
        await self._send(sub.topic, "phx_join", self.join_payload(sub))
        sub.joined = True

    # ------------------------------------------------------------------
    # Inbound frames
    # ------------------------------------------------------------------

    def handle_message(self, raw: Union[str, bytes, Mapping[str, Any]]) -> None:
        """Dispatch one inbound Phoenix frame to the live subscription on its topic."""
        if isinstance(raw, Mapping):
            frame = dict(raw)
        else:
            try:
                frame = json.loads(raw)
            except ValueError:
                logger.warning("Realtime: dropping non-JSON frame")
                return
        if not isinstance(frame, dict):
            logger.warning("Realtime: dropping frame that is not an object")
            return
        event = frame.get("event")
        topic = frame.get("topic")
        payload = frame.get("payload") or {}
        if not isinstance(payload, dict):
            logger.warning("Realtime: dropping %s frame on %s with malformed payload", event, topic)
            return

        if event == "phx_reply":
            if payload.get("status") == "error":
                logger.warning("Realtime join/leave on %s rejected: %s", topic, payload.get("response"))
            return
        if event in ("phx_error", "phx_close"):
            logger.info("Realtime channel %s: %s", topic, event)
            return
        if event != "postgres_changes":
            return

        sub = self._subscriptions.get(topic)
        if sub is None or sub.closed:
            return
        data = payload.get("data") or {}
        if not isinstance(data, dict):
            logger.warning("Realtime: dropping change on %s with malformed data", topic)
            return
        change = _CHANGE_TYPES.get(str(data.get("type", "")).upper())
        if change is None:
            logger.debug("Realtime: ignoring change type %r on %s", data.get("type"), topic)
            return
        record = data.get("old_record") if change is ChangeType.DELETE else data.get("record")
        if record is not None and not isinstance(record, dict):
            logger.warning("Realtime: dropping change on %s with malformed record", topic)
            return
        self._deliver(sub, change, dict(record or {}))

    def _deliver(self, sub: Subscription, change: ChangeType, record: Dict[str, Any]) -> None:
        try:
            result = sub.callback(sub.table, change, record)
        except Exception:
            logger.exception("Realtime callback for %s raised", sub.table)
            return
        if inspect.isawaitable(result):
            self._track(asyncio.ensure_future(result))

    def _track(self, task: asyncio.Future) -> None:
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Future) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Realtime task failed: %s", task.exception())

    async def close(self) -> None:
        self._closing = True
        for sub in list(self._subscriptions.values()):
            self._unsubscribe(sub)
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._runner is not None:
            self._runner.cancel()
            try:
                await self._runner
            except asyncio.CancelledError:
                pass
        self._runner = None
        self._ws = None
