"""
Talk to the proxy daemon over newline-delimited JSON.

Each message is one JSON object followed by b"\\n":

    request  {"id": 7, "method": "set_mode", "params": {"mode": "full", "appRules": [...]}}
    reply    {"id": 7, "result": {...}}  or  {"id": 7, "error": "PROFILE_MISSING|/path"}
    push     {"event": "proxy-log-batch", "payload": {"lines": [...]}}

Replies may arrive in any order and are matched by id. Pushes can arrive at
any time and are fanned out to every open subscription.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import Callable
from collections.abc import Sequence
from typing import Any
from typing import TypeVar

from approute import events
from approute import exceptions
from approute.models import AppRule
from approute.models import ImportResult
from approute.models import ProfileData
from approute.models import ProxyMode
from approute.models import ProxyStatus
from approute.models import RunningProcess
from approute.models import SavedState
from approute.utils import asyncio_utils

logger = logging.getLogger(__name__)

T = TypeVar("T")


def encode(data: Any) -> bytes:
    return json.dumps(data).encode() + b"\n"


def decode(line: bytes) -> Any:
    return json.loads(line)


class JsonLinesDaemon:
    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 47800,
        *,
        socket_path: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.socket_path = socket_path
        self.timeout = timeout
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future] = {}
        self._subscriptions: list[events.Subscription] = []
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._read_task: asyncio.Task | None = None

    @classmethod
    def from_options(cls, options) -> JsonLinesDaemon:
        return cls(
            options.daemon_host,
            options.daemon_port,
            socket_path=options.daemon_socket,
            timeout=options.request_timeout,
        )

    @property
    def address(self) -> str:
        return self.socket_path or f"{self.host}:{self.port}"

    @property
    def connected(self) -> bool:
        return self._writer is not None

    async def connect(self) -> None:
        if self.connected:
            return
        try:
            if self.socket_path:
                reader, writer = await asyncio.open_unix_connection(self.socket_path)
            else:
                reader, writer = await asyncio.open_connection(self.host, self.port)
        except OSError as e:
            raise exceptions.DaemonConnectionError(
                f"Cannot connect to daemon at {self.address}: {e}"
            ) from e
        self._reader, self._writer = reader, writer
        self._read_task = asyncio_utils.create_task(
            self._read_loop(reader),
            name=f"daemon reader {self.address}",
            keep_ref=False,
        )
        logger.debug(f"Connected to daemon at {self.address}.")

    async def close(self) -> None:
        writer = self._writer
        self._writer = None
        self._reader = None
        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
        await asyncio_utils.cancel_task(self._read_task)
        self._read_task = None
        self._connection_lost("connection closed")

    async def __aenter__(self) -> JsonLinesDaemon:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        reason = "connection closed by daemon"
        try:
            while line := await reader.readline():
                try:
                    msg = decode(line)
                except ValueError:
                    logger.warning(f"Invalid message from daemon: {line!r}")
                    continue
                if isinstance(msg, dict):
                    self._dispatch(msg)
                else:
                    logger.warning(f"Unexpected message from daemon: {msg!r}")
        except OSError as e:
            reason = str(e)
        finally:
            if self._reader is reader:
                writer, self._writer, self._reader = self._writer, None, None
                if writer is not None:
                    writer.close()
                self._connection_lost(reason)

    def _dispatch(self, msg: dict[str, Any]) -> None:
        if "event" in msg:
            event = events.parse_event(str(msg["event"]), msg.get("payload"))
            if event is None:
                logger.debug(f"Ignoring unknown daemon event {msg['event']!r}.")
                return
            for sub in list(self._subscriptions):
                sub.put(event)
            return

        fut = self._pending.pop(msg.get("id"), None)  # type: ignore[arg-type]
        if fut is None or fut.done():
            logger.debug(f"Dropping reply for unknown request: {msg!r}")
            return
        if "error" in msg and msg["error"] is not None:
            fut.set_exception(exceptions.DaemonError(str(msg["error"])))
        else:
            fut.set_result(msg.get("result"))

    def _connection_lost(self, reason: str) -> None:
        pending, self._pending = self._pending, {}
        for fut in pending.values():
            if not fut.done():
                fut.set_exception(exceptions.DaemonConnectionError(reason))
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            sub.close()

    async def request(self, method: str, **params: Any) -> Any:
        await self.connect()
        if self._writer is None:
            raise exceptions.DaemonConnectionError(f"Not connected to {self.address}.")
        request_id = next(self._ids)
        fut = asyncio.get_running_loop().create_future()
        self._pending[request_id] = fut
        try:
            self._writer.write(
                encode({"id": request_id, "method": method, "params": params})
            )
            await self._writer.drain()
        except OSError as e:
            self._pending.pop(request_id, None)
            raise exceptions.DaemonConnectionError(str(e)) from e
        try:
            return await asyncio.wait_for(fut, self.timeout)
        except asyncio.TimeoutError:
            self._pending.pop(request_id, None)
            raise exceptions.DaemonConnectionError(
                f"Daemon did not answer {method} within {self.timeout}s."
            )

    def subscribe(self) -> events.Subscription:
        sub = events.Subscription()
        self._subscriptions.append(sub)
        return sub

    async def call(self, parse: Callable[[Any], T], method: str, **params: Any) -> T:
        """
        Like request(), but convert the result with `parse`. Replies that do not
        fit the expected shape raise DaemonError instead of leaking parse errors.
        """
        result = await self.request(method, **params)
        try:
            return parse(result)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise exceptions.DaemonError(
                f"Malformed reply to {method}: {e!r}"
            ) from e

    # Daemon protocol

    async def get_saved_state(self) -> SavedState:
        return await self.call(lambda r: SavedState.from_json(r or {}), "get_saved_state")

    async def get_status(self) -> ProxyStatus:
        return await self.call(lambda r: ProxyStatus.from_json(r or {}), "get_status")

    async def set_mode(
        self, mode: ProxyMode, app_rules: Sequence[AppRule]
    ) -> ProxyStatus:
        return await self.call(
            lambda r: ProxyStatus.from_json(r or {}),
            "set_mode",
            mode=mode,
            appRules=[rule.to_json() for rule in app_rules],
        )

    async def list_processes(self) -> list[RunningProcess]:
        return await self.call(
            lambda r: [RunningProcess.from_json(p) for p in r or []], "list_processes"
        )

    async def read_log_tail(self, limit: int) -> list[str]:
        return await self.call(
            lambda r: [str(line) for line in r or []], "read_log_tail", limit=limit
        )

    async def get_profiles(self) -> ProfileData:
        return await self.call(lambda r: ProfileData.from_json(r or {}), "get_profiles")

    async def set_active_profile(self, tag: str) -> ProfileData:
        return await self.call(
            lambda r: ProfileData.from_json(r or {}), "set_active_profile", tag=tag
        )

    async def remove_outbound(self, tag: str) -> ProfileData:
        return await self.call(
            lambda r: ProfileData.from_json(r or {}), "remove_outbound", tag=tag
        )

    async def import_share_links(self, links: Sequence[str]) -> ImportResult:
        return await self.call(
            lambda r: ImportResult.from_json(r or {}),
            "import_share_links",
            links=list(links),
        )

    async def import_outbound_json(self, payload: str) -> ImportResult:
        return await self.call(
            lambda r: ImportResult.from_json(r or {}),
            "import_outbound_json",
            payload=payload,
        )
