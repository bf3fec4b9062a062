"""
Events pushed by the daemon without being asked.

Both kinds travel on a single ordered stream, so a consumer sees them in the
order the daemon sent them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProxyExited:
    """The proxy process went away; status must be re-read."""

    name = "proxy-exited"
    code: int | None = None


@dataclass(frozen=True)
class LogBatch:
    """New lines appended to the proxy's log."""

    name = "proxy-log-batch"
    lines: list[str] = field(default_factory=list)


Event = Union[ProxyExited, LogBatch]


def parse_event(name: str, payload: dict[str, Any] | None) -> Event | None:
    """
    Build an event from its wire name and payload. Unknown names give None.
    """
    payload = payload or {}
    if name == ProxyExited.name:
        return ProxyExited(code=payload.get("code"))
    elif name == LogBatch.name:
        return LogBatch(lines=[str(line) for line in payload.get("lines") or []])
    return None


_CLOSED = object()


class Subscription:
    """
    A cancellable event channel. The producer calls put(), the consumer
    iterates with `async for`. Iteration ends once close() was called and all
    queued events have been consumed.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def put(self, event: Event) -> None:
        if self.closed:
            logger.debug(f"Dropping {event.name} event for closed subscription.")
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Event:
        item = await self._queue.get()
        if item is _CLOSED:
            # keep the marker around for any other waiting consumer
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item
