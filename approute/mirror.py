"""
Local mirror of everything the daemon owns: proxy status, running processes
and the tail of the proxy log.
"""

from __future__ import annotations

import collections
import logging
from collections.abc import Callable
from collections.abc import Iterable

from approute import events
from approute import exceptions
from approute.daemon import Daemon
from approute.models import ProxyStatus
from approute.models import RunningProcess
from approute.processes import ProcessCache
from approute.rules import DesiredState

logger = logging.getLogger(__name__)

LOG_LIMIT = 500
LOG_TAIL_LIMIT = 200


class StatusLogMirror:
    def __init__(
        self,
        daemon: Daemon,
        desired: DesiredState,
        hold_mode: Callable[[], bool] = lambda: False,
        log_limit: int = LOG_LIMIT,
        log_tail_limit: int = LOG_TAIL_LIMIT,
        poll_interval: float = 4.0,
    ) -> None:
        self.daemon = daemon
        self.desired = desired
        self.hold_mode = hold_mode
        """Returns True while the local mode must not be replaced by the daemon's."""
        self.log_tail_limit = log_tail_limit
        self.status = ProxyStatus()
        self.logs: collections.deque[str] = collections.deque(maxlen=log_limit)
        self.process_cache = ProcessCache(daemon, poll_interval)
        self.error: str | None = None

    @property
    def processes(self) -> list[RunningProcess]:
        return self.process_cache.processes

    @property
    def log_limit(self) -> int | None:
        return self.logs.maxlen

    async def refresh_status(self) -> None:
        try:
            status = await self.daemon.get_status()
        except exceptions.DaemonError as e:
            self.error = str(e) or "Failed to read proxy status."
            logger.warning(f"Status refresh failed: {self.error}")
            return
        self.status = status
        if not self.hold_mode():
            self.desired.adopt_mode(status.mode)

    async def refresh_processes(self) -> None:
        await self.process_cache.refresh()

    async def load_log_tail(self, limit: int | None = None) -> None:
        limit = self.log_tail_limit if limit is None else limit
        try:
            lines = await self.daemon.read_log_tail(limit)
        except exceptions.DaemonError as e:
            self.error = str(e) or "Failed to read the proxy log."
            logger.warning(f"Reading log tail failed: {self.error}")
            return
        self.logs = collections.deque(lines, maxlen=self.logs.maxlen)

    def append_log(self, line: str) -> None:
        self.append_logs([line])

    def append_logs(self, lines: Iterable[str]) -> None:
        self.logs.extend(line for line in lines if line)

    def clear_logs(self) -> None:
        self.logs.clear()

    async def handle_event(self, event: events.Event) -> None:
        if isinstance(event, events.ProxyExited):
            logger.info(f"Proxy process exited (code {event.code}).")
            await self.refresh_status()
        elif isinstance(event, events.LogBatch):
            self.append_logs(event.lines)
