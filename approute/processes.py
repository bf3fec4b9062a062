from __future__ import annotations

import asyncio
import logging

from approute import exceptions
from approute.daemon import Daemon
from approute.models import RunningProcess
from approute.utils import asyncio_utils

logger = logging.getLogger(__name__)


class ProcessCache:
    """
    Latest snapshot of the processes the daemon sees running. Each refresh
    replaces the snapshot as a whole.
    """

    def __init__(self, daemon: Daemon, interval: float = 4.0) -> None:
        self.daemon = daemon
        self.interval = interval
        self.processes: list[RunningProcess] = []
        self.error: str | None = None
        self._poll_task: asyncio.Task | None = None

    async def refresh(self) -> None:
        try:
            processes = await self.daemon.list_processes()
        except exceptions.DaemonError as e:
            self.error = str(e) or "Failed to list running processes."
            logger.warning(f"Process refresh failed: {self.error}")
        else:
            self.processes = list(processes)
            self.error = None

    @property
    def polling(self) -> bool:
        return self._poll_task is not None

    def start_polling(self, interval: float | None = None) -> None:
        if self._poll_task is not None:
            return
        if interval is not None:
            self.interval = interval
        self._poll_task = asyncio_utils.create_task(
            self._poll(),
            name="process polling",
            keep_ref=False,
        )

    def stop_polling(self) -> None:
        if self._poll_task is None:
            return
        self._poll_task.cancel()
        self._poll_task = None

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.refresh()
            except Exception as e:
                self.error = f"Process refresh failed: {e!r}"
                logger.exception(self.error)
