"""
The engine owns every piece of client-side state and wires the components
together:

    DesiredState.changed ──▶ ApplyScheduler.schedule
    ProfileManager.changed ─┘
    ApplyScheduler ──set_mode──▶ daemon ──▶ StatusLogMirror refresh
    daemon events ──▶ StatusLogMirror.handle_event

Timers, the poll loop and the event subscription only exist between start()
and stop().
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from approute import exceptions
from approute import reconciler
from approute.autostart import AutostartCoordinator
from approute.daemon import Autostart
from approute.daemon import Daemon
from approute.events import Subscription
from approute.mirror import StatusLogMirror
from approute.models import AppListItem
from approute.models import AppRule
from approute.models import ProxyMode
from approute.models import ProxyStatus
from approute.options import Options
from approute.profiles import ProfileManager
from approute.rules import DesiredState
from approute.scheduler import ApplyScheduler
from approute.scheduler import SchedulerState
from approute.utils import asyncio_utils

logger = logging.getLogger(__name__)


class Engine:
    def __init__(
        self,
        daemon: Daemon,
        autostart: Autostart | None = None,
        options: Options | None = None,
    ) -> None:
        self.options = options or Options()
        self.daemon = daemon
        self.desired = DesiredState()
        self.mirror = StatusLogMirror(
            daemon,
            self.desired,
            hold_mode=self._hold_mode,
            log_limit=self.options.log_limit,
            log_tail_limit=self.options.log_tail_limit,
            poll_interval=self.options.process_poll_interval,
        )
        self.scheduler = ApplyScheduler(
            daemon,
            self.desired,
            self.mirror,
            delay=self.options.apply_delay,
            retry_delay=self.options.apply_retry_delay,
        )
        self.profiles = ProfileManager(daemon)
        self.autostart = AutostartCoordinator(autostart) if autostart else None

        self.ready = False
        self.error: str | None = None
        self._subscription: Subscription | None = None
        self._event_task: asyncio.Task | None = None

        self.desired.changed.connect(self.scheduler.schedule)
        self.profiles.changed.connect(self.scheduler.schedule)
        self.options.changed.connect(self.configure)

    def configure(self, updated: set[str]) -> None:
        if "apply_delay" in updated:
            self.scheduler.delay = self.options.apply_delay
        if "apply_retry_delay" in updated:
            self.scheduler.retry_delay = self.options.apply_retry_delay
        if "process_poll_interval" in updated:
            self.mirror.process_cache.interval = self.options.process_poll_interval
        if "log_tail_limit" in updated:
            self.mirror.log_tail_limit = self.options.log_tail_limit
        if "log_limit" in updated:
            self.mirror.logs = type(self.mirror.logs)(
                self.mirror.logs, maxlen=self.options.log_limit
            )

    def _hold_mode(self) -> bool:
        # Stricter than "not applying": an armed debounce also holds the
        # desired mode, so daemon-reported modes never replace a pending edit.
        return self.scheduler.state is not SchedulerState.IDLE

    # lifecycle

    async def start(self) -> None:
        if self.ready:
            return
        self.ready = True
        await self.load_saved_state()
        await asyncio.gather(
            self.mirror.refresh_status(),
            self.profiles.load(),
            self.mirror.refresh_processes(),
            self.mirror.load_log_tail(),
            self.refresh_autostart(),
        )
        self.scheduler.snapshot()
        self.scheduler.enabled = True
        self.mirror.process_cache.start_polling(self.options.process_poll_interval)
        self._subscription = self.daemon.subscribe()
        self._event_task = asyncio_utils.create_task(
            self._consume_events(self._subscription),
            name="daemon events",
            keep_ref=False,
        )
        logger.debug("Engine started.")

    async def stop(self) -> None:
        if not self.ready:
            return
        self.ready = False
        self.scheduler.enabled = False
        self.scheduler.cancel()
        self.mirror.process_cache.stop_polling()
        if self._subscription:
            self._subscription.close()
            self._subscription = None
        await asyncio_utils.cancel_task(self._event_task)
        self._event_task = None
        logger.debug("Engine stopped.")

    async def __aenter__(self) -> Engine:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.stop()

    async def _consume_events(self, subscription: Subscription) -> None:
        async for event in subscription:
            await self.mirror.handle_event(event)

    async def load_saved_state(self) -> None:
        try:
            saved = await self.daemon.get_saved_state()
        except exceptions.DaemonError as e:
            self.error = e.message or "Failed to load saved settings."
            logger.warning(self.error)
            return
        self.desired.rules.replace(saved.app_rules)
        if not self.scheduler.busy:
            self.desired.adopt_mode(saved.last_mode)

    async def refresh_autostart(self) -> None:
        if self.autostart:
            await self.autostart.refresh()

    # desired state

    @property
    def mode(self) -> ProxyMode:
        return self.desired.mode

    @property
    def rules(self) -> list[AppRule]:
        return self.desired.rules.rules

    def set_mode(self, mode: str) -> None:
        self.desired.set_mode(mode)

    def set_proxy(self, path: str, name: str | None = None) -> None:
        self.desired.rules.set_proxy(path, name)

    def set_direct(self, path: str) -> None:
        self.desired.rules.set_direct(path)

    def clear_app_rules(self) -> None:
        self.desired.rules.clear()

    async def apply_mode(self) -> None:
        await self.scheduler.apply_mode()

    # observed state

    @property
    def app_list(self) -> list[AppListItem]:
        return reconciler.app_list(self.desired.rules.rules, self.mirror.processes)

    @property
    def status(self) -> ProxyStatus:
        return self.mirror.status

    @property
    def logs(self) -> list[str]:
        return list(self.mirror.logs)

    # profiles

    async def activate_profile(self, tag: str) -> bool:
        return await self.profiles.activate(tag)

    async def remove_profile(self, tag: str) -> bool:
        return await self.profiles.remove(tag)

    async def import_share_links(self, links: Sequence[str]) -> bool:
        return await self.profiles.import_share_links(links)

    async def import_json(self, payload: str) -> bool:
        return await self.profiles.import_json(payload)
