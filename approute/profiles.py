from __future__ import annotations

import logging
from collections.abc import Awaitable
from collections.abc import Sequence

from approute import exceptions
from approute.daemon import Daemon
from approute.models import ImportResult
from approute.models import ProfileData
from approute.models import ProfileItem
from approute.utils import signals

logger = logging.getLogger(__name__)


class ProfileManager:
    """
    Outbound profiles as the daemon stores them.

    Every successful operation replaces `active_tag` and `profiles` with the
    daemon's answer and sends `changed`, since switching outbounds can change
    effective routing. Failures end up on `error` and are never raised.
    """

    def __init__(self, daemon: Daemon) -> None:
        self.daemon = daemon
        self.profiles: list[ProfileItem] = []
        self.active_tag: str | None = None
        self.error: str | None = None
        self.warnings: list[str] = []
        self.busy = False
        """Set while an import runs. Advisory only, other operations ignore it."""
        self.changed = signals.SyncSignal(lambda: None)

    def get(self, tag: str) -> ProfileItem | None:
        for p in self.profiles:
            if p.tag == tag:
                return p
        return None

    def _adopt(self, data: ProfileData) -> None:
        self.active_tag = data.active_tag
        self.profiles = data.items()

    async def load(self) -> None:
        try:
            data = await self.daemon.get_profiles()
        except exceptions.DaemonError as e:
            self._fail(e, "Failed to load profiles.")
        else:
            self._adopt(data)

    async def activate(self, tag: str) -> bool:
        return await self._update(
            self.daemon.set_active_profile(tag), "Failed to select the profile."
        )

    async def remove(self, tag: str) -> bool:
        return await self._update(
            self.daemon.remove_outbound(tag), "Failed to remove the profile."
        )

    async def import_share_links(self, links: Sequence[str]) -> bool:
        return await self._import(
            self.daemon.import_share_links(list(links)),
            "Failed to import share links.",
        )

    async def import_json(self, payload: str) -> bool:
        return await self._import(
            self.daemon.import_outbound_json(payload), "Failed to import JSON."
        )

    async def _update(self, request: Awaitable[ProfileData], default: str) -> bool:
        self.error = None
        try:
            data = await request
        except exceptions.DaemonError as e:
            self._fail(e, default)
            return False
        self._adopt(data)
        self.changed.send()
        return True

    async def _import(self, request: Awaitable[ImportResult], default: str) -> bool:
        self.busy = True
        self.error = None
        self.warnings = []
        try:
            result = await request
        except exceptions.DaemonError as e:
            self._fail(e, default)
            return False
        finally:
            self.busy = False
        self._adopt(result.profile)
        self.warnings = list(result.errors)
        logger.info(
            f"Imported {result.added} outbound(s)"
            + (f", {len(result.errors)} skipped." if result.errors else ".")
        )
        for w in self.warnings:
            logger.warning(f"Import: {w}")
        self.changed.send()
        return True

    def _fail(self, e: exceptions.DaemonError, default: str) -> None:
        self.error = e.message or default
        logger.warning(self.error)
