from __future__ import annotations

import logging

from approute import exceptions
from approute.daemon import Autostart

logger = logging.getLogger(__name__)


class AutostartCoordinator:
    """
    Single-flight toggle of the OS autostart flag. After every toggle attempt
    the flag is read back from the OS, and that value wins over the requested
    one.
    """

    def __init__(self, autostart: Autostart) -> None:
        self.autostart = autostart
        self.enabled = False
        self.busy = False
        self.error: str | None = None

    async def refresh(self) -> None:
        try:
            self.enabled = await self.autostart.is_enabled()
        except (OSError, exceptions.ApprouteException) as e:
            self.error = str(e) or "Failed to check autostart."
            logger.warning(f"Autostart check failed: {self.error}")
        else:
            self.error = None

    async def set_enabled(self, enabled: bool) -> None:
        if self.busy or enabled == self.enabled:
            return
        self.busy = True
        self.error = None
        try:
            if enabled:
                await self.autostart.enable()
            else:
                await self.autostart.disable()
        except (OSError, exceptions.ApprouteException) as e:
            self.error = str(e) or "Failed to update autostart."
            logger.warning(f"Autostart toggle failed: {self.error}")
        toggle_error = self.error
        try:
            await self.refresh()
        finally:
            self.busy = False
        self.error = self.error or toggle_error
