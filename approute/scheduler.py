"""
Debounced, single-flight pushing of the desired state to the daemon.

Edits arm a short timer; bursts of edits keep restarting it, so only the
settled state is sent. When the timer fires, the current (mode, rules
signature) pair is compared with the last pair the daemon accepted, and
nothing is sent if they are equal. At most one apply request is outstanding
at any time: an edit that settles while an apply is in flight re-arms the
timer with a longer delay instead of queueing a second request.

State machine:

    IDLE ──schedule──▶ PENDING ──fire, changed──▶ APPLYING
      ▲                  │  ▲                       │
      └──fire, unchanged─┘  └──done, timer armed────┤
      ▲                                             │
      └──────────────done, no timer─────────────────┘

While APPLYING the timer may be armed again; the state stays APPLYING until
the request completes.
"""

from __future__ import annotations

import asyncio
import enum
import logging

from approute import errors
from approute import exceptions
from approute.daemon import Daemon
from approute.mirror import StatusLogMirror
from approute.models import AppliedState
from approute.models import AppRule
from approute.models import ProxyMode
from approute.rules import DesiredState
from approute.rules import rules_signature
from approute.utils import asyncio_utils

logger = logging.getLogger(__name__)

APPLY_DELAY = 0.35
APPLY_RETRY_DELAY = 0.5


class SchedulerState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    APPLYING = "applying"


_TRANSITIONS: dict[SchedulerState, set[SchedulerState]] = {
    SchedulerState.IDLE: {SchedulerState.PENDING, SchedulerState.APPLYING},
    SchedulerState.PENDING: {
        SchedulerState.PENDING,
        SchedulerState.IDLE,
        SchedulerState.APPLYING,
    },
    SchedulerState.APPLYING: {SchedulerState.IDLE, SchedulerState.PENDING},
}


class IllegalTransition(RuntimeError):
    pass


class ApplyScheduler:
    def __init__(
        self,
        daemon: Daemon,
        desired: DesiredState,
        mirror: StatusLogMirror,
        delay: float = APPLY_DELAY,
        retry_delay: float = APPLY_RETRY_DELAY,
    ) -> None:
        self.daemon = daemon
        self.desired = desired
        self.mirror = mirror
        self.delay = delay
        self.retry_delay = retry_delay

        self.state = SchedulerState.IDLE
        self.applied = AppliedState()
        self.error: errors.ClassifiedError | None = None
        self.enabled = False
        """Edits only arm the timer once the engine finished starting up."""

        self._timer: asyncio.TimerHandle | None = None
        self._running = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def busy(self) -> bool:
        return self.state is SchedulerState.APPLYING

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def _transition(self, new: SchedulerState) -> None:
        if new not in _TRANSITIONS[self.state]:
            raise IllegalTransition(f"{self.state.value} -> {new.value}")
        if new is not self.state:
            logger.debug(f"Apply scheduler: {self.state.value} -> {new.value}")
        self.state = new
        self._update_idle()

    def _update_idle(self) -> None:
        if self.state is SchedulerState.IDLE and not self._running:
            self._idle.set()
        else:
            self._idle.clear()

    def _settle(self) -> None:
        """Leave APPLYING (or a stale PENDING) depending on whether a timer is armed."""
        new = SchedulerState.PENDING if self._timer else SchedulerState.IDLE
        if self.state is not new:
            self._transition(new)

    def snapshot(self) -> None:
        """
        Record the current desired state as already applied, e.g. right after
        startup when the daemon runs with the saved state anyway.
        """
        self.applied = AppliedState(self.desired.mode, self.desired.signature())

    def has_changes(self) -> bool:
        return self.applied != AppliedState(
            self.desired.mode, self.desired.signature()
        )

    def schedule(self, delay: float | None = None) -> None:
        if not self.enabled:
            return
        if self._timer:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(
            self.delay if delay is None else delay, self._fire
        )
        if not self.busy:
            self._transition(SchedulerState.PENDING)

    def cancel(self) -> None:
        """
        Drop a pending timer without firing it.
        """
        if self._timer:
            self._timer.cancel()
            self._timer = None
        if self.state is SchedulerState.PENDING:
            self._transition(SchedulerState.IDLE)

    def _fire(self) -> None:
        self._timer = None
        if not self.has_changes():
            logger.debug("Desired state matches the applied state, nothing to do.")
            if not self.busy:
                self._settle()
            return
        if self.busy:
            logger.debug("Apply still in flight, checking again later.")
            self.schedule(self.retry_delay)
            return
        mode, rules, signature = self._take()
        asyncio_utils.create_task(
            self._apply(mode, rules, signature),
            name="apply mode",
            keep_ref=True,
        )

    def _take(self) -> tuple[ProxyMode, list[AppRule], str]:
        self._transition(SchedulerState.APPLYING)
        self._running += 1
        rules = self.desired.rules.rules
        return self.desired.mode, rules, rules_signature(rules)

    async def apply_mode(self) -> None:
        """
        Push the desired state now. Does nothing while another apply is in
        flight or when the daemon already runs with this exact state.
        """
        if self.busy or not self.has_changes():
            return
        await self._apply(*self._take())

    async def _apply(
        self, mode: ProxyMode, rules: list[AppRule], signature: str
    ) -> None:
        self.error = None
        try:
            status = await self.daemon.set_mode(mode, rules)
        except exceptions.DaemonError as e:
            self.error = errors.classify(e.message)
            logger.warning(f"Applying mode {mode!r} failed: {self.error.message}")
        else:
            self.mirror.status = status
            self.applied = AppliedState(mode, signature)
            logger.info(f"Applied mode {mode!r} with {len(rules)} app rule(s).")
        finally:
            self._settle()
            try:
                await self.mirror.refresh_status()
                await self.mirror.load_log_tail()
            finally:
                self._running -= 1
                self._update_idle()

    async def wait_idle(self) -> None:
        """
        Wait until no timer is armed, no apply is in flight and the
        post-apply refresh has finished.
        """
        while True:
            await self._idle.wait()
            if self._idle.is_set():
                return
