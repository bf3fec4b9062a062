"""
The collaborators the engine talks to, expressed as protocols.

`Daemon` is the request/response surface of the background proxy daemon plus
its push event stream. Failed requests raise approute.exceptions.DaemonError
carrying the daemon's error string. `Autostart` is the OS-level "start with
the system" flag; its failures raise OSError or an ApprouteException.

approute.transport.JsonLinesDaemon is the production implementation of
`Daemon`; approute.test.tdaemon provides in-memory fakes of both.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from approute.events import Subscription
from approute.models import AppRule
from approute.models import ImportResult
from approute.models import ProfileData
from approute.models import ProxyMode
from approute.models import ProxyStatus
from approute.models import RunningProcess
from approute.models import SavedState


class Daemon(Protocol):
    async def get_saved_state(self) -> SavedState: ...

    async def get_status(self) -> ProxyStatus: ...

    async def set_mode(
        self, mode: ProxyMode, app_rules: Sequence[AppRule]
    ) -> ProxyStatus: ...

    async def list_processes(self) -> list[RunningProcess]: ...

    async def read_log_tail(self, limit: int) -> list[str]: ...

    async def get_profiles(self) -> ProfileData: ...

    async def set_active_profile(self, tag: str) -> ProfileData: ...

    async def remove_outbound(self, tag: str) -> ProfileData: ...

    async def import_share_links(self, links: Sequence[str]) -> ImportResult: ...

    async def import_outbound_json(self, payload: str) -> ImportResult: ...

    def subscribe(self) -> Subscription: ...


class Autostart(Protocol):
    async def enable(self) -> None: ...

    async def disable(self) -> None: ...

    async def is_enabled(self) -> bool: ...
