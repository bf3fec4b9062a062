"""
Plain data records exchanged with the proxy daemon.

The daemon speaks camelCase JSON; every record converts to and from that
shape with from_json() / to_json(). Records coming from the daemon are always
replaced wholesale, never patched field by field.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Literal

ProxyMode = Literal["off", "selected", "full"]
AppRuleMode = Literal["proxy", "direct"]

PROXY_MODES: tuple[str, ...] = typing.get_args(ProxyMode)


def check_mode(mode: str) -> ProxyMode:
    if mode not in PROXY_MODES:
        raise ValueError(
            f"Invalid proxy mode: {mode!r} (expected one of {', '.join(PROXY_MODES)})"
        )
    return typing.cast(ProxyMode, mode)


@dataclass
class AppRule:
    """
    Routes one application through the proxy. `path` is either a filesystem
    path or a bare process name such as "discord.exe".
    """

    path: str
    mode: AppRuleMode = "proxy"
    name: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> AppRule:
        return cls(
            path=str(data["path"]),
            mode=data.get("mode") or "proxy",
            name=data.get("name") or None,
        )

    def to_json(self) -> dict[str, Any]:
        return {"path": self.path, "mode": self.mode, "name": self.name}


@dataclass
class RunningProcess:
    name: str
    path: str
    count: int = 1
    pids: list[int] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> RunningProcess:
        return cls(
            name=str(data.get("name") or ""),
            path=str(data.get("path") or ""),
            count=int(data.get("count") or 0),
            pids=[int(p) for p in data.get("pids") or []],
        )


@dataclass(frozen=True)
class AppListItem:
    name: str
    path: str
    running: bool
    count: int
    mode: AppRuleMode


@dataclass
class ProxyStatus:
    running: bool = False
    mode: ProxyMode = "off"
    pid: int | None = None
    last_exit: int | None = None
    last_error: str | None = None
    config_path: str | None = None
    profile_path: str = ""
    log_path: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ProxyStatus:
        return cls(
            running=bool(data.get("running")),
            mode=check_mode(data.get("mode") or "off"),
            pid=data.get("pid"),
            last_exit=data.get("lastExit"),
            last_error=data.get("lastError"),
            config_path=data.get("configPath"),
            profile_path=data.get("profilePath") or "",
            log_path=data.get("logPath"),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "mode": self.mode,
            "pid": self.pid,
            "lastExit": self.last_exit,
            "lastError": self.last_error,
            "configPath": self.config_path,
            "profilePath": self.profile_path,
            "logPath": self.log_path,
        }


@dataclass
class ProfileItem:
    """
    Normalized view of one daemon outbound. `tag` is the unique key.
    """

    tag: str
    type: str
    server: str | None = None
    server_port: int | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_outbound(cls, raw: dict[str, Any]) -> ProfileItem:
        server = _first(raw, "server", "server_address", "address")
        port = _first(raw, "server_port", "port")
        if isinstance(port, str):
            port = int(port) if port.strip().isdigit() else None
        elif isinstance(port, bool) or not isinstance(port, int):
            port = None
        return cls(
            tag=str(raw.get("tag") or "untagged"),
            type=str(raw.get("type") or "unknown"),
            server=None if server is None else str(server),
            server_port=port,
            raw=raw,
        )


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if raw.get(k) is not None:
            return raw[k]
    return None


@dataclass
class ProfileData:
    outbounds: list[dict[str, Any]] = field(default_factory=list)
    active_tag: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ProfileData:
        return cls(
            outbounds=list(data.get("outbounds") or []),
            active_tag=data.get("activeTag"),
        )

    def items(self) -> list[ProfileItem]:
        return [
            ProfileItem.from_outbound(o) for o in self.outbounds if isinstance(o, dict)
        ]


@dataclass
class ImportResult:
    profile: ProfileData
    added: int = 0
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ImportResult:
        return cls(
            profile=ProfileData.from_json(data.get("profile") or {}),
            added=int(data.get("added") or 0),
            errors=[str(e) for e in data.get("errors") or []],
        )


@dataclass
class SavedState:
    last_mode: ProxyMode = "off"
    app_rules: list[AppRule] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> SavedState:
        return cls(
            last_mode=check_mode(data.get("lastMode") or "off"),
            app_rules=[AppRule.from_json(r) for r in data.get("appRules") or []],
        )


@dataclass(frozen=True)
class AppliedState:
    """What the daemon was last told successfully."""

    mode: ProxyMode = "off"
    rules_signature: str = ""
