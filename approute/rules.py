"""
Desired state: the global proxy mode plus the per-application rules.

Mutations are synchronous and never talk to the daemon. Each effective change
is announced on a `changed` signal, which the apply scheduler listens to.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable

from approute.models import AppRule
from approute.models import check_mode
from approute.models import ProxyMode
from approute.utils import signals
from approute.utils import strutils

logger = logging.getLogger(__name__)


def normalize_path(value: str) -> str:
    value = value.strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value.strip()


def is_process_name(value: str) -> bool:
    """
    A rule path without separators and without a drive colon names a process
    ("discord.exe") rather than a file.
    """
    value = normalize_path(value)
    if not value:
        return False
    return not strutils.has_path_separator(value) and ":" not in value


def file_name(path: str) -> str:
    return strutils.last_path_segment(path)


def rules_signature(rules: Iterable[AppRule]) -> str:
    """
    Deterministic encoding of a rule set, independent of rule order.
    """
    ordered = sorted(rules, key=lambda r: (strutils.sort_key(r.path), r.path))
    return ";;".join(f"{r.path}|{r.mode}|{r.name or ''}" for r in ordered)


class RuleStore:
    def __init__(self) -> None:
        self._rules: list[AppRule] = []
        self.changed = signals.SyncSignal(lambda: None)

    @property
    def rules(self) -> list[AppRule]:
        """A copy of the current rules, safe to hand to the daemon."""
        return [dataclasses.replace(r) for r in self._rules]

    def __len__(self) -> int:
        return len(self._rules)

    def find(self, path: str) -> AppRule | None:
        normalized = normalize_path(path)
        for r in self._rules:
            if r.path == normalized:
                return r
        return None

    def replace(self, rules: Iterable[AppRule]) -> None:
        """
        Load rules from persisted state. Does not count as an edit.
        """
        self._rules = []
        for r in rules:
            path = normalize_path(r.path)
            if path and not any(x.path == path for x in self._rules):
                self._rules.append(AppRule(path=path, mode=r.mode, name=r.name))

    def set_proxy(self, path: str, name: str | None = None) -> None:
        normalized = normalize_path(path)
        if not normalized:
            return
        existing = self.find(normalized)
        if existing:
            if existing.mode == "proxy" and (not name or existing.name == name):
                return
            existing.mode = "proxy"
            if name:
                existing.name = name
            logger.debug(f"Updated proxy rule for {normalized}.")
        else:
            self._rules.append(AppRule(path=normalized, mode="proxy", name=name))
            logger.debug(f"Added proxy rule for {normalized}.")
        self.changed.send()

    def set_direct(self, path: str) -> None:
        normalized = normalize_path(path)
        if not normalized:
            return
        remaining = [r for r in self._rules if r.path != normalized]
        if len(remaining) == len(self._rules):
            return
        self._rules = remaining
        logger.debug(f"Removed proxy rule for {normalized}.")
        self.changed.send()

    def clear(self) -> None:
        if not self._rules:
            return
        self._rules = []
        self.changed.send()


class DesiredState:
    """
    The mode and rules the user wants the daemon to run with.
    """

    def __init__(self) -> None:
        self._mode: ProxyMode = "off"
        self.rules = RuleStore()
        self.changed = signals.SyncSignal(lambda: None)
        self.rules.changed.connect(self._rules_changed)

    def _rules_changed(self) -> None:
        self.changed.send()

    @property
    def mode(self) -> ProxyMode:
        return self._mode

    def set_mode(self, mode: str) -> None:
        mode = check_mode(mode)
        if mode == self._mode:
            return
        self._mode = mode
        self.changed.send()

    def adopt_mode(self, mode: str) -> None:
        """
        Take over the mode the daemon reports. Not an edit, so nothing is
        scheduled.
        """
        self._mode = check_mode(mode)

    def signature(self) -> str:
        return rules_signature(self.rules.rules)
