"""
Merge the rule list and the running process snapshot into one app list.

Every rule yields a "proxy" entry, running or not. Every running process that
no rule covers yields a "direct" entry. Path rules match a process by exact
path, name rules match case-insensitively by process name (summing the
instance counts of all processes with that name).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from approute.models import AppListItem
from approute.models import AppRule
from approute.models import RunningProcess
from approute.rules import file_name
from approute.rules import is_process_name
from approute.utils import strutils


@dataclass
class _NameEntry:
    name: str
    count: int


def app_list(
    rules: Sequence[AppRule], processes: Sequence[RunningProcess]
) -> list[AppListItem]:
    by_path: dict[str, RunningProcess] = {p.path: p for p in processes}
    by_name: dict[str, _NameEntry] = {}
    for p in processes:
        key = p.name.lower()
        if key in by_name:
            by_name[key].count += p.count
        else:
            by_name[key] = _NameEntry(p.name, p.count)

    name_rules: set[str] = set()
    path_rules: set[str] = set()
    for rule in rules:
        if is_process_name(rule.path):
            name_rules.add(rule.path.lower())
        else:
            path_rules.add(rule.path)

    items: list[AppListItem] = []
    for rule in rules:
        match: RunningProcess | _NameEntry | None
        if is_process_name(rule.path):
            match = by_name.get(rule.path.lower())
        else:
            match = by_path.get(rule.path)
        items.append(
            AppListItem(
                name=rule.name or (match.name if match else "") or file_name(rule.path),
                path=rule.path,
                running=match is not None,
                count=match.count if match else 0,
                mode="proxy",
            )
        )

    seen: set[str] = set()
    for p in processes:
        if p.path in path_rules or p.name.lower() in name_rules or p.path in seen:
            continue
        seen.add(p.path)
        items.append(
            AppListItem(
                name=p.name or file_name(p.path),
                path=p.path,
                running=True,
                count=p.count,
                mode="direct",
            )
        )

    items.sort(key=lambda item: strutils.sort_key(item.name))
    return items
