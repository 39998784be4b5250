"""Dependency graph — which effects read which (object, key) pairs.

Layout: raw object id -> (raw object, key -> set of effects). The graph owns
the edges of every effect as well, so an effect can be detached from all of
its dependencies before it re-runs or when it is disposed.

A raw object stays referenced here only while some effect depends on it,
which keeps its id from being reused under a live entry.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Hashable

if TYPE_CHECKING:
    from trackfx.effect import Effect

    Edge = tuple[int, Hashable]


class TriggerKind(Enum):
    """How a write changed its target. Informational only."""

    ADD = "add"
    SET = "set"


class DependencyGraph:
    """object -> (key -> effects), plus the reverse edge index per effect."""

    __slots__ = ("_targets", "_edges")

    def __init__(self) -> None:
        self._targets: dict[int, tuple[object, dict[Hashable, set[Effect]]]] = {}
        self._edges: dict[Effect, set[Edge]] = {}

    def add(self, target: object, key: Hashable, effect: Effect) -> bool:
        """Record that effect read key on target. Returns False if already known."""
        entry = self._targets.get(id(target))
        if entry is None:
            entry = (target, {})
            self._targets[id(target)] = entry
        deps = entry[1].get(key)
        if deps is None:
            deps = set()
            entry[1][key] = deps
        if effect in deps:
            return False
        deps.add(effect)
        self._edges.setdefault(effect, set()).add((id(target), key))
        return True

    def dependents(self, target: object, key: Hashable) -> list[Effect]:
        """Snapshot of the effects depending on (target, key)."""
        entry = self._targets.get(id(target))
        if entry is None:
            return []
        deps = entry[1].get(key)
        if not deps:
            return []
        return list(deps)

    def keys_of(self, target: object) -> set[Hashable]:
        entry = self._targets.get(id(target))
        return set(entry[1]) if entry is not None else set()

    def remove(self, effect: Effect) -> None:
        """Detach effect from every (object, key) it was recorded under."""
        for target_id, key in self._edges.pop(effect, ()):
            entry = self._targets.get(target_id)
            if entry is None:
                continue
            table = entry[1]
            deps = table.get(key)
            if deps is None:
                continue
            deps.discard(effect)
            if not deps:
                del table[key]
            if not table:
                del self._targets[target_id]

    def edge_count(self, effect: Effect) -> int:
        return len(self._edges.get(effect, ()))

    def clear(self) -> None:
        self._targets.clear()
        self._edges.clear()

    def __contains__(self, target: object) -> bool:
        return id(target) in self._targets

    def __len__(self) -> int:
        return len(self._targets)
