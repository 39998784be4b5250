"""Identity map — the one-to-one link between raw objects and their wrappers.

Raw objects are keyed by id() so unhashable containers (dict, list) work.
Neither direction keeps the wrapper alive: the forward map is weak-valued and
the reverse entry is evicted by a finalizer when the wrapper is collected.
A live wrapper holds its raw object, so an id in the forward map can never be
recycled while its entry exists.
"""

from __future__ import annotations

import weakref


class IdentityMap:
    """raw -> wrapper and wrapper -> raw, always mutual inverses."""

    __slots__ = ("_wrappers", "_raws")

    def __init__(self) -> None:
        self._wrappers: weakref.WeakValueDictionary[int, object] = weakref.WeakValueDictionary()
        self._raws: dict[int, object] = {}

    def wrap_of(self, raw: object) -> object | None:
        return self._wrappers.get(id(raw))

    def raw_of(self, wrapper: object) -> object | None:
        return self._raws.get(id(wrapper))

    def register(self, raw: object, wrapper: object) -> None:
        """Insert both directions. The wrapper must support weak references."""
        self._wrappers[id(raw)] = wrapper
        self._raws[id(wrapper)] = raw
        weakref.finalize(wrapper, self._raws.pop, id(wrapper), None)

    def clear(self) -> None:
        self._wrappers.clear()
        self._raws.clear()

    def __len__(self) -> int:
        return len(self._wrappers)
