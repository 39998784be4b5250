"""Reactive proxies — wrappers that track reads and trigger on writes.

A wrapper forwards every access to its raw object. Reads of a property
record a dependency for the running effect; writes that add a property or
change its value re-run the effects that read it. Object-like values found
on read are wrapped on demand, so nested structures become reactive only as
far as they are actually visited.

What counts as a property depends on the raw object:

- mappings: keys (``p["name"]``, ``p.get("name")``)
- mutable sequences: integer indices (``p[0]``), negative ones normalised
- other instances with a ``__dict__``: attributes (``p.name``)

All state lives in the owning Runtime; wrappers only hold their target and
runtime.
"""

from __future__ import annotations

import logging
import operator
from collections.abc import MutableMapping, MutableSequence
from types import MethodType, ModuleType
from typing import TYPE_CHECKING, Any, ClassVar, Hashable, Iterator

from trackfx._tracking import TriggerKind

if TYPE_CHECKING:
    from trackfx.runtime import Runtime

logger = logging.getLogger("trackfx.proxy")

_MISSING = object()


def is_object(value: object) -> bool:
    """Can value be wrapped? Primitives, callables, classes and modules can't."""
    if isinstance(value, (MutableMapping, MutableSequence)):
        return True
    if isinstance(value, (type, ModuleType)) or callable(value):
        return False
    return hasattr(value, "__dict__")


def is_reactive(value: object) -> bool:
    return isinstance(value, ReactiveProxy)


def target_of(proxy: ReactiveProxy) -> Any:
    return object.__getattribute__(proxy, "_ReactiveProxy__target")


def runtime_of(proxy: ReactiveProxy) -> Runtime:
    return object.__getattribute__(proxy, "_ReactiveProxy__runtime")


def to_raw(value: object) -> Any:
    """The raw object behind a wrapper, or value itself if it isn't one."""
    return target_of(value) if isinstance(value, ReactiveProxy) else value


# ─── Property access per kind of target ──────────────────────────────────────


class _AttributeAccess:
    @staticmethod
    def normalize(target: Any, key: str) -> str:
        return key

    @staticmethod
    def has(target: Any, key: str) -> bool:
        return key in vars(target)

    @staticmethod
    def get(target: Any, key: str) -> Any:
        return getattr(target, key)

    @staticmethod
    def set(target: Any, key: str, value: Any) -> None:
        setattr(target, key, value)


class _MappingAccess:
    @staticmethod
    def normalize(target: Any, key: Hashable) -> Hashable:
        return key

    @staticmethod
    def has(target: Any, key: Hashable) -> bool:
        return key in target

    @staticmethod
    def get(target: Any, key: Hashable) -> Any:
        return target[key]

    @staticmethod
    def set(target: Any, key: Hashable, value: Any) -> None:
        target[key] = value


class _SequenceAccess:
    @staticmethod
    def normalize(target: Any, key: Any) -> int:
        index = operator.index(key)
        if index < 0:
            index += len(target)
        return index

    @staticmethod
    def has(target: Any, key: int) -> bool:
        return 0 <= key < len(target)

    @staticmethod
    def get(target: Any, key: int) -> Any:
        return target[key]

    @staticmethod
    def set(target: Any, key: int, value: Any) -> None:
        target[key] = value


def _property_of(target: Any, key: str) -> property | None:
    """The property defining key on target's class, if there is one."""
    for klass in type(target).__mro__:
        if key in vars(klass):
            attr = vars(klass)[key]
            return attr if isinstance(attr, property) else None
    return None


def _changed(old_value: Any, new_value: Any) -> bool:
    """Objects compare by identity, primitives by type and value."""
    old_value, new_value = to_raw(old_value), to_raw(new_value)
    if old_value is new_value:
        return False
    if is_object(old_value) or is_object(new_value):
        return True
    return type(old_value) is not type(new_value) or old_value != new_value


def _read(proxy: ReactiveProxy, key: Any, access: Any) -> Any:
    target = target_of(proxy)
    runtime = runtime_of(proxy)
    key = access.normalize(target, key)
    # Track before the lookup: a failed read still depends on the key.
    runtime.track(target, key)
    if access is _AttributeAccess:
        prop = _property_of(target, key)
        if prop is not None:
            # The getter sees the wrapper as self, so its reads are tracked.
            return runtime.reactive(prop.__get__(proxy, type(target)))
    value = access.get(target, key)
    if isinstance(value, MethodType) and value.__self__ is target:
        return MethodType(value.__func__, proxy)
    return runtime.reactive(value)


def _write(proxy: ReactiveProxy, key: Any, value: Any, access: Any) -> bool:
    target = target_of(proxy)
    runtime = runtime_of(proxy)
    key = access.normalize(target, key)
    if access is _AttributeAccess:
        prop = _property_of(target, key)
        if prop is not None:
            # Writes made by the setter through self trigger on their own.
            prop.__set__(proxy, value)
            return True
    had_key = access.has(target, key)
    old_value = access.get(target, key) if had_key else _MISSING
    access.set(target, key, value)
    if not had_key:
        logger.debug("Added %r to %s", key, type(target).__name__)
        runtime.trigger(target, key, TriggerKind.ADD)
    elif _changed(old_value, value):
        logger.debug("Modified %r on %s", key, type(target).__name__)
        runtime.trigger(target, key, TriggerKind.SET)
    return True


# ─── Wrappers ────────────────────────────────────────────────────────────────


class ReactiveProxy:
    """Wrapper over a plain object: attribute reads track, attribute writes trigger.

    Methods of the raw object are re-bound to the wrapper, so mutations made
    through ``self`` inside a method trigger too.
    """

    __slots__ = ("__target", "__runtime", "__weakref__")

    def __init__(self, target: Any, runtime: Runtime) -> None:
        object.__setattr__(self, "_ReactiveProxy__target", target)
        object.__setattr__(self, "_ReactiveProxy__runtime", runtime)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") and name.endswith("__"):
            return getattr(target_of(self), name)
        return _read(self, name, _AttributeAccess)

    def __setattr__(self, name: str, value: Any) -> None:
        _write(self, name, value, _AttributeAccess)

    def __delattr__(self, name: str) -> None:
        # Deletion is not reactive.
        delattr(target_of(self), name)

    def __eq__(self, other: object) -> bool:
        return target_of(self) == to_raw(other)

    def __hash__(self) -> int:
        return hash(target_of(self))

    def __bool__(self) -> bool:
        return bool(target_of(self))

    def __repr__(self) -> str:
        return f"reactive({target_of(self)!r})"


class ReactiveCollection(ReactiveProxy):
    """Base for container wrappers: items are the properties, attributes are not."""

    __slots__ = ()

    _access: ClassVar[Any]

    def __getattr__(self, name: str) -> Any:
        return getattr(target_of(self), name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(target_of(self), name, value)

    def __getitem__(self, key: Any) -> Any:
        return _read(self, key, self._access)

    def __setitem__(self, key: Any, value: Any) -> None:
        _write(self, key, value, self._access)

    def __delitem__(self, key: Any) -> None:
        del target_of(self)[key]

    def __len__(self) -> int:
        return len(target_of(self))

    def __contains__(self, item: object) -> bool:
        return item in target_of(self)


class ReactiveMapping(ReactiveCollection):
    __slots__ = ()

    _access = _MappingAccess

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Tracked read that falls back to default for a missing key."""
        try:
            return self[key]
        except KeyError:
            return default

    def __iter__(self) -> Iterator[Any]:
        return iter(target_of(self))


class ReactiveSequence(ReactiveCollection):
    """List wrapper. Slices are forwarded untracked."""

    __slots__ = ()

    _access = _SequenceAccess

    def __getitem__(self, key: Any) -> Any:
        if isinstance(key, slice):
            return target_of(self)[key]
        return _read(self, key, self._access)

    def __setitem__(self, key: Any, value: Any) -> None:
        if isinstance(key, slice):
            target_of(self)[key] = value
        else:
            _write(self, key, value, self._access)

    def __iter__(self) -> Iterator[Any]:
        index = 0
        while index < len(target_of(self)):
            yield self[index]
            index += 1


def _wrapper_type(value: object) -> type[ReactiveProxy]:
    if isinstance(value, MutableMapping):
        return ReactiveMapping
    if isinstance(value, MutableSequence):
        return ReactiveSequence
    return ReactiveProxy


def create_reactive(runtime: Runtime, value: Any) -> Any:
    """Wrap value for runtime, or pass it through.

    Primitives come back unchanged, as do wrappers (they are never wrapped
    twice). A raw object already known to runtime gets its existing wrapper.
    """
    if not is_object(value):
        return value
    existing = runtime.identity.wrap_of(value)
    if existing is not None:
        return existing
    # Wrappers from any runtime pass through, not only the ones registered here.
    if runtime.identity.raw_of(value) is not None or isinstance(value, ReactiveProxy):
        return value
    proxy = _wrapper_type(value)(value, runtime)
    runtime.identity.register(value, proxy)
    logger.debug("Wrapped %s at %#x", type(value).__name__, id(value))
    return proxy
