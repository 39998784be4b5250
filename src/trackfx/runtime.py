"""Runtime — one independent reactivity scope.

A Runtime owns the identity map, the dependency graph and the active-effect
stack. Wrappers and effects remember the runtime that created them, so
several runtimes can coexist without seeing each other's dependencies.

The module-level API in ``trackfx`` works against the *current* runtime,
held in a context variable. ``use_runtime()`` swaps it for a block, which is
how tests get a clean scope.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Any, Callable, Hashable, Iterator

from trackfx._identity import IdentityMap
from trackfx._tracking import DependencyGraph, TriggerKind
from trackfx.effect import Effect, EffectDepthError
from trackfx.proxy import create_reactive, to_raw as _unwrap

logger = logging.getLogger("trackfx.runtime")


class Runtime:
    """Identity map + dependency graph + active-effect stack.

    max_depth bounds how many effect runs may be nested (an effect whose
    write triggers another effect, and so on). None means unguarded:
    a trigger cycle ends in RecursionError.
    """

    def __init__(self, *, max_depth: int | None = None) -> None:
        if max_depth is not None and max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {max_depth}")
        self.max_depth = max_depth
        self.identity = IdentityMap()
        self.graph = DependencyGraph()
        self._stack: list[Effect] = []

    # --- Proxies ---

    def reactive(self, value: Any) -> Any:
        return create_reactive(self, value)

    def to_raw(self, value: Any) -> Any:
        raw = self.identity.raw_of(value)
        return raw if raw is not None else _unwrap(value)

    # --- Effects ---

    @property
    def active_effect(self) -> Effect | None:
        """The effect reads are currently attributed to, if any."""
        return self._stack[-1] if self._stack else None

    @property
    def depth(self) -> int:
        return len(self._stack)

    def effect(self, fn: Callable[[], object]) -> Effect:
        """Create an effect for fn and run it once to collect its dependencies."""
        handle = Effect(fn, self)
        handle()
        return handle

    def run(self, effect: Effect, fn: Callable[[], object]) -> None:
        """Run fn with effect on top of the active-effect stack.

        The effect's previous dependencies are dropped first; the run records
        the current ones. The stack is restored however fn exits.
        """
        if effect.disposed:
            return
        if self.max_depth is not None and len(self._stack) >= self.max_depth:
            raise EffectDepthError(
                f"effect nesting exceeded max_depth={self.max_depth} while running {effect!r}"
            )

        self.graph.remove(effect)
        effect.runs += 1
        self._stack.append(effect)
        try:
            fn()
        except Exception:
            logger.debug("Effect %r raised at depth %d", effect, len(self._stack))
            raise
        finally:
            self._stack.pop()

    # --- Dependency graph ---

    def track(self, target: object, key: Hashable) -> None:
        """Record that the running effect, if any, read key on target."""
        effect = self.active_effect
        if effect is None:
            return
        self.graph.add(target, key, effect)

    def trigger(self, target: object, key: Hashable, kind: TriggerKind = TriggerKind.SET) -> None:
        """Re-run every effect that depends on key of target."""
        effects = self.graph.dependents(target, key)
        if not effects:
            return
        logger.debug(
            "Trigger (%s) %r on %s: %d effect(s)",
            kind.value, key, type(target).__name__, len(effects),
        )
        for effect in effects:
            effect()

    def reset(self) -> None:
        """Drop every wrapper mapping and dependency. Effects already running keep going."""
        self.identity.clear()
        self.graph.clear()

    def __repr__(self) -> str:
        return (
            f"Runtime(wrappers={len(self.identity)}, targets={len(self.graph)}, "
            f"depth={self.depth})"
        )


# ─── Current runtime ─────────────────────────────────────────────────────────

_default_runtime = Runtime()

current_runtime: contextvars.ContextVar[Runtime] = contextvars.ContextVar(
    "current_runtime", default=_default_runtime
)


def get_runtime() -> Runtime:
    return current_runtime.get()


@contextmanager
def use_runtime(runtime: Runtime | None = None) -> Iterator[Runtime]:
    """Make runtime (or a fresh one) current for the duration of the block.

    Usage:
        with use_runtime() as rt:
            state = reactive({"count": 0})
            effect(lambda: print(state["count"]))
        # rt and everything created in the block are unreachable from here
    """
    runtime = runtime if runtime is not None else Runtime()
    token = current_runtime.set(runtime)
    try:
        yield runtime
    finally:
        current_runtime.reset(token)


def reactive(value: Any) -> Any:
    """Wrap value in the current runtime. Primitives and wrappers pass through.

    Usage:
        state = reactive({"user": {"name": "Ada"}})
        state["user"]["name"]  # nested dicts are wrapped when read
    """
    return current_runtime.get().reactive(value)


def effect(fn: Callable[[], object]) -> Effect:
    """Run fn now, then again whenever a property it read is changed.

    Returns the Effect (call .dispose() to stop).

    Usage:
        state = reactive({"count": 0})
        log = []

        handle = effect(lambda: log.append(state["count"]))
        # log == [0] — ran immediately

        state["count"] = 1
        # log == [0, 1] — re-ran because count changed

        handle.dispose()
        state["count"] = 2
        # log == [0, 1] — stopped
    """
    return current_runtime.get().effect(fn)


def track(target: object, key: Hashable) -> None:
    current_runtime.get().track(_unwrap(target), key)


def trigger(target: object, key: Hashable, kind: TriggerKind = TriggerKind.SET) -> None:
    current_runtime.get().trigger(_unwrap(target), key, kind)
