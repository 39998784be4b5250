"""Effects — computations that re-run when the properties they read change.

An Effect is a stable handle over a zero-argument function. It runs once
when created, and again every time a write changes a property that its most
recent run read. Running goes through the owning Runtime, which maintains
the active-effect stack and re-records dependencies on every run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from trackfx.runtime import Runtime


class EffectDepthError(RuntimeError):
    """Raised when nested effect runs exceed the runtime's max_depth."""


class Effect:
    """A reactive side effect bound to one Runtime."""

    __slots__ = ("_fn", "_runtime", "_disposed", "runs", "__weakref__")

    def __init__(self, fn: Callable[[], object], runtime: Runtime) -> None:
        self._fn = fn
        self._runtime = runtime
        self._disposed = False
        self.runs = 0

    @property
    def fn(self) -> Callable[[], object]:
        return self._fn

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def running(self) -> bool:
        """True while this effect is on its runtime's active-effect stack."""
        return self in self._runtime._stack

    def __call__(self) -> None:
        self._runtime.run(self, self._fn)

    def dispose(self) -> None:
        """Stop this effect. Disconnects it from all dependencies."""
        self._disposed = True
        self._runtime.graph.remove(self)

    def __repr__(self) -> str:
        if self._disposed:
            state = "disposed"
        else:
            state = "running" if self.running else "idle"
        name = getattr(self._fn, "__name__", repr(self._fn))
        return f"Effect({name}, {state}, runs={self.runs})"
