"""Textual integration for trackfx. Opt-in — requires textual.

Effects that update widgets must not run while the widget tree is being
replaced or before the app is running. A guarded effect skipped in that
window is deferred and re-run by resume(), so it picks its dependencies
back up instead of going silent.

Pause and deferral state is owned by this module, keyed by id(app), so
nothing is stored on the app and several apps can coexist in tests. Call
forget(app) when an app is torn down without ever becoming safe again;
otherwise a later object reusing its id would inherit its deferred effects.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable

from textual.css.query import NoMatches

from trackfx.effect import Effect
from trackfx.runtime import Runtime, get_runtime

logger = logging.getLogger("trackfx.textual")

# id(app) -> number of open pause() blocks; absent means not paused.
_paused_apps: dict[int, int] = {}
_deferred: dict[int, list[Effect]] = {}


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement.

    Blocks nest: the app stays paused until the outermost one exits.
    Leaving a block normally re-runs whatever was deferred meanwhile.
    """
    key = id(app)
    _paused_apps[key] = _paused_apps.get(key, 0) + 1
    try:
        yield
    finally:
        remaining = _paused_apps.pop(key, 1) - 1
        if remaining:
            _paused_apps[key] = remaining
    resume(app)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def pending(app) -> int:
    """Number of effects waiting for app to become safe."""
    return len(_deferred.get(id(app), ()))


def resume(app) -> None:
    """Re-run effects deferred for app, if it is safe now.

    Handles are taken off the queue one at a time: if one raises, the rest
    stay deferred for the next resume().
    """
    if not is_safe(app):
        return
    key = id(app)
    waiting = _deferred.get(key)
    if not waiting:
        return
    logger.info("Resuming %d deferred effect(s)", len(waiting))
    try:
        while waiting and is_safe(app):
            handle = waiting.pop(0)
            handle()
    finally:
        if not waiting:
            _deferred.pop(key, None)


def forget(app) -> None:
    """Drop all pause and deferral state held for app."""
    _paused_apps.pop(id(app), None)
    _deferred.pop(id(app), None)


def effect(app, fn: Callable[[], object], *, runtime: Runtime | None = None) -> Effect:
    """effect() that safely bridges to Textual widgets.

    Runs fn only while is_safe(app); otherwise the run is deferred until
    resume(app). NoMatches from widget queries is swallowed, anything else
    propagates.
    """
    rt = runtime if runtime is not None else get_runtime()

    def _guarded():
        if not is_safe(app):
            handle = rt.active_effect
            waiting = _deferred.setdefault(id(app), [])
            if handle not in waiting:
                waiting.append(handle)
            return
        try:
            fn()
        except NoMatches:
            pass

    return rt.effect(_guarded)
