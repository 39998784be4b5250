"""trackfx: proxy-based reactive objects with automatic dependency tracking."""

from importlib.metadata import version as _version

__version__ = _version("trackfx")

from trackfx._tracking import TriggerKind
from trackfx.effect import Effect, EffectDepthError
from trackfx.proxy import ReactiveProxy, is_reactive, to_raw
from trackfx.runtime import (
    Runtime,
    effect,
    get_runtime,
    reactive,
    track,
    trigger,
    use_runtime,
)
# textual NOT auto-imported — opt-in only

__all__ = [
    "Effect",
    "EffectDepthError",
    "ReactiveProxy",
    "Runtime",
    "TriggerKind",
    "effect",
    "get_runtime",
    "is_reactive",
    "reactive",
    "to_raw",
    "track",
    "trigger",
    "use_runtime",
]
