"""Tests for Runtime scopes, the identity map and the dependency graph."""

import gc
import logging

from trackfx import (
    Runtime,
    TriggerKind,
    effect,
    get_runtime,
    reactive,
    to_raw,
    track,
    trigger,
    use_runtime,
)
from trackfx._identity import IdentityMap
from trackfx._tracking import DependencyGraph


class _Wrapper:
    pass


class TestIdentityMap:
    def test_both_directions(self):
        m = IdentityMap()
        raw = {}
        w = _Wrapper()
        m.register(raw, w)
        assert m.wrap_of(raw) is w
        assert m.raw_of(w) is raw
        assert len(m) == 1

    def test_unknown_objects(self):
        m = IdentityMap()
        assert m.wrap_of({}) is None
        assert m.raw_of(_Wrapper()) is None

    def test_entries_evicted_with_wrapper(self):
        m = IdentityMap()
        raw = []
        w = _Wrapper()
        m.register(raw, w)
        del w
        gc.collect()
        assert m.wrap_of(raw) is None
        assert len(m) == 0
        assert m._raws == {}

    def test_clear(self):
        m = IdentityMap()
        raw = {}
        w = _Wrapper()
        m.register(raw, w)
        m.clear()
        assert m.wrap_of(raw) is None
        assert m.raw_of(w) is None


class TestDependencyGraph:
    def test_add_is_idempotent(self):
        g = DependencyGraph()
        target, fx = {}, object()
        assert g.add(target, "a", fx) is True
        assert g.add(target, "a", fx) is False
        assert g.dependents(target, "a") == [fx]
        assert g.edge_count(fx) == 1

    def test_missing_entries(self):
        g = DependencyGraph()
        target = {}
        assert g.dependents(target, "a") == []
        g.add(target, "a", object())
        assert g.dependents(target, "b") == []
        assert g.keys_of({}) == set()

    def test_remove_prunes_empty_entries(self):
        g = DependencyGraph()
        target = {}
        first, second = object(), object()
        g.add(target, "a", first)
        g.add(target, "b", first)
        g.add(target, "b", second)
        g.remove(first)
        assert g.keys_of(target) == {"b"}
        assert g.dependents(target, "b") == [second]
        g.remove(second)
        assert target not in g
        assert len(g) == 0

    def test_dependents_is_a_snapshot(self):
        g = DependencyGraph()
        target, fx = {}, object()
        g.add(target, "a", fx)
        snapshot = g.dependents(target, "a")
        g.remove(fx)
        assert snapshot == [fx]


class TestRuntime:
    def test_fixture_runtime_is_current(self, runtime):
        assert get_runtime() is runtime

    def test_use_runtime_restores_previous(self, runtime):
        other = Runtime()
        with use_runtime(other) as rt:
            assert rt is other
            assert get_runtime() is other
        assert get_runtime() is runtime

    def test_runtimes_are_isolated(self, runtime):
        raw = {"a": 1}
        other = Runtime()
        mine = reactive(raw)
        theirs = other.reactive(raw)
        assert mine is not theirs
        assert reactive(theirs) is theirs
        assert other.reactive(mine) is mine

        log = []
        other.effect(lambda: log.append(mine["a"]))
        mine["a"] = 2
        assert log == [1]

    def test_to_raw(self, runtime):
        raw = {"a": 1}
        p = reactive(raw)
        assert runtime.to_raw(p) is raw
        assert Runtime().to_raw(p) is raw
        assert runtime.to_raw(raw) is raw

    def test_reset(self, runtime):
        raw = {"a": 1}
        p = reactive(raw)
        log = []
        effect(lambda: log.append(p["a"]))
        runtime.reset()
        assert len(runtime.graph) == 0
        assert len(runtime.identity) == 0
        p["a"] = 2
        assert log == [1]
        assert reactive(raw) is not p

    def test_repr(self, runtime):
        reactive({})
        assert repr(runtime).startswith("Runtime(")


class TestManualTracking:
    def test_track_and_trigger_on_raw_objects(self):
        raw = {"x": 1}
        log = []

        def read():
            track(raw, "x")
            log.append(raw["x"])

        effect(read)
        raw["x"] = 2
        assert log == [1]
        trigger(raw, "x")
        assert log == [1, 2]

    def test_wrappers_are_unwrapped(self):
        p = reactive({"x": 1})
        log = []

        def read():
            track(p, "x")
            log.append(to_raw(p)["x"])

        effect(read)
        to_raw(p)["x"] = 5
        trigger(p, "x", TriggerKind.ADD)
        assert log == [1, 5]

    def test_track_outside_effect_is_noop(self, runtime):
        raw = {}
        track(raw, "x")
        assert raw not in runtime.graph

    def test_trigger_logged(self, caplog):
        p = reactive({"a": 1})
        effect(lambda: p["a"])
        with caplog.at_level(logging.DEBUG, logger="trackfx.runtime"):
            p["a"] = 2
        assert "Trigger (set) 'a' on dict: 1 effect(s)" in caplog.text
