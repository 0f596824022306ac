"""Tests for Computed values."""

import pytest

from signalkit import Computed, Effect, State, computed


class TestComputed:
    def test_lazy_eval(self):
        call_count = 0
        s = State(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return s.value * 2

        c = Computed(fn)
        assert call_count == 0  # not yet evaluated
        assert c.dirty is True
        assert c.value == 10
        assert c.dirty is False
        assert call_count == 1

    def test_caches_until_dirty(self):
        call_count = 0
        s = State(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return [s.value * 2]

        c = Computed(fn)
        first = c.value
        assert c.value is first
        assert call_count == 1  # cached, no re-eval

    def test_invalidation_is_lazy(self):
        call_count = 0
        s = State(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return s.value * 2

        c = Computed(fn)
        assert c.value == 10
        s.value = 10
        assert c.dirty is True
        assert call_count == 1  # not recomputed until read
        assert c.value == 20
        assert call_count == 2

    def test_sum_scenario(self):
        a = State(2)
        b = State(3)
        total = Computed(lambda: a.value + b.value)
        double = Computed(lambda: total.value * 2)

        assert total.value == 5
        assert double.value == 10
        a.value = 5
        assert total.dirty is True
        assert double.dirty is True
        assert total.value == 8
        assert double.value == 16
        assert double.dirty is False

    def test_dependency_tracking(self):
        """Computed tracks dependencies dynamically."""
        flag = State(True)
        a = State(1)
        b = State(2)

        c = Computed(lambda: a.value if flag.value else b.value)
        assert c.value == 1
        assert set(c.dependencies) == {flag, a}

        flag.value = False
        assert c.value == 2  # now depends on b, not a
        assert set(c.dependencies) == {flag, b}

        a.value = 100  # no longer a dependency
        assert c.dirty is False

    def test_dependencies_deduplicated(self):
        s = State(1)
        c = Computed(lambda: s.value + s.value)
        assert c.value == 2
        assert c.dependencies == (s,)
        assert s.events.listener_count("change") == 1

    def test_no_dependencies_holds_no_subscriptions(self):
        c = Computed(lambda: 42)
        assert c.value == 42
        assert c.dependencies == ()

    def test_chained_computed(self):
        s = State(3)
        doubled = Computed(lambda: s.value * 2)
        quadrupled = Computed(lambda: doubled.value * 2)
        assert quadrupled.value == 12
        s.value = 5
        assert quadrupled.value == 20

    def test_events(self):
        s = State(1)
        c = Computed(lambda: s.value)
        log = []
        for name in ("change", "dirty", "clean"):
            c.events.on(name, lambda name=name: log.append(name))
        c.value
        assert log == ["clean"]
        s.value = 2
        assert log == ["clean", "change", "dirty"]

    def test_dirty_fires_once_until_reevaluated(self):
        a = State(1)
        b = State(2)
        c = Computed(lambda: a.value + b.value)
        dirty = []
        c.events.on("dirty", lambda: dirty.append(True))
        c.value
        a.value = 10
        b.value = 20
        a.value = 30
        assert dirty == [True]
        assert c.value == 50
        b.value = 0
        assert dirty == [True, True]

    def test_force_reevaluation(self):
        call_count = 0

        def fn():
            nonlocal call_count
            call_count += 1
            return call_count

        c = Computed(fn)
        assert c.value == 1
        c.force_reevaluation()
        assert call_count == 2
        assert c.value == 2

    def test_dispose(self):
        s = State(5)
        c = Computed(lambda: s.value * 2)
        assert c.value == 10
        dirty = []
        c.events.on("dirty", lambda: dirty.append(True))
        c.dispose()
        # After dispose, the computed is inert
        s.value = 10
        assert c.dirty is False
        assert dirty == []
        assert c.value == 10  # last cached value
        assert s.events.listener_count() == 0

    def test_dispose_from_inside_evaluation(self):
        s = State(1)

        def fn():
            value = s.value * 10
            c.dispose()
            return value

        c = Computed(fn)
        assert c.value == 10
        assert c.disposed
        assert s.events.listener_count("change") == 0
        s.value = 2
        assert c.dirty is True  # unchanged since dispose
        assert c.value == 10

    def test_dispose_idempotent(self):
        c = Computed(lambda: 1)
        c.dispose()
        c.dispose()
        assert c.disposed

    def test_propagates_to_effects(self):
        """Computed invalidation propagates to downstream effects."""
        s = State(5)
        c = Computed(lambda: s.value * 2)
        log = []
        e = Effect(lambda: log.append(c.value))
        assert log == [10]
        s.value = 10
        assert e.dirty is True
        e.reevaluate()
        assert log == [10, 20]

    def test_repr(self):
        def doubled():
            return 2

        c = Computed(doubled)
        assert repr(c) == "Computed(doubled, dirty)"
        c.value
        assert repr(c) == "Computed(doubled, cached=2)"


class TestComputedErrors:
    def test_error_propagates_and_stays_dirty(self):
        s = State(1)

        def fn():
            if s.value < 0:
                raise ValueError("negative")
            return s.value

        c = Computed(fn)
        assert c.value == 1
        s.value = -1
        with pytest.raises(ValueError, match="negative"):
            c.value
        assert c.dirty is True

    def test_dependencies_rewired_after_error(self):
        """Sources read before the error are still tracked."""
        s = State(-1)
        other = State(0)

        def fn():
            other.value
            if s.value < 0:
                raise ValueError("negative")
            return s.value

        c = Computed(fn)
        with pytest.raises(ValueError):
            c.value
        assert set(c.dependencies) == {other, s}
        s.value = 3
        assert c.value == 3
        assert c.dirty is False

    def test_error_keeps_previous_cache_after_dispose(self):
        s = State(1)

        def fn():
            if s.value == 2:
                raise ValueError("two")
            return s.value

        c = Computed(fn)
        assert c.value == 1
        s.value = 2
        with pytest.raises(ValueError):
            c.force_reevaluation()
        c.dispose()
        assert c.value == 1


class TestComputedDecorator:
    def test_decorator_factory(self):
        s = State(7)

        @computed
        def doubled():
            return s.value * 2

        assert doubled.value == 14
        s.value = 3
        assert doubled.value == 6
