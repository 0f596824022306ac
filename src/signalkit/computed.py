"""Computed values: derived state with automatic dependency tracking.

A Computed wraps a function. When evaluated, it captures which sources the
function reads and caches the result. When any of them changes, the cache
is marked dirty and "change" and "dirty" are fired; nothing is recomputed
until the next read.

A Computed is both a sink (it has dependencies) and a source (other
computations can depend on it).
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from signalkit._tracking import Dependencies, capture, notify_usage
from signalkit.events import EventChannel

T = TypeVar("T")

_UNSET = object()


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_fn", "_value", "_dirty", "_disposed", "_dependencies", "events")

    def __init__(self, fn: Callable[[], T]) -> None:
        self._fn = fn
        self._value: object = _UNSET
        self._dirty = True
        self._disposed = False
        self._dependencies = Dependencies()
        self.events = EventChannel()

    @property
    def value(self) -> T:
        """The cached value, recomputed first if dirty.

        After dispose() this is the last cached value (None if there never
        was one); the function does not run again.
        """
        if self._disposed:
            return None if self._value is _UNSET else self._value  # type: ignore[return-value]
        if self._dirty:
            self.force_reevaluation()
        notify_usage(self)
        return self._value  # type: ignore[return-value]

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        return self.value

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def dependencies(self) -> tuple:
        """Sources read during the latest evaluation."""
        return self._dependencies.sources

    def force_reevaluation(self) -> None:
        """Re-run the function now, whatever the dirty state.

        If the function raises, the error propagates, the sources it read
        before raising are still tracked, and the Computed stays dirty with
        its previous cache.
        """
        if self._disposed:
            return
        captured: dict = {}
        try:
            with capture(captured):
                value = self._fn()
        finally:
            # fn may have disposed this computed
            if not self._disposed:
                self._dependencies.replace(captured, self._invalidate)
        self._value = value
        if self._disposed:
            return
        self._dirty = False
        self.events.emit("clean")

    def _invalidate(self) -> None:
        self._dirty = True
        self.events.emit("change")
        self.events.emit("dirty")

    def dispose(self) -> None:
        """Disconnect from all dependencies. The computed becomes inert.

        Disposing from inside the computed's own function keeps the value
        that run returns but subscribes to nothing.
        """
        self._disposed = True
        self._dependencies.cancel()
        self.events.clear()

    def __repr__(self) -> str:
        name = getattr(self._fn, "__name__", repr(self._fn))
        state = "dirty" if self._dirty else f"cached={self._value!r}"
        if self._disposed:
            state += ", disposed"
        return f"Computed({name}, {state})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        counter = State(0)

        @computed
        def doubled():
            return counter.value * 2

        doubled.value  # 0
        counter.value = 5
        doubled.value  # 10
    """
    return Computed(fn)
