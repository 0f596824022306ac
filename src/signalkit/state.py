"""State: a single writable value that tracks its readers.

Reading a State inside a Computed or Effect evaluation registers it as a
dependency. Writing a value that differs from the current one (according to
the equality comparer) fires "change" with (new_value, old_value); writing
an equal value does nothing at all.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from signalkit._tracking import notify_usage
from signalkit.events import EventChannel

T = TypeVar("T")

EqualityComparer = Callable[[T, T], bool]


def default_equals(a: object, b: object) -> bool:
    return a is b or a == b


class State(Generic[T]):
    """A writable signal source holding one value."""

    __slots__ = ("_value", "_equals", "events")

    def __init__(self, value: T, *, equals: EqualityComparer[T] | None = None) -> None:
        self._value = value
        self._equals = equals or default_equals
        self.events = EventChannel()

    @property
    def value(self) -> T:
        notify_usage(self)
        return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        # comparer first: if it raises, nothing has changed
        if self._equals(self._value, new_value):
            return
        old_value = self._value
        self._value = new_value
        self.events.emit("change", new_value, old_value)

    def get(self) -> T:
        """Read the value. If inside an evaluation, registers the dependency."""
        return self.value

    def set(self, value: T) -> None:
        """Write a new value. Notifies only if it differs from the current one."""
        self.value = value

    def __repr__(self) -> str:
        return f"State({self._value!r})"
