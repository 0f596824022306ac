"""Structural types for the two sides of the reactive graph."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from signalkit.events import EventChannel


@runtime_checkable
class SignalSource(Protocol):
    """Something whose reads are tracked. `events` fires "change"."""

    @property
    def events(self) -> EventChannel: ...


@runtime_checkable
class SignalSink(Protocol):
    """Something that consumes sources. `events` fires "dirty" and "clean"."""

    @property
    def events(self) -> EventChannel: ...

    @property
    def dirty(self) -> bool: ...

    def force_reevaluation(self) -> None: ...

    def dispose(self) -> None: ...
