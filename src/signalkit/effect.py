"""Effects: side effects tracked like computed values.

An Effect runs its function for what it does, not for a value. Sources read
during the run become its dependencies; when one changes the Effect goes
dirty and fires "dirty". Whether and when it runs again is up to the owner:

- Effect(fn): runs once immediately, then only on reevaluate()/force_rerun().
- Effect(fn, lazy=True): does not run until reevaluate()/force_rerun().
- Effect.create_immediate(fn) / @effect: reruns by itself on the next turn
  after going dirty (see signalkit.set_scheduler).
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from signalkit._tracking import Dependencies, capture, defer
from signalkit.events import CancellationToken, EventChannel

logger = logging.getLogger("signalkit.effect")


class Effect:
    """A reactive side effect with a dirty/clean lifecycle."""

    __slots__ = ("_fn", "_dirty", "_disposed", "_dependencies", "_token", "events")

    @classmethod
    def create_immediate(
        cls,
        fn: Callable[[], Any],
        *,
        token: CancellationToken | None = None,
    ) -> Effect:
        """Run fn now, then rerun it on the next turn whenever it goes dirty.

        Several changes within one synchronous turn cause a single rerun,
        since only the first one dirties the effect.
        """
        effect = cls(fn, token=token)

        def _schedule() -> None:
            logger.debug("Deferring rerun of %r", effect)
            defer(effect.force_rerun)

        effect.events.on("dirty", _schedule, token=token)
        return effect

    def __init__(
        self,
        fn: Callable[[], Any],
        *,
        lazy: bool = False,
        token: CancellationToken | None = None,
    ) -> None:
        self._fn = fn
        self._dirty = True
        self._disposed = False
        self._dependencies = Dependencies()
        self.events = EventChannel()
        self._token = token
        if token is not None:
            token.on_cancel(self.dispose)
        if not lazy:
            self.force_rerun()

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def dependencies(self) -> tuple:
        """Sources read during the latest run."""
        return self._dependencies.sources

    def reevaluate(self) -> None:
        """Rerun if dirty; otherwise do nothing."""
        if self._dirty:
            self.force_rerun()

    def force_rerun(self) -> None:
        """Rerun now, whatever the dirty state.

        The effect ends clean and subscribed to what it read even when fn
        raises; the error propagates to the caller.
        """
        if self._disposed:
            return
        captured: dict = {}
        try:
            with capture(captured):
                self._fn()
        finally:
            # fn may have disposed this effect
            if not self._disposed:
                self._dirty = False
                self._dependencies.replace(captured, self._invalidate)
                self.events.emit("clean")

    force_reevaluation = force_rerun

    def _invalidate(self) -> None:
        self._dirty = True
        self.events.emit("dirty")

    def dispose(self) -> None:
        """Stop this effect. Disconnects from all dependencies, permanently."""
        if self._disposed:
            return
        self._disposed = True
        self._dependencies.cancel()
        self.events.clear()
        if self._token is not None:
            self._token.discard(self.dispose)
            self._token = None
        logger.debug("Disposed %r", self)

    def __repr__(self) -> str:
        name = getattr(self._fn, "__name__", repr(self._fn))
        if self._disposed:
            state = "disposed"
        else:
            state = "dirty" if self._dirty else "clean"
        return f"Effect({name}, {state})"


def effect(fn: Callable[[], Any]) -> Effect:
    """Decorator: run fn now and automatically whenever what it reads changes.

    Usage:
        counter = State(0)
        log = []

        @effect
        def log_counter():
            log.append(counter.value)
        # log == [0]

        counter.value = 1
        await asyncio.sleep(0)  # or flush_deferred() without an event loop
        # log == [0, 1]

        log_counter.dispose()
    """
    return Effect.create_immediate(fn)
