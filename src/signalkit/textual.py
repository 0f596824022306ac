"""Textual integration for SignalKit. Opt-in, requires textual.

Bridges signal lifecycles to a Textual widget tree:
- refresh_on_change(): refresh a widget whenever a source changes.
- computed(): a Computed that refreshes its widget when it goes dirty.
- effect(): an Effect rerun on the app's message loop after going dirty.

Reruns are put off while the app is not running or inside pause(), and
NoMatches from widget queries is ignored, so effects can query widgets that
are being replaced.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, TypeVar

from textual.css.query import NoMatches

from signalkit._tracking import notify_usage
from signalkit.computed import Computed
from signalkit.effect import Effect
from signalkit.events import CancellationToken, Subscription
from signalkit.protocols import SignalSource

T = TypeVar("T")

logger = logging.getLogger("signalkit.textual")

# Pause state lives here, keyed by id(app), so several apps can coexist.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def refresh_on_change(widget, *sources: SignalSource) -> list[Subscription]:
    """Refresh widget whenever any of sources changes.

    Cancel the returned subscriptions when the widget unmounts.
    """
    return [source.events.on("change", lambda *_: widget.refresh()) for source in sources]


def computed(widget, fn: Callable[[], T]) -> Computed[T]:
    """A Computed that refreshes widget each time it goes dirty.

    Read .value in render(); dispose() it when the widget unmounts.
    """
    value = Computed(fn)
    value.events.on("dirty", lambda: widget.refresh())
    return value


def effect(app, fn: Callable[[], Any], *, token: CancellationToken | None = None) -> Effect:
    """An Effect that runs now and reruns via app.call_later when dirty.

    A run skipped because the app is not safe keeps the previous
    dependencies and is retried with app.call_later.
    """

    def _guarded() -> None:
        if not is_safe(app):
            logger.debug("Skipped %r: app not safe to query", fn)
            for source in runner.dependencies:
                notify_usage(source)
            app.call_later(runner.force_rerun)
            return
        try:
            fn()
        except NoMatches:
            logger.debug("Ignored NoMatches in %r", fn)

    runner = Effect(_guarded, lazy=True, token=token)
    runner.events.on("dirty", lambda: app.call_later(runner.reevaluate))
    runner.reevaluate()
    return runner
