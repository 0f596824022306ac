"""Dependency tracking engine for SignalKit.

Every read of a signal source calls notify_usage(). Reads are recorded into
every capture context that is currently open (a contextvars stack, so an
evaluation nested inside another is captured by both) and then announced on
the process-wide usage channel.

After an evaluation, a sink hands the captured sources to its Dependencies,
which swaps the old change subscriptions for new ones in one step.

Deferred tasks: Effect.create_immediate reruns on the next turn through
defer(). Tasks accumulate in a FIFO queue and are drained by
flush_deferred(), which the configured scheduler calls.
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
from collections import deque
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator

from signalkit.events import EventChannel, Subscription

logger = logging.getLogger("signalkit.tracking")

# Process-wide usage broadcast: emits ("usage", source) on every read.
usage_events = EventChannel()

# Open capture contexts, innermost last.
_captures: contextvars.ContextVar[tuple[dict, ...]] = contextvars.ContextVar(
    "signalkit_captures", default=()
)


def notify_usage(source: Any) -> None:
    """Announce that source was just read."""
    for captured in _captures.get():
        captured[source] = None
    usage_events.emit("usage", source)


def is_tracking() -> bool:
    """True while at least one capture context is open."""
    return bool(_captures.get())


@contextmanager
def capture(into: dict | None = None) -> Iterator[dict]:
    """Collect every source read inside the block.

    The result is a dict used as an insertion-ordered set; pass `into` to
    keep a reference that survives an exception raised in the block.
    """
    captured = {} if into is None else into
    token = _captures.set(_captures.get() + (captured,))
    try:
        yield captured
    finally:
        _captures.reset(token)


class Dependencies:
    """The change subscriptions a sink holds on its current sources.

    Edges are one-shot per generation: the first source to change cancels
    every edge, then calls the sink's invalidation hook.
    """

    __slots__ = ("_sources", "_edges")

    def __init__(self) -> None:
        self._sources: tuple = ()
        self._edges: list[Subscription] = []

    @property
    def sources(self) -> tuple:
        return self._sources

    def replace(self, sources: Iterable[Any], on_change: Callable[[], None]) -> None:
        """Drop the previous edges and subscribe to `sources`."""
        self.cancel()
        self._sources = tuple(sources)
        if not self._sources:
            return

        def _changed(*_args: Any) -> None:
            self._cancel_edges()
            on_change()

        self._edges = [source.events.on("change", _changed) for source in self._sources]

    def cancel(self) -> None:
        """Unsubscribe from every source and forget them."""
        self._cancel_edges()
        self._sources = ()

    def _cancel_edges(self) -> None:
        edges, self._edges = self._edges, []
        for edge in edges:
            edge.cancel()

    def __len__(self) -> int:
        return len(self._sources)


# ─── Deferred tasks ──────────────────────────────────────────────────────────
_pending: deque[Callable[[], Any]] = deque()
_scheduler: Callable[[Callable[[], Any]], Any] | None = None


def set_scheduler(scheduler: Callable[[Callable[[], Any]], Any] | None) -> None:
    """Choose how deferred tasks get drained.

    scheduler(drain) must arrange for drain() to be called after the current
    synchronous work finishes. For example, inside a Textual app:
        signalkit.set_scheduler(app.call_later)

    Pass None to restore the default: the running asyncio loop's call_soon
    when there is one, otherwise tasks wait for an explicit flush_deferred().
    """
    global _scheduler
    _scheduler = scheduler


def _request_drain() -> None:
    scheduler = _scheduler
    if scheduler is None:
        try:
            scheduler = asyncio.get_running_loop().call_soon
        except RuntimeError:
            return  # no loop: wait for flush_deferred()
    scheduler(flush_deferred)


def defer(task: Callable[[], Any]) -> None:
    """Queue task to run on the next turn."""
    _pending.append(task)
    _request_drain()


def flush_deferred() -> int:
    """Run queued tasks in order, including ones queued meanwhile. Returns the count run."""
    ran = 0
    try:
        while _pending:
            task = _pending.popleft()
            task()
            ran += 1
    finally:
        if _pending:
            # a task raised; the rest go to the next drain
            _request_drain()
    if ran:
        logger.debug("Drained %d deferred task(s)", ran)
    return ran


def get_pending_count() -> int:
    """Number of deferred tasks waiting to run. Useful for testing."""
    return len(_pending)
