"""SignalKit: fine-grained push-pull reactive state for Python."""

from importlib.metadata import version as _version

__version__ = _version("signalkit")

from signalkit._tracking import (
    capture,
    defer,
    flush_deferred,
    get_pending_count,
    is_tracking,
    notify_usage,
    set_scheduler,
    usage_events,
)
from signalkit.events import CancellationToken, EventChannel, Subscription
from signalkit.protocols import SignalSink, SignalSource
from signalkit.state import State
from signalkit.computed import Computed, computed
from signalkit.effect import Effect, effect
from signalkit.reactive import (
    LENGTH,
    SHAPE,
    ReactiveDict,
    ReactiveList,
    ReactiveObject,
    is_reactive,
    make_reactive,
    unmake_reactive,
    unwrap_reactive,
)
# textual is not auto-imported, it is opt-in only

__all__ = [
    "State",
    "Computed",
    "computed",
    "Effect",
    "effect",
    "ReactiveDict",
    "ReactiveList",
    "ReactiveObject",
    "make_reactive",
    "is_reactive",
    "unwrap_reactive",
    "unmake_reactive",
    "SHAPE",
    "LENGTH",
    "EventChannel",
    "Subscription",
    "CancellationToken",
    "SignalSource",
    "SignalSink",
    "usage_events",
    "notify_usage",
    "capture",
    "is_tracking",
    "defer",
    "flush_deferred",
    "get_pending_count",
    "set_scheduler",
]
