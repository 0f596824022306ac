"""Event channels: named-event publish/subscribe with cancellable handles.

Every notification surface in SignalKit (usage, change, dirty, clean) is an
EventChannel. Subscribing returns a Subscription handle that can be
cancelled directly, or in bulk through a CancellationToken passed at
subscription time.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

Listener = Callable[..., Any]


class CancellationToken:
    """Cancels a group of subscriptions (and anything else registered) at once.

    Usage:
        token = CancellationToken()
        channel.on("change", on_change, token=token)
        channel.on("dirty", on_dirty, token=token)
        token.cancel()  # both subscriptions are gone
    """

    __slots__ = ("_cancelled", "_callbacks")

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], Any]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def on_cancel(self, callback: Callable[[], Any]) -> None:
        """Run callback on cancel. Runs immediately if already cancelled."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def discard(self, callback: Callable[[], Any]) -> None:
        """Forget a callback registered with on_cancel(), if it is still pending."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"CancellationToken({state})"


class Subscription:
    """Handle for one listener on one event. Cancelling is idempotent."""

    __slots__ = ("_channel", "event", "listener", "once", "_active", "_token")

    def __init__(self, channel: EventChannel, event: str, listener: Listener, once: bool) -> None:
        self._channel = channel
        self.event = event
        self.listener = listener
        self.once = once
        self._active = True
        self._token: CancellationToken | None = None

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._channel._remove(self)
        if self._token is not None:
            self._token.discard(self.cancel)
            self._token = None

    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"Subscription({self.event!r}, {state})"


class EventChannel:
    """Named-event publish/subscribe channel.

    Listeners run synchronously, in subscription order, inside emit().
    Exceptions raised by a listener propagate to the emitter.
    """

    __slots__ = ("_subscriptions",)

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def on(
        self,
        event: str,
        listener: Listener,
        *,
        token: CancellationToken | None = None,
        once: bool = False,
    ) -> Subscription:
        """Register a listener. Returns the handle that removes it."""
        subscription = Subscription(self, event, listener, once)
        if token is not None:
            if token.cancelled:
                subscription._active = False
                return subscription
            token.on_cancel(subscription.cancel)
            subscription._token = token
        self._subscriptions.setdefault(event, []).append(subscription)
        return subscription

    def once(
        self,
        event: str,
        listener: Listener,
        *,
        token: CancellationToken | None = None,
    ) -> Subscription:
        """Register a listener that is removed after its first call."""
        return self.on(event, listener, token=token, once=True)

    def off(self, event: str, listener: Listener) -> None:
        """Remove every subscription of listener to event."""
        for subscription in list(self._subscriptions.get(event, ())):
            if subscription.listener == listener:
                subscription.cancel()

    def emit(self, event: str, *args: Any) -> None:
        """Call every active listener of event with args."""
        subscriptions = self._subscriptions.get(event)
        if not subscriptions:
            return
        for subscription in list(subscriptions):
            # cancelled by an earlier listener of this same emit
            if not subscription._active:
                continue
            if subscription.once:
                subscription.cancel()
            subscription.listener(*args)

    async def next(self, event: str) -> tuple:
        """Wait for the next occurrence of event. Resolves with its args.

        Usage:
            await effect.events.next("clean")
        """
        future: asyncio.Future[tuple] = asyncio.get_running_loop().create_future()

        def _resolve(*args: Any) -> None:
            if not future.done():
                future.set_result(args)

        subscription = self.once(event, _resolve)
        try:
            return await future
        finally:
            subscription.cancel()

    def clear(self) -> None:
        """Cancel every subscription on every event."""
        for subscriptions in list(self._subscriptions.values()):
            for subscription in list(subscriptions):
                subscription.cancel()
        self._subscriptions.clear()

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._subscriptions.get(event, ()))
        return sum(len(subs) for subs in self._subscriptions.values())

    def _remove(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.event)
        if subscriptions is None:
            return
        try:
            subscriptions.remove(subscription)
        except ValueError:
            pass  # already removed
        if not subscriptions:
            del self._subscriptions[subscription.event]
