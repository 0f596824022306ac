"""Reactive containers: plain dicts, lists and objects with per-key tracking.

Unlike a State, which is a single source, a reactive container keeps one
source per key, created the first time the key is read. A computation that
reads `data["a"]` depends on key "a" only: writing `data["b"]` does not
dirty it.

Two reserved keys cover what no single key does:
- SHAPE: the container's key set. Iteration and len() of a dict, dir() and
  calls on an object depend on it; adding or removing a key notifies it.
- LENGTH: a list's length.

By default wrapping is deep: nested containers are replaced, in place, by
their own wrappers, and containers assigned later are wrapped on the way in.
The wrapped container is never copied; unwrap_reactive() gives it back.

Usage:
    data = make_reactive({"user": {"name": "Ada"}, "tags": []})
    greeting = Computed(lambda: f"Hello {data['user']['name']}")
    greeting.value           # "Hello Ada"
    data["user"]["name"] = "Grace"
    greeting.dirty           # True
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, MutableMapping, MutableSequence
from types import SimpleNamespace
from typing import Any, Callable, Generic, Iterable, Iterator, TypeVar

from signalkit._tracking import notify_usage
from signalkit.events import EventChannel
from signalkit.properties import is_container, iter_items, iter_properties_deep, set_property

T = TypeVar("T")
KT = TypeVar("KT")
VT = TypeVar("VT")


class _ReservedKey:
    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


SHAPE = _ReservedKey("shape")
LENGTH = _ReservedKey("length")


class KeySource:
    """The signal source behind one key of one reactive container."""

    __slots__ = ("key", "events")

    def __init__(self, key: Any) -> None:
        self.key = key
        self.events = EventChannel()

    def __repr__(self) -> str:
        return f"KeySource({self.key!r})"


class Reactive:
    """Base of every reactive wrapper. Holds the wrapped container.

    The slot names are prefixed so they do not shadow attributes of objects
    wrapped by ReactiveObject.
    """

    __slots__ = ("_reactive_target", "_reactive_shallow", "_reactive_sources")

    def __init__(self, target: Any, *, shallow: bool = False) -> None:
        _setup(self, target, shallow)
        if not shallow:
            _wrap_nested(self)

    @classmethod
    def _adopt(cls, target: Any, shallow: bool) -> Reactive:
        """Wrap target without touching what it contains."""
        wrapper = cls.__new__(cls)
        _setup(wrapper, target, shallow)
        return wrapper


def _setup(wrapper: Reactive, target: Any, shallow: bool) -> None:
    object.__setattr__(wrapper, "_reactive_target", target)
    object.__setattr__(wrapper, "_reactive_shallow", shallow)
    object.__setattr__(wrapper, "_reactive_sources", {})


def _track(wrapper: Reactive, key: Any) -> None:
    sources = wrapper._reactive_sources
    source = sources.get(key)
    if source is None:
        source = sources[key] = KeySource(key)
    notify_usage(source)


def _trigger(wrapper: Reactive, *keys: Any) -> None:
    sources = wrapper._reactive_sources
    for key in keys:
        source = sources.get(key)
        if source is not None:
            source.events.emit("change")


def _adapt(wrapper: Reactive, value: Any) -> Any:
    """Wrap a value on its way into a deep container."""
    if wrapper._reactive_shallow or isinstance(value, Reactive) or _wrapper_type(value) is None:
        return value
    return make_reactive(value)


class ReactiveDict(Reactive, MutableMapping, Generic[KT, VT]):
    """A dict wrapper that tracks reads per key and notifies writes per key."""

    __slots__ = ()

    def __init__(self, target: Mapping[KT, VT] | None = None, *, shallow: bool = False) -> None:
        if target is None:
            target = {}
        elif not isinstance(target, dict):
            target = dict(target)
        super().__init__(target, shallow=shallow)

    # --- Read operations (track) ---

    def __getitem__(self, key: KT) -> VT:
        _track(self, key)
        return self._reactive_target[key]

    def __contains__(self, key: object) -> bool:
        _track(self, key)
        return key in self._reactive_target

    def __iter__(self) -> Iterator[KT]:
        _track(self, SHAPE)
        return iter(list(self._reactive_target))

    def __len__(self) -> int:
        _track(self, SHAPE)
        return len(self._reactive_target)

    # --- Write operations (notify) ---

    def __setitem__(self, key: KT, value: VT) -> None:
        target = self._reactive_target
        added = key not in target
        target[key] = _adapt(self, value)
        if added:
            _trigger(self, key, SHAPE)
        else:
            _trigger(self, key)

    def __delitem__(self, key: KT) -> None:
        del self._reactive_target[key]
        _trigger(self, key, SHAPE)

    def __repr__(self) -> str:
        return f"ReactiveDict({self._reactive_target!r})"


class ReactiveList(Reactive, MutableSequence, Generic[T]):
    """A list wrapper that tracks reads per index and notifies writes per index.

    Operations that shift elements (insert, delete, slice assignment) notify
    every index at or after the first one touched, plus LENGTH when the
    length changes.
    """

    __slots__ = ()

    def __init__(self, target: Iterable[T] | None = None, *, shallow: bool = False) -> None:
        if target is None:
            target = []
        elif not isinstance(target, list):
            target = list(target)
        super().__init__(target, shallow=shallow)

    # --- Read operations (track) ---

    def __getitem__(self, index):
        target = self._reactive_target
        if isinstance(index, slice):
            _track(self, LENGTH)
            for i in range(*index.indices(len(target))):
                _track(self, i)
            return target[index]
        length = len(target)
        position = index + length if index < 0 else index
        if index < 0 or position >= length:
            # negative and out-of-range lookups depend on the length
            _track(self, LENGTH)
        if position >= 0:
            _track(self, position)
        return target[index]

    def __len__(self) -> int:
        _track(self, LENGTH)
        return len(self._reactive_target)

    def __iter__(self) -> Iterator[T]:
        items = list(self._reactive_target)
        _track(self, LENGTH)
        for i in range(len(items)):
            _track(self, i)
        return iter(items)

    # --- Write operations (notify) ---

    def __setitem__(self, index, value) -> None:
        target = self._reactive_target
        if isinstance(index, slice):
            old_length = len(target)
            start, stop, step = index.indices(old_length)
            target[index] = [_adapt(self, item) for item in value]
            new_length = len(target)
            if step != 1:
                changed = range(start, stop, step)
            elif new_length != old_length:
                changed = range(start, max(old_length, new_length))
            else:
                changed = range(start, max(start, stop))
            _trigger(self, *changed)
            if new_length != old_length:
                _trigger(self, LENGTH)
            return
        position = index + len(target) if index < 0 else index
        target[index] = _adapt(self, value)
        _trigger(self, position)

    def __delitem__(self, index) -> None:
        target = self._reactive_target
        old_length = len(target)
        if isinstance(index, slice):
            removed = range(*index.indices(old_length))
            if not removed:
                return
            first = min(removed)
        else:
            first = index + old_length if index < 0 else index
        del target[index]
        _trigger(self, *range(first, old_length), LENGTH)

    def insert(self, index: int, value: T) -> None:
        target = self._reactive_target
        old_length = len(target)
        position = index + old_length if index < 0 else index
        position = min(max(position, 0), old_length)
        target.insert(position, _adapt(self, value))
        _trigger(self, *range(position, old_length + 1), LENGTH)

    def append(self, value: T) -> None:
        # writing must not track the length
        self.insert(len(self._reactive_target), value)

    def sort(self, *, key: Callable[[T], Any] | None = None, reverse: bool = False) -> None:
        target = self._reactive_target
        target.sort(key=key, reverse=reverse)
        _trigger(self, *range(len(target)))

    def reverse(self) -> None:
        target = self._reactive_target
        target.reverse()
        _trigger(self, *range(len(target)))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ReactiveList):
            other = list(other)
        if not isinstance(other, list):
            return NotImplemented
        return list(self) == other

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ReactiveList({self._reactive_target!r})"


class ReactiveObject(Reactive):
    """An attribute-object wrapper (SimpleNamespace, dataclass instance, ...).

    Every attribute access not satisfied by the wrapper itself goes to the
    wrapped object and is tracked per attribute name.
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_reactive_"):
            raise AttributeError(name)
        _track(self, name)
        return getattr(self._reactive_target, name)

    def __setattr__(self, name: str, value: Any) -> None:
        target = self._reactive_target
        added = not hasattr(target, name)
        setattr(target, name, _adapt(self, value))
        if added:
            _trigger(self, name, SHAPE)
        else:
            _trigger(self, name)

    def __delattr__(self, name: str) -> None:
        delattr(self._reactive_target, name)
        _trigger(self, name, SHAPE)

    def __dir__(self) -> list[str]:
        _track(self, SHAPE)
        return dir(self._reactive_target)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        _track(self, SHAPE)
        return self._reactive_target(*args, **kwargs)

    def __repr__(self) -> str:
        return f"ReactiveObject({self._reactive_target!r})"


def _wrapper_type(value: Any) -> type[Reactive] | None:
    if isinstance(value, dict):
        return ReactiveDict
    if isinstance(value, list):
        return ReactiveList
    if isinstance(value, SimpleNamespace):
        return ReactiveObject
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return ReactiveObject if is_container(value) else None
    return None


def _wrap_nested(wrapper: Reactive) -> None:
    """Replace every container nested in wrapper's target by its wrapper.

    Depth-first, so a container is wrapped after everything inside it. A
    container reachable through several paths (or a cycle) gets one wrapper.
    """
    target = wrapper._reactive_target
    wrappers: dict[int, Reactive] = {id(target): wrapper}
    for path, value, owner in iter_properties_deep(
        target, order="depth-first", yield_="objects", prune=is_reactive
    ):
        if isinstance(value, Reactive):
            continue
        nested = wrappers.get(id(value))
        if nested is None:
            wrapper_type = _wrapper_type(value)
            if wrapper_type is None:
                continue
            nested = wrappers[id(value)] = wrapper_type._adopt(value, False)
        set_property(owner, path[-1], nested)


def make_reactive(subject: Any, *, shallow: bool = False) -> Any:
    """Wrap a dict, list, SimpleNamespace or dataclass instance reactively.

    Already reactive values are returned unchanged. With shallow=True nested
    containers are left alone and changes inside them are not tracked.

    Deep wrapping stops at values that cannot be written in place: tuples,
    frozensets, frozen dataclasses. Containers held inside them stay plain,
    so only replacing the immutable value itself is tracked.
    """
    if isinstance(subject, Reactive):
        return subject
    wrapper_type = _wrapper_type(subject)
    if wrapper_type is None:
        raise TypeError(f"cannot make {type(subject).__name__!r} reactive")
    return wrapper_type(subject, shallow=shallow)


def is_reactive(value: Any) -> bool:
    return isinstance(value, Reactive)


def unwrap_reactive(value: Any) -> Any:
    """The container behind one reactive wrapper; anything else unchanged."""
    if isinstance(value, Reactive):
        return value._reactive_target
    return value


def unmake_reactive(value: Any) -> Any:
    """Unwrap value and every wrapper nested in it, in place.

    Computations that already read through the wrappers keep their cached
    values: writes to the plain containers are not tracked, so they are
    never dirtied by them.
    """
    return _unmake(value, set())


def _unmake(value: Any, seen: set[int]) -> Any:
    plain = unwrap_reactive(value)
    if not is_container(plain) or id(plain) in seen:
        return plain
    seen.add(id(plain))
    for key, item in iter_items(plain):
        unwrapped = _unmake(item, seen)
        if unwrapped is not item:
            set_property(plain, key, unwrapped)
    return plain
