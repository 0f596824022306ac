"""Deep property enumeration over nested containers.

Containers are mutable mappings, mutable sequences (but not str/bytes),
SimpleNamespace objects and non-frozen dataclass instances. Their
properties are keys, indexes and attributes respectively.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, MutableMapping, MutableSequence
from types import SimpleNamespace
from typing import Any, Callable, Iterator, Literal, Sequence

Path = tuple
Order = Literal["depth-first", "breadth-first", "drilldown"]
Yield = Literal["objects", "primitives", "all"]


def is_container(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray)):
        return False
    if isinstance(value, (MutableMapping, MutableSequence, SimpleNamespace)):
        return True
    return (
        dataclasses.is_dataclass(value)
        and not isinstance(value, type)
        and not type(value).__dataclass_params__.frozen
    )


def iter_items(container: Any) -> list[tuple[Any, Any]]:
    """Snapshot of a container's (key, value) pairs."""
    if isinstance(container, Mapping):
        return list(container.items())
    if isinstance(container, MutableSequence):
        return list(enumerate(container))
    if dataclasses.is_dataclass(container):
        return [(f.name, getattr(container, f.name)) for f in dataclasses.fields(container)]
    return list(vars(container).items())


def set_property(container: Any, key: Any, value: Any) -> None:
    if isinstance(container, (MutableMapping, MutableSequence)):
        container[key] = value
    else:
        setattr(container, key, value)


def iter_properties_deep(
    subject: Any,
    *,
    order: Order = "depth-first",
    yield_: Yield = "primitives",
    prune: Callable[[Any], bool] | None = None,
) -> Iterator[tuple[Path, Any, Any]]:
    """Recursively yield (path, value, owner) for every property under subject.

    order:
      - "depth-first": a container property comes after everything inside it.
      - "drilldown": a container property comes before everything inside it.
      - "breadth-first": all of a container's own properties come before
        anything nested in them.
    yield_ picks container values ("objects"), the rest ("primitives") or both.
    prune(value) -> True stops the walk from descending into value.
    Each container is descended into once, so cycles terminate.

    Usage:
        list(iter_properties_deep({"a": {"b": 1}, "c": 2}))
        # [(("a", "b"), 1, {"b": 1}), (("c",), 2, {...})]
    """
    seen: set[int] = set()

    def _wanted(value: Any) -> bool:
        if yield_ == "all":
            return True
        return is_container(value) == (yield_ == "objects")

    def _descends(value: Any) -> bool:
        if not is_container(value) or id(value) in seen:
            return False
        return prune is None or not prune(value)

    def _walk(owner: Any, path: Path) -> Iterator[tuple[Path, Any, Any]]:
        seen.add(id(owner))
        items = iter_items(owner)

        if order == "breadth-first":
            for key, value in items:
                if _wanted(value):
                    yield path + (key,), value, owner

        for key, value in items:
            property_path = path + (key,)
            if order == "drilldown" and _wanted(value):
                yield property_path, value, owner
            if _descends(value):
                yield from _walk(value, property_path)
            if order == "depth-first" and _wanted(value):
                yield property_path, value, owner

    if is_container(subject):
        yield from _walk(subject, ())


def get_property_deep(subject: Any, path: Sequence[Any], default: Any = None) -> Any:
    """Follow path from subject. Returns default where the path breaks."""
    for key in path:
        try:
            if isinstance(subject, (Mapping, MutableSequence)):
                subject = subject[key]
            else:
                subject = getattr(subject, key)
        except (KeyError, IndexError, TypeError, AttributeError):
            return default
    return subject
