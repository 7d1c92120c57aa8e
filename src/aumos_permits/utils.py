"""Comparison and invariant helpers shared by the engine and the consolidator."""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from aumos_permits.types import POSSESSION_SEPARATOR, Possession

T = TypeVar("T")

_OWN_SUFFIX = f"{POSSESSION_SEPARATOR}{Possession.OWN.value}"


def has_some_own_grant(definition: Any) -> bool:
    """Return True if any grant key of *definition* ends with ``:own``."""
    grant = definition.grant if hasattr(definition, "grant") else definition.get("grant", {})
    return any(key.endswith(_OWN_SUFFIX) for key in grant or {})


def is_array_set_equal(
    first: object,
    second: object,
    comparator: Callable[[Any, Any], bool] | None = None,
) -> bool:
    """Return True if both are lists of equal length holding the same members.

    Order is ignored. ``comparator`` defaults to ``==``.

    Examples
    --------
    >>> is_array_set_equal(["a", "b"], ["b", "a"])
    True
    >>> is_array_set_equal(["a", "b"], ["a", "b", "b"])
    False
    """
    if not isinstance(first, (list, tuple)) or not isinstance(second, (list, tuple)):
        return False
    if len(first) != len(second):
        return False
    compare = comparator or (lambda left, right: left == right)
    return all(any(compare(a, b) for b in second) for a in first) and all(
        any(compare(a, b) for a in first) for b in second
    )


def is_hash(value: object) -> bool:
    return isinstance(value, Mapping)


def is_like(first: object = None, second: object = None) -> bool:
    """Return True if every key/value of *first* is recursively equal in *second*.

    ``None`` stands for an empty mapping on either side.
    """
    first = {} if first is None else first
    second = {} if second is None else second
    if first == second:
        return True
    if is_hash(first) and is_hash(second):
        return all(key in second and is_like(first[key], second[key]) for key in first)
    return False


def delete_empty_array_keys(value: T) -> T:
    """Recursively delete mapping keys whose value is ``[]``. Mutates *value*."""
    if isinstance(value, dict):
        for key in list(value):
            if value[key] == [] or value[key] == ():
                del value[key]
            else:
                delete_empty_array_keys(value[key])
    return value


def uniq(items: Iterable[T]) -> list[T]:
    """Order-preserving de-duplication by equality (works for unhashables)."""
    result: list[T] = []
    for item in items:
        if item not in result:
            result.append(item)
    return result


def uniq_by_identity(items: Iterable[T]) -> list[T]:
    """Order-preserving de-duplication by object identity."""
    seen: set[int] = set()
    result: list[T] = []
    for item in items:
        if id(item) not in seen:
            seen.add(id(item))
            result.append(item)
    return result


def matches_filter(candidate: Mapping[str, Any], shorthand: Mapping[str, Any]) -> bool:
    """Partial deep match of *candidate* against *shorthand*.

    Mappings match recursively on the shorthand's keys, lists match when every
    shorthand member is present in the candidate list, anything else by ``==``.
    """
    return all(
        key in candidate and _matches_value(candidate[key], expected)
        for key, expected in shorthand.items()
    )


def _matches_value(actual: Any, expected: Any) -> bool:
    if isinstance(expected, Mapping):
        return isinstance(actual, Mapping) and matches_filter(actual, expected)
    if isinstance(expected, (list, tuple)):
        if not isinstance(actual, (list, tuple)):
            return False
        return all(any(_matches_value(a, e) for a in actual) for e in expected)
    return actual == expected


# ---------------------------------------------------------------------------
# Grant table diffing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GrantDifference:
    """One point where two grant tables disagree.

    ``left`` or ``right`` is ``None`` when the path only exists on one side.
    """

    path: tuple[str, ...]
    left: Any
    right: Any


def diff_grants(left: Any, right: Any, path: tuple[str, ...] = ()) -> list[GrantDifference]:
    """Structural diff of two nested grant tables.

    Attribute lists are compared as-is; both tables are expected to come
    from the same normalizing compiler.
    """
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        differences: list[GrantDifference] = []
        for key in sorted(set(left) | set(right), key=str):
            differences.extend(diff_grants(left.get(key), right.get(key), (*path, str(key))))
        return differences
    if left == right:
        return []
    return [GrantDifference(path=path, left=left, right=right)]
