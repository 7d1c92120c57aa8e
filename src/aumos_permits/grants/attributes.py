"""Attribute glob helpers for the grant table.

An attribute list is a sequence of ``fnmatch`` globs naming resource fields.
A leading ``!`` negates a glob: ``["*", "!price"]`` grants every field except
``price``. Only top-level field names are matched.
"""
from __future__ import annotations

import fnmatch
from collections.abc import Iterable, Mapping
from typing import Any

NEGATION_PREFIX = "!"


def is_negated(glob: str) -> bool:
    return glob.strip().startswith(NEGATION_PREFIX)


def _name(glob: str) -> str:
    glob = glob.strip()
    return glob[len(NEGATION_PREFIX):] if glob.startswith(NEGATION_PREFIX) else glob


def split_globs(globs: Iterable[str]) -> tuple[list[str], list[str]]:
    """Split *globs* into ``(positives, negated_names)``; negations lose their ``!``."""
    positives: list[str] = []
    negations: list[str] = []
    for glob in globs:
        (negations if is_negated(glob) else positives).append(_name(glob))
    return positives, negations


def allows(globs: Iterable[str], field_name: str) -> bool:
    """Return True if *field_name* matches a positive glob and no negated glob."""
    positives, negations = split_globs(globs)
    if not any(fnmatch.fnmatchcase(field_name, pattern) for pattern in positives):
        return False
    return not any(fnmatch.fnmatchcase(field_name, pattern) for pattern in negations)


def union(first: Iterable[str], second: Iterable[str]) -> list[str]:
    """Union of two attribute lists, as granted to a user holding both roles.

    A field visible on either side stays visible, so a negation survives only
    when the other side does not grant that field either. Positives covered
    by a broader positive glob and negations no positive reaches are dropped.
    The result lists positives first, each group sorted.

    Examples
    --------
    >>> union(["*", "!price", "!confidential"], ["*", "!price"])
    ['*', '!price']
    >>> union(["title"], ["content", "title"])
    ['content', 'title']
    """
    first = list(first)
    second = list(second)
    first_pos, first_neg = split_globs(first)
    second_pos, second_neg = split_globs(second)

    positives = set(first_pos) | set(second_pos)
    negations = {name for name in first_neg if not allows(second, name)}
    negations |= {name for name in second_neg if not allows(first, name)}

    positives = {
        glob
        for glob in positives
        if not any(other != glob and fnmatch.fnmatchcase(glob, other) for other in positives)
    }
    negations = {
        name
        for name in negations
        if any(fnmatch.fnmatchcase(name, glob) for glob in positives)
    }

    return sorted(positives) + [f"{NEGATION_PREFIX}{name}" for name in sorted(negations)]


def filter_fields(item: Mapping[str, Any], globs: Iterable[str]) -> dict[str, Any]:
    """Return a copy of *item* holding only the fields *globs* allow."""
    globs = list(globs)
    if not globs:
        return {}
    return {key: value for key, value in item.items() if allows(globs, str(key))}
