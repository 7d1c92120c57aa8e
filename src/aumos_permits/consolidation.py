"""Definition consolidation for introspection and auditing.

Consolidation rewrites a definition set into fewer, equivalent definitions.
It never changes query semantics and never touches the live store; callers
go through :meth:`aumos_permits.permissions.Permissions.get_definitions`,
which also recompiles the result and compares grant tables.

Passes, in order:

1. merge definitions with the same role set, resource and compatible hooks,
2. delete grant keys already granted, with equal attributes, by earlier definitions,
3. fold the roles of a later definition into an earlier one whose grants are
   a subset of the later one's, deleting the moved keys from the later one,
4. omit empty fields and fields implied by a mapping filter,
5. drop definitions left without grants.

Consolidating ``own`` grants can widen ownership across merged roles, so it
requires ``mode="force"``.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Union

from aumos_permits.definitions.models import PermissionDefinitionInternal
from aumos_permits.errors import UnsupportedConsolidationError
from aumos_permits.grants.table import GrantTable
from aumos_permits.logger import get_logger
from aumos_permits.types import POSSESSION_SEPARATOR
from aumos_permits.utils import (
    has_some_own_grant,
    is_array_set_equal,
    is_like,
    matches_filter,
    uniq,
)

DefinitionFilter = Union[Mapping[str, Any], Callable[[PermissionDefinitionInternal], bool], None]


def definition_matches(definition: PermissionDefinitionInternal, filter: DefinitionFilter) -> bool:
    """Apply a predicate or partial-match mapping filter; ``None`` matches all."""
    if filter is None:
        return True
    if callable(filter):
        return bool(filter(definition))
    return matches_filter(definition.to_dict(), filter)


def are_compatible_own_hooks(
    first: PermissionDefinitionInternal, second: PermissionDefinitionInternal
) -> bool:
    """True if each hook is the same object on both, or absent on at least one."""
    return all(
        a is b or a is None or b is None for a, b in zip(first.hooks, second.hooks)
    )


def _later_hook(later: Any, earlier: Any) -> Any:
    return earlier if later is None else later


def merge_two_definitions(
    receiving: PermissionDefinitionInternal, definition: PermissionDefinitionInternal
) -> PermissionDefinitionInternal:
    """Merge *definition* into *receiving*; later grant keys, roles and descr win."""
    return PermissionDefinitionInternal(
        roles=list(definition.roles),
        resource=definition.resource,
        grant={**receiving.grant, **definition.grant},
        descr=definition.descr or receiving.descr,
        is_owner=_later_hook(definition.is_owner, receiving.is_owner),
        list_owned=_later_hook(definition.list_owned, receiving.list_owned),
        limit_owned=_later_hook(definition.limit_owned, receiving.limit_owned),
    )


def merge_equivalent_definitions(
    definitions: list[PermissionDefinitionInternal],
) -> list[PermissionDefinitionInternal]:
    """Pass 1: merge definitions sharing role set, resource and compatible hooks."""
    consolidated: list[PermissionDefinitionInternal] = []
    for definition in definitions:
        index = next(
            (
                i
                for i, existing in enumerate(consolidated)
                if existing.resource == definition.resource
                and is_array_set_equal(existing.roles, definition.roles)
                and are_compatible_own_hooks(existing, definition)
            ),
            None,
        )
        if index is None:
            consolidated.append(definition)
        else:
            consolidated[index] = merge_two_definitions(consolidated[index], definition)
    return consolidated


def delete_defined_grants(
    definitions: list[PermissionDefinitionInternal],
) -> list[PermissionDefinitionInternal]:
    """Pass 2: drop grant keys every role already holds with equal attributes.

    Mutates the grant maps of *definitions*.
    """
    accumulated: list[PermissionDefinitionInternal] = []
    for definition in definitions:
        table = GrantTable.compile(accumulated)
        for key in list(definition.grant):
            action, _, possession = key.partition(POSSESSION_SEPARATOR)
            attributes = definition.grant[key]
            if all(
                table.lookup(role, definition.resource, action, possession) == attributes
                for role in definition.roles
            ):
                del definition.grant[key]
        accumulated.append(definition)
    return accumulated


def merge_compatible_grants(
    definitions: list[PermissionDefinitionInternal],
) -> list[PermissionDefinitionInternal]:
    """Pass 3: move roles of a superset definition onto the earlier subset one.

    Mutates *definitions* in place and returns the same list.
    """
    for parent_index, parent in enumerate(definitions):
        if not parent.grant:
            continue
        for child in definitions[parent_index + 1:]:
            if (
                parent.resource == child.resource
                and is_like(parent.grant, child.grant)
                and are_compatible_own_hooks(parent, child)
            ):
                parent.roles = uniq([*parent.roles, *child.roles])
                for key in parent.grant:
                    child.grant.pop(key, None)
    return definitions


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if callable(value):
        return False
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return False


def omit_implied_fields(
    definition: PermissionDefinitionInternal, filter: DefinitionFilter
) -> dict[str, Any]:
    """Pass 4: render *definition* without empty fields and fields the filter implies."""
    result: dict[str, Any] = {}
    for key, value in definition.to_dict().items():
        if _is_empty(value):
            continue
        if isinstance(filter, Mapping) and key in filter:
            expected = filter[key]
            if expected == value or is_array_set_equal(expected, value):
                continue
        result[key] = value
    return result


def consolidate_definitions(
    definitions: list[PermissionDefinitionInternal],
    filter: DefinitionFilter = None,
    mode: bool | str = True,
) -> list[dict[str, Any]]:
    """Run every consolidation pass over *definitions* (mutated; pass clones).

    Parameters
    ----------
    definitions:
        Snapshot of the stored definitions, in insertion order.
    filter:
        Predicate or partial-match mapping selecting the definitions.
    mode:
        ``True`` refuses ``own`` grants, ``"force"`` only warns about them.

    Returns
    -------
    list[dict[str, Any]]

    Raises
    ------
    UnsupportedConsolidationError
        If ``mode`` is ``True`` and a selected definition has an ``own`` grant.
    ValueError
        If ``mode`` is neither ``True`` nor ``"force"``.
    """
    if mode is not True and mode != "force":
        raise ValueError(f"consolidate must be False, True or 'force', got {mode!r}")

    selected = [d for d in definitions if definition_matches(d, filter)]

    if any(has_some_own_grant(d) for d in selected):
        message = (
            "Consolidating permission definitions is experimental and not "
            "compatible with 'own' possession."
        )
        if mode is True:
            raise UnsupportedConsolidationError(
                f"{message} Use consolidate='force' to consolidate 'own' grants "
                "at your own risk, or consolidate=False."
            )
        get_logger().warning("%s Proceeding because consolidate='force'.", message)

    merged = merge_equivalent_definitions(selected)
    pruned = delete_defined_grants(merged)
    joined = merge_compatible_grants(pruned)
    rendered = [omit_implied_fields(d, filter) for d in joined]
    return [d for d in rendered if d.get("grant")]
