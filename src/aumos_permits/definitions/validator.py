"""Cross-definition validation run for every definition as it is added.

Rules
-----
1. Redefining a ``role + resource + action:possession`` with different
   attributes raises :class:`ConflictingGrantError`; redefining it with the
   same attributes only logs a warning.
2. A definition with any ``:own`` grant needs an ``is_owner`` hook. It may
   carry ``list_owned`` or ``limit_owned`` itself, or leave both out when an
   earlier definition of the same resource already provides one.
3. ``list_owned`` and ``limit_owned`` are mutually exclusive per resource,
   across every definition touching it.
"""
from __future__ import annotations

from collections.abc import Sequence

from aumos_permits.definitions.models import PermissionDefinitionInternal
from aumos_permits.definitions.normalizer import describe
from aumos_permits.errors import (
    ConflictingGrantError,
    MissingOwnershipHookError,
    MixedOwnershipStrategyError,
)
from aumos_permits.logger import get_logger
from aumos_permits.utils import has_some_own_grant


def find_duplicate_grants(
    existing: Sequence[PermissionDefinitionInternal],
    candidate: PermissionDefinitionInternal,
    *,
    conflicting_only: bool,
) -> list[tuple[PermissionDefinitionInternal, str]]:
    """Return ``(existing_definition, grant_key)`` pairs redefined by *candidate*.

    With ``conflicting_only`` only redefinitions carrying different attributes
    are reported; otherwise every redefinition is.
    """
    duplicates: list[tuple[PermissionDefinitionInternal, str]] = []
    for original in existing:
        if original.resource != candidate.resource:
            continue
        if not any(role in original.roles for role in candidate.roles):
            continue
        for key, attributes in candidate.grant.items():
            if key not in original.grant:
                continue
            if conflicting_only and original.grant[key] == attributes:
                continue
            duplicates.append((original, key))
            break
    return duplicates


def validate_definition(
    existing: Sequence[PermissionDefinitionInternal],
    candidate: PermissionDefinitionInternal,
) -> None:
    """Check *candidate* against the already accepted *existing* definitions.

    Raises
    ------
    ConflictingGrantError
        If a grant key is redefined with different attributes.
    MissingOwnershipHookError
        If an ``own`` grant lacks ``is_owner`` or both list/limit hooks.
    MixedOwnershipStrategyError
        If ``list_owned`` and ``limit_owned`` meet on the same resource.
    """
    conflicts = find_duplicate_grants(existing, candidate, conflicting_only=True)
    if conflicts:
        original, key = conflicts[0]
        raise ConflictingGrantError(
            f'Redefining action error. Action: "{key}" '
            f"with attributes {candidate.grant[key]} while adding "
            f"{describe(candidate)} conflicts with {describe(original)}",
            details={"action": key, "attributes": candidate.grant[key]},
        )

    harmless = find_duplicate_grants(existing, candidate, conflicting_only=False)
    if harmless:
        _, key = harmless[0]
        get_logger().warning(
            "Redefining action in a PD with same attributes is obsolete: "
            "action=%s attributes=%s resource=%s roles=%s",
            key,
            candidate.grant[key],
            candidate.resource,
            candidate.roles,
        )

    if has_some_own_grant(candidate):
        _validate_ownership_hooks(existing, candidate)


def _validate_ownership_hooks(
    existing: Sequence[PermissionDefinitionInternal],
    candidate: PermissionDefinitionInternal,
) -> None:
    if candidate.is_owner is None:
        raise MissingOwnershipHookError(
            f"Definition has an 'own' action but no \"is_owner\" hook. {describe(candidate)}"
        )

    list_found = candidate.list_owned is not None
    limit_found = candidate.limit_owned is not None

    if list_found and limit_found:
        raise MixedOwnershipStrategyError(
            'Found BOTH "list_owned" & "limit_owned" hooks in the added '
            f"definition. Use one or the other, but not both. {describe(candidate)}"
        )

    for original in existing:
        if original.resource != candidate.resource:
            continue
        list_found = list_found or original.list_owned is not None
        limit_found = limit_found or original.limit_owned is not None
        if list_found and limit_found:
            raise MixedOwnershipStrategyError(
                'Found BOTH "list_owned" & "limit_owned" hooks in definitions for '
                f'resource "{candidate.resource}". Use one or the other, but not both. '
                f"Adding {describe(candidate)} conflicts with {describe(original)}",
                details={"resource": candidate.resource},
            )

    # list_owned / limit_owned may come from an earlier definition of the resource
    if not (list_found or limit_found):
        raise MissingOwnershipHookError(
            "Definition has an 'own' action but no \"list_owned\" nor \"limit_owned\" "
            f'hook, and no other definition for resource "{candidate.resource}" has one. '
            f"{describe(candidate)}",
            details={"resource": candidate.resource},
        )
