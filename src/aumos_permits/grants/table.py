"""Compiled role -> resource -> ``action:possession`` -> attributes table.

:class:`GrantTable` is what permission definitions are compiled into at
``build()`` time. It expands wildcards once, so queries are plain lookups.

Wildcards
---------
* role ``*`` expands to every role named anywhere in the definitions,
* resource ``*`` expands to every named resource,
* action ``*`` expands to every known action: ``create``, ``read``,
  ``update``, ``delete`` plus every action named in any grant.

Explicit entries win over entries produced by wildcard expansion; between
entries of the same specificity the later one wins.

Example
-------
::

    table = GrantTable.compile(definitions)
    result = table.query(["EMPLOYEE"], "read", "own", "document")
    result.granted, result.attributes
"""
from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from aumos_permits.errors import MalformedActionError
from aumos_permits.grants import attributes as attribute_globs
from aumos_permits.logger import get_logger
from aumos_permits.types import POSSESSION_SEPARATOR, WILDCARD, GrantResult, Possession
from aumos_permits.utils import delete_empty_array_keys

CRUD_ACTIONS: tuple[str, ...] = ("create", "read", "update", "delete")


class CompilableDefinition(Protocol):
    roles: list[str]
    resource: str
    grant: dict[str, list[str]]


@dataclass(frozen=True)
class _Entry:
    role: str
    resource: str
    action: str
    possession: str
    attributes: tuple[str, ...]

    @property
    def wildcards(self) -> int:
        return sum(value == WILDCARD for value in (self.role, self.resource, self.action))


class GrantTable:
    """Queryable grant table compiled from normalized permission definitions."""

    def __init__(self) -> None:
        self._grants: dict[str, dict[str, dict[str, list[str]]]] = {}
        self._roles: list[str] = []
        self._resources: list[str] = []
        self._actions: list[str] = list(CRUD_ACTIONS)

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    @classmethod
    def compile(cls, definitions: Iterable[CompilableDefinition]) -> GrantTable:
        """Build a table from normalized definitions (grant keys ``action:possession``)."""
        table = cls()
        entries: list[_Entry] = []
        for definition in definitions:
            for key, attrs in definition.grant.items():
                action, _, possession = key.partition(POSSESSION_SEPARATOR)
                for role in definition.roles:
                    entries.append(
                        _Entry(
                            role=role,
                            resource=definition.resource,
                            action=action,
                            possession=possession or Possession.ANY.value,
                            attributes=tuple(attrs),
                        )
                    )

        table._roles = sorted({e.role for e in entries if e.role != WILDCARD})
        table._resources = sorted({e.resource for e in entries if e.resource != WILDCARD})
        table._actions = sorted(
            set(CRUD_ACTIONS) | {e.action for e in entries if e.action != WILDCARD}
        )

        # stable sort: most wildcards first, so explicit entries are written last
        for entry in sorted(entries, key=lambda e: -e.wildcards):
            table._write(entry)
        return table

    def _write(self, entry: _Entry) -> None:
        roles = self._roles if entry.role == WILDCARD else [entry.role]
        resources = self._resources if entry.resource == WILDCARD else [entry.resource]
        actions = self._actions if entry.action == WILDCARD else [entry.action]
        for role in roles:
            for resource in resources:
                for action in actions:
                    key = f"{action}{POSSESSION_SEPARATOR}{entry.possession}"
                    get_logger().debug(
                        "grant table entry: role=%s resource=%s %s=%s",
                        role,
                        resource,
                        key,
                        list(entry.attributes),
                    )
                    self._grants.setdefault(role, {}).setdefault(resource, {})[key] = list(
                        entry.attributes
                    )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def known_roles(self) -> list[str]:
        return list(self._roles)

    def known_resources(self) -> list[str]:
        return list(self._resources)

    def known_actions(self) -> list[str]:
        return list(self._actions)

    def get_grants(self) -> dict[str, dict[str, dict[str, list[str]]]]:
        """Deep copy of the expanded table without empty attribute lists."""
        return delete_empty_array_keys(copy.deepcopy(self._grants))

    def lookup(self, role: str, resource: str, action: str, possession: str) -> list[str] | None:
        """Exact entry for one role, or ``None``; no ``any`` fallback for ``own``."""
        entry = self._grants.get(role, {}).get(resource, {}).get(
            f"{action}{POSSESSION_SEPARATOR}{possession}"
        )
        return None if entry is None else list(entry)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(
        self,
        roles: Sequence[str],
        action: str,
        possession: str | Possession,
        resource: str,
    ) -> GrantResult:
        """Resolve the attributes *roles* hold for ``action:possession`` on *resource*.

        An ``own`` query falls back to a role's ``any`` entry, since access to
        any instance covers owned ones. Attribute lists of several roles are
        combined with :func:`~aumos_permits.grants.attributes.union`.

        Raises
        ------
        MalformedActionError
            If *action* is not a known action.
        """
        if action not in self._actions:
            raise MalformedActionError(
                f'Invalid action: "{action}"', details={"known_actions": self.known_actions()}
            )
        possession = Possession(possession).value
        any_key = f"{action}{POSSESSION_SEPARATOR}{Possession.ANY.value}"
        key = f"{action}{POSSESSION_SEPARATOR}{possession}"

        attrs_list: list[list[str]] = []
        for role in dict.fromkeys(roles):
            resource_grants = self._grants.get(role, {}).get(resource)
            if resource_grants is None:
                continue
            attrs = resource_grants.get(key)
            if attrs is None:
                attrs = resource_grants.get(any_key, [])
            attrs_list.append(list(attrs))

        if not attrs_list:
            merged: list[str] = []
        else:
            merged = attrs_list[0]
            for attrs in attrs_list[1:]:
                merged = attribute_globs.union(merged, attrs)

        result = GrantResult.from_attributes(merged)
        get_logger().debug(
            "grant table query: roles=%s %s:%s resource=%s granted=%s attributes=%s",
            list(roles),
            action,
            possession,
            resource,
            result.granted,
            list(result.attributes),
        )
        return result

    @staticmethod
    def filter_fields(item: Mapping[str, Any], attributes: Iterable[str]) -> dict[str, Any]:
        """Keep only the fields of *item* that *attributes* allow."""
        return attribute_globs.filter_fields(item, attributes)
