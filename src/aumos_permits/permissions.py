"""Permissions: the definition store and query engine.

Lifecycle
---------
1. Add permission definitions (``add_definitions``), each normalized and
   validated against the ones already added.
2. ``build()`` compiles them into a :class:`~aumos_permits.grants.GrantTable`;
   the definition set is frozen from then on.
3. Query with ``await grant_permit(user, action, resource, resource_id)``,
   which returns a :class:`~aumos_permits.permit.Permit`.

Example
-------
::

    permissions = Permissions(
        definitions=[
            {
                "roles": ["EMPLOYEE"],
                "resource": "document",
                "grant": {"read:own": ["*", "!confidential"]},
                "is_owner": is_creator,
                "list_owned": list_created,
            },
        ]
    ).build()

    permit = await permissions.grant_permit({"id": 1, "roles": ["EMPLOYEE"]}, "read", "document")
    permit.own_granted        # True
    await permit.list_own()   # ids created by user 1
"""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Literal, Union

from pydantic import ValidationError

from aumos_permits.consolidation import consolidate_definitions, definition_matches
from aumos_permits.definitions.models import (
    DefinitionInput,
    PermissionDefinitionDefaults,
    PermissionDefinitionInternal,
)
from aumos_permits.definitions.normalizer import coerce_defaults, normalize
from aumos_permits.definitions.validator import validate_definition
from aumos_permits.errors import (
    AlreadyBuiltError,
    ConsolidationIntegrityError,
    InvalidPermissionDefinitionError,
    InvalidUserError,
    MalformedActionError,
    MissingOwnershipHookError,
    MixedOwnershipStrategyError,
    NotBuiltError,
    UnknownResourceError,
)
from aumos_permits.grants.table import GrantTable
from aumos_permits.logger import get_logger
from aumos_permits.permit import Permit
from aumos_permits.types import (
    POSSESSION_SEPARATOR,
    WILDCARD,
    LimitOwnReduce,
    Possession,
    ResourceId,
    User,
)
from aumos_permits.utils import GrantDifference, diff_grants, uniq_by_identity

DefinitionFilter = Union[Mapping[str, Any], Callable[[PermissionDefinitionInternal], bool], None]
ConsolidateMode = Union[bool, Literal["force"]]
DefaultsInput = Union[PermissionDefinitionDefaults, Mapping[str, Any], None]


class Permissions:
    """Holds permission definitions and answers permit queries.

    Parameters
    ----------
    definitions:
        Optional definition (or list of them) added right away.
    defaults:
        Defaults applied to *definitions*.
    limit_own_reduce:
        Optional replacement for the default ``limit_owned`` fold used by
        :meth:`Permit.limit_own`.
    """

    def __init__(
        self,
        definitions: DefinitionInput | Sequence[DefinitionInput] | None = None,
        defaults: DefaultsInput = None,
        limit_own_reduce: LimitOwnReduce | None = None,
    ) -> None:
        self._definitions: list[PermissionDefinitionInternal] = []
        self._grant_table: GrantTable | None = None
        self._limit_own_reduce = limit_own_reduce
        self._warned_roles: set[str] = set()
        self.add_definitions(definitions or [], defaults)

    def __repr__(self) -> str:
        return f"Permissions(definitions={len(self._definitions)}, built={self.is_built})"

    # ------------------------------------------------------------------
    # Definition store
    # ------------------------------------------------------------------

    def add_definition(
        self, definition: DefinitionInput, defaults: DefaultsInput = None
    ) -> PermissionDefinitionInternal:
        """Normalize, validate and store one definition.

        Returns
        -------
        PermissionDefinitionInternal
            The stored, normalized definition.

        Raises
        ------
        AlreadyBuiltError
            If :meth:`build` was already called.
        InvalidPermissionDefinitionError
            Or one of its subclasses, when the definition is rejected.
        """
        self._ensure_not_built()
        candidate = normalize(coerce_defaults(defaults), definition)
        validate_definition(self._definitions, candidate)
        self._definitions.append(candidate)
        return candidate

    def add_definitions(
        self,
        definitions: DefinitionInput | Sequence[DefinitionInput],
        defaults: DefaultsInput = None,
    ) -> Permissions:
        """Add one definition or a list of them, in order; returns ``self``.

        Definitions before a rejected one stay added.
        """
        self._ensure_not_built()
        if definitions is None:
            raise InvalidPermissionDefinitionError("add_definitions() got no definitions.")
        if isinstance(definitions, (Mapping, PermissionDefinitionInternal)) or not isinstance(
            definitions, Sequence
        ):
            definitions = [definitions]  # type: ignore[list-item]
        pd_defaults = coerce_defaults(defaults)
        for definition in definitions:
            self.add_definition(definition, pd_defaults)
        return self

    @property
    def is_built(self) -> bool:
        return self._grant_table is not None

    def build(self) -> Permissions:
        """Compile the definitions into the grant table; idempotent, returns ``self``."""
        if self._grant_table is None:
            self._grant_table = GrantTable.compile(self._definitions)
            get_logger().debug(
                "Permissions built: %d definitions, roles=%s resources=%s",
                len(self._definitions),
                self._grant_table.known_roles(),
                self._grant_table.known_resources(),
            )
        return self

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def grant_permit(
        self,
        user: User | Mapping[str, Any],
        action: str,
        resource: str,
        resource_id: ResourceId | None = None,
    ) -> Permit:
        """Evaluate what *user* may do for *action* on *resource*.

        Both possessions are always evaluated, so *action* must be bare
        (``"read"``, not ``"read:own"``). When only ``own`` access exists and
        *resource_id* is given, ownership of that instance is checked right
        away and narrows :attr:`Permit.own_granted`.

        Raises
        ------
        NotBuiltError
            If :meth:`build` was not called.
        InvalidUserError
            If *user* lacks a valid id or a list of string roles.
        UnknownResourceError
            If no definition names *resource*.
        MalformedActionError
            If *action* carries a possession suffix or is unknown.
        """
        table = self._ensure_built()
        valid_user = self._coerce_user(user)

        if resource not in table.known_resources():
            raise UnknownResourceError(f'Invalid resource: "{resource}"')
        if POSSESSION_SEPARATOR in action:
            raise MalformedActionError(
                f'Invalid action structure: "{action}". Pass the bare action; '
                "both any and own possessions are always evaluated."
            )

        roles = self._known_roles_of(valid_user, table)
        any_result = table.query(roles, action, Possession.ANY, resource)
        own_result = table.query(roles, action, Possession.OWN, resource)

        is_owners: list[Any] = []
        list_owneds: list[Any] = []
        limit_owneds: list[Any] = []
        if own_result.granted:
            matching = self._definitions_matching(valid_user, action, resource)
            if not any_result.granted and not matching:
                raise MissingOwnershipHookError(
                    "Own access granted but no matching permission definitions found "
                    f"for user={valid_user.id!r} action={action!r} resource={resource!r}"
                )
            for definition in matching:
                if definition.is_owner is not None:
                    is_owners.append(definition.is_owner)
                if definition.list_owned is not None:
                    list_owneds.append(definition.list_owned)
                if definition.limit_owned is not None:
                    limit_owneds.append(definition.limit_owned)
            if not list_owneds and not limit_owneds:
                for definition in self._ownership_listers(valid_user, resource):
                    if definition.list_owned is not None:
                        list_owneds.append(definition.list_owned)
                    if definition.limit_owned is not None:
                        limit_owneds.append(definition.limit_owned)

        permit = Permit(
            user=valid_user,
            action=action,
            resource=resource,
            resource_id=resource_id,
            any_result=any_result,
            own_result=own_result,
            is_owners=uniq_by_identity(is_owners),
            list_owneds=uniq_by_identity(list_owneds),
            limit_owneds=uniq_by_identity(limit_owneds),
            limit_own_reduce=self._limit_own_reduce,
            grant_table=table,
        )

        if not any_result.granted and own_result.granted:
            self._check_collected_hooks(permit, is_owners, list_owneds, limit_owneds)
            if resource_id is not None:
                permit._narrow_to_resource_id(await permit.is_own(resource_id))

        return permit

    def get_roles(self) -> list[str]:
        return self._ensure_built().known_roles()

    def get_resources(self) -> list[str]:
        return self._ensure_built().known_resources()

    def get_actions(self) -> list[str]:
        return self._ensure_built().known_actions()

    def get_grants(self) -> dict[str, dict[str, dict[str, list[str]]]]:
        """Deep copy of the compiled grant table, without empty attribute lists."""
        return self._ensure_built().get_grants()

    def compare(
        self, first: Permissions, second: Permissions | None = None
    ) -> list[GrantDifference] | None:
        """Diff the grant tables of two built instances (*second* defaults to ``self``).

        Returns
        -------
        list[GrantDifference] | None
            ``None`` when both compile to identical grants.
        """
        other = self if second is None else second
        differences = diff_grants(first.get_grants(), other.get_grants())
        return differences or None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_definitions(
        self,
        filter: DefinitionFilter = None,
        consolidate: ConsolidateMode = False,
    ) -> list[dict[str, Any]]:
        """Return the stored definitions as dicts, optionally filtered and consolidated.

        Parameters
        ----------
        filter:
            A predicate over :class:`PermissionDefinitionInternal`, or a
            partial-match mapping such as ``{"resource": "document"}``. With a
            mapping and consolidation, fields equal to the filter's are omitted
            from the output.
        consolidate:
            ``False`` (default) returns definitions as stored. ``True`` or
            ``"force"`` merge and de-duplicate them; ``True`` refuses when any
            definition has an ``own`` grant, ``"force"`` only warns.

        Raises
        ------
        UnsupportedConsolidationError
            If ``consolidate=True`` meets an ``own`` grant.
        ConsolidationIntegrityError
            If the consolidated definitions compile to different grants.
        """
        filtered = [
            definition
            for definition in self._definitions
            if definition_matches(definition, filter) and definition.grant
        ]
        if not consolidate:
            return [definition.to_dict() for definition in filtered]

        result = consolidate_definitions(
            [definition.clone() for definition in self._definitions], filter, consolidate
        )

        defaults = filter if isinstance(filter, Mapping) else None
        consolidated = Permissions(result, defaults=defaults).build()
        original = Permissions(filtered, defaults=defaults).build()
        difference = self.compare(consolidated, original)
        if difference is not None:
            raise ConsolidationIntegrityError(
                f"Consolidated definitions differ from the originals: {difference}",
                details={
                    "difference": difference,
                    "original_grants": original.get_grants(),
                    "consolidated_grants": consolidated.get_grants(),
                },
            )
        return result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _ensure_built(self) -> GrantTable:
        if self._grant_table is None:
            raise NotBuiltError("Calling permissions methods before build().")
        return self._grant_table

    def _ensure_not_built(self) -> None:
        if self._grant_table is not None:
            raise AlreadyBuiltError("Calling add_definitions() after build().")

    @staticmethod
    def _coerce_user(user: User | Mapping[str, Any]) -> User:
        if isinstance(user, User):
            return user
        if not isinstance(user, Mapping):
            raise InvalidUserError(
                f"User must be a mapping with 'id' and 'roles', got {type(user).__name__}."
            )
        try:
            return User.model_validate(dict(user))
        except ValidationError as exc:
            raise InvalidUserError(
                f"User is not a valid {{id: str | int, roles: list[str]}}: {exc}"
            ) from exc

    def _known_roles_of(self, user: User, table: GrantTable) -> list[str]:
        known = set(table.known_roles())
        roles: list[str] = []
        for role in user.roles:
            if role in known:
                roles.append(role)
            elif role not in self._warned_roles:
                self._warned_roles.add(role)
                get_logger().warning(
                    "grant_permit(): role not found: %s (will not warn again about this role)",
                    role,
                )
        return roles

    def _definitions_matching(
        self, user: User, action: str, resource: str
    ) -> list[PermissionDefinitionInternal]:
        keys = [
            f"{name}{POSSESSION_SEPARATOR}{possession.value}"
            for possession in (Possession.OWN, Possession.ANY)
            for name in (action, WILDCARD)
        ]
        return [
            definition
            for definition in self._definitions
            if any(role == WILDCARD or role in user.roles for role in definition.roles)
            and definition.resource in (resource, WILDCARD)
            and any(key in definition.grant for key in keys)
        ]

    def _ownership_listers(
        self, user: User, resource: str
    ) -> list[PermissionDefinitionInternal]:
        """Definitions of *resource* carrying a list/limit hook, for own grants relying on them.

        Definitions sharing one of the user's roles are preferred; otherwise
        any definition of the resource qualifies, as validation allows.
        """
        listers = [
            definition
            for definition in self._definitions
            if definition.resource in (resource, WILDCARD)
            and (definition.list_owned is not None or definition.limit_owned is not None)
        ]
        own_roles = [
            definition
            for definition in listers
            if any(role == WILDCARD or role in user.roles for role in definition.roles)
        ]
        return own_roles or listers

    @staticmethod
    def _check_collected_hooks(
        permit: Permit,
        is_owners: list[Any],
        list_owneds: list[Any],
        limit_owneds: list[Any],
    ) -> None:
        def detail() -> str:
            return (
                f"The error should have been caught at add_definitions(). "
                f"user={permit.user.id!r} action={permit.action!r} "
                f"resource={permit.resource!r} resource_id={permit.resource_id!r}"
            )

        if not is_owners:
            raise MissingOwnershipHookError(
                f'"own" access granted but no "is_owner" hook found. {detail()}'
            )
        if not list_owneds and not limit_owneds:
            raise MissingOwnershipHookError(
                f'"own" access granted but no "list_owned" nor "limit_owned" hook found. '
                f"{detail()}"
            )
        if list_owneds and limit_owneds:
            raise MixedOwnershipStrategyError(
                f'"own" access granted but found BOTH "list_owned" & "limit_owned" hooks. '
                f"{detail()}"
            )
