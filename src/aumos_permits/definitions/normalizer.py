"""Lower sparse :class:`PermissionDefinition` records into the internal form."""
from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from aumos_permits.definitions.models import (
    DefinitionInput,
    PermissionDefinition,
    PermissionDefinitionDefaults,
    PermissionDefinitionInternal,
)
from aumos_permits.errors import InvalidPermissionDefinitionError, MissingFieldError
from aumos_permits.types import POSSESSION_SEPARATOR, GrantMap, Possession

DEFAULT_ATTRIBUTES: tuple[str, ...] = ("*",)


def describe(definition: object) -> str:
    """Render a definition for error messages; hooks are shown by name."""
    if isinstance(definition, PermissionDefinitionInternal):
        data: Any = definition.to_dict()
    elif isinstance(definition, PermissionDefinition):
        data = definition.model_dump(exclude_none=True)
    else:
        data = definition
    return json.dumps(data, default=_json_default, indent=2, sort_keys=False)


def _json_default(value: object) -> str:
    name = getattr(value, "__qualname__", None) or getattr(value, "__name__", None)
    return f"<{name}>" if name else repr(value)


def coerce_definition(definition: DefinitionInput) -> PermissionDefinition:
    """Validate *definition* into a :class:`PermissionDefinition`.

    Raises
    ------
    InvalidPermissionDefinitionError
        If the input is not a mapping or fails field validation.
    """
    if isinstance(definition, PermissionDefinition):
        return definition
    if isinstance(definition, PermissionDefinitionInternal):
        return PermissionDefinition.model_validate(definition.to_dict())
    if not isinstance(definition, Mapping):
        raise InvalidPermissionDefinitionError(
            f"Permission definition must be a mapping, got {type(definition).__name__}."
        )
    try:
        return PermissionDefinition.model_validate(dict(definition))
    except ValidationError as exc:
        raise InvalidPermissionDefinitionError(
            f"Invalid permission definition: {exc}",
            details={"definition": describe(definition)},
        ) from exc


def coerce_defaults(
    defaults: PermissionDefinitionDefaults | Mapping[str, Any] | None,
) -> PermissionDefinitionDefaults:
    if defaults is None:
        return PermissionDefinitionDefaults()
    if isinstance(defaults, PermissionDefinitionDefaults):
        return defaults
    try:
        return PermissionDefinitionDefaults.model_validate(dict(defaults))
    except ValidationError as exc:
        raise InvalidPermissionDefinitionError(
            f"Invalid permission definition defaults: {exc}"
        ) from exc


def normalize(
    defaults: PermissionDefinitionDefaults | Mapping[str, Any] | None,
    definition: DefinitionInput,
) -> PermissionDefinitionInternal:
    """Resolve *definition* against *defaults* into its internal form.

    Parameters
    ----------
    defaults:
        Fallback ``roles``, ``resource``, ``attributes`` and ``possession``.
    definition:
        A mapping, :class:`PermissionDefinition` or an already normalized
        :class:`PermissionDefinitionInternal`.

    Returns
    -------
    PermissionDefinitionInternal

    Raises
    ------
    MissingFieldError
        If roles or resource cannot be resolved, or grant is missing or empty.
    InvalidPermissionDefinitionError
        If a field has the wrong shape.
    """
    pd = coerce_definition(definition)
    pd_defaults = coerce_defaults(defaults)

    roles = pd.roles or pd_defaults.roles
    resource = pd.resource or pd_defaults.resource
    if not roles:
        raise MissingFieldError(f'Missing "roles" in {describe(pd)}.')
    if not resource:
        raise MissingFieldError(f'Missing "resource" in {describe(pd)}.')
    if not pd.grant:
        raise MissingFieldError(f'Missing or empty "grant" in {describe(pd)}.')

    raw_grant: dict[str, list[str] | None] = (
        dict.fromkeys(pd.grant) if isinstance(pd.grant, list) else dict(pd.grant)
    )

    grant: GrantMap = {}
    for key, attributes in raw_grant.items():
        action, _, explicit_possession = key.partition(POSSESSION_SEPARATOR)
        if not action:
            raise InvalidPermissionDefinitionError(
                f'Grant key "{key}" has no action in {describe(pd)}.'
            )
        possession = _resolve_possession(explicit_possession, pd, pd_defaults)
        grant[f"{action}{POSSESSION_SEPARATOR}{possession}"] = list(
            _first_not_none(
                attributes, pd.attributes, pd_defaults.attributes, DEFAULT_ATTRIBUTES
            )
        )

    return PermissionDefinitionInternal(
        roles=[roles] if isinstance(roles, str) else list(roles),
        resource=resource,
        grant=grant,
        descr=pd.descr or "",
        is_owner=pd.is_owner,
        list_owned=pd.list_owned,
        limit_owned=pd.limit_owned,
    )


def _resolve_possession(
    explicit: str,
    pd: PermissionDefinition,
    defaults: PermissionDefinitionDefaults,
) -> str:
    if explicit:
        try:
            return Possession(explicit).value
        except ValueError as exc:
            raise InvalidPermissionDefinitionError(
                f'Invalid possession "{explicit}", expected one of '
                f"{[p.value for p in Possession]}."
            ) from exc
    chosen = pd.possession or defaults.possession or Possession.ANY
    return Possession(chosen).value


def _first_not_none(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
