"""Permission definition models.

Two stages:

* :class:`PermissionDefinition` is the sparse authoring record. Every field
  is optional; ``grant`` may be a list of actions or a mapping of
  ``"action[:possession]"`` keys to attribute lists (``None`` meaning
  "use the definition's defaults").
* :class:`PermissionDefinitionInternal` is the dense record produced by the
  normalizer: roles, resource and fully qualified ``"action:possession"``
  grant keys are always present.

Example
-------
::

    PermissionDefinition(
        roles=["EMPLOYEE"],
        resource="document",
        possession="own",
        attributes=["*", "!price"],
        grant=["read", "update", "list:any"],
        is_owner=is_creator,
        list_owned=list_created,
    )
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from aumos_permits.types import GrantMap, Possession

HookField = Optional[Callable[..., Any]]


# ---------------------------------------------------------------------------
# Authoring models
# ---------------------------------------------------------------------------


class PermissionDefinitionDefaults(BaseModel):
    """Fallback values applied to every definition of one ``add_definitions`` call.

    Unknown keys are ignored, so a ``get_definitions`` filter mapping can be
    reused as defaults.
    """

    model_config = {"extra": "ignore"}

    roles: Union[str, list[str], None] = None
    resource: Optional[str] = None
    attributes: Optional[list[str]] = None
    possession: Optional[Possession] = None


class PermissionDefinition(BaseModel):
    """A loosely specified permission definition (PD).

    Attributes
    ----------
    roles:
        One role name or a list of them. ``"*"`` stands for every role.
    resource:
        Resource name, ``"*"`` for every resource.
    descr:
        Human readable description, documentation only.
    grant:
        A list of actions, or a mapping of ``"action[:possession]"`` to
        attribute lists.
    attributes:
        Default attribute list for grant entries that do not carry one.
    possession:
        Default possession for grant keys without a ``:possession`` suffix.
    is_owner, list_owned, limit_owned:
        Ownership hooks (``isOwner``/``listOwned``/``limitOwned`` are accepted
        as aliases).
    """

    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
        "arbitrary_types_allowed": True,
    }

    roles: Union[str, list[str], None] = None
    resource: Optional[str] = None
    descr: Optional[str] = None
    grant: Union[dict[str, Optional[list[str]]], list[str], None] = None
    attributes: Optional[list[str]] = None
    possession: Optional[Possession] = None
    is_owner: HookField = Field(default=None, alias="isOwner")
    list_owned: HookField = Field(default=None, alias="listOwned")
    limit_owned: HookField = Field(default=None, alias="limitOwned")


# ---------------------------------------------------------------------------
# Internal (normalized) record
# ---------------------------------------------------------------------------


@dataclass
class PermissionDefinitionInternal:
    """Normalized permission definition; every grant key is ``action:possession``."""

    roles: list[str]
    resource: str
    grant: GrantMap
    descr: str = ""
    is_owner: HookField = None
    list_owned: HookField = None
    limit_owned: HookField = None

    def clone(self) -> PermissionDefinitionInternal:
        """Copy roles and grant lists; hooks are shared by reference."""
        return PermissionDefinitionInternal(
            roles=list(self.roles),
            resource=self.resource,
            grant={key: list(attrs) for key, attrs in self.grant.items()},
            descr=self.descr,
            is_owner=self.is_owner,
            list_owned=self.list_owned,
            limit_owned=self.limit_owned,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "roles": list(self.roles),
            "resource": self.resource,
            "descr": self.descr,
            "grant": {key: list(attrs) for key, attrs in self.grant.items()},
            "is_owner": self.is_owner,
            "list_owned": self.list_owned,
            "limit_owned": self.limit_owned,
        }

    @property
    def hooks(self) -> tuple[HookField, HookField, HookField]:
        return self.is_owner, self.list_owned, self.limit_owned


DefinitionInput = Union[PermissionDefinition, PermissionDefinitionInternal, dict[str, Any]]
