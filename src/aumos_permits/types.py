"""Shared types for aumos-permits.

Ownership hook signatures
-------------------------
Hooks may be plain callables or coroutine functions; results are awaited
only when they are awaitable.

``is_owner(user=..., resource_id=...) -> bool``
    True iff *user* owns *resource_id*.
``list_owned(user) -> list[ResourceId]``
    Eager enumeration of every resource id owned by *user*.
``limit_owned(user=..., context=...) -> context``
    One lazy step of a query/filter builder; returns the next context.
``limit_own_reduce(user=..., limit_owneds=..., context=...) -> object``
    Optional replacement for the default left fold over ``limit_owned`` hooks.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, StrictInt, StrictStr, ValidationError, field_validator

ResourceId = Union[int, str]
AttributeList = list[str]
GrantMap = dict[str, AttributeList]

IsOwnerHook = Callable[..., Union[bool, Awaitable[bool]]]
ListOwnedHook = Callable[..., Union[list[Any], Awaitable[list[Any]]]]
LimitOwnedHook = Callable[..., Any]
LimitOwnReduce = Callable[..., Any]

WILDCARD = "*"
POSSESSION_SEPARATOR = ":"


class Possession(str, Enum):
    """Whether a grant covers every instance of a resource or only owned ones."""

    ANY = "any"
    OWN = "own"


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------


class User(BaseModel):
    """The querying user: an id plus a list of role names.

    Extra fields are kept so ownership hooks can read them (``user.company_id``).

    Attributes
    ----------
    id:
        Non-empty string or integer identifier.
    roles:
        Role names, required. An empty list is valid and is denied everything.
    """

    model_config = {"extra": "allow", "frozen": True}

    id: Union[StrictInt, StrictStr]
    roles: list[StrictStr]

    @field_validator("id")
    @classmethod
    def id_must_not_be_empty(cls, value: int | str) -> int | str:
        if isinstance(value, str) and not value:
            raise ValueError("user id must not be empty")
        return value


def is_valid_user(user: object) -> bool:
    """Return True if *user* is a :class:`User` or a mapping that validates as one."""
    if isinstance(user, User):
        return True
    if not isinstance(user, Mapping):
        return False
    try:
        User.model_validate(dict(user))
    except ValidationError:
        return False
    return True


# ---------------------------------------------------------------------------
# Grant table answers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GrantResult:
    """Answer of a single grant-table query.

    Attributes
    ----------
    granted:
        True iff ``attributes`` holds at least one non-negated glob.
    attributes:
        The attribute globs that apply, possibly empty.
    """

    granted: bool
    attributes: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_attributes(cls, attributes: list[str] | tuple[str, ...]) -> GrantResult:
        attrs = tuple(attributes)
        granted = any(not attr.strip().startswith("!") for attr in attrs)
        return cls(granted=granted, attributes=attrs)

    @classmethod
    def denied(cls) -> GrantResult:
        return cls(granted=False, attributes=())
