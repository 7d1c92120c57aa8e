"""Permit: the answer to one ``grant_permit`` query.

A :class:`Permit` bundles what the user may do with an action on a
resource. It holds the ``any`` and ``own`` grant results plus the ownership
hooks collected from every matching definition, and composes them:

* :meth:`Permit.is_own` ORs every ``is_owner`` hook (short-circuits),
* :meth:`Permit.list_own` unions every ``list_owned`` hook,
* :meth:`Permit.limit_own` folds every ``limit_owned`` hook over a context.

Permits are created by :meth:`aumos_permits.permissions.Permissions.grant_permit`
only; do not instantiate them directly.

Example
-------
::

    permit = await permissions.grant_permit(user, "read", "document")
    if permit.any_granted:
        documents = await repo.all()
    else:
        documents = await repo.by_ids(await permit.list_own())
    visible = await permit.filter_pick(documents)
"""
from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any

from aumos_permits.errors import InvalidInvocationError
from aumos_permits.grants.table import GrantTable
from aumos_permits.types import (
    GrantResult,
    IsOwnerHook,
    LimitOwnedHook,
    LimitOwnReduce,
    ListOwnedHook,
    ResourceId,
    User,
)
from aumos_permits.utils import uniq

_ITEM_ID = object()


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _identity(item: Any) -> Any:
    return item


class Permit:
    """Granted permissions of one user for one action on one resource.

    Attributes
    ----------
    user:
        The :class:`~aumos_permits.types.User` passed to ``grant_permit``.
    action:
        The bare action queried, e.g. ``"update"``.
    resource:
        The resource queried, e.g. ``"document"``.
    resource_id:
        The resource id passed to ``grant_permit``, or ``None``.
    """

    def __init__(
        self,
        *,
        user: User,
        action: str,
        resource: str,
        resource_id: ResourceId | None,
        any_result: GrantResult,
        own_result: GrantResult,
        is_owners: Sequence[IsOwnerHook] = (),
        list_owneds: Sequence[ListOwnedHook] = (),
        limit_owneds: Sequence[LimitOwnedHook] = (),
        limit_own_reduce: LimitOwnReduce | None = None,
        grant_table: GrantTable | None = None,
    ) -> None:
        self.user = user
        self.action = action
        self.resource = resource
        self.resource_id = resource_id
        self._any_result = any_result
        self._own_result = own_result
        self._is_owners: tuple[IsOwnerHook, ...] = tuple(is_owners)
        self._list_owneds: tuple[ListOwnedHook, ...] = tuple(list_owneds)
        self._limit_owneds: tuple[LimitOwnedHook, ...] = tuple(limit_owneds)
        self._limit_own_reduce = limit_own_reduce
        self._grant_table = grant_table or GrantTable()
        self._resource_id_own_granted = True

    def __repr__(self) -> str:
        return (
            f"Permit(user_id={self.user.id!r}, action={self.action!r}, "
            f"resource={self.resource!r}, resource_id={self.resource_id!r}, "
            f"any_granted={self.any_granted}, own_granted={self.own_granted})"
        )

    def _narrow_to_resource_id(self, is_owned: bool) -> None:
        # Only grant_permit calls this, once, right after construction.
        self._resource_id_own_granted = bool(is_owned)

    # ------------------------------------------------------------------
    # Grant flags and attributes
    # ------------------------------------------------------------------

    @property
    def any_granted(self) -> bool:
        """Whether the user may act on ANY instance of the resource."""
        return self._any_result.granted

    @property
    def own_granted(self) -> bool:
        """Whether the user may act on OWN instances (or on ``resource_id``, if given).

        Always True when :attr:`any_granted` is True, since ``any`` access
        covers owned instances too. Use :meth:`is_own` for real ownership.
        """
        return self._resource_id_own_granted and self._own_result.granted

    @property
    def granted(self) -> bool:
        """Shortcut decision.

        With a ``resource_id`` this equals :attr:`own_granted` (already narrowed
        to that instance); without one it is ``any_granted or own_granted``.
        """
        if self.resource_id is not None:
            return self.own_granted
        return self.any_granted or self.own_granted

    @property
    def granted_action(self) -> bool:
        """Whether the action is granted at all, ignoring ``resource_id``."""
        return self.any_granted or self._own_result.granted

    @property
    def any_attributes(self) -> list[str]:
        """Attribute globs for ANY instance; ``[]`` when ``any`` is not granted."""
        return list(self._any_result.attributes)

    @property
    def own_attributes(self) -> list[str]:
        """Attribute globs for OWN instances (equal to the ``any`` ones if no own grant)."""
        return list(self._own_result.attributes)

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    async def is_own(self, resource_id: ResourceId) -> bool:
        """Return True as soon as one collected ``is_owner`` hook says so.

        Hooks run sequentially in definition order; False if there are none.
        """
        for is_owner in self._is_owners:
            if await _resolve(is_owner(user=self.user, resource_id=resource_id)):
                return True
        return False

    def is_list_own_supported(self) -> bool:
        return bool(self._list_owneds)

    async def list_own(self) -> list[ResourceId]:
        """Union of the resource ids returned by every collected ``list_owned`` hook.

        Raises
        ------
        InvalidInvocationError
            If the action is not granted, or no ``list_owned`` hook was
            collected (use :meth:`limit_own` instead).
        """
        if not self.granted_action:
            raise InvalidInvocationError(
                "permit.list_own() called but permit.granted_action is False"
            )
        if not self.is_list_own_supported():
            raise InvalidInvocationError(
                "permit.list_own() called but no list_owned hook applies to this "
                "permit; use permit.limit_own() instead"
            )

        owned: list[ResourceId] = []
        for list_owned in self._list_owneds:
            owned.extend(await _resolve(list_owned(self.user)))
        return uniq(owned)

    def limit_own(self, context: Any = None) -> Any:
        """Compose every collected ``limit_owned`` hook over *context*.

        Each hook receives the previous hook's return value as ``context``, so
        hooks must add alternatives (OR) rather than narrow (AND). A
        ``limit_own_reduce`` passed to :class:`~aumos_permits.permissions.Permissions`
        replaces this fold entirely.

        Raises
        ------
        InvalidInvocationError
            If the action is not granted.
        """
        if not self.granted_action:
            raise InvalidInvocationError(
                "permit.limit_own() called but permit.granted_action is False"
            )

        if self._limit_own_reduce is not None:
            return self._limit_own_reduce(
                user=self.user, limit_owneds=list(self._limit_owneds), context=context
            )

        for limit_owned in self._limit_owneds:
            context = limit_owned(user=self.user, context=context)
        return context

    # ------------------------------------------------------------------
    # Attribute picking
    # ------------------------------------------------------------------

    async def attributes(self, resource_id: ResourceId | None = None) -> list[str]:
        """Attribute globs that apply, depending on ownership of *resource_id*."""
        if resource_id is None:
            return self.any_attributes
        return self.own_attributes if await self.is_own(resource_id) else self.any_attributes

    async def pick(
        self,
        item: Mapping[str, Any],
        resource_id_or_own: ResourceId | bool | None | object = _ITEM_ID,
    ) -> dict[str, Any]:
        """Return the fields of *item* the user may access.

        Parameters
        ----------
        item:
            A resource item, usually with an ``id`` key.
        resource_id_or_own:
            ``True``/``False`` force the own/any attributes; an id overrides
            ``item["id"]`` for the ownership check. Defaults to ``item["id"]``.
        """
        if resource_id_or_own is _ITEM_ID:
            resource_id_or_own = item.get("id")

        if resource_id_or_own is None or resource_id_or_own is False:
            return self._grant_table.filter_fields(item, self._any_result.attributes)
        if resource_id_or_own is True or await self.is_own(resource_id_or_own):
            return self._grant_table.filter_fields(item, self._own_result.attributes)
        return self._grant_table.filter_fields(item, self._any_result.attributes)

    async def filter_pick(self, items: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Keep the accessible items, each picked to its accessible fields.

        With ``any`` access every item passes; otherwise only owned ones.
        Items without an ``id`` are never owned.
        """
        result: list[dict[str, Any]] = []
        for item in items:
            item_id = item.get("id")
            if self.any_granted:
                result.append(await self.pick(item))
            elif item_id is not None and await self.is_own(item_id):
                result.append(await self.pick(item, True))
        return result

    async def map_pick(
        self,
        items: Iterable[Mapping[str, Any]],
        projector: Callable[[Any], Any | Awaitable[Any]] = _identity,
    ) -> list[dict[str, Any]]:
        """Project each item (sync or async *projector*), then :meth:`pick` it.

        Never drops items; inaccessible ones come back as ``{}``.
        """
        result: list[dict[str, Any]] = []
        for item in items:
            projected = await _resolve(projector(item))
            result.append(await self.pick(projected))
        return result
