"""Error taxonomy for aumos-permits.

Every error raised by the engine subclasses :class:`PermissionsError` and
carries a :class:`PermissionsErrorKind`, so callers can tell a malformed
policy apart from an out-of-sequence call or a malformed query. None of
these are ever downgraded to an "access denied" answer.

Hierarchy
---------
::

    PermissionsError
    ├── InvalidPermissionDefinitionError
    │   ├── MissingFieldError
    │   ├── ConflictingGrantError
    │   ├── MissingOwnershipHookError
    │   └── MixedOwnershipStrategyError
    ├── PermissionQueryError
    │   ├── InvalidUserError
    │   ├── UnknownResourceError
    │   └── MalformedActionError
    ├── InvalidInvocationError
    │   ├── NotBuiltError
    │   └── AlreadyBuiltError
    ├── ConsolidationIntegrityError
    └── UnsupportedConsolidationError
"""
from __future__ import annotations

from enum import Enum


class PermissionsErrorKind(str, Enum):
    """Discriminator carried by every :class:`PermissionsError`."""

    INVALID_DEFINITION = "invalid_definition"
    MISSING_FIELD = "missing_field"
    CONFLICTING_GRANT = "conflicting_grant"
    MISSING_OWNERSHIP_HOOK = "missing_ownership_hook"
    MIXED_OWNERSHIP_STRATEGY = "mixed_ownership_strategy"
    INVALID_QUERY = "invalid_query"
    INVALID_USER = "invalid_user"
    UNKNOWN_RESOURCE = "unknown_resource"
    MALFORMED_ACTION = "malformed_action"
    INVALID_INVOCATION = "invalid_invocation"
    NOT_BUILT = "not_built"
    ALREADY_BUILT = "already_built"
    CONSOLIDATION_INTEGRITY = "consolidation_integrity"
    UNSUPPORTED_CONSOLIDATION = "unsupported_consolidation"


class PermissionsError(Exception):
    """Base class of all aumos-permits errors.

    Attributes
    ----------
    kind:
        The :class:`PermissionsErrorKind` of this error.
    details:
        Optional structured data describing the offending input.
    """

    kind: PermissionsErrorKind = PermissionsErrorKind.INVALID_DEFINITION

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        self.details: dict[str, object] = dict(details or {})
        super().__init__(message)


# ---------------------------------------------------------------------------
# Definition errors (raised by add_definitions)
# ---------------------------------------------------------------------------


class InvalidPermissionDefinitionError(PermissionsError):
    """A permission definition is malformed or inconsistent with the others."""

    kind = PermissionsErrorKind.INVALID_DEFINITION


class MissingFieldError(InvalidPermissionDefinitionError):
    """``roles``, ``resource`` or ``grant`` could not be resolved."""

    kind = PermissionsErrorKind.MISSING_FIELD


class ConflictingGrantError(InvalidPermissionDefinitionError):
    """The same role/resource/action:possession is redefined with other attributes."""

    kind = PermissionsErrorKind.CONFLICTING_GRANT


class MissingOwnershipHookError(InvalidPermissionDefinitionError):
    """An ``own`` grant lacks ``is_owner`` or both of ``list_owned``/``limit_owned``."""

    kind = PermissionsErrorKind.MISSING_OWNERSHIP_HOOK


class MixedOwnershipStrategyError(InvalidPermissionDefinitionError):
    """Both ``list_owned`` and ``limit_owned`` are in use for one resource."""

    kind = PermissionsErrorKind.MIXED_OWNERSHIP_STRATEGY


# ---------------------------------------------------------------------------
# Query errors (raised by grant_permit and the grant table)
# ---------------------------------------------------------------------------


class PermissionQueryError(PermissionsError):
    """A permit query is malformed."""

    kind = PermissionsErrorKind.INVALID_QUERY


class InvalidUserError(PermissionQueryError):
    kind = PermissionsErrorKind.INVALID_USER


class UnknownResourceError(PermissionQueryError):
    kind = PermissionsErrorKind.UNKNOWN_RESOURCE


class MalformedActionError(PermissionQueryError):
    kind = PermissionsErrorKind.MALFORMED_ACTION


# ---------------------------------------------------------------------------
# Sequencing errors
# ---------------------------------------------------------------------------


class InvalidInvocationError(PermissionsError):
    """A method was called in the wrong lifecycle phase or permit state."""

    kind = PermissionsErrorKind.INVALID_INVOCATION


class NotBuiltError(InvalidInvocationError):
    kind = PermissionsErrorKind.NOT_BUILT


class AlreadyBuiltError(InvalidInvocationError):
    kind = PermissionsErrorKind.ALREADY_BUILT


# ---------------------------------------------------------------------------
# Consolidation errors
# ---------------------------------------------------------------------------


class ConsolidationIntegrityError(PermissionsError):
    """Consolidated definitions compile to a different grant table."""

    kind = PermissionsErrorKind.CONSOLIDATION_INTEGRITY


class UnsupportedConsolidationError(PermissionsError):
    """Consolidation of ``own`` grants was requested without ``force``."""

    kind = PermissionsErrorKind.UNSUPPORTED_CONSOLIDATION
