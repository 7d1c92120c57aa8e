"""aumos-permits — Role, resource and ownership based permissions.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import aumos_permits as ap
>>> ap.__version__
'0.1.0'
>>> permissions = ap.Permissions(
...     [{"roles": "ADMIN", "resource": "document", "grant": {"read:any": ["*"]}}]
... ).build()
>>> permissions.get_resources()
['document']
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
from aumos_permits.permissions import Permissions
from aumos_permits.permit import Permit

# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------
from aumos_permits.definitions.models import (
    PermissionDefinition,
    PermissionDefinitionDefaults,
    PermissionDefinitionInternal,
)
from aumos_permits.definitions.normalizer import normalize
from aumos_permits.definitions.loader import DefinitionsLoader, PermissionConfigError

# ---------------------------------------------------------------------------
# Grant table
# ---------------------------------------------------------------------------
from aumos_permits.grants.table import GrantTable

# ---------------------------------------------------------------------------
# Types, logging and errors
# ---------------------------------------------------------------------------
from aumos_permits.types import GrantResult, Possession, User, is_valid_user
from aumos_permits.logger import PermissionsLogger, get_logger, set_logger
from aumos_permits.utils import GrantDifference
from aumos_permits.errors import (
    AlreadyBuiltError,
    ConflictingGrantError,
    ConsolidationIntegrityError,
    InvalidInvocationError,
    InvalidPermissionDefinitionError,
    InvalidUserError,
    MalformedActionError,
    MissingFieldError,
    MissingOwnershipHookError,
    MixedOwnershipStrategyError,
    NotBuiltError,
    PermissionQueryError,
    PermissionsError,
    PermissionsErrorKind,
    UnknownResourceError,
    UnsupportedConsolidationError,
)

__all__ = [
    "__version__",
    # Engine
    "Permissions",
    "Permit",
    # Definitions
    "DefinitionsLoader",
    "PermissionConfigError",
    "PermissionDefinition",
    "PermissionDefinitionDefaults",
    "PermissionDefinitionInternal",
    "normalize",
    # Grant table
    "GrantTable",
    "GrantDifference",
    # Types
    "GrantResult",
    "Possession",
    "User",
    "is_valid_user",
    # Logging
    "PermissionsLogger",
    "get_logger",
    "set_logger",
    # Errors
    "AlreadyBuiltError",
    "ConflictingGrantError",
    "ConsolidationIntegrityError",
    "InvalidInvocationError",
    "InvalidPermissionDefinitionError",
    "InvalidUserError",
    "MalformedActionError",
    "MissingFieldError",
    "MissingOwnershipHookError",
    "MixedOwnershipStrategyError",
    "NotBuiltError",
    "PermissionQueryError",
    "PermissionsError",
    "PermissionsErrorKind",
    "UnknownResourceError",
    "UnsupportedConsolidationError",
]
