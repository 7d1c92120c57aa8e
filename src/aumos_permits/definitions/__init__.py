"""Permission definitions: authoring models, normalization, validation and loading."""
from __future__ import annotations

from aumos_permits.definitions.models import (
    PermissionDefinition,
    PermissionDefinitionDefaults,
    PermissionDefinitionInternal,
)
from aumos_permits.definitions.normalizer import normalize
from aumos_permits.definitions.validator import validate_definition

__all__ = [
    "PermissionDefinition",
    "PermissionDefinitionDefaults",
    "PermissionDefinitionInternal",
    "normalize",
    "validate_definition",
]
