"""Grant table: compiled role/resource/action/attribute grants and glob helpers."""
from __future__ import annotations

from aumos_permits.grants.attributes import allows, filter_fields, union
from aumos_permits.grants.table import CRUD_ACTIONS, GrantTable

__all__ = [
    "CRUD_ACTIONS",
    "GrantTable",
    "allows",
    "filter_fields",
    "union",
]
