#!/usr/bin/env python3
"""Example: Loading definitions from YAML

Demonstrates DefinitionsLoader: defaults, shorthand grants and ownership
hooks referenced by name.

Usage:
    python examples/02_yaml_definitions.py

Requirements:
    pip install aumos-permits
"""
from __future__ import annotations

import asyncio
from typing import Any

from aumos_permits import DefinitionsLoader, PermissionConfigError

_CONFIG = """
version: "1.0"
defaults:
  resource: document
definitions:
  - roles: [EMPLOYEE]
    possession: own
    attributes: ["*", "!confidential"]
    grant: [read, update]
    is_owner: is_creator
    list_owned: list_created
  - roles: [AUDITOR]
    grant: ["read:any", "list:any"]
"""


async def is_creator(user: Any, resource_id: Any) -> bool:
    return resource_id == user.id * 100


async def list_created(user: Any) -> list[int]:
    return [user.id * 100]


async def main() -> None:
    loader = DefinitionsLoader(hooks={"is_creator": is_creator, "list_created": list_created})

    # Step 1: Load and build
    permissions = loader.load_from_yaml_string(_CONFIG).build()
    for role, resources in permissions.get_grants().items():
        for resource, grants in resources.items():
            print(f"{role} / {resource}: {grants}")

    # Step 2: Query
    permit = await permissions.grant_permit({"id": 3, "roles": ["EMPLOYEE"]}, "update", "document")
    print(f"\nEMPLOYEE update: own={permit.own_granted} owned={await permit.list_own()}")

    # Step 3: Config errors carry the failing definition
    try:
        loader.load_from_dict({"definitions": [{"roles": ["X"], "grant": ["read"]}]})
    except PermissionConfigError as exc:
        print(f"\nRejected config: {exc}")


if __name__ == "__main__":
    asyncio.run(main())
