#!/usr/bin/env python3
"""Example: Quickstart — aumos-permits

Minimal working example: define role grants for a resource, build the
engine and ask for permits.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install aumos-permits
"""
from __future__ import annotations

import asyncio
from typing import Any

import aumos_permits as ap

_CREATED_BY: dict[int, list[int]] = {1: [101, 102], 2: [201]}


async def is_creator(user: Any, resource_id: Any) -> bool:
    return resource_id in _CREATED_BY.get(user.id, [])


async def list_created(user: Any) -> list[int]:
    return list(_CREATED_BY.get(user.id, []))


async def main() -> None:
    print(f"aumos-permits version: {ap.__version__}")

    # Step 1: Define and build
    permissions = ap.Permissions(
        [
            {
                "roles": ["EMPLOYEE"],
                "descr": "Employees read and update the documents they created.",
                "grant": {"read:own": ["*", "!confidential"], "update:own": ["title", "body"]},
                "is_owner": is_creator,
                "list_owned": list_created,
            },
            {
                "roles": ["ADMIN"],
                "grant": {"*": ["*"], "delete:any": ["deleted_at"]},
            },
        ],
        defaults={"resource": "document"},
    ).build()
    print(f"Roles: {permissions.get_roles()}  Actions: {permissions.get_actions()}")

    # Step 2: Ask for permits
    employee = {"id": 1, "roles": ["EMPLOYEE"]}
    permit = await permissions.grant_permit(employee, "read", "document")
    print(f"\nEMPLOYEE read: granted={permit.granted} own={permit.own_granted}")
    print(f"  owned documents: {await permit.list_own()}")

    document = {"id": 101, "title": "Plan", "body": "...", "confidential": "salary"}
    print(f"  picked: {await permit.pick(document)}")

    foreign = await permissions.grant_permit(employee, "read", "document", 201)
    print(f"  document 201: granted={foreign.granted}")

    # Step 3: Admin rights come from the wildcard grant
    admin = {"id": 9, "roles": ["ADMIN"]}
    for action in ("read", "delete"):
        permit = await permissions.grant_permit(admin, action, "document")
        print(f"ADMIN {action}: granted={permit.granted} attributes={permit.any_attributes}")


if __name__ == "__main__":
    asyncio.run(main())
