#!/usr/bin/env python3
"""Example: Consolidating definitions

Shows how scattered definitions are merged into the fewest equivalent ones.

Usage:
    python examples/03_consolidation.py

Requirements:
    pip install aumos-permits
"""
from __future__ import annotations

from typing import Any

from aumos_permits import Permissions, UnsupportedConsolidationError


def is_author(user: Any, resource_id: Any) -> bool:
    return False


def list_authored(user: Any) -> list[Any]:
    return []


def main() -> None:
    permissions = Permissions(
        [
            {"roles": ["EDITOR"], "resource": "article", "grant": ["read:any"]},
            {"roles": ["EDITOR"], "resource": "article", "grant": ["update:any"]},
            {"roles": ["EDITOR"], "resource": "article", "grant": {"list:any": ["*"]}},
            {
                "roles": ["WRITER"],
                "resource": "article",
                "grant": ["read:own"],
                "is_owner": is_author,
                "list_owned": list_authored,
            },
        ]
    ).build()

    print("Stored definitions:")
    for definition in permissions.get_definitions({"roles": ["EDITOR"]}):
        print(f"  {definition['grant']}")

    print("\nConsolidated (filter fields omitted):")
    for definition in permissions.get_definitions(
        {"roles": ["EDITOR"], "resource": "article"}, consolidate=True
    ):
        print(f"  {definition}")

    try:
        permissions.get_definitions(consolidate=True)
    except UnsupportedConsolidationError as exc:
        print(f"\nOwn grants need consolidate='force': {exc}")


if __name__ == "__main__":
    main()
