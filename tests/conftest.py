"""Shared fixtures: a tiny document "database" with ownership hooks.

Users own the documents they created; managers also own documents created
by the users they manage; company admins own every document created inside
their company.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from types import SimpleNamespace
from typing import Any

import pytest

from aumos_permits.logger import reset_logger
from aumos_permits.permissions import Permissions

USERS: dict[str, dict[str, Any]] = {
    "employee1": {"id": 1, "roles": ["EMPLOYEE"]},
    "employee_manager2": {"id": 2, "roles": ["EMPLOYEE_MANAGER"]},
    "qa_manager3": {"id": 3, "roles": ["QA_MANAGER"]},
    "company_admin4": {"id": 4, "roles": ["COMPANY_ADMIN"]},
    "super_admin5": {"id": 5, "roles": ["SUPER_ADMIN"]},
    "god6": {"id": 6, "roles": ["GOD"]},
    "manager_and_company_admin7": {"id": 7, "roles": ["EMPLOYEE_MANAGER", "COMPANY_ADMIN"]},
    "employee_and_super_admin8": {"id": 8, "roles": ["EMPLOYEE", "SUPER_ADMIN"]},
}

USER_CREATED_DOCUMENTS: dict[int, list[int]] = {n: [n, 10 * n, 100 * n] for n in range(1, 9)}

USER_MANAGES_USERS: dict[int, list[int]] = {2: [1, 4], 3: [2, 5], 7: [5, 6]}

USER_COMPANY: dict[int, int] = {1: 1, 2: 1, 3: 1, 4: 2, 5: 2, 6: 2, 7: 1}


# ---------------------------------------------------------------------------
# Ownership data
# ---------------------------------------------------------------------------


def created_by(user: Any) -> list[int]:
    return list(USER_CREATED_DOCUMENTS.get(user.id, []))


def created_by_me_and_managed(user: Any) -> list[int]:
    ids = created_by(user)
    for managed_id in USER_MANAGES_USERS.get(user.id, []):
        ids.extend(USER_CREATED_DOCUMENTS[managed_id])
    return ids


def created_in_my_company(user: Any) -> list[int]:
    company_id = USER_COMPANY.get(user.id)
    ids: list[int] = []
    for user_id, user_company in USER_COMPANY.items():
        if user_company == company_id:
            ids.extend(USER_CREATED_DOCUMENTS[user_id])
    return ids


# ---------------------------------------------------------------------------
# Ownership hooks
# ---------------------------------------------------------------------------


async def is_creator(user: Any, resource_id: Any) -> bool:
    return resource_id in created_by(user)


async def list_created(user: Any) -> list[int]:
    return created_by(user)


def limit_created(user: Any, context: Any) -> list[Any]:
    return [*(context or []), lambda doc: doc["id"] in created_by(user)]


async def is_mine_or_managed(user: Any, resource_id: Any) -> bool:
    return resource_id in created_by_me_and_managed(user)


async def list_mine_or_managed(user: Any) -> list[int]:
    return created_by_me_and_managed(user)


def limit_mine_or_managed(user: Any, context: Any) -> list[Any]:
    return [*(context or []), lambda doc: doc["id"] in created_by_me_and_managed(user)]


async def is_in_my_company(user: Any, resource_id: Any) -> bool:
    return resource_id in created_in_my_company(user)


async def list_in_my_company(user: Any) -> list[int]:
    return created_in_my_company(user)


def limit_in_my_company(user: Any, context: Any) -> list[Any]:
    return [*(context or []), lambda doc: doc["id"] in created_in_my_company(user)]


HOOKS = SimpleNamespace(
    is_creator=is_creator,
    list_created=list_created,
    limit_created=limit_created,
    is_mine_or_managed=is_mine_or_managed,
    list_mine_or_managed=list_mine_or_managed,
    limit_mine_or_managed=limit_mine_or_managed,
    is_in_my_company=is_in_my_company,
    list_in_my_company=list_in_my_company,
    limit_in_my_company=limit_in_my_company,
)


def _document_definitions(strategy: str) -> list[dict[str, Any]]:
    def owned(list_hook: Any, limit_hook: Any) -> dict[str, Any]:
        return {"list_owned": list_hook} if strategy == "list" else {"limit_owned": limit_hook}

    return [
        {
            "roles": ["EMPLOYEE"],
            "resource": "document",
            "descr": "I can CRUD only documents I created, except price and confidential.",
            "is_owner": is_creator,
            **owned(list_created, limit_created),
            "possession": "own",
            "grant": {
                "create": ["*", "!price", "!confidential"],
                "read": ["*", "!price", "!confidential"],
                "update": ["*", "!price", "!confidential"],
                "delete": ["*"],
                "list": ["*"],
                "publish": ["title", "content", "create_date"],
                "share": ["title", "content", "publish_date"],
                "list:any": ["title", "create_date"],
                "browse:any": ["title", "content"],
            },
        },
        {
            "roles": ["EMPLOYEE_MANAGER", "QA_MANAGER"],
            "descr": "I can CRUD documents created by me or by users I manage.",
            "is_owner": is_mine_or_managed,
            **owned(list_mine_or_managed, limit_mine_or_managed),
            "attributes": ["*", "!price"],
            "possession": "own",
            "grant": ["create", "read", "update", "delete"],
        },
        {
            "roles": "COMPANY_ADMIN",
            "descr": "I can CRUD documents created inside my company.",
            "is_owner": is_in_my_company,
            **owned(list_in_my_company, limit_in_my_company),
            "grant": {
                "create:own": ["*"],
                "read:own": ["*"],
                "update:own": ["*"],
                "delete:own": ["*"],
            },
        },
        {
            "roles": "SUPER_ADMIN",
            "descr": "I can CRUD any document; delete only touches deleted_at.",
            "is_owner": is_creator,
            **owned(list_created, limit_created),
            "grant": {
                "create:any": ["*"],
                "read:any": ["*"],
                "update:any": ["*"],
                "delete:any": ["deleted_at"],
                "list:any": ["*", "!confidential"],
                "browse:any": ["title", "content", "views", "likes"],
                "share:own": ["title", "content", "publish_date", "create_date", "revision"],
            },
        },
        {
            "roles": "SUPER_ADMIN",
            "resource": "comment",
            "descr": "I can do anything with comments, except create them.",
            "grant": {
                "read:any": ["*"],
                "update:any": ["*"],
                "delete:any": ["*"],
                "list:any": ["*"],
                "like:any": ["*"],
            },
        },
        {
            "roles": "GOD",
            "resource": "*",
            "descr": "I can do any action on any resource.",
            "grant": {"*:any": ["*"]},
        },
        {
            "roles": "*",
            "resource": "security_hole",
            "descr": "Every role can preview any security hole.",
            "grant": {"preview:any": ["*"]},
        },
    ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _default_logger() -> Iterator[None]:
    reset_logger()
    yield
    reset_logger()


@pytest.fixture()
def caplog_permits(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(logging.DEBUG, logger="aumos_permits")
    return caplog


@pytest.fixture()
def users() -> dict[str, dict[str, Any]]:
    return {name: dict(user) for name, user in USERS.items()}


@pytest.fixture()
def hooks() -> SimpleNamespace:
    return HOOKS


@pytest.fixture()
def document_definitions() -> list[dict[str, Any]]:
    return _document_definitions("list")


@pytest.fixture()
def document_definitions_limit_owned() -> list[dict[str, Any]]:
    return _document_definitions("limit")


@pytest.fixture()
def permissions(document_definitions: list[dict[str, Any]]) -> Permissions:
    return Permissions(document_definitions, defaults={"resource": "document"}).build()


@pytest.fixture()
def permissions_limit_owned(
    document_definitions_limit_owned: list[dict[str, Any]],
) -> Permissions:
    return Permissions(
        document_definitions_limit_owned, defaults={"resource": "document"}
    ).build()


@pytest.fixture()
def documents() -> list[dict[str, Any]]:
    return [
        {
            "id": doc_id,
            "title": f"Document Title {doc_id}",
            "date": "2020-02-01",
            "price": doc_id * 10,
            "confidential": f"Confidential {doc_id}",
        }
        for ids in USER_CREATED_DOCUMENTS.values()
        for doc_id in ids
    ]
