"""Tests for DefinitionsLoader."""
from __future__ import annotations

import os.path
import pathlib
from typing import Any

import pytest

from aumos_permits.definitions.loader import DefinitionsLoader, PermissionConfigError
from aumos_permits.errors import ConflictingGrantError, MissingFieldError
from aumos_permits.permissions import Permissions

_YAML = """
version: "1.0"
defaults:
  resource: document
definitions:
  - roles: [EMPLOYEE]
    descr: I can read and update documents I created.
    possession: own
    attributes: ["*", "!confidential"]
    grant: [read, update, "list:any"]
    is_owner: is_creator
    list_owned: list_created
  - roles: SUPER_ADMIN
    grant:
      "read:any": ["*"]
      "delete:any": ["deleted_at"]
  - roles: [EMPLOYEE]
    resource: comment
    grant: ["like"]
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def loader(hooks: Any) -> DefinitionsLoader:
    return DefinitionsLoader(hooks={"is_creator": hooks.is_creator, "list_created": hooks.list_created})


@pytest.fixture()
def strict_loader() -> DefinitionsLoader:
    return DefinitionsLoader(strict=True)


@pytest.fixture()
def config_file(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "permissions.yaml"
    path.write_text(_YAML, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# load_from_yaml_string / load
# ---------------------------------------------------------------------------


class TestLoadFromYaml:
    def test_returns_unbuilt_permissions(self, loader: DefinitionsLoader) -> None:
        permissions = loader.load_from_yaml_string(_YAML)
        assert isinstance(permissions, Permissions)
        assert not permissions.is_built

    def test_defaults_and_grants_applied(self, loader: DefinitionsLoader) -> None:
        permissions = loader.load_from_yaml_string(_YAML).build()
        assert permissions.get_resources() == ["comment", "document"]
        grants = permissions.get_grants()
        assert grants["EMPLOYEE"]["document"] == {
            "read:own": ["*", "!confidential"],
            "update:own": ["*", "!confidential"],
            "list:any": ["*", "!confidential"],
        }
        assert grants["SUPER_ADMIN"]["document"]["delete:any"] == ["deleted_at"]
        assert grants["EMPLOYEE"]["comment"] == {"like:any": ["*"]}

    def test_hooks_resolved_from_registry(self, loader: DefinitionsLoader, hooks: Any) -> None:
        definitions = loader.load_from_yaml_string(_YAML).get_definitions({"resource": "document"})
        assert definitions[0]["is_owner"] is hooks.is_creator
        assert definitions[0]["list_owned"] is hooks.list_created

    @pytest.mark.asyncio
    async def test_loaded_permissions_grant_permits(self, loader: DefinitionsLoader) -> None:
        permissions = loader.load_from_yaml_string(_YAML).build()
        permit = await permissions.grant_permit({"id": 1, "roles": ["EMPLOYEE"]}, "read", "document")
        assert permit.own_granted
        assert await permit.list_own() == [1, 10, 100]

    def test_load_from_file(self, loader: DefinitionsLoader, config_file: pathlib.Path) -> None:
        permissions = loader.load(config_file).build()
        assert permissions.get_roles() == ["EMPLOYEE", "SUPER_ADMIN"]

    def test_load_accepts_string_path(self, loader: DefinitionsLoader, config_file: pathlib.Path) -> None:
        assert loader.load(str(config_file)).build().is_built

    def test_missing_file_raises(self, loader: DefinitionsLoader, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            loader.load(tmp_path / "missing.yaml")

    def test_invalid_yaml_raises(self, loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError, match="Failed to parse YAML"):
            loader.load_from_yaml_string("definitions: [unclosed")

    def test_invalid_yaml_file_carries_path(
        self, loader: DefinitionsLoader, tmp_path: pathlib.Path
    ) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("definitions: [unclosed", encoding="utf-8")
        with pytest.raises(PermissionConfigError) as exc_info:
            loader.load(path)
        assert exc_info.value.config_path == str(path)
        assert str(path) in str(exc_info.value)


# ---------------------------------------------------------------------------
# Structure validation
# ---------------------------------------------------------------------------


class TestStructure:
    def test_missing_definitions(self, loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError, match="must contain a 'definitions' list"):
            loader.load_from_dict({"version": "1.0"})

    def test_definitions_not_a_list(self, loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError, match="must be a list"):
            loader.load_from_dict({"definitions": {"roles": ["A"]}})

    def test_definition_not_a_mapping(self, loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError, match="index 0 must be a mapping") as exc_info:
            loader.load_from_dict({"definitions": ["read"]})
        assert exc_info.value.definition_index == 0

    def test_structure_errors_have_no_definition_index(self, loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError) as exc_info:
            loader.load_from_dict({"version": "1.0"})
        assert exc_info.value.definition_index is None

    def test_unsupported_version(self, loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError, match="Unsupported config version"):
            loader.load_from_dict({"version": "2.0", "definitions": []})

    def test_defaults_must_be_mapping(self, loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError, match="'defaults' must be a mapping"):
            loader.load_from_dict({"defaults": ["document"], "definitions": []})

    def test_empty_yaml_has_no_definitions(self, loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError, match="'definitions'"):
            loader.load_from_yaml_string("")

    def test_unknown_keys_allowed_by_default(self, loader: DefinitionsLoader) -> None:
        loader.load_from_dict({"definitions": [], "owner": "platform-team"})

    def test_unknown_keys_rejected_in_strict_mode(self, strict_loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError, match="Unknown top-level keys"):
            strict_loader.load_from_dict({"definitions": [], "owner": "platform-team"})

    def test_metadata_allowed_in_strict_mode(self, strict_loader: DefinitionsLoader) -> None:
        strict_loader.load_from_dict(
            {"version": "1", "description": "x", "metadata": {"team": "a"}, "definitions": []}
        )


# ---------------------------------------------------------------------------
# Definition errors and hook references
# ---------------------------------------------------------------------------


class TestDefinitionErrors:
    def test_engine_error_is_wrapped_and_chained(self, loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError, match="Error in definition at index 1") as exc_info:
            loader.load_from_dict(
                {
                    "definitions": [
                        {"roles": ["A"], "resource": "doc", "grant": {"read": ["*"]}},
                        {"roles": ["A"], "resource": "doc", "grant": {"read": ["title"]}},
                    ]
                }
            )
        assert isinstance(exc_info.value.__cause__, ConflictingGrantError)
        assert exc_info.value.definition_index == 1

    def test_missing_field(self, loader: DefinitionsLoader) -> None:
        with pytest.raises(PermissionConfigError) as exc_info:
            loader.load_from_dict({"definitions": [{"roles": ["A"], "grant": ["read"]}]})
        assert isinstance(exc_info.value.__cause__, MissingFieldError)

    def test_unknown_hook_name(self) -> None:
        with pytest.raises(PermissionConfigError, match="Unknown hook 'is_creator'"):
            DefinitionsLoader().load_from_dict(
                {
                    "definitions": [
                        {"roles": ["A"], "resource": "doc", "grant": ["read:own"],
                         "is_owner": "is_creator", "list_owned": "list_created"}
                    ]
                }
            )

    def test_hook_import_path(self) -> None:
        permissions = DefinitionsLoader().load_from_dict(
            {
                "definitions": [
                    {"roles": ["A"], "resource": "doc", "grant": ["read:own"],
                     "isOwner": "os.path:isfile", "listOwned": "os:path.isdir"}
                ]
            }
        )
        (definition,) = permissions.get_definitions()
        assert definition["is_owner"] is os.path.isfile
        assert definition["list_owned"] is os.path.isdir

    def test_missing_module(self) -> None:
        with pytest.raises(PermissionConfigError, match="index 0"):
            DefinitionsLoader().load_from_dict(
                {
                    "definitions": [
                        {"roles": ["A"], "resource": "doc", "grant": ["read:own"],
                         "is_owner": "no_such_module_xyz:hook", "list_owned": "os.path:isdir"}
                    ]
                }
            )

    def test_non_callable_target(self) -> None:
        with pytest.raises(PermissionConfigError, match="not callable"):
            DefinitionsLoader().load_from_dict(
                {
                    "definitions": [
                        {"roles": ["A"], "resource": "doc", "grant": ["read:own"],
                         "is_owner": "os:sep", "list_owned": "os.path:isdir"}
                    ]
                }
            )

    def test_register_hook(self, hooks: Any) -> None:
        loader = DefinitionsLoader()
        loader.register_hook("mine", hooks.is_creator)
        loader.register_hook("listing", hooks.list_created)
        permissions = loader.load_from_dict(
            {
                "definitions": [
                    {"roles": ["A"], "resource": "doc", "grant": ["read:own"],
                     "is_owner": "mine", "list_owned": "listing"}
                ]
            }
        )
        assert permissions.get_definitions()[0]["is_owner"] is hooks.is_creator

    def test_limit_own_reduce_passed_through(self, hooks: Any) -> None:
        def reducer(**kwargs: Any) -> str:
            return "reduced"

        permissions = DefinitionsLoader(limit_own_reduce=reducer).load_from_dict(
            {"definitions": []}
        )
        assert permissions._limit_own_reduce is reducer
