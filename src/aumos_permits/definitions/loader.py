"""YAML-based loader for permission definitions.

DefinitionsLoader reads a YAML (or already parsed) config and returns an
unbuilt :class:`~aumos_permits.permissions.Permissions` instance. Ownership
hooks are referenced by name: first looked up in the ``hooks`` registry
passed to the loader, then imported as ``"package.module:attribute"``.

Schema
------
::

    version: "1.0"
    defaults:
      resource: document
    definitions:
      - roles: [EMPLOYEE]
        descr: I can read and update documents I created.
        possession: own
        attributes: ["*", "!confidential"]
        grant: [read, update]
        is_owner: is_creator
        list_owned: myapp.ownership:list_created
      - roles: SUPER_ADMIN
        grant:
          "read:any": ["*"]
          "delete:any": ["deleted_at"]

Example
-------
::

    loader = DefinitionsLoader(hooks={"is_creator": is_creator})
    permissions = loader.load("/path/to/permissions.yaml").build()
"""
from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml

from aumos_permits.errors import PermissionsError
from aumos_permits.logger import get_logger
from aumos_permits.permissions import Permissions

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1.0", "1"])

HOOK_FIELDS: dict[str, str] = {
    "is_owner": "is_owner",
    "isOwner": "is_owner",
    "list_owned": "list_owned",
    "listOwned": "list_owned",
    "limit_owned": "limit_owned",
    "limitOwned": "limit_owned",
}


class PermissionConfigError(ValueError):
    """Raised when a permission definitions config is malformed or invalid.

    Attributes
    ----------
    config_path:
        The path to the config file that caused the error, if known.
    definition_index:
        Position of the offending entry in ``definitions``, when a single
        definition is at fault.
    """

    def __init__(
        self,
        message: str,
        config_path: str | None = None,
        definition_index: int | None = None,
    ) -> None:
        self.config_path = config_path
        self.definition_index = definition_index
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class DefinitionsLoader:
    """Loads permission definitions from YAML files, strings or dicts.

    Parameters
    ----------
    hooks:
        Registry of ownership hooks addressable by name from the config.
    strict:
        When ``True``, unknown top-level keys are an error. Default ``False``.
    limit_own_reduce:
        Passed through to the created :class:`Permissions`.
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(
        ["version", "defaults", "definitions", "metadata", "description"]
    )

    def __init__(
        self,
        hooks: Mapping[str, Callable[..., Any]] | None = None,
        strict: bool = False,
        limit_own_reduce: Callable[..., Any] | None = None,
    ) -> None:
        self._hooks: dict[str, Callable[..., Any]] = dict(hooks or {})
        self._strict = strict
        self._limit_own_reduce = limit_own_reduce

    def register_hook(self, name: str, hook: Callable[..., Any]) -> None:
        self._hooks[name] = hook

    def load(self, config_path: str | Path) -> Permissions:
        """Load definitions from a YAML file on disk.

        Raises
        ------
        PermissionConfigError
            If the file cannot be parsed or is structurally invalid.
        FileNotFoundError
            If the config file does not exist.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Permission definitions config not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw: dict[str, object] = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise PermissionConfigError(
                f"Failed to parse YAML: {exc}", str(config_path)
            ) from exc

        return self._build_permissions(raw, config_path=str(config_path))

    def load_from_dict(
        self,
        config: dict[str, object],
        config_path: str | None = None,
    ) -> Permissions:
        """Load definitions from an already parsed config dictionary."""
        return self._build_permissions(config, config_path=config_path)

    def load_from_yaml_string(
        self,
        yaml_string: str,
        config_path: str | None = None,
    ) -> Permissions:
        """Load definitions from a YAML string."""
        try:
            raw: dict[str, object] = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise PermissionConfigError(
                f"Failed to parse YAML string: {exc}", config_path
            ) from exc
        return self._build_permissions(raw, config_path=config_path)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_permissions(
        self,
        raw: dict[str, object],
        config_path: str | None = None,
    ) -> Permissions:
        self._validate_structure(raw, config_path)

        version = str(raw.get("version", "1.0"))
        if version not in _SUPPORTED_VERSIONS:
            raise PermissionConfigError(
                f"Unsupported config version {version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                config_path,
            )

        defaults = raw.get("defaults") or {}
        if not isinstance(defaults, dict):
            raise PermissionConfigError("'defaults' must be a mapping.", config_path)

        permissions = Permissions(limit_own_reduce=self._limit_own_reduce)
        raw_definitions: list[object] = list(raw["definitions"])  # type: ignore[call-overload]
        for index, raw_definition in enumerate(raw_definitions):
            if not isinstance(raw_definition, dict):
                raise PermissionConfigError(
                    f"Definition at index {index} must be a mapping.", config_path, index
                )
            try:
                definition = self._resolve_hooks(raw_definition)
                permissions.add_definition(definition, defaults)
            except (PermissionsError, LookupError, AttributeError, ImportError, TypeError) as exc:
                raise PermissionConfigError(
                    f"Error in definition at index {index}: {exc}", config_path, index
                ) from exc

        get_logger().debug(
            "Loaded %d permission definitions from %s",
            len(raw_definitions),
            config_path or "<dict>",
        )
        return permissions

    def _resolve_hooks(self, raw_definition: dict[str, Any]) -> dict[str, Any]:
        definition = dict(raw_definition)
        for key, field_name in HOOK_FIELDS.items():
            if key not in definition:
                continue
            reference = definition.pop(key)
            if reference is None:
                continue
            definition[field_name] = self._resolve_hook(reference)
        return definition

    def _resolve_hook(self, reference: object) -> Callable[..., Any]:
        if callable(reference):
            return reference
        if not isinstance(reference, str):
            raise TypeError(f"Hook reference must be a string, got {type(reference).__name__}")
        if reference in self._hooks:
            return self._hooks[reference]
        module_name, sep, attribute = reference.partition(":")
        if not sep or not module_name or not attribute:
            raise LookupError(
                f"Unknown hook {reference!r}: not registered and not a 'module:attribute' path"
            )
        module = importlib.import_module(module_name)
        target: Any = module
        for part in attribute.split("."):
            target = getattr(target, part)
        if not callable(target):
            raise TypeError(f"Hook {reference!r} is not callable")
        return target

    def _validate_structure(
        self,
        raw: dict[str, object],
        config_path: str | None,
    ) -> None:
        if not isinstance(raw, dict):
            raise PermissionConfigError(
                "Permission definitions config must be a YAML mapping (dict).", config_path
            )

        if "definitions" not in raw:
            raise PermissionConfigError(
                "Permission definitions config must contain a 'definitions' list.", config_path
            )

        if not isinstance(raw["definitions"], list):
            raise PermissionConfigError(
                "Permission definitions config 'definitions' must be a list.", config_path
            )

        if self._strict:
            unknown_keys = set(raw.keys()) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise PermissionConfigError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}. "
                    f"Known keys: {sorted(self._KNOWN_TOP_KEYS)}.",
                    config_path,
                )
