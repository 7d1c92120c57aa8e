"""Tests for the swappable engine logger."""
from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from aumos_permits.logger import (
    LOGGER_NAME,
    PermissionsLogger,
    get_logger,
    reset_logger,
    set_logger,
)
from aumos_permits.permissions import Permissions


class TestDefaultLogger:
    def test_default_is_stdlib_logger(self) -> None:
        logger = get_logger()
        assert isinstance(logger, logging.Logger)
        assert logger.name == LOGGER_NAME

    def test_stdlib_logger_satisfies_protocol(self) -> None:
        assert isinstance(logging.getLogger("anything"), PermissionsLogger)


class TestSetLogger:
    def test_custom_logger_receives_events(self) -> None:
        custom = MagicMock(spec=["debug", "warning", "error"])
        assert set_logger(custom) is custom
        assert get_logger() is custom

        Permissions(
            [
                {"roles": ["A"], "resource": "doc", "grant": {"read:any": ["*"]}},
                {"roles": ["A"], "resource": "doc", "grant": {"read:any": ["*"]}},
            ]
        ).build()

        custom.warning.assert_called_once()
        assert custom.debug.called

    def test_none_silences_everything(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG)
        silent = set_logger(None)
        assert isinstance(silent, logging.Logger)
        assert silent.disabled

        Permissions(
            [
                {"roles": ["A"], "resource": "doc", "grant": {"read:any": ["*"]}},
                {"roles": ["A"], "resource": "doc", "grant": {"read:any": ["*"]}},
            ]
        ).build()

        assert not [r for r in caplog.records if r.name.startswith(LOGGER_NAME)]

    def test_reset_restores_default(self) -> None:
        set_logger(None)
        restored = reset_logger()
        assert restored is logging.getLogger(LOGGER_NAME)
        assert get_logger() is restored
