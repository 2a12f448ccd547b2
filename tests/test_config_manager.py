"""
Tests for ConfigManager - JSON loading, typed reads and change notification.
"""

import json

from infrastructure.config.config_manager import ConfigManager
from infrastructure.config.settings import (
    CONFIG_INDENT_CHAR,
    CONFIG_INDENT_LEVEL,
    CONFIG_NO_BYTE_ORDER_MARK,
    DEFAULT_CONFIG,
)


def test_missing_file_uses_defaults(tmp_path):
    manager = ConfigManager(tmp_path / "config.json")
    assert manager.load_config() is True
    assert manager.get_all() == DEFAULT_CONFIG
    assert manager.is_loaded


def test_partial_file_merged_with_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({CONFIG_NO_BYTE_ORDER_MARK: True}), encoding="utf-8")

    manager = ConfigManager(path)
    manager.load_config()

    assert manager.get_bool(CONFIG_NO_BYTE_ORDER_MARK) is True
    assert manager.get(CONFIG_INDENT_LEVEL) == DEFAULT_CONFIG[CONFIG_INDENT_LEVEL]


def test_corrupt_file_falls_back(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")

    manager = ConfigManager(path)

    assert manager.load_config() is False
    assert manager.get_all() == DEFAULT_CONFIG


def test_get_bool_accepts_strings(tmp_path):
    manager = ConfigManager(tmp_path / "config.json")
    manager.set(CONFIG_NO_BYTE_ORDER_MARK, "true")
    assert manager.get_bool(CONFIG_NO_BYTE_ORDER_MARK) is True
    manager.set(CONFIG_NO_BYTE_ORDER_MARK, "False")
    assert manager.get_bool(CONFIG_NO_BYTE_ORDER_MARK) is False
    assert manager.get_bool("unknown", True) is True


def test_save_and_reload(tmp_path):
    path = tmp_path / "nested" / "config.json"
    manager = ConfigManager(path)
    manager.set(CONFIG_INDENT_LEVEL, 4, save=True)

    reloaded = ConfigManager(path)
    reloaded.load_config()

    assert reloaded.get(CONFIG_INDENT_LEVEL) == 4


def test_change_notification(tmp_path):
    manager = ConfigManager(tmp_path / "config.json")
    calls = []

    def handler(key, old, new):
        calls.append((key, old, new))

    manager.subscribe_change(CONFIG_INDENT_LEVEL, handler)
    manager.set(CONFIG_INDENT_LEVEL, 8)
    manager.set(CONFIG_INDENT_LEVEL, 8)
    manager.unsubscribe_change(CONFIG_INDENT_LEVEL, handler)
    manager.set(CONFIG_INDENT_LEVEL, 3)

    assert calls == [(CONFIG_INDENT_LEVEL, DEFAULT_CONFIG[CONFIG_INDENT_LEVEL], 8)]


def test_failing_handler_does_not_block_others(tmp_path):
    manager = ConfigManager(tmp_path / "config.json")
    calls = []

    def broken(key, old, new):
        raise RuntimeError("boom")

    manager.subscribe_change(CONFIG_INDENT_LEVEL, broken)
    manager.subscribe_change(CONFIG_INDENT_LEVEL, lambda *args: calls.append(args))
    manager.set(CONFIG_INDENT_LEVEL, 5)

    assert len(calls) == 1


def test_validate_config(tmp_path):
    manager = ConfigManager(tmp_path / "config.json")
    assert manager.validate_config() == (True, [])

    manager.set(CONFIG_INDENT_LEVEL, -1)
    manager.set(CONFIG_INDENT_CHAR, "dot")
    manager.set(CONFIG_NO_BYTE_ORDER_MARK, "yes")

    is_valid, errors = manager.validate_config()
    assert is_valid is False
    assert len(errors) == 3


def test_reset_to_defaults(tmp_path):
    manager = ConfigManager(tmp_path / "config.json")
    manager.set(CONFIG_INDENT_LEVEL, 9)
    manager.reset_to_defaults()
    assert manager.get_all() == DEFAULT_CONFIG


def test_resolver_shared_and_replaceable(tmp_path):
    manager = ConfigManager(tmp_path / "config.json")
    assert manager.resolver is manager.resolver

    replacement = object()
    manager.resolver = replacement
    assert manager.resolver is replacement
