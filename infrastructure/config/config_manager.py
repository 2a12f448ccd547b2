"""
配置统一访问管理器

职责：提供配置的统一访问接口，管理配置的读写、校验、变更通知，
并持有读写文档时共享的资源解析器

使用方式：
    config_manager = ConfigManager()
    config_manager.load_config()

    # 读取配置
    no_bom = config_manager.get_bool("no_byte_order_mark")

    # 写入配置（自动触发变更通知）
    config_manager.set("indent_level", 4)

    # 共享资源解析器
    with config_manager.resolver.open_read("/path/to/file.xml") as stream:
        ...
"""

import json
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Union

from infrastructure.utils.logger import get_logger

from .settings import (
    BOOLEAN_FIELDS,
    CONFIG_INDENT_CHAR,
    CONFIG_INDENT_LEVEL,
    DEFAULT_CONFIG,
    GLOBAL_CONFIG_FILE,
    INDENT_CHAR_SPACE,
    INDENT_CHAR_TAB,
)


class ConfigManager:
    """
    配置统一访问管理器

    提供配置的统一读写接口，禁止其他模块直接解析 config.json
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """
        初始化配置管理器

        Args:
            config_file: 配置文件路径，默认使用 GLOBAL_CONFIG_FILE
        """
        self._config: Dict[str, Any] = DEFAULT_CONFIG.copy()
        self._config_file = Path(config_file) if config_file else GLOBAL_CONFIG_FILE
        self._lock = Lock()
        self._change_handlers: Dict[str, List[Callable]] = {}
        self._loaded = False

        # 延迟创建的资源解析器
        self._resolver = None
        self._logger = None

    @property
    def logger(self):
        """延迟获取 Logger"""
        if self._logger is None:
            self._logger = get_logger("config_manager")
        return self._logger

    @property
    def config_file(self) -> Path:
        """配置文件路径"""
        return self._config_file

    @property
    def is_loaded(self) -> bool:
        """配置是否已从文件加载"""
        return self._loaded

    @property
    def resolver(self):
        """
        共享资源解析器（延迟创建）

        文档读取、DTD/XInclude 解析和文件写入都通过同一个解析器完成
        """
        if self._resolver is None:
            from infrastructure.persistence.xml_resolver import XmlResolver
            self._resolver = XmlResolver()
        return self._resolver

    @resolver.setter
    def resolver(self, value) -> None:
        self._resolver = value

    # ============================================================
    # 核心功能
    # ============================================================

    def load_config(self) -> bool:
        """
        加载配置文件

        缺失字段使用 settings.py 默认值

        Returns:
            bool: 加载是否成功
        """
        with self._lock:
            try:
                if self._config_file.exists():
                    with open(self._config_file, "r", encoding="utf-8") as f:
                        loaded_config = json.load(f)

                    # 合并默认配置（缺失字段使用默认值）
                    self._config = {**DEFAULT_CONFIG, **loaded_config}
                else:
                    self._config = DEFAULT_CONFIG.copy()

                self._loaded = True
                self.logger.info(f"Config loaded: {self._config_file}")
                return True

            except (json.JSONDecodeError, OSError) as e:
                self.logger.error(f"Failed to load config {self._config_file}: {e}")
                self._config = DEFAULT_CONFIG.copy()
                self._loaded = True
                return False

    def save_config(self) -> bool:
        """
        保存配置到文件

        Returns:
            bool: 保存是否成功
        """
        with self._lock:
            return self._save_config_internal()

    def _save_config_internal(self) -> bool:
        """内部保存方法（不加锁）"""
        try:
            self._config_file.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_file, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)

            self.logger.info(f"Config saved: {self._config_file}")
            return True

        except OSError as e:
            self.logger.error(f"Failed to save config {self._config_file}: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        统一配置读取接口

        Args:
            key: 配置键名
            default: 默认值（如果配置中没有该键）

        Returns:
            配置值
        """
        with self._lock:
            return self._config.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        """
        读取布尔配置

        兼容 JSON 中以字符串保存的 "true"/"false"

        Args:
            key: 配置键名
            default: 缺失时的默认值

        Returns:
            bool: 配置值
        """
        value = self.get(key, default)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    def set(self, key: str, value: Any, save: bool = False) -> None:
        """
        统一配置写入接口

        自动触发变更通知

        Args:
            key: 配置键名
            value: 配置值
            save: 是否立即保存到文件
        """
        with self._lock:
            old_value = self._config.get(key)
            self._config[key] = value

            if save:
                self._save_config_internal()

        # 触发变更通知（锁外执行，避免死锁）
        if old_value != value:
            self._notify_change(key, old_value, value)

    def get_all(self) -> Dict[str, Any]:
        """
        获取所有配置

        Returns:
            配置字典副本
        """
        with self._lock:
            return self._config.copy()

    def reset_to_defaults(self) -> None:
        """恢复默认配置（逐项触发变更通知）"""
        for key, value in DEFAULT_CONFIG.items():
            self.set(key, value)

    # ============================================================
    # 配置校验
    # ============================================================

    def validate_config(self) -> tuple[bool, List[str]]:
        """
        校验配置有效性

        Returns:
            (是否有效, 错误信息列表)
        """
        errors = []

        with self._lock:
            for field in BOOLEAN_FIELDS:
                value = self._config.get(field)
                if not isinstance(value, bool):
                    errors.append(f"{field} must be a boolean, got: {value!r}")

            indent_level = self._config.get(CONFIG_INDENT_LEVEL)
            if not isinstance(indent_level, int) or indent_level < 0:
                errors.append(f"{CONFIG_INDENT_LEVEL} must be a non-negative int, got: {indent_level!r}")

            indent_char = self._config.get(CONFIG_INDENT_CHAR)
            if indent_char not in (INDENT_CHAR_SPACE, INDENT_CHAR_TAB):
                errors.append(f"{CONFIG_INDENT_CHAR} must be 'space' or 'tab', got: {indent_char!r}")

        return len(errors) == 0, errors

    # ============================================================
    # 变更通知机制
    # ============================================================

    def subscribe_change(self, key: str, handler: Callable[[str, Any, Any], None]) -> None:
        """
        订阅特定配置项变更

        Args:
            key: 配置键名
            handler: 回调函数，签名为 handler(key, old_value, new_value)
        """
        with self._lock:
            if key not in self._change_handlers:
                self._change_handlers[key] = []
            self._change_handlers[key].append(handler)

    def unsubscribe_change(self, key: str, handler: Callable) -> None:
        """
        取消订阅配置项变更

        Args:
            key: 配置键名
            handler: 要移除的回调函数
        """
        with self._lock:
            if key in self._change_handlers:
                try:
                    self._change_handlers[key].remove(handler)
                except ValueError:
                    pass

    def _notify_change(self, key: str, old_value: Any, new_value: Any) -> None:
        """
        通知配置变更

        单个回调异常不影响其他订阅者
        """
        with self._lock:
            handlers = list(self._change_handlers.get(key, []))

        for handler in handlers:
            try:
                handler(key, old_value, new_value)
            except Exception as e:
                self.logger.error(f"Config change handler failed for '{key}': {e}")


__all__ = [
    "ConfigManager",
]
