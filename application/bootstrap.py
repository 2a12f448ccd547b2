# XML Live Cache - Application Bootstrap
"""
应用启动引导器，负责命令行模式的初始化编排

职责：
- 集中管理所有初始化逻辑
- 协调各组件的启动顺序
- 处理初始化失败

初始化顺序（严格按此顺序执行）：
- Phase 0: 基础设施初始化
  - 0.0 全局配置目录初始化
  - 0.1 Logger 初始化
- Phase 1: 核心管理器初始化
  - 1.1 ConfigManager 初始化
- Phase 2: 文档缓存初始化
  - 2.1 创建 QCoreApplication 实例
  - 2.2 创建 XmlCache 并加载文档
- 进入事件循环：文件被外部修改后自动重新加载，所有模型变更写入日志
- 应用关闭时：释放 XmlCache（取消延迟动作、停止监听）
"""

import argparse
import signal
import sys
import time
from typing import List, Optional


# ============================================================
# 模块级变量（用于跨函数访问）
# ============================================================
_logger = None  # 日志器实例，Phase 0.1 后可用
_config_manager = None  # 配置管理器，Phase 1.1 后可用


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="xml-live-cache",
        description="Open an XML file, keep it in sync with disk and log every model change.",
    )
    parser.add_argument("file", help="XML file to open")
    parser.add_argument(
        "--config",
        default=None,
        help="configuration file (default: ~/.xml_cache/config.json)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="print debug messages on the console",
    )
    return parser.parse_args(argv)


def _init_phase_0(verbose: bool) -> bool:
    """
    Phase 0: 基础设施初始化

    0.0 全局配置目录初始化
    0.1 Logger 初始化（最先，其他模块都需要日志）

    Returns:
        bool: 初始化是否成功
    """
    global _logger

    import logging

    from infrastructure.config.settings import GLOBAL_CONFIG_DIR, GLOBAL_LOG_DIR
    from infrastructure.utils.logger import get_logger, setup_logger

    try:
        GLOBAL_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        GLOBAL_LOG_DIR.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"[Phase 0.0] 全局配置目录创建失败: {e}")
        return False

    setup_logger(console_level=logging.DEBUG if verbose else logging.INFO)
    _logger = get_logger("bootstrap")
    _logger.info("Phase 0 完成")
    return True


def _init_phase_1(config_file: Optional[str]) -> bool:
    """
    Phase 1: 核心管理器初始化

    1.1 ConfigManager 初始化（配置文件缺失时使用默认值）

    Returns:
        bool: 初始化是否成功
    """
    global _config_manager

    from infrastructure.config.config_manager import ConfigManager

    _config_manager = ConfigManager(config_file)
    if not _config_manager.load_config():
        _logger.warning("配置加载失败，使用默认配置")
        return False

    is_valid, errors = _config_manager.validate_config()
    for error in errors:
        _logger.warning(f"配置校验: {error}")

    _logger.info("Phase 1 完成")
    return is_valid


def _init_phase_2(file: str):
    """
    Phase 2: 文档缓存初始化

    Returns:
        XmlCache: 已加载文档的缓存，加载失败时返回 None
    """
    from application.xml_cache import XmlCache
    from infrastructure.persistence.file_exceptions import DocumentLoadError
    from shared.delayed_actions import QtDelayedActions

    actions = QtDelayedActions()
    cache = XmlCache(_config_manager, actions)
    # 调度器随缓存释放
    actions.setParent(cache)

    cache.model_changed.connect(_log_model_change)
    cache.file_changed.connect(lambda: _reload(cache))

    try:
        cache.load(file)
    except DocumentLoadError as e:
        _logger.error(str(e))
        cache.dispose()
        return None

    _logger.info(f"Phase 2 完成，已加载: {cache.file_name}")
    return cache


def _log_model_change(event) -> None:
    node = event.node
    name = node.name if node is not None else ""
    _logger.info(f"Model changed: {event.kind.name} {name}")


def _reload(cache) -> None:
    from infrastructure.persistence.file_exceptions import DocumentLoadError

    _logger.info(f"文件已被外部修改，重新加载: {cache.file_name}")
    try:
        cache.reload()
    except DocumentLoadError as e:
        _logger.error(f"重新加载失败: {e}")


def run(argv: Optional[List[str]] = None) -> int:
    """
    应用程序主启动函数

    执行完整的初始化流程并启动事件循环

    Args:
        argv: 命令行参数（不含程序名），默认使用 sys.argv

    Returns:
        int: 退出码，0 表示正常退出
    """
    args = _parse_args(argv)
    start_time = time.time()

    # ============================================================
    # Phase 0: 基础设施初始化
    # ============================================================
    if not _init_phase_0(args.verbose):
        return 1

    # ============================================================
    # Phase 1: 核心管理器初始化
    # ============================================================
    if not _init_phase_1(args.config):
        _logger.warning("Phase 1 失败，继续启动（使用默认配置）")

    # ============================================================
    # Phase 2: 文档缓存初始化
    # ============================================================
    from PyQt6.QtCore import QCoreApplication

    app = QCoreApplication(sys.argv[:1])
    app.setApplicationName("XML Live Cache")
    app.setApplicationVersion("0.1.0")

    cache = _init_phase_2(args.file)
    if cache is None:
        return 1

    elapsed = (time.time() - start_time) * 1000
    _logger.info(f"Phase 0-2 完成，耗时 {elapsed:.0f}ms")

    # Ctrl+C 退出事件循环（定时器让 Python 有机会处理信号）
    signal.signal(signal.SIGINT, lambda *_: app.quit())
    from PyQt6.QtCore import QTimer
    signal_timer = QTimer()
    signal_timer.timeout.connect(lambda: None)
    signal_timer.start(200)

    # ============================================================
    # 进入事件循环
    # ============================================================
    _logger.info("进入 Qt 事件循环")
    exit_code = app.exec()

    cache.dispose()
    _logger.info(f"应用退出，退出码: {exit_code}")
    return exit_code
