# Reload Monitor - File Watch State Machine
"""
文件重新加载监视器

职责：
- 监听文档文件所在目录，识别目标文件的外部修改和重命名
- 防抖合并短时间内的多次变化
- 文件仍被写入方占用时重试，最终只通知一次

状态说明：
- IDLE: 空闲
- PENDING_RELOAD: 已收到变化，等待延迟检查

检查流程（check_reload）：
1. 比较磁盘修改时间与记录的时间，未变新则不就绪
2. 变新后尝试共享读取打开，失败则不就绪
3. 就绪：发出 file_changed，回到 IDLE
4. 不就绪：重试次数减一，仍有剩余则按相同延迟重新调度，否则静默放弃

信号说明：
- file_changed(): 文件已被外部修改且可读取
- file_renamed(): 目标文件被重命名

使用示例：
    monitor = ReloadMonitor(actions)
    monitor.file_changed.connect(on_file_changed)

    monitor.file_name = "/path/to/doc.xml"
    monitor.record_modified_time()
    monitor.start_watch()

    # 自身写入期间暂停监听
    with monitor.suspend_watch():
        write_file()
"""

import os
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, Optional

from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot

from application.tasks.file_watch_task import FileWatchTask
from infrastructure.config.settings import (
    ACTION_RELOAD,
    ACTION_RENAMED,
    DEFAULT_RELOAD_DELAY_MS,
    DEFAULT_RELOAD_RETRIES,
    DEFAULT_RENAME_DELAY_MS,
)
from infrastructure.utils.file_utils import (
    can_open_shared,
    get_last_write_time,
    is_local_location,
    is_same_path,
)
from infrastructure.utils.logger import get_logger
from shared.delayed_actions import DelayedActionScheduler


class ReloadState(Enum):
    """监视器状态"""
    IDLE = "idle"
    PENDING_RELOAD = "pending_reload"


class ReloadMonitor(QObject):
    """
    文件重新加载监视器

    Signals:
        file_changed(): 文件已被外部修改且可读取（每轮变化最多一次）
        file_renamed(): 目标文件被重命名
    """

    file_changed = pyqtSignal()
    file_renamed = pyqtSignal()

    def __init__(
        self,
        actions: DelayedActionScheduler,
        watch_task: Optional[FileWatchTask] = None,
        file_probe: Optional[Callable[[str], bool]] = None,
        reload_delay_ms: int = DEFAULT_RELOAD_DELAY_MS,
        rename_delay_ms: int = DEFAULT_RENAME_DELAY_MS,
        max_retries: int = DEFAULT_RELOAD_RETRIES,
        parent: Optional[QObject] = None,
    ):
        """
        Args:
            actions: 延迟动作调度器
            watch_task: 目录监听任务，为空时新建
            file_probe: 共享读取探测函数，为空时使用 can_open_shared
            reload_delay_ms: 变化后检查的延迟（毫秒）
            rename_delay_ms: 重命名通知的延迟（毫秒）
            max_retries: 最大检查次数
            parent: 父对象
        """
        super().__init__(parent)

        self._actions = actions
        self._watch_task = watch_task if watch_task is not None else FileWatchTask(self)
        self._file_probe = file_probe or can_open_shared

        self._reload_delay_ms = reload_delay_ms
        self._rename_delay_ms = rename_delay_ms
        self._max_retries = max_retries

        self._file_name: Optional[str] = None
        self._last_modified = 0.0
        self._state = ReloadState.IDLE
        self._retries = 0
        self._watching = False
        self._disposed = False

        self._watch_task.file_changed.connect(self.on_file_changed)
        self._watch_task.file_renamed.connect(self.on_file_renamed)

        self._logger = None

    @property
    def logger(self):
        """延迟获取 Logger"""
        if self._logger is None:
            self._logger = get_logger("reload_monitor")
        return self._logger

    # ============================================================
    # 属性
    # ============================================================

    @property
    def file_name(self) -> Optional[str]:
        """被监视的文件路径"""
        return self._file_name

    @file_name.setter
    def file_name(self, value: Optional[str]) -> None:
        self._file_name = value or None

    @property
    def last_modified(self) -> float:
        """记录的文件修改时间"""
        return self._last_modified

    @property
    def state(self) -> ReloadState:
        return self._state

    @property
    def retries(self) -> int:
        """剩余检查次数"""
        return self._retries

    @property
    def is_watching(self) -> bool:
        return self._watching

    def record_modified_time(self) -> float:
        """记录文件当前的修改时间"""
        self._last_modified = get_last_write_time(self._file_name) if self._file_name else 0.0
        return self._last_modified

    # ============================================================
    # 监听管理
    # ============================================================

    def start_watch(self) -> bool:
        """
        开始监听文件所在目录

        路径为空、非本地或文件不存在时不监听（已有监听会被释放）

        Returns:
            bool: 是否已开始监听
        """
        self.stop_watch()
        if self._disposed:
            return False

        path = self._file_name
        if not path or not is_local_location(path) or not os.path.isfile(path):
            return False

        self._watching = self._watch_task.start_watching(os.path.dirname(os.path.abspath(path)))
        return self._watching

    def stop_watch(self) -> None:
        """停止监听（可重复调用）"""
        if self._watching:
            self._watch_task.stop_watching()
            self._watching = False

    @contextmanager
    def suspend_watch(self) -> Iterator[None]:
        """
        暂停监听的上下文

        进入时停止监听，退出时（含异常）重新开始监听当前路径
        """
        self.stop_watch()
        try:
            yield
        finally:
            self.start_watch()

    # ============================================================
    # 事件处理
    # ============================================================

    @pyqtSlot(str)
    def on_file_changed(self, path: str) -> None:
        """目录中有文件变化"""
        if self._disposed or not is_same_path(path, self._file_name):
            return

        self._retries = self._max_retries
        self._state = ReloadState.PENDING_RELOAD
        self._actions.start_delayed_action(ACTION_RELOAD, self.check_reload, self._reload_delay_ms)

    @pyqtSlot(str, str)
    def on_file_renamed(self, old_path: str, new_path: str) -> None:
        """目录中有文件重命名，只关心原路径为目标文件的情况"""
        if self._disposed or not is_same_path(old_path, self._file_name):
            return

        self.logger.debug(f"Watched file renamed: {old_path} -> {new_path}")
        self._actions.start_delayed_action(ACTION_RENAMED, self._on_renamed, self._rename_delay_ms)

    def check_reload(self) -> None:
        """延迟检查文件是否已可重新加载"""
        if self._disposed:
            return

        if self._is_ready():
            self._state = ReloadState.IDLE
            self.file_changed.emit()
            return

        self._retries -= 1
        if self._retries > 0:
            self._actions.start_delayed_action(ACTION_RELOAD, self.check_reload, self._reload_delay_ms)
        else:
            self._state = ReloadState.IDLE
            self.logger.debug(f"Gave up waiting for changed file: {self._file_name}")

    def _is_ready(self) -> bool:
        path = self._file_name
        if not path:
            return False
        if get_last_write_time(path) <= self._last_modified:
            return False
        return self._file_probe(path)

    def _on_renamed(self) -> None:
        if not self._disposed:
            self.file_renamed.emit()

    # ============================================================
    # 释放
    # ============================================================

    def cancel_pending(self) -> None:
        """取消待执行的检查和重命名通知"""
        self._actions.cancel_delayed_action(ACTION_RELOAD)
        self._actions.cancel_delayed_action(ACTION_RENAMED)
        self._state = ReloadState.IDLE

    def dispose(self) -> None:
        """释放监视器，之后不再发出任何信号"""
        if self._disposed:
            return
        self._disposed = True
        self.cancel_pending()
        self.stop_watch()


__all__ = [
    "ReloadState",
    "ReloadMonitor",
]
