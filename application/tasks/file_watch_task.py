# File Watch Task - File System Monitoring
"""
文件监听任务 - 监测文档所在目录的文件变化

职责：
- 监测单个目录（非递归）中文件的修改、创建、重命名
- 将事件从 watchdog 线程转发到主线程
- 以 Qt 信号发出文件变化和重命名通知

实现方式：
- 使用 watchdog 库的 Observer 和 FileSystemEventHandler
- Observer 在独立线程中运行（watchdog 内部管理）
- 事件通过 QMetaObject.invokeMethod 转发到主线程
- 每次启动监听递增代号，旧代号排队中的事件到达主线程后丢弃

信号说明：
- file_changed(str): 文件被修改、创建或被移动到该路径
- file_renamed(str, str): 文件被重命名（原路径, 新路径）

生命周期管理：
- 由 ReloadMonitor 持有，随文档路径启动/停止
- 停止监听后不再发出任何信号

使用示例：
    watch_task = FileWatchTask()
    watch_task.file_changed.connect(on_changed)
    watch_task.file_renamed.connect(on_renamed)

    # 监听文档所在目录
    watch_task.start_watching("/path/to/docs")

    # 停止监听
    watch_task.stop_watching()
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from PyQt6.QtCore import Q_ARG, QMetaObject, QObject, Qt, pyqtSignal, pyqtSlot

from watchdog.observers import Observer
from watchdog.events import FileSystemEvent, FileSystemEventHandler

from infrastructure.utils.logger import get_logger


# ============================================================
# 常量定义
# ============================================================

# 停止监听时等待 Observer 线程结束的时间（秒）
OBSERVER_JOIN_TIMEOUT = 2.0

EVENT_CREATED = "created"
EVENT_MODIFIED = "modified"
EVENT_MOVED = "moved"


# ============================================================
# 事件接收器（主线程）
# ============================================================

class FileWatchReceiver(QObject):
    """
    文件监听事件接收器

    在主线程中接收来自 watchdog 线程的事件，转换为 Qt 信号。
    只处理当前监听代号的事件。

    Signals:
        file_changed(str): 文件变化
        file_renamed(str, str): 文件重命名
    """

    file_changed = pyqtSignal(str)
    file_renamed = pyqtSignal(str, str)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)

        # 当前有效的监听代号，0 表示未监听
        self.generation = 0

        self._logger = None

    @property
    def logger(self):
        """延迟获取 Logger"""
        if self._logger is None:
            self._logger = get_logger("file_watcher")
        return self._logger

    @pyqtSlot(int, str, str, str)
    def on_file_event(
        self,
        generation: int,
        event_type: str,
        path: str,
        dest_path: str
    ) -> None:
        """
        接收文件事件（在主线程中调用）

        Args:
            generation: 事件所属的监听代号
            event_type: 事件类型（created, modified, moved）
            path: 文件路径
            dest_path: 移动目标路径（仅 moved 事件）
        """
        if generation != self.generation:
            # 旧监听排队中的事件
            return

        self.logger.debug(f"File {event_type}: {path}" + (f" -> {dest_path}" if dest_path else ""))

        if event_type == EVENT_MOVED:
            self.file_renamed.emit(path, dest_path)
            # 其他文件被移动为目标文件，视为目标文件变化
            self.file_changed.emit(dest_path)
        else:
            self.file_changed.emit(path)


# ============================================================
# Watchdog 事件处理器
# ============================================================

class DocumentFileEventHandler(FileSystemEventHandler):
    """
    文档文件事件处理器

    在 watchdog 线程中运行，忽略目录事件，其余转发到主线程。
    """

    def __init__(self, receiver: FileWatchReceiver, generation: int):
        """
        Args:
            receiver: 主线程事件接收器
            generation: 本处理器所属的监听代号
        """
        super().__init__()
        self._receiver = receiver
        self._generation = generation

    def _dispatch_event(self, event_type: str, path: str, dest_path: str = "") -> None:
        """通过 Qt 排队调用转发到主线程"""
        QMetaObject.invokeMethod(
            self._receiver,
            "on_file_event",
            Qt.ConnectionType.QueuedConnection,
            Q_ARG(int, self._generation),
            Q_ARG(str, event_type),
            Q_ARG(str, path),
            Q_ARG(str, dest_path)
        )

    def on_created(self, event: FileSystemEvent) -> None:
        """处理创建事件"""
        if event.is_directory:
            return
        self._dispatch_event(EVENT_CREATED, str(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        """处理修改事件"""
        if event.is_directory:
            return
        self._dispatch_event(EVENT_MODIFIED, str(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        """处理移动/重命名事件"""
        if event.is_directory:
            return
        dest_path = getattr(event, "dest_path", "") or ""
        self._dispatch_event(EVENT_MOVED, str(event.src_path), str(dest_path))


# ============================================================
# 文件监听任务主类
# ============================================================

class FileWatchTask(QObject):
    """
    文件监听任务

    管理 watchdog Observer 的生命周期，同一时刻最多监听一个目录。

    Signals:
        file_changed(str): 文件变化
        file_renamed(str, str): 文件重命名（原路径, 新路径）
    """

    file_changed = pyqtSignal(str)
    file_renamed = pyqtSignal(str, str)

    def __init__(self, parent: Optional[QObject] = None):
        """初始化文件监听任务"""
        super().__init__(parent)

        # watchdog Observer
        self._observer: Optional[Observer] = None

        # 事件接收器
        self._receiver = FileWatchReceiver(self)
        self._receiver.file_changed.connect(self.file_changed)
        self._receiver.file_renamed.connect(self.file_renamed)

        # 监听代号（每次启动递增）
        self._generation = 0

        # 当前监听路径
        self._watch_path: Optional[Path] = None

        self._logger = None

    @property
    def logger(self):
        """延迟获取 Logger"""
        if self._logger is None:
            self._logger = get_logger("file_watcher")
        return self._logger

    @property
    def is_watching(self) -> bool:
        """检查是否正在监听"""
        return self._observer is not None and self._observer.is_alive()

    @property
    def watch_path(self) -> Optional[str]:
        """获取当前监听路径"""
        return str(self._watch_path) if self._watch_path else None

    @property
    def receiver(self) -> FileWatchReceiver:
        """主线程事件接收器"""
        return self._receiver

    def start_watching(self, folder_path: str) -> bool:
        """
        启动目录监听（非递归）

        Args:
            folder_path: 要监听的目录路径

        Returns:
            bool: 是否成功启动
        """
        # 如果已在监听，先停止
        self.stop_watching()

        path = Path(os.path.abspath(folder_path))

        if not path.is_dir():
            self.logger.error(f"Watch path is not a directory: {path}")
            return False

        self._generation += 1
        self._receiver.generation = self._generation

        try:
            event_handler = DocumentFileEventHandler(self._receiver, self._generation)

            self._observer = Observer()
            self._observer.schedule(event_handler, str(path), recursive=False)
            self._observer.start()
        except OSError as e:
            self.logger.error(f"Failed to start file watching: {e}")
            self._observer = None
            self._receiver.generation = 0
            return False

        self._watch_path = path
        self.logger.info(f"Started watching: {path}")
        return True

    def stop_watching(self) -> None:
        """停止监听（可重复调用）"""
        # 使排队中的事件失效
        self._receiver.generation = 0

        if self._observer is None:
            return

        try:
            self._observer.stop()
            self._observer.join(timeout=OBSERVER_JOIN_TIMEOUT)
            self.logger.info(f"Stopped watching: {self._watch_path}")
        except RuntimeError as e:
            self.logger.warning(f"Error stopping file watcher: {e}")
        finally:
            self._observer = None
            self._watch_path = None

    def get_status(self) -> Dict[str, Any]:
        """
        获取监听状态

        Returns:
            dict: 状态信息
        """
        return {
            "is_watching": self.is_watching,
            "watch_path": self.watch_path,
            "generation": self._generation,
        }


# ============================================================
# 模块导出
# ============================================================

__all__ = [
    "FileWatchTask",
    "FileWatchReceiver",
    "DocumentFileEventHandler",
    "EVENT_CREATED",
    "EVENT_MODIFIED",
    "EVENT_MOVED",
]
