# Application Tasks
"""
应用层任务模块

设计说明：
- 文件监听任务使用 watchdog 库，Observer 线程由 watchdog 管理
- 事件通过 QMetaObject.invokeMethod 排队到主线程，再以 Qt 信号发出
- 停止监听通过任务自身的 stop_watching() 执行

目录结构：
- file_watch_task.py: 文件监听任务（watchdog 线程管理）

使用示例：
    from application.tasks import FileWatchTask

    file_watcher = FileWatchTask()
    file_watcher.file_changed.connect(on_changed)
    file_watcher.start_watching("/path/to/docs")
"""

from application.tasks.file_watch_task import (
    FileWatchTask,
    FileWatchReceiver,
    DocumentFileEventHandler,
)

__all__ = [
    "FileWatchTask",
    "FileWatchReceiver",
    "DocumentFileEventHandler",
]
