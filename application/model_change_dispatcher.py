# Model Change Dispatcher
"""
模型变更通知分发器

职责：
- 以 Qt 信号发出模型变更通知
- 维护批量更新嵌套深度，只在最外层发出开始/结束通知

设计说明：
- 批量更新只是通知的边界，批量内的事件仍立即逐条发出
- 关闭后不再发出任何通知
"""

from typing import Any, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from shared.change_types import ModelChangedEvent, ModelChangeType


class ModelChangeDispatcher(QObject):
    """
    模型变更通知分发器

    Signals:
        model_changed(ModelChangedEvent)
    """

    model_changed = pyqtSignal(object)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._depth = 0
        self._closed = False

    @property
    def batch_depth(self) -> int:
        """当前批量更新嵌套深度"""
        return self._depth

    @property
    def is_closed(self) -> bool:
        return self._closed

    def begin_update(self, node: Any = None) -> None:
        """进入批量更新，0 -> 1 时发出 BEGIN_BATCH_UPDATE（携带 node）"""
        self._depth += 1
        if self._depth == 1:
            self.fire(ModelChangeType.BEGIN_BATCH_UPDATE, node)

    def end_update(self, node: Any = None) -> None:
        """退出批量更新，1 -> 0 时发出 END_BATCH_UPDATE（携带 node）"""
        if self._depth == 0:
            raise RuntimeError("end_update() called without matching begin_update()")
        self._depth -= 1
        if self._depth == 0:
            self.fire(ModelChangeType.END_BATCH_UPDATE, node)

    def fire(self, kind: ModelChangeType, node: Any = None) -> None:
        """发出一条变更通知"""
        if self._closed:
            return
        self.model_changed.emit(ModelChangedEvent(kind, node))

    def close(self) -> None:
        """关闭分发器"""
        self._closed = True


__all__ = [
    "ModelChangeDispatcher",
]
