# Delayed Actions - Named Debounced Callbacks
"""
延迟动作调度器

职责：
- 按名称调度延迟执行的回调（防抖）
- 同名动作重新调度时取消并替换旧动作
- 回调始终在调度器所属线程（主线程）执行

设计说明：
- 每个名称对应一个单次触发的 QTimer
- 从其他线程调用 start_delayed_action() 时，通过排队信号切换到所属线程再启动定时器
- 单个回调异常不影响调度器，仅记录日志
- DelayedActionScheduler 协议供测试替换为同步触发的假调度器

使用示例：
    actions = QtDelayedActions()

    # 1 秒后检查文件，期间重复调度会重置计时
    actions.start_delayed_action("reload", check_reload, 1000)

    # 取消
    actions.cancel_delayed_action("reload")
"""

from typing import Callable, Dict, Optional, Protocol

from PyQt6.QtCore import QObject, QThread, QTimer, pyqtSignal, pyqtSlot

from infrastructure.utils.logger import get_logger


# 回调类型
DelayedCallback = Callable[[], None]


class DelayedActionScheduler(Protocol):
    """延迟动作调度器协议"""

    def start_delayed_action(self, name: str, callback: DelayedCallback, delay_ms: int) -> None:
        """调度命名动作，替换同名的待执行动作"""
        ...

    def cancel_delayed_action(self, name: str) -> bool:
        """取消命名动作，返回是否存在待执行动作"""
        ...


class QtDelayedActions(QObject):
    """
    基于 QTimer 的延迟动作调度器

    Signals:
        action_fired(str): 动作回调执行完毕（参数为动作名称）
    """

    action_fired = pyqtSignal(str)

    # 跨线程调度请求（排队到所属线程执行）
    _start_requested = pyqtSignal(str, object, int)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)

        # 待执行动作：{name: (timer, callback)}
        self._pending: Dict[str, tuple] = {}

        self._start_requested.connect(self._start_on_owner_thread)

        self._logger = None

    @property
    def logger(self):
        """延迟获取 Logger"""
        if self._logger is None:
            self._logger = get_logger("delayed_actions")
        return self._logger

    # ============================================================
    # 调度接口
    # ============================================================

    def start_delayed_action(self, name: str, callback: DelayedCallback, delay_ms: int) -> None:
        """
        调度命名延迟动作

        Args:
            name: 动作名称，同名动作会被取消并替换
            callback: 到期后执行的回调
            delay_ms: 延迟（毫秒）
        """
        if QThread.currentThread() == self.thread():
            self._start_on_owner_thread(name, callback, delay_ms)
        else:
            self._start_requested.emit(name, callback, delay_ms)

    def cancel_delayed_action(self, name: str) -> bool:
        """
        取消命名延迟动作

        Args:
            name: 动作名称

        Returns:
            bool: 是否存在被取消的待执行动作
        """
        entry = self._pending.pop(name, None)
        if entry is None:
            return False

        timer, _ = entry
        timer.stop()
        timer.deleteLater()
        return True

    def cancel_all(self) -> None:
        """取消所有待执行动作"""
        for name in list(self._pending):
            self.cancel_delayed_action(name)

    def is_pending(self, name: str) -> bool:
        """检查命名动作是否待执行"""
        return name in self._pending

    # ============================================================
    # 内部实现
    # ============================================================

    @pyqtSlot(str, object, int)
    def _start_on_owner_thread(self, name: str, callback: DelayedCallback, delay_ms: int) -> None:
        """在所属线程中启动定时器"""
        self.cancel_delayed_action(name)

        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.timeout.connect(lambda: self._on_timeout(name, timer))
        self._pending[name] = (timer, callback)
        timer.start(max(0, int(delay_ms)))

    def _on_timeout(self, name: str, timer: QTimer) -> None:
        """定时器到期，执行回调"""
        entry = self._pending.get(name)
        if entry is None or entry[0] is not timer:
            # 已被取消或替换
            return

        del self._pending[name]
        timer.deleteLater()

        _, callback = entry
        try:
            callback()
        except Exception:
            # 异常隔离：记录错误但不影响后续动作
            self.logger.exception(f"Delayed action '{name}' failed")
        finally:
            self.action_fired.emit(name)


__all__ = [
    "DelayedActionScheduler",
    "DelayedCallback",
    "QtDelayedActions",
]
