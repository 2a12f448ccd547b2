# Shared Kernel Layer
"""
共享内核层 - 被所有层依赖的跨层基础设施

包含：
- change_types: 模型变更通知类型定义
- delayed_actions: 命名延迟动作调度器（防抖）

依赖方向（严格遵守，避免循环依赖）：
- change_types.py: 纯类型定义，不依赖任何其他模块
- delayed_actions.py: 仅依赖 infrastructure/utils/logger.py
"""

# 变更通知类型
from shared.change_types import (
    ModelChangeType,
    ModelChangedEvent,
)

# 延迟动作调度
from shared.delayed_actions import (
    DelayedActionScheduler,
    DelayedCallback,
    QtDelayedActions,
)

__all__ = [
    "ModelChangeType",
    "ModelChangedEvent",
    "DelayedActionScheduler",
    "DelayedCallback",
    "QtDelayedActions",
]
