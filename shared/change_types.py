# Model Change Types
"""
模型变更通知类型定义

职责：
- 定义文档模型变更通知的类型枚举
- 定义随 model_changed 信号发送的事件数据

设计原则：
- 纯枚举和数据类定义，不依赖任何其他模块
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional


class ModelChangeType(Enum):
    """文档模型变更类型"""

    # 文档被整体替换（加载、清空、展开包含）
    RELOADED = auto()

    # 文档已保存
    SAVED = auto()

    # 节点值变化
    NODE_CHANGED = auto()

    # 节点插入
    NODE_INSERTED = auto()

    # 节点移除
    NODE_REMOVED = auto()

    # 命名空间声明变化（xmlns 属性增删改）
    NAMESPACE_CHANGED = auto()

    # 批量更新开始（仅最外层）
    BEGIN_BATCH_UPDATE = auto()

    # 批量更新结束（仅最外层）
    END_BATCH_UPDATE = auto()

    # 磁盘上的文件被重命名
    RENAMED = auto()


@dataclass(frozen=True)
class ModelChangedEvent:
    """
    模型变更事件

    Attributes:
        kind: 变更类型
        node: 受影响的节点（可能为空）
    """
    kind: ModelChangeType
    node: Optional[Any] = None


__all__ = [
    "ModelChangeType",
    "ModelChangedEvent",
]
