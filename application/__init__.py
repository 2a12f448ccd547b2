# Application Layer
"""
应用层 - 文档缓存、文件监视、变更通知

包含：
- xml_cache.py: XML 文档缓存（加载、保存、修改状态、变更分类）
- reload_monitor.py: 文件重新加载监视器（防抖、重试状态机）
- model_change_dispatcher.py: 模型变更通知分发器（批量更新边界）
- tasks/: 长期运行任务（watchdog 文件监听）
"""

from application.model_change_dispatcher import ModelChangeDispatcher
from application.reload_monitor import ReloadMonitor, ReloadState
from application.xml_cache import XmlCache

__all__ = [
    "XmlCache",
    "ReloadMonitor",
    "ReloadState",
    "ModelChangeDispatcher",
]
