# XML Live Cache - Main Package
"""
XML 实时文档缓存 - 与磁盘文件保持同步的可观察 XML 文档模型

Architecture:
- application/     应用层 (XmlCache、重新加载监视、变更分发、文件监听任务)
- domain/          领域层 (文档树、加载器、写出器)
- infrastructure/  基础设施层 (配置、资源解析、异常、日志、文件工具)
- shared/          共享内核层 (延迟动作调度、变更通知类型)
"""

__version__ = "0.1.0"
__author__ = "XML Live Cache Team"
