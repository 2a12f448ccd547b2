# Persistence
"""
持久化模块

包含：
- file_exceptions.py: 文档读写异常类定义
- xml_resolver.py: XML 资源解析器（本地文件、http/https 资源）

资源访问架构：
- XmlResolver 由 ConfigManager 持有，文档加载、DTD/XInclude 解析、保存共用
- 远程资源只读，通过 httpx 下载
"""

# 异常类（从独立模块导入）
from infrastructure.persistence.file_exceptions import (
    DocumentError,
    DocumentLoadError,
    DocumentSaveError,
    ResourceResolveError,
    FileOperationError,
)

# 资源解析器
from infrastructure.persistence.xml_resolver import XmlResolver

__all__ = [
    # 异常类
    "DocumentError",
    "DocumentLoadError",
    "DocumentSaveError",
    "ResourceResolveError",
    "FileOperationError",
    # 资源解析器
    "XmlResolver",
]
