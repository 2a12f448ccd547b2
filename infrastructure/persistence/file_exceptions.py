# File Exceptions - Document I/O Exception Classes
"""
文档读写异常类定义

职责：
- 集中定义文档加载、保存和资源解析相关的异常类
- 供 xml_cache.py、dom_loader.py、xml_resolver.py 和外部调用方使用

使用示例：
    from infrastructure.persistence.file_exceptions import (
        DocumentError,
        DocumentLoadError,
        DocumentSaveError,
    )

    try:
        cache.save()
    except DocumentSaveError as e:
        print(f"保存失败: {e.location} - {e.reason}")
"""


class DocumentError(Exception):
    """文档操作基础异常"""
    pass


class DocumentLoadError(DocumentError):
    """文档加载失败（无法读取或 XML 格式错误）"""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Failed to load document: {location} - {reason}")


class DocumentSaveError(DocumentError):
    """文档保存失败"""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Failed to save document: {location} - {reason}")


class ResourceResolveError(DocumentError):
    """资源位置无法读取或写入"""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Cannot resolve resource: {location} - {reason}")


class FileOperationError(DocumentError):
    """文件属性操作失败"""

    def __init__(self, operation: str, path: str, reason: str):
        self.operation = operation
        self.path = path
        self.reason = reason
        super().__init__(f"File operation failed [{operation}]: {path} - {reason}")


# ============================================================
# 模块导出
# ============================================================

__all__ = [
    "DocumentError",
    "DocumentLoadError",
    "DocumentSaveError",
    "ResourceResolveError",
    "FileOperationError",
]
