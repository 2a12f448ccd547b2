# Utilities
"""
工具函数模块

包含：
- logger.py: 统一日志管理器
- file_utils.py: 跨平台文件操作（位置解析、路径比较、BOM、原子写入）
"""

from .logger import (
    setup_logger,
    get_logger,
    log_performance,
    log_file_operation,
)

from .file_utils import (
    resolve_location,
    is_same_path,
    is_remote_location,
    is_local_location,
    get_last_write_time,
    can_open_shared,
    is_read_only,
    make_read_write,
    strip_byte_order_mark,
    write_file_without_bom,
)

__all__ = [
    # 日志
    "setup_logger",
    "get_logger",
    "log_performance",
    "log_file_operation",
    # 文件操作
    "resolve_location",
    "is_same_path",
    "is_remote_location",
    "is_local_location",
    "get_last_write_time",
    "can_open_shared",
    "is_read_only",
    "make_read_write",
    "strip_byte_order_mark",
    "write_file_without_bom",
]
