# File Utils - Cross-Platform File Operations
"""
跨平台文件操作工具

职责：
- 文档位置解析（相对路径、file:// URI、远程 URL）
- 路径比较（大小写不敏感）
- 修改时间、只读属性、共享读取探测
- 字节顺序标记（BOM）处理与原子写入

使用示例：
    from infrastructure.utils.file_utils import (
        resolve_location,
        is_same_path,
        write_file_without_bom,
    )

    # 相对路径解析为绝对路径
    path = resolve_location("docs/sample.xml")

    # 判断两个路径是否指向同一文件
    if is_same_path(path, event_path):
        print("目标文件发生变化")

    # 去除 BOM 后写入
    write_file_without_bom(data, path)
"""

import codecs
import os
import stat
import tempfile
import time
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname


# ============================================================
# 字节顺序标记
# ============================================================

# 顺序敏感：UTF-32 LE 的 BOM 以 UTF-16 LE 的 BOM 开头
BYTE_ORDER_MARKS = (
    codecs.BOM_UTF8,
    codecs.BOM_UTF32_LE,
    codecs.BOM_UTF32_BE,
    codecs.BOM_UTF16_LE,
    codecs.BOM_UTF16_BE,
)


# ============================================================
# 位置解析
# ============================================================

def is_remote_location(location: Optional[str]) -> bool:
    """
    判断位置是否为非本地资源（http、https、ftp 等）

    单字母 scheme 视为 Windows 盘符而非 URL
    """
    if not location:
        return False
    scheme = urlparse(str(location)).scheme
    return len(scheme) > 1 and scheme.lower() != "file"


def is_local_location(location: Optional[str]) -> bool:
    """判断位置是否为本地文件路径（含 file:// URI）"""
    return bool(location) and not is_remote_location(location)


def location_to_path(location: str) -> str:
    """
    将 file:// URI 转换为本地路径，普通路径原样返回

    Args:
        location: 文件位置

    Returns:
        str: 本地路径
    """
    parsed = urlparse(location)
    if parsed.scheme.lower() == "file":
        return url2pathname(unquote(parsed.path))
    return location


def resolve_location(location: Union[str, Path], base_dir: Optional[str] = None) -> str:
    """
    解析文档位置

    处理：
    - 远程 URL 原样返回
    - file:// URI 转换为本地路径
    - ~ 展开为用户目录
    - 相对路径基于 base_dir（默认当前工作目录）转为绝对路径

    Args:
        location: 原始位置
        base_dir: 相对路径的基准目录

    Returns:
        str: 绝对路径或 URL
    """
    location = str(location)
    if is_remote_location(location):
        return location

    path = os.path.expanduser(location_to_path(location))
    if not os.path.isabs(path):
        path = os.path.join(base_dir or os.getcwd(), path)
    return os.path.normpath(path)


def is_same_path(a: Optional[str], b: Optional[str]) -> bool:
    """
    判断两个路径是否相同（大小写不敏感）

    比较前解析符号链接，经由链接目录打开的文件与监听器报告的真实路径视为相同。
    任一为空时返回 False
    """
    if not a or not b:
        return False
    return os.path.realpath(str(a)).casefold() == os.path.realpath(str(b)).casefold()


# ============================================================
# 文件属性
# ============================================================

def get_last_write_time(path: str) -> float:
    """
    获取文件最后修改时间

    非本地位置返回当前时间，文件不存在返回 0.0

    Args:
        path: 文件路径

    Returns:
        float: 时间戳（秒）
    """
    if is_remote_location(path):
        return time.time()
    try:
        return os.path.getmtime(path)
    except OSError:
        return 0.0


def can_open_shared(path: str) -> bool:
    """
    探测文件是否可以共享读取打开

    文件仍被其他写入者锁定时返回 False

    Args:
        path: 文件路径

    Returns:
        bool: 是否可打开
    """
    try:
        with open(path, "rb"):
            pass
        return True
    except OSError:
        return False


def is_read_only(path: Union[str, Path]) -> bool:
    """
    判断文件是否只读

    文件不存在时返回 False
    """
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return False
    return not (mode & stat.S_IWUSR)


def make_read_write(path: Union[str, Path]) -> bool:
    """
    清除文件只读属性

    Args:
        path: 文件路径

    Returns:
        bool: 文件存在并已处理返回 True，文件不存在返回 False
    """
    if not os.path.exists(path):
        return False
    mode = os.stat(path).st_mode
    os.chmod(path, mode | stat.S_IWUSR)
    return True


# ============================================================
# 写入
# ============================================================

def strip_byte_order_mark(data: bytes) -> bytes:
    """
    去除数据开头的字节顺序标记

    Args:
        data: 原始字节

    Returns:
        bytes: 不含 BOM 的字节
    """
    for bom in BYTE_ORDER_MARKS:
        if data.startswith(bom):
            return data[len(bom):]
    return data


def write_bytes_atomic(path: Union[str, Path], data: bytes) -> None:
    """
    原子写入字节数据

    先写入同目录临时文件，再替换目标文件，避免写入中途失败损坏原文件。
    目标文件的权限位会被保留。

    Args:
        path: 目标路径
        data: 要写入的字节
    """
    path = Path(path)
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)

    try:
        original_mode = stat.S_IMODE(os.stat(path).st_mode)
    except OSError:
        original_mode = None

    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(directory))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if original_mode is not None:
            os.chmod(temp_name, original_mode)
        os.replace(temp_name, str(path))
    except BaseException:
        # 写入失败时清理临时文件
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


def write_file_without_bom(data: bytes, path: Union[str, Path]) -> int:
    """
    去除 BOM 后写入文件

    Args:
        data: 序列化后的字节（可能以 BOM 开头）
        path: 目标路径

    Returns:
        int: 实际写入的字节数
    """
    stripped = strip_byte_order_mark(data)
    write_bytes_atomic(path, stripped)
    return len(stripped)


# ============================================================
# 模块导出
# ============================================================

__all__ = [
    "BYTE_ORDER_MARKS",
    "is_remote_location",
    "is_local_location",
    "location_to_path",
    "resolve_location",
    "is_same_path",
    "get_last_write_time",
    "can_open_shared",
    "is_read_only",
    "make_read_write",
    "strip_byte_order_mark",
    "write_bytes_atomic",
    "write_file_without_bom",
]
