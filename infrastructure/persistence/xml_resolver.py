# XML Resolver - Shared Resource Access
"""
XML 资源解析器

职责：
- 解析相对 URI（基于文档位置）
- 打开资源读取流（本地文件或 http/https 资源）
- 打开本地文件写入流

设计说明：
- 由 ConfigManager 持有单例，文档读取、DTD/XInclude 解析、文件保存共用
- 远程资源使用 httpx 同步下载到内存
- 远程资源只读，写入时抛出 ResourceResolveError

使用示例：
    resolver = XmlResolver()

    with resolver.open_read("/path/to/doc.xml") as stream:
        data = stream.read()

    schema = resolver.resolve_uri("/path/to/doc.xml", "schema.xsd")
"""

import io
import os
from typing import BinaryIO, Optional
from urllib.parse import urljoin

import httpx

from infrastructure.persistence.file_exceptions import ResourceResolveError
from infrastructure.utils.file_utils import (
    is_remote_location,
    location_to_path,
    resolve_location,
)


# 远程资源下载超时（秒）
DEFAULT_HTTP_TIMEOUT = 30.0


class XmlResolver:
    """
    XML 资源解析器

    为文档加载和保存提供统一的资源访问入口
    """

    def __init__(self, timeout: float = DEFAULT_HTTP_TIMEOUT):
        """
        Args:
            timeout: 远程资源下载超时（秒）
        """
        self._timeout = timeout

    def resolve_uri(self, base: Optional[str], relative: str) -> str:
        """
        基于文档位置解析相对引用

        Args:
            base: 基准位置（文档路径或 URL），可为空
            relative: 相对引用

        Returns:
            str: 绝对路径或 URL
        """
        if is_remote_location(relative):
            return relative
        if base and is_remote_location(base):
            return urljoin(base, relative)
        base_dir = os.path.dirname(location_to_path(base)) if base else None
        return resolve_location(relative, base_dir)

    def open_read(self, location: str) -> BinaryIO:
        """
        打开资源读取流

        Args:
            location: 资源位置

        Returns:
            BinaryIO: 二进制读取流（调用方负责关闭）

        Raises:
            ResourceResolveError: 资源无法读取
        """
        if is_remote_location(location):
            return io.BytesIO(self._download(location))

        path = location_to_path(location)
        try:
            return open(path, "rb")
        except OSError as e:
            raise ResourceResolveError(location, str(e)) from e

    def open_write(self, location: str) -> BinaryIO:
        """
        打开本地文件写入流

        Args:
            location: 文件位置

        Returns:
            BinaryIO: 二进制写入流（调用方负责关闭）

        Raises:
            ResourceResolveError: 位置为远程资源或无法写入
        """
        if is_remote_location(location):
            raise ResourceResolveError(location, "remote resources are read-only")

        path = location_to_path(location)
        try:
            return open(path, "wb")
        except OSError as e:
            raise ResourceResolveError(location, str(e)) from e

    def _download(self, url: str) -> bytes:
        """下载远程资源"""
        try:
            response = httpx.get(url, timeout=self._timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ResourceResolveError(url, str(e)) from e
        return response.content


__all__ = [
    "XmlResolver",
    "DEFAULT_HTTP_TIMEOUT",
]
