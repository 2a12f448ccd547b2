# XML Writer - Document Serialization
"""
XML 文档序列化

职责：
- 将 XmlDocument 序列化为文本/字节
- 按配置缩进（混合内容元素内部保持原样，不插入空白）
- 按目标编码输出字节顺序标记（BOM）

设计说明：
- UTF-8/UTF-16/UTF-32 编码写出时带 BOM，是否去除由保存流程决定
- 无法用目标编码表示的字符输出为字符引用

使用示例：
    settings = XmlWriterSettings.from_config(config_manager, encoding="utf-8")
    writer = XmlWriter(settings)

    text = writer.write_to_string(document)

    with open(path, "wb") as stream:
        writer.save(document, stream)
"""

import codecs
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, List, Tuple

from domain.document.xml_nodes import XmlDocument, XmlNode, XmlNodeType
from infrastructure.config.settings import (
    CONFIG_INDENT_CHAR,
    CONFIG_INDENT_LEVEL,
    CONFIG_NEW_LINE_CHARS,
    CONFIG_NEW_LINE_ON_ATTRIBUTES,
    DEFAULT_ENCODING,
    DEFAULT_INDENT_LEVEL,
    DEFAULT_NEW_LINE_CHARS,
)


class IndentChar(Enum):
    """缩进字符"""
    SPACE = "space"
    TAB = "tab"


# 规范编码名 -> (实际使用的编解码器, BOM)
_PREAMBLES = {
    "utf-8": ("utf-8", codecs.BOM_UTF8),
    "utf-16": ("utf-16-le", codecs.BOM_UTF16_LE),
    "utf-16-le": ("utf-16-le", codecs.BOM_UTF16_LE),
    "utf-16-be": ("utf-16-be", codecs.BOM_UTF16_BE),
    "utf-32": ("utf-32-le", codecs.BOM_UTF32_LE),
    "utf-32-le": ("utf-32-le", codecs.BOM_UTF32_LE),
    "utf-32-be": ("utf-32-be", codecs.BOM_UTF32_BE),
}


def get_encoding_plan(encoding: str) -> Tuple[str, bytes]:
    """
    获取编码对应的编解码器和 BOM

    Args:
        encoding: 编码名（须可被 codecs.lookup 识别）

    Returns:
        (编解码器名称, BOM 字节，无 BOM 时为空字节)
    """
    name = codecs.lookup(encoding).name
    return _PREAMBLES.get(name, (name, b""))


@dataclass
class XmlWriterSettings:
    """
    写出设置

    Attributes:
        encoding: 输出编码
        indent_level: 每层缩进的字符数，0 表示不缩进
        indent_char: 缩进字符
        new_line_chars: 换行符
        new_line_on_attributes: 多个属性时每个属性单独一行
        emit_preamble: 是否写出编码的 BOM
    """
    encoding: str = DEFAULT_ENCODING
    indent_level: int = DEFAULT_INDENT_LEVEL
    indent_char: IndentChar = IndentChar.SPACE
    new_line_chars: str = DEFAULT_NEW_LINE_CHARS
    new_line_on_attributes: bool = False
    emit_preamble: bool = True

    @property
    def indent(self) -> bool:
        return self.indent_level > 0

    @property
    def indent_chars(self) -> str:
        char = "\t" if self.indent_char == IndentChar.TAB else " "
        return char * self.indent_level

    @classmethod
    def from_config(cls, config, encoding: str = DEFAULT_ENCODING) -> "XmlWriterSettings":
        """
        从配置管理器创建写出设置

        Args:
            config: ConfigManager 实例
            encoding: 输出编码
        """
        try:
            indent_char = IndentChar(config.get(CONFIG_INDENT_CHAR, IndentChar.SPACE.value))
        except ValueError:
            indent_char = IndentChar.SPACE

        indent_level = config.get(CONFIG_INDENT_LEVEL, DEFAULT_INDENT_LEVEL)
        if not isinstance(indent_level, int) or indent_level < 0:
            indent_level = DEFAULT_INDENT_LEVEL

        return cls(
            encoding=encoding,
            indent_level=indent_level,
            indent_char=indent_char,
            new_line_chars=config.get(CONFIG_NEW_LINE_CHARS, DEFAULT_NEW_LINE_CHARS) or DEFAULT_NEW_LINE_CHARS,
            new_line_on_attributes=config.get_bool(CONFIG_NEW_LINE_ON_ATTRIBUTES),
        )


# ============================================================
# 字符转义
# ============================================================

def escape_text(text: str) -> str:
    """转义文本内容"""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("\r", "&#xD;")
    )


def escape_attribute(value: str) -> str:
    """转义属性值（双引号包围）"""
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("\n", "&#xA;")
        .replace("\r", "&#xD;")
        .replace("\t", "&#x9;")
    )


# 混合内容判定：含有这些子节点的元素内部不缩进
_INLINE_TYPES = frozenset({
    XmlNodeType.TEXT,
    XmlNodeType.CDATA,
    XmlNodeType.ENTITY_REFERENCE,
})


class XmlWriter:
    """XML 文档写出器"""

    def __init__(self, settings: XmlWriterSettings = None):
        self.settings = settings or XmlWriterSettings()

    # ============================================================
    # 公共接口
    # ============================================================

    def write_to_string(self, document: XmlDocument) -> str:
        """序列化为字符串（不含 BOM）"""
        out: List[str] = []
        first = True
        for child in document.children:
            if not first and self.settings.indent:
                out.append(self.settings.new_line_chars)
            self._write_node(child, out, 0, inline=False)
            first = False
        return "".join(out)

    def write_to_bytes(self, document: XmlDocument) -> bytes:
        """序列化为字节（按设置带 BOM）"""
        codec, preamble = get_encoding_plan(self.settings.encoding)
        body = self.write_to_string(document).encode(codec, errors="xmlcharrefreplace")
        if self.settings.emit_preamble:
            return preamble + body
        return body

    def save(self, document: XmlDocument, stream: BinaryIO) -> int:
        """
        写出到二进制流

        Returns:
            int: 写出的字节数
        """
        data = self.write_to_bytes(document)
        stream.write(data)
        return len(data)

    # ============================================================
    # 节点写出
    # ============================================================

    def _write_node(self, node: XmlNode, out: List[str], depth: int, inline: bool) -> None:
        node_type = node.node_type

        if node_type == XmlNodeType.ELEMENT:
            self._write_element(node, out, depth, inline)
        elif node_type == XmlNodeType.TEXT:
            out.append(escape_text(node.value))
        elif node_type == XmlNodeType.CDATA:
            out.append("<![CDATA[" + node.value.replace("]]>", "]]]]><![CDATA[>") + "]]>")
        elif node_type == XmlNodeType.COMMENT:
            out.append(f"<!--{node.value}-->")
        elif node_type == XmlNodeType.PROCESSING_INSTRUCTION:
            data = node.value
            out.append(f"<?{node.target} {data}?>" if data else f"<?{node.target}?>")
        elif node_type == XmlNodeType.XML_DECLARATION:
            out.append(f"<?xml {node.value}?>")
        elif node_type == XmlNodeType.DOCUMENT_TYPE:
            out.append(self._format_doctype(node))
        elif node_type == XmlNodeType.ENTITY_REFERENCE:
            out.append(f"&{node.name};")
        else:
            raise ValueError(f"cannot serialize node of type {node_type.name}")

    def _write_element(self, element, out: List[str], depth: int, inline: bool) -> None:
        settings = self.settings
        indent = settings.indent and not inline

        out.append(f"<{element.name}")
        attributes = element.attributes
        if indent and settings.new_line_on_attributes and len(attributes) > 1:
            attr_indent = settings.new_line_chars + settings.indent_chars * (depth + 1)
            for attr in attributes:
                out.append(f'{attr_indent}{attr.name}="{escape_attribute(attr.value)}"')
        else:
            for attr in attributes:
                out.append(f' {attr.name}="{escape_attribute(attr.value)}"')

        children = element.children
        if not children:
            out.append(" />")
            return
        out.append(">")

        child_inline = inline or any(child.node_type in _INLINE_TYPES for child in children)
        if indent and not child_inline:
            for child in children:
                out.append(settings.new_line_chars + settings.indent_chars * (depth + 1))
                self._write_node(child, out, depth + 1, inline=False)
            out.append(settings.new_line_chars + settings.indent_chars * depth)
        else:
            for child in children:
                self._write_node(child, out, depth + 1, inline=child_inline)

        out.append(f"</{element.name}>")

    @staticmethod
    def _format_doctype(doctype) -> str:
        parts = [f"<!DOCTYPE {doctype.name}"]
        if doctype.public_id:
            parts.append(f' PUBLIC "{doctype.public_id}" "{doctype.system_id or ""}"')
        elif doctype.system_id:
            parts.append(f' SYSTEM "{doctype.system_id}"')
        if doctype.internal_subset:
            parts.append(f" [{doctype.internal_subset}]")
        parts.append(">")
        return "".join(parts)


__all__ = [
    "IndentChar",
    "XmlWriterSettings",
    "XmlWriter",
    "get_encoding_plan",
    "escape_text",
    "escape_attribute",
]
