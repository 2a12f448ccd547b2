# Document Domain
"""
文档域 - 可观察的 XML 文档树

包含：
- xml_nodes.py: 文档树节点模型（修改时发出 Qt 信号）
- xml_helpers.py: 命名空间判断、样式表指令解析
- xml_writer.py: 文档序列化（缩进、转义、BOM）
- dom_loader.py: 基于 lxml 的文档加载（行号、指令、XInclude）

依赖方向：
- xml_nodes.py 不依赖本包其他模块
- xml_helpers.py 依赖 xml_nodes.py
- xml_writer.py 依赖 xml_nodes.py
- dom_loader.py 依赖以上所有
"""

from domain.document.xml_nodes import (
    XmlNodeType,
    NodeChangedAction,
    NodeChangedEventArgs,
    XmlNode,
    XmlText,
    XmlCData,
    XmlComment,
    XmlProcessingInstruction,
    XmlEntityReference,
    XmlAttribute,
    XmlDeclaration,
    XmlDocumentType,
    XmlElement,
    XmlDocument,
)
from domain.document.xml_helpers import (
    is_xmlns_node,
    parse_xslt_args,
    parse_xslt_output_args,
)
from domain.document.xml_writer import (
    IndentChar,
    XmlWriter,
    XmlWriterSettings,
)
from domain.document.dom_loader import (
    DomLoader,
    LineInfo,
)

__all__ = [
    # 节点模型
    "XmlNodeType",
    "NodeChangedAction",
    "NodeChangedEventArgs",
    "XmlNode",
    "XmlText",
    "XmlCData",
    "XmlComment",
    "XmlProcessingInstruction",
    "XmlEntityReference",
    "XmlAttribute",
    "XmlDeclaration",
    "XmlDocumentType",
    "XmlElement",
    "XmlDocument",
    # 辅助函数
    "is_xmlns_node",
    "parse_xslt_args",
    "parse_xslt_output_args",
    # 写出
    "IndentChar",
    "XmlWriter",
    "XmlWriterSettings",
    # 加载
    "DomLoader",
    "LineInfo",
]
