# XML Helpers
"""
XML 辅助函数

职责：
- 命名空间声明节点判断（纯谓词，仅依据节点形态）
- 样式表处理指令参数解析
"""

from typing import Optional

from domain.document.xml_nodes import XmlNode, XmlNodeType, parse_pseudo_attributes


# xml-stylesheet 中视为 XSLT 的 type 取值
XSLT_MEDIA_TYPES = {
    "text/xsl",
    "text/xml",
    "application/xml",
    "application/xslt+xml",
}


def is_xmlns_node(node: Optional[XmlNode]) -> bool:
    """
    判断节点是否为命名空间声明（xmlns 或 xmlns:* 属性）

    Args:
        node: 任意节点，可为空

    Returns:
        bool: 是否为命名空间声明
    """
    if node is None or node.node_type != XmlNodeType.ATTRIBUTE:
        return False
    return node.name == "xmlns" or node.prefix == "xmlns"


def parse_xslt_args(data: Optional[str]) -> Optional[str]:
    """
    从 <?xml-stylesheet?> 参数中提取样式表地址

    type 缺失或为 XSLT 类型时返回 href，CSS 等其他类型返回空

    Args:
        data: 处理指令参数，如 'type="text/xsl" href="view.xsl"'

    Returns:
        Optional[str]: 样式表地址
    """
    pseudo = parse_pseudo_attributes(data)
    href = pseudo.get("href")
    if not href:
        return None
    media_type = pseudo.get("type")
    if media_type is not None and media_type.strip().lower() not in XSLT_MEDIA_TYPES:
        return None
    return href


def parse_xslt_output_args(data: Optional[str]) -> Optional[str]:
    """
    从 <?xsl-output?> 参数中提取默认输出文件

    Args:
        data: 处理指令参数，如 'default="out.html"'

    Returns:
        Optional[str]: 默认输出文件
    """
    value = parse_pseudo_attributes(data).get("default")
    return value or None


__all__ = [
    "XSLT_MEDIA_TYPES",
    "is_xmlns_node",
    "parse_xslt_args",
    "parse_xslt_output_args",
]
