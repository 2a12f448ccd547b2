# DOM Loader - XML Parsing into the Observable Tree
"""
XML 文档加载器

职责：
- 使用 lxml 解析 XML 并转换为可观察的 XmlDocument
- 记录元素、注释、处理指令的源码行号
- 提取 <?xml-stylesheet?> 和 <?xsl-output?> 指令参数
- 展开 XInclude
- 提供只读的 lxml 树用于 XPath 查询

设计说明：
- DTD、外部实体和 XInclude 通过 XmlResolver 读取（本地文件或 http/https）
- ignore_dtd 时不加载 DTD、不展开实体，实体引用保留为 XmlEntityReference
- 空白文本节点视为无意义空白，不进入文档树
- XML 声明从原始字节检测（lxml 不保留声明节点）
- lxml 不区分 CDATA 与普通文本，CDATA 内容加载为文本节点
- 解析警告转交 warning_handler，格式错误抛出 DocumentLoadError

使用示例：
    loader = DomLoader(resolver, ignore_dtd=False, warning_handler=on_warning)
    document = loader.load(None, "/path/to/doc.xml")

    print(loader.xslt_file_name)
    print(loader.get_line_info(document.document_element))
"""

import codecs
import io
import re
from dataclasses import dataclass
from typing import BinaryIO, Callable, Dict, List, Optional, Tuple, Union

from lxml import etree

from domain.document.xml_helpers import parse_xslt_args, parse_xslt_output_args
from domain.document.xml_nodes import (
    XmlDocument,
    XmlElement,
    XmlNode,
    parse_pseudo_attributes,
)
from domain.document.xml_writer import XmlWriter, XmlWriterSettings
from infrastructure.config.settings import (
    DEFAULT_ENCODING,
    PI_XML_STYLESHEET,
    PI_XSL_OUTPUT,
)
from infrastructure.persistence.file_exceptions import (
    DocumentLoadError,
    ResourceResolveError,
)
from infrastructure.persistence.xml_resolver import XmlResolver
from infrastructure.utils.logger import get_logger


# 警告回调类型：接收 lxml 的错误日志条目
WarningHandler = Callable[[object], None]

# 文档来源：字节、文本或二进制流
DocumentSource = Union[bytes, str, BinaryIO, None]

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"

# BOM -> 解码器（顺序敏感：UTF-32 LE 的 BOM 以 UTF-16 LE 的 BOM 开头）
_BOM_CODECS: Tuple[Tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF32_LE, "utf-32-le"),
    (codecs.BOM_UTF32_BE, "utf-32-be"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)

_DECLARATION_PATTERN = re.compile(r"<\?xml\s+(.*?)\?>", re.DOTALL)
_INTERNAL_SUBSET_PATTERN = re.compile(r"<!DOCTYPE\s[^\[>]*\[(.*?)\]\s*>", re.DOTALL)

# 检测声明时读取的字节数
_DECLARATION_PROBE_SIZE = 512


@dataclass(frozen=True)
class LineInfo:
    """
    节点源码位置

    Attributes:
        line_number: 行号（从 1 开始）
        line_position: 列号（lxml 不提供列信息，恒为 0）
    """
    line_number: int
    line_position: int = 0


# ============================================================
# 原始字节检测
# ============================================================

def _sniff_codec(data: bytes) -> Tuple[str, int]:
    """根据 BOM 或首字符推断解码器，返回 (解码器, BOM 长度)"""
    for bom, codec in _BOM_CODECS:
        if data.startswith(bom):
            return codec, len(bom)
    if data.startswith(b"<\x00?\x00"):
        return "utf-16-le", 0
    if data.startswith(b"\x00<\x00?"):
        return "utf-16-be", 0
    return "latin-1", 0


def detect_declaration(data: bytes) -> Optional[Dict[str, str]]:
    """
    从原始字节检测 XML 声明

    Args:
        data: 文档原始字节（可含 BOM）

    Returns:
        Optional[Dict[str, str]]: 声明的伪属性（version/encoding/standalone），无声明时为空
    """
    codec, offset = _sniff_codec(data)
    head = data[offset:offset + _DECLARATION_PROBE_SIZE].decode(codec, errors="ignore")
    match = _DECLARATION_PATTERN.match(head)
    if match is None:
        return None
    return parse_pseudo_attributes(match.group(1))


def _decode_source(data: bytes, declared_encoding: Optional[str]) -> str:
    """按 BOM 或声明的编码解码全文（仅用于提取内部 DTD 子集）"""
    codec, offset = _sniff_codec(data)
    if codec == "latin-1":
        codec = declared_encoding or DEFAULT_ENCODING
        try:
            codecs.lookup(codec)
        except LookupError:
            codec = DEFAULT_ENCODING
    return data[offset:].decode(codec, errors="replace")


# ============================================================
# 资源解析适配
# ============================================================

class _ResolverAdapter(etree.Resolver):
    """将 lxml 的外部资源请求转交 XmlResolver"""

    def __init__(self, resolver: XmlResolver):
        super().__init__()
        self._resolver = resolver

    def resolve(self, system_url, public_id, context):
        if not system_url:
            return None
        try:
            with self._resolver.open_read(system_url) as stream:
                data = stream.read()
        except ResourceResolveError as e:
            get_logger("dom_loader").debug(f"Resolver fallback for {system_url}: {e.reason}")
            return None
        return self.resolve_string(data, context, base_url=system_url)


# ============================================================
# 加载器
# ============================================================

class DomLoader:
    """
    XML 文档加载器

    每次 load() 重置行号表和指令缓存
    """

    def __init__(
        self,
        resolver: Optional[XmlResolver] = None,
        ignore_dtd: bool = False,
        warning_handler: Optional[WarningHandler] = None,
    ):
        """
        Args:
            resolver: 资源解析器，为空时新建
            ignore_dtd: 是否忽略 DTD（不加载、不展开实体）
            warning_handler: 解析警告回调
        """
        self._resolver = resolver or XmlResolver()
        self._ignore_dtd = ignore_dtd
        self._warning_handler = warning_handler

        self._line_info: Dict[XmlNode, LineInfo] = {}
        self._xslt_file_name: Optional[str] = None
        self._xslt_default_output: Optional[str] = None

        self._logger = None

    @property
    def logger(self):
        """延迟获取 Logger"""
        if self._logger is None:
            self._logger = get_logger("dom_loader")
        return self._logger

    @property
    def xslt_file_name(self) -> Optional[str]:
        """最近一次加载的 <?xml-stylesheet?> 样式表地址"""
        return self._xslt_file_name

    @property
    def xslt_default_output(self) -> Optional[str]:
        """最近一次加载的 <?xsl-output?> 默认输出"""
        return self._xslt_default_output

    # ============================================================
    # 公共接口
    # ============================================================

    def load(self, source: DocumentSource, location: Optional[str]) -> XmlDocument:
        """
        加载文档

        Args:
            source: 文档内容（字节、文本或二进制流），为空时通过解析器读取 location
            location: 文档位置，用作基准 URI

        Returns:
            XmlDocument: 新建的文档树

        Raises:
            DocumentLoadError: 无法读取或 XML 格式错误
        """
        data, override_encoding = self._read_source(source, location)
        tree = self._parse(data, location, override_encoding)

        self._line_info = {}
        declaration = detect_declaration(data)
        document = self._convert(tree, location, declaration, data)
        self._update_directives(document)
        return document

    def expand_includes(self, document: XmlDocument, location: Optional[str], encoding: str) -> XmlDocument:
        """
        展开文档中的 XInclude，返回新的文档树

        Args:
            document: 当前文档
            location: 文档位置，用于解析相对 href
            encoding: 当前文档的输出编码

        Raises:
            DocumentLoadError: 序列化结果无法解析或 XInclude 失败
        """
        settings = XmlWriterSettings(encoding=encoding, indent_level=0)
        data = XmlWriter(settings).write_to_bytes(document)

        tree = self._parse(data, location, None)
        try:
            tree.xinclude()
        except etree.XIncludeError as e:
            raise DocumentLoadError(location or "", str(e)) from e

        self._line_info = {}
        expanded = self._convert(tree, location, detect_declaration(data), data)
        self._update_directives(expanded)
        return expanded

    def load_navigator(self, location: str) -> etree._ElementTree:
        """
        加载只读的 lxml 树（用于 XPath 查询）

        Raises:
            DocumentLoadError: 无法读取或 XML 格式错误
        """
        data, _ = self._read_source(None, location)
        return self._parse(data, location, None)

    def get_line_info(self, node: Optional[XmlNode]) -> Optional[LineInfo]:
        """
        获取节点的源码位置

        属性和文本节点返回所在元素的位置，加载后新建的节点返回空

        Args:
            node: 节点

        Returns:
            Optional[LineInfo]: 源码位置
        """
        while node is not None:
            info = self._line_info.get(node)
            if info is not None:
                return info
            node = node.parent
        return None

    # ============================================================
    # 解析
    # ============================================================

    def _read_source(self, source: DocumentSource, location: Optional[str]) -> Tuple[bytes, Optional[str]]:
        if source is None:
            if not location:
                raise DocumentLoadError("", "no source or location given")
            try:
                with self._resolver.open_read(location) as stream:
                    return stream.read(), None
            except ResourceResolveError as e:
                raise DocumentLoadError(location, e.reason) from e
        if isinstance(source, str):
            return source.encode("utf-8"), "utf-8"
        if isinstance(source, bytes):
            return source, None
        return source.read(), None

    def _create_parser(self, override_encoding: Optional[str]) -> etree.XMLParser:
        parser = etree.XMLParser(
            encoding=override_encoding,
            load_dtd=not self._ignore_dtd,
            resolve_entities=not self._ignore_dtd,
            remove_comments=False,
            remove_pis=False,
            no_network=True,
            huge_tree=True,
        )
        parser.resolvers.add(_ResolverAdapter(self._resolver))
        return parser

    def _parse(self, data: bytes, location: Optional[str], override_encoding: Optional[str]) -> etree._ElementTree:
        parser = self._create_parser(override_encoding)
        try:
            tree = etree.parse(io.BytesIO(data), parser, base_url=location)
        except etree.XMLSyntaxError as e:
            raise DocumentLoadError(location or "", str(e)) from e

        for entry in parser.error_log:
            if entry.level == etree.ErrorLevels.WARNING:
                self._report_warning(entry)
        return tree

    def _report_warning(self, entry) -> None:
        if self._warning_handler is not None:
            self._warning_handler(entry)
        else:
            self.logger.debug(f"Parser warning at line {entry.line}: {entry.message}")

    # ============================================================
    # 转换
    # ============================================================

    def _convert(
        self,
        tree: etree._ElementTree,
        location: Optional[str],
        declaration: Optional[Dict[str, str]],
        data: bytes,
    ) -> XmlDocument:
        document = XmlDocument(base_uri=location)
        root = tree.getroot()

        if declaration is not None:
            document.append_child(document.create_xml_declaration(
                declaration.get("version", "1.0"),
                declaration.get("encoding"),
                declaration.get("standalone"),
            ))

        prolog: List = []
        sibling = root.getprevious()
        while sibling is not None:
            prolog.insert(0, sibling)
            sibling = sibling.getprevious()

        doctype = self._convert_doctype(document, tree, declaration, data)
        # DOCTYPE 位于序言中的处理指令/注释之后
        for item in prolog:
            self._append_converted(document, item)
        if doctype is not None:
            document.append_child(doctype)

        document.append_child(self._convert_element(document, root))

        sibling = root.getnext()
        while sibling is not None:
            self._append_converted(document, sibling)
            sibling = sibling.getnext()

        return document

    def _convert_doctype(self, document: XmlDocument, tree, declaration, data: bytes):
        docinfo = tree.docinfo
        if not docinfo.doctype:
            return None

        internal_subset = None
        text = _decode_source(data, (declaration or {}).get("encoding"))
        match = _INTERNAL_SUBSET_PATTERN.search(text)
        if match is not None:
            internal_subset = match.group(1).strip() or None

        return document.create_document_type(
            docinfo.root_name,
            docinfo.public_id,
            docinfo.system_url,
            internal_subset,
        )

    def _append_converted(self, parent: XmlNode, item) -> None:
        node = self._convert_leaf(parent.owner_document, item)
        if node is not None:
            parent.append_child(node)

    def _convert_leaf(self, document: XmlDocument, item) -> Optional[XmlNode]:
        """转换注释、处理指令和实体引用"""
        if item.tag is etree.Comment:
            node = document.create_comment(item.text or "")
        elif item.tag is etree.PI:
            node = document.create_processing_instruction(item.target, item.text or "")
        elif item.tag is etree.Entity:
            return document.create_entity_reference(item.name)
        else:
            return None

        if item.sourceline:
            self._line_info[node] = LineInfo(item.sourceline)
        return node

    def _convert_element(self, document: XmlDocument, source) -> XmlElement:
        element = document.create_element(self._qualified_name(source, source.tag))
        if source.sourceline:
            self._line_info[element] = LineInfo(source.sourceline)

        # 命名空间声明：相对父元素新增或改变的映射
        parent = source.getparent()
        inherited = parent.nsmap if parent is not None else {}
        for prefix, uri in source.nsmap.items():
            if prefix in inherited and inherited[prefix] == uri:
                continue
            name = f"xmlns:{prefix}" if prefix else "xmlns"
            element.set_attribute_node(document.create_attribute(name, uri))

        for key, value in source.attrib.items():
            element.set_attribute_node(
                document.create_attribute(self._qualified_name(source, key, is_attribute=True), value)
            )

        self._append_text(element, source.text)
        for child in source:
            if isinstance(child.tag, str):
                element.append_child(self._convert_element(document, child))
            else:
                self._append_converted(element, child)
            self._append_text(element, child.tail)

        return element

    @staticmethod
    def _append_text(element: XmlElement, text: Optional[str]) -> None:
        if text and text.strip():
            element.append_child(element.owner_document.create_text_node(text))

    @staticmethod
    def _qualified_name(source, tag: str, is_attribute: bool = False) -> str:
        """将 {uri}local 形式的名称转换为 prefix:local"""
        qname = etree.QName(tag)
        uri = qname.namespace
        if uri is None:
            return qname.localname
        if uri == XML_NAMESPACE:
            return f"xml:{qname.localname}"

        if not is_attribute and source.prefix is not None:
            return f"{source.prefix}:{qname.localname}"
        if not is_attribute and source.prefix is None and source.nsmap.get(None) == uri:
            return qname.localname

        # 属性必须带前缀
        for prefix, candidate in source.nsmap.items():
            if prefix is not None and candidate == uri:
                return f"{prefix}:{qname.localname}"
        return qname.localname

    # ============================================================
    # 指令
    # ============================================================

    def _update_directives(self, document: XmlDocument) -> None:
        stylesheet = document.select_processing_instruction(PI_XML_STYLESHEET)
        self._xslt_file_name = parse_xslt_args(stylesheet.value) if stylesheet is not None else None

        output = document.select_processing_instruction(PI_XSL_OUTPUT)
        self._xslt_default_output = parse_xslt_output_args(output.value) if output is not None else None


__all__ = [
    "DomLoader",
    "LineInfo",
    "WarningHandler",
    "detect_declaration",
]
