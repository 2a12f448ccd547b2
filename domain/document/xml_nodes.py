# XML Nodes - Observable Document Tree
"""
可观察的 XML 文档树

职责：
- 定义可变的 XML 节点模型（元素、属性、文本、注释、处理指令等）
- 每次结构性修改通过所属文档的 Qt 信号通知观察者

信号说明（XmlDocument）：
- node_inserted(NodeChangedEventArgs): 节点插入后发送，new_parent 为新父节点
- node_removed(NodeChangedEventArgs): 节点移除后发送，此时父链接已断开，old_parent 为原父节点
- node_changed(NodeChangedEventArgs): 节点值变化后发送

设计原则：
- 节点只能属于创建它的文档，跨文档插入直接拒绝
- 节点身份即对象身份，可作为字典键（类型信息表、行号表）
- 插入已有父节点的节点时先从原位置移除（先发 removed 再发 inserted）

使用示例：
    doc = XmlDocument()
    doc.node_inserted.connect(on_inserted)

    root = doc.append_child(doc.create_element("catalog"))
    root.set_attribute("xmlns:x", "urn:example")
    root.append_child(doc.create_text_node("hello"))
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Iterator, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal


# ============================================================
# 枚举与事件数据
# ============================================================

class XmlNodeType(Enum):
    """节点类型"""
    DOCUMENT = auto()
    ELEMENT = auto()
    ATTRIBUTE = auto()
    TEXT = auto()
    CDATA = auto()
    COMMENT = auto()
    PROCESSING_INSTRUCTION = auto()
    XML_DECLARATION = auto()
    DOCUMENT_TYPE = auto()
    ENTITY_REFERENCE = auto()


class NodeChangedAction(Enum):
    """节点变化动作"""
    INSERT = auto()
    REMOVE = auto()
    CHANGE = auto()


@dataclass(frozen=True)
class NodeChangedEventArgs:
    """
    节点变化事件数据

    Attributes:
        action: 变化动作
        node: 发生变化的节点
        old_parent: 变化前的父节点（插入时为空）
        new_parent: 变化后的父节点（移除时为空）
        old_value: 变化前的值（仅 CHANGE）
        new_value: 变化后的值（仅 CHANGE）
    """
    action: NodeChangedAction
    node: "XmlNode"
    old_parent: Optional["XmlNode"] = None
    new_parent: Optional["XmlNode"] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None


# 伪属性（XML 声明、处理指令参数）匹配模式
_PSEUDO_ATTRIBUTE_PATTERN = re.compile(
    r'([A-Za-z_][\w.\-:]*)\s*=\s*(?:"([^"]*)"|\'([^\']*)\')'
)


def parse_pseudo_attributes(data: Optional[str]) -> Dict[str, str]:
    """
    解析形如 name="value" 的伪属性列表

    Args:
        data: 处理指令或 XML 声明的参数文本

    Returns:
        Dict[str, str]: 名称到值的映射（保留首次出现的值）
    """
    result: Dict[str, str] = {}
    if not data:
        return result
    for match in _PSEUDO_ATTRIBUTE_PATTERN.finditer(data):
        name = match.group(1)
        value = match.group(2) if match.group(2) is not None else match.group(3)
        result.setdefault(name, value)
    return result


# ============================================================
# 节点基类
# ============================================================

class XmlNode:
    """XML 节点基类"""

    node_type: XmlNodeType = None

    def __init__(self, owner_document: Optional["XmlDocument"]):
        self._owner = owner_document
        self._parent: Optional["XmlNode"] = None

    # ------------------------------------------------------------
    # 基本属性
    # ------------------------------------------------------------

    @property
    def owner_document(self) -> Optional["XmlDocument"]:
        return self._owner

    @property
    def parent(self) -> Optional["XmlNode"]:
        return self._parent

    @property
    def name(self) -> str:
        return ""

    @property
    def prefix(self) -> str:
        name = self.name
        return name.split(":", 1)[0] if ":" in name else ""

    @property
    def local_name(self) -> str:
        return self.name.split(":", 1)[-1]

    @property
    def value(self) -> Optional[str]:
        return None

    @value.setter
    def value(self, new_value: Optional[str]) -> None:
        raise TypeError(f"{self.node_type.name} node has no settable value")

    @property
    def children(self) -> List["XmlNode"]:
        return []

    @property
    def first_child(self) -> Optional["XmlNode"]:
        children = self.children
        return children[0] if children else None

    @property
    def last_child(self) -> Optional["XmlNode"]:
        children = self.children
        return children[-1] if children else None

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    @property
    def previous_sibling(self) -> Optional["XmlNode"]:
        return self._sibling(-1)

    @property
    def next_sibling(self) -> Optional["XmlNode"]:
        return self._sibling(1)

    def _sibling(self, offset: int) -> Optional["XmlNode"]:
        if self._parent is None or self.node_type == XmlNodeType.ATTRIBUTE:
            return None
        siblings = self._parent.children
        index = siblings.index(self) + offset
        if 0 <= index < len(siblings):
            return siblings[index]
        return None

    @property
    def text_content(self) -> str:
        """节点及其后代的文本内容"""
        return self.value or ""

    # ------------------------------------------------------------
    # 树遍历
    # ------------------------------------------------------------

    def iter_descendants(self) -> Iterator["XmlNode"]:
        """深度优先遍历所有后代节点（不含属性）"""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    # ------------------------------------------------------------
    # 子节点修改（默认不支持）
    # ------------------------------------------------------------

    def append_child(self, node: "XmlNode") -> "XmlNode":
        raise TypeError(f"{self.node_type.name} node cannot have children")

    def insert_before(self, node: "XmlNode", ref_node: Optional["XmlNode"]) -> "XmlNode":
        raise TypeError(f"{self.node_type.name} node cannot have children")

    def remove_child(self, node: "XmlNode") -> "XmlNode":
        raise TypeError(f"{self.node_type.name} node cannot have children")

    # ------------------------------------------------------------
    # 通知
    # ------------------------------------------------------------

    def _notify(self, args: NodeChangedEventArgs) -> None:
        if self._owner is not None:
            self._owner._dispatch(args)

    def _notify_value_changed(self, old_value: Optional[str], new_value: Optional[str]) -> None:
        self._notify(NodeChangedEventArgs(
            NodeChangedAction.CHANGE,
            self,
            old_parent=self._parent,
            new_parent=self._parent,
            old_value=old_value,
            new_value=new_value,
        ))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class XmlContainerNode(XmlNode):
    """可包含子节点的节点（文档、元素）"""

    # 允许的子节点类型
    allowed_children = frozenset()

    def __init__(self, owner_document: Optional["XmlDocument"]):
        super().__init__(owner_document)
        self._children: List[XmlNode] = []

    @property
    def children(self) -> List[XmlNode]:
        return list(self._children)

    @property
    def has_children(self) -> bool:
        return bool(self._children)

    @property
    def text_content(self) -> str:
        return "".join(
            child.text_content for child in self._children
            if child.node_type in (XmlNodeType.TEXT, XmlNodeType.CDATA,
                                   XmlNodeType.ELEMENT, XmlNodeType.ENTITY_REFERENCE)
        )

    def append_child(self, node: XmlNode) -> XmlNode:
        return self.insert_before(node, None)

    def insert_before(self, node: XmlNode, ref_node: Optional[XmlNode]) -> XmlNode:
        """
        在参考节点前插入子节点

        Args:
            node: 要插入的节点
            ref_node: 参考节点，为空时追加到末尾

        Returns:
            XmlNode: 插入的节点
        """
        self._check_insert(node, ref_node)

        if node._parent is not None:
            node._parent.remove_child(node)

        index = len(self._children) if ref_node is None else self._children.index(ref_node)
        self._children.insert(index, node)
        node._parent = self

        self._notify(NodeChangedEventArgs(NodeChangedAction.INSERT, node, new_parent=self))
        return node

    def remove_child(self, node: XmlNode) -> XmlNode:
        """
        移除子节点

        通知发送时父链接已断开，old_parent 为本节点
        """
        if node._parent is not self or node not in self._children:
            raise ValueError(f"{node!r} is not a child of {self!r}")

        self._children.remove(node)
        node._parent = None

        self._notify(NodeChangedEventArgs(NodeChangedAction.REMOVE, node, old_parent=self))
        return node

    def _check_insert(self, node: XmlNode, ref_node: Optional[XmlNode]) -> None:
        if node.owner_document is not self._owner:
            raise ValueError("node belongs to a different document")
        if node.node_type not in self.allowed_children:
            raise ValueError(f"{node.node_type.name} cannot be a child of {self.node_type.name}")
        if ref_node is not None and ref_node._parent is not self:
            raise ValueError(f"{ref_node!r} is not a child of {self!r}")
        ancestor: Optional[XmlNode] = self
        while ancestor is not None:
            if ancestor is node:
                raise ValueError("cannot insert a node into its own subtree")
            ancestor = ancestor._parent


# ============================================================
# 叶子节点
# ============================================================

class XmlCharacterData(XmlNode):
    """字符数据节点基类"""

    def __init__(self, owner_document: "XmlDocument", data: str = ""):
        super().__init__(owner_document)
        self._data = data or ""

    @property
    def name(self) -> str:
        return self._node_name

    _node_name = ""

    @property
    def value(self) -> str:
        return self._data

    @value.setter
    def value(self, new_value: Optional[str]) -> None:
        new_value = new_value or ""
        if new_value == self._data:
            return
        old_value = self._data
        self._data = new_value
        self._notify_value_changed(old_value, new_value)

    # 别名
    data = value


class XmlText(XmlCharacterData):
    node_type = XmlNodeType.TEXT
    _node_name = "#text"


class XmlCData(XmlCharacterData):
    node_type = XmlNodeType.CDATA
    _node_name = "#cdata-section"


class XmlComment(XmlCharacterData):
    node_type = XmlNodeType.COMMENT
    _node_name = "#comment"

    @property
    def text_content(self) -> str:
        return ""


class XmlProcessingInstruction(XmlCharacterData):
    """处理指令 <?target data?>"""

    node_type = XmlNodeType.PROCESSING_INSTRUCTION

    def __init__(self, owner_document: "XmlDocument", target: str, data: str = ""):
        super().__init__(owner_document, data)
        self._target = target

    @property
    def name(self) -> str:
        return self._target

    @property
    def target(self) -> str:
        return self._target

    @property
    def text_content(self) -> str:
        return ""


class XmlEntityReference(XmlNode):
    """未展开的实体引用 &name;"""

    node_type = XmlNodeType.ENTITY_REFERENCE

    def __init__(self, owner_document: "XmlDocument", name: str):
        super().__init__(owner_document)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def text_content(self) -> str:
        return f"&{self._name};"


class XmlAttribute(XmlNode):
    """属性节点，父节点为所属元素"""

    node_type = XmlNodeType.ATTRIBUTE

    def __init__(self, owner_document: "XmlDocument", name: str, value: str = ""):
        super().__init__(owner_document)
        self._name = name
        self._value = value or ""

    @property
    def name(self) -> str:
        return self._name

    @property
    def owner_element(self) -> Optional["XmlElement"]:
        return self._parent

    @property
    def value(self) -> str:
        return self._value

    @value.setter
    def value(self, new_value: Optional[str]) -> None:
        new_value = new_value or ""
        if new_value == self._value:
            return
        old_value = self._value
        self._value = new_value
        self._notify_value_changed(old_value, new_value)


class XmlDeclaration(XmlNode):
    """XML 声明 <?xml version="1.0" encoding="..." standalone="..."?>"""

    node_type = XmlNodeType.XML_DECLARATION

    def __init__(
        self,
        owner_document: "XmlDocument",
        version: str = "1.0",
        encoding: Optional[str] = None,
        standalone: Optional[str] = None,
    ):
        super().__init__(owner_document)
        self._version = version or "1.0"
        self._encoding = encoding or None
        self._standalone = standalone or None

    @property
    def name(self) -> str:
        return "xml"

    @property
    def version(self) -> str:
        return self._version

    @property
    def encoding(self) -> Optional[str]:
        return self._encoding

    @encoding.setter
    def encoding(self, new_encoding: Optional[str]) -> None:
        self._update(encoding=new_encoding or None)

    @property
    def standalone(self) -> Optional[str]:
        return self._standalone

    @standalone.setter
    def standalone(self, new_standalone: Optional[str]) -> None:
        self._update(standalone=new_standalone or None)

    @property
    def value(self) -> str:
        parts = [f'version="{self._version}"']
        if self._encoding:
            parts.append(f'encoding="{self._encoding}"')
        if self._standalone:
            parts.append(f'standalone="{self._standalone}"')
        return " ".join(parts)

    @value.setter
    def value(self, new_value: Optional[str]) -> None:
        pseudo = parse_pseudo_attributes(new_value)
        self._update(
            version=pseudo.get("version", "1.0"),
            encoding=pseudo.get("encoding"),
            standalone=pseudo.get("standalone"),
        )

    _UNSET = object()

    def _update(self, version=_UNSET, encoding=_UNSET, standalone=_UNSET) -> None:
        old_value = self.value
        if version is not self._UNSET:
            self._version = version
        if encoding is not self._UNSET:
            self._encoding = encoding
        if standalone is not self._UNSET:
            self._standalone = standalone
        new_value = self.value
        if new_value != old_value:
            self._notify_value_changed(old_value, new_value)


class XmlDocumentType(XmlNode):
    """文档类型声明 <!DOCTYPE ...>"""

    node_type = XmlNodeType.DOCUMENT_TYPE

    def __init__(
        self,
        owner_document: "XmlDocument",
        name: str,
        public_id: Optional[str] = None,
        system_id: Optional[str] = None,
        internal_subset: Optional[str] = None,
    ):
        super().__init__(owner_document)
        self._name = name
        self.public_id = public_id or None
        self.system_id = system_id or None
        self.internal_subset = internal_subset or None

    @property
    def name(self) -> str:
        return self._name


# ============================================================
# 元素
# ============================================================

class XmlElement(XmlContainerNode):
    """元素节点"""

    node_type = XmlNodeType.ELEMENT

    allowed_children = frozenset({
        XmlNodeType.ELEMENT,
        XmlNodeType.TEXT,
        XmlNodeType.CDATA,
        XmlNodeType.COMMENT,
        XmlNodeType.PROCESSING_INSTRUCTION,
        XmlNodeType.ENTITY_REFERENCE,
    })

    def __init__(self, owner_document: "XmlDocument", name: str):
        super().__init__(owner_document)
        self._name = name
        self._attributes: List[XmlAttribute] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def attributes(self) -> List[XmlAttribute]:
        return list(self._attributes)

    @property
    def namespace_uri(self) -> Optional[str]:
        return self.lookup_namespace(self.prefix)

    # ------------------------------------------------------------
    # 属性访问
    # ------------------------------------------------------------

    def get_attribute_node(self, name: str) -> Optional[XmlAttribute]:
        for attr in self._attributes:
            if attr.name == name:
                return attr
        return None

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        attr = self.get_attribute_node(name)
        return attr.value if attr is not None else default

    def has_attribute(self, name: str) -> bool:
        return self.get_attribute_node(name) is not None

    def set_attribute(self, name: str, value: str) -> XmlAttribute:
        """
        设置属性值

        已存在时修改值（发送 changed），否则新建并插入（发送 inserted）
        """
        attr = self.get_attribute_node(name)
        if attr is not None:
            attr.value = value
            return attr
        return self.set_attribute_node(self._owner.create_attribute(name, value))

    def set_attribute_node(self, attr: XmlAttribute) -> XmlAttribute:
        """插入属性节点，替换同名属性"""
        if attr.owner_document is not self._owner:
            raise ValueError("attribute belongs to a different document")
        if attr._parent is not None and attr._parent is not self:
            raise ValueError(f"{attr!r} is already in use by another element")
        if attr._parent is self:
            return attr

        existing = self.get_attribute_node(attr.name)
        if existing is not None:
            index = self._attributes.index(existing)
            self.remove_attribute_node(existing)
            self._attributes.insert(index, attr)
        else:
            self._attributes.append(attr)
        attr._parent = self

        self._notify(NodeChangedEventArgs(NodeChangedAction.INSERT, attr, new_parent=self))
        return attr

    def remove_attribute(self, name: str) -> Optional[XmlAttribute]:
        attr = self.get_attribute_node(name)
        if attr is None:
            return None
        return self.remove_attribute_node(attr)

    def remove_attribute_node(self, attr: XmlAttribute) -> XmlAttribute:
        """移除属性节点，通知发送时父链接已断开"""
        if attr._parent is not self:
            raise ValueError(f"{attr!r} is not an attribute of {self!r}")

        self._attributes.remove(attr)
        attr._parent = None

        self._notify(NodeChangedEventArgs(NodeChangedAction.REMOVE, attr, old_parent=self))
        return attr

    # ------------------------------------------------------------
    # 命名空间
    # ------------------------------------------------------------

    def lookup_namespace(self, prefix: str) -> Optional[str]:
        """
        沿祖先链查找前缀对应的命名空间 URI

        Args:
            prefix: 前缀，空字符串表示默认命名空间

        Returns:
            Optional[str]: 命名空间 URI，未声明时返回空
        """
        if prefix == "xml":
            return "http://www.w3.org/XML/1998/namespace"
        if prefix == "xmlns":
            return "http://www.w3.org/2000/xmlns/"

        attr_name = f"xmlns:{prefix}" if prefix else "xmlns"
        node: Optional[XmlNode] = self
        while node is not None and node.node_type == XmlNodeType.ELEMENT:
            value = node.get_attribute(attr_name)
            if value is not None:
                return value or None
            node = node.parent
        return None


# ============================================================
# 文档
# ============================================================

class _DocumentEvents(QObject):
    """文档变化信号载体"""

    node_inserted = pyqtSignal(object)
    node_removed = pyqtSignal(object)
    node_changed = pyqtSignal(object)


class XmlDocument(XmlContainerNode):
    """
    XML 文档（树根）

    Signals:
        node_inserted(NodeChangedEventArgs)
        node_removed(NodeChangedEventArgs)
        node_changed(NodeChangedEventArgs)
    """

    node_type = XmlNodeType.DOCUMENT

    allowed_children = frozenset({
        XmlNodeType.XML_DECLARATION,
        XmlNodeType.DOCUMENT_TYPE,
        XmlNodeType.ELEMENT,
        XmlNodeType.COMMENT,
        XmlNodeType.PROCESSING_INSTRUCTION,
    })

    def __init__(self, base_uri: Optional[str] = None):
        super().__init__(None)
        self._owner = self
        self._events = _DocumentEvents()
        self.base_uri = base_uri

    @property
    def name(self) -> str:
        return "#document"

    # ------------------------------------------------------------
    # 信号
    # ------------------------------------------------------------

    @property
    def node_inserted(self):
        return self._events.node_inserted

    @property
    def node_removed(self):
        return self._events.node_removed

    @property
    def node_changed(self):
        return self._events.node_changed

    def _dispatch(self, args: NodeChangedEventArgs) -> None:
        if args.action == NodeChangedAction.INSERT:
            self._events.node_inserted.emit(args)
        elif args.action == NodeChangedAction.REMOVE:
            self._events.node_removed.emit(args)
        else:
            self._events.node_changed.emit(args)

    # ------------------------------------------------------------
    # 结构访问
    # ------------------------------------------------------------

    @property
    def document_element(self) -> Optional[XmlElement]:
        for child in self._children:
            if child.node_type == XmlNodeType.ELEMENT:
                return child
        return None

    @property
    def xml_declaration(self) -> Optional[XmlDeclaration]:
        first = self.first_child
        if first is not None and first.node_type == XmlNodeType.XML_DECLARATION:
            return first
        return None

    @property
    def document_type(self) -> Optional[XmlDocumentType]:
        for child in self._children:
            if child.node_type == XmlNodeType.DOCUMENT_TYPE:
                return child
        return None

    def select_processing_instruction(self, target: str) -> Optional[XmlProcessingInstruction]:
        """查找第一个顶层的指定处理指令"""
        for child in self._children:
            if child.node_type == XmlNodeType.PROCESSING_INSTRUCTION and child.target == target:
                return child
        return None

    def _check_insert(self, node: XmlNode, ref_node: Optional[XmlNode]) -> None:
        super()._check_insert(node, ref_node)
        if node._parent is self:
            return
        if node.node_type == XmlNodeType.ELEMENT and self.document_element is not None:
            raise ValueError("document already has a root element")
        if node.node_type == XmlNodeType.DOCUMENT_TYPE and self.document_type is not None:
            raise ValueError("document already has a document type")
        if node.node_type == XmlNodeType.XML_DECLARATION:
            if self.xml_declaration is not None:
                raise ValueError("document already has an XML declaration")
            if ref_node is not self.first_child:
                raise ValueError("XML declaration must be the first node")

    # ------------------------------------------------------------
    # 节点工厂
    # ------------------------------------------------------------

    def create_element(self, name: str) -> XmlElement:
        return XmlElement(self, name)

    def create_attribute(self, name: str, value: str = "") -> XmlAttribute:
        return XmlAttribute(self, name, value)

    def create_text_node(self, data: str) -> XmlText:
        return XmlText(self, data)

    def create_cdata_section(self, data: str) -> XmlCData:
        return XmlCData(self, data)

    def create_comment(self, data: str) -> XmlComment:
        return XmlComment(self, data)

    def create_processing_instruction(self, target: str, data: str = "") -> XmlProcessingInstruction:
        return XmlProcessingInstruction(self, target, data)

    def create_xml_declaration(
        self,
        version: str = "1.0",
        encoding: Optional[str] = None,
        standalone: Optional[str] = None,
    ) -> XmlDeclaration:
        return XmlDeclaration(self, version, encoding, standalone)

    def create_document_type(
        self,
        name: str,
        public_id: Optional[str] = None,
        system_id: Optional[str] = None,
        internal_subset: Optional[str] = None,
    ) -> XmlDocumentType:
        return XmlDocumentType(self, name, public_id, system_id, internal_subset)

    def create_entity_reference(self, name: str) -> XmlEntityReference:
        return XmlEntityReference(self, name)


__all__ = [
    "XmlNodeType",
    "NodeChangedAction",
    "NodeChangedEventArgs",
    "parse_pseudo_attributes",
    "XmlNode",
    "XmlContainerNode",
    "XmlCharacterData",
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
]
