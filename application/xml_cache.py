# XML Cache - Live Document Cache
"""
XML 文档缓存

职责：
- 持有唯一的可观察文档树，并与磁盘文件保持同步
- 跟踪未保存状态（dirty）
- 将文档树变化分类后以 model_changed 信号发出
- 负责加载、保存（含编码与 BOM 策略）、清空、展开 XInclude
- 监视文件的外部修改和重命名

信号说明：
- file_changed(): 文件被外部修改且可读取，由调用方决定是否 reload()
- model_changed(ModelChangedEvent): 模型变更通知

不变量：
- dirty 为 True 当且仅当自上次成功加载、清空或保存后文档被修改过
- 替换文档树时先断开旧树的信号再连接新树，旧树的修改不再产生通知
- 自身写入文件期间暂停监听，写入结束（含失败）后恢复

使用示例：
    config = ConfigManager()
    config.load_config()

    cache = XmlCache(config, QtDelayedActions())
    cache.model_changed.connect(on_model_changed)
    cache.file_changed.connect(cache.reload)

    cache.load("docs/sample.xml")

    with cache.batch_update():
        root = cache.document.document_element
        root.set_attribute("version", "2")

    cache.save()
"""

import codecs
import io
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot

from application.model_change_dispatcher import ModelChangeDispatcher
from application.reload_monitor import ReloadMonitor
from domain.document.dom_loader import DocumentSource, DomLoader, LineInfo
from domain.document.xml_helpers import (
    is_xmlns_node,
    parse_xslt_args,
    parse_xslt_output_args,
)
from domain.document.xml_nodes import (
    NodeChangedAction,
    NodeChangedEventArgs,
    XmlDocument,
    XmlNode,
    XmlNodeType,
)
from domain.document.xml_writer import XmlWriter, XmlWriterSettings
from infrastructure.config.config_manager import ConfigManager
from infrastructure.config.settings import (
    CONFIG_IGNORE_DTD,
    CONFIG_NO_BYTE_ORDER_MARK,
    DEFAULT_ENCODING,
    DEFAULT_XML_VERSION,
    PI_XML_STYLESHEET,
    PI_XSL_OUTPUT,
)
from infrastructure.persistence.file_exceptions import (
    DocumentSaveError,
    FileOperationError,
    ResourceResolveError,
)
from infrastructure.utils import file_utils
from infrastructure.utils.logger import get_logger, log_file_operation, log_performance
from shared.change_types import ModelChangeType
from shared.delayed_actions import DelayedActionScheduler


# 节点动作 -> 通知类型
_ACTION_KINDS = {
    NodeChangedAction.INSERT: ModelChangeType.NODE_INSERTED,
    NodeChangedAction.REMOVE: ModelChangeType.NODE_REMOVED,
    NodeChangedAction.CHANGE: ModelChangeType.NODE_CHANGED,
}


class XmlCache(QObject):
    """
    XML 文档缓存

    Signals:
        file_changed(): 文件被外部修改
        model_changed(ModelChangedEvent): 模型变更
    """

    file_changed = pyqtSignal()
    model_changed = pyqtSignal(object)

    def __init__(
        self,
        config: ConfigManager,
        actions: DelayedActionScheduler,
        parent: Optional[QObject] = None,
        *,
        watch_task=None,
        file_probe=None,
    ):
        """
        Args:
            config: 配置管理器（ignore_dtd、no_byte_order_mark、resolver）
            actions: 延迟动作调度器
            parent: 父对象
            watch_task: 目录监听任务，为空时新建
            file_probe: 共享读取探测函数，为空时使用默认实现
        """
        super().__init__(parent)

        self._config = config

        self._dispatcher = ModelChangeDispatcher(self)
        self._dispatcher.model_changed.connect(self.model_changed)

        self._monitor = ReloadMonitor(
            actions,
            watch_task=watch_task,
            file_probe=file_probe,
            parent=self,
        )
        self._monitor.file_changed.connect(self._on_file_changed)
        self._monitor.file_renamed.connect(self._on_renamed)

        self._loader: Optional[DomLoader] = None
        self._document: Optional[XmlDocument] = None
        self._dirty = False
        self._type_info: Optional[Dict[XmlNode, Any]] = None
        self._xslt_file_name: Optional[str] = None
        self._xslt_default_output: Optional[str] = None
        self._disposed = False

        self._logger = None

        self.document = XmlDocument()

    @property
    def logger(self):
        """延迟获取 Logger"""
        if self._logger is None:
            self._logger = get_logger("xml_cache")
        return self._logger

    # ============================================================
    # 属性
    # ============================================================

    @property
    def document(self) -> Optional[XmlDocument]:
        """当前文档树"""
        return self._document

    @document.setter
    def document(self, value: Optional[XmlDocument]) -> None:
        if value is self._document:
            return
        if self._document is not None:
            self._document.node_inserted.disconnect(self._on_document_changed)
            self._document.node_removed.disconnect(self._on_document_changed)
            self._document.node_changed.disconnect(self._on_document_changed)
        self._document = value
        if value is not None:
            value.node_inserted.connect(self._on_document_changed)
            value.node_removed.connect(self._on_document_changed)
            value.node_changed.connect(self._on_document_changed)

    @property
    def file_name(self) -> Optional[str]:
        """文档文件路径，新建未保存的文档为空"""
        return self._monitor.file_name

    @property
    def location(self) -> Optional[str]:
        """文档位置（文件路径或 URL）"""
        return self._monitor.file_name

    @property
    def is_file(self) -> bool:
        """文档是否来自本地文件"""
        return file_utils.is_local_location(self._monitor.file_name)

    @property
    def dirty(self) -> bool:
        """文档是否有未保存的修改"""
        return self._dirty

    @property
    def last_modified(self) -> float:
        """最近一次加载或保存时记录的文件修改时间"""
        return self._monitor.last_modified

    @property
    def xslt_file_name(self) -> Optional[str]:
        return self._xslt_file_name

    @property
    def xslt_default_output(self) -> Optional[str]:
        return self._xslt_default_output

    @property
    def config(self) -> ConfigManager:
        return self._config

    @property
    def resolver(self):
        return self._config.resolver

    @property
    def reload_monitor(self) -> ReloadMonitor:
        return self._monitor

    @property
    def type_info_map(self) -> Optional[Dict[XmlNode, Any]]:
        """外部填充的节点类型信息表"""
        return self._type_info

    @type_info_map.setter
    def type_info_map(self, value: Optional[Dict[XmlNode, Any]]) -> None:
        self._type_info = value

    def get_type_info(self, node: XmlNode) -> Optional[Any]:
        if self._type_info is None:
            return None
        return self._type_info.get(node)

    def get_line_info(self, node: XmlNode) -> Optional[LineInfo]:
        """获取节点在源文件中的位置"""
        if self._loader is None:
            return None
        return self._loader.get_line_info(node)

    # ============================================================
    # 加载
    # ============================================================

    def load(self, file: str) -> None:
        """
        从文件加载文档

        Args:
            file: 文件路径（相对路径基于当前工作目录）或 URL

        Raises:
            DocumentLoadError: 无法读取或 XML 格式错误（此时缓存状态不变）
        """
        self._load(None, file_utils.resolve_location(file))

    def load_from(self, source: DocumentSource, file_name: Optional[str]) -> None:
        """
        从已打开的来源加载文档

        Args:
            source: 文档内容（字节、文本或二进制流）
            file_name: 文档对应的文件路径，可为空
        """
        location = file_utils.resolve_location(file_name) if file_name else None
        self._load(source, location)

    def _load(self, source: DocumentSource, location: Optional[str]) -> None:
        start_time = time.perf_counter()

        loader = self._create_loader()
        document = loader.load(source, location)

        self._monitor.stop_watch()
        self._monitor.cancel_pending()
        self._type_info = None

        self._loader = loader
        self.document = document
        self._xslt_file_name = loader.xslt_file_name
        self._xslt_default_output = loader.xslt_default_output

        self._monitor.file_name = location
        self._monitor.record_modified_time()
        self._dirty = False
        self._monitor.start_watch()

        log_performance(
            "document_load",
            (time.perf_counter() - start_time) * 1000,
            extra={"location": location},
        )
        self._fire(ModelChangeType.RELOADED, document)

    def reload(self) -> None:
        """重新加载当前文件"""
        if not self.file_name:
            return
        self._load(None, self.file_name)

    def clear(self) -> None:
        """清空为无路径的新文档"""
        self._monitor.stop_watch()
        self._monitor.cancel_pending()
        self._monitor.file_name = None
        self._monitor.record_modified_time()

        self._loader = None
        self._type_info = None
        self.document = XmlDocument()
        self._xslt_file_name = None
        self._xslt_default_output = None
        self._dirty = False

        self._fire(ModelChangeType.RELOADED, self._document)

    def expand_includes(self) -> None:
        """
        展开 XInclude，替换为新的文档树并标记为已修改

        Raises:
            DocumentLoadError: XInclude 展开失败
        """
        loader = self._loader or self._create_loader()
        document = loader.expand_includes(self._document, self.location, self.get_encoding())

        self._loader = loader
        self.document = document
        self._xslt_file_name = loader.xslt_file_name
        self._xslt_default_output = loader.xslt_default_output
        self._dirty = True

        self._fire(ModelChangeType.RELOADED, document)

    def get_navigator(self):
        """
        获取磁盘文件的 lxml 树（用于 XPath 查询）

        Returns:
            lxml ElementTree，文档没有文件时为空
        """
        if not self.file_name:
            return None
        loader = self._loader or self._create_loader()
        return loader.load_navigator(self.file_name)

    def _create_loader(self) -> DomLoader:
        return DomLoader(
            self._config.resolver,
            ignore_dtd=self._config.get_bool(CONFIG_IGNORE_DTD),
            warning_handler=self._on_parser_warning,
        )

    def _on_parser_warning(self, entry) -> None:
        self.logger.debug(f"Parser warning at line {entry.line}: {entry.message}")

    # ============================================================
    # 保存
    # ============================================================

    def save(self, file: Optional[str] = None) -> None:
        """
        保存文档

        Args:
            file: 目标路径，为空时保存到当前文件

        Raises:
            DocumentSaveError: 没有目标路径或写入失败
        """
        target = file_utils.resolve_location(file) if file else self.file_name
        if not target:
            raise DocumentSaveError("", "document has no file name")

        start_time = time.perf_counter()
        self.save_copy(target)

        if not file_utils.is_same_path(target, self.file_name):
            self._monitor.file_name = target
            self._monitor.start_watch()
        self._dirty = False
        self._monitor.record_modified_time()

        log_performance(
            "document_save",
            (time.perf_counter() - start_time) * 1000,
            extra={"location": target},
        )
        self._fire(ModelChangeType.SAVED, self._document)

    def save_copy(self, file: str) -> None:
        """
        将文档写入指定文件，不改变当前路径

        no_byte_order_mark 开启时去除 BOM，并确保存在带编码的 XML 声明。
        补充声明会修改文档树（发出 NODE_INSERTED 或 NODE_CHANGED），此时 dirty 变为 True

        Raises:
            DocumentSaveError: 写入失败
        """
        location = file_utils.resolve_location(file)
        encoding = self.get_encoding()
        no_bom = self._config.get_bool(CONFIG_NO_BYTE_ORDER_MARK)
        if no_bom:
            self.add_xml_declaration_with_encoding()

        writer = XmlWriter(XmlWriterSettings.from_config(self._config, encoding))
        try:
            with self._monitor.suspend_watch():
                if no_bom:
                    if file_utils.is_remote_location(location):
                        raise ResourceResolveError(location, "remote resources are read-only")
                    buffer = io.BytesIO()
                    writer.save(self._document, buffer)
                    byte_count = file_utils.write_file_without_bom(buffer.getvalue(), location)
                else:
                    with self._config.resolver.open_write(location) as stream:
                        byte_count = writer.save(self._document, stream)
        except ResourceResolveError as e:
            log_file_operation("write", location, success=False)
            raise DocumentSaveError(location, e.reason) from e
        except OSError as e:
            log_file_operation("write", location, success=False)
            raise DocumentSaveError(location, str(e)) from e

        log_file_operation("write", location, byte_count)

    def get_encoding(self) -> str:
        """
        获取输出编码

        XML 声明中的编码可识别时使用该编码，否则回退到 utf-8
        """
        declaration = self._document.xml_declaration if self._document is not None else None
        if declaration is not None and declaration.encoding:
            try:
                codecs.lookup(declaration.encoding)
                return declaration.encoding
            except LookupError:
                self.logger.debug(f"Unknown declared encoding '{declaration.encoding}', using {DEFAULT_ENCODING}")
        return DEFAULT_ENCODING

    def add_xml_declaration_with_encoding(self) -> None:
        """确保文档以带编码的 XML 声明开头"""
        document = self._document
        declaration = document.xml_declaration
        if declaration is None:
            declaration = document.create_xml_declaration(DEFAULT_XML_VERSION, DEFAULT_ENCODING)
            document.insert_before(declaration, document.first_child)
        elif not declaration.encoding:
            declaration.encoding = DEFAULT_ENCODING

    # ============================================================
    # 文件属性
    # ============================================================

    def is_read_only(self, path: str) -> bool:
        return file_utils.is_read_only(path)

    def make_read_write(self, path: str) -> None:
        """
        清除文件只读属性

        Raises:
            FileOperationError: 修改失败
        """
        try:
            with self._monitor.suspend_watch():
                file_utils.make_read_write(path)
        except OSError as e:
            raise FileOperationError("make_read_write", path, str(e)) from e
        log_file_operation("chmod", path)

    # ============================================================
    # 批量更新
    # ============================================================

    def begin_update(self) -> None:
        self._dispatcher.begin_update(self._document)

    def end_update(self) -> None:
        self._dispatcher.end_update(self._document)

    @contextmanager
    def batch_update(self) -> Iterator["XmlCache"]:
        """批量更新上下文，退出时（含异常）结束批量"""
        self.begin_update()
        try:
            yield self
        finally:
            self.end_update()

    # ============================================================
    # 变化处理
    # ============================================================

    def _on_document_changed(self, args: NodeChangedEventArgs) -> None:
        node = args.node
        if node.node_type == XmlNodeType.PROCESSING_INSTRUCTION:
            self._update_directive(args)

        if is_xmlns_node(node) or is_xmlns_node(args.new_parent) or is_xmlns_node(args.old_parent):
            kind = ModelChangeType.NAMESPACE_CHANGED
            if args.action == NodeChangedAction.REMOVE:
                node = args.old_parent
        else:
            kind = _ACTION_KINDS[args.action]

        self._dirty = True
        self._fire(kind, node)

    def _update_directive(self, args: NodeChangedEventArgs) -> None:
        """
        同步指令缓存

        插入或修改时采用该指令的参数（不论位置），移除顶层指令时改用剩余的顶层同名指令
        """
        target = args.node.target
        if target not in (PI_XML_STYLESHEET, PI_XSL_OUTPUT):
            return

        if args.action == NodeChangedAction.REMOVE:
            if args.old_parent is not self._document:
                return
            # 被移除后查找同名的其他指令
            other = self._document.select_processing_instruction(target)
            data = other.value if other is not None else None
        else:
            data = args.node.value

        if target == PI_XML_STYLESHEET:
            self._xslt_file_name = parse_xslt_args(data)
        else:
            self._xslt_default_output = parse_xslt_output_args(data)

    @pyqtSlot()
    def _on_file_changed(self) -> None:
        if not self._disposed:
            self.file_changed.emit()

    @pyqtSlot()
    def _on_renamed(self) -> None:
        self._dirty = True
        self._fire(ModelChangeType.RENAMED, self._document)

    def _fire(self, kind: ModelChangeType, node: Optional[XmlNode]) -> None:
        if self._disposed:
            return
        self._dispatcher.fire(kind, node)

    # ============================================================
    # 释放
    # ============================================================

    def dispose(self) -> None:
        """释放缓存：取消延迟动作、停止监听，之后不再发出任何通知"""
        if self._disposed:
            return
        self._disposed = True
        self._dispatcher.close()
        self._monitor.dispose()
        self.document = None

    def __enter__(self) -> "XmlCache":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.dispose()


__all__ = [
    "XmlCache",
]
