"""
默认设置常量定义

职责：定义系统级默认配置值，作为配置缺失时的回退
设计原则：纯常量定义，无业务逻辑，便于全局引用
"""

import os
from pathlib import Path

# ============================================================
# 文件监听相关默认值
# ============================================================

DEFAULT_RELOAD_DELAY_MS = 1000       # 外部修改检查的防抖延迟（毫秒）
DEFAULT_RENAME_DELAY_MS = 1          # 重命名处理延迟（仅用于切换到主线程执行）
DEFAULT_RELOAD_RETRIES = 3           # 文件被占用时的最大检查次数

# 延迟动作名称
ACTION_RELOAD = "reload"
ACTION_RENAMED = "renamed"

# ============================================================
# 编码相关默认值
# ============================================================

DEFAULT_ENCODING = "utf-8"           # 未声明或无法识别编码时的回退编码
DEFAULT_XML_VERSION = "1.0"          # 自动插入的 XML 声明版本

# ============================================================
# 处理指令名称
# ============================================================

PI_XML_STYLESHEET = "xml-stylesheet"  # 样式表引用
PI_XSL_OUTPUT = "xsl-output"          # XSLT 默认输出文件

# ============================================================
# 写出格式默认值
# ============================================================

INDENT_CHAR_SPACE = "space"
INDENT_CHAR_TAB = "tab"

DEFAULT_INDENT_LEVEL = 2
DEFAULT_INDENT_CHAR = INDENT_CHAR_SPACE
DEFAULT_NEW_LINE_CHARS = "\n"

# ============================================================
# 路径相关常量
# ============================================================

# 全局配置目录（可通过环境变量覆盖，便于测试和便携部署）
GLOBAL_CONFIG_DIR = Path(
    os.environ.get("XML_CACHE_HOME", str(Path.home() / ".xml_cache"))
)

# 全局配置文件路径
GLOBAL_CONFIG_FILE = GLOBAL_CONFIG_DIR / "config.json"

# 全局日志目录
GLOBAL_LOG_DIR = GLOBAL_CONFIG_DIR / "logs"

# ============================================================
# 配置字段名常量（避免字符串硬编码）
# ============================================================

# 读取配置
CONFIG_IGNORE_DTD = "ignore_dtd"

# 保存配置
CONFIG_NO_BYTE_ORDER_MARK = "no_byte_order_mark"

# 格式化配置
CONFIG_INDENT_LEVEL = "indent_level"
CONFIG_INDENT_CHAR = "indent_char"
CONFIG_NEW_LINE_CHARS = "new_line_chars"
CONFIG_NEW_LINE_ON_ATTRIBUTES = "new_line_on_attributes"

# ============================================================
# 默认配置模板
# ============================================================

DEFAULT_CONFIG = {
    # 读取配置
    CONFIG_IGNORE_DTD: False,

    # 保存配置
    CONFIG_NO_BYTE_ORDER_MARK: False,

    # 格式化配置
    CONFIG_INDENT_LEVEL: DEFAULT_INDENT_LEVEL,
    CONFIG_INDENT_CHAR: DEFAULT_INDENT_CHAR,
    CONFIG_NEW_LINE_CHARS: DEFAULT_NEW_LINE_CHARS,
    CONFIG_NEW_LINE_ON_ATTRIBUTES: False,
}

# 布尔类型的配置字段（用于校验）
BOOLEAN_FIELDS = [
    CONFIG_IGNORE_DTD,
    CONFIG_NO_BYTE_ORDER_MARK,
    CONFIG_NEW_LINE_ON_ATTRIBUTES,
]
