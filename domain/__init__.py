# Domain Layer
"""
领域层 - 核心文档模型

包含：
- document/: 可观察的 XML 文档树、加载器、写出器
"""
