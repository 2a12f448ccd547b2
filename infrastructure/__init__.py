# Infrastructure Layer
"""
基础设施层 - 配置管理、资源访问、工具函数

包含：
- config/: 配置管理（settings、config_manager）
- persistence/: 文档读写异常、资源解析器（xml_resolver）
- utils/: 工具函数（logger、file_utils）
"""
