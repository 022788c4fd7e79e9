"""配置模块

提供配置管理功能：
- SequenceSettings: 序号维护配置，支持 YAML + 环境变量
- LoggingSettings: 日志配置
- ConfigLoader: YAML 配置加载器

快速开始:
    from ysequence.config import SequenceSettings, load_yaml_config

    settings = load_yaml_config("config/sequence.yaml", SequenceSettings)
    config = settings.collection_config("tasks")

配置优先级: YAML 文件（构造参数）> 环境变量 > 默认值
"""

from .settings import (
    LoggingSettings,
    SequenceSettings,
)

from .loader import (
    ConfigLoader,
    load_yaml_config,
)

__all__ = [
    # Settings Classes
    "LoggingSettings",
    "SequenceSettings",

    # Config Loader
    "ConfigLoader",
    "load_yaml_config",
]
