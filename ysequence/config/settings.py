"""
配置模块
提供序号维护的默认配置，业务项目可以继承并覆盖
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Any, Dict

from ..sequence.config import (
    DEFAULT_ORDER_FIELD,
    DEFAULT_START_AT,
    OutOfRangePolicy,
    SequenceConfig,
)


class LoggingSettings(BaseSettings):
    """日志配置

    使用示例:
        from ysequence.config import LoggingSettings
        from ysequence.log import setup_root_logger

        log_config = LoggingSettings(level="DEBUG", file_path="logs/sequence.log")
        setup_root_logger(config=log_config)
    """
    level: str = Field(default="INFO", description="日志级别")
    file_path: str = Field(default="", description="日志文件路径，为空表示不写文件")
    file_encoding: str = Field(default="utf-8", description="文件编码")
    enable_console: bool = Field(default=True, description="是否启用控制台输出")

    class Config:
        env_prefix = "YSEQUENCE_LOG_"


class SequenceSettings(BaseSettings):
    """序号维护配置

    顶层字段是所有集合共用的默认值，collections 中可以按集合（表）名覆盖。
    同时支持 YAML 配置文件和环境变量两种方式，可混合使用。

    配置优先级（从高到低）:
        YAML 配置文件（构造参数）> 环境变量 > 代码中的默认值

    使用示例:
        from ysequence.config import SequenceSettings, load_yaml_config

        settings = load_yaml_config("config/sequence.yaml", SequenceSettings)
        config = settings.collection_config("tasks")
        sequencer = Sequencer(config, store)

    YAML 配置示例 (config/sequence.yaml):
        order_field: "position"
        start_at: 1
        out_of_range: "clamp"
        collections:
          tasks:
            group_fields: ["board_id", "column_id"]
          tags:
            order_field: "weight"
            start_at: 0
        logging:
          level: "DEBUG"
    """
    order_field: str = Field(default=DEFAULT_ORDER_FIELD, description="默认排序字段")
    start_at: int = Field(default=DEFAULT_START_AT, description="默认起始序号")
    out_of_range: OutOfRangePolicy = Field(
        default=OutOfRangePolicy.CLAMP,
        description="越界序号处理策略：clamp / reject / allow",
    )
    collections: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="按集合名覆盖的序号配置",
    )
    logging: LoggingSettings = LoggingSettings()

    def collection_config(self, name: str) -> SequenceConfig:
        """获取集合的序号配置

        Args:
            name: 集合（表）名，未在 collections 中配置时使用默认值

        Returns:
            SequenceConfig 实例

        Raises:
            SequenceConfigurationError: 集合配置非法
        """
        return SequenceConfig.from_options(
            self.collections.get(name),
            order_field=self.order_field,
            start_at=self.start_at,
            out_of_range=self.out_of_range,
        )

    class Config:
        env_prefix = "YSEQUENCE_"
        env_nested_delimiter = "__"  # 支持 YSEQUENCE_LOGGING__LEVEL


__all__ = [
    "LoggingSettings",
    "SequenceSettings",
]
