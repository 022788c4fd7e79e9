"""日志模块

提供日志配置与获取：
- get_logger: 按模块名获取日志记录器
- setup_logger / setup_root_logger: 控制台 + 文件输出配置

使用示例:
    from ysequence.log import setup_logger, get_logger

    # 打开序号维护的调试日志
    setup_logger("ysequence", level="DEBUG")

    logger = get_logger()
"""

from .logger import (
    LoggingConfigProtocol,
    setup_logger,
    setup_root_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    get_logger,
)

__all__ = [
    "LoggingConfigProtocol",
    "setup_logger",
    "setup_root_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "get_logger",
]
