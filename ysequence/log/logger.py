"""日志配置与获取

ysequence 内部各模块通过 get_logger() 按模块名获取日志器，日志器都挂在
"ysequence" 下。库本身不添加处理器，是否输出、输出到哪里由宿主决定：

    setup_logger("ysequence", level="DEBUG")          # 只打开本库的调试日志
    setup_root_logger(config=settings.logging)        # 按配置统一设置根日志器
"""

import inspect
import logging
import os
import time
from typing import Optional, Protocol, runtime_checkable


# 默认日志格式
DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"

_ROOT_NAME = "ysequence"


@runtime_checkable
class LoggingConfigProtocol(Protocol):
    """setup_root_logger 接受的配置对象，ysequence.config.LoggingSettings 满足该协议"""
    level: str
    file_path: str
    file_encoding: str
    enable_console: bool


class MicrosecondFormatter(logging.Formatter):
    """时间戳精确到微秒的格式化器"""

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        s = time.strftime(datefmt or "%Y-%m-%d %H:%M:%S", ct)
        return "%s.%06d" % (s, (record.created - int(record.created)) * 1000000)


def create_formatter(
    log_format: str = None,
    datefmt: str = "%Y-%m-%d %H:%M:%S",
    use_microseconds: bool = True,
) -> logging.Formatter:
    """按默认格式创建格式化器"""
    fmt = log_format or DEFAULT_LOG_FORMAT
    formatter_cls = MicrosecondFormatter if use_microseconds else logging.Formatter
    return formatter_cls(fmt=fmt, datefmt=datefmt)


def setup_logger(
    name: str = None,
    level: str = "INFO",
    log_file: str = None,
    log_format: str = None,
    console: bool = True,
    use_microseconds: bool = True,
    propagate: bool = True,
    encoding: str = "utf-8",
) -> logging.Logger:
    """配置日志器的级别和处理器

    重复调用会替换已有处理器，不会叠加。

    Args:
        name: 日志器名称，None 为根日志器
        level: 日志级别名称，无法识别时按 INFO 处理
        log_file: 日志文件路径，目录不存在时自动创建；为空则不写文件
        log_format: 日志格式，默认 DEFAULT_LOG_FORMAT
        console: 是否输出到标准错误
        use_microseconds: 时间戳是否带微秒
        propagate: 是否继续传递给上级日志器
        encoding: 日志文件编码

    Returns:
        配置后的日志器

    使用示例:
        # 查看每次操作生成的移位指令
        setup_logger("ysequence", level="DEBUG", log_file="logs/sequence.log")
    """
    target = logging.getLogger(name) if name else logging.getLogger()
    target.setLevel(getattr(logging, level.upper(), logging.INFO))
    target.propagate = propagate
    target.handlers.clear()

    formatter = create_formatter(log_format, use_microseconds=use_microseconds)
    handlers = []
    if console:
        handlers.append(logging.StreamHandler())
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding=encoding))

    for handler in handlers:
        handler.setFormatter(formatter)
        target.addHandler(handler)
    return target


def setup_root_logger(
    level: str = "INFO",
    log_file: str = None,
    console: bool = True,
    use_microseconds: bool = True,
    config: Optional[LoggingConfigProtocol] = None,
) -> logging.Logger:
    """配置根日志器

    提供 config 时，level / log_file / console 以 config 为准。
    """
    encoding = "utf-8"
    if config is not None:
        level = config.level
        log_file = config.file_path or None
        console = config.enable_console
        encoding = config.file_encoding

    return setup_logger(
        name=None,
        level=level,
        log_file=log_file,
        console=console,
        use_microseconds=use_microseconds,
        propagate=False,
        encoding=encoding,
    )


def get_logger(name: str = None) -> logging.Logger:
    """获取日志器

    Args:
        name: 日志器名称
            - None: 使用调用方模块的 __name__
            - 不含点号的简写: 加上 "ysequence." 前缀，如 "orm" -> "ysequence.orm"
            - 其他: 原样使用

    使用示例:
        logger = get_logger()   # 在 ysequence/orm/store.py 中 -> "ysequence.orm.store"
    """
    if name is None:
        frame = inspect.currentframe()
        caller = frame.f_back if frame is not None else None
        name = caller.f_globals.get("__name__", _ROOT_NAME) if caller is not None else _ROOT_NAME
    elif name != _ROOT_NAME and "." not in name:
        name = f"{_ROOT_NAME}.{name}"
    return logging.getLogger(name)
