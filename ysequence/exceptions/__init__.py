"""异常模块

提供序号维护的异常类体系。

使用示例:
    from ysequence.exceptions import SequenceError, StoreUpdateFailedError

    try:
        session.commit()
    except StoreUpdateFailedError as e:
        session.rollback()
        logger.error("序号移位失败: %s", e.to_dict())
"""

from .exceptions import (
    ErrorCode,
    ErrorCodeType,
    SequenceError,
    SequenceConfigurationError,
    RecordNotFoundError,
    StoreUpdateFailedError,
    OrderValueError,
)

__all__ = [
    "ErrorCode",
    "ErrorCodeType",
    "SequenceError",                # 基类
    "SequenceConfigurationError",   # 配置阶段错误
    "RecordNotFoundError",          # 更新/删除的记录不存在
    "StoreUpdateFailedError",       # 移位更新失败
    "OrderValueError",              # 序号值非法
]
