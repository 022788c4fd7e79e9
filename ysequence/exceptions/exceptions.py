"""序号维护异常类定义

定义序号维护使用的异常类体系。
"""

import copy
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ErrorCode(str, Enum):
    """错误代码枚举

    继承自 str，可以直接作为字符串使用和比较。

    使用示例:
        try:
            sequencer.before_delete(record_id)
        except SequenceError as e:
            if e.code == ErrorCode.RECORD_NOT_FOUND:
                ...
    """

    # ==================== 通用错误 ====================
    SEQUENCE_ERROR = "SEQUENCE_ERROR"

    # ==================== 配置相关 ====================
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # ==================== 记录相关 ====================
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"

    # ==================== 存储相关 ====================
    STORE_UPDATE_FAILED = "STORE_UPDATE_FAILED"

    # ==================== ORM 相关 ====================
    GROUP_CHANGED_TWICE_IN_FLUSH = "GROUP_CHANGED_TWICE_IN_FLUSH"

    # ==================== 序号值相关 ====================
    INVALID_ORDER_VALUE = "INVALID_ORDER_VALUE"
    ORDER_OUT_OF_RANGE = "ORDER_OUT_OF_RANGE"


# 类型别名，支持枚举和字符串
ErrorCodeType = Union[str, ErrorCode]


class SequenceError(Exception):
    """序号维护异常基类

    属性:
        message: 错误消息
        code: 错误代码（ErrorCode 枚举或字符串）
        details: 详细错误信息列表
        extra: 额外的上下文信息
    """

    default_code: ErrorCodeType = ErrorCode.SEQUENCE_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCodeType] = None,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or []
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式

        Returns:
            包含异常信息的字典
        """
        return {
            "message": self.message,
            "code": self.code,
            # 返回深拷贝，避免调用方修改返回值反向污染异常对象内部状态
            "details": copy.deepcopy(self.details),
            "extra": copy.deepcopy(self.extra),
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r})"
        )


class SequenceConfigurationError(SequenceError):
    """序号配置异常

    在配置阶段（模型定义、SequenceConfig 构造）发现配置非法时抛出，
    例如分组字段与排序字段同名、字段名不是合法标识符。

    Attributes:
        field: 出错的配置项或字段名
    """

    default_code = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str, field: Optional[str] = None, **extra: Any):
        self.field = field
        super().__init__(message, field=field, **extra)


class RecordNotFoundError(SequenceError):
    """记录不存在异常

    更新或删除前读取当前序号/分组时找不到记录。

    Attributes:
        collection: 集合（表）名称
        record_id: 记录主键
    """

    default_code = ErrorCode.RECORD_NOT_FOUND

    def __init__(self, collection: str, record_id: Any, message: Optional[str] = None):
        self.collection = collection
        self.record_id = record_id
        super().__init__(
            message or f"记录不存在: {collection}[{record_id!r}]",
            collection=collection,
            record_id=record_id,
        )


class StoreUpdateFailedError(SequenceError):
    """批量移位更新失败异常

    记录本身的写入已经完成，兄弟记录的序号可能处于不连续状态，
    是否回滚由调用方的事务决定。

    Attributes:
        instruction: 失败的移位指令（单条失败时）
        result: 整个操作的提交结果（汇总失败时）
    """

    default_code = ErrorCode.STORE_UPDATE_FAILED

    def __init__(
        self,
        message: str = "序号移位更新失败",
        instruction: Any = None,
        result: Any = None,
        **extra: Any
    ):
        self.instruction = instruction
        self.result = result
        super().__init__(message, **extra)


class OrderValueError(SequenceError):
    """序号值异常

    序号值无法转换为整数，或在 REJECT 策略下超出允许范围时抛出。

    Attributes:
        value: 非法的序号值
    """

    default_code = ErrorCode.INVALID_ORDER_VALUE

    def __init__(
        self,
        message: str,
        value: Any = None,
        code: Optional[ErrorCodeType] = None,
        **extra: Any
    ):
        self.value = value
        super().__init__(message, code=code, value=value, **extra)


__all__ = [
    "ErrorCode",
    "ErrorCodeType",
    "SequenceError",
    "SequenceConfigurationError",
    "RecordNotFoundError",
    "StoreUpdateFailedError",
    "OrderValueError",
]
