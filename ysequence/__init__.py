"""
YSequence - 连续序号维护库

在插入、调整顺序、跨组移动和删除记录时，自动移位同组其他记录，
使每个分组内的序号字段始终连续递增
"""

from .version import __version__, __author__, __description__

# 导出核心算法
from .sequence import (
    SequenceConfig,
    OutOfRangePolicy,
    OperationKind,
    OrderState,
    RangeCondition,
    RecordFilter,
    ShiftInstruction,
    Plan,
    Sequencer,
    CommitResult,
    SequenceStore,
    MemoryStore,
)

# 导出ORM集成
from .orm import (
    SequenceFieldMixin,
    SequenceMixin,
    SQLAlchemyStore,
)

# 导出配置
from .config import (
    SequenceSettings,
    LoggingSettings,
    ConfigLoader,
    load_yaml_config,
)

# 导出异常
from .exceptions import (
    ErrorCode,
    SequenceError,
    SequenceConfigurationError,
    RecordNotFoundError,
    StoreUpdateFailedError,
    OrderValueError,
)

# 导出日志
from .log import (
    setup_logger,
    setup_root_logger,
    get_logger,
)

__all__ = [
    # 版本
    "__version__",
    "__author__",
    "__description__",
    # 核心算法
    "SequenceConfig",
    "OutOfRangePolicy",
    "OperationKind",
    "OrderState",
    "RangeCondition",
    "RecordFilter",
    "ShiftInstruction",
    "Plan",
    "Sequencer",
    "CommitResult",
    "SequenceStore",
    "MemoryStore",
    # ORM
    "SequenceFieldMixin",
    "SequenceMixin",
    "SQLAlchemyStore",
    # 配置
    "SequenceSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_yaml_config",
    # 异常
    "ErrorCode",
    "SequenceError",
    "SequenceConfigurationError",
    "RecordNotFoundError",
    "StoreUpdateFailedError",
    "OrderValueError",
    # 日志
    "setup_logger",
    "setup_root_logger",
    "get_logger",
]
