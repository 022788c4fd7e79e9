"""序号配置

定义每个集合（表）的序号维护配置，配置在启动时确定，之后不可修改。

使用示例:
    from ysequence.sequence import SequenceConfig

    # 不分组，排序字段为 order，从 0 开始
    config = SequenceConfig()

    # 按 list_id 分组，从 1 开始
    config = SequenceConfig(order_field="position", group_fields=("list_id",), start_at=1)

    # 兼容简写：字符串表示排序字段名
    config = SequenceConfig.from_options("position")
    config = SequenceConfig.from_options({"group_fields": "list_id"})
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Tuple, Union

from ysequence.exceptions import SequenceConfigurationError


# 字段名只允许合法标识符，调用方无需再做转义
_FIELD_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DEFAULT_ORDER_FIELD = "order"
DEFAULT_START_AT = 0


class OutOfRangePolicy(str, Enum):
    """越界序号处理策略

    - CLAMP: 收敛到合法区间 [start_at, 最大序号 + 1]（同组移动为 [start_at, 最大序号]）
    - REJECT: 抛出 OrderValueError
    - ALLOW: 原样使用（可能产生间隙）
    """
    CLAMP = "clamp"
    REJECT = "reject"
    ALLOW = "allow"


def _check_field_name(name: Any, option: str) -> str:
    if not isinstance(name, str) or not _FIELD_NAME_PATTERN.match(name):
        raise SequenceConfigurationError(
            f"{option} 不是合法的字段名: {name!r}",
            field=option,
        )
    return name


def normalize_group_fields(group_fields: Any) -> Tuple[str, ...]:
    """将分组字段配置统一为元组

    Args:
        group_fields: None / False / 空值表示不分组，字符串表示单字段，序列表示多字段

    Returns:
        分组字段元组
    """
    if not group_fields:
        return ()
    if isinstance(group_fields, str):
        return (group_fields,)
    return tuple(group_fields)


@dataclass(frozen=True)
class SequenceConfig:
    """序号配置

    Attributes:
        order_field: 存储序号的整数字段名
        group_fields: 分组字段，为空表示整个集合是一个分组
        start_at: 空分组中第一条记录的序号
        out_of_range: 越界序号处理策略
    """
    order_field: str = DEFAULT_ORDER_FIELD
    group_fields: Tuple[str, ...] = field(default_factory=tuple)
    start_at: int = DEFAULT_START_AT
    out_of_range: OutOfRangePolicy = OutOfRangePolicy.CLAMP

    def __post_init__(self):
        _check_field_name(self.order_field, "order_field")

        group_fields = normalize_group_fields(self.group_fields)
        for name in group_fields:
            _check_field_name(name, "group_fields")
        if len(set(group_fields)) != len(group_fields):
            raise SequenceConfigurationError(
                f"group_fields 中存在重复字段: {list(group_fields)}",
                field="group_fields",
            )
        if self.order_field in group_fields:
            raise SequenceConfigurationError(
                f"排序字段 '{self.order_field}' 不能同时作为分组字段",
                field="group_fields",
            )
        # frozen dataclass 只能通过 object.__setattr__ 规范化字段
        object.__setattr__(self, "group_fields", group_fields)

        if isinstance(self.start_at, bool) or not isinstance(self.start_at, int):
            raise SequenceConfigurationError(
                f"start_at 必须是整数: {self.start_at!r}",
                field="start_at",
            )

        try:
            policy = OutOfRangePolicy(self.out_of_range)
        except ValueError:
            raise SequenceConfigurationError(
                f"不支持的越界策略: {self.out_of_range!r}",
                field="out_of_range",
            ) from None
        object.__setattr__(self, "out_of_range", policy)

    @property
    def is_grouped(self) -> bool:
        """是否启用了分组"""
        return bool(self.group_fields)

    @classmethod
    def from_options(
        cls,
        options: Union[None, str, Mapping[str, Any], "SequenceConfig"] = None,
        **defaults: Any
    ) -> "SequenceConfig":
        """从宽松的配置项构造 SequenceConfig

        Args:
            options: 配置项
                - None: 全部使用默认值
                - str: 排序字段名的简写
                - Mapping: order_field / group_fields / start_at / out_of_range
                - SequenceConfig: 原样返回
            **defaults: options 中未给出时使用的默认值

        Returns:
            SequenceConfig 实例

        Raises:
            SequenceConfigurationError: 配置项非法
        """
        if isinstance(options, SequenceConfig):
            return options
        if options is None:
            options = {}
        elif isinstance(options, str):
            options = {"order_field": options}
        elif not isinstance(options, Mapping):
            raise SequenceConfigurationError(
                f"无法识别的序号配置: {options!r}",
            )

        known = {"order_field", "group_fields", "start_at", "out_of_range"}
        unknown = set(options) - known
        if unknown:
            raise SequenceConfigurationError(
                f"未知的序号配置项: {sorted(unknown)}",
            )

        merged = {k: v for k, v in defaults.items() if k in known}
        merged.update(options)
        merged["group_fields"] = normalize_group_fields(merged.get("group_fields"))
        return cls(**merged)


__all__ = [
    "SequenceConfig",
    "OutOfRangePolicy",
    "normalize_group_fields",
    "DEFAULT_ORDER_FIELD",
    "DEFAULT_START_AT",
]
