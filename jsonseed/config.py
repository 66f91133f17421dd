"""jsonseed 配置对象."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .options import JsonOption


@dataclass(frozen=True)
class JsonConfig:
    """序列化/反序列化配置 (不可变).

    这是所有配置的统一容器, 在 API 入口层创建,
    然后传递给 Encoder/Decoder 内核.

    Attributes:
        flags: 选项标志 (IntFlag).
        default: 无法编码的值的回退转换函数.
        exclude_unset: 是否排除未设置的字段 (仅 Pydantic 模型).
        max_depth: 最大嵌套深度, None 表示不限制.
    """

    flags: JsonOption = JsonOption.NONE
    default: Callable[[Any], Any] | None = None
    exclude_unset: bool = False
    max_depth: int | None = None

    @classmethod
    def from_params(
        cls,
        option: JsonOption = JsonOption.NONE,
        default: Callable[[Any], Any] | None = None,
        exclude_unset: bool = False,
        max_depth: int | None = None,
    ) -> "JsonConfig":
        """从参数构建配置对象.

        Args:
            option: JsonOption 枚举.
            default: 无法编码的值的回退转换函数.
            exclude_unset: 是否排除未设置的字段.
            max_depth: 最大嵌套深度.

        Returns:
            JsonConfig: 配置对象.
        """
        if max_depth is not None and max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {max_depth}")

        return cls(
            flags=JsonOption(option),
            default=default,
            exclude_unset=exclude_unset,
            max_depth=max_depth,
        )

    @property
    def compact(self) -> bool:
        """是否使用紧凑分隔符."""
        return bool(self.flags & JsonOption.COMPACT)

    @property
    def omit_none(self) -> bool:
        """是否跳过 None 字段."""
        return bool(self.flags & JsonOption.OMIT_NONE)

    @property
    def ignore_unknown(self) -> bool:
        """是否忽略未知字段."""
        return bool(self.flags & JsonOption.IGNORE_UNKNOWN)

    @property
    def option(self) -> int:
        """返回 int 形式的 option 值."""
        return int(self.flags)
