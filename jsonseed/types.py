"""jsonseed 数值类型模块.

本模块定义了 JSON 数值的位宽标记 (INT8、INT16 ... DOUBLE)。
Python 的 `int` 与 `float` 没有位宽, 通过这些标记可以为字段或容器元素
声明取值范围:

    >>> from typing import Annotated
    >>> from jsonseed import JsonStruct, JsonField, types
    >>> class Pixel(JsonStruct):
    ...     r: int = JsonField(json_type=types.INT16)
    ...     samples: list[Annotated[int, types.INT8]] = JsonField(default_factory=list)
"""

import abc
import struct
from typing import Any, ClassVar

# 单精度往返转换
_STRUCT_f = struct.Struct(">f")


class JsonType(abc.ABC):
    """数值位宽标记的基类.

    通常用户不需要直接使用此类，而是使用具体的子类来声明字段的位宽。
    """

    # 对应的 Python 类型
    python_type: ClassVar[type] = object

    @classmethod
    @abc.abstractmethod
    def validate(cls, value: Any) -> Any:
        """验证值是否符合位宽要求.

        Args:
            value: 待验证的值 (已经过类型检查).

        Returns:
            Any: 验证后的值.

        Raises:
            ValueError: 值超出范围时.
        """
        raise NotImplementedError


class INT(JsonType):
    """JSON 整数类型 (无位宽限制).

    对应 Python 的 `int`。需要限定范围时使用具体的子类
    (`INT8`, `INT16`, `INT32`, `INT64`)。
    """

    python_type = int
    min_value: ClassVar[int | None] = None
    max_value: ClassVar[int | None] = None

    @classmethod
    def validate(cls, value: Any) -> Any:
        """验证整数范围."""
        if cls.min_value is not None and value < cls.min_value:
            raise ValueError(f"{value} is out of range for {cls.__name__}")
        if cls.max_value is not None and value > cls.max_value:
            raise ValueError(f"{value} is out of range for {cls.__name__}")
        return value


class INT8(INT):
    """1 字节整数 (Byte).

    范围: -128 到 127.
    """

    min_value = -128
    max_value = 127


class INT16(INT):
    """2 字节整数 (Short).

    范围: -32768 到 32767.
    """

    min_value = -32768
    max_value = 32767


class INT32(INT):
    """4 字节整数 (Int).

    范围: -2147483648 到 2147483647.
    """

    min_value = -2147483648
    max_value = 2147483647


class INT64(INT):
    """8 字节整数 (Long).

    范围: -9223372036854775808 到 9223372036854775807.
    """

    min_value = -9223372036854775808
    max_value = 9223372036854775807


class DOUBLE(JsonType):
    """双精度浮点数 (Double).

    对应 Python 的 `float`, 即默认的浮点类型。
    """

    python_type = float

    @classmethod
    def validate(cls, value: Any) -> Any:
        """双精度不需要额外转换."""
        try:
            return float(value)
        except OverflowError as e:
            raise ValueError("Integer is out of range for DOUBLE") from e


class FLOAT(DOUBLE):
    """单精度浮点数 (Float).

    解码时值会被舍入到最接近的单精度浮点数。
    """

    @classmethod
    def validate(cls, value: Any) -> Any:
        """舍入到单精度."""
        try:
            return _STRUCT_f.unpack(_STRUCT_f.pack(float(value)))[0]
        except OverflowError as e:
            raise ValueError(f"{value} is out of range for FLOAT") from e


def find_json_type(metadata: Any) -> type[JsonType] | None:
    """在 `Annotated` 元数据中查找位宽标记."""
    for item in metadata:
        if isinstance(item, type) and issubclass(item, JsonType):
            return item
    return None
