"""标量编解码器.

该模块定义了 `ScalarCodec` 接口、内置的标量编解码器,
以及按类型查找编解码器的 `CodecRegistry`.
"""

import abc
import enum
import types as stdlib_types
from datetime import datetime
from typing import (
    Annotated,
    Any,
    Generic,
    TypeVar,
    Union,
    get_args,
    get_origin,
)

from .exceptions import JsonDecodeError, JsonEncodeError, JsonSchemaError
from .types import DOUBLE, INT, JsonType, find_json_type

T = TypeVar("T")
E = TypeVar("E", bound=enum.Enum)

JsonScalar = str | int | float | bool | None


def unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """拆解 `Optional[X]`.

    Returns:
        tuple[Any, bool]: (去掉 None 后的类型, 是否可为 None).
            多成员联合类型原样返回.
    """
    origin = get_origin(annotation)
    if origin is Union or origin is stdlib_types.UnionType:
        args = get_args(annotation)
        non_none = [a for a in args if a is not type(None)]
        nullable = len(non_none) != len(args)
        if len(non_none) == 1:
            return non_none[0], nullable
        return annotation, nullable
    return annotation, False


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    return f"{type(value).__name__} {value!r}"


class ScalarCodec(abc.ABC, Generic[T]):
    """标量编解码器的基类.

    编解码必须对称: `decode(encode(v)) == v`。
    自定义叶子类型 (如日期) 通过继承此类并注册到 `CodecRegistry`,
    或通过 `JsonField(codec=...)` 绑定到单个字段。
    """

    # decode 是否接受 null
    accepts_null: bool = False

    @abc.abstractmethod
    def encode(self, value: T) -> JsonScalar:
        """将 Python 值转换为 JSON 标量."""
        raise NotImplementedError

    @abc.abstractmethod
    def decode(self, value: JsonScalar) -> T:
        """将 JSON 标量转换为 Python 值.

        Raises:
            JsonDecodeError: JSON 标量的类型与期望不一致.
        """
        raise NotImplementedError


class IntCodec(ScalarCodec[int]):
    """整数编解码器, 可选位宽."""

    def __init__(self, json_type: type[INT] = INT):
        self.json_type = json_type

    def decode(self, value: JsonScalar) -> int:
        """只接受整数 Token, 不接受 bool 与字符串."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise JsonDecodeError(f"Expected integer, was: {_describe(value)}")
        try:
            return self.json_type.validate(value)
        except ValueError as e:
            raise JsonDecodeError(str(e)) from e

    def encode(self, value: int) -> JsonScalar:
        """编码整数."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise JsonEncodeError(f"Expected integer, was: {_describe(value)}")
        try:
            return self.json_type.validate(value)
        except ValueError as e:
            raise JsonEncodeError(str(e)) from e


class FloatCodec(ScalarCodec[float]):
    """浮点数编解码器, 可选单/双精度."""

    def __init__(self, json_type: type[DOUBLE] = DOUBLE):
        self.json_type = json_type

    def decode(self, value: JsonScalar) -> float:
        """接受整数与浮点 Token."""
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise JsonDecodeError(f"Expected number, was: {_describe(value)}")
        try:
            return self.json_type.validate(value)
        except ValueError as e:
            raise JsonDecodeError(str(e)) from e

    def encode(self, value: float) -> JsonScalar:
        """编码浮点数."""
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise JsonEncodeError(f"Expected number, was: {_describe(value)}")
        try:
            return self.json_type.validate(value)
        except ValueError as e:
            raise JsonEncodeError(str(e)) from e


class BoolCodec(ScalarCodec[bool]):
    """布尔编解码器."""

    def decode(self, value: JsonScalar) -> bool:
        """只接受 true/false."""
        if not isinstance(value, bool):
            raise JsonDecodeError(f"Expected boolean, was: {_describe(value)}")
        return value

    def encode(self, value: bool) -> JsonScalar:
        """编码布尔值."""
        if not isinstance(value, bool):
            raise JsonEncodeError(f"Expected boolean, was: {_describe(value)}")
        return value


class StringCodec(ScalarCodec[str | None]):
    """字符串编解码器 (可为 null)."""

    accepts_null = True

    def decode(self, value: JsonScalar) -> str | None:
        """接受字符串或 null."""
        if value is not None and not isinstance(value, str):
            raise JsonDecodeError(f"Expected string, was: {_describe(value)}")
        return value

    def encode(self, value: str | None) -> JsonScalar:
        """编码字符串."""
        if value is not None and not isinstance(value, str):
            raise JsonEncodeError(f"Expected string, was: {_describe(value)}")
        return value


class EnumCodec(ScalarCodec[E]):
    """枚举编解码器, 按成员名称 (区分大小写) 匹配."""

    def __init__(self, enum_cls: type[E]):
        self.enum_cls = enum_cls

    def decode(self, value: JsonScalar) -> E:
        """按名称查找枚举成员."""
        if not isinstance(value, str):
            raise JsonDecodeError(f"Expected string, was: {_describe(value)}")
        member = self.enum_cls.__members__.get(value)
        if member is None:
            raise JsonDecodeError(
                f"Invalid {self.enum_cls.__name__} member name {value!r}"
            )
        return member

    def encode(self, value: E) -> JsonScalar:
        """编码为成员名称."""
        if not isinstance(value, self.enum_cls):
            raise JsonEncodeError(
                f"Expected {self.enum_cls.__name__}, was: {_describe(value)}"
            )
        return value.name


class NullableCodec(ScalarCodec[T | None]):
    """为其他编解码器增加 null 支持 (用于 `Optional[X]`)."""

    accepts_null = True

    def __init__(self, inner: ScalarCodec[T]):
        self.inner = inner

    def decode(self, value: JsonScalar) -> T | None:
        """null 直接返回 None."""
        if value is None:
            return None
        return self.inner.decode(value)

    def encode(self, value: T | None) -> JsonScalar:
        """None 直接编码为 null."""
        if value is None:
            return None
        return self.inner.encode(value)


class DateTimeCodec(ScalarCodec[datetime]):
    """日期时间编解码器, 以指定格式的字符串表示.

    Examples:
        >>> from jsonseed import JsonStruct, JsonField
        >>> class Event(JsonStruct):
        ...     at: datetime = JsonField(codec=DateTimeCodec("%d-%m-%Y"))
    """

    def __init__(self, fmt: str = "%Y-%m-%dT%H:%M:%S"):
        self.fmt = fmt

    def decode(self, value: JsonScalar) -> datetime:
        """按格式解析字符串."""
        if not isinstance(value, str):
            raise JsonDecodeError(
                f"Expected string for date, was: {_describe(value)}"
            )
        try:
            return datetime.strptime(value, self.fmt)
        except ValueError as e:
            raise JsonDecodeError(f"Failed to parse date: {value!r}") from e

    def encode(self, value: datetime) -> JsonScalar:
        """按格式输出字符串."""
        if not isinstance(value, datetime):
            raise JsonEncodeError(f"Expected datetime, was: {_describe(value)}")
        return value.strftime(self.fmt)


class CodecRegistry:
    """按类型查找标量编解码器.

    内置支持 `int`, `float`, `bool`, `str`, 所有 `Enum` 子类,
    以及通过 `Annotated[int, types.INT8]` 等方式声明的位宽。
    """

    def __init__(self) -> None:
        self._codecs: dict[Any, ScalarCodec[Any]] = {
            bool: BoolCodec(),
            int: IntCodec(),
            float: FloatCodec(),
            str: StringCodec(),
        }
        self._width_codecs: dict[type[JsonType], ScalarCodec[Any]] = {}
        self._enum_codecs: dict[type[enum.Enum], ScalarCodec[Any]] = {}

    def register(self, tp: Any, codec: ScalarCodec[Any]) -> None:
        """注册自定义叶子类型的编解码器.

        Args:
            tp: Python 类型.
            codec: 满足对称编解码约定的 `ScalarCodec` 实例.
        """
        if not isinstance(codec, ScalarCodec):
            raise TypeError(f"Expected ScalarCodec instance, got {type(codec)}")
        self._codecs[tp] = codec

    def is_scalar(self, annotation: Any) -> bool:
        """判断类型是否为标量 (存在编解码器)."""
        return self.codec_for(annotation) is not None

    def codec_for(
        self, annotation: Any, json_type: type[JsonType] | None = None
    ) -> ScalarCodec[Any] | None:
        """查找类型对应的编解码器.

        Args:
            annotation: 类型注解.
            json_type: 显式指定的位宽标记.

        Returns:
            ScalarCodec | None: 不是标量类型时返回 None.

        Raises:
            JsonSchemaError: 位宽标记与类型不匹配.
        """
        if get_origin(annotation) is Annotated:
            base, *metadata = get_args(annotation)
            return self.codec_for(base, find_json_type(metadata) or json_type)

        inner, nullable = unwrap_optional(annotation)
        if nullable:
            if inner is annotation:
                return None
            codec = self.codec_for(inner, json_type)
            if codec is None or codec.accepts_null:
                return codec
            return NullableCodec(codec)

        if json_type is not None:
            return self._width_codec(annotation, json_type)

        if isinstance(annotation, type) and issubclass(annotation, enum.Enum):
            codec = self._enum_codecs.get(annotation)
            if codec is None:
                codec = self._enum_codecs.setdefault(annotation, EnumCodec(annotation))
            return codec

        try:
            return self._codecs.get(annotation)
        except TypeError:
            # 不可哈希的注解 (如某些泛型别名)
            return None

    def _width_codec(
        self, annotation: Any, json_type: type[JsonType]
    ) -> ScalarCodec[Any]:
        if annotation is not json_type.python_type:
            raise JsonSchemaError(
                f"{json_type.__name__} cannot be applied to {annotation!r}"
            )
        codec = self._width_codecs.get(json_type)
        if codec is None:
            if issubclass(json_type, INT):
                codec = IntCodec(json_type)
            elif issubclass(json_type, DOUBLE):
                codec = FloatCodec(json_type)
            else:
                raise JsonSchemaError(f"Unsupported json_type {json_type!r}")
            self._width_codecs[json_type] = codec
        return codec


def resolve_codec_ref(ref: Any) -> ScalarCodec[Any]:
    """将字段上声明的编解码器引用 (实例或无参类) 转换为实例."""
    if isinstance(ref, ScalarCodec):
        return ref
    if isinstance(ref, type) and issubclass(ref, ScalarCodec):
        return ref()
    raise JsonSchemaError(f"Invalid codec reference: {ref!r}")


default_registry = CodecRegistry()
