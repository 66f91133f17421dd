"""JSON 编码器实现.

该模块提供拼接输出文本的 `JsonWriter` 和
用于将 Python 对象序列化为 JSON 文本的 `JsonEncoder`.
"""

import enum
import math
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from .config import JsonConfig
from .exceptions import JsonEncodeError, JsonError
from .log import logger
from .schema import SchemaCache, TypeKind

# 输出时只转义这七个字符, 其余字符 (包括非 ASCII) 原样输出
_ESCAPE_TABLE = str.maketrans(
    {
        "\\": "\\\\",
        '"': '\\"',
        "\b": "\\b",
        "\f": "\\f",
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
    }
)


class JsonWriter:
    """JSON 文本的写入器."""

    __slots__ = ("_item_sep", "_key_sep", "_parts")

    def __init__(self, compact: bool = False):
        self._parts: list[str] = []
        self._item_sep = "," if compact else ", "
        self._key_sep = ":" if compact else ": "

    def get_text(self) -> str:
        """返回累积的文本."""
        return "".join(self._parts)

    def write_raw(self, text: str) -> None:
        """写入字面量 (数字、true/false/null)."""
        self._parts.append(text)

    def write_string(self, value: str) -> None:
        """写入带引号并转义的字符串."""
        self._parts.append(f'"{value.translate(_ESCAPE_TABLE)}"')

    def write_list(self, value: Iterable[Any], encoder: "JsonEncoder") -> None:
        """写一个数组."""
        self._parts.append("[")
        for i, item in enumerate(value):
            if i:
                self._parts.append(self._item_sep)
            try:
                encoder.encode_value(item)
            except JsonError as e:
                e.loc.insert(0, i)
                raise
        self._parts.append("]")

    def write_object(
        self, items: Iterable[tuple[str, Any]], encoder: "JsonEncoder"
    ) -> None:
        """写一个对象, `items` 为 (字段名, 值) 序列."""
        self._parts.append("{")
        for i, (key, value) in enumerate(items):
            if i:
                self._parts.append(self._item_sep)
            self.write_string(key)
            self._parts.append(self._key_sep)
            try:
                encoder.encode_value(value)
            except JsonError as e:
                e.loc.insert(0, key)
                raise
        self._parts.append("}")


class JsonEncoder:
    """递归 JSON 编码器.

    不检测循环引用, 循环对象图会以 `RecursionError` 结束。
    """

    __slots__ = (
        "_cache",
        "_config",
        "_writer",
    )

    def __init__(self, config: JsonConfig, cache: SchemaCache):
        self._config = config
        self._cache = cache
        self._writer = JsonWriter(config.compact)

    def encode(self, obj: Any) -> str:
        """编码入口."""
        type_name = type(obj).__qualname__
        logger.debug("[JsonEncoder] 开始编码 %s", type_name)
        try:
            self.encode_value(obj)
        except JsonError as e:
            logger.debug("[JsonEncoder] 编码 %s 时出错: %s", type_name, e)
            raise

        text = self._writer.get_text()
        logger.debug("[JsonEncoder] 成功编码 %d 个字符", len(text))
        return text

    def encode_value(self, value: Any) -> None:
        """编码单个值.

        Raises:
            JsonEncodeError: 值的类型无法编码, 或浮点数不是有限值.
        """
        writer = self._writer
        if value is None:
            writer.write_raw("null")
        # Enum 要先于 str/int 判断 (StrEnum, IntEnum)
        elif isinstance(value, enum.Enum):
            writer.write_string(value.name)
        elif isinstance(value, bool):
            writer.write_raw("true" if value else "false")
        elif isinstance(value, str):
            writer.write_string(value)
        elif isinstance(value, int):
            writer.write_raw(str(int(value)))
        elif isinstance(value, float):
            writer.write_raw(_float_text(value))
        elif isinstance(value, BaseModel):
            self._encode_struct_fields(value)
        elif isinstance(value, Mapping):
            writer.write_object(
                ((self._key_text(k), v) for k, v in value.items()), self
            )
        elif isinstance(value, (list, tuple)):
            writer.write_list(value, self)
        else:
            self._encode_other(value)

    def _encode_other(self, value: Any) -> None:
        codec = self._cache.registry.codec_for(type(value))
        if codec is not None:
            self.encode_value(codec.encode(value))
        elif self._config.default:
            self.encode_value(self._config.default(value))
        else:
            raise JsonEncodeError(f"Cannot encode type: {type(value)}")

    def _encode_struct_fields(self, obj: BaseModel) -> None:
        schema = self._cache.resolve(type(obj))
        fields_set = obj.model_fields_set

        def items() -> Iterable[tuple[str, Any]]:
            for param in schema.parameters:
                if param.excluded:
                    continue
                if self._config.exclude_unset and param.name not in fields_set:
                    continue

                val = getattr(obj, param.name)
                if val is None and self._config.omit_none:
                    continue
                if param.kind is TypeKind.SCALAR:
                    try:
                        val = param.encode(val)
                    except JsonError as e:
                        e.loc.insert(0, param.json_name)
                        raise
                yield param.json_name, val

        self._writer.write_object(items(), self)

    @staticmethod
    def _key_text(key: Any) -> str:
        """Map 键只允许 str、数值、bool 与枚举."""
        if isinstance(key, enum.Enum):
            return key.name
        if isinstance(key, str):
            return key
        if isinstance(key, bool):
            return "true" if key else "false"
        if isinstance(key, int):
            return str(int(key))
        if isinstance(key, float):
            return _float_text(key)
        raise JsonEncodeError(f"Unsupported map key type: {type(key)}")


def _float_text(value: float) -> str:
    if not math.isfinite(value):
        raise JsonEncodeError(f"Cannot encode non-finite float {value!r}")
    return repr(float(value))
