"""类型驱动的 JSON 序列化库.

提供了 JsonStruct 定义、序列化(dumps)和反序列化(loads)功能.
解码时由目标类型 (而不是 JSON 的形状) 决定如何构建值.
"""

from . import types
from .adapter import JsonTypeAdapter
from .api import dump, dumps, load, loads
from .codecs import (
    CodecRegistry,
    DateTimeCodec,
    ScalarCodec,
    default_registry,
)
from .config import JsonConfig
from .exceptions import (
    JsonDecodeError,
    JsonEncodeError,
    JsonError,
    JsonMalformedError,
    JsonSchemaError,
)
from .options import JsonOption
from .schema import SchemaCache, TypeSchema
from .struct import JsonField, JsonStruct
from .types import (
    DOUBLE,
    FLOAT,
    INT,
    INT8,
    INT16,
    INT32,
    INT64,
    JsonType,
)

__version__ = "0.1.0"

__all__ = [
    "DOUBLE",
    "FLOAT",
    "INT",
    "INT8",
    "INT16",
    "INT32",
    "INT64",
    "CodecRegistry",
    "DateTimeCodec",
    "JsonConfig",
    "JsonDecodeError",
    "JsonEncodeError",
    "JsonError",
    "JsonField",
    "JsonMalformedError",
    "JsonOption",
    "JsonSchemaError",
    "JsonStruct",
    "JsonType",
    "JsonTypeAdapter",
    "ScalarCodec",
    "SchemaCache",
    "TypeSchema",
    "__version__",
    "default_registry",
    "dump",
    "dumps",
    "load",
    "loads",
    "types",
]
