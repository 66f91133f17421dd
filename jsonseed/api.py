"""jsonseed API模块.

提供用于 JSON 序列化和反序列化的高级接口 `dumps`, `loads`, `dump`, `load`.
解码由目标类型驱动: 同一段 JSON 可以按不同的目标类型得到不同的值。
"""

from collections.abc import Callable
from typing import IO, Any, TypeVar, overload

from pydantic import BaseModel

from .config import JsonConfig
from .decoder import SeedDecoder
from .encoder import JsonEncoder
from .options import JsonOption
from .schema import SchemaCache

T = TypeVar("T", bound=BaseModel)

# 模块级共享缓存, 可以通过 `cache=` 参数替换
_default_cache = SchemaCache()


def default_cache() -> SchemaCache:
    """返回 API 默认使用的 Schema 缓存."""
    return _default_cache


def dumps(
    obj: Any,
    option: JsonOption = JsonOption.NONE,
    default: Callable[[Any], Any] | None = None,
    exclude_unset: bool = False,
    *,
    cache: SchemaCache | None = None,
) -> str:
    """序列化对象为 JSON 文本.

    Args:
        obj: 要序列化的 Python 对象. 支持 `JsonStruct` (及任意 Pydantic 模型)
            实例, `dict`, `list`, `tuple` 与标量.
        option: 序列化选项 (如 `JsonOption.COMPACT`).
        default: 自定义序列化函数, 用于处理无法默认序列化的类型.
            函数签名应为 `def default(obj: Any) -> Any`.
        exclude_unset: 是否排除未显式设置的字段.
            仅对 Pydantic 模型有效. 默认为 False.
        cache: Schema 缓存, 默认使用模块级共享缓存.

    Returns:
        str: JSON 文本.

    Raises:
        JsonEncodeError: 值无法编码.

    Examples:
        >>> from jsonseed import dumps, JsonStruct, JsonField
        >>> class User(JsonStruct):
        ...     uid: int = JsonField()
        >>> dumps(User(uid=123))
        '{"uid": 123}'
    """
    config = JsonConfig.from_params(
        option=option,
        default=default,
        exclude_unset=exclude_unset,
    )
    encoder = JsonEncoder(config, cache if cache is not None else _default_cache)
    return encoder.encode(obj)


def dump(
    obj: Any,
    fp: IO[str],
    option: JsonOption = JsonOption.NONE,
    default: Callable[[Any], Any] | None = None,
    exclude_unset: bool = False,
    *,
    cache: SchemaCache | None = None,
) -> None:
    """序列化对象为 JSON 文本并写入文件.

    Args:
        obj: 要序列化的对象.
        fp: 文本文件对象, 必须实现 `write(str)` 方法.
        option: 序列化选项.
        default: 未知类型的默认处理函数.
        exclude_unset: 是否排除未设置的字段 (仅 Pydantic 模型).
        cache: Schema 缓存.
    """
    fp.write(
        dumps(
            obj,
            option=option,
            default=default,
            exclude_unset=exclude_unset,
            cache=cache,
        )
    )


@overload
def loads(
    text: str | IO[str],
    target: type[T],
    option: JsonOption = JsonOption.NONE,
    *,
    cache: SchemaCache | None = None,
    max_depth: int | None = None,
) -> T: ...


@overload
def loads(
    text: str | IO[str],
    target: Any,
    option: JsonOption = JsonOption.NONE,
    *,
    cache: SchemaCache | None = None,
    max_depth: int | None = None,
) -> Any: ...


def loads(
    text: str | IO[str],
    target: Any,
    option: JsonOption = JsonOption.NONE,
    *,
    cache: SchemaCache | None = None,
    max_depth: int | None = None,
) -> Any:
    """反序列化 JSON 文本为目标类型的值.

    Args:
        text: JSON 文本 (或文本流). 文档必须以对象开始.
        target: 目标类型.
            - `JsonStruct` / Pydantic 模型子类: 构造该模型实例.
            - Map 类型 (如 `dict[str, User]`): 构造字典.
        option: 反序列化选项 (如 `JsonOption.IGNORE_UNKNOWN`).
        cache: Schema 缓存, 默认使用模块级共享缓存.
        max_depth: 最大嵌套深度, None 表示不限制.

    Returns:
        目标类型的值.

    Raises:
        JsonMalformedError: 文本不符合 JSON 语法.
        JsonSchemaError: 目标类型与输入结构不匹配.
        JsonDecodeError: 标量类型不匹配.
    """
    config = JsonConfig.from_params(option=option, max_depth=max_depth)
    decoder = SeedDecoder(cache if cache is not None else _default_cache, config)
    return decoder.decode(text, target)


@overload
def load(
    fp: IO[str],
    target: type[T],
    option: JsonOption = JsonOption.NONE,
    *,
    cache: SchemaCache | None = None,
    max_depth: int | None = None,
) -> T: ...


@overload
def load(
    fp: IO[str],
    target: Any,
    option: JsonOption = JsonOption.NONE,
    *,
    cache: SchemaCache | None = None,
    max_depth: int | None = None,
) -> Any: ...


def load(
    fp: IO[str],
    target: Any,
    option: JsonOption = JsonOption.NONE,
    *,
    cache: SchemaCache | None = None,
    max_depth: int | None = None,
) -> Any:
    """从文本文件读取并反序列化 JSON.

    文件对象直接交给词法分析器逐字符读取。

    Args:
        fp: 打开的文本文件对象.
        target: 目标类型.
        option: 反序列化选项.
        cache: Schema 缓存.
        max_depth: 最大嵌套深度.

    Returns:
        解析后的对象.
    """
    return loads(fp, target, option=option, cache=cache, max_depth=max_depth)
