"""JSON 类型适配器.

提供类似于 Pydantic TypeAdapter 的接口,
用于绑定一个目标类型 (如 `dict[str, User]`) 并反复编解码.
"""

from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from .api import default_cache, dumps, loads
from .exceptions import JsonEncodeError, JsonSchemaError
from .options import JsonOption
from .schema import SchemaCache, TypeKind, classify

T = TypeVar("T")


class JsonTypeAdapter(Generic[T]):
    """JSON 类型适配器.

    支持的目标类型:
        - `JsonStruct` 子类 (声明式结构体) 与其他 Pydantic 模型
        - Map 类型 (`dict[K, V]`), 因为 JSON 文档必须以对象开始

    Examples:
        >>> adapter = JsonTypeAdapter(dict[str, int])
        >>> adapter.dump_json({"a": 1})
        '{"a": 1}'
        >>> adapter.validate_json('{"a": 1}')
        {'a': 1}
    """

    def __init__(self, type_: type[T] | Any, *, cache: SchemaCache | None = None):
        """初始化 JSON 类型适配器.

        Args:
            type_: 目标类型.
            cache: Schema 缓存, 默认使用模块级共享缓存.

        Raises:
            JsonSchemaError: 目标类型无法作为文档根 (标量或序列).
        """
        self._type = type_
        self._cache = cache if cache is not None else default_cache()
        self._pydantic_adapter: TypeAdapter[T] = TypeAdapter(type_)

        # 预先检查类型形状, 文档根只能是对象或 Map
        kind = classify(type_, self._cache.registry)
        if kind is TypeKind.OBJECT:
            self._cache.resolve(type_)
        elif kind is not TypeKind.MAPPING:
            raise JsonSchemaError(
                f"{type_!r} cannot be the root of a JSON document"
            )

    @property
    def type(self) -> Any:
        """绑定的目标类型."""
        return self._type

    def validate_json(self, text: str, *, option: JsonOption = JsonOption.NONE) -> T:
        """反序列化 JSON 文本.

        Args:
            text: JSON 文本.
            option: 解码选项.

        Returns:
            目标类型的值.
        """
        return loads(text, self._type, option=JsonOption(option), cache=self._cache)

    def dump_json(self, obj: T, *, option: JsonOption = JsonOption.NONE) -> str:
        """序列化为 JSON 文本.

        序列化前先用 Pydantic 校验值是否符合目标类型.

        Raises:
            JsonEncodeError: 值不符合目标类型.
        """
        try:
            value = self._pydantic_adapter.validate_python(obj, strict=True)
        except ValidationError as e:
            raise JsonEncodeError(
                f"Value does not match {self._type!r}: {e}"
            ) from e
        return dumps(value, option=JsonOption(option), cache=self._cache)
