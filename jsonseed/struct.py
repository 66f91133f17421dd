"""jsonseed 结构体定义模块."""

from dataclasses import dataclass
from typing import Any, ClassVar, cast

from pydantic import BaseModel, ConfigDict, Field
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined
from typing_extensions import Self

from .options import JsonOption
from .types import JsonType

# json_schema_extra 中保存字段选项的键
_OPTIONS_KEY = "jsonseed"


@dataclass(frozen=True)
class FieldOptions:
    """单个字段的序列化选项.

    Attributes:
        name: JSON 中使用的字段名 (None 表示使用属性名).
        exclude: 是否在编码和解码两个方向上都排除该字段.
        codec: 自定义标量编解码器 (实例或无参类), 优先于内置查找.
        concrete: 字段声明为抽象类型时, 解码时实例化的具体类型.
        json_type: 数值位宽标记 (如 `types.INT8`).
    """

    name: str | None = None
    exclude: bool = False
    codec: Any = None
    concrete: type | None = None
    json_type: type[JsonType] | None = None

    @classmethod
    def from_field_info(cls, field_info: FieldInfo) -> "FieldOptions":
        """从 FieldInfo 读取选项, 未通过 JsonField 配置的字段使用默认值."""
        extra = field_info.json_schema_extra
        options = None
        if isinstance(extra, dict):
            options = extra.get(_OPTIONS_KEY)
        if isinstance(options, FieldOptions):
            return options
        # 普通 Pydantic 字段: 仅继承 exclude
        return cls(exclude=field_info.exclude is True)


def JsonField(
    default: Any = PydanticUndefined,
    *,
    name: str | None = None,
    exclude: bool = False,
    codec: Any = None,
    concrete: type | None = None,
    json_type: type[JsonType] | None = None,
    default_factory: Any | None = None,
) -> Any:
    """创建 JSON 结构体字段配置.

    这是一个 Pydantic `Field` 的包装函数，用于注入 JSON 序列化所需的
    元数据（重命名、排除、自定义编解码器、具体类型）。

    Args:
        default: 字段的静态默认值。
            如果未提供此参数且未提供 `default_factory`，则该字段为**必填**
            (除非类型是 `Optional`)。
        name: JSON 中使用的字段名，覆盖属性名。
        exclude: 在编码和解码两个方向上都忽略该字段。
        codec: 自定义标量编解码器 (`ScalarCodec` 实例或无参类)。
        concrete: 字段类型为抽象类/接口时，解码时实例化的具体类。
        json_type: 数值位宽标记，例如 `types.INT16` 或 `types.FLOAT`。
        default_factory: 用于生成默认值的无参可调用对象。
            对于可变类型（如 `list`, `dict`），**必须**使用此参数而不是 `default`。

    Returns:
        Any: 包含 JSON 元数据的 Pydantic FieldInfo 对象。

    Raises:
        ValueError: 如果 `name` 为空字符串。

    Examples:
        >>> from jsonseed import JsonStruct, JsonField, types
        >>> class Book(JsonStruct):
        ...     # 1. 必填字段, JSON 名为 "title"
        ...     title: str = JsonField()
        ...
        ...     # 2. 重命名
        ...     author_name: str = JsonField(name="author")
        ...
        ...     # 3. 列表字段，需使用 factory
        ...     tags: list[str] = JsonField(default_factory=list)
        ...
        ...     # 4. 不参与序列化的字段
        ...     cached: int = JsonField(0, exclude=True)
        ...
        ...     # 5. 显式位宽
        ...     pages: int = JsonField(0, json_type=types.INT16)
    """
    if name is not None and not name:
        raise ValueError("JSON field name must not be empty")

    options = FieldOptions(
        name=name,
        exclude=exclude,
        codec=codec,
        concrete=concrete,
        json_type=json_type,
    )

    kwargs: dict[str, Any] = {
        "json_schema_extra": {_OPTIONS_KEY: options},
    }

    if default is not PydanticUndefined:
        kwargs["default"] = default

    if default_factory is not None:
        kwargs["default_factory"] = default_factory

    # cast call to Any to avoid type checking issues with Field return type
    return cast(Any, Field)(**kwargs)


class JsonStruct(BaseModel):
    """JSON 结构体基类.

    继承自 `pydantic.BaseModel`，提供声明式的结构体定义方式。
    用户应通过继承此类，配合 `JsonField` 来定义 JSON 结构。

    核心特性:
        1. **声明式定义**: 使用 Python 类型注解定义字段类型。
        2. **字段选项**: 通过 `JsonField(...)` 重命名、排除字段或绑定编解码器。
        3. **类型驱动解码**: 由目标类型 (而不是 JSON 形状) 决定如何构建值。
        4. **泛型支持**: 支持 `Generic[T]` 定义通用结构体。

    Examples:
        **基础用法:**
        >>> class Person(JsonStruct):
        ...     name: str = JsonField()
        ...     age: int = JsonField()

        **序列化:**
        >>> Person(name="Alice", age=29).model_dump_json_text()
        '{"name": "Alice", "age": 29}'

        **反序列化:**
        >>> Person.model_validate_json_text('{"name": "Alice", "age": 29}')
        Person(name='Alice', age=29)
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )

    def model_dump_json_text(
        self,
        option: JsonOption = JsonOption.NONE,
        exclude_unset: bool = False,
    ) -> str:
        """序列化为 JSON 文本.

        Args:
            option: 编码选项 (如 `JsonOption.COMPACT`).
            exclude_unset: 是否排除未设置的字段 (Pydantic 行为).

        Returns:
            str: JSON 文本.
        """
        from .api import dumps

        return dumps(self, option=option, exclude_unset=exclude_unset)

    @classmethod
    def model_validate_json_text(
        cls,
        text: str,
        option: JsonOption = JsonOption.NONE,
    ) -> Self:
        """从 JSON 文本创建实例.

        Args:
            text: JSON 文本.
            option: 解码选项 (如 `JsonOption.IGNORE_UNKNOWN`).

        Returns:
            Self: 结构体实例.

        Raises:
            JsonMalformedError: 文本不符合 JSON 语法.
            JsonSchemaError: 数据结构不符合模型定义.
            JsonDecodeError: 标量类型不匹配.
        """
        from .api import loads

        return loads(text, target=cls, option=option)
