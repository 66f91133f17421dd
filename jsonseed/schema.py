"""类型 Schema 解析与缓存.

`SchemaCache.resolve()` 为每个目标类型推导一次 `TypeSchema`
(构造参数、JSON 字段名、编解码器、具体类型覆盖), 并按类型身份缓存。
组合类型 (列表、映射、嵌套对象) 的参数不会在这里递归解析,
而是在解码时第一次需要对应的 Seed 时才解析, 因此自引用和互相引用的
模型都可以正常工作。
"""

import enum
import inspect
import threading
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Annotated, Any, get_args, get_origin

from pydantic import BaseModel, ValidationError

from .codecs import (
    CodecRegistry,
    JsonScalar,
    ScalarCodec,
    default_registry,
    resolve_codec_ref,
    unwrap_optional,
)
from .exceptions import JsonDecodeError, JsonSchemaError
from .log import logger
from .struct import FieldOptions
from .types import find_json_type

_SEQUENCE_ORIGINS = (list, Sequence, MutableSequence)
_MAPPING_ORIGINS = (dict, Mapping, MutableMapping)
_KEY_TYPES = (str, int, float, bool)


class TypeKind(enum.IntEnum):
    """目标类型的形状分类."""

    SCALAR = 1
    SEQUENCE = 2
    MAPPING = 3
    OBJECT = 4


def core_type(annotation: Any) -> Any:
    """去掉 `Annotated` 与 `Optional` 包装, 返回实际类型."""
    while True:
        if get_origin(annotation) is Annotated:
            annotation = get_args(annotation)[0]
            continue
        inner, _ = unwrap_optional(annotation)
        if inner is annotation:
            return annotation
        annotation = inner


def core_type_shallow(annotation: Any) -> Any:
    """只去掉 `Annotated` 包装."""
    while get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return annotation


def classify(annotation: Any, registry: CodecRegistry) -> TypeKind:
    """判断类型的形状.

    Raises:
        JsonSchemaError: 类型无法分类 (`Any`, `TypeVar`, 多成员联合类型,
            缺少类型参数的 `list`/`dict` 等).
    """
    if registry.codec_for(annotation) is not None:
        return TypeKind.SCALAR

    inner = core_type(annotation)
    origin = get_origin(inner)
    if origin in _SEQUENCE_ORIGINS:
        if len(get_args(inner)) != 1:
            raise JsonSchemaError(f"Cannot classify sequence type {annotation!r}")
        return TypeKind.SEQUENCE
    if origin in _MAPPING_ORIGINS:
        if len(get_args(inner)) != 2:
            raise JsonSchemaError(f"Cannot classify mapping type {annotation!r}")
        return TypeKind.MAPPING

    if inner is Any or origin is not None:
        raise JsonSchemaError(f"Cannot classify type {annotation!r}")
    if inner in _SEQUENCE_ORIGINS or inner in _MAPPING_ORIGINS:
        raise JsonSchemaError(
            f"Cannot classify {annotation!r}: element types must be declared"
        )
    if isinstance(inner, type):
        return TypeKind.OBJECT
    raise JsonSchemaError(f"Cannot classify type {annotation!r}")


def sequence_element_type(annotation: Any) -> Any:
    """返回序列类型的元素类型."""
    return get_args(core_type(annotation))[0]


def mapping_item_types(annotation: Any) -> tuple[Any, Any]:
    """返回映射类型的 (键类型, 值类型)."""
    key_type, value_type = get_args(core_type(annotation))
    return key_type, value_type


def is_supported_key_type(annotation: Any) -> bool:
    """Map 键只支持 str、数值、bool 与枚举."""
    inner = core_type(annotation)
    if not isinstance(inner, type):
        return False
    return inner in _KEY_TYPES or issubclass(inner, enum.Enum)


@dataclass(frozen=True)
class ParameterInfo:
    """构造参数的元数据.

    Attributes:
        name: 属性名.
        init_name: 调用构造器时使用的关键字 (别名或属性名).
        json_name: 生效的 JSON 字段名.
        annotation: 字段类型 (位宽以 `Annotated` 形式附加).
        kind: 类型形状.
        codec: 标量编解码器, 组合类型为 None.
        concrete: 解码时实例化的具体类型.
        required: 是否必填 (不可为 None 且没有默认值).
        nullable: 是否可为 None.
        has_default: 是否有默认值.
        excluded: 是否被排除.
    """

    name: str
    init_name: str
    json_name: str
    annotation: Any
    kind: TypeKind
    codec: ScalarCodec[Any] | None
    concrete: type | None
    required: bool
    nullable: bool
    has_default: bool
    excluded: bool

    @property
    def target_type(self) -> Any:
        """解码时用于选择 Seed 的类型."""
        return self.concrete if self.concrete is not None else self.annotation

    def decode(self, value: JsonScalar) -> Any:
        """解码 JSON 标量作为该参数的值."""
        if value is None:
            if not self.nullable:
                raise JsonDecodeError(
                    f"Received null value for non-null parameter {self.name!r}"
                )
            if self.codec is None or not self.codec.accepts_null:
                return None
        if self.codec is None:
            raise JsonSchemaError(
                f"Expected JSON {_shape_name(self.kind)} for parameter "
                f"{self.name!r}, found scalar {value!r}"
            )
        return self.codec.decode(value)

    def encode(self, value: Any) -> Any:
        """用编解码器转换字段值."""
        if self.codec is None:
            return value
        if value is None and not self.codec.accepts_null:
            return None
        return self.codec.encode(value)


def _shape_name(kind: TypeKind) -> str:
    if kind is TypeKind.SEQUENCE:
        return "array"
    if kind is TypeKind.SCALAR:
        return "scalar"
    return "object"


@dataclass(frozen=True)
class TypeSchema:
    """目标类型的 Schema (构造后不可变)."""

    type_: type
    parameters: tuple[ParameterInfo, ...]
    by_json_name: Mapping[str, ParameterInfo]

    @property
    def type_name(self) -> str:
        """类型的限定名."""
        return getattr(self.type_, "__qualname__", repr(self.type_))

    def parameter(self, json_name: str) -> ParameterInfo | None:
        """按 JSON 字段名查找参数."""
        return self.by_json_name.get(json_name)

    def instantiate(self, arguments: dict[str, Any]) -> Any:
        """检查必填参数并调用构造器.

        Args:
            arguments: 以属性名为键的参数值.

        Raises:
            JsonSchemaError: 缺少必填参数, 或构造器拒绝参数.
        """
        kwargs: dict[str, Any] = {}
        for param in self.parameters:
            if param.name in arguments:
                kwargs[param.init_name] = arguments[param.name]
            elif param.required:
                raise JsonSchemaError(
                    f"Missing value for parameter {param.name!r} of {self.type_name}"
                )
            elif not param.has_default:
                kwargs[param.init_name] = None

        try:
            return self.type_(**kwargs)
        except ValidationError as e:
            raise JsonSchemaError(
                f"Failed to construct {self.type_name}: {e}"
            ) from e


class SchemaCache:
    """按类型身份缓存的 `TypeSchema` 集合.

    缓存可以被多个线程共享: 对同一个尚未解析的类型,
    推导过程只会执行一次。
    """

    def __init__(self, registry: CodecRegistry | None = None):
        self.registry = registry if registry is not None else default_registry
        self._schemas: dict[Any, TypeSchema] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._schemas)

    def __contains__(self, tp: Any) -> bool:
        return tp in self._schemas

    def clear(self) -> None:
        """清空缓存."""
        with self._lock:
            self._schemas.clear()

    def resolve(self, tp: Any) -> TypeSchema:
        """返回类型的 Schema, 首次调用时推导.

        Raises:
            JsonSchemaError: 类型没有可用的构造器, 构造参数没有对应字段,
                或字段类型无法分类.
        """
        schema = self._schemas.get(tp)
        if schema is not None:
            return schema

        with self._lock:
            schema = self._schemas.get(tp)
            if schema is None:
                schema = self._derive(tp)
                self._schemas[tp] = schema
        return schema

    def _derive(self, tp: Any) -> TypeSchema:
        type_name = getattr(tp, "__qualname__", repr(tp))
        if (
            not isinstance(tp, type)
            or not issubclass(tp, BaseModel)
            or inspect.isabstract(tp)
        ):
            raise JsonSchemaError(f"Class {type_name} doesn't have a usable constructor")

        logger.debug("[SchemaCache] 解析类型 %s", type_name)

        fields = tp.model_fields
        declared = set(fields) | {f.alias for f in fields.values() if f.alias}
        for param in inspect.signature(tp).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if param.name not in declared:
                raise JsonSchemaError(
                    f"Constructor parameter {param.name!r} of {type_name} "
                    f"has no corresponding field"
                )

        parameters = []
        by_json_name: dict[str, ParameterInfo] = {}
        for name, field in fields.items():
            options = FieldOptions.from_field_info(field)
            annotation = field.annotation
            json_type = options.json_type or find_json_type(field.metadata)
            if json_type is not None:
                annotation = Annotated[annotation, json_type]

            try:
                if options.codec is not None:
                    kind = TypeKind.SCALAR
                    codec: ScalarCodec[Any] | None = resolve_codec_ref(options.codec)
                else:
                    kind = classify(annotation, self.registry)
                    codec = None
                    if kind is TypeKind.SCALAR:
                        codec = self.registry.codec_for(annotation)
                    elif kind is TypeKind.SEQUENCE:
                        classify(sequence_element_type(annotation), self.registry)
                    elif kind is TypeKind.MAPPING:
                        for item_type in mapping_item_types(annotation):
                            classify(item_type, self.registry)
            except JsonSchemaError as e:
                raise JsonSchemaError(
                    f"Invalid type for parameter {name!r} of {type_name}: {e}"
                ) from e

            concrete = options.concrete
            if concrete is not None:
                self._check_concrete(type_name, name, annotation, concrete)

            _, nullable = unwrap_optional(core_type_shallow(annotation))
            has_default = not field.is_required()
            info = ParameterInfo(
                name=name,
                init_name=field.alias or name,
                json_name=options.name or name,
                annotation=annotation,
                kind=kind,
                codec=codec,
                concrete=concrete,
                required=not has_default and not nullable,
                nullable=nullable,
                has_default=has_default,
                excluded=options.exclude,
            )
            parameters.append(info)
            if info.excluded:
                continue
            if info.json_name in by_json_name:
                raise JsonSchemaError(
                    f"Duplicate JSON field name {info.json_name!r} in {type_name}"
                )
            by_json_name[info.json_name] = info

        return TypeSchema(
            type_=tp,
            parameters=tuple(parameters),
            by_json_name=MappingProxyType(by_json_name),
        )

    @staticmethod
    def _check_concrete(
        type_name: str, name: str, annotation: Any, concrete: Any
    ) -> None:
        if not isinstance(concrete, type):
            raise JsonSchemaError(
                f"Concrete type for parameter {name!r} of {type_name} "
                f"must be a class, got {concrete!r}"
            )
        declared = core_type(annotation)
        try:
            compatible = not isinstance(declared, type) or issubclass(
                concrete, declared
            )
        except TypeError:
            # 非运行时协议等无法做 issubclass 检查的类型
            compatible = True
        if not compatible:
            raise JsonSchemaError(
                f"Concrete type {concrete.__qualname__} for parameter {name!r} "
                f"of {type_name} is not a subclass of {declared.__qualname__}"
            )

