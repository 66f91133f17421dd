"""类型驱动的增量构建器 (Seed).

每个 Seed 绑定一段 JSON 子结构和一个目标类型, 在解析过程中累积内容,
在子结构闭合后由 `spawn()` 物化为最终值。
Seed 的种类只由目标类型的形状决定, 与 JSON 输入本身的形状无关;
形状不一致会在存入任何值之前就被拒绝。
"""

import enum
import math
import re
from typing import TYPE_CHECKING, Annotated, Any, get_args, get_origin

from .codecs import JsonScalar, ScalarCodec, unwrap_optional
from .exceptions import JsonError, JsonSchemaError
from .schema import (
    TypeKind,
    TypeSchema,
    classify,
    core_type,
    core_type_shallow,
    is_supported_key_type,
    mapping_item_types,
    sequence_element_type,
)
from .types import find_json_type

if TYPE_CHECKING:
    from .decoder import SeedDecoder

_INT_KEY_RE = re.compile(r"-?[0-9]+")
_FLOAT_KEY_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")


class SeedKind(enum.IntEnum):
    """Seed 的种类."""

    OBJECT = 1
    VALUE_LIST = 2
    OBJECT_LIST = 3
    VALUE_MAP = 4
    OBJECT_MAP = 5
    # IGNORE_UNKNOWN 模式下丢弃未知字段的内容
    SKIP = 6


def _type_name(tp: Any) -> str:
    inner, _ = unwrap_optional(core_type_shallow(tp))
    if isinstance(inner, type) and get_origin(inner) is None:
        return inner.__qualname__
    return repr(inner)


def convert_key(raw: str, key_type: Any) -> Any:
    """将 JSON 对象的字段名转换为 Map 键.

    Raises:
        JsonSchemaError: 键文本无法严格转换为目标类型.
    """
    json_type = None
    if get_origin(key_type) is Annotated:
        json_type = find_json_type(get_args(key_type)[1:])
    base = core_type(key_type)

    if base is str:
        return raw
    if base is bool:
        if raw == "true":
            return True
        if raw == "false":
            return False
    elif base is int:
        if _INT_KEY_RE.fullmatch(raw):
            try:
                value = int(raw)
                return json_type.validate(value) if json_type else value
            except ValueError:
                pass
    elif base is float:
        if _FLOAT_KEY_RE.fullmatch(raw):
            try:
                value = json_type.validate(float(raw)) if json_type else float(raw)
            except ValueError:
                pass
            else:
                if math.isfinite(value):
                    return value
    elif isinstance(base, type) and issubclass(base, enum.Enum):
        member = base.__members__.get(raw)
        if member is not None:
            return member

    raise JsonSchemaError(
        f"Cannot convert map key {raw!r} to {_type_name(key_type)}"
    )


def route_for(
    target: Any,
    is_array: bool,
    session: "SeedDecoder",
    loc: list[str | int] | None = None,
) -> "Seed":
    """按目标类型的形状选择 Seed.

    Args:
        target: 目标类型.
        is_array: JSON 子结构是否为数组.
        session: 解码会话.
        loc: 子结构的位置路径.

    Raises:
        JsonSchemaError: 形状不匹配, 或 Map 键类型不受支持.
    """
    loc = loc if loc is not None else []
    registry = session.registry
    kind = classify(target, registry)
    found = "array" if is_array else "object"

    if kind is TypeKind.SEQUENCE:
        if not is_array:
            raise JsonSchemaError(
                f"Expected JSON array for {_type_name(target)}, found object", loc
            )
        element = sequence_element_type(target)
        if classify(element, registry) is TypeKind.SCALAR:
            return Seed(
                SeedKind.VALUE_LIST,
                session,
                target,
                loc,
                codec=registry.codec_for(element),
            )
        return Seed(
            SeedKind.OBJECT_LIST,
            session,
            target,
            loc,
            child_type=element,
            child_nullable=unwrap_optional(core_type_shallow(element))[1],
        )

    if kind is TypeKind.MAPPING:
        if is_array:
            raise JsonSchemaError(
                f"Expected JSON object for {_type_name(target)}, found array", loc
            )
        key_type, value_type = mapping_item_types(target)
        if not is_supported_key_type(key_type):
            raise JsonSchemaError(
                f"Unsupported map key type {_type_name(key_type)}", loc
            )
        if classify(value_type, registry) is TypeKind.SCALAR:
            return Seed(
                SeedKind.VALUE_MAP,
                session,
                target,
                loc,
                codec=registry.codec_for(value_type),
                key_type=key_type,
            )
        return Seed(
            SeedKind.OBJECT_MAP,
            session,
            target,
            loc,
            key_type=key_type,
            child_type=value_type,
            child_nullable=unwrap_optional(core_type_shallow(value_type))[1],
        )

    if kind is TypeKind.OBJECT:
        if is_array:
            raise JsonSchemaError(
                f"Expected JSON object for {_type_name(target)}, found array", loc
            )
        try:
            schema = session.cache.resolve(core_type(target))
        except JsonError as e:
            e.loc = e.loc or loc
            raise
        return Seed(SeedKind.OBJECT, session, target, loc, schema=schema)

    raise JsonSchemaError(
        f"Expected scalar value for {_type_name(target)}, found JSON {found}", loc
    )


class Seed:
    """绑定一段 JSON 子结构的构建器.

    不同种类的状态:
        - OBJECT: `container` 保存已解码的标量参数, `children` 保存待物化的子 Seed.
        - VALUE_LIST / OBJECT_LIST: `container` 为列表.
        - VALUE_MAP / OBJECT_MAP: `container` 为按插入顺序的字典.
        - SKIP: 不保存任何内容.
    """

    __slots__ = (
        "child_nullable",
        "child_type",
        "children",
        "codec",
        "container",
        "key_type",
        "kind",
        "loc",
        "schema",
        "session",
        "target",
    )

    def __init__(
        self,
        kind: SeedKind,
        session: "SeedDecoder",
        target: Any,
        loc: list[str | int],
        *,
        schema: TypeSchema | None = None,
        codec: ScalarCodec[Any] | None = None,
        child_type: Any = None,
        key_type: Any = None,
        child_nullable: bool = False,
    ):
        self.kind = kind
        self.session = session
        self.target = target
        self.loc = loc
        self.schema = schema
        self.codec = codec
        self.child_type = child_type
        self.key_type = key_type
        self.child_nullable = child_nullable
        self.children: dict[str, Seed] = {}
        self.container: Any = [] if kind in (
            SeedKind.VALUE_LIST,
            SeedKind.OBJECT_LIST,
        ) else {}

    @classmethod
    def skip(cls, session: "SeedDecoder", loc: list[str | int]) -> "Seed":
        """创建丢弃所有内容的 Seed."""
        return cls(SeedKind.SKIP, session, None, loc)

    def __repr__(self) -> str:
        return f"Seed({self.kind.name}, {_type_name(self.target)})"

    def _child_loc(self, name: str) -> list[str | int]:
        if self.kind in (SeedKind.VALUE_LIST, SeedKind.OBJECT_LIST):
            return [*self.loc, len(self.container)]
        return [*self.loc, name]

    def _locate(self, error: JsonError, name: str) -> None:
        if not error.loc:
            error.loc = self._child_loc(name)

    def _unknown_field(self, name: str) -> None:
        assert self.schema is not None
        if not self.session.config.ignore_unknown:
            raise JsonSchemaError(
                f"Found unmapped field {name!r} for {self.schema.type_name}"
            )

    def set_simple_property(self, name: str, value: JsonScalar) -> None:
        """写入一个标量值.

        Raises:
            JsonSchemaError: 当前 Seed 不接受标量, 或字段未声明.
            JsonDecodeError: 标量类型与编解码器不匹配.
        """
        try:
            self._set_simple_property(name, value)
        except JsonError as e:
            self._locate(e, name)
            raise

    def _set_simple_property(self, name: str, value: JsonScalar) -> None:
        kind = self.kind
        if kind is SeedKind.OBJECT:
            assert self.schema is not None
            param = self.schema.parameter(name)
            if param is None:
                self._unknown_field(name)
                return
            self.children.pop(param.name, None)
            self.container[param.name] = param.decode(value)
        elif kind is SeedKind.VALUE_LIST:
            assert self.codec is not None
            self.container.append(self.codec.decode(value))
        elif kind is SeedKind.VALUE_MAP:
            assert self.codec is not None
            key = convert_key(name, self.key_type)
            self.container[key] = self.codec.decode(value)
        elif kind is SeedKind.OBJECT_LIST:
            if value is not None or not self.child_nullable:
                raise JsonSchemaError(
                    f"Found primitive value {value!r} in collection of object "
                    f"types {_type_name(self.child_type)}"
                )
            self.container.append(None)
        elif kind is SeedKind.OBJECT_MAP:
            key = convert_key(name, self.key_type)
            if value is not None or not self.child_nullable:
                raise JsonSchemaError(
                    f"Found primitive value {value!r} in map of object "
                    f"types {_type_name(self.child_type)}"
                )
            self.container[key] = None

    def create_object(self, name: str) -> "Seed":
        """为嵌套对象创建子 Seed."""
        return self.create_seed(name, is_array=False)

    def create_array(self, name: str) -> "Seed":
        """为嵌套数组创建子 Seed."""
        return self.create_seed(name, is_array=True)

    def create_seed(self, name: str, is_array: bool) -> "Seed":
        """创建子 Seed, 种类由当前目标类型的成员类型决定.

        Raises:
            JsonSchemaError: 当前 Seed 只接受标量, 或子结构形状与类型不符.
        """
        try:
            return self._create_seed(name, is_array)
        except JsonError as e:
            self._locate(e, name)
            raise

    def _create_seed(self, name: str, is_array: bool) -> "Seed":
        kind = self.kind
        found = "array" if is_array else "object"
        loc = self._child_loc(name)

        if kind is SeedKind.SKIP:
            return self
        if kind is SeedKind.OBJECT:
            assert self.schema is not None
            param = self.schema.parameter(name)
            if param is None:
                self._unknown_field(name)
                return Seed.skip(self.session, loc)
            if param.kind is TypeKind.SCALAR:
                raise JsonSchemaError(
                    f"Expected scalar value for parameter {param.name!r}, "
                    f"found JSON {found}"
                )
            child = route_for(param.target_type, is_array, self.session, loc)
            self.container.pop(param.name, None)
            self.children[param.name] = child
            return child
        if kind is SeedKind.OBJECT_LIST:
            child = route_for(self.child_type, is_array, self.session, loc)
            self.container.append(child)
            return child
        if kind is SeedKind.OBJECT_MAP:
            key = convert_key(name, self.key_type)
            child = route_for(self.child_type, is_array, self.session, loc)
            self.container[key] = child
            return child

        raise JsonSchemaError(
            f"Found JSON {found} in collection of primitive types "
            f"{_type_name(self.target)}"
        )

    def spawn(self) -> Any:
        """物化累积的内容 (子 Seed 深度优先).

        Raises:
            JsonSchemaError: 缺少必填参数, 或构造器拒绝参数.
        """
        kind = self.kind
        if kind is SeedKind.SKIP:
            return None
        if kind is SeedKind.VALUE_LIST:
            return list(self.container)
        if kind is SeedKind.VALUE_MAP:
            return dict(self.container)
        if kind is SeedKind.OBJECT_LIST:
            return [None if c is None else c.spawn() for c in self.container]
        if kind is SeedKind.OBJECT_MAP:
            return {
                k: None if c is None else c.spawn() for k, c in self.container.items()
            }

        assert self.schema is not None
        arguments = dict(self.container)
        for name, child in self.children.items():
            arguments[name] = child.spawn()
        try:
            return self.schema.instantiate(arguments)
        except JsonError as e:
            e.loc = e.loc or list(self.loc)
            raise
