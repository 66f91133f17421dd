"""类型驱动解码测试.

覆盖 jsonseed.decoder 与 jsonseed.seed 模块的核心特性:
1. 按目标类型选择 Seed (而不是按 JSON 形状)
2. 形状不匹配的提前拒绝
3. 未知字段、null、缺失字段的处理
4. 错误位置路径 (loc)
5. 嵌套泛型 (列表的列表、Map 的列表等)
"""

import abc
import logging
from typing import Optional

import pytest

from jsonseed import (
    JsonDecodeError,
    JsonField,
    JsonMalformedError,
    JsonOption,
    JsonSchemaError,
    JsonStruct,
    SchemaCache,
    loads,
    types,
)
from jsonseed.config import JsonConfig
from jsonseed.decoder import SeedDecoder
from jsonseed.seed import Seed, SeedKind, route_for

# --- 辅助模型 ---


class Address(JsonStruct):
    city: str = JsonField()
    zip_code: Optional[str] = JsonField(None, name="zip")


class Person(JsonStruct):
    name: str = JsonField()
    age: int = JsonField(0)
    address: Optional[Address] = JsonField(None)
    emails: list[str] = JsonField(default_factory=list)


class Shape(JsonStruct, abc.ABC):
    sides: int = JsonField()

    @abc.abstractmethod
    def area(self) -> float: ...


class Square(Shape):
    size: float = JsonField(1.0)

    def area(self) -> float:
        return self.size * self.size


class Drawing(JsonStruct):
    shape: Shape = JsonField(concrete=Square)


class Tree(JsonStruct):
    label: str = JsonField()
    children: list["Tree"] = JsonField(default_factory=list)


class Matrix(JsonStruct):
    rows: list[list[int]] = JsonField()
    named: dict[str, list[Address]] = JsonField(default_factory=dict)
    optional_items: list[Optional[Address]] = JsonField(default_factory=list)


class Secretive(JsonStruct):
    visible: int = JsonField()
    hidden: int = JsonField(7, exclude=True)


class Widths(JsonStruct):
    small: int = JsonField(json_type=types.INT8)
    ratio: float = JsonField(json_type=types.FLOAT)


# --- 测试数据 ---

SHAPE_MISMATCH_CASES = [
    # (目标类型, JSON, 错误信息片段)
    (Person, '{"address": []}', "Expected JSON object for Address, found array"),
    (Person, '{"emails": {}}', "Expected JSON array for list\\[str\\], found object"),
    (Person, '{"name": {}}', "Expected scalar value for parameter 'name'"),
    (Person, '{"address": 5}', "Expected JSON object for parameter 'address'"),
    (Person, '{"emails": [[]]}', "Found JSON array in collection of primitive types"),
    (Matrix, '{"rows": [1]}', "Found primitive value 1 in collection of object types"),
]


# --- 测试函数 ---


def test_decode_simple_object():
    """应正确解码标量字段与嵌套对象."""
    person = loads(
        '{"name": "Ann", "age": 31, "address": {"city": "Oslo", "zip": "0150"},'
        ' "emails": ["a@x.io", "b@x.io"]}',
        Person,
    )
    assert person == Person(
        name="Ann",
        age=31,
        address=Address(city="Oslo", zip_code="0150"),
        emails=["a@x.io", "b@x.io"],
    )


def test_defaults_and_missing_nullable():
    """缺失的可选字段使用默认值."""
    person = loads('{"name": "Bo"}', Person)
    assert person.age == 0
    assert person.address is None
    assert person.emails == []


def test_missing_required_field():
    """缺少必填字段时抛出 JsonSchemaError."""
    with pytest.raises(JsonSchemaError, match="Missing value for parameter 'name'"):
        loads('{"age": 1}', Person)


def test_missing_required_nested_field_has_loc():
    """嵌套对象缺少必填字段时 loc 指向该对象."""
    with pytest.raises(JsonSchemaError) as exc_info:
        loads('{"name": "x", "address": {}}', Person)
    assert exc_info.value.loc == ["address"]
    assert "(at address)" in str(exc_info.value)


def test_null_for_nullable_and_non_nullable():
    """可为 None 的字段接受 null, 其他字段拒绝."""
    person = loads('{"name": "x", "address": null}', Person)
    assert person.address is None

    with pytest.raises(JsonDecodeError, match="non-null parameter 'age'"):
        loads('{"name": "x", "age": null}', Person)
    with pytest.raises(JsonDecodeError, match="non-null parameter 'emails'"):
        loads('{"name": "x", "emails": null}', Person)


def test_scalar_kind_mismatch():
    """标量类型不匹配时抛出 JsonDecodeError, 不做字符串到数字的转换."""
    with pytest.raises(JsonDecodeError, match="Expected integer") as exc_info:
        loads('{"name": "x", "age": "31"}', Person)
    assert exc_info.value.loc == ["age"]


def test_error_loc_in_list():
    """列表中的错误 loc 包含元素索引."""
    with pytest.raises(JsonDecodeError) as exc_info:
        loads('{"name": "x", "emails": ["a", 2]}', Person)
    assert exc_info.value.loc == ["emails", 1]


def test_error_loc_nested_collections():
    """多层容器中的错误 loc 为完整路径."""
    with pytest.raises(JsonDecodeError) as exc_info:
        loads('{"rows": [], "named": {"k": [{"city": 1}]}}', Matrix)
    assert exc_info.value.loc == ["named", "k", 0, "city"]


@pytest.mark.parametrize(("target", "text", "message"), SHAPE_MISMATCH_CASES)
def test_shape_mismatch(target, text, message):
    """JSON 形状与目标类型不一致时抛出 JsonSchemaError."""
    with pytest.raises(JsonSchemaError, match=message):
        loads(text, target)


def test_unknown_field_rejected():
    """未声明的字段默认报错."""
    with pytest.raises(JsonSchemaError, match="unmapped field 'nick'"):
        loads('{"name": "x", "nick": "y"}', Person)


def test_unknown_field_ignored():
    """IGNORE_UNKNOWN 丢弃未知字段 (包括嵌套结构)."""
    person = loads(
        '{"name": "x", "nick": "y", "extra": {"a": [1, {"b": null}]}, "more": []}',
        Person,
        option=JsonOption.IGNORE_UNKNOWN,
    )
    assert person == Person(name="x")


def test_excluded_field_is_unknown():
    """被排除的字段在解码时视为未知字段."""
    with pytest.raises(JsonSchemaError, match="unmapped field 'hidden'"):
        loads('{"visible": 1, "hidden": 2}', Secretive)

    value = loads(
        '{"visible": 1, "hidden": 2}', Secretive, option=JsonOption.IGNORE_UNKNOWN
    )
    assert value.visible == 1
    assert value.hidden == 7


def test_concrete_type_override():
    """抽象类型字段按声明的具体类型实例化."""
    drawing = loads('{"shape": {"sides": 4, "size": 2.0}}', Drawing)
    assert isinstance(drawing.shape, Square)
    assert drawing.shape.area() == 4.0


def test_abstract_root_rejected():
    """抽象类型不能直接作为解码目标."""
    with pytest.raises(JsonSchemaError, match="usable constructor"):
        loads('{"sides": 3}', Shape)


def test_self_referential_decode():
    """自引用模型可以递归解码."""
    tree = loads(
        '{"label": "root", "children": [{"label": "a"},'
        ' {"label": "b", "children": [{"label": "c"}]}]}',
        Tree,
    )
    assert [c.label for c in tree.children] == ["a", "b"]
    assert tree.children[1].children[0].label == "c"


def test_nested_generics():
    """列表的列表、Map 的列表、可为 None 的对象元素."""
    matrix = loads(
        '{"rows": [[1, 2], [], [3]],'
        ' "named": {"home": [{"city": "A"}], "none": []},'
        ' "optional_items": [null, {"city": "B"}]}',
        Matrix,
    )
    assert matrix.rows == [[1, 2], [], [3]]
    assert matrix.named == {"home": [Address(city="A")], "none": []}
    assert matrix.optional_items == [None, Address(city="B")]


def test_width_markers_on_decode():
    """位宽标记在解码时校验范围并舍入单精度."""
    value = loads('{"small": 100, "ratio": 0.1}', Widths)
    assert value.small == 100
    assert value.ratio == pytest.approx(0.1, rel=1e-7)

    with pytest.raises(JsonDecodeError, match="out of range for INT8"):
        loads('{"small": 1000, "ratio": 1}', Widths)


def test_duplicate_keys_last_wins():
    """重复的字段以最后一次出现为准."""
    person = loads('{"name": "a", "name": "b", "emails": ["x"], "emails": []}', Person)
    assert person.name == "b"
    assert person.emails == []


def test_root_must_be_object():
    """文档根必须是对象."""
    with pytest.raises(JsonMalformedError, match="Expected '{'"):
        loads('["a"]', Person)


def test_root_sequence_target_rejected():
    """序列类型不能作为文档根."""
    with pytest.raises(JsonSchemaError, match="Expected JSON array"):
        loads("{}", list[int])


def test_route_for_kinds():
    """route_for() 仅依据目标类型选择 Seed 种类."""
    session = SeedDecoder(SchemaCache())
    assert route_for(list[int], True, session).kind is SeedKind.VALUE_LIST
    assert route_for(list[Address], True, session).kind is SeedKind.OBJECT_LIST
    assert route_for(list[list[int]], True, session).kind is SeedKind.OBJECT_LIST
    assert route_for(dict[str, int], False, session).kind is SeedKind.VALUE_MAP
    assert route_for(dict[int, Address], False, session).kind is SeedKind.OBJECT_MAP
    assert route_for(Address, False, session).kind is SeedKind.OBJECT


def test_seed_spawn_bottom_up():
    """Seed 累积内容并在 spawn() 时自底向上物化."""
    session = SeedDecoder(SchemaCache())
    root = route_for(Person, False, session)
    root.set_simple_property("name", "Zed")
    address = root.create_object("address")
    address.set_simple_property("city", "Rome")
    emails = root.create_array("emails")
    emails.set_simple_property("emails", "z@x.io")

    assert isinstance(address, Seed)
    assert root.spawn() == Person(
        name="Zed", address=Address(city="Rome"), emails=["z@x.io"]
    )


def test_max_depth_option():
    """max_depth 限制嵌套深度."""
    text = '{"label": "a", "children": [{"label": "b"}]}'
    assert loads(text, Tree, max_depth=3).children[0].label == "b"
    with pytest.raises(JsonMalformedError, match="Maximum nesting depth"):
        loads(text, Tree, max_depth=2)


def test_decoder_logs_failure(caplog):
    """解码失败时记录 debug 日志并原样抛出."""
    decoder = SeedDecoder(SchemaCache(), JsonConfig())
    with caplog.at_level(logging.DEBUG, logger="jsonseed"):
        with pytest.raises(JsonMalformedError):
            decoder.decode('{"name": tru}', Person)

    messages = [r.getMessage() for r in caplog.records]
    assert any("开始解码 Person" in m for m in messages)
    assert any("解码 Person 时出错" in m for m in messages)
    assert any("的上下文" in m for m in messages)


def test_oversized_numbers():
    """超大数字按 JsonError 报告, 不泄漏解释器异常."""
    with pytest.raises(JsonDecodeError, match="out of range for DOUBLE") as exc_info:
        loads('{"sides": 4, "size": 1' + "0" * 400 + "}", Square)
    assert exc_info.value.loc == ["size"]

    with pytest.raises(JsonMalformedError, match="Number out of range"):
        loads('{"name": "x", "age": ' + "1" * 5000 + "}", Person)
