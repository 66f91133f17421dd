"""JSON 类型适配器测试.

覆盖 jsonseed.adapter 模块的核心特性:
1. 结构体适配
2. Map 类型适配 (dict[K, V])
3. 不能作为文档根的类型
4. 序列化前的类型校验
"""

import enum

import pytest

from jsonseed import (
    JsonEncodeError,
    JsonField,
    JsonOption,
    JsonSchemaError,
    JsonStruct,
    SchemaCache,
)
from jsonseed.adapter import JsonTypeAdapter

# --- 辅助结构体 ---


class User(JsonStruct):
    """用户信息."""

    uid: int = JsonField()
    name: str = JsonField()


class Level(enum.Enum):
    LOW = 1
    HIGH = 2


# --- 测试用例 ---


def test_adapter_struct():
    """JsonTypeAdapter 适配结构体类型."""
    adapter = JsonTypeAdapter(User)
    user = User(uid=100, name="Alice")

    text = adapter.dump_json(user)
    assert text == '{"uid": 100, "name": "Alice"}'
    assert adapter.validate_json(text) == user
    assert adapter.type is User


def test_adapter_map_of_structs():
    """JsonTypeAdapter 适配 dict[str, User]."""
    adapter = JsonTypeAdapter(dict[str, User])
    value = {"a": User(uid=1, name="A")}

    text = adapter.dump_json(value, option=JsonOption.COMPACT)
    assert text == '{"a":{"uid":1,"name":"A"}}'
    assert adapter.validate_json(text) == value


def test_adapter_enum_keys():
    """JsonTypeAdapter 适配枚举键的 Map."""
    adapter = JsonTypeAdapter(dict[Level, list[int]])
    value = adapter.validate_json('{"HIGH": [1], "LOW": []}')
    assert value == {Level.HIGH: [1], Level.LOW: []}
    assert adapter.dump_json(value) == '{"HIGH": [1], "LOW": []}'


def test_adapter_ignore_unknown():
    """validate_json() 接受解码选项."""
    adapter = JsonTypeAdapter(User)
    user = adapter.validate_json(
        '{"uid": 1, "name": "x", "extra": 0}', option=JsonOption.IGNORE_UNKNOWN
    )
    assert user.uid == 1


@pytest.mark.parametrize("tp", [int, str, list[int], list[User]])
def test_adapter_rejects_non_root_types(tp):
    """标量与序列类型不能作为文档根."""
    with pytest.raises(JsonSchemaError, match="cannot be the root"):
        JsonTypeAdapter(tp)


def test_adapter_resolves_schema_eagerly():
    """结构体类型在创建适配器时就解析 Schema."""
    cache = SchemaCache()
    JsonTypeAdapter(User, cache=cache)
    assert User in cache


def test_adapter_dump_type_mismatch():
    """值不符合目标类型时 dump_json() 抛出 JsonEncodeError."""
    adapter = JsonTypeAdapter(dict[str, int])
    with pytest.raises(JsonEncodeError, match="does not match"):
        adapter.dump_json({"a": "1"})
