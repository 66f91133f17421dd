"""JSON 编码器测试.

覆盖 jsonseed.encoder 模块的核心特性:
1. 运行时类型分派 (null/字符串/数字/布尔/枚举/序列/Map/模型)
2. 字符串转义集合
3. 字段重命名、排除与自定义编解码器
4. 选项 (COMPACT, OMIT_NONE, exclude_unset) 与 default 回调
5. 编码错误与 loc
"""

import enum
import logging
import math
from datetime import datetime
from typing import Optional

import pytest

from jsonseed import (
    DateTimeCodec,
    JsonEncodeError,
    JsonField,
    JsonOption,
    JsonStruct,
    SchemaCache,
    dumps,
    types,
)
from jsonseed.codecs import CodecRegistry, ScalarCodec
from jsonseed.config import JsonConfig
from jsonseed.encoder import JsonEncoder, JsonWriter


class Color(enum.IntEnum):
    RED = 1
    GREEN = 2


class Profile(JsonStruct):
    age: int = JsonField()
    display_name: str = JsonField(name="displayName")
    password: str = JsonField("", exclude=True)
    bio: Optional[str] = JsonField(None)
    color: Color = JsonField(Color.RED)
    born: Optional[datetime] = JsonField(None, codec=DateTimeCodec("%Y-%m-%d"))


class Tiny(JsonStruct):
    value: int = JsonField(json_type=types.INT8)


class Wrapper(JsonStruct):
    items: list[Tiny] = JsonField(default_factory=list)


class Shade(enum.Enum):
    DARK = "d"


class Money:
    def __init__(self, cents: int):
        self.cents = cents


class MoneyCodec(ScalarCodec[Money]):
    def encode(self, value: Money) -> str:
        return f"{value.cents / 100:.2f}"

    def decode(self, value) -> Money:
        return Money(round(float(value) * 100))


# --- 测试数据 ---

SCALAR_CASES = [
    # (值, 期望文本)
    (None, "null"),
    (True, "true"),
    (False, "false"),
    (0, "0"),
    (-12, "-12"),
    (10**20, "100000000000000000000"),
    (1.5, "1.5"),
    (1e-07, "1e-07"),
    (1e22, "1e+22"),
    ("plain", '"plain"'),
    ("中文 é", '"中文 é"'),
    (Color.GREEN, '"GREEN"'),
]

ESCAPE_CASES = [
    # (原始字符, 转义后)
    ("\\", "\\\\"),
    ('"', '\\"'),
    ("\b", "\\b"),
    ("\f", "\\f"),
    ("\n", "\\n"),
    ("\r", "\\r"),
    ("\t", "\\t"),
    # 其他字符 (包括 "/" 与控制字符) 原样输出
    ("/", "/"),
    ("\x01", "\x01"),
    (" ", " "),
]


# --- 测试函数 ---


@pytest.mark.parametrize(("value", "expected"), SCALAR_CASES)
def test_encode_scalars(value, expected):
    """标量按运行时类型输出字面量."""
    assert dumps([value]) == f"[{expected}]"


@pytest.mark.parametrize(("raw", "escaped"), ESCAPE_CASES)
def test_string_escapes(raw, escaped):
    """只转义七个字符."""
    assert dumps({"k": raw}) == f'{{"k": "{escaped}"}}'


def test_separators():
    """默认分隔符带空格, COMPACT 去掉空格, 均不换行."""
    value = {"a": [1, 2], "b": {"c": None}}
    assert dumps(value) == '{"a": [1, 2], "b": {"c": null}}'
    assert dumps(value, option=JsonOption.COMPACT) == '{"a":[1,2],"b":{"c":null}}'


def test_tuple_as_array():
    """元组按数组输出."""
    assert dumps({"t": (1, "x")}) == '{"t": [1, "x"]}'


def test_map_key_kinds():
    """Map 键支持 str、int、float、bool 与枚举."""
    assert (
        dumps({"s": 1, 2: 2, 1.5: 3, True: 4, Shade.DARK: 5})
        == '{"s": 1, "2": 2, "1.5": 3, "true": 4, "DARK": 5}'
    )


def test_struct_fields():
    """模型按声明顺序输出生效的字段名, 跳过排除字段."""
    profile = Profile(
        age=30,
        display_name="Ann",
        password="hunter2",
        born=datetime(1990, 1, 2),
    )
    assert dumps(profile) == (
        '{"age": 30, "displayName": "Ann", "bio": null,'
        ' "color": "RED", "born": "1990-01-02"}'
    )


def test_omit_none():
    """OMIT_NONE 跳过值为 None 的字段."""
    profile = Profile(age=1, display_name="x")
    assert (
        dumps(profile, option=JsonOption.OMIT_NONE)
        == '{"age": 1, "displayName": "x", "color": "RED"}'
    )


def test_exclude_unset():
    """exclude_unset 只输出显式设置的字段."""
    profile = Profile(age=1, display_name="x")
    assert dumps(profile, exclude_unset=True) == '{"age": 1, "displayName": "x"}'
    assert profile.model_dump_json_text(exclude_unset=True) == (
        '{"age": 1, "displayName": "x"}'
    )


def test_width_checked_on_encode():
    """位宽字段在编码时检查范围, 错误带 loc."""
    wrapper = Wrapper(items=[Tiny(value=1), Tiny.model_construct(value=300)])
    with pytest.raises(JsonEncodeError, match="out of range for INT8") as exc_info:
        dumps(wrapper)
    assert exc_info.value.loc == ["items", 1, "value"]


def test_non_finite_float():
    """NaN 与 Infinity 无法编码."""
    for value in (math.nan, math.inf, -math.inf):
        with pytest.raises(JsonEncodeError, match="non-finite"):
            dumps({"x": value})


def test_unknown_type_uses_registry():
    """注册过的自定义叶子类型通过注册表编码."""
    registry = CodecRegistry()
    registry.register(Money, MoneyCodec())
    cache = SchemaCache(registry)
    assert dumps({"price": Money(1250)}, cache=cache) == '{"price": "12.50"}'


def test_unknown_type_uses_default():
    """无法编码的类型交给 default 回调."""
    assert dumps({"m": Money(5)}, default=lambda m: m.cents) == '{"m": 5}'


def test_unknown_type_fails():
    """没有编解码器也没有 default 时抛出 JsonEncodeError."""
    with pytest.raises(JsonEncodeError, match="Cannot encode type") as exc_info:
        dumps({"a": [object()]})
    assert exc_info.value.loc == ["a", 0]


def test_writer_directly():
    """JsonWriter 拼接输出文本."""
    writer = JsonWriter(compact=True)
    writer.write_raw("1")
    writer.write_string('a"b')
    assert writer.get_text() == '1"a\\"b"'


def test_encoder_compact_config():
    """JsonEncoder 按配置选择分隔符."""
    config = JsonConfig.from_params(option=JsonOption.COMPACT)
    encoder = JsonEncoder(config, SchemaCache())
    assert encoder.encode({"a": [1, None]}) == '{"a":[1,null]}'


def test_encoder_logs(caplog):
    """编码时记录 debug 日志."""
    with caplog.at_level(logging.DEBUG, logger="jsonseed"):
        dumps(Tiny(value=1))
    messages = [r.getMessage() for r in caplog.records]
    assert any("开始编码 Tiny" in m for m in messages)
    assert any("成功编码" in m for m in messages)
