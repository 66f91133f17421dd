"""jsonseed 特定的异常类.

该模块为 jsonseed 库定义了异常层次结构.
"""


class JsonError(Exception):
    """所有 jsonseed 异常的基类."""

    def __init__(
        self,
        msg: str,
        loc: list[str | int] | None = None,
    ) -> None:
        """初始化错误.

        Args:
            msg: 错误描述信息.
            loc: 错误发生的位置路径 (字段名或索引).
        """
        super().__init__(msg)
        self.loc = loc or []

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.loc:
            # 格式化为 dotted path
            loc_str = ".".join(str(x) for x in self.loc)
            return f"{base_msg} (at {loc_str})"
        return base_msg


class JsonMalformedError(JsonError, ValueError):
    """输入文本违反 JSON 语法时抛出.

    Case:
        - 不支持的转义序列或未结束的字符串.
        - 意外的 Token (如缺少冒号、逗号).
        - 输入提前结束.
        - 根对象之后仍有多余内容.
    """

    def __init__(
        self,
        msg: str,
        pos: int = 0,
        text: str = "",
        loc: list[str | int] | None = None,
    ) -> None:
        """初始化语法错误.

        Args:
            msg: 错误描述信息.
            pos: 出错位置 (字符偏移).
            text: 出错的原始文本片段.
            loc: 错误发生的位置路径.
        """
        super().__init__(f"{msg} at position {pos}", loc)
        self.pos = pos
        self.text = text


class JsonSchemaError(JsonError, TypeError):
    """目标类型的元数据与输入不匹配时抛出.

    Case:
        - 类型没有可用的构造器, 或构造参数没有对应的字段.
        - JSON 中出现未声明的字段.
        - 不支持的 Map 键类型, 或键文本无法转换.
        - 缺少必填字段.
        - 形状不匹配 (期望对象却得到数组, 反之亦然).
    """

    pass


class JsonDecodeError(JsonError, ValueError):
    """JSON 标量的实际类型与编解码器期望的类型不一致时抛出.

    Case:
        - 字符串被送入数值字段.
        - 整数超出声明的位宽范围.
        - 非空字段收到 null.
    """

    pass


class JsonEncodeError(JsonError, ValueError):
    """序列化失败时抛出.

    Case:
        - Map 的键不是 str/int/float/bool/Enum.
        - 值的类型无法编码.
        - 非有限浮点数 (NaN, Infinity).
    """

    pass
