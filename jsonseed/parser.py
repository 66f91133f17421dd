"""JSON 结构解析器.

递归下降地消费 Token 流, 并通过 `JsonObject` 回调驱动一个根构建器.
解析器本身不保存任何值, 值的累积与类型转换由构建器 (Seed) 负责。
"""

from collections.abc import Callable
from typing import Protocol, TextIO

from .codecs import JsonScalar
from .exceptions import JsonMalformedError
from .lexer import Lexer, Token, TokenKind


class JsonObject(Protocol):
    """接收解析事件的构建器接口.

    数组元素以数组自身的属性名报告。
    """

    def set_simple_property(self, name: str, value: JsonScalar) -> None:
        """写入一个标量值."""
        ...

    def create_object(self, name: str) -> "JsonObject":
        """为嵌套对象创建子构建器."""
        ...

    def create_array(self, name: str) -> "JsonObject":
        """为嵌套数组创建子构建器."""
        ...


class Parser:
    """递归下降的 JSON 结构解析器.

    Examples:
        >>> Parser('{"a": [1, 2]}', root).parse()  # doctest: +SKIP
    """

    def __init__(
        self,
        source: str | TextIO,
        root: JsonObject,
        max_depth: int | None = None,
    ):
        """初始化 Parser.

        Args:
            source: JSON 文本或文本流.
            root: 根构建器.
            max_depth: 最大嵌套深度, None 表示不限制.
        """
        self._lexer = Lexer(source)
        self._root = root
        self._max_depth = max_depth
        self._depth = 0

    def parse(self) -> None:
        """解析整个文档.

        Raises:
            JsonMalformedError: 文档不是以对象开始, 结构错误, 或根对象后仍有内容.
        """
        self._expect(self._next_token(), TokenKind.LBRACE)
        self._enter(0)
        self._parse_object(self._root)

        trailing = self._lexer.next_token()
        if trailing is not None:
            raise JsonMalformedError(
                f"Trailing content {trailing}", trailing.pos, str(trailing)
            )

    def _enter(self, pos: int) -> None:
        self._depth += 1
        if self._max_depth is not None and self._depth > self._max_depth:
            raise JsonMalformedError(
                f"Maximum nesting depth {self._max_depth} exceeded", pos
            )

    def _parse_object(self, target: JsonObject) -> None:
        def member(token: Token) -> None:
            self._expect(token, TokenKind.STRING)
            name = token.value
            self._expect(self._next_token(), TokenKind.COLON)
            self._parse_property_value(target, name, self._next_token())

        self._parse_comma_separated(TokenKind.RBRACE, member)
        self._depth -= 1

    def _parse_array(self, target: JsonObject, name: str) -> None:
        self._parse_comma_separated(
            TokenKind.RBRACKET,
            lambda token: self._parse_property_value(target, name, token),
        )
        self._depth -= 1

    def _parse_property_value(
        self, target: JsonObject, name: str, token: Token
    ) -> None:
        if token.is_value:
            target.set_simple_property(name, token.value)
        elif token.kind is TokenKind.LBRACE:
            self._enter(token.pos)
            self._parse_object(target.create_object(name))
        elif token.kind is TokenKind.LBRACKET:
            self._enter(token.pos)
            self._parse_array(target.create_array(name), name)
        else:
            raise JsonMalformedError(
                f"Expected a value, found {token}", token.pos, str(token)
            )

    def _parse_comma_separated(
        self, stop_kind: TokenKind, body: Callable[[Token], None]
    ) -> None:
        """解析以逗号分隔、以 `stop_kind` 结束的元素序列.

        第一个元素前不需要逗号, 之后每个元素前都必须有逗号。
        """
        token = self._next_token()
        if token.kind is stop_kind:
            return
        body(token)

        while True:
            token = self._next_token()
            if token.kind is stop_kind:
                return
            if token.kind is not TokenKind.COMMA:
                raise JsonMalformedError(
                    f"Expected ',' or {stop_kind.value!r}, found {token}",
                    token.pos,
                    str(token),
                )
            body(self._next_token())

    def _expect(self, token: Token, kind: TokenKind) -> None:
        if token.kind is not kind:
            raise JsonMalformedError(
                f"Expected {kind.value!r}, found {token}", token.pos, str(token)
            )

    def _next_token(self) -> Token:
        token = self._lexer.next_token()
        if token is None:
            raise JsonMalformedError("Premature end of data", self._lexer.pos)
        return token
