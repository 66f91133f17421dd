"""JSON 词法分析器.

该模块提供逐字符读取的 `CharReader` 和将字符流转换为 Token 流的 `Lexer`.
"""

import io
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, TextIO

from .exceptions import JsonMalformedError


class TokenKind(Enum):
    """Token 类型."""

    COMMA = ","
    COLON = ":"
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    NULL = "null"


_VALUE_KINDS = frozenset(
    {
        TokenKind.STRING,
        TokenKind.INTEGER,
        TokenKind.FLOAT,
        TokenKind.BOOLEAN,
        TokenKind.NULL,
    }
)

_STRUCTURAL = {
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
}

_WHITESPACE = frozenset(" \t\r\n")

# 字面量 (true/false/null/数字) 之后允许出现的字符
_VALUE_END_CHARS = frozenset(",}] \t\r\n")

_ESCAPES = {
    "\\": "\\",
    "/": "/",
    '"': '"',
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

_NUMBER_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(\.[0-9]+)?([eE][+-]?[0-9]+)?")


@dataclass(frozen=True, slots=True)
class Token:
    """一个词法单元.

    Attributes:
        kind: Token 类型.
        value: 标量的值 (结构标记为 None).
        pos: Token 起始位置 (字符偏移).
    """

    kind: TokenKind
    value: Any = None
    pos: int = 0

    @property
    def is_value(self) -> bool:
        """是否为标量 Token."""
        return self.kind in _VALUE_KINDS

    def __str__(self) -> str:
        if self.kind is TokenKind.STRING:
            return f"string {self.value!r}"
        if self.kind is TokenKind.BOOLEAN:
            return "true" if self.value else "false"
        if self.kind in (TokenKind.INTEGER, TokenKind.FLOAT):
            return f"number {self.value!r}"
        return repr(self.kind.value)


class CharReader:
    """带单字符预读的字符流读取器."""

    __slots__ = ("_next", "_pos", "_stream", "eof")

    def __init__(self, source: str | TextIO):
        """初始化 CharReader.

        Args:
            source: JSON 文本或文本流.
        """
        self._stream: TextIO = io.StringIO(source) if isinstance(source, str) else source
        self._next: str | None = None
        self._pos = 0
        self.eof = False

    @property
    def pos(self) -> int:
        """下一个待读取字符的位置."""
        return self._pos

    def _advance(self) -> None:
        if self.eof:
            return
        c = self._stream.read(1)
        if not c:
            self.eof = True
        else:
            self._next = c

    def peek_next(self) -> str | None:
        """查看下一个字符而不移动指针."""
        if self._next is None:
            self._advance()
        return None if self._next is None else self._next

    def read_next(self) -> str | None:
        """读取下一个字符, 流结束时返回 None."""
        c = self.peek_next()
        if c is not None:
            self._next = None
            self._pos += 1
        return c

    def read_next_chars(self, length: int) -> str:
        """读取固定数量的字符.

        Raises:
            JsonMalformedError: 输入提前结束.
        """
        chars = []
        for _ in range(length):
            c = self.read_next()
            if c is None:
                raise JsonMalformedError(
                    "Premature end of data", self._pos, "".join(chars)
                )
            chars.append(c)
        return "".join(chars)

    def expect_text(self, text: str, start: int) -> None:
        """读取并校验关键字剩余部分, 且关键字后必须是分隔符或流结束."""
        actual = self.read_next_chars(len(text))
        if actual != text:
            raise JsonMalformedError(f"Expected text {text!r}", start, actual)
        following = self.peek_next()
        if following is not None and following not in _VALUE_END_CHARS:
            raise JsonMalformedError(
                f"Unexpected character {following!r} after literal",
                self._pos,
                following,
            )


class Lexer:
    """JSON 词法分析器.

    惰性地产生 Token, 流结束时 `next_token()` 返回 None.

    Examples:
        >>> [str(t) for t in Lexer('{"a": 1}')]
        ["'{'", "string 'a'", "':'", 'number 1', "'}'"]
    """

    __slots__ = ("_reader",)

    def __init__(self, source: str | TextIO):
        self._reader = CharReader(source)

    @property
    def pos(self) -> int:
        """当前读取位置."""
        return self._reader.pos

    def __iter__(self) -> Iterator[Token]:
        while (token := self.next_token()) is not None:
            yield token

    def next_token(self) -> Token | None:
        """读取下一个 Token.

        Raises:
            JsonMalformedError: 词法错误.
        """
        reader = self._reader
        c = reader.read_next()
        while c is not None and c in _WHITESPACE:
            c = reader.read_next()
        if c is None:
            return None

        start = reader.pos - 1
        kind = _STRUCTURAL.get(c)
        if kind is not None:
            return Token(kind, pos=start)
        if c == '"':
            return self._read_string(start)
        if c == "-" or "0" <= c <= "9":
            return self._read_number(c, start)
        if c == "t":
            reader.expect_text("rue", start)
            return Token(TokenKind.BOOLEAN, True, start)
        if c == "f":
            reader.expect_text("alse", start)
            return Token(TokenKind.BOOLEAN, False, start)
        if c == "n":
            reader.expect_text("ull", start)
            return Token(TokenKind.NULL, None, start)

        raise JsonMalformedError(f"Unexpected character {c!r}", start, c)

    def _read_string(self, start: int) -> Token:
        reader = self._reader
        chars: list[str] = []
        has_surrogate = False
        while True:
            c = reader.read_next()
            if c is None:
                raise JsonMalformedError("Unterminated string", start, "".join(chars))
            if c == '"':
                break
            if c != "\\":
                chars.append(c)
                continue

            escaped = reader.read_next()
            if escaped is None:
                raise JsonMalformedError(
                    "Unterminated escape sequence", reader.pos, "\\"
                )
            if escaped == "u":
                hex_chars = reader.read_next_chars(4)
                if not all(h in _HEX_DIGITS for h in hex_chars):
                    raise JsonMalformedError(
                        f"Invalid unicode escape \\u{hex_chars}",
                        reader.pos - 6,
                        f"\\u{hex_chars}",
                    )
                code = int(hex_chars, 16)
                if 0xD800 <= code <= 0xDFFF:
                    has_surrogate = True
                chars.append(chr(code))
                continue

            replacement = _ESCAPES.get(escaped)
            if replacement is None:
                raise JsonMalformedError(
                    f"Unsupported escape sequence \\{escaped}",
                    reader.pos - 2,
                    f"\\{escaped}",
                )
            chars.append(replacement)

        value = "".join(chars)
        if has_surrogate:
            # 合并成对的 UTF-16 代理项, 单独的代理项保持原样
            value = value.encode("utf-16-le", "surrogatepass").decode(
                "utf-16-le", "surrogatepass"
            )
        return Token(TokenKind.STRING, value, start)

    def _read_number(self, first: str, start: int) -> Token:
        reader = self._reader
        chars = [first]
        while True:
            c = reader.peek_next()
            if c is None or c in _VALUE_END_CHARS:
                break
            chars.append(c)
            reader.read_next()

        text = "".join(chars)
        match = _NUMBER_RE.fullmatch(text)
        if match is None:
            raise JsonMalformedError(f"Invalid number literal {text!r}", start, text)
        if match.group(1) is None and match.group(2) is None:
            try:
                return Token(TokenKind.INTEGER, int(text), start)
            except ValueError as e:
                # 超过解释器的整数位数限制
                raise JsonMalformedError(
                    f"Number out of range {text[:32]!r}...", start, text
                ) from e

        value = float(text)
        if value in (float("inf"), float("-inf")):
            raise JsonMalformedError(f"Number out of range {text!r}", start, text)
        return Token(TokenKind.FLOAT, value, start)
