# stmap/model_formats/safetensors/tokenizer.py
"""
Tokenizer for the restricted JSON subset used by SafeTensors headers.

Only punctuation, unsigned integers and strings are recognized. Tokens carry
absolute buffer offsets instead of copies; string tokens span the raw bytes
between the quotes with escapes left as-is.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple, Optional, Union

from stmap.model_formats.safetensors.errors import MalformedHeader

U64_MAX = (1 << 64) - 1

_WS = frozenset(b" \t\r\n")
_DIGITS = frozenset(b"0123456789")
_HEX = frozenset(b"0123456789abcdefABCDEF")
_SIMPLE_ESCAPES = frozenset(b'"\\/bfnrt')

_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_ZERO = ord("0")
_U = ord("u")


class TokenKind(Enum):
    BRACE_OPEN = "{"
    BRACE_CLOSE = "}"
    BRACKET_OPEN = "["
    BRACKET_CLOSE = "]"
    COLON = ":"
    COMMA = ","
    INTEGER = "integer"
    STRING = "string"
    EOH = "end of header"


_PUNCT = {
    ord("{"): TokenKind.BRACE_OPEN,
    ord("}"): TokenKind.BRACE_CLOSE,
    ord("["): TokenKind.BRACKET_OPEN,
    ord("]"): TokenKind.BRACKET_CLOSE,
    ord(":"): TokenKind.COLON,
    ord(","): TokenKind.COMMA,
}


class Token(NamedTuple):
    kind: TokenKind
    start: int  # absolute offset; first byte inside the quotes for strings
    end: int  # exclusive
    value: int = 0  # decoded value of INTEGER tokens


class Tokenizer:
    """Scans ``buf[start:end]``; ``end`` is the first byte of the data region."""

    __slots__ = ("buf", "pos", "end")

    def __init__(
        self,
        buf: Union[memoryview, bytes, bytearray],
        start: int = 0,
        end: Optional[int] = None,
    ):
        self.buf = buf if isinstance(buf, memoryview) else memoryview(buf)
        self.pos = start
        self.end = len(self.buf) if end is None else end

    def mark(self) -> int:
        return self.pos

    def reset(self, pos: int) -> None:
        self.pos = pos

    def matches(self, token: Token, literal: bytes) -> bool:
        """True if a STRING token's raw bytes equal ``literal``."""
        return token.kind is TokenKind.STRING and self.buf[token.start : token.end] == literal

    def text(self, token: Token) -> str:
        """Token bytes as text, for error messages."""
        return bytes(self.buf[token.start : token.end]).decode("utf-8", "replace")

    def next_token(self) -> Token:
        buf, end = self.buf, self.end
        pos = self.pos
        while pos < end and buf[pos] in _WS:
            pos += 1
        if pos >= end:
            self.pos = pos
            return Token(TokenKind.EOH, pos, pos)

        c = buf[pos]
        kind = _PUNCT.get(c)
        if kind is not None:
            self.pos = pos + 1
            return Token(kind, pos, pos + 1)
        if c in _DIGITS:
            return self._integer(pos)
        if c == _QUOTE:
            return self._string(pos)
        raise MalformedHeader(f"Unexpected character {bytes([c])!r} at offset {pos}")

    def _integer(self, pos: int) -> Token:
        buf, end = self.buf, self.end
        start = pos
        value = 0
        if buf[pos] == _ZERO:
            # A leading zero is a complete literal; "0x1" fails on the next token.
            pos += 1
        else:
            while pos < end and buf[pos] in _DIGITS:
                value = value * 10 + (buf[pos] - _ZERO)
                if value > U64_MAX:
                    raise MalformedHeader(f"Integer literal at offset {start} overflows u64")
                pos += 1
        self.pos = pos
        return Token(TokenKind.INTEGER, start, pos, value)

    def _string(self, quote: int) -> Token:
        buf, end = self.buf, self.end
        start = pos = quote + 1
        while True:
            if pos >= end:
                raise MalformedHeader(f"Unterminated string starting at offset {quote}")
            c = buf[pos]
            pos += 1
            if c == _QUOTE:
                break
            if c < 0x20 or c == 0x7F:
                raise MalformedHeader(f"Control character 0x{c:02x} in string at offset {pos - 1}")
            if c != _BACKSLASH:
                continue
            if pos >= end:
                raise MalformedHeader(f"Unterminated string starting at offset {quote}")
            esc = buf[pos]
            pos += 1
            if esc == _U:
                if pos + 4 > end:
                    raise MalformedHeader(f"Unterminated string starting at offset {quote}")
                for i in range(pos, pos + 4):
                    if buf[i] not in _HEX:
                        raise MalformedHeader(f"Invalid \\u escape at offset {pos - 2}")
                pos += 4
            elif esc not in _SIMPLE_ESCAPES:
                raise MalformedHeader(
                    f"Invalid escape {bytes([esc])!r} at offset {pos - 2}"
                )
        self.pos = pos
        return Token(TokenKind.STRING, start, pos - 1)
