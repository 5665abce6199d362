# stmap/model_formats/safetensors/values.py
"""
Recursive-descent value parsers over a ``Tokenizer``.

Each parser consumes exactly one value and raises ``MalformedHeader`` (or a
subclass) on the first unexpected token.
"""

from __future__ import annotations

from typing import Callable, List

from stmap.model_formats.safetensors.dtypes import DType
from stmap.model_formats.safetensors.errors import MalformedHeader, UnknownDtype
from stmap.model_formats.safetensors.tokenizer import Token, Tokenizer, TokenKind


def expect(tok: Tokenizer, kind: TokenKind) -> Token:
    """Consume the next token and require it to be of ``kind``."""
    t = tok.next_token()
    if t.kind is not kind:
        raise MalformedHeader(f"Expected {kind.value!r}, found {t.kind.value!r} at offset {t.start}")
    return t


def parse_object(tok: Tokenizer, on_entry: Callable[[Token], None]) -> None:
    """Parse ``{ "key": value, ... }``.

    ``on_entry`` receives the key token (positioned after the colon) and must
    consume the value.
    """
    expect(tok, TokenKind.BRACE_OPEN)
    t = tok.next_token()
    if t.kind is TokenKind.BRACE_CLOSE:
        return
    while True:
        if t.kind is not TokenKind.STRING:
            raise MalformedHeader(f"Expected object key, found {t.kind.value!r} at offset {t.start}")
        expect(tok, TokenKind.COLON)
        on_entry(t)
        t = tok.next_token()
        if t.kind is TokenKind.BRACE_CLOSE:
            return
        if t.kind is not TokenKind.COMMA:
            raise MalformedHeader(f"Expected ',' or '}}', found {t.kind.value!r} at offset {t.start}")
        t = tok.next_token()


def array_length(tok: Tokenizer) -> int:
    """Count the integers of the array at the cursor without consuming it."""
    start = tok.mark()
    expect(tok, TokenKind.BRACKET_OPEN)
    n = 0
    t = tok.next_token()
    if t.kind is not TokenKind.BRACKET_CLOSE:
        while True:
            if t.kind is not TokenKind.INTEGER:
                raise MalformedHeader(f"Expected integer, found {t.kind.value!r} at offset {t.start}")
            n += 1
            t = tok.next_token()
            if t.kind is TokenKind.BRACKET_CLOSE:
                break
            if t.kind is not TokenKind.COMMA:
                raise MalformedHeader(f"Expected ',' or ']', found {t.kind.value!r} at offset {t.start}")
            t = tok.next_token()
    tok.reset(start)
    return n


def parse_array(tok: Tokenizer, n: int) -> List[int]:
    """Parse an array of exactly ``n`` unsigned integers."""
    out = [0] * n
    expect(tok, TokenKind.BRACKET_OPEN)
    for i in range(n):
        out[i] = expect(tok, TokenKind.INTEGER).value
        if i < n - 1:
            expect(tok, TokenKind.COMMA)
    expect(tok, TokenKind.BRACKET_CLOSE)
    return out


def parse_dtype(tok: Tokenizer) -> DType:
    t = expect(tok, TokenKind.STRING)
    dtype = DType.from_tag(tok.text(t))
    if dtype is None:
        raise UnknownDtype(f"Unknown dtype {tok.text(t)!r} at offset {t.start}")
    return dtype
