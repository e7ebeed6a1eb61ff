"""Tokenizer for the visibility expression language.

Token kinds:
  - STRING   'text' or "text" with backslash escapes
  - NUMBER   integer or decimal, optional leading sign
  - DATE     @YYYY, @YYYY-MM, @YYYY-MM-DD (a time part is accepted and dropped)
  - IDENT    letters, digits, '.', '-', '_' (e.g. answer-of, q1, 1.2.3)
  - KEYWORD  and, or, not, true, false
  - OP       = != < > <= >=
  - LPAREN / RPAREN / COMMA
  - EOF      always the last token

Whitespace is insignificant.  Malformed input raises ``ParseError`` with
the character position where the problem starts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from questnav.errors import ParseError

KEYWORDS: frozenset[str] = frozenset({"and", "or", "not", "true", "false"})

_IDENT_CHARS = re.compile(r"[A-Za-z0-9_.\-]")
_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d+)?|\.\d+)")
_DATE_BODY = re.compile(r"[0-9T:.+\-Z]+")

_ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", "'": "'", '"': '"'}


@dataclass(frozen=True)
class Token:
    kind: str
    value: Any
    text: str
    position: int

    def describe(self) -> str:
        if self.kind == "EOF":
            return "end of input"
        return f"'{self.text}'"


def parse_date_literal(text: str) -> date:
    """Parse a full or partial ISO date; missing month/day default to 1.

    Raises ``ValueError`` on malformed input.
    """
    if "T" in text:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    parts = text.split("-")
    if len(parts) > 3 or not all(p.isdigit() for p in parts) or len(parts[0]) != 4:
        raise ValueError(f"malformed date '{text}'")
    year = int(parts[0])
    month = int(parts[1]) if len(parts) > 1 else 1
    day = int(parts[2]) if len(parts) > 2 else 1
    return date(year, month, day)


class Lexer:
    """Splits expression source into a list of :class:`Token`."""

    def __init__(self, source: str) -> None:
        self._src = source
        self._pos = 0

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while True:
            tok = self._next()
            tokens.append(tok)
            if tok.kind == "EOF":
                return tokens

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _next(self) -> Token:
        src = self._src
        n = len(src)

        while self._pos < n and src[self._pos].isspace():
            self._pos += 1
        if self._pos >= n:
            return Token("EOF", None, "", n)

        start = self._pos
        ch = src[start]

        if ch in "'\"":
            return self._string(ch)
        if ch == "@":
            return self._date()
        if ch == "(":
            self._pos += 1
            return Token("LPAREN", ch, ch, start)
        if ch == ")":
            self._pos += 1
            return Token("RPAREN", ch, ch, start)
        if ch == ",":
            self._pos += 1
            return Token("COMMA", ch, ch, start)
        if ch in "<>":
            op = src[start:start + 2] if src.startswith("=", start + 1) else ch
            self._pos += len(op)
            return Token("OP", op, op, start)
        if ch == "=":
            self._pos += 1
            return Token("OP", "=", "=", start)
        if ch == "!":
            if src.startswith("=", start + 1):
                self._pos += 2
                return Token("OP", "!=", "!=", start)
            raise ParseError("unknown operator '!'", position=start, expected="'!='")

        number = _NUMBER.match(src, start)
        if number and (ch.isdigit() or ch in "+-."):
            return self._number(number)

        if ch.isalpha() or ch == "_":
            return self._identifier(start)

        raise ParseError(f"unexpected character {ch!r}", position=start)

    def _string(self, quote: str) -> Token:
        src = self._src
        start = self._pos
        self._pos += 1
        chars: list[str] = []
        while self._pos < len(src):
            ch = src[self._pos]
            if ch == "\\" and self._pos + 1 < len(src):
                nxt = src[self._pos + 1]
                chars.append(_ESCAPES.get(nxt, nxt))
                self._pos += 2
                continue
            if ch == quote:
                self._pos += 1
                return Token("STRING", "".join(chars), src[start:self._pos], start)
            chars.append(ch)
            self._pos += 1
        raise ParseError("unterminated string", position=start, expected=f"closing {quote}")

    def _date(self) -> Token:
        start = self._pos
        body = _DATE_BODY.match(self._src, start + 1)
        if body is None:
            raise ParseError("empty date literal", position=start, expected="@YYYY-MM-DD")
        text = body.group(0)
        try:
            value = parse_date_literal(text)
        except ValueError:
            raise ParseError(
                f"malformed date literal '@{text}'", position=start, expected="@YYYY-MM-DD",
            ) from None
        self._pos = body.end()
        return Token("DATE", value, "@" + text, start)

    def _number(self, match: re.Match) -> Token:
        start = self._pos
        end = match.end()
        # "1.2.3" or "12abc" is an identifier (FHIR link ids are often dotted numbers)
        if end < len(self._src) and _IDENT_CHARS.match(self._src[end]):
            if self._src[start] in "+-":
                raise ParseError(
                    f"malformed number starting with '{self._src[start:end]}'",
                    position=start,
                )
            return self._identifier(start)
        text = match.group(0)
        self._pos = end
        if "." in text:
            return Token("NUMBER", Decimal(text), text, start)
        return Token("NUMBER", int(text), text, start)

    def _identifier(self, start: int) -> Token:
        end = start
        while end < len(self._src) and _IDENT_CHARS.match(self._src[end]):
            end += 1
        text = self._src[start:end]
        self._pos = end
        if text in KEYWORDS:
            return Token("KEYWORD", text, text, start)
        return Token("IDENT", text, text, start)


def tokenize(source: str) -> list[Token]:
    """Tokenize ``source``; the returned list always ends with an EOF token."""
    return Lexer(source).tokenize()
