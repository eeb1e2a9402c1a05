"""
Tokenizer for Go source files.

Produces identifiers, literals, comments and operators with line and
column positions. Only the subset of Go needed to read declarations is
interpreted; everything else is tokenized so it can be skipped safely.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

from ..core.generator import GeneratorError


class ScanError(GeneratorError):
    """Raised when a source file cannot be read or tokenized."""

    def __init__(self, message: str, file: str = "", line: int = 0, column: int = 0):
        self.file = file
        self.line = line
        self.column = column
        location = file
        if line:
            location = f"{file}:{line}:{column}" if column else f"{file}:{line}"
        super().__init__(f"{location}: {message}" if location else message)


class TokenKind(Enum):
    """Kinds of Go tokens."""

    IDENT = "ident"
    INT = "int"
    FLOAT = "float"
    IMAG = "imag"
    CHAR = "char"
    STRING = "string"  # "interpreted"
    RAW_STRING = "raw_string"  # `raw`
    COMMENT = "comment"
    OP = "op"
    EOF = "eof"


@dataclass
class Token:
    kind: TokenKind
    value: str
    line: int
    column: int
    end_line: int = 0

    def __post_init__(self):
        if not self.end_line:
            self.end_line = self.line

    def is_op(self, *values: str) -> bool:
        return self.kind == TokenKind.OP and self.value in values

    def is_ident(self, *values: str) -> bool:
        return self.kind == TokenKind.IDENT and (not values or self.value in values)


# Longest operators first so that greedy matching works
_OPERATORS = [
    "<<=", ">>=", "&^=", "...", "&&", "||", "<-", "++", "--", "==", "!=",
    "<=", ">=", ":=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<",
    ">>", "&^", "+", "-", "*", "/", "%", "&", "|", "^", "<", ">", "=", "!",
    "(", ")", "[", "]", "{", "}", ",", ";", ".", ":", "~",
]


class Lexer:
    """Converts Go source text into a list of tokens."""

    def __init__(self, source: str, filename: str = "<source>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1

    def error(self, message: str, line: int = 0, column: int = 0) -> ScanError:
        return ScanError(message, self.filename, line or self.line, column or self.column)

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        src = self.source
        length = len(src)

        while self.pos < length:
            ch = src[self.pos]

            if ch == "\n":
                self._advance(1)
                continue
            if ch in " \t\r\ufeff":
                self._advance(1)
                continue

            line, column = self.line, self.column

            if src.startswith("//", self.pos):
                end = src.find("\n", self.pos)
                end = length if end == -1 else end
                text = src[self.pos:end]
                self._advance(end - self.pos)
                tokens.append(Token(TokenKind.COMMENT, text, line, column))
                continue

            if src.startswith("/*", self.pos):
                end = src.find("*/", self.pos + 2)
                if end == -1:
                    raise self.error("comment not terminated", line, column)
                text = src[self.pos:end + 2]
                self._advance(end + 2 - self.pos)
                tokens.append(Token(TokenKind.COMMENT, text, line, column, self.line))
                continue

            if ch.isalpha() or ch == "_" or ord(ch) > 127:
                start = self.pos
                while self.pos < length and (
                    src[self.pos].isalnum() or src[self.pos] == "_" or ord(src[self.pos]) > 127
                ):
                    self._advance(1)
                tokens.append(Token(TokenKind.IDENT, src[start:self.pos], line, column))
                continue

            if ch.isdigit() or (ch == "." and self.pos + 1 < length and src[self.pos + 1].isdigit()):
                tokens.append(self._read_number(line, column))
                continue

            if ch == '"':
                tokens.append(self._read_string(line, column))
                continue

            if ch == "`":
                end = src.find("`", self.pos + 1)
                if end == -1:
                    raise self.error("raw string literal not terminated", line, column)
                text = src[self.pos:end + 1]
                self._advance(end + 1 - self.pos)
                tokens.append(Token(TokenKind.RAW_STRING, text, line, column, self.line))
                continue

            if ch == "'":
                tokens.append(self._read_rune(line, column))
                continue

            for op in _OPERATORS:
                if src.startswith(op, self.pos):
                    self._advance(len(op))
                    tokens.append(Token(TokenKind.OP, op, line, column))
                    break
            else:
                raise self.error(f"unexpected character {ch!r}", line, column)

        tokens.append(Token(TokenKind.EOF, "", self.line, self.column))
        return tokens

    def _advance(self, count: int) -> None:
        for _ in range(count):
            if self.source[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def _read_number(self, line: int, column: int) -> Token:
        src = self.source
        start = self.pos
        kind = TokenKind.INT
        while self.pos < len(src):
            ch = src[self.pos]
            if ch.isalnum() or ch == "_":
                # exponent sign: 1e-9, 0x1p+3
                if ch in "eEpP" and self.pos + 1 < len(src) and src[self.pos + 1] in "+-":
                    is_hex = src[start:start + 2].lower() == "0x"
                    if (ch in "eE" and not is_hex) or (ch in "pP" and is_hex):
                        kind = TokenKind.FLOAT
                        self._advance(2)
                        continue
                self._advance(1)
            elif ch == ".":
                kind = TokenKind.FLOAT
                self._advance(1)
            else:
                break
        text = src[start:self.pos]
        if text.endswith("i"):
            kind = TokenKind.IMAG
        return Token(kind, text, line, column)

    def _read_string(self, line: int, column: int) -> Token:
        src = self.source
        start = self.pos
        self._advance(1)
        while True:
            if self.pos >= len(src) or src[self.pos] == "\n":
                raise self.error("string literal not terminated", line, column)
            ch = src[self.pos]
            if ch == "\\":
                if self.pos + 1 >= len(src):
                    raise self.error("string literal not terminated", line, column)
                self._advance(2)
                continue
            self._advance(1)
            if ch == '"':
                break
        return Token(TokenKind.STRING, src[start:self.pos], line, column)

    def _read_rune(self, line: int, column: int) -> Token:
        src = self.source
        start = self.pos
        self._advance(1)
        while True:
            if self.pos >= len(src) or src[self.pos] == "\n":
                raise self.error("rune literal not terminated", line, column)
            ch = src[self.pos]
            if ch == "\\":
                self._advance(2)
                continue
            self._advance(1)
            if ch == "'":
                break
        if self.pos - start < 3:
            raise self.error("empty rune literal", line, column)
        return Token(TokenKind.CHAR, src[start:self.pos], line, column)


def tokenize(source: str, filename: str = "<source>") -> List[Token]:
    """Tokenize Go source text."""
    return Lexer(source, filename).tokenize()


def unquote(literal: str) -> str:
    """
    Decode a Go string literal token.

    Args:
        literal: Raw token text including its quotes

    Returns:
        The string value
    """
    if literal.startswith("`"):
        return literal[1:-1].replace("\r", "")
    body = literal[1:-1]
    if "\\" not in body:
        return body

    out = []
    i = 0
    simple = {"n": "\n", "t": "\t", "r": "\r", "a": "\a", "b": "\b",
              "f": "\f", "v": "\v", "\\": "\\", '"': '"', "'": "'"}
    while i < len(body):
        ch = body[i]
        if ch != "\\" or i + 1 >= len(body):
            out.append(ch)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in simple:
            out.append(simple[nxt])
            i += 2
        elif nxt == "x":
            out.append(chr(int(body[i + 2:i + 4], 16)))
            i += 4
        elif nxt == "u":
            out.append(chr(int(body[i + 2:i + 6], 16)))
            i += 6
        elif nxt == "U":
            out.append(chr(int(body[i + 2:i + 10], 16)))
            i += 10
        elif nxt in "01234567":
            out.append(chr(int(body[i + 1:i + 4], 8)))
            i += 4
        else:
            out.append(nxt)
            i += 2
    return "".join(out)
