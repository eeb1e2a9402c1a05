"""
Declaration parser for Go source files.

Reads the package clause, imports, type declarations (structs, generics,
named types, aliases) and const declarations of a single file. Function and
var declarations are skipped by bracket matching. Comments are grouped the
way go/ast groups them so that doc comments and trailing line comments can
be attached to declarations and fields.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .ast import (
    TypeExpr,
    Ident,
    Qualified,
    Pointer,
    ListOf,
    MapOf,
    Generic,
    StructLit,
    InterfaceLit,
    Opaque,
    ImportSpec,
    ImportTable,
)
from .lexer import Token, TokenKind, ScanError, tokenize, unquote


TOP_LEVEL_KEYWORDS = {"func", "type", "var", "const", "import"}
TYPE_START_IDENTS = {"map", "chan", "func", "struct", "interface"}


@dataclass
class CommentGroup:
    """Adjacent comments with no blank line or code between them."""

    comments: List[Token] = field(default_factory=list)
    trailing: bool = False

    @property
    def start_line(self) -> int:
        return self.comments[0].line

    @property
    def end_line(self) -> int:
        return self.comments[-1].end_line

    @property
    def text(self) -> str:
        """Comment text without comment markers."""
        lines: List[str] = []
        for token in self.comments:
            lines.extend(normalize_comment(token.value))
        return "\n".join(lines).strip("\n")


def normalize_comment(raw: str) -> List[str]:
    """
    Strip Go comment markers from a single comment token.

    Handles ``//``, ``/* */`` and javadoc style ``/** ... */`` blocks whose
    continuation lines start with ``*``.

    Args:
        raw: Comment token text

    Returns:
        Lines of comment content
    """
    if raw.startswith("//"):
        text = raw[2:]
        if text.startswith(" "):
            text = text[1:]
        return [text.rstrip()]

    body = raw[2:-2]
    while body.startswith("*"):
        body = body[1:]
    lines = []
    for line in body.split("\n"):
        stripped = line.strip()
        if stripped.startswith("*"):
            stripped = stripped[1:].lstrip()
        lines.append(stripped)
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return lines


@dataclass
class FieldDecl:
    """One struct field line; embedded fields have no names."""

    names: List[str]
    type_expr: TypeExpr
    tag: str = ""
    doc: Optional[CommentGroup] = None
    comment: Optional[CommentGroup] = None
    line: int = 0
    column: int = 0

    @property
    def embedded(self) -> bool:
        return not self.names


@dataclass
class TypeDecl:
    """A type specification; ``fields`` is set for struct types."""

    name: str
    type_params: List[str] = field(default_factory=list)
    fields: Optional[List[FieldDecl]] = None
    type_expr: Optional[TypeExpr] = None
    is_alias: bool = False
    doc: Optional[CommentGroup] = None
    comment: Optional[CommentGroup] = None
    line: int = 0
    column: int = 0

    @property
    def is_struct(self) -> bool:
        return self.fields is not None


@dataclass
class ConstValue:
    """Right hand side expression of a const spec."""

    tokens: List[Token]

    @property
    def text(self) -> str:
        parts = []
        for token in self.tokens:
            if parts and (token.kind == TokenKind.IDENT or token.is_op("+", "-", "*", "<<", "|")):
                parts.append(" ")
            parts.append(token.value)
            if token.is_op("+", "-", "*", "<<", "|"):
                parts.append(" ")
        return "".join(parts).replace("  ", " ").strip()

    @property
    def string_value(self) -> Optional[str]:
        if len(self.tokens) == 1 and self.tokens[0].kind in (
            TokenKind.STRING,
            TokenKind.RAW_STRING,
        ):
            return unquote(self.tokens[0].value)
        return None

    @property
    def int_value(self) -> Optional[int]:
        if len(self.tokens) == 1 and self.tokens[0].kind == TokenKind.INT:
            try:
                return int(self.tokens[0].value.replace("_", ""), 0)
            except ValueError:
                return None
        return None

    @property
    def is_iota(self) -> bool:
        return len(self.tokens) == 1 and self.tokens[0].is_ident("iota")


@dataclass
class ConstSpec:
    names: List[str]
    type_expr: Optional[TypeExpr] = None
    values: List[ConstValue] = field(default_factory=list)
    doc: Optional[CommentGroup] = None
    comment: Optional[CommentGroup] = None
    iota: int = 0
    line: int = 0


@dataclass
class ConstDecl:
    specs: List[ConstSpec] = field(default_factory=list)
    line: int = 0


@dataclass
class GoFile:
    """Everything the generator needs from one source file."""

    path: str
    package: str = ""
    imports: ImportTable = field(default_factory=ImportTable)
    types: List[TypeDecl] = field(default_factory=list)
    consts: List[ConstDecl] = field(default_factory=list)
    comment_groups: List[CommentGroup] = field(default_factory=list)
    first_type_line: int = 0


class Parser:
    """Recursive descent parser over the token stream of one file."""

    def __init__(self, tokens: List[Token], filename: str):
        self.filename = filename
        self.tokens = [t for t in tokens if t.kind != TokenKind.COMMENT]
        self.pos = 0
        self.groups = self._group_comments(tokens)
        self._doc_by_end: Dict[int, CommentGroup] = {}
        self._trailing_by_line: Dict[int, CommentGroup] = {}
        for group in self.groups:
            if group.trailing:
                self._trailing_by_line[group.start_line] = group
            else:
                self._doc_by_end[group.end_line] = group
        self.imports = ImportTable()

    # Comment handling

    @staticmethod
    def _group_comments(tokens: List[Token]) -> List[CommentGroup]:
        groups: List[CommentGroup] = []
        current: Optional[CommentGroup] = None
        last_code_line = 0

        for token in tokens:
            if token.kind != TokenKind.COMMENT:
                last_code_line = token.end_line
                current = None
                continue
            trailing = last_code_line == token.line
            if (
                current is None
                or trailing
                or current.trailing
                or token.line > current.end_line + 1
            ):
                current = CommentGroup(trailing=trailing)
                groups.append(current)
            current.comments.append(token)
        return groups

    def doc_for(self, line: int) -> Optional[CommentGroup]:
        return self._doc_by_end.get(line - 1)

    def line_comment_for(self, line: int) -> Optional[CommentGroup]:
        return self._trailing_by_line.get(line)

    # Token helpers

    def peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    @property
    def prev(self) -> Token:
        return self.tokens[self.pos - 1] if self.pos else self.tokens[0]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != TokenKind.EOF:
            self.pos += 1
        return token

    def error(self, message: str, token: Optional[Token] = None) -> ScanError:
        token = token or self.peek()
        return ScanError(message, self.filename, token.line, token.column)

    def expect_op(self, value: str) -> Token:
        token = self.peek()
        if not token.is_op(value):
            raise self.error(f"expected '{value}', found {self._describe(token)}")
        return self.advance()

    def expect_ident(self) -> Token:
        token = self.peek()
        if token.kind != TokenKind.IDENT:
            raise self.error(f"expected identifier, found {self._describe(token)}")
        return self.advance()

    def accept_op(self, value: str) -> bool:
        if self.peek().is_op(value):
            self.advance()
            return True
        return False

    @staticmethod
    def _describe(token: Token) -> str:
        if token.kind == TokenKind.EOF:
            return "end of file"
        return f"'{token.value}'"

    def _on_new_line(self, token: Token) -> bool:
        return token.line > self.prev.end_line

    # File level

    def parse_file(self) -> GoFile:
        go_file = GoFile(path=self.filename, comment_groups=self.groups)

        if not self.peek().is_ident("package"):
            raise self.error("expected 'package' clause")
        self.advance()
        go_file.package = self.expect_ident().value

        while True:
            token = self.peek()
            if token.kind == TokenKind.EOF:
                break
            if token.is_op(";"):
                self.advance()
            elif token.is_ident("import"):
                self._parse_import()
            elif token.is_ident("type"):
                if not go_file.first_type_line:
                    go_file.first_type_line = token.line
                go_file.types.extend(self._parse_type_decl())
            elif token.is_ident("const"):
                go_file.consts.append(self._parse_const_decl())
            else:
                self._skip_decl()

        go_file.imports = self.imports
        return go_file

    def _parse_import(self) -> None:
        self.advance()
        if self.accept_op("("):
            while not self.peek().is_op(")"):
                if self.peek().kind == TokenKind.EOF:
                    raise self.error("unterminated import block")
                if self.accept_op(";"):
                    continue
                self._parse_import_spec()
            self.advance()
        else:
            self._parse_import_spec()

    def _parse_import_spec(self) -> None:
        alias = None
        token = self.peek()
        if token.kind == TokenKind.IDENT:
            alias = self.advance().value
        elif token.is_op("."):
            self.advance()
            alias = "."
        token = self.peek()
        if token.kind not in (TokenKind.STRING, TokenKind.RAW_STRING):
            raise self.error(f"expected import path, found {self._describe(token)}")
        self.advance()
        self.imports.add(ImportSpec(path=unquote(token.value), alias=alias))

    def _skip_decl(self) -> None:
        start = self.advance()
        depth = 0
        while True:
            token = self.peek()
            if token.kind == TokenKind.EOF:
                if depth:
                    raise self.error(f"unexpected end of file in declaration starting at line {start.line}")
                return
            if depth == 0 and token.is_ident(*TOP_LEVEL_KEYWORDS) and self._on_new_line(token):
                return
            if token.is_op("(", "[", "{"):
                depth += 1
            elif token.is_op(")", "]", "}"):
                depth -= 1
                if depth < 0:
                    raise self.error(f"unexpected {self._describe(token)}")
            self.advance()

    # Type declarations

    def _parse_type_decl(self) -> List[TypeDecl]:
        keyword = self.advance()
        decl_doc = self.doc_for(keyword.line)

        if not self.accept_op("("):
            spec = self._parse_type_spec()
            spec.doc = decl_doc
            return [spec]

        specs = []
        while not self.peek().is_op(")"):
            if self.peek().kind == TokenKind.EOF:
                raise self.error("unterminated type block")
            if self.accept_op(";"):
                continue
            spec_line = self.peek().line
            spec = self._parse_type_spec()
            spec.doc = self.doc_for(spec_line)
            specs.append(spec)
        self.advance()

        if len(specs) == 1 and specs[0].doc is None:
            specs[0].doc = decl_doc
        return specs

    def _parse_type_spec(self) -> TypeDecl:
        name_token = self.expect_ident()
        decl = TypeDecl(name=name_token.value, line=name_token.line, column=name_token.column)

        if self.peek().is_op("[") and self._looks_like_type_params():
            decl.type_params = self._parse_type_params()

        decl.is_alias = self.accept_op("=")

        if self.peek().is_ident("struct"):
            decl.fields = self._parse_struct_body()
        else:
            decl.type_expr = self.parse_type()

        decl.comment = self.line_comment_for(self.prev.end_line)
        return decl

    def _looks_like_type_params(self) -> bool:
        first = self.peek(1)
        second = self.peek(2)
        if first.kind != TokenKind.IDENT:
            return False
        # [N]T is an array type with a constant length
        return not second.is_op("]")

    def _parse_type_params(self) -> List[str]:
        self.expect_op("[")
        params: List[str] = []
        while not self.peek().is_op("]"):
            params.append(self.expect_ident().value)
            if self.accept_op(","):
                continue
            # constraint runs until ',' or ']' at depth zero
            depth = 0
            while True:
                token = self.peek()
                if token.kind == TokenKind.EOF:
                    raise self.error("unterminated type parameter list")
                if depth == 0 and token.is_op(",", "]"):
                    break
                if token.is_op("(", "[", "{"):
                    depth += 1
                elif token.is_op(")", "]", "}"):
                    depth -= 1
                self.advance()
            self.accept_op(",")
        self.expect_op("]")
        return params

    def _parse_struct_body(self) -> List[FieldDecl]:
        self.advance()  # struct
        self.expect_op("{")
        fields: List[FieldDecl] = []

        while not self.peek().is_op("}"):
            token = self.peek()
            if token.kind == TokenKind.EOF:
                raise self.error("unterminated struct type")
            if self.accept_op(";"):
                continue
            fields.append(self._parse_field())
        self.advance()
        return fields

    def _parse_field(self) -> FieldDecl:
        start = self.peek()
        decl = FieldDecl(names=[], type_expr=Ident(""), line=start.line, column=start.column)
        decl.doc = self.doc_for(start.line)

        if start.is_op("*"):
            self.advance()
            decl.type_expr = Pointer(self._parse_type_name())
        elif start.kind == TokenKind.IDENT:
            if self._is_embedded_field():
                decl.type_expr = self._parse_type_name()
            else:
                decl.names.append(self.advance().value)
                while self.accept_op(","):
                    decl.names.append(self.expect_ident().value)
                decl.type_expr = self.parse_type()
        else:
            raise self.error(f"unexpected {self._describe(start)} in struct type")

        token = self.peek()
        if token.kind in (TokenKind.STRING, TokenKind.RAW_STRING) and not self._on_new_line(token):
            decl.tag = unquote(self.advance().value)

        decl.comment = self.line_comment_for(self.prev.end_line)

        token = self.peek()
        if not (token.is_op(";", "}") or self._on_new_line(token)):
            raise self.error(f"unexpected {self._describe(token)} after field")
        return decl

    def _ends_field(self, token: Token, after: Token) -> bool:
        return (
            token.line > after.end_line
            or token.is_op(";", "}")
            or token.kind in (TokenKind.STRING, TokenKind.RAW_STRING)
        )

    def _is_embedded_field(self) -> bool:
        name = self.peek()
        nxt = self.peek(1)
        if nxt.is_op("."):
            return True
        if self._ends_field(nxt, name):
            return True
        if nxt.is_op("[") and not self.peek(2).is_op("]"):
            # Base[Arg] followed by end of field is an embedded instantiation
            depth = 0
            offset = 1
            while True:
                token = self.peek(offset)
                if token.kind == TokenKind.EOF:
                    return False
                if token.is_op("["):
                    depth += 1
                elif token.is_op("]"):
                    depth -= 1
                    if depth == 0:
                        return self._ends_field(self.peek(offset + 1), token)
                offset += 1
        return False

    def _parse_type_name(self) -> TypeExpr:
        name = self.expect_ident()
        expr: TypeExpr = Ident(name.value)
        if self.peek().is_op("."):
            self.advance()
            type_name = self.expect_ident().value
            expr = Qualified(name.value, type_name, self.imports.resolve(name.value))
        if self.peek().is_op("[") and not self._on_new_line(self.peek()):
            self.advance()
            args = [self.parse_type()]
            while self.accept_op(","):
                if self.peek().is_op("]"):
                    break
                args.append(self.parse_type())
            self.expect_op("]")
            expr = Generic(expr, tuple(args))
        return expr

    def parse_type(self) -> TypeExpr:
        token = self.peek()

        if token.is_op("*"):
            self.advance()
            return Pointer(self.parse_type())

        if token.is_op("["):
            self.advance()
            if self.accept_op("]"):
                return ListOf(self.parse_type())
            length = []
            depth = 0
            while True:
                inner = self.peek()
                if inner.kind == TokenKind.EOF:
                    raise self.error("unterminated array length")
                if inner.is_op("]") and depth == 0:
                    break
                if inner.is_op("(", "["):
                    depth += 1
                elif inner.is_op(")", "]"):
                    depth -= 1
                length.append(self.advance().value)
            self.expect_op("]")
            return ListOf(self.parse_type(), "".join(length))

        if token.is_op("("):
            self.advance()
            inner = self.parse_type()
            self.expect_op(")")
            return inner

        if token.is_op("<-"):
            self.advance()
            if not self.peek().is_ident("chan"):
                raise self.error("expected 'chan'")
            self.advance()
            self.parse_type()
            return Opaque("chan")

        if token.kind != TokenKind.IDENT:
            raise self.error(f"expected type, found {self._describe(token)}")

        if token.value == "map":
            self.advance()
            self.expect_op("[")
            key = self.parse_type()
            self.expect_op("]")
            return MapOf(key, self.parse_type())

        if token.value == "chan":
            self.advance()
            self.accept_op("<-")
            self.parse_type()
            return Opaque("chan")

        if token.value == "func":
            self.advance()
            self._parse_signature()
            return Opaque("func")

        if token.value == "struct":
            fields = self._parse_struct_body()
            names = []
            for decl in fields:
                names.extend(decl.names or [decl.type_expr.base_name()])
            return StructLit(tuple(names))

        if token.value == "interface":
            self.advance()
            self.expect_op("{")
            empty = self.peek().is_op("}")
            self._skip_balanced("{", "}")
            return InterfaceLit(empty)

        return self._parse_type_name()

    def _skip_balanced(self, open_op: str, close_op: str) -> None:
        """Skip tokens up to and including the closer of an opened bracket."""
        depth = 1
        while depth:
            token = self.advance()
            if token.kind == TokenKind.EOF:
                raise self.error(f"missing '{close_op}'")
            if token.is_op(open_op):
                depth += 1
            elif token.is_op(close_op):
                depth -= 1

    def _parse_signature(self) -> None:
        self.expect_op("(")
        self._skip_balanced("(", ")")
        token = self.peek()
        if self._on_new_line(token):
            return
        if token.is_op("("):
            self.advance()
            self._skip_balanced("(", ")")
        elif token.is_op("*", "[", "<-") or (
            token.kind == TokenKind.IDENT
        ):
            self.parse_type()

    # Const declarations

    def _parse_const_decl(self) -> ConstDecl:
        keyword = self.advance()
        decl = ConstDecl(line=keyword.line)

        if not self.accept_op("("):
            spec = self._parse_const_spec(grouped=False)
            spec.doc = self.doc_for(keyword.line)
            decl.specs.append(spec)
            return decl

        iota = 0
        while not self.peek().is_op(")"):
            if self.peek().kind == TokenKind.EOF:
                raise self.error("unterminated const block")
            if self.accept_op(";"):
                continue
            line = self.peek().line
            spec = self._parse_const_spec(grouped=True)
            spec.doc = self.doc_for(line)
            spec.iota = iota
            iota += 1
            decl.specs.append(spec)
        self.advance()
        return decl

    def _parse_const_spec(self, grouped: bool) -> ConstSpec:
        first = self.expect_ident()
        spec = ConstSpec(names=[first.value], line=first.line)
        while self.accept_op(","):
            spec.names.append(self.expect_ident().value)

        token = self.peek()
        if not token.is_op("=") and not self._const_spec_ends(token, grouped):
            spec.type_expr = self.parse_type()

        if self.accept_op("="):
            spec.values = self._parse_const_values(grouped)

        spec.comment = self.line_comment_for(self.prev.end_line)
        return spec

    def _const_spec_ends(self, token: Token, grouped: bool) -> bool:
        if token.kind == TokenKind.EOF or token.is_op(";"):
            return True
        if grouped and token.is_op(")"):
            return True
        return self._on_new_line(token)

    def _parse_const_values(self, grouped: bool) -> List[ConstValue]:
        values: List[ConstValue] = []
        current: List[Token] = []
        depth = 0
        continuation = {"+", "-", "*", "/", "%", "<<", ">>", "&", "|", "^", "&^", "(", ","}

        while True:
            token = self.peek()
            if token.kind == TokenKind.EOF:
                break
            if depth == 0:
                if token.is_op(";") or (grouped and token.is_op(")")):
                    break
                if current and self._on_new_line(token) and not self.prev.is_op(*continuation):
                    break
                if token.is_op(","):
                    self.advance()
                    values.append(ConstValue(current))
                    current = []
                    continue
            if token.is_op("(", "[", "{"):
                depth += 1
            elif token.is_op(")", "]", "}"):
                depth -= 1
            current.append(self.advance())

        if not current:
            raise self.error("missing constant value")
        values.append(ConstValue(current))
        return values


def parse_source(source: str, filename: str = "<source>") -> GoFile:
    """
    Parse Go source text.

    Args:
        source: File content
        filename: Name used in error messages

    Returns:
        Parsed declarations of the file

    Raises:
        ScanError: If the file cannot be tokenized or parsed
    """
    tokens = tokenize(source, filename)
    return Parser(tokens, filename).parse_file()


def parse_file(path: str) -> GoFile:
    """Read and parse a Go source file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            source = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ScanError(f"cannot read file: {e}", path)
    return parse_source(source, path)
