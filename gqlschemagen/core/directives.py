"""
Parser for the @gql directive language.

Directives live in Go doc comments::

    // @gqlType(name:"Member", description:"A member, with details")
    // @gqlTypeExtraField(name:"posts", type:"[Post!]!", on:[Member,'Admin'])

and compact field tags use the same value syntax::

    `gql:"email,omit:PublicUser,description:'Contact, primary'"`

Values are bare tokens, single or double quoted strings, or bracketed
lists. The parser is a small recursive descent over characters so that
quotes and brackets nest correctly.
"""

import re
from typing import Dict, List, Optional, Tuple

from .generator import GeneratorError
from .schema import (
    ArtifactSpec,
    Directive,
    DirectiveKind,
    EnumDirective,
    ExtraField,
    FieldOptions,
    ParamValue,
    Scope,
    SourcePosition,
    TypeDirectives,
    scope_from_value,
)
from ..golang.tags import TagSyntaxError, parse_json_tag, parse_struct_tag
from ..logging_config import get_logger

logger = get_logger(__name__)


class DirectiveSyntaxError(GeneratorError):
    """Raised for malformed directives or tags."""

    def __init__(self, message: str, file: str = "", declaration: str = "", directive: str = ""):
        self.file = file
        self.declaration = declaration
        self.directive = directive
        self.reason = message
        parts = [p for p in (file, declaration, f"@{directive}" if directive else "") if p]
        super().__init__(": ".join(parts + [message]))

    def located(self, file: str, declaration: str) -> "DirectiveSyntaxError":
        """Copy of this error with location context filled in."""
        return DirectiveSyntaxError(
            self.reason,
            file=self.file or file,
            declaration=self.declaration or declaration,
            directive=self.directive,
        )


# Parameters each directive accepts; anything else is reported and ignored
KNOWN_PARAMS: Dict[DirectiveKind, Tuple[str, ...]] = {
    DirectiveKind.TYPE: ("name", "description", "ignoreall", "namespace"),
    DirectiveKind.INPUT: ("name", "description", "ignoreall", "namespace"),
    DirectiveKind.EXTRA_FIELD: ("name", "type", "description", "overridetags", "on"),
    DirectiveKind.TYPE_EXTRA_FIELD: ("name", "type", "description", "overridetags", "on"),
    DirectiveKind.INPUT_EXTRA_FIELD: ("name", "type", "description", "overridetags", "on"),
    DirectiveKind.ENUM: ("name", "description", "namespace"),
    DirectiveKind.ENUM_VALUE: ("name", "description", "deprecated"),
    DirectiveKind.NAMESPACE: ("name",),
    DirectiveKind.FIELD: (
        "name", "type", "description", "ignore", "omit", "include", "optional",
        "required", "deprecated", "forceresolver", "force_resolver", "rw", "ro", "wo",
    ),
}

REQUIRED_PARAMS: Dict[DirectiveKind, Tuple[str, ...]] = {
    DirectiveKind.EXTRA_FIELD: ("name", "type"),
    DirectiveKind.TYPE_EXTRA_FIELD: ("name", "type"),
    DirectiveKind.INPUT_EXTRA_FIELD: ("name", "type"),
    DirectiveKind.NAMESPACE: ("name",),
}

# a directive must start its line, after an optional javadoc "*"
_DIRECTIVE_START = re.compile(r"^[ \t]*(?:\*[ \t]*)?@([Gg]ql\w*)", re.MULTILINE)
_IDENT_CHARS = re.compile(r"[A-Za-z0-9_\-]")


class _Cursor:
    """Character cursor over directive or tag text."""

    def __init__(self, text: str, pos: int = 0):
        self.text = text
        self.pos = pos

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def advance(self) -> str:
        ch = self.text[self.pos]
        self.pos += 1
        return ch

    def skip_ws(self, newlines: bool = True) -> None:
        while not self.at_end():
            ch = self.peek()
            if ch in " \t\r" or (newlines and ch == "\n"):
                self.pos += 1
            else:
                break


def _parse_quoted(cur: _Cursor) -> str:
    quote = cur.advance()
    out = []
    while True:
        if cur.at_end():
            raise DirectiveSyntaxError(f"unterminated {quote} quote")
        ch = cur.advance()
        if ch == "\\" and not cur.at_end():
            nxt = cur.advance()
            out.append(nxt if nxt in ("\\", '"', "'") else "\\" + nxt)
        elif ch == quote:
            return "".join(out)
        else:
            out.append(ch)


def _parse_bare(cur: _Cursor, terminators: str) -> str:
    start = cur.pos
    depth = 0
    while not cur.at_end():
        ch = cur.peek()
        if depth == 0 and ch in terminators:
            break
        if ch == "\n" and depth == 0:
            break
        if ch in "\"'":
            raise DirectiveSyntaxError(f"unexpected quote in value {cur.text[start:cur.pos + 1]!r}")
        if ch in "[(":
            depth += 1
        elif ch in "])":
            if depth == 0:
                raise DirectiveSyntaxError(f"unbalanced '{ch}' in value {cur.text[start:cur.pos + 1]!r}")
            depth -= 1
        cur.advance()
    if depth:
        raise DirectiveSyntaxError(f"unbalanced bracket in value {cur.text[start:cur.pos]!r}")
    return cur.text[start:cur.pos].strip()


def _parse_list(cur: _Cursor) -> Tuple[str, ...]:
    cur.advance()  # [
    items: List[str] = []
    while True:
        cur.skip_ws()
        if cur.at_end():
            raise DirectiveSyntaxError("unbalanced '[' in list")
        ch = cur.peek()
        if ch == "]":
            cur.advance()
            return tuple(items)
        if ch == ",":
            cur.advance()
            continue
        if ch in "\"'":
            items.append(_parse_quoted(cur))
        else:
            item = _parse_bare(cur, ",]")
            if item:
                items.append(item)
        cur.skip_ws()
        if cur.peek() == ",":
            cur.advance()
        elif cur.peek() != "]":
            raise DirectiveSyntaxError("expected ',' or ']' in list")


def _parse_value(cur: _Cursor, terminators: str) -> ParamValue:
    cur.skip_ws(newlines=False)
    ch = cur.peek()
    if ch in ("\"", "'"):
        return _parse_quoted(cur)
    if ch == "[":
        start = cur.pos
        items = _parse_list(cur)
        cur.skip_ws(newlines=False)
        if cur.at_end() or cur.peek() in terminators or cur.peek() == "\n":
            return items
        # a type such as [Post!]! is a bare token, not a list
        cur.pos = start
    return _parse_bare(cur, terminators)


def _parse_key(cur: _Cursor) -> str:
    start = cur.pos
    while not cur.at_end() and _IDENT_CHARS.match(cur.peek()):
        cur.advance()
    return cur.text[start:cur.pos]


def _parse_params(cur: _Cursor) -> Dict[str, ParamValue]:
    cur.advance()  # (
    params: Dict[str, ParamValue] = {}
    while True:
        cur.skip_ws()
        if cur.at_end():
            raise DirectiveSyntaxError("unbalanced '(': missing ')'")
        if cur.peek() == ")":
            cur.advance()
            return params
        key = _parse_key(cur)
        if not key:
            raise DirectiveSyntaxError(f"expected parameter name, found {cur.peek()!r}")
        cur.skip_ws()
        if cur.peek() == ":":
            cur.advance()
            value = _parse_value(cur, ",)")
        else:
            value = True
        params[key.lower()] = value
        cur.skip_ws()
        if cur.peek() == ",":
            cur.advance()
        elif cur.peek() != ")":
            if cur.at_end():
                raise DirectiveSyntaxError("unbalanced '(': missing ')'")
            raise DirectiveSyntaxError(f"expected ',' or ')', found {cur.peek()!r}")


def directive_kind(name: str) -> Optional[DirectiveKind]:
    """Map ``gqlType``/``GqlType``/``gqlskip`` style names to a kind."""
    if name[:3].lower() != "gql":
        return None
    suffix = name[3:].lower()
    try:
        return DirectiveKind(suffix)
    except ValueError:
        return None


class ParsedComment:
    """Directives and the remaining plain text of a comment."""

    def __init__(self, directives: List[Directive], text: str):
        self.directives = directives
        self.text = text

    def of_kind(self, *kinds: DirectiveKind) -> List[Directive]:
        return [d for d in self.directives if d.kind in kinds]

    def first(self, kind: DirectiveKind) -> Optional[Directive]:
        found = self.of_kind(kind)
        return found[0] if found else None


def parse_comment(text: str, position: Optional[SourcePosition] = None) -> ParsedComment:
    """
    Extract directives from comment text.

    Args:
        text: Comment content with comment markers already removed
        position: Location of the comment for diagnostics

    Returns:
        ParsedComment with directives in source order and the plain text
        left after removing them

    Raises:
        DirectiveSyntaxError: If a directive is malformed
    """
    directives: List[Directive] = []
    plain: List[str] = []
    pos = 0

    while True:
        match = _DIRECTIVE_START.search(text, pos)
        if not match:
            plain.append(text[pos:])
            break

        name = match.group(1)
        kind = directive_kind(name)
        if kind is None:
            logger.debug("Ignoring unknown directive @%s at %s", name, position)
            plain.append(text[pos:match.end()])
            pos = match.end()
            continue

        plain.append(text[pos:match.start()])
        cur = _Cursor(text, match.end())
        params: Dict[str, ParamValue] = {}
        cur.skip_ws(newlines=False)
        if cur.peek() == "(":
            try:
                params = _parse_params(cur)
            except DirectiveSyntaxError as e:
                raise DirectiveSyntaxError(e.reason, directive=name)
        else:
            cur.pos = match.end()

        _check_params(kind, name, params, position)
        directives.append(Directive(kind=kind, name=name, params=params, position=position))
        pos = cur.pos

    lines = [line.strip() for line in "".join(plain).split("\n")]
    return ParsedComment(directives, "\n".join(line for line in lines if line))


def _check_params(
    kind: DirectiveKind,
    name: str,
    params: Dict[str, ParamValue],
    position: Optional[SourcePosition],
) -> None:
    for key in REQUIRED_PARAMS.get(kind, ()):
        value = params.get(key)
        if value is None or value is True or value == "" or value == ():
            raise DirectiveSyntaxError(f"missing required parameter '{key}'", directive=name)
    known = KNOWN_PARAMS.get(kind, ())
    for key in params:
        if key not in known:
            logger.warning("Unknown parameter '%s' of @%s at %s", key, name, position)


def parse_tag_items(value: str) -> List[Tuple[str, Optional[ParamValue]]]:
    """
    Split a compact ``name,flag,key:value`` tag into items.

    Args:
        value: The gql struct tag value

    Returns:
        List of (key, value) pairs; flags have value None

    Raises:
        DirectiveSyntaxError: On unbalanced quotes or brackets
    """
    cur = _Cursor(value)
    items: List[Tuple[str, Optional[ParamValue]]] = []
    first = True

    while not cur.at_end():
        cur.skip_ws()
        if cur.peek() == ",":
            cur.advance()
            if first:
                items.append(("", None))
            first = False
            continue
        key_start = cur.pos
        while not cur.at_end() and cur.peek() not in ",:":
            if cur.peek() in "\"'[]()":
                raise DirectiveSyntaxError(f"unexpected {cur.peek()!r} in tag {value!r}")
            cur.advance()
        key = value[key_start:cur.pos].strip()
        item_value: Optional[ParamValue] = None
        if cur.peek() == ":":
            cur.advance()
            item_value = _parse_value(cur, ",")
        items.append((key, item_value))
        first = False
        cur.skip_ws()
        if cur.peek() == ",":
            cur.advance()
        elif not cur.at_end():
            raise DirectiveSyntaxError(f"expected ',' in tag {value!r}, found {cur.peek()!r}")

    return items


_FLAG_NAMES = {
    "ignore", "omit", "include", "optional", "required", "forceresolver",
    "force_resolver", "deprecated", "rw", "ro", "wo",
}


def _scope_option(value: Optional[ParamValue]) -> Optional[Scope]:
    if value is None or value is True:
        return Scope.everything()
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return Scope.everything()
        if lowered == "false":
            return None
    return scope_from_value(value)


def _truthy(value: Optional[ParamValue]) -> bool:
    if value is None or value is True:
        return True
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _as_text(value: Optional[ParamValue]) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, tuple):
        return ",".join(value)
    return value


def apply_field_option(options: FieldOptions, key: str, value: Optional[ParamValue]) -> bool:
    """
    Apply one tag item or @gqlField parameter to field options.

    Returns:
        False if the key is not recognized
    """
    key = key.lower()
    if key == "name":
        options.name = _as_text(value)
    elif key == "type":
        options.type_override = _as_text(value)
    elif key == "description":
        options.description = _as_text(value)
    elif key in ("ignore", "omit"):
        options.ignore = _scope_option(value)
    elif key == "include":
        options.include = _scope_option(value)
    elif key == "rw":
        options.read_write = _scope_option(value)
    elif key == "ro":
        options.read_only = _scope_option(value)
    elif key == "wo":
        options.write_only = _scope_option(value)
    elif key == "optional":
        options.optional = _truthy(value)
    elif key == "required":
        options.required = _truthy(value)
    elif key in ("forceresolver", "force_resolver"):
        options.force_resolver = _truthy(value)
    elif key == "deprecated":
        if isinstance(value, str) and value.strip().lower() not in ("true", "false", ""):
            options.deprecated = True
            options.deprecation_reason = value
        else:
            options.deprecated = _truthy(value) if value is not None else True
    else:
        return False
    return True


def parse_gql_tag(value: str, options: Optional[FieldOptions] = None) -> FieldOptions:
    """
    Interpret a ``gql`` struct tag.

    The first item is the field name unless it is a known flag or carries a
    value.
    """
    options = options or FieldOptions()
    items = parse_tag_items(value)
    for index, (key, item_value) in enumerate(items):
        if index == 0 and key == "-" and item_value is None:
            options.ignore = Scope.everything()
            continue
        if index == 0 and item_value is None and key.lower() not in _FLAG_NAMES:
            options.name = key
            continue
        if not key:
            continue
        if not apply_field_option(options, key, item_value):
            logger.warning("Unknown option '%s' in gql tag %r", key, value)
    return options


def apply_field_directive(options: FieldOptions, directive: Directive) -> FieldOptions:
    """Apply @gqlField parameters on top of tag derived options."""
    for key, value in directive.params.items():
        apply_field_option(options, key, value)
    return options


def build_type_directives(parsed: ParsedComment) -> TypeDirectives:
    """
    Collect type-level directives of a declaration.

    Args:
        parsed: Parsed doc comment of the type

    Returns:
        TypeDirectives with one ArtifactSpec per @gqlType/@gqlInput
    """
    result = TypeDirectives()

    for directive in parsed.directives:
        kind = directive.kind
        if kind in (DirectiveKind.TYPE, DirectiveKind.INPUT):
            spec = ArtifactSpec(
                name=directive.get_str("name"),
                description=directive.get_str("description"),
                ignore_all=directive.get_bool("ignoreAll"),
                namespace=directive.get_str("namespace"),
                position=directive.position,
            )
            if kind == DirectiveKind.TYPE:
                result.types.append(spec)
            else:
                result.inputs.append(spec)
        elif kind == DirectiveKind.IGNORE_ALL:
            result.ignore_all = True
        elif kind == DirectiveKind.USE_MODEL_DIRECTIVE:
            result.use_model_directive = True
        elif kind == DirectiveKind.INCLUDE:
            result.include = True
        elif kind == DirectiveKind.SKIP:
            result.skip = True
        elif kind in (
            DirectiveKind.EXTRA_FIELD,
            DirectiveKind.TYPE_EXTRA_FIELD,
            DirectiveKind.INPUT_EXTRA_FIELD,
        ):
            result.extra_fields.append(
                ExtraField(
                    name=directive.get_str("name"),
                    type=directive.get_str("type"),
                    description=directive.get_str("description"),
                    override_tags=directive.get_str("overrideTags"),
                    on=directive.get_scope("on"),
                    for_types=kind != DirectiveKind.INPUT_EXTRA_FIELD,
                    for_inputs=kind != DirectiveKind.TYPE_EXTRA_FIELD,
                    position=directive.position,
                )
            )
        elif kind == DirectiveKind.ENUM:
            result.enum = EnumDirective(
                name=directive.get_str("name"),
                description=directive.get_str("description"),
                namespace=directive.get_str("namespace"),
            )
        elif kind == DirectiveKind.NAMESPACE:
            logger.warning(
                "@%s in a declaration doc is ignored; put it in a file comment "
                "separated from the first type by a blank line (%s)",
                directive.name, directive.position,
            )
        else:
            logger.warning(
                "@%s is not valid on a type declaration (%s)", directive.name, directive.position
            )

    return result


def parse_file_namespace(go_file) -> str:
    """
    Find the file level @gqlNamespace.

    Only comments placed before the first type declaration count. The
    group directly above that declaration is its doc comment, not a file
    comment.
    """
    limit = go_file.first_type_line or float("inf")
    for group in go_file.comment_groups:
        if group.start_line >= limit:
            break
        if group.end_line == limit - 1:
            continue
        position = SourcePosition(go_file.path, group.start_line)
        try:
            parsed = parse_comment(group.text, position)
        except DirectiveSyntaxError as e:
            raise e.located(go_file.path, "file") from None
        directive = parsed.first(DirectiveKind.NAMESPACE)
        if directive is not None:
            return directive.get_str("name").strip()
    return ""


def parse_field_options(field_record) -> FieldOptions:
    """
    Build FieldOptions from the struct tag and the field doc comment.

    ``@gqlField`` parameters override values from the ``gql`` tag.
    """
    options = FieldOptions()

    if field_record.tag:
        try:
            tags = parse_struct_tag(field_record.tag)
        except TagSyntaxError as e:
            raise DirectiveSyntaxError(f"malformed struct tag: {e}")
        if "json" in tags:
            options.json_name, options.json_ignored = parse_json_tag(tags["json"])
        if "gql" in tags:
            parse_gql_tag(tags["gql"], options)

    if field_record.doc:
        parsed = parse_comment(field_record.doc, field_record.position)
        for directive in parsed.directives:
            if directive.kind == DirectiveKind.FIELD:
                apply_field_directive(options, directive)
            else:
                logger.warning(
                    "@%s is not valid on a field (%s)", directive.name, field_record.position
                )

    return options


def annotate_index(index) -> None:
    """
    Parse all directives of a scanned SourceIndex in place.

    Raises:
        DirectiveSyntaxError: With the owning file and declaration
    """
    namespaces = {go_file.path: parse_file_namespace(go_file) for go_file in index.files}

    for record in index.records():
        record.file_namespace = namespaces.get(record.source_file, "")
        try:
            parsed = parse_comment(record.directive_text, record.position)
            record.directives = build_type_directives(parsed)
        except DirectiveSyntaxError as e:
            raise e.located(record.source_file, record.name) from None

        for field_record in record.fields:
            try:
                field_record.options = parse_field_options(field_record)
            except DirectiveSyntaxError as e:
                label = field_record.name or f"embedded {field_record.type_expr}"
                raise e.located(record.source_file, f"{record.name}.{label}") from None

    for block in index.const_blocks:
        block.file_namespace = namespaces.get(block.source_file, "")
