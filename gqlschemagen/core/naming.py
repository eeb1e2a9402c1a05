"""
Naming utilities for schema generation.

Pure functions that turn Go identifiers into GraphQL type, input, field
and enum value names according to a NamingConfig.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
from enum import Enum

from .generator import GeneratorError


class NamingCollisionError(GeneratorError):
    """Raised when two artifacts or two fields end up with the same name."""

    def __init__(self, name: str, first: str, second: str, scope: str = ""):
        self.name = name
        self.first = first
        self.second = second
        where = f" in {scope}" if scope else ""
        super().__init__(
            f"name collision{where}: '{name}' is produced by both {first} and {second}"
        )


class NamingCase(Enum):
    """Field name case styles."""
    CAMEL_CASE = "camel"      # userName
    SNAKE_CASE = "snake"      # user_name
    PASCAL_CASE = "pascal"    # UserName
    ORIGINAL = "original"     # as declared
    NONE = "none"             # as declared

    @classmethod
    def from_value(cls, value: str) -> "NamingCase":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown naming case: {value}")


INPUT_SUFFIX = "Input"


@dataclass(frozen=True)
class NamingConfig:
    """Immutable naming settings threaded through resolver and emitter."""

    field_case: NamingCase = NamingCase.CAMEL_CASE
    strip_prefixes: Tuple[str, ...] = ()
    strip_suffixes: Tuple[str, ...] = ()
    type_prefix: str = ""
    type_suffix: str = ""
    input_prefix: str = ""
    input_suffix: str = ""
    namespace_separator: str = "/"
    use_json_tag: bool = True


# Acronym runs ("HTTPServer") and lower/digit to upper transitions ("userID")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def to_snake_case(name: str) -> str:
    """Convert to snake_case following capitalization transitions."""
    name = name.replace("-", "_")
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    name = _WORD_BOUNDARY.sub(r"\1_\2", name)
    name = re.sub(r"_+", "_", name.lower())
    return name.strip("_")


def to_camel_case(name: str) -> str:
    """
    Convert to lowerCamelCase.

    The leading run of capitals is lowered as one word, so ``ID`` becomes
    ``id``, ``URLPath`` becomes ``urlPath`` and ``UserID`` becomes ``userID``.
    """
    if "_" in name or "-" in name:
        parts = [p for p in re.split(r"[_-]+", name) if p]
        if not parts:
            return name
        return to_camel_case(parts[0]) + "".join(p[:1].upper() + p[1:] for p in parts[1:])

    run = 0
    while run < len(name) and name[run].isupper():
        run += 1
    if run == 0:
        return name
    if run == len(name) or name[run:] == "s":
        return name.lower()
    if run == 1:
        return name[0].lower() + name[1:]
    # keep the last capital of the run when it starts the next word
    if name[run].isalpha():
        return name[:run - 1].lower() + name[run - 1:]
    return name[:run].lower() + name[run:]


def to_pascal_case(name: str) -> str:
    """Convert to PascalCase; Go exported names are already Pascal."""
    if "_" in name or "-" in name:
        return "".join(p[:1].upper() + p[1:] for p in re.split(r"[_-]+", name) if p)
    return name[:1].upper() + name[1:]


def to_screaming_snake_case(name: str) -> str:
    return to_snake_case(name).upper()


def transform_field_name(name: str, case: NamingCase) -> str:
    """
    Apply a case style to a declared field name.

    Args:
        name: Go field name
        case: Target case style

    Returns:
        Transformed name
    """
    if case == NamingCase.CAMEL_CASE:
        return to_camel_case(name)
    elif case == NamingCase.SNAKE_CASE:
        return to_snake_case(name)
    elif case == NamingCase.PASCAL_CASE:
        return to_pascal_case(name)
    return name


def strip_affixes(name: str, prefixes: Sequence[str], suffixes: Sequence[str]) -> str:
    """
    Strip the first matching prefix, then the first matching suffix.

    A match that would consume the whole name is not stripped.
    """
    for prefix in prefixes:
        if prefix and name.startswith(prefix) and len(name) > len(prefix):
            name = name[len(prefix):]
            break
    for suffix in suffixes:
        if suffix and name.endswith(suffix) and len(name) > len(suffix):
            name = name[: -len(suffix)]
            break
    return name


def type_name(go_name: str, naming: NamingConfig, custom_name: str = "") -> str:
    """
    Derive the GraphQL type name.

    Args:
        go_name: Declared Go type name
        naming: Naming settings
        custom_name: Explicit name from @gqlType, bypasses all transforms

    Returns:
        Final type name
    """
    if custom_name:
        return custom_name
    base = strip_affixes(go_name, naming.strip_prefixes, naming.strip_suffixes)
    return f"{naming.type_prefix}{base}{naming.type_suffix}"


def input_name(go_name: str, naming: NamingConfig, custom_name: str = "") -> str:
    """
    Derive the GraphQL input name.

    Steps: strip prefix, strip suffix, append ``Input``, add the input
    prefix, add the input suffix.
    """
    if custom_name:
        return custom_name
    base = strip_affixes(go_name, naming.strip_prefixes, naming.strip_suffixes)
    return f"{naming.input_prefix}{base}{INPUT_SUFFIX}{naming.input_suffix}"


def field_name(
    go_name: str,
    naming: NamingConfig,
    directive_name: str = "",
    json_name: str = "",
) -> str:
    """
    Resolve a field name: directive name, then json tag name when enabled,
    then the case transformed Go name.
    """
    if directive_name:
        return directive_name
    if naming.use_json_tag and json_name:
        return json_name
    return transform_field_name(go_name, naming.field_case)


def enum_value_name(const_name: str, enum_go_name: str) -> str:
    """
    Derive an enum value name from a constant.

    ``StatusActive`` of enum ``Status`` becomes ``ACTIVE``; constants that
    do not carry the prefix are converted as a whole.
    """
    remainder = const_name
    if const_name.startswith(enum_go_name) and len(const_name) > len(enum_go_name):
        remainder = const_name[len(enum_go_name):]
    remainder = remainder.lstrip("_")
    return to_screaming_snake_case(remainder)


def namespace_path(namespace: str, separator: str = "/") -> Optional[str]:
    """
    Convert a namespace to a relative path.

    Args:
        namespace: Namespace such as ``user/auth`` or ``user.auth``
        separator: Separator used inside namespace names

    Returns:
        Relative path using ``/`` or None for an empty namespace
    """
    if not namespace:
        return None
    parts = namespace.split(separator) if separator else [namespace]
    parts = [p.strip() for p in parts if p.strip()]
    for part in parts:
        if part in (".", "..") or "\\" in part:
            raise ValueError(f"invalid namespace segment {part!r} in {namespace!r}")
    return "/".join(parts) or None


def parse_name_list(value) -> Tuple[str, ...]:
    """Accept a list or a comma separated string of names."""
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(item).strip() for item in value if str(item).strip())
