"""
Go struct tag parsing with reflect.StructTag conventions.
"""

from typing import Dict, Tuple

from .lexer import unquote


class TagSyntaxError(ValueError):
    """Raised for struct tags that do not follow key:"value" pairs."""

    pass


def parse_struct_tag(tag: str) -> Dict[str, str]:
    """
    Split a struct tag into its key/value pairs.

    Args:
        tag: Tag content without the surrounding backquotes

    Returns:
        Mapping of tag key to unquoted value, first occurrence wins

    Raises:
        TagSyntaxError: If a pair is malformed
    """
    values: Dict[str, str] = {}
    i = 0
    length = len(tag)

    while i < length:
        while i < length and tag[i] == " ":
            i += 1
        if i >= length:
            break

        start = i
        while i < length and tag[i] > " " and tag[i] not in ':"' and ord(tag[i]) != 0x7F:
            i += 1
        if i == start or i + 1 >= length or tag[i] != ":" or tag[i + 1] != '"':
            raise TagSyntaxError(f"bad syntax for struct tag pair near {tag[start:]!r}")
        key = tag[start:i]

        i += 1
        value_start = i
        i += 1
        while i < length and tag[i] != '"':
            if tag[i] == "\\":
                i += 1
            i += 1
        if i >= length:
            raise TagSyntaxError(f"bad syntax for struct tag value of {key!r}")
        i += 1

        values.setdefault(key, unquote(tag[value_start:i]))

    return values


def parse_json_tag(value: str) -> Tuple[str, bool]:
    """
    Interpret an encoding/json tag value.

    Returns:
        Tuple of (field name or "", ignored)
    """
    if value == "-":
        return "", True
    name = value.split(",", 1)[0]
    return name, False
