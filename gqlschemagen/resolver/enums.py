"""
Enum linkage.

Joins ``@gqlEnum`` types with their constants by declared type identity.
Constants may live in any scanned file or package; a const spec without
type and value repeats the previous spec of its block, as in Go.
"""

from typing import Dict, List, Optional

from ..core.directives import DirectiveSyntaxError, parse_comment
from ..core.naming import NamingCollisionError, enum_value_name
from ..core.schema import (
    ConstBlock,
    DirectiveKind,
    EnumRecord,
    EnumValueRecord,
    RecordKind,
    SourcePosition,
    TypeRecord,
)
from ..golang.ast import Ident, Qualified
from ..golang.parser import ConstSpec, ConstValue
from ..logging_config import get_logger
from .types import ResolutionError

logger = get_logger(__name__)

ENUM_BASE_TYPES = {
    "string", "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64", "byte",
}


class EnumLinker:
    """Builds EnumRecords from annotated types and const blocks."""

    def __init__(self, types: Dict[str, TypeRecord], const_blocks: List[ConstBlock]):
        self.types = types
        self.const_blocks = const_blocks

    def link(self) -> Dict[str, EnumRecord]:
        """
        Link every @gqlEnum type with its values.

        Returns:
            EnumRecords keyed by Go type name, in declaration order

        Raises:
            ResolutionError: For enums on unsupported base types, enums
                without values and @gqlEnumValue on unlinked constants
        """
        enums: Dict[str, EnumRecord] = {}

        for record in self.types.values():
            if record.directives.enum is None:
                continue
            enums[record.name] = self._make_enum(record)

        for block in self.const_blocks:
            self._link_block(block, enums)

        for enum in enums.values():
            if not enum.values:
                raise ResolutionError(
                    f"{enum.position or enum.source_file}: enum {enum.go_name} has no constants"
                )
            logger.debug("Linked enum %s with %d value(s)", enum.name, len(enum.values))

        return enums

    @staticmethod
    def _make_enum(record: TypeRecord) -> EnumRecord:
        base = record.underlying
        if (
            record.kind != RecordKind.NAMED
            or not isinstance(base, Ident)
            or base.name not in ENUM_BASE_TYPES
        ):
            raise ResolutionError(
                f"{record.describe()}: @gqlEnum requires a string or integer base type"
            )

        directive = record.directives.enum
        description = directive.description
        if not description:
            description = parse_comment(record.doc_text, record.position).text

        return EnumRecord(
            go_name=record.name,
            name=directive.name or record.name,
            base_type=base.name,
            package=record.package,
            import_path=record.import_path,
            source_file=record.source_file,
            order=record.order,
            description=description,
            namespace=directive.namespace or record.file_namespace,
            position=record.position,
        )

    def _link_block(self, block: ConstBlock, enums: Dict[str, EnumRecord]) -> None:
        current_type: Optional[str] = None
        current_values: List[ConstValue] = []

        for spec in block.specs:
            if spec.type_expr is not None or spec.values:
                current_type = self._type_name(spec)
                current_values = spec.values

            enum = enums.get(current_type) if current_type else None
            position = SourcePosition(block.source_file, spec.line)
            try:
                doc = parse_comment(spec.doc.text if spec.doc else "", position)
                trailing = parse_comment(spec.comment.text if spec.comment else "", position)
            except DirectiveSyntaxError as e:
                raise e.located(block.source_file, ", ".join(spec.names)) from None

            directive = doc.first(DirectiveKind.ENUM_VALUE) or trailing.first(DirectiveKind.ENUM_VALUE)
            if enum is None:
                if directive is not None:
                    raise ResolutionError(
                        f"{position}: @gqlEnumValue on constant {', '.join(spec.names)} "
                        f"which is not typed with an @gqlEnum type"
                    )
                continue

            plain = doc.text or trailing.text
            for i, const_name in enumerate(spec.names):
                if const_name == "_":
                    continue
                value = EnumValueRecord(
                    go_name=const_name,
                    name=enum_value_name(const_name, enum.go_name),
                    value=self._value_of(spec, current_values, i),
                    source_file=block.source_file,
                    package=block.package,
                )
                if directive is not None:
                    value.name = directive.get_str("name") or value.name
                    value.description = directive.get_str("description")
                    if directive.has("deprecated"):
                        value.deprecated = True
                        reason = directive.get_str("deprecated")
                        if reason.lower() not in ("true", "1", "yes"):
                            value.deprecation_reason = reason
                else:
                    value.description = plain
                self._add_value(enum, value)

    @staticmethod
    def _type_name(spec: ConstSpec) -> Optional[str]:
        if isinstance(spec.type_expr, (Ident, Qualified)):
            return spec.type_expr.name
        return None

    @staticmethod
    def _value_of(spec: ConstSpec, values: List[ConstValue], index: int) -> str:
        if index >= len(values):
            return str(spec.iota)
        value = values[index]
        if value.string_value is not None:
            return value.string_value
        if value.int_value is not None:
            return str(value.int_value)
        if value.is_iota:
            return str(spec.iota)
        return value.text

    @staticmethod
    def _add_value(enum: EnumRecord, value: EnumValueRecord) -> None:
        for existing in enum.values:
            if existing.name == value.name:
                raise NamingCollisionError(
                    value.name,
                    f"constant {existing.go_name}",
                    f"constant {value.go_name}",
                    scope=f"enum {enum.name}",
                )
        enum.values.append(value)


def link_enums(types: Dict[str, TypeRecord], const_blocks: List[ConstBlock]) -> Dict[str, EnumRecord]:
    """Convenience wrapper around EnumLinker."""
    return EnumLinker(types, const_blocks).link()
