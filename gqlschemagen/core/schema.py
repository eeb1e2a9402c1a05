"""
Core records shared by the scanner, resolver and emitter.

Scanning creates TypeRecord, FieldRecord and ConstBlock entries, the
directive parser fills in TypeDirectives and FieldOptions, and the resolver
turns everything into ordered Artifact blocks that the emitter renders.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union
from enum import Enum

from ..golang.ast import TypeExpr
from ..golang.parser import CommentGroup, ConstSpec


ParamValue = Union[str, bool, Tuple[str, ...]]


@dataclass(frozen=True)
class SourcePosition:
    """Location of a declaration for diagnostics."""

    file: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.line:
            return f"{self.file}:{self.line}"
        return self.file


class DirectiveKind(Enum):
    """Directives understood in doc comments (suffix after @gql)."""

    TYPE = "type"
    INPUT = "input"
    IGNORE_ALL = "ignoreall"
    USE_MODEL_DIRECTIVE = "usemodeldirective"
    INCLUDE = "include"
    SKIP = "skip"
    EXTRA_FIELD = "extrafield"  # types and inputs
    TYPE_EXTRA_FIELD = "typeextrafield"
    INPUT_EXTRA_FIELD = "inputextrafield"
    ENUM = "enum"
    ENUM_VALUE = "enumvalue"
    NAMESPACE = "namespace"
    FIELD = "field"


@dataclass(frozen=True)
class Scope:
    """Set of artifact names a field or extra field applies to."""

    names: Tuple[str, ...] = ("*",)

    @classmethod
    def everything(cls) -> "Scope":
        return cls(("*",))

    @classmethod
    def nothing(cls) -> "Scope":
        return cls(())

    def matches(self, artifact_name: str) -> bool:
        return "*" in self.names or artifact_name in self.names

    @property
    def is_empty(self) -> bool:
        return not self.names

    def __str__(self) -> str:
        return ",".join(self.names) if self.names else "<none>"


@dataclass
class Directive:
    """A parsed ``@gqlName(...)`` occurrence."""

    kind: DirectiveKind
    name: str
    params: Dict[str, ParamValue] = field(default_factory=dict)
    position: Optional[SourcePosition] = None

    def has(self, key: str) -> bool:
        return key.lower() in self.params

    def get_str(self, key: str, default: str = "") -> str:
        value = self.params.get(key.lower())
        if value is None or isinstance(value, bool):
            return default
        if isinstance(value, tuple):
            return ",".join(value)
        return value

    def get_bool(self, key: str) -> bool:
        value = self.params.get(key.lower())
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        return False

    def get_scope(self, key: str) -> Scope:
        """Scope parameter: absent means all, explicit empty means none."""
        key = key.lower()
        if key not in self.params:
            return Scope.everything()
        return scope_from_value(self.params[key])


def scope_from_value(value: ParamValue) -> Scope:
    """Convert a parameter value to a Scope (lists and comma strings alike)."""
    if value is True:
        return Scope.everything()
    if value is False:
        return Scope.nothing()
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    else:
        items = [part.strip() for part in value]
    return Scope(tuple(item for item in items if item))


@dataclass
class ArtifactSpec:
    """One requested output artifact from @gqlType or @gqlInput."""

    name: str = ""
    description: str = ""
    ignore_all: bool = False
    namespace: str = ""
    position: Optional[SourcePosition] = None


@dataclass
class ExtraField:
    """Synthetic field declared by an extra-field directive."""

    name: str
    type: str
    description: str = ""
    override_tags: str = ""
    on: Scope = field(default_factory=Scope.everything)
    for_types: bool = True
    for_inputs: bool = True
    position: Optional[SourcePosition] = None

    def applies_to(self, artifact_name: str, is_input: bool) -> bool:
        if is_input and not self.for_inputs:
            return False
        if not is_input and not self.for_types:
            return False
        return self.on.matches(artifact_name)


@dataclass
class EnumDirective:
    name: str = ""
    description: str = ""
    namespace: str = ""


@dataclass
class TypeDirectives:
    """Type-level directives collected from a declaration's doc comment."""

    types: List[ArtifactSpec] = field(default_factory=list)
    inputs: List[ArtifactSpec] = field(default_factory=list)
    ignore_all: bool = False
    use_model_directive: bool = False
    include: bool = False
    skip: bool = False
    extra_fields: List[ExtraField] = field(default_factory=list)
    enum: Optional[EnumDirective] = None

    @property
    def custom_name(self) -> str:
        """First explicit @gqlType name; base for derived names."""
        for spec in self.types:
            if spec.name:
                return spec.name
        return ""


@dataclass
class FieldOptions:
    """Per-field settings from gql/json tags and @gqlField."""

    name: str = ""
    json_name: str = ""
    json_ignored: bool = False
    type_override: str = ""
    description: str = ""
    deprecated: bool = False
    deprecation_reason: str = ""
    force_resolver: bool = False
    optional: bool = False
    required: bool = False
    include: Optional[Scope] = None
    ignore: Optional[Scope] = None
    read_write: Optional[Scope] = None
    read_only: Optional[Scope] = None
    write_only: Optional[Scope] = None


class RecordKind(Enum):
    STRUCT = "struct"
    ALIAS = "alias"  # defined or alias type of a generic instantiation
    NAMED = "named"  # any other named type (enum candidates, scalars, lists)


@dataclass
class FieldRecord:
    """A struct field as declared; ``name`` is empty for embedded fields."""

    name: str
    type_expr: TypeExpr
    tag: str = ""
    doc: str = ""
    comment: str = ""
    position: Optional[SourcePosition] = None
    options: FieldOptions = field(default_factory=FieldOptions)

    @property
    def embedded(self) -> bool:
        return not self.name


@dataclass
class TypeRecord:
    """A Go type declaration and everything attached to it."""

    name: str
    kind: RecordKind
    package: str
    import_path: str
    source_file: str
    order: int
    position: Optional[SourcePosition] = None
    fields: List[FieldRecord] = field(default_factory=list)
    type_params: List[str] = field(default_factory=list)
    underlying: Optional[TypeExpr] = None
    doc: Optional[CommentGroup] = None
    comment: Optional[CommentGroup] = None
    file_namespace: str = ""
    directives: TypeDirectives = field(default_factory=TypeDirectives)

    @property
    def is_generic(self) -> bool:
        return bool(self.type_params)

    @property
    def doc_text(self) -> str:
        return self.doc.text if self.doc else ""

    @property
    def directive_text(self) -> str:
        """Doc comment followed by the trailing line comment."""
        parts = [group.text for group in (self.doc, self.comment) if group is not None]
        return "\n".join(parts)

    @property
    def model_name(self) -> str:
        """GraphQL facing base name used for file naming."""
        return self.directives.custom_name or self.name

    def describe(self) -> str:
        return f"{self.name} ({self.position or self.source_file})"


@dataclass
class ConstBlock:
    """A const declaration (single or grouped) in source order."""

    specs: List[ConstSpec]
    package: str
    import_path: str
    source_file: str
    file_namespace: str = ""


@dataclass
class EnumValueRecord:
    go_name: str
    name: str
    value: str = ""
    description: str = ""
    deprecated: bool = False
    deprecation_reason: str = ""
    source_file: str = ""
    package: str = ""


@dataclass
class EnumRecord:
    go_name: str
    name: str
    base_type: str
    package: str
    import_path: str
    source_file: str
    order: int
    description: str = ""
    namespace: str = ""
    values: List[EnumValueRecord] = field(default_factory=list)
    position: Optional[SourcePosition] = None


class ArtifactKind(Enum):
    TYPE = "type"
    INPUT = "input"
    ENUM = "enum"


@dataclass
class ResolvedField:
    name: str
    graphql_type: str
    description: str = ""
    deprecated: bool = False
    deprecation_reason: str = ""
    force_resolver: bool = False
    extra: bool = False
    source: str = ""


@dataclass
class Artifact:
    """One emitted type, input or enum block."""

    kind: ArtifactKind
    name: str
    go_name: str
    package: str
    source_file: str
    order: Tuple[int, int]
    description: str = ""
    fields: List[ResolvedField] = field(default_factory=list)
    values: List[EnumValueRecord] = field(default_factory=list)
    model_path: str = ""
    namespace: str = ""
    model_name: str = ""
    source: str = ""

    @property
    def is_input(self) -> bool:
        return self.kind == ArtifactKind.INPUT


@dataclass
class ResolvedSchema:
    """Output of the resolver: ordered artifacts plus used custom scalars."""

    artifacts: List[Artifact] = field(default_factory=list)
    scalars: List[str] = field(default_factory=list)


@dataclass
class OutputArtifact:
    """A file to be written and the blocks it contains."""

    path: str
    artifacts: List[Artifact] = field(default_factory=list)
    scalars: List[str] = field(default_factory=list)
    preserved: str = ""
