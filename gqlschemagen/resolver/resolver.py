"""
Type resolver.

Turns an annotated SourceIndex into the ordered list of artifacts to emit:
expands embedded structs, instantiates generics, links enums, applies
auto-discovery, decides field visibility per artifact and derives names.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..core.config import GeneratorConfig
from ..core.directives import parse_comment
from ..core.naming import (
    NamingCollisionError,
    field_name,
    input_name,
    type_name,
)
from ..core.schema import (
    Artifact,
    ArtifactKind,
    ArtifactSpec,
    EnumRecord,
    FieldOptions,
    FieldRecord,
    RecordKind,
    ResolvedField,
    ResolvedSchema,
    TypeRecord,
)
from ..golang.ast import (
    TypeExpr,
    Generic,
    Ident,
    Qualified,
    split_generic,
    unwrap_pointer,
)
from ..golang.scanner import SourceIndex
from ..logging_config import get_logger
from .autogen import AutoGenerator, AutoPlan, AutoStrategy
from .enums import link_enums
from .types import GraphQLTypeMapper, MappingContext, ResolutionError

logger = get_logger(__name__)

MAX_EMBEDDING_DEPTH = 32

# sub-order offsets keep types, inputs and instantiations of one declaration together
INPUT_ORDER_OFFSET = 100
INSTANCE_ORDER_OFFSET = 200


@dataclass
class ExpandedField:
    """A field after embedding expansion and type parameter substitution."""

    record: FieldRecord
    type_expr: TypeExpr
    owner: str
    type_params: Tuple[str, ...] = ()


@dataclass
class Instantiation:
    """A concrete generic instantiation waiting to be emitted."""

    name: str
    concrete_name: str
    base: TypeRecord
    args: Tuple[TypeExpr, ...]
    is_input: bool


def is_field_visible(options: FieldOptions, artifact_name: str, is_input: bool, ignore_all: bool) -> bool:
    """
    Decide whether a field appears in an artifact.

    Explicit ``include`` and ``rw`` scopes win over everything, ``ro`` and
    ``wo`` limit a field to types or inputs, then ``ignore``/``omit`` and
    the json ``-`` tag hide it. Fields with an include scope that does not
    name this artifact are hidden; everything else follows ``ignoreAll``.
    """
    if options.include is not None and options.include.matches(artifact_name):
        return True
    if options.read_write is not None and options.read_write.matches(artifact_name):
        return True
    if options.read_only is not None:
        return not is_input and options.read_only.matches(artifact_name)
    if options.write_only is not None:
        return is_input and options.write_only.matches(artifact_name)
    if options.ignore is not None and options.ignore.matches(artifact_name):
        return False
    if options.json_ignored:
        return False
    if options.include is not None or options.read_write is not None:
        return False
    return not ignore_all


class Resolver:
    """Resolves a SourceIndex into a ResolvedSchema."""

    def __init__(self, index: SourceIndex, config: GeneratorConfig):
        self.index = index
        self.types: Dict[str, TypeRecord] = index.types
        self.config = config
        self.naming = config.naming_config()
        self.enums: Dict[str, EnumRecord] = {}
        self.mapper: Optional[GraphQLTypeMapper] = None
        self._instances: Dict[Tuple[str, bool], Instantiation] = {}
        self._pending: List[Tuple[str, bool]] = []
        self._plan = AutoPlan()

    def resolve(self) -> ResolvedSchema:
        """
        Build every artifact in deterministic order.

        Returns:
            ResolvedSchema with artifacts sorted by declaration order

        Raises:
            ResolutionError: For unresolved references, cycles and enum errors
            NamingCollisionError: When two artifacts or fields share a name
        """
        auto = self.config.auto_generate
        self.enums = link_enums(self.types, self.index.const_blocks)
        self.mapper = GraphQLTypeMapper(
            self.types,
            self.enums,
            self.config.scalar_models(),
            self.config.known_scalars,
            reference_name=self.reference_name,
            instantiate=self._instantiate,
            unresolved_generic_type=auto.unresolved_generic_type,
        )
        plan = self._plan = AutoGenerator(
            self.types,
            strategy=AutoStrategy(auto.strategy),
            max_depth=auto.max_depth,
            patterns=auto.patterns,
            exclude_patterns=auto.exclude_patterns,
            enum_names=set(self.enums),
        ).plan()

        artifacts: List[Artifact] = []
        for record in self.types.values():
            artifacts.extend(self._record_artifacts(record, plan))

        for enum in self.enums.values():
            if self.types[enum.go_name].directives.skip:
                continue
            artifacts.append(self._enum_artifact(enum))

        artifacts.extend(self._drain_instances())

        artifacts.sort(key=lambda a: a.order)
        self._check_artifact_names(artifacts)

        logger.info(
            "Resolved %d artifact(s) from %d type declaration(s)", len(artifacts), len(self.types)
        )
        return ResolvedSchema(artifacts=artifacts, scalars=self.mapper.custom_scalars())

    def _record_artifacts(self, record: TypeRecord, plan: AutoPlan) -> List[Artifact]:
        directives = record.directives
        if directives.skip:
            return []

        type_specs = list(directives.types)
        input_specs = list(directives.inputs)
        if not type_specs and (directives.include or record.name in plan.types):
            type_specs = [ArtifactSpec()]
        if not input_specs and (directives.include or record.name in plan.inputs):
            input_specs = [ArtifactSpec()]
        if not type_specs and not input_specs:
            return []

        if record.is_generic:
            logger.warning(
                "%s is generic; it is emitted only through its instantiations", record.describe()
            )
            return []
        if record.kind == RecordKind.NAMED:
            logger.warning(
                "%s is not a struct; @gqlType and @gqlInput are ignored", record.describe()
            )
            return []

        artifacts = []
        for i, spec in enumerate(type_specs):
            artifact = self.build_struct_artifact(record, spec, False, i)
            if artifact is not None:
                artifacts.append(artifact)
        for i, spec in enumerate(input_specs):
            artifact = self.build_struct_artifact(record, spec, True, INPUT_ORDER_OFFSET + i)
            if artifact is not None:
                artifacts.append(artifact)
        return artifacts

    def reference_name(self, record: TypeRecord, is_input: bool) -> str:
        """Name other artifacts use to refer to a struct record."""
        directives = record.directives
        if is_input:
            custom = directives.inputs[0].name if directives.inputs else ""
            return input_name(record.model_name, self.naming, custom)
        custom = directives.types[0].name if directives.types else ""
        return type_name(record.name, self.naming, custom)

    def _emits(self, record: TypeRecord, is_input: bool) -> bool:
        """Whether a record produces its own type (or input) artifact."""
        directives = record.directives
        if directives.skip or record.is_generic or record.kind == RecordKind.NAMED:
            return False
        if is_input:
            return bool(directives.inputs) or directives.include or record.name in self._plan.inputs
        return bool(directives.types) or directives.include or record.name in self._plan.types

    def artifact_name(self, record: TypeRecord, spec: ArtifactSpec, is_input: bool) -> str:
        if is_input:
            return input_name(record.model_name, self.naming, spec.name)
        return type_name(record.name, self.naming, spec.name)

    # Embedding and generics

    def expand(
        self,
        record: TypeRecord,
        mapping: Optional[Dict[str, TypeExpr]] = None,
        chain: Tuple[str, ...] = (),
    ) -> List[ExpandedField]:
        """
        Flatten a struct into its fields, embedded fields first.

        Args:
            record: Struct or instantiation alias to expand
            mapping: Type parameter substitutions for generic records
            chain: Types currently being expanded, for cycle detection

        Raises:
            ResolutionError: On embedding cycles or excessive depth
        """
        if record.name in chain:
            cycle = " -> ".join(chain + (record.name,))
            raise ResolutionError(f"{record.describe()}: embedding cycle {cycle}")
        if len(chain) >= MAX_EMBEDDING_DEPTH:
            raise ResolutionError(
                f"{record.describe()}: embedding deeper than {MAX_EMBEDDING_DEPTH} levels"
            )
        chain = chain + (record.name,)
        mapping = mapping or {}

        if record.kind == RecordKind.ALIAS:
            return self._expand_alias(record, mapping, chain)

        remaining = tuple(p for p in record.type_params if p not in mapping)
        embedded: List[ExpandedField] = []
        declared: List[ExpandedField] = []
        for field_record in record.fields:
            expr = field_record.type_expr.substitute(mapping) if mapping else field_record.type_expr
            if field_record.embedded:
                embedded.extend(self._expand_embedded(record, field_record, expr, chain))
            else:
                declared.append(ExpandedField(field_record, expr, record.name, remaining))
        return embedded + declared

    def _expand_embedded(
        self,
        owner: TypeRecord,
        field_record: FieldRecord,
        expr: TypeExpr,
        chain: Tuple[str, ...],
    ) -> List[ExpandedField]:
        options = field_record.options
        hidden = options.ignore is not None and "*" in options.ignore.names
        if (hidden or options.json_ignored) and options.include is None:
            logger.debug("Embedded %s in %s is ignored", expr, owner.name)
            return []

        base, args = split_generic(unwrap_pointer(expr))
        target = self.types.get(base.base_name()) if isinstance(base, (Ident, Qualified)) else None
        if target is None or target.kind == RecordKind.NAMED:
            logger.warning(
                "Embedded %s in %s is not a scanned struct; its fields are skipped",
                expr, owner.describe(),
            )
            return []

        if args:
            return self.expand(target, self._bind(target, args, owner.name), chain)
        if target.is_generic:
            raise ResolutionError(
                f"{owner.describe()}: embedded generic {target.name} needs type arguments"
            )
        return self.expand(target, None, chain)

    def _expand_alias(
        self,
        record: TypeRecord,
        mapping: Dict[str, TypeExpr],
        chain: Tuple[str, ...],
    ) -> List[ExpandedField]:
        underlying = unwrap_pointer(record.underlying).substitute(mapping)
        base, args = split_generic(underlying)
        target = self.types.get(base.base_name())
        if target is None or not target.is_generic:
            raise ResolutionError(
                f"{record.describe()}: {base} is not a scanned generic struct"
            )
        return self.expand(target, self._bind(target, args, record.name), chain)

    @staticmethod
    def _bind(target: TypeRecord, args: Tuple[TypeExpr, ...], owner: str) -> Dict[str, TypeExpr]:
        if len(args) != len(target.type_params):
            raise ResolutionError(
                f"{owner}: {target.name} expects {len(target.type_params)} type argument(s), "
                f"got {len(args)}"
            )
        return dict(zip(target.type_params, args))

    def _instantiate(self, expr: Generic, ctx: MappingContext) -> str:
        """Register a concrete generic instantiation and return its name."""
        base_name = expr.base.base_name()
        base = self.types.get(base_name)
        if base is None:
            raise ResolutionError(f"{ctx.owner}: unresolved generic type '{expr}'")
        if not base.is_generic:
            raise ResolutionError(f"{ctx.owner}: {base_name} is not generic")
        self._bind(base, expr.args, ctx.owner)

        for arg in expr.args:
            # unresolvable arguments fail here rather than inside the instance
            self.mapper.map_type(arg, ctx)

        concrete = "".join(self.mapper.display_name(a) for a in expr.args) + base.name
        declared = self.types.get(concrete)
        if declared is not None and self._emits(declared, ctx.is_input):
            return self.reference_name(declared, ctx.is_input)

        key = (concrete, ctx.is_input)
        if key not in self._instances:
            name = input_name(concrete, self.naming) if ctx.is_input else type_name(concrete, self.naming)
            self._instances[key] = Instantiation(name, concrete, base, expr.args, ctx.is_input)
            self._pending.append(key)
            logger.debug("Instantiating %s as %s", expr, name)
        return self._instances[key].name

    def _drain_instances(self) -> List[Artifact]:
        artifacts = []
        count = 0
        # building an instance may register further instances
        while self._pending:
            instance = self._instances[self._pending.pop(0)]
            fields = self.expand(instance.base, self._bind(instance.base, instance.args, instance.name))
            artifact = self._assemble(
                instance.base,
                ArtifactSpec(name=instance.name),
                instance.is_input,
                INSTANCE_ORDER_OFFSET + count,
                fields,
                go_name=instance.concrete_name,
                with_model=False,
            )
            count += 1
            if artifact is not None:
                artifacts.append(artifact)
        return artifacts

    # Artifact assembly

    def build_struct_artifact(
        self,
        record: TypeRecord,
        spec: ArtifactSpec,
        is_input: bool,
        sub_order: int,
    ) -> Optional[Artifact]:
        """
        Build one type or input artifact of a struct or instantiation alias.

        Returns:
            The artifact, or None when it has no fields and empty types are
            not included
        """
        return self._assemble(record, spec, is_input, sub_order, self.expand(record))

    def _assemble(
        self,
        record: TypeRecord,
        spec: ArtifactSpec,
        is_input: bool,
        sub_order: int,
        expanded: List[ExpandedField],
        go_name: str = "",
        with_model: bool = True,
    ) -> Optional[Artifact]:
        name = self.artifact_name(record, spec, is_input)
        kind = ArtifactKind.INPUT if is_input else ArtifactKind.TYPE
        ignore_all = spec.ignore_all or record.directives.ignore_all
        scope = f"{kind.value} {name}"

        fields: List[ResolvedField] = []
        sources: Dict[str, str] = {}

        for item in expanded:
            options = item.record.options
            if not is_field_visible(options, name, is_input, ignore_all):
                continue
            resolved_name = field_name(item.record.name, self.naming, options.name, options.json_name)
            ctx = MappingContext(is_input, f"{item.owner}.{item.record.name}", item.type_params)
            source = f"field {item.owner}.{item.record.name}"
            self._claim(sources, resolved_name, source, scope)
            fields.append(
                ResolvedField(
                    name=resolved_name,
                    graphql_type=self.mapper.map_field(item.type_expr, options, ctx),
                    description=options.description or self._field_doc(item.record),
                    deprecated=options.deprecated,
                    deprecation_reason=options.deprecation_reason,
                    force_resolver=options.force_resolver and not is_input,
                    source=source,
                )
            )

        for extra in record.directives.extra_fields:
            if not extra.applies_to(name, is_input):
                continue
            source = f"extra field {extra.name} of {record.name}"
            self._claim(sources, extra.name, source, scope)
            fields.append(
                ResolvedField(
                    name=extra.name,
                    graphql_type=extra.type,
                    description=extra.description,
                    force_resolver=not is_input,
                    extra=True,
                    source=source,
                )
            )

        if not fields and not self.config.include_empty_types:
            logger.info("Skipping %s: no visible fields", scope)
            return None

        model_path = ""
        if with_model and (self.config.use_gqlgen_directives or record.directives.use_model_directive):
            model_path = f"{self.config.model_path or record.import_path}.{record.name}"

        return Artifact(
            kind=kind,
            name=name,
            go_name=go_name or record.name,
            package=record.package,
            source_file=record.source_file,
            order=(record.order, sub_order),
            description=spec.description or self._type_doc(record),
            fields=fields,
            model_path=model_path,
            namespace=spec.namespace or record.file_namespace,
            model_name=record.model_name,
            source=record.describe(),
        )

    def _enum_artifact(self, enum: EnumRecord) -> Artifact:
        record = self.types[enum.go_name]
        model_path = ""
        if self.config.use_gqlgen_directives or record.directives.use_model_directive:
            model_path = f"{self.config.model_path or enum.import_path}.{enum.go_name}"
        return Artifact(
            kind=ArtifactKind.ENUM,
            name=enum.name,
            go_name=enum.go_name,
            package=enum.package,
            source_file=enum.source_file,
            order=(enum.order, 0),
            description=enum.description,
            values=list(enum.values),
            model_path=model_path,
            namespace=enum.namespace,
            model_name=enum.name,
            source=record.describe(),
        )

    @staticmethod
    def _claim(sources: Dict[str, str], name: str, source: str, scope: str) -> None:
        if name in sources:
            raise NamingCollisionError(name, sources[name], source, scope=scope)
        sources[name] = source

    @staticmethod
    def _field_doc(field_record: FieldRecord) -> str:
        text = parse_comment(field_record.doc, field_record.position).text if field_record.doc else ""
        if not text and field_record.comment:
            text = parse_comment(field_record.comment, field_record.position).text
        return text

    @staticmethod
    def _type_doc(record: TypeRecord) -> str:
        return parse_comment(record.doc_text, record.position).text

    @staticmethod
    def _check_artifact_names(artifacts: List[Artifact]) -> None:
        seen: Dict[str, Artifact] = {}
        for artifact in artifacts:
            first = seen.get(artifact.name)
            if first is not None:
                raise NamingCollisionError(
                    artifact.name,
                    f"{first.kind.value} from {first.source}",
                    f"{artifact.kind.value} from {artifact.source}",
                    scope="schema",
                )
            seen[artifact.name] = artifact


def resolve_schema(index: SourceIndex, config: GeneratorConfig) -> ResolvedSchema:
    """Convenience wrapper around Resolver."""
    return Resolver(index, config).resolve()
