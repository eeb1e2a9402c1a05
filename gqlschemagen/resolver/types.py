"""
Go to GraphQL type mapping.

Maps resolved Go type expressions to GraphQL type references, consulting
builtin scalars, configured scalar mappings, known scalars, enums and the
symbol table of scanned types.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Set, Tuple

from ..core.generator import GeneratorError
from ..core.schema import EnumRecord, FieldOptions, RecordKind, TypeRecord
from ..golang.ast import (
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
)


class ResolutionError(GeneratorError):
    """Raised for unresolved references, embedding cycles and enum linkage errors."""

    pass


BUILTIN_SCALARS = {"Int", "Float", "String", "Boolean", "ID"}

GO_PRIMITIVES: Dict[str, str] = {
    "string": "String",
    "bool": "Boolean",
    "int": "Int",
    "int8": "Int",
    "int16": "Int",
    "int32": "Int",
    "int64": "Int64",
    "uint": "Int",
    "uint8": "Int",
    "uint16": "Int",
    "uint32": "Int",
    "uint64": "Int64",
    "uintptr": "Int",
    "byte": "Int",
    "rune": "Int",
    "float32": "Float",
    "float64": "Float",
    "any": "JSON",
    "error": "String",
}

# Keyed by import path and type name
QUALIFIED_PRIMITIVES: Dict[str, str] = {
    "time.Time": "DateTime",
    "encoding/json.RawMessage": "JSON",
}

_LIKELY_TYPE_PARAMS = {"T", "K", "V", "E", "U", "R", "S"}


def looks_like_type_param(name: str) -> bool:
    """Single capital letters are conventional Go type parameter names."""
    return name in _LIKELY_TYPE_PARAMS or (len(name) == 1 and name.isupper())


def make_optional(gql_type: str) -> str:
    return gql_type[:-1] if gql_type.endswith("!") else gql_type


def make_required(gql_type: str) -> str:
    return gql_type if gql_type.endswith("!") else gql_type + "!"


@dataclass
class MappingContext:
    """Where a type expression is being mapped."""

    is_input: bool
    owner: str = ""
    type_params: Tuple[str, ...] = ()


class GraphQLTypeMapper:
    """Maps Go type expressions to GraphQL type references."""

    def __init__(
        self,
        types: Dict[str, TypeRecord],
        enums: Dict[str, EnumRecord],
        scalars: Dict[str, List[str]],
        known_scalars: List[str],
        reference_name: Callable[[TypeRecord, bool], str],
        instantiate: Callable[[Generic, MappingContext], str],
        unresolved_generic_type: str = "",
    ):
        """
        Initialize the mapper.

        Args:
            types: Symbol table of scanned types
            enums: Linked enums keyed by Go type name
            scalars: GraphQL scalar name to Go ``importpath.Type`` models
            known_scalars: Scalar names declared elsewhere in the schema
            reference_name: Returns the type or input name of a record
            instantiate: Registers a generic instantiation, returns its name
            unresolved_generic_type: Fallback for unsubstituted type parameters
        """
        self.types = types
        self.enums = enums
        self.known_scalars = set(known_scalars)
        self.reference_name = reference_name
        self.instantiate = instantiate
        self.unresolved_generic_type = unresolved_generic_type
        self.used_scalars: Set[str] = set()

        self._scalar_by_model: Dict[str, str] = {}
        for scalar_name, models in scalars.items():
            for model in models:
                self._scalar_by_model.setdefault(model, scalar_name)

    def scalar_for_go_type(self, go_type_path: str) -> str:
        """Scalar configured for ``importpath.Type`` or empty string."""
        return self._scalar_by_model.get(go_type_path, "")

    def custom_scalars(self) -> List[str]:
        """Used scalars that need a ``scalar`` declaration."""
        return sorted(
            s for s in self.used_scalars
            if s not in BUILTIN_SCALARS and s not in self.known_scalars
        )

    def map_field(self, expr: TypeExpr, options: FieldOptions, ctx: MappingContext) -> str:
        """
        Map a field type honoring type overrides and nullability flags.

        Raises:
            ResolutionError: If the type cannot be resolved and the field is
                not resolver provided
        """
        if options.type_override:
            gql_type = options.type_override
        else:
            try:
                gql_type = self.map_type(expr, ctx)
            except ResolutionError:
                if not options.force_resolver:
                    raise
                gql_type = self.fallback_type(expr)

        if options.optional:
            gql_type = make_optional(gql_type)
        if options.required:
            gql_type = make_required(gql_type)
        return gql_type

    def map_type(self, expr: TypeExpr, ctx: MappingContext) -> str:
        """Map a type expression; the result is always non-null."""
        if isinstance(expr, Pointer):
            return self.map_type(expr.elem, ctx)

        if isinstance(expr, ListOf):
            if isinstance(expr.elem, Ident) and expr.elem.name in ("byte", "uint8"):
                return "String!"
            return f"[{self.map_type(expr.elem, ctx)}]!"

        if isinstance(expr, (MapOf, InterfaceLit, StructLit)):
            return "JSON!"

        if isinstance(expr, Generic):
            return self.instantiate(expr, ctx) + "!"

        if isinstance(expr, Ident):
            return self._map_ident(expr.name, ctx, set()) + "!"

        if isinstance(expr, Qualified):
            return self._map_qualified(expr, ctx) + "!"

        if isinstance(expr, Opaque):
            raise ResolutionError(f"{ctx.owner}: {expr.kind} types have no GraphQL representation")

        raise ResolutionError(f"{ctx.owner}: unsupported type expression {expr}")

    def fallback_type(self, expr: TypeExpr) -> str:
        """Best effort name for resolver provided fields."""
        if isinstance(expr, Pointer):
            return self.fallback_type(expr.elem)
        if isinstance(expr, ListOf):
            return f"[{self.fallback_type(expr.elem)}]!"
        name = expr.base_name()
        return f"{name or 'JSON'}!"

    def _scalar(self, name: str) -> str:
        self.used_scalars.add(name)
        return name

    def _map_ident(self, name: str, ctx: MappingContext, seen: Set[str]) -> str:
        if name in ctx.type_params:
            return self._unresolved_param(name, ctx)

        if name in GO_PRIMITIVES:
            return GO_PRIMITIVES[name]

        record = self.types.get(name)
        if record is not None:
            scalar = self.scalar_for_go_type(f"{record.import_path}.{name}")
            if scalar:
                return self._scalar(scalar)

        if name in self.known_scalars:
            return name

        if name in self.enums:
            return self.enums[name].name

        if record is not None:
            return self._map_record(record, ctx, seen)

        if self.unresolved_generic_type and looks_like_type_param(name):
            return self.unresolved_generic_type

        raise ResolutionError(f"{ctx.owner}: unresolved type reference '{name}'")

    def _map_qualified(self, expr: Qualified, ctx: MappingContext) -> str:
        full_path = expr.full_path
        if full_path in QUALIFIED_PRIMITIVES:
            return QUALIFIED_PRIMITIVES[full_path]

        scalar = self.scalar_for_go_type(full_path)
        if scalar:
            return self._scalar(scalar)

        if expr.name in self.known_scalars:
            return expr.name

        if expr.name in self.enums:
            return self.enums[expr.name].name

        record = self.types.get(expr.name)
        if record is not None:
            return self._map_record(record, ctx, set())

        raise ResolutionError(
            f"{ctx.owner}: unresolved type reference '{expr}' ({full_path}); "
            f"add a scalar mapping or scan its package"
        )

    def _map_record(self, record: TypeRecord, ctx: MappingContext, seen: Set[str]) -> str:
        if record.kind == RecordKind.NAMED:
            if record.name in seen:
                raise ResolutionError(f"{ctx.owner}: recursive type definition {record.name}")
            seen.add(record.name)
            underlying = record.underlying
            if isinstance(underlying, Ident):
                return self._map_ident(underlying.name, ctx, seen)
            return make_optional(self.map_type(underlying, ctx))

        if record.is_generic:
            raise ResolutionError(
                f"{ctx.owner}: generic type {record.name} used without type arguments"
            )
        return self.reference_name(record, ctx.is_input)

    def _unresolved_param(self, name: str, ctx: MappingContext) -> str:
        if self.unresolved_generic_type:
            return self.unresolved_generic_type
        raise ResolutionError(
            f"{ctx.owner}: type parameter {name} has no type argument; "
            f"set auto_generate.unresolved_generic_type to map it"
        )

    def display_name(self, expr: TypeExpr) -> str:
        """Name fragment of a type argument used in instantiation names."""
        if isinstance(expr, Pointer):
            return self.display_name(expr.elem)
        if isinstance(expr, ListOf):
            return self.display_name(expr.elem) + "List"
        if isinstance(expr, Generic):
            base = expr.base.base_name()
            return "".join(self.display_name(a) for a in expr.args) + base
        if isinstance(expr, Ident):
            if expr.name in GO_PRIMITIVES:
                return GO_PRIMITIVES[expr.name]
            return expr.name[:1].upper() + expr.name[1:]
        if isinstance(expr, Qualified):
            return QUALIFIED_PRIMITIVES.get(expr.full_path, expr.name)
        if isinstance(expr, MapOf):
            return "Map"
        return "Any"
