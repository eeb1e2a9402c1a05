"""
Go type expression tree.

The parser produces these immutable nodes for every field and declaration
type. Qualified names carry the import path of the declaring file so that
expressions stay meaningful after generic substitution moves them into
another file's context.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple, Optional


class TypeExpr:
    """Base class for Go type expressions."""

    def base_name(self) -> str:
        """Name of the innermost named type, or empty string."""
        return ""

    def substitute(self, mapping: Dict[str, "TypeExpr"]) -> "TypeExpr":
        """Return a copy with type parameter identifiers replaced."""
        return self


@dataclass(frozen=True)
class Ident(TypeExpr):
    """Unqualified type name: builtin, local type or type parameter."""

    name: str

    def base_name(self) -> str:
        return self.name

    def substitute(self, mapping):
        return mapping.get(self.name, self)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Qualified(TypeExpr):
    """Package qualified type name such as ``time.Time``."""

    package: str
    name: str
    import_path: str = ""

    def base_name(self) -> str:
        return self.name

    @property
    def full_path(self) -> str:
        """Import path joined with the type name (``time.Time``)."""
        return f"{self.import_path or self.package}.{self.name}"

    def __str__(self) -> str:
        return f"{self.package}.{self.name}"


@dataclass(frozen=True)
class Pointer(TypeExpr):
    elem: TypeExpr

    def base_name(self) -> str:
        return self.elem.base_name()

    def substitute(self, mapping):
        return Pointer(self.elem.substitute(mapping))

    def __str__(self) -> str:
        return f"*{self.elem}"


@dataclass(frozen=True)
class ListOf(TypeExpr):
    """Slice or array; the length of arrays is kept only for display."""

    elem: TypeExpr
    length: str = ""

    def base_name(self) -> str:
        return self.elem.base_name()

    def substitute(self, mapping):
        return ListOf(self.elem.substitute(mapping), self.length)

    def __str__(self) -> str:
        return f"[{self.length}]{self.elem}"


@dataclass(frozen=True)
class MapOf(TypeExpr):
    key: TypeExpr
    value: TypeExpr

    def substitute(self, mapping):
        return MapOf(self.key.substitute(mapping), self.value.substitute(mapping))

    def __str__(self) -> str:
        return f"map[{self.key}]{self.value}"


@dataclass(frozen=True)
class Generic(TypeExpr):
    """Instantiation of a parameterized type, e.g. ``Connection[*User]``."""

    base: TypeExpr
    args: Tuple[TypeExpr, ...]

    def base_name(self) -> str:
        return self.base.base_name()

    def substitute(self, mapping):
        return Generic(
            self.base.substitute(mapping),
            tuple(arg.substitute(mapping) for arg in self.args),
        )

    def __str__(self) -> str:
        return f"{self.base}[{', '.join(str(a) for a in self.args)}]"


@dataclass(frozen=True)
class StructLit(TypeExpr):
    """Anonymous struct type; fields are kept as raw names only."""

    field_names: Tuple[str, ...] = ()

    def __str__(self) -> str:
        return "struct{...}"


@dataclass(frozen=True)
class InterfaceLit(TypeExpr):
    empty: bool = True

    def __str__(self) -> str:
        return "interface{}" if self.empty else "interface{...}"


@dataclass(frozen=True)
class Opaque(TypeExpr):
    """Function and channel types, which have no schema representation."""

    kind: str

    def __str__(self) -> str:
        return self.kind


def unwrap_pointer(expr: TypeExpr) -> TypeExpr:
    """Strip any number of pointer indirections."""
    while isinstance(expr, Pointer):
        expr = expr.elem
    return expr


def split_generic(expr: TypeExpr) -> Tuple[TypeExpr, Tuple[TypeExpr, ...]]:
    """Split ``Base[A, B]`` into its base and arguments."""
    if isinstance(expr, Generic):
        return expr.base, expr.args
    return expr, ()


@dataclass
class ImportSpec:
    """Single import of a Go file."""

    path: str
    alias: Optional[str] = None

    @property
    def local_name(self) -> str:
        """Name the package is referred to by inside the file."""
        if self.alias:
            return self.alias
        last = self.path.rstrip("/").split("/")[-1]
        # gopkg.in/yaml.v3 and github.com/x/go-foo style paths
        if "." in last and last.split(".")[-1].startswith("v"):
            last = last.split(".")[0]
        return last


@dataclass
class ImportTable:
    """Alias to import path lookup for one file."""

    imports: Dict[str, str] = field(default_factory=dict)

    def add(self, spec: ImportSpec) -> None:
        if spec.alias in ("_", "."):
            return
        self.imports[spec.local_name] = spec.path

    def resolve(self, package: str) -> str:
        return self.imports.get(package, package)
