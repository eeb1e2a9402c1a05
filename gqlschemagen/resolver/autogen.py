"""
Auto-discovery of types that did not opt in.

Builds a dependency graph over the scanned types and decides, per
strategy, which of them get a derived type or input artifact.
"""

import fnmatch
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List, Optional, Set, Tuple

from ..core.schema import RecordKind, TypeRecord
from ..golang.ast import (
    TypeExpr,
    Ident,
    Qualified,
    Pointer,
    ListOf,
    MapOf,
    Generic,
    unwrap_pointer,
    split_generic,
)
from ..logging_config import get_logger
from .types import GO_PRIMITIVES

logger = get_logger(__name__)


class AutoStrategy(Enum):
    """Auto-discovery strategies."""
    NONE = "none"              # opted-in types only
    REFERENCED = "referenced"  # reachable from opted-in types
    ALL = "all"                # every scanned struct
    PATTERNS = "patterns"      # names matching glob patterns


@dataclass
class TypeNode:
    """Dependency graph node for one scanned type."""

    record: TypeRecord
    references: List[str] = field(default_factory=list)
    referenced_by: Set[str] = field(default_factory=set)

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def has_type_directive(self) -> bool:
        d = self.record.directives
        return bool(d.types) or d.include or self.is_implicit_root

    @property
    def has_input_directive(self) -> bool:
        d = self.record.directives
        return bool(d.inputs) or d.include

    @property
    def is_implicit_root(self) -> bool:
        """Aliases of generic instantiations count as opted in."""
        d = self.record.directives
        return self.record.kind == RecordKind.ALIAS and not (d.types or d.inputs or d.include)


class DependencyGraph:
    """References between scanned types, following embedding."""

    def __init__(self, types: Dict[str, TypeRecord]):
        self.types = types
        self.nodes: Dict[str, TypeNode] = {}
        for record in types.values():
            self.nodes[record.name] = TypeNode(record)
        for node in self.nodes.values():
            node.references = self._references_of(node.record, set())
            for ref in node.references:
                self.nodes[ref].referenced_by.add(node.name)

    def _expr_references(self, expr: TypeExpr, out: List[str]) -> None:
        if isinstance(expr, (Pointer, ListOf)):
            self._expr_references(expr.elem, out)
        elif isinstance(expr, MapOf):
            self._expr_references(expr.key, out)
            self._expr_references(expr.value, out)
        elif isinstance(expr, Generic):
            self._expr_references(expr.base, out)
            for arg in expr.args:
                self._expr_references(arg, out)
        elif isinstance(expr, (Ident, Qualified)):
            if isinstance(expr, Ident) and expr.name in GO_PRIMITIVES:
                return
            if expr.name in self.types and expr.name not in out:
                out.append(expr.name)

    def _references_of(self, record: TypeRecord, visiting: Set[str]) -> List[str]:
        refs: List[str] = []
        if record.name in visiting:
            return refs
        visiting = visiting | {record.name}

        if record.kind != RecordKind.STRUCT:
            if record.underlying is not None:
                self._expr_references(record.underlying, refs)
            return [r for r in refs if r != record.name]

        for field_record in record.fields:
            if not field_record.embedded:
                self._expr_references(field_record.type_expr, refs)
                continue
            # embedded types contribute their own references and type arguments
            base, args = split_generic(unwrap_pointer(field_record.type_expr))
            for arg in args:
                self._expr_references(arg, refs)
            target = self.types.get(base.base_name())
            if target is not None:
                for ref in self._references_of(target, visiting):
                    if ref not in refs:
                        refs.append(ref)
        return [r for r in refs if r != record.name]


@dataclass
class AutoPlan:
    """Types and inputs to generate with derived names."""

    types: Set[str] = field(default_factory=set)
    inputs: Set[str] = field(default_factory=set)


def matches_patterns(record: TypeRecord, patterns: List[str]) -> bool:
    """Match ``importpath/Name``, ``Name``, ``package.Name`` or the import path."""
    candidates = (
        f"{record.import_path}/{record.name}",
        record.name,
        f"{record.package}.{record.name}",
        record.import_path,
    )
    return any(fnmatch.fnmatchcase(c, p) for p in patterns for c in candidates)


class AutoGenerator:
    """Plans auto-generated artifacts for a strategy."""

    def __init__(
        self,
        types: Dict[str, TypeRecord],
        strategy: AutoStrategy = AutoStrategy.NONE,
        max_depth: int = 0,
        patterns: Optional[List[str]] = None,
        exclude_patterns: Optional[List[str]] = None,
        enum_names: Optional[Set[str]] = None,
    ):
        self.types = types
        self.strategy = strategy
        self.max_depth = max_depth
        self.patterns = patterns or []
        self.exclude_patterns = exclude_patterns or []
        self.enum_names = enum_names or set()
        self.graph = DependencyGraph(types)

    def is_excluded(self, record: TypeRecord) -> bool:
        return record.directives.skip or (
            bool(self.exclude_patterns) and matches_patterns(record, self.exclude_patterns)
        )

    def is_eligible(self, record: TypeRecord) -> bool:
        """Only concrete structs and instantiation aliases become artifacts."""
        return (
            record.kind in (RecordKind.STRUCT, RecordKind.ALIAS)
            and not record.is_generic
            and record.name not in self.enum_names
            and not self.is_excluded(record)
        )

    def plan(self) -> AutoPlan:
        """
        Decide which types get derived artifacts.

        Returns:
            AutoPlan with the names of records needing a type or input
        """
        plan = AutoPlan()
        if self.strategy == AutoStrategy.NONE:
            return plan

        nodes = self.graph.nodes

        if self.strategy == AutoStrategy.REFERENCED:
            type_roots = [n.name for n in nodes.values() if n.has_type_directive and not n.record.directives.skip]
            input_roots = [n.name for n in nodes.values() if n.has_input_directive and not n.record.directives.skip]
            for name in self._reachable(type_roots):
                if not nodes[name].has_type_directive or nodes[name].is_implicit_root:
                    plan.types.add(name)
            for name in self._reachable(input_roots):
                if not nodes[name].has_input_directive:
                    plan.inputs.add(name)
            # implicit roots are generated even without references
            for node in nodes.values():
                if node.is_implicit_root:
                    plan.types.add(node.name)

        elif self.strategy == AutoStrategy.ALL:
            for node in nodes.values():
                if not node.record.directives.types and not node.has_input_directive:
                    plan.types.add(node.name)

        elif self.strategy == AutoStrategy.PATTERNS:
            for node in nodes.values():
                if not matches_patterns(node.record, self.patterns):
                    continue
                if not node.record.directives.types:
                    plan.types.add(node.name)
                if not node.record.directives.inputs:
                    plan.inputs.add(node.name)

        plan.types = {n for n in plan.types if self.is_eligible(self.types[n])}
        plan.inputs = {n for n in plan.inputs if self.is_eligible(self.types[n])}
        logger.info(
            "Auto-discovery (%s) added %d type(s) and %d input(s)",
            self.strategy.value, len(plan.types), len(plan.inputs),
        )
        return plan

    def _reachable(self, roots: List[str]) -> List[str]:
        """Breadth first walk bounded by max_depth; roots are depth zero."""
        depth: Dict[str, int] = {}
        queue: Deque[Tuple[str, int]] = deque()
        for root in roots:
            if root not in depth:
                depth[root] = 0
                queue.append((root, 0))

        while queue:
            name, level = queue.popleft()
            if self.max_depth and level >= self.max_depth:
                continue
            for ref in self.graph.nodes[name].references:
                if ref in depth or self.is_excluded(self.types[ref]):
                    continue
                depth[ref] = level + 1
                queue.append((ref, level + 1))

        return [name for name in depth]
