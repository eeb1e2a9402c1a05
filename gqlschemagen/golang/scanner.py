"""
Source scanner for Go packages.

Resolves root specifiers (directories, files, ``*`` and ``**`` patterns)
into Go source files and builds the SourceIndex: every type declaration in
scan order plus all const blocks, keyed for the resolver.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .ast import Generic, Pointer
from .lexer import ScanError
from .parser import GoFile, TypeDecl, parse_file
from ..core.schema import (
    ConstBlock,
    FieldRecord,
    RecordKind,
    SourcePosition,
    TypeRecord,
)
from ..logging_config import get_logger

logger = get_logger(__name__)

WILDCARD_CHARS = "*?["
SKIPPED_DIRS = {"vendor", "testdata", "node_modules"}


@dataclass
class SourceIndex:
    """Everything discovered by a scan, in deterministic order."""

    types: Dict[str, TypeRecord] = field(default_factory=dict)
    const_blocks: List[ConstBlock] = field(default_factory=list)
    files: List[GoFile] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)

    def lookup(self, name: str) -> Optional[TypeRecord]:
        return self.types.get(name)

    def records(self) -> List[TypeRecord]:
        return list(self.types.values())


def has_wildcard(path: str) -> bool:
    return any(ch in path for ch in WILDCARD_CHARS)


def _walk_go_files(root: str) -> List[str]:
    """All non-test .go files under root, sorted per directory."""
    found: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames
            if not d.startswith((".", "_")) and d not in SKIPPED_DIRS
        )
        for name in sorted(filenames):
            if name.endswith(".go") and not name.endswith("_test.go"):
                found.append(os.path.join(dirpath, name))
    return found


def _pattern_to_regex(pattern: str) -> str:
    """Translate a slash separated glob (with ``**``) to a regex body."""
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if pattern.startswith("**/", i):
            out.append("(?:[^/]+/)*")
            i += 3
            continue
        if pattern.startswith("**", i):
            out.append(".*")
            i += 2
            continue
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                raise ScanError(f"invalid pattern {pattern!r}: unclosed '['")
            body = pattern[i + 1:end]
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append(f"[{body}]")
            i = end + 1
            continue
        else:
            out.append(re.escape(ch))
        i += 1
    return "".join(out)


def split_pattern(pattern: str) -> Tuple[str, str]:
    """
    Split a pattern into its literal base directory and the remainder.

    ``./pkg/**/models/*.go`` becomes (``./pkg``, ``**/models/*.go``).
    """
    normalized = pattern.replace("\\", "/")
    parts = normalized.split("/")
    for index, part in enumerate(parts):
        if has_wildcard(part):
            base = "/".join(parts[:index])
            if not base and normalized.startswith("/"):
                base = "/"
            return base or ".", "/".join(parts[index:])
    return normalized, ""


def resolve_pattern(pattern: str) -> List[str]:
    """
    Resolve a wildcard pattern into Go files.

    Args:
        pattern: Path pattern using ``*``, ``?``, ``[...]`` and at most one ``**``

    Returns:
        Matching files in walk order; empty when the base does not exist

    Raises:
        ScanError: For invalid patterns
    """
    if pattern.count("**") > 1:
        raise ScanError(f"invalid pattern {pattern!r}: only one '**' is supported")

    base, remainder = split_pattern(pattern)
    if not os.path.isdir(base):
        logger.debug("Pattern base %s does not exist, nothing to scan", base)
        return []

    if "**" not in remainder:
        regex = re.compile(_pattern_to_regex(remainder) + r"(?:/.*)?$")
        files = []
        for path in _walk_go_files(base):
            rel = os.path.relpath(path, base).replace(os.sep, "/")
            # every non-final component must match exactly, the rest descends
            if regex.match(rel) and _matches_levels(remainder, rel):
                files.append(path)
        return files

    head, _, tail = remainder.partition("**")
    tail = tail.lstrip("/")
    head_regex = re.compile(_pattern_to_regex(head.rstrip("/")) + "$") if head.strip("/") else None

    if tail and not has_wildcard(tail) and not os.path.splitext(tail)[1]:
        # **/models: every directory with that name
        return _descend_named_dirs(base, head_regex, tail)

    tail_regex = re.compile(r"(?:^|.*/)" + _pattern_to_regex(tail or "*.go") + "$")
    files = []
    for path in _walk_go_files(base):
        rel = os.path.relpath(path, base).replace(os.sep, "/")
        if head_regex is not None:
            first, _, rest = rel.partition("/")
            if not rest or not head_regex.match(first):
                continue
            rel = rest
        if tail_regex.match(rel):
            files.append(path)
    return files


def _matches_levels(remainder: str, rel: str) -> bool:
    pattern_parts = remainder.split("/")
    rel_parts = rel.split("/")
    if len(rel_parts) < len(pattern_parts):
        return False
    for pat, part in zip(pattern_parts, rel_parts):
        if not re.match(_pattern_to_regex(pat) + "$", part):
            return False
    # a pattern that names files stops at that level
    last = pattern_parts[-1]
    if last.endswith(".go") and len(rel_parts) != len(pattern_parts):
        return False
    return True


def _descend_named_dirs(base: str, head_regex, dir_path: str) -> List[str]:
    wanted = dir_path.strip("/").split("/")
    files: List[str] = []
    seen = set()
    for dirpath, dirnames, _ in os.walk(base):
        dirnames[:] = sorted(
            d for d in dirnames
            if not d.startswith((".", "_")) and d not in SKIPPED_DIRS
        )
        rel = os.path.relpath(dirpath, base).replace(os.sep, "/")
        parts = [] if rel == "." else rel.split("/")
        if head_regex is not None and (not parts or not head_regex.match(parts[0])):
            continue
        if len(parts) >= len(wanted) and parts[-len(wanted):] == wanted:
            for path in _walk_go_files(dirpath):
                if path not in seen:
                    seen.add(path)
                    files.append(path)
    return files


def resolve_paths(paths: Sequence[str]) -> List[str]:
    """
    Resolve root specifiers into an ordered, de-duplicated file list.

    Non-existent paths contribute nothing.
    """
    files: List[str] = []
    seen = set()

    for spec in paths:
        if has_wildcard(spec):
            resolved = resolve_pattern(spec)
        elif os.path.isfile(spec):
            resolved = [spec] if spec.endswith(".go") else []
        elif os.path.isdir(spec):
            resolved = _walk_go_files(spec)
        else:
            logger.warning("Path %s does not exist, nothing to scan", spec)
            resolved = []

        for path in resolved:
            key = os.path.abspath(path)
            if key not in seen:
                seen.add(key)
                files.append(path)

    return files


class ModuleResolver:
    """Derives Go import paths from the nearest go.mod."""

    _MODULE_LINE = re.compile(r"^module\s+(\S+)", re.MULTILINE)

    def __init__(self):
        self._cache: Dict[str, Optional[Tuple[str, str]]] = {}

    def _find_module(self, directory: str) -> Optional[Tuple[str, str]]:
        if directory in self._cache:
            return self._cache[directory]
        result = None
        gomod = os.path.join(directory, "go.mod")
        if os.path.isfile(gomod):
            try:
                with open(gomod, "r", encoding="utf-8") as f:
                    match = self._MODULE_LINE.search(f.read())
            except OSError as e:
                raise ScanError(f"cannot read go.mod: {e}", gomod)
            if match:
                result = (directory, match.group(1).strip('"'))
        else:
            parent = os.path.dirname(directory)
            if parent and parent != directory:
                result = self._find_module(parent)
        self._cache[directory] = result
        return result

    def import_path(self, file_path: str, package: str) -> str:
        directory = os.path.dirname(os.path.abspath(file_path))
        module = self._find_module(directory)
        if module is None:
            return package
        mod_dir, mod_path = module
        rel = os.path.relpath(directory, mod_dir).replace(os.sep, "/")
        return mod_path if rel == "." else f"{mod_path}/{rel}"


class SourceScanner:
    """Scans root paths into a SourceIndex."""

    def __init__(self, paths: Sequence[str]):
        self.paths = list(paths)
        self.modules = ModuleResolver()

    def scan(self) -> SourceIndex:
        """
        Parse every resolved file and register its declarations.

        Returns:
            SourceIndex with first-seen-wins type registration

        Raises:
            ScanError: If any file fails to parse
        """
        index = SourceIndex()
        files = resolve_paths(self.paths)
        logger.info("Scanning %d Go file(s)", len(files))

        order = 0
        for path in files:
            go_file = parse_file(path)
            index.files.append(go_file)
            import_path = self.modules.import_path(path, go_file.package)
            logger.debug("Parsed %s (package %s, %d types)", path, go_file.package, len(go_file.types))

            for decl in go_file.types:
                if decl.name in index.types:
                    index.duplicates.append(decl.name)
                    logger.debug("Type %s declared again in %s; keeping first", decl.name, path)
                    continue
                index.types[decl.name] = self._make_record(decl, go_file, import_path, order)
                order += 1

            for const_decl in go_file.consts:
                index.const_blocks.append(
                    ConstBlock(
                        specs=const_decl.specs,
                        package=go_file.package,
                        import_path=import_path,
                        source_file=path,
                    )
                )

        return index

    @staticmethod
    def _make_record(decl: TypeDecl, go_file: GoFile, import_path: str, order: int) -> TypeRecord:
        position = SourcePosition(go_file.path, decl.line, decl.column)
        record = TypeRecord(
            name=decl.name,
            kind=RecordKind.NAMED,
            package=go_file.package,
            import_path=import_path,
            source_file=go_file.path,
            order=order,
            position=position,
            type_params=list(decl.type_params),
            doc=decl.doc,
            comment=decl.comment,
        )

        if decl.is_struct:
            record.kind = RecordKind.STRUCT
            for field_decl in decl.fields:
                doc = field_decl.doc.text if field_decl.doc else ""
                comment = field_decl.comment.text if field_decl.comment else ""
                field_pos = SourcePosition(go_file.path, field_decl.line, field_decl.column)
                names = field_decl.names or [""]
                for name in names:
                    record.fields.append(
                        FieldRecord(
                            name=name,
                            type_expr=field_decl.type_expr,
                            tag=field_decl.tag,
                            doc=doc,
                            comment=comment,
                            position=field_pos,
                        )
                    )
        else:
            record.underlying = decl.type_expr
            target = decl.type_expr
            if isinstance(target, Pointer):
                target = target.elem
            if isinstance(target, Generic):
                record.kind = RecordKind.ALIAS

        return record


def scan_paths(paths: Sequence[str]) -> SourceIndex:
    """Convenience wrapper around SourceScanner."""
    return SourceScanner(paths).scan()
