import os
from pathlib import Path

import pytest

from gqlschemagen.core.schema import RecordKind
from gqlschemagen.golang.lexer import ScanError
from gqlschemagen.golang.scanner import (
    SourceScanner,
    resolve_paths,
    resolve_pattern,
    split_pattern,
)


def _touch(root: Path, *names: str) -> None:
    for name in names:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("package x\n", encoding="utf-8")


def _relative(root: Path, files) -> list:
    return sorted(os.path.relpath(f, root).replace(os.sep, "/") for f in files)


def test_directory_excludes_tests_vendor_and_hidden(tmp_path: Path) -> None:
    _touch(
        tmp_path,
        "pkg/a.go",
        "pkg/a_test.go",
        "pkg/readme.md",
        "pkg/sub/b.go",
        "pkg/vendor/c.go",
        "pkg/.hidden/d.go",
    )
    files = resolve_paths([str(tmp_path / "pkg")])
    assert _relative(tmp_path, files) == ["pkg/a.go", "pkg/sub/b.go"]


def test_single_file_and_missing_path(tmp_path: Path) -> None:
    _touch(tmp_path, "pkg/a.go")
    files = resolve_paths([str(tmp_path / "pkg" / "a.go"), str(tmp_path / "missing")])
    assert _relative(tmp_path, files) == ["pkg/a.go"]


def test_duplicate_roots_are_scanned_once(tmp_path: Path) -> None:
    _touch(tmp_path, "pkg/a.go")
    files = resolve_paths([str(tmp_path / "pkg"), str(tmp_path / "pkg" / "a.go")])
    assert len(files) == 1


def test_single_level_pattern(tmp_path: Path) -> None:
    _touch(tmp_path, "pkg/a.go", "pkg/b.go", "pkg/sub/c.go")
    files = resolve_pattern(str(tmp_path / "pkg" / "*.go"))
    assert _relative(tmp_path, files) == ["pkg/a.go", "pkg/b.go"]


def test_recursive_pattern_for_named_directories(tmp_path: Path) -> None:
    _touch(
        tmp_path,
        "src/users/models/user.go",
        "src/orders/models/order.go",
        "src/orders/service/service.go",
        "src/models.go",
    )
    files = resolve_pattern(str(tmp_path / "src") + "/**/models")
    assert _relative(tmp_path, files) == [
        "src/orders/models/order.go",
        "src/users/models/user.go",
    ]


def test_recursive_pattern_for_files(tmp_path: Path) -> None:
    _touch(tmp_path, "src/a/user.go", "src/b/c/user.go", "src/b/other.go")
    files = resolve_pattern(str(tmp_path / "src") + "/**/user.go")
    assert _relative(tmp_path, files) == ["src/a/user.go", "src/b/c/user.go"]


def test_pattern_with_missing_base(tmp_path: Path) -> None:
    assert resolve_pattern(str(tmp_path / "nope") + "/**/models") == []


def test_double_recursive_pattern_is_invalid(tmp_path: Path) -> None:
    with pytest.raises(ScanError):
        resolve_pattern(str(tmp_path) + "/**/a/**/b")


def test_split_pattern() -> None:
    assert split_pattern("./pkg/**/models/*.go") == ("./pkg", "**/models/*.go")
    assert split_pattern("*.go") == (".", "*.go")


def test_scan_builds_ordered_index(write_go, tmp_path: Path) -> None:
    write_go(
        "a.go",
        """
        package models

        type User struct {
        \tFirst, Last string
        }

        type Status string

        type UserPage = Page[User]
        """,
    )
    write_go(
        "b.go",
        """
        package models

        type Page[T any] struct {
        \tItems []T
        }

        type User struct {
        \tOther int
        }

        const (
        \tStatusActive Status = "active"
        )
        """,
    )
    index = SourceScanner([str(tmp_path / "models")]).scan()

    assert list(index.types) == ["User", "Status", "UserPage", "Page"]
    assert index.duplicates == ["User"]
    user = index.types["User"]
    assert user.kind == RecordKind.STRUCT
    assert [f.name for f in user.fields] == ["First", "Last"]
    assert index.types["Status"].kind == RecordKind.NAMED
    assert index.types["UserPage"].kind == RecordKind.ALIAS
    assert index.types["Page"].type_params == ["T"]
    assert [r.order for r in index.records()] == [0, 1, 2, 3]
    assert len(index.const_blocks) == 1
    assert len(index.files) == 2


def test_import_path_from_go_mod(write_go, tmp_path: Path) -> None:
    (tmp_path / "go.mod").write_text("module example.com/app\n\ngo 1.21\n", encoding="utf-8")
    write_go("user.go", "package models\n\ntype User struct{}\n", directory="internal/models")
    index = SourceScanner([str(tmp_path / "internal")]).scan()
    assert index.types["User"].import_path == "example.com/app/internal/models"


def test_parse_errors_name_the_file(write_go, tmp_path: Path) -> None:
    path = write_go("broken.go", "package models\n\ntype User struct {\n")
    with pytest.raises(ScanError) as exc_info:
        SourceScanner([str(tmp_path / "models")]).scan()
    assert exc_info.value.file == str(path)
