from pathlib import Path

from gqlschemagen.core.directives import annotate_index
from gqlschemagen.golang.scanner import SourceScanner
from gqlschemagen.resolver.autogen import (
    AutoGenerator,
    AutoStrategy,
    DependencyGraph,
    matches_patterns,
)

SHOP = """
package shop

// @gqlType
type Order struct {
    Customer *Customer
    Items    []Item
}

type Customer struct {
    Address Address
}

type Address struct {
    City string
}

type Item struct {
    SKU string
}

type Unused struct {
    X int
}
"""


def _names(schema):
    return sorted(a.name for a in schema.artifacts)


def _index(tmp_path: Path):
    index = SourceScanner([str(tmp_path / "models")]).scan()
    annotate_index(index)
    return index


def test_none_only_emits_opted_in(write_go, resolve) -> None:
    write_go("shop.go", SHOP)
    assert _names(resolve()) == ["Order"]


def test_referenced_follows_references(write_go, resolve) -> None:
    write_go("shop.go", SHOP)
    schema = resolve(auto_generate={"strategy": "referenced"})
    assert _names(schema) == ["Address", "Customer", "Item", "Order"]


def test_referenced_respects_max_depth(write_go, resolve) -> None:
    write_go("shop.go", SHOP)
    schema = resolve(auto_generate={"strategy": "referenced", "max_depth": 1})
    assert _names(schema) == ["Customer", "Item", "Order"]


def test_referenced_respects_exclude_patterns(write_go, resolve) -> None:
    write_go("shop.go", SHOP)
    schema = resolve(
        auto_generate={"strategy": "referenced", "exclude_patterns": ["shop.Address"]}
    )
    assert _names(schema) == ["Customer", "Item", "Order"]


def test_referenced_input_context(write_go, resolve) -> None:
    write_go(
        "forms.go",
        """
        package forms

        // @gqlInput
        type CreateOrder struct {
            Lines []Line
        }

        type Line struct {
            Qty int
        }
        """,
    )
    schema = resolve(auto_generate={"strategy": "referenced"})
    assert _names(schema) == ["CreateOrderInput", "LineInput"]


def test_all_strategy(write_go, resolve) -> None:
    write_go("shop.go", SHOP)
    schema = resolve(auto_generate={"strategy": "all"})
    assert _names(schema) == ["Address", "Customer", "Item", "Order", "Unused"]


def test_patterns_strategy(write_go, resolve) -> None:
    write_go("shop.go", SHOP)
    schema = resolve(auto_generate={"strategy": "patterns", "patterns": ["C*", "*/Item"]})
    assert _names(schema) == ["Customer", "CustomerInput", "Item", "ItemInput", "Order"]


def test_implicit_alias_roots(write_go, resolve) -> None:
    write_go(
        "page.go",
        """
        package models

        type Page[T any] struct {
            Items []T
        }

        type User struct {
            ID string
        }

        type UserPage = Page[User]
        """,
    )
    assert resolve().artifacts == []
    schema = resolve(auto_generate={"strategy": "referenced"})
    assert _names(schema) == ["User", "UserPage"]


def test_skip_is_never_generated(write_go, resolve) -> None:
    write_go(
        "shop.go",
        """
        package shop

        // @gqlType
        type Order struct {
            Customer Customer `gql:"customer,type:String"`
        }

        // @gqlSkip
        type Customer struct {
            Name string
        }
        """,
    )
    assert _names(resolve(auto_generate={"strategy": "all"})) == ["Order"]


def test_dependency_graph_edges(write_go, tmp_path: Path) -> None:
    write_go(
        "graph.go",
        """
        package models

        type Base struct {
            Owner *Customer
        }

        type Doc struct {
            Base
            Tags  map[string]Tag
            Pages Page[Section]
        }

        type Customer struct {
            Parent *Customer
        }

        type Tag struct{}

        type Section struct{}

        type Page[T any] struct {
            Items []T
        }
        """,
    )
    graph = DependencyGraph(_index(tmp_path).types)
    assert graph.nodes["Doc"].references == ["Customer", "Tag", "Page", "Section"]
    assert graph.nodes["Customer"].references == []
    assert graph.nodes["Customer"].referenced_by == {"Base", "Doc"}


def test_plan_excludes_generics_and_enums(write_go, tmp_path: Path) -> None:
    write_go(
        "plan.go",
        """
        package models

        type Page[T any] struct {
            Items []T
        }

        type Level int

        type Plain struct {
            L Level
        }
        """,
    )
    index = _index(tmp_path)
    plan = AutoGenerator(index.types, strategy=AutoStrategy.ALL, enum_names={"Level"}).plan()
    assert plan.types == {"Plain"}
    assert plan.inputs == set()


def test_matches_patterns(write_go, tmp_path: Path) -> None:
    write_go("user.go", "package users\n\ntype User struct{}\n")
    record = _index(tmp_path).types["User"]
    assert matches_patterns(record, ["User"])
    assert matches_patterns(record, ["users.*"])
    assert matches_patterns(record, ["users/U*"])
    assert not matches_patterns(record, ["Order"])
