import pytest

from gqlschemagen.core.naming import NamingCollisionError
from gqlschemagen.core.schema import ArtifactKind
from gqlschemagen.resolver.types import ResolutionError


def _enum(schema, name):
    for artifact in schema.artifacts:
        if artifact.kind == ArtifactKind.ENUM and artifact.name == name:
            return artifact
    raise AssertionError(f"no enum {name}")


def test_string_enum_with_value_directives(write_go, resolve) -> None:
    write_go(
        "status.go",
        """
        package models

        // Status of an order.
        // @gqlEnum
        type Status string

        const (
            StatusPending Status = "pending" // Waiting for payment
            // @gqlEnumValue(name:"DONE", description:"Finished", deprecated:"use CLOSED")
            StatusComplete Status = "complete"
            StatusClosed   Status = "closed"
        )
        """,
    )
    enum = _enum(resolve(), "Status")
    assert enum.description == "Status of an order."
    assert [v.name for v in enum.values] == ["PENDING", "DONE", "CLOSED"]
    assert [v.value for v in enum.values] == ["pending", "complete", "closed"]

    pending, done, closed = enum.values
    assert pending.description == "Waiting for payment"
    assert done.description == "Finished"
    assert done.deprecated
    assert done.deprecation_reason == "use CLOSED"
    assert not closed.deprecated


def test_directive_in_trailing_type_comment(write_go, resolve) -> None:
    write_go(
        "priority.go",
        """
        package models

        type Priority string // @gqlEnum(name:"Urgency")

        const (
            PriorityLow  Priority = "low"
            PriorityHigh Priority = "high"
        )

        type Task struct {
            Title string
        } // @gqlType
        """,
    )
    schema = resolve()
    enum = _enum(schema, "Urgency")
    assert [v.name for v in enum.values] == ["LOW", "HIGH"]
    assert enum.description == ""
    assert [a.name for a in schema.artifacts if a.kind == ArtifactKind.TYPE] == ["Task"]


def test_iota_enum_with_implicit_repetition(write_go, resolve) -> None:
    write_go(
        "role.go",
        """
        package models

        // @gqlEnum(name:"UserRole", description:"Access level")
        type Role int

        const (
            RoleAdmin Role = iota
            RoleEditor
            _
            RoleViewer
        )

        // @gqlType
        type Account struct {
            Role  Role
            Roles []Role
        }
        """,
    )
    schema = resolve()
    enum = _enum(schema, "UserRole")
    assert enum.description == "Access level"
    assert [(v.name, v.value) for v in enum.values] == [
        ("ADMIN", "0"),
        ("EDITOR", "1"),
        ("VIEWER", "3"),
    ]
    account = [a for a in schema.artifacts if a.name == "Account"][0]
    assert [(f.name, f.graphql_type) for f in account.fields] == [
        ("role", "UserRole!"),
        ("roles", "[UserRole!]!"),
    ]


def test_constants_in_other_files_are_linked(write_go, resolve) -> None:
    write_go(
        "a_type.go",
        """
        package models

        // @gqlEnum
        type Color string
        """,
    )
    write_go(
        "b_consts.go",
        """
        package models

        const ColorRed Color = "red"

        const (
            ColorBlue Color = "blue"
            Unrelated       = 3
        )
        """,
    )
    enum = _enum(resolve(), "Color")
    assert [v.name for v in enum.values] == ["RED", "BLUE"]


def test_enum_namespace_and_skip(write_go, resolve) -> None:
    write_go(
        "kinds.go",
        """
        // @gqlNamespace(name:"catalog")
        package models

        // @gqlEnum(namespace:"shared")
        type Kind string

        // @gqlEnum
        type Size string

        // @gqlEnum
        // @gqlSkip
        type Hidden string

        const (
            KindBook Kind = "book"
            SizeLarge Size = "large"
            HiddenValue Hidden = "x"
        )
        """,
    )
    schema = resolve()
    assert [a.name for a in schema.artifacts] == ["Kind", "Size"]
    assert _enum(schema, "Kind").namespace == "shared"
    assert _enum(schema, "Size").namespace == "catalog"


def test_enum_without_values(write_go, resolve) -> None:
    write_go(
        "empty.go",
        """
        package models

        // @gqlEnum
        type Empty string
        """,
    )
    with pytest.raises(ResolutionError, match="no constants"):
        resolve()


def test_enum_on_struct_is_an_error(write_go, resolve) -> None:
    write_go(
        "bad.go",
        """
        package models

        // @gqlEnum
        type Bad struct {
            X int
        }
        """,
    )
    with pytest.raises(ResolutionError, match="base type"):
        resolve()


def test_enum_on_float_is_an_error(write_go, resolve) -> None:
    write_go(
        "bad.go",
        """
        package models

        // @gqlEnum
        type Ratio float64

        const RatioHalf Ratio = 0.5
        """,
    )
    with pytest.raises(ResolutionError):
        resolve()


def test_enum_value_on_unlinked_constant(write_go, resolve) -> None:
    write_go(
        "bad.go",
        """
        package models

        const (
            // @gqlEnumValue(name:"ONE")
            One = 1
        )
        """,
    )
    with pytest.raises(ResolutionError, match="not typed"):
        resolve()


def test_duplicate_enum_value_names(write_go, resolve) -> None:
    write_go(
        "dup.go",
        """
        package models

        // @gqlEnum
        type Mode string

        const (
            ModeFast Mode = "fast"
            // @gqlEnumValue(name:"FAST")
            ModeQuick Mode = "quick"
        )
        """,
    )
    with pytest.raises(NamingCollisionError, match="FAST"):
        resolve()
