from pathlib import Path

from gqlschemagen.core.config import load_config
from gqlschemagen.graphql.emitter import SchemaEmitter, deprecation_directive
from gqlschemagen.graphql.writer import HEADER, PLACEHOLDER, SchemaWriter
from gqlschemagen.pipeline import SchemaPipeline, generate_schema

KEEP = f"# @gqlKeepBegin\n{PLACEHOLDER}\n# @gqlKeepEnd"


def test_single_file_layout(write_go, generate) -> None:
    write_go(
        "user.go",
        """
        package models

        // User is a member.
        // @gqlType
        type User struct {
            // Display name
            Name string `json:"name"`
            Age  int    `json:"age,omitempty"`
        }
        """,
    )
    expected = (
        f"{HEADER}\n\n"
        '"""User is a member."""\n'
        "type User {\n"
        '  """Display name"""\n'
        "  name: String!\n"
        "  age: Int!\n"
        "}\n\n"
        f"{KEEP}\n"
    )
    assert generate() == expected


def test_multiline_description_is_a_block(write_go, generate) -> None:
    write_go(
        "note.go",
        """
        package models

        // Note is a memo.
        // It has two lines.
        // @gqlType
        type Note struct {
            Text string
        }
        """,
    )
    content = generate()
    assert '"""\nNote is a memo.\nIt has two lines.\n"""\ntype Note {' in content


def test_indent_size(write_go, generate) -> None:
    write_go("tag.go", "package models\n\n// @gqlType\ntype Tag struct {\n\tLabel string\n}\n")
    assert "type Tag {\n    label: String!\n}" in generate(indent_size=4)


GQLGEN_SOURCE = """
package models

// @gqlType
// @gqlInput
// @gqlTypeExtraField(name:"likes", type:"Int!")
type Post struct {
    // @gqlField(deprecated:"use headline")
    Title  string
    Author string `gql:"author,forceResolver"`
}
"""


def test_gqlgen_directives(write_go, generate) -> None:
    write_go("post.go", GQLGEN_SOURCE)
    content = generate(use_gqlgen_directives=True)
    assert (
        'type Post @goModel(model: "models.Post") {\n'
        '  title: String! @deprecated(reason: "use headline")\n'
        "  author: String! @goField(forceResolver: true)\n"
        "  likes: Int! @goField(forceResolver: true)\n"
        "}"
    ) in content
    assert (
        'input PostInput @goModel(model: "models.Post") {\n'
        '  title: String! @deprecated(reason: "use headline")\n'
        "  author: String!\n"
        "}"
    ) in content
    assert content.index("type Post") < content.index("input PostInput")


def test_without_gqlgen_directives(write_go, generate) -> None:
    write_go("post.go", GQLGEN_SOURCE)
    content = generate()
    assert "@goModel" not in content
    assert "@goField" not in content
    assert "  likes: Int!\n" in content


def test_model_directive_per_type_and_model_path(write_go, generate) -> None:
    write_go(
        "post.go",
        """
        package models

        // @gqlType
        // @gqlUseModelDirective
        type Post struct {
            Title string
        }

        // @gqlType
        type Draft struct {
            Title string
        }
        """,
    )
    content = generate(model_path="example.com/app/models")
    assert 'type Post @goModel(model: "example.com/app/models.Post") {' in content
    assert "type Draft {" in content


def test_enum_rendering(write_go, generate) -> None:
    write_go(
        "ticket.go",
        """
        package models

        // @gqlEnum
        type Status string

        const (
            // Waiting
            StatusOpen Status = "open"
            // @gqlEnumValue(deprecated:"gone")
            StatusOld Status = "old"
        )

        // @gqlType
        type Ticket struct {
            Status Status
        }
        """,
    )
    content = generate()
    assert (
        "enum Status {\n"
        '  """Waiting"""\n'
        "  OPEN\n"
        '  OLD @deprecated(reason: "gone")\n'
        "}\n\n"
        "type Ticket {\n"
        "  status: Status!\n"
        "}"
    ) in content


UUID_SOURCE = """
package models

import "github.com/google/uuid"

// @gqlType
type User struct {
    ID uuid.UUID
}
"""

SCALARS = {"UUID": {"model": ["github.com/google/uuid.UUID"]}}


def test_scalars_lead_the_single_file(write_go, generate) -> None:
    write_go("user.go", UUID_SOURCE)
    content = generate(scalars=SCALARS)
    assert content.startswith(f"{HEADER}\n\nscalar UUID\n\ntype User {{\n  id: UUID!\n}}")


def test_scalars_file_for_multiple_strategy(write_go, make_config, tmp_path: Path) -> None:
    write_go("user.go", UUID_SOURCE)
    SchemaPipeline(make_config(strategy="multiple", scalars=SCALARS)).run()
    schema_dir = tmp_path / "schema"
    assert sorted(p.name for p in schema_dir.iterdir()) == ["scalars.graphqls", "user.graphqls"]
    assert "scalar UUID" in (schema_dir / "scalars.graphqls").read_text(encoding="utf-8")
    assert "scalar" not in (schema_dir / "user.graphqls").read_text(encoding="utf-8")


def test_known_scalars_are_not_declared(write_go, generate) -> None:
    write_go("user.go", UUID_SOURCE)
    content = generate(scalars=SCALARS, known_scalars=["UUID"])
    assert "scalar UUID" not in content
    assert "id: UUID!" in content


def test_multiple_strategy_groups_by_model(write_go, make_config, tmp_path: Path) -> None:
    write_go(
        "models.go",
        """
        package models

        // @gqlType
        // @gqlInput
        type User struct {
            Name string
        }

        // @gqlType
        type Post struct {
            Title string
        }
        """,
    )
    result = SchemaPipeline(make_config(strategy="multiple")).run()
    schema_dir = tmp_path / "schema"
    assert result.files == [str(schema_dir / "post.graphqls"), str(schema_dir / "user.graphqls")]
    user = (schema_dir / "user.graphqls").read_text(encoding="utf-8")
    assert user.index("type User {") < user.index("input UserInput {")
    assert "type Post" not in user


def test_schema_file_name_with_type_name(write_go, make_config, tmp_path: Path) -> None:
    write_go("user.go", "package models\n\n// @gqlType\ntype UserDTO struct {\n\tName string\n}\n")
    config = make_config(strategy="multiple", strip_suffix=["DTO"], schema_file_name="{type_name}.gql.graphqls")
    SchemaPipeline(config).run()
    assert (tmp_path / "schema" / "UserDTO.gql.graphqls").exists()


def test_package_strategy(write_go, make_config, tmp_path: Path) -> None:
    write_go("user.go", "package models\n\n// @gqlType\ntype User struct {\n\tName string\n}\n")
    write_go(
        "order.go",
        "package billing\n\n// @gqlType\ntype Order struct {\n\tTotal float64\n}\n",
        directory="models/billing",
    )
    result = SchemaPipeline(make_config(strategy="package")).run()
    schema_dir = tmp_path / "schema"
    assert result.files == [
        str(schema_dir / "billing.graphqls"),
        str(schema_dir / "models.graphqls"),
    ]


def test_namespaces_select_files(write_go, make_config, tmp_path: Path) -> None:
    write_go(
        "auth.go",
        """
        // @gqlNamespace(name:"user/auth")
        package models

        // @gqlType
        type Session struct {
            Token string
        }

        // @gqlType(namespace:"shared")
        type Flag struct {
            On bool
        }
        """,
    )
    SchemaPipeline(make_config(strategy="multiple")).run()
    schema_dir = tmp_path / "schema"
    assert "type Session" in (schema_dir / "user" / "auth.graphqls").read_text(encoding="utf-8")
    assert "type Flag" in (schema_dir / "shared.graphqls").read_text(encoding="utf-8")


def test_namespace_separator(write_go, make_config, tmp_path: Path) -> None:
    write_go(
        "auth.go",
        "package models\n\n// @gqlType(namespace:\"user.auth\")\ntype Session struct {\n\tToken string\n}\n",
    )
    SchemaPipeline(make_config(strategy="multiple", namespace_separator=".")).run()
    assert (tmp_path / "schema" / "user" / "auth.graphqls").exists()


def test_keep_region_survives_regeneration(write_go, generate, make_config, tmp_path: Path) -> None:
    source = "package models\n\n// @gqlType\ntype User struct {\n\tName string\n}\n"
    write_go("user.go", source)
    path = tmp_path / "schema" / make_config().output_file_name

    first = generate()
    custom = "# @gqlKeepBegin\nextend type User {\n  posts: [String!]!\n}\n# @gqlKeepEnd"
    path.write_text(first.replace(KEEP, custom), encoding="utf-8")

    write_go("user.go", source.replace("Name string", "Name string\n\tAge int"))
    second = generate()
    assert "  age: Int!\n" in second
    assert second.endswith(custom + "\n")
    assert PLACEHOLDER not in second


def test_unbalanced_keep_markers_stop_the_write(write_go, generate, make_config, tmp_path: Path) -> None:
    write_go("user.go", "package models\n\n// @gqlType\ntype User struct {\n\tName string\n}\n")
    path = tmp_path / "schema" / make_config().output_file_name

    first = generate()
    broken = first.replace("# @gqlKeepEnd\n", "") + "extend type User {\n  posts: [String!]!\n}\n"
    path.write_text(broken, encoding="utf-8")

    result = generate_schema(make_config())
    assert not result.success
    assert "unbalanced keep markers" in result.error_message
    assert path.name in result.error_message
    assert path.read_text(encoding="utf-8") == broken


def test_keep_region_at_start(write_go, generate) -> None:
    write_go("user.go", "package models\n\n// @gqlType\ntype User struct {\n\tName string\n}\n")
    content = generate(keep_section_placement="start")
    assert content.startswith(f"{HEADER}\n\n{KEEP}\n\ntype User {{")


def test_custom_keep_markers(write_go, generate) -> None:
    write_go("user.go", "package models\n\n// @gqlType\ntype User struct {\n\tName string\n}\n")
    content = generate(keep_begin_marker="# BEGIN", keep_end_marker="# END")
    assert f"# BEGIN\n{PLACEHOLDER}\n# END\n" in content


def test_unchanged_files_are_not_rewritten(write_go, make_config) -> None:
    write_go("user.go", "package models\n\n// @gqlType\ntype User struct {\n\tName string\n}\n")
    config = make_config()
    first = SchemaPipeline(config).run()
    second = SchemaPipeline(config).run()
    assert len(first.written) == 1
    assert second.written == []
    assert second.unchanged == first.written


def test_skip_existing(write_go, make_config, tmp_path: Path) -> None:
    write_go("user.go", "package models\n\n// @gqlType\ntype User struct {\n\tName string\n}\n")
    target = tmp_path / "schema" / "gqlschemagen.graphqls"
    target.parent.mkdir(parents=True)
    target.write_text("hand written\n", encoding="utf-8")

    result = SchemaPipeline(make_config(skip_existing=True)).run()
    assert result.skipped == [str(target)]
    assert target.read_text(encoding="utf-8") == "hand written\n"


def test_output_path_with_extension(write_go, make_config, tmp_path: Path) -> None:
    write_go("user.go", "package models\n\n// @gqlType\ntype User struct {\n\tName string\n}\n")
    output = tmp_path / "out" / "schema.graphqls"
    SchemaPipeline(make_config(output=str(output))).run()
    assert output.exists()


def test_pipeline_collects_warnings(write_go, make_config) -> None:
    write_go(
        "user.go",
        """
        package models

        // @gqlType(color:"red")
        type User struct {
            Name string
        }
        """,
    )
    result = SchemaPipeline(make_config()).run()
    assert any("color" in warning for warning in result.warnings)
    assert result.metadata["artifacts"] == 1
    assert result.metadata["types_scanned"] == 1


def test_generate_schema_reports_failures(tmp_path: Path) -> None:
    config = load_config(custom_config={"output": str(tmp_path / "schema")})
    result = generate_schema(config)
    assert not result.success
    assert "No packages configured" in result.error_message


def test_generate_schema_reports_resolution_errors(write_go, make_config) -> None:
    write_go(
        "user.go",
        "package models\n\n// @gqlType\ntype User struct {\n\tOwner Missing\n}\n",
    )
    result = generate_schema(make_config())
    assert not result.success
    assert "Missing" in result.error_message


def test_emitter_groups_in_namespace_then_declaration_order(write_go, resolve, make_config) -> None:
    write_go(
        "mixed.go",
        """
        package models

        // @gqlType(namespace:"b")
        type First struct {
            A string
        }

        // @gqlType
        type Second struct {
            B string
        }

        // @gqlType(namespace:"a")
        type Third struct {
            C string
        }
        """,
    )
    emitter = SchemaEmitter(make_config())
    [output] = emitter.group(resolve())
    assert [a.name for a in output.artifacts] == ["Second", "Third", "First"]


def test_deprecation_directive_escapes_reason() -> None:
    assert deprecation_directive(False, "x") == ""
    assert deprecation_directive(True, "") == "@deprecated"
    assert deprecation_directive(True, 'say "no"') == '@deprecated(reason: "say \\"no\\"")'


def test_writer_merges_multiple_keep_sections(make_config) -> None:
    writer = SchemaWriter(make_config())
    existing = (
        "# @gqlKeepBegin\nscalar A\n# @gqlKeepEnd\n"
        "type X {}\n"
        "# @gqlKeepBegin\nscalar B\n# @gqlKeepEnd\n"
    )
    content = writer.compose("type Y {\n  y: Int!\n}", existing)
    assert content.endswith("# @gqlKeepBegin\nscalar A\n\n\nscalar B\n# @gqlKeepEnd\n")
