import pytest

from gqlschemagen.core.naming import (
    NamingCase,
    NamingConfig,
    enum_value_name,
    field_name,
    input_name,
    namespace_path,
    parse_name_list,
    strip_affixes,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
    transform_field_name,
    type_name,
)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("ID", "id"),
        ("Name", "name"),
        ("UserID", "userID"),
        ("URLPath", "urlPath"),
        ("IDs", "ids"),
        ("user_name", "userName"),
        ("createdAt", "createdAt"),
    ],
)
def test_to_camel_case(name: str, expected: str) -> None:
    assert to_camel_case(name) == expected


@pytest.mark.parametrize(
    "name, expected",
    [
        ("UserID", "user_id"),
        ("HTTPServer", "http_server"),
        ("createdAt", "created_at"),
        ("Name", "name"),
    ],
)
def test_to_snake_case(name: str, expected: str) -> None:
    assert to_snake_case(name) == expected


def test_to_pascal_case() -> None:
    assert to_pascal_case("user_name") == "UserName"
    assert to_pascal_case("name") == "Name"


def test_original_and_none_keep_declared_name() -> None:
    assert transform_field_name("UserID", NamingCase.ORIGINAL) == "UserID"
    assert transform_field_name("UserID", NamingCase.NONE) == "UserID"


def test_unknown_case() -> None:
    with pytest.raises(ValueError):
        NamingCase.from_value("kebab")


def test_strip_affixes_first_match_only() -> None:
    assert strip_affixes("UserDTO", [], ["DTO"]) == "User"
    assert strip_affixes("ApiV1UserModel", ["Api", "ApiV1"], ["Model", "UserModel"]) == "V1User"


def test_strip_never_consumes_whole_name() -> None:
    assert strip_affixes("DTO", [], ["DTO"]) == "DTO"


def test_type_name_with_prefix() -> None:
    naming = NamingConfig(strip_suffixes=("DTO",), type_prefix="Gql")
    assert type_name("UserDTO", naming) == "GqlUser"


def test_input_name_with_suffix() -> None:
    naming = NamingConfig(strip_suffixes=("DTO",), input_suffix="Payload")
    assert input_name("UserDTO", naming) == "UserInputPayload"


def test_input_name_order_of_steps() -> None:
    naming = NamingConfig(
        strip_prefixes=("Db",),
        strip_suffixes=("Row",),
        input_prefix="New",
        input_suffix="Data",
    )
    assert input_name("DbUserRow", naming) == "NewUserInputData"


def test_custom_name_bypasses_transforms() -> None:
    naming = NamingConfig(strip_suffixes=("DTO",), type_prefix="Gql", input_suffix="Payload")
    assert type_name("UserDTO", naming, "Member") == "Member"
    assert input_name("UserDTO", naming, "CreateMember") == "CreateMember"


def test_field_name_priority() -> None:
    naming = NamingConfig()
    assert field_name("Email", naming, "mail", "email_address") == "mail"
    assert field_name("Email", naming, "", "email_address") == "email_address"
    assert field_name("EmailAddress", naming) == "emailAddress"

    without_json = NamingConfig(use_json_tag=False, field_case=NamingCase.SNAKE_CASE)
    assert field_name("EmailAddress", without_json, "", "mail") == "email_address"


@pytest.mark.parametrize(
    "const, enum, expected",
    [
        ("StatusActive", "Status", "ACTIVE"),
        ("RolePowerUser", "Role", "POWER_USER"),
        ("Status_Done", "Status", "DONE"),
        ("Pending", "Status", "PENDING"),
        ("Status", "Status", "STATUS"),
    ],
)
def test_enum_value_name(const: str, enum: str, expected: str) -> None:
    assert enum_value_name(const, enum) == expected


def test_namespace_path() -> None:
    assert namespace_path("user/auth") == "user/auth"
    assert namespace_path("user.auth", ".") == "user/auth"
    assert namespace_path("") is None


def test_namespace_path_rejects_parent_segments() -> None:
    with pytest.raises(ValueError):
        namespace_path("../outside")


def test_parse_name_list() -> None:
    assert parse_name_list("A, B,,C") == ("A", "B", "C")
    assert parse_name_list(["DTO", " Model "]) == ("DTO", "Model")
    assert parse_name_list(None) == ()
