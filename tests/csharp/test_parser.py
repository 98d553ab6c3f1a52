"""Tests for the tree-sitter C# front end."""

import pytest

from modelsync.csharp.parser import detect_newline, parse, parse_members
from modelsync.csharp.syntax import ConstructorNode, MethodNode, PropertyNode

USER_SOURCE = """using System;
using System.ComponentModel.DataAnnotations;

namespace App.Models;

/// <summary>A user.</summary>
public class User
{
    [Key]
    public int Id { get; set; }

    // display name
    public string? Name { get; set; }
    public int? ManagerId { get; private set; }
    public string Display => Name ?? "";

    public User()
    {
    }

    public User(string name, int? managerId = null)
    {
        Name = name;
        ManagerId = managerId;
    }

    public override string ToString() => Display;
}
"""


@pytest.fixture
def user_unit():
    return parse(USER_SOURCE)


class TestRoundTrip:
    """Unedited documents render back unchanged."""

    def test_lf_document(self, user_unit) -> None:
        assert user_unit.render() == USER_SOURCE
        assert user_unit.error_count == 0

    def test_crlf_document(self) -> None:
        # Given
        text = USER_SOURCE.replace("\n", "\r\n")

        # When
        unit = parse(text)

        # Then
        assert unit.render() == text
        assert unit.newline == "\r\n"

    def test_block_namespace_and_tabs(self) -> None:
        text = "namespace App.Data\n{\n\tpublic class UserDao : DaoBase<User>\n\t{\n\t}\n}\n"
        unit = parse(text)

        assert unit.render() == text
        cls = unit.find_class("UserDao")
        assert cls is not None
        assert cls.namespace == "App.Data"
        assert cls.bases == ("DaoBase<User>",)

    def test_non_ascii_text_is_preserved(self) -> None:
        text = (
            "namespace App.Models;\n\npublic class Person\n{\n"
            '    [Display(Name = "Prénom")]\n    public string FirstName { get; set; }\n}\n'
        )
        unit = parse(text)

        assert unit.render() == text
        cls = unit.find_class("Person")
        assert cls is not None
        prop = cls.properties[0]
        assert prop.type_text == "string"
        assert prop.with_type("string?").text.endswith("public string? FirstName { get; set; }")

    def test_syntax_errors_are_counted_not_raised(self) -> None:
        text = "public class Broken\n{\n    public int Id { get; set;\n}\n"
        unit = parse(text)

        assert unit.error_count > 0
        assert unit.render() == text


class TestStructure:
    """Interpreted nodes."""

    def test_usings_and_namespace(self, user_unit) -> None:
        assert [u.text for u in user_unit.usings] == [
            "using System;",
            "using System.ComponentModel.DataAnnotations;",
        ]
        cls = user_unit.find_class("User")
        assert cls is not None
        assert cls.namespace == "App.Models"
        assert cls.indent == "    "

    def test_properties(self, user_unit) -> None:
        cls = user_unit.find_class("User")
        props = {p.name: p for p in cls.properties}

        assert list(props) == ["Id", "Name", "ManagerId", "Display"]
        assert props["Id"].has_attribute("Key")
        assert props["Name"].type_text == "string?"
        assert props["Name"].nullable is True
        assert props["Name"].base_type == "string"
        assert props["ManagerId"].can_set is False
        assert props["Display"].expression_bodied is True
        assert props["Id"].can_set is True

    def test_leading_trivia_keeps_comments(self, user_unit) -> None:
        cls = user_unit.find_class("User")
        name = next(p for p in cls.properties if p.name == "Name")
        assert "// display name" in name.leading

    def test_constructors(self, user_unit) -> None:
        cls = user_unit.find_class("User")
        ctors = cls.constructors

        assert len(ctors) == 2
        assert ctors[0].is_parameterless
        assert [(p.type_text, p.name, p.default) for p in ctors[1].params] == [
            ("string", "name", None),
            ("int?", "managerId", "null"),
        ]
        assert ctors[1].statements == ("Name = name;", "ManagerId = managerId;")
        assert ctors[1].modifiers == ("public",)

    def test_methods_are_kept_opaque(self, user_unit) -> None:
        cls = user_unit.find_class("User")
        assert isinstance(cls.members[-1], MethodNode)
        assert cls.members[-1].name == "ToString"


class TestParseMembers:
    """Generated member text -> nodes."""

    def test_property_and_constructor(self) -> None:
        # Given
        text = "public int Id { get; set; }\n    public Tag()\n    {\n    }"

        # When
        members = parse_members(text, indent="    ", newline="\n")

        # Then
        assert isinstance(members[0], PropertyNode)
        assert isinstance(members[1], ConstructorNode)
        assert members[0].leading == "\n    "
        assert members[1].render() == "\n    public Tag()\n    {\n    }"


def test_detect_newline() -> None:
    assert detect_newline("a\r\nb") == "\r\n"
    assert detect_newline("a\nb") == "\n"
