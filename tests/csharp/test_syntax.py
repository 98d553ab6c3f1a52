"""Tests for node edits on the persistent source model."""

from modelsync.csharp.keywords import escape_identifier
from modelsync.csharp.parser import parse
from modelsync.csharp.syntax import attribute_name, compact, split_attributes

SOURCE = """using System;

namespace App.Models;

public class Tag
{
    public int Id { get; set; }
}
"""


class TestAttributes:
    """Attribute list helpers."""

    def test_split_respects_nesting_and_strings(self) -> None:
        parts = split_attributes('[Key, Column("a, b"), Range(typeof(int), "1", "9")]')
        assert parts == ["Key", 'Column("a, b")', 'Range(typeof(int), "1", "9")']

    def test_split_drops_target(self) -> None:
        assert split_attributes("[field: NonSerialized]") == ["NonSerialized"]

    def test_attribute_name(self) -> None:
        assert attribute_name("System.ComponentModel.DataAnnotations.Key") == "Key"
        assert attribute_name("global::Foo.ReferenceKey(typeof(User))") == "ReferenceKey"
        assert attribute_name("NotMapped") == "NotMapped"

    def test_compact(self) -> None:
        assert compact("using  System ;") == "usingSystem;"


class TestPropertyEdits:
    """Property node edits."""

    def test_with_type_replaces_only_the_type(self) -> None:
        prop = parse(SOURCE).find_class("Tag").properties[0]

        edited = prop.with_type("long")

        assert edited.text == "public long Id { get; set; }"
        assert edited.type_text == "long"
        assert edited.leading == prop.leading

    def test_with_attribute_lists_adds_and_removes(self) -> None:
        # Given
        prop = parse(SOURCE).find_class("Tag").properties[0]

        # When
        added = prop.with_attribute_lists(["[Key]"], indent="    ", newline="\n")
        removed = added.with_attribute_lists([], indent="    ", newline="\n")

        # Then
        assert added.text == "[Key]\n    public int Id { get; set; }"
        assert added.has_attribute("Key")
        assert added.with_type("long").text == "[Key]\n    public long Id { get; set; }"
        assert removed.text == "public int Id { get; set; }"


class TestClassEdits:
    """Class header edits."""

    def test_with_bases_inserts_clause(self) -> None:
        unit = parse(SOURCE)
        cls = unit.find_class("Tag")

        edited = cls.with_bases(["IEntity<int>"])

        assert edited.header.startswith("public class Tag : IEntity<int>\n{")
        assert edited.bases == ("IEntity<int>",)

    def test_with_bases_replaces_clause(self) -> None:
        unit = parse("public class TagDao : Repository<Tag>, IDisposable\n{\n}\n")
        cls = unit.find_class("TagDao")

        edited = cls.with_bases(["DaoBase<Tag>", "IDisposable"])

        assert edited.render() == "public class TagDao : DaoBase<Tag>, IDisposable\n{\n}"
        assert edited.with_bases(["DaoBase<Tag>"]).render() == (
            "public class TagDao : DaoBase<Tag>\n{\n}"
        )

    def test_with_class_replaces_in_unit(self) -> None:
        unit = parse(SOURCE)
        cls = unit.find_class("Tag")

        updated = unit.with_class(cls, cls.with_bases(["IEntity<int>"]))

        assert "public class Tag : IEntity<int>" in updated.render()
        assert "public class Tag : IEntity<int>" not in unit.render()


class TestUsings:
    """Using directive edits."""

    def test_adds_after_last_using(self) -> None:
        unit = parse(SOURCE).with_using("System.ComponentModel.DataAnnotations")
        assert unit.render().startswith(
            "using System;\nusing System.ComponentModel.DataAnnotations;\n\nnamespace"
        )

    def test_equivalent_using_is_not_duplicated(self) -> None:
        unit = parse("using  System ;\n\npublic class A\n{\n}\n")
        assert unit.with_using("System") is unit

    def test_first_using_in_bare_file(self) -> None:
        unit = parse("namespace App;\n\npublic class A\n{\n}\n").with_using("System")
        assert unit.render().startswith("using System;\n\nnamespace App;")


def test_escape_identifier() -> None:
    assert escape_identifier("class") == "@class"
    assert escape_identifier("name") == "name"
