"""Tests for PascalCase pluralization."""

import pytest

from modelsync.naming.inflector import pluralize, singularize, split_pascal


class TestSplitPascal:
    """split_pascal tests."""

    @pytest.mark.parametrize(
        ("word", "expected"),
        [
            ("OrderLine", ("Order", "Line")),
            ("Tag", ("", "Tag")),
            ("users", ("", "users")),
        ],
    )
    def test_split(self, word: str, expected: tuple[str, str]) -> None:
        assert split_pascal(word) == expected


class TestPluralize:
    """Plural forms."""

    @pytest.mark.parametrize(
        ("word", "expected"),
        [
            ("Tag", "Tags"),
            ("User", "Users"),
            ("Category", "Categories"),
            ("Box", "Boxes"),
            ("Person", "People"),
            ("OrderLine", "OrderLines"),
            ("ProductCategory", "ProductCategories"),
        ],
    )
    def test_regular_and_irregular(self, word: str, expected: str) -> None:
        assert pluralize(word) == expected

    @pytest.mark.parametrize("word", ["Data", "Equipment", "News"])
    def test_uncountable_words_unchanged(self, word: str) -> None:
        assert pluralize(word) == word


class TestSingularize:
    """Singular forms."""

    @pytest.mark.parametrize(
        ("word", "expected"),
        [
            ("Users", "User"),
            ("Categories", "Category"),
            ("People", "Person"),
            ("OrderLines", "OrderLine"),
        ],
    )
    def test_plural_words(self, word: str, expected: str) -> None:
        assert singularize(word) == expected

    def test_word_without_plural_ending_is_not_recognized(self) -> None:
        """A word no rule treats as plural yields None."""
        assert singularize("Tag") is None
