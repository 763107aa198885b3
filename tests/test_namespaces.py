"""Tests for namespace resolution and title normalization."""

import pytest

from wikibatch.namespaces import (
    CATEGORY,
    FILE,
    MAIN,
    NamespaceResolver,
    PROJECT,
    Title,
    USER_TALK,
)


@pytest.fixture
def ns():
    return NamespaceResolver()


class TestResolve:
    """Tests for NamespaceResolver.resolve."""

    def test_main_namespace_default(self, ns):
        """Titles without a known prefix live in the main namespace."""
        title = ns.resolve("hello")
        assert title == Title("Hello", MAIN)
        assert title.namespace == MAIN

    def test_recognized_prefix(self, ns):
        """A known prefix decides the namespace."""
        assert ns.resolve("File:Test.jpg").namespace == FILE
        assert ns.resolve("Category:Weapons").namespace == CATEGORY

    def test_unknown_prefix_stays_main(self, ns):
        """A colon alone does not make a namespace."""
        title = ns.resolve("Star Wars: A New Hope")
        assert title.namespace == MAIN
        assert title.text == "Star Wars: A New Hope"

    def test_normalizes_case_and_underscores(self, ns):
        """Prefix case, underscores and the first letter are normalized."""
        title = ns.resolve("user_talk:example__bot")
        assert title.text == "User talk:Example bot"
        assert title.namespace == USER_TALK

    def test_alias_maps_to_canonical(self, ns):
        """Image: is an alias of File:."""
        assert ns.resolve("Image:Foo.png").text == "File:Foo.png"

    def test_equal_titles_compare_equal(self, ns):
        """Two spellings of one page are one Title."""
        assert ns.resolve("file:foo_bar.jpg") == ns.resolve("File:Foo bar.jpg")

    def test_leading_colon_is_dropped(self, ns):
        """Link-style leading colons are not part of the title."""
        assert ns.resolve(":Category:Foo").text == "Category:Foo"

    def test_ensure_adds_prefix(self, ns):
        """A bare filename is qualified into the File namespace."""
        assert ns.resolve("Test.jpg", ensure=FILE).text == "File:Test.jpg"

    def test_ensure_keeps_matching_prefix(self, ns):
        """A title already in the namespace is left as it is."""
        assert ns.resolve("File:Test.jpg", ensure=FILE).text == "File:Test.jpg"

    def test_ensure_by_name(self, ns):
        """Target namespace can be given by name."""
        assert ns.resolve("Test.jpg", ensure="File").namespace == FILE

    def test_ensure_swaps_foreign_prefix(self, ns):
        """A title from another namespace keeps its page name only."""
        assert ns.resolve("Category:Test.jpg", ensure=FILE).text == "File:Test.jpg"

    def test_ensure_main_strips_prefix(self, ns):
        assert ns.resolve("Category:Foo", ensure=MAIN).text == "Foo"

    def test_ensure_unknown_id_rejected(self, ns):
        """An id with no name would give a prefix-less title outside main."""
        with pytest.raises(ValueError):
            ns.resolve("Foo", ensure=100)

    def test_ensure_id_known_from_siteinfo(self):
        ns = NamespaceResolver(names={0: "", 100: "Portal"})
        assert ns.resolve("Foo", ensure=100).text == "Portal:Foo"


class TestHelpers:
    """Tests for the smaller title helpers."""

    def test_which_ns(self, ns):
        assert ns.which_ns("File:Test.jpg") == FILE
        assert ns.which_ns("hello") == MAIN

    def test_convert_if_not_in_ns(self, ns):
        assert ns.convert_if_not_in_ns("Test.jpg", FILE) == "File:Test.jpg"

    def test_strip_namespace(self, ns):
        assert ns.strip_namespace("Category:Weapons") == "Weapons"
        assert ns.strip_namespace("Weapons") == "Weapons"

    def test_talk_page_of(self, ns):
        assert ns.talk_page_of("Foo") == "Talk:Foo"
        assert ns.talk_page_of("File:Foo.jpg") == "File talk:Foo.jpg"
        assert ns.talk_page_of("Talk:Foo") == "Talk:Foo"

    def test_special_pages_have_no_talk_page(self, ns):
        with pytest.raises(ValueError):
            ns.talk_page_of("Special:RecentChanges")


class TestFromSiteinfo:
    """Tests for building a resolver from a siteinfo response."""

    def test_local_names_and_aliases(self):
        data = {
            "query": {
                "namespaces": {
                    "0": {"id": 0, "name": ""},
                    "4": {"id": 4, "name": "Wikipedia", "canonical": "Project"},
                    "6": {"id": 6, "name": "File", "canonical": "File"},
                },
                "namespacealiases": [
                    {"id": 4, "alias": "WP"},
                    {"id": 6, "alias": "Image"},
                ],
            }
        }
        ns = NamespaceResolver.from_siteinfo(data)

        assert ns.resolve("Wikipedia:Sandbox").namespace == PROJECT
        assert ns.resolve("WP:Sandbox").text == "Wikipedia:Sandbox"
        assert ns.resolve("Project:Sandbox").text == "Wikipedia:Sandbox"
        assert ns.resolve("Image:X.png").text == "File:X.png"
