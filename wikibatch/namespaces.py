#!/usr/bin/env python3
"""
Namespace resolution and title normalization.

Maps a page title's prefix to a namespace id and normalizes titles the way
MediaWiki does, so "file:foo_bar.jpg" and "File:Foo bar.jpg" are the same
Title. Also coerces titles into a namespace ("Test.jpg" -> "File:Test.jpg"),
which uploads rely on.

Usage:
    from wikibatch.namespaces import NamespaceResolver, FILE

    ns = NamespaceResolver()
    ns.resolve("Category:Weapons").namespace        # 14
    ns.resolve("Test.jpg", ensure=FILE).text        # "File:Test.jpg"
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Union

MEDIA = -2
SPECIAL = -1
MAIN = 0
TALK = 1
USER = 2
USER_TALK = 3
PROJECT = 4
PROJECT_TALK = 5
FILE = 6
FILE_TALK = 7
MEDIAWIKI = 8
MEDIAWIKI_TALK = 9
TEMPLATE = 10
TEMPLATE_TALK = 11
HELP = 12
HELP_TALK = 13
CATEGORY = 14
CATEGORY_TALK = 15

DEFAULT_NAMES = {
    MEDIA: "Media",
    SPECIAL: "Special",
    MAIN: "",
    TALK: "Talk",
    USER: "User",
    USER_TALK: "User talk",
    PROJECT: "Project",
    PROJECT_TALK: "Project talk",
    FILE: "File",
    FILE_TALK: "File talk",
    MEDIAWIKI: "MediaWiki",
    MEDIAWIKI_TALK: "MediaWiki talk",
    TEMPLATE: "Template",
    TEMPLATE_TALK: "Template talk",
    HELP: "Help",
    HELP_TALK: "Help talk",
    CATEGORY: "Category",
    CATEGORY_TALK: "Category talk",
}

DEFAULT_ALIASES = {
    "Image": FILE,
    "Image talk": FILE_TALK,
}

_WHITESPACE = re.compile(r"[\s_]+")


def _clean(text: str) -> str:
    """Underscores to spaces, collapse runs, strip ends."""
    return _WHITESPACE.sub(" ", text).strip()


def _ucfirst(text: str) -> str:
    return text[:1].upper() + text[1:]


@dataclass(frozen=True)
class Title:
    """A normalized page title and the namespace it lives in."""

    text: str
    namespace: int
    name: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.text


class NamespaceResolver:
    """Resolve title prefixes to namespace ids. Pure; no network access."""

    def __init__(
        self,
        names: Optional[dict[int, str]] = None,
        aliases: Optional[dict[str, int]] = None,
    ):
        self.names = dict(DEFAULT_NAMES if names is None else names)
        self.names.setdefault(MAIN, "")

        self._lookup: dict[str, int] = {}
        for ns_id, ns_name in self.names.items():
            if ns_name:
                self._lookup[ns_name.casefold()] = ns_id
        for alias, ns_id in (DEFAULT_ALIASES if aliases is None else aliases).items():
            self._lookup.setdefault(_clean(alias).casefold(), ns_id)

    @classmethod
    def from_siteinfo(cls, data: dict) -> "NamespaceResolver":
        """
        Build a resolver from a siteinfo response.

        Args:
            data: Parsed response of
                action=query&meta=siteinfo&siprop=namespaces|namespacealiases

        Returns:
            Resolver knowing the wiki's local names, canonical names and aliases
        """
        query = data.get("query", {})
        names: dict[int, str] = {}
        aliases: dict[str, int] = {}

        for key, info in query.get("namespaces", {}).items():
            try:
                ns_id = int(info.get("id", key))
            except (TypeError, ValueError):
                continue
            names[ns_id] = info.get("name", info.get("*", ""))
            canonical = info.get("canonical")
            if canonical and canonical != names[ns_id]:
                aliases[canonical] = ns_id

        for alias in query.get("namespacealiases", []):
            text = alias.get("alias", alias.get("*"))
            if text:
                aliases[text] = int(alias["id"])

        return cls(names=names or None, aliases=aliases)

    def _namespace_id(self, ns: Union[int, str]) -> int:
        if isinstance(ns, int):
            if ns != MAIN and ns not in self.names:
                raise ValueError(f"Unknown namespace id: {ns}")
            return ns
        return self._lookup.get(_clean(ns).casefold(), MAIN)

    def _split(self, title: str) -> tuple[int, str]:
        text = _clean(title).lstrip(":").lstrip()
        prefix, sep, rest = text.partition(":")
        if sep:
            ns_id = self._lookup.get(_clean(prefix).casefold())
            if ns_id is not None:
                return ns_id, _ucfirst(_clean(rest))
        return MAIN, _ucfirst(text)

    def _build(self, ns_id: int, name: str) -> Title:
        prefix = self.names.get(ns_id, "")
        text = f"{prefix}:{name}" if prefix else name
        return Title(text=text, namespace=ns_id, name=name)

    def resolve(self, title: Union[str, Title], ensure: Union[int, str, None] = None) -> Title:
        """
        Normalize a title and work out its namespace.

        Args:
            title: Raw title string (or an already resolved Title)
            ensure: Namespace id or name to coerce the title into. A bare name
                gains the prefix; a title from another namespace keeps its page
                name and swaps prefixes.

        Returns:
            Title; unrecognized prefixes fall into the main namespace

        Raises:
            ValueError: if `ensure` is a namespace id the wiki has no name for
        """
        ns_id, name = self._split(str(title))
        if ensure is not None:
            ns_id = self._namespace_id(ensure)
        return self._build(ns_id, name)

    def which_ns(self, title: str) -> int:
        return self._split(title)[0]

    def convert_if_not_in_ns(self, title: str, ns: Union[int, str]) -> str:
        return self.resolve(title, ensure=ns).text

    def strip_namespace(self, title: str) -> str:
        """Page name without its namespace prefix."""
        return self._split(title)[1]

    def talk_page_of(self, title: str) -> str:
        """
        Title of the talk page belonging to `title`.

        Talk pages are returned unchanged; Special and Media pages have no
        talk page and raise ValueError.
        """
        ns_id, name = self._split(title)
        if ns_id < 0:
            raise ValueError(f"{title!r} has no talk page")
        if ns_id % 2 == 0:
            ns_id += 1
        return self._build(ns_id, name).text
