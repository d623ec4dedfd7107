"""Read-only query layer over a fetched HTML page.

Every analyzer goes through :class:`Document` instead of touching the parse
tree directly. Lookups never raise on malformed or partial markup: a missing
element is an empty list, a missing attribute is ``None``.
"""
from __future__ import annotations

import re
from functools import cached_property

from bs4 import BeautifulSoup
from bs4.element import Tag

_WS_RE = re.compile(r"\s+")


def collapse_ws(text: str | None) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def attr_of(tag: Tag | None, name: str) -> str | None:
    if tag is None:
        return None
    value = tag.get(name)
    if value is None:
        return None
    # bs4 hands back multi-valued attributes (rel, class) as lists.
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def text_of(tag: Tag | None) -> str:
    if tag is None:
        return ""
    return collapse_ws(tag.get_text())


class Document:
    def __init__(self, html: str | None):
        self.html = html or ""
        self.soup = BeautifulSoup(self.html, "lxml")

    @cached_property
    def html_lower(self) -> str:
        return self.html.lower()

    def select(self, selector: str) -> list[Tag]:
        return self.soup.select(selector)

    def first(self, selector: str) -> Tag | None:
        return self.soup.select_one(selector)

    def count(self, selector: str) -> int:
        return len(self.select(selector))

    def exists(self, selector: str) -> bool:
        return self.first(selector) is not None

    def attr(self, selector: str, name: str) -> str | None:
        """Attribute of the first element matching ``selector``."""
        return attr_of(self.first(selector), name)

    def attrs(self, selector: str, name: str) -> list[str]:
        """Attribute of every matching element that carries it."""
        values = (attr_of(tag, name) for tag in self.select(selector))
        return [v for v in values if v is not None]

    def text(self, selector: str) -> str:
        """Collapsed text of all matching elements, concatenated."""
        return collapse_ws("".join(tag.get_text() for tag in self.select(selector)))

    @property
    def root(self) -> Tag | None:
        return self.soup.find("html")

    @property
    def body(self) -> Tag | None:
        return self.soup.find("body")

    @property
    def title(self) -> str:
        return self.text("title")

    @property
    def lang(self) -> str | None:
        return attr_of(self.root, "lang")

    def meta_content(self, name: str | None = None, *, prop: str | None = None) -> str | None:
        if prop is not None:
            return self.attr(f'meta[property="{prop}"]', "content")
        return self.attr(f'meta[name="{name}"]', "content")

    @property
    def charset(self) -> str | None:
        declared = self.attr("meta[charset]", "charset")
        if declared:
            return declared
        for tag in self.select("meta[http-equiv]"):
            if (attr_of(tag, "http-equiv") or "").lower() == "content-type":
                return attr_of(tag, "content")
        return None

    @property
    def favicon(self) -> str | None:
        for tag in self.select("link[rel]"):
            if "icon" in (attr_of(tag, "rel") or "").lower():
                return attr_of(tag, "href")
        return None

    def body_words(self) -> int:
        return len(text_of(self.body).split())

    @staticmethod
    def parent_name(tag: Tag) -> str | None:
        parent = tag.parent
        if parent is None or not isinstance(parent, Tag):
            return None
        return parent.name

    @staticmethod
    def child_tags(tag: Tag) -> list[Tag]:
        return [c for c in tag.children if isinstance(c, Tag)]

    def heading_levels(self) -> list[int]:
        return [int(tag.name[1]) for tag in self.select("h1, h2, h3, h4, h5, h6")]
