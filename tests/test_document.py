from __future__ import annotations

import pytest

from websitescore_agent.document import Document, collapse_ws


@pytest.mark.parametrize("html", ["", "<html", "<<<>>>", "<div><p>unclosed", "</body></html><head>"])
def test_malformed_input_never_raises(html):
    doc = Document(html)
    assert doc.title == ""
    assert doc.count("img") == 0
    assert doc.attr("meta[name='description']", "content") is None
    assert doc.lang is None
    assert doc.body_words() >= 0


def test_none_is_treated_as_empty():
    doc = Document(None)
    assert doc.html == ""
    assert doc.select("a") == []


def test_text_is_trimmed_and_collapsed():
    doc = Document("<title>\n  Hello   \t world \n</title>")
    assert doc.title == "Hello world"
    assert collapse_ws("  a \n\n b  ") == "a b"


def test_attribute_reads_first_match_and_all():
    doc = Document('<a href="/one">1</a><a>2</a><a href="/three">3</a>')
    assert doc.attr("a", "href") == "/one"
    assert doc.attrs("a", "href") == ["/one", "/three"]


def test_multi_valued_rel_is_joined():
    doc = Document('<link rel="shortcut icon" href="/f.ico">')
    assert doc.attr("link", "rel") == "shortcut icon"
    assert doc.favicon == "/f.ico"


def test_charset_from_http_equiv():
    doc = Document('<meta http-equiv="Content-Type" content="text/html; charset=utf-8">')
    assert doc.charset == "text/html; charset=utf-8"


def test_parent_and_children():
    doc = Document("<ul><li>a</li><script></script><li>b</li></ul><div><li>orphan</li></div>")
    items = doc.select("li")
    assert [Document.parent_name(li) for li in items] == ["ul", "ul", "div"]
    ul = doc.first("ul")
    assert [c.name for c in Document.child_tags(ul)] == ["li", "script", "li"]


def test_heading_levels_in_document_order():
    doc = Document("<h2>a</h2><h1>b</h1><h4>c</h4>")
    assert doc.heading_levels() == [2, 1, 4]


def test_body_word_count():
    doc = Document("<body><p>one two</p>\n<p>three</p></body>")
    assert doc.body_words() == 3
