"""Unit tests for markup element balancing."""

from __future__ import annotations

from artifact_harvester.repair.elements import (
    TagKind,
    balance_elements,
    find_unclosed,
    scan_tags,
)
from artifact_harvester.repair.lexer import lex


def test_unclosed_element_is_closed_before_boundary_line() -> None:
    text = "const A = () => (\n  <div>\n    <span>hi</span>\n);\n"

    assert balance_elements(text) == (
        "const A = () => (\n  <div>\n    <span>hi</span>\n  </div>\n);\n"
    )


def test_void_elements_are_treated_as_self_closing() -> None:
    text = '<div>\n  <input type="x">\n</div>\n'

    tags = scan_tags(lex(text))

    assert [(tag.name, tag.kind) for tag in tags] == [
        ("div", TagKind.OPEN),
        ("input", TagKind.SELF_CLOSING),
        ("div", TagKind.CLOSE),
    ]
    assert balance_elements(text) == text


def test_generic_arrow_is_not_a_tag() -> None:
    text = "const id = <T,>(x: T) => x;\n"

    assert scan_tags(lex(text)) == []
    assert balance_elements(text) == text


def test_implicitly_closed_child_is_reported() -> None:
    tags = scan_tags(lex("<ul>\n  <li>one\n</ul>\n"))

    unclosed, implicit = find_unclosed(tags)

    assert unclosed == []
    assert [(opener.name, closer.name) for opener, closer in implicit] == [("li", "ul")]


def test_implicit_child_closer_goes_on_its_own_line() -> None:
    assert balance_elements("<ul>\n  <li>one\n</ul>\n") == "<ul>\n  <li>one\n  </li>\n</ul>\n"


def test_tags_inside_strings_are_ignored() -> None:
    text = 'const html = "<div>";\n'

    assert balance_elements(text) == text


def test_element_opening_the_text_is_closed() -> None:
    assert balance_elements("<div>\n  <span>hi</span>\n);\n") == (
        "<div>\n  <span>hi</span>\n</div>\n);\n"
    )


def test_closer_is_not_placed_inside_an_unterminated_template() -> None:
    text = "const x = 1;\n<div>\n<span>`code sample\n"

    assert balance_elements(text) == text
    assert balance_elements(balance_elements(text)) == text
