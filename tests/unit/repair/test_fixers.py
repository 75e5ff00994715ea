"""
artifact-harvester — unit tests for pattern fixers

File: tests/unit/repair/test_fixers.py
Last updated: 2026-10-18

Purpose
- Validate each fixer against the generator mistake it targets.

What this test file should cover
- Arrow-function, ternary, attribute, string, typed-syntax and return fixes.
- Each fixer leaving correct code untouched.
- Matches inside strings and comments never rewritten.
"""

from __future__ import annotations

import pytest

from artifact_harvester.repair.fixers import (
    fix_arrow_functions,
    fix_attributes,
    fix_return_statements,
    fix_strings,
    fix_ternaries,
    fix_typed_syntax,
)


@pytest.mark.parametrize(
    ("broken", "fixed"),
    [
        ("const f = () = > 1;", "const f = () => 1;"),
        ("const f = ( ) => 1;", "const f = () => 1;"),
        ("const f = () {\n  run();\n};", "const f = () => {\n  run();\n};"),
        ("const g = async (a, b) {", "const g = async (a, b) => {"),
    ],
)
def test_arrow_function_mistakes(broken: str, fixed: str) -> None:
    assert fix_arrow_functions(broken) == fixed


def test_arrow_fixer_skips_comments() -> None:
    code = "// a = > b\nconst ok = () => 1;"

    assert fix_arrow_functions(code) == code


def test_ternary_without_alternate_gets_null() -> None:
    assert fix_ternaries("{isOpen ? <Modal /> }") == "{isOpen ? <Modal /> : null }"


def test_complete_ternary_is_untouched() -> None:
    code = "{isOpen ? <Modal /> : null}"

    assert fix_ternaries(code) == code


@pytest.mark.parametrize(
    ("broken", "fixed"),
    [
        ('<div className"box">', '<div className="box">'),
        ('<button onClick"handleClick">', "<button onClick={handleClick}>"),
        ('<a href=="/home">', '<a href="/home">'),
    ],
)
def test_attribute_mistakes(broken: str, fixed: str) -> None:
    assert fix_attributes(broken) == fixed


def test_unterminated_string_is_closed_before_semicolon() -> None:
    assert fix_strings("const s = 'hello;\nconst t = 1;") == "const s = 'hello';\nconst t = 1;"


def test_unterminated_string_inside_call_closes_before_paren() -> None:
    assert fix_strings('log("done);\n') == 'log("done");\n'


def test_terminated_strings_are_untouched() -> None:
    code = "const s = 'ok';\nconst t = `a ${b}`;\n"

    assert fix_strings(code) is code


@pytest.mark.parametrize(
    ("broken", "fixed"),
    [
        ("let x:: number = 1;", "let x: number = 1;"),
        ("type A = 'a' | 'b' |;", "type A = 'a' | 'b';"),
        ("class A extends B, {", "class A extends B {"),
        ("type C =\n  | 'x'\n  | 'y' |\nexport const z = 1;", "type C =\n  | 'x'\n  | 'y'\nexport const z = 1;"),
    ],
)
def test_typed_syntax_mistakes(broken: str, fixed: str) -> None:
    assert fix_typed_syntax(broken) == fixed


def test_bare_return_before_markup_is_parenthesized() -> None:
    code = "function A() {\n  return\n    <div>hi</div>;\n}\n"

    assert fix_return_statements(code) == (
        "function A() {\n  return (\n    <div>hi</div>\n  );\n}\n"
    )


def test_open_return_paren_is_closed_before_dedented_brace() -> None:
    code = "function A() {\n  return (\n    <div>hi</div>\n}\n"

    assert fix_return_statements(code) == (
        "function A() {\n  return (\n    <div>hi</div>\n  );\n}\n"
    )


def test_fixers_are_noops_on_clean_code() -> None:
    code = (
        "import { a } from 'x';\n"
        "const f = (v: number): number => v * 2;\n"
        "export function A() {\n"
        "  return (\n"
        '    <div className="box">{a ? <b>yes</b> : null}</div>\n'
        "  );\n"
        "}\n"
    )

    for fixer in (
        fix_arrow_functions,
        fix_ternaries,
        fix_attributes,
        fix_strings,
        fix_typed_syntax,
        fix_return_statements,
    ):
        assert fixer(code) == code, fixer.__name__
