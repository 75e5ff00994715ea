"""
artifact-harvester — unit tests for bracket balancing

File: tests/unit/repair/test_brackets.py
Last updated: 2026-10-18

Purpose
- Validate closer placement for braces, parentheses and square brackets.

What this test file should cover
- Brace closers on their own line at the opener's indentation.
- Parenthesis closers before the expression boundary.
- Implicitly closed openers and ignored stray closers.
- Brackets inside strings never counting.
"""

from __future__ import annotations

from artifact_harvester.repair.brackets import balance_brackets, scan_brackets

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st

    HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    HYPOTHESIS_AVAILABLE = False

def test_missing_function_brace_is_closed_after_last_statement() -> None:
    text = "function f() {\n  return 1;\n"

    assert balance_brackets(text) == "function f() {\n  return 1;\n}\n"

def test_missing_call_paren_is_closed_before_semicolon() -> None:
    assert balance_brackets("const x = foo(1, 2;\n") == "const x = foo(1, 2);\n"

def test_nested_openers_close_innermost_first() -> None:
    text = "if (x) {\n  foo(1;\n"

    assert balance_brackets(text) == "if (x) {\n  foo(1);\n}\n"

def test_implicitly_closed_bracket_gets_closer_before_outer_paren() -> None:
    assert balance_brackets("f(a[1);") == "f(a[1]);"

def test_stray_closer_is_reported_but_not_removed() -> None:
    scan = scan_brackets("a)")

    assert not scan.balanced
    assert [bracket.char for bracket in scan.stray] == [")"]
    assert balance_brackets("a)") == "a)"

def test_brackets_inside_strings_and_comments_are_ignored() -> None:
    text = 'const s = "{";\n// (\n'

    assert balance_brackets(text) == text

def test_balanced_text_is_returned_unchanged() -> None:
    text = "const a = [1, (2 + 3)];\nfunction g() { return a; }\n"

    assert balance_brackets(text) is text

def test_brace_closer_is_not_placed_inside_an_unterminated_template() -> None:
    text = "function f() {\n  const s = `abc\n"

    assert balance_brackets(text) == text

if HYPOTHESIS_AVAILABLE:

    @settings(max_examples=30, derandomize=True, deadline=None)
    @given(st.text(alphabet="{([;ab \n", max_size=40))
    def test_closers_are_added_for_every_open_bracket(text: str) -> None:
        balanced = balance_brackets(text)

        assert not scan_brackets(balanced).unclosed
        assert not scan_brackets(balanced).implicit
