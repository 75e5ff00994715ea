"""Syntax repair pipeline for generated script and markup files."""

from artifact_harvester.repair.brackets import balance_brackets, scan_brackets
from artifact_harvester.repair.elements import balance_elements, find_unclosed, scan_tags
from artifact_harvester.repair.fixers import (
    fix_arrow_functions,
    fix_attributes,
    fix_return_statements,
    fix_strings,
    fix_ternaries,
    fix_typed_syntax,
)
from artifact_harvester.repair.imports import merge_imports, parse_imports
from artifact_harvester.repair.lexer import LexState, Lexed, lex
from artifact_harvester.repair.pipeline import (
    RepairOptions,
    SyntaxProfile,
    repair_code,
    repair_file,
    repair_files,
    syntax_profile,
)
from artifact_harvester.repair.validation import is_valid, quick_validate

__all__ = [
    "LexState",
    "Lexed",
    "RepairOptions",
    "SyntaxProfile",
    "balance_brackets",
    "balance_elements",
    "find_unclosed",
    "fix_arrow_functions",
    "fix_attributes",
    "fix_return_statements",
    "fix_strings",
    "fix_ternaries",
    "fix_typed_syntax",
    "is_valid",
    "lex",
    "merge_imports",
    "parse_imports",
    "quick_validate",
    "repair_code",
    "repair_file",
    "repair_files",
    "scan_brackets",
    "scan_tags",
    "syntax_profile",
]
