"""
artifact-harvester — integration test package

File: tests/integration/__init__.py
Last updated: 2026-10-18

Purpose
- Test package marker file.

Functional requirements
- Must not trigger generation calls or network access.
"""
