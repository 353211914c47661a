"""Validates generated modules for syntax errors."""

import ast


def validate_source(source: str, filename: str = "client.py") -> str | None:
    """Check generated Python source for syntax errors.

    Returns an error message, or None when the source compiles.
    """
    if not source.strip():
        return "empty module"
    try:
        ast.parse(source, filename=filename)
    except SyntaxError as e:
        return f"SyntaxError: {e.msg} (line {e.lineno})"
    return None
