"""Normalize generated source before it is written."""

import ast
import re

from .types import GenerationError


class FormatError(GenerationError):
    """Raised when generated code is not valid Python."""


_BLANK_RUN = re.compile(r"\n{4,}")


def format_source(text: str, filename: str = "<generated>") -> str:
    """Check that ``text`` parses and tidy up its whitespace.

    Trailing whitespace is stripped, runs of blank lines are collapsed to two
    and the result ends with exactly one newline.

    Raises:
        FormatError: if ``text`` is not valid Python.
    """
    try:
        ast.parse(text, filename=filename)
    except SyntaxError as err:
        raise FormatError(f"{filename}:{err.lineno}: {err.msg}") from err

    lines = [line.rstrip() for line in text.splitlines()]
    result = _BLANK_RUN.sub("\n\n\n", "\n".join(lines))
    return result.strip("\n") + "\n"
