"""Marker tags carried in comment lines, e.g. ``+starlark:gen=true``."""

import os
from collections.abc import Iterable

from lark import Lark, LarkError, Token
from lark.visitors import Transformer

from .types import TagError

_g_parser: Lark | None = None


class _TagTransformer(Transformer):
    def start(self, args: list[Token]) -> tuple[str, str]:
        key = str(args[0])
        value = str(args[1]).strip() if len(args) > 1 else ""
        return key, value


def _parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/tags.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr", transformer=_TagTransformer())
    return _g_parser


def parse_tag(line: str) -> tuple[str, str]:
    """Parse one tag line into ``(key, value)``. A bare ``+key`` has value ``""``."""
    try:
        return _parser().parse(line.strip())
    except LarkError as err:
        raise TagError(f"malformed tag {line.strip()!r}") from err


def extract_comment_tags(lines: Iterable[str]) -> dict[str, list[str]]:
    """Collect every tag in a comment block.

    Lines not starting with ``+`` are ordinary comments and are ignored.
    Repeated keys accumulate their values in order.
    """
    tags: dict[str, list[str]] = {}
    for line in lines:
        line = line.strip()
        if not line.startswith("+"):
            continue
        key, value = parse_tag(line)
        tags.setdefault(key, []).append(value)
    return tags


def extract_single_bool_tag(key: str, lines: Iterable[str], default: bool = False) -> bool:
    """Read a boolean tag. A bare ``+key`` counts as true."""
    values = extract_comment_tags(lines).get(key)
    if not values:
        return default

    value = values[0]
    if value in ("", "true"):
        return True
    if value == "false":
        return False
    raise TagError(f"tag value for {key!r} is not boolean: {value!r}")
