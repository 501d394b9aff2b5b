"""Parser for field annotations written as Python type expressions."""

import os
from dataclasses import dataclass
from typing import Any

from lark import Lark, LarkError
from lark.visitors import Transformer

from .types import LoadError

_g_parser: Lark | None = None


@dataclass(frozen=True)
class Ref:
    """A possibly dotted name, e.g. ``Probe`` or ``meta.ObjectMeta``."""

    parts: tuple[str, ...]

    @property
    def dotted(self) -> str:
        return ".".join(self.parts)


@dataclass(frozen=True)
class Generic:
    """A subscripted name, e.g. ``dict[str, str]``."""

    ref: Ref
    args: tuple["TypeExpr", ...]


@dataclass(frozen=True)
class Union:
    """``A | B | None``."""

    items: tuple["TypeExpr", ...]


TypeExpr = Ref | Generic | Union


class _ExprTransformer(Transformer):
    def dotted(self, args: list[Any]) -> Ref:
        return Ref(tuple(str(a) for a in args))

    def generic(self, args: list[Any]) -> Generic:
        return Generic(ref=args[0], args=tuple(args[1:]))

    def union(self, args: list[Any]) -> Union:
        items: list[TypeExpr] = []
        for arg in args:
            # Flatten nested unions, e.g. from quoted forward references
            if isinstance(arg, Union):
                items.extend(arg.items)
            else:
                items.append(arg)
        return Union(tuple(items))

    def quoted(self, args: list[Any]) -> TypeExpr:
        return parse_type_expr(str(args[0])[1:-1])


def _parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/typeexpr.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr", transformer=_ExprTransformer())
    return _g_parser


def parse_type_expr(text: str) -> TypeExpr:
    """Parse an annotation such as ``list[Probe]`` or ``"Node | None"``."""
    try:
        return _parser().parse(text.strip())
    except LarkError as err:
        raise LoadError(f"cannot parse type expression {text!r}") from err


def is_none(expr: TypeExpr) -> bool:
    return isinstance(expr, Ref) and expr.parts == ("None",)
