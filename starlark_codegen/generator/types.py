"""Type descriptors consumed by the binding generator.

Two layers live here:

- ``PackageDoc``/``TypeDoc``/``MemberDoc`` are flat, JSON-serializable
  documents. Type references inside them are type-expression strings
  (``list[Probe]``, ``Probe | None``), so cyclic schemas serialize without
  nesting.
- ``Type``/``Member``/``Package`` are the linked graph the generator walks.
  They are built once by the loader and never mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import StrEnum, auto

from dataclasses_json import DataClassJsonMixin


class GenerationError(RuntimeError):
    """Raised when bindings cannot be generated for a schema."""


class LoadError(GenerationError):
    """Raised when type declarations cannot be loaded."""


class TagError(GenerationError):
    """Raised when a marker tag cannot be parsed."""


class UnsupportedFieldError(GenerationError):
    """Raised when a field has no conversion plan."""


@dataclass
class MemberDoc(DataClassJsonMixin):
    """A field declaration."""

    name: str
    type: str
    embedded: bool = False
    comment_lines: list[str] = field(default_factory=list)


@dataclass
class TypeDoc(DataClassJsonMixin):
    """A record or alias declaration.

    ``alias_of`` is set for aliases, which have no members. ``bases`` names
    declared records whose members come first, in declaration order.
    ``module`` is the import path of the declaring module; when empty the
    record is taken to live in the package itself.
    """

    name: str
    members: list[MemberDoc] = field(default_factory=list)
    alias_of: str | None = None
    bases: list[str] = field(default_factory=list)
    comment_lines: list[str] = field(default_factory=list)
    module: str = ""


@dataclass
class PackageDoc(DataClassJsonMixin):
    """All declarations of one package.

    ``imports`` maps local names to the qualified dotted names they were
    imported as, e.g. ``{"ObjectMeta": "starlark_codegen.runtime.meta.ObjectMeta"}``.
    """

    name: str
    path: str = ""
    imports: dict[str, str] = field(default_factory=dict)
    types: list[TypeDoc] = field(default_factory=list)


class Kind(StrEnum):
    """Shape of a type."""

    SCALAR = auto()
    STRUCT = auto()
    POINTER = auto()
    SLICE = auto()
    MAP = auto()
    ALIAS = auto()


@dataclass(frozen=True, eq=False)
class Type:
    """A resolved type.

    Struct types are shared between every reference to them, so the graph
    may contain cycles; equality is identity. ``external`` marks records
    imported from outside the loaded package, whose members are unknown.
    """

    name: str
    kind: Kind
    package: str = ""
    elem: "Type | None" = None
    key: "Type | None" = None
    underlying: "Type | None" = None
    members: list["Member"] = field(default_factory=list, repr=False)
    comment_lines: tuple[str, ...] = ()
    external: bool = False

    @property
    def expr(self) -> str:
        """The type written as a Python annotation."""
        if self.kind == Kind.POINTER:
            return f"{self.elem.expr} | None"
        if self.kind == Kind.SLICE:
            return f"list[{self.elem.expr}]"
        if self.kind == Kind.MAP:
            return f"dict[{self.key.expr}, {self.elem.expr}]"
        return self.name

    def __str__(self) -> str:
        return self.expr


@dataclass(frozen=True)
class Member:
    """A field of a struct type."""

    name: str
    type: Type
    embedded: bool = False
    comment_lines: tuple[str, ...] = ()


@dataclass(frozen=True)
class Package:
    """A loaded package: its import path and declared types in order."""

    name: str
    path: str
    types: tuple[Type, ...]


SCALAR_TYPES = frozenset(["str", "int", "bool", "float", "bytes"])


def is_scalar_like(t: Type) -> bool:
    """Check if a type is a scalar or an alias of one."""
    if t.kind == Kind.ALIAS and t.underlying is not None:
        return is_scalar_like(t.underlying)
    return t.kind == Kind.SCALAR


def scalar_name(t: Type) -> str:
    """Return the scalar name behind any aliases."""
    while t.kind == Kind.ALIAS and t.underlying is not None:
        t = t.underlying
    return t.name
