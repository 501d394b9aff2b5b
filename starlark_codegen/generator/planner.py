"""Decide how each field is unpacked from host values.

Every field maps to a ``ConversionPlan``: either a direct scalar conversion
assigned straight into the native record, or an unpacker object ("wrapper")
whose ``value`` is copied into the record once arguments are unpacked.
"""

import keyword
from dataclasses import dataclass
from enum import StrEnum, auto

from .config import GeneratorConfig
from .discover import is_skip_member
from .naming import to_snake
from .tags import extract_single_bool_tag
from .types import (
    Kind,
    Member,
    TagError,
    Type,
    UnsupportedFieldError,
    is_scalar_like,
    scalar_name,
)

# Scalar name -> host converter
SCALAR_CONVERTERS = {
    "str": "starlark.as_str",
    "int": "starlark.as_int",
    "bool": "starlark.as_bool",
}

# Names the generated functions already use for parameters and modules
SHADOWED_NAMES = frozenset(
    ["self", "thread", "fn", "kwargs", "copy", "meta", "starkit", "starlark", "value"]
)


class Assign(StrEnum):
    """How a field reaches the native record."""

    DIRECT = auto()  # converter applied to the raw value
    VALUE = auto()  # record.field = wrapper.value
    GUARDED = auto()  # as VALUE, but only if the wrapper was unpacked


@dataclass(frozen=True)
class ConversionPlan:
    """How one field is exposed to and read back from the host.

    ``initializer`` contains a ``{thread}`` placeholder for the expression
    naming the calling thread.
    """

    key: str
    path: tuple[str, ...]
    var_name: str
    assign: Assign
    wrapper_type: str | None = None
    initializer: str | None = None
    seed: bool = False
    converter: str | None = None
    nullable: bool = False

    @property
    def attr(self) -> str:
        return self.path[-1]

    @property
    def owner_path(self) -> tuple[str, ...]:
        return self.path[:-1]

    def init_expr(self, thread: str) -> str:
        return self.initializer.format(thread=thread)


def member_var_name(name: str, config: GeneratorConfig) -> str:
    """Variable name for a field in generated code."""
    key = to_snake(name)
    var = config.reserved_names.get(key, key)
    if keyword.iskeyword(var) or var in SHADOWED_NAMES:
        var += "_"
    return var


def _is_local_path(m: Member, config: GeneratorConfig) -> bool:
    try:
        return extract_single_bool_tag(config.local_path_tag, m.comment_lines)
    except TagError as err:
        raise TagError(f"parsing tags in {m.name}: {err}") from err


def _unsupported(m: Member, reason: str = "") -> UnsupportedFieldError:
    detail = f": {reason}" if reason else ""
    return UnsupportedFieldError(f"cannot unpack member {m.name} of type {m.type}{detail}")


def _require_known(m: Member, t: Type) -> None:
    if t.external:
        raise _unsupported(m, f"members of {t.package}.{t.name} are unknown")


def _is_string(t: Type) -> bool:
    return is_scalar_like(t) and scalar_name(t) == "str"


def plan_field(m: Member, config: GeneratorConfig, path: tuple[str, ...] = ()) -> ConversionPlan:
    """Plan a single non-embedded field."""
    is_local_path = _is_local_path(m, config)
    t = m.type

    def plan(assign: Assign, **kwargs) -> ConversionPlan:
        return ConversionPlan(
            key=to_snake(m.name),
            path=path + (m.name,),
            var_name=member_var_name(m.name, config),
            assign=assign,
            **kwargs,
        )

    def wrapper(wrapper_type: str, initializer: str, assign: Assign = Assign.VALUE, **kwargs):
        return plan(assign, wrapper_type=wrapper_type, initializer=initializer, **kwargs)

    pointer_elem = t.elem if t.kind == Kind.POINTER else None

    if is_scalar_like(t) or (pointer_elem is not None and is_scalar_like(pointer_elem)):
        name = scalar_name(pointer_elem or t)
        if name not in SCALAR_CONVERTERS:
            raise _unsupported(m)
        if is_local_path:
            if pointer_elem is not None or name != "str":
                raise _unsupported(m, "local-path requires a string field")
            return wrapper("value.LocalPath", "value.LocalPath({thread})", seed=True)
        return plan(
            Assign.DIRECT,
            converter=SCALAR_CONVERTERS[name],
            nullable=pointer_elem is not None,
        )

    if is_local_path and not (t.kind == Kind.SLICE and _is_string(t.elem)):
        raise _unsupported(m, "local-path requires a string or list of strings")

    if t.kind == Kind.STRUCT:
        _require_known(m, t)
        return wrapper(t.name, f"{t.name}({{thread}})")

    if pointer_elem is not None and pointer_elem.kind == Kind.STRUCT:
        _require_known(m, pointer_elem)
        return wrapper(pointer_elem.name, f"{pointer_elem.name}({{thread}})", Assign.GUARDED)

    if t.kind == Kind.MAP and _is_string(t.key) and _is_string(t.elem):
        return wrapper("value.StringStringMap", "value.StringStringMap()")

    if t.kind == Kind.SLICE:
        if _is_string(t.elem):
            if is_local_path:
                return wrapper("value.LocalPathList", "value.LocalPathList({thread})")
            return wrapper("value.StringList", "value.StringList()")
        if t.elem.kind == Kind.STRUCT:
            _require_known(m, t.elem)
            list_type = f"{t.elem.name}List"
            return wrapper(list_type, f"{list_type}({{thread}})")

    raise _unsupported(m)


def plan_member(
    m: Member, config: GeneratorConfig, path: tuple[str, ...] = ()
) -> list[ConversionPlan]:
    """Plan a member; embedded members expand to the plans of their fields."""
    if m.embedded:
        if m.type.kind != Kind.STRUCT:
            raise _unsupported(m, "embedded members must be structs")
        _require_known(m, m.type)
        return plan_members(m.type.members, config, path + (m.name,))

    if is_skip_member(m, config):
        return []
    return [plan_field(m, config, path)]


def plan_members(
    members: list[Member], config: GeneratorConfig, path: tuple[str, ...] = ()
) -> list[ConversionPlan]:
    plans: list[ConversionPlan] = []
    for m in members:
        plans.extend(plan_member(m, config, path))
    return plans
