"""Find the struct types reachable from root types."""

from collections.abc import Iterable

from .config import GeneratorConfig, RootShape
from .naming import to_snake
from .types import GenerationError, Kind, Member, Type


def root_member(t: Type, config: GeneratorConfig) -> tuple[RootShape, Member] | None:
    """Return the member holding a root type's configurable fields, if any."""
    by_key = {to_snake(m.name): m for m in t.members}
    for name, shape in config.root_members.items():
        member = by_key.get(name)
        if member is not None:
            return shape, member
    return None


def get_spec_member_type(t: Type, config: GeneratorConfig) -> Type | None:
    found = root_member(t, config)
    if found is None or found[0] != RootShape.SPEC:
        return None
    spec = found[1].type
    if spec.kind != Kind.STRUCT:
        raise GenerationError(f"spec of {t.name} must be a struct, got {spec}")
    return spec


def is_skip_member(m: Member, config: GeneratorConfig) -> bool:
    """Check if a member holds an opaque leaf type such as a timestamp."""
    t = m.type
    if t.kind == Kind.POINTER and t.elem is not None:
        t = t.elem
    return t.kind == Kind.STRUCT and t.name in config.skip_types


def _struct_elem(t: Type) -> Type | None:
    if t.kind == Kind.STRUCT:
        return t
    if t.kind in (Kind.POINTER, Kind.SLICE) and t.elem is not None and t.elem.kind == Kind.STRUCT:
        return t.elem
    return None


def find_struct_members(
    top_level_types: Iterable[Type], config: GeneratorConfig | None = None
) -> list[Type]:
    """Find all the member types that need their own wrappers, sorted by name.

    A type is recorded before its own members are visited, which is what
    stops self-referential schemas from looping.
    """
    config = config or GeneratorConfig()
    result: dict[str, Type] = {}

    for t in top_level_types:
        spec = get_spec_member_type(t, config)
        if spec is None:
            continue

        stack = [spec]
        while stack:
            current = stack.pop()
            for m in reversed(current.members):
                if is_skip_member(m, config):
                    continue
                candidate = _struct_elem(m.type)
                if candidate is None or candidate.name in result:
                    continue
                result[candidate.name] = candidate
                stack.append(candidate)

    return sorted(result.values(), key=lambda t: t.name)
