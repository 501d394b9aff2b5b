"""Generator configuration."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum, auto
from types import MappingProxyType

from .naming import NamingConfig


class RootShape(StrEnum):
    """Where a root type keeps its user-configurable fields."""

    SPEC = auto()  # all members of the spec struct
    DATA = auto()  # the data member itself


# Root member name -> shape. Checked in order, first hit wins.
ROOT_MEMBERS: Mapping[str, RootShape] = MappingProxyType(
    {
        "spec": RootShape.SPEC,
        "data": RootShape.DATA,
    }
)

# Field name -> generated variable name, for fields that would clash with
# the arguments every root constructor already takes.
RESERVED_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "args": "spec_args",
        "labels": "spec_labels",
        "annotations": "spec_annotations",
        "name": "spec_name",
    }
)

SKIP_TYPES = frozenset(["Time", "MicroTime", "datetime", "date"])


@dataclass(frozen=True)
class GeneratorConfig:
    """Settings threaded through every generator stage."""

    naming: NamingConfig = field(default_factory=NamingConfig)

    gen_tag: str = "starlark:gen"
    local_path_tag: str = "starlark:local-path"
    embedded_tag: str = "starlark:embedded"

    # Opaque leaf types never exposed to scripts
    skip_types: frozenset[str] = SKIP_TYPES
    reserved_names: Mapping[str, str] = field(default_factory=lambda: RESERVED_NAMES)
    root_members: Mapping[str, RootShape] = field(default_factory=lambda: ROOT_MEMBERS)
    metadata_member: str = "metadata"

    runtime_import: str = "starlark_codegen.runtime"
    output_filename: str = "bindings.py"
