"""Generate bindings for a package of API types."""

from dataclasses import dataclass
from pathlib import Path

from .config import GeneratorConfig
from .discover import find_struct_members
from .emitter import render
from .loader import find_root_types, load_package
from .types import Package, Type


@dataclass
class GeneratedBindings:
    package: Package
    root_types: list[Type]
    member_types: list[Type]
    source: str


def generate_bindings(
    input_path: str | Path,
    config: GeneratorConfig | None = None,
    package: str | None = None,
) -> GeneratedBindings:
    """Load a package and render bindings for its root types.

    The returned source is not formatted.
    """
    config = config or GeneratorConfig()

    pkg = load_package(input_path, config, package=package)
    root_types = find_root_types(pkg, config)
    member_types = find_struct_members(root_types, config)
    source = render(pkg, root_types, member_types, config)
    return GeneratedBindings(pkg, root_types, member_types, source)


def generate(
    input_path: str | Path,
    config: GeneratorConfig | None = None,
    package: str | None = None,
) -> str:
    return generate_bindings(input_path, config, package).source
