"""Starlark binding generator."""

from .codegen import generate as generate
from .codegen import generate_bindings as generate_bindings
from .config import GeneratorConfig as GeneratorConfig
from .discover import find_struct_members as find_struct_members
from .emitter import render as render
from .formatting import FormatError as FormatError
from .formatting import format_source as format_source
from .loader import find_root_types as find_root_types
from .loader import load_package as load_package
from .naming import NamingConfig as NamingConfig
from .types import *
