"""starlark-codegen - Starlark binding generator for Python API types."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("starlark-codegen")
except PackageNotFoundError:
    __version__ = "(local)"
