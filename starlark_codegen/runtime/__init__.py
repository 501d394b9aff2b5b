"""Host runtime imported by generated Starlark bindings."""

from . import meta, starkit, starlark, value
from .starlark import Dict as Dict
from .starlark import EvalError as EvalError
from .starlark import List as List
from .starlark import Thread as Thread
from .starlark import UnpackError as UnpackError

__all__ = ["meta", "starkit", "starlark", "value"]
