"""Value model of the embedded Starlark host.

Generated bindings exchange these values with the host: scalars are plain
Python ``str``/``int``/``bool``/``None``, associative values are ``Dict`` and
sequences are ``List``. Both containers can be frozen, after which any
mutation raises ``EvalError``.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

Value = Any


class EvalError(RuntimeError):
    """Raised when the host rejects an operation."""


class UnpackError(EvalError):
    """Raised when a host value cannot be converted to a native value."""


def type_name(v: Value) -> str:
    """Return the host type name of a value, as shown in error messages."""
    if v is None:
        return "NoneType"
    if isinstance(v, bool):
        return "bool"
    if isinstance(v, int):
        return "int"
    if isinstance(v, float):
        return "float"
    if isinstance(v, str):
        return "string"
    if isinstance(v, tuple):
        return "tuple"
    host_type = getattr(v, "type", None)
    if isinstance(host_type, str):
        return host_type
    return type(v).__name__


def as_str(v: Value, allow_none: bool = False) -> str | None:
    if v is None and allow_none:
        return None
    if not isinstance(v, str):
        raise UnpackError(f"expected string, got: {type_name(v)}")
    return v


def as_int(v: Value, allow_none: bool = False) -> int | None:
    if v is None and allow_none:
        return None
    # bool is an int subclass in Python but a distinct type in the host
    if isinstance(v, bool) or not isinstance(v, int):
        raise UnpackError(f"expected int, got: {type_name(v)}")
    return v


def as_bool(v: Value, allow_none: bool = False) -> bool | None:
    if v is None and allow_none:
        return None
    if not isinstance(v, bool):
        raise UnpackError(f"expected bool, got: {type_name(v)}")
    return v


def as_key(v: Value) -> str:
    """Return a dict key as a string, or fail for non-string keys."""
    if not isinstance(v, str):
        raise UnpackError(f"key must be string. Got: {type_name(v)}")
    return v


@contextmanager
def unpacking(key: str) -> Iterator[None]:
    """Prefix unpack errors raised in the block with the attribute name."""
    try:
        yield
    except UnpackError as err:
        raise UnpackError(f"unpacking {key}: {err}") from err


@contextmanager
def at_index(i: int) -> Iterator[None]:
    """Prefix unpack errors raised in the block with a list position."""
    try:
        yield
    except UnpackError as err:
        raise UnpackError(f"at index {i}: {err}") from err


@dataclass
class Thread:
    """Execution context of a host call.

    ``base_dir`` is the directory of the script being executed; relative
    paths passed to local-path arguments resolve against it.
    """

    name: str = "main"
    base_dir: Path = field(default_factory=Path.cwd)

    def abs_path(self, path: str) -> str:
        return str((Path(self.base_dir) / path).resolve())


class Builtin:
    """A native function callable from the host."""

    type = "builtin_function_or_method"

    def __init__(
        self,
        name: str,
        fn: Callable[["Thread", "Builtin", tuple[Value, ...], dict[str, Value]], Value],
    ) -> None:
        self.name = name
        self.fn = fn

    def __call__(self, thread: Thread, /, *args: Value, **kwargs: Value) -> Value:
        return self.fn(thread, self, args, kwargs)

    def __repr__(self) -> str:
        return f"<built-in function {self.name}>"


def _freeze(v: Value) -> None:
    freeze = getattr(v, "freeze", None)
    if callable(freeze):
        freeze()


class Dict:
    """Host associative value with insertion-ordered keys."""

    type = "dict"

    def __init__(self, items: Mapping[Value, Value] | Iterable[tuple[Value, Value]] | None = None):
        self._entries: dict[Value, Value] = {}
        self._frozen = False
        if items is not None:
            pairs = items.items() if isinstance(items, Mapping) else items
            for k, v in pairs:
                self.set_key(k, v)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def set_key(self, k: Value, v: Value) -> None:
        if self._frozen:
            raise EvalError("cannot insert into frozen hash table")
        self._entries[k] = v

    def get(self, k: Value, default: Value = None) -> Value:
        return self._entries.get(k, default)

    def items(self) -> list[tuple[Value, Value]]:
        return list(self._entries.items())

    def keys(self) -> list[Value]:
        return list(self._entries)

    def freeze(self) -> None:
        """Freeze this dict and every value reachable from it."""
        if self._frozen:
            return
        self._frozen = True
        for k, v in self._entries.items():
            _freeze(k)
            _freeze(v)

    def adopt(self, other: "Dict") -> None:
        """Share the backing storage of another dict."""
        self._entries = other._entries
        self._frozen = other._frozen

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Value]:
        return iter(list(self._entries))

    def __contains__(self, k: object) -> bool:
        return k in self._entries

    def __getitem__(self, k: Value) -> Value:
        return self._entries[k]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dict):
            return NotImplemented
        return self._entries == other._entries

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "{" + ", ".join(f"{k!r}: {v!r}" for k, v in self._entries.items()) + "}"


class List:
    """Host sequence value."""

    type = "list"

    def __init__(self, items: Iterable[Value] | None = None):
        self._items: list[Value] = list(items) if items is not None else []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def append(self, v: Value) -> None:
        if self._frozen:
            raise EvalError("cannot append to frozen list")
        self._items.append(v)

    def index(self, i: int) -> Value:
        return self._items[i]

    def freeze(self) -> None:
        """Freeze this list and every value reachable from it."""
        if self._frozen:
            return
        self._frozen = True
        for v in self._items:
            _freeze(v)

    def adopt(self, other: "List") -> None:
        """Share the backing storage of another list."""
        self._items = other._items
        self._frozen = other._frozen

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Value]:
        return iter(list(self._items))

    def __getitem__(self, i: int) -> Value:
        return self._items[i]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, List):
            return NotImplemented
        return self._items == other._items

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "[" + ", ".join(repr(v) for v in self._items) + "]"
