"""Argument unpacking, builtin environment and plugin support.

Generated bindings subclass ``Plugin`` and bind their constructors into an
``Environment`` from ``register_symbols``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from .starlark import Builtin, EvalError, Thread, UnpackError, Value


class Unpacker(Protocol):
    """Anything that can be assigned from a host value."""

    def unpack(self, v: Value) -> None: ...


@dataclass
class Field:
    """Unpack a scalar argument straight into an attribute of a native record."""

    owner: Any
    attr: str
    convert: Callable[[Value], Any]

    def unpack(self, v: Value) -> None:
        setattr(self.owner, self.attr, self.convert(v))


class RawValue:
    """Capture an argument without converting it."""

    def __init__(self) -> None:
        self.value: Value = None

    def unpack(self, v: Value) -> None:
        self.value = v


def unpack_args(
    fn_name: str,
    args: tuple[Value, ...],
    kwargs: dict[str, Value],
    *pairs: Any,
) -> None:
    """Unpack positional and keyword arguments into targets.

    ``pairs`` alternates parameter names and ``Unpacker`` targets. A name
    ending in ``?`` is optional; passing ``None`` to an optional parameter is
    the same as leaving it out.

    Raises:
        UnpackError: on unknown, duplicate, missing or malformed arguments.
    """
    if len(pairs) % 2 != 0:
        raise ValueError("unpack_args requires name/target pairs")

    params: list[tuple[str, bool, Unpacker]] = []
    for i in range(0, len(pairs), 2):
        name, target = pairs[i], pairs[i + 1]
        optional = name.endswith("?")
        params.append((name.rstrip("?"), optional, target))

    if len(args) > len(params):
        raise UnpackError(f"{fn_name}: got {len(args)} arguments, want at most {len(params)}")

    defined: set[str] = set()

    def assign(name: str, optional: bool, target: Unpacker, v: Value) -> None:
        defined.add(name)
        if v is None and optional:
            return
        try:
            target.unpack(v)
        except UnpackError as err:
            raise UnpackError(f"{fn_name}: for parameter {name}: {err}") from err

    for (name, optional, target), v in zip(params, args):
        assign(name, optional, target, v)

    by_name = {name: (name, optional, target) for name, optional, target in params}
    for k, v in kwargs.items():
        if k not in by_name:
            raise UnpackError(f'{fn_name}: unexpected keyword argument "{k}"')
        if k in defined:
            raise UnpackError(f'{fn_name}: got multiple values for keyword argument "{k}"')
        assign(*by_name[k], v)

    for name, optional, _ in params:
        if not optional and name not in defined:
            raise UnpackError(f"{fn_name}: missing argument for {name}")


class Environment:
    """The set of builtins visible to scripts."""

    def __init__(self) -> None:
        self.builtins: dict[str, Builtin] = {}

    def add_builtin(self, name: str, fn: Callable[..., Value]) -> Builtin:
        if not name:
            raise EvalError("builtin name must not be empty")
        if name in self.builtins:
            raise EvalError(f"builtin {name} already defined")
        builtin = Builtin(name, fn)
        self.builtins[name] = builtin
        return builtin

    def call(self, thread: Thread, name: str, /, *args: Value, **kwargs: Value) -> Value:
        """Invoke a bound builtin the way a script would."""
        if name not in self.builtins:
            raise EvalError(f"undefined: {name}")
        return self.builtins[name](thread, *args, **kwargs)


class Plugin:
    """Base class for generated bindings.

    ``register`` is the hook every root constructor hands its finished
    object to. The default keeps the objects in creation order.
    """

    def __init__(self) -> None:
        self.objects: list[Any] = []

    def register_symbols(self, env: Environment) -> None:
        raise NotImplementedError

    def register(self, thread: Thread, obj: Any) -> Value:
        self.objects.append(obj)
        return None
