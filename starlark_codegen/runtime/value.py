"""Leaf unpackers for common argument shapes."""

from .starlark import Dict, List, Thread, UnpackError, Value, as_str, at_index, type_name


def _sequence(v: Value) -> list[Value]:
    if isinstance(v, (List, tuple)):
        return list(v)
    raise UnpackError(f"expected list, actual: {type_name(v)}")


class StringList:
    """A list of strings."""

    def __init__(self) -> None:
        self.value: list[str] = []

    def unpack(self, v: Value) -> None:
        items = []
        for i, item in enumerate(_sequence(v)):
            with at_index(i):
                items.append(as_str(item))
        self.value = items


class StringStringMap:
    """A dict with string keys and string values."""

    def __init__(self) -> None:
        self.value: dict[str, str] = {}

    def unpack(self, v: Value) -> None:
        if not isinstance(v, Dict):
            raise UnpackError(f"expected dict, actual: {type_name(v)}")

        items = {}
        for k, val in v.items():
            key = as_str(k)
            try:
                items[key] = as_str(val)
            except UnpackError as err:
                raise UnpackError(f"key {key}: {err}") from err
        self.value = items


def _abs_path(thread: Thread | None, path: str) -> str:
    if thread is None:
        thread = Thread()
    return thread.abs_path(path)


class LocalPath:
    """A filesystem path relative to the directory of the calling script."""

    def __init__(self, thread: Thread | None = None) -> None:
        self.thread = thread
        self.value = ""

    def unpack(self, v: Value) -> None:
        self.value = _abs_path(self.thread, as_str(v))


class LocalPathList:
    """A list of local paths. A single string is treated as a one-element list."""

    def __init__(self, thread: Thread | None = None) -> None:
        self.thread = thread
        self.value: list[str] = []

    def unpack(self, v: Value) -> None:
        if isinstance(v, str):
            self.value = [_abs_path(self.thread, v)]
            return

        items = []
        for i, item in enumerate(_sequence(v)):
            with at_index(i):
                items.append(_abs_path(self.thread, as_str(item)))
        self.value = items
