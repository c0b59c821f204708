"""
Path Addressing
===============

A path is a tuple of keys that locates a value inside a state tree. Keys are
mapping keys (usually ``str``), sequence indices (``int``) or opaque symbolic
keys such as ``ViewKey``. The root is the empty tuple.

Resolving a path that does not exist is never an error: ``get_in`` returns the
``MISSING`` sentinel (or a caller-supplied default) instead.
"""

from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Tuple

Key = Hashable
Path = Tuple[Key, ...]


class _Missing:
    """Sentinel for "nothing lives at this path"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


@dataclass(frozen=True)
class ViewKey:
    """
    Symbolic key for a value derived from a whole container.

    Tracked views record ``len(view)``, iteration or ``view.index(x)`` under
    ``path + (ViewKey("__len__"),)`` and friends, so that structural changes to
    the container can notify those readers without a literal key to match.
    """

    name: str

    def __repr__(self) -> str:
        return f"<{self.name}>"


def to_path(path: Iterable[Key]) -> Path:
    """Normalize any iterable of keys to a tuple path."""
    if isinstance(path, tuple):
        return path
    if isinstance(path, (str, bytes)):
        raise TypeError(f"A path must be a sequence of keys, got {path!r}")
    return tuple(path)


def is_mapping(value: Any) -> bool:
    return isinstance(value, dict)


def is_sequence(value: Any) -> bool:
    return isinstance(value, list)


def is_container(value: Any) -> bool:
    """Containers are the plain mappings and lists that make up a tree."""
    return isinstance(value, (dict, list))


def step(value: Any, key: Key) -> Any:
    """Take a single step down the tree, returning MISSING when impossible."""
    if isinstance(value, dict):
        return value.get(key, MISSING)
    if isinstance(value, list):
        if isinstance(key, bool) or not isinstance(key, int):
            return MISSING
        if 0 <= key < len(value):
            return value[key]
        return MISSING
    return MISSING


def get_in(tree: Any, path: Iterable[Key], default: Any = MISSING) -> Any:
    """
    Resolve ``path`` inside ``tree``.

    Args:
        tree: Root value (a snapshot or plain nested data)
        path: Keys to follow from the root
        default: Returned when the path does not resolve

    Returns:
        The value at the path, or ``default``
    """
    value = tree
    for key in path:
        value = step(value, key)
        if value is MISSING:
            return default
    return value
