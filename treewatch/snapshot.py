"""
Immutable Snapshot Containers
=============================

A snapshot is a tree of ``FrozenDict`` and ``FrozenList`` nodes with arbitrary
leaves. The frozen containers subclass ``dict`` and ``list`` so snapshots compare
equal to plain data, serialize like plain data and pass ``isinstance`` checks,
but every in-place mutator raises ``FrozenStateError``.

Two snapshots produced by consecutive edits share every container the edit did
not touch, so identity (``is``) is a cheap "unchanged" test.
"""

import copy
from typing import Any

import numpy as np

from .errors import FrozenStateError


def _frozen(*args, **kwargs):
    raise FrozenStateError()


class FrozenDict(dict):
    """A ``dict`` that refuses in-place modification."""

    __slots__ = ()

    # Contents are filled in once, in __new__; a later __init__ call is ignored.
    def __new__(cls, *args, **kwargs):
        self = dict.__new__(cls)
        dict.__init__(self, *args, **kwargs)
        return self

    def __init__(self, *args, **kwargs):
        pass

    __setitem__ = _frozen
    __delitem__ = _frozen
    __ior__ = _frozen
    clear = _frozen
    pop = _frozen
    popitem = _frozen
    setdefault = _frozen
    update = _frozen

    def __reduce__(self):
        return (FrozenDict, (dict(self),))

    def __copy__(self) -> "FrozenDict":
        return self

    def __deepcopy__(self, memo) -> "FrozenDict":
        return FrozenDict(
            {key: copy.deepcopy(value, memo) for key, value in self.items()}
        )


class FrozenList(list):
    """A ``list`` that refuses in-place modification."""

    __slots__ = ()

    def __new__(cls, *args):
        self = list.__new__(cls)
        list.__init__(self, *args)
        return self

    def __init__(self, *args):
        pass

    __setitem__ = _frozen
    __delitem__ = _frozen
    __iadd__ = _frozen
    __imul__ = _frozen
    append = _frozen
    extend = _frozen
    insert = _frozen
    pop = _frozen
    remove = _frozen
    reverse = _frozen
    sort = _frozen
    clear = _frozen

    def __reduce__(self):
        return (FrozenList, (list(self),))

    def __copy__(self) -> "FrozenList":
        return self

    def __deepcopy__(self, memo) -> "FrozenList":
        return FrozenList([copy.deepcopy(value, memo) for value in self])


def freeze(value: Any) -> Any:
    """
    Convert plain nested data into a snapshot.

    Already-frozen containers are returned as they are (they cannot change, so
    they can be shared). Plain dicts and lists are copied into frozen ones, so
    later changes to the caller's objects never leak into the snapshot.
    """
    if isinstance(value, (FrozenDict, FrozenList)):
        return value
    if isinstance(value, dict):
        return FrozenDict({key: freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return FrozenList([freeze(item) for item in value])
    return value


def thaw(value: Any) -> Any:
    """Deep-copy a snapshot into plain, mutable dicts and lists."""
    if isinstance(value, dict):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, list):
        return [thaw(item) for item in value]
    return value


def _kind(value: Any) -> type:
    if isinstance(value, dict):
        return dict
    if isinstance(value, list):
        return list
    return type(value)


def same_value(a: Any, b: Any) -> bool:
    """
    Decide whether replacing ``a`` with ``b`` is a real change.

    Containers are compared structurally, scalars by type and ``==``. Two
    values that are not equal to themselves (NaN) count as the same value.
    Array leaves are compared with ``numpy.array_equal``.
    """
    if a is b:
        return True
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        if type(a) is not type(b):
            return False
        try:
            return bool(np.array_equal(a, b, equal_nan=True))
        except (TypeError, ValueError):
            return bool(np.array_equal(a, b))

    kind = _kind(a)
    if kind is not _kind(b):
        return False
    if kind is dict:
        if len(a) != len(b):
            return False
        for key, item in a.items():
            if key not in b or not same_value(item, b[key]):
                return False
        return True
    if kind is list:
        return len(a) == len(b) and all(same_value(x, y) for x, y in zip(a, b))

    try:
        if a == b:
            return True
        return bool(a != a) and bool(b != b)
    except (TypeError, ValueError):
        return False
