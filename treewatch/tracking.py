"""
Access Tracking
===============

Read-only views over a snapshot that record which paths were read. Running an
observer's code against a tracked view discovers its dependencies, so nobody has
to declare subscriptions by hand:

```python
tracker = Tracker(store.get_snapshot())
view = tracker.root
label = f"{view['user']['name']} ({len(view['items'])} items)"
tracker.accessed
# [('user', 'name'), ('items', <__len__>)]
```

What gets recorded:

- Reading a scalar (or any non-container leaf) records its path.
- Reading a container records nothing; it returns a nested view for that path.
  Only leaves and derived values count as dependencies.
- ``len()``, iteration, membership tests and method calls on a view record the
  container path plus a ``ViewKey`` naming the operation, so structural changes
  to the container reach those readers.
- Reading a key that does not exist records the path and raises as a plain
  ``dict``/``list`` would; its later appearance is a change worth hearing about.

Every write attempt on a view raises ``FrozenStateError``.

Reading the tracker's ``identifier`` key from a view returns ``(value, path)``
without recording anything, so code that only received a view can recover the
real value and where it lives.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Iterable, List, Optional, Tuple

from cachetools import LRUCache

from .errors import FrozenStateError
from .paths import (
    MISSING,
    Key,
    Path,
    ViewKey,
    get_in,
    is_container,
    is_mapping,
    to_path,
)

logger = logging.getLogger(__name__)

_MUTATORS = frozenset(
    {
        "append",
        "clear",
        "extend",
        "insert",
        "pop",
        "popitem",
        "remove",
        "reverse",
        "setdefault",
        "sort",
        "update",
    }
)

LEN = ViewKey("__len__")
ITER = ViewKey("__iter__")
CONTAINS = ViewKey("__contains__")


def _refuse(*args, **kwargs):
    raise FrozenStateError()


class _TrackedView:
    """Behaviour shared by tracked mappings and sequences."""

    __slots__ = ("_value", "_path", "_tracker")

    def __init__(self, value: Any, path: Path, tracker: "Tracker"):
        object.__setattr__(self, "_value", value)
        object.__setattr__(self, "_path", path)
        object.__setattr__(self, "_tracker", tracker)

    def _read(self, key: Key, value: Any) -> Any:
        return self._tracker.read(self._path + (key,), value)

    def __getattr__(self, name: str) -> Any:
        if name in _MUTATORS:
            raise FrozenStateError()
        attribute = getattr(self._value, name)
        self._tracker.record(self._path + (ViewKey(name),))
        return attribute

    __setattr__ = _refuse
    __delattr__ = _refuse
    __setitem__ = _refuse
    __delitem__ = _refuse
    __iadd__ = _refuse
    __ior__ = _refuse

    __hash__ = None


class TrackedMapping(_TrackedView, Mapping):
    """Tracked read-only view of a snapshot mapping."""

    __slots__ = ()

    def __getitem__(self, key):
        if key is self._tracker.identifier:
            return self._value, self._path
        value = self._value.get(key, MISSING)
        if value is MISSING:
            self._tracker.record(self._path + (key,))
            raise KeyError(key)
        return self._read(key, value)

    def __contains__(self, key) -> bool:
        self._tracker.record(self._path + (key,))
        return key in self._value

    def __iter__(self):
        self._tracker.record(self._path + (ITER,))
        return iter(list(self._value))

    def __len__(self) -> int:
        self._tracker.record(self._path + (LEN,))
        return len(self._value)

    def __repr__(self) -> str:
        return f"TrackedMapping({self._value!r})"


class TrackedSequence(_TrackedView, Sequence):
    """Tracked read-only view of a snapshot list."""

    __slots__ = ()

    def __getitem__(self, index):
        if index is self._tracker.identifier:
            return self._value, self._path
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self._value)))]
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(
                f"list indices must be integers or slices, not {type(index).__name__}"
            )
        if index < 0:
            index += len(self._value)
        if not 0 <= index < len(self._value):
            self._tracker.record(self._path + (index,))
            raise IndexError("list index out of range")
        return self._read(index, self._value[index])

    def __len__(self) -> int:
        self._tracker.record(self._path + (LEN,))
        return len(self._value)

    def __iter__(self):
        self._tracker.record(self._path + (ITER,))
        for index in range(len(self._value)):
            yield self._read(index, self._value[index])

    def __contains__(self, item) -> bool:
        self._tracker.record(self._path + (CONTAINS,))
        item, _ = self._tracker.unwrap(item)
        return item in self._value

    def __eq__(self, other) -> bool:
        if isinstance(other, TrackedSequence):
            other = other._value
        if not isinstance(other, list):
            return NotImplemented
        return len(self) == len(other) and all(a == b for a, b in zip(self, other))

    __hash__ = None

    def __repr__(self) -> str:
        return f"TrackedSequence({self._value!r})"


class Tracker:
    """
    One tracked read pass over a snapshot.

    The access record lives only as long as the tracker; build or refresh a
    registration from ``accessed`` right after the pass and drop the tracker.

    Args:
        snapshot: The snapshot to read
        base_path: Path of the sub-tree ``root`` should view
        on_access: Called with every recorded path, in order
        identifier: Hidden key that unwraps a view; a fresh object by default
        cache_size: How many nested views to keep for reuse during the pass
    """

    def __init__(
        self,
        snapshot: Any,
        base_path: Iterable[Key] = (),
        on_access: Optional[Callable[[Path], None]] = None,
        identifier: Any = None,
        cache_size: int = 1024,
    ):
        self.snapshot = snapshot
        self.identifier = identifier if identifier is not None else object()
        self.paths: List[Path] = []
        self._on_access = on_access
        self._views = LRUCache(maxsize=cache_size)
        self.base_path = to_path(base_path)

    @property
    def root(self) -> Any:
        """Tracked view of the sub-tree at ``base_path``."""
        return self.read(self.base_path, get_in(self.snapshot, self.base_path))

    @property
    def accessed(self) -> List[Path]:
        """Distinct recorded paths in first-read order."""
        return list(dict.fromkeys(self.paths))

    def record(self, path: Path) -> None:
        self.paths.append(path)
        if self._on_access is not None:
            self._on_access(path)

    def read(self, path: Path, value: Any) -> Any:
        """Classify a read: containers become views, anything else is recorded."""
        if is_container(value):
            return self.view(path, value)
        self.record(path)
        return value

    def view(self, path: Path, value: Any) -> _TrackedView:
        cached = self._views.get(path)
        if cached is not None and cached._value is value:
            return cached
        cls = TrackedMapping if is_mapping(value) else TrackedSequence
        view = cls(value, path, self)
        self._views[path] = view
        return view

    def unwrap(self, value: Any, record: bool = False) -> Tuple[Any, Optional[Path]]:
        """
        Recover ``(real_value, path)`` from a tracked view.

        Plain values come back unchanged with a ``None`` path. With ``record``
        the view's own path is added to the access record.
        """
        if not isinstance(value, _TrackedView):
            return value, None
        real, path = value[value._tracker.identifier]
        if record:
            self.record(path)
        return real, path


def wrap(
    snapshot: Any,
    base_path: Iterable[Key] = (),
    on_access: Optional[Callable[[Path], None]] = None,
    identifier: Any = None,
) -> Any:
    """Tracked view of ``snapshot`` at ``base_path``, reporting reads."""
    return Tracker(snapshot, base_path, on_access, identifier).root
