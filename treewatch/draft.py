"""
Copy-on-Write Drafts
====================

An edit runs a mutator callback against a *draft*: a mutable stand-in for the
current snapshot that behaves like a dict or a list. Nothing is copied until
something is written; the first write to a draft copies that container (shallow)
and marks every draft above it as changed. Containers read from the snapshot are
wrapped in child drafts on access, so nested writes work with ordinary syntax:

```python
def mutator(draft):
    draft["items"][0]["name"] = "new"
    draft["items"].append({"name": "other"})
    del draft["flags"]["stale"]

new_snapshot, patches = produce_with_patches(snapshot, mutator)
```

Finishing an edit turns the drafts back into frozen containers, reusing every
container that was not changed, and walks the changed drafts to produce the
patch list. Drafts are revoked when their edit finishes; touching one later
raises ``StaleDraftError``.
"""

import logging
from collections.abc import MutableMapping, MutableSequence
from typing import Any, Callable, Iterable, List, Optional, Tuple

from .errors import AmbiguousEditError, StaleDraftError
from .patches import Patch, PatchOp
from .paths import MISSING, Path
from .snapshot import FrozenDict, FrozenList, freeze, same_value

logger = logging.getLogger(__name__)

_UNSET = object()


class _Draft:
    """State shared by dict and list drafts."""

    __slots__ = ("_base", "_copy", "_parent", "_session", "_modified", "_result")

    def __init__(self, base: Any, parent: Optional["_Draft"], session: "EditSession"):
        self._base = base
        self._copy = None
        self._parent = parent
        self._session = session
        self._modified = False
        self._result = _UNSET

    def _check(self) -> None:
        if self._session.finished:
            raise StaleDraftError(
                "This draft belongs to an edit that has already finished. "
                "Drafts cannot be kept and used after the mutator returns."
            )

    def _source(self):
        return self._base if self._copy is None else self._copy

    def _prepare_copy(self) -> None:
        if self._copy is None:
            self._copy = self._shallow_copy(self._base)

    def _mark_changed(self) -> None:
        draft = self
        while draft is not None and not draft._modified:
            draft._modified = True
            draft._prepare_copy()
            draft = draft._parent

    def _draft_child(self, key: Any, value: Any) -> Any:
        # Only snapshot containers need drafting; values assigned during this
        # edit are already plain mutable objects or drafts.
        if isinstance(value, (FrozenDict, FrozenList)):
            self._prepare_copy()
            child = self._session.draft(value, parent=self)
            self._copy[key] = child
            return child
        return value

    def _is_lineage_child(self, value: Any, old: Any) -> bool:
        return (
            isinstance(value, _Draft) and value._parent is self and value._base is old
        )

    def _finalize(self) -> Any:
        if self._result is _UNSET:
            self._result = self._build() if self._modified else self._base
        return self._result

    def _shallow_copy(self, base):
        raise NotImplementedError

    def _build(self) -> Any:
        raise NotImplementedError

    def _diff(self, path: Path, patches: List[Patch]) -> None:
        raise NotImplementedError

    __hash__ = None


def finalize(value: Any) -> Any:
    """Turn a draft, or plain data that may contain drafts, into a snapshot."""
    if isinstance(value, _Draft):
        return value._finalize()
    if isinstance(value, (FrozenDict, FrozenList)):
        return value
    if isinstance(value, dict):
        return FrozenDict({key: finalize(item) for key, item in value.items()})
    if isinstance(value, list):
        return FrozenList([finalize(item) for item in value])
    return value


def _settle(value: Any, old: Any) -> Any:
    """Finalize ``value``, falling back to ``old`` when nothing really changed."""
    new = finalize(value)
    if (
        old is not MISSING
        and new is not old
        and not isinstance(value, _Draft)
        and same_value(old, new)
    ):
        return old
    return new


class DraftDict(_Draft, MutableMapping):
    """Mutable draft of a snapshot mapping."""

    __slots__ = ()

    def _shallow_copy(self, base):
        return dict(base)

    def __getitem__(self, key):
        self._check()
        return self._draft_child(key, self._source()[key])

    def __setitem__(self, key, value) -> None:
        self._check()
        source = self._source()
        if key in source and source[key] is value:
            return
        self._mark_changed()
        self._copy[key] = value

    def __delitem__(self, key) -> None:
        self._check()
        if key not in self._source():
            raise KeyError(key)
        self._mark_changed()
        del self._copy[key]

    def __contains__(self, key) -> bool:
        self._check()
        return key in self._source()

    def __iter__(self):
        self._check()
        return iter(list(self._source()))

    def __len__(self) -> int:
        self._check()
        return len(self._source())

    def __repr__(self) -> str:
        if self._session.finished:
            return "<revoked DraftDict>"
        return f"DraftDict({dict(self._source())!r})"

    def _build(self) -> Any:
        base = self._base
        items = {}
        changed = len(self._copy) != len(base)
        for key, value in self._copy.items():
            old = base.get(key, MISSING)
            new = _settle(value, old)
            if new is not old:
                changed = True
            items[key] = new
        return FrozenDict(items) if changed else base

    def _diff(self, path: Path, patches: List[Patch]) -> None:
        base, result = self._base, self._finalize()
        if result is base:
            return
        for key, new in result.items():
            old = base.get(key, MISSING)
            if old is MISSING:
                patches.append(Patch(PatchOp.ADD, path + (key,), new))
            elif new is not old:
                value = self._copy[key]
                if self._is_lineage_child(value, old):
                    value._diff(path + (key,), patches)
                else:
                    patches.append(Patch(PatchOp.REPLACE, path + (key,), new))
        for key in base:
            if key not in result:
                patches.append(Patch(PatchOp.REMOVE, path + (key,)))


class DraftList(_Draft, MutableSequence):
    """Mutable draft of a snapshot list."""

    __slots__ = ()

    def _shallow_copy(self, base):
        return list(base)

    def __getitem__(self, index):
        self._check()
        source = self._source()
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(source)))]
        value = source[index]
        if index < 0:
            index += len(source)
        return self._draft_child(index, value)

    def __setitem__(self, index, value) -> None:
        self._check()
        if isinstance(index, slice):
            value = list(value)
            self._mark_changed()
            self._copy[index] = value
            return
        if self._source()[index] is value:
            return
        self._mark_changed()
        self._copy[index] = value

    def __delitem__(self, index) -> None:
        self._check()
        size = len(self._source())
        if not isinstance(index, slice) and not -size <= index < size:
            raise IndexError("draft list index out of range")
        self._mark_changed()
        del self._copy[index]

    def __len__(self) -> int:
        self._check()
        return len(self._source())

    def __iter__(self):
        self._check()
        for index in range(len(self._source())):
            yield self[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, (list, DraftList)):
            return NotImplemented
        return len(self) == len(other) and all(a == b for a, b in zip(self, other))

    __hash__ = None

    def __repr__(self) -> str:
        if self._session.finished:
            return "<revoked DraftList>"
        return f"DraftList({list(self._source())!r})"

    def insert(self, index: int, value: Any) -> None:
        self._check()
        self._mark_changed()
        self._copy.insert(index, value)

    def append(self, value: Any) -> None:
        self._check()
        self._mark_changed()
        self._copy.append(value)

    def extend(self, values: Iterable[Any]) -> None:
        self._check()
        values = list(values)
        if values:
            self._mark_changed()
            self._copy.extend(values)

    def pop(self, index: int = -1) -> Any:
        value = self[index]
        self._mark_changed()
        self._copy.pop(index)
        return value

    def clear(self) -> None:
        self._check()
        if self._source():
            self._mark_changed()
            self._copy.clear()

    def reverse(self) -> None:
        self._check()
        self._mark_changed()
        self._copy.reverse()

    def sort(self, *, key: Optional[Callable] = None, reverse: bool = False) -> None:
        self._check()
        self._mark_changed()
        self._copy.sort(key=key, reverse=reverse)

    def _build(self) -> Any:
        base = self._base
        items = []
        changed = len(self._copy) != len(base)
        for index, value in enumerate(self._copy):
            old = base[index] if index < len(base) else MISSING
            new = _settle(value, old)
            if new is not old:
                changed = True
            items.append(new)
        return FrozenList(items) if changed else base

    def _diff(self, path: Path, patches: List[Patch]) -> None:
        base, result = self._base, self._finalize()
        if result is base:
            return
        for index in range(min(len(base), len(result))):
            old, new = base[index], result[index]
            if new is old:
                continue
            value = self._copy[index]
            if self._is_lineage_child(value, old):
                value._diff(path + (index,), patches)
            else:
                patches.append(Patch(PatchOp.REPLACE, path + (index,), new))
        for index in range(len(base), len(result)):
            patches.append(Patch(PatchOp.ADD, path + (index,), result[index]))
        for index in range(len(base) - 1, len(result) - 1, -1):
            patches.append(Patch(PatchOp.REMOVE, path + (index,)))


class EditSession:
    """
    One edit pass over a snapshot.

    The session owns the root draft and every child draft created while the
    pass runs. Several callers may write to ``session.root`` before the pass is
    finished; their changes are folded into a single diff.

    Usage:
        with EditSession(snapshot) as session:
            session.root["count"] = 1
            new_snapshot, patches = session.finish()
    """

    def __init__(self, base: Any):
        self.base = freeze(base)
        self.finished = False
        self.root = self.draft(self.base)

    def draft(self, value: Any, parent: Optional[_Draft] = None) -> Any:
        if isinstance(value, FrozenDict):
            return DraftDict(value, parent, self)
        if isinstance(value, FrozenList):
            return DraftList(value, parent, self)
        return value

    def finish(self, replacement: Any = None) -> Tuple[Any, List[Patch]]:
        """
        Close the pass and compute its result.

        Args:
            replacement: A new root value returned by the mutator, if any

        Returns:
            ``(new_snapshot, patches)``; the snapshot is ``self.base`` itself and
            the patch list is empty when nothing changed

        Raises:
            AmbiguousEditError: If the root draft was modified and a different
                replacement was returned as well
        """
        patches: List[Patch] = []
        if replacement is not None and replacement is not self.root:
            if isinstance(self.root, _Draft) and self.root._modified:
                message = (
                    f"The mutator modified its draft and also returned "
                    f"{replacement!r}. Either edit the draft in place and return "
                    f"None, or return a new root without touching the draft."
                )
                self.finished = True
                raise AmbiguousEditError(message)
            result = finalize(replacement)
            if same_value(self.base, result):
                result = self.base
            else:
                patches.append(Patch(PatchOp.REPLACE, (), result))
        elif isinstance(self.root, _Draft):
            result = self.root._finalize()
            self.root._diff((), patches)
        else:
            result = self.base
        self.finished = True
        logger.debug("Edit pass finished with %d patches", len(patches))
        return result, patches

    def revoke(self) -> None:
        self.finished = True

    def __enter__(self) -> "EditSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.revoke()


def produce_with_patches(
    base: Any, mutator: Callable[[Any], Any]
) -> Tuple[Any, List[Patch]]:
    """
    Run ``mutator`` against a draft of ``base``.

    The mutator either edits the draft in place and returns ``None`` (or the
    draft), or returns a completely new root value. Doing both raises
    ``AmbiguousEditError``, so results of calls such as ``draft["items"].pop()``
    must not be returned.

    Returns:
        ``(new_snapshot, patches)``
    """
    with EditSession(base) as session:
        returned = mutator(session.root)
        return session.finish(returned)
