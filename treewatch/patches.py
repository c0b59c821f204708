"""
Patches
=======

A ``Patch`` describes one atomic difference between two snapshots: a value
added at a path, replaced at a path, or removed from a path. Applying the patch
list of an edit, in order, to the snapshot before the edit reproduces the
snapshot after it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from .paths import MISSING, Path
from .snapshot import FrozenDict, FrozenList, freeze


class PatchOp(str, Enum):
    """Kind of change a patch carries."""

    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class Patch:
    """Immutable diff entry between two snapshots."""

    op: PatchOp
    path: Path
    value: Any = MISSING

    @property
    def parent(self) -> Path:
        return self.path[:-1]

    @property
    def key(self) -> Any:
        return self.path[-1] if self.path else MISSING

    @property
    def is_removal(self) -> bool:
        return self.op == PatchOp.REMOVE

    def __repr__(self) -> str:
        location = "/".join(str(key) for key in self.path) or "<root>"
        if self.op == PatchOp.REMOVE:
            return f"Patch(remove {location})"
        return f"Patch({self.op.value} {location} = {self.value!r})"


def _apply_at(node: Any, path: Path, patch: Patch) -> Any:
    """Return a copy of ``node`` with ``patch`` applied below it."""
    key = path[0]
    if len(path) > 1:
        child = _apply_at(node[key], path[1:], patch)
        if isinstance(node, dict):
            return FrozenDict({**node, key: child})
        items = list(node)
        items[key] = child
        return FrozenList(items)

    if isinstance(node, dict):
        items = dict(node)
        if patch.op == PatchOp.REMOVE:
            del items[key]
        else:
            items[key] = freeze(patch.value)
        return FrozenDict(items)

    items = list(node)
    if patch.op == PatchOp.ADD:
        items.insert(key, freeze(patch.value))
    elif patch.op == PatchOp.REPLACE:
        items[key] = freeze(patch.value)
    else:
        del items[key]
    return FrozenList(items)


def apply_patch(snapshot: Any, patch: Patch) -> Any:
    """Apply one patch, copying only the containers along its path."""
    if not patch.path:
        if patch.op == PatchOp.REMOVE:
            return None
        return freeze(patch.value)
    return _apply_at(snapshot, patch.path, patch)


def apply_patches(snapshot: Any, patches: Iterable[Patch]) -> Any:
    """
    Replay a patch list against a snapshot.

    Sequence ``add`` patches insert at their index, ``remove`` patches delete
    the index, mapping patches set or drop the key. Containers off the patched
    paths are shared with the input snapshot.

    Args:
        snapshot: The snapshot the patches were computed against
        patches: Patches in the order they were produced

    Returns:
        A new snapshot
    """
    for patch in patches:
        snapshot = apply_patch(snapshot, patch)
    return snapshot
