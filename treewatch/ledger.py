"""
Change Ledger
=============

Remembers which paths the *originating* edit of an update touched, as opposed
to paths that global listeners changed while reacting to it. Listeners receive
``ledger.has`` as their ``changed`` predicate so they can tell "the user changed
X" apart from "X changed because another listener corrected it".

Entries live in a small trie. Marking a path drops any entries below it, since
replacing a value replaces everything inside it; removing a path drops the path
and its whole subtree.
"""

import logging
from typing import Dict, Iterable

from .patches import Patch, PatchOp
from .paths import Key, to_path

logger = logging.getLogger(__name__)


class _LedgerNode:
    __slots__ = ("children", "marked")

    def __init__(self):
        self.children: Dict[Key, "_LedgerNode"] = {}
        self.marked = False


class ChangeLedger:
    """
    Persistent set of directly edited paths.

    ``has(path)`` is true when the path was marked, when one of its ancestors
    was marked (the value at the path was replaced along with it), or when
    something below it was marked (the value at the path changed inside).
    """

    def __init__(self):
        self._root = _LedgerNode()

    def record(self, patches: Iterable[Patch]) -> None:
        """Mark ``add``/``replace`` targets and forget ``remove`` targets."""
        for patch in patches:
            if patch.op == PatchOp.REMOVE:
                self.clear(patch.path)
            else:
                self.mark(patch.path)
        logger.debug("Ledger updated from originating edit")

    def mark(self, path: Iterable[Key]) -> None:
        node = self._root
        for key in to_path(path):
            node = node.children.setdefault(key, _LedgerNode())
        node.marked = True
        node.children.clear()

    def clear(self, path: Iterable[Key]) -> None:
        path = to_path(path)
        if not path:
            self._root = _LedgerNode()
            return
        trail = [self._root]
        for key in path:
            node = trail[-1].children.get(key)
            if node is None:
                return
            trail.append(node)

        del trail[-2].children[path[-1]]
        # Ancestors left with no marks below them no longer record anything.
        for depth in range(len(path) - 1, 0, -1):
            node = trail[depth]
            if node.marked or node.children:
                break
            del trail[depth - 1].children[path[depth - 1]]

    def has(self, path: Iterable[Key]) -> bool:
        node = self._root
        if node.marked:
            return True
        for key in to_path(path):
            node = node.children.get(key)
            if node is None:
                return False
            if node.marked:
                return True
        return bool(node.children)

    def reset(self) -> None:
        """Forget every entry."""
        self._root = _LedgerNode()

    def __contains__(self, path) -> bool:
        return self.has(path)
