"""
Notification Resolver
=====================

Turns the patches of one or more edits into the set of callbacks that must run.

A patch only says "this location changed", but observers may have registered
several levels deeper than any patch reaches (``items/0/name`` when the whole
``items`` list was replaced), or may depend on a value derived from a whole
container (its length, its iteration order). For every patch, with ``p`` the
patch path and ``q`` its parent, judged against the snapshot after the edit:

1. ``p`` is the root: everything is stale.
2. ``q`` holds a list: notify observers of ``q`` itself, observers of derived
   views of ``q`` (any symbolic ``ViewKey`` or method-name key registered under
   it), and ``p`` with everything below it.
3. ``q`` holds a mapping and ``p`` now holds a container: widen to ``q`` and
   everything below it. If a key appeared or disappeared, observers of derived
   views of ``q`` (``len``, iteration) are stale too.
4. Otherwise ``p`` and everything below it. Nothing can live below a scalar or
   a missing value, so registrations there are stale as well.

A parent that no longer exists widens to the parent.

Method results are copies of a whole container, so a method read such as
``view["m"].copy()`` is stale after any change below ``m``. Every ancestor of
``p`` also notifies the method keys registered under it: ``ViewKey``s other
than the key-set views (``len``, iteration, membership), and ``str`` keys
registered under a list.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from .patches import Patch, PatchOp
from .paths import MISSING, Path, ViewKey, get_in, is_container, is_sequence
from .registry import Callback, SubscriptionRegistry
from .tracking import CONTAINS, ITER, LEN

logger = logging.getLogger(__name__)

_KEY_SET_VIEWS = frozenset((LEN, ITER, CONTAINS))


@dataclass(frozen=True)
class NotifyPath:
    """A path to notify; ``deep`` also covers every registration below it."""

    path: Path
    deep: bool = True


class NotificationResolver:
    """Resolves patches to registry callbacks."""

    def __init__(self, registry: SubscriptionRegistry):
        self._registry = registry

    def compute_notify_paths(
        self, patches: Iterable[Patch], snapshot: Any
    ) -> List[NotifyPath]:
        """
        Paths whose observers are stale after ``patches``.

        The result is de-duplicated and keeps first-seen order. When the same
        path is needed both exactly and deep, the deep entry wins.
        """
        found: Dict[Path, bool] = {}

        def add(path: Path, deep: bool = True) -> None:
            found[path] = found.get(path, False) or deep

        for patch in patches:
            path = patch.path
            if not path:
                add((), True)
                continue

            parent = path[:-1]
            parent_value = get_in(snapshot, parent)
            if parent_value is MISSING:
                add(parent)
            elif is_sequence(parent_value):
                add(parent, deep=False)
                for key in self._derived_keys(parent, sequence=True):
                    add(parent + (key,), deep=False)
                add(path)
            elif is_container(get_in(parent_value, path[-1:])):
                add(parent)
            else:
                if patch.op in (PatchOp.ADD, PatchOp.REMOVE):
                    for key in self._derived_keys(parent, sequence=False):
                        add(parent + (key,), deep=False)
                add(path)

            for depth in range(len(path)):
                prefix = path[:depth]
                for key in self._method_keys(prefix, snapshot):
                    add(prefix + (key,), deep=False)

        return [NotifyPath(path, deep) for path, deep in found.items()]

    def resolve_callbacks(
        self, patches: Iterable[Patch], snapshot: Any
    ) -> List[Callback]:
        """
        Callbacks to invoke for ``patches``, each exactly once.

        Callbacks are de-duplicated by identity, in the order they are found.
        """
        notify_paths = self.compute_notify_paths(patches, snapshot)
        callbacks: Dict[int, Callback] = {}
        for target in notify_paths:
            for callback in self._registry.lookup(target.path, deep=target.deep):
                callbacks.setdefault(id(callback), callback)
        logger.debug(
            "Resolved %d notify paths to %d callbacks",
            len(notify_paths),
            len(callbacks),
        )
        return list(callbacks.values())

    def _derived_keys(self, parent: Path, sequence: bool) -> List[Any]:
        keys = []
        for key in self._registry.child_keys(parent):
            if isinstance(key, ViewKey) or (sequence and isinstance(key, str)):
                keys.append(key)
        return keys

    def _method_keys(self, prefix: Path, snapshot: Any) -> List[Any]:
        keys = []
        sequence = None
        for key in self._registry.child_keys(prefix):
            if isinstance(key, ViewKey):
                if key not in _KEY_SET_VIEWS:
                    keys.append(key)
            elif isinstance(key, str):
                if sequence is None:
                    sequence = is_sequence(get_in(snapshot, prefix))
                if sequence:
                    keys.append(key)
        return keys
