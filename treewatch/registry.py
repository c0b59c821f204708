"""
Subscription Registry
=====================

A trie keyed by path segments. Each node keeps the callbacks registered for
exactly that path, so "who listens at ``items/0/name``" is a walk of three
steps and "who listens anywhere below ``items``" is a walk plus a descent.

One callback may be registered under many paths at once; the returned
unsubscribe function removes it from all of them and may be called any number
of times. Nodes that end up with no callbacks and no children are pruned.
"""

import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .paths import Key, Path, to_path

logger = logging.getLogger(__name__)

Callback = Callable[..., None]
Unsubscribe = Callable[[], None]


class _RegistryNode:
    __slots__ = ("children", "callbacks")

    def __init__(self):
        self.children: Dict[Key, "_RegistryNode"] = {}
        self.callbacks: List[Callback] = []

    def is_empty(self) -> bool:
        return not self.children and not self.callbacks


class SubscriptionRegistry:
    """Path trie mapping state locations to interested callbacks."""

    def __init__(self):
        self._root = _RegistryNode()

    def register(
        self, paths: Iterable[Iterable[Key]], callback: Callback
    ) -> Unsubscribe:
        """
        Register ``callback`` under every path in ``paths``.

        Returns:
            A function that removes this registration; calling it again is a no-op
        """
        registered = [to_path(path) for path in paths]
        for path in registered:
            self._node(path, create=True).callbacks.append(callback)
        logger.debug("Registered %r under %d paths", callback, len(registered))

        active = True

        def unsubscribe() -> None:
            nonlocal active
            if not active:
                return
            active = False
            for path in registered:
                self.unregister(path, callback)

        return unsubscribe

    def unregister(self, path: Iterable[Key], callback: Callback) -> bool:
        """Remove one registration of ``callback`` at ``path``; True if found."""
        path = to_path(path)
        trail = [self._root]
        for key in path:
            node = trail[-1].children.get(key)
            if node is None:
                return False
            trail.append(node)

        callbacks = trail[-1].callbacks
        for index, registered in enumerate(callbacks):
            if registered is callback:
                del callbacks[index]
                break
        else:
            return False

        # Prune nodes that no longer lead to any callback.
        for depth in range(len(path), 0, -1):
            if not trail[depth].is_empty():
                break
            del trail[depth - 1].children[path[depth - 1]]
        return True

    def lookup(self, path: Iterable[Key], deep: bool = False) -> List[Callback]:
        """
        Callbacks registered at ``path``, plus every descendant's if ``deep``.

        Missing paths yield an empty list.
        """
        node = self._node(to_path(path))
        if node is None:
            return []
        if not deep:
            return list(node.callbacks)
        return list(self._descend(node))

    def child_keys(self, path: Iterable[Key]) -> List[Key]:
        """Keys of the nodes directly below ``path``."""
        node = self._node(to_path(path))
        return list(node.children) if node is not None else []

    def has_subscribers(self, path: Iterable[Key]) -> bool:
        node = self._node(to_path(path))
        return node is not None and bool(node.callbacks)

    def clear(self) -> None:
        self._root = _RegistryNode()

    def __len__(self) -> int:
        """Total number of registrations."""
        return sum(1 for _ in self._descend(self._root))

    def _node(self, path: Path, create: bool = False) -> Optional[_RegistryNode]:
        node = self._root
        for key in path:
            child = node.children.get(key)
            if child is None:
                if not create:
                    return None
                child = node.children[key] = _RegistryNode()
            node = child
        return node

    def _descend(self, node: _RegistryNode) -> Iterator[Callback]:
        stack = [node]
        while stack:
            current = stack.pop()
            yield from current.callbacks
            stack.extend(reversed(list(current.children.values())))
