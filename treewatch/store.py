"""
Treewatch Store - Fine-Grained Reactive State Tree
==================================================

A ``Store`` holds one immutable state tree and tells observers about exactly the
changes they depend on.

Core Operations
---------------

- ``get_snapshot()``: the current immutable tree.
- ``edit(mutator)``: run ``mutator`` against a draft of the tree, commit the
  result, let global listeners react, then notify observers.
- ``flush()``: notify observers about edits made with ``notify=False``.
- ``register(paths, callback)``: call ``callback(snapshot)`` whenever one of
  ``paths`` (or anything above or below them) may have changed.
- ``listen_global(listener)``: react to every patch of every edit, with the
  chance to correct the state inside the same update.

Basic Usage
-----------

```python
from treewatch import Store

store = Store({"name": "a", "items": [{"id": 1, "v": "x"}]})

def on_value(snapshot):
    print("value is now", snapshot["items"][0]["v"])

unsubscribe = store.register([("items", 0, "v")], on_value)

def set_value(draft):
    draft["items"][0]["v"] = "y"

store.edit(set_value)  # prints: value is now y
```

Automatic Dependencies
----------------------

``watch`` runs a selector against a tracked view, subscribes to exactly what it
read, and re-runs it whenever that changes:

```python
watcher = store.watch(lambda state: len(state["items"]), print)
store.edit(lambda draft: draft["items"].append({"id": 2, "v": "z"}))  # prints 2
```

Global Listeners
----------------

Global listeners see every patch of an update, including the ones other
listeners produced, and edit ``event.form`` in place:

```python
def keep_total(event):
    if event.patch.path[:1] == ("items",):
        event.form["total"] = len(event.form["items"])

store.listen_global(keep_total)
```

``event.changed(path)`` tells whether the originating edit touched ``path``,
which lets a listener leave alone what the user just typed.

Batching
--------

```python
with store.batch():
    store.edit(first)
    store.edit(second)
# one notification round here
```
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple

from .cascade import CascadeRunner, GlobalListener
from .draft import produce_with_patches
from .errors import ReentrantEditError
from .ledger import ChangeLedger
from .patches import Patch
from .paths import Key, Path
from .registry import Callback, SubscriptionRegistry, Unsubscribe
from .resolver import NotificationResolver
from .snapshot import freeze
from .tracking import Tracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreOptions:
    """
    Store-wide defaults.

    Attributes:
        notify: Whether ``edit`` notifies observers right away
        record_change: Whether ``edit`` writes its patches into the change ledger
        max_cascade_passes: Cap on global listener passes per edit, ``None`` for no cap
        view_cache_size: Nested views each tracker keeps for reuse
    """

    notify: bool = True
    record_change: bool = True
    max_cascade_passes: Optional[int] = 100
    view_cache_size: int = 1024


class Watcher:
    """
    Selector re-evaluated whenever the state it read changes.

    ``value`` holds the latest selector result. Calling the watcher (or
    ``close()``) stops it.
    """

    def __init__(
        self,
        store: "Store",
        selector: Callable[[Any], Any],
        callback: Optional[Callable[[Any], None]] = None,
    ):
        self._store = store
        self._selector = selector
        self._callback = callback
        self._unregister: Optional[Unsubscribe] = None
        self.active = True
        self.dependencies: List[Path] = []
        self.value = self._run()

    def _run(self) -> Any:
        tracker = self._store.track()
        value = self._selector(tracker.root)
        if self._unregister is not None:
            self._unregister()
        self.dependencies = tracker.accessed
        self._unregister = self._store.register(self.dependencies, self._on_change)
        return value

    def _on_change(self, snapshot: Any) -> None:
        if not self.active:
            return
        self.value = self._run()
        if self._callback is not None:
            self._callback(self.value)

    def close(self) -> None:
        self.active = False
        if self._unregister is not None:
            self._unregister()
            self._unregister = None

    __call__ = close


class Store:
    """
    Reactive container for one immutable state tree.

    Args:
        initial: Initial state; plain dicts and lists are copied and frozen
        listeners: Global listeners to install right away
        options: Store-wide defaults
    """

    def __init__(
        self,
        initial: Any = None,
        listeners: Optional[Iterable[GlobalListener]] = None,
        options: Optional[StoreOptions] = None,
    ):
        self.options = options or StoreOptions()
        self._snapshot = freeze({} if initial is None else initial)
        self._listeners: Tuple[GlobalListener, ...] = tuple(listeners or ())
        self._ledger = ChangeLedger()
        self._registry = SubscriptionRegistry()
        self._resolver = NotificationResolver(self._registry)
        self._cascade = CascadeRunner(self._ledger, self.options.max_cascade_passes)
        self._pending: List[Patch] = []
        self._editing = False
        self._batch_depth = 0

    @property
    def snapshot(self) -> Any:
        return self._snapshot

    def get_snapshot(self) -> Any:
        """The current immutable state tree."""
        return self._snapshot

    @property
    def pending_patches(self) -> Tuple[Patch, ...]:
        """Patches committed but not yet notified."""
        return tuple(self._pending)

    @property
    def ledger(self) -> ChangeLedger:
        return self._ledger

    def changed(self, path: Iterable[Key]) -> bool:
        """Whether a user-initiated edit touched ``path``."""
        return self._ledger.has(path)

    def edit(
        self,
        mutator: Callable[[Any], Any],
        notify: Optional[bool] = None,
        record_change: Optional[bool] = None,
    ) -> List[Patch]:
        """
        Apply ``mutator`` to the state.

        The mutator receives a draft of the current snapshot. It edits the draft
        in place, or returns a whole new state. Global listeners then run to a
        fixpoint, the result becomes the current snapshot, and all patches are
        queued for notification.

        Args:
            mutator: Callable receiving the draft
            notify: Notify observers now (defaults to ``options.notify``; always
                deferred inside ``batch()``)
            record_change: Record the mutator's patches in the change ledger
                (defaults to ``options.record_change``)

        Returns:
            Every patch of this update, corrections included

        Raises:
            ReentrantEditError: If called from a mutator or global listener
            AmbiguousEditError: If the mutator edits the draft and also returns a
                different value
        """
        if self._editing:
            raise ReentrantEditError(
                "Store.edit() was called while another edit of this store is "
                "running. Global listeners must edit event.form instead."
            )
        if notify is None:
            notify = self.options.notify
        if record_change is None:
            record_change = self.options.record_change

        self._editing = True
        try:
            snapshot, patches = produce_with_patches(self._snapshot, mutator)
            if record_change:
                self._ledger.record(patches)
            snapshot, patches = self._cascade.run(snapshot, patches, self._listeners)
        finally:
            self._editing = False

        self._snapshot = snapshot
        self._pending.extend(patches)
        logger.debug("Committed edit with %d patches", len(patches))

        if notify and not self._batch_depth:
            self.flush()
        return patches

    def flush(self) -> None:
        """Notify observers of every patch queued since the last flush."""
        if not self._pending:
            return
        patches, self._pending = self._pending, []
        for callback in self._resolver.resolve_callbacks(patches, self._snapshot):
            callback(self._snapshot)

    def register(
        self, paths: Iterable[Iterable[Key]], callback: Callback
    ) -> Unsubscribe:
        """
        Call ``callback(snapshot)`` when any of ``paths`` may have changed.

        Returns:
            Idempotent function removing the callback from every path
        """
        return self._registry.register(paths, callback)

    def listen_global(self, listener: GlobalListener) -> Unsubscribe:
        """
        Install a global listener, called as ``listener(event)`` for every patch.

        Returns:
            Idempotent function removing the listener
        """
        self._listeners = self._listeners + (listener,)

        def unsubscribe() -> None:
            self._listeners = tuple(
                installed for installed in self._listeners if installed is not listener
            )

        return unsubscribe

    def track(self, base_path: Iterable[Key] = (), on_access=None) -> Tracker:
        """Start a tracked read pass over the current snapshot."""
        return Tracker(
            self._snapshot,
            base_path,
            on_access=on_access,
            cache_size=self.options.view_cache_size,
        )

    def watch(
        self,
        selector: Callable[[Any], Any],
        callback: Optional[Callable[[Any], None]] = None,
    ) -> Watcher:
        """
        Evaluate ``selector`` on a tracked view and keep it up to date.

        The selector's reads become its subscription; each notification re-runs
        it, refreshes the subscription from the new reads and passes the new
        result to ``callback``.
        """
        return Watcher(self, selector, callback)

    @contextmanager
    def batch(self):
        """Defer notification of every edit in the block to one flush at the end."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if not self._batch_depth:
                self.flush()
