"""
Treewatch - Fine-Grained Reactive State Trees

An immutable state tree with copy-on-write edits, patch-based diffs and
path-indexed subscriptions that notify only the observers whose reads changed.
"""

from .cascade import CascadeRunner, GlobalListener, ListenerEvent
from .draft import DraftDict, DraftList, EditSession, produce_with_patches
from .errors import (
    AmbiguousEditError,
    CascadeLimitError,
    CascadeListenerError,
    FrozenStateError,
    ReentrantEditError,
    StaleDraftError,
    TreewatchError,
)
from .ledger import ChangeLedger
from .patches import Patch, PatchOp, apply_patch, apply_patches
from .paths import MISSING, Path, ViewKey, get_in, is_container
from .registry import SubscriptionRegistry
from .resolver import NotificationResolver, NotifyPath
from .snapshot import FrozenDict, FrozenList, freeze, same_value, thaw
from .store import Store, StoreOptions, Watcher
from .tracking import TrackedMapping, TrackedSequence, Tracker, wrap

__all__ = [
    # Store
    "Store",
    "StoreOptions",
    "Watcher",
    # Snapshots and edits
    "FrozenDict",
    "FrozenList",
    "freeze",
    "thaw",
    "same_value",
    "DraftDict",
    "DraftList",
    "EditSession",
    "produce_with_patches",
    "Patch",
    "PatchOp",
    "apply_patch",
    "apply_patches",
    # Paths
    "MISSING",
    "Path",
    "ViewKey",
    "get_in",
    "is_container",
    # Reactive machinery
    "ChangeLedger",
    "CascadeRunner",
    "GlobalListener",
    "ListenerEvent",
    "SubscriptionRegistry",
    "NotificationResolver",
    "NotifyPath",
    "Tracker",
    "TrackedMapping",
    "TrackedSequence",
    "wrap",
    # Exceptions
    "TreewatchError",
    "FrozenStateError",
    "StaleDraftError",
    "CascadeLimitError",
    "CascadeListenerError",
    "ReentrantEditError",
    "AmbiguousEditError",
]
