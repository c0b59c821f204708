"""
Cascade Runner
==============

Global listeners react to every patch of an update and may correct the state
while doing so. Their corrections are patches too, and other listeners must see
them, so the runner iterates until a pass produces nothing new:

    frontier = patches of the originating edit
    while frontier:
        open one edit pass over the working snapshot
        call every listener once per frontier patch, all sharing the pass draft
        frontier = patches of that pass

All patches of all passes are returned in order, so notification can cover the
originating edit and every correction together.

Listeners are expected to stop editing once the state is stable. A pass cap
turns a listener loop into a ``CascadeLimitError`` instead of a hang.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from .draft import EditSession
from .errors import CascadeLimitError, CascadeListenerError
from .ledger import ChangeLedger
from .patches import Patch
from .paths import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListenerEvent:
    """
    What a global listener receives for one patch.

    Attributes:
        form: Draft of the working snapshot, shared by every listener of the pass
        patch: The patch being reacted to
        changed: Predicate telling whether the originating edit touched a path
    """

    form: Any
    patch: Patch
    changed: Callable[[Path], bool]


GlobalListener = Callable[[ListenerEvent], Any]


class CascadeRunner:
    """Runs global listeners to a fixpoint."""

    def __init__(self, ledger: ChangeLedger, max_passes: Optional[int] = 100):
        self._ledger = ledger
        self.max_passes = max_passes

    def run(
        self,
        snapshot: Any,
        initial_patches: Iterable[Patch],
        listeners: Sequence[GlobalListener],
    ) -> Tuple[Any, List[Patch]]:
        """
        Fold listener corrections into ``snapshot``.

        Args:
            snapshot: Snapshot produced by the originating edit
            initial_patches: Patches of the originating edit
            listeners: Global listeners, called in order

        Returns:
            ``(final_snapshot, all_patches)``

        Raises:
            CascadeLimitError: If listeners are still editing after ``max_passes``
            CascadeListenerError: If a listener returns something besides its draft
        """
        all_patches: List[Patch] = []
        frontier = list(initial_patches)
        passes = 0

        while frontier:
            all_patches.extend(frontier)
            if not listeners:
                break
            if self.max_passes is not None and passes >= self.max_passes:
                raise CascadeLimitError(passes)
            passes += 1
            if self.max_passes and passes == self.max_passes // 2:
                logger.warning(
                    "Cascade reached %d passes, listeners may be feeding each other",
                    passes,
                )
            snapshot, frontier = self._run_pass(snapshot, frontier, listeners)
            logger.debug("Cascade pass %d produced %d patches", passes, len(frontier))

        return snapshot, all_patches

    def _run_pass(
        self,
        snapshot: Any,
        frontier: List[Patch],
        listeners: Sequence[GlobalListener],
    ) -> Tuple[Any, List[Patch]]:
        with EditSession(snapshot) as session:
            for patch in frontier:
                for listener in listeners:
                    event = ListenerEvent(session.root, patch, self._ledger.has)
                    returned = listener(event)
                    if returned is not None and returned is not session.root:
                        raise CascadeListenerError(
                            f"Global listener {listener!r} returned {returned!r}. "
                            f"Listeners must edit event.form in place."
                        )
            return session.finish()
