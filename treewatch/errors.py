"""
Treewatch Exceptions
====================

All errors raised by the store derive from ``TreewatchError`` so callers can
catch the whole family at once. Some of them also derive from the builtin they
resemble (``FrozenStateError`` is a ``TypeError``) so code that already handles
the builtin keeps working.
"""


class TreewatchError(Exception):
    """Base class for every treewatch error."""

    pass


class FrozenStateError(TreewatchError, TypeError):
    """Raised when something tries to write to a snapshot or a tracked view."""

    def __init__(self, message: str = None):
        super().__init__(
            message
            or "Direct modifications on store state are not allowed, use Store.edit()"
        )


class StaleDraftError(TreewatchError, RuntimeError):
    """Raised when a draft is used after the edit that created it has finished."""

    pass


class CascadeLimitError(TreewatchError):
    """Raised when global listeners keep producing patches past the pass cap."""

    def __init__(self, passes: int):
        super().__init__(
            f"Global listeners still produced patches after {passes} cascade passes. "
            f"Listeners must stop editing once the state is stable."
        )
        self.passes = passes


class CascadeListenerError(TreewatchError):
    """Raised when a global listener returns something other than its draft."""

    pass


class ReentrantEditError(TreewatchError, RuntimeError):
    """Raised when edit() is called while the same store is running a cascade."""

    pass


class AmbiguousEditError(TreewatchError, ValueError):
    """Raised when a mutator both edits its draft and returns a new root."""

    pass
