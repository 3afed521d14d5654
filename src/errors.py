"""Error taxonomy shared by every mindful component.

``ValidationError``, ``NotFoundError`` and ``StorageError`` surface to the
caller.
``ProviderError`` never does: each AI call site catches it and resolves
it through the fallback analyzer or a static default.
"""

from __future__ import annotations


class MindfulError(Exception):
    """Base error for the mindful package."""


class ValidationError(MindfulError):
    """Raised for malformed caller input (e.g. blank entry content)."""


class NotFoundError(MindfulError):
    """Raised when an entry, prompt or insight is absent or owned by someone else."""

    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident


class ProviderError(MindfulError):
    """Raised when the text-generation provider fails, times out, or returns
    a payload that does not match the expected shape."""


class StorageError(MindfulError):
    """Raised when the journal file cannot be read back.

    The file on disk is left untouched so it can be repaired by hand.
    """
