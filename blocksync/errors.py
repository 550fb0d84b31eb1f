"""Exceptions raised by blocksync components.

Input problems (unknown blocks, bad spans, cycles) never raise; they are
reported as diagnostics. These exceptions cover persistence failures and
misuse of the batch protocol.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Wraps sqlite errors from the registry database with context."""

    def __init__(self, operation: str, cause: Exception) -> None:
        self.operation = operation
        super().__init__(f"registry {operation} failed: {cause}")
        self.__cause__ = cause


class BatchIncompleteError(RuntimeError):
    """Link resolution was requested before the batch barrier was signalled."""


class BatchClosedError(RuntimeError):
    """A document was submitted to a batch that has already been completed."""


class AssetCopyError(Exception):
    """An asset store could not copy a source asset."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"could not copy {url}: {reason}")
