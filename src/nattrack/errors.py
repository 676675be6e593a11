from __future__ import annotations


class NattrackError(RuntimeError):
    """Base class for errors raised by nattrack."""


class SnapshotError(NattrackError):
    """The connection-tracking source could not be read."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"cannot read conntrack table {source}: {reason}")
        self.source = source
        self.reason = reason


class InterfaceEnumerationError(NattrackError):
    """Local interface addresses could not be enumerated."""
