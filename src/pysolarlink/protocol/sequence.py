"""Request sequence numbers for outgoing envelopes."""

from __future__ import annotations

SEQUENCE_MASK = 0xFFFF


class SequenceCounter:
    """Monotonically increasing, non-zero 16-bit request identifiers.

    The counter wraps from 0xFFFF back to 1; zero is never handed out.
    Each session owns its own counter and keeps it across reconnects.
    """

    def __init__(self, initial: int = 0) -> None:
        if not 0 <= initial <= SEQUENCE_MASK:
            raise ValueError(f"initial sequence must be 0..65535, got {initial}")
        self._value = initial

    @property
    def value(self) -> int:
        """Get the last issued sequence number (0 before the first call)."""
        return self._value

    def next(self) -> int:
        """Advance the counter and return the new sequence number."""
        value = (self._value + 1) & SEQUENCE_MASK
        if value == 0:
            value = 1
        self._value = value
        return value

    def __repr__(self) -> str:
        return f"SequenceCounter(value={self._value})"


__all__ = ["SequenceCounter"]
