"""
Sequence Number Arithmetic

Modulo arithmetic over the bounded sequence ring. All window membership
tests made by the sender and the receiver go through in_window().
"""

from srarq.config import ConfigurationError


class SequenceSpace:
    """
    Sequence number ring of a fixed size.

    Attributes:
        size: Ring size (SEQSPACE)
        window_size: Window capacity the ring was validated against
    """

    def __init__(self, size: int, window_size: int):
        """
        Initialize the sequence ring.

        Args:
            size: Ring size
            window_size: Window capacity

        Raises:
            ConfigurationError: if size < 2 * window_size
        """
        if window_size < 1:
            raise ConfigurationError(
                f"window size must be positive, got {window_size}"
            )
        if size < 2 * window_size:
            raise ConfigurationError(
                f"sequence space {size} must be at least twice "
                f"the window size {window_size}"
            )
        self.size = size
        self.window_size = window_size

    def contains(self, seq: int) -> bool:
        """Check if seq is a valid sequence number, 0 <= seq < size."""
        return 0 <= seq < self.size

    def offset(self, seq: int, base: int) -> int:
        """Distance from base forward to seq around the ring."""
        return (seq - base + self.size) % self.size

    def in_window(self, seq: int, base: int, size: int) -> bool:
        """Check if seq lies in [base, base + size) modulo the ring."""
        return self.offset(seq, base) < size

    def increment(self, seq: int, step: int = 1) -> int:
        """Advance a sequence number."""
        return (seq + step) % self.size

    def is_behind(self, seq: int, base: int) -> bool:
        """
        Check if seq falls in the window that precedes base.

        These are sequence numbers the receiver already delivered.
        """
        offset = self.offset(seq, base)
        return offset >= self.window_size and self.size - offset <= self.window_size

    def span(self, base: int, end: int):
        """Yield sequence numbers from base up to, not including, end."""
        seq = base
        while seq != end:
            yield seq
            seq = self.increment(seq)

    def __repr__(self) -> str:
        return f"SequenceSpace(size={self.size}, window_size={self.window_size})"
