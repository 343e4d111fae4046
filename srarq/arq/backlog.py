"""
Outbound Backlog

Unbounded FIFO of application messages waiting for space in the
sender's window.
"""

from collections import deque
from typing import Optional


class OutboundBacklog:
    """
    Queue of messages not yet admitted into the send window.

    Messages are never dropped; they leave the backlog only when the
    sender admits them.
    """

    def __init__(self):
        self.buffer: deque[bytes] = deque()
        self.total_added = 0
        self.total_admitted = 0

    def add(self, message: bytes):
        """
        Append a message.

        Args:
            message: Payload from the application layer
        """
        self.buffer.append(message)
        self.total_added += 1

    def peek(self) -> Optional[bytes]:
        """Get the oldest message without removing it."""
        if not self.buffer:
            return None
        return self.buffer[0]

    def pop(self) -> Optional[bytes]:
        """
        Remove the oldest message.

        Returns:
            Message bytes or None if empty
        """
        if not self.buffer:
            return None
        self.total_admitted += 1
        return self.buffer.popleft()

    @property
    def is_empty(self) -> bool:
        """Check if backlog is empty."""
        return len(self.buffer) == 0

    @property
    def count(self) -> int:
        """Get number of queued messages."""
        return len(self.buffer)

    def clear(self):
        """Clear the backlog."""
        self.buffer.clear()
        self.total_added = 0
        self.total_admitted = 0

    def __len__(self) -> int:
        return len(self.buffer)
