"""
Channel package - Network channel models.

Contains implementations for:
- Lossy, corrupting, in-order channel
"""

from .unreliable import UnreliableChannel, ChannelOutcome

__all__ = [
    'UnreliableChannel',
    'ChannelOutcome'
]
