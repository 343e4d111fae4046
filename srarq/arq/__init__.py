"""
ARQ package - Selective Repeat ARQ protocol components.

Contains implementations for:
- Packet structure, checksum and encoding
- Sequence number arithmetic
- Sender with window management and backlog
- Receiver with out-of-order buffering
"""

from .packet import Packet, compute_checksum, is_corrupted, make_payload
from .sequence import SequenceSpace
from .network import Entity, NetworkInterface
from .backlog import OutboundBacklog
from .sender import SRSender, SenderSlotState, WindowFullError
from .receiver import SRReceiver, ReceiverSlotState

__all__ = [
    'Packet',
    'compute_checksum',
    'is_corrupted',
    'make_payload',
    'SequenceSpace',
    'Entity',
    'NetworkInterface',
    'OutboundBacklog',
    'SRSender',
    'SenderSlotState',
    'WindowFullError',
    'SRReceiver',
    'ReceiverSlotState'
]
