"""
Selective Repeat ARQ Receiver

This module implements the receiver side of the Selective Repeat ARQ protocol,
including sliding window management, out-of-order buffering, and ACK generation.
"""

from typing import Optional, List
from dataclasses import dataclass, field
from enum import Enum

from srarq.config import ProtocolConfig
from srarq.utils.logger import SimulationLogger, get_logger
from .network import Entity, NetworkInterface
from .packet import Packet, is_corrupted
from .sequence import SequenceSpace


class ReceiverSlotState(Enum):
    """Receiver slot lifecycle."""
    NOT_RECEIVED = 0
    BUFFERED = 1


@dataclass
class ReceiverSlot:
    """Buffer slot for a packet ahead of the receive base."""
    seq: int
    payload: Optional[bytes] = None
    state: ReceiverSlotState = ReceiverSlotState.NOT_RECEIVED

    def clear(self):
        self.payload = None
        self.state = ReceiverSlotState.NOT_RECEIVED


@dataclass
class ReceiveWindow:
    """
    Sliding window for the receiver.

    Attributes:
        space: Sequence ring
        base: Next expected in-order sequence number
    """
    space: SequenceSpace
    base: int = 0
    slots: List[ReceiverSlot] = field(default_factory=list)

    def __post_init__(self):
        if not self.slots:
            self.slots = [ReceiverSlot(seq=i) for i in range(self.space.size)]

    @property
    def size(self) -> int:
        return self.space.window_size

    def in_window(self, seq: int) -> bool:
        """Check if sequence number is within the receive window."""
        return self.space.in_window(seq, self.base, self.size)

    def is_before_window(self, seq: int) -> bool:
        """Check if sequence number was already delivered."""
        return self.space.is_behind(seq, self.base)

    def slot(self, seq: int) -> ReceiverSlot:
        return self.slots[seq % self.space.size]

    def buffered(self) -> List[int]:
        """Sequence numbers buffered but not yet delivered."""
        return [
            seq for seq in self.space.span(
                self.base, self.space.increment(self.base, self.size)
            )
            if self.slot(seq).state == ReceiverSlotState.BUFFERED
        ]


class SRReceiver:
    """
    Selective Repeat ARQ Receiver.

    Implements the receiver side of SR-ARQ with:
    - Sliding window management
    - Out-of-order packet buffering
    - Individual (selective) ACKs
    - In-order delivery to the application

    Attributes:
        config: Window settings
        window: Receive window state
        network: Channel/application collaborator
    """

    def __init__(
        self,
        network: NetworkInterface,
        config: Optional[ProtocolConfig] = None,
        entity: Entity = Entity.B,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR receiver.

        Args:
            network: Collaborator used to send ACKs and deliver payloads
            config: Protocol settings (defaults from srarq.config)
            entity: Entity id passed to the network
            logger: Logger (global logger if None)
        """
        self.config = config or ProtocolConfig()
        self.network = network
        self.entity = entity
        self.logger = logger or get_logger()

        self.space = SequenceSpace(self.config.seqspace, self.config.window_size)
        self.init()

    def init(self):
        """Reset receiver to its initial state."""
        self.window = ReceiveWindow(space=self.space)
        # Sequence number stamped on outgoing ACKs
        self.ack_seqnum = 1

        # Statistics
        self.packets_received = 0
        self.packets_delivered = 0
        self.duplicate_packets = 0
        self.out_of_order_packets = 0
        self.corrupted_packets = 0
        self.stale_packets = 0
        self.discarded_packets = 0
        self.acks_sent = 0

    reset = init

    def on_packet_received(self, packet: Packet) -> Optional[Packet]:
        """Process a packet from the channel."""
        return self.on_packet(packet)

    def on_packet(self, packet: Packet) -> Optional[Packet]:
        """
        Process a received DATA packet.

        Args:
            packet: Packet from the channel

        Returns:
            ACK packet sent in response, or None
        """
        if is_corrupted(packet):
            self.corrupted_packets += 1
            self.logger.packet_received(packet.seqnum, self.entity.name, valid=False)
            return None

        self.packets_received += 1
        seq = packet.seqnum
        self.logger.packet_received(seq, self.entity.name, valid=True)

        if not self.space.contains(seq):
            self.discarded_packets += 1
            self.logger.debug(f"Packet {seq} outside sequence space, discarded", "RX")
            return None

        if self.window.in_window(seq):
            slot = self.window.slot(seq)
            if slot.state == ReceiverSlotState.NOT_RECEIVED:
                slot.payload = packet.payload
                slot.state = ReceiverSlotState.BUFFERED
                if seq != self.window.base:
                    self.out_of_order_packets += 1
            else:
                self.duplicate_packets += 1
            self._deliver_in_order()
            return self._send_ack(seq)

        if self.window.is_before_window(seq):
            # Our earlier ACK may have been lost
            self.stale_packets += 1
            self.duplicate_packets += 1
            return self._send_ack(seq)

        self.discarded_packets += 1
        self.logger.debug(
            f"Packet {seq} ahead of window (base={self.window.base}), discarded",
            "RX"
        )
        return None

    def _deliver_in_order(self):
        """Deliver buffered packets that are now in-order."""
        while True:
            slot = self.window.slot(self.window.base)
            if slot.state != ReceiverSlotState.BUFFERED:
                break

            self.network.deliver(self.entity, slot.payload)
            self.packets_delivered += 1
            self.logger.delivered(slot.seq)

            slot.clear()
            self.window.base = self.space.increment(self.window.base)

    def _send_ack(self, acknum: int) -> Packet:
        """
        Send an ACK for one sequence number.

        Args:
            acknum: Sequence number to acknowledge

        Returns:
            ACK packet
        """
        ack = Packet.create_ack_packet(acknum, seqnum=self.ack_seqnum)
        self.ack_seqnum = self.space.increment(self.ack_seqnum)

        self.network.send(self.entity, ack)
        self.acks_sent += 1
        self.logger.ack_sent(acknum)
        return ack

    @property
    def expected(self) -> int:
        """Next in-order sequence number."""
        return self.window.base

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'base': self.window.base,
            'size': self.window.size,
            'buffered': self.window.buffered()
        }

    def get_statistics(self) -> dict:
        """Get receiver statistics."""
        return {
            'packets_received': self.packets_received,
            'packets_delivered': self.packets_delivered,
            'duplicate_packets': self.duplicate_packets,
            'out_of_order_packets': self.out_of_order_packets,
            'corrupted_packets': self.corrupted_packets,
            'stale_packets': self.stale_packets,
            'discarded_packets': self.discarded_packets,
            'acks_sent': self.acks_sent
        }
