"""
Selective Repeat ARQ Sender

This module implements the sender side of the Selective Repeat ARQ protocol,
including sliding window management, the single retransmission timer,
and selective retransmission of unacknowledged packets.
"""

from typing import Optional, List
from dataclasses import dataclass, field
from enum import Enum

from srarq.config import ProtocolConfig
from srarq.utils.logger import SimulationLogger, get_logger
from .backlog import OutboundBacklog
from .network import Entity, NetworkInterface
from .packet import Packet, is_corrupted
from .sequence import SequenceSpace


class WindowFullError(RuntimeError):
    """Raised when a packet is admitted into a full send window."""


class SenderSlotState(Enum):
    """Sender slot lifecycle."""
    EMPTY = 0
    SENT = 1   # Sent, waiting for its ACK
    ACKED = 2  # ACK received, waiting for the base to slide past


@dataclass
class SenderSlot:
    """Outstanding packet held for retransmission."""
    seq: int
    packet: Optional[Packet] = None
    state: SenderSlotState = SenderSlotState.EMPTY

    def clear(self):
        self.packet = None
        self.state = SenderSlotState.EMPTY


@dataclass
class SendWindow:
    """
    Sliding window for the sender.

    Attributes:
        space: Sequence ring
        base: Oldest unacknowledged sequence number
        next_seq: Next sequence number to assign
    """
    space: SequenceSpace
    base: int = 0
    next_seq: int = 0
    slots: List[SenderSlot] = field(default_factory=list)

    def __post_init__(self):
        if not self.slots:
            self.slots = [SenderSlot(seq=i) for i in range(self.space.size)]

    @property
    def size(self) -> int:
        return self.space.window_size

    @property
    def count(self) -> int:
        """Number of sequence numbers in [base, next_seq)."""
        return self.space.offset(self.next_seq, self.base)

    @property
    def is_full(self) -> bool:
        """Check if window is full."""
        return self.count >= self.size

    def in_flight(self, seq: int) -> bool:
        """Check if seq lies in [base, next_seq)."""
        return self.space.in_window(seq, self.base, self.count)

    def slot(self, seq: int) -> SenderSlot:
        return self.slots[seq % self.space.size]

    def outstanding(self) -> List[SenderSlot]:
        """Slots in [base, next_seq) still waiting for their ACK."""
        return [
            self.slot(seq) for seq in self.space.span(self.base, self.next_seq)
            if self.slot(seq).state == SenderSlotState.SENT
        ]


class SRSender:
    """
    Selective Repeat ARQ Sender.

    Implements the sender side of SR-ARQ with:
    - Sliding window management
    - One logical timer standing for the oldest unacknowledged packet
    - Selective retransmission
    - Unbounded backlog for messages that do not fit the window

    Attributes:
        config: Window and timer settings
        window: Send window state
        backlog: Messages waiting for window space
        network: Channel/timer collaborator
    """

    def __init__(
        self,
        network: NetworkInterface,
        config: Optional[ProtocolConfig] = None,
        entity: Entity = Entity.A,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR sender.

        Args:
            network: Collaborator used to send packets and drive the timer
            config: Protocol settings (defaults from srarq.config)
            entity: Entity id passed to the network
            logger: Logger (global logger if None)
        """
        self.config = config or ProtocolConfig()
        self.network = network
        self.entity = entity
        self.logger = logger or get_logger()

        self.space = SequenceSpace(self.config.seqspace, self.config.window_size)
        self.backlog = OutboundBacklog()
        self.init()

    def init(self):
        """Reset sender to its initial state."""
        self.window = SendWindow(space=self.space)
        self.backlog.clear()
        self.timer_running = False

        # Statistics
        self.messages_admitted = 0
        self.packets_sent = 0
        self.retransmissions = 0
        self.acks_received = 0
        self.new_acks = 0
        self.duplicate_acks = 0
        self.corrupted_acks = 0
        self.window_full = 0
        self.timeouts = 0

    reset = init

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def on_application_send(self, message: bytes):
        """
        Accept a message from the application layer.

        The message is queued and admitted as soon as the window has room.

        Args:
            message: PAYLOAD_SIZE bytes
        """
        self.backlog.add(message)
        if self.window.is_full:
            self.window_full += 1
            self.logger.window_full(self.backlog.count)
        self._drain_backlog()

    def on_packet_received(self, packet: Packet) -> bool:
        """Process a packet from the channel (always an ACK for the sender)."""
        return self.on_ack(packet)

    def on_timer_expired(self):
        """Process expiry of the retransmission timer."""
        self.on_timeout()

    # ------------------------------------------------------------------
    # Protocol operations
    # ------------------------------------------------------------------

    def admit(self, message: bytes) -> Packet:
        """
        Send a message as a new packet.

        Args:
            message: PAYLOAD_SIZE bytes

        Returns:
            The transmitted packet

        Raises:
            WindowFullError: if the window has no free slot
        """
        if self.window.is_full:
            raise WindowFullError(
                f"send window full (base={self.window.base}, "
                f"next={self.window.next_seq})"
            )

        seq = self.window.next_seq
        packet = Packet.create_data_packet(seq, message)

        slot = self.window.slot(seq)
        slot.packet = packet
        slot.state = SenderSlotState.SENT

        self.network.send(self.entity, packet)
        self.packets_sent += 1
        self.messages_admitted += 1
        self.logger.packet_sent(seq, self.entity.name)

        if self.window.base == seq:
            self._start_timer()

        self.window.next_seq = self.space.increment(seq)
        return packet

    def on_ack(self, packet: Packet) -> bool:
        """
        Process a received ACK.

        Args:
            packet: ACK packet from the channel

        Returns:
            True if the ACK acknowledged a packet for the first time
        """
        if is_corrupted(packet):
            self.corrupted_acks += 1
            self.logger.debug("Corrupted ACK received, ignored", "ACK")
            return False

        self.acks_received += 1
        acknum = packet.acknum

        if not self.space.contains(acknum) or not self.window.in_flight(acknum):
            self.duplicate_acks += 1
            self.logger.ack_received(acknum, new=False)
            return False

        slot = self.window.slot(acknum)
        if slot.state != SenderSlotState.SENT:
            self.duplicate_acks += 1
            self.logger.ack_received(acknum, new=False)
            return False

        slot.state = SenderSlotState.ACKED
        self.new_acks += 1
        self.logger.ack_received(acknum, new=True)

        if self._slide_window():
            if self.window.outstanding():
                self._start_timer()
            else:
                self._stop_timer()
            self._drain_backlog()

        return True

    def on_timeout(self) -> List[Packet]:
        """
        Resend every unacknowledged packet in the window.

        Returns:
            Packets that were retransmitted
        """
        self.timeouts += 1
        outstanding = self.window.outstanding()
        self.logger.timeout(len(outstanding))

        resent = []
        for slot in outstanding:
            self.network.send(self.entity, slot.packet)
            self.retransmissions += 1
            self.logger.retransmit(slot.seq)
            resent.append(slot.packet)

        # The timer fired, so it is no longer running
        self.timer_running = False
        self._start_timer()
        return resent

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _slide_window(self) -> bool:
        """Slide the base past consecutive acknowledged slots."""
        moved = False
        while (self.window.count > 0 and
               self.window.slot(self.window.base).state == SenderSlotState.ACKED):
            self.window.slot(self.window.base).clear()
            self.window.base = self.space.increment(self.window.base)
            moved = True

        if moved:
            self.logger.window_update(
                self.window.base, self.window.next_seq, self.window.size
            )
        return moved

    def _drain_backlog(self):
        """Admit queued messages while the window has room."""
        while not self.backlog.is_empty and not self.window.is_full:
            self.admit(self.backlog.pop())

    def _start_timer(self):
        if self.timer_running:
            self.network.stop_timer(self.entity)
        self.network.start_timer(self.entity, self.config.rtt)
        self.timer_running = True

    def _stop_timer(self):
        if self.timer_running:
            self.network.stop_timer(self.entity)
            self.timer_running = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_idle(self) -> bool:
        """Check if nothing is outstanding or queued."""
        return self.window.count == 0 and self.backlog.is_empty

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'base': self.window.base,
            'next_seq': self.window.next_seq,
            'size': self.window.size,
            'count': self.window.count,
            'outstanding': [slot.seq for slot in self.window.outstanding()],
            'timer_running': self.timer_running,
            'backlog': self.backlog.count
        }

    def get_statistics(self) -> dict:
        """Get sender statistics."""
        return {
            'messages_admitted': self.messages_admitted,
            'packets_sent': self.packets_sent,
            'retransmissions': self.retransmissions,
            'acks_received': self.acks_received,
            'new_acks': self.new_acks,
            'duplicate_acks': self.duplicate_acks,
            'corrupted_acks': self.corrupted_acks,
            'window_full': self.window_full,
            'timeouts': self.timeouts,
            'backlog': self.backlog.count
        }
