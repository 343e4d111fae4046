"""
Packet Structure for Selective Repeat ARQ Protocol

This module defines the fixed-size packet exchanged between the sender
and the receiver, the additive checksum used to detect corruption,
and the wire encoding.
"""

import struct
from dataclasses import dataclass

from srarq.config import NOTINUSE, PAYLOAD_SIZE


def compute_checksum(packet: 'Packet') -> int:
    """
    Compute the additive checksum of a packet.

    The checksum field itself is not part of the sum.

    Args:
        packet: Packet to checksum

    Returns:
        seqnum + acknum + sum of payload bytes
    """
    return packet.seqnum + packet.acknum + sum(packet.payload)


def is_corrupted(packet: 'Packet') -> bool:
    """Check whether the stored checksum disagrees with the packet contents."""
    return packet.checksum != compute_checksum(packet)


def make_payload(data) -> bytes:
    """
    Fit application data into a fixed-size payload.

    Args:
        data: str or bytes; longer data is truncated, shorter is NUL padded

    Returns:
        PAYLOAD_SIZE bytes
    """
    if isinstance(data, str):
        data = data.encode()
    return bytes(data[:PAYLOAD_SIZE]).ljust(PAYLOAD_SIZE, b'\x00')


@dataclass(frozen=True)
class Packet:
    """
    Transport packet.

    Wire Layout (32 bytes):
        - Sequence Number: 4 bytes (signed int)
        - ACK Number: 4 bytes (signed int, NOTINUSE for data packets)
        - Checksum: 4 bytes (signed int)
        - Payload: 20 bytes

    Attributes:
        seqnum: Sequence number
        acknum: Acknowledgment number
        checksum: Additive checksum
        payload: Fixed-size payload
    """

    seqnum: int
    acknum: int
    checksum: int
    payload: bytes

    WIRE_FORMAT = '!iii20s'  # Network byte order
    WIRE_SIZE = struct.calcsize(WIRE_FORMAT)

    def __post_init__(self):
        """Validate packet after initialization."""
        if len(self.payload) != PAYLOAD_SIZE:
            raise ValueError(
                f"Payload must be exactly {PAYLOAD_SIZE} bytes, "
                f"got {len(self.payload)}"
            )

    @property
    def is_ack(self) -> bool:
        """Check if this packet carries an acknowledgment."""
        return self.acknum != NOTINUSE

    def serialize(self) -> bytes:
        """Serialize the packet to its wire form."""
        return struct.pack(
            self.WIRE_FORMAT,
            self.seqnum,
            self.acknum,
            self.checksum,
            self.payload
        )

    @classmethod
    def deserialize(cls, data: bytes) -> 'Packet':
        """
        Deserialize wire bytes to a Packet.

        The checksum is taken as received; use is_corrupted() to verify.

        Args:
            data: Serialized packet bytes

        Returns:
            Packet

        Raises:
            ValueError: if data is not exactly WIRE_SIZE bytes
        """
        if len(data) != cls.WIRE_SIZE:
            raise ValueError(
                f"Packet must be {cls.WIRE_SIZE} bytes, got {len(data)}"
            )
        seqnum, acknum, checksum, payload = struct.unpack(cls.WIRE_FORMAT, data)
        return cls(seqnum=seqnum, acknum=acknum, checksum=checksum, payload=payload)

    @classmethod
    def _with_checksum(cls, seqnum: int, acknum: int, payload: bytes) -> 'Packet':
        unchecked = cls(seqnum=seqnum, acknum=acknum, checksum=0, payload=payload)
        return cls(
            seqnum=seqnum,
            acknum=acknum,
            checksum=compute_checksum(unchecked),
            payload=payload
        )

    @classmethod
    def create_data_packet(cls, seqnum: int, payload: bytes) -> 'Packet':
        """
        Create a DATA packet.

        Args:
            seqnum: Sequence number
            payload: PAYLOAD_SIZE bytes of application data

        Returns:
            DATA packet with its checksum set
        """
        return cls._with_checksum(seqnum, NOTINUSE, payload)

    @classmethod
    def create_ack_packet(cls, acknum: int, seqnum: int = 0) -> 'Packet':
        """
        Create an ACK packet.

        Args:
            acknum: Sequence number being acknowledged
            seqnum: Sequence number of the ACK itself

        Returns:
            ACK packet with its checksum set
        """
        return cls._with_checksum(seqnum, acknum, b'0' * PAYLOAD_SIZE)

    def __repr__(self) -> str:
        kind = "ACK" if self.is_ack else "DATA"
        return (f"Packet(type={kind}, seq={self.seqnum}, "
                f"ack={self.acknum}, checksum={self.checksum})")
