"""
Unreliable Channel Model

This module implements the lossy, corrupting, non-reordering channel
between the two protocol entities. Each direction keeps its own
last-arrival time so that packets leave in the order they entered.
"""

import numpy as np
from dataclasses import replace
from enum import Enum
from typing import Dict, Optional, Tuple

from srarq.config import (
    LOSS_PROBABILITY, CORRUPT_PROBABILITY, ConfigurationError
)
from srarq.arq.network import Entity
from srarq.arq.packet import Packet


class ChannelOutcome(Enum):
    """What the channel did to a packet."""
    DELIVERED = 0
    CORRUPTED = 1
    LOST = 2


class UnreliableChannel:
    """
    Channel that may drop or corrupt packets but never reorders them.

    Corruption overwrites header or payload bytes and leaves the
    checksum field untouched, so the receiver can always detect it.

    Attributes:
        loss_prob: Probability a packet is dropped
        corrupt_prob: Probability a surviving packet is corrupted
        rng: Random number generator
    """

    # Value written over a corrupted header field
    CORRUPT_FIELD_VALUE = 999999

    def __init__(
        self,
        loss_prob: float = LOSS_PROBABILITY,
        corrupt_prob: float = CORRUPT_PROBABILITY,
        seed: Optional[int] = None
    ):
        """
        Initialize the channel.

        Args:
            loss_prob: Probability of losing a packet
            corrupt_prob: Probability of corrupting a packet
            seed: Random seed for reproducibility
        """
        for name, value in (('loss', loss_prob), ('corrupt', corrupt_prob)):
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"{name} probability must be in [0, 1], got {value}"
                )

        self.loss_prob = loss_prob
        self.corrupt_prob = corrupt_prob
        self.rng = np.random.default_rng(seed)

        self.last_arrival: Dict[Entity, float] = {}

        # Statistics tracking
        self.packets_in = 0
        self.packets_lost = 0
        self.packets_corrupted = 0

    def transmit(
        self,
        packet: Packet,
        sender: Entity,
        current_time: float
    ) -> Tuple[ChannelOutcome, Optional[Packet], Optional[float]]:
        """
        Push a packet into the channel.

        Args:
            packet: Packet handed over by the sender entity
            sender: Entity the packet came from
            current_time: Current emulator time

        Returns:
            Tuple of (outcome, packet as it will arrive or None, arrival time or None)
        """
        self.packets_in += 1

        if self.rng.random() < self.loss_prob:
            self.packets_lost += 1
            return ChannelOutcome.LOST, None, None

        outcome = ChannelOutcome.DELIVERED
        if self.rng.random() < self.corrupt_prob:
            self.packets_corrupted += 1
            packet = self.corrupt(packet)
            outcome = ChannelOutcome.CORRUPTED

        arrival = self._arrival_time(sender, current_time)
        return outcome, packet, arrival

    def corrupt(self, packet: Packet) -> Packet:
        """
        Damage a packet in the way the emulated network does.

        75% of the time the first payload byte becomes 'Z' ('Y' if it
        already was 'Z'), otherwise the seqnum or the acknum is overwritten.
        """
        x = self.rng.random()
        if x < 0.75:
            marker = b'Y' if packet.payload[:1] == b'Z' else b'Z'
            return replace(packet, payload=marker + packet.payload[1:])
        if x < 0.875:
            return replace(packet, seqnum=self.CORRUPT_FIELD_VALUE)
        return replace(packet, acknum=self.CORRUPT_FIELD_VALUE)

    def _arrival_time(self, sender: Entity, current_time: float) -> float:
        """Arrival is never earlier than the last packet in flight that way."""
        last = self.last_arrival.get(sender, current_time)
        arrival = max(last, current_time) + 1.0 + 9.0 * self.rng.random()
        self.last_arrival[sender] = arrival
        return arrival

    def get_statistics(self) -> dict:
        """Get channel statistics."""
        return {
            'packets_in': self.packets_in,
            'packets_lost': self.packets_lost,
            'packets_corrupted': self.packets_corrupted,
            'loss_rate': self.packets_lost / self.packets_in if self.packets_in else 0.0,
        }

    def reset(self, seed: Optional[int] = None):
        """Reset channel state and statistics."""
        if seed is not None:
            self.rng = np.random.default_rng(seed)
        self.last_arrival.clear()
        self.packets_in = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
