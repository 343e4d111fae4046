"""
Collaborator interface seen by the protocol entities.

The sender and receiver never talk to the channel, the timer or the
application directly; they call the methods below on whatever network
object they were constructed with (the emulator, or a recorder in tests).
"""

from enum import IntEnum


class Entity(IntEnum):
    """Protocol entity identifiers."""
    A = 0  # Sender side
    B = 1  # Receiver side


class NetworkInterface:
    """Operations the protocol consumes from its environment."""

    def send(self, entity: Entity, packet):
        """Hand a packet to the channel."""
        raise NotImplementedError

    def start_timer(self, entity: Entity, duration: float):
        """Start the entity's single timer."""
        raise NotImplementedError

    def stop_timer(self, entity: Entity):
        """Stop the entity's timer."""
        raise NotImplementedError

    def deliver(self, entity: Entity, payload: bytes):
        """Hand a payload to the application layer."""
        raise NotImplementedError
