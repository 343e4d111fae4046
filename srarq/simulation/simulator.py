"""
Network Emulator - Event-Driven Simulation

This module implements the discrete-event emulator that plays the roles
the protocol core treats as collaborators: the application layer that
produces and consumes messages, the unreliable channel, and the timer.
"""

from typing import Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum
import heapq
import itertools
import time

from srarq.config import (
    WINDOWSIZE, SEQSPACE, RTT, PAYLOAD_SIZE, NUM_MESSAGES,
    LOSS_PROBABILITY, CORRUPT_PROBABILITY, MEAN_INTERARRIVAL,
    MAX_SIMULATION_TIME, RNG_SEED, ConfigurationError, ProtocolConfig
)
from srarq.arq.network import Entity, NetworkInterface
from srarq.arq.packet import Packet
from srarq.arq.sender import SRSender
from srarq.arq.receiver import SRReceiver
from srarq.channel.unreliable import UnreliableChannel, ChannelOutcome
from srarq.simulation.timer import TimerManager
from srarq.utils.metrics import MetricsCollector
from srarq.utils.logger import SimulationLogger, LogLevel


class EventType(Enum):
    """Types of emulation events."""
    FROM_APPLICATION = 0  # Application hands a message to the sender
    FROM_NETWORK = 1      # Packet arrives at an entity
    TIMER_INTERRUPT = 2   # Entity timer expires


@dataclass(order=True)
class SimEvent:
    """Emulation event."""
    time: float
    sequence: int
    event_type: EventType = field(compare=False)
    entity: Entity = field(compare=False)
    data: dict = field(compare=False, default_factory=dict)


@dataclass
class SimulatorConfig:
    """Configuration for the emulator."""
    # Protocol parameters
    window_size: int = WINDOWSIZE
    seqspace: int = SEQSPACE
    rtt: float = RTT

    # Traffic
    num_messages: int = NUM_MESSAGES
    mean_interarrival: float = MEAN_INTERARRIVAL

    # Channel impairments
    loss_prob: float = LOSS_PROBABILITY
    corrupt_prob: float = CORRUPT_PROBABILITY

    # Emulation parameters
    seed: int = RNG_SEED
    max_time: float = MAX_SIMULATION_TIME
    log_level: int = LogLevel.WARNING
    log_file: Optional[str] = None

    def validate(self):
        """Raise ConfigurationError for unusable settings."""
        self.protocol_config()
        if self.num_messages < 0:
            raise ConfigurationError(
                f"message count must be non-negative, got {self.num_messages}"
            )
        if self.mean_interarrival <= 0:
            raise ConfigurationError(
                f"mean interarrival must be positive, got {self.mean_interarrival}"
            )
        for name, value in (('loss', self.loss_prob), ('corrupt', self.corrupt_prob)):
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"{name} probability must be in [0, 1], got {value}"
                )

    def protocol_config(self) -> ProtocolConfig:
        """Window and timer settings for the protocol entities."""
        return ProtocolConfig(
            window_size=self.window_size,
            seqspace=self.seqspace,
            rtt=self.rtt
        )


def make_message(index: int) -> bytes:
    """Message payload: 20 copies of a letter cycling through a-z."""
    return bytes([ord('a') + index % 26]) * PAYLOAD_SIZE


class Simulator(NetworkInterface):
    """
    Event-Driven Emulator.

    Entity A runs the SR sender, entity B the SR receiver. Both share one
    channel model, which keeps the two directions independent.
    """

    def __init__(self, config: SimulatorConfig):
        """Initialize emulator."""
        config.validate()
        self.config = config

        self.logger = SimulationLogger(
            name="Sim",
            level=config.log_level,
            log_file=config.log_file
        )

        self.channel = UnreliableChannel(
            loss_prob=config.loss_prob,
            corrupt_prob=config.corrupt_prob,
            seed=config.seed
        )
        self.timers = TimerManager()

        protocol = config.protocol_config()
        self.sender = SRSender(self, protocol, Entity.A, logger=self.logger)
        self.receiver = SRReceiver(self, protocol, Entity.B, logger=self.logger)

        self.metrics = MetricsCollector()

        # Emulation state
        self.current_time = 0.0
        self.event_queue: List[SimEvent] = []
        self._event_order = itertools.count()

        # Application data
        self.sent_messages: List[bytes] = []
        self.received_messages: List[bytes] = []

    # ------------------------------------------------------------------
    # Collaborator operations called by the protocol entities
    # ------------------------------------------------------------------

    def send(self, entity: Entity, packet: Packet):
        """Hand a packet to the channel."""
        if entity == Entity.A:
            self.metrics.record_data_sent()
        else:
            self.metrics.record_ack_sent()

        outcome, arriving, arrival_time = self.channel.transmit(
            packet, entity, self.current_time
        )
        if outcome == ChannelOutcome.LOST:
            self.metrics.record_packet_lost()
            self.logger.debug(f"{entity.name}: packet {packet.seqnum} lost", "CHANNEL")
            return
        if outcome == ChannelOutcome.CORRUPTED:
            self.metrics.record_packet_corrupted()
            self.logger.debug(f"{entity.name}: packet {packet.seqnum} corrupted", "CHANNEL")

        destination = Entity.B if entity == Entity.A else Entity.A
        self._schedule_event(
            arrival_time,
            EventType.FROM_NETWORK,
            destination,
            {'packet': arriving}
        )

    def start_timer(self, entity: Entity, duration: float):
        """Start an entity's timer."""
        if self.timers.get_timer(entity).is_running:
            self.logger.warning(
                f"{entity.name}: start_timer while timer running, replacing it",
                "TIMER"
            )
        timer = self.timers.start_timer(entity, self.current_time, duration)
        self._schedule_event(
            timer.get_expiry_time(),
            EventType.TIMER_INTERRUPT,
            entity,
            {'generation': timer.generation}
        )

    def stop_timer(self, entity: Entity):
        """Stop an entity's timer."""
        if not self.timers.stop_timer(entity):
            self.logger.warning(
                f"{entity.name}: stop_timer with no timer running", "TIMER"
            )

    def deliver(self, entity: Entity, payload: bytes):
        """Hand a payload to the application layer."""
        self.received_messages.append(payload)
        self.metrics.record_message_delivered(self.current_time)

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------

    def _schedule_event(
        self,
        time: float,
        event_type: EventType,
        entity: Entity,
        data: Optional[dict] = None
    ):
        """Schedule an event."""
        event = SimEvent(
            time=time,
            sequence=next(self._event_order),
            event_type=event_type,
            entity=entity,
            data=data or {}
        )
        heapq.heappush(self.event_queue, event)

    def _schedule_next_message(self):
        """Schedule the next application message, mean_interarrival apart on average."""
        gap = self.config.mean_interarrival * 2 * self.channel.rng.random()
        self._schedule_event(
            self.current_time + gap,
            EventType.FROM_APPLICATION,
            Entity.A
        )

    def _handle_application(self):
        message = make_message(len(self.sent_messages))
        self.sent_messages.append(message)
        self.metrics.record_message_generated(self.current_time)
        self.sender.on_application_send(message)

        if len(self.sent_messages) < self.config.num_messages:
            self._schedule_next_message()

    def _handle_network(self, entity: Entity, packet: Packet):
        if entity == Entity.A:
            self.sender.on_packet_received(packet)
        else:
            self.receiver.on_packet_received(packet)

    def _handle_timer(self, entity: Entity, generation: int):
        if not self.timers.fire(entity, generation):
            return
        if entity == Entity.A:
            self.sender.on_timer_expired()

    def _is_complete(self) -> bool:
        """Check if every message was generated, delivered and acknowledged."""
        return (len(self.sent_messages) == self.config.num_messages and
                len(self.received_messages) >= self.config.num_messages and
                self.sender.is_idle())

    def verify(self) -> Dict:
        """Compare delivered messages against generated messages in order."""
        mismatch = None
        for index, (sent, received) in enumerate(
                zip(self.sent_messages, self.received_messages)):
            if sent != received:
                mismatch = index
                break

        valid = (mismatch is None and
                 len(self.sent_messages) == len(self.received_messages))
        return {
            'valid': valid,
            'sent': len(self.sent_messages),
            'received': len(self.received_messages),
            'first_mismatch': mismatch
        }

    def run(self) -> Dict:
        """Run the emulation."""
        self.reset()
        sim_start_real = time.time()

        self.logger.simulation_start({
            'messages': self.config.num_messages,
            'loss': self.config.loss_prob,
            'corrupt': self.config.corrupt_prob,
            'window': self.config.window_size,
            'seqspace': self.config.seqspace,
            'rtt': self.config.rtt
        })

        self.metrics.start(0.0)
        if self.config.num_messages > 0:
            self._schedule_next_message()

        while self.event_queue and not self._is_complete():
            event = heapq.heappop(self.event_queue)
            if event.time > self.config.max_time:
                self.logger.warning(
                    f"Time limit {self.config.max_time} reached", "SIM"
                )
                break

            self.current_time = event.time
            self.logger.set_sim_time(self.current_time)

            if event.event_type == EventType.FROM_APPLICATION:
                self._handle_application()
            elif event.event_type == EventType.FROM_NETWORK:
                self._handle_network(event.entity, event.data['packet'])
            elif event.event_type == EventType.TIMER_INTERRUPT:
                self._handle_timer(event.entity, event.data['generation'])

        self.metrics.finish(self.current_time)
        self.metrics.retransmissions = self.sender.retransmissions
        summary = self.metrics.get_summary()
        self.logger.simulation_end(summary)

        return {
            'config': {
                'num_messages': self.config.num_messages,
                'window_size': self.config.window_size,
                'seqspace': self.config.seqspace,
                'rtt': self.config.rtt,
                'loss_prob': self.config.loss_prob,
                'corrupt_prob': self.config.corrupt_prob,
                'seed': self.config.seed
            },
            'metrics': summary,
            'sender': self.sender.get_statistics(),
            'receiver': self.receiver.get_statistics(),
            'channel': self.channel.get_statistics(),
            'timers': self.timers.get_statistics(),
            'verification': self.verify(),
            'real_time': time.time() - sim_start_real,
            'simulation_time': self.current_time,
            'complete': self._is_complete()
        }

    def reset(self):
        """Reset emulator and both entities."""
        self.sender.init()
        self.receiver.init()
        self.channel.reset(self.config.seed)
        self.timers.clear_all()
        self.metrics.reset()
        self.current_time = 0.0
        self.event_queue.clear()
        self._event_order = itertools.count()
        self.sent_messages = []
        self.received_messages = []
        self.logger.set_sim_time(0.0)
