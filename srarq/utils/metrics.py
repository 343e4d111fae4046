"""
Metrics Collection and Calculation

This module provides utilities for tracking emulation performance:
message throughput, retransmission overhead and delivery latency.
"""

from typing import Dict, List, Optional
import statistics


class MetricsCollector:
    """
    Collects and calculates performance metrics for an emulation run.

    Primary metric: Throughput = Delivered Messages / Emulated Time

    Attributes:
        start_time: Emulation start time
        end_time: Emulation end time
    """

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset all counters."""
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        # Message counters
        self.messages_generated = 0
        self.messages_delivered = 0

        # Packet counters
        self.data_packets_sent = 0
        self.ack_packets_sent = 0
        self.retransmissions = 0

        # Error tracking
        self.packets_corrupted = 0
        self.packets_lost = 0

        # Generation time per message index, for latency
        self.generated_at: List[float] = []
        self.latency_samples: List[float] = []

    def start(self, time: float):
        """Mark emulation start."""
        self.start_time = time

    def finish(self, time: float):
        """Mark emulation end."""
        self.end_time = time

    def record_message_generated(self, time: float):
        """Record a message handed to the sender."""
        self.messages_generated += 1
        self.generated_at.append(time)

    def record_message_delivered(self, time: float):
        """Record an in-order delivery at the receiver."""
        index = self.messages_delivered
        self.messages_delivered += 1
        if index < len(self.generated_at):
            self.latency_samples.append(time - self.generated_at[index])

    def record_data_sent(self):
        """Record data packet handed to the channel."""
        self.data_packets_sent += 1

    def record_ack_sent(self):
        """Record ACK packet handed to the channel."""
        self.ack_packets_sent += 1

    def record_packet_corrupted(self):
        """Record packet corrupted by channel."""
        self.packets_corrupted += 1

    def record_packet_lost(self):
        """Record packet dropped by channel."""
        self.packets_lost += 1

    def get_duration(self) -> float:
        """Get emulated duration."""
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    def get_throughput(self) -> float:
        """Delivered messages per emulated time unit."""
        duration = self.get_duration()
        if duration <= 0:
            return 0.0
        return self.messages_delivered / duration

    def get_retransmission_ratio(self) -> float:
        """Retransmissions per original data packet."""
        originals = self.data_packets_sent - self.retransmissions
        if originals <= 0:
            return 0.0
        return self.retransmissions / originals

    def get_latency_statistics(self) -> Dict:
        """Get statistics of generation-to-delivery latency."""
        if not self.latency_samples:
            return {'samples': 0, 'mean': 0.0, 'min': 0.0, 'max': 0.0}
        return {
            'samples': len(self.latency_samples),
            'mean': statistics.mean(self.latency_samples),
            'min': min(self.latency_samples),
            'max': max(self.latency_samples)
        }

    def get_summary(self) -> Dict:
        """Get summary of all metrics."""
        return {
            'duration': self.get_duration(),
            'messages_generated': self.messages_generated,
            'messages_delivered': self.messages_delivered,
            'throughput': self.get_throughput(),
            'data_packets_sent': self.data_packets_sent,
            'ack_packets_sent': self.ack_packets_sent,
            'retransmissions': self.retransmissions,
            'retransmission_ratio': self.get_retransmission_ratio(),
            'packets_corrupted': self.packets_corrupted,
            'packets_lost': self.packets_lost,
            'latency': self.get_latency_statistics()
        }
