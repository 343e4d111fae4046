"""
Unit tests for the Selective Repeat ARQ protocol.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from srarq.config import ConfigurationError, NOTINUSE, PAYLOAD_SIZE, ProtocolConfig
from srarq.arq.backlog import OutboundBacklog
from srarq.arq.network import Entity, NetworkInterface
from srarq.arq.packet import Packet, compute_checksum, is_corrupted, make_payload
from srarq.arq.receiver import SRReceiver, ReceiverSlotState
from srarq.arq.sender import SRSender, SenderSlotState, WindowFullError
from srarq.arq.sequence import SequenceSpace
from srarq.utils.logger import SimulationLogger, LogLevel


class RecordingNetwork(NetworkInterface):
    """Network stand-in that records every collaborator call."""

    def __init__(self):
        self.sent = []
        self.delivered = []
        self.timer_calls = []

    def send(self, entity, packet):
        self.sent.append((entity, packet))

    def start_timer(self, entity, duration):
        self.timer_calls.append(('start', entity, duration))

    def stop_timer(self, entity):
        self.timer_calls.append(('stop', entity))

    def deliver(self, entity, payload):
        self.delivered.append(payload)

    def sent_seqnums(self):
        return [packet.seqnum for _, packet in self.sent]

    def sent_acknums(self):
        return [packet.acknum for _, packet in self.sent]


def quiet_logger():
    return SimulationLogger(name="Test", level=LogLevel.CRITICAL + 1)


def message(index):
    return make_payload(f"msg{index}")


def ack_for(seq):
    return Packet.create_ack_packet(seq)


@pytest.fixture
def network():
    return RecordingNetwork()


@pytest.fixture
def small_config():
    return ProtocolConfig(window_size=4, seqspace=10, rtt=16.0)


@pytest.fixture
def sender(network, small_config):
    return SRSender(network, small_config, logger=quiet_logger())


@pytest.fixture
def receiver(network, small_config):
    return SRReceiver(network, small_config, logger=quiet_logger())


class TestPacket:
    """Tests for Packet and checksum."""

    def test_data_packet_creation(self):
        """Test creating a data packet."""
        payload = make_payload("hello")
        packet = Packet.create_data_packet(seqnum=3, payload=payload)

        assert packet.seqnum == 3
        assert packet.acknum == NOTINUSE
        assert packet.payload == payload
        assert not packet.is_ack
        assert packet.checksum == 3 + NOTINUSE + sum(payload)

    def test_ack_packet_creation(self):
        """Test creating an ACK packet."""
        packet = Packet.create_ack_packet(acknum=5, seqnum=1)

        assert packet.is_ack
        assert packet.acknum == 5
        assert packet.payload == b'0' * PAYLOAD_SIZE
        assert not is_corrupted(packet)

    def test_payload_size_enforced(self):
        """Test that payloads must be exactly 20 bytes."""
        with pytest.raises(ValueError):
            Packet.create_data_packet(0, b"short")

    def test_make_payload_pads_and_truncates(self):
        assert make_payload("ab") == b"ab" + b"\x00" * 18
        assert make_payload(b"x" * 30) == b"x" * 20

    def test_packet_is_immutable(self):
        packet = Packet.create_data_packet(0, message(0))
        with pytest.raises(AttributeError):
            packet.seqnum = 1

    def test_corruption_detection(self):
        """Test that header and payload damage is detected."""
        packet = Packet.create_data_packet(2, make_payload("aaaa"))

        damaged_payload = Packet(
            seqnum=packet.seqnum, acknum=packet.acknum,
            checksum=packet.checksum, payload=b'Z' + packet.payload[1:]
        )
        damaged_header = Packet(
            seqnum=999999, acknum=packet.acknum,
            checksum=packet.checksum, payload=packet.payload
        )

        assert not is_corrupted(packet)
        assert is_corrupted(damaged_payload)
        assert is_corrupted(damaged_header)

    def test_checksum_excludes_checksum_field(self):
        packet = Packet(seqnum=1, acknum=2, checksum=12345, payload=b'\x01' * 20)
        assert compute_checksum(packet) == 1 + 2 + 20

    def test_serialization_deserialization(self):
        """Test wire encoding."""
        original = Packet.create_data_packet(7, make_payload("wire"))

        data = original.serialize()
        decoded = Packet.deserialize(data)

        assert len(data) == Packet.WIRE_SIZE == 32
        assert decoded == original
        assert not is_corrupted(decoded)

    def test_deserialize_wrong_size(self):
        with pytest.raises(ValueError):
            Packet.deserialize(b"\x00" * 10)


class TestSequenceSpace:
    """Tests for sequence ring arithmetic."""

    def test_rejects_small_sequence_space(self):
        """Test the SEQSPACE >= 2 * WINDOWSIZE invariant."""
        with pytest.raises(ConfigurationError):
            SequenceSpace(size=7, window_size=4)
        with pytest.raises(ConfigurationError):
            ProtocolConfig(window_size=6, seqspace=7)

    def test_rejects_non_positive_window(self):
        with pytest.raises(ConfigurationError):
            SequenceSpace(size=10, window_size=0)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            ProtocolConfig(window_size=4, seqspace=6)

    def test_in_window_without_wrap(self):
        space = SequenceSpace(size=10, window_size=4)

        assert space.in_window(2, base=2, size=4)
        assert space.in_window(5, base=2, size=4)
        assert not space.in_window(6, base=2, size=4)
        assert not space.in_window(1, base=2, size=4)

    def test_in_window_with_wrap(self):
        """Test window membership across the wraparound."""
        space = SequenceSpace(size=10, window_size=4)

        assert space.in_window(8, base=8, size=4)
        assert space.in_window(9, base=8, size=4)
        assert space.in_window(0, base=8, size=4)
        assert space.in_window(1, base=8, size=4)
        assert not space.in_window(2, base=8, size=4)
        assert not space.in_window(7, base=8, size=4)

    def test_increment_wraps(self):
        space = SequenceSpace(size=10, window_size=4)
        assert space.increment(9) == 0
        assert space.increment(8, 3) == 1

    def test_is_behind(self):
        space = SequenceSpace(size=10, window_size=4)

        # Base 5: previous window is 1..4, ahead-of-window is 9, 0
        assert space.is_behind(3, base=5)
        assert space.is_behind(1, base=5)
        assert not space.is_behind(0, base=5)
        assert not space.is_behind(9, base=5)
        assert not space.is_behind(6, base=5)

    def test_span(self):
        space = SequenceSpace(size=10, window_size=4)
        assert list(space.span(8, 2)) == [8, 9, 0, 1]
        assert list(space.span(3, 3)) == []

    def test_contains(self):
        space = SequenceSpace(size=10, window_size=4)

        assert space.contains(0)
        assert space.contains(9)
        assert not space.contains(10)
        assert not space.contains(NOTINUSE)


class TestOutboundBacklog:
    """Tests for the unbounded backlog."""

    def test_fifo_order(self):
        backlog = OutboundBacklog()
        for i in range(3):
            backlog.add(message(i))

        assert backlog.count == 3
        assert backlog.peek() == message(0)
        assert [backlog.pop() for _ in range(3)] == [message(i) for i in range(3)]
        assert backlog.is_empty
        assert backlog.pop() is None

    def test_counters(self):
        backlog = OutboundBacklog()
        backlog.add(message(0))
        backlog.add(message(1))
        backlog.pop()

        assert backlog.total_added == 2
        assert backlog.total_admitted == 1
        assert len(backlog) == 1


class TestSRSender:
    """Tests for Selective Repeat Sender."""

    def test_initial_state(self, sender):
        state = sender.get_window_state()

        assert state['base'] == 0
        assert state['next_seq'] == 0
        assert not state['timer_running']
        assert all(slot.state == SenderSlotState.EMPTY for slot in sender.window.slots)

    def test_send_packet(self, sender, network):
        """Test sending the first packet starts the timer."""
        sender.on_application_send(message(0))

        assert network.sent_seqnums() == [0]
        entity, packet = network.sent[0]
        assert entity == Entity.A
        assert packet.acknum == NOTINUSE
        assert not is_corrupted(packet)
        assert network.timer_calls == [('start', Entity.A, 16.0)]
        assert sender.window.slot(0).state == SenderSlotState.SENT

    def test_timer_started_once_for_window(self, sender, network):
        for i in range(3):
            sender.on_application_send(message(i))

        starts = [call for call in network.timer_calls if call[0] == 'start']
        assert len(starts) == 1
        assert sender.window.next_seq == 3

    def test_window_full_goes_to_backlog(self, sender, network):
        """Test messages beyond the window wait in the backlog."""
        for i in range(6):
            sender.on_application_send(message(i))

        assert network.sent_seqnums() == [0, 1, 2, 3]
        assert sender.window_full == 2
        assert sender.backlog.count == 2

    def test_admit_on_full_window_raises(self, sender):
        for i in range(4):
            sender.admit(message(i))

        with pytest.raises(WindowFullError):
            sender.admit(message(4))

    def test_backlog_drains_after_slide(self, sender, network):
        for i in range(6):
            sender.on_application_send(message(i))

        sender.on_packet_received(ack_for(0))

        assert network.sent_seqnums() == [0, 1, 2, 3, 4]
        assert sender.backlog.count == 1
        assert network.sent[-1][1].payload == message(4)

    def test_ack_processing(self, sender, network):
        """Test ACK for the base slides the window and stops the idle timer."""
        sender.on_application_send(message(0))

        assert sender.on_packet_received(ack_for(0)) is True
        assert sender.window.base == 1
        assert sender.new_acks == 1
        assert network.timer_calls[-1] == ('stop', Entity.A)
        assert not sender.timer_running

    def test_slide_restarts_timer_when_packets_remain(self, sender, network):
        sender.on_application_send(message(0))
        sender.on_application_send(message(1))

        sender.on_packet_received(ack_for(0))

        assert network.timer_calls[-2:] == [
            ('stop', Entity.A), ('start', Entity.A, 16.0)
        ]
        assert sender.timer_running

    def test_out_of_order_ack_does_not_slide(self, sender, network):
        for i in range(3):
            sender.on_application_send(message(i))
        calls_before = list(network.timer_calls)

        sender.on_packet_received(ack_for(2))

        assert sender.window.base == 0
        assert sender.window.slot(2).state == SenderSlotState.ACKED
        assert network.timer_calls == calls_before

        sender.on_packet_received(ack_for(0))
        sender.on_packet_received(ack_for(1))
        assert sender.window.base == 3
        assert sender.window.slot(2).state == SenderSlotState.EMPTY

    def test_duplicate_ack_ignored(self, sender):
        sender.on_application_send(message(0))
        sender.on_application_send(message(1))
        sender.on_packet_received(ack_for(1))

        assert sender.on_packet_received(ack_for(1)) is False
        assert sender.duplicate_acks == 1
        assert sender.new_acks == 1

    def test_ack_outside_window_ignored(self, sender):
        sender.on_application_send(message(0))
        state_before = sender.get_window_state()

        assert sender.on_packet_received(ack_for(5)) is False
        assert sender.get_window_state() == state_before
        assert sender.duplicate_acks == 1

    def test_acknum_outside_sequence_space_ignored(self, network, small_config):
        """Test an intact packet with acknum NOTINUSE does not ACK slot 9."""
        sender = SRSender(network, small_config, logger=quiet_logger())
        for seq in range(8):
            sender.on_application_send(message(seq))
            sender.on_packet_received(ack_for(seq))
        for i in range(4):
            sender.on_application_send(message(8 + i))

        stray = Packet.create_data_packet(3, message(3))
        assert not is_corrupted(stray)
        assert sender.on_packet_received(stray) is False
        assert sender.on_packet_received(ack_for(10)) is False

        assert sender.window.slot(9).state == SenderSlotState.SENT
        assert sender.window.slot(0).state == SenderSlotState.SENT
        assert sender.window.base == 8
        assert sender.duplicate_acks == 2

    def test_corrupted_ack_ignored(self, sender):
        sender.on_application_send(message(0))
        ack = ack_for(0)
        damaged = Packet(seqnum=ack.seqnum, acknum=999999,
                         checksum=ack.checksum, payload=ack.payload)

        assert sender.on_packet_received(damaged) is False
        assert sender.corrupted_acks == 1
        assert sender.window.base == 0

    def test_retransmits_only_unacked(self, sender, network):
        """Test timeout resends exactly {0, 2, 3} when only 1 was ACKed."""
        for i in range(4):
            sender.on_application_send(message(i))
        sender.on_packet_received(ack_for(1))
        network.sent.clear()

        sender.on_timer_expired()

        assert network.sent_seqnums() == [0, 2, 3]
        assert sender.retransmissions == 3
        assert network.timer_calls[-1] == ('start', Entity.A, 16.0)
        assert sender.timer_running

    def test_retransmitted_packet_is_unchanged(self, sender, network):
        sender.on_application_send(message(0))
        original = network.sent[0][1]

        resent = sender.on_timeout()

        assert resent == [original]

    def test_wraparound(self, network, small_config):
        """Test slot 2 holds the newest packet after two full ring cycles."""
        sender = SRSender(network, small_config, logger=quiet_logger())

        # Messages 0..17 use seqs 0..9 then 0..7; slot 2 carried 2 and 12
        for i in range(18):
            sender.on_application_send(message(i))
            sender.on_packet_received(ack_for(i % 10))
        assert sender.window.base == 8

        for i in range(18, 22):
            sender.on_application_send(message(i))
        sender.on_application_send(message(22))
        assert network.sent_seqnums()[-4:] == [8, 9, 0, 1]
        assert sender.backlog.count == 1

        for seq in [8, 9, 0, 1]:
            sender.on_packet_received(ack_for(seq))

        assert network.sent_seqnums()[-1] == 2
        assert sender.window.base == 2
        assert sender.window.next_seq == 3
        slot = sender.window.slot(2)
        assert slot.state == SenderSlotState.SENT
        assert slot.packet.seqnum == 2
        assert slot.packet.payload == message(22)

        assert sender.on_packet_received(ack_for(2)) is True
        assert sender.window.base == 3
        assert sender.is_idle()

    def test_window_bound(self, sender):
        """Test SENT slots never exceed the window size."""
        for i in range(20):
            sender.on_application_send(message(i))
            sent = sum(1 for slot in sender.window.slots
                       if slot.state == SenderSlotState.SENT)
            assert sent <= 4

    def test_init_resets(self, sender):
        for i in range(5):
            sender.on_application_send(message(i))

        sender.init()

        assert sender.window.base == 0
        assert sender.window.next_seq == 0
        assert sender.backlog.is_empty
        assert sender.get_statistics()['packets_sent'] == 0


class TestSRReceiver:
    """Tests for Selective Repeat Receiver."""

    def test_receive_in_order(self, receiver, network):
        """Test receiving packets in order."""
        for i in range(3):
            receiver.on_packet_received(Packet.create_data_packet(i, message(i)))

        assert network.delivered == [message(0), message(1), message(2)]
        assert network.sent_acknums() == [0, 1, 2]
        assert receiver.expected == 3

    def test_receive_out_of_order(self, receiver, network):
        """Test arrivals 2, 0, 1 deliver 0, then 1 and 2."""
        receiver.on_packet_received(Packet.create_data_packet(2, message(2)))
        assert network.delivered == []
        assert network.sent_acknums() == [2]
        assert receiver.window.slot(2).state == ReceiverSlotState.BUFFERED

        receiver.on_packet_received(Packet.create_data_packet(0, message(0)))
        assert network.delivered == [message(0)]
        assert network.sent_acknums() == [2, 0]

        receiver.on_packet_received(Packet.create_data_packet(1, message(1)))
        assert network.delivered == [message(0), message(1), message(2)]
        assert network.sent_acknums() == [2, 0, 1]
        assert receiver.expected == 3
        assert receiver.get_window_state()['buffered'] == []

    def test_ack_generation(self, receiver, network):
        """Test ACK fields."""
        ack = receiver.on_packet_received(Packet.create_data_packet(0, message(0)))

        assert ack is not None
        assert ack.acknum == 0
        assert ack.seqnum == 1
        assert not is_corrupted(ack)
        assert network.sent[0][0] == Entity.B

    def test_ack_seqnum_advances(self, receiver):
        acks = [receiver.on_packet_received(Packet.create_data_packet(i, message(i)))
                for i in range(3)]
        assert [ack.seqnum for ack in acks] == [1, 2, 3]

    def test_duplicate_in_window_delivered_once(self, receiver, network):
        """Test a buffered duplicate is re-ACKed but stored once."""
        packet = Packet.create_data_packet(1, message(1))
        receiver.on_packet_received(packet)
        receiver.on_packet_received(packet)

        assert network.sent_acknums() == [1, 1]
        assert receiver.duplicate_packets == 1

        receiver.on_packet_received(Packet.create_data_packet(0, message(0)))
        assert network.delivered == [message(0), message(1)]

    def test_idempotent_delivery(self, receiver, network):
        packet = Packet.create_data_packet(0, message(0))
        for _ in range(5):
            receiver.on_packet_received(packet)

        assert network.delivered == [message(0)]

    def test_stale_duplicate_reacked(self, receiver, network):
        """Test a delivered duplicate is re-ACKed without state change."""
        for i in range(5):
            receiver.on_packet_received(Packet.create_data_packet(i, message(i)))
        assert receiver.expected == 5
        delivered_before = list(network.delivered)
        network.sent.clear()

        ack = receiver.on_packet_received(Packet.create_data_packet(3, message(3)))

        assert ack.acknum == 3
        assert network.sent_acknums() == [3]
        assert network.delivered == delivered_before
        assert receiver.expected == 5
        assert receiver.stale_packets == 1

    def test_ahead_of_window_discarded(self, receiver, network):
        """Test a packet beyond the window gets no ACK."""
        ack = receiver.on_packet_received(Packet.create_data_packet(5, message(5)))

        assert ack is None
        assert network.sent == []
        assert receiver.discarded_packets == 1

    def test_seqnum_outside_sequence_space_discarded(self, receiver, network):
        """Test seqnum 10 on a ring of 10 is not taken for seq 0."""
        for seq in (10, -1, 999999):
            packet = Packet.create_data_packet(seq, make_payload("bogus"))
            assert receiver.on_packet_received(packet) is None

        assert network.sent == []
        assert network.delivered == []
        assert receiver.expected == 0
        assert receiver.discarded_packets == 3
        assert receiver.window.slot(0).state == ReceiverSlotState.NOT_RECEIVED

    def test_corrupted_packet_dropped(self, receiver, network):
        packet = Packet.create_data_packet(0, message(0))
        damaged = Packet(seqnum=0, acknum=packet.acknum,
                         checksum=packet.checksum, payload=b'Z' + packet.payload[1:])

        assert receiver.on_packet_received(damaged) is None
        assert network.sent == []
        assert network.delivered == []
        assert receiver.corrupted_packets == 1

    def test_receive_across_wraparound(self, receiver, network):
        for i in range(12):
            receiver.on_packet_received(Packet.create_data_packet(i % 10, message(i)))

        assert network.delivered == [message(i) for i in range(12)]
        assert receiver.expected == 2

    def test_window_bound(self, receiver):
        """Test buffered slots never exceed the window size."""
        for seq in [3, 2, 1, 4, 5]:
            receiver.on_packet_received(Packet.create_data_packet(seq, message(seq)))
            buffered = sum(1 for slot in receiver.window.slots
                           if slot.state == ReceiverSlotState.BUFFERED)
            assert buffered <= 4


class TestSenderReceiverLoopback:
    """Sender and receiver wired back to back over a perfect channel."""

    def test_no_loss_delivers_all_in_order(self, small_config):
        sender_net = RecordingNetwork()
        receiver_net = RecordingNetwork()
        sender = SRSender(sender_net, small_config, logger=quiet_logger())
        receiver = SRReceiver(receiver_net, small_config, logger=quiet_logger())

        messages = [message(i) for i in range(25)]
        for msg in messages:
            sender.on_application_send(msg)
            # Pump packets both ways until quiet
            while sender_net.sent or receiver_net.sent:
                while sender_net.sent:
                    _, packet = sender_net.sent.pop(0)
                    receiver.on_packet_received(packet)
                while receiver_net.sent:
                    _, packet = receiver_net.sent.pop(0)
                    sender.on_packet_received(packet)

        assert receiver_net.delivered == messages
        assert sender.is_idle()
        assert not sender.timer_running


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
