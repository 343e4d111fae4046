"""
Configuration for the Selective Repeat ARQ protocol and its emulator.
Contains the fixed protocol constants and the emulator defaults.
"""

from dataclasses import dataclass

# =============================================================================
# PROTOCOL PARAMETERS
# =============================================================================

# Maximum number of outstanding (sent, unacknowledged) packets
WINDOWSIZE = 6

# Sequence number ring size, must be at least 2 * WINDOWSIZE
SEQSPACE = 2 * WINDOWSIZE

# Retransmission timer period (emulator time units)
RTT = 16.0

# Header field filler for fields that are not used
NOTINUSE = -1

# Fixed payload size (bytes)
PAYLOAD_SIZE = 20

# =============================================================================
# EMULATOR PARAMETERS
# =============================================================================

# Number of application messages to generate
NUM_MESSAGES = 20

# Channel impairment probabilities
LOSS_PROBABILITY = 0.0
CORRUPT_PROBABILITY = 0.0

# Average time between messages from the sender's application layer
MEAN_INTERARRIVAL = 10.0

# Emulator time limit - failsafe
MAX_SIMULATION_TIME = 1_000_000.0

# Default RNG seed
RNG_SEED = 1234

# Logging verbosity levels
LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_WARNING


class ConfigurationError(ValueError):
    """Raised for protocol or emulator settings that cannot work."""


@dataclass
class ProtocolConfig:
    """
    Window and timer settings shared by a sender/receiver pair.

    Attributes:
        window_size: Window capacity (WINDOWSIZE)
        seqspace: Sequence ring size (SEQSPACE)
        rtt: Retransmission timer period
    """
    window_size: int = WINDOWSIZE
    seqspace: int = SEQSPACE
    rtt: float = RTT

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Reject settings under which old and new packets alias."""
        if self.window_size < 1:
            raise ConfigurationError(
                f"window size must be positive, got {self.window_size}"
            )
        if self.seqspace < 2 * self.window_size:
            raise ConfigurationError(
                f"sequence space {self.seqspace} must be at least twice "
                f"the window size {self.window_size}"
            )
        if self.rtt <= 0:
            raise ConfigurationError(f"RTT must be positive, got {self.rtt}")


if __name__ == "__main__":
    print("=" * 60)
    print("SELECTIVE REPEAT ARQ - CONFIGURATION")
    print("=" * 60)
    print(f"\nProtocol:")
    print(f"  Window Size: {WINDOWSIZE}")
    print(f"  Sequence Space: {SEQSPACE}")
    print(f"  RTT: {RTT}")
    print(f"  Payload Size: {PAYLOAD_SIZE} bytes")

    print(f"\nEmulator:")
    print(f"  Messages: {NUM_MESSAGES}")
    print(f"  Loss Probability: {LOSS_PROBABILITY}")
    print(f"  Corrupt Probability: {CORRUPT_PROBABILITY}")
    print(f"  Mean Interarrival: {MEAN_INTERARRIVAL}")
