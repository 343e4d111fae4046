"""
Simulation Logger

This module provides logging utilities for the protocol entities and
the emulator, with configurable verbosity levels and structured output.
"""

from typing import Optional, TextIO
from datetime import datetime
from enum import IntEnum
import os

from srarq.config import DEFAULT_LOG_LEVEL


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


class SimulationLogger:
    """
    Logger for protocol and emulator events.

    Provides structured logging with timestamps and categories.

    Attributes:
        name: Logger name
        level: Minimum log level
        file: Optional file for logging
    """

    # Color codes for terminal output
    COLORS = {
        LogLevel.DEBUG: '\033[36m',     # Cyan
        LogLevel.INFO: '\033[32m',      # Green
        LogLevel.WARNING: '\033[33m',   # Yellow
        LogLevel.ERROR: '\033[31m',     # Red
        LogLevel.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(
        self,
        name: str = "SR",
        level: int = DEFAULT_LOG_LEVEL,
        log_file: Optional[str] = None,
        use_colors: bool = True,
        include_timestamp: bool = True
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level
            log_file: Optional file path for logging
            use_colors: Use ANSI colors in output
            include_timestamp: Include timestamps in log messages
        """
        self.name = name
        self.level = level
        self.use_colors = use_colors
        self.include_timestamp = include_timestamp

        self.file: Optional[TextIO] = None
        if log_file:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self.file = open(log_file, 'w')

        # Emulator time tracking
        self.sim_time: Optional[float] = None

    def set_sim_time(self, time: float):
        """Set current emulator time for log messages."""
        self.sim_time = time

    def _format_message(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ) -> str:
        """Format a log message."""
        parts = []

        if self.include_timestamp:
            if self.sim_time is not None:
                parts.append(f"[{self.sim_time:10.4f}]")
            else:
                parts.append(f"[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}]")

        level_str = level.name.ljust(8)
        if self.use_colors:
            level_str = f"{self.COLORS[level]}{level_str}{self.RESET}"
        parts.append(level_str)

        parts.append(f"[{self.name}]")

        if category:
            parts.append(f"[{category}]")

        parts.append(message)

        return " ".join(parts)

    def _log(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ):
        """Log a message."""
        if level < self.level:
            return

        formatted = self._format_message(level, message, category)

        print(formatted)

        if self.file:
            # Strip color codes for file
            clean = formatted
            for color in self.COLORS.values():
                clean = clean.replace(color, '')
            clean = clean.replace(self.RESET, '')
            self.file.write(clean + '\n')
            self.file.flush()

    def debug(self, message: str, category: Optional[str] = None):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, category)

    def info(self, message: str, category: Optional[str] = None):
        """Log info message."""
        self._log(LogLevel.INFO, message, category)

    def warning(self, message: str, category: Optional[str] = None):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, category)

    # Convenience methods for protocol events
    def packet_sent(self, seqnum: int, entity: str):
        """Log packet handed to the channel."""
        self.debug(f"{entity}: packet {seqnum} sent", "TX")

    def packet_received(self, seqnum: int, entity: str, valid: bool):
        """Log packet arrival."""
        status = "OK" if valid else "CORRUPTED"
        self.debug(f"{entity}: packet {seqnum} received, {status}", "RX")

    def ack_sent(self, acknum: int):
        """Log ACK sent event."""
        self.debug(f"ACK {acknum} sent", "ACK")

    def ack_received(self, acknum: int, new: bool):
        """Log ACK received event."""
        kind = "new" if new else "duplicate"
        self.debug(f"ACK {acknum} received ({kind})", "ACK")

    def timeout(self, outstanding: int):
        """Log timeout event."""
        self.info(f"Timeout, {outstanding} packet(s) unacknowledged", "TIMEOUT")

    def retransmit(self, seqnum: int):
        """Log retransmission event."""
        self.info(f"Resending packet {seqnum}", "RETX")

    def window_full(self, backlog: int):
        """Log a message that could not be admitted immediately."""
        self.debug(f"Send window full, {backlog} message(s) waiting", "WINDOW")

    def window_update(self, base: int, next_seq: int, size: int):
        """Log window update."""
        self.debug(f"Window: base={base}, next={next_seq}, size={size}", "WINDOW")

    def delivered(self, seqnum: int):
        """Log in-order delivery to the application."""
        self.debug(f"Packet {seqnum} delivered to application", "APP")

    def simulation_start(self, params: dict):
        """Log emulator start."""
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Emulation started: {param_str}", "SIM")

    def simulation_end(self, metrics: dict):
        """Log emulator end."""
        self.info(
            f"Emulation ended: delivered {metrics.get('messages_delivered', 0)}"
            f"/{metrics.get('messages_generated', 0)} messages",
            "SIM"
        )

    def close(self):
        """Close log file if open."""
        if self.file:
            self.file.close()
            self.file = None

    def __del__(self):
        """Cleanup on deletion."""
        self.close()


# Global logger instance
_global_logger: Optional[SimulationLogger] = None


def get_logger() -> SimulationLogger:
    """Get global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = SimulationLogger()
    return _global_logger

