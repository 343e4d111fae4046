"""
Simulation package - Network emulator.

Contains:
- Event-driven emulator playing application, channel and timer
- Per-entity timer management
"""

from .simulator import Simulator, SimulatorConfig, EventType
from .timer import TimerManager, EntityTimer, TimerState

__all__ = [
    'Simulator',
    'SimulatorConfig',
    'EventType',
    'TimerManager',
    'EntityTimer',
    'TimerState'
]
