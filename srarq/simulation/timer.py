"""
Timer Management for the Emulator

Each protocol entity owns exactly one timer. A generation counter
invalidates expiry events left in the event queue by a timer that was
stopped or restarted.
"""

from dataclasses import dataclass
from typing import Dict, Optional
from enum import Enum

from srarq.arq.network import Entity


class TimerState(Enum):
    """Timer state enumeration."""
    STOPPED = 0
    RUNNING = 1
    EXPIRED = 2


@dataclass
class EntityTimer:
    """
    Single timer of one entity.

    Attributes:
        entity: Owning entity
        timeout: Duration of the current run
        start_time: Time when timer was started
        state: Current timer state
        generation: Incremented on each start
    """
    entity: Entity
    timeout: float = 0.0
    start_time: float = 0.0
    state: TimerState = TimerState.STOPPED
    generation: int = 0

    def start(self, current_time: float, timeout: float):
        """
        Start the timer.

        Args:
            current_time: Current emulator time
            timeout: Duration until expiry
        """
        self.start_time = current_time
        self.timeout = timeout
        self.state = TimerState.RUNNING
        self.generation += 1

    def stop(self):
        """Stop the timer."""
        self.state = TimerState.STOPPED

    def get_expiry_time(self) -> float:
        """Get the absolute expiry time."""
        return self.start_time + self.timeout

    @property
    def is_running(self) -> bool:
        return self.state == TimerState.RUNNING


class TimerManager:
    """
    Holds one timer per entity.

    Attributes:
        timers: Timers by entity
        warnings: Starts of running timers and stops of idle timers
    """

    def __init__(self):
        self.timers: Dict[Entity, EntityTimer] = {
            entity: EntityTimer(entity=entity) for entity in Entity
        }

        # Statistics
        self.total_timers_started = 0
        self.total_timeouts = 0
        self.warnings = 0

    def start_timer(self, entity: Entity, current_time: float, timeout: float) -> EntityTimer:
        """
        Start an entity's timer.

        Starting a running timer replaces it and is counted as a warning.

        Returns:
            The started timer
        """
        timer = self.timers[entity]
        if timer.is_running:
            self.warnings += 1
        timer.start(current_time, timeout)
        self.total_timers_started += 1
        return timer

    def stop_timer(self, entity: Entity) -> bool:
        """
        Stop an entity's timer.

        Returns:
            False if the timer was not running
        """
        timer = self.timers[entity]
        if not timer.is_running:
            self.warnings += 1
            return False
        timer.stop()
        return True

    def fire(self, entity: Entity, generation: int) -> bool:
        """
        Check an expiry event against the live timer.

        Args:
            entity: Timer owner
            generation: Generation recorded when the event was scheduled

        Returns:
            True if the event belongs to the running timer (now expired)
        """
        timer = self.timers[entity]
        if not timer.is_running or timer.generation != generation:
            return False
        timer.state = TimerState.EXPIRED
        self.total_timeouts += 1
        return True

    def get_timer(self, entity: Entity) -> Optional[EntityTimer]:
        return self.timers.get(entity)

    def clear_all(self):
        """Stop all timers."""
        for timer in self.timers.values():
            timer.stop()

    def get_statistics(self) -> dict:
        """Get timer statistics."""
        return {
            'total_timers_started': self.total_timers_started,
            'total_timeouts': self.total_timeouts,
            'timer_warnings': self.warnings
        }
