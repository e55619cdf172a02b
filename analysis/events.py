"""
Event Model for the Resource Contention & Deadlock Simulator.

Defines event types for the textual event log side channel.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class EventType(Enum):
    """Types of events in the simulation."""
    CREATION = "creation"
    ACQUISITION = "acquisition"
    RELEASE = "release"
    TIMEOUT = "timeout"
    DEADLOCK = "deadlock"
    RESOLUTION = "resolution"
    COMPLETION = "completion"


@dataclass
class SimulationEvent:
    """
    Represents a single event in the simulation.

    Attributes:
        step: Simulation step when event occurred
        event_type: Type of event
        process_id: PID involved in event (-1 for system-wide events)
        unit_ids: Resource units involved (if applicable)
        message: Human-readable description
    """
    step: int
    event_type: EventType
    process_id: int
    unit_ids: Optional[List[int]] = None
    message: str = ""

    def _units_str(self) -> str:
        if not self.unit_ids:
            return "none"
        return ", ".join(f"U{u}" for u in self.unit_ids)

    def __str__(self) -> str:
        """Format event for logging."""
        base = f"Step {self.step}: P{self.process_id}"

        if self.event_type == EventType.CREATION:
            return f"Step {self.step}: {self.message}"
        elif self.event_type == EventType.ACQUISITION:
            return f"{base} acquires [{self._units_str()}] ({self.message})"
        elif self.event_type == EventType.RELEASE:
            return f"{base} releases [{self._units_str()}] ({self.message})"
        elif self.event_type == EventType.TIMEOUT:
            return f"{base} - TIMEOUT ({self.message})"
        elif self.event_type == EventType.DEADLOCK:
            return f"Step {self.step}: DEADLOCK DETECTED ({self.message})"
        elif self.event_type == EventType.RESOLUTION:
            return f"{base} - RESOLUTION released [{self._units_str()}]"
        elif self.event_type == EventType.COMPLETION:
            return f"{base} - COMPLETED ({self.message})"
        else:
            return f"{base} - {self.event_type.value}: {self.message}"


@dataclass
class EventLog:
    """Collection of simulation events."""
    events: list = None

    def __post_init__(self):
        if self.events is None:
            self.events = []

    def add(self, event: SimulationEvent) -> None:
        """Add an event to the log."""
        self.events.append(event)

    def get_events_by_type(self, event_type: EventType) -> list:
        """Get all events of a specific type."""
        return [e for e in self.events if e.event_type == event_type]

    def get_events_by_step(self, step: int) -> list:
        """Get all events from a specific step."""
        return [e for e in self.events if e.step == step]

    def get_events_by_process(self, pid: int) -> list:
        """Get all events involving a specific process."""
        return [e for e in self.events if e.process_id == pid]

    def display(self) -> str:
        """Format all events for display."""
        return "\n".join(str(event) for event in self.events)
