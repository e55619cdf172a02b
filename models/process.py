"""
Process model for the Resource Contention & Deadlock Simulator.

Represents a competing worker with its held units and task-cycle counters.
"""

from dataclasses import dataclass, field
from typing import List
from enum import Enum


class ProcessState(Enum):
    """Lifecycle of a task attempt."""
    IDLE = "IDLE"
    REQUESTING = "REQUESTING"
    PARTIAL_HOLD = "PARTIAL_HOLD"
    FULL_HOLD = "FULL_HOLD"
    PERFORMING = "PERFORMING"
    COMPLETED = "COMPLETED"


@dataclass
class Process:
    """
    Represents a worker competing for resource units.

    Attributes:
        pid: Process identifier (index into the process list)
        required: Units needed at once to perform a task
        held_units: Ids of units currently held (no duplicates)
        target_units: Units the current incremental attempt is going after
            (held ones included); kept across steps until the attempt restarts
        state: Current lifecycle state
        task_completed: Set once the process is done for good
            (stop-on-all-complete runs only)
        waiting_time: Steps spent under-allocated in the current attempt
        task_start_time: Step at which the current attempt may start
        duration_remaining: Service steps left while performing
        tasks_finished: Tasks this process has completed
        timeouts: Attempts abandoned after exceeding the maximum wait
        accumulated_wait: Total waiting steps over the whole run
    """
    pid: int
    required: int
    held_units: List[int] = field(default_factory=list)
    target_units: List[int] = field(default_factory=list)
    state: ProcessState = ProcessState.IDLE
    task_completed: bool = False
    waiting_time: int = 0
    task_start_time: int = 0
    duration_remaining: int = 0
    tasks_finished: int = 0
    timeouts: int = 0
    accumulated_wait: int = 0

    @property
    def held_count(self) -> int:
        return len(self.held_units)

    @property
    def needed(self) -> int:
        """Units still missing for the current task."""
        return self.required - len(self.held_units)

    def has_full_set(self) -> bool:
        return len(self.held_units) == self.required

    def is_performing(self) -> bool:
        return self.duration_remaining > 0

    def hold(self, unit_id: int) -> None:
        """
        Record a unit as held by this process.

        Raises:
            ValueError: If the unit is already held or the task needs no more units
        """
        if unit_id in self.held_units:
            raise ValueError(f"P{self.pid}: already holds U{unit_id}")
        if len(self.held_units) >= self.required:
            raise ValueError(
                f"P{self.pid}: cannot hold U{unit_id} - "
                f"already holding {self.required} units"
            )
        self.held_units.append(unit_id)

    def drop(self, unit_id: int) -> None:
        """
        Forget a held unit.

        Raises:
            ValueError: If the unit is not held by this process
        """
        if unit_id not in self.held_units:
            raise ValueError(f"P{self.pid}: does not hold U{unit_id}")
        self.held_units.remove(unit_id)

    def reset_attempt(self) -> None:
        """Zero the counters of the current attempt (after completion or timeout)."""
        self.waiting_time = 0
        self.task_start_time = 0
        self.duration_remaining = 0
        self.target_units = []

    def __repr__(self) -> str:
        return (
            f"Process(pid={self.pid}, state={self.state.value}, "
            f"held={self.held_units}, wait={self.waiting_time}, "
            f"remaining={self.duration_remaining})"
        )
