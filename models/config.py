"""
Run configuration for the Resource Contention & Deadlock Simulator.

Holds the immutable simulation parameters and validates them before any
step is executed. Invalid parameters are fatal: they surface as
ConfigurationError subclasses and the run never starts.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


SERVICE_TIME = 5


class LockingPolicy(Enum):
    """
    Resource acquisition discipline.

    The same value drives both the allocator and the deadlock resolver so the
    two call sites cannot disagree about how a policy behaves.
    """
    TWO_PHASE = "two_phase"
    INCREMENTAL = "incremental"


class TerminationMode(Enum):
    """When a run stops."""
    FIXED_STEPS = "fixed_steps"
    ALL_COMPLETE = "all_complete"


class ConfigurationError(Exception):
    """Raised when run parameters cannot produce a valid simulation."""
    pass


class InsufficientCapacityError(ConfigurationError):
    """Raised when the pool holds fewer units than a single task requires."""
    pass


def check_capacity(pool_size: int, required_per_task: int) -> None:
    """
    Fail if no task could ever be satisfied by the pool.

    Raises:
        InsufficientCapacityError: If pool_size < required_per_task
    """
    if pool_size < required_per_task:
        raise InsufficientCapacityError(
            f"Pool of {pool_size} units cannot satisfy a task "
            f"requiring {required_per_task} units"
        )


@dataclass(frozen=True)
class SimulationConfig:
    """
    Simulation parameters (immutable once the run is set up).

    Attributes:
        population: Number of competing processes (>= 1)
        pool_size: Number of resource units (>= 1)
        required_per_task: Units a process must hold at once to perform a task
        max_wait_time: Waiting steps tolerated before a process times out
        backoff_range: Exclusive upper bound of a backoff draw (> 0)
        deadlock_check_interval: Steps between deadlock detector runs
        policy: Locking policy used by allocator and resolver
        detection_enabled: Whether the deadlock detector runs at all
        termination: Fixed step budget or stop when every process completed
        max_steps: Step budget (also a safety cap for ALL_COMPLETE)
        service_time: Steps a task runs once all its units are held
        stall_wait_threshold: Waiting time a process must exceed to count as
            starving in the detector (None means half of max_wait_time);
            must stay below max_wait_time, since a process waiting longer
            has already timed out by the time the detector runs
        incremental_claims_per_step: Units the incremental policy may claim
            in a single step
    """
    population: int = 10
    pool_size: int = 10
    required_per_task: int = 2
    max_wait_time: int = 10
    backoff_range: int = 5
    deadlock_check_interval: int = 5
    policy: LockingPolicy = LockingPolicy.TWO_PHASE
    detection_enabled: bool = True
    termination: TerminationMode = TerminationMode.FIXED_STEPS
    max_steps: int = 500
    service_time: int = SERVICE_TIME
    stall_wait_threshold: Optional[int] = None
    incremental_claims_per_step: int = 1

    @property
    def effective_stall_threshold(self) -> int:
        """Waiting time the detector compares against."""
        if self.stall_wait_threshold is None:
            return self.max_wait_time // 2
        return self.stall_wait_threshold

    def validate(self) -> None:
        """
        Check every parameter before the run starts.

        Raises:
            InsufficientCapacityError: If pool_size < required_per_task
            ConfigurationError: For any other invalid parameter
        """
        if not isinstance(self.policy, LockingPolicy):
            raise ConfigurationError(f"Unknown locking policy: {self.policy!r}")
        if not isinstance(self.termination, TerminationMode):
            raise ConfigurationError(f"Unknown termination mode: {self.termination!r}")

        positive_fields = {
            'population': self.population,
            'pool_size': self.pool_size,
            'required_per_task': self.required_per_task,
            'max_wait_time': self.max_wait_time,
            'backoff_range': self.backoff_range,
            'deadlock_check_interval': self.deadlock_check_interval,
            'max_steps': self.max_steps,
            'service_time': self.service_time,
            'incremental_claims_per_step': self.incremental_claims_per_step,
        }
        for name, value in positive_fields.items():
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive (got {value})")

        if self.stall_wait_threshold is not None and self.stall_wait_threshold < 0:
            raise ConfigurationError(
                f"stall_wait_threshold cannot be negative (got {self.stall_wait_threshold})"
            )

        if self.detection_enabled and self.effective_stall_threshold >= self.max_wait_time:
            raise ConfigurationError(
                f"stall_wait_threshold ({self.effective_stall_threshold}) must be below "
                f"max_wait_time ({self.max_wait_time}) or the detector can never fire"
            )

        check_capacity(self.pool_size, self.required_per_task)

    def describe(self) -> str:
        """One-line summary for run banners."""
        detection = (
            f"every {self.deadlock_check_interval} steps"
            if self.detection_enabled else "disabled"
        )
        return (
            f"policy={self.policy.value}, population={self.population}, "
            f"pool={self.pool_size}, required={self.required_per_task}, "
            f"max_wait={self.max_wait_time}, backoff<{self.backoff_range}, "
            f"detection={detection}, termination={self.termination.value}"
        )
