"""
Deadlock Resolution for the Resource Contention & Deadlock Simulator.

Forcibly returns resources to the pool once the detector has flagged a
deadlock. The resolution depends on the locking policy.
"""

from typing import List, Tuple

from models.config import LockingPolicy
from models.process import Process, ProcessState
from models.system_state import SimulationState
from algorithms.allocation import release_units


def release_all_and_stagger(
    process: Process,
    system_state: SimulationState
) -> List[int]:
    """
    Force a process to give up everything and restart later.

    - Release the whole held-set and abort any service in progress
    - Reset waiting time
    - Reschedule the next attempt to tick + 1 + backoff draw so restarting
      processes do not all collide on the same step

    Args:
        process: Process to reset
        system_state: Current simulation state

    Returns:
        Ids of released units
    """
    released = release_units(process, system_state.pool)
    process.waiting_time = 0
    process.duration_remaining = 0
    process.target_units = []
    process.task_start_time = system_state.tick + 1 + system_state.backoff.next_delay()
    process.state = ProcessState.IDLE
    return released


def release_one(process: Process, system_state: SimulationState) -> List[int]:
    """
    Force a process to give up a single, randomly chosen unit.

    Any service in progress is aborted since the full set is no longer held.

    Args:
        process: Process holding at least one unit
        system_state: Current simulation state

    Returns:
        Id of the released unit (as a one-element list)
    """
    unit_id = system_state.rng.choice(process.held_units)
    released = release_units(process, system_state.pool, [unit_id])
    process.duration_remaining = 0
    process.state = ProcessState.PARTIAL_HOLD if process.held_units else ProcessState.REQUESTING
    return released


def resolve_deadlock(system_state: SimulationState) -> List[Tuple[int, List[int]]]:
    """
    Resolve a detected deadlock according to the locking policy.

    Policies:
    - TWO_PHASE: every incomplete process releases its entire held-set and
      restarts after a staggered delay
    - INCREMENTAL: every incomplete process holding something releases
      exactly one unit (partial holds are tolerated by this policy)

    Args:
        system_state: Current simulation state

    Returns:
        List of (pid, released unit ids) for processes that released something
    """
    released = []

    for process in system_state.incomplete_processes():
        if system_state.config.policy is LockingPolicy.TWO_PHASE:
            units = release_all_and_stagger(process, system_state)
        elif process.held_units:
            units = release_one(process, system_state)
        else:
            continue

        if units:
            released.append((process.pid, units))

    return released
