"""
Deadlock Detection for the Resource Contention & Deadlock Simulator.

A progress-stall heuristic, not a wait-for-graph cycle search: the system
is declared deadlocked when no task completed since the previous check and
some long-waiting process cannot possibly be served by the free units.
"""

from typing import List, Tuple

from models.system_state import SimulationState


def detect_deadlock(system_state: SimulationState) -> Tuple[bool, List[int]]:
    """
    Run the stall test and the insufficiency test.

    Algorithm:
    1. Stall: tasks_completed has not changed since the previous check
       (the snapshot is refreshed on every call)
    2. Starving: incomplete processes whose waiting_time exceeds the stall
       threshold (max_wait_time unless configured otherwise)
    3. Insufficient: a starving process needs more units than are free

    Deadlock exists when 1 holds and 3 holds for at least one process of 2.

    Limitations:
    - A genuine circular wait among processes that have not yet waited long
      enough is not reported
    - A slow but live system can be reported if nothing completed in the
      interval

    Args:
        system_state: Current simulation state

    Returns:
        Tuple of (deadlock_exists, list of blocked process PIDs)
    """
    stalled = system_state.tasks_completed == system_state.last_tasks_completed
    system_state.last_tasks_completed = system_state.tasks_completed

    if not stalled:
        return False, []

    threshold = system_state.config.effective_stall_threshold
    free = system_state.pool.free_count()

    blocked_pids = [
        process.pid
        for process in system_state.incomplete_processes()
        if process.waiting_time > threshold and free < process.needed
    ]

    return len(blocked_pids) > 0, blocked_pids


def should_run_detection(current_step: int, detect_interval: int) -> bool:
    """
    Determine if detection should run at current simulation step.

    Args:
        current_step: Current simulation step number
        detect_interval: Steps between detection checks

    Returns:
        True if detection should run
    """
    return current_step % detect_interval == 0
