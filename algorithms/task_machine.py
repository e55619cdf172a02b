"""
Process Task State Machine for the Resource Contention & Deadlock Simulator.

Advances one process by one step:
Idle -> Requesting -> (PartialHold) -> FullHold -> Performing -> Completed -> Idle
"""

from models.config import TerminationMode
from models.process import Process, ProcessState
from models.system_state import SimulationState
from algorithms.allocation import allocate, release_units
from analysis.events import EventLog, SimulationEvent, EventType
from utils.logger import SimulatorLogger


def step_process(
    process: Process,
    system_state: SimulationState,
    logger: SimulatorLogger,
    event_log: EventLog
) -> None:
    """
    Run one step of a process's task cycle.

    - Performing: count down the service time; at zero the task completes and
      every held unit goes back to the pool.
    - Deferred (task_start_time in the future after a staggered restart):
      nothing happens this step.
    - Otherwise: ask the allocator for units. A full set starts the service
      time; anything less counts as one more waiting step, and waiting past
      max_wait_time releases every partial holding so the attempt restarts
      from scratch.

    Args:
        process: Process to advance
        system_state: Current simulation state
        logger: Logger instance
        event_log: Event log
    """
    if process.task_completed:
        return

    if process.duration_remaining > 0:
        process.duration_remaining -= 1
        if process.duration_remaining == 0:
            _complete_task(process, system_state, logger, event_log)
        return

    step = system_state.tick
    if process.task_start_time > step:
        return

    if process.state in (ProcessState.IDLE, ProcessState.COMPLETED):
        process.state = ProcessState.REQUESTING
        process.task_start_time = step

    acquired, reason = allocate(process, system_state)
    if acquired:
        logger.log_acquisition(step, process.pid, acquired, reason)
        event_log.add(SimulationEvent(
            step=step,
            event_type=EventType.ACQUISITION,
            process_id=process.pid,
            unit_ids=acquired,
            message=reason
        ))

    config = system_state.config
    if process.has_full_set():
        process.duration_remaining = config.service_time
        process.state = ProcessState.PERFORMING
        return

    process.waiting_time += 1
    process.accumulated_wait += 1
    logger.log_wait(step, process.pid, process.waiting_time, reason)

    if process.waiting_time > config.max_wait_time:
        _time_out(process, system_state, logger, event_log)


def _complete_task(
    process: Process,
    system_state: SimulationState,
    logger: SimulatorLogger,
    event_log: EventLog
) -> None:
    """Finish the current task, release its units and start over (or stop)."""
    step = system_state.tick
    process.state = ProcessState.COMPLETED
    released = release_units(process, system_state.pool)
    process.reset_attempt()

    process.tasks_finished += 1
    system_state.tasks_completed += 1

    logger.log_completion(step, process.pid, process.tasks_finished)
    logger.log_release(step, process.pid, released, "task completed")
    event_log.add(SimulationEvent(
        step=step,
        event_type=EventType.COMPLETION,
        process_id=process.pid,
        unit_ids=released,
        message=f"task #{process.tasks_finished}"
    ))
    event_log.add(SimulationEvent(
        step=step,
        event_type=EventType.RELEASE,
        process_id=process.pid,
        unit_ids=released,
        message="task completed"
    ))

    if system_state.config.termination is TerminationMode.ALL_COMPLETE:
        process.task_completed = True
    else:
        process.state = ProcessState.IDLE


def _time_out(
    process: Process,
    system_state: SimulationState,
    logger: SimulatorLogger,
    event_log: EventLog
) -> None:
    """Abandon the current attempt: release partial holdings and restart from scratch."""
    step = system_state.tick
    waited = process.waiting_time
    released = release_units(process, system_state.pool)
    process.reset_attempt()
    process.timeouts += 1
    process.state = ProcessState.IDLE

    logger.log_timeout(step, process.pid, waited, released)
    event_log.add(SimulationEvent(
        step=step,
        event_type=EventType.TIMEOUT,
        process_id=process.pid,
        unit_ids=released,
        message=f"waited {waited} steps"
    ))
    if released:
        event_log.add(SimulationEvent(
            step=step,
            event_type=EventType.RELEASE,
            process_id=process.pid,
            unit_ids=released,
            message="timeout"
        ))
