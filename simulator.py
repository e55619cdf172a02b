#!/usr/bin/env python3
"""
Resource Contention & Deadlock Simulator
Main entry point for the simulation system.

Workers compete in discrete steps for exclusively-owned resource units under
two-phase or incremental locking, with timeout-driven backoff and periodic
deadlock detection and resolution.
"""

import argparse
import sys
from dataclasses import replace
from typing import Optional, Tuple

from models.config import (
    ConfigurationError,
    LockingPolicy,
    SimulationConfig,
    TerminationMode,
)
from models.process import ProcessState
from models.system_state import SimulationState, count_in_state
from utils.config_loader import load_config, get_config_description
from utils.logger import SimulatorLogger
from algorithms.task_machine import step_process
from algorithms.detection import detect_deadlock, should_run_detection
from algorithms.recovery import resolve_deadlock
from analysis.events import EventLog, SimulationEvent, EventType
from analysis.metrics import SimulationMetrics, format_metrics_report


STOP_ALL_COMPLETE = "All processes completed"
STOP_STEP_BUDGET = "Step budget exhausted"


def create_simulation(
    config: SimulationConfig,
    seed: Optional[int],
    logger: SimulatorLogger,
    event_log: EventLog
) -> SimulationState:
    """
    Validate the configuration and build the initial state.

    Fatal configuration problems raise here, before any step runs.

    Args:
        config: Run configuration
        seed: Seed for the random source (None = nondeterministic)
        logger: Logger instance
        event_log: Event log

    Returns:
        Initial SimulationState

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    system_state = SimulationState.create(config, seed=seed)

    event_log.add(SimulationEvent(
        step=0,
        event_type=EventType.CREATION,
        process_id=-1,
        unit_ids=[unit.unit_id for unit in system_state.pool.units],
        message=f"Created pool of {system_state.num_units} units"
    ))
    for process in system_state.processes:
        event_log.add(SimulationEvent(
            step=0,
            event_type=EventType.CREATION,
            process_id=process.pid,
            message=f"Created P{process.pid} (requires {process.required} units)"
        ))
    logger.log(
        f"Created {system_state.num_processes} processes and "
        f"{system_state.num_units} resource units", "debug"
    )

    system_state.assert_invariants("at setup")
    return system_state


def run_step(
    system_state: SimulationState,
    logger: SimulatorLogger,
    event_log: EventLog,
    metrics: Optional[SimulationMetrics] = None
) -> None:
    """
    Advance the simulation clock by one step.

    Step Ordering:
    1. Advance the tick
    2. Shuffle the process order with the injected random source
    3. Run each process's transition to completion, in that order
    4. Run deadlock detection (if enabled and the interval is due)
    5. Verify invariants and record metrics

    Args:
        system_state: Current simulation state
        logger: Logger instance
        event_log: Event log
        metrics: Metrics to update (optional)
    """
    system_state.tick += 1
    step = system_state.tick

    order = list(range(system_state.num_processes))
    system_state.rng.shuffle(order)

    for pid in order:
        step_process(system_state.processes[pid], system_state, logger, event_log)

    config = system_state.config
    if config.detection_enabled and should_run_detection(step, config.deadlock_check_interval):
        run_detection_check(system_state, logger, event_log, metrics)

    system_state.assert_invariants(f"after step {step}")

    if metrics is not None:
        metrics.record_step(
            step=step,
            tasks_completed=system_state.tasks_completed,
            held_units=system_state.num_units - system_state.pool.free_count(),
            waiting_times={p.pid: p.waiting_time for p in system_state.processes},
            timeouts=sum(p.timeouts for p in system_state.processes)
        )


def run_detection_check(
    system_state: SimulationState,
    logger: SimulatorLogger,
    event_log: EventLog,
    metrics: Optional[SimulationMetrics] = None
) -> bool:
    """
    Run the detector once and resolve a detected deadlock.

    A positive check counts as exactly one deadlock, however many processes
    are involved.

    Args:
        system_state: Current simulation state
        logger: Logger instance
        event_log: Event log
        metrics: Metrics to update (optional)

    Returns:
        True if a deadlock was detected (and resolved)
    """
    step = system_state.tick
    deadlock_exists, blocked_pids = detect_deadlock(system_state)

    if not deadlock_exists:
        logger.log_step(step, "Deadlock check: no deadlock detected", "debug")
        return False

    system_state.deadlocks_detected += 1
    if metrics is not None:
        metrics.record_deadlock()

    logger.log_deadlock(step, blocked_pids)
    event_log.add(SimulationEvent(
        step=step,
        event_type=EventType.DEADLOCK,
        process_id=-1,
        message=f"starving processes: {blocked_pids}, free units: {system_state.pool.free_count()}"
    ))

    released = resolve_deadlock(system_state)
    policy = system_state.config.policy.value
    logger.log_resolution(step, policy, released)

    for pid, unit_ids in released:
        logger.log_release(step, pid, unit_ids, "deadlock resolution")
        event_log.add(SimulationEvent(
            step=step,
            event_type=EventType.RESOLUTION,
            process_id=pid,
            unit_ids=unit_ids,
            message=policy
        ))
        event_log.add(SimulationEvent(
            step=step,
            event_type=EventType.RELEASE,
            process_id=pid,
            unit_ids=unit_ids,
            message="deadlock resolution"
        ))

    return True


def run_simulation(
    config: SimulationConfig,
    seed: Optional[int] = None,
    verbose: bool = False,
    log_file: Optional[str] = None
) -> Tuple[EventLog, SimulationMetrics, str]:
    """
    Run the contention simulation until its termination condition.

    Args:
        config: Run configuration
        seed: Seed for the random source (same seed = same run)
        verbose: Enable verbose logging
        log_file: Optional file to mirror the log into

    Returns:
        Tuple of (EventLog, SimulationMetrics, stop reason)

    Raises:
        ConfigurationError: If the configuration is invalid (no step runs)
    """
    logger = SimulatorLogger(verbose=verbose, log_file=log_file)
    event_log = EventLog()

    try:
        system_state = create_simulation(config, seed, logger, event_log)

        metrics = SimulationMetrics(
            population=system_state.num_processes,
            total_units=system_state.num_units
        )

        logger.log(f"\n{'='*60}")
        logger.log(f"SIMULATION START: {config.policy.value.upper()}")
        logger.log(config.describe())
        logger.log(f"{'='*60}\n")

        stop_reason = STOP_STEP_BUDGET
        for _ in range(config.max_steps):
            run_step(system_state, logger, event_log, metrics)

            if verbose:
                logger.log_system_state(system_state.tick, system_state.display())

            if config.termination is TerminationMode.ALL_COMPLETE and system_state.all_completed():
                stop_reason = STOP_ALL_COMPLETE
                logger.log(f"\nAll processes completed at step {system_state.tick}")
                break

        logger.log(f"\n{'='*60}")
        logger.log("SIMULATION COMPLETE")
        logger.log(f"{'='*60}\n")

        for process in system_state.processes:
            metrics.record_process_final_state(
                process.pid,
                process.state.value,
                process.tasks_finished,
                process.accumulated_wait,
                process.timeouts
            )

        _display_statistics(system_state, logger)
        logger.log(format_metrics_report(
            metrics,
            verbose=verbose,
            policy=config.policy.value,
            stop_reason=stop_reason
        ))
    finally:
        logger.close()

    return event_log, metrics, stop_reason


def _display_statistics(system_state: SimulationState, logger: SimulatorLogger) -> None:
    """Display final simulation statistics."""
    logger.log("\nSimulation Statistics:")
    logger.log(f"  Steps Run: {system_state.tick}")
    logger.log(f"  Total Processes: {system_state.num_processes}")
    logger.log(f"  Performing at end: {count_in_state(system_state, ProcessState.PERFORMING)}")
    logger.log(f"  Partially holding at end: {count_in_state(system_state, ProcessState.PARTIAL_HOLD)}")
    logger.log(f"  Free units at end: {system_state.pool.free_count()}/{system_state.num_units}")
    logger.log(f"  Tasks Completed: {system_state.tasks_completed}")
    logger.log(f"  Deadlocks Detected: {system_state.deadlocks_detected}")


def build_config(args: argparse.Namespace) -> SimulationConfig:
    """
    Combine the optional config file with command-line overrides.

    Raises:
        ConfigurationError: If the config file or the final parameters are invalid
    """
    config = load_config(args.config) if args.config else SimulationConfig()

    overrides = {
        'population': args.population,
        'pool_size': args.pool_size,
        'required_per_task': args.required,
        'max_wait_time': args.max_wait,
        'backoff_range': args.backoff_range,
        'deadlock_check_interval': args.check_interval,
        'stall_wait_threshold': args.stall_threshold,
        'max_steps': args.steps,
        'service_time': args.service_time,
        'incremental_claims_per_step': args.claims_per_step,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}

    if args.policy is not None:
        overrides['policy'] = LockingPolicy(args.policy)
    if args.termination is not None:
        overrides['termination'] = TerminationMode(args.termination)
    if args.no_detection:
        overrides['detection_enabled'] = False

    config = replace(config, **overrides)
    config.validate()
    return config


def main():
    """Main entry point for the simulator."""
    parser = argparse.ArgumentParser(
        description='Resource Contention & Deadlock Simulator'
    )
    parser.add_argument(
        '--config',
        type=str,
        help='Path to config JSON file (flags below override it)'
    )
    parser.add_argument(
        '--policy',
        choices=[p.value for p in LockingPolicy],
        help='Locking policy (default: two_phase)'
    )
    parser.add_argument('--population', type=int, help='Number of processes')
    parser.add_argument('--pool-size', type=int, help='Number of resource units')
    parser.add_argument('--required', type=int, help='Units required per task')
    parser.add_argument('--max-wait', type=int, help='Waiting steps before a timeout')
    parser.add_argument('--backoff-range', type=int, help='Exclusive upper bound of backoff draws')
    parser.add_argument('--check-interval', type=int, help='Steps between deadlock checks')
    parser.add_argument(
        '--stall-threshold',
        type=int,
        help='Waiting time a process must exceed to count as starving (default: half the max wait; must be below it)'
    )
    parser.add_argument(
        '--no-detection',
        action='store_true',
        help='Disable deadlock detection'
    )
    parser.add_argument(
        '--termination',
        choices=[t.value for t in TerminationMode],
        help='Stop after the step budget or once every process completed a task'
    )
    parser.add_argument('--steps', type=int, help='Step budget')
    parser.add_argument('--service-time', type=int, help='Steps a task runs once its units are held')
    parser.add_argument(
        '--claims-per-step',
        type=int,
        help='Units the incremental policy may claim per step'
    )
    parser.add_argument('--seed', type=int, help='Random seed for reproducible runs')
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument('--log-file', type=str, help='Mirror the log into this file')
    parser.add_argument(
        '--show-events',
        action='store_true',
        help='Print the full event log after the run'
    )

    args = parser.parse_args()

    try:
        config = build_config(args)
        if args.config:
            description = get_config_description(args.config)
            if description:
                print(description)
        event_log, _, _ = run_simulation(config, args.seed, args.verbose, args.log_file)
    except ConfigurationError as e:
        SimulatorLogger().log(f"Invalid configuration: {e}", "error")
        return 2

    if args.show_events:
        print(event_log.display())
    return 0


if __name__ == '__main__':
    sys.exit(main())
