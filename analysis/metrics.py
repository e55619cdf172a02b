"""
Metrics Tracking for the Resource Contention & Deadlock Simulator.

Tracks throughput, deadlock and waiting metrics throughout a run.
"""

from dataclasses import dataclass, field
from typing import List, Dict
import statistics


@dataclass
class SimulationMetrics:
    """
    Accumulated metrics for a single simulation run.

    Updated every step so display collaborators can read:
    1. Tasks completed and completion rate (tasks / population x 100)
    2. Deadlocks detected
    3. Total and average waiting time (current waiting counters)
    4. Unit utilization (held / total units per step)
    """
    population: int = 0
    total_units: int = 0
    total_steps: int = 0
    tasks_completed: int = 0
    deadlock_count: int = 0
    timeout_count: int = 0

    # Per-step samples
    utilization_samples: List[float] = field(default_factory=list)
    total_wait_samples: List[int] = field(default_factory=list)

    # Per-process tracking
    process_waiting_times: Dict[int, int] = field(default_factory=dict)
    process_accumulated_wait: Dict[int, int] = field(default_factory=dict)
    process_tasks_finished: Dict[int, int] = field(default_factory=dict)
    process_timeouts: Dict[int, int] = field(default_factory=dict)
    process_final_states: Dict[int, str] = field(default_factory=dict)

    def record_step(
        self,
        step: int,
        tasks_completed: int,
        held_units: int,
        waiting_times: Dict[int, int],
        timeouts: int = 0
    ) -> None:
        """
        Record metrics for a single simulation step.

        Args:
            step: Current step number
            tasks_completed: Tasks completed so far
            held_units: Units held at the end of the step
            waiting_times: Current waiting_time per PID
            timeouts: Timeouts so far
        """
        self.total_steps = step
        self.tasks_completed = tasks_completed
        self.timeout_count = timeouts
        self.process_waiting_times = dict(waiting_times)
        self.total_wait_samples.append(sum(waiting_times.values()))

        if self.total_units > 0:
            self.utilization_samples.append((held_units / self.total_units) * 100)

    def record_deadlock(self) -> None:
        """Record a deadlock occurrence."""
        self.deadlock_count += 1

    def record_process_final_state(
        self,
        process_id: int,
        state: str,
        tasks_finished: int,
        accumulated_wait: int,
        timeouts: int
    ) -> None:
        """
        Record final state of a process.

        Args:
            process_id: Process identifier
            state: Final lifecycle state
            tasks_finished: Tasks the process completed
            accumulated_wait: Total waiting steps over the run
            timeouts: Attempts abandoned after waiting too long
        """
        self.process_final_states[process_id] = state
        self.process_tasks_finished[process_id] = tasks_finished
        self.process_accumulated_wait[process_id] = accumulated_wait
        self.process_timeouts[process_id] = timeouts

    def get_total_wait_time(self) -> int:
        """Sum of the processes' current waiting times."""
        return sum(self.process_waiting_times.values())

    def get_avg_wait_time(self) -> float:
        """
        Average current waiting time per process.

        Formula: Sum of waiting times / Population
        """
        if self.population == 0:
            return 0.0
        return self.get_total_wait_time() / self.population

    def get_avg_accumulated_wait(self) -> float:
        """Average total waiting steps per process over the whole run."""
        if not self.process_accumulated_wait:
            return 0.0
        return statistics.mean(self.process_accumulated_wait.values())

    def get_completion_rate(self) -> float:
        """
        Completion rate in percent.

        Formula: Tasks completed / Population x 100
        Exceeds 100 in continuous-workload runs.
        """
        if self.population == 0:
            return 0.0
        return (self.tasks_completed / self.population) * 100

    def get_avg_utilization(self) -> float:
        """Average percentage of units held per step."""
        if not self.utilization_samples:
            return 0.0
        return statistics.mean(self.utilization_samples)

    def get_throughput(self) -> float:
        """Tasks completed per simulation step."""
        if self.total_steps == 0:
            return 0.0
        return self.tasks_completed / self.total_steps

    def get_deadlock_frequency(self) -> float:
        """Get deadlock frequency (deadlocks / total steps)."""
        if self.total_steps == 0:
            return 0.0
        return self.deadlock_count / self.total_steps


def format_metrics_report(
    metrics: SimulationMetrics,
    verbose: bool = False,
    policy: str = None,
    stop_reason: str = None
) -> str:
    """
    Format metrics for display at end of simulation.

    Args:
        metrics: SimulationMetrics instance with collected data
        verbose: If True, include metric formulas
        policy: Locking policy used in simulation
        stop_reason: Reason simulation stopped

    Returns:
        Formatted metrics report string
    """
    lines = []
    lines.append("\n" + "="*60)
    lines.append("SIMULATION METRICS")
    lines.append("="*60)

    if policy:
        lines.append(f"Policy: {policy.upper()}")
    if stop_reason:
        lines.append(f"Stop Reason: {stop_reason}")
    if policy or stop_reason:
        lines.append("")

    lines.append(f"Total Steps: {metrics.total_steps}")
    lines.append(f"Population: {metrics.population}")
    lines.append(f"Resource Units: {metrics.total_units}")
    lines.append("")

    lines.append("KEY PERFORMANCE METRICS:")
    lines.append("-" * 60)
    lines.append(f"1. Tasks Completed: {metrics.tasks_completed}")
    lines.append(f"2. Completion Rate: {metrics.get_completion_rate():.2f}%")
    lines.append(f"3. Deadlocks Detected: {metrics.deadlock_count}")
    lines.append(f"4. Timeouts: {metrics.timeout_count}")
    lines.append(f"5. Total Wait Time: {metrics.get_total_wait_time()} steps")
    lines.append(f"6. Average Wait Time: {metrics.get_avg_wait_time():.2f} steps/process")
    lines.append(f"7. Average Unit Utilization: {metrics.get_avg_utilization():.2f}%")
    lines.append(f"8. Throughput: {metrics.get_throughput():.4f} tasks/step")

    if metrics.process_final_states:
        lines.append("")
        lines.append("PER-PROCESS SUMMARY:")
        lines.append("-" * 60)
        for pid in sorted(metrics.process_final_states.keys()):
            state = metrics.process_final_states[pid]
            finished = metrics.process_tasks_finished.get(pid, 0)
            waited = metrics.process_accumulated_wait.get(pid, 0)
            timeouts = metrics.process_timeouts.get(pid, 0)
            lines.append(
                f"  P{pid}: {state:12} | tasks={finished:3} | "
                f"waited={waited:4} steps | timeouts={timeouts:2}"
            )

    if verbose:
        lines.append("")
        lines.append("METRIC FORMULAS:")
        lines.append("-" * 60)
        lines.append("Completion Rate: (tasks completed / population) x 100")
        lines.append("Average Wait Time: (SUM current waiting times) / population")
        lines.append("Unit Utilization: Average of (held units / total units) x 100 per step")
        lines.append("Throughput: tasks completed / total steps")

    lines.append("="*60)
    return "\n".join(lines)
