"""
System State model for the Resource Contention & Deadlock Simulator.

The single explicit simulation context: configuration, pool, processes,
random source and global counters are threaded through the clock, the
detector and the aggregator from here instead of living in globals.
"""

import random
import numpy as np
from typing import List, Dict, Optional, Any
from dataclasses import dataclass

from algorithms.backoff import BackoffGenerator
from models.config import SimulationConfig
from models.process import Process, ProcessState
from models.resource import ResourcePool


@dataclass
class SimulationState:
    """
    Global simulation context.

    Attributes:
        config: Validated run configuration
        pool: Resource units and their holders
        processes: All processes, indexed by pid
        rng: Injected random source (shuffles, backoff, resolution choices)
        backoff: Backoff generator sharing the same random source
        tick: Current step number (0 before the first step)
        tasks_completed: Tasks completed so far
        deadlocks_detected: Positive detector checks so far
        last_tasks_completed: tasks_completed as of the previous detector check
    """
    config: SimulationConfig
    pool: ResourcePool
    processes: List[Process]
    rng: random.Random
    backoff: BackoffGenerator
    tick: int = 0
    tasks_completed: int = 0
    deadlocks_detected: int = 0
    last_tasks_completed: int = 0

    @classmethod
    def create(cls, config: SimulationConfig, seed: Optional[int] = None,
               rng: Optional[random.Random] = None) -> "SimulationState":
        """
        Validate the configuration and build the initial state.

        Every unit starts free and every process starts Idle.

        Args:
            config: Run configuration
            seed: Seed for a fresh random source (ignored if rng is given)
            rng: Random source to use instead of a seeded one

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        config.validate()
        if rng is None:
            rng = random.Random(seed)
        return cls(
            config=config,
            pool=ResourcePool(config.pool_size),
            processes=[Process(pid=i, required=config.required_per_task)
                       for i in range(config.population)],
            rng=rng,
            backoff=BackoffGenerator(config.backoff_range, rng),
        )

    @property
    def num_processes(self) -> int:
        return len(self.processes)

    @property
    def num_units(self) -> int:
        return self.pool.size

    def incomplete_processes(self) -> List[Process]:
        """Processes not yet marked as done for good."""
        return [p for p in self.processes if not p.task_completed]

    def all_completed(self) -> bool:
        return all(p.task_completed for p in self.processes)

    @property
    def allocation_matrix(self) -> np.ndarray:
        """
        Holding matrix [P][U]: 1 where process P's held-set contains unit U.

        Built from the process side so it can be checked against the pool.
        """
        matrix = np.zeros((self.num_processes, self.num_units), dtype=int)
        for process in self.processes:
            for unit_id in process.held_units:
                matrix[process.pid][unit_id] += 1
        return matrix

    @property
    def holder_counts(self) -> np.ndarray:
        """Number of processes holding each unit [U]."""
        return self.allocation_matrix.sum(axis=0)

    def assert_resource_conservation(self, context: str = "") -> None:
        """
        Verify held + free == total and that both views of ownership agree.

        Raises:
            AssertionError: If conservation is violated
        """
        held = int(self.allocation_matrix.sum())
        free = self.pool.free_count()
        total = self.num_units
        assert held + free == total, (
            f"Resource conservation violated {context}\n"
            f"  Held: {held}, Free: {free}, Total: {total}\n"
            f"  Held + Free = {held + free} != {total}"
        )

        for unit in self.pool.units:
            if unit.holder is None:
                continue
            assert unit.unit_id in self.processes[unit.holder].held_units, (
                f"U{unit.unit_id} records holder P{unit.holder} but P{unit.holder} "
                f"does not hold it {context}"
            )

    def assert_invariants(self, context: str = "") -> None:
        """
        Verify exclusivity, held-set bounds, performing rule and conservation.

        Raises:
            AssertionError: If any invariant is violated
        """
        counts = self.holder_counts
        assert np.all(counts <= 1), (
            f"Unit held by more than one process {context}\n"
            f"  Holder counts: {list(counts)}"
        )

        required = self.config.required_per_task
        for process in self.processes:
            assert process.held_count <= required, (
                f"P{process.pid} holds {process.held_count} units, more than "
                f"{required} {context}"
            )
            if process.is_performing():
                assert process.held_count == required, (
                    f"P{process.pid} is performing with only {process.held_count} "
                    f"of {required} units {context}"
                )

        self.assert_resource_conservation(context)

    def snapshot(self) -> Dict[str, Any]:
        """
        Read-only view of the current state for display collaborators.

        Returns:
            Dictionary of counters, per-process and per-unit state
        """
        return {
            'tick': self.tick,
            'tasks_completed': self.tasks_completed,
            'deadlocks_detected': self.deadlocks_detected,
            'free_units': self.pool.free_count(),
            'processes': [
                {
                    'pid': p.pid,
                    'state': p.state.value,
                    'held_units': list(p.held_units),
                    'target_units': list(p.target_units),
                    'waiting_time': p.waiting_time,
                    'duration_remaining': p.duration_remaining,
                    'task_start_time': p.task_start_time,
                    'tasks_finished': p.tasks_finished,
                }
                for p in self.processes
            ],
            'units': [
                {'unit_id': u.unit_id, 'holder': u.holder}
                for u in self.pool.units
            ],
        }

    def display(self) -> str:
        """
        Generate readable string representation of the state.

        Returns:
            Formatted string showing processes and unit holders
        """
        output = []
        output.append("\n" + "="*60)
        output.append(f"SYSTEM STATE (step {self.tick})")
        output.append("="*60)

        output.append(
            f"\nTasks completed: {self.tasks_completed}, "
            f"Deadlocks detected: {self.deadlocks_detected}, "
            f"Free units: {self.pool.free_count()}/{self.num_units}"
        )

        output.append("\nProcess States:")
        for p in self.processes:
            held = ", ".join(f"U{u}" for u in sorted(p.held_units)) or "-"
            output.append(
                f"  P{p.pid}: {p.state.value:12} held=[{held}] "
                f"wait={p.waiting_time} remaining={p.duration_remaining}"
            )

        output.append("\nUnit Holders:")
        holders = []
        for unit in self.pool.units:
            holder = f"P{unit.holder}" if unit.holder is not None else "--"
            holders.append(f"U{unit.unit_id}:{holder}")
        output.append("  " + " ".join(holders))

        output.append("\n" + "="*60)
        return "\n".join(output)


def count_in_state(state: SimulationState, process_state: ProcessState) -> int:
    """Number of processes currently in a lifecycle state."""
    return sum(1 for p in state.processes if p.state == process_state)
