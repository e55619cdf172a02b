"""
Allocation Tests

Tests the two locking policies, incremental backoff on contention,
forced release and the backoff generator.
"""

import sys
import random
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.config import (
    ConfigurationError,
    InsufficientCapacityError,
    LockingPolicy,
    SimulationConfig,
)
from models.process import ProcessState
from models.system_state import SimulationState
from algorithms.allocation import (
    allocate,
    check_capacity,
    claim_incrementally,
    release_units,
    select_targets,
)
from algorithms.backoff import BackoffGenerator


def make_state(seed=0, **kwargs):
    return SimulationState.create(SimulationConfig(**kwargs), seed=seed)


def give(state, pid, unit_id):
    """Hand a unit to a process outside the allocator."""
    state.pool.acquire(unit_id, pid)
    state.processes[pid].hold(unit_id)


def test_two_phase_acquires_lowest_ids():
    """Two-phase takes the whole set in one step, lowest ids first."""
    print("\n" + "="*60)
    print("TEST 1: Two-Phase Allocation")
    print("="*60)

    state = make_state(population=2, pool_size=4, policy=LockingPolicy.TWO_PHASE)
    p0, p1 = state.processes

    acquired, reason = allocate(p0, state)
    assert acquired == [0, 1]
    assert p0.state == ProcessState.FULL_HOLD
    print(f"  ✓ P0 acquired {acquired} ({reason})")

    acquired, _ = allocate(p1, state)
    assert acquired == [2, 3]
    assert state.pool.free_count() == 0
    state.assert_invariants("after two-phase allocation")


def test_two_phase_waits_for_full_set():
    state = make_state(population=2, pool_size=3, policy=LockingPolicy.TWO_PHASE)
    p0, p1 = state.processes

    allocate(p0, state)
    acquired, reason = allocate(p1, state)

    assert acquired == []
    assert p1.held_units == [], "Two-phase never holds a partial set"
    assert p1.state == ProcessState.REQUESTING
    assert "Insufficient" in reason
    print(f"  ✓ P1 waits: {reason}")


def test_incremental_claims_one_unit_per_step():
    """Incremental claims one unit per call by default and keeps it."""
    print("\n" + "="*60)
    print("TEST 2: Incremental Allocation")
    print("="*60)

    state = make_state(population=1, pool_size=4, policy=LockingPolicy.INCREMENTAL)
    p0 = state.processes[0]

    acquired, _ = allocate(p0, state)
    assert acquired == [0]
    assert p0.state == ProcessState.PARTIAL_HOLD

    acquired, _ = allocate(p0, state)
    assert acquired == [1]
    assert p0.held_units == [0, 1]
    assert p0.state == ProcessState.FULL_HOLD
    print("  ✓ Units claimed across two calls")

    acquired, reason = allocate(p0, state)
    assert acquired == []
    assert reason == "Holding full set"


def test_incremental_partial_holds_can_block_each_other():
    state = make_state(population=2, pool_size=2, policy=LockingPolicy.INCREMENTAL)
    p0, p1 = state.processes

    assert allocate(p0, state)[0] == [0]
    assert allocate(p1, state)[0] == [1]

    acquired, _ = allocate(p0, state)
    assert acquired == []
    assert p0.state == ProcessState.PARTIAL_HOLD
    assert p1.state == ProcessState.PARTIAL_HOLD
    assert state.pool.free_count() == 0
    print("  ✓ Circular wait reached: each process holds one unit and needs the other")


def test_incremental_claims_per_step_setting():
    state = make_state(
        population=1,
        pool_size=4,
        policy=LockingPolicy.INCREMENTAL,
        incremental_claims_per_step=2
    )
    acquired, _ = allocate(state.processes[0], state)
    assert acquired == [0, 1]


def test_incremental_skip_adds_backoff():
    """A candidate held at the instant of the attempt is skipped with a backoff draw."""
    state = make_state(
        population=2,
        pool_size=3,
        policy=LockingPolicy.INCREMENTAL,
        backoff_range=5
    )
    p0 = state.processes[0]
    give(state, 1, 0)

    claimed, skipped = claim_incrementally(p0, [0, 1], state)

    assert claimed == [1]
    assert skipped == 1
    assert 0 <= p0.waiting_time < 5
    assert p0.accumulated_wait == p0.waiting_time, "Backoff counts toward the run total too"
    assert state.pool.holder_of(0) == 1, "Skipped unit keeps its holder"
    state.assert_invariants("after skip")


def test_incremental_targets_persist_across_steps():
    """Targets chosen at the start of an attempt are kept while another process holds them."""
    state = make_state(population=2, pool_size=4, policy=LockingPolicy.INCREMENTAL)
    p0 = state.processes[0]
    give(state, 1, 0)

    assert select_targets(p0, state.pool) == [1, 2]
    assert p0.target_units == [1, 2]

    give(state, 1, 1)
    assert select_targets(p0, state.pool) == [1, 2], "Held target stays a target"

    claimed, skipped = claim_incrementally(p0, [1, 2], state)
    assert claimed == [2]
    assert skipped == 1
    assert select_targets(p0, state.pool) == [1]
    assert p0.target_units == [2, 1]

    p0.reset_attempt()
    assert p0.target_units == []
    assert select_targets(p0, state.pool) == [3]


def test_insufficient_capacity():
    """Config validation and the allocator share one capacity check."""
    with pytest.raises(InsufficientCapacityError) as from_allocator:
        check_capacity(1, 2)
    with pytest.raises(InsufficientCapacityError) as from_config:
        SimulationConfig(pool_size=1, required_per_task=2).validate()
    assert str(from_config.value) == str(from_allocator.value)
    check_capacity(2, 2)


def test_release_units():
    state = make_state(population=1, pool_size=3)
    p0 = state.processes[0]
    give(state, 0, 0)
    give(state, 0, 2)

    released = release_units(p0, state.pool, [2])
    assert released == [2]
    assert p0.held_units == [0]
    assert state.pool.holder_of(2) is None

    released = release_units(p0, state.pool)
    assert released == [0]
    assert p0.held_units == []
    assert state.pool.free_count() == 3
    state.assert_invariants("after release")


def test_backoff_generator():
    """Backoff draws stay in range and are reproducible under a seed."""
    with pytest.raises(ConfigurationError):
        BackoffGenerator(0, random.Random(1))
    with pytest.raises(ConfigurationError):
        BackoffGenerator(-3, random.Random(1))

    first = BackoffGenerator(3, random.Random(42))
    second = BackoffGenerator(3, random.Random(42))
    draws = [first.next_delay() for _ in range(100)]

    assert all(0 <= d < 3 for d in draws)
    assert draws == [second.next_delay() for _ in range(100)]
    assert BackoffGenerator(1, random.Random(5)).next_delay() == 0
