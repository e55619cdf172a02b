"""
Resource Allocator for the Resource Contention & Deadlock Simulator.

Implements the two acquisition policies against the resource pool:
two-phase (all required units in one step) and incremental (units claimed
one at a time across steps, with randomized backoff on contention).
"""

from typing import List, Optional, Tuple

from models.config import LockingPolicy, check_capacity
from models.process import Process, ProcessState
from models.resource import AlreadyHeldError, ResourcePool
from models.system_state import SimulationState


def allocate(process: Process, system_state: SimulationState) -> Tuple[List[int], str]:
    """
    Attempt to acquire units for a requesting process.

    Steps:
    1. Check pool capacity (fatal if it can never satisfy a task)
    2. Compute needed = required - held
    3. Two-phase: if fewer than `needed` units are free, no action this step;
       otherwise acquire the first `needed` free units in ascending id order.
    4. Incremental: pick target units (see select_targets) and claim them
       one by one, skipping (with backoff) any target already held at the
       instant of the attempt.

    The ascending-id ordering is a heuristic only; processes racing for the
    same low ids can still end up in a circular wait under incremental
    locking.

    Args:
        process: Process making the request
        system_state: Current simulation state

    Returns:
        Tuple of (unit ids acquired this step, reason string)

    Raises:
        InsufficientCapacityError: If the pool is smaller than a task's need
    """
    config = system_state.config
    pool = system_state.pool
    check_capacity(pool.size, config.required_per_task)

    needed = process.needed
    if needed <= 0:
        return [], "Holding full set"

    if config.policy is LockingPolicy.TWO_PHASE:
        free_units = pool.available()
        if len(free_units) < needed:
            _update_hold_state(process)
            return [], f"Insufficient free units (needed: {needed}, free: {len(free_units)})"

        candidates = [unit.unit_id for unit in free_units[:needed]]
        acquired = _acquire_all(process, candidates, pool)
        reason = "GRANTED (all units acquired together)"
    else:
        candidates = select_targets(process, pool)
        if not candidates:
            _update_hold_state(process)
            return [], f"No free units to target (needed: {needed})"

        acquired, skipped = claim_incrementally(
            process,
            candidates,
            system_state,
            max_claims=config.incremental_claims_per_step
        )
        reason = f"CLAIMED {len(acquired)} unit(s), skipped {skipped}"

    _update_hold_state(process)
    return acquired, reason


def select_targets(process: Process, pool: ResourcePool) -> List[int]:
    """
    Units an incremental attempt goes after, in claim order.

    Targets picked earlier in the attempt are kept even once another
    process holds them; that is the hold-and-wait of incremental locking.
    When fewer targets than missing units remain, the lowest-id free units
    are added. Targets are forgotten when the attempt restarts.

    Returns:
        Unheld target ids (at most `process.needed` of them)
    """
    targets = [u for u in process.target_units if u not in process.held_units]
    del targets[process.needed:]

    for unit in pool.available():
        if len(targets) >= process.needed:
            break
        if unit.unit_id not in targets:
            targets.append(unit.unit_id)

    process.target_units = process.held_units + targets
    return targets


def _acquire_all(process: Process, candidates: List[int], pool: ResourcePool) -> List[int]:
    """Two-phase acquisition: take every candidate within this step."""
    for unit_id in candidates:
        pool.acquire(unit_id, process.pid)
        process.hold(unit_id)
    return list(candidates)


def claim_incrementally(
    process: Process,
    candidates: List[int],
    system_state: SimulationState,
    max_claims: Optional[int] = None
) -> Tuple[List[int], int]:
    """
    Claim candidate units one at a time.

    A candidate that already has a holder when it is attempted is skipped
    and one backoff draw is added to the process's waiting time (both the
    current attempt's and the accumulated total). Claimed
    units stay held across steps.

    Args:
        process: Claiming process
        candidates: Unit ids to attempt, in order
        system_state: Current simulation state
        max_claims: Stop after this many successful claims (None = no limit)

    Returns:
        Tuple of (claimed unit ids, number of skipped candidates)
    """
    claimed = []
    skipped = 0

    for unit_id in candidates:
        if max_claims is not None and len(claimed) >= max_claims:
            break
        if process.needed <= 0:
            break
        try:
            system_state.pool.acquire(unit_id, process.pid)
        except AlreadyHeldError:
            skipped += 1
            delay = system_state.backoff.next_delay()
            process.waiting_time += delay
            process.accumulated_wait += delay
            continue
        process.hold(unit_id)
        claimed.append(unit_id)

    return claimed, skipped


def release_units(
    process: Process,
    pool: ResourcePool,
    unit_ids: Optional[List[int]] = None
) -> List[int]:
    """
    Return units held by a process to the pool.

    Args:
        process: Holding process
        pool: Resource pool
        unit_ids: Units to release (None = the whole held-set)

    Returns:
        Ids of released units
    """
    if unit_ids is None:
        unit_ids = list(process.held_units)

    for unit_id in unit_ids:
        process.drop(unit_id)
        pool.release(unit_id)

    return list(unit_ids)


def _update_hold_state(process: Process) -> None:
    """Set Requesting / PartialHold / FullHold from the held-set size."""
    if process.has_full_set():
        process.state = ProcessState.FULL_HOLD
    elif process.held_units:
        process.state = ProcessState.PARTIAL_HOLD
    else:
        process.state = ProcessState.REQUESTING
