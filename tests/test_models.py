"""
Core Data Model Tests

Tests ResourcePool, Process, SimulationConfig, SimulationState and the
JSON config loader.
"""

import sys
import json
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
    TerminationMode,
)
from models.process import Process, ProcessState
from models.resource import AlreadyHeldError, ResourcePool
from models.system_state import SimulationState
from utils.config_loader import (
    ConfigLoadError,
    config_from_dict,
    get_config_description,
    load_config,
)


def test_resource_pool():
    """Test acquire/release semantics of the pool."""
    print("\n" + "="*60)
    print("TEST 1: Resource Pool")
    print("="*60)

    pool = ResourcePool(3)
    assert pool.size == 3
    assert [u.unit_id for u in pool.available()] == [0, 1, 2]

    pool.acquire(1, 7)
    assert pool.holder_of(1) == 7
    assert pool.held_by(7) == [1]
    assert [u.unit_id for u in pool.available()] == [0, 2]
    print(f"  ✓ U1 acquired by P7, free: {pool.free_count()}")

    with pytest.raises(AlreadyHeldError):
        pool.acquire(1, 8)
    assert pool.holder_of(1) == 7, "Failed acquire must not change the holder"
    print("  ✓ Second acquire of a held unit rejected")

    pool.release(1)
    assert pool.holder_of(1) is None
    pool.release(1)
    assert pool.free_count() == 3, "Releasing a free unit is a no-op"
    print("  ✓ Release is idempotent")


def test_process_model():
    """Test held-set bookkeeping of a process."""
    process = Process(pid=0, required=2)
    assert process.state == ProcessState.IDLE
    assert process.needed == 2

    process.hold(0)
    with pytest.raises(ValueError):
        process.hold(0)

    process.hold(1)
    assert process.has_full_set()
    with pytest.raises(ValueError):
        process.hold(2)

    process.drop(1)
    assert process.held_units == [0]
    assert process.needed == 1
    with pytest.raises(ValueError):
        process.drop(5)

    process.waiting_time = 4
    process.task_start_time = 9
    process.duration_remaining = 2
    process.reset_attempt()
    assert (process.waiting_time, process.task_start_time, process.duration_remaining) == (0, 0, 0)


def test_config_validation():
    """Test that invalid parameters are rejected before a run."""
    print("\n" + "="*60)
    print("TEST 2: Config Validation")
    print("="*60)

    SimulationConfig().validate()
    print("  ✓ Defaults are valid")

    with pytest.raises(ConfigurationError):
        SimulationConfig(backoff_range=0).validate()
    with pytest.raises(ConfigurationError):
        SimulationConfig(population=0).validate()
    with pytest.raises(ConfigurationError):
        SimulationConfig(deadlock_check_interval=-1).validate()
    with pytest.raises(ConfigurationError):
        SimulationConfig(stall_wait_threshold=-1).validate()
    print("  ✓ Non-positive parameters rejected")

    with pytest.raises(InsufficientCapacityError):
        SimulationConfig(pool_size=1, required_per_task=2).validate()
    assert issubclass(InsufficientCapacityError, ConfigurationError)
    print("  ✓ Pool smaller than a task rejected")

    assert SimulationConfig(max_wait_time=7).effective_stall_threshold == 3
    assert SimulationConfig(max_wait_time=7, stall_wait_threshold=2).effective_stall_threshold == 2

    with pytest.raises(ConfigurationError, match="can never fire"):
        SimulationConfig(max_wait_time=7, stall_wait_threshold=7).validate()
    SimulationConfig(max_wait_time=7, stall_wait_threshold=7, detection_enabled=False).validate()
    print("  ✓ Detector threshold must stay below the timeout")


def test_system_state_invariants():
    """Test the holding matrix and invariant checks."""
    print("\n" + "="*60)
    print("TEST 3: System State")
    print("="*60)

    state = SimulationState.create(SimulationConfig(population=2, pool_size=3), seed=1)
    assert state.num_processes == 2
    assert state.num_units == 3
    assert state.pool.free_count() == 3
    assert all(p.state == ProcessState.IDLE for p in state.processes)
    state.assert_invariants("at creation")

    state.pool.acquire(0, 0)
    state.processes[0].hold(0)
    assert state.allocation_matrix.shape == (2, 3)
    assert list(state.holder_counts) == [1, 0, 0]
    state.assert_invariants("after one acquisition")
    print("  ✓ Holding matrix matches pool")

    snapshot = state.snapshot()
    assert snapshot['units'][0]['holder'] == 0
    assert snapshot['processes'][0]['held_units'] == [0]
    assert snapshot['free_units'] == 2
    assert "U0:P0" in state.display()

    # Pool says U1 is held but no process holds it
    state.pool.units[1].holder = 1
    with pytest.raises(AssertionError):
        state.assert_resource_conservation("after corruption")
    print("  ✓ Conservation violation detected")


def test_performing_without_full_set_is_flagged():
    state = SimulationState.create(SimulationConfig(population=1, pool_size=2), seed=1)
    state.pool.acquire(0, 0)
    state.processes[0].hold(0)
    state.processes[0].duration_remaining = 3

    with pytest.raises(AssertionError):
        state.assert_invariants("performing with one unit")


def test_state_creation_rejects_bad_config():
    with pytest.raises(ConfigurationError):
        SimulationState.create(SimulationConfig(backoff_range=0))
    with pytest.raises(InsufficientCapacityError):
        SimulationState.create(SimulationConfig(pool_size=2, required_per_task=3))


def test_config_loader(tmp_path):
    """Test loading a JSON config file."""
    print("\n" + "="*60)
    print("TEST 4: Config Loader")
    print("="*60)

    path = tmp_path / "run.json"
    path.write_text(json.dumps({
        "description": "small incremental run",
        "population": 4,
        "pool_size": 3,
        "policy": "incremental",
        "termination": "all_complete",
        "detection_enabled": False,
        "stall_wait_threshold": None
    }), encoding='utf-8')

    config = load_config(str(path))
    assert config.population == 4
    assert config.pool_size == 3
    assert config.policy is LockingPolicy.INCREMENTAL
    assert config.termination is TerminationMode.ALL_COMPLETE
    assert config.detection_enabled is False
    assert config.required_per_task == 2, "Missing keys keep their defaults"
    assert get_config_description(str(path)) == "small incremental run"
    print(f"  ✓ Loaded: {config.describe()}")


def test_config_loader_errors(tmp_path):
    """Test that malformed config files are rejected."""
    with pytest.raises(ConfigLoadError):
        load_config(str(tmp_path / "missing.json"))

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding='utf-8')
    with pytest.raises(ConfigLoadError):
        load_config(str(broken))
    assert get_config_description(str(broken)) == ''

    with pytest.raises(ConfigLoadError):
        config_from_dict({"poolsize": 3})
    with pytest.raises(ConfigLoadError):
        config_from_dict({"policy": "optimistic"})
    with pytest.raises(ConfigLoadError):
        config_from_dict({"population": "ten"})
    with pytest.raises(ConfigLoadError):
        config_from_dict({"max_wait_time": True})

    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps({"pool_size": 1, "required_per_task": 2}), encoding='utf-8')
    with pytest.raises(InsufficientCapacityError):
        load_config(str(invalid))


def test_shipped_configs_are_valid():
    config_dir = project_root / "configs"
    paths = sorted(config_dir.glob("*.json"))
    assert paths, "Expected sample configs"

    for path in paths:
        config = load_config(str(path))
        assert get_config_description(str(path))
        print(f"  ✓ {path.name}: {config.describe()}")
