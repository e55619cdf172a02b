"""
Resource model for the Resource Contention & Deadlock Simulator.

Represents exclusively-owned resource units and the pool that tracks
their holders.
"""

from dataclasses import dataclass
from typing import List, Optional


class AlreadyHeldError(Exception):
    """Raised when acquiring a unit that already has a holder."""
    pass


@dataclass
class ResourceUnit:
    """
    A single exclusively-owned resource unit.

    Attributes:
        unit_id: Unit identifier (unique, fixed at setup)
        holder: PID of the holding process, or None when free

    Invariant:
        At most one process holds a unit at any instant.
    """
    unit_id: int
    holder: Optional[int] = None

    @property
    def is_free(self) -> bool:
        return self.holder is None


class ResourcePool:
    """
    Registry of resource units and their current holders.

    Units are referenced by integer id everywhere else in the simulator, so
    releasing a unit never leaves a dangling reference behind.
    """

    def __init__(self, size: int):
        self.units: List[ResourceUnit] = [ResourceUnit(unit_id=i) for i in range(size)]

    @property
    def size(self) -> int:
        """Total number of units in the pool."""
        return len(self.units)

    def available(self) -> List[ResourceUnit]:
        """Free units in ascending id order."""
        return [unit for unit in self.units if unit.is_free]

    def free_count(self) -> int:
        return sum(1 for unit in self.units if unit.is_free)

    def holder_of(self, unit_id: int) -> Optional[int]:
        return self.units[unit_id].holder

    def held_by(self, pid: int) -> List[int]:
        """Ids of all units currently held by a process."""
        return [unit.unit_id for unit in self.units if unit.holder == pid]

    def acquire(self, unit_id: int, pid: int) -> None:
        """
        Give a free unit to a process.

        Implements Mutual Exclusion: exclusivity is enforced here regardless
        of what the caller believes about the unit.

        Args:
            unit_id: Unit to acquire
            pid: Acquiring process

        Raises:
            AlreadyHeldError: If the unit already has a holder
        """
        unit = self.units[unit_id]
        if unit.holder is not None:
            raise AlreadyHeldError(
                f"U{unit_id} is already held by P{unit.holder} (requested by P{pid})"
            )
        unit.holder = pid

    def release(self, unit_id: int) -> None:
        """Clear the holder of a unit. Releasing a free unit is a no-op."""
        self.units[unit_id].holder = None
