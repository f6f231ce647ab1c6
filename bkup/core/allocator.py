"""Slot allocation under a capacity policy."""

import logging
from typing import Iterable, List

from .catalog import oldest_slot
from .errors import AllCandidatesProtectedError, CapacityExceededError
from .models import Allocation, BackupSlot, CapacityPolicy


class SlotAllocator:
    """Decides which slot the next backup of a project goes into.

    Allocation only looks at the slots it is given and never touches the
    filesystem; evicting the chosen victim is left to the caller.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def allocate(self, slots: List[BackupSlot], policy: CapacityPolicy,
                 protected: Iterable[int] = ()) -> Allocation:
        """Pick a slot number for a new backup.

        Args:
            slots: Existing slots of the project.
            policy: Capacity policy to enforce.
            protected: Slot numbers that must not be evicted.

        Returns:
            The allocation, carrying the evicted slot when one is overwritten.

        Raises:
            CapacityExceededError: All slots are used and queue mode is off.
            AllCandidatesProtectedError: Queue mode found no evictable slot.
        """
        if not policy.bounded:
            slot_number = max((s.slot_number for s in slots), default=-1) + 1
            self.logger.info(f"Unbounded policy: allocating slot {slot_number}")
            return Allocation(slot_number)

        limit = policy.max_versions
        # Slots left over from a higher limit are ignored, not reclaimed.
        used = [s for s in slots if 0 <= s.slot_number < limit]
        ignored = len(slots) - len(used)
        if ignored:
            self.logger.debug(f"Ignoring {ignored} slot(s) outside [0, {limit})")

        taken = {s.slot_number for s in used}
        if len(taken) < limit:
            slot_number = next(n for n in range(limit) if n not in taken)
            self.logger.info(f"Allocating free slot {slot_number} ({len(taken)}/{limit} used)")
            return Allocation(slot_number)

        if not policy.queue_mode:
            raise CapacityExceededError(limit)

        protected = set(protected)
        candidates = [s for s in used if s.slot_number not in protected]
        victim = oldest_slot(candidates)
        if victim is None:
            raise AllCandidatesProtectedError(limit, protected)

        self.logger.info(f"Queue mode: evicting slot {victim.slot_number} "
                         f"created {victim.created_at.isoformat()}")
        return Allocation(victim.slot_number, evicted=victim)
