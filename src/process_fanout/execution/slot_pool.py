from __future__ import annotations

import logging
import subprocess
from typing import Callable

from ..errors import ConfigurationError
from .capture import CapturePair
from .types import Slot, SlotState

logger = logging.getLogger(__name__)

Reclaim = Callable[[], object]


class SlotPool:
    """Fixed table of N slots, each holding at most one in-flight child.

    The table is mutated only by the controller thread, so no locking.

    Example:
        ```python
        pool = SlotPool(4)
        index = pool.acquire()
        ```
    """

    def __init__(self, size: int) -> None:
        """Create `size` idle slots; size must be at least 1.

        Example:
            ```python
            pool = SlotPool(2)
            ```
        """
        if size < 1:
            raise ConfigurationError(f"pool size must be greater than 0, got {size}")
        self._slots = [Slot(index=i) for i in range(size)]
        self._by_pid: dict[int, int] = {}

    @property
    def size(self) -> int:
        """Return the fixed number of slots.

        Example:
            ```python
            assert SlotPool(3).size == 3
            ```
        """
        return len(self._slots)

    def slot(self, index: int) -> Slot:
        """Return the slot at `index`.

        Example:
            ```python
            slot = pool.slot(0)
            ```
        """
        return self._slots[index]

    def acquire(self, reclaim: Reclaim | None = None) -> int:
        """Reserve an idle slot, reclaiming one occupied slot first when full.

        `reclaim` must reap and drain exactly one child, releasing its slot.

        Example:
            ```python
            index = pool.acquire(reclaim=controller.reap_and_drain)
            ```
        """
        index = self._first_idle()
        if index is None:
            if reclaim is None or self.running_count() == 0:
                raise RuntimeError("no idle slot available and nothing to reclaim")
            reclaim()
            index = self._first_idle()
            if index is None:
                raise RuntimeError("reclaim did not release a slot")
        self._slots[index].state = SlotState.RESERVED
        return index

    def occupy(
        self,
        index: int,
        *,
        pid: int,
        process: subprocess.Popen[bytes],
        captures: CapturePair,
    ) -> None:
        """Bind a freshly launched child and its captures to a reserved slot.

        Example:
            ```python
            pool.occupy(index, pid=proc.pid, process=proc, captures=pair)
            ```
        """
        slot = self._slots[index]
        if slot.state is not SlotState.RESERVED:
            raise RuntimeError(f"slot {index} is {slot.state.value}, expected reserved")
        slot.state = SlotState.OCCUPIED
        slot.pid = pid
        slot.process = process
        slot.captures = captures
        self._by_pid[pid] = index
        logger.debug("slot %d occupied by pid %d", index, pid)

    def mark_reaped(self, pid: int) -> int | None:
        """Move the slot owning `pid` to REAPED and return its index.

        Returns None when no slot owns `pid`.

        Example:
            ```python
            index = pool.mark_reaped(4242)
            ```
        """
        index = self._by_pid.pop(pid, None)
        if index is None:
            return None
        self._slots[index].state = SlotState.REAPED
        return index

    def release(self, index: int) -> None:
        """Return a slot to IDLE once its captures are drained.

        Example:
            ```python
            pool.release(index)
            ```
        """
        slot = self._slots[index]
        if slot.pid is not None:
            self._by_pid.pop(slot.pid, None)
        slot.clear()
        logger.debug("slot %d released", index)

    def running_count(self) -> int:
        """Return the number of slots whose child has not been reaped.

        Example:
            ```python
            pending = pool.running_count()
            ```
        """
        return sum(1 for slot in self._slots if slot.state is SlotState.OCCUPIED)

    def occupied_count(self) -> int:
        """Return the number of slots holding a child or undrained captures.

        Example:
            ```python
            assert pool.occupied_count() <= pool.size
            ```
        """
        return sum(
            1 for slot in self._slots if slot.state in (SlotState.OCCUPIED, SlotState.REAPED)
        )

    def _first_idle(self) -> int | None:
        """Return the lowest idle index, if any.

        Example:
            ```python
            index = pool._first_idle()
            ```
        """
        for slot in self._slots:
            if slot.state is SlotState.IDLE:
                return slot.index
        return None
