from __future__ import annotations

from pathlib import Path

import pytest

from process_fanout import ConfigurationError
from process_fanout.execution.capture import CapturePair
from process_fanout.execution.slot_pool import SlotPool
from process_fanout.execution.types import SlotState


class _FakeProcess:
    def __init__(self, pid: int) -> None:
        self.pid = pid
        self.returncode: int | None = None


def _occupy(pool: SlotPool, index: int, pid: int, tmp_path: Path) -> None:
    pool.occupy(
        index,
        pid=pid,
        process=_FakeProcess(pid),  # type: ignore[arg-type]
        captures=CapturePair.create(str(tmp_path)),
    )


@pytest.mark.parametrize("size", [0, -1])
def test_pool_size_must_be_positive(size: int) -> None:
    with pytest.raises(ConfigurationError, match="greater than 0"):
        SlotPool(size)


def test_acquire_hands_out_distinct_indices() -> None:
    pool = SlotPool(3)
    assert [pool.acquire(), pool.acquire(), pool.acquire()] == [0, 1, 2]
    assert all(pool.slot(i).state is SlotState.RESERVED for i in range(3))


def test_acquire_when_full_without_running_children_fails() -> None:
    pool = SlotPool(1)
    pool.acquire()

    with pytest.raises(RuntimeError, match="no idle slot"):
        pool.acquire(reclaim=lambda: None)


def test_acquire_when_full_reclaims_one_slot(tmp_path: Path) -> None:
    pool = SlotPool(2)
    _occupy(pool, pool.acquire(), 100, tmp_path)
    _occupy(pool, pool.acquire(), 200, tmp_path)
    calls: list[int] = []

    def _reclaim() -> None:
        index = pool.mark_reaped(200)
        assert index is not None
        calls.append(index)
        pool.release(index)

    assert pool.acquire(reclaim=_reclaim) == 1
    assert calls == [1]
    assert pool.occupied_count() == 1
    assert pool.slot(1).state is SlotState.RESERVED


def test_reclaim_that_frees_nothing_is_an_error(tmp_path: Path) -> None:
    pool = SlotPool(1)
    _occupy(pool, pool.acquire(), 100, tmp_path)

    with pytest.raises(RuntimeError, match="did not release"):
        pool.acquire(reclaim=lambda: None)


def test_mark_reaped_maps_pid_to_slot(tmp_path: Path) -> None:
    pool = SlotPool(2)
    _occupy(pool, pool.acquire(), 100, tmp_path)
    _occupy(pool, pool.acquire(), 200, tmp_path)

    assert pool.mark_reaped(300) is None
    assert pool.mark_reaped(100) == 0
    assert pool.slot(0).state is SlotState.REAPED
    assert pool.running_count() == 1
    assert pool.occupied_count() == 2
    assert pool.mark_reaped(100) is None


def test_occupy_requires_reservation(tmp_path: Path) -> None:
    pool = SlotPool(1)

    with pytest.raises(RuntimeError, match="expected reserved"):
        _occupy(pool, 0, 100, tmp_path)


def test_release_clears_slot(tmp_path: Path) -> None:
    pool = SlotPool(1)
    _occupy(pool, pool.acquire(), 100, tmp_path)
    pool.mark_reaped(100)

    pool.release(0)

    slot = pool.slot(0)
    assert slot.state is SlotState.IDLE
    assert slot.pid is None
    assert slot.process is None
    assert slot.captures is None
    assert pool.acquire() == 0
