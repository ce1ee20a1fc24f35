from unittest.mock import AsyncMock

import pytest

from tickcord.datatypes.timer_datatypes import ExpiryRecord
from tickcord.timer.errors import ReleaseFailure
from tickcord.timer.expiry_sweep import ExpirySweep
from tickcord.timer.scheduler import HourlyScheduler
from tickcord.timer.timer_registry import TimerRegistry


@pytest.mark.asyncio
async def test_releases_only_due_records() -> None:
    due = ExpiryRecord(subject_id=1, scope_id=10, expiry_hour_count=100)
    later = ExpiryRecord(subject_id=2, scope_id=10, expiry_hour_count=101)
    records = {due, later}
    release = AsyncMock()

    result = await ExpirySweep(records, release).sweep(100)

    release.assert_awaited_once_with(1, 10)
    assert result.released == [due]
    assert records == {later}


@pytest.mark.asyncio
async def test_failed_release_is_kept_for_retry() -> None:
    record = ExpiryRecord(subject_id=1, scope_id=10, expiry_hour_count=5)
    records = {record}
    release = AsyncMock(side_effect=[RuntimeError("rate limited"), None])
    sweep = ExpirySweep(records, release)

    first = await sweep.sweep(5)
    assert records == {record}
    assert len(first.failures) == 1
    assert isinstance(first.failures[0], ReleaseFailure)
    assert first.failures[0].subject_id == 1

    second = await sweep.sweep(6)
    assert records == set()
    assert second.released == [record]
    assert release.await_count == 2


@pytest.mark.asyncio
async def test_sync_release_supported() -> None:
    released = []
    records = {ExpiryRecord(subject_id=3, scope_id=4, expiry_hour_count=0)}

    await ExpirySweep(records, lambda subject, scope: released.append((subject, scope))).sweep(0)

    assert released == [(3, 4)]
    assert not records


@pytest.mark.asyncio
async def test_one_failure_does_not_block_others() -> None:
    bad = ExpiryRecord(subject_id=1, scope_id=1, expiry_hour_count=1)
    good = ExpiryRecord(subject_id=2, scope_id=1, expiry_hour_count=1)
    records = {bad, good}

    async def release(subject: int, scope: int) -> None:
        if subject == 1:
            raise RuntimeError("nope")

    result = await ExpirySweep(records, release).sweep(1)

    assert records == {bad}
    assert result.released == [good]


@pytest.mark.asyncio
async def test_record_releases_on_the_tick_reaching_its_hour(clock_at) -> None:
    scheduler = HourlyScheduler(TimerRegistry(), clock=clock_at(6))
    target = scheduler.hours_since_epoch + 2
    record = ExpiryRecord(subject_id=7, scope_id=8, expiry_hour_count=target)
    records = {record}
    release = AsyncMock()
    scheduler.add_sweep(ExpirySweep(records, release))

    await scheduler.tick()
    assert scheduler.hours_since_epoch == target - 1
    release.assert_not_awaited()

    await scheduler.tick()
    assert scheduler.hours_since_epoch == target
    release.assert_awaited_once_with(7, 8)
    assert not records
