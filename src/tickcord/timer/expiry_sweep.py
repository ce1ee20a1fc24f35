"""
Per-tick release of expired temporary restrictions.

The record collection belongs to the moderation side; the sweep only reads
it, calls the release capability, and removes records that were released.
Failed releases stay in the collection and are retried on the next tick.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, MutableSet

from tickcord.datatypes.timer_datatypes import ExpiryRecord
from tickcord.timer.errors import ReleaseFailure
from tickcord.util.logger import get_logger

logger = get_logger("expiry_sweep")

ReleaseCallable = Callable[[int, int], Awaitable[None] | None]


@dataclass
class SweepResult:
    """Outcome of one sweep."""
    released: List[ExpiryRecord] = field(default_factory=list)
    failures: List[ReleaseFailure] = field(default_factory=list)


class ExpirySweep:
    """
    Releases every record whose expiry hour has been reached.

    Args:
        records: Mutable collection of pending records, shared with its owner.
        release: Called with ``(subject_id, scope_id)``; raising means the
            release failed. It must tolerate subjects that are already released.
    """

    def __init__(self, records: MutableSet[ExpiryRecord], release: ReleaseCallable) -> None:
        self.records = records
        self._release = release

    def due(self, hours_since_epoch: int) -> List[ExpiryRecord]:
        return [record for record in self.records if record.expiry_hour_count <= hours_since_epoch]

    async def sweep(self, hours_since_epoch: int) -> SweepResult:
        result = SweepResult()
        for record in self.due(hours_since_epoch):
            try:
                outcome = self._release(record.subject_id, record.scope_id)
                if inspect.isawaitable(outcome):
                    await outcome
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                failure = ReleaseFailure(record.subject_id, record.scope_id, exc)
                logger.error("[EXPIRY SWEEP] %s; will retry next tick", failure)
                result.failures.append(failure)
                continue

            self.records.discard(record)
            result.released.append(record)
            logger.debug(
                "[EXPIRY SWEEP] Released %s in %s (expired at hour %d)",
                record.subject_id, record.scope_id, record.expiry_hour_count,
            )
        return result

    async def __call__(self, hours_since_epoch: int) -> SweepResult:
        return await self.sweep(hours_since_epoch)
