"""
Pytest configuration and fixtures for Tickcord tests.
"""

import sys
from pathlib import Path

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import datetime

import pytest


class RecordingNotifier:
    """Notifier double that records every message instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []

    async def send(self, channel_id: int, content: str) -> None:
        self.sent.append((channel_id, content))


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def clock_at():
    """Build a clock frozen at the given hour of 2024-02-28."""

    def _make(hour: int, minute: int = 0, second: int = 0, microsecond: int = 0):
        moment = datetime.datetime(2024, 2, 28, hour, minute, second, microsecond)
        return lambda: moment

    return _make
