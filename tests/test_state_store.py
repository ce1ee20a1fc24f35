from pathlib import Path
from unittest.mock import MagicMock

import pytest

from tickcord.database.db_connection import ConnectionManager
from tickcord.database.db_schema import SchemaManager
from tickcord.database.state_store import StateStore
from tickcord.repositories.state_repo import state_repo


async def open_connection(tmp_path: Path) -> ConnectionManager:
    connection = ConnectionManager()
    await connection.open(tmp_path / "state.db")
    await SchemaManager.initialize_schema(connection.connection)
    return connection


@pytest.mark.asyncio
async def test_save_and_load_round_trip(tmp_path: Path) -> None:
    connection = await open_connection(tmp_path)
    try:
        store = StateStore(connection)
        assert await store.load("missing") is None

        assert await store.save("birthday_map", {"42": 60}) is True
        assert await store.load("birthday_map") == {"42": 60}

        await store.save("birthday_map", {"42": 61})
        assert await store.load("birthday_map") == {"42": 61}
    finally:
        await connection.close()


@pytest.mark.asyncio
async def test_flush_writes_only_dirty_keys(tmp_path: Path) -> None:
    connection = await open_connection(tmp_path)
    try:
        store = StateStore(connection)
        data = {"a": [1, 2]}
        other = MagicMock(return_value={})
        store.register("a", lambda: data["a"])
        store.register("b", other)

        store.mark_dirty("a")
        assert store.dirty_keys() == {"a"}
        assert await store.flush() is True

        assert store.dirty_keys() == frozenset()
        assert await store.load("a") == [1, 2]
        other.assert_not_called()
        async with connection.read() as conn:
            assert await state_repo.keys(conn) == ["a"]
    finally:
        await connection.close()


@pytest.mark.asyncio
async def test_failed_flush_keeps_key_dirty() -> None:
    store = StateStore(ConnectionManager())  # never opened
    store.register("a", lambda: {"x": 1})
    store.mark_dirty("a")

    assert await store.flush() is False
    assert store.dirty_keys() == {"a"}


@pytest.mark.asyncio
async def test_load_failure_returns_none() -> None:
    store = StateStore(ConnectionManager())
    assert await store.load("a") is None


@pytest.mark.asyncio
async def test_corrupt_blob_returns_none(tmp_path: Path) -> None:
    connection = await open_connection(tmp_path)
    try:
        async with connection.transaction() as conn:
            await state_repo.save(conn, "bad", "{not json")
        assert await StateStore(connection).load("bad") is None
    finally:
        await connection.close()


def test_mark_dirty_ignores_unregistered_key() -> None:
    store = StateStore(ConnectionManager())
    store.mark_dirty("nobody")
    assert store.dirty_keys() == frozenset()


@pytest.mark.asyncio
async def test_schedule_flush_runs_in_background(tmp_path: Path) -> None:
    connection = await open_connection(tmp_path)
    try:
        store = StateStore(connection)
        assert store.schedule_flush() is None

        store.register("a", lambda: 1)
        store.mark_dirty("a")
        task = store.schedule_flush()
        assert task is not None
        assert await task is True
        assert await store.load("a") == 1
    finally:
        await connection.close()


@pytest.mark.asyncio
async def test_flush_waits_for_background_flush(tmp_path: Path) -> None:
    connection = await open_connection(tmp_path)
    try:
        store = StateStore(connection)
        store.register("a", lambda: {"v": 1})
        store.mark_dirty("a")

        background = store.schedule_flush()
        assert await store.flush() is True

        assert background.done()
        assert background.result() is True
        assert await store.load("a") == {"v": 1}
    finally:
        await connection.close()
