import asyncio
import time
from unittest.mock import MagicMock

import pytest

from lead_proxy import config
from lead_proxy.core import kv_store
from lead_proxy.core.kv_store import (
    InMemoryStore,
    StoreUnavailableError,
    SupabaseStore,
    get_store,
    reset_store,
)


def _supabase_client(rows=None, error=None):
    client = MagicMock()
    table = client.table.return_value
    query = table.select.return_value.eq.return_value.gt.return_value.limit.return_value
    if error:
        query.execute.side_effect = error
        table.upsert.return_value.execute.side_effect = error
    else:
        query.execute.return_value = MagicMock(data=rows or [])
    return client


@pytest.mark.asyncio
async def test_supabase_store_reads_value():
    client = _supabase_client(rows=[{"value": {"count": 3, "reset_at": 10.0}}])
    store = SupabaseStore(client=client, table="rate_limit_state")

    value = await store.get("rl:198.51.100.1")

    assert value == {"count": 3, "reset_at": 10.0}
    client.table.assert_called_with("rate_limit_state")


@pytest.mark.asyncio
async def test_supabase_store_missing_row_is_none():
    store = SupabaseStore(client=_supabase_client(rows=[]))

    assert await store.get("rl:198.51.100.1") is None


@pytest.mark.asyncio
async def test_supabase_store_upserts_with_expiry():
    client = _supabase_client()
    store = SupabaseStore(client=client, table="rate_limit_state")

    await store.put("rl:198.51.100.1", {"count": 1, "reset_at": 10.0}, 42)

    row = client.table.return_value.upsert.call_args.args[0]
    assert row["key"] == "rl:198.51.100.1"
    assert row["value"] == {"count": 1, "reset_at": 10.0}
    assert "expires_at" in row
    assert client.table.return_value.upsert.call_args.kwargs["on_conflict"] == "key"


@pytest.mark.asyncio
async def test_supabase_store_wraps_client_errors():
    store = SupabaseStore(client=_supabase_client(error=RuntimeError("timeout")))

    with pytest.raises(StoreUnavailableError):
        await store.get("rl:198.51.100.1")
    with pytest.raises(StoreUnavailableError):
        await store.put("rl:198.51.100.1", {}, 1)


@pytest.mark.asyncio
async def test_supabase_store_without_credentials_is_unavailable(monkeypatch):
    monkeypatch.setattr(config, "SUPABASE_URL", None)
    monkeypatch.setattr(config, "SUPABASE_SERVICE_KEY", None)
    store = SupabaseStore()

    with pytest.raises(StoreUnavailableError):
        await store.get("rl:198.51.100.1")


def test_get_store_follows_backend_setting(monkeypatch):
    reset_store(None)
    monkeypatch.setattr(config, "RATE_LIMIT_BACKEND", "supabase")
    assert isinstance(get_store(), SupabaseStore)

    reset_store(None)
    monkeypatch.setattr(config, "RATE_LIMIT_BACKEND", "memory")
    store = get_store()
    assert isinstance(store, InMemoryStore)
    assert get_store() is store
    assert kv_store._store is store


@pytest.mark.asyncio
async def test_supabase_store_does_not_block_the_event_loop():
    def slow_execute():
        time.sleep(0.3)
        return MagicMock(data=[])

    client = _supabase_client()
    query = client.table.return_value.select.return_value.eq.return_value
    query.gt.return_value.limit.return_value.execute.side_effect = slow_execute
    client.table.return_value.upsert.return_value.execute.side_effect = slow_execute
    store = SupabaseStore(client=client)

    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            await asyncio.sleep(0.01)
            ticks += 1

    task = asyncio.create_task(ticker())
    try:
        assert await store.get("rl:198.51.100.1") is None
        await store.put("rl:198.51.100.1", {"count": 1, "reset_at": 10.0}, 60)
    finally:
        task.cancel()

    assert ticks >= 10
