"""
Key-value stores backing the rate limiter.
The in-memory store keeps counters per process; the Supabase store shares them
across gateway instances through a single table.
"""

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Protocol

from cachetools import TLRUCache
from supabase import Client, create_client

from lead_proxy import config
from lead_proxy.config import logger

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "SupabaseStore",
    "StoreUnavailableError",
    "get_store",
    "reset_store",
]


class StoreUnavailableError(Exception):
    """Raised when the backing store cannot be reached."""


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def put(self, key: str, value: Any, ttl: int) -> None: ...


class InMemoryStore:
    """
    Process-local store on a ``cachetools.TLRUCache``.

    Each entry carries its own TTL; expired entries are purged on every write
    and the cache is bounded by ``maxsize``.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        maxsize: Optional[int] = None,
    ):
        self.maxsize = maxsize or config.RATE_LIMIT_MEMORY_MAXSIZE
        # values are stored as (value, ttl) so each key expires on its own schedule
        self._cache: TLRUCache = TLRUCache(
            maxsize=self.maxsize,
            ttu=lambda _key, entry, now: now + entry[1],
            timer=clock,
        )

    async def get(self, key: str) -> Optional[Any]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        return entry[0]

    async def put(self, key: str, value: Any, ttl: int) -> None:
        self._cache[key] = (value, max(1, int(ttl)))

    def __len__(self) -> int:
        self._cache.expire()
        return len(self._cache)


class SupabaseStore:
    """
    Store rows as ``{key, value, expires_at}`` in a Supabase table.

    The supabase client is synchronous, so queries run in a worker thread.

    Expired rows read as absent; they are overwritten by the next upsert for
    the same key. See ``database_schema.py`` for the table definition.
    """

    def __init__(self, client: Optional[Client] = None, table: Optional[str] = None):
        self._client = client
        self._table = table or config.RATE_LIMIT_TABLE

    def _get_supabase_client(self) -> Client:
        """
        Get or create the Supabase client instance.

        Returns:
            Client: Supabase client instance

        Raises:
            StoreUnavailableError: If Supabase is not configured or unreachable
        """
        if self._client is None:
            if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_KEY:
                error_msg = "SUPABASE_URL or SUPABASE_SERVICE_KEY is not configured"
                logger.error(error_msg)
                raise StoreUnavailableError(error_msg)

            try:
                self._client = create_client(
                    config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully for rate limiting")
            except Exception as e:
                logger.error(f"Failed to initialize Supabase client: {e}")
                raise StoreUnavailableError(str(e)) from e

        return self._client

    async def get(self, key: str) -> Optional[Any]:
        client = self._get_supabase_client()
        now_iso = datetime.now(timezone.utc).isoformat()

        try:
            query = (
                client.table(self._table)
                .select("value")
                .eq("key", key)
                .gt("expires_at", now_iso)
                .limit(1)
            )
            response = await asyncio.to_thread(query.execute)
        except Exception as e:
            raise StoreUnavailableError(f"Failed to read {key}: {e}") from e

        if not response.data:
            return None

        return response.data[0].get("value")

    async def put(self, key: str, value: Any, ttl: int) -> None:
        client = self._get_supabase_client()
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=max(1, int(ttl)))

        try:
            query = client.table(self._table).upsert(
                {"key": key, "value": value, "expires_at": expires_at.isoformat()},
                on_conflict="key",
            )
            await asyncio.to_thread(query.execute)
        except Exception as e:
            raise StoreUnavailableError(f"Failed to write {key}: {e}") from e


_store: Optional[KeyValueStore] = None


def get_store() -> KeyValueStore:
    """Return the process-wide store selected by RATE_LIMIT_BACKEND."""
    global _store

    if _store is None:
        if config.RATE_LIMIT_BACKEND == "supabase":
            _store = SupabaseStore()
        else:
            if config.RATE_LIMIT_BACKEND != "memory":
                logger.warning(
                    "Unknown RATE_LIMIT_BACKEND, falling back to memory",
                    extra={"backend": config.RATE_LIMIT_BACKEND},
                )
            _store = InMemoryStore()
        logger.info(f"Rate limit store initialized: {type(_store).__name__}")

    return _store


def reset_store(store: Optional[KeyValueStore] = None) -> None:
    """Replace the process-wide store (``None`` rebuilds it lazily)."""
    global _store
    _store = store
