"""Async MariaDB/MySQL connection pools keyed by target identity.

One aiomysql pool per PoolKey, created lazily on first use and closed when
the manager is closed. Every connection handed out is wrapped in a Lease
that is returned to its pool exactly once, either released for reuse or
discarded when its state can no longer be trusted (timeout, transport
failure, cancellation mid-statement).
"""
import logging
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

import aiomysql
import pymysql

from mariadb_mcp.config import MariaDBConfig
from mariadb_mcp.utils.errors import DatabaseConnectionError

logger = logging.getLogger(__name__)

DEFAULT_DRAIN_TIMEOUT = 5.0


@dataclass(frozen=True)
class PoolKey:
    """Identity of a pool. The per-request database is never part of it."""

    host: str
    port: int
    user: str
    database: Optional[str]

    @classmethod
    def for_config(cls, config: MariaDBConfig) -> "PoolKey":
        return cls(config.host, config.port, config.user, config.database)

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database or ''}"


class Lease:
    """A connection checked out of a pool, held by exactly one caller."""

    def __init__(self, pool: aiomysql.Pool, connection: aiomysql.Connection):
        self.pool = pool
        self.connection = connection
        self.reusable = True
        self.returned = False

    def invalidate(self):
        """Mark the connection as unsafe to hand to another caller."""
        self.reusable = False


class PoolManager:
    """Registry of bounded connection pools.

    - One pool per key, even when first requested concurrently
    - Acquire waits for a free slot up to a timeout, never over-allocates
    - After close() no pool is created or handed out again
    """

    def __init__(self, drain_timeout: float = DEFAULT_DRAIN_TIMEOUT):
        self._pools: dict[PoolKey, aiomysql.Pool] = {}
        self._key_locks: dict[PoolKey, asyncio.Lock] = {}
        self._registry_lock = asyncio.Lock()
        self._drain_timeout = drain_timeout
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self):
        if self._closed:
            raise DatabaseConnectionError("Connection pools are closed (server shutting down)")

    async def get_pool(self, config: MariaDBConfig) -> aiomysql.Pool:
        """Return the pool for ``config``'s key, creating it on first use."""
        self._check_open()
        key = PoolKey.for_config(config)
        pool = self._pools.get(key)
        if pool is not None:
            return pool

        async with self._registry_lock:
            key_lock = self._key_locks.setdefault(key, asyncio.Lock())

        async with key_lock:
            self._check_open()
            pool = self._pools.get(key)
            if pool is None:
                pool = await self._create_pool(config)
                self._pools[key] = pool
                logger.info(
                    f"Connection pool created for {key} (max {config.pool_size} connections)"
                )
        return pool

    async def _create_pool(self, config: MariaDBConfig) -> aiomysql.Pool:
        # minsize=0: no connection is opened until the first acquire
        return await aiomysql.create_pool(
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            db=config.database,
            minsize=0,
            maxsize=config.pool_size,
            connect_timeout=config.connect_timeout,
            autocommit=True,
            charset="utf8mb4",
            cursorclass=aiomysql.DictCursor,
        )

    async def acquire(self, pool: aiomysql.Pool, timeout: float = None) -> Lease:
        """Lease a connection, waiting up to ``timeout`` seconds for a free slot."""
        try:
            connection = await asyncio.wait_for(pool.acquire(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise DatabaseConnectionError(
                f"No database connection available within {timeout:.1f}s "
                f"(pool limit {pool.maxsize})"
            ) from e
        except (pymysql.err.MySQLError, OSError, RuntimeError) as e:
            raise DatabaseConnectionError(f"Failed to connect: {e}") from e
        return Lease(pool, connection)

    async def release(self, lease: Lease):
        """Return a healthy connection to its pool."""
        if lease.returned:
            logger.warning("Lease already returned to its pool; ignoring release")
            return
        lease.returned = True
        await lease.pool.release(lease.connection)

    async def discard(self, lease: Lease):
        """Close the connection and drop it from the pool without reuse."""
        if lease.returned:
            logger.warning("Lease already returned to its pool; ignoring discard")
            return
        lease.returned = True
        lease.connection.close()
        await lease.pool.release(lease.connection)
        # Pool.release only wakes waiters for open connections.
        await lease.pool._wakeup()
        logger.warning("Database connection discarded")

    @asynccontextmanager
    async def connection(self, config: MariaDBConfig) -> AsyncGenerator[Lease, None]:
        """Lease a connection for ``config``; released or discarded on every exit.

        A cancelled caller always discards the lease: it may have been
        interrupted while a command was on the wire.
        """
        pool = await self.get_pool(config)
        lease = await self.acquire(pool, timeout=config.acquire_timeout)
        try:
            yield lease
        except asyncio.CancelledError:
            # May have been interrupted mid-statement.
            lease.invalidate()
            raise
        finally:
            if lease.reusable:
                await self.release(lease)
            else:
                await self.discard(lease)

    async def close(self):
        """Refuse new work, then drain and close every pool."""
        self._closed = True
        async with self._registry_lock:
            key_locks = list(self._key_locks.items())

        for key, key_lock in key_locks:
            async with key_lock:
                pool = self._pools.pop(key, None)
            if pool is None:
                continue
            pool.close()
            try:
                await asyncio.wait_for(pool.wait_closed(), timeout=self._drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Pool {key} did not drain within {self._drain_timeout:.1f}s; "
                    "closing in-flight connections"
                )
                pool.terminate()
                await pool.wait_closed()
            logger.info(f"Connection pool closed for {key}")
