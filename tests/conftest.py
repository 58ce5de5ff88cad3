"""Shared test fixtures for MariaDB MCP tests."""
import asyncio

import pytest

from mariadb_mcp.config import MariaDBConfig
from mariadb_mcp.db import PoolManager
from mariadb_mcp.executor import QueryExecutor


class FakeCursor:
    """Async cursor replaying the owning connection's canned result."""

    def __init__(self, conn):
        self._conn = conn
        self._rows = []
        self.description = None
        self.rowcount = -1
        self.lastrowid = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql, args=None):
        self._conn.executed.append(sql)
        if self._conn.delay:
            await asyncio.sleep(self._conn.delay)
        self._conn.finished.append(sql)
        if self._conn.execute_error:
            raise self._conn.execute_error
        result = self._conn.result
        self.description = result.get("description")
        self._rows = list(result.get("rows", []))
        self.rowcount = result.get("rowcount", len(self._rows))
        self.lastrowid = result.get("lastrowid")
        return self.rowcount

    async def fetchall(self):
        return self._rows


class FakeConnection:
    def __init__(self):
        self.executed = []
        self.finished = []
        self.selected_dbs = []
        self.closed = False
        self.delay = 0
        self.select_error = None
        self.execute_error = None
        self.result = {"description": None, "rows": [], "rowcount": 0}

    async def select_db(self, db):
        self.selected_dbs.append(db)
        if self.select_error:
            raise self.select_error

    def cursor(self):
        return FakeCursor(self)

    def close(self):
        self.closed = True


class FakePool:
    """Stands in for aiomysql.Pool: bounded acquire, release accounting."""

    def __init__(self, maxsize=5):
        self.maxsize = maxsize
        self.connection = FakeConnection()
        self.acquire_error = None
        self.acquired = []
        self.released = []
        self.closing = False
        self.closed = False
        self.terminated = False
        self._cond = asyncio.Condition()

    @property
    def in_use(self):
        return len(self.acquired) - len(self.released)

    async def acquire(self):
        if self.acquire_error:
            raise self.acquire_error
        if self.closing:
            raise RuntimeError("Cannot acquire connection after closing pool")
        async with self._cond:
            while self.in_use >= self.maxsize:
                await self._cond.wait()
            if self.connection.closed:
                # a discarded connection is replaced by a fresh one
                self.connection = FakeConnection()
            self.acquired.append(self.connection)
            return self.connection

    async def release(self, conn):
        # Like aiomysql: closed connections leave the pool without a wakeup.
        self.released.append(conn)
        if not conn.closed:
            await self._wakeup()

    async def _wakeup(self):
        async with self._cond:
            self._cond.notify()

    def close(self):
        self.closing = True

    def terminate(self):
        self.closing = True
        self.terminated = True

    async def wait_closed(self):
        while self.in_use and not self.terminated:
            await asyncio.sleep(0.01)
        self.closed = True


def tabular(rows, columns=None):
    """Canned SELECT result: rows plus a DB-API description."""
    names = columns or (list(rows[0].keys()) if rows else [])
    # (name, type_code, display_size, internal_size, precision, scale, null_ok)
    description = [(name, 253, None, 255, 255, 0, True) for name in names]
    return {"description": description, "rows": rows}


@pytest.fixture
def config():
    return MariaDBConfig(
        host="db.example.com",
        user="app",
        password="secret",
        database="shop",
        row_limit=3,
        query_timeout_ms=200,
        acquire_timeout_ms=100,
    )


@pytest.fixture
def created_pools(monkeypatch):
    """Patch aiomysql.create_pool; returns the list of (kwargs, FakePool)."""
    created = []

    async def fake_create_pool(**kwargs):
        await asyncio.sleep(0)
        pool = FakePool(maxsize=kwargs["maxsize"])
        created.append((kwargs, pool))
        return pool

    monkeypatch.setattr("mariadb_mcp.db.aiomysql.create_pool", fake_create_pool)
    return created


@pytest.fixture
def pool_manager(created_pools):
    return PoolManager(drain_timeout=0.05)


@pytest.fixture
def executor(pool_manager):
    return QueryExecutor(pool_manager)


@pytest.fixture
def sample_rows():
    return [
        {"id": 1, "name": "Alice", "email": "alice@example.com"},
        {"id": 2, "name": "Bob", "email": "bob@example.com"},
    ]


@pytest.fixture
def tabular_result():
    return tabular
