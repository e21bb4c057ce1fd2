"""
DuckDB database handle for the transaction/coin index.

Provides the path configuration and a connection wrapper that runs every
statement on a single worker thread, so coroutines can await store calls
without blocking the event loop.

Usage:
    from utxo_pruner.storage import Database

    db = Database("data/utxo_index.duckdb")
    count = await db.run(lambda conn: conn.execute("SELECT 1").fetchone())
    db.close()
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional

import duckdb

logger = logging.getLogger(__name__)

# Default database path - can be overridden via environment variable
DEFAULT_DB_PATH = Path(os.getenv("PRUNING_DB_PATH", "data/utxo_index.duckdb"))


def get_connection(
    db_path: Optional[str | Path] = None, read_only: bool = False
) -> duckdb.DuckDBPyConnection:
    """
    Get a DuckDB connection to the index database.

    Args:
        db_path: Database file (default: PRUNING_DB_PATH or data/utxo_index.duckdb)
        read_only: If True, open connection in read-only mode

    Returns:
        DuckDB connection object
    """
    path = Path(db_path) if db_path else DEFAULT_DB_PATH
    if str(path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


class Database:
    """
    DuckDB connection plus the executor that serialises access to it.

    DuckDB connections must not be used from two threads at once. All
    statements go through ``run`` which hands them to one worker thread;
    concurrent coroutines are queued, not interleaved.
    """

    def __init__(
        self,
        db_path: Optional[str | Path] = None,
        connection: Optional[duckdb.DuckDBPyConnection] = None,
    ):
        self.db_path = str(db_path or DEFAULT_DB_PATH)
        self.connection = connection or get_connection(self.db_path)
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="duckdb"
        )
        logger.info(f"Opened index database: {self.db_path}")

    async def run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run ``func(connection, *args)`` on the database thread."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, functools.partial(func, self.connection, *args)
        )

    async def run_on(self, target: Any, method: str, *args: Any) -> Any:
        """Call ``target.method(*args)`` on the database thread (cursor access)."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, functools.partial(getattr(target, method), *args)
        )

    async def cursor(self) -> duckdb.DuckDBPyConnection:
        """Independent cursor whose result set survives other statements."""
        return await self.run(lambda conn: conn.cursor())

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.connection.close()
        logger.info(f"Closed index database: {self.db_path}")
