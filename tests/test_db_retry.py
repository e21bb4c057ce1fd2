"""
Tests for the store retry decorator.

Focus: transient errors are retried, permanent errors are not, and
exhausted retries surface as StoreIOError.
"""

import duckdb
import pytest

from utxo_pruner.errors import StoreIOError
from utxo_pruner.utils.db_retry import with_store_retry


class TestWithStoreRetry:
    @pytest.mark.asyncio
    async def test_transient_error_is_retried_until_success(self):
        calls = []

        @with_store_retry(max_attempts=3, initial_delay=0.01, max_delay=0.02)
        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise duckdb.IOException("disk hiccup")
            return "ok"

        assert await flaky() == "ok"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_store_io_error(self):
        calls = []

        @with_store_retry(max_attempts=2, initial_delay=0.01, max_delay=0.02)
        async def always_fails():
            calls.append(1)
            raise TimeoutError("store timed out")

        with pytest.raises(StoreIOError) as exc_info:
            await always_fails()

        assert len(calls) == 2
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    @pytest.mark.asyncio
    async def test_permanent_error_is_not_retried(self):
        calls = []

        @with_store_retry(max_attempts=3, initial_delay=0.01)
        async def bad_sql():
            calls.append(1)
            raise duckdb.CatalogException("Table does not exist")

        with pytest.raises(duckdb.CatalogException):
            await bad_sql()

        assert len(calls) == 1

    def test_wrapper_exposes_config(self):
        @with_store_retry(max_attempts=4)
        async def noop():
            return None

        assert noop.retry_config.max_attempts == 4
        assert noop.__name__ == "noop"
