#!/usr/bin/env python3
"""
Store Retry Decorator with Tenacity

Features:
- Exponential backoff for async store operations
- Configurable retry attempts and delays
- Only retries on transient errors (not schema/data errors)
- Structured logging for retry attempts
- Exhausted transient failures surface as StoreIOError

Usage:
    from utxo_pruner.utils.db_retry import with_store_retry

    class CoinStore:
        @with_store_retry()
        async def reset_spent(self, chain, network, txids):
            ...

    # Custom retry config
    @with_store_retry(max_attempts=5, initial_delay=2.0)
    async def critical_operation():
        ...
"""

import logging
from functools import wraps
from typing import Callable, Optional, Tuple, Type

import duckdb
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from utxo_pruner.errors import StoreIOError

logger = logging.getLogger(__name__)


# =============================================================================
# Retry Configuration
# =============================================================================

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    duckdb.IOException,  # File system issues
    duckdb.ConnectionException,  # Closed/broken connection
    duckdb.TransactionException,  # Write-write conflicts
    OSError,
    TimeoutError,
)


class StoreRetryConfig:
    """Configuration for store retry behavior"""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 0.5,
        max_delay: float = 5.0,
        multiplier: float = 2.0,
        retry_on_errors: Optional[Tuple[Type[BaseException], ...]] = None,
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts (default: 3)
            initial_delay: Initial delay in seconds (default: 0.5)
            max_delay: Maximum delay in seconds (default: 5.0)
            multiplier: Exponential backoff multiplier (default: 2.0)
            retry_on_errors: Exception types to retry on (default: transient errors)
        """
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.multiplier = multiplier
        self.retry_on_errors = retry_on_errors or TRANSIENT_ERRORS


# Default configuration
default_config = StoreRetryConfig()


# =============================================================================
# Retry Decorator
# =============================================================================


def with_store_retry(
    max_attempts: Optional[int] = None,
    initial_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    multiplier: Optional[float] = None,
):
    """
    Decorator to add retry logic to async store operations.

    Only transient errors are retried. Once attempts are exhausted the last
    transient error is re-raised as StoreIOError; any other exception
    propagates unchanged on the first failure.

    Args:
        max_attempts: Maximum attempts (default: 3)
        initial_delay: Initial delay in seconds (default: 0.5)
        max_delay: Maximum delay in seconds (default: 5.0)
        multiplier: Exponential backoff multiplier (default: 2.0)

    Returns:
        Decorated coroutine function with retry logic

    Example:
        @with_store_retry(max_attempts=5)
        async def count_rows(db):
            return await db.run(lambda conn: conn.execute("SELECT 1").fetchone())
    """
    # Use provided values or defaults
    config = StoreRetryConfig(
        max_attempts=max_attempts or default_config.max_attempts,
        initial_delay=initial_delay or default_config.initial_delay,
        max_delay=max_delay or default_config.max_delay,
        multiplier=multiplier or default_config.multiplier,
    )

    def decorator(func: Callable) -> Callable:
        retrying = retry(
            stop=stop_after_attempt(config.max_attempts),
            wait=wait_exponential(
                multiplier=config.multiplier,
                min=config.initial_delay,
                max=config.max_delay,
            ),
            retry=retry_if_exception_type(config.retry_on_errors),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )(func)

        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await retrying(*args, **kwargs)
            except config.retry_on_errors as e:
                logger.error(
                    f"Transient error in {func.__name__} persisted after "
                    f"{config.max_attempts} attempt(s): {e}"
                )
                raise StoreIOError(f"{func.__name__} failed: {e}") from e

        wrapper.retry_config = config
        return wrapper

    return decorator
