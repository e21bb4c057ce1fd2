"""
Pruning service: scheduling, single-flight guard and per-pair isolation.

Each pass walks every configured (chain, network) pair and, per enabled
mode, drains the matching candidates through closure + cascade:

- old-mempool: unconfirmed txs older than ``mempool_age_days`` are deleted
  together with every unconfirmed tx that depends on them
- invalid: txs flagged INVALID are marked conflicting together with their
  dependents, and the spends they made are undone

Usage:
    service = PruningService(TransactionStore(db), CoinStore(db), config)
    await service.start()
    ...
    await service.stop()
    await service.join()
"""

from __future__ import annotations

import asyncio
import logging
import signal
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Set

from utxo_pruner.config.settings import (
    MAX_INTERVAL_HOURS,
    PruningConfig,
    load_chain_networks,
)
from utxo_pruner.errors import ConfigurationError, StoppingError
from utxo_pruner.models.records import ChainNetwork, TransactionRecord
from utxo_pruner.pruning.candidates import CandidateSelector, mempool_cutoff
from utxo_pruner.pruning.cascade import CascadeExecutor
from utxo_pruner.pruning.closure import ClosureWalker
from utxo_pruner.pruning.pipeline import drain_candidates
from utxo_pruner.storage.coins import CoinStore
from utxo_pruner.storage.transactions import TransactionStore

logger = logging.getLogger(__name__)


def emit_shutdown_signal() -> None:
    """Ask the owning process to shut down, as Ctrl-C would."""
    signal.raise_signal(signal.SIGINT)


class PruningService:
    """
    Periodic (or run-once) pruning of stale and invalid mempool txs.

    Only one pass runs at a time: triggers that arrive while a pass is
    active are dropped, not queued. ``stop()`` is cooperative; the running
    pass notices it between candidates.
    """

    def __init__(
        self,
        transaction_store: TransactionStore,
        coin_store: CoinStore,
        config: Optional[PruningConfig] = None,
        chain_networks: Optional[Sequence[ChainNetwork]] = None,
        shutdown_callback: Optional[Callable[[], None]] = None,
    ):
        self.config = config or PruningConfig.from_env()
        if self.config.interval_hours > MAX_INTERVAL_HOURS:
            raise ConfigurationError(
                f"INTERVAL_HRS cannot be over {MAX_INTERVAL_HOURS:g}. "
                "Consider using a cron job."
            )

        self.transaction_store = transaction_store
        self.coin_store = coin_store
        self.selector = CandidateSelector(transaction_store)
        self.walker = ClosureWalker(transaction_store)
        self.cascade = CascadeExecutor(
            transaction_store, coin_store, dry_run=self.config.dry_run
        )

        self.chain_networks = list(chain_networks) if chain_networks else None
        self.shutdown_callback = shutdown_callback or emit_shutdown_signal

        # State
        self.stopping = False
        self.running = False
        self._ticker: Optional[asyncio.Task] = None
        self._runs: Set[asyncio.Task] = set()

    # ========================================
    # Lifecycle
    # ========================================

    async def start(self) -> None:
        """Log enabled modes and schedule passes (or run a single one)."""
        config = self.config
        logger.info("Starting Pruning Service")
        if config.prune_old:
            logger.info(
                f"Pruning mempool txs older than {config.mempool_age_days:g} day(s)"
            )
        if config.prune_invalid:
            logger.info("Pruning conflicting mempool txs")
        if config.dry_run:
            logger.info("Pruning service DRY RUN")

        if config.run_once_and_exit:
            self._spawn(self._run_once_and_exit())
        else:
            logger.info(f"Pruning service interval (hours): {config.interval_hours:g}")
            self._ticker = asyncio.create_task(self._tick(), name="pruning-ticker")

    async def stop(self) -> None:
        """Request cancellation and cancel the periodic trigger.

        Does not wait for an in-flight pass; use ``join()`` for that.
        """
        logger.info("Stopping Pruning Service")
        self.stopping = True
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def join(self) -> None:
        """Wait for in-flight passes to finish."""
        if self._runs:
            await asyncio.gather(*list(self._runs), return_exceptions=True)

    def is_stopping(self) -> bool:
        return self.stopping

    def _spawn(self, coro) -> asyncio.Task:
        # Passes run in their own task so cancelling the ticker never
        # interrupts a cascade
        task = asyncio.create_task(coro)
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
        return task

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.config.interval_seconds)
            self._spawn(self.detect_and_clear())

    async def _run_once_and_exit(self) -> None:
        try:
            await self.detect_and_clear()
        finally:
            self.shutdown_callback()

    # ========================================
    # Passes
    # ========================================

    def resolve_chain_networks(self) -> List[ChainNetwork]:
        """Pairs to sweep, in configured order."""
        pair = self.config.single_pair
        if pair is not None:
            return [pair]
        if self.chain_networks is not None:
            return list(self.chain_networks)
        if self.config.chains_config:
            return load_chain_networks(self.config.chains_config)
        raise ConfigurationError(
            "No chain/network to prune: set chain and network or a chains config"
        )

    async def detect_and_clear(self) -> bool:
        """
        Run one pass over every pair.

        Returns:
            False if the trigger was dropped because a pass is already
            running, True otherwise (whatever the pass outcome).
        """
        if self.running:
            logger.info("Pruning pass already running, trigger dropped")
            return False
        self.running = True

        try:
            try:
                pairs = self.resolve_chain_networks()
            except ConfigurationError as e:
                logger.error(f"Pruning Error: {e}")
                return True
            except Exception:
                logger.exception("Pruning Error: cannot resolve chain/network pairs")
                return True

            for pair in pairs:
                if self.stopping:
                    logger.info(f"Stopping before {pair}")
                    break
                try:
                    await self._process_pair(pair)
                except StoppingError as e:
                    logger.info(
                        f"Pruning stopped during {pair} after {e.processed} candidate(s)"
                    )
                    break
                except Exception:
                    # One broken pair must not starve the others
                    logger.exception(f"Pruning Error for {pair}")
        finally:
            self.running = False

        return True

    async def _process_pair(self, pair: ChainNetwork) -> None:
        if not pair.chain or not pair.network:
            raise ConfigurationError(
                "Config structure should contain both a chain and network"
            )
        if self.config.prune_old:
            await self.process_old_mempool_txs(
                pair.chain, pair.network, self.config.mempool_age_days
            )
        if self.config.prune_invalid:
            await self.process_invalid_txs(pair.chain, pair.network)

    async def process_old_mempool_txs(
        self,
        chain: str,
        network: str,
        days: float,
        now: Optional[datetime] = None,
    ) -> int:
        """Delete mempool txs older than ``days`` and everything spending them."""
        cutoff = mempool_cutoff(days, now)
        count = await self.selector.count_old_mempool(chain, network, cutoff)
        logger.info(f"Found {count} outdated {chain} {network} mempool txs")

        async def remove(tx: TransactionRecord) -> None:
            logger.info(
                f"Finding {tx.txid} outputs and dependent outputs",
                extra={"extra_fields": {"chain": chain, "network": network}},
            )
            closure = await self.walker.walk(chain, network, tx.txid)
            await self.cascade.remove_old_mempool(chain, network, closure.txids)
            logger.info(
                f"Removed {tx.txid} transaction and {closure.dependents} dependent txs"
            )

        processed = await drain_candidates(
            self.selector.old_mempool(chain, network, cutoff),
            remove,
            self.is_stopping,
            label=f"outdated {chain} {network} mempool txs",
        )
        logger.info(
            f"Removed all {chain} {network} mempool txs older than {days:g} day(s)"
        )
        return processed

    async def process_invalid_txs(self, chain: str, network: str) -> int:
        """Mark invalid txs and their dependents conflicting."""
        count = await self.selector.count_invalid(chain, network)
        logger.info(f"Found {count} invalid {chain} {network} txs")

        async def invalidate(tx: TransactionRecord) -> None:
            logger.info(
                f"Invalidating {tx.txid} outputs and dependent outputs",
                extra={"extra_fields": {"chain": chain, "network": network}},
            )
            closure = await self.walker.walk(chain, network, tx.txid)
            await self.cascade.invalidate(chain, network, closure.txids)
            logger.info(f"Invalidated {tx.txid} and {closure.dependents} dependent txs")

        return await drain_candidates(
            self.selector.invalid(chain, network),
            invalidate,
            self.is_stopping,
            label=f"invalid {chain} {network} txs",
        )
