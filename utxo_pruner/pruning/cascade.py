"""
Cascade mutations for an affected set.

remove_old_mempool deletes stale unconfirmed transactions and the coins
they minted. invalidate marks transactions conflicting, undoes the spends
they made and marks the coins they minted conflicting. The mutations of one
cascade are issued together and awaited jointly; there is no atomicity
across the two tables.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from utxo_pruner.models.records import HeightSentinel
from utxo_pruner.storage.coins import CoinStore
from utxo_pruner.storage.transactions import TransactionStore

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    """Rows touched by one cascade (all zero for a dry run)."""

    txids: int
    transactions: int = 0
    coins_minted: int = 0
    coins_spent: int = 0
    dry_run: bool = False


class CascadeExecutor:
    """Applies delete/invalidate cascades against the two stores."""

    def __init__(
        self,
        transaction_store: TransactionStore,
        coin_store: CoinStore,
        dry_run: bool = False,
    ):
        self.transaction_store = transaction_store
        self.coin_store = coin_store
        self.dry_run = dry_run

    def _prefix(self) -> str:
        return "DRY RUN - " if self.dry_run else ""

    async def remove_old_mempool(
        self, chain: str, network: str, txids: Sequence[str]
    ) -> CascadeResult:
        """
        Delete mempool transactions in ``txids`` and the mempool coins they
        minted.

        Safe to re-run: rows already gone simply do not match. A crash
        between the two deletes can leave coins whose transaction is gone;
        the next sweep no longer selects them and they are never read as
        confirmed.
        """
        logger.info(
            f"{self._prefix()}Removing {len(txids)} txids",
            extra={"extra_fields": {"chain": chain, "network": network}},
        )
        if self.dry_run:
            return CascadeResult(txids=len(txids), dry_run=True)

        transactions, coins = await asyncio.gather(
            self.transaction_store.delete_many(
                chain, network, txids, HeightSentinel.MEMPOOL
            ),
            self.coin_store.delete_minted(
                chain, network, txids, HeightSentinel.MEMPOOL
            ),
        )
        return CascadeResult(
            txids=len(txids), transactions=transactions, coins_minted=coins
        )

    async def invalidate(
        self, chain: str, network: str, txids: Sequence[str]
    ) -> CascadeResult:
        """
        Mark ``txids`` conflicting and unwind their effect on coins.

        The three updates run with no ordering between them. Readers may
        briefly see a coin with a conflicting mint and a stale spend; neither
        state reads as confirmed.
        """
        logger.info(
            f"{self._prefix()}Invalidating {len(txids)} txids",
            extra={"extra_fields": {"chain": chain, "network": network}},
        )
        if self.dry_run:
            return CascadeResult(txids=len(txids), dry_run=True)

        transactions, coins_spent, coins_minted = await asyncio.gather(
            # Set all invalid txs to conflicting status
            self.transaction_store.set_block_height(
                chain, network, txids, HeightSentinel.CONFLICTING
            ),
            # Coins pending to be spent by an invalid tx go back to unspent
            self.coin_store.reset_spent(
                chain, network, txids, HeightSentinel.UNSPENT
            ),
            # Coins created by invalid txs become conflicting
            self.coin_store.set_mint_height(
                chain, network, txids, HeightSentinel.CONFLICTING
            ),
        )
        return CascadeResult(
            txids=len(txids),
            transactions=transactions,
            coins_minted=coins_minted,
            coins_spent=coins_spent,
        )
