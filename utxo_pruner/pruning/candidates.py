"""Candidate selection: which transactions a sweep should visit."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Optional

from utxo_pruner.models.records import HeightSentinel, TransactionRecord
from utxo_pruner.storage.transactions import TransactionStore


def mempool_cutoff(days: float, now: Optional[datetime] = None) -> datetime:
    """Mempool txs first seen before this moment count as old."""
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=days)


class CandidateSelector:
    """
    Queries the transaction store for prunable transactions.

    Old-mempool mode selects unconfirmed transactions older than a cutoff;
    invalid mode selects transactions flagged with the INVALID sentinel.
    Both return lazy sequences in storage order.
    """

    def __init__(self, transaction_store: TransactionStore):
        self.transaction_store = transaction_store

    async def count_old_mempool(
        self, chain: str, network: str, cutoff: datetime
    ) -> int:
        return await self.transaction_store.count_by_height(
            chain, network, HeightSentinel.MEMPOOL, older_than=cutoff
        )

    def old_mempool(
        self, chain: str, network: str, cutoff: datetime
    ) -> AsyncIterator[TransactionRecord]:
        return self.transaction_store.find_by_height(
            chain, network, HeightSentinel.MEMPOOL, older_than=cutoff
        )

    async def count_invalid(self, chain: str, network: str) -> int:
        return await self.transaction_store.count_by_height(
            chain, network, HeightSentinel.INVALID
        )

    def invalid(self, chain: str, network: str) -> AsyncIterator[TransactionRecord]:
        return self.transaction_store.find_by_height(
            chain, network, HeightSentinel.INVALID
        )
