"""
Coin store: scoped delete/update mutations against the ``coins`` table.
"""

from __future__ import annotations

import logging
from typing import Sequence

from utxo_pruner.models.records import HeightSentinel
from utxo_pruner.storage.database import Database
from utxo_pruner.storage.transactions import placeholders
from utxo_pruner.utils.db_retry import with_store_retry

logger = logging.getLogger(__name__)


class CoinStore:
    """Mutations on coins, keyed by the txid that minted or spent them."""

    def __init__(self, db: Database):
        self.db = db

    async def _execute_count(self, sql: str, params: list) -> int:
        def _run(conn):
            row = conn.execute(sql, params).fetchone()
            return row[0] if row else 0

        return await self.db.run(_run)

    @with_store_retry()
    async def delete_minted(
        self, chain: str, network: str, txids: Sequence[str], mint_height: int
    ) -> int:
        """Delete coins minted by ``txids`` that still sit at ``mint_height``."""
        if not txids:
            return 0
        deleted = await self._execute_count(
            "DELETE FROM coins "
            "WHERE chain = ? AND network = ? AND mint_height = ? "
            f"AND mint_txid IN ({placeholders(len(txids))})",
            [chain, network, int(mint_height), *txids],
        )
        logger.debug(f"Deleted {deleted} {chain} {network} coin(s)")
        return deleted

    @with_store_retry()
    async def reset_spent(
        self,
        chain: str,
        network: str,
        txids: Sequence[str],
        spent_height: int = HeightSentinel.UNSPENT,
    ) -> int:
        """Undo the spends made by ``txids``."""
        if not txids:
            return 0
        return await self._execute_count(
            "UPDATE coins SET spent_height = ? "
            "WHERE chain = ? AND network = ? "
            f"AND spent_txid IN ({placeholders(len(txids))})",
            [int(spent_height), chain, network, *txids],
        )

    @with_store_retry()
    async def set_mint_height(
        self, chain: str, network: str, txids: Sequence[str], mint_height: int
    ) -> int:
        """Set ``mint_height`` on every coin minted by ``txids``."""
        if not txids:
            return 0
        return await self._execute_count(
            "UPDATE coins SET mint_height = ? "
            "WHERE chain = ? AND network = ? "
            f"AND mint_txid IN ({placeholders(len(txids))})",
            [int(mint_height), chain, network, *txids],
        )
