"""
Transaction store: candidate queries, spend-graph traversal and scoped
transaction mutations against the ``transactions`` table.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional, Sequence

from utxo_pruner.models.records import CoinRecord, TransactionRecord
from utxo_pruner.storage.database import Database
from utxo_pruner.utils.db_retry import with_store_retry

logger = logging.getLogger(__name__)

TX_COLUMNS = "chain, network, txid, block_height, block_time_normalized"
COIN_COLUMNS = (
    "chain, network, mint_txid, mint_index, mint_height, "
    "spent_txid, spent_height, value"
)

DEFAULT_FETCH_SIZE = 100


def placeholders(count: int) -> str:
    """``?, ?, ?`` for an IN clause of ``count`` values."""
    return ", ".join("?" for _ in range(count))


def _naive_utc(moment: datetime) -> datetime:
    # TIMESTAMP columns hold naive UTC values
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def _height_filter(
    chain: str, network: str, block_height: int, older_than: Optional[datetime]
) -> tuple[str, list]:
    where = "chain = ? AND network = ? AND block_height = ?"
    params: list = [chain, network, int(block_height)]
    if older_than is not None:
        where += " AND block_time_normalized < ?"
        params.append(_naive_utc(older_than))
    return where, params


class TransactionStore:
    """
    Access to the ``transactions`` table and the spend graph.

    Every read and mutation is scoped by chain and network.
    """

    def __init__(self, db: Database, fetch_size: int = DEFAULT_FETCH_SIZE):
        self.db = db
        self.fetch_size = fetch_size

    # ========================================
    # Candidate queries
    # ========================================

    @with_store_retry()
    async def count_by_height(
        self,
        chain: str,
        network: str,
        block_height: int,
        older_than: Optional[datetime] = None,
    ) -> int:
        """Count transactions at ``block_height``, optionally older than a cutoff."""
        where, params = _height_filter(chain, network, block_height, older_than)

        def _count(conn):
            row = conn.execute(
                f"SELECT COUNT(*) FROM transactions WHERE {where}", params
            ).fetchone()
            return row[0] if row else 0

        return await self.db.run(_count)

    async def find_by_height(
        self,
        chain: str,
        network: str,
        block_height: int,
        older_than: Optional[datetime] = None,
    ) -> AsyncIterator[TransactionRecord]:
        """
        Lazily yield transactions at ``block_height`` in storage order.

        Rows are pulled from a dedicated cursor ``fetch_size`` at a time; the
        next batch is only fetched once the consumer asks for it.
        """
        where, params = _height_filter(chain, network, block_height, older_than)
        cursor = await self.db.cursor()
        try:
            await self._execute_cursor(
                cursor, f"SELECT {TX_COLUMNS} FROM transactions WHERE {where}", params
            )
            while True:
                rows = await self._fetch_batch(cursor)
                if not rows:
                    break
                for row in rows:
                    yield TransactionRecord.from_row(row)
        finally:
            await self.db.run_on(cursor, "close")

    @with_store_retry()
    async def _execute_cursor(self, cursor, sql: str, params: list) -> None:
        await self.db.run_on(cursor, "execute", sql, params)

    @with_store_retry(max_attempts=1)
    async def _fetch_batch(self, cursor) -> List[tuple]:
        # Not retried: a failed fetchmany may already have consumed rows
        return await self.db.run_on(cursor, "fetchmany", self.fetch_size)

    # ========================================
    # Spend-graph traversal
    # ========================================

    @with_store_retry()
    async def coins_minted_by(
        self, chain: str, network: str, txid: str
    ) -> List[CoinRecord]:
        """All coins created by ``txid``."""

        def _select(conn):
            return conn.execute(
                f"SELECT {COIN_COLUMNS} FROM coins "
                "WHERE chain = ? AND network = ? AND mint_txid = ? "
                "ORDER BY mint_index",
                [chain, network, txid],
            ).fetchall()

        rows = await self.db.run(_select)
        return [CoinRecord.from_row(row) for row in rows]

    async def yield_related_coins(
        self, chain: str, network: str, txid: str
    ) -> AsyncIterator[CoinRecord]:
        """
        Yield every coin reachable from ``txid``'s outputs via spend edges.

        Depth-first: the outputs of ``txid`` first, then the outputs of each
        spending transaction. Each spending transaction is expanded once, so
        diamond-shaped graphs do not repeat coins. Depth is unbounded; the
        caller decides when to stop consuming.
        """
        expanded = {txid}
        pending = [txid]
        while pending:
            current = pending.pop()
            for coin in await self.coins_minted_by(chain, network, current):
                yield coin
                spender = coin.spent_txid
                if spender and spender not in expanded:
                    expanded.add(spender)
                    pending.append(spender)

    # ========================================
    # Mutations
    # ========================================

    @with_store_retry()
    async def delete_many(
        self, chain: str, network: str, txids: Sequence[str], block_height: int
    ) -> int:
        """Delete the given txids that still sit at ``block_height``."""
        if not txids:
            return 0

        def _delete(conn):
            row = conn.execute(
                "DELETE FROM transactions "
                "WHERE chain = ? AND network = ? AND block_height = ? "
                f"AND txid IN ({placeholders(len(txids))})",
                [chain, network, int(block_height), *txids],
            ).fetchone()
            return row[0] if row else 0

        deleted = await self.db.run(_delete)
        logger.debug(f"Deleted {deleted} {chain} {network} transaction(s)")
        return deleted

    @with_store_retry()
    async def set_block_height(
        self, chain: str, network: str, txids: Sequence[str], block_height: int
    ) -> int:
        """Set ``block_height`` on the given txids."""
        if not txids:
            return 0

        def _update(conn):
            row = conn.execute(
                "UPDATE transactions SET block_height = ? "
                "WHERE chain = ? AND network = ? "
                f"AND txid IN ({placeholders(len(txids))})",
                [int(block_height), chain, network, *txids],
            ).fetchone()
            return row[0] if row else 0

        return await self.db.run(_update)
