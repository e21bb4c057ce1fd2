"""
Dependent-closure traversal.

Expands a seed transaction into the set of transactions that spend its
outputs, directly or transitively, and refuses to hand back a set that is
unsafe to mutate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from utxo_pruner.errors import ClosureTooLargeError, DataIntegrityError
from utxo_pruner.models.records import is_confirmed
from utxo_pruner.storage.transactions import TransactionStore

logger = logging.getLogger(__name__)

# Fixed ceiling on descendant coins per seed.
# TODO: expose through PruningConfig once operators need a different bound.
MAX_DESCENDANTS = 50


@dataclass(frozen=True)
class Closure:
    """Affected set of one seed transaction."""

    seed_txid: str
    txids: Tuple[str, ...]  # seed first, then spenders in discovery order
    coins_visited: int

    @property
    def dependents(self) -> int:
        return len(self.txids) - 1

    def __len__(self) -> int:
        return len(self.txids)


class ClosureWalker:
    """Builds closures from the store's multi-hop coin traversal."""

    def __init__(
        self,
        transaction_store: TransactionStore,
        max_descendants: int = MAX_DESCENDANTS,
    ):
        self.transaction_store = transaction_store
        self.max_descendants = max_descendants

    async def walk(self, chain: str, network: str, seed_txid: str) -> Closure:
        """
        Compute the affected set of ``seed_txid``.

        Raises:
            DataIntegrityError: a reachable coin has a confirmed mint or
                spent height, so the seed is not actually prunable.
            ClosureTooLargeError: more than ``max_descendants`` coins are
                reachable.
        """
        affected = {seed_txid: None}
        visited = 0
        coins = self.transaction_store.yield_related_coins(chain, network, seed_txid)
        try:
            async for coin in coins:
                if is_confirmed(coin.mint_height) or is_confirmed(coin.spent_height):
                    raise DataIntegrityError(seed_txid, coin.mint_txid)
                visited += 1
                if visited > self.max_descendants:
                    raise ClosureTooLargeError(seed_txid, self.max_descendants)
                if coin.spent_txid:
                    affected.setdefault(coin.spent_txid, None)
        finally:
            await coins.aclose()

        logger.debug(
            f"Closure of {seed_txid}: {len(affected)} tx(s), {visited} coin(s)"
        )
        return Closure(
            seed_txid=seed_txid, txids=tuple(affected), coins_visited=visited
        )
