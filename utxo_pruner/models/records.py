"""Transaction and coin records as read from the index.

Heights are either a confirmed block height (>= 0) or one of the
negative HeightSentinel markers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Optional


class HeightSentinel(IntEnum):
    """Reserved negative heights encoding record status."""

    MEMPOOL = -1  # unconfirmed tx, or a pending spend
    UNSPENT = -2
    CONFLICTING = -3
    INVALID = -4


def is_confirmed(height: Optional[int]) -> bool:
    """True when height is a real block height rather than a sentinel."""
    return height is not None and height >= 0


@dataclass(frozen=True)
class ChainNetwork:
    """A (chain, network) pair the service sweeps, e.g. BTC/mainnet."""

    chain: str
    network: str

    def __str__(self) -> str:
        return f"{self.chain} {self.network}"


@dataclass
class TransactionRecord:
    """Row of the transactions table."""

    chain: str
    network: str
    txid: str
    block_height: int
    block_time_normalized: Optional[datetime] = None

    @property
    def is_mempool(self) -> bool:
        return self.block_height == HeightSentinel.MEMPOOL

    @classmethod
    def from_row(cls, row: tuple) -> "TransactionRecord":
        chain, network, txid, block_height, block_time_normalized = row
        return cls(
            chain=chain,
            network=network,
            txid=txid,
            block_height=block_height,
            block_time_normalized=block_time_normalized,
        )


@dataclass
class CoinRecord:
    """Row of the coins table.

    A coin is created by ``mint_txid`` at output ``mint_index`` and is
    consumed by ``spent_txid`` when one is recorded.
    """

    chain: str
    network: str
    mint_txid: str
    mint_index: int
    mint_height: int
    spent_txid: Optional[str] = None
    spent_height: int = HeightSentinel.UNSPENT
    value: int = 0  # satoshis

    @property
    def outpoint(self) -> str:
        return f"{self.mint_txid}:{self.mint_index}"

    @property
    def is_confirmed(self) -> bool:
        return is_confirmed(self.mint_height) or is_confirmed(self.spent_height)

    @classmethod
    def from_row(cls, row: tuple) -> "CoinRecord":
        (
            chain,
            network,
            mint_txid,
            mint_index,
            mint_height,
            spent_txid,
            spent_height,
            value,
        ) = row
        return cls(
            chain=chain,
            network=network,
            mint_txid=mint_txid,
            mint_index=mint_index,
            mint_height=mint_height,
            spent_txid=spent_txid,
            spent_height=spent_height,
            value=value,
        )
