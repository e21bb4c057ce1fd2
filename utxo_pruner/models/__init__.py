"""Record types shared by the store and the pruning pipeline."""

from utxo_pruner.models.records import (
    ChainNetwork,
    CoinRecord,
    HeightSentinel,
    TransactionRecord,
    is_confirmed,
)

__all__ = [
    "ChainNetwork",
    "CoinRecord",
    "HeightSentinel",
    "TransactionRecord",
    "is_confirmed",
]
