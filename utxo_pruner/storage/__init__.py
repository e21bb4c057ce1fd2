"""
DuckDB-backed transaction and coin stores.

Exports:
    Database: connection + executor wrapper
    TransactionStore: candidate queries, traversal, transaction mutations
    CoinStore: coin mutations
"""

from utxo_pruner.storage.coins import CoinStore
from utxo_pruner.storage.database import Database, get_connection
from utxo_pruner.storage.schema import init_indexes, init_schema
from utxo_pruner.storage.transactions import TransactionStore

__all__ = [
    "CoinStore",
    "Database",
    "TransactionStore",
    "get_connection",
    "init_indexes",
    "init_schema",
]
