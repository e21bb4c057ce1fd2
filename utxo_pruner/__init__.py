"""utxo_pruner: background pruning of stale and invalid mempool transactions."""

__version__ = "0.1.0"
