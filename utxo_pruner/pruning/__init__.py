"""
Dependent-closure pruning: candidate selection, closure traversal,
cascade mutations, the sequential pipeline and the scheduling service.
"""

from utxo_pruner.pruning.candidates import CandidateSelector, mempool_cutoff
from utxo_pruner.pruning.cascade import CascadeExecutor, CascadeResult
from utxo_pruner.pruning.closure import MAX_DESCENDANTS, Closure, ClosureWalker
from utxo_pruner.pruning.pipeline import drain_candidates
from utxo_pruner.pruning.service import PruningService

__all__ = [
    "MAX_DESCENDANTS",
    "CandidateSelector",
    "CascadeExecutor",
    "CascadeResult",
    "Closure",
    "ClosureWalker",
    "PruningService",
    "drain_candidates",
    "mempool_cutoff",
]
