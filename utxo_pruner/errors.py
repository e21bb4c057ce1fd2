"""
Error hierarchy for the pruning service.

DataIntegrityError and ClosureTooLargeError abort the current mode/pair
run. StoreIOError wraps transient store failures that outlived the retry
policy. StoppingError reports cooperative cancellation.
"""

from __future__ import annotations


class PruningError(Exception):
    """Base class for all pruning errors."""


class ConfigurationError(PruningError):
    """Invalid configuration (missing chain/network, interval too long)."""


class DataIntegrityError(PruningError):
    """A closure member already shows a confirmed height."""

    def __init__(self, seed_txid: str, mint_txid: str):
        self.seed_txid = seed_txid
        self.mint_txid = mint_txid
        super().__init__(f"Invalid coin! {mint_txid} (seed {seed_txid})")


class ClosureTooLargeError(PruningError):
    """The seed has more descendant coins than the closure ceiling."""

    def __init__(self, seed_txid: str, limit: int):
        self.seed_txid = seed_txid
        self.limit = limit
        super().__init__(f"{seed_txid} has too many descendants (limit {limit})")


class StoreIOError(PruningError):
    """Transient store failure that survived all retry attempts."""


class StoppingError(PruningError):
    """Cancellation was observed between candidates."""

    def __init__(self, processed: int = 0):
        self.processed = processed
        super().__init__(f"Stopping after {processed} candidate(s)")
