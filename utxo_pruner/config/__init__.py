"""
Pruning service configuration package.

Exports:
    PruningConfig: service settings (env-overridable)
    load_chain_networks: chain/network enumeration from a JSON file
    setup_logging: console/file logging for the utxo_pruner namespace
"""

from utxo_pruner.config.logging_config import setup_logging
from utxo_pruner.config.settings import (
    MAX_INTERVAL_HOURS,
    PruningConfig,
    load_chain_networks,
    parse_bool,
)

__all__ = [
    "MAX_INTERVAL_HOURS",
    "PruningConfig",
    "load_chain_networks",
    "parse_bool",
    "setup_logging",
]
