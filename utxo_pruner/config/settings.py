#!/usr/bin/env python3
"""
Pruning service configuration.

Values come from explicit arguments, then environment variables
(``PRUNING_*``), then defaults. The chain/network enumeration used when no
single pair is configured is read from a JSON chain configuration file.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from utxo_pruner.errors import ConfigurationError
from utxo_pruner.models.records import ChainNetwork

DEFAULT_MEMPOOL_AGE_DAYS = 7
DEFAULT_INTERVAL_HOURS = 12.0
# Longer periods belong in an external scheduler (cron)
MAX_INTERVAL_HOURS = 72.0

TRUE_VALUES = {"1", "true", "yes", "on"}


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse an env/CLI flag value ("1", "true", "yes", "on")."""
    if value is None:
        return default
    return str(value).strip().lower() in TRUE_VALUES


class PruningConfig(BaseModel):
    """
    Settings for one pruning service instance.

    Maps to the PRUNING_* environment variables (see ``from_env``).
    """

    chain: Optional[str] = Field(None, description="Single chain to prune")
    network: Optional[str] = Field(None, description="Single network to prune")

    prune_old: bool = Field(False, description="Remove old mempool txs")
    prune_invalid: bool = Field(False, description="Cascade invalid txs")
    dry_run: bool = Field(False, description="Log affected sets, mutate nothing")
    run_once_and_exit: bool = Field(False, description="One pass, then shut down")

    mempool_age_days: float = Field(
        DEFAULT_MEMPOOL_AGE_DAYS, ge=0, description="Mempool age threshold"
    )
    interval_hours: float = Field(
        DEFAULT_INTERVAL_HOURS, gt=0, description="Hours between passes"
    )

    db_path: Optional[str] = Field(None, description="DuckDB index path")
    chains_config: Optional[str] = Field(
        None, description="JSON file enumerating chain/network pairs"
    )

    @field_validator("chain", "network", "db_path", "chains_config")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings from the environment as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("mempool_age_days")
    @classmethod
    def zero_age_means_default(cls, v: float) -> float:
        """An age of 0 would prune every mempool tx; fall back to the default."""
        return v or DEFAULT_MEMPOOL_AGE_DAYS

    @property
    def single_pair(self) -> Optional[ChainNetwork]:
        """The explicitly configured pair, when both fields are set."""
        if self.chain and self.network:
            return ChainNetwork(self.chain, self.network)
        return None

    @property
    def interval_seconds(self) -> float:
        return self.interval_hours * 3600

    @classmethod
    def from_env(cls, **overrides: Any) -> "PruningConfig":
        """Create config from environment variables.

        Keyword overrides that are not None win over the environment.
        """
        values = {
            "chain": os.getenv("PRUNING_CHAIN"),
            "network": os.getenv("PRUNING_NETWORK"),
            "prune_old": parse_bool(os.getenv("PRUNING_OLD")),
            "prune_invalid": parse_bool(os.getenv("PRUNING_INVALID")),
            "dry_run": parse_bool(os.getenv("PRUNING_DRY")),
            "run_once_and_exit": parse_bool(os.getenv("PRUNING_EXIT")),
            "mempool_age_days": os.getenv(
                "PRUNING_MEMPOOL_AGE", DEFAULT_MEMPOOL_AGE_DAYS
            ),
            "interval_hours": os.getenv(
                "PRUNING_INTERVAL_HRS", DEFAULT_INTERVAL_HOURS
            ),
            "db_path": os.getenv("PRUNING_DB_PATH"),
            "chains_config": os.getenv("PRUNING_CHAINS_CONFIG"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _pair_from_entry(path: str | Path, entry: Any) -> ChainNetwork:
    if not isinstance(entry, dict):
        raise ConfigurationError(
            f"Chain config {path}: expected a chain/network object, got {entry!r}"
        )
    return ChainNetwork(entry.get("chain") or "", entry.get("network") or "")


def load_chain_networks(path: str | Path) -> List[ChainNetwork]:
    """
    Read the chain/network enumeration from a JSON file.

    Two layouts are accepted:

    - a list: ``[{"chain": "BTC", "network": "mainnet"}, ...]``
    - a node config mapping: ``{"chains": {"BTC": {"mainnet": {...}}}}``,
      optionally nested under ``"bitcoreNode"``

    Entries are returned in file order. Entries missing a chain or network
    are kept as empty strings so the service can reject them per pair.

    Raises:
        ConfigurationError: file missing, unreadable or of unknown layout.
    """
    try:
        raw = json.loads(Path(path).read_text())
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read chain config {path}: {e}") from e

    if isinstance(raw, list):
        return [_pair_from_entry(path, entry) for entry in raw]

    if isinstance(raw, dict):
        node = raw.get("bitcoreNode", raw)
        chains = node.get("chains") if isinstance(node, dict) else None
        if isinstance(chains, dict) and all(
            networks is None or isinstance(networks, dict)
            for networks in chains.values()
        ):
            return [
                ChainNetwork(chain, network)
                for chain, networks in chains.items()
                for network in (networks or {})
            ]

    raise ConfigurationError(
        f"Chain config {path} must be a list of pairs or contain a 'chains' mapping"
    )
