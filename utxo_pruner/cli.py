#!/usr/bin/env python3
"""
Pruning Service Entry Point

Removes old mempool transactions and cascades invalid ones through their
dependents in the DuckDB transaction/coin index.

Usage:
    utxo-pruner --chain BTC --network mainnet --old --invalid
    utxo-pruner --old --dry --exit                # one dry pass over all pairs
    python -m utxo_pruner --interval-hrs 6 --chains-config chains.json

Flags override the PRUNING_* environment variables (a .env file is loaded).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from typing import Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

from utxo_pruner.config import PruningConfig, parse_bool, setup_logging
from utxo_pruner.errors import ConfigurationError
from utxo_pruner.pruning.service import PruningService
from utxo_pruner.storage import (
    CoinStore,
    Database,
    TransactionStore,
    init_indexes,
    init_schema,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="utxo-pruner",
        description="Prune stale and invalid mempool transactions from the UTXO index",
    )
    parser.add_argument("--chain", help="Chain to prune (e.g. BTC)")
    parser.add_argument("--network", help="Network to prune (e.g. mainnet)")
    parser.add_argument(
        "--old",
        action="store_true",
        default=None,
        help="Remove mempool txs older than --mempool-age days",
    )
    parser.add_argument(
        "--invalid",
        action="store_true",
        default=None,
        help="Mark invalid txs and their dependents conflicting",
    )
    parser.add_argument(
        "--exit",
        action="store_true",
        default=None,
        help="Run one pass, then exit",
    )
    # A bare --dry means dry-run on
    parser.add_argument(
        "--dry",
        nargs="?",
        const="1",
        default=None,
        metavar="BOOL",
        help="Log affected sets without mutating anything",
    )
    parser.add_argument("--mempool-age", type=float, help="Age threshold in days")
    parser.add_argument("--interval-hrs", type=float, help="Hours between passes")
    parser.add_argument("--db-path", help="DuckDB index path")
    parser.add_argument(
        "--chains-config", help="JSON file listing chain/network pairs"
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    parser.add_argument(
        "--log-mode",
        default=os.getenv("LOG_MODE", "development"),
        choices=["development", "production"],
    )
    parser.add_argument("--log-dir", default=os.getenv("LOG_DIR"))
    return parser


def config_from_args(args: argparse.Namespace) -> PruningConfig:
    """Merge parsed flags over the PRUNING_* environment."""
    return PruningConfig.from_env(
        chain=args.chain,
        network=args.network,
        prune_old=args.old,
        prune_invalid=args.invalid,
        run_once_and_exit=args.exit,
        dry_run=None if args.dry is None else parse_bool(args.dry),
        mempool_age_days=args.mempool_age,
        interval_hours=args.interval_hrs,
        db_path=args.db_path,
        chains_config=args.chains_config,
    )


async def run_service(config: PruningConfig) -> None:
    """Run the service until a signal or the end of a run-once pass."""
    db = Database(config.db_path)
    try:
        init_schema(db.connection)
        init_indexes(db.connection)

        done = asyncio.Event()
        service = PruningService(
            TransactionStore(db),
            CoinStore(db),
            config,
            shutdown_callback=done.set,
        )
        # Fail at startup instead of on every pass
        pairs = service.resolve_chain_networks()
        logger.info(f"Pruning {len(pairs)} chain/network pair(s)")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, done.set)
        try:
            await service.start()
            await done.wait()
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await service.stop()
            await service.join()
    finally:
        db.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, mode=args.log_mode, log_dir=args.log_dir)

    try:
        config = config_from_args(args)
        asyncio.run(run_service(config))
    except (ConfigurationError, ValidationError) as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
