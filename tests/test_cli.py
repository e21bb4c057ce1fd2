"""Tests for the command-line entry point."""

import os
from unittest.mock import patch

import duckdb
import pytest

from tests.fixtures.index_fixtures import (
    MEMPOOL,
    add_coin,
    add_tx,
    days_ago,
    tx_height,
)
from utxo_pruner.cli import (
    EXIT_CONFIG_ERROR,
    EXIT_OK,
    build_parser,
    config_from_args,
    main,
)
from utxo_pruner.storage import init_schema


@pytest.fixture(autouse=True)
def clean_env():
    with patch.dict(os.environ, {}, clear=True):
        yield


@pytest.fixture(autouse=True)
def quiet_logging():
    # Leave global logging handlers alone while main() runs
    with patch("utxo_pruner.cli.setup_logging"), patch("utxo_pruner.cli.load_dotenv"):
        yield


def parse(*argv):
    return config_from_args(build_parser().parse_args(list(argv)))


class TestArguments:
    def test_bare_dry_flag_enables_dry_run(self):
        assert parse("--dry").dry_run

    def test_dry_flag_with_value(self):
        assert not parse("--dry", "0").dry_run
        assert parse("--dry", "true").dry_run

    def test_mode_flags(self):
        config = parse("--old", "--invalid", "--exit")

        assert config.prune_old
        assert config.prune_invalid
        assert config.run_once_and_exit

    def test_flags_override_environment(self):
        with patch.dict(
            os.environ,
            {"PRUNING_CHAIN": "BTC", "PRUNING_NETWORK": "mainnet", "PRUNING_OLD": "1"},
        ):
            config = parse("--network", "testnet", "--mempool-age", "2")

        assert config.chain == "BTC"
        assert config.network == "testnet"
        assert config.prune_old
        assert config.mempool_age_days == 2

    def test_unset_flags_keep_environment(self):
        with patch.dict(os.environ, {"PRUNING_INVALID": "yes"}):
            assert parse().prune_invalid


class TestMain:
    def test_run_once_prunes_and_exits(self, tmp_path):
        db_path = tmp_path / "index.duckdb"
        conn = duckdb.connect(str(db_path))
        init_schema(conn)
        add_tx(conn, "T", MEMPOOL, days_ago(30))
        add_coin(conn, "T", 0)
        add_tx(conn, "fresh", MEMPOOL, days_ago(1))
        conn.close()

        code = main(
            [
                "--chain",
                "BTC",
                "--network",
                "regtest",
                "--old",
                "--exit",
                "--db-path",
                str(db_path),
            ]
        )

        assert code == EXIT_OK
        conn = duckdb.connect(str(db_path))
        try:
            assert tx_height(conn, "T") is None
            assert tx_height(conn, "fresh") == MEMPOOL
        finally:
            conn.close()

    def test_interval_over_limit_is_a_config_error(self, tmp_path):
        code = main(
            ["--interval-hrs", "100", "--db-path", str(tmp_path / "index.duckdb")]
        )

        assert code == EXIT_CONFIG_ERROR

    def test_no_chain_network_is_a_config_error(self, tmp_path):
        code = main(["--old", "--exit", "--db-path", str(tmp_path / "index.duckdb")])

        assert code == EXIT_CONFIG_ERROR

    def test_missing_chains_config_is_a_config_error(self, tmp_path):
        code = main(
            [
                "--old",
                "--chains-config",
                str(tmp_path / "missing.json"),
                "--db-path",
                str(tmp_path / "index.duckdb"),
            ]
        )

        assert code == EXIT_CONFIG_ERROR

    def test_invalid_interval_value(self, tmp_path):
        code = main(["--interval-hrs", "0", "--db-path", str(tmp_path / "x.duckdb")])

        assert code == EXIT_CONFIG_ERROR
