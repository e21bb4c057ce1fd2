"""Tests for remove/invalidate cascades."""

import pytest

from tests.fixtures.index_fixtures import (
    CONFLICTING,
    INVALID,
    MEMPOOL,
    UNSPENT,
    add_coin,
    add_tx,
    coin_heights,
    snapshot,
    tx_height,
)
from utxo_pruner.pruning.cascade import CascadeExecutor


@pytest.fixture
def executor(tx_store, coin_store):
    return CascadeExecutor(tx_store, coin_store)


@pytest.fixture
def dry_executor(tx_store, coin_store):
    return CascadeExecutor(tx_store, coin_store, dry_run=True)


class TestRemoveOldMempool:
    @pytest.mark.asyncio
    async def test_deletes_transactions_and_minted_coins(self, scenario_a, executor):
        result = await executor.remove_old_mempool("BTC", "regtest", ["T", "T2"])

        assert result.transactions == 2
        assert result.coins_minted == 3
        assert tx_height(scenario_a, "T") is None
        assert tx_height(scenario_a, "T2") is None
        assert coin_heights(scenario_a, "T", 1) is None
        assert coin_heights(scenario_a, "T2", 0) is None
        # Unrelated confirmed data untouched
        assert tx_height(scenario_a, "C") == 800_000
        assert coin_heights(scenario_a, "C", 0) == (800_000, UNSPENT)

    @pytest.mark.asyncio
    async def test_second_run_deletes_nothing(self, scenario_a, executor):
        await executor.remove_old_mempool("BTC", "regtest", ["T", "T2"])
        before = snapshot(scenario_a)

        result = await executor.remove_old_mempool("BTC", "regtest", ["T", "T2"])

        assert result.transactions == 0
        assert result.coins_minted == 0
        assert snapshot(scenario_a) == before

    @pytest.mark.asyncio
    async def test_only_mempool_rows_are_deleted(self, conn, executor):
        add_tx(conn, "M", 900_000)
        add_coin(conn, "M", 0, mint_height=900_000)
        add_tx(conn, "M", MEMPOOL, network="testnet")

        result = await executor.remove_old_mempool("BTC", "regtest", ["M"])

        assert result.transactions == 0
        assert tx_height(conn, "M") == 900_000
        assert tx_height(conn, "M", network="testnet") == MEMPOOL

    @pytest.mark.asyncio
    async def test_dry_run_mutates_nothing(self, scenario_a, dry_executor):
        before = snapshot(scenario_a)

        result = await dry_executor.remove_old_mempool("BTC", "regtest", ["T", "T2"])

        assert result.dry_run
        assert result.txids == 2
        assert result.transactions == 0
        assert snapshot(scenario_a) == before


class TestInvalidate:
    @pytest.mark.asyncio
    async def test_marks_conflicting_and_undoes_spends(self, scenario_b, executor):
        result = await executor.invalidate("BTC", "regtest", ["T", "T2"])

        assert result.transactions == 2
        assert tx_height(scenario_b, "T") == CONFLICTING
        assert tx_height(scenario_b, "T2") == CONFLICTING
        # Spends made by T and T2 are undone
        assert coin_heights(scenario_b, "P", 0) == (700_000, UNSPENT)
        # Coins minted by T and T2 become conflicting
        assert coin_heights(scenario_b, "T", 0) == (CONFLICTING, UNSPENT)
        assert coin_heights(scenario_b, "T2", 0) == (CONFLICTING, UNSPENT)
        assert result.coins_spent == 2
        assert result.coins_minted == 2

    @pytest.mark.asyncio
    async def test_other_networks_untouched(self, conn, executor):
        add_tx(conn, "X", INVALID)
        add_tx(conn, "X", INVALID, chain="BCH")
        add_coin(conn, "X", 0, chain="BCH")

        await executor.invalidate("BTC", "regtest", ["X"])

        assert tx_height(conn, "X") == CONFLICTING
        assert tx_height(conn, "X", chain="BCH") == INVALID
        assert coin_heights(conn, "X", 0, chain="BCH") == (MEMPOOL, UNSPENT)

    @pytest.mark.asyncio
    async def test_dry_run_mutates_nothing(self, scenario_b, dry_executor):
        before = snapshot(scenario_b)

        result = await dry_executor.invalidate("BTC", "regtest", ["T", "T2"])

        assert result.dry_run
        assert snapshot(scenario_b) == before

    @pytest.mark.asyncio
    async def test_dry_run_logs_prefix(self, scenario_b, dry_executor, caplog):
        with caplog.at_level("INFO", logger="utxo_pruner"):
            await dry_executor.invalidate("BTC", "regtest", ["T", "T2"])

        assert "DRY RUN - Invalidating 2 txids" in caplog.text
