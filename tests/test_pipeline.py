"""Tests for the sequential candidate pipeline."""

import pytest

from utxo_pruner.errors import (
    ClosureTooLargeError,
    DataIntegrityError,
    StoppingError,
)
from utxo_pruner.models.records import TransactionRecord
from utxo_pruner.pruning.pipeline import drain_candidates


class CandidateStream:
    """Async generator over fake candidates that records how far it got."""

    def __init__(self, txids):
        self.txids = txids
        self.requested = 0
        self.closed = False

    async def __call__(self):
        try:
            for txid in self.txids:
                self.requested += 1
                yield TransactionRecord("BTC", "regtest", txid, -1)
        finally:
            self.closed = True


def never_stopping():
    return False


class TestDrainCandidates:
    @pytest.mark.asyncio
    async def test_processes_every_candidate_in_order(self):
        stream = CandidateStream(["a", "b", "c"])
        seen = []

        async def process(tx):
            seen.append(tx.txid)

        processed = await drain_candidates(stream(), process, never_stopping)

        assert processed == 3
        assert seen == ["a", "b", "c"]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_one_candidate_in_flight(self):
        stream = CandidateStream(["a", "b", "c"])
        requested_during = []

        async def process(tx):
            requested_during.append(stream.requested)

        await drain_candidates(stream(), process, never_stopping)

        # The next record is only pulled after the previous one finished
        assert requested_during == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        async def process(tx):
            raise AssertionError("nothing to process")

        assert await drain_candidates(CandidateStream([])(), process, never_stopping) == 0

    @pytest.mark.asyncio
    async def test_stop_flag_is_checked_before_each_candidate(self):
        stream = CandidateStream(["a", "b", "c", "d"])
        seen = []
        state = {"stopping": False}

        async def process(tx):
            seen.append(tx.txid)
            if tx.txid == "b":
                state["stopping"] = True

        with pytest.raises(StoppingError) as exc_info:
            await drain_candidates(stream(), process, lambda: state["stopping"])

        assert seen == ["a", "b"]
        assert exc_info.value.processed == 2
        assert stream.closed

    @pytest.mark.asyncio
    async def test_stopping_before_first_candidate(self):
        stream = CandidateStream(["a"])

        async def process(tx):
            raise AssertionError("must not run")

        with pytest.raises(StoppingError) as exc_info:
            await drain_candidates(stream(), process, lambda: True)

        assert exc_info.value.processed == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [DataIntegrityError("b", "b"), ClosureTooLargeError("b", 50)],
    )
    async def test_fail_fast_on_unsafe_closure(self, error):
        stream = CandidateStream(["a", "b", "c"])
        seen = []

        async def process(tx):
            seen.append(tx.txid)
            if tx.txid == "b":
                raise error

        with pytest.raises(type(error)):
            await drain_candidates(stream(), process, never_stopping)

        assert seen == ["a", "b"]
        assert stream.requested == 2
        assert stream.closed
