"""Tests for MEM rewards reads and projection."""

import pytest

from memboard.adapters.base import FetchError
from memboard.adapters.rewards import RewardsClient, build_onchain_data, decode_uint256
from memboard.adapters.rpc import BASE_CHAIN_ID
from memboard.models.schemas import Claim

CONTRACT = "0x" + "e" * 40
WALLET = "0x" + "a" * 40


class FakeRpc:
    def __init__(self, chain_id=BASE_CHAIN_ID, latest=10_000, failing_from=()):
        self._chain_id = chain_id
        self.latest = latest
        self.failing_from = set(failing_from)
        self.ranges = []

    async def chain_id(self):
        return self._chain_id

    async def block_number(self):
        return self.latest

    async def eth_call(self, to, data):
        return hex(5 * 10**18)

    async def get_logs(self, address, topics, from_block, to_block):
        self.ranges.append((from_block, to_block))
        if from_block in self.failing_from:
            raise FetchError("range too large")
        return [{"data": hex(2 * 10**18), "blockNumber": hex(to_block), "transactionHash": f"0x{from_block}"}]


class FakeMemory:
    def __init__(self, claims=None):
        self.claims = claims or []

    async def fetch_claims(self, wallet_or_ens):
        return self.claims


class TestDecodeUint256:
    def test_full_word(self):
        assert decode_uint256("0x" + hex(7 * 10**18)[2:].rjust(64, "0")) == 7 * 10**18

    def test_short_and_empty_data(self):
        assert decode_uint256(hex(255)) == 255
        assert decode_uint256("0x") == 0
        assert decode_uint256(None) == 0


class TestBuildOnchainData:
    def test_projection(self):
        data = build_onchain_data(100.0, [Claim(amount=10), Claim(amount=20)])
        assert data.claimed_total == 30
        assert data.avg_claim == 15
        assert data.projection == pytest.approx(18.5)

    def test_empty(self):
        data = build_onchain_data(None, [])
        assert data.projection == 0.0
        assert data.balance is None


class TestRewardsClient:
    @pytest.mark.asyncio
    async def test_unconfigured_contract(self, monkeypatch):
        monkeypatch.delenv("MEMBOARD_MEM_CONTRACT", raising=False)
        client = RewardsClient(rpc=FakeRpc(), memory=FakeMemory())
        assert not client.configured
        assert await client.fetch_balance(WALLET) is None
        assert await client.fetch_onchain_claims(WALLET) == ([], False)

    @pytest.mark.asyncio
    async def test_balance(self):
        client = RewardsClient(rpc=FakeRpc(), memory=FakeMemory(), contract=CONTRACT)
        assert await client.fetch_balance(WALLET) == 5.0

    @pytest.mark.asyncio
    async def test_wrong_chain(self):
        client = RewardsClient(rpc=FakeRpc(chain_id=1), memory=FakeMemory(), contract=CONTRACT)
        assert await client.fetch_balance(WALLET) is None

    @pytest.mark.asyncio
    async def test_chunked_scan_skips_failed_ranges(self):
        rpc = FakeRpc(latest=10_000, failing_from={4001})
        client = RewardsClient(rpc=rpc, memory=FakeMemory(), contract=CONTRACT)

        claims, degraded = await client.fetch_onchain_claims(WALLET)

        assert rpc.ranges == [(0, 4000), (4001, 8001), (8002, 10_000)]
        assert degraded is True
        assert [c.block_number for c in claims] == [4000, 10_000]
        assert all(c.amount == 2.0 for c in claims)

    @pytest.mark.asyncio
    async def test_all_claims_newest_first(self):
        memory = FakeMemory([Claim(amount=1, round_id=3, source="memory-api")])
        client = RewardsClient(rpc=FakeRpc(latest=100), memory=memory, contract=CONTRACT)

        claims, degraded = await client.fetch_all_claims(WALLET)

        assert degraded is False
        assert [c.source for c in claims] == ["onchain", "memory-api"]

    @pytest.mark.asyncio
    async def test_estimate_upcoming_rewards(self):
        client = RewardsClient(rpc=FakeRpc(latest=100), memory=FakeMemory(), contract=CONTRACT)
        data = await client.estimate_upcoming_rewards(WALLET)

        assert data.balance == 5.0
        assert len(data.claims) == 1
        assert data.projection == pytest.approx(2.0 * 1.1 + 5.0 * 0.02)
