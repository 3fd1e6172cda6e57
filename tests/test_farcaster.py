"""Tests for the Farcaster hub adapter."""

import httpx
import pytest
import respx

from memboard.adapters.farcaster import FarcasterClient

HUB = "https://hub.test"
WALLET = "0x" + "a" * 40
PEER_1 = "0x" + "1" * 40
PEER_2 = "0x" + "2" * 40


@pytest.mark.asyncio
async def test_get_graph():
    client = FarcasterClient(hub_url=HUB)

    with respx.mock:
        respx.get(f"{HUB}/v1/verificationsByAddress").mock(
            return_value=httpx.Response(200, json={"verifications": [{"fid": 3, "address": WALLET}]})
        )
        respx.get(f"{HUB}/v1/followersByFid").mock(
            return_value=httpx.Response(
                200,
                json={"users": [{"verifications": [PEER_2.upper().replace("0X", "0x")], "custody_address": PEER_1}]},
            )
        )
        respx.get(f"{HUB}/v1/followingByFid").mock(
            return_value=httpx.Response(200, json={"users": [{"custody_address": PEER_1}, "junk"]})
        )
        graph = await client.get_graph(WALLET)

    assert graph.fid == 3
    assert graph.follower_wallets == [PEER_1, PEER_2]
    assert graph.following_wallets == [PEER_1]
    assert graph.wallets == {PEER_1, PEER_2}


@pytest.mark.asyncio
async def test_no_verified_account():
    client = FarcasterClient(hub_url=HUB)

    with respx.mock:
        respx.get(f"{HUB}/v1/verificationsByAddress").mock(return_value=httpx.Response(404))
        graph = await client.get_graph(WALLET)

    assert graph.fid is None
    assert graph.wallets == set()


@pytest.mark.asyncio
async def test_malformed_fid():
    client = FarcasterClient(hub_url=HUB)

    with respx.mock:
        respx.get(f"{HUB}/v1/verificationsByAddress").mock(
            return_value=httpx.Response(200, json={"verifications": [{"fid": "abc"}]})
        )
        assert await client.get_fid(WALLET) is None


def test_hub_from_env(monkeypatch):
    monkeypatch.setenv("MEMBOARD_FARCASTER_HUB", "https://env-hub.test/")
    assert FarcasterClient().hub_url == "https://env-hub.test"
