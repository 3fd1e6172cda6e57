"""Tests for the ENS adapter."""

from datetime import datetime, timezone

import httpx
import pytest
import respx
from eth_abi import encode

from memboard.adapters.base import SubjectNotResolvedError, pad_address
from memboard.adapters.cache import TTLCache
from memboard.adapters.ens import EnsClient

SUBGRAPH = "https://subgraph.test"
ENSIDEAS = "https://api.ensideas.com/ens/resolve/alice.eth"
NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)

RESOLVER = "0x" + "1" * 40
TARGET = "0x" + "a" * 40


class FakeRpc:
    """Registry returns ``resolver``; the resolver answers addr() and name()."""

    def __init__(self, resolver: str = RESOLVER, address: str = TARGET, name: str = "alice.eth"):
        self.resolver = resolver
        self.address = address
        self.name = name
        self.calls = []

    async def eth_call(self, to, data):
        self.calls.append((to, data[:10]))
        if to == EnsClient.REGISTRY:
            return "0x" + pad_address(self.resolver)
        if data.startswith(EnsClient.ADDR_SELECTOR):
            return "0x" + pad_address(self.address)
        return "0x" + encode(["string"], [self.name]).hex()


def make_client(rpc=None) -> EnsClient:
    return EnsClient(rpc=rpc or FakeRpc(), cache=TTLCache(), subgraph_url=SUBGRAPH, now=lambda: NOW)


class TestFetchMetadata:
    @pytest.mark.asyncio
    async def test_subgraph_by_id(self):
        client = make_client()

        with respx.mock:
            respx.post(SUBGRAPH).mock(
                return_value=httpx.Response(
                    200,
                    json={
                        "data": {
                            "domain": {
                                "name": "alice.eth",
                                "createdAt": 1672531200,
                                "registrations": [{"registrationDate": "1"}, {"registrationDate": "2"}],
                            }
                        }
                    },
                )
            )
            ens = await client.fetch_metadata("Alice.eth")

        assert ens.status == "ok"
        assert ens.source == "subgraph-id"
        assert ens.name_age_days == 365
        assert ens.renewal_count == 2

    @pytest.mark.asyncio
    async def test_subgraph_by_name(self):
        client = make_client()

        with respx.mock:
            respx.post(SUBGRAPH).mock(
                side_effect=[
                    httpx.Response(200, json={"data": {"domain": None}}),
                    httpx.Response(200, json={"data": {"domains": [{"name": "alice.eth", "createdAt": 1672531200}]}}),
                ]
            )
            ens = await client.fetch_metadata("alice.eth")

        assert ens.status == "ok"
        assert ens.source == "subgraph-list"
        assert ens.renewal_count is None

    @pytest.mark.asyncio
    async def test_ensideas_fallback(self):
        client = make_client()

        with respx.mock:
            respx.post(SUBGRAPH).mock(return_value=httpx.Response(200, json={"data": {"domain": None, "domains": []}}))
            respx.get(ENSIDEAS).mock(
                return_value=httpx.Response(200, json={"name": "alice.eth", "address": TARGET.upper().replace("0X", "0x")})
            )
            ens = await client.fetch_metadata("alice.eth")

        assert ens.status == "fallback"
        assert ens.reason == "subgraph-not-found"
        assert ens.address == TARGET
        assert ens.name_age_days is None

    @pytest.mark.asyncio
    async def test_not_found(self):
        client = make_client()

        with respx.mock:
            respx.post(SUBGRAPH).mock(return_value=httpx.Response(200, json={"data": {"domain": None, "domains": []}}))
            respx.get(ENSIDEAS).mock(return_value=httpx.Response(404))
            ens = await client.fetch_metadata("alice.eth")

        assert ens.status == "not-found"
        assert ens.reason == "no-domain"

    @pytest.mark.asyncio
    async def test_subgraph_errors(self):
        client = make_client()

        with respx.mock:
            respx.post(SUBGRAPH).mock(return_value=httpx.Response(200, json={"errors": [{"message": "indexer down"}]}))
            respx.get(ENSIDEAS).mock(return_value=httpx.Response(404))
            ens = await client.fetch_metadata("alice.eth")

        assert ens.status == "error"
        assert ens.reason == "subgraph-errors"

    @pytest.mark.asyncio
    async def test_non_ens_name(self):
        ens = await make_client().fetch_metadata("alice.lens")
        assert ens.status == "invalid"
        assert ens.reason == "not-ens"


class TestResolution:
    @pytest.mark.asyncio
    async def test_forward_resolution_is_cached(self):
        rpc = FakeRpc()
        client = make_client(rpc)

        assert await client.resolve_name("Alice.eth") == TARGET
        assert await client.resolve_name("alice.eth") == TARGET
        assert len(rpc.calls) == 2

    @pytest.mark.asyncio
    async def test_address_passes_through(self):
        rpc = FakeRpc()
        assert await make_client(rpc).resolve_name(TARGET.upper().replace("0X", "0x")) == TARGET
        assert rpc.calls == []

    @pytest.mark.asyncio
    async def test_reverse_lookup(self):
        assert await make_client().reverse_lookup(TARGET) == "alice.eth"

    @pytest.mark.asyncio
    async def test_reverse_lookup_without_resolver(self):
        rpc = FakeRpc(resolver="0x" + "0" * 40)
        assert await make_client(rpc).reverse_lookup(TARGET) is None

    @pytest.mark.asyncio
    async def test_forward_falls_back_to_ensideas(self):
        client = make_client(FakeRpc(resolver="0x" + "0" * 40))

        with respx.mock:
            respx.get(ENSIDEAS).mock(return_value=httpx.Response(200, json={"address": TARGET}))
            assert await client.resolve_name("alice.eth") == TARGET

    @pytest.mark.asyncio
    async def test_require_address_raises(self):
        client = make_client(FakeRpc(resolver="0x" + "0" * 40))

        with respx.mock:
            respx.get("https://api.ensideas.com/ens/resolve/nobody.eth").mock(return_value=httpx.Response(404))
            with pytest.raises(SubjectNotResolvedError):
                await client.require_address("nobody.eth")
