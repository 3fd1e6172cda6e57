"""ENS adapter: registration metadata plus forward and reverse resolution.

Data sources:
- ENS subgraph (by namehash id, then by name)
- ensideas resolver API as a keyless fallback
- Ethereum mainnet registry/resolver contracts over JSON-RPC
"""

from __future__ import annotations

import logging
import os
import urllib.parse
from collections.abc import Callable
from datetime import datetime, timezone

import httpx
from eth_abi import decode
from eth_abi.exceptions import DecodingError

from memboard.adapters.base import (
    ZERO_ADDRESS,
    BaseFetcher,
    FetchError,
    SubjectNotResolvedError,
    is_address,
    namehash,
    normalize_address,
    selector,
)
from memboard.adapters.cache import TTLCache
from memboard.adapters.memory import parse_timestamp
from memboard.adapters.rpc import RpcClient
from memboard.models.schemas import EnsData

logger = logging.getLogger(__name__)

DOMAIN_FIELDS = "name createdAt registrations { registrationDate expiryDate }"
QUERY_BY_ID = f"query ($id: ID!) {{ domain(id: $id) {{ {DOMAIN_FIELDS} }} }}"
QUERY_BY_NAME = f"query ($name: String!) {{ domains(where: {{ name: $name }}) {{ {DOMAIN_FIELDS} }} }}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnsClient(BaseFetcher):
    """ENS lookups with a shared TTL cache for resolution results."""

    SOURCE = "ens"
    SUBGRAPH_URL = "https://api.thegraph.com/subgraphs/name/ensdomains/ens"
    ENSIDEAS_URL = "https://api.ensideas.com/ens/resolve/"
    REGISTRY = "0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e"

    RESOLVER_SELECTOR = selector("resolver(bytes32)")
    NAME_SELECTOR = selector("name(bytes32)")
    ADDR_SELECTOR = selector("addr(bytes32)")

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        rpc: RpcClient | None = None,
        cache: TTLCache | None = None,
        subgraph_url: str | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the client.

        Args:
            client: Optional httpx client.
            rpc: Ethereum mainnet RPC client. Defaults to one built from the environment.
            cache: Resolution cache, shared across clients when injected.
            subgraph_url: ENS subgraph endpoint. Defaults to MEMBOARD_ENS_SUBGRAPH.
            now: Clock used for name age.
        """
        super().__init__(client)
        self.rpc = rpc or RpcClient.for_ethereum(client)
        self.cache = cache if cache is not None else TTLCache()
        self.subgraph_url = subgraph_url or os.environ.get("MEMBOARD_ENS_SUBGRAPH") or self.SUBGRAPH_URL
        self._now = now

    # --- Metadata ---

    async def _graph_request(self, query: str, variables: dict, errors: list) -> dict | None:
        try:
            payload = await self._post_json(self.subgraph_url, {"query": query, "variables": variables})
        except (httpx.HTTPError, FetchError) as e:
            logger.warning(f"ENS subgraph request failed: {e}")
            return None
        if not isinstance(payload, dict):
            return None
        errors.extend(payload.get("errors") or [])
        data = payload.get("data")
        return data if isinstance(data, dict) else None

    def _from_domain(self, domain: dict, fallback_name: str, source: str) -> EnsData:
        created_at = parse_timestamp(domain.get("createdAt"))
        age_days = None
        if created_at is not None:
            age_days = round(max(0.0, (self._now() - created_at).total_seconds() / 86400))
        registrations = domain.get("registrations")
        return EnsData(
            name=domain.get("name") or fallback_name,
            name_age_days=age_days,
            renewal_count=len(registrations) if isinstance(registrations, list) else None,
            created_at=created_at,
            source=source,
            status="ok",
        )

    async def fetch_metadata(self, name: str | None) -> EnsData:
        """Registration age and renewal count of an ENS name.

        Falls back from the subgraph id query to the name query, then to
        ensideas, then reports not-found (or error if the subgraph
        returned errors).
        """
        if not name or not name.strip().lower().endswith(".eth"):
            return EnsData(name=name or None, status="invalid", reason="not-ens")

        lower = name.strip().lower()
        errors: list = []

        data = await self._graph_request(QUERY_BY_ID, {"id": namehash(lower)}, errors)
        domain = data.get("domain") if data else None
        if isinstance(domain, dict):
            return self._from_domain(domain, lower, "subgraph-id")

        data = await self._graph_request(QUERY_BY_NAME, {"name": lower}, errors)
        domains = data.get("domains") if data else None
        if isinstance(domains, list) and domains and isinstance(domains[0], dict):
            return self._from_domain(domains[0], lower, "subgraph-list")

        ideas = await self._fetch_json(self.ENSIDEAS_URL + urllib.parse.quote(lower))
        if isinstance(ideas, dict) and ideas:
            return EnsData(
                name=ideas.get("name") or lower,
                address=normalize_address(ideas.get("address")),
                source="ensideas",
                status="fallback",
                reason="subgraph-not-found",
            )

        if errors:
            logger.warning(f"ENS subgraph errors for {lower}: {errors}")
            return EnsData(name=lower, status="error", reason="subgraph-errors")
        logger.debug(f"ENS name not found: {lower}")
        return EnsData(name=lower, status="not-found", reason="no-domain")

    # --- Resolution ---

    async def _resolver_for(self, node: str) -> str | None:
        data = await self.rpc.eth_call(self.REGISTRY, self.RESOLVER_SELECTOR + node[2:])
        resolver = self._decode_address(data)
        return resolver if resolver and resolver != ZERO_ADDRESS else None

    @staticmethod
    def _decode_address(data: str) -> str | None:
        raw = bytes.fromhex(data.removeprefix("0x"))
        if len(raw) < 32:
            return None
        (address,) = decode(["address"], raw)
        return address.lower()

    @staticmethod
    def _decode_string(data: str) -> str | None:
        raw = bytes.fromhex(data.removeprefix("0x"))
        if len(raw) < 64:
            return None
        (value,) = decode(["string"], raw)
        return value or None

    async def _reverse_via_rpc(self, address: str) -> str | None:
        node = namehash(f"{address.removeprefix('0x')}.addr.reverse")
        try:
            resolver = await self._resolver_for(node)
            if resolver is None:
                return None
            return self._decode_string(await self.rpc.eth_call(resolver, self.NAME_SELECTOR + node[2:]))
        except (FetchError, httpx.HTTPError, DecodingError, ValueError) as e:
            logger.warning(f"ENS reverse lookup failed for {address}: {e}")
            return None

    async def _forward_via_rpc(self, name: str) -> str | None:
        node = namehash(name)
        try:
            resolver = await self._resolver_for(node)
            if resolver is None:
                return None
            address = self._decode_address(await self.rpc.eth_call(resolver, self.ADDR_SELECTOR + node[2:]))
        except (FetchError, httpx.HTTPError, DecodingError, ValueError) as e:
            logger.warning(f"ENS resolution via RPC failed for {name}: {e}")
            return None
        return address if address and address != ZERO_ADDRESS else None

    async def _forward(self, name: str) -> str | None:
        address = await self._forward_via_rpc(name)
        if address:
            return address
        ideas = await self._fetch_json(self.ENSIDEAS_URL + urllib.parse.quote(name))
        if isinstance(ideas, dict):
            return normalize_address(ideas.get("address"))
        return None

    async def reverse_lookup(self, address: str) -> str | None:
        """Primary ENS name of an address, cached."""
        normalized = normalize_address(address)
        if normalized is None:
            return None
        return await self.cache.get_or_fetch(
            f"reverse:{normalized}", lambda: self._reverse_via_rpc(normalized)
        )

    async def resolve_name(self, name: str) -> str | None:
        """Address an ENS name points at, cached. Addresses pass through."""
        if not name:
            return None
        if is_address(name):
            return normalize_address(name)
        lower = name.strip().lower()
        return await self.cache.get_or_fetch(f"forward:{lower}", lambda: self._forward(lower))

    async def require_address(self, wallet_or_ens: str) -> str:
        """Resolve to an address or raise.

        Raises:
            SubjectNotResolvedError: If nothing resolves.
        """
        address = await self.resolve_name(wallet_or_ens)
        if address is None:
            raise SubjectNotResolvedError(wallet_or_ens)
        return address
