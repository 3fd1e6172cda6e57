"""JSON-RPC client over a rotating endpoint pool."""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from memboard.adapters.base import BaseFetcher, EndpointPool, RpcError, with_retries

logger = logging.getLogger(__name__)

BASE_CHAIN_ID = 8453


class RpcClient(BaseFetcher):
    """Minimal Ethereum JSON-RPC client.

    Every call goes through ``with_retries``; transient failures rotate
    the endpoint pool before the next attempt.
    """

    SOURCE = "rpc"

    BASE_DEFAULTS = ["https://mainnet.base.org"]
    ETH_DEFAULTS = ["https://cloudflare-eth.com", "https://rpc.ankr.com/eth"]

    def __init__(
        self,
        pool: EndpointPool,
        client: httpx.AsyncClient | None = None,
        attempts: int = 3,
        base_delay: float = 0.2,
    ) -> None:
        super().__init__(client)
        self.pool = pool
        self.attempts = attempts
        self.base_delay = base_delay
        self._request_id = 0

    @classmethod
    def for_base(cls, client: httpx.AsyncClient | None = None) -> RpcClient:
        """Client for Base mainnet, honoring MEMBOARD_BASE_RPC(_FALLBACK)."""
        pool = EndpointPool(
            [
                os.environ.get("MEMBOARD_BASE_RPC"),
                os.environ.get("MEMBOARD_BASE_RPC_FALLBACK"),
                *cls.BASE_DEFAULTS,
            ]
        )
        return cls(pool, client)

    @classmethod
    def for_ethereum(cls, client: httpx.AsyncClient | None = None) -> RpcClient:
        """Client for Ethereum mainnet, honoring MEMBOARD_ETH_RPC(_FALLBACK)."""
        pool = EndpointPool(
            [
                os.environ.get("MEMBOARD_ETH_RPC"),
                os.environ.get("MEMBOARD_ETH_RPC_FALLBACK"),
                *cls.ETH_DEFAULTS,
            ]
        )
        return cls(pool, client)

    async def _call_once(self, method: str, params: list) -> Any:
        self._request_id += 1
        payload = await self._post_json(
            self.pool.current(),
            {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params},
        )
        if not isinstance(payload, dict):
            raise RpcError(f"{method}: unexpected response shape")
        error = payload.get("error")
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise RpcError(f"{method}: {message}", code=code)
        return payload.get("result")

    async def call(self, method: str, params: list | None = None) -> Any:
        """Invoke a JSON-RPC method.

        Raises:
            RpcError: On node errors after retries.
            httpx.HTTPError: On transport errors after retries.
        """
        return await with_retries(
            lambda: self._call_once(method, params or []),
            pool=self.pool,
            attempts=self.attempts,
            base_delay=self.base_delay,
        )

    async def chain_id(self) -> int:
        return int(await self.call("eth_chainId"), 16)

    async def block_number(self) -> int:
        return int(await self.call("eth_blockNumber"), 16)

    async def get_transaction_count(self, address: str) -> int:
        return int(await self.call("eth_getTransactionCount", [address, "latest"]), 16)

    async def eth_call(self, to: str, data: str) -> str:
        """Read-only contract call at the latest block; returns hex data."""
        return await self.call("eth_call", [{"to": to, "data": data}, "latest"]) or "0x"

    async def get_logs(
        self,
        address: str,
        topics: list[str | None],
        from_block: int,
        to_block: int,
    ) -> list[dict]:
        result = await self.call(
            "eth_getLogs",
            [
                {
                    "address": address,
                    "topics": topics,
                    "fromBlock": hex(from_block),
                    "toBlock": hex(to_block),
                }
            ],
        )
        return result or []
