"""MEM token rewards on Base: balance, claim logs and projection."""

from __future__ import annotations

import asyncio
import logging
import os

import httpx
from eth_abi import decode
from eth_abi.exceptions import DecodingError

from memboard.adapters.base import (
    ZERO_ADDRESS,
    FetchError,
    event_topic,
    normalize_address,
    pad_address,
    selector,
)
from memboard.adapters.memory import MemoryClient
from memboard.adapters.rpc import BASE_CHAIN_ID, RpcClient
from memboard.models.schemas import Claim, OnchainData

logger = logging.getLogger(__name__)

MEM_DECIMALS = 18


def from_wei(value: int) -> float:
    return value / 10**MEM_DECIMALS


def decode_uint256(data: str | None) -> int:
    """Decode the first ABI word of hex ``data`` as uint256. Empty data is 0."""
    payload = (data or "0x").removeprefix("0x")
    raw = bytes.fromhex(payload.rjust(64, "0"))
    (value,) = decode(["uint256"], raw)
    return value


class RewardsClient:
    """Reads MEM balances and reward claims.

    Balance and claim logs come from the MEM contract over Base RPC;
    Memory API claims are merged in through ``MemoryClient``.
    """

    BALANCE_OF = selector("balanceOf(address)")
    REWARD_CLAIM_TOPIC = event_topic("RewardClaim(address,uint256)")

    LOOKBACK_BLOCKS = 20_000
    CHUNK_SIZE = 4_000

    # Projection model
    AVG_CLAIM_BIAS = 1.1
    BALANCE_YIELD = 0.02

    def __init__(
        self,
        rpc: RpcClient | None = None,
        memory: MemoryClient | None = None,
        contract: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            rpc: Base RPC client. Defaults to one built from the environment.
            memory: Memory API client for off-chain claims.
            contract: MEM token address. Defaults to MEMBOARD_MEM_CONTRACT.
            client: Optional httpx client for the default collaborators.
        """
        self.rpc = rpc or RpcClient.for_base(client)
        self.memory = memory or MemoryClient(client)
        self.contract = normalize_address(contract or os.environ.get("MEMBOARD_MEM_CONTRACT"))
        self._chain_checked: bool | None = None

    @property
    def configured(self) -> bool:
        return self.contract is not None and self.contract != ZERO_ADDRESS

    async def _on_base(self) -> bool:
        if self._chain_checked is None:
            try:
                self._chain_checked = await self.rpc.chain_id() == BASE_CHAIN_ID
            except (FetchError, httpx.HTTPError, ValueError, TypeError) as e:
                logger.warning(f"Chain id check failed: {e}")
                return False
            if not self._chain_checked:
                logger.warning("RPC endpoint is not on Base; skipping MEM reads")
        return self._chain_checked

    async def fetch_balance(self, address: str) -> float | None:
        """MEM balance in whole tokens, or None if unknown."""
        address = normalize_address(address)
        if address is None or not self.configured or not await self._on_base():
            return None
        try:
            data = await self.rpc.eth_call(self.contract, self.BALANCE_OF + pad_address(address))
            return from_wei(decode_uint256(data))
        except (FetchError, httpx.HTTPError, DecodingError, ValueError) as e:
            logger.warning(f"MEM balance fetch failed for {address}: {e}")
            return None

    async def fetch_onchain_claims(
        self,
        address: str,
        lookback_blocks: int = LOOKBACK_BLOCKS,
    ) -> tuple[list[Claim], bool]:
        """RewardClaim logs for ``address`` over the recent block window.

        Block ranges that still fail after retries are skipped.

        Returns:
            Tuple of (claims, degraded) where degraded is True if any
            range was skipped or the scan could not start.
        """
        address = normalize_address(address)
        if address is None or not self.configured or not await self._on_base():
            return [], False

        try:
            latest = await self.rpc.block_number()
        except (FetchError, httpx.HTTPError, ValueError, TypeError) as e:
            logger.warning(f"Block number fetch failed: {e}")
            return [], True

        claims: list[Claim] = []
        degraded = False
        start = max(latest - lookback_blocks, 0)
        topics = [self.REWARD_CLAIM_TOPIC, "0x" + pad_address(address)]

        for from_block in range(start, latest + 1, self.CHUNK_SIZE + 1):
            to_block = min(from_block + self.CHUNK_SIZE, latest)
            try:
                logs = await self.rpc.get_logs(self.contract, topics, from_block, to_block)
            except (FetchError, httpx.HTTPError) as e:
                logger.warning(f"Skipping block range {from_block}-{to_block}: {e}")
                degraded = True
                continue
            for log in logs:
                try:
                    claims.append(
                        Claim(
                            amount=from_wei(decode_uint256(log.get("data"))),
                            block_number=int(log.get("blockNumber") or "0x0", 16),
                            tx_hash=log.get("transactionHash"),
                            source="onchain",
                        )
                    )
                except (DecodingError, ValueError, TypeError) as e:
                    logger.debug(f"Ignoring malformed RewardClaim log: {e}")
        return claims, degraded

    async def fetch_all_claims(self, address: str) -> tuple[list[Claim], bool]:
        """Memory API and on-chain claims, newest first."""
        api_claims, (onchain_claims, degraded) = await asyncio.gather(
            self.memory.fetch_claims(address),
            self.fetch_onchain_claims(address),
        )
        claims = [*api_claims, *onchain_claims]
        claims.sort(key=lambda c: c.block_number or c.round_id or 0, reverse=True)
        return claims, degraded

    async def estimate_upcoming_rewards(self, address: str) -> OnchainData:
        """Balance, claims and a simple projection of upcoming rewards."""
        balance, (claims, degraded) = await asyncio.gather(
            self.fetch_balance(address),
            self.fetch_all_claims(address),
        )
        return build_onchain_data(balance, claims, degraded)


def build_onchain_data(balance: float | None, claims: list[Claim], degraded: bool = False) -> OnchainData:
    """Aggregate a balance and claim list into ``OnchainData``."""
    claimed_total = sum(claim.amount for claim in claims)
    avg_claim = claimed_total / len(claims) if claims else 0.0
    projection = avg_claim * RewardsClient.AVG_CLAIM_BIAS + (balance or 0.0) * RewardsClient.BALANCE_YIELD
    return OnchainData(
        balance=balance,
        claims=claims,
        claimed_total=claimed_total,
        avg_claim=avg_claim,
        projection=projection,
        degraded=degraded,
    )
