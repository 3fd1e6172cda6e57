"""Farcaster hub adapter.

Uses keyless public hub endpoints:
- /v1/verificationsByAddress: wallet -> fid
- /v1/followersByFid, /v1/followingByFid: social graph
"""

from __future__ import annotations

import asyncio
import logging
import os

import httpx

from memboard.adapters.base import BaseFetcher, normalize_address
from memboard.models.schemas import FarcasterGraph

logger = logging.getLogger(__name__)


class FarcasterClient(BaseFetcher):
    """Farcaster follower graph resolved to wallet addresses."""

    SOURCE = "farcaster"
    HUB_URL = "https://hub.pinata.cloud"

    def __init__(self, client: httpx.AsyncClient | None = None, hub_url: str | None = None) -> None:
        super().__init__(client)
        self.hub_url = (hub_url or os.environ.get("MEMBOARD_FARCASTER_HUB") or self.HUB_URL).rstrip("/")

    async def get_fid(self, address: str) -> int | None:
        payload = await self._fetch_json(f"{self.hub_url}/v1/verificationsByAddress", params={"address": address})
        verifications = payload.get("verifications") if isinstance(payload, dict) else None
        if not verifications or not isinstance(verifications[0], dict):
            return None
        try:
            return int(verifications[0].get("fid")) or None
        except (TypeError, ValueError):
            return None

    async def _user_wallets(self, endpoint: str, fid: int) -> list[str]:
        payload = await self._fetch_json(f"{self.hub_url}/v1/{endpoint}", params={"fid": fid})
        users = payload.get("users") if isinstance(payload, dict) else None
        wallets: set[str] = set()
        for user in users or []:
            if not isinstance(user, dict):
                continue
            for candidate in [*(user.get("verifications") or []), user.get("custody_address")]:
                wallet = normalize_address(candidate)
                if wallet:
                    wallets.add(wallet)
        return sorted(wallets)

    async def get_followers(self, fid: int) -> list[str]:
        return await self._user_wallets("followersByFid", fid)

    async def get_following(self, fid: int) -> list[str]:
        return await self._user_wallets("followingByFid", fid)

    async def get_graph(self, address: str) -> FarcasterGraph:
        """Follower and following wallets for the account verified by ``address``."""
        if not address:
            return FarcasterGraph()
        fid = await self.get_fid(address)
        if fid is None:
            logger.debug(f"No Farcaster account verified for {address}")
            return FarcasterGraph()
        followers, following = await asyncio.gather(self.get_followers(fid), self.get_following(fid))
        return FarcasterGraph(fid=fid, follower_wallets=followers, following_wallets=following)
