"""Block explorer adapter for Base wallet history.

Data sources:
- Etherscan v2 multichain API (chainid 8453, needs ETHERSCAN_API_KEY)
- Blockscout Etherscan-compatible API for Base (keyless)
- Covalent transactions_v2 (needs COVALENT_API_KEY)
- Base JSON-RPC for transaction counts
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import datetime, timezone

import httpx

from memboard.adapters.base import ZERO_ADDRESS, BaseFetcher, FetchError
from memboard.adapters.memory import parse_timestamp
from memboard.adapters.rpc import BASE_CHAIN_ID, RpcClient
from memboard.models.schemas import WalletActivity, WalletAge

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExplorerClient(BaseFetcher):
    """Wallet age, activity and contract interactions on Base."""

    SOURCE = "explorer"
    ETHERSCAN_V2_URL = "https://api.etherscan.io/v2/api"
    BLOCKSCOUT_URL = "https://base.blockscout.com/api"
    COVALENT_URL = "https://api.covalenthq.com/v1"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        rpc: RpcClient | None = None,
        etherscan_key: str | None = None,
        covalent_key: str | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the client.

        Args:
            client: Optional httpx client.
            rpc: Base RPC client. Defaults to one built from the environment.
            etherscan_key: Etherscan API key. Defaults to ETHERSCAN_API_KEY.
            covalent_key: Covalent API key. Defaults to COVALENT_API_KEY.
            now: Clock used for age calculations.
        """
        super().__init__(client)
        self.rpc = rpc or RpcClient.for_base(client)
        self.etherscan_key = etherscan_key or os.environ.get("ETHERSCAN_API_KEY")
        self.covalent_key = covalent_key or os.environ.get("COVALENT_API_KEY")
        self._now = now

    @staticmethod
    def _txlist_params(address: str, sort: str, offset: int) -> dict:
        return {
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": "0",
            "endblock": "99999999",
            "page": "1",
            "offset": str(offset),
            "sort": sort,
        }

    @staticmethod
    def _result_list(payload: dict | list | None) -> list[dict]:
        if not isinstance(payload, dict):
            return []
        # Etherscan-style APIs report errors as {"status": "0", "result": "message"}
        if str(payload.get("status")) == "0":
            return []
        result = payload.get("result")
        return result if isinstance(result, list) else []

    async def _first_tx_etherscan(self, address: str) -> datetime | None:
        if not self.etherscan_key:
            return None
        params = {
            "chainid": str(BASE_CHAIN_ID),
            **self._txlist_params(address, "asc", 1),
            "apikey": self.etherscan_key,
        }
        txs = self._result_list(await self._fetch_json(self.ETHERSCAN_V2_URL, params=params))
        return parse_timestamp(txs[0].get("timeStamp")) if txs else None

    async def _first_tx_blockscout(self, address: str) -> datetime | None:
        txs = self._result_list(
            await self._fetch_json(self.BLOCKSCOUT_URL, params=self._txlist_params(address, "asc", 1))
        )
        return parse_timestamp(txs[0].get("timeStamp")) if txs else None

    async def _first_tx_covalent(self, address: str) -> datetime | None:
        if not self.covalent_key:
            return None
        url = f"{self.COVALENT_URL}/{BASE_CHAIN_ID}/address/{address}/transactions_v2/"
        payload = await self._fetch_json(url, params={"page-size": "25", "key": self.covalent_key})
        data = payload.get("data") if isinstance(payload, dict) else None
        items = data.get("items") if isinstance(data, dict) else None
        if not items or not isinstance(items, list):
            return None
        # Most recent first; the last item is the earliest on this page
        return parse_timestamp(items[-1].get("block_signed_at"))

    async def fetch_wallet_age(self, address: str) -> WalletAge:
        """First-activity time and age in days.

        Tries Etherscan v2, then Blockscout, then Covalent.
        """
        if not address:
            return WalletAge()

        for source, lookup in (
            ("etherscan-v2", self._first_tx_etherscan),
            ("blockscout", self._first_tx_blockscout),
            ("covalent", self._first_tx_covalent),
        ):
            first = await lookup(address)
            if first is None or first.timestamp() <= 0:
                continue
            age_days = max(0.0, (self._now() - first).total_seconds() / 86400)
            logger.debug(f"Wallet age for {address} from {source}: {age_days:.0f} days")
            return WalletAge(first_activity_at=first, age_days=round(age_days), source=source)

        logger.debug(f"No first transaction found for {address}")
        return WalletAge()

    async def fetch_wallet_activity(self, address: str) -> WalletActivity:
        """Transaction count via RPC. Gas spent is not available and stays None."""
        if not address:
            return WalletActivity()
        try:
            tx_count = await self.rpc.get_transaction_count(address)
        except (FetchError, httpx.HTTPError, ValueError, TypeError) as e:
            logger.warning(f"Wallet activity fetch failed for {address}: {e}")
            return WalletActivity()
        return WalletActivity(tx_count=tx_count, gas_spent=None)

    async def fetch_last_tx_timestamp(self, address: str) -> datetime | None:
        """Time of the most recent transaction on Blockscout."""
        if not address:
            return None
        txs = self._result_list(
            await self._fetch_json(self.BLOCKSCOUT_URL, params=self._txlist_params(address, "desc", 1))
        )
        return parse_timestamp(txs[0].get("timeStamp")) if txs else None

    async def fetch_contract_set(self, address: str, max_tx: int = 200) -> set[str]:
        """Distinct ``to`` addresses of the wallet's most recent transactions."""
        if not address:
            return set()
        txs = self._result_list(
            await self._fetch_json(self.BLOCKSCOUT_URL, params=self._txlist_params(address, "desc", max_tx))
        )
        contracts = set()
        for tx in txs:
            to = str(tx.get("to") or "").lower()
            if to and to != ZERO_ADDRESS:
                contracts.add(to)
        return contracts
