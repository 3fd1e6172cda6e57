"""Shared adapter plumbing: errors, endpoint rotation, retries and address helpers."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from web3 import Web3

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = {429, 502, 503, 504}
TRANSIENT_MESSAGES = ("rate limit", "too many requests", "no backend", "healthy")

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_HEX_ADDRESS = re.compile(r"^0x[0-9a-f]{40}$")


class FetchError(Exception):
    """Raised when an upstream data source cannot be read."""


class RpcError(FetchError):
    """JSON-RPC error payload returned by a node."""

    def __init__(self, message: str, code: int | None = None, transient: bool | None = None) -> None:
        self.code = code
        self.transient = is_transient_message(message) if transient is None else transient
        super().__init__(message)


class SubjectNotResolvedError(FetchError):
    """Raised when a wallet or ENS name cannot be resolved to an address."""

    def __init__(self, subject: str) -> None:
        self.subject = subject
        super().__init__(f"Could not resolve '{subject}' to an address")


def is_transient_message(message: str) -> bool:
    lowered = (message or "").lower()
    return any(marker in lowered for marker in TRANSIENT_MESSAGES)


def is_transient(error: BaseException) -> bool:
    """Whether an error is worth rotating endpoints for."""
    if isinstance(error, RpcError):
        return error.transient
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in TRANSIENT_STATUS_CODES
    if isinstance(error, httpx.TransportError):
        return True
    return is_transient_message(str(error))


class EndpointPool:
    """Ordered endpoints with round-robin rotation.

    Empty entries are dropped so unset environment variables can be
    passed straight through.
    """

    def __init__(self, endpoints: list[str | None]) -> None:
        self.endpoints = [e for e in endpoints if e]
        if not self.endpoints:
            raise ValueError("EndpointPool needs at least one endpoint")
        self._index = 0

    def __len__(self) -> int:
        return len(self.endpoints)

    def current(self) -> str:
        return self.endpoints[self._index % len(self.endpoints)]

    def rotate(self) -> str:
        self._index = (self._index + 1) % len(self.endpoints)
        logger.debug(f"Rotated endpoint to {self.current()}")
        return self.current()


async def with_retries(
    operation: Callable[[], Awaitable[T]],
    pool: EndpointPool | None = None,
    attempts: int = 3,
    base_delay: float = 0.2,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run an async operation with bounded retries and exponential backoff.

    The pool is rotated after every transient failure so the next
    attempt hits a different endpoint.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt.
        pool: Endpoint pool to rotate on transient errors.
        attempts: Maximum number of attempts.
        base_delay: Delay before the second attempt; doubles afterwards.
        sleep: Awaitable sleep, injectable for tests.

    Returns:
        The operation's result.

    Raises:
        The last error once all attempts are exhausted.
    """
    delay = base_delay
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except (FetchError, httpx.HTTPError) as e:
            if pool is not None and is_transient(e):
                pool.rotate()
            if attempt >= attempts:
                logger.warning(f"Giving up after {attempt} attempts: {e}")
                raise
            logger.debug(f"Attempt {attempt} failed ({e}); retrying in {delay:.2f}s")
            await sleep(delay)
            delay *= 2
    raise FetchError("with_retries called with attempts < 1")


class BaseFetcher:
    """Base class for HTTP data sources.

    Subclasses share an optional injected ``httpx.AsyncClient``; without
    one a client is created per request and closed afterwards.
    """

    SOURCE = "upstream"
    TIMEOUT = 30.0

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the fetcher.

        Args:
            client: Optional httpx client. If not provided, creates one per request.
        """
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self.TIMEOUT)

    async def _fetch_json(
        self,
        url: str,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> dict | list | None:
        """GET a JSON document.

        Returns:
            Parsed JSON, or None if the request failed or the resource is missing.
        """
        client = await self._get_client()
        try:
            response = await client.get(url, params=params, headers=headers or {})
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.debug(f"{self.SOURCE}: Not found: {url}")
            else:
                logger.warning(f"{self.SOURCE} API error {e.response.status_code}: {url}")
            return None
        except httpx.RequestError as e:
            logger.warning(f"{self.SOURCE} request error: {e}")
            return None
        except ValueError as e:
            # JSON decode error
            logger.warning(f"{self.SOURCE} JSON decode error for {url}: {e}")
            return None
        finally:
            if self._client is None:
                await client.aclose()

    async def _post_json(self, url: str, payload: dict) -> dict | list:
        """POST a JSON body and return the parsed response.

        Raises:
            httpx.HTTPError: On transport or status errors.
            FetchError: If the body is not JSON.
        """
        client = await self._get_client()
        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            try:
                return response.json()
            except ValueError as e:
                raise FetchError(f"{self.SOURCE} returned invalid JSON: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()


def normalize_address(value: str | None) -> str | None:
    """Lower-cased 0x address, or None if the value is not one."""
    if not value:
        return None
    candidate = str(value).strip().lower()
    if not candidate.startswith("0x"):
        candidate = f"0x{candidate}"
    if not _HEX_ADDRESS.match(candidate):
        return None
    return candidate


def is_address(value: str | None) -> bool:
    return bool(value) and Web3.is_address(str(value).strip())


def is_ens_name(value: str | None) -> bool:
    if not value:
        return False
    name = str(value).strip().lower()
    return "." in name and not name.startswith(".") and not name.endswith(".")


def namehash(name: str) -> str:
    """EIP-137 namehash of an ENS name, 0x-prefixed."""
    node = b"\x00" * 32
    if name:
        for label in reversed(name.strip().lower().split(".")):
            node = bytes(Web3.keccak(node + bytes(Web3.keccak(text=label))))
    return "0x" + node.hex()


def selector(signature: str) -> str:
    """4-byte function selector for a Solidity signature."""
    return "0x" + bytes(Web3.keccak(text=signature))[:4].hex()


def event_topic(signature: str) -> str:
    """Topic hash for a Solidity event signature."""
    return "0x" + bytes(Web3.keccak(text=signature)).hex()


def pad_address(address: str) -> str:
    """Left-pad an address to a 32-byte hex word (no 0x)."""
    return address.lower().removeprefix("0x").rjust(64, "0")
