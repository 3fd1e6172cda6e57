"""Data source adapters."""

from memboard.adapters.base import (
    EndpointPool,
    FetchError,
    RpcError,
    SubjectNotResolvedError,
    with_retries,
)
from memboard.adapters.cache import TTLCache
from memboard.adapters.ens import EnsClient
from memboard.adapters.explorer import ExplorerClient
from memboard.adapters.farcaster import FarcasterClient
from memboard.adapters.memory import MemoryClient
from memboard.adapters.rewards import RewardsClient
from memboard.adapters.rpc import RpcClient

__all__ = [
    "EndpointPool",
    "EnsClient",
    "ExplorerClient",
    "FarcasterClient",
    "FetchError",
    "MemoryClient",
    "RewardsClient",
    "RpcClient",
    "RpcError",
    "SubjectNotResolvedError",
    "TTLCache",
    "with_retries",
]
