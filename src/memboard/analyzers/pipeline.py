"""Input pipeline: turns a wallet or ENS name into scoring inputs."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import httpx

from memboard.adapters.base import is_address, is_ens_name, normalize_address
from memboard.adapters.cache import TTLCache
from memboard.adapters.ens import EnsClient
from memboard.adapters.explorer import ExplorerClient
from memboard.adapters.farcaster import FarcasterClient
from memboard.adapters.memory import MemoryClient
from memboard.adapters.rewards import RewardsClient
from memboard.adapters.rpc import RpcClient
from memboard.analyzers.graph import (
    extract_creator_set,
    extract_follower_graph,
    extract_peer_wallets,
    extract_zora_collections,
)
from memboard.analyzers.signals import (
    compute_follower_quality,
    compute_identity_consistency,
    compute_identity_trust,
    compute_social_overlap,
    handle_counts,
)
from memboard.models.schemas import (
    EnsData,
    FreshnessTimestamp,
    MatchSubject,
    OnchainData,
    Profile,
    ScoringInputs,
    WalletActivity,
)

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 20

BASENAME_PLATFORMS = {"basenames", "basename", "base"}
ENS_PLATFORMS = {"ens", "ethereum"}

# Relative importance of each recent-activity source
FRESHNESS_SOURCE_WEIGHTS = {
    "wallet_tx": 1.0,
    "memory_claim": 0.8,
    "social_post": 0.7,
    "identity_update": 0.4,
    "ens_update": 0.2,
}


def find_basename(profile: Profile) -> str | None:
    """Basename (``*.base.eth``) linked to a profile, if any."""
    for identity in profile.identities:
        name = identity.handle
        if name and (name.endswith(".base.eth") or identity.platform in BASENAME_PLATFORMS):
            return name
    return None


def find_ens_name(profile: Profile, wallet_or_ens: str) -> str | None:
    """ENS name known without network access: subject, profile or identities."""
    subject = wallet_or_ens.strip().lower()
    if subject.endswith(".eth") and not subject.endswith(".base.eth"):
        return subject
    if profile.ens_name:
        return profile.ens_name.lower()
    for identity in profile.identities:
        name = identity.handle
        if name and name.endswith(".eth") and not name.endswith(".base.eth"):
            if identity.platform in ENS_PLATFORMS or identity.platform == "unknown":
                return name
    return None


class ScoringPipeline:
    """Gathers signals from every adapter and assembles ``ScoringInputs``.

    Use as an async context manager to share one HTTP client across all
    adapters. Injected adapters are used as-is.
    """

    def __init__(
        self,
        memory: MemoryClient | None = None,
        explorer: ExplorerClient | None = None,
        ens: EnsClient | None = None,
        rewards: RewardsClient | None = None,
        farcaster: FarcasterClient | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            memory: Memory API client.
            explorer: Block explorer client.
            ens: ENS client.
            rewards: MEM rewards client.
            farcaster: Farcaster hub client.
            cache: ENS resolution cache shared by the default ENS client.
        """
        self._injected = {
            "memory": memory,
            "explorer": explorer,
            "ens": ens,
            "rewards": rewards,
            "farcaster": farcaster,
        }
        self.cache = cache if cache is not None else TTLCache()
        self._http_client: httpx.AsyncClient | None = None
        self._build_adapters(None)

    def _build_adapters(self, client: httpx.AsyncClient | None) -> None:
        injected = self._injected
        base_rpc = RpcClient.for_base(client)
        self.memory = injected["memory"] or MemoryClient(client)
        self.explorer = injected["explorer"] or ExplorerClient(client, rpc=base_rpc)
        self.ens = injected["ens"] or EnsClient(client, rpc=RpcClient.for_ethereum(client), cache=self.cache)
        self.rewards = injected["rewards"] or RewardsClient(rpc=base_rpc, memory=self.memory, client=client)
        self.farcaster = injected["farcaster"] or FarcasterClient(client)

    async def __aenter__(self) -> ScoringPipeline:
        """Set up shared HTTP client."""
        self._http_client = httpx.AsyncClient(timeout=60.0)
        self._build_adapters(self._http_client)
        return self

    async def __aexit__(self, *args) -> None:
        """Clean up HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
            self._build_adapters(None)

    async def resolve_address(self, wallet_or_ens: str) -> str | None:
        """Lower-cased address for a wallet or ENS name."""
        if not wallet_or_ens:
            return None
        if is_address(wallet_or_ens):
            return normalize_address(wallet_or_ens)
        if is_ens_name(wallet_or_ens):
            return await self.ens.resolve_name(wallet_or_ens)
        return None

    async def _ens_data(self, profile: Profile, wallet_or_ens: str, address: str | None) -> tuple[str | None, EnsData | None]:
        ens_name = find_ens_name(profile, wallet_or_ens)
        if ens_name is None and address:
            ens_name = await self.ens.reverse_lookup(address)
        if not ens_name:
            return None, None
        return ens_name, await self.ens.fetch_metadata(ens_name)

    async def _onchain(self, address: str | None) -> OnchainData | None:
        if address is None:
            return None
        return await self.rewards.estimate_upcoming_rewards(address)

    async def _activity(self, address: str | None) -> WalletActivity | None:
        if address is None:
            return None
        age, activity = await asyncio.gather(
            self.explorer.fetch_wallet_age(address),
            self.explorer.fetch_wallet_activity(address),
        )
        return WalletActivity(
            age_days=age.age_days,
            tx_count=activity.tx_count,
            gas_spent=activity.gas_spent,
        )

    async def gather_inputs(self, wallet_or_ens: str, profile: Profile | None = None) -> ScoringInputs:
        """Collect every signal for one subject.

        MEM rewards, wallet history and ENS metadata are fetched
        concurrently once the profile is known.
        """
        if profile is None:
            profile = await self.memory.get_profile(wallet_or_ens)
        address = await self.resolve_address(wallet_or_ens)

        onchain, activity, (ens_name, ens_data) = await asyncio.gather(
            self._onchain(address),
            self._activity(address),
            self._ens_data(profile, wallet_or_ens, address),
        )

        identities = profile.identities
        consistency = compute_identity_consistency(identities)
        trust = compute_identity_trust(identities)

        degraded = bool(
            (onchain and onchain.degraded)
            or (activity is not None and activity.tx_count is None)
            or (ens_data is not None and ens_data.status == "error")
        )
        if degraded:
            logger.warning(f"Some signals for {wallet_or_ens} are unavailable; scoring with partial data")

        logger.info(f"Gathered inputs for {wallet_or_ens}: {len(identities)} identities")
        return ScoringInputs(
            identities=identities,
            profile=profile,
            onchain_data=onchain,
            wallet_activity=activity,
            ens_name=ens_name,
            ens_data=ens_data,
            bns_name=find_basename(profile),
            follower_quality=compute_follower_quality(identities),
            identity_trust=trust.identity_trust,
            consistency_score=trust.consistency_score,
            handle_consistency=consistency.handle_consistency,
            pfp_consistency=consistency.pfp_consistency,
            mutual_overlap=compute_social_overlap(identities) if sum(handle_counts(identities).values()) > 1 else None,
            degraded=degraded,
        )

    async def gather_match_subject(self, wallet_or_ens: str, profile: Profile | None = None) -> MatchSubject:
        """Scoring inputs plus the evidence sets used for matching."""
        inputs = await self.gather_inputs(wallet_or_ens, profile)
        address = await self.resolve_address(wallet_or_ens)

        if address is not None:
            contracts, graph = await asyncio.gather(
                self.explorer.fetch_contract_set(address),
                self.farcaster.get_graph(address),
            )
            farcaster_wallets = graph.wallets
        else:
            contracts, farcaster_wallets = set(), set()

        identities = inputs.identities
        return MatchSubject(
            wallet=address or wallet_or_ens,
            inputs=inputs,
            creators=sorted(extract_creator_set(identities)),
            zora_collections=sorted(extract_zora_collections(identities)),
            contracts=sorted(contracts),
            follower_graph=sorted(extract_follower_graph(identities)),
            farcaster_wallets=sorted(farcaster_wallets),
        )

    async def resolve_freshness(self, wallet_or_ens: str, inputs: ScoringInputs | None = None) -> FreshnessTimestamp:
        """Most relevant recent-activity timestamp across sources.

        The winner maximizes ``timestamp * source_weight``.
        """
        if inputs is None:
            inputs = await self.gather_inputs(wallet_or_ens)
        address = await self.resolve_address(wallet_or_ens)

        sources: dict[str, datetime] = {}
        if address is not None:
            last_tx = await self.explorer.fetch_last_tx_timestamp(address)
            if last_tx is not None:
                sources["wallet_tx"] = last_tx

        claims = inputs.onchain_data.claims if inputs.onchain_data else []
        claim_times = [claim.timestamp for claim in claims if claim.timestamp]
        if claim_times:
            sources["memory_claim"] = max(claim_times)

        post_times = [i.last_post_at for i in inputs.identities if i.last_post_at]
        if post_times:
            sources["social_post"] = max(post_times)

        update_times = [i.updated_at for i in inputs.identities if i.updated_at]
        if update_times:
            sources["identity_update"] = max(update_times)

        if inputs.ens_data and inputs.ens_data.created_at:
            sources["ens_update"] = inputs.ens_data.created_at

        candidates = [(key, ts) for key, ts in sources.items() if ts.timestamp() > 0]
        if not candidates:
            return FreshnessTimestamp(sources=sources)

        key, ts = max(candidates, key=lambda item: item[1].timestamp() * FRESHNESS_SOURCE_WEIGHTS[item[0]])
        return FreshnessTimestamp(timestamp=ts, sources=sources, winning_source=key)

    async def discover_candidates(self, wallet_or_ens: str, profile: Profile | None = None) -> list[str]:
        """Wallets worth matching against, deduplicated and capped.

        Draws on profile identity wallets, creator wallets, the Farcaster
        graph and follower-graph peers.
        """
        main = await self.resolve_address(wallet_or_ens)
        if main is None:
            return []
        if profile is None:
            profile = await self.memory.get_profile(wallet_or_ens)

        graph = await self.farcaster.get_graph(main)
        ordered = [
            *(identity.wallet for identity in profile.identities),
            *sorted(extract_creator_set(profile.identities)),
            *graph.follower_wallets,
            *graph.following_wallets,
            *sorted(extract_peer_wallets(profile.identities)),
        ]

        candidates: dict[str, None] = {}
        for value in ordered:
            wallet = normalize_address(value) if value and str(value).lower().startswith("0x") else None
            if wallet and wallet != main:
                candidates[wallet] = None

        logger.info(f"Discovered {len(candidates)} candidates for {wallet_or_ens}")
        return list(candidates)[:MAX_CANDIDATES]
