"""Memory API adapter.

Data sources:
- Identity profile: {base}/v1/profile/{wallet_or_ens}
- Reward claims: {base}/v1/rewards/{wallet_or_ens}/claims

The Memory API has shipped several payload shapes over time. All of
the field-name sniffing for those shapes lives in this module; the rest
of the package only sees normalized ``Profile`` and ``Claim`` models.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from memboard.adapters.base import BaseFetcher
from memboard.models.schemas import (
    Claim,
    Identity,
    IdentitySource,
    NftActivity,
    Profile,
    SocialStats,
)

logger = logging.getLogger(__name__)

_datetime = TypeAdapter(datetime)


def _first(data: dict, *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO string or a unix timestamp (seconds or milliseconds)."""
    if value in (None, "", 0):
        return None
    try:
        parsed = _datetime.validate_python(value)
    except ValidationError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _peer_id(item: Any) -> str | None:
    if isinstance(item, str):
        return item.strip() or None
    if isinstance(item, dict):
        value = _first(item, "wallet", "address", "id", "username", "handle")
        return str(value) if value is not None else None
    return None


def _peer_wallet(item: Any) -> str | None:
    if isinstance(item, dict):
        value = _first(item, "wallet", "address")
        return str(value) if value is not None else None
    return None


def _normalize_social(raw: dict) -> SocialStats:
    social = raw.get("social") if isinstance(raw.get("social"), dict) else {}
    merged = {**raw, **social}
    followers_list = merged.get("followersList") or merged.get("followers_list") or []
    following_list = merged.get("followingList") or merged.get("following_list") or []
    if not isinstance(followers_list, list):
        followers_list = []
    if not isinstance(following_list, list):
        following_list = []
    followers = _first(merged, "followers", "followerCount", "followersCount")
    following = _first(merged, "following", "followingCount")

    peers = [_peer_wallet(item) for item in followers_list + following_list]
    return SocialStats(
        followers=_as_int(followers) if not isinstance(followers, list) else len(followers),
        following=_as_int(following) if not isinstance(following, list) else len(following),
        engagement_rate=_as_float(_first(merged, "engagementRate", "engagement_rate", "engagement")),
        followers_list=[p for p in map(_peer_id, followers_list) if p],
        following_list=[p for p in map(_peer_id, following_list) if p],
        peer_wallets=[p for p in peers if p],
    )


def _normalize_sources(raw: dict, platform: str) -> list[IdentitySource]:
    sources = raw.get("sources")
    if isinstance(sources, list):
        result = []
        for source in sources:
            if isinstance(source, dict):
                result.append(
                    IdentitySource(
                        type=str(source.get("type") or source.get("id") or platform).lower(),
                        verified=bool(source.get("verified")),
                    )
                )
            elif isinstance(source, str):
                result.append(IdentitySource(type=source.lower(), verified=False))
        return result
    if raw.get("verified"):
        return [IdentitySource(type=platform, verified=True)]
    return []


def _normalize_mints(raw: dict) -> list[NftActivity]:
    mints = []
    for item in raw.get("mints") or raw.get("collects") or raw.get("zoraMints") or []:
        if not isinstance(item, dict):
            continue
        mints.append(
            NftActivity(
                creator=_stringify(_first(item, "creator", "creatorAddress")),
                collection_address=_stringify(_first(item, "collectionAddress", "collection")),
                contract_address=_stringify(_first(item, "contractAddress", "contract")),
                project_id=_stringify(_first(item, "projectId", "tokenId")),
            )
        )
    return mints


def _latest_post(raw: dict) -> datetime | None:
    social = raw.get("social") if isinstance(raw.get("social"), dict) else {}
    posts = raw.get("posts") or social.get("posts") or []
    latest = parse_timestamp(_first(raw, "lastPostAt", "lastPost"))
    for post in posts:
        if not isinstance(post, dict):
            continue
        ts = parse_timestamp(_first(post, "createdAt", "timestamp"))
        if ts and (latest is None or ts > latest):
            latest = ts
    return latest


def _normalize_identity(raw: Any) -> Identity | None:
    if isinstance(raw, str):
        # Legacy shape: bare platform names
        return Identity(platform=raw) if raw.strip() else None
    if not isinstance(raw, dict):
        return None

    platform = str(_first(raw, "platform", "type", "provider") or "unknown").strip().lower()
    creators = []
    for creator in raw.get("creators") or raw.get("followedCreators") or []:
        value = _peer_id(creator)
        if value:
            creators.append(value)

    return Identity(
        platform=platform,
        id=_stringify(_first(raw, "id", "userId")),
        username=_stringify(_first(raw, "username", "handle", "name")),
        display_name=_stringify(_first(raw, "displayName", "display_name")),
        avatar=_stringify(_first(raw, "avatar", "pfp", "avatarUrl", "image")),
        wallet=_stringify(_first(raw, "wallet", "address")),
        social=_normalize_social(raw),
        sources=_normalize_sources(raw, platform),
        mints=_normalize_mints(raw),
        creators=creators,
        created_at=parse_timestamp(_first(raw, "createdAt", "created_at")),
        updated_at=parse_timestamp(_first(raw, "updatedAt", "lastUpdated")),
        last_post_at=_latest_post(raw),
    )


def _stringify(value: Any) -> str | None:
    return str(value) if value is not None else None


def normalize_profile_payload(payload: Any, wallet: str = "") -> Profile:
    """Map a raw Memory profile payload onto ``Profile``.

    Accepts identity lists under ``identities``, ``connections`` or
    ``linked``; items may be full identity objects or bare platform names.
    Anything unrecognizable yields an empty profile.
    """
    if not isinstance(payload, dict):
        return Profile.empty(wallet)

    raw_identities = payload.get("identities") or payload.get("connections") or payload.get("linked") or []
    if isinstance(raw_identities, dict):
        raw_identities = list(raw_identities.values())

    identities = []
    for raw in raw_identities:
        identity = _normalize_identity(raw)
        if identity is not None:
            identities.append(identity)

    total = _as_int(_first(payload, "total", "totalIdentities"))
    verified = _as_int(_first(payload, "verified", "verifiedCount"))

    return Profile(
        wallet=str(payload.get("wallet") or payload.get("address") or wallet),
        identities=identities,
        total=total if total is not None else len(identities),
        verified=verified if verified is not None else sum(1 for i in identities if i.is_verified),
        ens_name=_stringify(_first(payload, "ensName", "ens")),
    )


def normalize_claims_payload(payload: Any) -> list[Claim]:
    """Map a raw Memory claims payload onto ``Claim`` models."""
    items = payload
    if isinstance(payload, dict):
        items = payload.get("claims") or payload.get("items") or []
    if not isinstance(items, list):
        return []

    claims = []
    for item in items:
        if not isinstance(item, dict):
            continue
        amount = _as_float(_first(item, "amount", "value")) or 0.0
        claims.append(
            Claim(
                amount=amount,
                block_number=_as_int(item.get("blockNumber")),
                round_id=_as_int(_first(item, "distributionRoundId", "roundId")),
                tx_hash=_stringify(_first(item, "txHash", "transactionHash")),
                timestamp=parse_timestamp(_first(item, "timestamp", "claimedAt", "createdAt")),
                source="memory-api",
            )
        )
    return claims


class MemoryClient(BaseFetcher):
    """Client for the Memory identity API."""

    SOURCE = "memory"
    BASE_URL = "https://api.memory.build"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            client: Optional httpx client.
            base_url: API root. Defaults to MEMBOARD_MEMORY_API_URL or the public API.
        """
        super().__init__(client)
        self.base_url = (base_url or os.environ.get("MEMBOARD_MEMORY_API_URL") or self.BASE_URL).rstrip("/")

    async def get_profile(self, wallet_or_ens: str) -> Profile:
        """Fetch the identity profile of a wallet or ENS name.

        Never raises; unknown subjects give an empty profile.
        """
        if not wallet_or_ens:
            return Profile.empty()
        payload = await self._fetch_json(f"{self.base_url}/v1/profile/{wallet_or_ens}")
        if payload is None:
            return Profile.empty(wallet_or_ens)
        try:
            return normalize_profile_payload(payload, wallet_or_ens)
        except ValidationError as e:
            logger.warning(f"Memory profile for {wallet_or_ens} could not be normalized: {e}")
            return Profile.empty(wallet_or_ens)

    async def fetch_claims(self, wallet_or_ens: str) -> list[Claim]:
        """Reward claims recorded by the Memory API."""
        if not wallet_or_ens:
            return []
        payload = await self._fetch_json(f"{self.base_url}/v1/rewards/{wallet_or_ens}/claims")
        if payload is None:
            return []
        try:
            return normalize_claims_payload(payload)
        except ValidationError as e:
            logger.warning(f"Memory claims for {wallet_or_ens} could not be normalized: {e}")
            return []
