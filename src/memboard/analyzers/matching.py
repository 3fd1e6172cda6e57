"""Wallet-to-wallet similarity matching.

Ten similarity dimensions over the shared signal space:
identity, platforms, usernames, followers, creators, on-chain,
MEM, ENS, engagement and Farcaster graph.

Set similarity is chosen per dimension:
- Overlap coefficient |A & B| / max(|A|, |B|) for per-profile attribute
  sets (platforms, usernames), where profile sizes differ naturally.
- Jaccard |A & B| / |A | B| for every graph or evidence set (follower
  graph, creators, Zora collections, tx contracts, Farcaster wallets).
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from memboard.analyzers.engagement import compute_engagement_rank
from memboard.analyzers.explain import generate_match_explanation
from memboard.analyzers.quantiles import clamp01, round_half_up
from memboard.analyzers.scorer import explain_legitimacy_score
from memboard.models.schemas import (
    LegitimacyOptions,
    MatchBreakdown,
    MatchResult,
    MatchSubject,
    Profile,
)

if TYPE_CHECKING:
    from memboard.analyzers.pipeline import ScoringPipeline

# Roughly sum to 1.0; applied as-is
MATCH_WEIGHTS = {
    "identity": 0.18,
    "platforms": 0.07,
    "usernames": 0.04,
    "followers": 0.13,
    "creators": 0.17,
    "onchain": 0.15,
    "mem": 0.07,
    "ens": 0.04,
    "engagement": 0.07,
    "farcaster": 0.08,
}


def cosine_similarity(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Cosine similarity of two vectors, zero-padded to equal length."""
    if not a or not b:
        return 0.0
    dot = mag_a = mag_b = 0.0
    for i in range(max(len(a), len(b))):
        av = a[i] if i < len(a) else 0.0
        bv = b[i] if i < len(b) else 0.0
        dot += av * bv
        mag_a += av * av
        mag_b += bv * bv
    if not mag_a or not mag_b:
        return 0.0
    return clamp01(dot / math.sqrt(mag_a * mag_b))


def set_overlap(a: Iterable[str], b: Iterable[str]) -> float:
    """Overlap coefficient: |A & B| / max(|A|, |B|)."""
    set_a, set_b = set(a), set(b)
    if not set_a or not set_b:
        return 0.0
    return clamp01(len(set_a & set_b) / max(len(set_a), len(set_b)))


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard index: |A & B| / |A | B|."""
    set_a, set_b = set(a), set(b)
    if not set_a or not set_b:
        return 0.0
    return clamp01(len(set_a & set_b) / len(set_a | set_b))


def closeness(score_a: float, score_b: float) -> float:
    """Similarity of two 0-100 scores."""
    return clamp01(1 - abs(score_a - score_b) / 100)


def _shared(a: Iterable[str], b: Iterable[str]) -> list[str]:
    return sorted(set(a) & set(b))


def compute_match(
    subject_a: MatchSubject,
    subject_b: MatchSubject,
    options: LegitimacyOptions | None = None,
) -> MatchResult:
    """Compute the match score between two gathered subjects.

    Pure function of its inputs; no network access.
    """
    a, b = subject_a.inputs, subject_b.inputs

    platforms = set_overlap(
        {i.platform for i in a.identities}, {i.platform for i in b.identities}
    )
    usernames = set_overlap(
        {i.handle for i in a.identities if i.handle},
        {i.handle for i in b.identities if i.handle},
    )

    followers_a = [i.social.followers for i in a.identities if i.social.followers and i.social.followers > 0]
    followers_b = [i.social.followers for i in b.identities if i.social.followers and i.social.followers > 0]
    follower_count_sim = cosine_similarity(followers_a or [0], followers_b or [0])
    follower_graph_sim = jaccard(subject_a.follower_graph, subject_b.follower_graph)
    followers = clamp01(0.5 * follower_count_sim + 0.5 * follower_graph_sim)

    engagement = closeness(
        compute_engagement_rank(a.identities, a.onchain_data).score,
        compute_engagement_rank(b.identities, b.onchain_data).score,
    )

    activity_a, activity_b = a.wallet_activity, b.wallet_activity
    vector_a = [activity_a.age_days or 0, activity_a.tx_count or 0] if activity_a else [0, 0]
    vector_b = [activity_b.age_days or 0, activity_b.tx_count or 0] if activity_b else [0, 0]
    contract_sim = jaccard(subject_a.contracts, subject_b.contracts)
    onchain = clamp01(0.5 * cosine_similarity(vector_a, vector_b) + 0.5 * contract_sim)

    mem = 0.0
    if a.onchain_data and b.onchain_data:
        mem = cosine_similarity(
            [a.onchain_data.balance or 0, len(a.onchain_data.claims)],
            [b.onchain_data.balance or 0, len(b.onchain_data.claims)],
        )

    ens = 0.0
    if a.ens_data and b.ens_data:
        ens = cosine_similarity(
            [a.ens_data.renewal_count or 0, a.ens_data.name_age_days or 0],
            [b.ens_data.renewal_count or 0, b.ens_data.name_age_days or 0],
        )

    identity = closeness(
        explain_legitimacy_score(a, options).score,
        explain_legitimacy_score(b, options).score,
    )

    creators = clamp01(
        0.6 * jaccard(subject_a.creators, subject_b.creators)
        + 0.4 * jaccard(subject_a.zora_collections, subject_b.zora_collections)
    )
    farcaster = jaccard(subject_a.farcaster_wallets, subject_b.farcaster_wallets)

    breakdown = MatchBreakdown(
        identity_similarity=identity,
        platform_similarity=platforms,
        username_overlap=usernames,
        follower_similarity=followers,
        creator_similarity=creators,
        onchain_similarity=onchain,
        mem_similarity=mem,
        ens_similarity=ens,
        engagement_similarity=engagement,
        farcaster_similarity=farcaster,
    )

    total = (
        MATCH_WEIGHTS["identity"] * identity
        + MATCH_WEIGHTS["platforms"] * platforms
        + MATCH_WEIGHTS["usernames"] * usernames
        + MATCH_WEIGHTS["followers"] * followers
        + MATCH_WEIGHTS["creators"] * creators
        + MATCH_WEIGHTS["onchain"] * onchain
        + MATCH_WEIGHTS["mem"] * mem
        + MATCH_WEIGHTS["ens"] * ens
        + MATCH_WEIGHTS["engagement"] * engagement
        + MATCH_WEIGHTS["farcaster"] * farcaster
    )

    shared_creators = _shared(subject_a.creators, subject_b.creators)
    shared_collections = _shared(subject_a.zora_collections, subject_b.zora_collections)
    shared_contracts = _shared(subject_a.contracts, subject_b.contracts)
    shared_farcaster = _shared(subject_a.farcaster_wallets, subject_b.farcaster_wallets)

    return MatchResult(
        wallet_a=subject_a.wallet,
        wallet_b=subject_b.wallet,
        match_score=round_half_up(clamp01(total) * 100),
        breakdown=breakdown,
        shared_creators=shared_creators,
        shared_zora_collections=shared_collections,
        shared_contracts=shared_contracts,
        shared_farcaster_wallets=shared_farcaster,
        explanation=generate_match_explanation(
            wallet_b=subject_b.wallet,
            breakdown=breakdown,
            shared_creators=shared_creators,
            shared_zora_collections=shared_collections,
            shared_contracts=shared_contracts,
            shared_farcaster_wallets=shared_farcaster,
        ),
    )


async def match_wallets(
    wallet_a: str,
    wallet_b: str,
    pipeline: ScoringPipeline,
    profile_a: Profile | None = None,
    profile_b: Profile | None = None,
    options: LegitimacyOptions | None = None,
) -> MatchResult:
    """Gather both subjects concurrently and compute their match."""
    subject_a, subject_b = await asyncio.gather(
        pipeline.gather_match_subject(wallet_a, profile_a),
        pipeline.gather_match_subject(wallet_b, profile_b),
    )
    return compute_match(subject_a, subject_b, options)
