"""Identity-derived signals computed before scoring.

These collaborators turn the raw identity list into the precomputed
values carried on ``ScoringInputs``: handle/avatar consistency, proof
strength trust, follower quality and social overlap.
"""

import math
from collections import Counter
from itertools import combinations

from rapidfuzz.distance import Levenshtein

from memboard.analyzers.quantiles import clamp01
from memboard.models.schemas import (
    FollowerQuality,
    Identity,
    IdentityConsistency,
    IdentityTrust,
)

# Strength of a verified proof by source type
PROOF_STRENGTH = {
    "onchain": 1.0,
    "ethereum": 1.0,
    "ens": 0.95,
    "basenames": 0.9,
    "farcaster": 0.9,
    "github": 0.85,
    "lens": 0.8,
    "twitter": 0.8,
    "x": 0.8,
    "default": 0.6,
}
UNVERIFIED_STRENGTH = 0.15

# Platform weights for the bot/real follower classifier
FOLLOWER_PLATFORM_WEIGHTS = {
    "twitter": 1.3,
    "x": 1.3,
    "farcaster": 1.2,
    "lens": 1.15,
    "github": 1.25,
    "youtube": 1.2,
    "instagram": 1.1,
    "zora": 1.05,
    "email": 0.4,
    "website": 0.5,
    "default": 0.8,
}


def _reuse_fraction(counts: Counter) -> float | None:
    if not counts:
        return None
    reused = sum(1 for count in counts.values() if count >= 2)
    return reused / len(counts)


def handle_counts(identities: list[Identity]) -> Counter:
    """Occurrences of each lower-cased handle."""
    return Counter(identity.handle for identity in identities if identity.handle)


def compute_identity_consistency(identities: list[Identity]) -> IdentityConsistency:
    """Fraction of handles and avatars reused across two or more identities."""
    avatars = Counter(identity.avatar for identity in identities if identity.avatar)
    return IdentityConsistency(
        handle_consistency=_reuse_fraction(handle_counts(identities)),
        pfp_consistency=_reuse_fraction(avatars),
    )


def compute_social_overlap(identities: list[Identity]) -> float:
    """Share of distinct handles that appear on at least two platforms."""
    counts = handle_counts(identities)
    if sum(counts.values()) <= 1:
        return 0.0
    return _reuse_fraction(counts) or 0.0


def _proof_strength(identity: Identity) -> float:
    verified_types = [source.type.lower() for source in identity.sources if source.verified]
    if not verified_types:
        return UNVERIFIED_STRENGTH
    return max(PROOF_STRENGTH.get(t, PROOF_STRENGTH["default"]) for t in verified_types)


def compute_identity_trust(identities: list[Identity]) -> IdentityTrust:
    """Proof-strength trust and handle similarity across identities.

    ``identity_trust`` averages the strongest verified proof of each
    identity. ``consistency_score`` averages, for every handle, its best
    normalized Levenshtein similarity to any other handle, so near-identical
    handles ("alice", "alice_eth") count as consistent.
    """
    if not identities:
        return IdentityTrust()

    trust = sum(_proof_strength(identity) for identity in identities) / len(identities)

    handles = [identity.handle for identity in identities if identity.handle]
    if len(handles) < 2:
        # Nothing to compare against
        return IdentityTrust(identity_trust=clamp01(trust), consistency_score=0.5)

    best = [0.0] * len(handles)
    for (i, a), (j, b) in combinations(enumerate(handles), 2):
        similarity = Levenshtein.normalized_similarity(a, b)
        best[i] = max(best[i], similarity)
        best[j] = max(best[j], similarity)

    return IdentityTrust(
        identity_trust=clamp01(trust),
        consistency_score=clamp01(sum(best) / len(best)),
    )


def compute_follower_quality(identities: list[Identity]) -> FollowerQuality:
    """Estimate weighted real vs. bot followers across identities.

    Heuristics per identity:
    - Very few followers while following many: bot-like
    - Low follower/following ratio: bot-like
    - Large audience with near-zero engagement: bot-like
    - Healthy ratio or organic small audience: real
    """
    weighted_real = 0.0
    weighted_bot = 0.0

    for identity in identities:
        weight = FOLLOWER_PLATFORM_WEIGHTS.get(identity.platform, FOLLOWER_PLATFORM_WEIGHTS["default"])
        social = identity.social
        followers = social.followers or 0
        following = social.following or 0

        if followers <= 0 and not following:
            continue

        bot = 0.0
        real = 0.0

        if followers < 10 and following > 50:
            bot += 0.7

        if following > 0:
            ratio = followers / max(following, 1)
            if ratio < 0.1 and following > 100:
                bot += 0.5
            elif ratio < 0.25 and following > 50:
                bot += 0.3

        engagement = social.engagement_rate
        if engagement is not None and followers > 1000:
            # Values above 1 are absolute interaction counts
            rate = engagement / followers if engagement > 1 else engagement
            if rate < 0.002:
                bot += 0.4

        follower_log = math.log10(followers + 1)
        if follower_log > 0.5:
            real += follower_log * 0.5

        if following > 0:
            ratio = followers / max(following, 1)
            if 0.5 <= ratio <= 4:
                real += 0.3
            elif ratio > 4 and followers > 200:
                real += 0.4

        if 0 < followers < 50 and not following:
            real += 0.2

        weighted_real += real * weight
        weighted_bot += bot * clamp01(1.3 - weight * 0.4)

    total = weighted_real + weighted_bot
    return FollowerQuality(
        real_followers=weighted_real,
        bot_followers=weighted_bot,
        ratio=weighted_real / total if total > 0 else 0.5,
    )
