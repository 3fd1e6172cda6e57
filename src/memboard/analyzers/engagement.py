"""Engagement rank heuristic.

Scores social and on-chain activity intensity, independent of
legitimacy:
- Base engagement from platform-weighted log follower counts
- Verified reliability multiplier
- Cross-platform handle consistency bonus
- On-chain activity bonus (MEM claims + balance)
- Logistic rescaling to 0-100
"""

import math

from memboard.analyzers.quantiles import round_half_up
from memboard.analyzers.signals import handle_counts
from memboard.models.schemas import (
    EngagementBreakdown,
    EngagementRank,
    Identity,
    OnchainData,
)

PLATFORM_WEIGHTS = {
    "twitter": 1.3,
    "x": 1.3,
    "lens": 1.2,
    "farcaster": 1.15,
    "github": 1.05,
    "zora": 1.1,
    "youtube": 1.25,
    "instagram": 1.2,
    "tiktok": 1.2,
    "ethereum": 0.8,
    "ens": 0.8,
    "website": 0.6,
    "email": 0.4,
    "default": 0.75,
}

CLAIMS_SATURATION = 12
BALANCE_SATURATION = 15_000
MAX_CONSISTENCY_BONUS = 0.12
MAX_ONCHAIN_BONUS = 0.25

# Logistic rescaling
SIGMOID_MIDPOINT = 50
SIGMOID_STEEPNESS = 0.07
SIGMOID_OFFSET = 5  # keeps low raw scores from mapping artificially high

LABEL_TIERS = [
    (90, "Elite"),
    (75, None),  # High or Rising, decided by percentile
    (60, "Active"),
    (40, "Emerging"),
    (20, "Developing"),
]


def sigmoid_scale(raw: float) -> float:
    """Monotone logistic map of the raw engagement score onto 0-100."""
    scaled = 100 / (1 + math.exp(-SIGMOID_STEEPNESS * (raw - SIGMOID_MIDPOINT))) - SIGMOID_OFFSET
    return max(0.0, min(100.0, scaled))


def approximate_percentile(score: int) -> int:
    """Approximate top-percentile from score, assuming a skewed distribution."""
    return round_half_up(100 - (score**1.05) / (100**1.05) * 100)


def rank_label(score: int, percentile: int) -> str:
    """Label tier for an engagement score."""
    for threshold, label in LABEL_TIERS:
        if score >= threshold:
            if label is None:
                return "High" if percentile <= 20 else "Rising"
            return label
    return "Dormant"


def compute_engagement_rank(
    identities: list[Identity],
    onchain: OnchainData | None = None,
) -> EngagementRank:
    """Compute the engagement rank for a set of identities.

    Args:
        identities: Linked identities of the subject.
        onchain: MEM balance and claims, if known.

    Returns:
        EngagementRank with score, approximate percentile, label and breakdown.
    """
    if not identities:
        return EngagementRank(score=0, percentile_approx=100, label="No Data")

    follower_component = 0.0
    total_followers = 0
    for identity in identities:
        followers = identity.social.followers or 0
        total_followers += followers
        weight = PLATFORM_WEIGHTS.get(identity.platform, PLATFORM_WEIGHTS["default"])
        # +10 smoothing keeps empty accounts at a small positive base
        follower_component += weight * math.log10(max(followers, 0) + 10)

    verified_count = sum(1 for identity in identities if identity.is_verified)
    reliability_mult = 1 + min(0.5, verified_count / len(identities) * 0.6)

    handles = handle_counts(identities)
    consistency_bonus = 0.0
    if handles:
        multi = sum(1 for count in handles.values() if count >= 2)
        consistency_bonus = min(MAX_CONSISTENCY_BONUS, multi / len(handles) * 0.2)

    claims_count = len(onchain.claims) if onchain else 0
    balance = (onchain.balance or 0.0) if onchain else 0.0
    claims_score = min(1.0, claims_count / CLAIMS_SATURATION)
    balance_score = min(1.0, max(0.0, balance) / BALANCE_SATURATION)
    onchain_bonus = (claims_score * 0.7 + balance_score * 0.3) * MAX_ONCHAIN_BONUS

    raw_score = follower_component * reliability_mult * (1 + consistency_bonus + onchain_bonus)

    score = round_half_up(sigmoid_scale(raw_score))
    percentile = approximate_percentile(score)

    return EngagementRank(
        score=score,
        percentile_approx=percentile,
        label=rank_label(score, percentile),
        breakdown=EngagementBreakdown(
            total_followers=total_followers,
            verified_count=verified_count,
            reliability_mult=round(reliability_mult, 3),
            follower_component=round(follower_component, 3),
            consistency_bonus=round(consistency_bonus, 3),
            onchain_bonus=round(onchain_bonus, 3),
            raw_score=round(raw_score, 3),
        ),
    )
