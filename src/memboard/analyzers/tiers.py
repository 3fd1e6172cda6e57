"""Legitimacy tiers and cohort comparison."""

from memboard.analyzers.engagement import compute_engagement_rank
from memboard.analyzers.quantiles import round_half_up
from memboard.analyzers.scorer import compute_legitimacy_score
from memboard.models.schemas import (
    ComparativeScores,
    LegitimacyOptions,
    ScoringInputs,
    Tier,
    TierProgress,
)

# Highest first
TIERS = [
    Tier(
        id="sovereign",
        label="Sovereign",
        min_score=93,
        description="One of the strongest identity signals. Multi-year presence, "
        "deeply consistent, highly reinforced across platforms.",
    ),
    Tier(
        id="trusted",
        label="Trusted",
        min_score=80,
        description="Trusted identity with strong wallet history, cross-platform "
        "alignment and persistent reputation.",
    ),
    Tier(
        id="established",
        label="Established",
        min_score=65,
        description="A well-established identity with healthy behavior and "
        "consistent multi-platform signals.",
    ),
    Tier(
        id="credible",
        label="Credible",
        min_score=45,
        description="A credible user with decent identity strength, wallet maturity "
        "and social integrity.",
    ),
    Tier(
        id="emerging",
        label="Emerging",
        min_score=25,
        description="An emerging identity with some signals but still building "
        "history and presence.",
    ),
    Tier(
        id="unverified",
        label="Unverified",
        min_score=0,
        description="Low signal. Missing identity history, limited activity or "
        "unclear cross-platform consistency.",
    ),
]


def compute_tier(score: float) -> Tier:
    """Tier for a 0-100 legitimacy score."""
    for tier in TIERS:
        if score >= tier.min_score:
            return tier
    return TIERS[-1]


def compute_tier_progress(score: float) -> TierProgress:
    """How far a score sits within its tier and what the next one needs."""
    tier = compute_tier(score)
    index = TIERS.index(tier)
    if index == 0:
        return TierProgress(tier=tier, next_tier=None, points_to_next=0, progress=1.0)

    next_tier = TIERS[index - 1]
    band = next_tier.min_score - tier.min_score
    progress = max(0.0, min(1.0, (score - tier.min_score) / band))
    return TierProgress(
        tier=tier,
        next_tier=next_tier,
        points_to_next=max(0, round_half_up(next_tier.min_score - score)),
        progress=progress,
    )


def comparative_tier(legitimacy_diff: int, engagement_diff: int) -> str:
    """Label for how a primary subject compares with a baseline."""
    if legitimacy_diff >= 25 and engagement_diff >= 25:
        return "Significantly Higher"
    if legitimacy_diff >= 10 and engagement_diff >= 10:
        return "Higher"
    if legitimacy_diff >= 5 or engagement_diff >= 5:
        return "Moderately Higher"
    if legitimacy_diff <= -20 and engagement_diff <= -20:
        return "Significantly Lower"
    if legitimacy_diff <= -8 and engagement_diff <= -8:
        return "Lower"
    if legitimacy_diff <= -3 or engagement_diff <= -3:
        return "Slightly Lower"
    return "Comparable"


def _pct_increase(diff: int, baseline: int) -> float:
    return round(diff / baseline * 100, 2) if baseline else 0.0


def compute_comparative_scores(
    primary: ScoringInputs,
    baseline: ScoringInputs,
    options: LegitimacyOptions | None = None,
) -> ComparativeScores:
    """Compare a primary subject against a baseline cohort."""
    primary_leg = compute_legitimacy_score(primary, options)
    baseline_leg = compute_legitimacy_score(baseline, options)
    primary_eng = compute_engagement_rank(primary.identities, primary.onchain_data)
    baseline_eng = compute_engagement_rank(baseline.identities, baseline.onchain_data)

    legitimacy_diff = primary_leg - baseline_leg
    engagement_diff = primary_eng.score - baseline_eng.score

    return ComparativeScores(
        primary_legitimacy=primary_leg,
        primary_engagement=primary_eng.score,
        primary_engagement_label=primary_eng.label,
        baseline_legitimacy=baseline_leg,
        baseline_engagement=baseline_eng.score,
        baseline_engagement_label=baseline_eng.label,
        legitimacy_diff=legitimacy_diff,
        engagement_diff=engagement_diff,
        legitimacy_pct_increase=_pct_increase(legitimacy_diff, baseline_leg),
        engagement_pct_increase=_pct_increase(engagement_diff, baseline_eng.score),
        comparative_tier=comparative_tier(legitimacy_diff, engagement_diff),
    )
