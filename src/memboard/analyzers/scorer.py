"""Legitimacy score calculator."""

import math

from memboard.analyzers import normalizers
from memboard.analyzers.quantiles import clamp01, round_half_up
from memboard.models.schemas import (
    DimensionScore,
    LegitimacyBreakdown,
    LegitimacyOptions,
    LegitimacyResult,
    ScoreMeta,
    ScoringInputs,
)

NO_DATA_REASON = "no-identities-or-profile"


def resolve_weights(
    overrides: dict[str, float] | None,
    defaults: dict[str, float],
) -> dict[str, float]:
    """Merge caller weights over defaults and re-normalize to sum to 1.

    Unknown dimensions are dropped; negative or non-finite weights count
    as zero. If every weight resolves to zero the defaults are returned
    (normalized).
    """
    merged = dict(defaults)
    for name, value in (overrides or {}).items():
        if name not in merged:
            continue
        if value is None or not isinstance(value, (int, float)) or not math.isfinite(value):
            merged[name] = 0.0
        else:
            merged[name] = max(0.0, float(value))

    total = sum(merged.values())
    if total <= 0:
        merged = dict(defaults)
        total = sum(merged.values())
    return {name: value / total for name, value in merged.items()}


class LegitimacyScorer:
    """Combines seven normalized dimensions into a 0-100 legitimacy score.

    Default weights (sum to 1):
    - Identity: 30%
    - Wallet: 25%
    - Social: 15%
    - ENS: 10%
    - Memory (MEM rewards): 10%
    - External reputation: 5%
    - Overlap: 5%
    """

    WEIGHTS = {
        "identity": 0.30,
        "wallet": 0.25,
        "social": 0.15,
        "ens": 0.10,
        "memory": 0.10,
        "external": 0.05,
        "overlap": 0.05,
    }

    def __init__(self, options: LegitimacyOptions | None = None) -> None:
        self.options = options or LegitimacyOptions()
        self.weights = resolve_weights(self.options.weights, self.WEIGHTS)

    def calculate(self, inputs: ScoringInputs) -> int:
        """Return the 0-100 legitimacy score."""
        return self.explain(inputs).score

    def explain(self, inputs: ScoringInputs) -> LegitimacyResult:
        """Return the score with a per-dimension breakdown."""
        if not inputs.identities or inputs.profile is None:
            return LegitimacyResult(
                score=0,
                breakdown=LegitimacyBreakdown(meta=ScoreMeta(reason=NO_DATA_REASON)),
            )

        normalized = self._normalize(inputs)
        dimensions = {}
        total = 0.0
        for name, value in normalized.items():
            weight = self.weights[name]
            weighted = clamp01(value * weight)
            total += weighted
            dimensions[name] = DimensionScore(
                normalized=clamp01(value),
                weight=clamp01(weight),
                weighted=weighted,
            )

        score = round_half_up(clamp01(total) * 100)
        return LegitimacyResult(
            score=score,
            breakdown=LegitimacyBreakdown(**dimensions, meta=self._meta(inputs)),
        )

    def _normalize(self, inputs: ScoringInputs) -> dict[str, float]:
        thresholds = self.options.thresholds
        stats = self.options.stats
        return {
            "identity": normalizers.normalize_identity(inputs, thresholds),
            "wallet": normalizers.normalize_wallet(inputs.wallet_activity, thresholds, stats),
            "social": normalizers.normalize_social(
                inputs.identities, inputs.follower_quality, thresholds, stats
            ),
            "ens": normalizers.normalize_ens(inputs.ens_data, thresholds),
            "memory": normalizers.normalize_memory(inputs.onchain_data, thresholds),
            "external": normalizers.normalize_external(inputs.external_reputation),
            "overlap": normalizers.normalize_overlap(inputs.mutual_overlap),
        }

    def _meta(self, inputs: ScoringInputs) -> ScoreMeta:
        profile = inputs.profile
        identities = inputs.identities
        followers = [
            i.social.followers for i in identities if i.social.followers and i.social.followers > 0
        ]
        onchain = inputs.onchain_data
        activity = inputs.wallet_activity
        degraded = inputs.degraded or bool(onchain and onchain.degraded)

        return ScoreMeta(
            identity_count=len(identities),
            platform_count=len({i.platform for i in identities}),
            verified=profile.verified if profile else 0,
            total=(profile.total if profile else 0) or len(identities),
            verified_ratio=round(normalizers.verification_ratio(inputs), 2),
            avg_followers=round_half_up(sum(followers) / len(followers)) if followers else 0,
            claims=len(onchain.claims) if onchain else 0,
            balance=onchain.balance if onchain else None,
            tx_count=activity.tx_count if activity else None,
            wallet_age_days=activity.age_days if activity else None,
            ens_name=inputs.ens_name,
            bns_name=inputs.bns_name,
            identity_strategy="trust" if normalizers.uses_trust_strategy(inputs) else "legacy",
            handle_consistency=inputs.handle_consistency,
            pfp_consistency=inputs.pfp_consistency,
            follower_quality=inputs.follower_quality.ratio if inputs.follower_quality else None,
            ens_age_days=inputs.ens_data.name_age_days if inputs.ens_data else None,
            has_basename=bool(inputs.bns_name),
            overlap_score=inputs.mutual_overlap,
            degraded=degraded,
        )


def compute_legitimacy_score(
    inputs: ScoringInputs,
    options: LegitimacyOptions | None = None,
) -> int:
    """Legitimacy score 0-100 for one subject."""
    return LegitimacyScorer(options).calculate(inputs)


def explain_legitimacy_score(
    inputs: ScoringInputs,
    options: LegitimacyOptions | None = None,
) -> LegitimacyResult:
    """Legitimacy score with its per-dimension breakdown."""
    return LegitimacyScorer(options).explain(inputs)
