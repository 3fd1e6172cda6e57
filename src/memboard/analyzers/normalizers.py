"""Per-dimension normalizers for the legitimacy score.

Each function turns one slice of ``ScoringInputs`` into a [0, 1] health
value. A missing sub-signal contributes a neutral 0.5 so sparse data is
not scored as untrustworthy; zero is a real (weak) signal and is kept.
"""

import math

from memboard.analyzers.quantiles import clamp01, linear_scale, scale_or_linear
from memboard.analyzers.signals import compute_identity_consistency
from memboard.models.schemas import (
    EnsData,
    FollowerQuality,
    Identity,
    OnchainData,
    ScoringInputs,
    ScoringStats,
    ScoringThresholds,
    WalletActivity,
)

NEUTRAL = 0.5
BASENAME_BONUS = 0.10


def _neutral_if_none(value: float | None) -> float:
    return NEUTRAL if value is None else value


def verification_ratio(inputs: ScoringInputs) -> float:
    """Verified share of linked identities."""
    profile = inputs.profile
    total = (profile.total if profile else 0) or len(inputs.identities)
    verified = profile.verified if profile else 0
    if total <= 0:
        return 0.0
    return min(1.0, verified / total)


def platform_richness(identities: list[Identity], thresholds: ScoringThresholds) -> float:
    """Diminishing-returns credit for distinct platforms.

    sqrt(min(count, hard_cap) / soft_cap): links beyond the soft cap add
    little and links beyond the hard cap add nothing.
    """
    platforms = {identity.platform for identity in identities}
    soft_cap = max(1, thresholds.platform_soft_cap)
    hard_cap = max(soft_cap, thresholds.platform_hard_cap)
    return min(1.0, math.sqrt(min(len(platforms), hard_cap) / soft_cap))


def behavior_consistency(inputs: ScoringInputs) -> float:
    """Mean of handle and avatar reuse, neutral where unknown."""
    handle = inputs.handle_consistency
    pfp = inputs.pfp_consistency
    if handle is None and pfp is None:
        computed = compute_identity_consistency(inputs.identities)
        handle, pfp = computed.handle_consistency, computed.pfp_consistency
    return (_neutral_if_none(handle) + _neutral_if_none(pfp)) / 2


def anchor_bonus(inputs: ScoringInputs, thresholds: ScoringThresholds) -> float:
    """ENS age credit plus a flat basename bonus."""
    bonus = 0.0
    ens = inputs.ens_data
    if ens is not None and ens.name_age_days is not None:
        bonus += linear_scale(ens.name_age_days, thresholds.ens_age_days_for_full)
    if inputs.bns_name:
        bonus += BASENAME_BONUS
    return min(1.0, bonus)


def uses_trust_strategy(inputs: ScoringInputs) -> bool:
    """True when precomputed identity trust signals are available."""
    return inputs.identity_trust is not None and inputs.consistency_score is not None


def normalize_identity(inputs: ScoringInputs, thresholds: ScoringThresholds) -> float:
    """Identity dimension.

    Trust strategy (preferred):
        0.6 trust + 0.2 legacy heuristics + 0.1 richness + 0.1 anchor
    Legacy strategy:
        0.6 verification + 0.25 richness + 0.15 consistency + 0.1 anchor
    """
    ratio = verification_ratio(inputs)
    richness = platform_richness(inputs.identities, thresholds)
    consistency = behavior_consistency(inputs)
    anchor = anchor_bonus(inputs, thresholds)

    if uses_trust_strategy(inputs):
        trust = (clamp01(inputs.identity_trust) + clamp01(inputs.consistency_score)) / 2
        legacy = (ratio + consistency) / 2
        return clamp01(0.6 * trust + 0.2 * legacy + 0.1 * richness + 0.1 * anchor)

    return clamp01(0.6 * ratio + 0.25 * richness + 0.15 * consistency + 0.10 * anchor)


def _gas_component(gas_spent: float, thresholds: ScoringThresholds) -> float:
    if gas_spent <= 0:
        return thresholds.zero_gas_score
    full = math.log10(thresholds.gas_eth_for_full + 1)
    return linear_scale(math.log10(gas_spent + 1), full)


def normalize_wallet(
    activity: WalletActivity | None,
    thresholds: ScoringThresholds,
    stats: ScoringStats,
) -> float:
    """Wallet dimension: age, tx count and (when known) gas spent."""
    activity = activity or WalletActivity()

    age = NEUTRAL
    if activity.age_days is not None:
        age = linear_scale(activity.age_days, thresholds.wallet_age_days_for_full)

    tx = NEUTRAL
    if activity.tx_count is not None:
        tx = scale_or_linear(activity.tx_count, stats.tx_count_quantiles, thresholds.wallet_tx_full)

    if activity.gas_spent is None:
        return clamp01(0.6 * age + 0.4 * tx)

    gas = _gas_component(activity.gas_spent, thresholds)
    return clamp01(0.4 * age + 0.35 * tx + 0.25 * gas)


def normalize_social(
    identities: list[Identity],
    follower_quality: FollowerQuality | None,
    thresholds: ScoringThresholds,
    stats: ScoringStats,
) -> float:
    """Social dimension: log-scaled reach and follower quality (0.6 / 0.4)."""
    counts = [
        identity.social.followers
        for identity in identities
        if identity.social.followers is not None and identity.social.followers > 0
    ]
    reach = NEUTRAL
    if counts:
        avg_log = sum(math.log10(count + 1) for count in counts) / len(counts)
        reach = scale_or_linear(avg_log, stats.follower_log_quantiles, thresholds.follower_log_full)

    quality = NEUTRAL
    if follower_quality is not None:
        total = follower_quality.real_followers + follower_quality.bot_followers
        if total > 0:
            quality = follower_quality.real_followers / total

    return clamp01(0.6 * reach + 0.4 * quality)


def normalize_ens(ens_data: EnsData | None, thresholds: ScoringThresholds) -> float:
    """ENS dimension: name age (0.7) and renewals (0.3)."""
    age = NEUTRAL
    renewals = NEUTRAL
    if ens_data is not None:
        if ens_data.name_age_days is not None:
            age = linear_scale(ens_data.name_age_days, thresholds.ens_age_days_for_full)
        if ens_data.renewal_count is not None:
            renewals = linear_scale(ens_data.renewal_count, thresholds.ens_renewals_for_full)
    return clamp01(0.7 * age + 0.3 * renewals)


def normalize_memory(onchain: OnchainData | None, thresholds: ScoringThresholds) -> float:
    """MEM rewards dimension: claim count (0.6) and balance (0.4)."""
    if onchain is None:
        return NEUTRAL
    claims = linear_scale(len(onchain.claims), thresholds.mem_claims_for_full)
    balance = NEUTRAL
    if onchain.balance is not None:
        balance = linear_scale(onchain.balance, thresholds.mem_balance_for_full)
    return clamp01(0.6 * claims + 0.4 * balance)


def _passthrough(value: float | None) -> float:
    if value is None or not math.isfinite(value):
        return NEUTRAL
    return clamp01(value)


def normalize_external(value: float | None) -> float:
    """External reputation, supplied already in [0, 1]."""
    return _passthrough(value)


def normalize_overlap(value: float | None) -> float:
    """Mutual social overlap, supplied already in [0, 1]."""
    return _passthrough(value)
