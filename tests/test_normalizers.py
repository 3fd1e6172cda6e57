"""Tests for per-dimension normalizers."""

import math

import pytest

from memboard.analyzers.normalizers import (
    anchor_bonus,
    normalize_ens,
    normalize_external,
    normalize_memory,
    normalize_overlap,
    normalize_social,
    normalize_wallet,
    platform_richness,
    verification_ratio,
)
from memboard.models.schemas import (
    Claim,
    EnsData,
    FollowerQuality,
    OnchainData,
    Quantiles,
    ScoringStats,
    ScoringThresholds,
    WalletActivity,
)

THRESHOLDS = ScoringThresholds()
STATS = ScoringStats()


class TestNormalizeWallet:
    def test_unknown_activity_is_neutral(self):
        assert normalize_wallet(None, THRESHOLDS, STATS) == pytest.approx(0.5)

    def test_zero_gas_is_a_real_signal(self):
        activity = WalletActivity(age_days=365, tx_count=200, gas_spent=0)
        assert normalize_wallet(activity, THRESHOLDS, STATS) == pytest.approx(0.825)

    def test_without_gas(self):
        activity = WalletActivity(age_days=365, tx_count=300)
        assert normalize_wallet(activity, THRESHOLDS, STATS) == pytest.approx(1.0)

    def test_tx_uses_quantiles_when_available(self):
        stats = ScoringStats(tx_count_quantiles=Quantiles(p50=12, p75=55, p90=200))
        activity = WalletActivity(age_days=0, tx_count=12)
        assert normalize_wallet(activity, THRESHOLDS, stats) == pytest.approx(0.4 * 0.4)

    def test_zero_age_is_not_neutral(self):
        activity = WalletActivity(age_days=0, tx_count=0)
        assert normalize_wallet(activity, THRESHOLDS, STATS) == 0.0


class TestNormalizeMemory:
    def test_unknown_is_neutral(self):
        assert normalize_memory(None, THRESHOLDS) == 0.5

    def test_no_claims_unknown_balance(self):
        assert normalize_memory(OnchainData(), THRESHOLDS) == pytest.approx(0.2)

    def test_full_credit(self):
        onchain = OnchainData(balance=10_000, claims=[Claim(amount=1)] * 10)
        assert normalize_memory(onchain, THRESHOLDS) == pytest.approx(1.0)


class TestNormalizeEns:
    def test_full_credit(self):
        ens = EnsData(name="alice.eth", name_age_days=365, renewal_count=3)
        assert normalize_ens(ens, THRESHOLDS) == pytest.approx(1.0)

    def test_unknown_is_neutral(self):
        assert normalize_ens(None, THRESHOLDS) == pytest.approx(0.5)

    def test_partial(self):
        ens = EnsData(name="alice.eth", name_age_days=0, renewal_count=None)
        assert normalize_ens(ens, THRESHOLDS) == pytest.approx(0.15)


class TestNormalizeSocial:
    def test_log_reach(self, make_identity):
        identities = [make_identity("twitter", "alice", followers=999)]
        assert normalize_social(identities, None, THRESHOLDS, STATS) == pytest.approx(0.5)

    def test_no_counts_is_neutral(self, make_identity):
        identities = [make_identity("twitter", "alice")]
        assert normalize_social(identities, None, THRESHOLDS, STATS) == pytest.approx(0.5)

    def test_follower_quality(self, make_identity):
        identities = [make_identity("twitter", "alice", followers=999)]
        quality = FollowerQuality(real_followers=3, bot_followers=1, ratio=0.75)
        assert normalize_social(identities, quality, THRESHOLDS, STATS) == pytest.approx(0.6)

    def test_zero_follower_identity_does_not_dilute_reach(self, make_identity):
        twitter = make_identity("twitter", "alice", followers=1_000_000)
        ens = make_identity("ens", "alice.eth", followers=0)

        alone = normalize_social([twitter], None, THRESHOLDS, STATS)
        with_ens = normalize_social([twitter, ens], None, THRESHOLDS, STATS)

        assert alone == pytest.approx(0.8)
        assert with_ens == pytest.approx(alone)

    def test_only_zero_followers_is_neutral(self, make_identity):
        identities = [make_identity("ens", "alice.eth", followers=0)]
        assert normalize_social(identities, None, THRESHOLDS, STATS) == pytest.approx(0.5)


class TestPassthrough:
    def test_external(self):
        assert normalize_external(None) == 0.5
        assert normalize_external(math.nan) == 0.5
        assert normalize_external(1.5) == 1.0
        assert normalize_external(0.25) == 0.25

    def test_overlap(self):
        assert normalize_overlap(None) == 0.5
        assert normalize_overlap(-1) == 0.0


class TestIdentityHelpers:
    def test_richness_single_platform(self, make_identity):
        identities = [make_identity("twitter", "alice")]
        assert platform_richness(identities, THRESHOLDS) == pytest.approx(math.sqrt(0.2))

    def test_richness_saturates(self, make_identity):
        identities = [make_identity(f"platform{i}", f"user{i}") for i in range(12)]
        assert platform_richness(identities, THRESHOLDS) == 1.0

    def test_verification_ratio(self, make_identity, make_inputs):
        inputs = make_inputs(
            [
                make_identity("twitter", "alice", verified=True),
                make_identity("github", "alice"),
            ]
        )
        assert verification_ratio(inputs) == 0.5

    def test_anchor_bonus(self, make_inputs, make_identity):
        inputs = make_inputs(
            [make_identity("twitter", "alice")],
            ens_data=EnsData(name="alice.eth", name_age_days=365),
            bns_name="alice.base.eth",
        )
        assert anchor_bonus(inputs, THRESHOLDS) == 1.0
