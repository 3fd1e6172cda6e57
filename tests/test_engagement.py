"""Tests for the engagement rank heuristic."""

import pytest

from memboard.analyzers.engagement import (
    approximate_percentile,
    compute_engagement_rank,
    rank_label,
    sigmoid_scale,
)
from memboard.models.schemas import Claim, OnchainData


class TestEngagementRank:
    def test_no_identities(self):
        rank = compute_engagement_rank([])
        assert rank.score == 0
        assert rank.percentile_approx == 100
        assert rank.label == "No Data"

    def test_score_bounds(self, make_identity):
        identities = [make_identity("twitter", "alice", followers=10_000_000, verified=True)] * 8
        rank = compute_engagement_rank(identities, OnchainData(balance=1e9, claims=[Claim()] * 40))
        assert 0 <= rank.score <= 100

    def test_monotone_in_followers(self, make_identity):
        scores = [
            compute_engagement_rank([make_identity("twitter", "alice", followers=n)]).score
            for n in [0, 10, 1_000, 100_000, 10_000_000]
        ]
        assert scores == sorted(scores)

    def test_onchain_bonus(self, make_identity):
        identities = [make_identity("twitter", "alice", followers=1000)]
        rank = compute_engagement_rank(identities, OnchainData(balance=15_000, claims=[Claim()] * 12))
        assert rank.breakdown.onchain_bonus == pytest.approx(0.25)

    def test_consistency_bonus_is_capped(self, make_identity):
        identities = [make_identity("twitter", "alice"), make_identity("github", "alice")]
        rank = compute_engagement_rank(identities)
        assert rank.breakdown.consistency_bonus == pytest.approx(0.12)

    def test_breakdown_totals(self, make_identity):
        identities = [
            make_identity("twitter", "alice", followers=100, verified=True),
            make_identity("lens", "alice_lens", followers=50),
        ]
        breakdown = compute_engagement_rank(identities).breakdown
        assert breakdown.total_followers == 150
        assert breakdown.verified_count == 1
        assert breakdown.reliability_mult == pytest.approx(1.3)


class TestScaling:
    def test_sigmoid_midpoint(self):
        assert sigmoid_scale(50) == pytest.approx(45.0)

    def test_sigmoid_clamped(self):
        assert sigmoid_scale(-1000) == 0.0
        assert sigmoid_scale(1000) == pytest.approx(95.0)

    def test_approximate_percentile(self):
        assert approximate_percentile(0) == 100
        assert approximate_percentile(100) == 0


class TestRankLabel:
    @pytest.mark.parametrize(
        "score,percentile,label",
        [
            (95, 5, "Elite"),
            (80, 15, "High"),
            (80, 30, "Rising"),
            (65, 40, "Active"),
            (45, 60, "Emerging"),
            (25, 80, "Developing"),
            (5, 95, "Dormant"),
        ],
    )
    def test_labels(self, score, percentile, label):
        assert rank_label(score, percentile) == label
