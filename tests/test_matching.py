"""Tests for wallet matching and match explanations."""

import pytest

from conftest import WALLET_A, WALLET_B, build_identity, build_inputs
from memboard.analyzers.explain import generate_match_explanation
from memboard.analyzers.matching import (
    MATCH_WEIGHTS,
    closeness,
    compute_match,
    cosine_similarity,
    jaccard,
    match_wallets,
    set_overlap,
)
from memboard.models.schemas import (
    Claim,
    EnsData,
    MatchBreakdown,
    MatchSubject,
    OnchainData,
    WalletActivity,
)


def rich_subject(wallet: str) -> MatchSubject:
    identities = [
        build_identity("twitter", "alice", followers=1200, verified=True),
        build_identity("farcaster", "alice", followers=300, verified=True),
    ]
    inputs = build_inputs(
        identities,
        wallet_activity=WalletActivity(age_days=400, tx_count=120),
        onchain_data=OnchainData(balance=500, claims=[Claim(amount=10), Claim(amount=20)]),
        ens_data=EnsData(name="alice.eth", name_age_days=700, renewal_count=2),
    )
    return MatchSubject(
        wallet=wallet,
        inputs=inputs,
        creators=["artist1", "artist2"],
        zora_collections=["0xcoll1"],
        contracts=["0xc1", "0xc2", "0xc3"],
        follower_graph=["bob", "carol"],
        farcaster_wallets=["0xf1", "0xf2"],
    )


def empty_subject(wallet: str) -> MatchSubject:
    return MatchSubject(wallet=wallet, inputs=build_inputs([]))


class TestSetHelpers:
    def test_cosine(self):
        assert cosine_similarity([1, 2], [2, 4]) == pytest.approx(1.0)
        assert cosine_similarity([1, 0], [0, 1]) == 0.0
        assert cosine_similarity([], [1]) == 0.0
        assert cosine_similarity([0, 0], [1, 1]) == 0.0

    def test_cosine_pads_shorter_vector(self):
        assert cosine_similarity([1], [1, 0]) == pytest.approx(1.0)

    def test_overlap_coefficient(self):
        assert set_overlap({"a", "b"}, {"a", "b", "c", "d"}) == 0.5
        assert set_overlap(set(), {"a"}) == 0.0

    def test_jaccard(self):
        assert jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)
        assert jaccard([], []) == 0.0

    @pytest.mark.parametrize(
        "a,b",
        [
            ({"a", "b"}, {"a", "b", "c", "d"}),
            ({"x"}, {"x", "y", "z"}),
            ({"a", "b", "c"}, {"c", "d"}),
            (set(), {"a"}),
        ],
    )
    def test_set_similarities_are_symmetric(self, a, b):
        assert set_overlap(a, b) == set_overlap(b, a)
        assert jaccard(a, b) == jaccard(b, a)

    def test_closeness(self):
        assert closeness(80, 60) == pytest.approx(0.8)
        assert closeness(0, 100) == 0.0


class TestComputeMatch:
    def test_weights_sum_to_one(self):
        assert sum(MATCH_WEIGHTS.values()) == pytest.approx(1.0)

    def test_identical_subjects(self):
        result = compute_match(rich_subject(WALLET_A), rich_subject(WALLET_B))
        assert result.match_score == 100
        for value in result.breakdown.model_dump().values():
            assert value == pytest.approx(1.0)
        assert result.shared_contracts == ["0xc1", "0xc2", "0xc3"]
        assert result.shared_farcaster_wallets == ["0xf1", "0xf2"]

    def test_symmetric_breakdown(self):
        a = rich_subject(WALLET_A)
        b = rich_subject(WALLET_B).model_copy(update={"contracts": ["0xc1"], "creators": ["artist9"]})
        forward = compute_match(a, b)
        backward = compute_match(b, a)
        assert forward.match_score == backward.match_score
        assert forward.breakdown == backward.breakdown

    def test_empty_subjects(self):
        result = compute_match(empty_subject(WALLET_A), empty_subject(WALLET_B))
        assert 0 <= result.match_score <= 100
        assert result.breakdown.creator_similarity == 0.0
        assert result.breakdown.mem_similarity == 0.0
        assert result.shared_creators == []

    def test_values_in_unit_interval(self):
        result = compute_match(rich_subject(WALLET_A), empty_subject(WALLET_B))
        for value in result.breakdown.model_dump().values():
            assert 0.0 <= value <= 1.0

    def test_explanation_mentions_counterpart(self):
        result = compute_match(rich_subject(WALLET_A), rich_subject(WALLET_B))
        assert result.explanation.startswith("You and 0xbbbb... share strong identity signals")


class FakeMatchPipeline:
    def __init__(self):
        self.calls = []

    async def gather_match_subject(self, wallet_or_ens, profile=None):
        self.calls.append(wallet_or_ens)
        return rich_subject(wallet_or_ens)


class TestMatchWallets:
    @pytest.mark.asyncio
    async def test_gathers_both_subjects(self):
        pipeline = FakeMatchPipeline()
        result = await match_wallets(WALLET_A, WALLET_B, pipeline)
        assert sorted(pipeline.calls) == [WALLET_A, WALLET_B]
        assert result.wallet_a == WALLET_A
        assert result.wallet_b == WALLET_B
        assert result.match_score == 100


class TestExplanation:
    def test_fallback_text(self):
        text = generate_match_explanation(WALLET_B, MatchBreakdown(), [], [], [], [])
        assert text == (
            "You and 0xbbbb... have moderate identity overlap.\n"
            "• Similar engagement, creator activity, and identity footprint."
        )

    def test_reasons_and_bullets(self):
        breakdown = MatchBreakdown(creator_similarity=0.5, onchain_similarity=0.3, identity_similarity=0.9)
        text = generate_match_explanation(
            WALLET_B,
            breakdown,
            shared_creators=["a", "b"],
            shared_zora_collections=[],
            shared_contracts=["0xc1"],
            shared_farcaster_wallets=[],
        )
        lines = text.split("\n")
        assert lines[0] == (
            "You and 0xbbbb... share strong identity signals: you share 2 creators, "
            "you interact with similar smart contracts on Base, "
            "your identity trust scores are very similar."
        )
        assert lines[1] == "• Shared creators: a, b"
        assert lines[2] == "• Overlap in smart contract interactions: 0xc1"

    def test_reason_needs_evidence(self):
        breakdown = MatchBreakdown(creator_similarity=0.9)
        text = generate_match_explanation(WALLET_B, breakdown, [], [], [], [])
        assert "creators" not in text.split("\n")[0]

    def test_long_lists_are_truncated(self):
        creators = [f"creator{i}" for i in range(7)]
        text = generate_match_explanation(WALLET_B, MatchBreakdown(), creators, [], [], [])
        assert text.split("\n")[1] == "• Shared creators: creator0, creator1, creator2, creator3, creator4..."
