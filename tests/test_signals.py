"""Tests for identity-derived signals and evidence sets."""

import pytest

from memboard.analyzers.graph import (
    extract_creator_set,
    extract_follower_graph,
    extract_peer_wallets,
    extract_zora_collections,
    norm_id,
)
from memboard.analyzers.signals import (
    UNVERIFIED_STRENGTH,
    compute_follower_quality,
    compute_identity_consistency,
    compute_identity_trust,
    compute_social_overlap,
)
from memboard.models.schemas import Identity, IdentitySource, NftActivity, SocialStats


class TestIdentityConsistency:
    def test_reused_handle_and_avatar(self, make_identity):
        identities = [
            make_identity("twitter", "Alice", avatar="ipfs://pfp"),
            make_identity("github", "alice", avatar="ipfs://pfp"),
            make_identity("lens", "bob"),
        ]
        consistency = compute_identity_consistency(identities)
        assert consistency.handle_consistency == pytest.approx(0.5)
        assert consistency.pfp_consistency == pytest.approx(1.0)

    def test_unknown_when_absent(self, make_identity):
        consistency = compute_identity_consistency([make_identity("twitter")])
        assert consistency.handle_consistency is None
        assert consistency.pfp_consistency is None


class TestIdentityTrust:
    def test_empty(self):
        trust = compute_identity_trust([])
        assert trust.identity_trust is None
        assert trust.consistency_score is None

    def test_proof_strength(self):
        identities = [
            Identity(platform="ens", username="alice.eth", sources=[IdentitySource(type="ens", verified=True)]),
            Identity(platform="twitter", username="alice.eth"),
        ]
        trust = compute_identity_trust(identities)
        assert trust.identity_trust == pytest.approx((0.95 + UNVERIFIED_STRENGTH) / 2)
        assert trust.consistency_score == pytest.approx(1.0)

    def test_single_handle_is_neutral(self, make_identity):
        trust = compute_identity_trust([make_identity("twitter", "alice")])
        assert trust.consistency_score == 0.5

    def test_similar_handles(self, make_identity):
        identities = [make_identity("twitter", "alice"), make_identity("github", "alice_eth")]
        trust = compute_identity_trust(identities)
        assert 0.5 < trust.consistency_score < 1.0


class TestFollowerQuality:
    def test_no_social_data(self, make_identity):
        quality = compute_follower_quality([make_identity("twitter", "alice")])
        assert quality.ratio == 0.5
        assert quality.real_followers == 0.0

    def test_bot_like_account(self, make_identity):
        quality = compute_follower_quality([make_identity("website", "spam", followers=2, following=500)])
        assert quality.bot_followers > quality.real_followers

    def test_healthy_account(self, make_identity):
        quality = compute_follower_quality([make_identity("twitter", "alice", followers=5000, following=2000)])
        assert quality.ratio == 1.0


class TestSocialOverlap:
    def test_single_handle(self, make_identity):
        assert compute_social_overlap([make_identity("twitter", "alice")]) == 0.0

    def test_shared_handles(self, make_identity):
        identities = [
            make_identity("twitter", "alice"),
            make_identity("github", "alice"),
            make_identity("lens", "bob"),
            make_identity("zora", "carol"),
        ]
        assert compute_social_overlap(identities) == pytest.approx(1 / 3)


class TestEvidenceSets:
    def test_norm_id(self):
        assert norm_id("  0xABC ") == "0xabc"
        assert norm_id("") is None
        assert norm_id(None) is None

    def test_creators(self):
        identities = [
            Identity(platform="twitter", creators=["Artist"], mints=[NftActivity(creator="0xCreator")]),
            Identity(platform="zora", username="MintMaker"),
        ]
        assert extract_creator_set(identities) == {"artist", "0xcreator", "mintmaker"}

    def test_zora_collections_prefer_collection_address(self):
        identities = [
            Identity(
                mints=[
                    NftActivity(collection_address="0xColl", contract_address="0xContract"),
                    NftActivity(project_id="proj-1"),
                ]
            )
        ]
        assert extract_zora_collections(identities) == {"0xcoll", "proj-1"}

    def test_follower_graph_and_peers(self):
        identities = [
            Identity(
                social=SocialStats(
                    followers_list=["Bob", "carol"],
                    following_list=["bob"],
                    peer_wallets=["0xAA"],
                )
            )
        ]
        assert extract_follower_graph(identities) == {"bob", "carol"}
        assert extract_peer_wallets(identities) == {"0xaa"}
