"""Shared fixtures for memboard tests."""

import pytest

from memboard.models.schemas import (
    Identity,
    IdentitySource,
    Profile,
    ScoringInputs,
    SocialStats,
)

WALLET_A = "0x" + "a" * 40
WALLET_B = "0x" + "b" * 40


def build_identity(
    platform: str,
    username: str | None = None,
    followers: int | None = None,
    following: int | None = None,
    verified: bool = False,
    **kwargs,
) -> Identity:
    return Identity(
        platform=platform,
        username=username,
        social=SocialStats(followers=followers, following=following),
        sources=[IdentitySource(type=platform, verified=True)] if verified else [],
        **kwargs,
    )


def build_inputs(identities: list[Identity], verified: int | None = None, **kwargs) -> ScoringInputs:
    if verified is None:
        verified = sum(1 for identity in identities if identity.is_verified)
    profile = Profile(
        wallet=WALLET_A,
        identities=identities,
        total=len(identities),
        verified=verified,
    )
    return ScoringInputs(identities=identities, profile=profile, **kwargs)


@pytest.fixture
def make_identity():
    return build_identity


@pytest.fixture
def make_inputs():
    return build_inputs


@pytest.fixture
def five_verified_identities():
    return [
        build_identity("twitter", "alice_tw", verified=True),
        build_identity("farcaster", "alice_fc", verified=True),
        build_identity("github", "alicedev", verified=True),
        build_identity("lens", "alice.lens", verified=True),
        build_identity("zora", "alicemints", verified=True),
    ]
