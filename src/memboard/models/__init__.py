"""Data models and schemas."""

from memboard.models.schemas import (
    Identity,
    LegitimacyOptions,
    LegitimacyResult,
    OnchainData,
    Profile,
    ScoringInputs,
    WalletActivity,
)

__all__ = [
    "Identity",
    "LegitimacyOptions",
    "LegitimacyResult",
    "OnchainData",
    "Profile",
    "ScoringInputs",
    "WalletActivity",
]
