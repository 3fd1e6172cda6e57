"""Analyzers for scoring, matching and ranking wallets."""

from memboard.analyzers.engagement import compute_engagement_rank
from memboard.analyzers.feed import rank_subjects, score_subject
from memboard.analyzers.integrity import build_integrity_actions, compute_integrity_badges
from memboard.analyzers.matching import compute_match, match_wallets
from memboard.analyzers.pipeline import ScoringPipeline
from memboard.analyzers.scorer import (
    LegitimacyScorer,
    compute_legitimacy_score,
    explain_legitimacy_score,
)
from memboard.analyzers.tiers import compute_tier

__all__ = [
    "LegitimacyScorer",
    "ScoringPipeline",
    "build_integrity_actions",
    "compute_engagement_rank",
    "compute_integrity_badges",
    "compute_legitimacy_score",
    "compute_match",
    "compute_tier",
    "explain_legitimacy_score",
    "match_wallets",
    "rank_subjects",
    "score_subject",
]
