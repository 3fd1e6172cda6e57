"""Feed ranking.

Blends legitimacy, engagement and freshness into a single feed score
and orders subjects by it.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from memboard.analyzers.engagement import compute_engagement_rank
from memboard.analyzers.quantiles import clamp01, round_half_up
from memboard.analyzers.scorer import explain_legitimacy_score, resolve_weights
from memboard.models.schemas import (
    FeedMeta,
    FeedRanking,
    FeedSubject,
    FeedWeights,
    FreshnessConfig,
    LegitimacyOptions,
    ScoredSubject,
)

if TYPE_CHECKING:
    from memboard.analyzers.pipeline import ScoringPipeline

logger = logging.getLogger(__name__)

NEUTRAL_FRESHNESS = 0.5
FRESHNESS_FLOOR = 0.2


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def freshness_from_timestamp(
    timestamp: datetime | None,
    config: FreshnessConfig | None = None,
) -> float:
    """Recency score in [0, 1] with exponential decay.

    Unknown timestamps are neutral (0.5). Anything at or after ``now``
    is fully fresh; older activity decays toward a 0.2 floor with the
    configured half-life.
    """
    config = config or FreshnessConfig()
    if timestamp is None:
        return NEUTRAL_FRESHNESS
    timestamp = _as_utc(timestamp)
    if timestamp.timestamp() <= 0:
        return NEUTRAL_FRESHNESS

    now = _as_utc(config.now) if config.now else datetime.now(timezone.utc)
    age_days = (now - timestamp).total_seconds() / 86400
    if age_days <= 0:
        return 1.0

    half_life = config.half_life_days if config.half_life_days > 0 else 14
    decay = math.exp(-age_days / half_life)
    return clamp01(FRESHNESS_FLOOR + (1 - FRESHNESS_FLOOR) * decay)


def resolve_feed_weights(overrides: FeedWeights | dict | None = None) -> FeedWeights:
    """Merge weight overrides over the defaults and re-normalize."""
    if isinstance(overrides, FeedWeights):
        overrides = overrides.model_dump()
    resolved = resolve_weights(overrides, FeedWeights().model_dump())
    return FeedWeights(**resolved)


def blend_feed_score(
    legitimacy: float,
    engagement: float,
    freshness: float,
    weights: FeedWeights,
) -> int:
    """Feed score 0-100 from 0-100 legitimacy/engagement and 0-1 freshness."""
    blended = (
        legitimacy / 100 * weights.legitimacy
        + engagement / 100 * weights.engagement
        + freshness * weights.freshness
    )
    return round_half_up(clamp01(blended) * 100)


async def score_subject(
    subject: FeedSubject,
    pipeline: ScoringPipeline,
    weights: FeedWeights | dict | None = None,
    freshness: FreshnessConfig | None = None,
    options: LegitimacyOptions | None = None,
) -> ScoredSubject:
    """Score one feed subject.

    A subject without a wallet or ENS name gets an all-zero result with
    neutral freshness and triggers no fetches.
    """
    resolved = resolve_feed_weights(weights)

    if not subject.wallet_or_ens:
        return ScoredSubject(
            id=subject.id,
            wallet_or_ens=subject.wallet_or_ens,
            feed_score=0,
            legitimacy_score=0,
            engagement_score=0,
            freshness_score=round_half_up(NEUTRAL_FRESHNESS * 100),
            weights=resolved,
            meta=subject.meta,
        )

    inputs = await pipeline.gather_inputs(subject.wallet_or_ens)
    legitimacy = explain_legitimacy_score(inputs, options)
    engagement = compute_engagement_rank(inputs.identities, inputs.onchain_data)

    timestamp = subject.timestamp
    if timestamp is None:
        resolved_ts = await pipeline.resolve_freshness(subject.wallet_or_ens, inputs)
        timestamp = resolved_ts.timestamp
    fresh = freshness_from_timestamp(timestamp, freshness)

    return ScoredSubject(
        id=subject.id,
        wallet_or_ens=subject.wallet_or_ens,
        feed_score=blend_feed_score(legitimacy.score, engagement.score, fresh, resolved),
        legitimacy_score=legitimacy.score,
        engagement_score=engagement.score,
        freshness_score=round_half_up(fresh * 100),
        weights=resolved,
        legitimacy_breakdown=legitimacy.breakdown,
        engagement_breakdown=engagement.breakdown,
        inputs=inputs,
        meta=subject.meta,
    )


def rank_scored(items: list[ScoredSubject]) -> list[ScoredSubject]:
    """Stable descending sort by feed score."""
    return sorted(items, key=lambda item: item.feed_score, reverse=True)


async def rank_subjects(
    subjects: list[FeedSubject],
    pipeline: ScoringPipeline,
    weights: FeedWeights | dict | None = None,
    freshness: FreshnessConfig | None = None,
    options: LegitimacyOptions | None = None,
) -> FeedRanking:
    """Score all subjects concurrently and rank them."""
    resolved = resolve_feed_weights(weights)
    logger.info(f"Ranking {len(subjects)} feed subjects")
    scored = await asyncio.gather(
        *(score_subject(subject, pipeline, resolved, freshness, options) for subject in subjects)
    )
    return FeedRanking(
        items=rank_scored(list(scored)),
        meta=FeedMeta(weights=resolved, count=len(scored)),
    )
