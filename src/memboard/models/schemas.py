"""Pydantic models for identity, on-chain and scoring data."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# --- Identity Models ---


class SocialStats(BaseModel):
    """Social reach reported for one linked account."""

    followers: int | None = None
    following: int | None = None
    engagement_rate: float | None = None  # fraction (0.01) or absolute interactions
    followers_list: list[str] = Field(default_factory=list)
    following_list: list[str] = Field(default_factory=list)
    peer_wallets: list[str] = Field(default_factory=list)


class IdentitySource(BaseModel):
    """Provenance record for a linked identity."""

    type: str = ""
    verified: bool = False


class NftActivity(BaseModel):
    """A mint or collect attached to an identity."""

    creator: str | None = None
    collection_address: str | None = None
    contract_address: str | None = None
    project_id: str | None = None


class Identity(BaseModel):
    """One linked account on a platform (twitter, farcaster, ens, ...)."""

    platform: str = "unknown"
    id: str | None = None
    username: str | None = None
    display_name: str | None = None
    avatar: str | None = None
    wallet: str | None = None
    social: SocialStats = Field(default_factory=SocialStats)
    sources: list[IdentitySource] = Field(default_factory=list)
    mints: list[NftActivity] = Field(default_factory=list)
    creators: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_post_at: datetime | None = None

    @field_validator("platform", mode="before")
    @classmethod
    def _lower_platform(cls, value: str | None) -> str:
        return (value or "unknown").strip().lower()

    @property
    def is_verified(self) -> bool:
        """True if any provenance source is verified."""
        return any(source.verified for source in self.sources)

    @property
    def handle(self) -> str | None:
        """Lower-cased username, if any."""
        if not self.username:
            return None
        return self.username.strip().lower() or None


class Profile(BaseModel):
    """All identities linked to one wallet or ENS name."""

    wallet: str = ""
    identities: list[Identity] = Field(default_factory=list)
    total: int = 0
    verified: int = 0
    ens_name: str | None = None

    @model_validator(mode="after")
    def _cap_verified(self) -> "Profile":
        if self.total < 0:
            self.total = 0
        if self.verified > self.total:
            self.verified = self.total
        if self.verified < 0:
            self.verified = 0
        return self

    @classmethod
    def empty(cls, wallet: str = "") -> "Profile":
        """Valid profile for a wallet nothing is known about."""
        return cls(wallet=wallet)


# --- On-chain Models ---


class WalletActivity(BaseModel):
    """Wallet history from chain explorers. None means unknown, not zero."""

    age_days: float | None = None
    tx_count: int | None = None
    gas_spent: float | None = None  # ETH


class WalletAge(BaseModel):
    """First-activity lookup result."""

    first_activity_at: datetime | None = None
    age_days: float | None = None
    source: str | None = None


class Claim(BaseModel):
    """A MEM reward claim, from the Memory API or on-chain logs."""

    amount: float = 0.0
    block_number: int | None = None
    round_id: int | None = None  # Memory API distribution round
    tx_hash: str | None = None
    timestamp: datetime | None = None
    source: str = "unknown"


class OnchainData(BaseModel):
    """MEM token balance and reward claims."""

    balance: float | None = None
    claims: list[Claim] = Field(default_factory=list)
    claimed_total: float = 0.0
    avg_claim: float = 0.0
    projection: float = 0.0
    degraded: bool = False


class EnsData(BaseModel):
    """ENS registration metadata."""

    name: str | None = None
    name_age_days: float | None = None
    renewal_count: int | None = None
    created_at: datetime | None = None
    address: str | None = None
    source: str | None = None
    status: str = "unknown"  # ok, fallback, not-found, invalid, error, unknown
    reason: str | None = None


class FarcasterGraph(BaseModel):
    """Wallets in a Farcaster user's follower / following lists."""

    fid: int | None = None
    follower_wallets: list[str] = Field(default_factory=list)
    following_wallets: list[str] = Field(default_factory=list)

    @property
    def wallets(self) -> set[str]:
        return set(self.follower_wallets) | set(self.following_wallets)


class FreshnessTimestamp(BaseModel):
    """Most relevant recent-activity timestamp for a subject."""

    timestamp: datetime | None = None
    sources: dict[str, datetime] = Field(default_factory=dict)
    winning_source: str | None = None


# --- Derived Identity Signals ---


class FollowerQuality(BaseModel):
    """Weighted real-vs-bot follower estimate."""

    real_followers: float = 0.0
    bot_followers: float = 0.0
    ratio: float = 0.5


class IdentityConsistency(BaseModel):
    """Handle and avatar reuse across linked identities."""

    handle_consistency: float | None = None
    pfp_consistency: float | None = None


class IdentityTrust(BaseModel):
    """Proof-strength and handle-similarity trust signals."""

    identity_trust: float | None = None
    consistency_score: float | None = None


# --- Scoring Inputs ---


class ScoringInputs(BaseModel):
    """Everything the scorers need for one subject, assembled once."""

    model_config = ConfigDict(frozen=True)

    identities: list[Identity] = Field(default_factory=list)
    profile: Profile | None = None
    onchain_data: OnchainData | None = None
    wallet_activity: WalletActivity | None = None
    ens_name: str | None = None
    ens_data: EnsData | None = None
    bns_name: str | None = None
    follower_quality: FollowerQuality | None = None
    identity_trust: float | None = None
    consistency_score: float | None = None
    handle_consistency: float | None = None
    pfp_consistency: float | None = None
    external_reputation: float | None = None
    mutual_overlap: float | None = None
    degraded: bool = False


class Quantiles(BaseModel):
    """Distribution breakpoints for quantile scaling."""

    p50: float | None = None
    p75: float | None = None
    p90: float | None = None


class ScoringStats(BaseModel):
    """Population statistics used by the quantile scaler."""

    tx_count_quantiles: Quantiles | None = None
    follower_log_quantiles: Quantiles | None = None


class ScoringThresholds(BaseModel):
    """Full-credit thresholds per dimension."""

    wallet_age_days_for_full: float = 365
    wallet_tx_full: float = 200
    gas_eth_for_full: float = 1.0
    zero_gas_score: float = 0.3
    follower_log_full: float = 6.0  # log10(1M)
    ens_age_days_for_full: float = 365
    ens_renewals_for_full: float = 3
    mem_balance_for_full: float = 10_000
    mem_claims_for_full: float = 10
    platform_soft_cap: int = 5
    platform_hard_cap: int = 10


class LegitimacyOptions(BaseModel):
    """Caller overrides for the legitimacy aggregator."""

    weights: dict[str, float] | None = None
    thresholds: ScoringThresholds = Field(default_factory=ScoringThresholds)
    stats: ScoringStats = Field(default_factory=ScoringStats)


# --- Legitimacy Output ---


class DimensionScore(BaseModel):
    """One dimension of the legitimacy breakdown."""

    normalized: float = Field(default=0.0, ge=0, le=1)
    weight: float = Field(default=0.0, ge=0, le=1)
    weighted: float = Field(default=0.0, ge=0, le=1)


class ScoreMeta(BaseModel):
    """Diagnostic counts explaining a legitimacy score."""

    reason: str | None = None
    identity_count: int = 0
    platform_count: int = 0
    verified: int = 0
    total: int = 0
    verified_ratio: float = 0.0
    avg_followers: int = 0
    claims: int = 0
    balance: float | None = None
    tx_count: int | None = None
    wallet_age_days: float | None = None
    ens_name: str | None = None
    bns_name: str | None = None
    identity_strategy: str | None = None  # trust or legacy
    handle_consistency: float | None = None
    pfp_consistency: float | None = None
    follower_quality: float | None = None
    ens_age_days: float | None = None
    has_basename: bool = False
    overlap_score: float | None = None
    degraded: bool = False


class LegitimacyBreakdown(BaseModel):
    """Per-dimension explanation of a legitimacy score."""

    identity: DimensionScore = Field(default_factory=DimensionScore)
    wallet: DimensionScore = Field(default_factory=DimensionScore)
    social: DimensionScore = Field(default_factory=DimensionScore)
    ens: DimensionScore = Field(default_factory=DimensionScore)
    memory: DimensionScore = Field(default_factory=DimensionScore)
    external: DimensionScore = Field(default_factory=DimensionScore)
    overlap: DimensionScore = Field(default_factory=DimensionScore)
    meta: ScoreMeta = Field(default_factory=ScoreMeta)


class LegitimacyResult(BaseModel):
    """Legitimacy score with its breakdown."""

    score: int = Field(ge=0, le=100)
    breakdown: LegitimacyBreakdown


# --- Engagement Output ---


class EngagementBreakdown(BaseModel):
    """Intermediate values of the engagement heuristic."""

    total_followers: int = 0
    verified_count: int = 0
    reliability_mult: float = 1.0
    follower_component: float = 0.0
    consistency_bonus: float = 0.0
    onchain_bonus: float = 0.0
    raw_score: float = 0.0


class EngagementRank(BaseModel):
    """Activity / influence score."""

    score: int = Field(ge=0, le=100)
    percentile_approx: int = 100
    label: str = "No Data"
    breakdown: EngagementBreakdown = Field(default_factory=EngagementBreakdown)


# --- Matching Models ---


class MatchSubject(BaseModel):
    """Scoring inputs plus the evidence sets used for matching."""

    wallet: str
    inputs: ScoringInputs
    creators: list[str] = Field(default_factory=list)
    zora_collections: list[str] = Field(default_factory=list)
    contracts: list[str] = Field(default_factory=list)
    follower_graph: list[str] = Field(default_factory=list)
    farcaster_wallets: list[str] = Field(default_factory=list)


class MatchBreakdown(BaseModel):
    """Per-dimension similarity values, each in [0, 1]."""

    identity_similarity: float = 0.0
    platform_similarity: float = 0.0
    username_overlap: float = 0.0
    follower_similarity: float = 0.0
    creator_similarity: float = 0.0
    onchain_similarity: float = 0.0
    mem_similarity: float = 0.0
    ens_similarity: float = 0.0
    engagement_similarity: float = 0.0
    farcaster_similarity: float = 0.0


class MatchResult(BaseModel):
    """Pairwise match score with shared evidence."""

    wallet_a: str
    wallet_b: str
    match_score: int = Field(ge=0, le=100)
    breakdown: MatchBreakdown
    shared_creators: list[str] = Field(default_factory=list)
    shared_zora_collections: list[str] = Field(default_factory=list)
    shared_contracts: list[str] = Field(default_factory=list)
    shared_farcaster_wallets: list[str] = Field(default_factory=list)
    explanation: str = ""


# --- Feed Models ---


class FeedWeights(BaseModel):
    """Blend weights for the feed score."""

    legitimacy: float = 0.55
    engagement: float = 0.35
    freshness: float = 0.10


class FreshnessConfig(BaseModel):
    """Recency decay settings."""

    now: datetime | None = None
    half_life_days: float = 14


class FeedSubject(BaseModel):
    """A wallet or ENS name to place in a feed."""

    wallet_or_ens: str | None = None
    id: str | None = None
    timestamp: datetime | None = None
    meta: dict = Field(default_factory=dict)


class ScoredSubject(BaseModel):
    """A feed subject with its blended score."""

    id: str | None = None
    wallet_or_ens: str | None = None
    feed_score: int = Field(default=0, ge=0, le=100)
    legitimacy_score: int = 0
    engagement_score: int = 0
    freshness_score: int = 50
    weights: FeedWeights | None = None
    legitimacy_breakdown: LegitimacyBreakdown | None = None
    engagement_breakdown: EngagementBreakdown | None = None
    inputs: ScoringInputs | None = None
    meta: dict = Field(default_factory=dict)


class FeedMeta(BaseModel):
    """Summary of a feed ranking."""

    weights: FeedWeights
    count: int = 0


class FeedRanking(BaseModel):
    """Feed items ordered by feed score."""

    items: list[ScoredSubject] = Field(default_factory=list)
    meta: FeedMeta


# --- Tier Models ---


class Tier(BaseModel):
    """Named band of the legitimacy score."""

    id: str
    label: str
    min_score: int
    description: str


class TierProgress(BaseModel):
    """Position of a score within its tier."""

    tier: Tier
    next_tier: Tier | None = None
    points_to_next: int = 0
    progress: float = Field(default=1.0, ge=0, le=1)


class ComparativeScores(BaseModel):
    """Primary subject compared against a baseline cohort."""

    primary_legitimacy: int
    primary_engagement: int
    primary_engagement_label: str
    baseline_legitimacy: int
    baseline_engagement: int
    baseline_engagement_label: str
    legitimacy_diff: int
    engagement_diff: int
    legitimacy_pct_increase: float
    engagement_pct_increase: float
    comparative_tier: str


# --- Integrity Models ---


class IntegrityBadge(BaseModel):
    """Achievement earned from the legitimacy breakdown."""

    id: str
    label: str
    description: str


class Severity(str, Enum):
    """How healthy a legitimacy dimension is."""

    EXCELLENT = "excellent"
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    CRITICAL = "critical"


class IntegrityAction(BaseModel):
    """Guidance for one legitimacy dimension, ranked by headroom."""

    key: str
    label: str
    severity: Severity
    priority: float = Field(ge=0, le=1)
    normalized: float = Field(ge=0, le=1)
    weighted: float = Field(ge=0, le=1)
    summary: str
    actions: list[str] = Field(default_factory=list)
