"""Integrity badges and improvement actions derived from a legitimacy breakdown.

Both engines are pure functions of ``LegitimacyBreakdown``: badges are
threshold checks over the breakdown meta, actions rank each dimension by
how much score it still leaves on the table (``(1 - normalized) * weight``)
and attach a summary plus concrete next steps.
"""

from collections.abc import Callable

from memboard.analyzers.quantiles import clamp01
from memboard.models.schemas import (
    DimensionScore,
    IntegrityAction,
    IntegrityBadge,
    LegitimacyBreakdown,
    ScoreMeta,
    Severity,
)

DIMENSION_LABELS = {
    "identity": "Identity Trust",
    "wallet": "Wallet Authenticity",
    "social": "Social Quality",
    "ens": "ENS Credibility",
    "memory": "MEM Activity",
    "external": "External Reputation",
    "overlap": "Cross-Platform Overlap",
}


def _at_least(field: str, threshold: float) -> Callable[[ScoreMeta], bool]:
    def check(meta: ScoreMeta) -> bool:
        value = getattr(meta, field)
        return value is not None and value >= threshold

    return check


# (badge, earned?) in display order
BADGE_RULES: list[tuple[IntegrityBadge, Callable[[ScoreMeta], bool]]] = [
    (
        IntegrityBadge(
            id="consistent-identity",
            label="Consistent Identity",
            description="Your usernames and profiles line up across platforms.",
        ),
        _at_least("handle_consistency", 0.75),
    ),
    (
        IntegrityBadge(
            id="pfp-match",
            label="PFP Match",
            description="You use the same profile photo across multiple accounts.",
        ),
        _at_least("pfp_consistency", 0.7),
    ),
    (
        IntegrityBadge(
            id="multi-platform",
            label="Cross-Platform Presence",
            description="You are active on multiple connected platforms.",
        ),
        _at_least("platform_count", 6),
    ),
    (
        IntegrityBadge(
            id="wallet-veteran",
            label="On-Chain Veteran",
            description="Your wallet has over 2 years of on-chain history.",
        ),
        _at_least("wallet_age_days", 730),
    ),
    (
        IntegrityBadge(
            id="active-wallet",
            label="Active Wallet",
            description="Your wallet demonstrates ongoing, real usage.",
        ),
        _at_least("tx_count", 150),
    ),
    (
        IntegrityBadge(
            id="social-reach",
            label="High Social Reach",
            description="You have a strong following across your social graph.",
        ),
        _at_least("avg_followers", 5000),
    ),
    (
        IntegrityBadge(
            id="real-audience",
            label="Real Audience",
            description="Your followers appear to be mostly real users.",
        ),
        _at_least("follower_quality", 0.85),
    ),
    (
        IntegrityBadge(
            id="ens-holder",
            label="ENS Veteran",
            description="Your ENS name has long-term history.",
        ),
        _at_least("ens_age_days", 365),
    ),
    (
        IntegrityBadge(
            id="basename-user",
            label="Basename User",
            description="You're part of the Base naming ecosystem.",
        ),
        lambda meta: meta.has_basename,
    ),
    (
        IntegrityBadge(
            id="mem-claimant",
            label="Active MEM User",
            description="You've claimed MEM rewards multiple times.",
        ),
        _at_least("claims", 5),
    ),
    (
        IntegrityBadge(
            id="mem-holder",
            label="MEM Holder",
            description="You maintain a meaningful on-chain MEM balance.",
        ),
        _at_least("balance", 3000),
    ),
    (
        IntegrityBadge(
            id="identity-linked",
            label="Linked Profiles",
            description="Your profiles reinforce the same identity across platforms.",
        ),
        _at_least("overlap_score", 0.6),
    ),
]


def compute_integrity_badges(breakdown: LegitimacyBreakdown) -> list[IntegrityBadge]:
    """Badges earned by a legitimacy breakdown, in display order."""
    return [badge for badge, earned in BADGE_RULES if earned(breakdown.meta)]


def severity_for(normalized: float) -> Severity:
    """Severity band of a 0-1 dimension health."""
    if normalized >= 0.8:
        return Severity.EXCELLENT
    if normalized >= 0.6:
        return Severity.STRONG
    if normalized >= 0.45:
        return Severity.MODERATE
    if normalized >= 0.25:
        return Severity.WEAK
    return Severity.CRITICAL


LOW = (Severity.WEAK, Severity.CRITICAL)


# --- Per-dimension guidance ---
# Each returns (summary, actions) for one dimension.


def _identity_guidance(meta: ScoreMeta, severity: Severity) -> tuple[str, list[str]]:
    total = meta.total
    verified = meta.verified
    platforms = meta.platform_count

    if not total:
        return (
            "No connected identities. The system sees an address, not a person.",
            [
                "Connect at least 2-3 identities from reputable platforms (e.g., Twitter, Farcaster, GitHub).",
                "Prefer identities that you actively use and are publicly associated with you.",
            ],
        )

    if verified >= total and platforms >= 5:
        summary = (
            "You have a fully verified identity across multiple platforms, "
            "but behavioral consistency can still improve."
        )
    elif verified >= total:
        summary = "All your connected identities are verified, but you're under-represented across platforms."
    else:
        summary = "You have some verified identities, but several signals are still weak or missing."

    actions = []
    if verified < total:
        actions.append(
            f"Verify the remaining {total - verified} unverified identities, "
            "or remove stale ones that don't represent you anymore."
        )
    if platforms < 3:
        actions.append(
            "Add identities on 1-2 more reputable platforms so your presence isn't concentrated in a single place."
        )
    elif platforms < 6 and severity != Severity.EXCELLENT:
        actions.append(
            "Strengthen your presence on your existing platforms (regular activity, profile completeness) "
            "instead of adding more low-signal accounts."
        )
    if severity in LOW:
        actions.append(
            "Align your username and avatar across your connected platforms "
            "so it's obvious they belong to the same person."
        )
    if not actions:
        actions.append(
            "Maintain consistent usernames and avatars across platforms, "
            "and keep inactive or joke accounts disconnected from this wallet."
        )
    return summary, actions


def _wallet_guidance(meta: ScoreMeta, severity: Severity) -> tuple[str, list[str]]:
    age = meta.wallet_age_days
    tx_count = meta.tx_count

    if age is None:
        summary = "Wallet age is unknown, so the system can't fully trust its long-term history yet."
    elif age >= 730:
        summary = "Your wallet has a long on-chain history, which is a strong integrity signal."
    elif age >= 365:
        summary = "Your wallet is reasonably seasoned but still has room to mature."
    else:
        summary = "Your wallet is relatively young, so the system is still cautious about long-term behavior."

    actions = []
    if age is not None and age < 180:
        actions.append(
            "Stick with this wallet over time instead of frequently switching; long-lived wallets are easier to trust."
        )
    if tx_count is not None:
        if tx_count < 10:
            actions.append(
                "Increase normal on-chain usage (swaps, mints, sends) with this wallet "
                "instead of spreading activity across many throwaway wallets."
            )
        elif tx_count < 50 and severity != Severity.EXCELLENT:
            actions.append(
                "Continue using this wallet consistently; a larger history of ordinary "
                "transactions improves authenticity."
            )
    elif severity != Severity.EXCELLENT:
        actions.append(
            "Use this wallet for regular activity over time instead of creating new ones for every interaction."
        )
    return summary, actions


def _social_guidance(meta: ScoreMeta, severity: Severity) -> tuple[str, list[str]]:
    followers = meta.avg_followers

    if followers == 0:
        return (
            "No social reach is visible for your connected identities.",
            [
                "Connect at least one social account where you actually interact with others "
                "(Twitter, Farcaster, Lens, etc.).",
                "Start building real conversations rather than focusing on raw follower counts.",
            ],
        )
    if followers < 200:
        return (
            "You have a small but real audience. Integrity is fine; reach is limited.",
            [
                "Engage consistently with the followers you already have instead of chasing vanity metrics.",
                "Reply, quote, and collaborate with other real accounts to deepen your social graph.",
            ],
        )
    if followers < 5000:
        return (
            "You have a healthy social footprint, but it still looks mid-tier to the system.",
            [
                "Keep interactions organic: avoid sudden spikes from giveaways or low-quality followers.",
                "Show consistent activity across multiple weeks rather than short-lived bursts.",
            ],
        )
    return (
        "You have strong reach. The main risk now is quality, not quantity.",
        [
            "Avoid inflating your audience with bots or follow-for-follow schemes; "
            "they reduce social integrity even if numbers go up.",
            "Maintain high-signal interactions: thoughtful posts, replies, and collabs with credible accounts.",
        ],
    )


def _ens_guidance(meta: ScoreMeta, severity: Severity) -> tuple[str, list[str]]:
    age = meta.ens_age_days

    if age:
        if age < 180:
            return (
                "Your ENS name is relatively new, so it hasn't built much historical trust yet.",
                [
                    "Keep this name over time instead of rotating through many domains; "
                    "stability improves credibility."
                ],
            )
        return (
            "You have a name with some history attached, which helps your on-chain identity feel less disposable.",
            ["Use this name consistently in your public profiles so others can recognize and verify you across contexts."],
        )
    if meta.has_basename:
        return (
            "You're using a basename, which gives you a recognizable on-chain identity.",
            ["Pair your basename with visible activity (social profiles, dApps) so it's clearly tied to a real person."],
        )
    return (
        "No long-lived name is associated with this wallet.",
        ["Consider registering an ENS or Base name and actually using it (profile, dApps, social bios)."],
    )


def _memory_guidance(meta: ScoreMeta, severity: Severity) -> tuple[str, list[str]]:
    claims = meta.claims
    balance = meta.balance or 0.0

    if claims == 0 and balance == 0:
        return (
            "No visible participation in the MEM ecosystem yet.",
            [
                "Check if you're eligible for any MEM rewards and make your first claim.",
                "Use the same wallet and identities when interacting with MEM so the protocol "
                "can reliably associate activity with you.",
            ],
        )
    if claims > 0 and balance == 0:
        return (
            "You've interacted with MEM before, but you currently hold no MEM on this address.",
            [
                "If you're still active in the ecosystem, consider keeping a small MEM balance "
                "in this wallet to signal ongoing participation."
            ],
        )
    if claims >= 5 or balance >= 100:
        actions = []
        if severity != Severity.EXCELLENT:
            actions = [
                "Continue using the same wallet and identities when interacting with MEM to deepen that history.",
                "Avoid spreading MEM activity across many disposable wallets; "
                "concentration improves the clarity of your reputation.",
            ]
        return (
            "You have a meaningful history of MEM claims or holdings, which is a positive integrity signal.",
            actions,
        )
    return (
        "You've started building a MEM history, but it still looks early compared to more established participants.",
        [
            "Claim new rewards when they're available instead of leaving them unclaimed.",
            "Engage with MEM-aligned apps or communities using the same wallet "
            "so your involvement looks consistent rather than one-off.",
        ],
    )


def _external_guidance(meta: ScoreMeta, severity: Severity) -> tuple[str, list[str]]:
    summary = "External reputation blends any off-platform or third-party trust signals the system is aware of."
    if severity in (Severity.EXCELLENT, Severity.STRONG):
        return summary, [
            "Maintain your existing relationships and contributions in external communities; "
            "abrupt changes in behavior can erode this quickly."
        ]
    return summary, [
        "Look for at least one external community (open source, DAOs, forums, or protocols) "
        "where you can contribute in a visible, ongoing way.",
        "Use the same identities and wallet so your contributions accumulate under a single, coherent persona.",
    ]


def _overlap_guidance(meta: ScoreMeta, severity: Severity) -> tuple[str, list[str]]:
    if meta.platform_count <= 1:
        return (
            "All of your signals are effectively coming from a single platform.",
            [
                "Connect at least one additional platform where you are active "
                "(e.g., Twitter + Farcaster, or GitHub + Lens).",
                "Use matching usernames so it's obvious that the accounts belong to the same person.",
            ],
        )
    if severity in LOW:
        return (
            "You're present on multiple platforms, but they don't strongly reinforce each other yet.",
            [
                "Standardize your handle and avatar across platforms so they mutually confirm your identity.",
                "Link between your profiles (e.g., add your Farcaster in your Twitter bio and vice versa) "
                "to make the connections explicit.",
            ],
        )
    return (
        "Your platforms overlap reasonably well, but there's still some room to tighten the connections.",
        [
            "Avoid creating side accounts that conflict with your main identity; "
            "keep the public, high-trust persona coherent."
        ],
    )


GUIDANCE = {
    "identity": _identity_guidance,
    "wallet": _wallet_guidance,
    "social": _social_guidance,
    "ens": _ens_guidance,
    "memory": _memory_guidance,
    "external": _external_guidance,
    "overlap": _overlap_guidance,
}


def build_integrity_actions(breakdown: LegitimacyBreakdown) -> list[IntegrityAction]:
    """Per-dimension guidance, most integrity headroom first.

    Priority is the score a dimension still leaves unclaimed,
    ``(1 - normalized) * weight``. Ties keep dimension order.
    """
    results = []
    for key, guidance in GUIDANCE.items():
        dimension: DimensionScore = getattr(breakdown, key)
        severity = severity_for(dimension.normalized)
        summary, actions = guidance(breakdown.meta, severity)
        results.append(
            IntegrityAction(
                key=key,
                label=DIMENSION_LABELS[key],
                severity=severity,
                priority=clamp01((1 - dimension.normalized) * dimension.weight),
                normalized=dimension.normalized,
                weighted=dimension.weighted,
                summary=summary,
                actions=actions,
            )
        )
    return sorted(results, key=lambda action: action.priority, reverse=True)
