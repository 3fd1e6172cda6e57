"""Rule-based, deterministic match explanations."""

from memboard.models.schemas import MatchBreakdown

MAX_LISTED = 5


def _listing(label: str, items: list[str]) -> str:
    suffix = "..." if len(items) > MAX_LISTED else ""
    return f"• {label}: {', '.join(items[:MAX_LISTED])}{suffix}"


def generate_match_explanation(
    wallet_b: str,
    breakdown: MatchBreakdown,
    shared_creators: list[str],
    shared_zora_collections: list[str],
    shared_contracts: list[str],
    shared_farcaster_wallets: list[str],
) -> str:
    """Turn a match breakdown and shared evidence into readable text.

    Returns:
        A summary line followed by one bullet per non-empty evidence list.
    """
    reasons = []
    if breakdown.creator_similarity > 0.25 and shared_creators:
        reasons.append(f"you share {len(shared_creators)} creators")
    if breakdown.follower_similarity > 0.2:
        reasons.append("your social graphs overlap")
    if breakdown.farcaster_similarity > 0.15 and shared_farcaster_wallets:
        reasons.append(
            f"you both follow or are followed by {len(shared_farcaster_wallets)} similar Farcaster accounts"
        )
    if breakdown.onchain_similarity > 0.2 and shared_contracts:
        reasons.append("you interact with similar smart contracts on Base")
    if breakdown.identity_similarity > 0.5:
        reasons.append("your identity trust scores are very similar")

    short = f"{wallet_b[:6]}..."
    if reasons:
        lines = [f"You and {short} share strong identity signals: {', '.join(reasons)}."]
    else:
        lines = [f"You and {short} have moderate identity overlap."]

    if shared_creators:
        lines.append(_listing("Shared creators", shared_creators))
    if shared_farcaster_wallets:
        lines.append(_listing("Shared Farcaster accounts", shared_farcaster_wallets))
    if shared_zora_collections:
        lines.append(_listing("Both collected similar Zora projects", shared_zora_collections))
    if shared_contracts:
        lines.append(_listing("Overlap in smart contract interactions", shared_contracts))

    if len(lines) == 1:
        lines.append("• Similar engagement, creator activity, and identity footprint.")

    return "\n".join(lines)
