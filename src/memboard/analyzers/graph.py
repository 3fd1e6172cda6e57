"""Evidence sets derived from profile identities.

Creators, Zora collections and follower-graph peers all come from the
already-normalized identity list; no network access happens here.
"""

from memboard.models.schemas import Identity

CREATOR_PLATFORMS = {"zora", "sound", "catalog"}


def norm_id(value: str | None) -> str | None:
    """Normalize an identifier (handle, contract, wallet) to a set key."""
    if value is None:
        return None
    key = str(value).strip().lower()
    return key or None


def _add(target: set[str], *candidates: str | None) -> None:
    for candidate in candidates:
        key = norm_id(candidate)
        if key:
            target.add(key)
            return


def extract_creator_set(identities: list[Identity]) -> set[str]:
    """Creators a subject follows, collects or is."""
    creators: set[str] = set()
    for identity in identities:
        for creator in identity.creators:
            _add(creators, creator)
        for mint in identity.mints:
            _add(creators, mint.creator, mint.contract_address)
        if identity.platform in CREATOR_PLATFORMS:
            # The identity itself is a creator profile
            _add(creators, identity.id, identity.username)
    return creators


def extract_zora_collections(identities: list[Identity]) -> set[str]:
    """Collections and contracts a subject has minted or collected."""
    collections: set[str] = set()
    for identity in identities:
        for mint in identity.mints:
            _add(collections, mint.collection_address, mint.contract_address, mint.creator, mint.project_id)
    return collections


def extract_follower_graph(identities: list[Identity]) -> set[str]:
    """Union of follower and following ids across identities."""
    graph: set[str] = set()
    for identity in identities:
        for peer in identity.social.followers_list + identity.social.following_list:
            _add(graph, peer)
    return graph


def extract_peer_wallets(identities: list[Identity]) -> set[str]:
    """Wallet addresses explicitly attached to follower-graph peers."""
    wallets: set[str] = set()
    for identity in identities:
        for wallet in identity.social.peer_wallets:
            _add(wallets, wallet)
    return wallets
