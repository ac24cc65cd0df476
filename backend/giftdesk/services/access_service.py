# Overview: Row visibility, dashboard statistics and list filters over cached state.

"""
Access Control Filter

Pure functions over (clients, identity). Nothing here talks to the store.

VISIBILITY: administrators see every client; everyone else sees exactly the
clients whose registered_email is their own email.

STATS: counts and budget are computed over the visible set, but user_stats
(clients per registrant name) is computed over the full set for every
viewer. The dashboard's participant figure relies on that.
"""
from __future__ import annotations

from typing import Iterable, Sequence

from ..records import CATEGORIES, Client, DashboardStats, GiftCatalogItem, GiftRecord, User


class AccessDeniedError(Exception):
    """The identity may not perform this action (403)."""


def visible_clients(clients: Sequence[Client], identity: User | None) -> tuple[Client, ...]:
    if identity is None:
        return ()
    if identity.is_admin:
        return tuple(clients)
    return tuple(c for c in clients if c.registered_email == identity.email)


def compute_stats(clients: Sequence[Client], identity: User | None) -> DashboardStats:
    visible = visible_clients(clients, identity)

    user_stats: dict[str, int] = {}
    for client in clients:
        user_stats[client.registered_by] = user_stats.get(client.registered_by, 0) + 1

    return DashboardStats(
        total_clients=len(visible),
        total_gifts=sum(c.gift_count for c in visible),
        total_budget=sum(c.gift_total for c in visible),
        user_stats=user_stats,
    )


def ranked_user_stats(stats: DashboardStats) -> list[tuple[str, int]]:
    """Registrants by client count, busiest first (stable for ties)."""
    return sorted(stats.user_stats.items(), key=lambda item: item[1], reverse=True)


def search_clients(clients: Iterable[Client], term: str | None) -> tuple[Client, ...]:
    """Substring match on name, company, position or registrant name."""
    term = term or ""
    return tuple(
        c for c in clients
        if term in c.name
        or term in c.company
        or term in c.position
        or term in c.registered_by
    )


def recent_gifts(clients: Iterable[Client], limit: int = 10) -> list[tuple[Client, GiftRecord]]:
    out: list[tuple[Client, GiftRecord]] = []
    for client in clients:
        for record in client.gift_history:
            if len(out) >= limit:
                return out
            out.append((client, record))
    return out


def can_modify(identity: User | None, client: Client) -> bool:
    if identity is None:
        return False
    return identity.is_admin or client.registered_email == identity.email


def require_admin(identity: User | None) -> User:
    if identity is None or not identity.is_admin:
        raise AccessDeniedError("관리자 권한이 필요합니다.")
    return identity


def items_for_category(catalog: Iterable[GiftCatalogItem], category: str) -> tuple[GiftCatalogItem, ...]:
    return tuple(item for item in catalog if item.target_category == category)


def catalog_by_category(catalog: Sequence[GiftCatalogItem]) -> dict[str, tuple[GiftCatalogItem, ...]]:
    return {category: items_for_category(catalog, category) for category in CATEGORIES}
