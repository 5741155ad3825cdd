"""
TTL and negative-result policy for the user cache namespaces.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.config import CacheSettings

from .store import ALL_USERS_NAMESPACE, USERS_NAMESPACE


@dataclass(frozen=True)
class CachePolicy:
    """Per-namespace TTL table plus the optional negative caching rules.

    The collection TTL is kept separate from the entity TTL: a full scan is
    the expensive one to recompute, but it also goes stale whenever any user
    changes.
    """

    entity_ttl_seconds: int = 3600
    collection_ttl_seconds: int = 600
    negative_ttl_seconds: int = 60
    cache_negative_results: bool = False
    cache_empty_collections: bool = False
    single_flight: bool = True

    def __post_init__(self) -> None:
        for name in ("entity_ttl_seconds", "collection_ttl_seconds", "negative_ttl_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "CachePolicy":
        return cls(
            entity_ttl_seconds=settings.entity_ttl_seconds,
            collection_ttl_seconds=settings.collection_ttl_seconds,
            negative_ttl_seconds=settings.negative_ttl_seconds,
            cache_negative_results=settings.negative_results_enabled,
            cache_empty_collections=settings.empty_collection_enabled,
            single_flight=settings.single_flight_enabled,
        )

    def ttl_for(self, namespace: str) -> int:
        if namespace == USERS_NAMESPACE:
            return self.entity_ttl_seconds
        if namespace == ALL_USERS_NAMESPACE:
            return self.collection_ttl_seconds
        raise ValueError(f"Unknown cache namespace '{namespace}'")
