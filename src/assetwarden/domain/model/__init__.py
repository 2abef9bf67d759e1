"""Domain model for tracked assets and status evidence."""

from __future__ import annotations

from .asset import AssetRecord, ImmutableFieldError, utcnow
from .enums import AssetKind, AssetStatus, CatalogPresence, ListingSignal, Reachability
from .evidence import CatalogEvidence, CatalogMetadata, EvidenceBundle, ListingEvidence

__all__ = [
    "AssetKind",
    "AssetRecord",
    "AssetStatus",
    "CatalogEvidence",
    "CatalogMetadata",
    "CatalogPresence",
    "EvidenceBundle",
    "ImmutableFieldError",
    "ListingEvidence",
    "ListingSignal",
    "Reachability",
    "utcnow",
]
