"""Evidence value types produced by the evidence collector.

Each field of an :class:`EvidenceBundle` is sourced independently; any
combination (including everything unknown) is a valid bundle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import AssetKind, CatalogPresence, ListingSignal, Reachability

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class CatalogMetadata:
    name: str | None = None
    is_for_sale: bool | None = None
    is_restricted: bool = False
    is_limited: bool = False
    is_limited_unique: bool = False
    price_status: str | None = None
    created: datetime | None = None

    @property
    def is_gated(self) -> bool:
        return self.is_restricted or self.is_limited or self.is_limited_unique


@dataclass(frozen=True, slots=True)
class CatalogEvidence:
    presence: CatalogPresence = CatalogPresence.UNKNOWN
    metadata: CatalogMetadata | None = None


@dataclass(frozen=True, slots=True)
class ListingEvidence:
    signal: ListingSignal = ListingSignal.FETCH_FAILED
    text: str | None = None
    title: str | None = None


@dataclass(frozen=True, slots=True)
class EvidenceBundle:
    asset_id: str
    kind: AssetKind
    anonymous_reachability: Reachability = Reachability.UNKNOWN
    authenticated_reachability: Reachability = Reachability.UNKNOWN
    catalog: CatalogEvidence = field(default_factory=CatalogEvidence)
    listing: ListingEvidence = field(default_factory=ListingEvidence)

    @property
    def display_name(self) -> str | None:
        if self.catalog.metadata is not None and self.catalog.metadata.name:
            return self.catalog.metadata.name
        return self.listing.title
