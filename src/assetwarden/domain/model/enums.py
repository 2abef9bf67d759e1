"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class AssetKind(StrEnum):
    """Asset class; decides payload encoding and the ingestion endpoint family."""

    AUDIO = "audio"
    IMAGE = "image"


class AssetStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        return self is not AssetStatus.PENDING


class Reachability(StrEnum):
    """Outcome of fetching an asset's binary delivery path."""

    REACHABLE = "reachable"
    FORBIDDEN = "forbidden"
    ABSENT = "absent"
    UNKNOWN = "unknown"

    @classmethod
    def from_status_code(cls, status_code: int) -> Reachability:
        if status_code == 200:
            return cls.REACHABLE
        if status_code == 403:
            return cls.FORBIDDEN
        if status_code == 404:
            return cls.ABSENT
        return cls.UNKNOWN


class CatalogPresence(StrEnum):
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


class ListingSignal(StrEnum):
    """Result of scanning the human-oriented listing page."""

    DECLINE_PHRASE = "decline-phrase"
    PENDING_PHRASE = "pending-phrase"
    DELETION_PHRASE = "deletion-phrase"
    NONE = "none"
    PAGE_NOT_FOUND = "page-not-found"
    FETCH_FAILED = "fetch-failed"
