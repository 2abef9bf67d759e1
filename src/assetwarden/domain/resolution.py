"""Status resolution: evidence bundle -> moderation status.

The policy is an ordered list of rules; the first rule that returns a status
wins. Ordering encodes how much each source is trusted:

- listing page text outranks raw reachability (a declined asset can stay
  downloadable for a grace period)
- reachability outranks catalog presence
- declines are sticky: the first strong decline signal settles it
- acceptance needs two independent positives: public reachability *and* an
  unrestricted catalog entry
- nothing matched -> pending, never accepted

Owner-only visibility (authenticated probe reachable, anonymous probe not) is
read as a decline, and only after the page, reachability and catalog rules
have had their say; a 403 on the anonymous probe still means pending.

``resolve`` performs no I/O and reads nothing outside the bundle.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import Final

from .model import (
    AssetStatus,
    CatalogPresence,
    EvidenceBundle,
    ListingSignal,
    Reachability,
)
from .phrases import confirms_deletion, matches_pending

log = getLogger(__name__)


class ResolutionRule(StrEnum):
    LISTING_NOT_FOUND = "listing_not_found"
    LISTING_DECLINE_PHRASE = "listing_decline_phrase"
    LISTING_CONFIRMED_DELETION = "listing_confirmed_deletion"
    LISTING_PENDING_PHRASE = "listing_pending_phrase"
    PUBLIC_AND_CATALOGUED = "public_and_catalogued"
    PUBLIC_BUT_RESTRICTED = "public_but_restricted"
    PUBLIC_ABSENT = "public_absent"
    PUBLIC_FORBIDDEN = "public_forbidden"
    OWNER_ONLY_VISIBILITY = "owner_only_visibility"
    CATALOG_ABSENT = "catalog_absent"
    DEFAULT_PENDING = "default_pending"


@dataclass(frozen=True, slots=True)
class StatusJudgment:
    status: AssetStatus
    rule: ResolutionRule


type Rule = Callable[[EvidenceBundle], AssetStatus | None]


def _listing_not_found(bundle: EvidenceBundle) -> AssetStatus | None:
    if bundle.listing.signal is ListingSignal.PAGE_NOT_FOUND:
        return AssetStatus.DECLINED
    return None


def _listing_decline_phrase(bundle: EvidenceBundle) -> AssetStatus | None:
    if bundle.listing.signal is ListingSignal.DECLINE_PHRASE:
        return AssetStatus.DECLINED
    return None


def _listing_confirmed_deletion(bundle: EvidenceBundle) -> AssetStatus | None:
    listing = bundle.listing
    if (
        listing.signal is ListingSignal.DELETION_PHRASE
        and bundle.anonymous_reachability is Reachability.REACHABLE
        and listing.text is not None
        and confirms_deletion(listing.text)
    ):
        return AssetStatus.DECLINED
    return None


def _listing_pending_phrase(bundle: EvidenceBundle) -> AssetStatus | None:
    listing = bundle.listing
    if listing.signal is ListingSignal.PENDING_PHRASE:
        return AssetStatus.PENDING
    # an unconfirmed deletion signal falls through; the page may still say "pending"
    if (
        listing.signal is ListingSignal.DELETION_PHRASE
        and listing.text is not None
        and matches_pending(listing.text)
    ):
        return AssetStatus.PENDING
    return None


def _public_and_catalogued(bundle: EvidenceBundle) -> AssetStatus | None:
    metadata = bundle.catalog.metadata
    if (
        bundle.anonymous_reachability is Reachability.REACHABLE
        and bundle.catalog.presence is CatalogPresence.PRESENT
        and metadata is not None
        and not metadata.is_gated
    ):
        return AssetStatus.ACCEPTED
    return None


def _public_but_restricted(bundle: EvidenceBundle) -> AssetStatus | None:
    metadata = bundle.catalog.metadata
    if (
        bundle.anonymous_reachability is Reachability.REACHABLE
        and bundle.catalog.presence is CatalogPresence.PRESENT
        and metadata is not None
        and metadata.is_gated
    ):
        return AssetStatus.PENDING
    return None


def _public_absent(bundle: EvidenceBundle) -> AssetStatus | None:
    if bundle.anonymous_reachability is Reachability.ABSENT:
        return AssetStatus.DECLINED
    return None


def _public_forbidden(bundle: EvidenceBundle) -> AssetStatus | None:
    if bundle.anonymous_reachability is Reachability.FORBIDDEN:
        return AssetStatus.PENDING
    return None


def _owner_only_visibility(bundle: EvidenceBundle) -> AssetStatus | None:
    if (
        bundle.authenticated_reachability is Reachability.REACHABLE
        and bundle.anonymous_reachability is not Reachability.REACHABLE
    ):
        return AssetStatus.DECLINED
    return None


def _catalog_absent(bundle: EvidenceBundle) -> AssetStatus | None:
    if bundle.catalog.presence is CatalogPresence.ABSENT:
        return AssetStatus.DECLINED
    return None


RESOLUTION_POLICY: Final[tuple[tuple[ResolutionRule, Rule], ...]] = (
    (ResolutionRule.LISTING_NOT_FOUND, _listing_not_found),
    (ResolutionRule.LISTING_DECLINE_PHRASE, _listing_decline_phrase),
    (ResolutionRule.LISTING_CONFIRMED_DELETION, _listing_confirmed_deletion),
    (ResolutionRule.LISTING_PENDING_PHRASE, _listing_pending_phrase),
    (ResolutionRule.PUBLIC_AND_CATALOGUED, _public_and_catalogued),
    (ResolutionRule.PUBLIC_BUT_RESTRICTED, _public_but_restricted),
    (ResolutionRule.PUBLIC_ABSENT, _public_absent),
    (ResolutionRule.PUBLIC_FORBIDDEN, _public_forbidden),
    (ResolutionRule.OWNER_ONLY_VISIBILITY, _owner_only_visibility),
    (ResolutionRule.CATALOG_ABSENT, _catalog_absent),
)


def judge(bundle: EvidenceBundle) -> StatusJudgment:
    """Return the resolved status together with the rule that produced it."""

    for rule, predicate in RESOLUTION_POLICY:
        status = predicate(bundle)
        if status is not None:
            log.debug("Asset %s resolved to %s by rule %s", bundle.asset_id, status, rule)
            return StatusJudgment(status=status, rule=rule)
    log.debug("Asset %s has no decisive evidence, defaulting to pending", bundle.asset_id)
    return StatusJudgment(status=AssetStatus.PENDING, rule=ResolutionRule.DEFAULT_PENDING)


def resolve(bundle: EvidenceBundle) -> AssetStatus:
    return judge(bundle).status
