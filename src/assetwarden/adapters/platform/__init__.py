"""HTTP adapters for the remote creative platform."""

from .evidence import HttpEvidenceCollector
from .inventory import HttpInventoryLister, InventoryEntry
from .schema import AuthenticatedUser
from .session import (
    AuthenticationError,
    PlatformSession,
    PlatformUnavailableError,
    open_session,
    verify_credential,
)
from .submission import HttpSubmissionNegotiator, classify_ingestion_response
from .withdrawal import HttpWithdrawalNegotiator, classify_withdrawal_response

__all__ = [
    "AuthenticatedUser",
    "AuthenticationError",
    "HttpEvidenceCollector",
    "HttpInventoryLister",
    "HttpSubmissionNegotiator",
    "HttpWithdrawalNegotiator",
    "InventoryEntry",
    "PlatformSession",
    "PlatformUnavailableError",
    "classify_ingestion_response",
    "classify_withdrawal_response",
    "open_session",
    "verify_credential",
]
