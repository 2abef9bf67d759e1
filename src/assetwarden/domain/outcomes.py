"""Typed outcomes returned by the submission and withdrawal negotiators."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from .model import AssetKind


class ErrorCategory(StrEnum):
    NETWORK_UNREACHABLE = "network_unreachable"
    AUTHENTICATION_INVALID = "authentication_invalid"
    PAYLOAD_REJECTED = "payload_rejected"
    NOT_FOUND = "not_found"
    SERVER_FAULT = "server_fault"


class SubmissionFailureReason(StrEnum):
    MISSING_FILE = "missing_file"
    FILE_TOO_LARGE = "file_too_large"
    DURATION_EXCEEDED = "duration_exceeded"
    UNSUPPORTED_FORMAT = "unsupported_format"
    CORRUPTED_FILE = "corrupted_file"
    PREVIOUSLY_REJECTED = "previously_rejected"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    SERVER_FAULT = "server_fault"
    NETWORK_UNREACHABLE = "network_unreachable"
    MISSING_IDENTIFIER = "missing_identifier"
    INVALID_REQUEST = "invalid_request"
    GENERIC = "generic"

    @property
    def category(self) -> ErrorCategory:
        return _SUBMISSION_CATEGORIES.get(self, ErrorCategory.PAYLOAD_REJECTED)


_SUBMISSION_CATEGORIES: dict[SubmissionFailureReason, ErrorCategory] = {
    SubmissionFailureReason.AUTHENTICATION: ErrorCategory.AUTHENTICATION_INVALID,
    SubmissionFailureReason.NOT_FOUND: ErrorCategory.NOT_FOUND,
    SubmissionFailureReason.SERVER_FAULT: ErrorCategory.SERVER_FAULT,
    SubmissionFailureReason.NETWORK_UNREACHABLE: ErrorCategory.NETWORK_UNREACHABLE,
    SubmissionFailureReason.MISSING_IDENTIFIER: ErrorCategory.SERVER_FAULT,
}

# small integer codes the ingestion endpoints embed in error bodies
PLATFORM_ERROR_CODES: dict[int, SubmissionFailureReason] = {
    3: SubmissionFailureReason.MISSING_FILE,
    4: SubmissionFailureReason.FILE_TOO_LARGE,
    5: SubmissionFailureReason.DURATION_EXCEEDED,
    8: SubmissionFailureReason.UNSUPPORTED_FORMAT,
    9: SubmissionFailureReason.CORRUPTED_FILE,
    15: SubmissionFailureReason.PREVIOUSLY_REJECTED,
}


class WithdrawalFailureReason(StrEnum):
    AUTHENTICATION = "authentication"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    SERVER_FAULT = "server_fault"
    NETWORK_UNREACHABLE = "network_unreachable"
    INVALID_REQUEST = "invalid_request"
    GENERIC = "generic"

    @property
    def category(self) -> ErrorCategory:
        return _WITHDRAWAL_CATEGORIES[self]


_WITHDRAWAL_CATEGORIES: dict[WithdrawalFailureReason, ErrorCategory] = {
    WithdrawalFailureReason.AUTHENTICATION: ErrorCategory.AUTHENTICATION_INVALID,
    WithdrawalFailureReason.FORBIDDEN: ErrorCategory.AUTHENTICATION_INVALID,
    WithdrawalFailureReason.NOT_FOUND: ErrorCategory.NOT_FOUND,
    WithdrawalFailureReason.SERVER_FAULT: ErrorCategory.SERVER_FAULT,
    WithdrawalFailureReason.NETWORK_UNREACHABLE: ErrorCategory.NETWORK_UNREACHABLE,
    WithdrawalFailureReason.INVALID_REQUEST: ErrorCategory.PAYLOAD_REJECTED,
    WithdrawalFailureReason.GENERIC: ErrorCategory.SERVER_FAULT,
}


@dataclass(frozen=True, slots=True, kw_only=True)
class SubmissionSucceeded:
    asset_id: str
    kind: AssetKind
    name: str
    description_attached: bool | None = None
    ok: Literal[True] = True


@dataclass(frozen=True, slots=True, kw_only=True)
class SubmissionFailed:
    reason: SubmissionFailureReason
    message: str
    status_code: int | None = None
    ok: Literal[False] = False

    @property
    def category(self) -> ErrorCategory:
        return self.reason.category


type SubmissionOutcome = SubmissionSucceeded | SubmissionFailed


@dataclass(frozen=True, slots=True, kw_only=True)
class WithdrawalSucceeded:
    asset_id: str
    method: str
    url: str
    ok: Literal[True] = True


@dataclass(frozen=True, slots=True, kw_only=True)
class WithdrawalFailed:
    reason: WithdrawalFailureReason
    message: str
    status_code: int | None = None
    ok: Literal[False] = False

    @property
    def category(self) -> ErrorCategory:
        return self.reason.category


type WithdrawalOutcome = WithdrawalSucceeded | WithdrawalFailed
