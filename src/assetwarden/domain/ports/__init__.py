"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import AssetRecordRepository, Repository
from .platform import (
    AssetSubmitter,
    AssetWithdrawer,
    EvidenceCollector,
    SessionContext,
    SubmissionRequest,
)
from .unit_of_work import (
    AssetRecordRepositories,
    AssetRecordUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AssetRecordRepositories",
    "AssetRecordRepository",
    "AssetRecordUnitOfWork",
    "AssetSubmitter",
    "AssetWithdrawer",
    "EvidenceCollector",
    "Repository",
    "RepositoryCollection",
    "SessionContext",
    "SubmissionRequest",
    "UnitOfWork",
]
