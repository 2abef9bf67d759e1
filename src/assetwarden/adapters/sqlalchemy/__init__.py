"""SQLAlchemy adapter package for the local asset record store."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemyAssetRecordRepository
from .unit_of_work import SqlAlchemyAssetRecordUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyAssetRecordRepository",
    "SqlAlchemyAssetRecordUnitOfWork",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
