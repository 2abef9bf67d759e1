"""SQLAlchemy mapping metadata for the local asset record store."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import Column, DateTime, Dialect, Enum, Index, String, Table, Text, TypeDecorator, orm
from sqlalchemy.orm import configure_mappers

from assetwarden.domain.model import AssetKind, AssetRecord, AssetStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class TagListType(TypeDecorator[list[str]]):
    """Free-form tags stored as a JSON array, order preserved."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [item for item in items if isinstance(item, str)]


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}

asset_record_table = Table(
    "asset_record",
    mapper_registry.metadata,
    Column("asset_id", String, primary_key=True),
    Column("kind", Enum(AssetKind, native_enum=False), nullable=False),
    Column("status", Enum(AssetStatus, native_enum=False), nullable=False),
    Column("display_name", String, nullable=False, default=""),
    Column("description", Text, nullable=True),
    Column("tags", TagListType(), nullable=False, default=list),
    Column("group_id", String, nullable=True),
    Column("submitted_at", UTCDateTime(), nullable=False),
    Index("ix_asset_record_status_kind", "status", "kind"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the asset record model."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(AssetRecord, asset_record_table)
    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
