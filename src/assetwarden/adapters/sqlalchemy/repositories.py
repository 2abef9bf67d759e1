"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from assetwarden.adapters.sqlalchemy.mappings import asset_record_table
from assetwarden.domain.model import AssetRecord, AssetStatus

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from assetwarden.domain.model import AssetKind


class SqlAlchemyAssetRecordRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: AssetRecord) -> None:
        self.session.add(entity)

    def get(self, asset_id: str) -> AssetRecord | None:
        return self.session.get(AssetRecord, asset_id)

    def find(
        self,
        *,
        kind: AssetKind | None = None,
        status: AssetStatus | None = None,
    ) -> list[AssetRecord]:
        stmt = select(AssetRecord).order_by(asset_record_table.c.submitted_at)
        if kind is not None:
            stmt = stmt.where(asset_record_table.c.kind == kind)
        if status is not None:
            stmt = stmt.where(asset_record_table.c.status == status)
        return list(self.session.execute(stmt).scalars())

    def list_pending(self) -> list[AssetRecord]:
        return self.find(status=AssetStatus.PENDING)

    def remove(self, asset_id: str) -> bool:
        record = self.get(asset_id)
        if record is None:
            return False
        self.session.delete(record)
        return True

