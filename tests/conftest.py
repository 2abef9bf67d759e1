from __future__ import annotations

import os
from typing import TYPE_CHECKING

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from assetwarden.adapters.http_resilience import ResilientClient
from assetwarden.adapters.sqlalchemy import create_all_tables, start_mappers
from assetwarden.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyAssetRecordUnitOfWork,
    shutdown,
    startup,
)
from assetwarden.domain.model import (
    AssetKind,
    CatalogEvidence,
    CatalogMetadata,
    CatalogPresence,
    EvidenceBundle,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from assetwarden.config.http_resilience import ResilienceConfig

type Handler = Callable[[httpx.Request], httpx.Response]
type ClientFactory = Callable[[ResilienceConfig], ResilientClient]


def _make_client_factory(handler: Handler) -> ClientFactory:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(async_handler))  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        return client

    return factory


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    monkeypatch.setenv("ASSETWARDEN_DATA_DIR", str(data_dir))
    return data_dir


@pytest.fixture
def make_client_factory() -> Callable[[Handler], ClientFactory]:
    return _make_client_factory


@pytest.fixture
def make_bundle() -> Callable[..., EvidenceBundle]:
    """Build an evidence bundle; every field not overridden stays unknown."""

    def factory(**overrides: object) -> EvidenceBundle:
        values: dict[str, object] = {"asset_id": "1001", "kind": AssetKind.AUDIO}
        values.update(overrides)
        return EvidenceBundle(**values)  # type: ignore[arg-type]

    return factory


def present_in_catalog(**flags: object) -> CatalogEvidence:
    metadata = CatalogMetadata(**flags)  # type: ignore[arg-type]
    return CatalogEvidence(presence=CatalogPresence.PRESENT, metadata=metadata)


@pytest.fixture
def catalog_entry() -> Callable[..., CatalogEvidence]:
    return present_in_catalog


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyAssetRecordUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyAssetRecordUnitOfWork:
        return SqlAlchemyAssetRecordUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
