"""Pydantic models describing the platform's loosely typed payloads."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

_PATH_IDENTIFIER: Final = re.compile(r"/(\d+)")


def _identifier_to_str(value: object) -> object:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _none_to_false(value: object) -> object:
    return False if value is None else value


class PlatformBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CatalogItem(PlatformBaseModel):
    id: int | None = None
    name: str | None = None
    is_for_sale: bool | None = Field(default=None, alias="isForSale")
    is_restricted: bool = Field(default=False, alias="isRestricted")
    is_limited: bool = Field(default=False, alias="isLimited")
    is_limited_unique: bool = Field(default=False, alias="isLimitedUnique")
    price_status: str | None = Field(default=None, alias="priceStatus")
    created: datetime | None = None

    _normalize_flags = field_validator(
        "is_restricted", "is_limited", "is_limited_unique", mode="before"
    )(_none_to_false)


class CatalogDetailsResponse(PlatformBaseModel):
    data: list[CatalogItem] = Field(default_factory=list["CatalogItem"])


class IngestionError(PlatformBaseModel):
    code: int | None = None
    message: str = ""

    @field_validator("message", mode="before")
    @classmethod
    def _blank_message(cls, value: object) -> object:
        return "" if value is None else value


class IngestionResponse(PlatformBaseModel):
    """Body of an ingestion response; every field is optional on the wire."""

    id: str | None = None
    upper_id: str | None = Field(default=None, alias="Id")
    asset_id: str | None = Field(default=None, alias="assetId")
    path: str | None = None
    upper_path: str | None = Field(default=None, alias="Path")
    name: str | None = None
    errors: list[IngestionError] = Field(default_factory=list["IngestionError"])
    is_valid: bool | None = Field(default=None, alias="isValid")
    error: str | None = None
    message: str | None = None

    _normalize_ids = field_validator("id", "upper_id", "asset_id", mode="before")(
        _identifier_to_str
    )

    @property
    def identifier(self) -> str | None:
        for candidate in (self.id, self.upper_id, self.asset_id):
            if candidate:
                return candidate
        for path in (self.path, self.upper_path):
            if path and (match := _PATH_IDENTIFIER.search(path)):
                return match.group(1)
        return None

    @property
    def first_error(self) -> IngestionError | None:
        return self.errors[0] if self.errors else None


class AuthenticatedUser(PlatformBaseModel):
    id: int
    name: str = ""
    display_name: str | None = Field(default=None, alias="displayName")


class InventoryAsset(PlatformBaseModel):
    id: int
    name: str = ""
    asset_status: str | None = Field(default=None, alias="assetStatus")
    created: datetime | None = None
    updated: datetime | None = None
    file_size: int | None = Field(default=None, alias="fileSize")
    file_type: str | None = Field(default=None, alias="fileType")
    group_id: int | None = Field(default=None, alias="groupId")


class InventoryPage(PlatformBaseModel):
    data: list[InventoryAsset] = Field(default_factory=list["InventoryAsset"])
    next_page_cursor: str | None = Field(default=None, alias="nextPageCursor")
