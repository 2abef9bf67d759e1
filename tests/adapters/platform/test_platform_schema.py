from __future__ import annotations

import pytest

from assetwarden.adapters.platform.schema import (
    CatalogDetailsResponse,
    IngestionResponse,
    InventoryPage,
)


def test_catalog_item_treats_null_flags_as_false() -> None:
    details = CatalogDetailsResponse.model_validate(
        {
            "data": [
                {
                    "id": 5,
                    "name": "Loop",
                    "isForSale": None,
                    "isRestricted": None,
                    "isLimited": None,
                    "unknownField": "ignored",
                }
            ]
        }
    )

    item = details.data[0]
    assert item.is_for_sale is None
    assert item.is_restricted is False
    assert item.is_limited is False
    assert item.is_limited_unique is False


def test_catalog_details_without_data_is_empty() -> None:
    assert CatalogDetailsResponse.model_validate({}).data == []


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ({"id": 123}, "123"),
        ({"Id": "456"}, "456"),
        ({"assetId": 789}, "789"),
        ({"path": "operations/abc", "Path": "assets/321/versions/1"}, "321"),
        ({"id": "  ", "path": "assets/55"}, "55"),
        ({"name": "no identifier"}, None),
    ],
)
def test_ingestion_identifier_lookup(body: dict[str, object], expected: str | None) -> None:
    assert IngestionResponse.model_validate(body).identifier == expected


def test_ingestion_first_error() -> None:
    response = IngestionResponse.model_validate(
        {"errors": [{"code": 4, "message": None}, {"code": 9, "message": "corrupt"}]}
    )

    assert response.first_error is not None
    assert response.first_error.code == 4
    assert response.first_error.message == ""
    assert IngestionResponse.model_validate({}).first_error is None


def test_inventory_page_parses_cursor_and_items() -> None:
    page = InventoryPage.model_validate(
        {
            "data": [
                {"id": 1, "name": "Loop", "assetStatus": "Approved", "groupId": 9},
                {"id": 2, "name": "Icon", "assetStatus": "Pending"},
            ],
            "nextPageCursor": "cursor-2",
        }
    )

    assert [asset.id for asset in page.data] == [1, 2]
    assert page.data[0].group_id == 9
    assert page.next_page_cursor == "cursor-2"
