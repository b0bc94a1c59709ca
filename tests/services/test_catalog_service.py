"""
CatalogService unit tests.

Tests cover:
- Create / update / delete of parts and locations
- Business key uniqueness and blank-value validation
- get_or_create helpers: fill-empty-fields policy
- Delete cascades to inventory rows, moves and count records
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.exceptions import (
    DuplicateCatalogKeyError,
    InvalidArgumentError,
    LocationNotFoundError,
    PartNotFoundError,
)
from stock_kernel.models.inventory import InventoryRecord, MoveRecord


class TestParts:
    def test_create_part_with_attributes(self, catalog_service):
        part = catalog_service.create_part(
            " EXT-200 ",
            "Extrusion 2m",
            category="Extrusion",
            color="Black",
            width="40.5",
            length=2000,
            thickness=Decimal("1.2"),
        )

        assert part.part_code == "EXT-200"
        assert part.category == "Extrusion"
        assert part.width == Decimal("40.5")
        assert part.length == Decimal("2000")
        assert part.thickness == Decimal("1.2")
        assert part.brand is None

    def test_duplicate_code_rejected(self, catalog_service, part):
        with pytest.raises(DuplicateCatalogKeyError) as exc_info:
            catalog_service.create_part("ACM-001", "Another")
        assert exc_info.value.key == "ACM-001"

    @pytest.mark.parametrize("code,name", [("", "name"), ("  ", "name"), ("X-1", ""), (None, "n")])
    def test_blank_code_or_name_rejected(self, catalog_service, code, name):
        with pytest.raises(InvalidArgumentError):
            catalog_service.create_part(code, name)

    def test_unknown_attribute_rejected(self, catalog_service):
        with pytest.raises(InvalidArgumentError) as exc_info:
            catalog_service.create_part("X-1", "Thing", weight=3)
        assert exc_info.value.field == "weight"

    def test_non_numeric_dimension_rejected(self, catalog_service):
        with pytest.raises(InvalidArgumentError) as exc_info:
            catalog_service.create_part("X-1", "Thing", width="wide")
        assert exc_info.value.field == "width"

    def test_update_part(self, catalog_service, part):
        updated = catalog_service.update_part(part.id, name="ACM panel 4mm", brand="Alucobond")

        assert updated.name == "ACM panel 4mm"
        assert updated.brand == "Alucobond"
        assert updated.color == "Silver"

    def test_update_part_code_to_taken_code_rejected(self, catalog_service, part, create_part):
        other = create_part("ACM-002", "Other")
        with pytest.raises(DuplicateCatalogKeyError):
            catalog_service.update_part(other.id, part_code="ACM-001")

    def test_update_unknown_part(self, catalog_service):
        with pytest.raises(PartNotFoundError):
            catalog_service.update_part(uuid4(), name="x")

    def test_delete_part_cascades(
        self, session, catalog_service, catalog_selector, part, location_a, stock
    ):
        stock(part, location_a, 5)
        catalog_service.delete_part(part.id)
        session.expire_all()

        assert catalog_selector.get_part(part.id) is None
        assert session.query(InventoryRecord).filter_by(part_id=part.id).count() == 0
        assert session.query(MoveRecord).filter_by(part_id=part.id).count() == 0

    def test_delete_logged_as_warning(self, catalog_service, part, captured_logs):
        catalog_service.delete_part(part.id)
        deleted = [r for r in captured_logs() if r["message"] == "part_deleted"]
        assert deleted[0]["level"] == "WARNING"
        assert deleted[0]["part_code"] == "ACM-001"


class TestGetOrCreatePart:
    def test_creates_when_missing(self, catalog_service):
        view, created = catalog_service.get_or_create_part("NEW-1", "New", category="Misc")
        assert created is True
        assert view.category == "Misc"

    def test_existing_part_fills_only_empty_fields(self, catalog_service, part):
        view, created = catalog_service.get_or_create_part(
            "ACM-001", "Renamed", color="Gold", brand="Reynobond"
        )

        assert created is False
        assert view.id == part.id
        assert view.name == "ACM panel"
        assert view.color == "Silver"
        assert view.brand == "Reynobond"


class TestLocations:
    def test_create_location(self, catalog_service):
        location = catalog_service.create_location("R-01", "Rack", " East ")
        assert location.location_code == "R-01"
        assert location.zone == "East"

    def test_duplicate_location_rejected(self, catalog_service, location_a):
        with pytest.raises(DuplicateCatalogKeyError):
            catalog_service.create_location("A1")

    def test_update_location(self, catalog_service, location_a):
        updated = catalog_service.update_location(location_a.id, zone="West")
        assert updated.zone == "West"
        assert updated.location_type == "Rack"

    def test_update_unknown_location(self, catalog_service):
        with pytest.raises(LocationNotFoundError):
            catalog_service.update_location(uuid4(), zone="x")

    def test_delete_location_cascades(
        self, session, catalog_service, part, location_a, stock
    ):
        stock(part, location_a, 5)
        catalog_service.delete_location(location_a.id)
        session.expire_all()

        assert session.query(InventoryRecord).filter_by(location_id=location_a.id).count() == 0

    def test_get_or_create_location_fills_empty_type(self, catalog_service):
        catalog_service.create_location("BIN-7")
        view, created = catalog_service.get_or_create_location("BIN-7", location_type="Bin")
        assert created is False
        assert view.location_type == "Bin"
